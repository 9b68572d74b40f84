"""Error taxonomy for authenticated node communication.

Every failure raised by the request path carries a ``kind`` tag so callers
can branch either on the exception class or on ``error.kind``. Transport
failures are not part of this family: they surface as the underlying
``httpx.TransportError`` unchanged.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Tags for the node API error taxonomy."""

    HTTP_REQUEST_FAILED = "http_request_failed"
    TOKEN_EXPIRED = "token_expired"
    PARSING_FAILED = "parsing_failed"
    INVALID_SERVER_RESPONSE = "invalid_server_response"


class NodeAPIError(Exception):
    """Base exception for all node API failures."""

    kind: ErrorKind

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description


class HTTPRequestFailedError(NodeAPIError):
    """Raised when a node answers with a non-2xx, non-401 status."""

    kind = ErrorKind.HTTP_REQUEST_FAILED

    def __init__(self, code: int):
        super().__init__(f"HTTP request failed with status code: {code}.")
        self.code = code


class TokenExpiredError(NodeAPIError):
    """Raised on a 401 response, after the cached token has been cleared."""

    kind = ErrorKind.TOKEN_EXPIRED

    def __init__(self) -> None:
        super().__init__("Auth token expired.")


class ParsingFailedError(NodeAPIError):
    """Raised when a response body is malformed or missing expected fields."""

    kind = ErrorKind.PARSING_FAILED

    def __init__(self, description: str = "Failed to parse object from JSON."):
        super().__init__(description)


class InvalidServerResponseError(NodeAPIError):
    """Raised when a response is well-formed but semantically invalid."""

    kind = ErrorKind.INVALID_SERVER_RESPONSE


class AttachmentUploadError(Exception):
    """Base exception for the synchronous attachment upload boundary."""

    pass


class NonSuccessfulResponseCodeError(AttachmentUploadError):
    """Raised when an upload was answered with a non-successful status code."""

    def __init__(self, code: int):
        super().__init__(f"Request returned with {code}")
        self.code = code


class PushNetworkError(AttachmentUploadError):
    """Raised for any other upload failure, wrapping the original cause."""

    def __init__(self, cause: BaseException):
        super().__init__(f"Attachment upload failed: {cause!r}")
        self.cause = cause
