"""Digest-verified attachment uploads to file servers."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

import httpx
from pydantic import ValidationError

from lokiapi.attachments.digesting import DigestingStream
from lokiapi.constants import (
    ATTACHMENT_PART_FILENAME,
    FILES_ENDPOINT,
    UPLOAD_TIMEOUT,
    UPLOAD_TYPE,
)
from lokiapi.errors import (
    HTTPRequestFailedError,
    InvalidServerResponseError,
    NonSuccessfulResponseCodeError,
    ParsingFailedError,
    PushNetworkError,
)
from lokiapi.models.upload import (
    UploadDescriptor,
    UploadedFile,
    UploadResponse,
    UploadResult,
)
from lokiapi.transport.executor import RequestExecutor, build_url

logger = logging.getLogger(__name__)


class AttachmentUploader:
    """Streams attachments to a node's ``files`` endpoint.

    Uploads use their own connection with longer timeouts than ordinary API
    calls. The body is a multipart form with the parts ``type``,
    ``Content-Type`` and ``content``; the digest in the result is computed
    while the transport reads ``content``.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        timeout: float = UPLOAD_TIMEOUT,
        digest_algorithm: str = "sha256",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize attachment uploader.

        Args:
            executor: Used to authenticate and dispatch the upload request
            timeout: Connect/read timeout in seconds for uploads
            digest_algorithm: ``hashlib`` name of the transmitted-bytes digest
            transport: Transport for the upload connection; httpx default if None
        """
        self.timeout = timeout
        self.digest_algorithm = digest_algorithm
        self._executor = executor
        self._transport = transport

    def upload(self, server: str, descriptor: UploadDescriptor) -> UploadResult:
        """Upload ``descriptor`` and block until the server has answered.

        The upload runs on its own event loop in a worker thread, so this is
        safe to call from any thread, including one running an event loop.

        Raises:
            NonSuccessfulResponseCodeError: If the server rejected the upload
            PushNetworkError: For any other failure, wrapping the cause
        """
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(lambda: asyncio.run(self.upload_async(server, descriptor)))
            try:
                return future.result()
            except HTTPRequestFailedError as e:
                raise NonSuccessfulResponseCodeError(e.code) from e
            except Exception as e:
                raise PushNetworkError(e) from e

    async def upload_async(
        self, server: str, descriptor: UploadDescriptor
    ) -> UploadResult:
        """Upload ``descriptor`` and parse the server's answer.

        Raises:
            ParsingFailedError: If the response has no usable ``data`` object
            InvalidServerResponseError: If the returned url is empty
            HTTPRequestFailedError: If the server rejected the upload
            TokenExpiredError: On 401, after the cached token was cleared
            httpx.TransportError: If the server couldn't be reached
        """
        file = DigestingStream(
            descriptor.data,
            descriptor.length,
            descriptor.listener,
            algorithm=self.digest_algorithm,
        )
        request = httpx.Request(
            "POST",
            build_url(server, FILES_ENDPOINT),
            data={"type": UPLOAD_TYPE, "Content-Type": descriptor.content_type},
            files={"content": (ATTACHMENT_PART_FILENAME, file, descriptor.content_type)},
        )

        logger.debug(f"Uploading {descriptor.length} bytes to {server}")
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as connection:
            response = await self._executor.execute_authenticated(
                request, server, connection
            )

        upload = self._parse_response(response)
        return UploadResult(id=upload.id, url=upload.url, digest=file.transmitted_digest)

    def _parse_response(self, response: httpx.Response) -> UploadedFile:
        try:
            body = UploadResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.debug(f"Couldn't parse attachment url from: {response}.")
            raise ParsingFailedError(f"Invalid upload response: {e}") from e

        if body.data is None:
            logger.debug(f"Couldn't parse attachment url from: {response}.")
            raise ParsingFailedError()
        if not body.data.url:
            raise InvalidServerResponseError("Invalid url returned from server")
        return body.data
