"""Low-level request dispatch and response classification."""

from __future__ import annotations

import logging

import httpx

from lokiapi.constants import DEFAULT_TIMEOUT
from lokiapi.errors import HTTPRequestFailedError, TokenExpiredError
from lokiapi.storage.tokens import TokenStore

logger = logging.getLogger(__name__)


class NodeDispatcher:
    """Sends fully built requests to a node and classifies the response.

    Classification:
    - 2xx: the response is returned
    - 401: the cached token for the server is cleared, then TokenExpiredError
    - anything else: HTTPRequestFailedError carrying the status code

    Transport failures (``httpx.TransportError``) propagate unchanged. There
    is no retry of any kind at this level.
    """

    def __init__(self, token_store: TokenStore, timeout: float = DEFAULT_TIMEOUT):
        """Initialize dispatcher.

        Args:
            token_store: Store whose entries are invalidated on 401
            timeout: HTTP request timeout in seconds for ordinary API calls
        """
        self.timeout = timeout
        self._token_store = token_store
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def send(
        self,
        request: httpx.Request,
        server: str,
        connection: httpx.AsyncClient | None = None,
    ) -> httpx.Response:
        """Send ``request`` and classify the response.

        Args:
            request: Built request, already authenticated if it needs to be
            server: Server the request targets, used for token invalidation
            connection: Client to send with instead of the shared one

        Returns:
            The successful response, body already read

        Raises:
            TokenExpiredError: On 401
            HTTPRequestFailedError: On any other non-2xx status
            httpx.TransportError: If the server couldn't be reached
        """
        client = connection or self._http_client
        # Requests built outside a client don't carry its timeout
        if isinstance(client, httpx.AsyncClient):
            request.extensions.setdefault("timeout", client.timeout.as_dict())
        logger.debug(f"{request.method} {request.url}")

        try:
            response = await client.send(request)
        except httpx.TransportError:
            logger.debug(f"Couldn't reach server: {server}.")
            raise

        status_code = response.status_code
        if 200 <= status_code < 300:
            return response
        if status_code == 401:
            logger.info(f"Auth token for {server} expired, clearing it")
            self._token_store.set_auth_token(server, None)
            raise TokenExpiredError()

        logger.debug(f"{request.method} {request.url} failed with {status_code}")
        raise HTTPRequestFailedError(status_code)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
