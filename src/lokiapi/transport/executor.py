"""Verbed, authenticated request execution against nodes."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import httpx

from lokiapi.services.tokens import TokenManager
from lokiapi.transport.dispatch import NodeDispatcher

logger = logging.getLogger(__name__)


class HTTPVerb(str, Enum):
    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"
    PATCH = "PATCH"


def build_url(server: str, endpoint: str) -> str:
    """Join ``server`` and ``endpoint``; one leading slash is ignored."""
    return f"{server}/{endpoint.removeprefix('/')}"


class RequestExecutor:
    """Builds, authenticates and dispatches requests to nodes.

    GET requests carry their parameters as a query string and are sent as is.
    Every other verb serializes its parameters as a JSON body and gets an
    ``Authorization: Bearer`` header before it is sent. Requests are always
    built before a token is fetched, so token acquisition only delays
    transmission.

    Nothing is retried here. A TokenExpiredError means the cached token has
    already been cleared and the caller may retry the whole operation.
    """

    def __init__(self, token_manager: TokenManager, dispatcher: NodeDispatcher):
        self._token_manager = token_manager
        self._dispatcher = dispatcher

    def build_request(
        self,
        verb: HTTPVerb,
        server: str,
        endpoint: str,
        parameters: dict[str, Any] | None = None,
    ) -> httpx.Request:
        """Build an unauthenticated request for ``verb`` on ``endpoint``.

        DELETE only carries a JSON body when there are parameters to send.
        """
        verb = HTTPVerb(verb)
        parameters = parameters or {}
        url = build_url(server, endpoint)

        if verb is HTTPVerb.GET:
            return httpx.Request(verb.value, url, params=parameters or None)
        if verb is HTTPVerb.DELETE and not parameters:
            return httpx.Request(verb.value, url)
        return httpx.Request(verb.value, url, json=parameters)

    async def execute(
        self,
        verb: HTTPVerb,
        server: str,
        endpoint: str,
        parameters: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Execute a request and return the successful response.

        Raises:
            TokenExpiredError: On 401, after the cached token was cleared
            HTTPRequestFailedError: On any other non-2xx status
            ParsingFailedError: If a token had to be negotiated and failed
            httpx.TransportError: If the server couldn't be reached
        """
        request = self.build_request(verb, server, endpoint, parameters)
        if request.method == HTTPVerb.GET.value:
            return await self._dispatcher.send(request, server)

        return await self.execute_authenticated(request, server)

    async def get_authenticated_request(
        self,
        request: httpx.Request,
        server: str,
        connection: httpx.AsyncClient | None = None,
    ) -> httpx.Request:
        """Attach the bearer token for ``server`` to an already built request."""
        token = await self._token_manager.get_auth_token(server, connection)
        request.headers["Authorization"] = f"Bearer {token}"
        return request

    async def execute_authenticated(
        self,
        request: httpx.Request,
        server: str,
        connection: httpx.AsyncClient | None = None,
    ) -> httpx.Response:
        """Authenticate a prebuilt request and dispatch it."""
        request = await self.get_authenticated_request(request, server, connection)
        return await self._dispatcher.send(request, server, connection)
