"""Auth token acquisition for nodes.

Tokens are negotiated through a challenge/response handshake:

1. GET the challenge endpoint with our hex encoded public key
2. Decrypt the returned ciphertext with the shared secret of the server
   public key and our private key; the plaintext is the token
3. POST the token back to the submit endpoint so the node activates it
4. Cache the token for the server

A cached token is returned without touching the network. Tokens carry no
expiry; a 401 on any later request clears the cache entry.
"""

from __future__ import annotations

import logging

import httpx

from lokiapi.constants import CHALLENGE_ENDPOINT, SUBMIT_CHALLENGE_ENDPOINT
from lokiapi.errors import ParsingFailedError
from lokiapi.services.challenge import ChallengeResolver
from lokiapi.storage.tokens import TokenStore
from lokiapi.transport.dispatch import NodeDispatcher

logger = logging.getLogger(__name__)


class TokenManager:
    """Gets cached tokens or negotiates new ones.

    Holds no state beyond a single negotiation: the token store owns every
    (server, token) pair. Concurrent negotiations for the same server are
    not deduplicated; the last one to finish wins the cache entry.
    """

    def __init__(
        self,
        public_key: str,
        resolver: ChallengeResolver,
        token_store: TokenStore,
        dispatcher: NodeDispatcher,
    ):
        """Initialize token manager.

        Args:
            public_key: Our hex encoded public key
            resolver: Turns challenge responses into tokens
            token_store: Per-server token cache
            dispatcher: Sends the unauthenticated handshake requests
        """
        self.public_key = public_key
        self._resolver = resolver
        self._token_store = token_store
        self._dispatcher = dispatcher

    async def get_auth_token(
        self, server: str, connection: httpx.AsyncClient | None = None
    ) -> str:
        """Return the token for ``server``, negotiating one if none is cached.

        Raises:
            ParsingFailedError: If the challenge can't be parsed or decrypted
            HTTPRequestFailedError: If a handshake request is rejected
            TokenExpiredError: If a handshake request gets a 401
            httpx.TransportError: If the server couldn't be reached
        """
        token = self._token_store.get_auth_token(server)
        if token is not None:
            return token

        new_token = await self.request_new_auth_token(server, connection)
        await self.submit_auth_token(new_token, server, connection)
        self._token_store.set_auth_token(server, new_token)
        logger.info(f"Obtained auth token for server: {server}")
        return new_token

    async def request_new_auth_token(
        self, server: str, connection: httpx.AsyncClient | None = None
    ) -> str:
        logger.debug(f"Requesting auth token for server: {server}.")
        request = httpx.Request(
            "GET",
            f"{server}/{CHALLENGE_ENDPOINT}",
            params={"pubKey": self.public_key},
        )
        response = await self._dispatcher.send(request, server, connection)

        try:
            body = response.json()
        except ValueError as e:
            logger.debug(f"Couldn't parse auth token for server: {server}.")
            raise ParsingFailedError(f"Challenge response is not JSON: {e}") from e

        try:
            return self._resolver.resolve_body(body)
        except ParsingFailedError:
            logger.debug(f"Couldn't parse auth token for server: {server}.")
            raise

    async def submit_auth_token(
        self, token: str, server: str, connection: httpx.AsyncClient | None = None
    ) -> str:
        """Confirm ``token`` with the node; returns the token on acceptance."""
        logger.debug(f"Submitting auth token for server: {server}.")
        request = httpx.Request(
            "POST",
            f"{server}/{SUBMIT_CHALLENGE_ENDPOINT}",
            json={"pubKey": self.public_key, "token": token},
        )
        await self._dispatcher.send(request, server, connection)
        return token
