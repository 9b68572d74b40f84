"""Tests for token acquisition: cache-first lookup and full negotiation."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from lokiapi.errors import HTTPRequestFailedError, ParsingFailedError
from lokiapi.services.challenge import ChallengeResolver
from lokiapi.services.tokens import TokenManager
from lokiapi.storage.tokens import InMemoryTokenStore

SERVER = "https://file.example.com"


def _json_response(body) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = body
    return response


class TestCachedToken:
    """Test token lookup when a token is already cached."""

    async def test_cached_token_is_returned_without_network(self, challenges):
        """Test cached token is returned without any network call."""
        # Arrange
        store = InMemoryTokenStore()
        store.set_auth_token(SERVER, "cached-token")
        dispatcher = AsyncMock()
        manager = TokenManager(
            challenges.client_public_key_hex,
            ChallengeResolver(challenges.client_private_key),
            store,
            dispatcher,
        )

        # Act
        token = await manager.get_auth_token(SERVER)

        # Assert
        assert token == "cached-token"
        dispatcher.send.assert_not_awaited()


class TestNegotiation:
    """Test the challenge/response handshake for uncached servers."""

    def setup_method(self):
        self.store = InMemoryTokenStore()
        self.dispatcher = AsyncMock()

    def _manager(self, challenges) -> TokenManager:
        return TokenManager(
            challenges.client_public_key_hex,
            ChallengeResolver(challenges.client_private_key),
            self.store,
            self.dispatcher,
        )

    @pytest.mark.parametrize("prefixed", [False, True])
    async def test_negotiates_submits_and_caches(self, challenges, prefixed):
        """Test full negotiation requests, submits and caches the token."""
        # Arrange
        manager = self._manager(challenges)
        self.dispatcher.send.side_effect = [
            _json_response(challenges.body("fresh-token", prefixed=prefixed)),
            _json_response({}),
        ]

        # Act
        token = await manager.get_auth_token(SERVER)

        # Assert
        assert token == "fresh-token"
        assert self.store.get_auth_token(SERVER) == "fresh-token"
        assert self.dispatcher.send.await_count == 2

        challenge_request, challenge_server, _ = self.dispatcher.send.await_args_list[0].args
        assert challenge_request.method == "GET"
        assert challenge_request.url.path == "/loki/v1/get_challenge"
        assert challenge_request.url.params["pubKey"] == challenges.client_public_key_hex
        assert "Authorization" not in challenge_request.headers
        assert challenge_server == SERVER

        submit_request = self.dispatcher.send.await_args_list[1].args[0]
        assert submit_request.method == "POST"
        assert str(submit_request.url) == f"{SERVER}/loki/v1/submit_challenge"
        assert json.loads(submit_request.content) == {
            "pubKey": challenges.client_public_key_hex,
            "token": "fresh-token",
        }
        assert "Authorization" not in submit_request.headers

    async def test_malformed_challenge_caches_nothing(self, challenges):
        """Test malformed challenge fails and leaves the cache empty."""
        manager = self._manager(challenges)
        self.dispatcher.send.return_value = _json_response({"cipherText64": "AAAA"})

        with pytest.raises(ParsingFailedError):
            await manager.get_auth_token(SERVER)

        assert self.store.get_auth_token(SERVER) is None
        assert self.dispatcher.send.await_count == 1

    async def test_non_json_challenge_fails_with_parsing_failed(self, challenges):
        """Test non-JSON challenge body fails with ParsingFailedError."""
        manager = self._manager(challenges)
        response = MagicMock()
        response.json.side_effect = json.JSONDecodeError("Expecting value", "", 0)
        self.dispatcher.send.return_value = response

        with pytest.raises(ParsingFailedError):
            await manager.get_auth_token(SERVER)

    async def test_rejected_submission_caches_nothing(self, challenges):
        """Test rejected token submission leaves the cache empty."""
        manager = self._manager(challenges)
        self.dispatcher.send.side_effect = [
            _json_response(challenges.body("fresh-token")),
            HTTPRequestFailedError(403),
        ]

        with pytest.raises(HTTPRequestFailedError) as exc_info:
            await manager.get_auth_token(SERVER)

        assert exc_info.value.code == 403
        assert self.store.get_auth_token(SERVER) is None

    async def test_transport_error_propagates_unchanged(self, challenges):
        """Test transport errors reach the caller as raised."""
        manager = self._manager(challenges)
        error = httpx.ConnectError("connection refused")
        self.dispatcher.send.side_effect = error

        with pytest.raises(httpx.ConnectError) as exc_info:
            await manager.get_auth_token(SERVER)

        assert exc_info.value is error
        assert self.store.get_auth_token(SERVER) is None

    async def test_handshake_uses_given_connection(self, challenges):
        """Test both handshake requests go over the given connection."""
        manager = self._manager(challenges)
        connection = MagicMock()
        self.dispatcher.send.side_effect = [
            _json_response(challenges.body("fresh-token")),
            _json_response({}),
        ]

        await manager.get_auth_token(SERVER, connection)

        for call in self.dispatcher.send.await_args_list:
            assert call.args[2] is connection
