"""Challenge resolution: turns a get-challenge response into a token."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from lokiapi.crypto.diffie_hellman import Decrypt, decrypt
from lokiapi.errors import ParsingFailedError
from lokiapi.models.challenge import Challenge, ChallengeResponse

logger = logging.getLogger(__name__)


class ChallengeResolver:
    """Derives plaintext auth tokens from server-issued challenges.

    The decryption primitive is injected so that callers can plug in their
    own key agreement implementation.
    """

    def __init__(self, private_key: bytes, decrypt_fn: Decrypt = decrypt):
        """Initialize challenge resolver.

        Args:
            private_key: Local 32-byte private key
            decrypt_fn: ``decrypt(ciphertext, peer_public_key, local_private_key)``
        """
        self._private_key = private_key
        self._decrypt = decrypt_fn

    def parse(self, body: Any) -> Challenge:
        """Validate a decoded JSON body and extract the challenge.

        Raises:
            ParsingFailedError: If required fields are missing or not base64
        """
        try:
            return ChallengeResponse.model_validate(body).to_challenge()
        except ValidationError as e:
            raise ParsingFailedError(f"Invalid challenge response: {e}") from e

    def resolve(self, challenge: Challenge) -> str:
        """Decrypt the challenge and decode the token as UTF-8.

        Raises:
            ParsingFailedError: If decryption or decoding fails
        """
        try:
            token_data = self._decrypt(
                challenge.cipher_text, challenge.peer_public_key, self._private_key
            )
            return token_data.decode("utf-8")
        except ValueError as e:
            raise ParsingFailedError(f"Couldn't decrypt challenge: {e}") from e
        except Exception as e:
            raise ParsingFailedError(f"Unexpected error decrypting challenge: {e}") from e

    def resolve_body(self, body: Any) -> str:
        return self.resolve(self.parse(body))
