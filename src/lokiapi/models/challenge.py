"""Challenge envelope models for token negotiation.

A node answers the get-challenge call with a base64 ciphertext and a base64
server public key. The ciphertext decrypts, with the shared secret of the
server key and the local private key, to the bearer token.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lokiapi.constants import PREFIXED_PUBLIC_KEY_LENGTH


def normalize_public_key(public_key: bytes) -> bytes:
    """Drop the leading type byte from a 33-byte public key.

    Keys of any other length are returned unchanged.
    """
    if len(public_key) == PREFIXED_PUBLIC_KEY_LENGTH:
        return public_key[1:]
    return public_key


@dataclass(frozen=True)
class Challenge:
    """Decoded challenge: ciphertext (IV-prefixed) and the server public key."""

    cipher_text: bytes
    server_public_key: bytes

    @property
    def peer_public_key(self) -> bytes:
        """Public key to use for the shared-secret agreement."""
        return normalize_public_key(self.server_public_key)


class ChallengeResponse(BaseModel):
    """JSON body returned by the get-challenge endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    cipher_text_64: str = Field(alias="cipherText64")
    server_public_key_64: str = Field(alias="serverPubKey64")

    @field_validator("cipher_text_64", "server_public_key_64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Reject fields that are not valid base64."""
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Field is not valid base64: {e}") from e
        return v

    def to_challenge(self) -> Challenge:
        return Challenge(
            cipher_text=base64.b64decode(self.cipher_text_64),
            server_public_key=base64.b64decode(self.server_public_key_64),
        )
