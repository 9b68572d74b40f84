import base64
import os

import pytest
from cryptography.hazmat.primitives import padding, serialization
from cryptography.hazmat.primitives.asymmetric import x25519
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from lokiapi.storage.tokens import InMemoryTokenStore


def _raw_public(key: x25519.X25519PrivateKey) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
    )


def _raw_private(key: x25519.X25519PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )


class ChallengeFactory:
    """Issues challenges the way a node does, for a fixed client key pair."""

    def __init__(self) -> None:
        client_key = x25519.X25519PrivateKey.generate()
        self.client_private_key = _raw_private(client_key)
        self.client_public_key = _raw_public(client_key)
        self.client_public_key_hex = "05" + self.client_public_key.hex()

    def encrypt(self, token: str, server_key: x25519.X25519PrivateKey) -> bytes:
        client_public = x25519.X25519PublicKey.from_public_bytes(self.client_public_key)
        secret = server_key.exchange(client_public)
        iv = os.urandom(16)
        padder = padding.PKCS7(128).padder()
        padded = padder.update(token.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(secret), modes.CBC(iv)).encryptor()
        return iv + encryptor.update(padded) + encryptor.finalize()

    def body(self, token: str, prefixed: bool = False) -> dict[str, str]:
        """JSON body of a get-challenge response carrying ``token``."""
        server_key = x25519.X25519PrivateKey.generate()
        server_public = _raw_public(server_key)
        if prefixed:
            server_public = b"\x05" + server_public
        return {
            "cipherText64": base64.b64encode(self.encrypt(token, server_key)).decode(),
            "serverPubKey64": base64.b64encode(server_public).decode(),
        }


@pytest.fixture
def challenges() -> ChallengeFactory:
    return ChallengeFactory()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()
