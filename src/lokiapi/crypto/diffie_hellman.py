"""Shared-secret decryption used to open node challenges.

The shared secret is the raw X25519 agreement between the peer public key
and the local private key. The ciphertext is AES-256-CBC with its 16-byte
IV prepended and PKCS7 padding.
"""

from __future__ import annotations

from typing import Callable

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.asymmetric import x25519
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

IV_SIZE = 16

Decrypt = Callable[[bytes, bytes, bytes], bytes]


def shared_secret(peer_public_key: bytes, local_private_key: bytes) -> bytes:
    """Derive the X25519 shared secret from raw 32-byte keys."""
    private_key = x25519.X25519PrivateKey.from_private_bytes(local_private_key)
    public_key = x25519.X25519PublicKey.from_public_bytes(peer_public_key)
    return private_key.exchange(public_key)


def decrypt(ciphertext: bytes, peer_public_key: bytes, local_private_key: bytes) -> bytes:
    """Decrypt an IV-prefixed AES-CBC payload with the X25519 shared secret.

    Raises:
        ValueError: If the keys are malformed or the payload cannot be
            decrypted and unpadded
    """
    if len(ciphertext) <= IV_SIZE:
        raise ValueError("Ciphertext too short to contain an IV and payload")

    key = shared_secret(peer_public_key, local_private_key)
    iv, body = ciphertext[:IV_SIZE], ciphertext[IV_SIZE:]

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()
