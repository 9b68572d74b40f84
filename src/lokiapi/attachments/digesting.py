"""Pass-through upload body that digests bytes as the transport reads them."""

from __future__ import annotations

import hashlib
from typing import BinaryIO

from lokiapi.models.upload import ProgressListener


class DigestingStream:
    """Read-only file-like wrapper computing a digest of transmitted bytes.

    The transport reads the wrapped stream chunk by chunk; every chunk is fed
    into the digest and reported to the progress listener on its way out.
    The digest is only available once the wrapped stream is exhausted, so it
    always covers exactly what was sent.

    Has no ``seek``/``tell``, so the body can only be consumed once.
    """

    def __init__(
        self,
        data: BinaryIO,
        length: int,
        listener: ProgressListener | None = None,
        algorithm: str = "sha256",
    ):
        self._data = data
        self._length = length
        self._listener = listener
        self._digest = hashlib.new(algorithm)
        self._transmitted = 0
        self._finished = False

    @property
    def bytes_transmitted(self) -> int:
        return self._transmitted

    @property
    def transmitted_digest(self) -> bytes:
        """Digest of every byte read so far.

        Raises:
            RuntimeError: If the stream hasn't been read to the end yet
        """
        if not self._finished:
            raise RuntimeError("Digest requested before transmission completed")
        return self._digest.digest()

    def read(self, size: int = -1) -> bytes:
        chunk = self._data.read(size)
        if not chunk:
            self._finished = True
            return b""

        self._digest.update(chunk)
        self._transmitted += len(chunk)
        if self._listener is not None:
            self._listener(self._length, self._transmitted)
        return chunk
