"""Attachment upload models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Callable

from pydantic import BaseModel

ProgressListener = Callable[[int, int], None]


@dataclass(frozen=True)
class UploadDescriptor:
    """Everything needed to stream one payload to a file server.

    ``listener`` is called with ``(total_bytes, bytes_transmitted)`` every
    time the transport reads a chunk.
    """

    data: BinaryIO
    content_type: str
    length: int
    listener: ProgressListener | None = field(default=None)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload.

    ``digest`` is computed over the bytes the transport actually read.
    """

    id: int
    url: str
    digest: bytes


class UploadedFile(BaseModel):
    id: int
    url: str


class UploadResponse(BaseModel):
    """JSON body returned by the files endpoint: ``{"data": {"id", "url"}}``."""

    data: UploadedFile | None = None
