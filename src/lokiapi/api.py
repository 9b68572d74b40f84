"""Client for the .NET based node APIs (file servers and open groups).

Wires token storage, challenge resolution, token negotiation, request
execution and attachment uploads into a single entry point.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO

import httpx

from lokiapi.attachments.uploader import AttachmentUploader
from lokiapi.constants import (
    ATTACHMENT_CONTENT_TYPE,
    DEFAULT_TIMEOUT,
    SELF_ENDPOINT,
    UPLOAD_TIMEOUT,
)
from lokiapi.crypto.diffie_hellman import Decrypt, decrypt
from lokiapi.models.upload import ProgressListener, UploadDescriptor, UploadResult
from lokiapi.services.challenge import ChallengeResolver
from lokiapi.services.tokens import TokenManager
from lokiapi.storage.tokens import InMemoryTokenStore, TokenStore
from lokiapi.transport.dispatch import NodeDispatcher
from lokiapi.transport.executor import HTTPVerb, RequestExecutor

logger = logging.getLogger(__name__)


class DotNetAPI:
    """Authenticated access to a federation of nodes.

    Example:
        async with DotNetAPI(public_key_hex, private_key) as api:
            await api.set_self_annotation(server, "network.loki.messenger.avatar", url)
    """

    def __init__(
        self,
        public_key: str,
        private_key: bytes,
        token_store: TokenStore | None = None,
        decrypt_fn: Decrypt = decrypt,
        timeout: float = DEFAULT_TIMEOUT,
        upload_timeout: float = UPLOAD_TIMEOUT,
    ):
        """Initialize the API client.

        Args:
            public_key: Our hex encoded public key
            private_key: Our raw private key
            token_store: Per-server token cache; in-memory if not given
            decrypt_fn: Shared-secret decryption used to open challenges
            timeout: Timeout in seconds for ordinary API calls
            upload_timeout: Connect/read timeout in seconds for uploads
        """
        self.token_store = token_store if token_store is not None else InMemoryTokenStore()
        self.dispatcher = NodeDispatcher(self.token_store, timeout=timeout)
        self.token_manager = TokenManager(
            public_key,
            ChallengeResolver(private_key, decrypt_fn),
            self.token_store,
            self.dispatcher,
        )
        self.executor = RequestExecutor(self.token_manager, self.dispatcher)
        self.uploader = AttachmentUploader(self.executor, timeout=upload_timeout)

    async def __aenter__(self) -> DotNetAPI:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def get_auth_token(self, server: str) -> str:
        return await self.token_manager.get_auth_token(server)

    async def execute(
        self,
        verb: HTTPVerb,
        server: str,
        endpoint: str,
        parameters: dict[str, Any] | None = None,
    ) -> httpx.Response:
        return await self.executor.execute(verb, server, endpoint, parameters)

    async def set_self_annotation(
        self, server: str, type: str, value: Any = None
    ) -> httpx.Response:
        """Set (or, with no value, clear) one of our user annotations."""
        annotation: dict[str, Any] = {"type": type}
        if value is not None:
            annotation["value"] = value
        return await self.execute(
            HTTPVerb.PATCH, server, SELF_ENDPOINT, {"annotations": [annotation]}
        )

    def upload(
        self,
        server: str,
        data: BinaryIO,
        content_type: str,
        length: int,
        listener: ProgressListener | None = None,
    ) -> UploadResult:
        descriptor = UploadDescriptor(data, content_type, length, listener)
        return self.uploader.upload(server, descriptor)

    def upload_attachment(
        self,
        server: str,
        data: BinaryIO,
        length: int,
        listener: ProgressListener | None = None,
    ) -> UploadResult:
        """Upload an attachment body as ``application/octet-stream``."""
        return self.upload(server, data, ATTACHMENT_CONTENT_TYPE, length, listener)

    async def close(self) -> None:
        await self.dispatcher.close()
