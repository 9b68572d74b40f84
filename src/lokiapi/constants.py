"""Wire-level constants for the file server / open group node protocol."""

from __future__ import annotations

CHALLENGE_ENDPOINT = "loki/v1/get_challenge"
SUBMIT_CHALLENGE_ENDPOINT = "loki/v1/submit_challenge"
FILES_ENDPOINT = "files"
SELF_ENDPOINT = "users/me"

# Identifies this uploader implementation to the file server
UPLOAD_TYPE = "network.loki"
ATTACHMENT_CONTENT_TYPE = "application/octet-stream"
ATTACHMENT_PART_FILENAME = "attachment"

DEFAULT_TIMEOUT = 5.0
UPLOAD_TIMEOUT = 30.0

# Public keys sent by nodes may carry a one-byte "05" type prefix
PREFIXED_PUBLIC_KEY_LENGTH = 33
