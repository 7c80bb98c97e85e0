from __future__ import annotations

import hashlib

HEX_PREFIX = "0x"


def sha256_bytes(data: bytes) -> str:
    """Compute the 0x-prefixed SHA-256 hex digest of bytes."""
    return HEX_PREFIX + hashlib.sha256(data).hexdigest()


def sha256_text(text: str) -> str:
    """Compute the 0x-prefixed SHA-256 hex digest of a UTF-8 string."""
    return sha256_bytes(text.encode("utf-8"))
