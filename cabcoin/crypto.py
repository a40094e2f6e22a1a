"""SHA-256 hashing helpers."""

import hashlib

__all__ = ["sha256_hex"]


def sha256_hex(text: str) -> str:
    """Return the SHA-256 digest of ``text`` (UTF-8) as 64 lowercase hex characters."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()