"""Content fingerprinting for deduplication."""

import hashlib


def fingerprint(content: bytes) -> str:
    """Return the SHA-256 hex digest of raw file content."""
    return hashlib.sha256(content).hexdigest()


def storage_key_for(content_hash: str, extension: str = "") -> str:
    """Build the content-addressed storage key for a fingerprint.

    Keys fan out over a two-character prefix directory, e.g. ``ab/ab12...ef.pl``.
    """
    suffix = f".{extension.lstrip('.')}" if extension else ""
    return f"{content_hash[:2]}/{content_hash}{suffix}"
