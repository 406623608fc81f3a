"""Hashing utilities."""

import hashlib


def generate_cache_key(source_url: str) -> str:
    """Generate a short, stable cache key from a source URL."""
    return hashlib.sha256(source_url.encode()).hexdigest()[:16]
