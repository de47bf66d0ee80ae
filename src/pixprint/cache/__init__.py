"""Persistent fingerprint cache."""

from .store import (
    CacheEntry,
    CacheFormatError,
    FingerprintCache,
    UncacheablePathError,
    cache_file_name,
    cache_path_for,
)

__all__ = [
    "CacheEntry",
    "CacheFormatError",
    "FingerprintCache",
    "UncacheablePathError",
    "cache_file_name",
    "cache_path_for",
]
