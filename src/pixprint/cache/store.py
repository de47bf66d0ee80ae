"""Append-only fingerprint cache backed by a plain text log."""

from __future__ import annotations

import re
import threading
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from ..config import CacheMode, Settings
from ..logging import get_logger

logger = get_logger(__name__)

# "<mtime> <fsize> <fingerprint-hex> <absolute-path>"; the path takes the rest of the line.
_RECORD = re.compile(r"^(-?\d+) (\d+) ([0-9a-f]+) (.+)$")

# File names are OS bytes; undecodable ones travel as surrogates and are
# written back unchanged.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class CacheFormatError(Exception):
    """Raised when the cache file is malformed, unreadable or unwritable."""


class UncacheablePathError(ValueError):
    """Raised for a path that cannot be represented as a cache record."""


@dataclass(frozen=True)
class CacheEntry:
    path: str
    fsize: int
    mtime: int
    fingerprint: str

    def to_line(self) -> str:
        return f"{self.mtime} {self.fsize} {self.fingerprint} {self.path}\n"


def parse_record(line: str, line_number: int = 0) -> CacheEntry:
    match = _RECORD.match(line.rstrip("\n"))
    if match is None:
        raise CacheFormatError(f"Malformed cache record on line {line_number}: {line.rstrip()!r}")
    mtime, fsize, fingerprint, path = match.groups()
    return CacheEntry(path=path, fsize=int(fsize), mtime=int(mtime), fingerprint=fingerprint)


def cache_file_name(settings: Settings) -> str:
    """Cache file name keyed on every setting that changes the fingerprint."""
    return (
        f"pixprint-{settings.colorspace.value}-{settings.size}"
        f"-{settings.square_mode.value}-q{settings.quick_resize}.cache"
    )


def cache_path_for(settings: Settings) -> Path:
    if settings.cache_file is not None:
        return Path(settings.cache_file)
    return Path(settings.cache_dir) / cache_file_name(settings)


class FingerprintCache:
    """
    In-memory multimap of path -> cache entries plus the log file behind it.

    Entries are only ever appended. Stale entries for a path stay in the log
    and simply stop matching once the file's size or mtime changes.
    """

    def __init__(self, cache_file: Path, writable: bool = True) -> None:
        self._path = Path(cache_file)
        self._writable = writable
        self._entries: Dict[str, List[CacheEntry]] = defaultdict(list)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def writable(self) -> bool:
        return self._writable

    @classmethod
    def load(cls, cache_file: Path, writable: bool = True) -> FingerprintCache:
        """
        Read every record of ``cache_file``.

        A missing file yields an empty cache. Any malformed line fails the
        whole load.
        """
        cache = cls(cache_file, writable=writable)
        if not cache._path.exists():
            logger.debug(f"No cache file at {cache._path}, starting empty")
            return cache

        try:
            with cache._path.open("r", encoding=_ENCODING, errors=_ERRORS) as handle:
                for line_number, line in enumerate(handle, start=1):
                    entry = parse_record(line, line_number)
                    cache._entries[entry.path].append(entry)
        except OSError as exc:
            raise CacheFormatError(f"Cannot read cache file {cache._path}: {exc}") from exc

        logger.info(f"Loaded {len(cache)} cache entries from {cache._path}")
        return cache

    @classmethod
    def for_settings(cls, settings: Settings) -> Optional[FingerprintCache]:
        """Open the cache selected by ``settings``, or None when caching is disabled."""
        if settings.cache_mode is CacheMode.DISABLED:
            return None
        return cls.load(cache_path_for(settings), writable=settings.cache_mode is CacheMode.READ_WRITE)

    def lookup(self, path: str, fsize: int, mtime: int) -> Optional[str]:
        for entry in self._entries.get(path, ()):
            if entry.fsize == fsize and entry.mtime == mtime:
                return entry.fingerprint
        return None

    def store(self, path: str, fsize: int, mtime: int, fingerprint: str) -> CacheEntry:
        """Append one record to the log and the in-memory map."""
        if not self._writable:
            raise CacheFormatError(f"Cache {self._path} is read-only")
        if "\n" in path or "\r" in path:
            raise UncacheablePathError(f"Cannot store path containing a line break: {path!r}")

        entry = CacheEntry(path=path, fsize=int(fsize), mtime=int(mtime), fingerprint=fingerprint)
        line = entry.to_line()
        parse_record(line)

        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding=_ENCODING, errors=_ERRORS) as handle:
                    handle.write(line)
            except OSError as exc:
                raise CacheFormatError(f"Cannot append to cache file {self._path}: {exc}") from exc
            self._entries[path].append(entry)
        return entry

    def entries(self, path: str) -> List[CacheEntry]:
        return list(self._entries.get(path, ()))

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())
