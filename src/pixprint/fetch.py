"""Serve fingerprints from the cache or compute them on a miss."""

from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .cache.store import FingerprintCache, UncacheablePathError
from .config import Settings
from .fingerprint.canvas import ImageProcessingError
from .fingerprint.pipeline import compute_fingerprint
from .logging import get_logger

logger = get_logger(__name__)

FetchResult = Tuple[Path, Optional[str]]


class Fetcher:
    """Fingerprint source combining the cache and the transform pipeline."""

    def __init__(self, settings: Settings, cache: Optional[FingerprintCache] = None) -> None:
        self.settings = settings
        self.cache = cache
        self.computed = 0
        self.cache_hits = 0
        self.failures = 0
        self._stats_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> Fetcher:
        """Create a fetcher with the cache ``settings`` selects (may raise CacheFormatError)."""
        return cls(settings, FingerprintCache.for_settings(settings))

    def fetch(self, path: Path) -> Optional[str]:
        """
        Fingerprint for ``path``, or None if the file could not be processed.

        Image and file-system failures are logged and swallowed per file, as
        are paths the cache log cannot hold. Cache write failures propagate.
        """
        absolute = os.path.abspath(str(path))
        try:
            stat = os.stat(absolute)
        except OSError as exc:
            logger.warning(f"Cannot stat {path}: {exc}")
            self._count("failures")
            return None

        fsize = stat.st_size
        mtime = int(stat.st_mtime)

        if self.cache is not None:
            cached = self.cache.lookup(absolute, fsize, mtime)
            if cached is not None:
                logger.debug(f"Cache hit for {absolute}")
                self._count("cache_hits")
                return cached

        try:
            fingerprint = compute_fingerprint(Path(absolute), self.settings)
        except ImageProcessingError as exc:
            logger.warning(f"Failed to fingerprint {path}: {exc}")
            self._count("failures")
            return None

        self._count("computed")
        if self.cache is not None and self.cache.writable:
            try:
                self.cache.store(absolute, fsize, mtime, fingerprint)
            except UncacheablePathError as exc:
                logger.warning(f"Not caching {path}: {exc}")
        return fingerprint

    def fetch_all(self, paths: Sequence[Path], jobs: int = 1) -> List[FetchResult]:
        """Fetch every path, keeping input order in the result."""
        paths = [Path(p) for p in paths]
        if jobs <= 1 or len(paths) < 2:
            results = [(path, self.fetch(path)) for path in paths]
        else:
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                results = list(zip(paths, executor.map(self.fetch, paths)))

        logger.info(
            f"Fingerprinted {len(results)} files: {self.computed} computed, "
            f"{self.cache_hits} from cache, {self.failures} failed"
        )
        return results

    def _count(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self, counter, getattr(self, counter) + 1)
