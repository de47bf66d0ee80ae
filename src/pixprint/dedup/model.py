"""Public API for duplicate detection and matching."""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..config import Colorspace
from ..fetch import Fetcher
from ..logging import get_logger
from .cluster import DedupGroup, FingerprintedFile, find_duplicate_groups
from .distance import similarity

logger = get_logger(__name__)


def deduplicate_files(
    paths: Sequence[Path],
    fetcher: Fetcher,
    jobs: int = 1,
) -> List[DedupGroup]:
    """
    Fingerprint ``paths`` and group near-duplicates.

    Files that cannot be fingerprinted stay in the list with no fingerprint,
    so group indices still refer to positions in ``paths``.
    """
    files = fetcher.fetch_all(paths, jobs=jobs)
    settings = fetcher.settings
    return find_duplicate_groups(files, settings.threshold, settings.colorspace)


def match_files(
    reference: Optional[str],
    candidates: Sequence[FingerprintedFile],
    threshold: float,
    colorspace: Colorspace,
) -> List[Tuple[Path, float]]:
    """Candidates whose similarity to ``reference`` reaches ``threshold``, in input order."""
    if reference is None:
        logger.warning("Reference image has no fingerprint, nothing can match")
        return []

    matches = []
    for path, fingerprint in candidates:
        if fingerprint is None:
            continue
        score = similarity(reference, fingerprint, colorspace)
        if score >= threshold:
            matches.append((path, score))
    return matches
