"""Greedy grouping of near-duplicate files."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..config import Colorspace
from ..logging import get_logger
from .distance import similarity

logger = get_logger(__name__)

FingerprintedFile = Tuple[Path, Optional[str]]


@dataclass(frozen=True)
class DedupGroup:
    """A source file and the later files it claimed."""
    index: int              # 1-based position of the source in the input list
    paths: Tuple[Path, ...]  # Source first, then matches in list order

    @property
    def source(self) -> Path:
        return self.paths[0]

    @property
    def matches(self) -> Tuple[Path, ...]:
        return self.paths[1:]


def find_duplicate_groups(
    files: Sequence[FingerprintedFile],
    threshold: float,
    colorspace: Colorspace,
) -> List[DedupGroup]:
    """
    Group files in a single forward pass.

    Each unclaimed file, in list order, claims every later unclaimed file whose
    similarity to it is at least ``threshold``. The result depends on input
    order: a file close to two unrelated sources joins whichever comes first,
    and similarity is never chained through a claimed file.

    Args:
        files: Ordered (path, fingerprint or None) pairs
        threshold: Minimum similarity percentage for a match
        colorspace: Colorspace the fingerprints were computed in

    Returns:
        Groups with at least one match, ordered by source index
    """
    claimed = [False] * len(files)
    groups = []

    for i, (source_path, source_fp) in enumerate(files):
        if claimed[i] or source_fp is None:
            continue

        members = [source_path]
        for j in range(i + 1, len(files)):
            if claimed[j]:
                continue
            candidate_path, candidate_fp = files[j]
            score = similarity(source_fp, candidate_fp, colorspace)
            if candidate_fp is not None and score >= threshold:
                claimed[j] = True
                members.append(candidate_path)
                logger.debug(f"{candidate_path} joins {source_path} ({score:.2f}%)")

        if len(members) > 1:
            claimed[i] = True
            groups.append(DedupGroup(index=i + 1, paths=tuple(members)))

    logger.info(f"Found {len(groups)} duplicate groups in {len(files)} files")
    return groups


def format_groups(groups: Sequence[DedupGroup]) -> List[str]:
    """One ``index:path`` line per member, grouped by source index."""
    return [f"{group.index}:{path}" for group in groups for path in group.paths]


def format_groups_oneline(groups: Sequence[DedupGroup]) -> List[str]:
    """One space-joined line of paths per group."""
    return [" ".join(str(path) for path in group.paths) for group in groups]
