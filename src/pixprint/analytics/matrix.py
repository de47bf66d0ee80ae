"""
Directory-level similarity regression report.

Each test directory holds images that should all match one another. The
report shows, per directory, the weakest intra-directory match and, against
every other directory, the strongest accidental cross-directory match. A good
configuration keeps the first high and the second low.
"""

from dataclasses import dataclass, field
from itertools import combinations
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Sequence

from ..config import Colorspace
from ..dedup.distance import similarity
from ..fetch import Fetcher
from ..files import expand_paths
from ..logging import get_logger

logger = get_logger(__name__)


class SimilarityMatrix:
    """Symmetric pairwise similarity over a set of fingerprinted files."""

    def __init__(self, fingerprints: Dict[Path, Optional[str]], colorspace: Colorspace) -> None:
        self._scores: Dict[FrozenSet[Path], float] = {}
        for (path_a, fp_a), (path_b, fp_b) in combinations(fingerprints.items(), 2):
            self._scores[frozenset((path_a, path_b))] = similarity(fp_a, fp_b, colorspace)
        logger.debug(f"Computed {len(self._scores)} pairwise similarities")

    def __len__(self) -> int:
        return len(self._scores)

    def score(self, a: Path, b: Path) -> float:
        if a == b:
            raise KeyError(f"No self-pair score for {a}")
        return self._scores[frozenset((a, b))]


@dataclass(frozen=True)
class DirectoryReport:
    directory: Path
    files: int
    min_match_pct: Optional[float]                    # None with fewer than two files
    max_mismatch_pct: Dict[Path, Optional[float]] = field(default_factory=dict)


def compare_directories(
    directories: Sequence[Path],
    fetcher: Fetcher,
    jobs: int = 1,
) -> List[DirectoryReport]:
    """
    Fingerprint every file in ``directories`` and summarise similarities.

    Args:
        directories: Directories whose files are expected to match each other
        fetcher: Fingerprint source
        jobs: Worker threads used for fingerprinting

    Returns:
        One DirectoryReport per directory, in input order
    """
    members: Dict[Path, List[Path]] = {}
    for directory in directories:
        members[Path(directory)] = expand_paths([Path(directory)])

    union = list(dict.fromkeys(path for paths in members.values() for path in paths))
    fingerprints = dict(fetcher.fetch_all(union, jobs=jobs))
    matrix = SimilarityMatrix(fingerprints, fetcher.settings.colorspace)

    reports = []
    for directory, paths in members.items():
        intra = [matrix.score(a, b) for a, b in combinations(paths, 2) if a != b]
        cross: Dict[Path, Optional[float]] = {}
        for other, other_paths in members.items():
            if other == directory:
                continue
            scores = [matrix.score(a, b) for a in paths for b in other_paths if a != b]
            cross[other] = max(scores) if scores else None

        reports.append(DirectoryReport(
            directory=directory,
            files=len(paths),
            min_match_pct=min(intra) if intra else None,
            max_mismatch_pct=cross,
        ))
    return reports


def _pct(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f}"


def format_report(reports: Sequence[DirectoryReport]) -> List[str]:
    lines = []
    for report in reports:
        lines.append(f"{report.directory} ({report.files} files)")
        lines.append(f"  MIN_MATCH_PCT: {_pct(report.min_match_pct)}")
        for other, value in report.max_mismatch_pct.items():
            lines.append(f"  MAX_MISMATCH_PCT {other}: {_pct(value)}")
    return lines
