from pathlib import Path
from typing import Iterable, List, TextIO

from .logging import get_logger

logger = get_logger(__name__)


def read_file_list(stream: TextIO) -> List[Path]:
    """Read a newline-delimited list of paths, skipping blank lines."""
    paths = []
    for line in stream:
        entry = line.rstrip("\r\n")
        if entry.strip():
            paths.append(Path(entry))
    return paths


def expand_paths(paths: Iterable[Path], recursive: bool = False) -> List[Path]:
    """Keep files as given and replace directories with the files they contain."""
    expanded: List[Path] = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            pattern = "**/*" if recursive else "*"
            children = sorted(p for p in path.glob(pattern) if p.is_file())
            logger.debug(f"Expanded {path} to {len(children)} files")
            expanded.extend(children)
        else:
            expanded.append(path)
    return expanded
