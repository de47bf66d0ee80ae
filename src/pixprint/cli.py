import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from .analytics.matrix import compare_directories, format_report
from .cache.store import CacheFormatError
from .config import ConfigurationError, Settings
from .dedup.cluster import format_groups, format_groups_oneline
from .dedup.distance import similarity
from .dedup.model import deduplicate_files, match_files
from .fetch import Fetcher
from .files import expand_paths, read_file_list
from .logging import get_logger, set_package_level

app = typer.Typer(help="pixprint – perceptual image fingerprints and near-duplicate detection")

logger = get_logger(__name__)


@app.callback(invoke_without_command=True)
def main_options(
    ctx: typer.Context,
    colorspace: str = typer.Option("mono1", "--colorspace", "-c", help="Fingerprint colorspace: mono1, gray4 or rgb12"),
    size: str = typer.Option("16", "--size", "-s", help="Side length of the square the image is reduced to"),
    square_mode: str = typer.Option("pad", "--square-mode", help="Aspect handling: pad or stretch"),
    quick_resize: str = typer.Option("0", "--quick-resize", "-q", help="Downscale to QxQ before blurring (0 disables)"),
    threshold: str = typer.Option("90", "--threshold", "-t", help="Minimum similarity percentage for a match"),
    cache: str = typer.Option("read-write", "--cache", help="Cache mode: disabled, read-only or read-write"),
    cache_file: Optional[Path] = typer.Option(None, "--cache-file", help="Use this cache file instead of the per-settings default"),
    debug_dir: Optional[Path] = typer.Option(None, "--debug-dir", help="Write each reduced image as a BMP into this directory"),
    jobs: int = typer.Option(1, "--jobs", "-j", min=1, help="Worker threads used for fingerprinting"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Compute perceptual image fingerprints, compare them and find near-duplicates."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    if verbose:
        set_package_level(logging.DEBUG)

    try:
        settings = Settings.from_options(
            colorspace=colorspace,
            size=size,
            square_mode=square_mode,
            quick_resize=quick_resize,
            threshold=threshold,
            cache_mode=cache,
            cache_file=cache_file,
            debug_dir=debug_dir,
        )
    except ConfigurationError as exc:
        logger.error(f"Invalid configuration: {exc}")
        raise typer.Exit(code=2) from exc

    ctx.obj = {"settings": settings, "jobs": jobs}


def _open_fetcher(ctx: typer.Context) -> Fetcher:
    try:
        return Fetcher.from_settings(ctx.obj["settings"])
    except CacheFormatError as exc:
        logger.error(f"Cache error: {exc}")
        raise typer.Exit(code=1) from exc


def _collect_files(files: Optional[List[Path]], stdin: bool, recursive: bool) -> List[Path]:
    paths = list(files or [])
    if stdin:
        paths.extend(read_file_list(sys.stdin))
    return expand_paths(paths, recursive=recursive)


def _fetch_all(ctx: typer.Context, fetcher: Fetcher, paths: List[Path]):
    try:
        return fetcher.fetch_all(paths, jobs=ctx.obj["jobs"])
    except CacheFormatError as exc:
        logger.error(f"Cache error: {exc}")
        raise typer.Exit(code=1) from exc


@app.command()
def fingerprint(
    ctx: typer.Context,
    files: Optional[List[Path]] = typer.Argument(None, help="Image files or directories"),
    stdin: bool = typer.Option(False, "--stdin", help="Also read a newline-delimited file list from standard input"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Descend into subdirectories"),
) -> None:
    """Print '<fingerprint> <path>' for every file ('-' when it could not be processed)."""
    paths = _collect_files(files, stdin, recursive)
    fetcher = _open_fetcher(ctx)
    for path, fp in _fetch_all(ctx, fetcher, paths):
        typer.echo(f"{fp or '-'} {path}")


@app.command()
def compare(
    ctx: typer.Context,
    first: Path = typer.Argument(..., help="First image"),
    second: Path = typer.Argument(..., help="Second image"),
) -> None:
    """Print the similarity percentage of two images."""
    settings: Settings = ctx.obj["settings"]
    fetcher = _open_fetcher(ctx)
    (_, fp_a), (_, fp_b) = _fetch_all(ctx, fetcher, [first, second])
    typer.echo(f"{similarity(fp_a, fp_b, settings.colorspace):.2f}")


@app.command()
def match(
    ctx: typer.Context,
    reference: Path = typer.Argument(..., help="Reference image"),
    files: Optional[List[Path]] = typer.Argument(None, help="Candidate images or directories"),
    stdin: bool = typer.Option(False, "--stdin", help="Also read a newline-delimited file list from standard input"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Descend into subdirectories"),
) -> None:
    """Print '<similarity> <path>' for candidates matching the reference image."""
    settings: Settings = ctx.obj["settings"]
    paths = _collect_files(files, stdin, recursive)
    fetcher = _open_fetcher(ctx)
    [(_, reference_fp)] = _fetch_all(ctx, fetcher, [reference])
    candidates = _fetch_all(ctx, fetcher, paths)
    for path, score in match_files(reference_fp, candidates, settings.threshold, settings.colorspace):
        typer.echo(f"{score:.2f} {path}")


def _find_dupes(ctx: typer.Context, files, stdin: bool, recursive: bool, oneline: bool) -> None:
    paths = _collect_files(files, stdin, recursive)
    fetcher = _open_fetcher(ctx)
    try:
        groups = deduplicate_files(paths, fetcher, jobs=ctx.obj["jobs"])
    except CacheFormatError as exc:
        logger.error(f"Cache error: {exc}")
        raise typer.Exit(code=1) from exc
    lines = format_groups_oneline(groups) if oneline else format_groups(groups)
    for line in lines:
        typer.echo(line)


@app.command("find-dupes")
def find_dupes(
    ctx: typer.Context,
    files: Optional[List[Path]] = typer.Argument(None, help="Image files or directories"),
    stdin: bool = typer.Option(False, "--stdin", help="Also read a newline-delimited file list from standard input"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Descend into subdirectories"),
) -> None:
    """Print duplicate groups as 'index:path' lines."""
    _find_dupes(ctx, files, stdin, recursive, oneline=False)


@app.command("find-dupes-oneline")
def find_dupes_oneline(
    ctx: typer.Context,
    files: Optional[List[Path]] = typer.Argument(None, help="Image files or directories"),
    stdin: bool = typer.Option(False, "--stdin", help="Also read a newline-delimited file list from standard input"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Descend into subdirectories"),
) -> None:
    """Print each duplicate group on one space-separated line."""
    _find_dupes(ctx, files, stdin, recursive, oneline=True)


@app.command("test")
def test_directories(
    ctx: typer.Context,
    directories: List[Path] = typer.Argument(..., exists=True, file_okay=False, dir_okay=True, help="Directories of images expected to match each other"),
) -> None:
    """Report intra-directory minimum and cross-directory maximum similarities."""
    fetcher = _open_fetcher(ctx)
    try:
        reports = compare_directories(directories, fetcher, jobs=ctx.obj["jobs"])
    except CacheFormatError as exc:
        logger.error(f"Cache error: {exc}")
        raise typer.Exit(code=1) from exc
    for line in format_report(reports):
        typer.echo(line)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
