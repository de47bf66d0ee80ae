"""Transform pipeline reducing an image file to a perceptual fingerprint."""

import re
import time
from pathlib import Path
from typing import Optional

from ..config import Colorspace, Settings, SquareMode
from ..logging import get_logger
from .canvas import ImageCanvas, ImageProcessingError
from .packing import pack_pixels

logger = get_logger(__name__)

BLUR_SIGMA = 60.0
MIN_BLUR_RADIUS = 3
BLUR_RADIUS_RATIO = 0.015

NORMALIZE_BLACK_CUTOFF = 2.0
NORMALIZE_WHITE_CUTOFF = 1.0

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")


def blur_radius(width: int, height: int) -> int:
    return max(MIN_BLUR_RADIUS, round(BLUR_RADIUS_RATIO * max(width, height)))


def compute_fingerprint(image_path: Path, settings: Settings) -> str:
    """
    Run the fingerprint transforms on a single image file.

    Args:
        image_path: Path to the image file
        settings: Run settings (colorspace, square size and mode, quick resize)

    Returns:
        Lowercase hex fingerprint

    Raises:
        ImageProcessingError: If the image cannot be read or any step fails
    """
    image_path = Path(image_path)
    with ImageCanvas(image_path) as canvas:
        logger.debug(f"Fingerprinting {image_path} ({canvas.width}x{canvas.height})")

        if settings.quick_resize > 0:
            canvas.resample(settings.quick_resize, settings.quick_resize)

        canvas.blur(blur_radius(canvas.width, canvas.height), BLUR_SIGMA)
        canvas.normalize(NORMALIZE_BLACK_CUTOFF, NORMALIZE_WHITE_CUTOFF)
        canvas.equalize()

        if settings.square_mode is SquareMode.PAD:
            delta = abs(canvas.width - canvas.height) // 2
            if canvas.width < canvas.height:
                canvas.add_border(delta, 0)
            elif canvas.height < canvas.width:
                canvas.add_border(0, delta)

        canvas.resample(settings.size, settings.size)
        _quantize(canvas, settings.colorspace)

        if settings.debug_dir is not None:
            export_debug_bitmap(canvas, settings.debug_dir)

        fingerprint = pack_pixels(canvas.channel_values(), settings.colorspace)

    expected = settings.fingerprint_length
    if len(fingerprint) != expected:
        raise ImageProcessingError(
            f"Fingerprint for {image_path} has {len(fingerprint)} hex digits, expected {expected}"
        )
    return fingerprint


def _quantize(canvas: ImageCanvas, colorspace: Colorspace) -> None:
    if colorspace is Colorspace.MONO1:
        canvas.threshold(50.0)
        canvas.quantize(2, "gray")
    elif colorspace is Colorspace.GRAY4:
        canvas.quantize(16, "gray")
    else:
        canvas.quantize(4096, "rgb")


def debug_bitmap_name(source: Path, timestamp_ms: Optional[int] = None) -> str:
    """File name for a debug bitmap: ``<timestamp-ms>_<sanitized-path>.bmp``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{timestamp_ms}_{_UNSAFE_CHARS.sub('_', str(source))}.bmp"


def export_debug_bitmap(canvas: ImageCanvas, debug_dir: Path) -> Path:
    """Write the canvas as a BMP into ``debug_dir`` and return the file path."""
    target = Path(debug_dir) / debug_bitmap_name(canvas.path)
    blob = canvas.to_bitmap()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(blob)
    except OSError as exc:
        raise ImageProcessingError(f"Failed to write debug bitmap {target}: {exc}") from exc
    logger.debug(f"Wrote debug bitmap {target}")
    return target
