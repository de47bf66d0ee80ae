"""Fingerprint computation: image canvas, transform pipeline and bit packing."""

from .canvas import ImageCanvas, ImageProcessingError
from .packing import bits_to_hex, pack_pixels
from .pipeline import compute_fingerprint

__all__ = [
    "ImageCanvas",
    "ImageProcessingError",
    "bits_to_hex",
    "pack_pixels",
    "compute_fingerprint",
]
