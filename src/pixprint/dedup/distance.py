"""Distance and similarity metrics for fingerprint comparison."""

from typing import Optional

import imagehash
import numpy as np

from ..config import Colorspace

MAX_CHANNEL_VALUE = 15


def _to_image_hash(fingerprint: str) -> imagehash.ImageHash:
    """Wrap a hex fingerprint as an ImageHash over its bit string."""
    padded = fingerprint + "0" * (len(fingerprint) % 2)
    try:
        packed = np.frombuffer(bytes.fromhex(padded), dtype=np.uint8)
    except ValueError as exc:
        raise ValueError(f"Not a hex fingerprint: {fingerprint!r}") from exc
    bits = np.unpackbits(packed)[: 4 * len(fingerprint)]
    return imagehash.ImageHash(bits.astype(bool))


def _channel_values(fingerprint: str) -> np.ndarray:
    try:
        return np.array([int(char, 16) for char in fingerprint], dtype=np.int32)
    except ValueError as exc:
        raise ValueError(f"Not a hex fingerprint: {fingerprint!r}") from exc


def _check_lengths(a: str, b: str) -> None:
    if len(a) != len(b):
        raise ValueError(
            f"Fingerprints differ in length ({len(a)} vs {len(b)}); "
            "they were computed with different settings"
        )


def hamming_distance(a: str, b: str) -> int:
    """
    Number of differing bits between two equal-length hex fingerprints.

    Args:
        a: First fingerprint
        b: Second fingerprint

    Returns:
        Hamming distance over the 4 * len(a) bits
    """
    _check_lengths(a, b)
    if not a:
        return 0
    return int(_to_image_hash(a) - _to_image_hash(b))


def channel_distance(a: str, b: str) -> int:
    """Sum of absolute per-nibble differences, each nibble read as a 0-15 channel sample."""
    _check_lengths(a, b)
    if not a:
        return 0
    return int(np.abs(_channel_values(a) - _channel_values(b)).sum())


def similarity(a: Optional[str], b: Optional[str], colorspace: Colorspace) -> float:
    """
    Similarity percentage between two fingerprints of the same settings.

    mono1 fingerprints are compared bit by bit; gray4 and rgb12 fingerprints
    nibble by nibble. A missing fingerprint on either side scores 0.

    Raises:
        ValueError: If the fingerprints differ in length or are not hex
    """
    if a is None or b is None:
        return 0.0

    if colorspace is Colorspace.MONO1:
        distance = hamming_distance(a, b)
        max_diff = 4 * len(a)
    else:
        distance = channel_distance(a, b)
        max_diff = MAX_CHANNEL_VALUE * len(a)

    if max_diff == 0:
        return 100.0
    return 100.0 * (1.0 - distance / max_diff)
