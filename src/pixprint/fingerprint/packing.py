"""Pack extracted pixel channels into a hex fingerprint."""

import numpy as np

from ..config import Colorspace

# 65536 / 16: one 4-bit step on the 16-bit channel scale.
NIBBLE_STEP = 4096


def pixel_bits(channels: np.ndarray, colorspace: Colorspace) -> np.ndarray:
    """
    Flatten (height, width, 3) channels on the 0-65535 scale into a bit array.

    Pixels are visited row-major. rgb12 emits R, G and B as three 4-bit groups
    per pixel, gray4 emits the red channel as one 4-bit group and mono1 emits
    a single bit that is set when the red channel is non-zero.
    """
    if channels.ndim != 3 or channels.shape[2] < 3:
        raise ValueError(f"Expected (height, width, 3) channels, got shape {channels.shape}")

    if colorspace is Colorspace.MONO1:
        return (channels[:, :, 0] > 0).astype(np.uint8).reshape(-1)

    if colorspace is Colorspace.GRAY4:
        nibbles = channels[:, :, 0] // NIBBLE_STEP
    else:
        nibbles = channels[:, :, :3] // NIBBLE_STEP
    nibbles = nibbles.astype(np.uint8).reshape(-1, 1)
    # Most significant bit first within each nibble.
    return np.unpackbits(nibbles, axis=1)[:, 4:].reshape(-1)


def bits_to_hex(bits: np.ndarray) -> str:
    """Encode a 0/1 array as lowercase hex, zero-padding the tail to a whole nibble."""
    bits = np.asarray(bits, dtype=np.uint8).reshape(-1)
    remainder = bits.size % 4
    if remainder:
        bits = np.concatenate([bits, np.zeros(4 - remainder, dtype=np.uint8)])
    if bits.size == 0:
        return ""
    nibbles = bits.reshape(-1, 4) @ np.array([8, 4, 2, 1], dtype=np.uint8)
    return "".join("0123456789abcdef"[value] for value in nibbles)


def pack_pixels(channels: np.ndarray, colorspace: Colorspace) -> str:
    return bits_to_hex(pixel_bits(channels, colorspace))
