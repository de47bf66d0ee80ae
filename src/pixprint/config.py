from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class ConfigurationError(ValueError):
    """Raised when run settings are missing or malformed."""


class Colorspace(str, Enum):
    MONO1 = "mono1"
    GRAY4 = "gray4"
    RGB12 = "rgb12"


class SquareMode(str, Enum):
    PAD = "pad"
    STRETCH = "stretch"


class CacheMode(str, Enum):
    DISABLED = "disabled"
    READ_ONLY = "read-only"
    READ_WRITE = "read-write"


def default_cache_dir() -> Path:
    override = os.getenv("PIXPRINT_CACHE_DIR")
    if override:
        return Path(override)
    return Path.home() / ".cache" / "pixprint"


def fingerprint_length(colorspace: Colorspace, size: int) -> int:
    """Number of hex characters a fingerprint has for ``colorspace`` at ``size``."""
    pixels = size * size
    if colorspace is Colorspace.MONO1:
        return math.ceil(pixels / 4)
    if colorspace is Colorspace.GRAY4:
        return pixels
    return 3 * pixels


def _parse_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(f"Unknown {label} {value!r} (expected one of: {choices})") from exc


@dataclass(frozen=True)
class Settings:
    colorspace: Colorspace = Colorspace.MONO1
    size: int = 16
    square_mode: SquareMode = SquareMode.PAD
    quick_resize: int = 0
    threshold: float = 90.0
    cache_mode: CacheMode = CacheMode.READ_WRITE
    cache_file: Optional[Path] = None
    cache_dir: Path = field(default_factory=default_cache_dir)
    debug_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        # Enum coercion keeps the dataclass usable with plain strings.
        object.__setattr__(self, "colorspace", _parse_enum(Colorspace, self.colorspace, "colorspace"))
        object.__setattr__(self, "square_mode", _parse_enum(SquareMode, self.square_mode, "square mode"))
        object.__setattr__(self, "cache_mode", _parse_enum(CacheMode, self.cache_mode, "cache mode"))

        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size <= 0:
            raise ConfigurationError(f"Square size must be a positive integer, got {self.size!r}")
        if isinstance(self.quick_resize, bool) or not isinstance(self.quick_resize, int) or self.quick_resize < 0:
            raise ConfigurationError(f"Quick-resize dimension must be a non-negative integer, got {self.quick_resize!r}")
        try:
            threshold = float(self.threshold)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Threshold must be a number, got {self.threshold!r}") from exc
        if math.isnan(threshold) or not 0.0 <= threshold <= 100.0:
            raise ConfigurationError(f"Threshold must be between 0 and 100, got {self.threshold!r}")
        object.__setattr__(self, "threshold", threshold)

    @classmethod
    def from_options(
        cls,
        colorspace: str = "mono1",
        size: str | int = 16,
        square_mode: str = "pad",
        quick_resize: str | int = 0,
        threshold: str | float = 90.0,
        cache_mode: str = "read-write",
        cache_file: Optional[Path] = None,
        cache_dir: Optional[Path] = None,
        debug_dir: Optional[Path] = None,
    ) -> Settings:
        """Build settings from raw command-line values."""
        return cls(
            colorspace=colorspace,
            size=_parse_int(size, "square size"),
            square_mode=square_mode,
            quick_resize=_parse_int(quick_resize, "quick-resize dimension"),
            threshold=threshold,
            cache_mode=cache_mode,
            cache_file=cache_file,
            cache_dir=cache_dir if cache_dir is not None else default_cache_dir(),
            debug_dir=debug_dir,
        )

    @property
    def fingerprint_length(self) -> int:
        return fingerprint_length(self.colorspace, self.size)


def _parse_int(value, label: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigurationError(f"Malformed {label}: {value!r}") from exc
