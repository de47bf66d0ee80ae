from __future__ import annotations

import io
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

BLACK = (0, 0, 0)

# Pillow reads 8-bit channels; the fingerprint math works on a 16-bit scale.
CHANNEL_SCALE = 257


class ImageProcessingError(Exception):
    """Raised when an image cannot be loaded or transformed."""


class ImageCanvas:
    """A single image being transformed in place.

    Every operation replaces the held Pillow image with the result, so a
    canvas carries one file through the fingerprint steps and is then closed.
    """

    def __init__(self, source: Path | str) -> None:
        self._path = Path(source)
        self._image = self._open_image(self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def width(self) -> int:
        return self._require_image().width

    @property
    def height(self) -> int:
        return self._require_image().height

    @property
    def mode(self) -> str:
        return self._require_image().mode

    def as_pil_image(self) -> Image.Image:
        """Return the underlying Pillow image."""
        return self._require_image()

    def resample(self, width: int, height: int) -> None:
        """Point-sample to exactly ``width`` x ``height``."""
        if width <= 0 or height <= 0:
            raise ImageProcessingError(f"Invalid resample target {width}x{height} for {self._path}")
        self._apply(lambda img: img.resize((width, height), Image.NEAREST), "resample")

    def blur(self, radius: int, sigma: float) -> None:
        """Gaussian blur with a kernel truncated at ``radius`` pixels."""
        ksize = 2 * radius + 1

        def _blur(img: Image.Image) -> Image.Image:
            data = cv2.GaussianBlur(
                np.asarray(img),
                (ksize, ksize),
                sigmaX=sigma,
                sigmaY=sigma,
                borderType=cv2.BORDER_REPLICATE,
            )
            return Image.fromarray(data)

        self._apply(_blur, "blur")

    def normalize(self, black_cutoff: float = 2.0, white_cutoff: float = 1.0) -> None:
        """Per-channel linear stretch clipping the darkest and brightest percentiles."""
        self._apply(lambda img: ImageOps.autocontrast(img, cutoff=(black_cutoff, white_cutoff)), "normalize")

    def equalize(self) -> None:
        self._apply(ImageOps.equalize, "equalize")

    def add_border(self, width: int, height: int) -> None:
        """Add a black border, ``width`` pixels left and right, ``height`` top and bottom."""
        self._apply(lambda img: ImageOps.expand(img, border=(width, height), fill=BLACK), "border")

    def threshold(self, percent: float) -> None:
        """Binarize at ``percent`` of the intensity range (grayscale result)."""
        cut = 255 * percent / 100.0
        self._apply(lambda img: img.convert("L").point(lambda v: 255 if v >= cut else 0).convert("RGB"), "threshold")

    def quantize(self, colors: int, colorspace: str) -> None:
        """Reduce to ``colors`` evenly spaced levels in ``"gray"`` or ``"rgb"``."""
        if colorspace == "gray":
            levels = colors
        elif colorspace == "rgb":
            levels = round(colors ** (1.0 / 3.0))
            if levels ** 3 != colors:
                raise ImageProcessingError(f"Cannot split {colors} colors evenly across RGB")
        else:
            raise ImageProcessingError(f"Unsupported quantize colorspace: {colorspace}")
        if levels < 2:
            raise ImageProcessingError(f"Cannot quantize to {colors} colors")

        step = 255 / (levels - 1)
        lut = [int(round(round(v / step) * step)) for v in range(256)]

        def _quantize(img: Image.Image) -> Image.Image:
            if colorspace == "gray":
                img = img.convert("L")
            return img.point(lut * len(img.getbands())).convert("RGB")

        self._apply(_quantize, "quantize")

    def channel_values(self) -> np.ndarray:
        """Pixel channels on the 0-65535 scale, shaped (height, width, 3), row-major."""
        data = np.asarray(self._require_image().convert("RGB"), dtype=np.uint32)
        return data * CHANNEL_SCALE

    def pixel(self, x: int, y: int) -> tuple[int, int, int]:
        r, g, b = self._require_image().convert("RGB").getpixel((x, y))[:3]
        return r * CHANNEL_SCALE, g * CHANNEL_SCALE, b * CHANNEL_SCALE

    def to_bitmap(self) -> bytes:
        """Encode the current image as a BMP blob."""
        buffer = io.BytesIO()
        try:
            self._require_image().save(buffer, format="BMP")
        except (OSError, ValueError) as exc:
            raise ImageProcessingError(f"Failed to encode bitmap for {self._path}") from exc
        return buffer.getvalue()

    def close(self) -> None:
        """Release the held image."""
        if getattr(self, "_image", None) is not None:
            self._image.close()
            self._image = None

    def __enter__(self) -> ImageCanvas:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _require_image(self) -> Image.Image:
        if self._image is None:
            raise ImageProcessingError(f"Image already closed: {self._path}")
        return self._image

    def _apply(self, operation, step: str) -> None:
        image = self._require_image()
        try:
            result = operation(image)
        except ImageProcessingError:
            raise
        except (OSError, ValueError, MemoryError, cv2.error) as exc:
            raise ImageProcessingError(f"{step} failed for {self._path}: {exc}") from exc
        if result is not image:
            image.close()
        self._image = result

    def _open_image(self, path: Path) -> Image.Image:
        if not path.is_file():
            raise ImageProcessingError(f"Image file does not exist: {path}")

        try:
            with Image.open(path) as img:
                img.load()
                # Flatten palette, alpha and 16-bit modes to plain 8-bit RGB.
                return img.convert("RGB")
        except UnidentifiedImageError as exc:
            raise ImageProcessingError(f"Unsupported image format: {path}") from exc
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise ImageProcessingError(f"Failed to read image: {path}") from exc

