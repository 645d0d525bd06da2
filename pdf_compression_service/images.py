"""
images.py - resize decision and JPEG re-encoding for embedded images.

Every image handed to ``normalize_image`` comes back as a baseline RGB JPEG.
Images larger than the configured box are scaled down first, keeping their
aspect ratio; images that already fit are only re-encoded.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)

MAX_WIDTH = 1000
MAX_HEIGHT = 1000
DEFAULT_JPEG_QUALITY = 75

# Modes Pillow can only resample with NEAREST
_DISCRETE_MODES = ("1", "P", "PA")


@dataclass(frozen=True)
class NormalizerSettings:
    max_width: int = MAX_WIDTH
    max_height: int = MAX_HEIGHT
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    resample: Image.Resampling = Image.Resampling.BILINEAR


@dataclass
class NormalizedImage:
    """JPEG data ready to be embedded as a /DCTDecode image XObject."""
    data: bytes
    width: int
    height: int
    resized: bool

    @property
    def size(self) -> int:
        return len(self.data)


def target_size(
    width: int,
    height: int,
    max_width: int = MAX_WIDTH,
    max_height: int = MAX_HEIGHT,
) -> Optional[Tuple[int, int]]:
    """
    Work out the downscaled size of a ``width`` x ``height`` image.

    Returns None when the image already fits inside ``max_width`` x
    ``max_height``. Landscape images (width > height) are pinned to
    ``max_width``; portrait and square ones to ``max_height``. The other side
    is scaled proportionally and truncated, never rounded.
    """
    if width <= max_width and height <= max_height:
        return None

    if width > height:
        new_width = max_width
        new_height = new_width * height // width
    else:
        new_height = max_height
        new_width = new_height * width // height

    # Extreme strips would truncate to zero
    return max(1, new_width), max(1, new_height)


def _resample(image: Image.Image, size: Tuple[int, int], resample: Image.Resampling) -> Image.Image:
    if image.mode in _DISCRETE_MODES:
        has_alpha = image.mode == "PA" or "transparency" in image.info
        image = image.convert("RGBA" if has_alpha else ("L" if image.mode == "1" else "RGB"))
    return image.resize(size, resample)


def to_rgb(image: Image.Image) -> Image.Image:
    """Fresh 3-channel copy of ``image``; any alpha channel is dropped, not composited."""
    if image.mode == "P" and "transparency" in image.info:
        image = image.convert("RGBA")
    return image.convert("RGB")


def encode_jpeg(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    out = io.BytesIO()
    image.save(out, format="JPEG", quality=quality)
    return out.getvalue()


def normalize_image(image: Image.Image, settings: Optional[NormalizerSettings] = None) -> NormalizedImage:
    """
    Downscale ``image`` if it exceeds the settings' box, flatten it to RGB and
    encode it as JPEG.

    Transparency is lost and the result is always lossy, even when no resize
    happens. Pillow errors propagate to the caller.
    """
    settings = settings or NormalizerSettings()
    original_width, original_height = image.size

    new_size = target_size(original_width, original_height, settings.max_width, settings.max_height)
    if new_size is not None:
        image = _resample(image, new_size, settings.resample)
        logger.debug(
            f"Resized {original_width}x{original_height} -> {new_size[0]}x{new_size[1]}"
        )

    rgb = to_rgb(image)
    data = encode_jpeg(rgb, quality=settings.jpeg_quality)
    return NormalizedImage(data=data, width=rgb.width, height=rgb.height, resized=new_size is not None)
