"""Image transformation: decode, flatten to RGB, stretch to the target box."""
from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from .errors import ImageDecodeError
from .types_ import validate_dimensions

logger = logging.getLogger(__name__)

# Transparent pixels are composited onto opaque white before JPEG encoding.
FLATTEN_BACKGROUND = (255, 255, 255)

RESAMPLE = Image.Resampling.LANCZOS

_ALPHA_MODES = ("RGBA", "RGBa", "LA", "La", "PA")


def to_rgb(image: Image.Image) -> Image.Image:
    """Return `image` as 24-bit RGB, flattening any alpha onto `FLATTEN_BACKGROUND`."""
    if image.mode == "P" and "transparency" in image.info:
        image = image.convert("RGBA")
    if image.mode in _ALPHA_MODES:
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, FLATTEN_BACKGROUND)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def transform(source_image_path: str | Path, width: int, height: int) -> Image.Image:
    """Decode `source_image_path` and resample it to exactly `width` x `height`.

    The aspect ratio is not preserved: the picture is stretched or squashed to
    fill the whole box.

    Raises:
        InvalidDimensionsError: if width or height is not a positive int.
            Checked before the file is opened.
        ImageDecodeError: if the file is not a decodable raster image.
    """
    validate_dimensions(width, height)

    try:
        with Image.open(source_image_path) as src:
            src.load()
            logger.debug(
                "decoded %s (%s %dx%d)", source_image_path, src.mode, src.width, src.height
            )
            rgb = to_rgb(src)
            return rgb.resize((width, height), RESAMPLE)
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        # UnidentifiedImageError is an OSError
        raise ImageDecodeError(f"Cannot decode image {source_image_path}: {e}") from e
