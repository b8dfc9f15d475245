# --- tmap_lib/imaging.py ---
"""
Image decoding collaborator: the only module that knows about image codecs.
The rest of the library sees RGBA numpy arrays of shape (h, w, 4).
"""
import base64
import logging
from dataclasses import dataclass, field
from io import BytesIO

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from tmap_lib.errors import ProcessingError

log = logging.getLogger("tmap.extract")


@dataclass
class DecodedImage:
    width: int
    height: int
    pixels: np.ndarray = field(repr=False)


def decode(image_bytes: bytes) -> DecodedImage:
    """Decodes PNG/JPEG/WebP/GIF bytes into an RGBA pixel array."""
    if not image_bytes:
        raise ProcessingError("Empty image buffer.")
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            img.load()
            rgba = img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ProcessingError(f"Could not decode image: {e}") from e

    pixels = np.asarray(rgba, dtype=np.uint8)
    height, width = pixels.shape[:2]
    if width == 0 or height == 0:
        raise ProcessingError("Invalid image dimensions")
    log.debug("Decoded %dx%d image (%s).", width, height, rgba.mode)
    return DecodedImage(width=width, height=height, pixels=pixels)


def extract_region(
    image: DecodedImage, x: int, y: int, w: int, h: int, target_size: int
) -> np.ndarray:
    """Crops (x, y, w, h) and resizes it to target_size² with nearest-neighbour."""
    if w <= 0 or h <= 0:
        raise ValueError(f"Empty region {w}x{h} at ({x}, {y})")
    if x < 0 or y < 0 or x + w > image.width or y + h > image.height:
        raise ValueError(
            f"Region ({x}, {y}, {w}, {h}) exceeds image bounds "
            f"{image.width}x{image.height}"
        )
    crop = image.pixels[y : y + h, x : x + w]
    if (w, h) == (target_size, target_size):
        return np.ascontiguousarray(crop)
    resized = cv2.resize(crop, (target_size, target_size), interpolation=cv2.INTER_NEAREST)
    return np.ascontiguousarray(resized)


def resize_nearest(pixels: np.ndarray, size: int) -> np.ndarray:
    if pixels.shape[0] == size and pixels.shape[1] == size:
        return pixels
    return cv2.resize(pixels, (size, size), interpolation=cv2.INTER_NEAREST)


def encode_png(pixels: np.ndarray) -> bytes:
    """Encodes an RGB or RGBA uint8 array to PNG bytes."""
    img = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
    byte_io = BytesIO()
    img.save(byte_io, format="PNG")
    return byte_io.getvalue()


def to_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
