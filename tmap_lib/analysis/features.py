# --- tmap_lib/analysis/features.py ---
import logging
from typing import Union

import numpy as np

from tmap_lib.constants import EDGE_THRESHOLD, MEANINGFUL_MIN_ALPHA, MEANINGFUL_MIN_CONTRAST
from tmap_lib.schema import RGB, TileFeatures

log = logging.getLogger("tmap.classify")

PixelBuffer = Union[bytes, bytearray, np.ndarray]


def _as_pixel_rows(pixels: PixelBuffer) -> np.ndarray:
    """
    Flattens a pixel buffer to an (N, C) array in row-major scan order.

    Raw byte buffers are read as RGBA (4 bytes per pixel); arrays keep their
    own channel count (3 or 4).
    """
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        arr = np.frombuffer(pixels, dtype=np.uint8).reshape(-1, 4)
    else:
        arr = np.asarray(pixels)
        if arr.ndim == 3:
            arr = arr.reshape(-1, arr.shape[2])
        elif arr.ndim == 1:
            arr = arr.reshape(-1, 4)
    if arr.ndim != 2 or arr.shape[1] < 3:
        raise ValueError(f"Unsupported pixel buffer shape: {np.shape(pixels)}")
    if arr.shape[0] == 0:
        raise ValueError("Pixel buffer is empty.")
    return arr


def _alpha(rows: np.ndarray) -> np.ndarray:
    if rows.shape[1] > 3:
        return rows[:, 3].astype(np.float64)
    return np.full(rows.shape[0], 255.0)


def extract_features(pixels: PixelBuffer) -> TileFeatures:
    """
    Computes the statistics the classifier works from.

    - dominant_color is the per-channel mean.
    - variance is the mean over pixels of the summed absolute per-channel
      deviation from the channel means.
    - edges counts pixels whose brightness differs by more than
      EDGE_THRESHOLD from the previous pixel in flat scan order, so the
      step from the end of one row to the start of the next counts too.
    - color_complexity is the number of distinct (r, g, b) triples.
    """
    rows = _as_pixel_rows(pixels)
    rgb = rows[:, :3].astype(np.float64)

    means = rgb.mean(axis=0)
    pixel_brightness = rgb.sum(axis=1) / 3
    variance = np.abs(rgb - means).sum(axis=1).mean()
    edges = np.count_nonzero(np.abs(np.diff(pixel_brightness)) > EDGE_THRESHOLD)

    features = TileFeatures(
        dominant_color=RGB(float(means[0]), float(means[1]), float(means[2])),
        brightness=float(pixel_brightness.mean()),
        variance=float(variance),
        edges=int(edges),
        has_transparency=bool((_alpha(rows) < 255).any()),
        color_complexity=int(len(np.unique(rows[:, :3], axis=0))),
    )
    log.debug("Extracted features: %s", features)
    return features


def is_meaningful_tile(pixels: PixelBuffer) -> bool:
    """A tile is kept when it is mostly opaque and not flat mid-grey."""
    rows = _as_pixel_rows(pixels)
    gray = rows[:, :3].astype(np.float64).sum(axis=1) / 3
    avg_alpha = _alpha(rows).mean()
    avg_contrast = np.abs(gray - 128).mean()
    return bool(avg_alpha > MEANINGFUL_MIN_ALPHA and avg_contrast > MEANINGFUL_MIN_CONTRAST)
