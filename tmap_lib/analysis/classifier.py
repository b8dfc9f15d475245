# --- tmap_lib/analysis/classifier.py ---
import logging
from typing import Tuple

from tmap_lib.schema import RGB, Layer, TileFeatures

log = logging.getLogger("tmap.classify")


def classify_by_color(color: RGB, default: Layer) -> Layer:
    """Colour sub-rule: green and earthy tones are floors, dark or grey ones walls."""
    r, g, b = color.r, color.g, color.b
    brightness = (r + g + b) / 3

    # Green tones (grass, foliage)
    if g > r and g > b and g > 100:
        return Layer.FLOOR
    # Brown/earthy tones
    if r > 100 and g > 80 and b < 80:
        return Layer.FLOOR
    # Dark or grey tones
    if brightness < 60 or (abs(r - g) < 20 and abs(g - b) < 20 and brightness < 120):
        return Layer.WALL
    return default


def classify_tile_by_features(features: TileFeatures) -> Layer:
    """Ordered rule cascade; the first matching rule wins."""
    color = features.dominant_color

    if features.variance < 30 and features.edges < 50:
        return classify_by_color(color, Layer.FLOOR)

    if (
        features.edges > 200
        or features.brightness < 50
        or (color.r < 100 and color.g < 100 and color.b < 100)
    ):
        return Layer.WALL

    if features.variance > 100 or features.color_complexity > 20:
        return Layer.DECORATION

    return classify_by_color(color, Layer.FLOOR)


def calculate_confidence(features: TileFeatures, classification: Layer) -> float:
    confidence = 0.5

    if classification == Layer.FLOOR:
        if features.variance < 20:
            confidence += 0.3
        if 80 < features.brightness < 200:
            confidence += 0.2
    elif classification == Layer.WALL:
        if features.edges > 150:
            confidence += 0.3
        if features.brightness < 80:
            confidence += 0.2
    elif classification == Layer.DECORATION:
        if features.variance > 80:
            confidence += 0.3
        if features.color_complexity > 15:
            confidence += 0.2

    return min(1.0, max(0.1, confidence))


def classify(features: TileFeatures) -> Tuple[Layer, float]:
    classification = classify_tile_by_features(features)
    confidence = calculate_confidence(features, classification)
    log.debug(
        "Classified tile as '%s' (confidence %.2f; brightness=%.1f variance=%.1f "
        "edges=%d colors=%d)",
        classification.value,
        confidence,
        features.brightness,
        features.variance,
        features.edges,
        features.color_complexity,
    )
    return classification, confidence
