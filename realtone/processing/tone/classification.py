"""
Nearest-shade classification against the Monk Skin Tone Scale.
"""

import math
from typing import Any

from .mst_scale import DEFAULT_CATEGORY, MONK_SKIN_TONE_SCALE, MSTCategory
from .models import SampledColor


def rgb_distance(category: MSTCategory, sample: SampledColor) -> float:
    """Euclidean distance in RGB space between a reference shade and a sample"""
    return math.sqrt(
        (category.rgb[0] - sample.r) ** 2 +
        (category.rgb[1] - sample.g) ** 2 +
        (category.rgb[2] - sample.b) ** 2
    )


def classify_sample(sample: Any) -> MSTCategory:
    """
    Return the MST category closest to an average skin color.

    Args:
        sample: SampledColor, {'r', 'g', 'b'} mapping or (r, g, b) sequence

    Returns:
        Closest category; MST-5 when the sample has no usable channels.
        Ties keep the lighter (earlier) shade.
    """
    color = SampledColor.coerce(sample)
    if color is None:
        return DEFAULT_CATEGORY

    closest = DEFAULT_CATEGORY
    min_distance = math.inf

    for category in MONK_SKIN_TONE_SCALE:
        distance = rgb_distance(category, color)
        # NaN distances never compare smaller
        if distance < min_distance:
            min_distance = distance
            closest = category

    return closest
