"""
RealTone: skin tone aware camera settings

Classifies skin tone on the Monk Skin Tone Scale (MST) and derives exposure,
white balance and local tone mapping adjustments so every complexion is
rendered accurately.
"""

__version__ = "0.1.0"

from .config import load_config
from .processing.tone import (
    MONK_SKIN_TONE_SCALE,
    MSTCategory,
    RealToneConfig,
    RealToneProcessor,
    SampledColor,
    SkinToneProcessor,
)

__all__ = [
    "load_config",
    "MONK_SKIN_TONE_SCALE",
    "MSTCategory",
    "RealToneConfig",
    "RealToneProcessor",
    "SampledColor",
    "SkinToneProcessor",
]
