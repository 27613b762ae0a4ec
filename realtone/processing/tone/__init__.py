"""
Tone processing modules for RealTone

Includes the Monk Skin Tone Scale, skin tone classification and the
Real-Tone exposure/white balance/tone mapping processor.
"""

from .mst_scale import MSTCategory, MONK_SKIN_TONE_SCALE, get_category
from .models import (
    RealToneConfig, SampledColor, SettingsBundle, SkinToneAnalysis,
    ToneMappingAdjustment, WhiteBalanceAdjustment
)
from .classification import classify_sample
from .real_tone_processor import RealToneProcessor
from .skin_tone_processor import SkinToneProcessor

__all__ = [
    "MSTCategory",
    "MONK_SKIN_TONE_SCALE",
    "get_category",
    "RealToneConfig",
    "SampledColor",
    "SettingsBundle",
    "SkinToneAnalysis",
    "ToneMappingAdjustment",
    "WhiteBalanceAdjustment",
    "classify_sample",
    "RealToneProcessor",
    "SkinToneProcessor",
]
