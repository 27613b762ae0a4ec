"""
Skin tone analysis for RealTone
"""

from .detectors import (
    SkinToneDetector,
    PlaceholderSkinToneDetector,
    RegionAverageDetector,
    create_detector,
)

__all__ = [
    "SkinToneDetector",
    "PlaceholderSkinToneDetector",
    "RegionAverageDetector",
    "create_detector",
]
