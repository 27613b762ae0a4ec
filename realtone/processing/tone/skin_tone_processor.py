"""
Legacy skin tone processor

DEPRECATED: use RealToneProcessor. Kept for callers that still pass a
single 0-255 brightness value instead of an MST category. Its thresholds
are independent of the Monk Skin Tone Scale and must stay that way.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .real_tone_processor import RealToneProcessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LegacyToneTier:
    """Brightness band with its fixed adjustments"""
    name: str
    min_value: float  # Inclusive
    max_value: float  # Exclusive, except the last tier
    exposure_boost: float
    gamma: float


# Ordered darkest first
LEGACY_TONE_TIERS: Tuple[LegacyToneTier, ...] = (
    LegacyToneTier("VERY_DARK", 0, 100, exposure_boost=0.5, gamma=1.3),
    LegacyToneTier("DARK", 100, 150, exposure_boost=0.3, gamma=1.2),
    LegacyToneTier("MEDIUM", 150, 200, exposure_boost=0.1, gamma=1.1),
    LegacyToneTier("LIGHT", 200, 255, exposure_boost=0.0, gamma=1.0),
)

# Brightness below which local contrast is boosted
CONTRAST_BOOST_BELOW = 150
CONTRAST_BOOST = 1.15

# Brightness below which ISO is raised
HIGH_ISO_BELOW = 100

# Extra exposure applied when a face region is known
FACE_REGION_EXPOSURE_FACTOR = 1.1


def legacy_tier(brightness: float) -> LegacyToneTier:
    """Find the tier for a brightness value; values >= 200 are LIGHT"""
    for tier in LEGACY_TONE_TIERS[:-1]:
        if brightness < tier.max_value:
            return tier
    return LEGACY_TONE_TIERS[-1]


class SkinToneProcessor:
    """
    Brightness-threshold enhancement for darker skin tones

    Enhancement itself is delegated to an owned RealToneProcessor.
    """

    def __init__(self, real_tone_processor: Optional[RealToneProcessor] = None):
        warnings.warn(
            "SkinToneProcessor is deprecated, use RealToneProcessor instead",
            DeprecationWarning,
            stacklevel=2,
        )
        self.real_tone_processor = real_tone_processor or RealToneProcessor()

        # Not read by any calculation; kept for older callers that inspect it
        self.config = {
            'exposure_boost': 0.3,    # Exposure compensation for darker skin tones
            'local_contrast': 1.2,    # Enhanced local contrast
            'warmth': 1.1,            # Color temperature adjustment
            'shadow_lift': 0.25,      # Shadow detail enhancement
        }

    async def enhance_image(self, image_ref: Any) -> Any:
        """
        Enhance an image through the Real-Tone pipeline

        Returns:
            Enhanced image reference, or image_ref on failure
        """
        try:
            logger.debug("SkinToneProcessor delegating to RealToneProcessor")
            return await self.real_tone_processor.enhance_image(image_ref)
        except Exception as e:
            logger.error(f"Error enhancing image: {e}")
            return image_ref

    async def detect_skin_tones(self, image_ref: Any) -> List[Dict[str, Any]]:
        """Detected skin tone regions; this processor has no detector and finds none"""
        return []

    def calculate_exposure_compensation(self, base_skin_tone: float,
                                        face_region: Optional[Any] = None) -> float:
        """
        Exposure compensation in EV for a 0-255 skin brightness

        Args:
            base_skin_tone: Detected base skin brightness
            face_region: Face bounding box; when present the boost is raised 10%
        """
        compensation = legacy_tier(base_skin_tone).exposure_boost
        if face_region is not None:
            compensation *= FACE_REGION_EXPOSURE_FACTOR
        return compensation

    def calculate_gamma_adjustment(self, base_skin_tone: float) -> float:
        return legacy_tier(base_skin_tone).gamma

    def calculate_contrast_adjustment(self, base_skin_tone: float) -> float:
        return CONTRAST_BOOST if base_skin_tone < CONTRAST_BOOST_BELOW else 1.0

    def get_recommended_settings(self, skin_tone: float) -> Dict[str, Any]:
        """Recommended camera settings for a skin brightness value"""
        return {
            'exposure': self.calculate_exposure_compensation(skin_tone),
            'gamma': self.calculate_gamma_adjustment(skin_tone),
            'contrast': self.calculate_contrast_adjustment(skin_tone),
            'iso': 400 if skin_tone < HIGH_ISO_BELOW else 200,
            'white_balance': 'auto',
            'hdr': True,  # Preserves detail in both shadows and highlights
        }
