"""
Real-Tone processor: skin tone classification and adaptive camera settings

Classifies a sampled skin color on the Monk Skin Tone Scale (MST) and
derives exposure, white balance and local tone mapping adjustments from
the detected shade:
- Adaptive exposure compensation so deeper tones are not underexposed
- Warmer white balance to avoid grey/ashy rendering of deeper tones
- Shadow lift and highlight protection to keep texture and detail
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from ...analysis.detectors import (
    PlaceholderSkinToneDetector, RegionLike, SkinToneDetector, create_detector, undetected
)
from ..appliers import SettingsApplier, XMPSettingsApplier
from .classification import classify_sample
from .models import (
    RealToneConfig, RealToneMetadata, SettingsBundle, SkinToneAnalysis,
    ToneMappingAdjustment, WhiteBalanceAdjustment, WhiteBalanceSettings
)
from .mst_scale import DEFAULT_MST_ID, MSTCategory, get_category

logger = logging.getLogger(__name__)

# Exposure boost for ids outside the scale
UNKNOWN_CATEGORY_EXPOSURE = 0.3

# Maximum white balance warmth at MST-10, before the warmth multiplier
MAX_WARMTH_BOOST = 0.2

# Slight green tint reduction applied whenever white balance is enhanced
WHITE_BALANCE_TINT = 0.05

# Shades at or above this id get extra sensor gain headroom
HIGH_ISO_MIN_MST = 7
HIGH_ISO = 400
BASE_ISO = 200


class RealToneProcessor:
    """
    Skin tone aware exposure, white balance and tone mapping

    Features:
    - 10-shade Monk Skin Tone Scale classification
    - Per-feature switches for each derivation
    - Pluggable detector (image -> skin tone) and applier (settings -> image)
    """

    def __init__(self,
                 config: Optional[Union[RealToneConfig, Mapping[str, Any]]] = None,
                 detector: Optional[SkinToneDetector] = None,
                 applier: Optional[SettingsApplier] = None):
        """
        Initialize Real-Tone processor

        Args:
            config: RealToneConfig, or a dict of overrides over the defaults
            detector: Skin tone detector used when no tone is supplied
            applier: Collaborator that applies computed settings; when None
                settings are only computed and logged
        """
        if isinstance(config, RealToneConfig):
            self.config = RealToneConfig(**config.to_dict())
        else:
            self.config = RealToneConfig.from_dict(config)

        self.detector = detector or PlaceholderSkinToneDetector()
        self.applier = applier

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'RealToneProcessor':
        """
        Build a processor from a loaded application config

        Args:
            config: Dictionary as returned by realtone.config.load_config
        """
        detector_config = dict(config.get('detector') or {})
        detector_name = detector_config.pop('name', 'placeholder')
        detector = create_detector(detector_name, classifier=classify_sample, **detector_config)

        applier = None
        if (config.get('applier') or {}).get('xmp_sidecar', False):
            applier = XMPSettingsApplier()

        return cls(config.get('real_tone') or {}, detector=detector, applier=applier)

    def detect_skin_tone_category(self, rgb_average: Any) -> MSTCategory:
        """
        Find the MST category closest to an average skin color

        Args:
            rgb_average: SampledColor, {'r', 'g', 'b'} mapping, (r, g, b) or None

        Returns:
            Closest category; MST-5 for missing or incomplete samples
        """
        return classify_sample(rgb_average)

    # Short name used by callers that think in terms of the scale
    classify = detect_skin_tone_category

    def calculate_exposure_compensation(self, mst_id: int) -> float:
        """
        Exposure compensation in EV for a shade

        Deeper shades get more boost to prevent underexposure.
        """
        if not self.config.adaptive_exposure:
            return 0.0

        category = get_category(mst_id)
        return category.exposure_boost if category else UNKNOWN_CATEGORY_EXPOSURE

    def calculate_white_balance(self, mst_id: int) -> WhiteBalanceAdjustment:
        """
        White balance offsets for natural rendering of a shade

        Deeper shades get a warmer temperature, ramping linearly up to
        MAX_WARMTH_BOOST at MST-10.
        """
        if not self.config.enhanced_white_balance:
            return WhiteBalanceAdjustment(temperature=0.0, tint=0.0)

        warmth_boost = (mst_id / 10) * MAX_WARMTH_BOOST
        return WhiteBalanceAdjustment(
            temperature=warmth_boost * self.config.warmth_multiplier,
            tint=WHITE_BALANCE_TINT,
        )

    def calculate_local_tone_mapping(self, mst_id: int) -> ToneMappingAdjustment:
        """
        Shadow and highlight preservation parameters

        Shades above MST-5 get up to 50% more shadow lift at MST-10.
        """
        if not self.config.local_tone_mapping:
            return ToneMappingAdjustment(shadow_boost=0.0, highlight_compression=0.0)

        shadow_multiplier = max(0.0, (mst_id - 5) / 10)
        return ToneMappingAdjustment(
            shadow_boost=self.config.shadow_lift * (1 + shadow_multiplier),
            highlight_compression=self.config.highlight_protection,
            midtone_contrast=self.config.contrast_enhancement,
        )

    def get_optimized_settings(self, skin_tone: Any) -> SettingsBundle:
        """
        Camera and processing settings optimized for a detected skin tone

        Args:
            skin_tone: MSTCategory, or any object/mapping with 'id' and 'name'

        Returns:
            SettingsBundle timestamped with the current time
        """
        mst_id = _attribute(skin_tone, 'id') or DEFAULT_MST_ID
        category_name = _attribute(skin_tone, 'name')

        exposure = self.calculate_exposure_compensation(mst_id)
        white_balance = self.calculate_white_balance(mst_id)
        tone_mapping = self.calculate_local_tone_mapping(mst_id)

        return SettingsBundle(
            exposure=exposure,
            iso=HIGH_ISO if mst_id >= HIGH_ISO_MIN_MST else BASE_ISO,
            white_balance=WhiteBalanceSettings(
                mode="auto",
                temperature=white_balance.temperature,
                tint=white_balance.tint,
            ),
            hdr=True,
            shadows=tone_mapping.shadow_boost,
            highlights=-tone_mapping.highlight_compression,
            contrast=tone_mapping.midtone_contrast,
            saturation=self.config.saturation_adjustment,
            warmth=white_balance.temperature,
            real_tone=RealToneMetadata(
                enabled=self.config.enabled,
                mst_category=mst_id,
                category_name=category_name,
            ),
        )

    async def analyze_skin_tone(self, image_ref: Any,
                                region: Optional[RegionLike] = None) -> SkinToneAnalysis:
        """
        Detect the skin tone of an image or image region

        Args:
            image_ref: Image path/URI or RGB array
            region: Optional (x, y, width, height) or {'x', 'y', 'width', 'height'}

        Returns:
            SkinToneAnalysis; detected=False when the detector failed
        """
        logger.info(f"Analyzing skin tone for {image_ref!r} region={region}")
        try:
            return await self.detector.detect(image_ref, region)
        except Exception as e:
            logger.error(f"Skin tone detector failed: {e}", exc_info=True)
            return undetected(region)

    async def enhance_image(self, image_ref: Any,
                            detected_skin_tone: Optional[Any] = None) -> Any:
        """
        Compute Real-Tone settings for an image and hand them to the applier

        Args:
            image_ref: Image path/URI (or other handle)
            detected_skin_tone: Previously detected category; analysed when None

        Returns:
            The applier's image reference, or image_ref when disabled, when
            no applier is configured, or when anything fails
        """
        if not self.config.enabled:
            return image_ref

        try:
            logger.info("Enhancing image with Real-Tone processing")

            skin_tone = detected_skin_tone
            if not skin_tone:
                analysis = await self.analyze_skin_tone(image_ref)
                skin_tone = analysis.mst_category

            settings = self.get_optimized_settings(skin_tone)

            logger.info(
                f"Real-Tone settings: mst={settings.real_tone.category_name} "
                f"exposure={settings.exposure:+.2f} shadows={settings.shadows:.3f} "
                f"highlights={settings.highlights:.3f}"
            )

            if self.applier is None:
                return image_ref

            return await self.applier.apply(image_ref, settings)

        except Exception as e:
            logger.error(f"Error enhancing image: {e}", exc_info=True)
            return image_ref

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable Real-Tone processing"""
        self.config.enabled = enabled
        logger.info(f"Real-Tone processing {'enabled' if enabled else 'disabled'}")

    def get_config(self) -> RealToneConfig:
        """Get a copy of the current configuration"""
        return RealToneConfig(**self.config.to_dict())

    def update_config(self, new_config: Optional[Mapping[str, Any]] = None, **overrides) -> None:
        """
        Merge configuration updates over the current configuration

        Args:
            new_config: Partial config (snake_case or camelCase keys)
            **overrides: Additional fields as keyword arguments
        """
        updates = {**(new_config or {}), **overrides}
        self.config = self.config.merged(updates)
        logger.info(f"Real-Tone configuration updated: {self.config.to_dict()}")


def _attribute(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)
