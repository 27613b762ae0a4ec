"""
Data models for Real-Tone skin tone processing.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple, Union
import logging
import math
import numbers

import numpy as np

from .mst_scale import MSTCategory

logger = logging.getLogger(__name__)

# (x, y, width, height) in pixels
Region = Tuple[int, int, int, int]

# Keys used by the camera app's JavaScript settings store
CAMEL_CASE_ALIASES = {
    'adaptiveExposure': 'adaptive_exposure',
    'enhancedWhiteBalance': 'enhanced_white_balance',
    'localToneMapping': 'local_tone_mapping',
    'shadowLift': 'shadow_lift',
    'highlightProtection': 'highlight_protection',
    'warmthMultiplier': 'warmth_multiplier',
    'contrastEnhancement': 'contrast_enhancement',
    'saturationAdjustment': 'saturation_adjustment',
}


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass
class RealToneConfig:
    """
    Tunable Real-Tone processing parameters.

    The master switch only affects enhance_image; each derivation has its
    own feature flag.
    """
    # Master switch
    enabled: bool = True

    # Feature flags
    adaptive_exposure: bool = True
    enhanced_white_balance: bool = True
    local_tone_mapping: bool = True

    # Coefficients
    shadow_lift: float = 0.3            # Base shadow boost
    highlight_protection: float = 0.2   # Highlight compression
    warmth_multiplier: float = 1.15     # Scales white balance warmth
    contrast_enhancement: float = 1.1   # Midtone contrast for texture
    saturation_adjustment: float = 1.05

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def normalize_keys(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Map camelCase keys to field names and drop unknown or None values.
        """
        known = cls.field_names()
        normalized = {}
        for key, value in data.items():
            name = CAMEL_CASE_ALIASES.get(key, key)
            if name not in known:
                logger.warning(f"Ignoring unknown Real-Tone config key: {key}")
                continue
            if value is None:
                continue
            normalized[name] = value
        return normalized

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]] = None) -> 'RealToneConfig':
        """Create config from a (possibly partial) dictionary over the defaults."""
        return cls(**cls.normalize_keys(data or {}))

    def merged(self, partial: Mapping[str, Any]) -> 'RealToneConfig':
        """Return a copy with the supplied fields overlaid."""
        return replace(self, **self.normalize_keys(partial))

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {name: getattr(self, name) for name in self.field_names()}


@dataclass(frozen=True)
class SampledColor:
    """Average color sampled from an image region. Channels are not range-checked."""
    r: float
    g: float
    b: float

    @classmethod
    def coerce(cls, value: Any) -> Optional['SampledColor']:
        """
        Build a sample from a SampledColor, an r/g/b mapping or a 3-sequence.

        Returns None when there is no numeric red channel. Missing green or
        blue channels become NaN, so the sample never gets closer to any
        reference color than the starting candidate.
        """
        if value is None:
            return None
        if isinstance(value, SampledColor):
            return value

        if isinstance(value, Mapping):
            channels = [value.get(short, value.get(long))
                        for short, long in (('r', 'red'), ('g', 'green'), ('b', 'blue'))]
        elif isinstance(value, (list, tuple, np.ndarray)):
            channels = list(value[:3])
            channels += [None] * (3 - len(channels))
        else:
            channels = [getattr(value, name, None) for name in ('r', 'g', 'b')]

        if not _is_number(channels[0]):
            return None

        return cls(*(float(c) if _is_number(c) else math.nan for c in channels))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)

    def to_dict(self) -> Dict[str, float]:
        return {'r': self.r, 'g': self.g, 'b': self.b}


@dataclass
class WhiteBalanceAdjustment:
    """White balance offsets relative to the camera's auto white balance"""
    temperature: float = 0.0
    tint: float = 0.0


@dataclass
class ToneMappingAdjustment:
    """Local tone mapping parameters"""
    shadow_boost: float = 0.0
    highlight_compression: float = 0.0
    midtone_contrast: Optional[float] = None  # Not produced when tone mapping is off


@dataclass
class WhiteBalanceSettings:
    mode: str = "auto"
    temperature: float = 0.0
    tint: float = 0.0


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a moment as ISO-8601 UTC with millisecond precision, e.g. 2026-10-19T08:30:00.000Z"""
    moment = moment or datetime.now(timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


@dataclass
class RealToneMetadata:
    enabled: bool
    mst_category: int
    category_name: Optional[str]
    timestamp: str = field(default_factory=utc_timestamp)


@dataclass
class SettingsBundle:
    """Camera and processing settings recommended for a detected skin tone"""
    # Camera settings
    exposure: float
    iso: int
    white_balance: WhiteBalanceSettings

    # HDR and processing
    hdr: bool

    # Tone mapping
    shadows: float
    highlights: float
    contrast: Optional[float]

    # Color adjustments
    saturation: float
    warmth: float

    real_tone: RealToneMetadata

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a JSON-serialisable dictionary."""
        return {
            'exposure': self.exposure,
            'iso': self.iso,
            'white_balance': {
                'mode': self.white_balance.mode,
                'temperature': self.white_balance.temperature,
                'tint': self.white_balance.tint,
            },
            'hdr': self.hdr,
            'shadows': self.shadows,
            'highlights': self.highlights,
            'contrast': self.contrast,
            'saturation': self.saturation,
            'warmth': self.warmth,
            'real_tone': {
                'enabled': self.real_tone.enabled,
                'mst_category': self.real_tone.mst_category,
                'category_name': self.real_tone.category_name,
                'timestamp': self.real_tone.timestamp,
            },
        }


@dataclass
class SkinToneAnalysis:
    """
    Result of analysing an image for skin tone.

    Confidence is advisory; detected=False means the image could not be
    classified and mst_category holds the scale midpoint.
    """
    detected: bool
    mst_category: MSTCategory
    confidence: float  # 0-1
    rgb_average: Optional[SampledColor] = None
    region: Optional[Union[Region, Dict[str, int]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'detected': self.detected,
            'mst_category': self.mst_category.to_dict(),
            'confidence': self.confidence,
            'rgb_average': self.rgb_average.to_dict() if self.rgb_average else None,
            'region': self.region,
        }
