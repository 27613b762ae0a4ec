"""
Monk Skin Tone Scale (MST) reference data for RealTone.

The scale has 10 shades, from 1 (lightest) to 10 (deepest). Each shade
carries a canonical RGB appearance and the exposure boost (EV) applied
when a subject is classified into it.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class MSTCategory:
    """A single Monk Skin Tone Scale shade"""
    id: int
    name: str
    rgb: Tuple[int, int, int]  # Canonical appearance (0-255 per channel)
    exposure_boost: float  # EV, non-decreasing with id

    @property
    def label(self) -> str:
        return f"MST-{self.id}"

    def to_dict(self) -> Dict:
        """Convert category to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'rgb': list(self.rgb),
            'exposure_boost': self.exposure_boost,
        }


# Ordered lightest to deepest; classification relies on this order for ties
MONK_SKIN_TONE_SCALE: Tuple[MSTCategory, ...] = (
    MSTCategory(1, "Very Light", (250, 240, 230), -0.1),
    MSTCategory(2, "Light", (245, 230, 215), 0.0),
    MSTCategory(3, "Light Medium", (235, 215, 195), 0.1),
    MSTCategory(4, "Medium", (220, 195, 165), 0.2),
    MSTCategory(5, "Medium Tan", (200, 170, 140), 0.25),
    MSTCategory(6, "Tan", (175, 140, 110), 0.3),
    MSTCategory(7, "Deep Tan", (150, 115, 85), 0.35),
    MSTCategory(8, "Dark", (120, 85, 60), 0.4),
    MSTCategory(9, "Very Dark", (90, 60, 40), 0.5),
    MSTCategory(10, "Deepest", (60, 40, 30), 0.6),
)

_CATEGORIES_BY_ID: Dict[int, MSTCategory] = {c.id: c for c in MONK_SKIN_TONE_SCALE}

DEFAULT_MST_ID = 5
DEFAULT_CATEGORY = _CATEGORIES_BY_ID[DEFAULT_MST_ID]


def get_category(mst_id: int) -> Optional[MSTCategory]:
    """
    Look up an MST category by id

    Args:
        mst_id: Scale position (1-10)

    Returns:
        The matching category, or None for ids outside the scale
    """
    try:
        return _CATEGORIES_BY_ID.get(mst_id)
    except TypeError:
        # Unhashable ids never match
        return None
