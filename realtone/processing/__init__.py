"""
Processing modules for RealTone

Skin tone aware settings derivation and the appliers that consume it.
"""

from .tone import RealToneProcessor, SkinToneProcessor
from .appliers import SettingsApplier, XMPSettingsApplier

__all__ = [
    "RealToneProcessor",
    "SkinToneProcessor",
    "SettingsApplier",
    "XMPSettingsApplier",
]
