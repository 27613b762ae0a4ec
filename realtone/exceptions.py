"""
Exceptions raised by RealTone collaborators.

The processing core itself never raises for bad input; these are raised by
detectors and appliers and recovered by RealToneProcessor.
"""


class RealToneError(Exception):
    """Base exception for RealTone operations."""
    pass


class DetectorError(RealToneError):
    """Raised when a skin tone detector cannot read or analyse an image."""
    pass


class ApplierError(RealToneError):
    """Raised when computed settings cannot be applied to an image."""
    pass
