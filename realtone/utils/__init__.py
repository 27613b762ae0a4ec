"""
RealTone utilities module.
"""

from .logging import StructuredLogger, AnalysisStats, setup_console_logging

__all__ = [
    'StructuredLogger',
    'AnalysisStats',
    'setup_console_logging',
]
