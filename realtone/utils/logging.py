"""
Logging utilities for RealTone
Provides structured logging and analysis statistics
"""

import json
import logging
import sys
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Optional

import colorlog

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredLogger:
    """Provides structured logging with metadata"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize structured logger

        Args:
            name: Logger name
            metadata: Default metadata to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.metadata = metadata or {}

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with metadata"""
        data = {**self.metadata, **kwargs}
        if data:
            return f"{message} | {json.dumps(data, default=str)}"
        return message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message, **kwargs))


class AnalysisStats:
    """Tracks skin tone analysis results across a batch of images"""

    def __init__(self):
        self.start_time = datetime.now()
        self.total_images = 0
        self.analyzed_images = 0
        self.detected_images = 0
        self.category_counts: Counter = Counter()
        self.confidences = []

    def set_total(self, total: int):
        self.total_images = total

    def add_result(self, detected: bool, mst_id: Optional[int] = None,
                   confidence: Optional[float] = None):
        """
        Add an analysis result

        Args:
            detected: Whether a skin tone was detected
            mst_id: Detected MST category id
            confidence: Detector confidence (0-1)
        """
        self.analyzed_images += 1

        if detected:
            self.detected_images += 1
            if mst_id is not None:
                self.category_counts[mst_id] += 1
            if confidence is not None:
                self.confidences.append(confidence)

    def get_elapsed_time(self) -> float:
        """Get elapsed time in seconds"""
        return (datetime.now() - self.start_time).total_seconds()

    def get_summary(self) -> Dict[str, Any]:
        """Get analysis summary"""
        elapsed = self.get_elapsed_time()

        return {
            'total_images': self.total_images,
            'analyzed_images': self.analyzed_images,
            'detected_images': self.detected_images,
            'detection_rate': (self.detected_images / self.analyzed_images * 100)
                              if self.analyzed_images > 0 else 0,
            'categories': dict(sorted(self.category_counts.items())),
            'average_confidence': (sum(self.confidences) / len(self.confidences))
                                  if self.confidences else 0.0,
            'elapsed_time': elapsed,
        }


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT):
    """
    Setup console logging with optional color support

    Args:
        level: Logging level name
        color: Whether to use colored output when attached to a terminal
        fmt: Log record format
    """
    console_handler = logging.StreamHandler(sys.stderr)

    if color and sys.stderr.isatty():
        formatter = colorlog.ColoredFormatter(
            '%(log_color)s' + fmt + '%(reset)s',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        if getattr(handler, '_realtone_console', False):
            root_logger.removeHandler(handler)
    console_handler._realtone_console = True
    root_logger.addHandler(console_handler)
