"""
Utility modules for the access core.
"""

from .formatting import format_distance, format_percent, format_unit_label
from .config import Config

__all__ = ["format_distance", "format_percent", "format_unit_label", "Config"]
