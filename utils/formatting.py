"""
Formatting utilities.
"""

from typing import Optional


def format_unit_label(unit: Optional[str], block: Optional[str] = None) -> str:
    """
    Format a unit/block pair for messages.

    Args:
        unit: Unit number as typed by the user.
        block: Optional block/tower identifier.

    Returns:
        Label such as "unit 101, block A", or "" when no unit is known.
    """
    if not unit:
        return ""
    label = f"unit {unit.strip()}"
    if block and block.strip():
        label += f", block {block.strip()}"
    return label


def format_distance(distance_km: Optional[float]) -> str:
    """
    Format a distance for display.

    Args:
        distance_km: Distance in kilometres, or None when unknown.

    Returns:
        Metres below 1 km ("850 m"), otherwise one decimal ("1.2 km").
    """
    if distance_km is None:
        return ""
    if distance_km < 1:
        return f"{round(distance_km * 1000):d} m"
    return f"{distance_km:.1f} km"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"
