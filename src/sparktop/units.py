"""Unit conversion helpers for sparktop."""

from sparktop.models import TemperatureMode

BYTE_UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]


def convert_bytes(size: int) -> tuple[float, str]:
    """
    Scale a byte count to the largest unit in which it is at least 1.

    Returns the scaled magnitude and its unit suffix (1024 based).
    """
    value = float(size)
    for unit in BYTE_UNITS[:-1]:
        if value < 1024:
            return value, unit
        value = value / 1024
    return value, BYTE_UNITS[-1]


def celsius_to_fahrenheit(celsius: int) -> int:
    """Convert a whole-degree Celsius value to whole-degree Fahrenheit."""
    return int(celsius * 9 / 5 + 32)


def format_temperature(value: int, mode: TemperatureMode) -> str:
    """Render a whole-degree value right-aligned in three columns plus its unit letter."""
    return f"{value:3d}{mode.unit}"
