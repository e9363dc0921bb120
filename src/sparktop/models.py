"""Data models for sparktop."""

from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """
    Immutable record of one process, or of a group of processes.

    In a grouped record ``pid`` holds the number of member processes,
    ``full_command`` is empty and the percentages are sums over the group.
    """

    pid: int
    command_name: str
    full_command: str
    cpu_percent: float  # normalized by logical CPU count once sampled
    mem_percent: float


@dataclass(slots=True, frozen=True)
class SensorReading:
    """Raw temperature sensor entry as enumerated by the metrics source."""

    key: str
    temperature: float  # degrees Celsius


class SortKey(Enum):
    """Sort keys for the process table, valued by their key binding."""

    CPU = "c"
    MEM = "m"
    PID = "p"


class TemperatureMode(Enum):
    """Temperature display unit."""

    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"

    @property
    def unit(self) -> str:
        """Single-letter suffix shown after a temperature."""
        return "F" if self is TemperatureMode.FAHRENHEIT else "C"
