"""Temperature sensor sampling for sparktop."""

import logging
from collections.abc import Iterable
from typing import Protocol

from sparktop.models import SensorReading, TemperatureMode
from sparktop.source import LIVE_SUFFIX
from sparktop.units import celsius_to_fahrenheit

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 80  # degrees Celsius


class SensorSource(Protocol):
    def sensor_readings(self) -> Iterable[SensorReading]: ...


def is_live_input(reading: SensorReading) -> bool:
    """Whether a reading carries a live, non-zero temperature."""
    return reading.key.endswith(LIVE_SUFFIX) and reading.temperature != 0


def sensor_label(key: str) -> str:
    """Strip the live-input suffix from a sensor key."""
    return key.removesuffix(LIVE_SUFFIX)


class SensorSampler:
    """Keeps the latest temperature per sensor label in the configured unit."""

    TITLE = " Temperatures "

    def __init__(
        self,
        source: SensorSource,
        mode: TemperatureMode = TemperatureMode.CELSIUS,
        threshold: int = DEFAULT_THRESHOLD,
    ) -> None:
        """
        Initialize the SensorSampler.

        Args:
            source: Provider of raw sensor readings in Celsius.
            mode: Unit the published values are expressed in.
            threshold: Alert threshold in Celsius, converted once to ``mode``.
        """
        self._source = source
        self._mode = mode
        self.threshold = threshold
        if mode is TemperatureMode.FAHRENHEIT:
            self.threshold = celsius_to_fahrenheit(threshold)
        self.data: dict[str, int] = {}

    @property
    def mode(self) -> TemperatureMode:
        """Unit the published values are in."""
        return self._mode

    def update(self) -> None:
        """Take one sample. Source failures leave the published data as is."""
        try:
            readings = list(self._source.sensor_readings())
        except Exception:
            logger.error("failed to read temperature sensors", exc_info=True)
            return

        for reading in readings:
            if not is_live_input(reading):
                continue
            value = int(reading.temperature)
            if self._mode is TemperatureMode.FAHRENHEIT:
                value = celsius_to_fahrenheit(value)
            self.data[sensor_label(reading.key)] = value

    def readings(self) -> list[tuple[str, int, bool]]:
        """Label-sorted (label, value, alert) tuples."""
        return [(label, self.data[label], self.data[label] >= self.threshold) for label in sorted(self.data)]
