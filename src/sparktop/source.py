"""OS metrics source backed by psutil."""

import psutil

from sparktop.models import SensorReading

LIVE_SUFFIX = "_input"


class PsutilSource:
    """
    Thin adapter over psutil exposing the raw data the samplers consume.

    Errors raised by psutil are propagated unchanged; the samplers decide
    how to degrade.
    """

    def interface_counters(self) -> dict[str, tuple[int, int]]:
        """Cumulative (bytes_recv, bytes_sent) per network interface."""
        counters = psutil.net_io_counters(pernic=True)
        return {name: (nic.bytes_recv, nic.bytes_sent) for name, nic in counters.items()}

    def sensor_readings(self) -> list[SensorReading]:
        """
        Flatten psutil temperature sensors into keyed readings.

        Every sensor yields a ``<chip>_<label>_input`` entry for its current
        value, plus ``_max`` and ``_crit`` entries for its thresholds when the
        hardware reports them.
        """
        sensors_temperatures = getattr(psutil, "sensors_temperatures", None)
        if sensors_temperatures is None:
            return []

        readings: list[SensorReading] = []
        for chip, entries in sensors_temperatures().items():
            for index, entry in enumerate(entries):
                label = entry.label or str(index)
                base = f"{chip}_{label}".replace(" ", "_")
                readings.append(SensorReading(key=base + LIVE_SUFFIX, temperature=entry.current or 0.0))
                if entry.high is not None:
                    readings.append(SensorReading(key=base + "_max", temperature=entry.high))
                if entry.critical is not None:
                    readings.append(SensorReading(key=base + "_crit", temperature=entry.critical))
        return readings

    def cpu_count(self) -> int:
        """Number of logical CPUs, never less than 1."""
        return psutil.cpu_count(logical=True) or 1
