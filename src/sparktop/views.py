"""Render-ready views composed from the samplers' published state."""

from dataclasses import dataclass

from sparktop.network import NetworkSampler
from sparktop.processes import ProcessSampler
from sparktop.sensors import SensorSampler
from sparktop.units import format_temperature


@dataclass(slots=True, frozen=True)
class NetworkView:
    """RX/TX series (bytes per second) and title strings for one frame."""

    title: str
    recv_series: list[int]
    sent_series: list[int]
    total_titles: tuple[str, str]
    rate_titles: tuple[str, str]


@dataclass(slots=True, frozen=True)
class ProcessView:
    """Process table header and rows for one frame, with the column that identifies a row."""

    title: str
    header: list[str]
    rows: list[list[str]]
    unique_col: int
    grouped: bool


@dataclass(slots=True, frozen=True)
class SensorView:
    """Formatted temperatures for one frame."""

    title: str
    readings: list[tuple[str, str, bool]]  # (label, formatted value, alert)


def compose_network(sampler: NetworkSampler) -> NetworkView:
    """Copy the network sampler's published state into a view."""
    return NetworkView(
        title=sampler.TITLE,
        recv_series=list(sampler.recv_series),
        sent_series=list(sampler.sent_series),
        total_titles=sampler.total_titles,
        rate_titles=sampler.rate_titles,
    )


def compose_processes(sampler: ProcessSampler) -> ProcessView:
    """Copy the process sampler's header and rows into a view."""
    return ProcessView(
        title=sampler.TITLE,
        header=list(sampler.header),
        rows=[list(row) for row in sampler.rows],
        unique_col=sampler.unique_col,
        grouped=sampler.show_grouped,
    )


def compose_sensors(sampler: SensorSampler) -> SensorView:
    """Format the sensor sampler's readings in its temperature unit."""
    return SensorView(
        title=sampler.TITLE,
        readings=[
            (label, format_temperature(value, sampler.mode), alert) for label, value, alert in sampler.readings()
        ],
    )
