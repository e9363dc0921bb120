"""Sampling scheduler for sparktop."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from sparktop.config import Config
from sparktop.gate import ReadWriteGate
from sparktop.models import SortKey
from sparktop.network import NetworkSampler
from sparktop.processes import ProcessSampler, ProcessSource, PsListingSource, PsutilProcessSource
from sparktop.sensors import SensorSampler
from sparktop.source import PsutilSource
from sparktop.views import compose_network, compose_processes, compose_sensors

logger = logging.getLogger(__name__)


class Sampler(Protocol):
    """Anything that samples a source and publishes the result in place."""

    def update(self) -> None: ...


class PeriodicTask:
    """
    Runs one metric family's sampler on its own daemon thread.

    Every tick holds the gate's write side for the whole sample, so ticks of
    one family never overlap and the renderer never sees a partial update.
    A tick that overruns its interval delays the next one.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], None],
        gate: ReadWriteGate,
    ) -> None:
        """
        Initialize the PeriodicTask.

        Args:
            name: Metric family name, also used for the thread name.
            interval: Seconds between ticks.
            callback: Sample, transform and publish in one call.
            gate: Gate shared with the renderer.
        """
        self._name = name
        self._interval = interval
        self._callback = callback
        self._gate = gate
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._ticks = 0

    @property
    def name(self) -> str:
        """Metric family name."""
        return self._name

    @property
    def interval(self) -> float:
        """Seconds between ticks."""
        return self._interval

    @property
    def ticks(self) -> int:
        """Number of completed ticks."""
        return self._ticks

    @property
    def is_running(self) -> bool:
        """Check if the task thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the task thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=f"sampler-{self._name}",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the task thread.

        Args:
            timeout: How long to wait for the thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def tick(self) -> None:
        """Run the callback once while holding the gate exclusively."""
        try:
            with self._gate.write():
                self._callback()
        except Exception:
            logger.error("%s sampler failed, skipping tick", self._name, exc_info=True)
        self._ticks += 1

    def _run(self) -> None:
        """Thread body: tick on schedule until stopped."""
        next_tick = time.monotonic() + self._interval
        while not self._stop_event.wait(timeout=max(0.0, next_tick - time.monotonic())):
            self.tick()
            next_tick = max(next_tick + self._interval, time.monotonic())


@dataclass
class Panel:
    """A metric family: its sampler, its cadence and how its state is composed for display."""

    name: str
    sampler: Sampler
    interval: float
    compose: Callable[[Any], Any]

    def view(self) -> Any:
        """Compose the sampler's published state. Callers hold the read side."""
        return self.compose(self.sampler)


def build_process_source(backend: str) -> ProcessSource:
    """Pick the process source for a configured backend name (``psutil`` or ``ps``)."""
    if backend == "ps":
        return PsListingSource()
    return PsutilProcessSource()


class Dashboard:
    """
    Owns the gate, the three metric panels and their periodic tasks.

    The renderer reads through ``snapshot()``; every mutation of published
    state, from a tick or from a user action, goes through the write side.
    """

    def __init__(
        self,
        config: Config | None = None,
        source: PsutilSource | None = None,
        process_source: ProcessSource | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the Dashboard and take one synchronous sample per family.

        Args:
            config: Intervals, filters and view defaults.
            source: OS-metrics source for network counters and sensors.
            process_source: Process listing source; defaults to the configured backend.
            clock: Monotonic clock used to turn counter deltas into rates.
        """
        self._config = config or Config()
        self.gate = ReadWriteGate()
        source = source or PsutilSource()
        process_source = process_source or build_process_source(self._config.process_backend)

        try:
            cpu_count = source.cpu_count()
        except Exception:
            logger.error("failed to get CPU count", exc_info=True)
            cpu_count = 1

        self.network = NetworkSampler(
            source, self._config.excluded_interfaces, self._config.history, clock=clock
        )
        self.processes = ProcessSampler(process_source, cpu_count, grouped=self._config.grouped)
        self.sensors = SensorSampler(
            source,
            self._config.temperature_mode,
            self._config.temperature_threshold,
        )

        self.panels: dict[str, Panel] = {
            "network": Panel("network", self.network, self._config.network_interval, compose_network),
            "processes": Panel("processes", self.processes, self._config.process_interval, compose_processes),
            "sensors": Panel("sensors", self.sensors, self._config.sensor_interval, compose_sensors),
        }
        self._tasks = [
            PeriodicTask(panel.name, panel.interval, panel.sampler.update, self.gate)
            for panel in self.panels.values()
        ]

        # Initial sample so the first frame is not empty
        for task in self._tasks:
            task.tick()

    @property
    def config(self) -> Config:
        """Settings the dashboard was built from."""
        return self._config

    @property
    def tasks(self) -> list[PeriodicTask]:
        """One periodic task per metric family."""
        return list(self._tasks)

    @property
    def is_running(self) -> bool:
        """Check if any family is still sampling."""
        return any(task.is_running for task in self._tasks)

    def start(self) -> None:
        """Start every family's task thread."""
        for task in self._tasks:
            task.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop every task thread and wait for it to finish."""
        for task in self._tasks:
            task.stop(timeout=timeout)

    def snapshot(self) -> dict[str, Any]:
        """Compose every panel's view under a single read."""
        with self.gate.read():
            return {name: panel.view() for name, panel in self.panels.items()}

    def change_sort(self, key: SortKey) -> bool:
        """Switch the process sort key under the write side."""
        with self.gate.write():
            return self.processes.change_sort(key)

    def toggle_grouping(self) -> bool:
        """Flip process grouping under the write side. Returns the new mode."""
        with self.gate.write():
            return self.processes.toggle_grouping()

    def kill(self, target: str, grouped: bool) -> None:
        """
        Terminate the process or command group the user selected.

        ``target`` and ``grouped`` come from the row as it was drawn, so a
        re-sort between the frame and the key press cannot change what is
        killed. Termination touches no published state and needs no gate.
        """
        self.processes.kill(target, grouped)
