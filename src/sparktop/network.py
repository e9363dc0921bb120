"""Network throughput sampling for sparktop."""

import logging
import time
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from typing import Protocol

from sparktop.units import convert_bytes

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_INTERFACES = ("tun0",)

# Floor for the gap between two samples, in seconds
MIN_ELAPSED = 1e-6


class CounterSource(Protocol):
    """Anything exposing cumulative (recv, sent) byte counters per interface."""

    def interface_counters(self) -> Mapping[str, tuple[int, int]]: ...


class CounterDeltaEngine:
    """
    Derive per-interval byte deltas from cumulative interface counters.

    The first observation only records a baseline. Later observations
    return the difference against the previous totals, clamped to zero
    when a counter went backwards (interface reset, counter wrap).
    """

    def __init__(self, excluded_interfaces: Iterable[str] = DEFAULT_EXCLUDED_INTERFACES) -> None:
        """Initialize the engine with no baseline."""
        self._excluded = frozenset(excluded_interfaces)
        self._prev_recv = 0
        self._prev_sent = 0
        self._has_baseline = False

    @property
    def excluded_interfaces(self) -> frozenset[str]:
        """Interfaces left out of ``total``."""
        return self._excluded

    @property
    def baseline(self) -> tuple[int, int] | None:
        """Previous (recv, sent) totals, or None before the first observation."""
        if not self._has_baseline:
            return None
        return self._prev_recv, self._prev_sent

    def total(self, counters: Mapping[str, tuple[int, int]]) -> tuple[int, int]:
        """Sum (recv, sent) over all interfaces that are not excluded."""
        recv_total = 0
        sent_total = 0
        for name, (recv, sent) in counters.items():
            if name in self._excluded:
                continue
            recv_total += recv
            sent_total += sent
        return recv_total, sent_total

    def observe(self, recv_total: int, sent_total: int) -> tuple[int, int] | None:
        """
        Record new cumulative totals and return the (recv, sent) deltas.

        Returns None for the first observation after construction.
        """
        deltas = None
        if self._has_baseline:
            deltas = (
                self._clamp("received", recv_total - self._prev_recv),
                self._clamp("sent", sent_total - self._prev_sent),
            )

        # Baseline always advances, even after a clamped delta
        self._prev_recv = recv_total
        self._prev_sent = sent_total
        self._has_baseline = True
        return deltas

    @staticmethod
    def _clamp(direction: str, delta: int) -> int:
        """Return ``delta``, or 0 with a warning when it is negative."""
        if delta < 0:
            logger.warning("negative value for recently %s network data: %d, clamping to 0", direction, delta)
            return 0
        return delta


class NetworkSampler:
    """
    Samples interface counters and publishes RX/TX series and titles.

    Deltas are divided by the measured time since the previous sample, so
    series and rate titles are bytes per second whatever the tick spacing.
    """

    TITLE = " Network Usage "

    def __init__(
        self,
        source: CounterSource,
        excluded_interfaces: Iterable[str] = DEFAULT_EXCLUDED_INTERFACES,
        history: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the NetworkSampler.

        Args:
            source: Provider of cumulative per-interface byte counters.
            excluded_interfaces: Interface names left out of the totals.
            history: Number of recent samples kept per series.
            clock: Monotonic clock read once per sample.
        """
        self._source = source
        self._engine = CounterDeltaEngine(excluded_interfaces)
        self._clock = clock
        self._last_sample: float | None = None
        self.recv_series: deque[int] = deque(maxlen=history)
        self.sent_series: deque[int] = deque(maxlen=history)
        self.recv_total = 0
        self.sent_total = 0
        self.recv_recent = 0
        self.sent_recent = 0
        self.total_titles: tuple[str, str] = ("", "")
        self.rate_titles: tuple[str, str] = ("", "")

    @property
    def engine(self) -> CounterDeltaEngine:
        """The delta engine holding the counter baseline."""
        return self._engine

    def update(self) -> None:
        """Take one sample. Source failures leave the published state as is."""
        try:
            counters = self._source.interface_counters()
            now = self._clock()
        except Exception:
            logger.error("failed to get network activity", exc_info=True)
            return

        recv_total, sent_total = self._engine.total(counters)
        deltas = self._engine.observe(recv_total, sent_total)

        recv_recent, sent_recent = 0, 0
        if deltas is not None and self._last_sample is not None:
            elapsed = max(now - self._last_sample, MIN_ELAPSED)
            recv_recent = int(deltas[0] / elapsed)
            sent_recent = int(deltas[1] / elapsed)
            self.recv_series.append(recv_recent)
            self.sent_series.append(sent_recent)

        self._last_sample = now
        self.recv_total = recv_total
        self.sent_total = sent_total
        self.recv_recent = recv_recent
        self.sent_recent = sent_recent
        self.total_titles = (total_title("RX", recv_total), total_title("TX", sent_total))
        self.rate_titles = (rate_title("RX", recv_recent), rate_title("TX", sent_recent))


def total_title(label: str, total: int) -> str:
    """Title for cumulative bytes, e.g. `` Total RX:   1.5 MB``."""
    value, unit = convert_bytes(total)
    return f" Total {label}: {value:5.1f} {unit}"


def rate_title(label: str, recent: int) -> str:
    """Title for a bytes-per-second rate, e.g. `` RX/s:       2.0 KB/s``."""
    value, unit = convert_bytes(recent)
    return f" {label}/s: {value:9.1f} {unit:>2s}/s"
