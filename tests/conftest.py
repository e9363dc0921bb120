"""Shared fakes for sparktop tests."""

import pytest

from sparktop.models import ProcessRecord, SensorReading


class FakeSource:
    """Scriptable stand-in for the psutil-backed metrics source."""

    def __init__(self, counters=None, sensors=None, cpus=4):
        self.counters = list(counters or [{"eth0": (0, 0)}])
        self.sensors = list(sensors or [])
        self.cpus = cpus
        self.fail = False
        self.calls = 0

    def interface_counters(self):
        self.calls += 1
        if self.fail:
            raise OSError("counters unavailable")
        if len(self.counters) > 1:
            return self.counters.pop(0)
        return self.counters[0]

    def sensor_readings(self):
        if self.fail:
            raise OSError("sensors unavailable")
        return list(self.sensors)

    def cpu_count(self):
        return self.cpus


class FakeClock:
    """Monotonic clock that advances by ``step`` seconds on every read."""

    def __init__(self, step=1.0, start=100.0):
        self.step = step
        self.now = start

    def __call__(self):
        now = self.now
        self.now += self.step
        return now


class FakeProcessSource:
    """Returns a fixed process list, or raises when told to."""

    def __init__(self, records=None):
        self.records = list(records or [])
        self.fail = False

    def processes(self):
        if self.fail:
            raise OSError("ps failed")
        return list(self.records)


def proc(pid, name, cpu=0.0, mem=0.0, command=None):
    return ProcessRecord(
        pid=pid,
        command_name=name,
        full_command=command if command is not None else f"/usr/bin/{name}",
        cpu_percent=cpu,
        mem_percent=mem,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_source():
    return FakeSource(
        counters=[{"eth0": (1000, 500)}, {"eth0": (1500, 900)}],
        sensors=[
            SensorReading("coretemp_Core_0_input", 45.0),
            SensorReading("coretemp_Core_0_max", 100.0),
        ],
    )


@pytest.fixture
def fake_processes():
    return FakeProcessSource(
        [
            proc(10, "bash", cpu=4.0, mem=1.0),
            proc(20, "bash", cpu=8.0, mem=2.0),
            proc(30, "sshd", cpu=2.0, mem=0.5),
        ]
    )
