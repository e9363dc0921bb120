"""Verification Test: Chaos Monkey - process churn and kill resilience.

Processes appear and disappear while the process family is sampling, and
the kill action races against processes that already exited. Sampling must
keep ticking and no exception may escape.
"""

import multiprocessing
import random
import time

from sparktop.config import Config
from sparktop.monitor import Dashboard
from sparktop.processes import PsutilProcessSource, kill_processes


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def cleanup(processes):
    for p in processes:
        if p.is_alive():
            p.terminate()
    for p in processes:
        p.join(timeout=1.0)


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_sampling_survives_process_termination(self):
        """
        Test the process family keeps ticking while processes die mid-poll.
        """
        processes = []
        for _ in range(20):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        dashboard = Dashboard(Config(network_interval=0.2, process_interval=0.2, sensor_interval=0.2))
        process_task = next(task for task in dashboard.tasks if task.name == "processes")

        try:
            dashboard.start()

            for p in random.sample(processes, 10):
                p.terminate()
                # Small delay to spread out terminations
                time.sleep(0.05)

            ticks_before = process_task.ticks
            deadline = time.monotonic() + 5.0
            while process_task.ticks < ticks_before + 3 and time.monotonic() < deadline:
                time.sleep(0.05)

            assert process_task.ticks >= ticks_before + 3
            assert dashboard.is_running, "Sampling should still be running after chaos"
            assert len(dashboard.snapshot()["processes"].rows) > 0

        finally:
            dashboard.stop()
            cleanup(processes)

    def test_source_handles_terminated_process(self):
        """
        Test the psutil source skips a process that has just exited.
        """
        p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
        p.start()
        time.sleep(0.1)
        p.terminate()
        p.join(timeout=1.0)

        records = PsutilProcessSource().processes()

        assert isinstance(records, list)
        assert len(records) > 0

    def test_kill_after_exit_is_harmless(self):
        """
        Test killing a PID that exited between sampling and the key press.
        """
        p = multiprocessing.Process(target=dummy_worker, args=(0.1,))
        p.start()
        pid = p.pid
        p.join(timeout=2.0)

        kill_processes(str(pid), grouped=False)

    def test_kill_terminates_by_pid(self):
        """
        Test the kill action terminates a live process by PID.
        """
        p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
        p.start()
        try:
            kill_processes(str(p.pid), grouped=False)
            p.join(timeout=5.0)
            assert not p.is_alive()
        finally:
            cleanup([p])
