"""Verification Test: Chaos Monkey - Random process termination resilience.

Randomly terminate dummy processes while snapshots are being captured and
ensure no psutil NoSuchProcess error escapes SnapshotService.capture().
"""

import multiprocessing
import random
import threading
import time

import pytest

from sysinfo_server.errors import ProbeError
from sysinfo_server.monitor import SnapshotService


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_capture_survives_process_termination(self):
        """
        Test that capture() doesn't fail when processes die mid-enumeration.

        A background thread captures continuously while the main thread kills
        half of the dummy processes.
        """
        processes = []
        for _ in range(50):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        service = SnapshotService()
        stop = threading.Event()
        captured = []
        failures = []

        def capture_loop():
            while not stop.is_set():
                try:
                    captured.append(service.capture(limit=50).processes.total_count)
                except ProbeError as exc:
                    failures.append(exc)

        worker = threading.Thread(target=capture_loop, daemon=True)
        try:
            worker.start()

            for p in random.sample(processes, 25):
                if p.is_alive():
                    p.terminate()
                # Small delay to spread out terminations
                time.sleep(0.05)

            time.sleep(0.5)
        finally:
            stop.set()
            worker.join(timeout=10.0)
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

        if failures:
            pytest.fail(f"capture() raised during chaos: {failures[0]}")
        assert len(captured) >= 3, f"Expected at least 3 snapshots during chaos, got {len(captured)}"
