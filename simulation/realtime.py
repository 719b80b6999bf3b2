"""
Real-Time Driver

Runs a GoBackNSimulator against the wall clock on a background thread.
The thread sleeps until the next scheduled tick or timer expiry, and is
woken early whenever a command schedules something new.
"""

from typing import Optional
import threading
import time
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from simulation.simulator import GoBackNSimulator, SimulatorConfig
from src.arq.window import InvariantViolation
from src.utils.logger import LogCategory


class RealTimeDriver:
    """
    Wall-clock driver for the simulator.

    Commands are issued directly on ``driver.simulator`` from any thread;
    they catch up with the clock before applying, and the driver thread
    processes whatever they schedule.
    """

    def __init__(self, config: Optional[SimulatorConfig] = None):
        self._origin = time.monotonic()
        self.simulator = GoBackNSimulator(config, clock=self.clock)

        self._wake = threading.Event()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.error: Optional[BaseException] = None

        self.simulator.add_listener(self._wake.set)

    def clock(self) -> float:
        """Seconds since the driver was created."""
        return time.monotonic() - self._origin

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the driver thread; no-op if it is already running."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="gbn-driver", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 2.0):
        """Stop the driver thread and wait for it to finish."""
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self):
        try:
            while not self._stop.is_set():
                self.simulator.run_until(self.clock())

                next_time = self.simulator.next_event_time()
                wait = None if next_time is None else max(0.0, next_time - self.clock())
                self._wake.wait(wait)
                self._wake.clear()
        except InvariantViolation as exc:
            self.error = exc
            self.simulator.logger.critical(f"Driver stopped: {exc}", LogCategory.SIM)
            raise

    def __enter__(self) -> "RealTimeDriver":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
