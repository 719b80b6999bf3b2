"""
Scenario Runner for Scripted Simulations

This module replays a script of timed commands against a simulator in
virtual time and records a per-frame trace of every sample.
"""

import os
import sys
from typing import Optional, List, Dict
from dataclasses import dataclass

import pandas as pd

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import TRACE_CSV
from simulation.simulator import GoBackNSimulator, SimulatorConfig, CommandResult
from src.arq.frame import FrameState


COMMANDS = ('send', 'pause', 'resume', 'select', 'kill', 'reset')

TRACE_COLUMNS = [
    'time', 'sequence', 'state', 'needs_ack', 'progress', 'selected',
    'base', 'next_seq', 'watchdog_armed'
]


@dataclass
class ScenarioStep:
    """Command issued at a given simulation time."""
    time: float
    command: str
    args: tuple = ()

    def __post_init__(self):
        if self.command not in COMMANDS:
            raise ValueError(f"Unknown command: {self.command}")
        if self.time < 0:
            raise ValueError("Step time must be non-negative")


def _burst(count: int, at: float = 0.0) -> List[ScenarioStep]:
    return [ScenarioStep(at, 'send') for _ in range(count)]


# Built-in scripts with the duration that shows their outcome
SCENARIOS: Dict[str, List[ScenarioStep]] = {
    # Fill the window; frame 5 goes out once ACK 0 is back (18.8 s)
    'happy-path': _burst(5) + [ScenarioStep(19.0, 'send')],
    # Frame 1 dies, ACK 0 re-arms the timer, frames 1 and 2 go back at 38.8 s
    'lost-frame': _burst(3) + [
        ScenarioStep(1.0, 'select', (1,)),
        ScenarioStep(1.0, 'kill', (1,)),
    ],
    # Frame 0 dies, frame 1 arrives alone and is held without ACK
    'out-of-order': _burst(2) + [
        ScenarioStep(1.0, 'select', (0,)),
        ScenarioStep(1.0, 'kill', (0,)),
    ],
    # Pausing halfway through the timeout restarts it from scratch
    'pause-resume': _burst(1) + [
        ScenarioStep(1.0, 'select', (0,)),
        ScenarioStep(1.0, 'kill', (0,)),
        ScenarioStep(10.0, 'pause'),
        ScenarioStep(10.0, 'resume'),
    ],
}

SCENARIO_DURATIONS = {
    'happy-path': 45.0,
    'lost-frame': 60.0,
    'out-of-order': 45.0,
    'pause-resume': 49.0,
}


class ScenarioRunner:
    """
    Replays a command script and samples snapshots into a trace.

    Attributes:
        steps: Commands sorted by time (stable for equal times)
        duration: Simulation time to run to
        sample_interval: Time between two trace samples
    """

    def __init__(
        self,
        steps: List[ScenarioStep],
        config: Optional[SimulatorConfig] = None,
        duration: Optional[float] = None,
        sample_interval: Optional[float] = None
    ):
        """
        Initialize scenario runner.

        Args:
            steps: Command script
            config: Simulator configuration
            duration: Run length (default: last step plus two timeouts)
            sample_interval: Trace sampling period (default: one tick)
        """
        self.steps = sorted(steps, key=lambda s: s.time)
        self.simulator = GoBackNSimulator(config)
        self.config = self.simulator.config

        last = self.steps[-1].time if self.steps else 0.0
        self.duration = duration if duration is not None else last + 2 * self.config.timeout
        self.sample_interval = sample_interval or self.config.tick_interval

        self.trace: List[Dict] = []
        self.results: List[Dict] = []

    @classmethod
    def from_name(cls, name: str, config: Optional[SimulatorConfig] = None,
                  duration: Optional[float] = None) -> "ScenarioRunner":
        """Build a runner for one of the built-in scenarios."""
        if name not in SCENARIOS:
            raise KeyError(f"Unknown scenario '{name}' (choose from {sorted(SCENARIOS)})")
        return cls(SCENARIOS[name], config=config,
                   duration=duration if duration is not None else SCENARIO_DURATIONS[name])

    def _sample(self):
        snap = self.simulator.snapshot()
        for frame in snap.frames:
            if frame['state'] == FrameState.UNSENT.name:
                continue
            self.trace.append({
                'time': round(snap.time, 6),
                'sequence': frame['sequence'],
                'state': frame['state'],
                'needs_ack': frame['needs_ack'],
                'progress': frame['progress'],
                'selected': frame['selected'],
                'base': snap.base,
                'next_seq': snap.next_seq,
                'watchdog_armed': snap.watchdog_armed,
            })

    def _run_to(self, target: float, next_sample: float) -> float:
        """Advance to ``target`` while sampling; returns the next sample time."""
        while next_sample <= target:
            self.simulator.run_until(next_sample)
            self._sample()
            next_sample += self.sample_interval
        self.simulator.run_until(target)
        return next_sample

    def _apply(self, step: ScenarioStep) -> CommandResult:
        result = getattr(self.simulator, step.command)(*step.args)
        self.results.append({
            'time': step.time,
            'command': step.command,
            'args': step.args,
            'ok': result.ok,
            'message': result.message,
            'error': result.error.name if result.error else None,
        })
        return result

    def run(self) -> Dict:
        """
        Run the whole script.

        Returns:
            Dictionary with command results, statistics and final snapshot
        """
        self.trace = []
        self.results = []
        self.simulator.reset()
        self.simulator.logger.simulation_start({
            'window_size': self.config.window_size,
            'total_frames': self.config.total_frames,
            'timeout': self.config.timeout,
            'steps': len(self.steps),
        })

        next_sample = 0.0
        for step in self.steps:
            next_sample = self._run_to(step.time, next_sample)
            self._apply(step)
        self._run_to(self.duration, next_sample)

        statistics = self.simulator.get_statistics()
        self.simulator.logger.simulation_end(statistics)

        return {
            'commands': self.results,
            'statistics': statistics,
            'final': self.simulator.snapshot(),
        }

    def to_dataframe(self) -> pd.DataFrame:
        """Get the recorded trace as a DataFrame."""
        return pd.DataFrame(self.trace, columns=TRACE_COLUMNS)

    def save_csv(self, filepath: Optional[str] = None) -> str:
        """
        Save the trace to a CSV file.

        Args:
            filepath: Output file path (default: TRACE_CSV)

        Returns:
            Path written
        """
        filepath = filepath or TRACE_CSV
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.to_dataframe().to_csv(filepath, index=False)
        return filepath
