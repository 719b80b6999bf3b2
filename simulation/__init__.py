"""
Simulation package - Command interface, drivers and scenario runner.

Contains:
- Go-Back-N simulator (commands + event scheduler)
- Real-time driver thread
- Scripted scenario runner
"""

from .simulator import (
    GoBackNSimulator, SimulatorConfig, SimulationSnapshot,
    CommandResult, CommandError
)
from .realtime import RealTimeDriver
from .scenarios import ScenarioRunner, ScenarioStep, SCENARIOS

__all__ = [
    'GoBackNSimulator',
    'SimulatorConfig',
    'SimulationSnapshot',
    'CommandResult',
    'CommandError',
    'RealTimeDriver',
    'ScenarioRunner',
    'ScenarioStep',
    'SCENARIOS'
]
