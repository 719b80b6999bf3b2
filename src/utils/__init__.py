"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Protocol metrics
- Logging utilities
"""

from .metrics import ProtocolMetrics
from .logger import SimulationLogger, LogLevel, LogCategory

__all__ = [
    'ProtocolMetrics',
    'SimulationLogger',
    'LogLevel',
    'LogCategory'
]
