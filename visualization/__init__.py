"""
Visualization package - Plotting and visualization tools.

Contains:
- Frame timeline and state map rendering of scenario traces
"""

from .timeline import TimelinePlot

__all__ = [
    'TimelinePlot'
]
