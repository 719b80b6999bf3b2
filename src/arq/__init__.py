"""
ARQ package - Go-Back-N ARQ protocol components.

Contains implementations for:
- Frame records and lifecycle states
- Frame ledger with sliding window bookkeeping
- Transit engine driving frames and acknowledgements
- Timeout watchdog
"""

from .frame import Frame, FrameState
from .window import FrameLedger, SendWindow, InvariantViolation
from .transit import TransitEngine, TransitEvent, TransitEventType
from .timer import TimeoutWatchdog, TimerEvent, TimerState

__all__ = [
    'Frame',
    'FrameState',
    'FrameLedger',
    'SendWindow',
    'InvariantViolation',
    'TransitEngine',
    'TransitEvent',
    'TransitEventType',
    'TimeoutWatchdog',
    'TimerEvent',
    'TimerState'
]
