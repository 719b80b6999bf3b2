"""
Timeout Watchdog for Go-Back-N ARQ

This module provides the single retransmission timer of the sender. The
timer is bound to the window base; every arm or disarm bumps a generation
counter so that expiries scheduled by an earlier instance are ignored.
"""

from dataclasses import dataclass, field
from typing import Optional, Callable
from enum import Enum

from config import TIMEOUT_SEC


class TimerState(Enum):
    """Timer state enumeration."""
    DISARMED = 0
    ARMED = 1
    EXPIRED = 2


@dataclass(order=True)
class TimerEvent:
    """Scheduled expiry of one timer instance."""
    expiry_time: float
    generation: int = field(compare=False)  # To invalidate superseded timers
    bound_sequence: int = field(compare=False)


class TimeoutWatchdog:
    """
    Single-shot, restartable Go-Back-N timer.

    Attributes:
        timeout: Timeout duration in seconds
        state: Current timer state
        generation: Incremented on every arm and disarm
        bound_sequence: Window base the running timer was armed for
        start_time: Time when the running timer was armed
    """

    def __init__(
        self,
        timeout: float = TIMEOUT_SEC,
        on_arm: Optional[Callable[[TimerEvent], None]] = None
    ):
        """
        Initialize watchdog.

        Args:
            timeout: Timeout duration in seconds
            on_arm: Callback receiving the expiry event of each new instance
        """
        if timeout <= 0:
            raise ValueError("Timeout must be positive")

        self.timeout = timeout
        self.on_arm = on_arm

        self.state = TimerState.DISARMED
        self.generation = 0
        self.bound_sequence: Optional[int] = None
        self.start_time = 0.0

        # Statistics
        self.total_arms = 0
        self.total_expiries = 0
        self.stale_expiries = 0

    @property
    def armed(self) -> bool:
        return self.state == TimerState.ARMED

    @property
    def deadline(self) -> Optional[float]:
        """Absolute expiry time of the running instance."""
        if not self.armed:
            return None
        return self.start_time + self.timeout

    def arm(self, bound_sequence: int, current_time: float) -> TimerEvent:
        """
        Start a fresh timer instance, superseding any running one.

        Args:
            bound_sequence: Window base the timer guards
            current_time: Current simulation time

        Returns:
            Expiry event of the new instance
        """
        self.generation += 1
        self.state = TimerState.ARMED
        self.bound_sequence = bound_sequence
        self.start_time = current_time
        self.total_arms += 1

        event = TimerEvent(
            expiry_time=current_time + self.timeout,
            generation=self.generation,
            bound_sequence=bound_sequence
        )
        if self.on_arm:
            self.on_arm(event)
        return event

    def disarm(self):
        """Stop the running instance without expiry."""
        if self.state != TimerState.DISARMED:
            self.generation += 1
        self.state = TimerState.DISARMED
        self.bound_sequence = None

    def is_current(self, event: TimerEvent) -> bool:
        """Check if an expiry event belongs to the running instance."""
        return self.armed and event.generation == self.generation

    def check_expired(self, event: TimerEvent, current_time: float) -> bool:
        """
        Decide whether a scheduled expiry fires.

        Args:
            event: Expiry event popped from the scheduler
            current_time: Current simulation time

        Returns:
            True if the running instance expired; False for superseded,
            cancelled or premature events
        """
        if not self.is_current(event):
            self.stale_expiries += 1
            return False

        if current_time < event.expiry_time:
            return False

        self.state = TimerState.EXPIRED
        self.total_expiries += 1
        return True

    def get_remaining_time(self, current_time: float) -> float:
        """
        Get remaining time until expiration.

        Returns:
            Remaining time in seconds (0 if disarmed)
        """
        if not self.armed:
            return 0.0
        return max(0.0, self.deadline - current_time)

    def reset(self):
        """Disarm and clear statistics."""
        self.disarm()
        self.total_arms = 0
        self.total_expiries = 0
        self.stale_expiries = 0

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'timer_arms': self.total_arms,
            'timer_expiries': self.total_expiries,
            'timer_stale_expiries': self.stale_expiries,
            'timer_armed': self.armed,
        }
