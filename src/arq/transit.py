"""
Transit Engine for the Go-Back-N ARQ Simulator

This module advances frames and acknowledgements between sender and
receiver on every scheduling tick, and fires the protocol transitions
when they arrive.
"""

from typing import List, Optional
from dataclasses import dataclass
from enum import Enum

from config import PROGRESS_STEP, TRANSIT_DISTANCE
from .frame import Frame, FrameState
from .window import FrameLedger
from .timer import TimeoutWatchdog


class TransitEventType(Enum):
    """Arrival outcomes produced by a tick."""
    FRAME_ACCEPTED = 0    # in order, acknowledgement sent
    FRAME_HELD = 1        # out of order, no acknowledgement
    ACK_RECEIVED = 2


@dataclass
class TransitEvent:
    """Arrival processed during a tick."""
    event_type: TransitEventType
    sequence: int
    message: str
    base: int
    timer_restarted: Optional[bool] = None


class TransitEngine:
    """
    Moves in-flight frames and processes their arrival.

    The engine is active while at least one frame or acknowledgement is
    moving. ``wake`` reports whether a tick loop has to be started, so a
    wake while active never starts a second loop.

    Attributes:
        ledger: Frame ledger being driven
        watchdog: Retransmission timer re-armed on acknowledgement
        step: Progress gained per tick
        distance: Progress at which a frame reaches its destination
        active: Whether a tick loop is running
        generation: Incremented on every halt to invalidate queued ticks
    """

    def __init__(
        self,
        ledger: FrameLedger,
        watchdog: TimeoutWatchdog,
        step: int = PROGRESS_STEP,
        distance: int = TRANSIT_DISTANCE
    ):
        if step <= 0 or distance <= 0:
            raise ValueError("Step and distance must be positive")

        self.ledger = ledger
        self.watchdog = watchdog
        self.step = step
        self.distance = distance

        self.active = False
        self.generation = 0
        self.ticks = 0

    def wake(self) -> bool:
        """
        Activate the engine if there is anything to move.

        Returns:
            True if the caller must schedule the first tick
        """
        if self.active or not self.ledger.has_in_flight():
            return False
        self.active = True
        return True

    def halt(self):
        """Stop the tick loop; queued ticks become stale."""
        self.active = False
        self.generation += 1

    def tick(self, current_time: float) -> List[TransitEvent]:
        """
        Advance every in-flight frame by one step.

        Frames are processed in increasing sequence order so the in-order
        check at the receiver is reproducible.

        Args:
            current_time: Current simulation time

        Returns:
            Arrival events processed during this tick
        """
        events = []
        self.ticks += 1

        for frame in self.ledger.in_flight_frames():
            # An acknowledgement earlier in this tick may have settled it
            if not frame.in_flight:
                continue

            frame.progress = min(frame.progress + self.step, self.distance)
            if frame.progress < self.distance:
                continue

            if frame.state == FrameState.OUTBOUND:
                events.append(self._arrive_at_receiver(frame))
            else:
                events.append(self._arrive_at_sender(frame, current_time))

        self.ledger.check_invariants()

        if not self.ledger.has_in_flight():
            self.active = False

        return events

    def _arrive_at_receiver(self, frame: Frame) -> TransitEvent:
        """Deliver a data frame; acknowledge it only if it is in order."""
        frame.reached_receiver = True
        frame.state = FrameState.AT_RECEIVER

        if self.ledger.all_reached_before(frame.sequence):
            frame.turn_around()
            return TransitEvent(
                event_type=TransitEventType.FRAME_ACCEPTED,
                sequence=frame.sequence,
                message=f"Frame #{frame.sequence} has been received. Acknowledgement sent.",
                base=self.ledger.base
            )

        # Receiver keeps the data but discards it for acknowledgement purposes
        frame.selected = False
        return TransitEvent(
            event_type=TransitEventType.FRAME_HELD,
            sequence=frame.sequence,
            message=f"Frame #{frame.sequence} has been received. No acknowledgement sent.",
            base=self.ledger.base
        )

    def _arrive_at_sender(self, frame: Frame, current_time: float) -> TransitEvent:
        """Apply a cumulative acknowledgement and re-arm or stop the timer."""
        base = self.ledger.cumulative_ack(frame.sequence)
        message = f"Frame #{frame.sequence} acknowledgement has been received."

        if self.ledger.window.is_empty:
            self.watchdog.disarm()
            restarted = False
            message += " Timeout timer stopped."
        else:
            self.watchdog.arm(base, current_time)
            restarted = True
            message += " Timeout timer has restarted."

        return TransitEvent(
            event_type=TransitEventType.ACK_RECEIVED,
            sequence=frame.sequence,
            message=message,
            base=base,
            timer_restarted=restarted
        )

    def reset(self):
        self.halt()
        self.ticks = 0
