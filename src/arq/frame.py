"""
Frame Records for the Go-Back-N ARQ Simulator

This module defines the per-sequence frame record tracked by the sender.
A frame and its acknowledgement share one record across the round trip.
"""

from enum import Enum
from dataclasses import dataclass


class FrameState(Enum):
    """Frame lifecycle state."""
    UNSENT = 0
    OUTBOUND = 1        # data frame travelling towards the receiver
    AT_RECEIVER = 2     # received out of order, held without acknowledgement
    RETURN = 3          # acknowledgement travelling back to the sender
    ACKNOWLEDGED = 4
    LOST = 5            # killed in flight, recovered only by a timeout


IN_FLIGHT_STATES = (FrameState.OUTBOUND, FrameState.RETURN)


@dataclass
class Frame:
    """
    Sender-side record of one sequence number.

    Attributes:
        sequence: Sequence number (immutable identity)
        state: Current lifecycle state
        needs_ack: True while the record is the data frame, False once it
            has become its acknowledgement
        progress: Distance travelled on the current leg
        selected: Whether the frame is the target of a Kill command
        reached_receiver: Whether any copy of the frame reached the receiver
        transmissions: Number of times the frame was put on the wire
    """

    sequence: int
    state: FrameState = FrameState.UNSENT
    needs_ack: bool = True
    progress: int = 0
    selected: bool = False
    reached_receiver: bool = False
    transmissions: int = 0

    def __post_init__(self):
        """Validate frame after initialization."""
        if self.sequence < 0:
            raise ValueError("Sequence number must be non-negative")

    @property
    def in_flight(self) -> bool:
        """Check if the frame or its acknowledgement is moving."""
        return self.state in IN_FLIGHT_STATES

    @property
    def is_acknowledged(self) -> bool:
        return self.state == FrameState.ACKNOWLEDGED

    def launch(self):
        """Put the data frame on the wire from the sender."""
        self.state = FrameState.OUTBOUND
        self.needs_ack = True
        self.progress = 0
        self.transmissions += 1

    def turn_around(self):
        """Turn the frame into its acknowledgement at the receiver."""
        self.state = FrameState.RETURN
        self.needs_ack = False
        self.progress = 0

    def clear(self):
        """Return the record to its pristine unsent state."""
        self.state = FrameState.UNSENT
        self.needs_ack = True
        self.progress = 0
        self.selected = False
        self.reached_receiver = False
        self.transmissions = 0

    def to_dict(self) -> dict:
        """Read-only view used by snapshots."""
        return {
            'sequence': self.sequence,
            'state': self.state.name,
            'needs_ack': self.needs_ack,
            'progress': self.progress,
            'selected': self.selected,
            'reached_receiver': self.reached_receiver,
        }

    def __repr__(self) -> str:
        return (f"Frame(seq={self.sequence}, state={self.state.name}, "
                f"progress={self.progress}, needs_ack={self.needs_ack})")
