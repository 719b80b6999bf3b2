"""
Frame Ledger for the Go-Back-N ARQ Simulator

This module owns every frame record together with the sliding window
pointers, and enforces the window invariants on each mutation.
"""

from typing import Optional, List
from dataclasses import dataclass

from config import WINDOW_SIZE, TOTAL_FRAMES
from .frame import Frame, FrameState


class InvariantViolation(AssertionError):
    """Raised when the ledger reaches a state the protocol cannot produce."""


@dataclass
class SendWindow:
    """
    Sliding window for the sender.

    Attributes:
        base: Oldest unacknowledged sequence number
        next_seq: Next sequence number eligible to send
        size: Window size
        capacity: Total number of frames
    """
    base: int = 0
    next_seq: int = 0
    size: int = WINDOW_SIZE
    capacity: int = TOTAL_FRAMES

    @property
    def limit(self) -> int:
        """First sequence number the window does not admit."""
        return min(self.base + self.size, self.capacity)

    @property
    def available_slots(self) -> int:
        """Number of frames that can still be sent."""
        return self.limit - self.next_seq

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.available_slots <= 0

    @property
    def is_empty(self) -> bool:
        """Check if nothing is outstanding."""
        return self.base == self.next_seq

    def in_window(self, seq_num: int) -> bool:
        """Check if sequence number is sent but not yet acknowledged."""
        return self.base <= seq_num < self.next_seq

    def advance_base(self, new_base: int):
        """Advance window base to new position."""
        if new_base > self.base:
            self.base = new_base


class FrameLedger:
    """
    Fixed-capacity sequence of frame records plus the window pointers.

    All frames below ``base`` are acknowledged, all frames at or above
    ``next_seq`` are unsent. Every mutating operation finishes with
    :meth:`check_invariants`.
    """

    def __init__(self, window_size: int = WINDOW_SIZE, capacity: int = TOTAL_FRAMES):
        """
        Initialize ledger.

        Args:
            window_size: Send window size
            capacity: Total number of frames
        """
        if window_size <= 0 or capacity <= 0:
            raise ValueError("Window size and capacity must be positive")
        if window_size > capacity:
            raise ValueError("Window size cannot exceed capacity")

        self.window_size = window_size
        self.capacity = capacity
        self.window = SendWindow(size=window_size, capacity=capacity)
        self.frames: List[Frame] = [Frame(sequence=i) for i in range(capacity)]

    def __getitem__(self, seq_num: int) -> Frame:
        return self.frames[seq_num]

    @property
    def base(self) -> int:
        return self.window.base

    @property
    def next_seq(self) -> int:
        return self.window.next_seq

    def contains(self, seq_num: int) -> bool:
        """Check if a sequence number exists in the ledger."""
        return 0 <= seq_num < self.capacity

    def admit(self, seq_num: Optional[int] = None) -> Optional[Frame]:
        """
        Launch the next frame of the window.

        A full window is an ordinary refusal and returns None. Asking for
        any sequence other than ``next_seq`` is not a refusal: no command
        can produce it, so it raises instead of being ignored.

        Args:
            seq_num: Expected sequence number (defaults to ``next_seq``)

        Returns:
            The launched frame, or None when the window is full

        Raises:
            InvariantViolation: if ``seq_num`` is given and is not ``next_seq``
        """
        if seq_num is not None and seq_num != self.window.next_seq:
            raise InvariantViolation(
                f"Frame {seq_num} admitted out of order (next={self.window.next_seq})"
            )
        if self.window.is_full:
            return None

        frame = self.frames[self.window.next_seq]
        frame.launch()
        self.window.next_seq += 1

        self.check_invariants()
        return frame

    def cumulative_ack(self, upto_seq: int) -> int:
        """
        Acknowledge every frame up to and including ``upto_seq``.

        Args:
            upto_seq: Highest acknowledged sequence number

        Returns:
            The new window base
        """
        if not 0 <= upto_seq < self.window.next_seq:
            raise InvariantViolation(
                f"ACK {upto_seq} outside sent range [0, {self.window.next_seq})"
            )

        for frame in self.frames[:upto_seq + 1]:
            frame.state = FrameState.ACKNOWLEDGED
            frame.selected = False

        self.window.advance_base(upto_seq + 1)

        self.check_invariants()
        return self.window.base

    def mark_lost(self, seq_num: int):
        """Freeze an in-flight frame (or acknowledgement) as lost."""
        frame = self.frames[seq_num]
        if not frame.in_flight:
            raise InvariantViolation(f"Frame {seq_num} is not in flight ({frame.state.name})")

        frame.state = FrameState.LOST
        frame.selected = False

        self.check_invariants()

    def retransmit_outstanding(self) -> List[int]:
        """
        Go-Back-N: relaunch every unacknowledged frame in the window.

        Returns:
            Sequence numbers put back on the wire
        """
        resent = []
        for seq_num in range(self.window.base, self.window.next_seq):
            frame = self.frames[seq_num]
            if not frame.is_acknowledged:
                frame.launch()
                resent.append(seq_num)

        self.check_invariants()
        return resent

    def all_reached_before(self, seq_num: int) -> bool:
        """Check if every frame preceding ``seq_num`` reached the receiver."""
        return all(f.reached_receiver for f in self.frames[:seq_num])

    def has_in_flight(self) -> bool:
        """Check if any frame or acknowledgement is moving."""
        return any(f.in_flight for f in self.frames)

    def in_flight_frames(self) -> List[Frame]:
        """In-flight frames ordered by sequence number."""
        return [f for f in self.frames if f.in_flight]

    def select(self, seq_num: int):
        """Move the single selection to an in-flight frame."""
        frame = self.frames[seq_num]
        if not frame.in_flight:
            raise InvariantViolation(f"Frame {seq_num} cannot be selected ({frame.state.name})")

        self.clear_selection()
        frame.selected = True

    def clear_selection(self):
        for frame in self.frames:
            frame.selected = False

    def selected_sequence(self) -> Optional[int]:
        """Sequence number of the selected frame, if any."""
        for frame in self.frames:
            if frame.selected:
                return frame.sequence
        return None

    def check_invariants(self):
        """
        Verify the sliding window invariants.

        Raises:
            InvariantViolation: if any invariant does not hold
        """
        w = self.window
        if not 0 <= w.base <= w.next_seq <= w.limit:
            raise InvariantViolation(
                f"Window pointers out of order: base={w.base}, next={w.next_seq}, "
                f"size={w.size}, capacity={w.capacity}"
            )

        selected = 0
        for frame in self.frames:
            if frame.sequence < w.base and frame.state != FrameState.ACKNOWLEDGED:
                raise InvariantViolation(f"Frame {frame.sequence} below base is {frame.state.name}")
            if frame.sequence >= w.next_seq and frame.state != FrameState.UNSENT:
                raise InvariantViolation(f"Frame {frame.sequence} beyond next is {frame.state.name}")
            if w.in_window(frame.sequence) and frame.state in (FrameState.UNSENT,
                                                               FrameState.ACKNOWLEDGED):
                raise InvariantViolation(f"Outstanding frame {frame.sequence} is {frame.state.name}")
            if frame.selected:
                selected += 1
                if not frame.in_flight:
                    raise InvariantViolation(f"Selected frame {frame.sequence} is not in flight")

        if selected > 1:
            raise InvariantViolation(f"{selected} frames selected at once")

    def reset(self):
        """Clear every record and rewind the window."""
        for frame in self.frames:
            frame.clear()
        self.window = SendWindow(size=self.window_size, capacity=self.capacity)

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.window.base,
            'next_seq': self.window.next_seq,
            'size': self.window.size,
            'capacity': self.window.capacity,
            'available': self.window.available_slots,
            'outstanding': list(range(self.window.base, self.window.next_seq)),
        }
