"""
Protocol Metrics

This module tracks counters of a Go-Back-N run: transmissions,
acknowledgements, losses and timer activity.
"""

from typing import List
import statistics


class ProtocolMetrics:
    """
    Collects protocol counters for the simulation.

    Window occupancy is sampled once per engine tick, so its mean tells
    how well the sender kept the pipe full.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset all counters."""
        # Frame counters
        self.frames_sent = 0
        self.retransmissions = 0
        self.frames_acked = 0
        self.acks_sent = 0
        self.acks_received = 0
        self.frames_held = 0

        # Loss tracking
        self.frames_killed = 0
        self.acks_killed = 0

        # Timer tracking
        self.timeouts = 0
        self.stale_timeouts = 0

        # Scheduler
        self.ticks = 0
        self.rejected_commands = 0

        self.window_occupancy_samples: List[int] = []

    def record_frame_sent(self):
        self.frames_sent += 1

    def record_retransmissions(self, count: int):
        """
        Record frames relaunched by a timeout.

        Args:
            count: Number of frames put back on the wire
        """
        self.timeouts += 1
        self.retransmissions += count

    def record_frame_accepted(self):
        """Record in-order arrival (acknowledgement generated)."""
        self.acks_sent += 1

    def record_frame_held(self):
        self.frames_held += 1

    def record_ack_received(self, newly_acked: int):
        """
        Record acknowledgement arrival.

        Args:
            newly_acked: Frames acknowledged by this cumulative ACK
        """
        self.acks_received += 1
        self.frames_acked += newly_acked

    def record_kill(self, is_ack: bool):
        if is_ack:
            self.acks_killed += 1
        else:
            self.frames_killed += 1

    def record_stale_timeout(self):
        self.stale_timeouts += 1

    def record_tick(self, window_occupancy: int):
        self.ticks += 1
        self.window_occupancy_samples.append(window_occupancy)

    def record_rejected_command(self):
        self.rejected_commands += 1

    def get_retransmission_rate(self) -> float:
        """Retransmissions per original transmission."""
        if self.frames_sent == 0:
            return 0.0
        return self.retransmissions / self.frames_sent

    def get_mean_window_occupancy(self) -> float:
        if not self.window_occupancy_samples:
            return 0.0
        return statistics.mean(self.window_occupancy_samples)

    def get_summary(self) -> dict:
        """Get metrics summary."""
        return {
            'frames_sent': self.frames_sent,
            'retransmissions': self.retransmissions,
            'retransmission_rate': self.get_retransmission_rate(),
            'frames_acked': self.frames_acked,
            'acks_sent': self.acks_sent,
            'acks_received': self.acks_received,
            'frames_held': self.frames_held,
            'frames_killed': self.frames_killed,
            'acks_killed': self.acks_killed,
            'timeouts': self.timeouts,
            'stale_timeouts': self.stale_timeouts,
            'ticks': self.ticks,
            'mean_window_occupancy': self.get_mean_window_occupancy(),
            'rejected_commands': self.rejected_commands,
        }
