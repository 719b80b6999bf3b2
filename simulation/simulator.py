"""
Main Simulator - Go-Back-N Command Interface and Scheduler

This module wires the frame ledger, transit engine and timeout watchdog
together. Engine ticks and watchdog expiries share one event queue that
is drained under a single lock, so the ledger only ever has one writer.
"""

from typing import Optional, Callable, Dict, List, Tuple
from dataclasses import dataclass, field
from collections import deque
from enum import Enum, IntEnum
import heapq
import itertools
import threading
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    WINDOW_SIZE, TOTAL_FRAMES, TIMEOUT_SEC, FRAME_RATE, PROGRESS_STEP,
    TRANSIT_DISTANCE, FRAME_LENGTH, EVENT_LOG_SIZE, INITIAL_MESSAGE,
    calculate_ticks_per_leg
)
from src.arq.frame import FrameState
from src.arq.window import FrameLedger, InvariantViolation
from src.arq.transit import TransitEngine, TransitEventType
from src.arq.timer import TimeoutWatchdog, TimerEvent
from src.utils.metrics import ProtocolMetrics
from src.utils.logger import SimulationLogger, LogLevel


class CommandError(Enum):
    """Reasons a command is refused."""
    WINDOW_FULL = 0
    INVALID_SELECTION = 1
    PAUSED = 2
    NOT_PAUSED = 3
    ALREADY_PAUSED = 4


@dataclass
class CommandResult:
    """Outcome of a user command."""
    ok: bool
    message: str
    error: Optional[CommandError] = None


class EventKind(IntEnum):
    """Scheduled activity; the value breaks ties between equal times."""
    TICK = 0
    TIMEOUT = 1


@dataclass(order=True)
class SimEvent:
    """Scheduler entry."""
    time: float
    kind: EventKind
    order: int
    generation: int = field(compare=False, default=0)
    timer_event: Optional[TimerEvent] = field(compare=False, default=None)


@dataclass(frozen=True)
class SimulationSnapshot:
    """Read-only state handed to presentation layers."""
    time: float
    frames: Tuple[dict, ...]
    base: int
    next_seq: int
    window_size: int
    capacity: int
    watchdog_armed: bool
    watchdog_deadline: Optional[float]
    paused: bool
    can_send: bool
    can_kill: bool
    selected: Optional[int]
    event_message: str
    event_log: Tuple[str, ...]


@dataclass
class SimulatorConfig:
    """Configuration for the simulator."""
    # Window parameters
    window_size: int = WINDOW_SIZE
    total_frames: int = TOTAL_FRAMES

    # Timing
    timeout: float = TIMEOUT_SEC
    frame_rate: float = FRAME_RATE

    # Transit geometry
    progress_step: int = PROGRESS_STEP
    transit_distance: int = TRANSIT_DISTANCE
    frame_length: int = FRAME_LENGTH

    # Output
    event_log_size: int = EVENT_LOG_SIZE
    log_level: int = LogLevel.WARNING
    log_file: Optional[str] = None

    def __post_init__(self):
        """Validate configuration."""
        if self.window_size <= 0 or self.total_frames <= 0:
            raise ValueError("Window size and total frames must be positive")
        if self.window_size > self.total_frames:
            raise ValueError("Window size cannot exceed total frames")
        if self.timeout <= 0 or self.frame_rate <= 0:
            raise ValueError("Timeout and frame rate must be positive")
        if self.progress_step <= 0 or self.transit_distance <= 0:
            raise ValueError("Progress step and transit distance must be positive")

    @property
    def tick_interval(self) -> float:
        return 1.0 / self.frame_rate

    def get_round_trip_time(self) -> float:
        """Time from send until the acknowledgement reaches the sender."""
        ticks = calculate_ticks_per_leg(self.transit_distance, self.progress_step)
        return 2 * ticks * self.tick_interval


class GoBackNSimulator:
    """
    Go-Back-N ARQ windowing simulation.

    Commands (send, pause, resume, select, kill, reset) and scheduled
    activities (engine ticks, watchdog expiries) all run while holding
    one re-entrant lock. Time is virtual unless a ``clock`` is supplied,
    in which case every command first catches up with the clock.
    """

    def __init__(
        self,
        config: Optional[SimulatorConfig] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize simulator.

        Args:
            config: Simulator configuration
            clock: Wall-clock source in seconds; None for virtual time
        """
        self.config = config or SimulatorConfig()
        self._clock = clock
        self._lock = threading.RLock()

        self.logger = SimulationLogger(
            name="GBN",
            level=self.config.log_level,
            log_file=self.config.log_file
        )
        self.metrics = ProtocolMetrics()

        self.ledger = FrameLedger(
            window_size=self.config.window_size,
            capacity=self.config.total_frames
        )
        self.watchdog = TimeoutWatchdog(
            timeout=self.config.timeout,
            on_arm=self._schedule_timeout
        )
        self.engine = TransitEngine(
            self.ledger,
            self.watchdog,
            step=self.config.progress_step,
            distance=self.config.transit_distance
        )

        self.current_time = 0.0
        self.event_queue: List[SimEvent] = []
        self._order = itertools.count()
        self._listeners: List[Callable[[], None]] = []

        self.paused = False
        self.event_message = INITIAL_MESSAGE
        self.event_log: deque = deque([INITIAL_MESSAGE], maxlen=self.config.event_log_size)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def add_listener(self, callback: Callable[[], None]):
        """Register a callback invoked whenever an event is scheduled."""
        self._listeners.append(callback)

    def _push(self, event: SimEvent):
        heapq.heappush(self.event_queue, event)
        for callback in self._listeners:
            callback()

    def _schedule_tick(self):
        self._push(SimEvent(
            time=self.current_time + self.config.tick_interval,
            kind=EventKind.TICK,
            order=next(self._order),
            generation=self.engine.generation
        ))

    def _schedule_timeout(self, timer_event: TimerEvent):
        """Watchdog arm callback: queue the expiry of the new instance."""
        self.logger.timer_armed(timer_event.bound_sequence, timer_event.expiry_time)
        self._push(SimEvent(
            time=timer_event.expiry_time,
            kind=EventKind.TIMEOUT,
            order=next(self._order),
            generation=timer_event.generation,
            timer_event=timer_event
        ))

    def _wake_engine(self):
        if not self.paused and self.engine.wake():
            self._schedule_tick()

    def next_event_time(self) -> Optional[float]:
        """Time of the earliest queued event."""
        with self._lock:
            if not self.event_queue:
                return None
            return self.event_queue[0].time

    def run_until(self, end_time: float) -> int:
        """
        Process every event due at or before ``end_time``.

        Args:
            end_time: Simulation time to run to

        Returns:
            Number of events processed
        """
        processed = 0
        with self._lock:
            while self.event_queue and self.event_queue[0].time <= end_time:
                event = heapq.heappop(self.event_queue)
                self.current_time = max(self.current_time, event.time)
                self.logger.set_sim_time(self.current_time)

                if event.kind == EventKind.TICK:
                    self._handle_tick(event)
                else:
                    self._handle_timeout(event)

                self._check_consistency()
                processed += 1

            self.current_time = max(self.current_time, end_time)
            self.logger.set_sim_time(self.current_time)
        return processed

    def advance(self, seconds: float) -> int:
        """Run the virtual clock forward by ``seconds``."""
        with self._lock:
            return self.run_until(self.current_time + seconds)

    def _catch_up(self):
        if self._clock is not None:
            self.run_until(self._clock())

    def _handle_tick(self, event: SimEvent):
        """Run one transit engine step and keep the loop going while busy."""
        if event.generation != self.engine.generation or not self.engine.active:
            return

        prev_base = self.ledger.base
        for transit in self.engine.tick(self.current_time):
            if transit.event_type == TransitEventType.FRAME_ACCEPTED:
                self.metrics.record_frame_accepted()
                self.logger.frame_received(transit.sequence)
            elif transit.event_type == TransitEventType.FRAME_HELD:
                self.metrics.record_frame_held()
                self.logger.frame_held(transit.sequence)
            else:
                self.metrics.record_ack_received(transit.base - prev_base)
                prev_base = transit.base
                self.logger.ack_received(transit.sequence, transit.base)
                self.logger.window_update(
                    self.ledger.base, self.ledger.next_seq, self.config.window_size
                )
                if not transit.timer_restarted:
                    self.logger.timer_stopped("window empty")
            self._post(transit.message)

        self.metrics.record_tick(self.ledger.next_seq - self.ledger.base)

        if self.engine.active:
            self._schedule_tick()

    def _handle_timeout(self, event: SimEvent):
        """Go-Back-N: resend the whole outstanding window."""
        timer_event = event.timer_event
        if not self.watchdog.check_expired(timer_event, self.current_time):
            self.metrics.record_stale_timeout()
            self.logger.stale_timer(timer_event.generation, self.watchdog.generation)
            return

        resent = self.ledger.retransmit_outstanding()
        self.metrics.record_retransmissions(len(resent))
        self.logger.timeout(timer_event.bound_sequence, resent)
        for seq_num in resent:
            self.logger.retransmit(seq_num)

        self.watchdog.arm(self.ledger.base, self.current_time)
        self._wake_engine()
        self._post("Frames resent due to frame exceeding timeout timer. Timer has restarted.")

    def _check_consistency(self):
        """The watchdog runs exactly while frames are outstanding and not paused."""
        self.ledger.check_invariants()
        outstanding = not self.ledger.window.is_empty
        if self.watchdog.armed and (self.paused or not outstanding):
            raise InvariantViolation("Watchdog armed without outstanding frames")
        if outstanding and not self.paused and not self.watchdog.armed:
            raise InvariantViolation("Outstanding frames without a running watchdog")

    def _post(self, message: str):
        """Publish the latest event message."""
        self.event_message = message
        if not self.event_log or self.event_log[0] != message:
            self.event_log.appendleft(message)

    def _reject(self, name: str, error: CommandError, message: str) -> CommandResult:
        self.metrics.record_rejected_command()
        self.logger.command_rejected(name, message)
        return CommandResult(ok=False, message=message, error=error)

    def _accept(self, name: str, message: str) -> CommandResult:
        self._check_consistency()
        self._post(message)
        self.logger.command(name, message)
        return CommandResult(ok=True, message=message)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def can_send(self) -> bool:
        """Check if the Send command would be accepted."""
        with self._lock:
            return not self.paused and not self.ledger.window.is_full

    def send(self) -> CommandResult:
        """Admit the next frame of the window."""
        with self._lock:
            self._catch_up()
            if self.paused:
                return self._reject("send", CommandError.PAUSED, "Simulation is paused.")
            if self.ledger.window.is_full:
                return self._reject(
                    "send", CommandError.WINDOW_FULL,
                    "Window is full. Wait for an acknowledgement."
                )

            first_in_window = self.ledger.window.is_empty
            frame = self.ledger.admit()
            self.metrics.record_frame_sent()
            self.logger.frame_sent(frame.sequence)

            message = f"Frame #{frame.sequence} has been sent."
            if first_in_window or not self.watchdog.armed:
                self.watchdog.arm(self.ledger.base, self.current_time)
                message += f" Timer set for Frame #{self.ledger.base}."

            self._wake_engine()
            return self._accept("send", message)

    def pause(self) -> CommandResult:
        """Suspend the engine and drop the running timer."""
        with self._lock:
            self._catch_up()
            if self.paused:
                return self._reject("pause", CommandError.ALREADY_PAUSED,
                                    "Simulation is already paused.")

            self.paused = True
            self.engine.halt()
            self.watchdog.disarm()

            message = "Simulation has been paused."
            if not self.ledger.window.is_empty:
                message += " Timeout timer has been paused."
            return self._accept("pause", message)

    def resume(self) -> CommandResult:
        """Restart the engine; outstanding frames get a fresh full timeout."""
        with self._lock:
            self._catch_up()
            if not self.paused:
                return self._reject("resume", CommandError.NOT_PAUSED,
                                    "Simulation is not paused.")

            self.paused = False
            message = "Simulation has been resumed."
            if not self.ledger.window.is_empty:
                self.watchdog.arm(self.ledger.base, self.current_time)
                message += " Timeout timer has resumed running."

            self._wake_engine()
            return self._accept("resume", message)

    def select(self, seq_num: int, at_progress: Optional[float] = None) -> CommandResult:
        """
        Designate an in-flight frame as the Kill target.

        Args:
            seq_num: Sequence number to select
            at_progress: Optional position on the frame's current leg; it
                must fall within the frame's length to hit it
        """
        with self._lock:
            self._catch_up()
            if not self.ledger.contains(seq_num) or not self.ledger[seq_num].in_flight:
                return self._reject("select", CommandError.INVALID_SELECTION,
                                    f"Frame #{seq_num} is not in flight.")

            frame = self.ledger[seq_num]
            if at_progress is not None and not (
                    frame.progress <= at_progress <= frame.progress + self.config.frame_length):
                return self._reject("select", CommandError.INVALID_SELECTION,
                                    f"No frame at position {at_progress} of lane #{seq_num}.")

            self.ledger.select(seq_num)
            return self._accept("select", f"Frame #{seq_num} has been selected.")

    def kill(self, seq_num: Optional[int] = None) -> CommandResult:
        """
        Destroy the selected frame or acknowledgement in flight.

        The timer is left alone; the loss surfaces at the next timeout.
        """
        with self._lock:
            self._catch_up()
            if self.paused:
                return self._reject("kill", CommandError.PAUSED, "Simulation is paused.")

            selected = self.ledger.selected_sequence()
            if seq_num is None:
                seq_num = selected
            if seq_num is None or seq_num != selected:
                return self._reject("kill", CommandError.INVALID_SELECTION,
                                    "No frame selected.")

            is_ack = not self.ledger[seq_num].needs_ack
            self.ledger.mark_lost(seq_num)
            self.metrics.record_kill(is_ack)
            self.logger.frame_killed(seq_num, is_ack)

            if is_ack:
                message = f"Acknowledgement of Frame #{seq_num} has been destroyed."
            else:
                message = f"Frame #{seq_num} has been destroyed."
            message += f" Timeout timer still running for Frame #{self.ledger.base}."
            return self._accept("kill", message)

    def reset(self) -> CommandResult:
        """Stop everything and wipe the ledger."""
        with self._lock:
            self.engine.reset()
            self.watchdog.reset()
            self.ledger.reset()
            self.metrics.reset()
            self.event_queue.clear()
            self.paused = False
            # Virtual time starts over; wall-clock time cannot
            if self._clock is not None:
                self.current_time = max(self.current_time, self._clock())
            else:
                self.current_time = 0.0
            self.logger.set_sim_time(self.current_time)
            return self._accept("reset", "Simulation has been restarted.")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def snapshot(self) -> SimulationSnapshot:
        """Get a consistent read-only view of the simulation."""
        with self._lock:
            window = self.ledger.window
            selected = self.ledger.selected_sequence()
            return SimulationSnapshot(
                time=self.current_time,
                frames=tuple(f.to_dict() for f in self.ledger.frames),
                base=window.base,
                next_seq=window.next_seq,
                window_size=window.size,
                capacity=window.capacity,
                watchdog_armed=self.watchdog.armed,
                watchdog_deadline=self.watchdog.deadline,
                paused=self.paused,
                can_send=not self.paused and not window.is_full,
                can_kill=not self.paused and selected is not None,
                selected=selected,
                event_message=self.event_message,
                event_log=tuple(self.event_log)
            )

    def frame_state(self, seq_num: int) -> FrameState:
        with self._lock:
            return self.ledger[seq_num].state

    def get_statistics(self) -> Dict:
        """Get simulator statistics."""
        with self._lock:
            return {
                **self.metrics.get_summary(),
                **self.watchdog.get_statistics(),
                'time': self.current_time,
                'base': self.ledger.base,
                'next_seq': self.ledger.next_seq,
            }


if __name__ == "__main__":
    print("=" * 60)
    print("GO-BACK-N SIMULATOR TEST")
    print("=" * 60)

    sim = GoBackNSimulator(SimulatorConfig(log_level=LogLevel.INFO))

    for _ in range(3):
        sim.send()
    sim.select(1)
    sim.kill(1)

    sim.advance(45.0)

    snap = sim.snapshot()
    print(f"\nWindow: base={snap.base}, next={snap.next_seq}")
    for frame in snap.frames[:snap.next_seq]:
        print(f"  {frame}")
    print(f"\nStatistics: {sim.get_statistics()}")
