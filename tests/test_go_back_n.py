"""
Unit tests for the Go-Back-N frame ledger, watchdog and transit engine.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.arq.frame import Frame, FrameState
from src.arq.window import FrameLedger, SendWindow, InvariantViolation
from src.arq.timer import TimeoutWatchdog, TimerEvent, TimerState
from src.arq.transit import TransitEngine, TransitEventType


class TestFrame:
    """Tests for Frame records."""

    def test_initial_state(self):
        """A fresh record is an unsent data frame."""
        frame = Frame(sequence=3)

        assert frame.state == FrameState.UNSENT
        assert frame.needs_ack
        assert frame.progress == 0
        assert not frame.in_flight

    def test_negative_sequence_rejected(self):
        """Sequence numbers are non-negative."""
        with pytest.raises(ValueError):
            Frame(sequence=-1)

    def test_launch_and_turn_around(self):
        """Launching sends the data frame, turning around makes it an ACK."""
        frame = Frame(sequence=0)
        frame.launch()
        frame.progress = 100

        assert frame.state == FrameState.OUTBOUND
        assert frame.transmissions == 1

        frame.turn_around()
        assert frame.state == FrameState.RETURN
        assert not frame.needs_ack
        assert frame.progress == 0
        assert frame.in_flight

    def test_relaunch_counts_transmissions(self):
        """Every launch is one more transmission and restarts the leg."""
        frame = Frame(sequence=0)
        frame.launch()
        frame.turn_around()
        frame.progress = 40
        frame.launch()

        assert frame.transmissions == 2
        assert frame.needs_ack
        assert frame.progress == 0

    def test_clear(self):
        """Clearing returns the record to pristine."""
        frame = Frame(sequence=1)
        frame.launch()
        frame.reached_receiver = True
        frame.selected = True
        frame.clear()

        assert frame == Frame(sequence=1)

    def test_to_dict(self):
        """Snapshot view carries the state name."""
        frame = Frame(sequence=2)
        frame.launch()
        view = frame.to_dict()

        assert view['sequence'] == 2
        assert view['state'] == 'OUTBOUND'
        assert view['needs_ack'] is True


class TestSendWindow:
    """Tests for SendWindow pointers."""

    def test_limit_clamped_to_capacity(self):
        """The window never extends past the last frame."""
        window = SendWindow(base=18, next_seq=18, size=5, capacity=20)

        assert window.limit == 20
        assert window.available_slots == 2

    def test_full_and_empty(self):
        """Full when next reaches the limit, empty when next equals base."""
        window = SendWindow(base=0, next_seq=0, size=2, capacity=10)
        assert window.is_empty
        assert not window.is_full

        window.next_seq = 2
        assert window.is_full
        assert window.in_window(1)
        assert not window.in_window(2)

    def test_advance_base_never_moves_back(self):
        """Base only grows."""
        window = SendWindow(base=3, next_seq=4, size=5, capacity=10)
        window.advance_base(1)

        assert window.base == 3


class TestFrameLedger:
    """Tests for FrameLedger."""

    def test_rejects_oversized_window(self):
        """Window size cannot exceed capacity."""
        with pytest.raises(ValueError):
            FrameLedger(window_size=6, capacity=5)

    def test_admit_until_full(self):
        """Admit launches frames in order until the window is full."""
        ledger = FrameLedger(window_size=3, capacity=10)

        launched = [ledger.admit() for _ in range(3)]
        assert [f.sequence for f in launched] == [0, 1, 2]
        assert ledger.next_seq == 3
        assert ledger.admit() is None
        assert ledger[3].state == FrameState.UNSENT

    def test_admit_out_of_order_is_violation(self):
        """Only next_seq can be admitted."""
        ledger = FrameLedger(window_size=3, capacity=10)

        with pytest.raises(InvariantViolation):
            ledger.admit(2)
        assert ledger.next_seq == 0
        assert ledger[2].state == FrameState.UNSENT

    def test_admit_expected_sequence_when_full(self):
        """The expected sequence is refused, not raised, once the window is full."""
        ledger = FrameLedger(window_size=2, capacity=10)
        assert ledger.admit(0).sequence == 0
        assert ledger.admit(1).sequence == 1

        assert ledger.admit(2) is None
        assert ledger.next_seq == 2

    def test_cumulative_ack(self):
        """ACK k acknowledges every frame up to k and slides the window."""
        ledger = FrameLedger(window_size=3, capacity=10)
        for _ in range(3):
            ledger.admit()

        base = ledger.cumulative_ack(1)

        assert base == 2
        assert ledger[0].is_acknowledged
        assert ledger[1].is_acknowledged
        assert ledger[2].state == FrameState.OUTBOUND
        assert ledger.window.available_slots == 2

    def test_cumulative_ack_outside_sent_range(self):
        """An ACK for an unsent frame cannot happen."""
        ledger = FrameLedger(window_size=3, capacity=10)
        ledger.admit()

        with pytest.raises(InvariantViolation):
            ledger.cumulative_ack(1)

    def test_duplicate_ack_keeps_base(self):
        """An old cumulative ACK leaves the base where it is."""
        ledger = FrameLedger(window_size=3, capacity=10)
        for _ in range(3):
            ledger.admit()
        ledger.cumulative_ack(1)

        assert ledger.cumulative_ack(0) == 2

    def test_ack_clears_selection(self):
        """Acknowledged frames drop their selection."""
        ledger = FrameLedger(window_size=3, capacity=10)
        ledger.admit()
        ledger.select(0)
        ledger.cumulative_ack(0)

        assert ledger.selected_sequence() is None

    def test_mark_lost(self):
        """Killing an in-flight frame freezes it as LOST."""
        ledger = FrameLedger(window_size=3, capacity=10)
        ledger.admit()
        ledger.select(0)
        ledger.mark_lost(0)

        assert ledger[0].state == FrameState.LOST
        assert not ledger[0].selected
        assert not ledger.has_in_flight()

    def test_mark_lost_requires_in_flight(self):
        """Unsent frames cannot be lost."""
        ledger = FrameLedger(window_size=3, capacity=10)

        with pytest.raises(InvariantViolation):
            ledger.mark_lost(0)

    def test_retransmit_outstanding(self):
        """Go-Back-N relaunches every frame from base to next."""
        ledger = FrameLedger(window_size=4, capacity=10)
        for _ in range(4):
            ledger.admit()
        ledger.cumulative_ack(0)
        ledger.mark_lost(1)
        ledger[2].turn_around()

        resent = ledger.retransmit_outstanding()

        assert resent == [1, 2, 3]
        for seq in resent:
            assert ledger[seq].state == FrameState.OUTBOUND
            assert ledger[seq].needs_ack
        assert ledger[0].is_acknowledged

    def test_single_selection(self):
        """Selecting a frame deselects the previous one."""
        ledger = FrameLedger(window_size=3, capacity=10)
        ledger.admit()
        ledger.admit()
        ledger.select(0)
        ledger.select(1)

        assert ledger.selected_sequence() == 1
        assert not ledger[0].selected

    def test_select_requires_in_flight(self):
        """Only moving frames can be selected."""
        ledger = FrameLedger(window_size=3, capacity=10)

        with pytest.raises(InvariantViolation):
            ledger.select(0)

    def test_all_reached_before(self):
        """In-order check looks at every earlier frame."""
        ledger = FrameLedger(window_size=3, capacity=10)
        for _ in range(3):
            ledger.admit()
        ledger[0].reached_receiver = True

        assert ledger.all_reached_before(1)
        assert not ledger.all_reached_before(2)

    def test_invariant_check_detects_corruption(self):
        """Direct corruption of a record is caught."""
        ledger = FrameLedger(window_size=3, capacity=10)
        ledger.admit()
        ledger[5].state = FrameState.OUTBOUND

        with pytest.raises(InvariantViolation):
            ledger.check_invariants()

    def test_reset(self):
        """Reset rewinds the window and clears every record."""
        ledger = FrameLedger(window_size=3, capacity=10)
        ledger.admit()
        ledger.cumulative_ack(0)
        ledger.reset()

        assert ledger.base == 0
        assert ledger.next_seq == 0
        assert all(f.state == FrameState.UNSENT for f in ledger.frames)

    def test_window_state(self):
        """Window state lists the outstanding sequence numbers."""
        ledger = FrameLedger(window_size=3, capacity=10)
        ledger.admit()
        ledger.admit()

        state = ledger.get_window_state()
        assert state['outstanding'] == [0, 1]
        assert state['available'] == 1


class TestTimeoutWatchdog:
    """Tests for TimeoutWatchdog."""

    def test_arm_notifies_callback(self):
        """Arming hands the expiry event to the scheduler callback."""
        scheduled = []
        watchdog = TimeoutWatchdog(timeout=20.0, on_arm=scheduled.append)

        event = watchdog.arm(bound_sequence=0, current_time=5.0)

        assert scheduled == [event]
        assert event.expiry_time == 25.0
        assert watchdog.armed
        assert watchdog.deadline == 25.0

    def test_expiry_of_current_instance(self):
        """The running instance expires at its deadline."""
        watchdog = TimeoutWatchdog(timeout=20.0)
        event = watchdog.arm(0, 0.0)

        assert watchdog.check_expired(event, 20.0)
        assert watchdog.state == TimerState.EXPIRED
        assert watchdog.total_expiries == 1

    def test_premature_expiry_ignored(self):
        """An event checked before its deadline does not fire."""
        watchdog = TimeoutWatchdog(timeout=20.0)
        event = watchdog.arm(0, 0.0)

        assert not watchdog.check_expired(event, 10.0)
        assert watchdog.armed

    def test_rearm_makes_previous_stale(self):
        """A restart supersedes the earlier expiry."""
        watchdog = TimeoutWatchdog(timeout=20.0)
        old = watchdog.arm(0, 0.0)
        new = watchdog.arm(1, 5.0)

        assert not watchdog.check_expired(old, 20.0)
        assert watchdog.stale_expiries == 1
        assert watchdog.check_expired(new, 25.0)

    def test_disarm_makes_pending_stale(self):
        """A stopped timer never fires."""
        watchdog = TimeoutWatchdog(timeout=20.0)
        event = watchdog.arm(0, 0.0)
        watchdog.disarm()

        assert not watchdog.armed
        assert watchdog.deadline is None
        assert not watchdog.check_expired(event, 20.0)

    def test_remaining_time(self):
        """Remaining time counts down from the arm time."""
        watchdog = TimeoutWatchdog(timeout=20.0)
        assert watchdog.get_remaining_time(0.0) == 0.0

        watchdog.arm(0, 2.0)
        assert watchdog.get_remaining_time(12.0) == pytest.approx(10.0)

    def test_timer_event_ordering(self):
        """Expiry events order by time only."""
        early = TimerEvent(expiry_time=1.0, generation=9, bound_sequence=0)
        late = TimerEvent(expiry_time=2.0, generation=1, bound_sequence=0)

        assert early < late

    def test_invalid_timeout(self):
        """Timeout must be positive."""
        with pytest.raises(ValueError):
            TimeoutWatchdog(timeout=0)


class TestTransitEngine:
    """Tests for TransitEngine with a two-tick leg."""

    @pytest.fixture
    def setup(self):
        ledger = FrameLedger(window_size=3, capacity=6)
        watchdog = TimeoutWatchdog(timeout=10.0)
        engine = TransitEngine(ledger, watchdog, step=5, distance=10)
        return ledger, watchdog, engine

    def test_wake_only_when_something_moves(self, setup):
        """Wake reports a new tick loop once."""
        ledger, _, engine = setup

        assert not engine.wake()
        ledger.admit()
        assert engine.wake()
        assert not engine.wake()

    def test_halt_bumps_generation(self, setup):
        """Halting invalidates queued ticks."""
        ledger, _, engine = setup
        ledger.admit()
        engine.wake()
        engine.halt()

        assert not engine.active
        assert engine.generation == 1

    def test_in_order_arrival_sends_ack(self, setup):
        """An in-order frame turns into its acknowledgement."""
        ledger, _, engine = setup
        ledger.admit()

        assert engine.tick(0.1) == []
        events = engine.tick(0.2)

        assert len(events) == 1
        assert events[0].event_type == TransitEventType.FRAME_ACCEPTED
        assert events[0].message == "Frame #0 has been received. Acknowledgement sent."
        assert ledger[0].state == FrameState.RETURN
        assert ledger[0].reached_receiver

    def test_out_of_order_arrival_is_held(self, setup):
        """A frame whose predecessor is lost gets no acknowledgement."""
        ledger, _, engine = setup
        ledger.admit()
        ledger.admit()
        ledger.mark_lost(0)

        engine.tick(0.1)
        events = engine.tick(0.2)

        assert events[0].event_type == TransitEventType.FRAME_HELD
        assert events[0].message == "Frame #1 has been received. No acknowledgement sent."
        assert ledger[1].state == FrameState.AT_RECEIVER
        assert not engine.active

    def test_ack_restarts_timer_for_new_base(self, setup):
        """An ACK with frames still outstanding re-arms the watchdog."""
        ledger, watchdog, engine = setup
        ledger.admit()
        watchdog.arm(0, 0.0)
        engine.tick(0.1)
        engine.tick(0.2)
        ledger.admit()

        engine.tick(0.3)
        events = engine.tick(0.4)

        ack = [e for e in events if e.event_type == TransitEventType.ACK_RECEIVED][0]
        assert ack.base == 1
        assert ack.timer_restarted
        assert ack.message.endswith("Timeout timer has restarted.")
        assert watchdog.bound_sequence == 1
        assert watchdog.deadline == pytest.approx(10.4)

    def test_last_ack_stops_timer(self, setup):
        """Draining the window disarms the watchdog and idles the engine."""
        ledger, watchdog, engine = setup
        ledger.admit()
        watchdog.arm(0, 0.0)
        for t in range(4):
            events = engine.tick(0.1 * (t + 1))

        assert events[0].message == (
            "Frame #0 acknowledgement has been received. Timeout timer stopped."
        )
        assert not watchdog.armed
        assert not engine.active
        assert ledger.base == 1

    def test_simultaneous_acks_processed_in_order(self, setup):
        """Several ACKs arriving together slide the window one by one."""
        ledger, watchdog, engine = setup
        for _ in range(3):
            ledger.admit()
        watchdog.arm(0, 0.0)

        for t in range(4):
            events = engine.tick(0.1 * (t + 1))

        assert [e.base for e in events] == [1, 2, 3]
        assert not watchdog.armed
        assert ledger.window.is_empty

    def test_invalid_geometry(self, setup):
        """Step and distance must be positive."""
        ledger, watchdog, _ = setup
        with pytest.raises(ValueError):
            TransitEngine(ledger, watchdog, step=0, distance=10)
