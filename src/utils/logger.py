"""
Simulation Logger

This module provides logging utilities for the simulation: console and
file output stamped with simulation time, a level filter and one category
tag per protocol concern.
"""

from typing import Optional, TextIO, Union
from collections import Counter
from datetime import datetime
from enum import Enum, IntEnum
import os

from config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class LogCategory(Enum):
    """Protocol concern a log line belongs to."""
    TX = "TX"              # frame put on the wire
    RX = "RX"              # frame reached the receiver
    ACK = "ACK"            # acknowledgement reached the sender
    TIMER = "TIMER"        # watchdog armed, stopped or superseded
    TIMEOUT = "TIMEOUT"    # watchdog expiry
    RETX = "RETX"          # Go-Back-N retransmission
    LOSS = "LOSS"          # frame or acknowledgement destroyed
    WINDOW = "WINDOW"      # window pointers moved
    CMD = "CMD"            # user command
    SIM = "SIM"            # run start/end and driver faults


class SimulationLogger:
    """
    Logger for simulation events.

    Every line carries the current simulation time when the scheduler has
    set one (wall-clock time otherwise), the level, the logger name and
    the category tag.

    Attributes:
        name: Logger name
        level: Minimum log level
        file: Optional file for logging (written without colors)
    """

    # Color codes for terminal output
    COLORS = {
        LogLevel.DEBUG: '\033[36m',     # Cyan
        LogLevel.INFO: '\033[32m',      # Green
        LogLevel.WARNING: '\033[33m',   # Yellow
        LogLevel.ERROR: '\033[31m',     # Red
        LogLevel.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "Simulator",
        level: int = DEFAULT_LOG_LEVEL,
        log_file: Optional[str] = None,
        use_colors: bool = True
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            log_file: Optional file path for logging
            use_colors: Use ANSI colors on the console
        """
        self.name = name
        self.level = level
        self.use_colors = use_colors

        self.file: Optional[TextIO] = None
        if log_file:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self.file = open(log_file, 'w')

        self.sim_time: Optional[float] = None

        self.message_counts = Counter()
        self.category_counts = Counter()

    def set_sim_time(self, time: float):
        """Set current simulation time for log messages."""
        self.sim_time = time

    def set_level(self, level: int):
        """Set minimum log level."""
        self.level = level

    def _stamp(self) -> str:
        if self.sim_time is None:
            return f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]"
        return f"[{self.sim_time:8.2f}s]"

    def _format_message(
        self,
        level: LogLevel,
        message: str,
        category: Optional[LogCategory],
        colored: bool
    ) -> str:
        level_str = level.name.ljust(8)
        if colored:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"

        tag = f" [{category.value}]" if category else ""
        return f"{self._stamp()} {level_str} [{self.name}]{tag} {message}"

    def _log(
        self,
        level: LogLevel,
        message: str,
        category: Union[LogCategory, str, None] = None
    ):
        if level < self.level:
            return
        if isinstance(category, str):
            category = LogCategory(category)

        self.message_counts[level] += 1
        if category:
            self.category_counts[category] += 1

        print(self._format_message(level, message, category, self.use_colors))
        if self.file:
            self.file.write(self._format_message(level, message, category, False) + '\n')
            self.file.flush()

    def debug(self, message: str, category: Union[LogCategory, str, None] = None):
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Union[LogCategory, str, None] = None):
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Union[LogCategory, str, None] = None):
        self._log(LogLevel.WARNING, message, category)

    def error(self, message: str, category: Union[LogCategory, str, None] = None):
        self._log(LogLevel.ERROR, message, category)

    def critical(self, message: str, category: Union[LogCategory, str, None] = None):
        self._log(LogLevel.CRITICAL, message, category)

    # Protocol events
    def frame_sent(self, seq_num: int):
        self.debug(f"Frame {seq_num} sent", LogCategory.TX)

    def frame_received(self, seq_num: int):
        self.debug(f"Frame {seq_num} received in order, ACK {seq_num} sent", LogCategory.RX)

    def frame_held(self, seq_num: int):
        self.info(f"Frame {seq_num} received out of order, no ACK", LogCategory.RX)

    def ack_received(self, ack_num: int, base: int):
        self.debug(f"ACK {ack_num} received, base={base}", LogCategory.ACK)

    def timer_armed(self, base: int, deadline: float):
        self.debug(f"Timer armed for frame {base}, expires at {deadline:.2f}s",
                   LogCategory.TIMER)

    def timer_stopped(self, reason: str):
        self.debug(f"Timer stopped ({reason})", LogCategory.TIMER)

    def stale_timer(self, generation: int, current: int):
        """Log a discarded expiry of a superseded timer."""
        self.debug(f"Discarded stale timer generation {generation} (current {current})",
                   LogCategory.TIMER)

    def timeout(self, base: int, resent: list):
        self.warning(f"Timeout for frame {base}, going back to {resent}", LogCategory.TIMEOUT)

    def retransmit(self, seq_num: int):
        self.info(f"Retransmitting frame {seq_num}", LogCategory.RETX)

    def frame_killed(self, seq_num: int, is_ack: bool):
        what = f"ACK {seq_num}" if is_ack else f"Frame {seq_num}"
        self.info(f"{what} destroyed in flight", LogCategory.LOSS)

    def window_update(self, base: int, next_seq: int, size: int):
        self.debug(f"Window: base={base}, next={next_seq}, size={size}", LogCategory.WINDOW)

    def command(self, name: str, message: str):
        self.info(f"{name}: {message}", LogCategory.CMD)

    def command_rejected(self, name: str, reason: str):
        self.warning(f"{name} rejected: {reason}", LogCategory.CMD)

    def simulation_start(self, params: dict):
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Simulation started: {param_str}", LogCategory.SIM)

    def simulation_end(self, stats: dict):
        self.info(
            f"Simulation ended: acked={stats.get('frames_acked', 0)}, "
            f"retransmissions={stats.get('retransmissions', 0)}",
            LogCategory.SIM
        )

    def get_summary(self) -> dict:
        """
        Get logging summary.

        Returns:
            Counts per level name and per category tag
        """
        return {
            'message_counts': {level.name: self.message_counts[level] for level in LogLevel},
            'category_counts': {c.value: n for c, n in self.category_counts.items()},
            'total_messages': sum(self.message_counts.values())
        }

    def close(self):
        """Close log file if open."""
        if self.file:
            self.file.close()
            self.file = None

    def __del__(self):
        self.close()
