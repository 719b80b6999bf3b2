"""
Configuration file for the Go-Back-N ARQ Windowing Simulator.
Contains all fixed baseline parameters of the visual simulation.
"""

import os

# =============================================================================
# SLIDING WINDOW PARAMETERS
# =============================================================================

# Send window size (frames allowed outstanding at once)
WINDOW_SIZE = 5

# Total number of frames the sender can ever transmit
TOTAL_FRAMES = 20

# =============================================================================
# TIMEOUT PARAMETERS
# =============================================================================

# Retransmission timeout (seconds) - keep above the round trip time (18.8 s)
TIMEOUT_SEC = 20

# =============================================================================
# TRANSIT PARAMETERS
# =============================================================================

# Scheduling ticks per second of the transit engine
FRAME_RATE = 5

# Distance covered by an in-flight frame on every tick
PROGRESS_STEP = 5

# Distance between sender and receiver. Arrival is handled in the tick that
# reaches it: 47 ticks per leg, one tick sooner than the applet, which
# only notices the arrival on its next loop
TRANSIT_DISTANCE = 235

# Length of a frame along its path, used by the selection hit test
FRAME_LENGTH = 30

# =============================================================================
# EVENT LOG
# =============================================================================

# Number of recent event messages kept for display
EVENT_LOG_SIZE = 5

INITIAL_MESSAGE = "Click 'Send Frame' to start."

# =============================================================================
# LOGGING
# =============================================================================

# Logging verbosity levels
LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# =============================================================================
# OUTPUT PATHS
# =============================================================================

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
PLOTS_DIR = os.path.join(OUTPUT_DIR, "plots")
LOGS_DIR = os.path.join(OUTPUT_DIR, "logs")

# Default trace CSV filename
TRACE_CSV = os.path.join(OUTPUT_DIR, "trace.csv")

# =============================================================================
# DERIVED PARAMETERS (calculated from fixed parameters)
# =============================================================================

def calculate_tick_interval(frame_rate=FRAME_RATE):
    """Seconds between two transit engine ticks."""
    return 1.0 / frame_rate

def calculate_ticks_per_leg(distance=TRANSIT_DISTANCE, step=PROGRESS_STEP):
    """Number of ticks a frame (or its acknowledgement) needs for one leg."""
    return -(-distance // step)

def calculate_round_trip_time(frame_rate=FRAME_RATE,
                              distance=TRANSIT_DISTANCE,
                              step=PROGRESS_STEP):
    """
    Time from sending a frame until its acknowledgement reaches the sender.
    RTT = 2 * ticks_per_leg * tick_interval
    """
    return 2 * calculate_ticks_per_leg(distance, step) * calculate_tick_interval(frame_rate)


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("GO-BACK-N ARQ SIMULATOR - CONFIGURATION")
    print("=" * 60)
    print(f"\nSliding Window:")
    print(f"  Window Size: {WINDOW_SIZE}")
    print(f"  Total Frames: {TOTAL_FRAMES}")

    print(f"\nTransit:")
    print(f"  Frame Rate: {FRAME_RATE} ticks/s")
    print(f"  Progress Step: {PROGRESS_STEP}")
    print(f"  Transit Distance: {TRANSIT_DISTANCE}")
    print(f"  Ticks per Leg: {calculate_ticks_per_leg()}")
    print(f"  Round Trip Time: {calculate_round_trip_time():.1f} s")

    print(f"\nTimeout:")
    print(f"  Timeout: {TIMEOUT_SEC} s")
    if TIMEOUT_SEC <= calculate_round_trip_time():
        print("  WARNING: timeout is shorter than the round trip time")
