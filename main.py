#!/usr/bin/env python3
"""
Go-Back-N ARQ Windowing Simulator - Main Entry Point

This is the main CLI interface for the windowing simulator.
It provides options for:
- Scripted scenario runs with trace export and plots
- Interactive console driving the simulation in real time
- Configuration summary

Usage:
    python main.py --scenario lost-frame --plot
    python main.py --scenario happy-path --csv trace.csv
    python main.py --interactive
"""

import argparse
import os
import sys

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import PLOTS_DIR, TRACE_CSV


def run_scenario(args):
    """Run one built-in scenario in virtual time."""
    from simulation.simulator import SimulatorConfig
    from simulation.scenarios import ScenarioRunner
    from src.utils.logger import LogLevel

    config = SimulatorConfig(
        timeout=args.timeout,
        log_level=LogLevel.DEBUG if args.verbose else LogLevel.INFO
    )
    runner = ScenarioRunner.from_name(args.scenario, config=config, duration=args.until)

    print("=" * 60)
    print(f"GO-BACK-N SCENARIO: {args.scenario}")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Window size: {config.window_size}")
    print(f"  Total frames: {config.total_frames}")
    print(f"  Timeout: {config.timeout} s")
    print(f"  Round trip: {config.get_round_trip_time():.1f} s")
    print(f"  Duration: {runner.duration} s\n")

    results = runner.run()

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nCommands:")
    for result in results['commands']:
        status = "ok" if result['ok'] else f"rejected ({result['error']})"
        print(f"  t={result['time']:6.2f}s {result['command']}{result['args'] or ''}: {status}")

    final = results['final']
    print(f"\nFinal window: base={final.base}, next={final.next_seq}")
    for frame in final.frames[:final.next_seq]:
        print(f"  Frame #{frame['sequence']}: {frame['state']}")

    stats = results['statistics']
    print(f"\nStatistics:")
    print(f"  Frames sent: {stats['frames_sent']}")
    print(f"  Frames acknowledged: {stats['frames_acked']}")
    print(f"  Retransmissions: {stats['retransmissions']}")
    print(f"  Timeouts: {stats['timeouts']}")
    print(f"  Stale timer expiries: {stats['stale_timeouts']}")
    print(f"  Mean window occupancy: {stats['mean_window_occupancy']:.2f}")

    if args.csv:
        path = runner.save_csv(args.csv)
        print(f"\nTrace saved to: {path}")

    if args.plot:
        from visualization.timeline import TimelinePlot
        os.makedirs(PLOTS_DIR, exist_ok=True)
        plot = TimelinePlot(runner.to_dataframe())
        timeline = plot.plot_progress(
            output_file=os.path.join(PLOTS_DIR, f"{args.scenario}_timeline.png"),
            title=f"Go-Back-N: {args.scenario}"
        )
        states = plot.plot_state_map(
            output_file=os.path.join(PLOTS_DIR, f"{args.scenario}_states.png")
        )
        print(f"\nPlots:")
        print(f"  Timeline: {timeline}")
        print(f"  States: {states}")

    return results


# Console command -> (min args, max args, usage)
CONSOLE_COMMANDS = {
    'send': (0, 0, "send"),
    'pause': (0, 0, "pause"),
    'resume': (0, 0, "resume"),
    'reset': (0, 0, "reset"),
    'select': (1, 2, "select N [POSITION]"),
    'kill': (0, 1, "kill [N]"),
    'status': (0, 0, "status"),
}


def format_status(snapshot) -> str:
    """One-screen view of a snapshot."""
    lanes = []
    for frame in snapshot.frames:
        mark = {
            'UNSENT': '.', 'OUTBOUND': 'v', 'AT_RECEIVER': 'r',
            'RETURN': '^', 'ACKNOWLEDGED': '#', 'LOST': 'x'
        }[frame['state']]
        lanes.append(mark.upper() if frame['selected'] else mark)
    lines = [f"  [{''.join(lanes)}]  base={snapshot.base} next={snapshot.next_seq} "
             f"timer={'on' if snapshot.watchdog_armed else 'off'}"
             f"{' PAUSED' if snapshot.paused else ''}"]
    lines.extend(f"    {message}" for message in snapshot.event_log)
    return "\n".join(lines)


def execute_command(sim, words) -> str:
    """
    Run one console line against a simulator.

    Args:
        sim: GoBackNSimulator to drive
        words: Command name followed by its integer arguments

    Returns:
        Text to show the user
    """
    command, rest = words[0].lower(), words[1:]
    if command not in CONSOLE_COMMANDS:
        return f"  Unknown command: {command}"

    low, high, usage = CONSOLE_COMMANDS[command]
    if not low <= len(rest) <= high:
        return f"  Usage: {usage}"
    try:
        params = [int(value) for value in rest]
    except ValueError:
        return "  Frame numbers must be integers"

    if command == 'status':
        return format_status(sim.snapshot())

    result = getattr(sim, command)(*params)
    return f"  {'OK' if result.ok else 'ERROR'}: {result.message}"


def run_interactive(args):
    """Drive the simulation in real time from a command prompt."""
    from simulation.simulator import SimulatorConfig
    from simulation.realtime import RealTimeDriver
    from src.utils.logger import LogLevel

    config = SimulatorConfig(
        timeout=args.timeout,
        log_level=LogLevel.DEBUG if args.verbose else LogLevel.WARNING
    )

    print("=" * 60)
    print("GO-BACK-N INTERACTIVE SIMULATION")
    print("=" * 60)
    print("Commands: send, pause, resume, select N [POSITION], kill [N], reset, status, quit\n")

    with RealTimeDriver(config) as driver:
        while True:
            try:
                words = input("gbn> ").strip().split()
            except EOFError:
                break
            if not words:
                continue
            if words[0].lower() in ('quit', 'exit'):
                break
            print(execute_command(driver.simulator, words))

        if driver.error:
            print(f"Simulation stopped: {driver.error}")


def show_config(args):
    """Display current configuration."""
    print("=" * 60)
    print("SIMULATOR CONFIGURATION")
    print("=" * 60)

    import config as cfg

    print(f"\nSliding Window:")
    print(f"  Window Size: {cfg.WINDOW_SIZE}")
    print(f"  Total Frames: {cfg.TOTAL_FRAMES}")

    print(f"\nTransit:")
    print(f"  Frame Rate: {cfg.FRAME_RATE} ticks/s")
    print(f"  Ticks per Leg: {cfg.calculate_ticks_per_leg()}")
    print(f"  Round Trip Time: {cfg.calculate_round_trip_time():.1f} s")

    print(f"\nTimeout: {cfg.TIMEOUT_SEC} s")
    print(f"Event log size: {cfg.EVENT_LOG_SIZE}")


def main():
    from simulation.scenarios import SCENARIOS
    from config import TIMEOUT_SEC

    parser = argparse.ArgumentParser(
        description="Go-Back-N ARQ Windowing Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Lost frame recovered by Go-Back-N:
    python main.py --scenario lost-frame --plot

  Export a trace:
    python main.py --scenario out-of-order --csv trace.csv

  Real-time console:
    python main.py --interactive

  Show configuration:
    python main.py --config
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--scenario', choices=sorted(SCENARIOS),
                     help='Run a built-in scenario')
    mode.add_argument('--interactive', action='store_true',
                     help='Interactive real-time console')
    mode.add_argument('--config', action='store_true',
                     help='Show configuration')

    parser.add_argument('--timeout', '-t', type=float, default=TIMEOUT_SEC,
                       help=f'Retransmission timeout in seconds (default: {TIMEOUT_SEC})')
    parser.add_argument('--until', type=float, default=None,
                       help='Scenario duration in seconds')

    # Output options
    parser.add_argument('--csv', type=str, nargs='?', const=TRACE_CSV,
                       help='Save the scenario trace as CSV')
    parser.add_argument('--plot', action='store_true',
                       help='Render timeline plots of the scenario')
    parser.add_argument('--verbose', '-v', action='store_true',
                       help='Verbose output')

    args = parser.parse_args()

    # Execute selected mode
    if args.scenario:
        run_scenario(args)
    elif args.interactive:
        run_interactive(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
