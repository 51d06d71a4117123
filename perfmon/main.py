#!/usr/bin/env python3
"""
Runtime Performance Monitor - Standalone Host Loop

Drives the profiler from its own paced tick loop, for monitoring a process
from the outside or trying out configurations and benchmarks.

Usage:
    # Monitor for 30 seconds at 60 ticks/s
    python -m perfmon.main --duration 30

    # Run a 10 second benchmark on the mobile platform profile
    python -m perfmon.main --platform mobile --benchmark-duration 10

    # Load a saved profile and save the active config under a new name
    python -m perfmon.main --profile Console --save-profile ConsoleCopy
"""

import argparse
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import psutil

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from perfmon.config import Config, PlatformMode, load_config
from perfmon.profiler import Profiler
from perfmon.benchmark import BenchmarkConfig
from perfmon.telemetry import TickReading
from perfmon.utils.platform import get_platform_name
from perfmon.utils.timing import TickCostTracker, TickPacer

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


class MonitorHost:
    """
    Standalone host that ticks a Profiler at a fixed rate.

    Stands in for the per-frame callback a game loop or render loop would
    provide.
    """

    def __init__(self, profiler: Profiler, tick_rate: float, duration_s: float = 0.0):
        """
        Initialize host.

        Args:
            profiler: Profiler to drive
            tick_rate: Target ticks per second
            duration_s: Stop after this many seconds (0 = until interrupted)
        """
        self._profiler = profiler
        self._pacer = TickPacer(tick_rate)
        self._duration_s = duration_s
        self._running = False
        self._costs = TickCostTracker()

        # Signal handling
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def run(self) -> None:
        """Tick until the duration elapses or a signal arrives."""
        logger.info(
            f"Starting tick loop at {self._pacer.tick_rate:.0f} ticks/s "
            f"({self._pacer.budget_ms:.2f} ms per tick)"
        )
        self._running = True
        started: Optional[float] = None

        while self._running:
            began = self._pacer.begin()
            if started is None:
                started = began

            reading = TickReading.capture(self._pacer.delta_s, now=began)
            with self._costs.measure():
                self._profiler.tick(reading)

            if self._duration_s > 0 and began - started >= self._duration_s:
                self._running = False

            self._pacer.finish(began)

        logger.info(
            f"Tick loop stopped after {self._pacer.ticks} ticks "
            f"(tick cost mean {self._costs.mean_ms:.3f} ms, max {self._costs.max_ms:.3f} ms, "
            f"{self._pacer.overruns} overruns)"
        )

    def _signal_handler(self, signum, frame) -> None:
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        self._running = False


def _register_default_metrics(profiler: Profiler) -> None:
    """Custom metrics sampled during a CLI benchmark."""
    process = psutil.Process()
    process.cpu_percent(interval=None)  # prime the counter

    profiler.register_custom_metric(
        "Process CPU (%)",
        lambda: process.cpu_percent(interval=None),
        50.0,
        75.0,
    )
    profiler.register_custom_metric(
        "Memory Allocation",
        lambda: process.memory_info().rss / psutil.virtual_memory().total,
        0.7,
        0.9,
    )


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Runtime Performance Monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m perfmon.main --duration 30
  python -m perfmon.main --platform mobile --benchmark-duration 10
  python -m perfmon.main --profile Console --save-profile ConsoleCopy
        """,
    )

    loop_group = parser.add_argument_group("Tick Loop")
    loop_group.add_argument(
        "--tick-rate",
        type=float,
        default=60.0,
        help="Target ticks per second (default: 60)",
    )
    loop_group.add_argument(
        "--duration",
        type=float,
        default=0.0,
        help="Seconds to run; 0 runs until interrupted (default: 0)",
    )

    bench_group = parser.add_argument_group("Benchmark")
    bench_group.add_argument(
        "--benchmark-duration",
        type=float,
        default=None,
        help="Start a benchmark of this many seconds with the built-in custom metrics",
    )
    bench_group.add_argument(
        "--benchmark-name",
        type=str,
        default="CLI Benchmark",
        help="Benchmark name used in the report (default: CLI Benchmark)",
    )
    bench_group.add_argument(
        "--no-report",
        action="store_true",
        help="Do not write a benchmark report file",
    )

    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration YAML file",
    )
    config_group.add_argument(
        "--profile",
        type=str,
        default=None,
        help="Load a saved configuration profile",
    )
    config_group.add_argument(
        "--save-profile",
        type=str,
        default=None,
        help="Save the active configuration under this profile name on exit",
    )
    config_group.add_argument(
        "--platform",
        type=str,
        choices=[m.value for m in PlatformMode],
        default=None,
        help="Platform profiling mode (default: from config)",
    )
    config_group.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Directory for CSV logs and reports (default: from config)",
    )
    config_group.add_argument(
        "--async-writes",
        action="store_true",
        help="Write CSV rows from a background thread",
    )
    config_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from config)",
    )

    return parser.parse_args()


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Return a copy of ``config`` with the CLI overrides applied."""
    system = replace(config.system)

    if args.log_dir:
        system.log_directory = args.log_dir

    if args.async_writes:
        system.async_writes = True

    if args.log_level:
        system.log_level = args.log_level

    config = replace(config, system=system)
    if args.platform:
        config = replace(config, platform_mode=PlatformMode(args.platform))

    return config


def activate_profile(profiler: Profiler, args: argparse.Namespace) -> bool:
    """
    Load the --profile named on the command line, if any.

    CLI overrides are applied on top of the loaded profile, so an explicit
    --platform wins over the profile's platform mode.

    Returns:
        False if the profile could not be loaded
    """
    if not args.profile:
        return True

    if not profiler.load_configuration(args.profile):
        logger.error(f"Could not load profile '{args.profile}'")
        return False

    profiler.apply_config(apply_overrides(profiler.config, args))
    return True


def main() -> int:
    """Main entry point."""
    args = parse_args()

    # Load configuration
    try:
        config = apply_overrides(load_config(args.config), args)
    except Exception as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    # Set logging level
    logging.getLogger().setLevel(getattr(logging, config.system.log_level.upper(), logging.INFO))

    if args.tick_rate <= 0:
        logger.error("--tick-rate must be positive")
        return 1

    logger.info(f"Platform: {get_platform_name()}")

    profiler = Profiler(config)
    try:
        if not activate_profile(profiler, args):
            return 1

        if args.benchmark_duration is not None:
            _register_default_metrics(profiler)
            profiler.start_benchmark(
                BenchmarkConfig(
                    benchmark_name=args.benchmark_name,
                    benchmark_duration=args.benchmark_duration,
                    generate_detailed_report=not args.no_report,
                )
            )

        host = MonitorHost(profiler, tick_rate=args.tick_rate, duration_s=args.duration)
        host.run()

        for result in profiler.compare_benchmarks():
            logger.info(f"Benchmark '{result.benchmark_name}' at {result.timestamp:%H:%M:%S}")
            for name, value in result.average_metrics.items():
                logger.info(f"  {name}: avg={value:.2f} peak={result.peak_metrics[name]:.2f}")
            for alert in result.alerts:
                logger.warning(f"  {alert}")

        if args.save_profile and not profiler.save_configuration(args.save_profile):
            return 1

        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    finally:
        profiler.shutdown()


if __name__ == "__main__":
    sys.exit(main())
