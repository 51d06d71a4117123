#!/usr/bin/env python3
"""
Performance Log Analysis Tool

Analyzes performance_log_*.csv files written by the runtime performance
monitor and generates summary statistics with graphs saved as PNG files.

Usage:
    python tools/analyze_perf_log.py [log_file] [--output-dir DIR]

Examples:
    python tools/analyze_perf_log.py PerformanceLogs/performance_log_20260101_120000.csv
    python tools/analyze_perf_log.py PerformanceLogs/performance_log_20260101_120000.csv -o reports/
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List

import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.gridspec import GridSpec

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from perfmon.telemetry.logger import LOG_COLUMNS


@dataclass
class PerfLogStats:
    """Statistics computed from a performance log."""
    total_samples: int = 0
    duration_seconds: float = 0.0

    # FPS stats
    fps_mean: float = 0.0
    fps_std: float = 0.0
    fps_min: float = 0.0
    fps_max: float = 0.0
    fps_below_warning_ratio: float = 0.0
    fps_below_critical_ratio: float = 0.0

    # Frame time stats (ms)
    frame_time_mean: float = 0.0
    frame_time_p95: float = 0.0
    frame_time_max: float = 0.0

    # Memory stats (fraction of system memory)
    memory_mean: float = 0.0
    memory_max: float = 0.0
    memory_growth: float = 0.0


def load_perf_log(filepath: Path) -> pd.DataFrame:
    """Load a header-less performance CSV into a DataFrame."""
    df = pd.read_csv(filepath, header=None, names=list(LOG_COLUMNS))
    df = df.apply(pd.to_numeric, errors="coerce").dropna(subset=["time"])

    if df.empty:
        raise ValueError(f"No valid performance rows found in {filepath}")

    df = df.sort_values("time").reset_index(drop=True)
    df["elapsed"] = df["time"] - df["time"].iloc[0]

    print(f"Loaded {len(df)} performance samples from {filepath}")
    return df


def compute_stats(
    df: pd.DataFrame,
    fps_warning: float = 45.0,
    fps_critical: float = 30.0,
) -> PerfLogStats:
    """Compute statistics from a performance DataFrame."""
    stats = PerfLogStats()

    stats.total_samples = len(df)
    if len(df) > 1:
        stats.duration_seconds = float(df["elapsed"].iloc[-1])

    fps = df["fps_live"].replace([np.inf, -np.inf], np.nan).dropna()
    if len(fps) > 0:
        stats.fps_mean = fps.mean()
        stats.fps_std = fps.std() if len(fps) > 1 else 0.0
        stats.fps_min = fps.min()
        stats.fps_max = fps.max()
        stats.fps_below_warning_ratio = (fps < fps_warning).sum() / len(fps)
        stats.fps_below_critical_ratio = (fps < fps_critical).sum() / len(fps)

    frame_time = df["gpu_live"].dropna()
    if len(frame_time) > 0:
        stats.frame_time_mean = frame_time.mean()
        stats.frame_time_p95 = frame_time.quantile(0.95)
        stats.frame_time_max = frame_time.max()

    memory = df["mem_live"].dropna()
    if len(memory) > 0:
        stats.memory_mean = memory.mean()
        stats.memory_max = memory.max()
        stats.memory_growth = memory.iloc[-1] - memory.iloc[0]

    return stats


def print_stats(stats: PerfLogStats) -> None:
    """Print statistics to console."""
    print("\n" + "=" * 60)
    print("PERFORMANCE LOG ANALYSIS")
    print("=" * 60)

    print(f"\nSession Overview:")
    print(f"   Samples: {stats.total_samples:,}")
    print(f"   Duration: {stats.duration_seconds:.1f} seconds ({stats.duration_seconds/60:.1f} min)")

    print(f"\nFPS:")
    print(f"   Mean: {stats.fps_mean:.1f} FPS")
    print(f"   Std Dev: {stats.fps_std:.2f}")
    print(f"   Range: {stats.fps_min:.1f} - {stats.fps_max:.1f} FPS")
    print(f"   Below warning: {stats.fps_below_warning_ratio*100:.1f}%")
    print(f"   Below critical: {stats.fps_below_critical_ratio*100:.1f}%")

    print(f"\nFrame Time (milliseconds):")
    print(f"   mean={stats.frame_time_mean:.2f}, p95={stats.frame_time_p95:.2f}, max={stats.frame_time_max:.2f}")

    print(f"\nMemory (% of system):")
    print(f"   Mean: {stats.memory_mean*100:.2f}%")
    print(f"   Peak: {stats.memory_max*100:.2f}%")
    print(f"   Growth over session: {stats.memory_growth*100:+.2f}%")

    print("\n" + "=" * 60)


def generate_graphs(df: pd.DataFrame, stats: PerfLogStats, output_dir: Path) -> List[Path]:
    """Generate performance graphs and save as PNG files."""
    output_dir.mkdir(parents=True, exist_ok=True)
    generated_files = []

    plt.rcParams["figure.figsize"] = (12, 8)
    plt.rcParams["font.size"] = 10

    # 1. FPS over time, live and smoothed
    fig, ax = plt.subplots(figsize=(12, 5))
    ax.plot(df["elapsed"], df["fps_live"], linewidth=0.8, alpha=0.6, label="Live")
    ax.plot(df["elapsed"], df["fps_avg"], linewidth=1.5, label="Average")
    ax.axhline(y=stats.fps_mean, color="r", linestyle="--", label=f"Mean: {stats.fps_mean:.1f} FPS")
    ax.set_xlabel("Elapsed (s)")
    ax.set_ylabel("FPS")
    ax.set_title("Frame Rate Over Time")
    ax.legend()
    plt.tight_layout()

    filepath = output_dir / "fps_over_time.png"
    plt.savefig(filepath, dpi=150)
    plt.close()
    generated_files.append(filepath)
    print(f"  + {filepath.name}")

    # 2. Frame time distribution
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.hist(df["gpu_live"].dropna(), bins=50, edgecolor="black", alpha=0.7)
    ax.axvline(x=stats.frame_time_mean, color="r", linestyle="--", label=f"Mean: {stats.frame_time_mean:.1f}ms")
    ax.axvline(x=stats.frame_time_p95, color="orange", linestyle="--", label=f"P95: {stats.frame_time_p95:.1f}ms")
    ax.set_xlabel("Frame Time (ms)")
    ax.set_ylabel("Count")
    ax.set_title("Frame Time Distribution")
    ax.legend(fontsize=8)
    plt.tight_layout()

    filepath = output_dir / "frame_time_distribution.png"
    plt.savefig(filepath, dpi=150)
    plt.close()
    generated_files.append(filepath)
    print(f"  + {filepath.name}")

    # 3. Memory over time
    fig, ax = plt.subplots(figsize=(12, 5))
    ax.plot(df["elapsed"], df["mem_live"] * 100, linewidth=0.8, alpha=0.6, label="Live")
    ax.plot(df["elapsed"], df["mem_avg"] * 100, linewidth=1.5, label="Average")
    ax.set_xlabel("Elapsed (s)")
    ax.set_ylabel("Memory (% of system)")
    ax.set_title("Memory Usage Over Time")
    ax.legend()
    plt.tight_layout()

    filepath = output_dir / "memory_over_time.png"
    plt.savefig(filepath, dpi=150)
    plt.close()
    generated_files.append(filepath)
    print(f"  + {filepath.name}")

    # 4. Summary dashboard
    fig = plt.figure(figsize=(14, 8))
    gs = GridSpec(2, 2, figure=fig, hspace=0.35, wspace=0.3)

    ax1 = fig.add_subplot(gs[0, 0])
    ax1.barh(["FPS"], [stats.fps_mean], color="green", height=0.5)
    ax1.set_xlim(0, max(60, stats.fps_max * 1.2))
    ax1.set_title(f"Avg FPS: {stats.fps_mean:.1f}")

    ax2 = fig.add_subplot(gs[0, 1])
    below = stats.fps_below_warning_ratio
    ax2.pie([1 - below, below], labels=["OK", "Below warning"], autopct="%1.1f%%",
            colors=["green", "orange"], startangle=90)
    ax2.set_title("FPS Health")

    ax3 = fig.add_subplot(gs[1, :])
    window = max(1, len(df) // 50)
    ax3.plot(df["elapsed"], df["gpu_live"].rolling(window=window, min_periods=1).mean(), label="Frame time (ms)")
    ax3.set_xlabel("Elapsed (s)")
    ax3.set_ylabel("ms")
    ax3.set_title("Frame Time Over Time (Smoothed)")
    ax3.legend()

    plt.suptitle("Runtime Performance - Log Dashboard", fontsize=14, fontweight="bold")

    filepath = output_dir / "dashboard.png"
    plt.savefig(filepath, dpi=150)
    plt.close()
    generated_files.append(filepath)
    print(f"  + {filepath.name}")

    return generated_files


def main():
    parser = argparse.ArgumentParser(
        description="Analyze runtime performance CSV logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python tools/analyze_perf_log.py PerformanceLogs/performance_log_20260101_120000.csv
    python tools/analyze_perf_log.py session.csv -o analysis/ --fps-warning 55
        """
    )
    parser.add_argument("log_file", type=str, help="Path to performance CSV log")
    parser.add_argument("-o", "--output-dir", type=str, default="perf_reports",
                        help="Output directory for graphs (default: perf_reports)")
    parser.add_argument("--fps-warning", type=float, default=45.0,
                        help="FPS warning threshold (default: 45)")
    parser.add_argument("--fps-critical", type=float, default=30.0,
                        help="FPS critical threshold (default: 30)")
    parser.add_argument("--no-graphs", action="store_true",
                        help="Skip graph generation, print stats only")

    args = parser.parse_args()

    log_path = Path(args.log_file)
    output_dir = Path(args.output_dir)

    if not log_path.exists():
        print(f"Error: Log file not found: {log_path}")
        sys.exit(1)

    print(f"\nLoading performance log from: {log_path}")

    try:
        df = load_perf_log(log_path)
        stats = compute_stats(df, fps_warning=args.fps_warning, fps_critical=args.fps_critical)
        print_stats(stats)

        if not args.no_graphs:
            print(f"\nGenerating graphs in: {output_dir}/")
            generated_files = generate_graphs(df, stats, output_dir)
            print(f"\nGenerated {len(generated_files)} graph(s)")
            print(f"   Output directory: {output_dir.absolute()}")

    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
