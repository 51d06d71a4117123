"""
Metric channels and the smoothing sampler.

A channel tracks one metric as a live value plus an exponentially smoothed
running average. Built-in channels are fed once per tick from a TickReading.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from perfmon.utils.platform import get_process_memory_bytes, get_system_memory_bytes

logger = logging.getLogger(__name__)


# Seed values for the built-in channels
FPS_TARGET = 60.0
GPU_FRAME_TIME_TARGET = 60.0
MEMORY_TARGET = 1.0


def clamp01(t: float) -> float:
    return min(max(t, 0.0), 1.0)


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation from a to b with t clamped to [0, 1]."""
    return a + (b - a) * clamp01(t)


@dataclass
class Channel:
    """
    Live/average/target triple for one tracked metric.

    ``target`` is the seed both other values start from. It is kept for
    reference only and never updated.
    """
    live: float
    average: float
    target: float

    @classmethod
    def seeded(cls, target: float) -> "Channel":
        """Create a channel whose live and average values start at target."""
        return cls(live=target, average=target, target=target)

    def copy(self) -> "Channel":
        return Channel(live=self.live, average=self.average, target=self.target)


class MetricSampler:
    """
    Updates channels with new live readings.

    The convergence factor is fixed at construction and applied unchanged
    every tick, so the effective smoothing window is measured in ticks, not
    seconds.
    """

    def __init__(self, convergence_factor: float):
        """
        Initialize sampler.

        Args:
            convergence_factor: Per-tick interpolation weight, normally
                1 / time_to_converge
        """
        self._factor = convergence_factor

    @property
    def convergence_factor(self) -> float:
        return self._factor

    def update(self, channel: Channel, new_live: float) -> None:
        """Set the live value and move the average toward it."""
        channel.live = new_live
        channel.average = lerp(channel.average, channel.live, self._factor)


@dataclass(frozen=True)
class TickReading:
    """
    Raw environment values the host supplies for one tick.

    Attributes:
        now: Monotonic time in seconds
        unscaled_delta_time: Seconds since the previous tick
        process_memory_bytes: Memory held by the process
        system_memory_bytes: Total system memory
    """
    now: float
    unscaled_delta_time: float
    process_memory_bytes: float
    system_memory_bytes: float

    @classmethod
    def capture(cls, unscaled_delta_time: float, now: Optional[float] = None) -> "TickReading":
        """Build a reading from the monotonic clock and psutil."""
        return cls(
            now=time.monotonic() if now is None else now,
            unscaled_delta_time=unscaled_delta_time,
            process_memory_bytes=float(get_process_memory_bytes()),
            system_memory_bytes=float(get_system_memory_bytes()),
        )


def fps_from_delta(delta_s: float) -> Optional[float]:
    """Frames per second for a frame delta, or None when the delta is unusable."""
    if not math.isfinite(delta_s) or delta_s <= 0:
        return None
    return 1.0 / delta_s


def frame_time_ms(delta_s: float) -> Optional[float]:
    """Frame time in milliseconds, or None when the delta is unusable."""
    if not math.isfinite(delta_s) or delta_s <= 0:
        return None
    return delta_s * 1000.0


def memory_fraction(process_bytes: float, system_bytes: float) -> Optional[float]:
    """
    Process memory as a fraction of system memory.

    Not bounded above by 1. Returns None when system memory is not positive.
    """
    if not math.isfinite(process_bytes) or not math.isfinite(system_bytes) or system_bytes <= 0:
        return None
    return process_bytes / system_bytes


@dataclass
class BuiltinChannels:
    """The three channels every profiler tracks."""
    fps: Channel
    gpu: Channel
    memory: Channel

    @classmethod
    def seeded(cls) -> "BuiltinChannels":
        return cls(
            fps=Channel.seeded(FPS_TARGET),
            gpu=Channel.seeded(GPU_FRAME_TIME_TARGET),
            memory=Channel.seeded(MEMORY_TARGET),
        )

    def copy(self) -> "BuiltinChannels":
        return BuiltinChannels(fps=self.fps.copy(), gpu=self.gpu.copy(), memory=self.memory.copy())


def update_builtin_channels(
    sampler: MetricSampler,
    channels: BuiltinChannels,
    reading: TickReading,
    enable_fps: bool = True,
    enable_gpu: bool = True,
    enable_memory: bool = True,
) -> None:
    """
    Feed one tick's reading into the built-in channels.

    A channel whose raw value is degenerate (zero or negative delta, no
    system memory) keeps its previous state for this tick.
    """
    if enable_fps:
        fps = fps_from_delta(reading.unscaled_delta_time)
        if fps is None:
            logger.debug(f"Skipping FPS update: delta={reading.unscaled_delta_time!r}")
        else:
            sampler.update(channels.fps, fps)

    if enable_gpu:
        gpu_ms = frame_time_ms(reading.unscaled_delta_time)
        if gpu_ms is None:
            logger.debug(f"Skipping frame time update: delta={reading.unscaled_delta_time!r}")
        else:
            sampler.update(channels.gpu, gpu_ms)

    if enable_memory:
        fraction = memory_fraction(reading.process_memory_bytes, reading.system_memory_bytes)
        if fraction is None:
            logger.debug(f"Skipping memory update: system_memory={reading.system_memory_bytes!r}")
        else:
            sampler.update(channels.memory, fraction)
