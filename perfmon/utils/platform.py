"""
Platform detection utilities.

Provides functions to probe the host for the values the platform metric
channels report (battery, temperature, memory).
"""

import platform
from functools import lru_cache
from typing import Optional

import psutil


@lru_cache(maxsize=1)
def get_platform_name() -> str:
    """
    Get a human-readable platform name.

    Returns:
        Platform name string
    """
    system = platform.system()
    if system == "Windows":
        return f"Windows {platform.release()}"
    elif system == "Linux":
        return f"Linux ({platform.release()})"
    elif system == "Darwin":
        return f"macOS {platform.mac_ver()[0]}"

    return system


def get_battery_percent() -> Optional[float]:
    """
    Get remaining battery charge.

    Returns:
        Battery level in percent (0-100), or None if no battery is reported
    """
    sensors_battery = getattr(psutil, "sensors_battery", None)
    if sensors_battery is None:
        return None

    try:
        battery = sensors_battery()
    except (OSError, RuntimeError):
        return None

    if battery is None:
        return None
    return float(battery.percent)


def get_cpu_temperature() -> Optional[float]:
    """
    Get CPU temperature in Celsius.

    Returns:
        Highest reported core temperature, or None if unavailable
    """
    sensors_temperatures = getattr(psutil, "sensors_temperatures", None)
    if sensors_temperatures is not None:
        try:
            readings = sensors_temperatures()
        except (OSError, RuntimeError):
            readings = {}

        temps = [entry.current for entries in readings.values() for entry in entries]
        if temps:
            return float(max(temps))

    # Fallback: generic Linux thermal zone
    if platform.system() == "Linux":
        try:
            with open("/sys/class/thermal/thermal_zone0/temp", "r") as f:
                return int(f.read().strip()) / 1000.0
        except (FileNotFoundError, ValueError, PermissionError):
            pass

    return None


def get_process_memory_bytes() -> int:
    """Resident set size of the current process in bytes."""
    return psutil.Process().memory_info().rss


def get_system_memory_bytes() -> int:
    """Total physical memory of the host in bytes."""
    return psutil.virtual_memory().total
