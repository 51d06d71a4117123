"""
Configuration management for the runtime performance monitor.

Handles loading, validation, and access to profiler configuration.
"""

import math
import yaml
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Tuple, Optional, Any, Dict
from pathlib import Path

from perfmon.errors import ConfigurationError


Color = Tuple[float, float, float, float]


class PlatformMode(Enum):
    """Platform profile selecting the extra metric channel set."""
    GENERIC = "generic"
    CONSOLE = "console"
    MOBILE = "mobile"
    HIGH_END_PC = "high_end_pc"


@dataclass
class SystemConfig:
    """Process-level settings. Not part of a saved profile."""
    log_level: str = "INFO"
    log_directory: str = "PerformanceLogs"
    profile_directory: str = "profiles"
    log_interval_s: float = 1.0
    async_writes: bool = False
    history_limit: Optional[int] = None  # None keeps every sample


@dataclass
class Config:
    """
    Named profiler configuration profile.

    Everything except ``system`` is persisted by ConfigStore. The alert
    colours are advisory for presentation layers and never affect
    classification.
    """
    profile_name: str = "Default"

    # Category enable flags
    enable_fps: bool = True
    enable_gpu: bool = True
    enable_memory: bool = True
    enable_custom_metrics: bool = False

    # Alert colours (RGBA, 0-1)
    primary_color: Color = (1.0, 1.0, 1.0, 1.0)
    warning_color: Color = (1.0, 0.92, 0.016, 1.0)
    critical_color: Color = (1.0, 0.0, 0.0, 1.0)

    # Platform-specific tracking
    platform_mode: PlatformMode = PlatformMode.GENERIC
    track_draw_calls: bool = True
    track_shader_complexity: bool = True
    track_battery_consumption: bool = True
    track_thermal_performance: bool = True
    track_ray_tracing_performance: bool = False
    track_advanced_gpu_metrics: bool = False

    # Thresholds; fps_critical_threshold < fps_warning_threshold is expected
    fps_critical_threshold: float = 30.0
    fps_warning_threshold: float = 45.0
    memory_warning_threshold: float = 0.75

    # Averaging
    time_to_converge: float = 10.0
    display_update_interval: float = 0.2

    system: SystemConfig = field(default_factory=SystemConfig)

    def __post_init__(self):
        if self.time_to_converge <= 0:
            raise ConfigurationError("time_to_converge must be positive")
        if self.display_update_interval < 0:
            raise ConfigurationError("display_update_interval must be non-negative")

    @property
    def convergence_factor(self) -> float:
        """Per-tick smoothing weight applied to every channel."""
        return 1.0 / self.time_to_converge


_BOOL_FIELDS = (
    "enable_fps",
    "enable_gpu",
    "enable_memory",
    "enable_custom_metrics",
    "track_draw_calls",
    "track_shader_complexity",
    "track_battery_consumption",
    "track_thermal_performance",
    "track_ray_tracing_performance",
    "track_advanced_gpu_metrics",
)

_FLOAT_FIELDS = (
    "fps_critical_threshold",
    "fps_warning_threshold",
    "memory_warning_threshold",
    "time_to_converge",
    "display_update_interval",
)

_COLOR_FIELDS = ("primary_color", "warning_color", "critical_color")

PROFILE_FIELDS = tuple(f.name for f in fields(Config) if f.name != "system")


def config_to_dict(config: Config) -> Dict[str, Any]:
    """
    Convert the persisted part of a config to plain JSON-compatible types.

    The ``system`` section is excluded.
    """
    data: Dict[str, Any] = {}
    for name in PROFILE_FIELDS:
        value = getattr(config, name)
        if isinstance(value, PlatformMode):
            value = value.value
        elif name in _COLOR_FIELDS:
            value = list(value)
        data[name] = value
    return data


def _parse_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a boolean, got {value!r}")
    return value


def _parse_float(name: str, value: Any) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    return value


def _parse_color(name: str, value: Any) -> Color:
    if not isinstance(value, (list, tuple)) or len(value) not in (3, 4):
        raise ConfigurationError(f"{name} must be a list of 3 or 4 components, got {value!r}")

    components = [_parse_float(name, c) for c in value]
    if any(c < 0.0 or c > 1.0 for c in components):
        raise ConfigurationError(f"{name} components must be within [0, 1], got {value!r}")
    if len(components) == 3:
        components.append(1.0)
    return tuple(components)


def _parse_platform_mode(value: Any) -> PlatformMode:
    if isinstance(value, PlatformMode):
        return value
    try:
        return PlatformMode(value)
    except ValueError:
        valid = ", ".join(m.value for m in PlatformMode)
        raise ConfigurationError(f"platform_mode must be one of: {valid}; got {value!r}") from None


def parse_profile(
    data: Any,
    base: Optional[Config] = None,
    strict: bool = True,
) -> Config:
    """
    Build a Config from profile data, validating every field.

    Args:
        data: Mapping of profile fields (as produced by config_to_dict)
        base: Config supplying values for absent fields and the system section
        strict: Require every profile field to be present and reject unknown keys

    Returns:
        New Config; ``base`` is never modified

    Raises:
        ConfigurationError: If the data does not match the schema
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Profile must be a mapping, got {type(data).__name__}")

    base = base if base is not None else Config()

    if strict:
        unknown = sorted(set(data) - set(PROFILE_FIELDS))
        if unknown:
            raise ConfigurationError(f"Unknown profile fields: {', '.join(unknown)}")
        missing = [name for name in PROFILE_FIELDS if name not in data]
        if missing:
            raise ConfigurationError(f"Missing profile fields: {', '.join(missing)}")

    values: Dict[str, Any] = {}

    if "profile_name" in data:
        if not isinstance(data["profile_name"], str) or not data["profile_name"]:
            raise ConfigurationError("profile_name must be a non-empty string")
        values["profile_name"] = data["profile_name"]

    for name in _BOOL_FIELDS:
        if name in data:
            values[name] = _parse_bool(name, data[name])

    for name in _FLOAT_FIELDS:
        if name in data:
            values[name] = _parse_float(name, data[name])

    for name in _COLOR_FIELDS:
        if name in data:
            values[name] = _parse_color(name, data[name])

    if "platform_mode" in data:
        values["platform_mode"] = _parse_platform_mode(data["platform_mode"])

    return replace(base, **values)


def _parse_system(data: Dict[str, Any]) -> SystemConfig:
    """Parse system section from config dict."""
    history_limit = data.get("history_limit")
    if history_limit is not None and (not isinstance(history_limit, int) or history_limit <= 0):
        raise ConfigurationError("history_limit must be a positive integer or null")

    return SystemConfig(
        log_level=data.get("log_level", "INFO"),
        log_directory=data.get("log_directory", "PerformanceLogs"),
        profile_directory=data.get("profile_directory", "profiles"),
        log_interval_s=data.get("log_interval_s", 1.0),
        async_writes=data.get("async_writes", False),
        history_limit=history_limit,
    )


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default config.yaml

    Returns:
        Populated Config object

    Raises:
        yaml.YAMLError: If config file is malformed
        ConfigurationError: If a value does not match the schema
    """
    if config_path is None:
        # Look for config.yaml in project root
        config_path = Path(__file__).parent.parent / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        # Return default configuration
        return Config()

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    config = Config()

    # Parse system config
    if "system" in data:
        config.system = _parse_system(data["system"])

    # Parse profile config; absent fields keep their defaults
    if "profile" in data:
        config = parse_profile(data["profile"], base=config, strict=False)

    return config
