"""
Configuration Management for PerfSight

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables

Configuration precedence (highest to lowest):
1. Explicit config file passed by the caller
2. Environment variables (PERFSIGHT_*)
3. Discovered configuration file
4. Default values

The engine receives a PerfSightConfig explicitly; detectors only ever see the
section they need, passed in as an argument.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class BaselineConfig:
    """Personal baseline statistics."""

    # Critical value for the 95% confidence interval around the mean
    ci_z: float = 1.96

    # sample_size < low_confidence_below -> "low"
    low_confidence_below: int = 5
    # sample_size >= high_confidence_from -> "high", otherwise "medium"
    high_confidence_from: int = 15

    # Minimum matches on one map before a map-specific baseline is produced
    min_map_sample: int = 3


@dataclass
class DetectionConfig:
    """Tilt, flow and state classification policy."""

    # Breach margin below baseline, in standard deviations
    tilt_sigma: float = 1.0
    # Breaches beyond this many standard deviations are "high" severity
    high_severity_sigma: float = 2.0
    # Consecutive breaching matches required for tilt to be active
    min_cascade_length: int = 2
    # Cascade length that escalates tilt severity to "high"
    high_cascade_length: int = 3
    # Cascade length that turns the recommended action into a full break
    long_cascade_length: int = 4

    # Positive margin above baseline for a flow-qualifying match
    flow_sigma: float = 1.0
    # A flow occurrence counts as "recent" inside this many trailing matches
    recent_flow_window: int = 3
    # Matches averaged for the flow performance boost
    flow_boost_window: int = 5

    # Opposite-direction divergence on linked mechanics, in standard deviations
    mechanical_divergence_sigma: float = 1.0

    # Matches examined for worsening trends
    trend_window: int = 3


@dataclass
class CorrelationConfig:
    """Correlation analysis policy."""

    # Below this many paired samples the coefficient is reported as 0
    min_sample_size: int = 5
    # p-value cutoffs for significance labels
    high_p: float = 0.01
    moderate_p: float = 0.05
    # Number of primary performance drivers reported
    top_k: int = 5
    # Minimum |r| before a wrong-signed correlation is reported as surprising
    surprise_min_abs_coefficient: float = 0.3


@dataclass
class AnalysisConfig:
    """Engine input policy."""

    min_matches: int = 5
    max_matches: int = 50
    # Gap that starts a new play session
    session_gap_minutes: float = 120.0
    # Premier rating used when the player has none (mid-tier band)
    default_premier_rating: int = 10000


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None


@dataclass
class PerfSightConfig:
    """Main configuration container."""

    baseline: BaselineConfig = field(default_factory=BaselineConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Version of the config format
    config_version: str = "1.0"


_SECTIONS = ("baseline", "detection", "correlation", "analysis", "logging")


# ============================================================================
# Configuration Loading
# ============================================================================


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    paths = []

    # Current directory
    paths.append(Path.cwd() / "perfsight.yaml")
    paths.append(Path.cwd() / "perfsight.toml")
    paths.append(Path.cwd() / "perfsight.json")
    paths.append(Path.cwd() / ".perfsight.yaml")

    # User home directory
    home = Path.home()
    paths.append(home / ".config" / "perfsight" / "config.yaml")
    paths.append(home / ".config" / "perfsight" / "config.toml")
    paths.append(home / ".perfsight.yaml")

    # XDG config directory
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))
    paths.append(Path(xdg_config) / "perfsight" / "config.yaml")

    return paths


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    import yaml

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    import tomllib

    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    env_mappings = {
        "PERFSIGHT_LOG_LEVEL": ("logging", "level"),
        "PERFSIGHT_LOG_FILE": ("logging", "file"),
        "PERFSIGHT_MIN_MATCHES": ("analysis", "min_matches"),
        "PERFSIGHT_MAX_MATCHES": ("analysis", "max_matches"),
        "PERFSIGHT_SESSION_GAP_MINUTES": ("analysis", "session_gap_minutes"),
        "PERFSIGHT_DEFAULT_PREMIER_RATING": ("analysis", "default_premier_rating"),
        "PERFSIGHT_TILT_SIGMA": ("detection", "tilt_sigma"),
        "PERFSIGHT_FLOW_SIGMA": ("detection", "flow_sigma"),
        "PERFSIGHT_MIN_CASCADE_LENGTH": ("detection", "min_cascade_length"),
        "PERFSIGHT_CORRELATION_MIN_SAMPLE": ("correlation", "min_sample_size"),
        "PERFSIGHT_CORRELATION_TOP_K": ("correlation", "top_k"),
    }

    for env_var, (section, key) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is not None:
            if section not in config:
                config[section] = {}

            # Type conversion
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)
            else:
                try:
                    value = float(value)
                except ValueError:
                    pass

            config[section][key] = value

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def dict_to_config(data: dict[str, Any]) -> PerfSightConfig:
    """Convert a dictionary to PerfSightConfig, ignoring unknown keys."""
    config = PerfSightConfig()

    for section_name in _SECTIONS:
        section_data = data.get(section_name)
        if not isinstance(section_data, dict):
            continue
        section = getattr(config, section_name)
        for key, value in section_data.items():
            if hasattr(section, key):
                setattr(section, key, value)
            else:
                logger.debug(f"Ignoring unknown config key {section_name}.{key}")

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> PerfSightConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged PerfSightConfig
    """
    config_data: dict[str, Any] = {}

    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    if include_env:
        env_config = load_env_config()
        if config_file:
            # An explicit file outranks the environment
            config_data = merge_configs(env_config, config_data)
        else:
            config_data = merge_configs(config_data, env_config)

    return dict_to_config(config_data)


def configure_logging(config: LoggingConfig) -> None:
    """Apply a LoggingConfig to the root logger. Call only from entry points."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file))

    logging.basicConfig(
        level=getattr(logging, str(config.level).upper(), logging.INFO),
        format=config.format,
        handlers=handlers,
        force=True,
    )


# ============================================================================
# Configuration Saving
# ============================================================================


def save_config(config: PerfSightConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (format detected from extension)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        import yaml

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    else:
        raise ValueError(f"Unsupported config format for saving: {suffix}")

    logger.info(f"Saved config to: {path}")


def config_to_dict(config: PerfSightConfig) -> dict[str, Any]:
    """Convert PerfSightConfig to a dictionary."""
    return asdict(config)


# ============================================================================
# Global Configuration
# ============================================================================

_global_config: PerfSightConfig | None = None


def get_config() -> PerfSightConfig:
    """Get the process-wide default configuration, loading it if necessary."""
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def set_config(config: PerfSightConfig) -> None:
    """Set the process-wide default configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the process-wide configuration to defaults."""
    global _global_config
    _global_config = None


# ============================================================================
# Configuration Templates
# ============================================================================

DEFAULT_CONFIG_YAML = """# PerfSight Configuration

# Personal baseline statistics
baseline:
  ci_z: 1.96
  low_confidence_below: 5     # fewer samples -> "low" confidence
  high_confidence_from: 15    # this many samples -> "high" confidence
  min_map_sample: 3

# Tilt / flow / state policy
detection:
  tilt_sigma: 1.0             # breach margin below baseline (std devs)
  high_severity_sigma: 2.0
  min_cascade_length: 2       # a single bad match is noise, not tilt
  high_cascade_length: 3
  long_cascade_length: 4
  flow_sigma: 1.0
  recent_flow_window: 3
  flow_boost_window: 5
  mechanical_divergence_sigma: 1.0
  trend_window: 3

# Correlation analysis
correlation:
  min_sample_size: 5
  high_p: 0.01
  moderate_p: 0.05
  top_k: 5
  surprise_min_abs_coefficient: 0.3

# Engine input policy
analysis:
  min_matches: 5
  max_matches: 50
  session_gap_minutes: 120
  default_premier_rating: 10000

# Logging settings
logging:
  level: INFO
  # file: /path/to/perfsight.log
"""


def generate_default_config(path: Path) -> None:
    """Generate a default configuration file."""
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        path.write_text(DEFAULT_CONFIG_YAML)
    else:
        save_config(PerfSightConfig(), path)

    logger.info(f"Generated default config at: {path}")
