# config.py
import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml

from .core.engine import DEFAULT_MAX_STEPS

logger = structlog.get_logger()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("console", "json")

# Environment variable -> config field
ENV_OVERRIDES = {
    "BF_PUZZLE_MAX_STEPS": "max_steps",
    "BF_PUZZLE_HOST": "host",
    "BF_PUZZLE_PORT": "port",
    "BF_PUZZLE_LOG_LEVEL": "log_level",
    "BF_PUZZLE_LOG_FORMAT": "log_format",
    "BF_PUZZLE_TARGET": "target_output",
}


class ConfigError(ValueError):
    """Invalid configuration file or value."""


@dataclass
class PuzzleConfig:
    max_steps: int = DEFAULT_MAX_STEPS
    host: str = "0.0.0.0"
    port: int = 8545
    log_level: str = "INFO"
    log_format: str = "console"
    target_output: str = "hi"

    @property
    def target_bytes(self) -> bytes:
        return self.target_output.encode("latin-1")

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    def updated(self, **overrides: Any) -> "PuzzleConfig":
        """Return a copy with non-None overrides applied and validated."""
        values = self.to_dict()
        for key, value in overrides.items():
            if value is not None:
                values[key] = value
        return _build(values, source="overrides")


def _coerce(name: str, value: Any, source: str) -> Any:
    field_type = {f.name: f.type for f in dataclasses.fields(PuzzleConfig)}[name]
    try:
        if field_type in (int, "int"):
            value = int(value)
        else:
            value = str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name} from {source}: {value!r}") from e
    return value


def _build(values: Mapping[str, Any], source: str) -> PuzzleConfig:
    known = {f.name for f in dataclasses.fields(PuzzleConfig)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown config keys in {source}: {sorted(unknown)}")

    coerced = {name: _coerce(name, value, source) for name, value in values.items()}
    config = PuzzleConfig(**coerced)

    if config.max_steps < 0:
        raise ConfigError(f"max_steps must be non-negative, got {config.max_steps}")
    if not 0 < config.port < 65536:
        raise ConfigError(f"port out of range: {config.port}")
    config.log_level = config.log_level.upper()
    if config.log_level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {config.log_level}")
    if config.log_format not in LOG_FORMATS:
        raise ConfigError(f"log_format must be one of {LOG_FORMATS}, got {config.log_format}")
    try:
        config.target_bytes
    except UnicodeEncodeError as e:
        raise ConfigError("target_output must be single-byte characters") from e
    return config


def load_config(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> PuzzleConfig:
    """
    Build the service configuration.

    Defaults are overlaid with the YAML file at ``path`` (if given) and then
    with ``BF_PUZZLE_*`` environment variables.

    Args:
        path: Optional YAML file with a flat mapping of config keys.
        environ: Environment mapping, defaults to ``os.environ``.

    Returns:
        Validated PuzzleConfig.

    Raises:
        ConfigError: Unreadable file, unknown keys or invalid values.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = PuzzleConfig().to_dict()

    if path:
        try:
            with open(path, "r") as f:
                loaded = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse config file {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        values.update(loaded)
        logger.debug("Loaded config file", path=path, keys=sorted(loaded))

    for env_name, field_name in ENV_OVERRIDES.items():
        if env_name in environ:
            values[field_name] = environ[env_name]

    return _build(values, source=path or "environment")
