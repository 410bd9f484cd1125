"""
Configuration for the telemetry emitter.

Values are resolved in this order (later wins):
1. Built-in defaults from defaults.py
2. YAML file passed to load_config(), or the file named by HEARTBEAT_CONFIG
3. Environment variables (HEARTBEAT_SERVICE_NAME, HEARTBEAT_OTLP_ENDPOINT, ...)
4. CLI flags, applied by cli.py on the returned HeartbeatConfig

Example YAML:

    service_name: heartbeat
    loop:
      endpoints: ["/foo", "/bar", "/baz"]
      interval: 2.0
    metrics:
      port: 8080
    exporter:
      kind: otlp
      endpoint: localhost:4317
    logging:
      file: log/app.log
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, get_args, get_origin

import yaml

from . import defaults

CONFIG_ENV_VAR = "HEARTBEAT_CONFIG"

EXPORTER_KINDS = ("otlp", "file", "console")
OTLP_PROTOCOLS = ("grpc", "http")


class ConfigError(ValueError):
    """Raised when configuration is unreadable or has invalid values."""


@dataclass
class LoopConfig:
    endpoints: list[str] = field(default_factory=lambda: list(defaults.DEFAULT_ENDPOINTS))
    interval: float = defaults.DEFAULT_INTERVAL
    request_delay: float = defaults.DEFAULT_REQUEST_DELAY
    work_delay: float = defaults.DEFAULT_WORK_DELAY
    join_children: bool = False
    max_ticks: int | None = None
    seed: int | None = None


@dataclass
class MetricsConfig:
    namespace: str = defaults.DEFAULT_METRIC_NAMESPACE
    host: str = defaults.DEFAULT_METRICS_HOST
    port: int = defaults.DEFAULT_METRICS_PORT


@dataclass
class ExporterConfig:
    kind: str = "otlp"
    endpoint: str = defaults.DEFAULT_OTLP_ENDPOINT
    protocol: str = defaults.DEFAULT_OTLP_PROTOCOL
    insecure: bool = True
    wait_for_collector: bool = True
    connect_timeout: float = defaults.DEFAULT_CONNECT_TIMEOUT
    output_file: str | None = None


@dataclass
class LoggingConfig:
    console_level: str = "DEBUG"
    file_level: str = "INFO"
    file: str | None = defaults.DEFAULT_LOG_FILE
    max_size_mb: int = defaults.DEFAULT_LOG_MAX_MB
    max_backups: int = defaults.DEFAULT_LOG_BACKUPS
    max_age_days: int = defaults.DEFAULT_LOG_MAX_AGE_DAYS
    compress: bool = True


@dataclass
class HeartbeatConfig:
    """Complete emitter configuration."""

    service_name: str = defaults.DEFAULT_SERVICE_NAME
    service_version: str = defaults.DEFAULT_SERVICE_VERSION
    loop: LoopConfig = field(default_factory=LoopConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    exporter: ExporterConfig = field(default_factory=ExporterConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Raise ConfigError if any value is out of range."""
        loop = self.loop
        if not loop.endpoints or not all(isinstance(e, str) and e for e in loop.endpoints):
            raise ConfigError("loop.endpoints must be a non-empty list of strings")
        for name in ("interval", "request_delay", "work_delay"):
            if getattr(loop, name) < 0:
                raise ConfigError(f"loop.{name} must be non-negative")
        if loop.max_ticks is not None and loop.max_ticks < 0:
            raise ConfigError("loop.max_ticks must be non-negative")
        if not 0 <= self.metrics.port <= 65535:
            raise ConfigError(f"metrics.port out of range: {self.metrics.port}")
        if self.exporter.kind not in EXPORTER_KINDS:
            raise ConfigError(
                f"exporter.kind must be one of {', '.join(EXPORTER_KINDS)}, got {self.exporter.kind!r}"
            )
        if self.exporter.protocol not in OTLP_PROTOCOLS:
            raise ConfigError(
                f"exporter.protocol must be one of {', '.join(OTLP_PROTOCOLS)}, got {self.exporter.protocol!r}"
            )
        if self.exporter.kind == "file" and not self.exporter.output_file:
            raise ConfigError("exporter.output_file is required when exporter.kind is 'file'")
        if self.exporter.connect_timeout < 0:
            raise ConfigError("exporter.connect_timeout must be non-negative")
        if self.logging.max_size_mb <= 0 or self.logging.max_backups < 0:
            raise ConfigError("logging.max_size_mb must be positive and max_backups non-negative")

    def to_dict(self) -> dict[str, Any]:
        """Plain dict view (for show-config and logging)."""
        return {
            "service_name": self.service_name,
            "service_version": self.service_version,
            "loop": dict(vars(self.loop)),
            "metrics": dict(vars(self.metrics)),
            "exporter": dict(vars(self.exporter)),
            "logging": dict(vars(self.logging)),
        }


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; a missing file yields {}. Parse errors raise ConfigError."""
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at top level")
    return data


def _coerce(name: str, annotation: Any, value: Any) -> Any:
    """Convert a YAML scalar to the field's declared type."""
    members = get_args(annotation)
    if value is None:
        if type(None) in members:
            return None
        raise ConfigError(f"Config key '{name}' must not be null")
    if type(None) in members:
        annotation = next(m for m in members if m is not type(None))

    if get_origin(annotation) is list:
        if not isinstance(value, list):
            raise ConfigError(f"Config key '{name}' must be a list")
        return [str(v) for v in value]
    if annotation is bool:
        if not isinstance(value, bool):
            raise ConfigError(f"Config key '{name}' must be true or false, got {value!r}")
        return value
    if isinstance(value, (bool, list, dict)):
        raise ConfigError(f"Invalid value for '{name}': {value!r}")
    if annotation is int and isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"Config key '{name}' must be an integer, got {value!r}")
    try:
        return annotation(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for '{name}': {value!r}") from exc


def _apply_section(target: Any, raw: Any, section: str) -> None:
    """Copy known keys from a YAML section onto a dataclass; unknown keys are errors."""
    if raw is None:
        return
    if not isinstance(raw, dict):
        raise ConfigError(f"Config section '{section}' must be a mapping")
    declared = {f.name: f.type for f in fields(target)}
    for key, value in raw.items():
        if key not in declared:
            raise ConfigError(f"Unknown config key '{section}.{key}'")
        setattr(target, key, _coerce(f"{section}.{key}", declared[key], value))


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _apply_env(config: HeartbeatConfig) -> None:
    """Apply HEARTBEAT_* environment overrides."""
    service_name = os.environ.get("HEARTBEAT_SERVICE_NAME", "").strip()
    if service_name:
        config.service_name = service_name
    endpoint = os.environ.get("HEARTBEAT_OTLP_ENDPOINT", "").strip()
    if endpoint:
        config.exporter.endpoint = endpoint
    protocol = os.environ.get("HEARTBEAT_OTLP_PROTOCOL", "").strip().lower()
    if protocol:
        config.exporter.protocol = protocol
    port = _env_int("HEARTBEAT_METRICS_PORT")
    if port is not None:
        config.metrics.port = port
    log_file = os.environ.get("HEARTBEAT_LOG_FILE")
    if log_file is not None:
        config.logging.file = log_file.strip() or None
    seed = _env_int("HEARTBEAT_SEED")
    if seed is not None:
        config.loop.seed = seed


def load_config(path: str | Path | None = None) -> HeartbeatConfig:
    """
    Build a validated HeartbeatConfig.

    Args:
        path: YAML file; falls back to HEARTBEAT_CONFIG, then to defaults only.

    Returns:
        HeartbeatConfig with file and environment overrides applied.
    """
    config = HeartbeatConfig()
    raw_path = path or os.environ.get(CONFIG_ENV_VAR, "").strip() or None
    if raw_path:
        data = load_yaml(Path(raw_path))
        for key in ("service_name", "service_version"):
            if key in data:
                setattr(config, key, str(data.pop(key)))
        for section in ("loop", "metrics", "exporter", "logging"):
            _apply_section(getattr(config, section), data.pop(section, None), section)
        if data:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(map(str, data)))}")
    _apply_env(config)
    config.validate()
    return config
