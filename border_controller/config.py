"""Frozen dataclasses for configuration and YAML loader with env-var interpolation."""

from __future__ import annotations

import dataclasses
import logging
import os
import re
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


def _port_str(value: Any) -> str:
    # YAML happily turns 8080 into an int; the rest of the daemon deals in strings
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class ApiDiscoveryConfig:
    service_name: str = ""
    controller_hosts: list[str] = field(default_factory=list)
    dns_domain: str = ""
    port: str = ""
    api_key: str = ""
    timeout_seconds: float = 10

    def __post_init__(self) -> None:
        object.__setattr__(self, "port", _port_str(self.port))


@dataclass(frozen=True)
class DnsDiscoveryConfig:
    task_dns_name: str = ""
    service_port: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "service_port", _port_str(self.service_port))


@dataclass(frozen=True)
class DiscoveryConfig:
    api: ApiDiscoveryConfig | None = None
    dns: DnsDiscoveryConfig | None = None

    @property
    def api_enabled(self) -> bool:
        return self.api is not None and bool(self.api.service_name)

    @property
    def dns_enabled(self) -> bool:
        return self.dns is not None and bool(self.dns.task_dns_name)


@dataclass(frozen=True)
class ProxyConfig:
    process_name: str = "nginx"
    start_command: list[str] = field(default_factory=lambda: ["nginx", "-g", "daemon off;"])
    reload_command: list[str] = field(default_factory=lambda: ["nginx", "-s", "reload"])
    reload_timeout_seconds: float = 30
    template_path: str = "/config/border-controller-config.tpl"
    config_path: str = "/etc/nginx/nginx.conf"


@dataclass(frozen=True)
class PollingConfig:
    interval_seconds: float = 10
    error_cooldown_seconds: float = 5


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _section_type(hint: Any) -> type | None:
    """Dataclass named by a field annotation, unwrapping ``X | None``."""
    candidates = typing.get_args(hint) or (hint,)
    sections = [c for c in candidates if dataclasses.is_dataclass(c)]
    return sections[0] if len(sections) == 1 else None


def _build_section(cls: type, data: dict[str, Any], where: str = "") -> Any:
    """Construct a frozen config dataclass, recursing into nested sections."""
    hints = typing.get_type_hints(cls)
    known = {f.name for f in dataclasses.fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{where}{key}"
        if key not in known:
            logger.warning("Ignoring unknown configuration key '%s'", name)
            continue
        section = _section_type(hints[key])
        if section is None:
            kwargs[key] = value
        elif isinstance(value, dict):
            kwargs[key] = _build_section(section, value, f"{name}.")
        elif value is None and type(None) in typing.get_args(hints[key]):
            kwargs[key] = None
        else:
            raise ConfigError(f"'{name}' must be a mapping")
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_section(AppConfig, raw)
    validate(config)
    return config


def validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ConfigError on the first problem."""
    discovery = config.discovery
    if not isinstance(discovery, DiscoveryConfig):
        raise ConfigError("'discovery' must be a mapping with an 'api' or 'dns' section")

    # Exactly one discovery strategy must be configured
    if discovery.api_enabled and discovery.dns_enabled:
        raise ConfigError(
            "Both 'discovery.api' (service_name) and 'discovery.dns' (task_dns_name) are configured "
            "(only one discovery strategy may be active at a time)"
        )
    if not discovery.api_enabled and not discovery.dns_enabled:
        raise ConfigError(
            "No discovery strategy configured. Add a 'discovery.api' section (with service_name) "
            "or a 'discovery.dns' section (with task_dns_name) to your config file."
        )

    if discovery.api_enabled:
        api = discovery.api
        _require_str_list(api.controller_hosts, "discovery.api.controller_hosts")
        if not api.dns_domain:
            raise ConfigError("discovery.api.dns_domain is required")
        if not api.port:
            raise ConfigError("discovery.api.port is required")
        _require_positive(api.timeout_seconds, "discovery.api.timeout_seconds")

    if discovery.dns_enabled and not discovery.dns.service_port:
        raise ConfigError("discovery.dns.service_port is required when using DNS task discovery")

    proxy = config.proxy
    _require_str_list(proxy.start_command, "proxy.start_command")
    _require_str_list(proxy.reload_command, "proxy.reload_command")
    if not proxy.process_name:
        raise ConfigError("proxy.process_name must not be empty")
    _require_positive(proxy.reload_timeout_seconds, "proxy.reload_timeout_seconds")

    polling = config.polling
    _require_positive(polling.interval_seconds, "polling.interval_seconds")
    _require_positive(polling.error_cooldown_seconds, "polling.error_cooldown_seconds")
    if polling.error_cooldown_seconds >= polling.interval_seconds:
        raise ConfigError("polling.error_cooldown_seconds must be shorter than polling.interval_seconds")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")


def _require_str_list(value: Any, name: str) -> None:
    # A bare YAML scalar would otherwise be iterated character by character
    if not isinstance(value, list) or not value:
        raise ConfigError(f"{name} must be a non-empty list, got {value!r}")
    for item in value:
        if not isinstance(item, str) or not item:
            raise ConfigError(f"{name} entries must be non-empty strings, got {item!r}")


def _require_positive(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be > 0")
