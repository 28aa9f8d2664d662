"""Configuration management for wg-ddns."""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import yaml

from wgddns.errors import ConfigError

MIN_CHECK_INTERVAL = 1.0  # seconds

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_PLAIN_NUMBER = re.compile(r"[+-]?(\d+(?:\.\d*)?|\.\d+)")


class LogLevel(Enum):
    """Log levels accepted on the command line and in the config file."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARNING"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: str) -> "LogLevel":
        """Parse a level name, case-insensitive ("warn" and "warning" both work).

        Raises:
            ConfigError: If the name is not a known level.
        """
        if not isinstance(value, str):
            raise ConfigError(f"Invalid log level {value!r} (expected a name)")
        name = value.strip().upper()
        if name == "WARNING":
            return cls.WARN
        try:
            return cls[name]
        except KeyError:
            raise ConfigError(
                f"Invalid log level '{value}' (expected debug, info, warn or error)"
            ) from None


@dataclass
class ApiConfig:
    """HTTP control API configuration.

    The API is only enabled when address, port and key are all set.
    """

    listen_address: str | None = None
    listen_port: int | None = None
    api_key: str | None = None
    shutdown_timeout: float = 5.0  # seconds

    @property
    def enabled(self) -> bool:
        return bool(self.listen_address and self.listen_port and self.api_key)

    @property
    def partially_configured(self) -> bool:
        values = (self.listen_address, self.listen_port, self.api_key)
        return any(values) and not all(values)


@dataclass
class Config:
    """Monitor configuration."""

    check_interval: float = 10.0  # seconds
    single_interface: str | None = None
    log_level: str = "INFO"
    log_file: str | None = None
    config_dir: str = "/etc/wireguard"
    service_prefix: str = "wg-quick@"
    service_suffix: str = ".service"
    restart_timeout: float = 90.0  # seconds
    resolve_timeout: float = 10.0  # seconds
    api: ApiConfig = field(default_factory=ApiConfig)


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path("/etc/wg-ddns/config.yaml")


def parse_duration(value: str | int | float) -> float:
    """Parse a duration into seconds.

    Accepts plain numbers (seconds) and duration strings such as "10s",
    "1m30s", "1.5h" or "500ms".

    Raises:
        ConfigError: If the value is not a valid duration.
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text:
        raise ConfigError("Invalid duration: empty string")

    if _PLAIN_NUMBER.fullmatch(text):
        return float(text)

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise ConfigError(f"Invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0:
        raise ConfigError(f"Invalid duration: {value!r}")
    return sign * total


def format_duration(seconds: float) -> str:
    """Format seconds the way durations are written on the command line.

    >>> format_duration(90)
    '1m30s'
    """
    if seconds < 60:
        return f"{seconds:g}s"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{int(hours)}h{int(minutes)}m{secs:g}s"
    return f"{int(minutes)}m{secs:g}s"


def _parse_port(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid listen port: {value!r}") from None


def validate_config(config: Config) -> Config:
    """Validate a configuration before the monitor starts.

    Returns:
        The same config, with the log level normalized.

    Raises:
        ConfigError: On the first invalid value.
    """
    if config.check_interval < MIN_CHECK_INTERVAL:
        raise ConfigError("Check interval must be at least 1 second")

    config.log_level = LogLevel.parse(config.log_level).value

    if config.restart_timeout <= 0:
        raise ConfigError("Restart timeout must be positive")
    if config.resolve_timeout <= 0:
        raise ConfigError("Resolve timeout must be positive")
    if config.api.shutdown_timeout < 0:
        raise ConfigError("API shutdown timeout must not be negative")

    port = config.api.listen_port
    if port is not None and not 1 <= port <= 65535:
        raise ConfigError(f"Invalid listen port: {port}")

    single = config.single_interface
    if single is not None:
        if not isinstance(single, str):
            raise ConfigError(f"Invalid single interface: expected a name, got {single!r}")
        if not single.strip():
            raise ConfigError("Single interface name must not be empty")

    return config


def apply_overrides(
    config: Config,
    single_interface: str | None = None,
    listen_address: str | None = None,
    listen_port: str | int | None = None,
    api_key: str | None = None,
    log_level: str | None = None,
    check_interval: str | float | None = None,
    config_dir: str | None = None,
) -> Config:
    """Overlay command-line / environment values on a loaded config.

    None means "not given" and keeps the value from the file.

    Raises:
        ConfigError: If a duration or port value is malformed.
    """
    api = replace(
        config.api,
        listen_address=listen_address or config.api.listen_address,
        listen_port=(
            _parse_port(listen_port) if listen_port else config.api.listen_port
        ),
        api_key=api_key or config.api.api_key,
    )
    return replace(
        config,
        single_interface=single_interface or config.single_interface,
        log_level=log_level or config.log_level,
        check_interval=(
            parse_duration(check_interval)
            if check_interval is not None
            else config.check_interval
        ),
        config_dir=config_dir or config.config_dir,
        api=api,
    )


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk.

    Raises:
        ConfigError: If the file exists but cannot be read or parsed.
    """
    if not path.exists():
        return None
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not content.strip():
        return None
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e


def _get_str(section: dict[str, Any], key: str, default: str | None) -> str | None:
    value = section.get(key, default)
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"Invalid {key}: expected a string, got {value!r}")
    return value


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file, or defaults when the file is
        missing or empty.

    Raises:
        ConfigError: If the file is not a YAML mapping or a value in it is
            malformed.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {config_path} must contain a mapping, "
            f"got {type(data).__name__}"
        )

    # Parse api config section
    api_data = data.get("api") or {}
    if not isinstance(api_data, dict):
        raise ConfigError(
            f"Invalid api section: expected a mapping, got {type(api_data).__name__}"
        )
    api_config = ApiConfig(
        listen_address=_get_str(api_data, "listen_address", ApiConfig.listen_address),
        listen_port=_parse_port(api_data.get("listen_port")),
        api_key=_get_str(api_data, "api_key", ApiConfig.api_key),
        shutdown_timeout=parse_duration(
            api_data.get("shutdown_timeout", ApiConfig.shutdown_timeout)
        ),
    )

    return Config(
        check_interval=parse_duration(
            data.get("check_interval", Config.check_interval)
        ),
        single_interface=_get_str(data, "single_interface", Config.single_interface),
        log_level=_get_str(data, "log_level", Config.log_level),
        log_file=_get_str(data, "log_file", Config.log_file),
        config_dir=_get_str(data, "config_dir", Config.config_dir),
        service_prefix=_get_str(data, "service_prefix", Config.service_prefix),
        service_suffix=_get_str(data, "service_suffix", Config.service_suffix),
        restart_timeout=parse_duration(
            data.get("restart_timeout", Config.restart_timeout)
        ),
        resolve_timeout=parse_duration(
            data.get("resolve_timeout", Config.resolve_timeout)
        ),
        api=api_config,
    )
