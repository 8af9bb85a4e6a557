"""
Configuration for the welcome service.

Every setting has a dotted key (e.g. "http.port"), a command line flag and an
environment variable. Flags win over environment variables, which win over the
defaults on Config.
"""

import argparse
import logging
import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigError

LOG = logging.getLogger()

DEFAULT_CACHE_PORT = 6379

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class Config:
    http_host: str = "0.0.0.0"
    http_port: int = 0
    cache_host: Optional[str] = None
    cache_port: Optional[int] = None
    cache_required: bool = False
    cache_retries: int = 5
    cache_backoff_base_ms: int = 100
    cache_backoff_cap_ms: int = 2000
    cache_timeout_ms: int = 1000
    shutdown_grace_ms: int = 5000
    port_file: Optional[str] = None

    @property
    def cache_enabled(self) -> bool:
        return bool(self.cache_host)

    @classmethod
    def from_mapping(cls, values: dict) -> "Config":
        """
        Build a validated Config from dotted keys, e.g. {"http.port": "0"}.
        Values may be strings (as read from the environment) or already typed.
        """
        unknown = set(values) - set(SETTINGS)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        kwargs = {}
        for key, value in values.items():
            if value is None:
                continue
            setting = SETTINGS[key]
            kwargs[setting.field] = setting.parse(key, value)

        config = cls(**kwargs)
        config.validate()
        return config

    def validate(self):
        if not 0 <= self.http_port <= 65535:
            raise ConfigError(f"http.port must be between 0 and 65535, not {self.http_port}")

        if not self.cache_host:
            if self.cache_port is not None:
                raise ConfigError("cache.port is set but cache.host is not")
            if self.cache_required:
                raise ConfigError("cache.required is set but cache.host is not")
        elif self.cache_port is None:
            self.cache_port = DEFAULT_CACHE_PORT

        if self.cache_port is not None and not 1 <= self.cache_port <= 65535:
            raise ConfigError(f"cache.port must be between 1 and 65535, not {self.cache_port}")

        for key in ("cache.retries", "cache.backoff.base.ms", "cache.backoff.cap.ms", "shutdown.grace.ms"):
            if getattr(self, SETTINGS[key].field) < 0:
                raise ConfigError(f"{key} must not be negative")
        if self.cache_timeout_ms <= 0:
            raise ConfigError("cache.timeout.ms must be positive")


def _parse_int(key: str, value) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ConfigError(f"{key} must be an integer, not {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, not {value!r}") from None


def _parse_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean, not {value!r}")


def _parse_str(key: str, value) -> Optional[str]:
    text = str(value).strip()
    return text or None


# a configurable setting, with its environment variable (for documentation/help)
@dataclass
class Setting:
    field: str
    env: str
    flag: str
    help: str
    kind: str = "str"

    def parse(self, key: str, value):
        return {"int": _parse_int, "bool": _parse_bool, "str": _parse_str}[self.kind](key, value)


SETTINGS = {
    "http.host": Setting("http_host", "HTTP_HOST", "--host", "listener host"),
    "http.port": Setting("http_port", "HTTP_PORT", "--port", "listener port (0 = ephemeral)", "int"),
    "cache.host": Setting("cache_host", "CACHE_HOST", "--cache-host", "key-value cache host"),
    "cache.port": Setting("cache_port", "CACHE_PORT", "--cache-port", "key-value cache port", "int"),
    "cache.required": Setting(
        "cache_required", "CACHE_REQUIRED", "--cache-required", "fail startup if the cache is unreachable", "bool"
    ),
    "cache.retries": Setting(
        "cache_retries", "CACHE_RETRIES", "--cache-retries", "connection retries when the cache is required", "int"
    ),
    "cache.backoff.base.ms": Setting(
        "cache_backoff_base_ms", "CACHE_BACKOFF_BASE_MS", "--cache-backoff-base-ms", "initial retry backoff", "int"
    ),
    "cache.backoff.cap.ms": Setting(
        "cache_backoff_cap_ms", "CACHE_BACKOFF_CAP_MS", "--cache-backoff-cap-ms", "maximum retry backoff", "int"
    ),
    "cache.timeout.ms": Setting(
        "cache_timeout_ms", "CACHE_TIMEOUT_MS", "--cache-timeout-ms", "cache connect/probe timeout", "int"
    ),
    "shutdown.grace.ms": Setting(
        "shutdown_grace_ms", "SHUTDOWN_GRACE_MS", "--shutdown-grace-ms", "time allowed for requests to drain", "int"
    ),
    "port.file": Setting("port_file", "PORT_FILE", "--port-file", "file the bound port is written to"),
}


class ArgumentParser(argparse.ArgumentParser):
    """argparse exits with status 2 on bad usage; report it as a ConfigError instead"""

    def error(self, message):
        raise ConfigError(message)


def env_help() -> str:
    """
    Help string listing the environment variables understood by the service. This extends
    what argparse displays beyond just direct command line arguments.
    """
    help = "Environment variables:\n"
    for key, setting in SETTINGS.items():
        help += f" {setting.env} - {setting.help} ({key}, overridden by {setting.flag})\n"
    return help


def build_parser() -> ArgumentParser:
    p = ArgumentParser(
        description="Serves the whale-of-a-time welcome page",
        epilog=env_help(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    for key, setting in SETTINGS.items():
        if setting.kind == "bool":
            p.add_argument(
                setting.flag,
                dest=key,
                default=None,
                action=argparse.BooleanOptionalAction,
                help=setting.help,
            )
        else:
            p.add_argument(setting.flag, dest=key, default=None, help=setting.help)

    p.add_argument("-d", "--debug", action="store_true", help="verbose logging")
    return p


def load_config(argv=None, environ=None) -> tuple[Config, argparse.Namespace]:
    """
    Parse command line arguments and environment variables into a validated Config
    """
    if environ is None:
        environ = os.environ

    args = build_parser().parse_args(argv)

    values = {}
    for key, setting in SETTINGS.items():
        value = getattr(args, key)
        if value is None:
            value = environ.get(setting.env)
        if value is not None:
            values[key] = value

    config = Config.from_mapping(values)
    LOG.debug("Loaded configuration %s", config)
    return config, args
