"""
Configuration for the HomeDash sidecar

All settings come from environment variables and are loaded once at startup.
Invalid optional values are logged and replaced by their defaults; a missing
server address is fatal.
"""
import logging
import math
import os
import re
import uuid
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ENV_SERVER = 'HOMEDASH_SERVER'
ENV_INTERVAL = 'HOMEDASH_INTERVAL'
ENV_UUID = 'HOMEDASH_SIDECAR_UUID'
ENV_LABEL_PREFIX = 'HOMEDASH_LABEL_PREFIX'
ENV_LOG_LEVEL = 'HOMEDASH_LOG_LEVEL'
ENV_METRICS_PORT = 'HOMEDASH_METRICS_PORT'
ENV_REQUEST_TIMEOUT = 'HOMEDASH_REQUEST_TIMEOUT'
ENV_DOCKER_SOCKET = 'DOCKER_SOCKET_PATH'

API_PATH = '/api/v1/applications'

DEFAULT_INTERVAL = '10m'
DEFAULT_LABEL_PREFIX = 'homedash'
DEFAULT_LOG_LEVEL = 'INFO'

LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
}

_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}
_DURATION_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)')


class ConfigurationError(Exception):
    """Raised when required configuration is missing"""


class SidecarConfig(BaseModel):
    """Immutable sidecar configuration"""
    model_config = ConfigDict(frozen=True)

    server: str = Field(..., min_length=1)
    interval_seconds: float = Field(default=600.0, gt=0)
    sidecar_uuid: str = Field(default_factory=lambda: str(uuid.uuid4()))
    # Includes the trailing dot, e.g. "homedash."
    label_prefix: str = DEFAULT_LABEL_PREFIX + '.'
    log_level: int = logging.INFO
    docker_socket_path: Optional[str] = None
    metrics_port: Optional[int] = None
    request_timeout: Optional[float] = None

    @property
    def endpoint(self) -> str:
        """Full URL the report is POSTed to"""
        return self.server.rstrip('/') + API_PATH


@dataclass
class SidecarContext:
    """Configuration and logger handed to each component at construction"""
    config: SidecarConfig
    logger: logging.Logger


def parse_duration(value: str) -> float:
    """
    Parse a duration string into seconds.

    Accepts Go-style durations such as ``90s``, ``10m``, ``1h30m`` or
    ``1.5h``. A bare number is read as minutes.

    Raises:
        ValueError: if the string is not a positive duration
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    try:
        seconds = float(text) * 60.0
    except ValueError:
        seconds = 0.0
        position = 0
        for match in _DURATION_PART.finditer(text):
            if match.start() != position:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            position = match.end()
        if position != len(text) or position == 0:
            raise ValueError(f"invalid duration: {value!r}")

    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")
    return seconds


def parse_log_level(value: str) -> Tuple[int, bool]:
    """
    Parse a log level name, case-insensitive.

    Returns:
        (level, valid) where level falls back to INFO when invalid
    """
    level = LOG_LEVELS.get(value.strip().upper())
    if level is None:
        return logging.INFO, False
    return level, True


def load_config(environ: Optional[Mapping[str, str]] = None) -> SidecarConfig:
    """
    Load configuration from the environment.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        SidecarConfig

    Raises:
        ConfigurationError: if HOMEDASH_SERVER is not set
    """
    env = os.environ if environ is None else environ
    logger.info("Loading configuration")

    server = env.get(ENV_SERVER, '').strip()
    if not server:
        raise ConfigurationError(f"Required environment variable {ENV_SERVER} not set or empty")

    log_level_str = env.get(ENV_LOG_LEVEL, '')
    if not log_level_str:
        logger.info(f"Using default log level {DEFAULT_LOG_LEVEL} ({ENV_LOG_LEVEL} not set)")
        log_level_str = DEFAULT_LOG_LEVEL
    log_level, valid = parse_log_level(log_level_str)
    if not valid:
        logger.warning(f"Invalid log level {log_level_str!r}, using {DEFAULT_LOG_LEVEL}")

    interval_str = env.get(ENV_INTERVAL, '')
    if not interval_str:
        logger.warning(f"Using default interval {DEFAULT_INTERVAL} ({ENV_INTERVAL} not set)")
        interval_str = DEFAULT_INTERVAL
    try:
        interval_seconds = parse_duration(interval_str)
    except ValueError as e:
        logger.error(f"Unable to parse interval: {e}; using default {DEFAULT_INTERVAL}")
        interval_seconds = parse_duration(DEFAULT_INTERVAL)
    logger.debug(f"Interval set to once every {interval_seconds / 60:g} minutes")

    sidecar_uuid = env.get(ENV_UUID, '')
    if not sidecar_uuid:
        sidecar_uuid = str(uuid.uuid4())
        logger.warning(f"Using generated uuid {sidecar_uuid} ({ENV_UUID} not set)")

    prefix = env.get(ENV_LABEL_PREFIX, '')
    if not prefix:
        logger.info(f"Using default label prefix {DEFAULT_LABEL_PREFIX!r} ({ENV_LABEL_PREFIX} not set)")
        prefix = DEFAULT_LABEL_PREFIX

    return SidecarConfig(
        server=server,
        interval_seconds=interval_seconds,
        sidecar_uuid=sidecar_uuid,
        label_prefix=prefix + '.',
        log_level=log_level,
        docker_socket_path=env.get(ENV_DOCKER_SOCKET) or None,
        metrics_port=_optional_number(env, ENV_METRICS_PORT, int),
        request_timeout=_optional_number(env, ENV_REQUEST_TIMEOUT, float),
    )


def _optional_number(env: Mapping[str, str], key: str, cast):
    """Read an optional numeric variable; invalid values are logged and ignored."""
    raw = env.get(key, '').strip()
    if not raw:
        return None
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {key}={raw!r}")
        return None
    if not math.isfinite(value) or value <= 0:
        logger.warning(f"Ignoring non-positive {key}={raw!r}")
        return None
    return value
