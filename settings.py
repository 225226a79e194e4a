from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_SERIAL_DEVICE_ENV = "P1_SERIAL_DEVICE"
_BAUD_RATE_ENV = "P1_BAUD_RATE"
_PARITY_ENV = "P1_PARITY"
_BYTE_SIZE_ENV = "P1_BYTE_SIZE"
_SOURCE_FILE_ENV = "P1_SOURCE_FILE"
_POLL_INTERVAL_ENV = "P1_POLL_INTERVAL"
_UNRECOGNIZED_POLICY_ENV = "P1_UNRECOGNIZED_POLICY"
_METRIC_PREFIX_ENV = "P1_METRIC_PREFIX"
_HTTP_HOST_ENV = "P1_HTTP_HOST"
_HTTP_PORT_ENV = "P1_HTTP_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_PARITIES = {"N", "E", "O", "M", "S"}
_POLICIES = {"log", "fatal"}


@dataclass(frozen=True)
class Settings:
    serial_device: str
    baud_rate: int
    parity: str
    byte_size: int
    source_file: Optional[str]
    poll_interval: float
    unrecognized_policy: str
    metric_prefix: str
    http_host: str
    http_port: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_byte_size(default: int) -> int:
    parsed = _read_positive_int(_BYTE_SIZE_ENV, default)
    return parsed if 5 <= parsed <= 8 else default


def _read_choice(name: str, choices: set[str], default: str, upper: bool) -> str:
    candidate = _read_str_env(name, default)
    candidate = candidate.upper() if upper else candidate.lower()
    return candidate if candidate in choices else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        serial_device=_read_str_env(_SERIAL_DEVICE_ENV, "/dev/ttyUSB0"),
        baud_rate=_read_positive_int(_BAUD_RATE_ENV, 115200),
        parity=_read_choice(_PARITY_ENV, _PARITIES, "N", upper=True),
        byte_size=_read_byte_size(8),
        source_file=_read_optional_env(_SOURCE_FILE_ENV, None),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 5.0),
        unrecognized_policy=_read_choice(_UNRECOGNIZED_POLICY_ENV, _POLICIES, "log", upper=False),
        metric_prefix=_read_str_env(_METRIC_PREFIX_ENV, "p1"),
        http_host=_read_str_env(_HTTP_HOST_ENV, "0.0.0.0"),
        http_port=_read_positive_int(_HTTP_PORT_ENV, 2112),
        log_level=_read_log_level("INFO"),
    )
