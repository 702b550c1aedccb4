from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable

from dotenv import load_dotenv

DEFAULT_CASH_METHOD_NAMES = ("efectivo", "cash")
DEFAULT_SELLER_ROLE_NAMES = ("seller", "vendedor")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    admin_validation_timeout_seconds: float = 10.0
    max_connections: int = 10
    verify_ssl: bool = True
    cash_method_names: tuple[str, ...] = field(default=DEFAULT_CASH_METHOD_NAMES)
    seller_role_names: tuple[str, ...] = field(default=DEFAULT_SELLER_ROLE_NAMES)


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _read_names(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    names = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    if not names:
        raise ConfigError(f"Invalid {name}: expected a comma separated list of names")
    return names


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> ClientConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("RETAIL_POS_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"RETAIL_POS_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("RETAIL_POS_API_BASE_URL") or "").strip()
    )

    timeout_seconds = _read_float("RETAIL_POS_TIMEOUT_SECONDS", "10")
    _validate(
        timeout_seconds > 0,
        f"Invalid RETAIL_POS_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )

    connect_timeout_seconds = _read_float(
        "RETAIL_POS_CONNECT_TIMEOUT_SECONDS", str(min(timeout_seconds, 5.0))
    )
    _validate(
        connect_timeout_seconds > 0,
        (
            "Invalid RETAIL_POS_CONNECT_TIMEOUT_SECONDS: "
            f"expected > 0, got {connect_timeout_seconds}"
        ),
    )

    read_timeout_seconds = _read_float(
        "RETAIL_POS_READ_TIMEOUT_SECONDS",
        str(max(timeout_seconds, connect_timeout_seconds)),
    )
    _validate(
        read_timeout_seconds > 0,
        f"Invalid RETAIL_POS_READ_TIMEOUT_SECONDS: expected > 0, got {read_timeout_seconds}",
    )

    admin_validation_timeout_seconds = _read_float(
        "RETAIL_POS_ADMIN_VALIDATION_TIMEOUT_SECONDS", str(timeout_seconds)
    )
    _validate(
        admin_validation_timeout_seconds > 0,
        (
            "Invalid RETAIL_POS_ADMIN_VALIDATION_TIMEOUT_SECONDS: "
            f"expected > 0, got {admin_validation_timeout_seconds}"
        ),
    )

    max_connections = _read_int("RETAIL_POS_MAX_CONNECTIONS", "10")
    _validate(
        max_connections >= 1,
        f"Invalid RETAIL_POS_MAX_CONNECTIONS: expected >= 1, got {max_connections}",
    )

    verify_ssl = _coerce_bool(os.getenv("RETAIL_POS_VERIFY_SSL"), True)
    cash_method_names = _read_names("RETAIL_POS_CASH_METHOD_NAMES", DEFAULT_CASH_METHOD_NAMES)
    seller_role_names = _read_names("RETAIL_POS_SELLER_ROLE_NAMES", DEFAULT_SELLER_ROLE_NAMES)

    values = {"RETAIL_POS_API_BASE_URL": api_base_url}
    _require(values, ["RETAIL_POS_API_BASE_URL"])

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        connect_timeout_seconds=connect_timeout_seconds,
        read_timeout_seconds=read_timeout_seconds,
        admin_validation_timeout_seconds=admin_validation_timeout_seconds,
        max_connections=max_connections,
        verify_ssl=verify_ssl,
        cash_method_names=cash_method_names,
        seller_role_names=seller_role_names,
    )
