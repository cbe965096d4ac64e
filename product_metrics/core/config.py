from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_DEFAULT_REQUEST_BUCKETS = "0.005,0.01,0.025,0.05,0.1,0.25,0.5,1,2.5,5"
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    metrics_path: str = "/metrics"
    metrics_port: int | None = None
    request_buckets: tuple[float, ...] = (
        0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0,
    )
    fault_max_delay_seconds: float = 0.0
    fault_error_rate: float = 0.0
    fault_seed: int | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def faults_enabled(self) -> bool:
        return self.fault_max_delay_seconds > 0 or self.fault_error_rate > 0


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number (got {raw!r})") from None


def _parse_buckets(raw: str) -> tuple[float, ...]:
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    if not parts:
        raise ValueError("REQUEST_DURATION_BUCKETS must list at least one bound")
    bounds = tuple(_parse_float("REQUEST_DURATION_BUCKETS", p) for p in parts)
    if any(upper <= lower for lower, upper in zip(bounds, bounds[1:])):
        raise ValueError(
            f"REQUEST_DURATION_BUCKETS must be strictly ascending (got {raw!r})"
        )
    return bounds


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    log_json = _parse_bool("LOG_JSON", _getenv("LOG_JSON", "false"))
    port = _parse_int("PORT", _getenv("PORT", "8000"))

    metrics_path = _getenv("METRICS_PATH", "/metrics")
    if not metrics_path.startswith("/"):
        raise ValueError(f"METRICS_PATH must start with '/' (got {metrics_path!r})")

    metrics_port_raw = _getenv("METRICS_PORT", "")
    metrics_port = _parse_int("METRICS_PORT", metrics_port_raw) if metrics_port_raw else None

    request_buckets = _parse_buckets(
        _getenv("REQUEST_DURATION_BUCKETS", _DEFAULT_REQUEST_BUCKETS)
    )

    fault_max_delay = _parse_float(
        "FAULT_MAX_DELAY_SECONDS", _getenv("FAULT_MAX_DELAY_SECONDS", "0")
    )
    if fault_max_delay < 0:
        raise ValueError(
            f"FAULT_MAX_DELAY_SECONDS must be >= 0 (got {fault_max_delay!r})"
        )

    fault_error_rate = _parse_float("FAULT_ERROR_RATE", _getenv("FAULT_ERROR_RATE", "0"))
    if not 0.0 <= fault_error_rate <= 1.0:
        raise ValueError(
            f"FAULT_ERROR_RATE must be between 0 and 1 (got {fault_error_rate!r})"
        )

    fault_seed_raw = _getenv("FAULT_SEED", "")
    fault_seed = _parse_int("FAULT_SEED", fault_seed_raw) if fault_seed_raw else None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        metrics_path=metrics_path,
        metrics_port=metrics_port,
        request_buckets=request_buckets,
        fault_max_delay_seconds=fault_max_delay,
        fault_error_rate=fault_error_rate,
        fault_seed=fault_seed,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
