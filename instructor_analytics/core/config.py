from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so type casting stays in one place
    return os.environ.get(name, default).strip()


def _getenv_bool(name: str, default: str) -> bool:
    raw = _getenv(name, default).lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    analytics_timeout_seconds: float = 10.0
    analytics_max_concurrency: int = 8
    # PEM of the auth service's ES256 public key.  Unset in dev and test,
    # where token_service signs with an ephemeral key instead.
    jwt_public_key: str | None = None
    jwt_issuer: str = "auth-service"
    jwt_audience: str = "marketplace-api"
    cors_origins: tuple[str, ...] = ()

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    timeout_raw = _getenv("ANALYTICS_TIMEOUT_SECONDS", "10")
    concurrency_raw = _getenv("ANALYTICS_MAX_CONCURRENCY", "8")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"ANALYTICS_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if timeout <= 0:
        raise ValueError(
            f"ANALYTICS_TIMEOUT_SECONDS must be positive (got {timeout_raw!r})"
        )

    try:
        concurrency = int(concurrency_raw)
    except ValueError:
        raise ValueError(
            f"ANALYTICS_MAX_CONCURRENCY must be an integer (got {concurrency_raw!r})"
        ) from None
    if concurrency < 1:
        raise ValueError(
            f"ANALYTICS_MAX_CONCURRENCY must be at least 1 (got {concurrency_raw!r})"
        )

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    # Containers often pass PEMs with literal \n escapes.
    jwt_public_key = _getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON", "false"),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        analytics_timeout_seconds=timeout,
        analytics_max_concurrency=concurrency,
        jwt_public_key=jwt_public_key,
        jwt_issuer=_getenv("JWT_ISSUER", "auth-service"),
        jwt_audience=_getenv("JWT_AUDIENCE", "marketplace-api"),
        cors_origins=tuple(
            origin.strip()
            for origin in _getenv("CORS_ORIGINS", "").split(",")
            if origin.strip()
        ),
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
