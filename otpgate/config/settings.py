"""Typed application settings loaded from static environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

SessionBackend = str
LogLevel = str

ENV_DB_PATH = "OTPGATE_DB_PATH"
ENV_BIND = "OTPGATE_BIND"
ENV_PORT = "OTPGATE_PORT"
ENV_LOG_LEVEL = "OTPGATE_LOG_LEVEL"
ENV_SESSION_BACKEND = "OTPGATE_SESSION_BACKEND"
ENV_SESSION_COOKIE_NAME = "OTPGATE_SESSION_COOKIE_NAME"
ENV_SESSION_COOKIE_SECURE = "OTPGATE_SESSION_COOKIE_SECURE"
ENV_CREDENTIAL_TTL_SECONDS = "OTPGATE_CREDENTIAL_TTL_SECONDS"
ENV_PUBLIC_DIR = "OTPGATE_PUBLIC_DIR"
ENV_GAME_PAGE = "OTPGATE_GAME_PAGE"
ENV_CORS_ALLOW_ORIGINS = "OTPGATE_CORS_ALLOW_ORIGINS"
ENV_SMS_ENDPOINT = "OTPGATE_SMS_ENDPOINT"
ENV_SMS_USERNAME = "OTPGATE_SMS_USERNAME"
ENV_SMS_APIKEY = "OTPGATE_SMS_APIKEY"
ENV_SMS_SENDER = "OTPGATE_SMS_SENDER"
ENV_SMS_ROUTE = "OTPGATE_SMS_ROUTE"
ENV_SMS_TEMPLATE_ID = "OTPGATE_SMS_TEMPLATE_ID"
ENV_SMS_TIMEOUT_SECONDS = "OTPGATE_SMS_TIMEOUT_SECONDS"

DEFAULT_DB_PATH = Path("/data/otpgate.db")
DEFAULT_BIND = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_LOG_LEVEL: LogLevel = "INFO"
DEFAULT_SESSION_BACKEND: SessionBackend = "sqlite"
DEFAULT_SESSION_COOKIE_NAME = "otpgate_session"
DEFAULT_PUBLIC_DIR = Path("public")
DEFAULT_GAME_PAGE = "TapRaceGame.html"
DEFAULT_SMS_ENDPOINT = "http://123.108.46.13/sms-panel/api/http/index.php"
DEFAULT_SMS_SENDER = "MORORE"
DEFAULT_SMS_ROUTE = "OTP"
DEFAULT_SMS_TEMPLATE_ID = "1707174419181876651"
DEFAULT_SMS_TIMEOUT_SECONDS = 10.0
DEFAULT_SMS_MESSAGE_TEMPLATE = (
    "Hi, {credential} is the Survey Code which you had requested, "
    "it is valid for {validity_minutes} mins. {sender}"
)
DEFAULT_SMS_VALIDITY_MINUTES = 10

VALID_SESSION_BACKENDS: frozenset[SessionBackend] = frozenset({"sqlite", "memory"})
VALID_LOG_LEVELS: frozenset[LogLevel] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
)
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class SettingsValidationError(ValueError):
    """Raised when static settings env vars contain invalid values."""

    @classmethod
    def for_empty_value(cls, env_var: str) -> SettingsValidationError:
        """Build error for empty non-optional env var values."""
        message = f"Invalid {env_var}: value cannot be empty."
        return cls(message)

    @classmethod
    def for_invalid_choice(
        cls,
        env_var: str,
        value: str,
        allowed_values: str,
    ) -> SettingsValidationError:
        """Build error for enum-like env vars with fixed allowlists."""
        message = f"Invalid {env_var}: {value!r}. Allowed values: {allowed_values}."
        return cls(message)

    @classmethod
    def for_non_positive_number(cls, env_var: str, value: str) -> SettingsValidationError:
        """Build error for numeric env vars that must be strictly positive."""
        message = f"Invalid {env_var}: {value!r}. Expected a positive number."
        return cls(message)


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """Operator-configured SMS gateway endpoint, credentials and template."""

    endpoint: str
    username: str
    api_key: str
    sender: str
    route: str
    template_id: str
    timeout_seconds: float
    message_template: str = DEFAULT_SMS_MESSAGE_TEMPLATE
    validity_minutes: int = DEFAULT_SMS_VALIDITY_MINUTES

    @property
    def has_credentials(self) -> bool:
        """Return True when both gateway username and API key are set."""
        return bool(self.username and self.api_key)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Resolved static configuration values for process startup."""

    db_path: Path
    bind: str
    port: int
    log_level: LogLevel
    session_backend: SessionBackend
    session_cookie_name: str
    session_cookie_secure: bool
    credential_ttl_seconds: int | None
    public_dir: Path
    game_page: str
    cors_allow_origins: tuple[str, ...]
    gateway: GatewaySettings


def load_settings(environ: Mapping[str, str] | None = None) -> AppSettings:
    """Load and validate static settings from process environment."""
    env = os.environ if environ is None else environ

    return AppSettings(
        db_path=_read_db_path(env),
        bind=_read_required_str(env, ENV_BIND, DEFAULT_BIND),
        port=_read_positive_int(env, ENV_PORT, DEFAULT_PORT),
        log_level=_read_log_level(env),
        session_backend=_read_session_backend(env),
        session_cookie_name=_read_required_str(
            env,
            ENV_SESSION_COOKIE_NAME,
            DEFAULT_SESSION_COOKIE_NAME,
        ),
        session_cookie_secure=_read_bool(env, ENV_SESSION_COOKIE_SECURE, default=False),
        credential_ttl_seconds=_read_optional_positive_int(
            env,
            ENV_CREDENTIAL_TTL_SECONDS,
        ),
        public_dir=_read_public_dir(env),
        game_page=_read_required_str(env, ENV_GAME_PAGE, DEFAULT_GAME_PAGE),
        cors_allow_origins=_read_cors_allow_origins(env),
        gateway=load_gateway_settings(env),
    )


def load_gateway_settings(environ: Mapping[str, str]) -> GatewaySettings:
    """Load SMS gateway configuration from environment variables."""
    return GatewaySettings(
        endpoint=_read_required_str(environ, ENV_SMS_ENDPOINT, DEFAULT_SMS_ENDPOINT),
        username=environ.get(ENV_SMS_USERNAME, "").strip(),
        api_key=environ.get(ENV_SMS_APIKEY, "").strip(),
        sender=_read_required_str(environ, ENV_SMS_SENDER, DEFAULT_SMS_SENDER),
        route=_read_required_str(environ, ENV_SMS_ROUTE, DEFAULT_SMS_ROUTE),
        template_id=_read_required_str(
            environ,
            ENV_SMS_TEMPLATE_ID,
            DEFAULT_SMS_TEMPLATE_ID,
        ),
        timeout_seconds=_read_positive_float(
            environ,
            ENV_SMS_TIMEOUT_SECONDS,
            DEFAULT_SMS_TIMEOUT_SECONDS,
        ),
    )


def _read_db_path(environ: Mapping[str, str]) -> Path:
    raw = environ.get(ENV_DB_PATH)
    if raw is None:
        return DEFAULT_DB_PATH
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(ENV_DB_PATH)
    return Path(value).expanduser()


def _read_public_dir(environ: Mapping[str, str]) -> Path:
    raw = environ.get(ENV_PUBLIC_DIR)
    if raw is None:
        return DEFAULT_PUBLIC_DIR
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(ENV_PUBLIC_DIR)
    return Path(value).expanduser()


def _read_required_str(environ: Mapping[str, str], env_var: str, default: str) -> str:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(env_var)
    return value


def _read_log_level(environ: Mapping[str, str]) -> LogLevel:
    raw = environ.get(ENV_LOG_LEVEL)
    if raw is None:
        return DEFAULT_LOG_LEVEL
    value = raw.strip().upper()
    if value in VALID_LOG_LEVELS:
        return value
    allowed = ", ".join(sorted(VALID_LOG_LEVELS))
    raise SettingsValidationError.for_invalid_choice(ENV_LOG_LEVEL, raw, allowed)


def _read_session_backend(environ: Mapping[str, str]) -> SessionBackend:
    raw = environ.get(ENV_SESSION_BACKEND)
    if raw is None:
        return DEFAULT_SESSION_BACKEND
    value = raw.strip().lower()
    if value in VALID_SESSION_BACKENDS:
        return value
    allowed = ", ".join(sorted(VALID_SESSION_BACKENDS))
    raise SettingsValidationError.for_invalid_choice(ENV_SESSION_BACKEND, raw, allowed)


def _read_bool(environ: Mapping[str, str], env_var: str, *, default: bool) -> bool:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    allowed = ", ".join(sorted(_TRUE_VALUES | _FALSE_VALUES))
    raise SettingsValidationError.for_invalid_choice(env_var, raw, allowed)


def _read_positive_int(environ: Mapping[str, str], env_var: str, default: int) -> int:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip()
    if not value.isdigit() or int(value) <= 0:
        raise SettingsValidationError.for_non_positive_number(env_var, raw)
    return int(value)


def _read_optional_positive_int(
    environ: Mapping[str, str],
    env_var: str,
) -> int | None:
    raw = environ.get(env_var)
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if not value.isdigit() or int(value) <= 0:
        raise SettingsValidationError.for_non_positive_number(env_var, raw)
    return int(value)


def _read_positive_float(
    environ: Mapping[str, str],
    env_var: str,
    default: float,
) -> float:
    raw = environ.get(env_var)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise SettingsValidationError.for_non_positive_number(env_var, raw) from exc
    if value <= 0:
        raise SettingsValidationError.for_non_positive_number(env_var, raw)
    return value


def _read_cors_allow_origins(environ: Mapping[str, str]) -> tuple[str, ...]:
    raw = environ.get(ENV_CORS_ALLOW_ORIGINS)
    if raw is None:
        return ()
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())
