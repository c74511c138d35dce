import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"
SESSION_COOKIE_NAME = "session"
SESSION_TTL_SECONDS = 60 * 60 * 24 * 30
OAUTH_STATE_TTL_SECONDS = 600


def _get_str(source: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    value = source.get(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _get_int(source: Mapping[str, str], name: str, default: int) -> int:
    raw = _get_str(source, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a positive integer.") from exc
    if value < 1:
        raise ValueError(f"{name} must be greater than zero.")
    return value


def _get_bool(source: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get_str(source, name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment (and a local ``.env`` file)."""

    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_metadata_url: str = GOOGLE_METADATA_URL
    public_origin: Optional[str] = None
    api_prefix: str = "/api"
    cookie_secure: bool = True
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("*",))
    session_ttl_seconds: int = SESSION_TTL_SECONDS
    oauth_state_ttl_seconds: int = OAUTH_STATE_TTL_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        source = environ if environ is not None else os.environ

        api_prefix = _get_str(source, "API_PREFIX", "/api").rstrip("/")
        if api_prefix and not api_prefix.startswith("/"):
            api_prefix = "/" + api_prefix

        public_origin = _get_str(source, "PUBLIC_ORIGIN")
        if public_origin:
            public_origin = public_origin.rstrip("/")

        cors_raw = _get_str(source, "CORS_ORIGINS", "*")
        cors_origins = tuple(origin.strip() for origin in cors_raw.split(",") if origin.strip())

        return cls(
            google_client_id=_get_str(source, "GOOGLE_CLIENT_ID"),
            google_client_secret=_get_str(source, "GOOGLE_CLIENT_SECRET"),
            google_metadata_url=_get_str(source, "GOOGLE_METADATA_URL", GOOGLE_METADATA_URL),
            public_origin=public_origin,
            api_prefix=api_prefix,
            cookie_secure=_get_bool(source, "COOKIE_SECURE", True),
            cors_origins=cors_origins or ("*",),
            session_ttl_seconds=_get_int(source, "SESSION_TTL_SECONDS", SESSION_TTL_SECONDS),
            oauth_state_ttl_seconds=_get_int(source, "OAUTH_STATE_TTL_SECONDS", OAUTH_STATE_TTL_SECONDS),
            log_level=_get_str(source, "LOG_LEVEL", "INFO").upper(),
        )
