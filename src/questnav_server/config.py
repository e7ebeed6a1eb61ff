"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS — comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Questionnaire directory (None → QuestionnaireStore default, questionnaires/ from repo root)
    questionnaire_dir: str | None = None

    # Logging
    log_level: str = "INFO"

    # Upper bound on live in-memory sessions; 0 means unlimited
    max_sessions: int = 1000

    # Trusted proxy secret — when set, every request that carries
    # X-User-ID must also carry X-Proxy-Secret matching this value.
    trusted_proxy_secret: str | None = None


def load_settings() -> ServerSettings:
    """Build settings from ``QUESTNAV_*`` environment variables."""
    raw_origins = os.getenv("QUESTNAV_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("QUESTNAV_HOST", "0.0.0.0"),
        port=int(os.getenv("QUESTNAV_PORT", "8080")),
        cors_origins=origins,
        questionnaire_dir=os.getenv("QUESTNAV_QUESTIONNAIRE_DIR") or None,
        log_level=os.getenv("QUESTNAV_LOG_LEVEL", "INFO").upper(),
        max_sessions=int(os.getenv("QUESTNAV_MAX_SESSIONS", "1000")),
        trusted_proxy_secret=os.getenv("QUESTNAV_TRUSTED_PROXY_SECRET") or None,
    )
