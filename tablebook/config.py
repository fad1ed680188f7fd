"""
Application settings for the table booking service.

Values are read from the process environment after loading a local ``.env``
file, so a deployment can override any of them without code changes.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

import dotenv

dotenv.load_dotenv()

OWNER_SCOPE = "*"


def _as_bool(val: Optional[str], default: bool = False) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_staff_tokens(raw: Optional[str]) -> Dict[str, Set[str]]:
    """
    Parse the ``STAFF_TOKENS`` setting.

    Format is ``token:1,2;owner-token:*``. Each token maps to the restaurant
    ids it may manage; ``*`` grants access to every restaurant.

    Args:
        raw: The raw setting value

    Returns:
        Dict mapping bearer token to a set of restaurant ids (as strings)
    """
    tokens: Dict[str, Set[str]] = {}
    if not raw:
        return tokens

    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry or ":" not in entry:
            continue
        token, scopes = entry.split(":", 1)
        token = token.strip()
        if not token:
            continue
        tokens.setdefault(token, set()).update(
            scope.strip() for scope in scopes.split(",") if scope.strip()
        )
    return tokens


@dataclass
class Settings:
    database_url: str = "sqlite:///./tablebook.db"
    pending_timeout_seconds: int = 180
    sweep_interval_seconds: float = 10.0
    lookahead_minutes: int = 60
    service_window_minutes: int = 120
    auto_complete: bool = False
    default_timezone: str = "UTC"
    staff_tokens: Dict[str, Set[str]] = field(default_factory=dict)
    seed_sample_data: bool = True
    enable_sweeper: bool = True
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8547

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            pending_timeout_seconds=int(
                os.getenv("PENDING_TIMEOUT_SECONDS", defaults.pending_timeout_seconds)
            ),
            sweep_interval_seconds=float(
                os.getenv("SWEEP_INTERVAL_SECONDS", defaults.sweep_interval_seconds)
            ),
            lookahead_minutes=int(os.getenv("LOOKAHEAD_MINUTES", defaults.lookahead_minutes)),
            service_window_minutes=int(
                os.getenv("SERVICE_WINDOW_MINUTES", defaults.service_window_minutes)
            ),
            auto_complete=_as_bool(os.getenv("AUTO_COMPLETE"), defaults.auto_complete),
            default_timezone=os.getenv("DEFAULT_TIMEZONE", defaults.default_timezone),
            staff_tokens=parse_staff_tokens(os.getenv("STAFF_TOKENS")),
            seed_sample_data=_as_bool(os.getenv("SEED_SAMPLE_DATA"), defaults.seed_sample_data),
            enable_sweeper=_as_bool(os.getenv("ENABLE_SWEEPER"), defaults.enable_sweeper),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", defaults.port)),
        )


settings = Settings.from_env()
