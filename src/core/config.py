"""Application settings, read from CHESSCLUB_* environment variables."""

import os
from dataclasses import dataclass, field
from functools import lru_cache

ENV_PREFIX = "CHESSCLUB_"


def _env(name: str, default: str) -> str:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


def _env_flag(name: str, default: str = "0") -> bool:
    return _env(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./chess_club.db"
    auth_secret: str = "change-me"
    debug: bool = False
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=_env("DATABASE_URL", cls.database_url),
            auth_secret=_env("AUTH_SECRET", cls.auth_secret),
            debug=_env_flag("DEBUG"),
            allowed_origins=_env("ALLOWED_ORIGINS", "*").split(","),
            log_level=_env("LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
