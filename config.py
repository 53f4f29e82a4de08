import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

GROUP_DELETE_POLICIES = ("detach", "cascade")


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment"""
    database_url: str
    session_secret: str
    session_ttl_hours: float
    session_cookie_name: str
    cookie_secure: bool
    session_sweep_interval_seconds: float
    cors_origins: List[str]
    group_delete_policy: str
    default_group_name: str
    min_secret_length: int
    password_hash_iterations: int
    db_timeout_seconds: float
    read_retry_attempts: int
    log_level: str
    sql_echo: bool


def load_settings() -> Settings:
    """
    Build settings from environment variables

    Raises:
        ValueError: If SESSION_SECRET is missing or a value is out of range
    """
    session_secret = os.getenv("SESSION_SECRET")
    if not session_secret:
        raise ValueError("SESSION_SECRET environment variable is not set")

    policy = os.getenv("GROUP_DELETE_POLICY", "detach").strip().lower()
    if policy not in GROUP_DELETE_POLICIES:
        raise ValueError(
            f"GROUP_DELETE_POLICY must be one of {', '.join(GROUP_DELETE_POLICIES)}, got {policy!r}"
        )

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./todo.db"),
        session_secret=session_secret,
        session_ttl_hours=float(os.getenv("SESSION_TTL_HOURS", "24")),
        session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "session"),
        cookie_secure=_get_bool("COOKIE_SECURE"),
        session_sweep_interval_seconds=float(os.getenv("SESSION_SWEEP_INTERVAL_SECONDS", "600")),
        cors_origins=[
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ],
        group_delete_policy=policy,
        default_group_name=os.getenv("DEFAULT_GROUP_NAME", "Notes").strip(),
        min_secret_length=int(os.getenv("MIN_SECRET_LENGTH", "5")),
        password_hash_iterations=int(os.getenv("PASSWORD_HASH_ITERATIONS", "200000")),
        db_timeout_seconds=float(os.getenv("DB_TIMEOUT_SECONDS", "5")),
        read_retry_attempts=int(os.getenv("READ_RETRY_ATTEMPTS", "3")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        sql_echo=_get_bool("SQL_ECHO"),
    )


@lru_cache
def get_settings() -> Settings:
    """Cached settings - used as FastAPI dependency"""
    return load_settings()
