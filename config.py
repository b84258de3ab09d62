"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")


# ── PostgreSQL ────────────────────────────────────────────
if not os.getenv("DB_PORT"):
    raise RuntimeError("DB_PORT is not set")

DB_HOST: str = os.getenv("DB_HOST") or "localhost"
DB_PORT: int = int(os.environ["DB_PORT"])
DB_NAME: str = os.getenv("DB_NAME", "")
DB_USER: str = os.getenv("DB_USER", "")
DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")

# ── Pool sizing ───────────────────────────────────────────
DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))
# Seconds to wait for a free connection; unset means wait indefinitely
_raw_timeout = os.getenv("DB_POOL_TIMEOUT", "")
DB_POOL_TIMEOUT: Optional[float] = float(_raw_timeout) if _raw_timeout else None

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class DbConfig:
    """Connection parameters handed to psycopg2."""
    host: str
    port: int
    user: str
    password: str
    database: str

    def as_kwargs(self) -> dict:
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "dbname": self.database,
        }


def load_db_config() -> DbConfig:
    """Build a DbConfig from the environment-derived constants above."""
    return DbConfig(
        host=DB_HOST,
        port=DB_PORT,
        user=DB_USER,
        password=DB_PASSWORD,
        database=DB_NAME,
    )
