"""
Runtime configuration.

Settings are read from the environment (and an optional .env file) once at
startup; services receive explicit values rather than reading env vars.
"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_DB_PATH = PROJECT_ROOT / "db" / "negotiations.db"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Application settings."""
    db_path: str = str(DEFAULT_DB_PATH)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> 'Settings':
        load_dotenv()

        # Use /tmp in serverless environments (Vercel), otherwise local path
        is_serverless = os.getenv("VERCEL") or os.getenv("AWS_LAMBDA_FUNCTION_NAME")
        default_path = "/tmp/negotiations.db" if is_serverless else str(DEFAULT_DB_PATH)

        return cls(
            db_path=(os.getenv("NEGOTIATION_DB_PATH") or "").strip() or default_path,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        )


def configure_logging(level: str = "INFO"):
    """Configure root logging once for the API or a CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
