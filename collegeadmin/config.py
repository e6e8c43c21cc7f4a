"""
Runtime configuration.

Values come from the environment, optionally seeded from a .env file in the
working directory. CLI flags override them (see cli.main).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from collegeadmin.errors import ConfigurationError


BACKENDS = ("memory", "remote")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def default_data_dir() -> Path:
    """
    Directory holding the packaged mock JSON tables.
    """
    return Path(__file__).resolve().parent / "data" / "mock"


@dataclass
class Settings:
    backend: str = "memory"
    data_dir: Path = default_data_dir()
    store_url: str = ""
    api_key: str = ""
    project_id: str = ""
    timeout: float = 30.0
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    def validate(self) -> None:
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"Unknown backend {self.backend!r} (expected one of: {', '.join(BACKENDS)})")
        if self.backend == "remote" and not self.store_url:
            raise ConfigurationError("RECORD_STORE_URL must be set to use the remote backend")
        if self.timeout <= 0:
            raise ConfigurationError(f"Invalid timeout: {self.timeout!r}")


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> Settings:
    """
    Build Settings from environment variables.

    Pass `env` to read from a plain mapping instead of os.environ (tests do).
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    timeout_raw = env.get("RECORD_STORE_TIMEOUT", "30")
    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ConfigurationError(f"RECORD_STORE_TIMEOUT is not a number: {timeout_raw!r}")

    data_dir = env.get("COLLEGEADMIN_DATA_DIR", "").strip()

    return Settings(
        backend=env.get("COLLEGEADMIN_BACKEND", "memory").strip().lower() or "memory",
        data_dir=Path(data_dir) if data_dir else default_data_dir(),
        store_url=env.get("RECORD_STORE_URL", "").strip().rstrip("/"),
        api_key=env.get("RECORD_STORE_API_KEY", "").strip(),
        project_id=env.get("RECORD_STORE_PROJECT_ID", "").strip(),
        timeout=timeout,
        log_level=env.get("LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
        log_file=env.get("LOG_FILE", "").strip() or None,
    )


def configure_logging(settings: Settings) -> None:
    """
    Configure the root logger once. Console output of the app itself goes
    through rich, so log records only go to stderr and, if set, to LOG_FILE.
    """
    level = getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if settings.log_file:
        handler = RotatingFileHandler(settings.log_file, maxBytes=10485760, backupCount=5)  # 10MB
        handler.setFormatter(logging.Formatter(LOG_FORMAT + " [%(pathname)s:%(lineno)d]"))
        handler.setLevel(level)
        logging.getLogger().addHandler(handler)
