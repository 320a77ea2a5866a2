"""Environment configuration and logging setup.

Values come from the process environment, with a local .env file loaded
first (existing variables win).
"""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from task_store import DEFAULT_DB_NAME

DEFAULT_PORT = 5000

LOG_FORMAT = '%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settings:
    mongodb_uri: str
    client_url: Optional[str] = None
    port: int = DEFAULT_PORT
    db_name: str = DEFAULT_DB_NAME
    log_level: str = 'INFO'


def _env(name):
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings(dotenv=True):
    """Build server settings from the environment.

    MONGODB_URI is required; PORT falls back to 5000.
    """
    if dotenv:
        load_dotenv(override=False)

    uri = _env('MONGODB_URI')
    if uri is None:
        raise ConfigError('MONGODB_URI is not set')

    port_raw = _env('PORT')
    try:
        port = int(port_raw) if port_raw is not None else DEFAULT_PORT
    except ValueError:
        raise ConfigError('PORT must be an integer, got %r' % port_raw)

    return Settings(
        mongodb_uri=uri,
        client_url=_env('CLIENT_URL'),
        port=port,
        db_name=_env('MONGODB_DB_NAME') or DEFAULT_DB_NAME,
        log_level=(_env('LOG_LEVEL') or 'INFO').upper(),
    )


def load_api_url(dotenv=True):
    """Base URL the client talks to, e.g. http://localhost:5000/api."""
    if dotenv:
        load_dotenv(override=False)
    return _env('TASKS_API_URL')


def setup_logging(level='INFO'):
    """Configure the root logger. Call once, before the first log line."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.addHandler(handler)

    # Request lines and driver heartbeats only at DEBUG.
    if level > logging.DEBUG:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('pymongo').setLevel(logging.WARNING)
