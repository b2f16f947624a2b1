"""Settings for talking to an LMS backend.

Values come from, in increasing precedence: the defaults below, an optional
YAML file, and environment variables (a `.env` file is honoured).
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import platformdirs
import yaml
from dotenv import load_dotenv
from loguru import logger

from coursebag.api import endpoints

ENV_PREFIX = "COURSEBAG_"


@dataclass
class Settings:
    """Connection and caching settings.

    Attributes:
        base_url: Scheme and host of the backend, without the API prefix.
        api_prefix: Path prefix of every API endpoint.
        token_path: Token file location; None means the platform default.
        current_path: Path reported as the return target when a login is required.
        cache_ttl: Lifetime in seconds of cached GET responses.
        course_cache_ttl: Lifetime in seconds of cached course responses.
        timeout: Request timeout in seconds.
        course_timeout: Request timeout in seconds for course endpoints.
    """

    base_url: str = "http://localhost:5000"
    api_prefix: str = endpoints.API_PREFIX
    token_path: Path | None = None
    current_path: str = "/"
    cache_ttl: float = endpoints.CACHE_DURATION
    course_cache_ttl: float = endpoints.COURSE_CACHE_DURATION
    timeout: float = endpoints.REQUEST_TIMEOUT
    course_timeout: float = endpoints.COURSE_REQUEST_TIMEOUT

    @property
    def api_url(self) -> str:
        return self.base_url.rstrip("/") + self.api_prefix

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(unknown)}")
        values = {k: v for k, v in data.items() if k in known}
        if values.get("token_path") is not None:
            values["token_path"] = Path(values["token_path"]).expanduser()
        for key in ("cache_ttl", "course_cache_ttl", "timeout", "course_timeout"):
            if key in values:
                values[key] = float(values[key])
        return cls(**values)


def default_config_path() -> Path:
    return Path(platformdirs.user_config_dir("coursebag")) / "config.yaml"


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {config_path}")
    return data


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from YAML and the environment.

    Args:
        config_path: YAML file to read. If None, the platform config file is
            read when it exists.

    Returns:
        Settings: The merged settings.

    Raises:
        ValueError: If an explicitly given config file does not exist or is malformed.
    """
    load_dotenv()

    data: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise ValueError(f"Configuration file not found: {config_path}")
        data = _load_yaml_config(config_path)
    elif default_config_path().exists():
        data = _load_yaml_config(default_config_path())

    for name in ("base_url", "token_path", "current_path"):
        value = os.getenv(ENV_PREFIX + name.upper())
        if value:
            data[name] = value

    settings = Settings.from_dict(data)
    logger.debug(f"Using API at {settings.api_url}")
    return settings
