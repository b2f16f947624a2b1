"""Persistent storage for the API bearer token."""

import json
from pathlib import Path

import platformdirs
from loguru import logger


class TokenStore:
    """Keeps the bearer token in a small JSON file between invocations.

    Attributes:
        path: Location of the JSON file, `{"token": "..."}`.
    """

    @staticmethod
    def _default_path() -> Path:
        """Get the platform-appropriate default path for the token file."""
        cache_dir = Path(platformdirs.user_cache_dir("coursebag"))
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cache_dir / "token.json"

    def __init__(self, path: Path | None = None):
        self.path = path if path is not None else self._default_path()

    def get(self) -> str | None:
        """Return the stored token, or None if there is none."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable token file at {self.path}")
            return None
        token = data.get("token") if isinstance(data, dict) else None
        return token or None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token}))
        logger.debug(f"Token saved at {self.path}")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.debug(f"Token removed from {self.path}")
