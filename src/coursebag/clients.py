"""Base class for LMS backend clients.

This module defines the interface shared by clients that talk to an LMS
backend on behalf of a user, so that the CLI and the lesson player can work
against any of them.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class LMSClient(ABC):
    """Abstract base class for LMS (Learning Management System) clients.

    Attributes:
        base_url: The base URL of the backend API
        token_path: Path to the file holding the session token between runs

    Note on authentication:
        Clients authenticate once with `authenticate()` and persist the session
        token at `token_path`. Later calls reuse the stored token until the
        server rejects it, at which point the token is discarded and the user
        has to log in again.
    """

    base_url: str
    token_path: Path

    @abstractmethod
    def authenticate(self, email: str, password: str) -> bool:
        """Log in to the backend and store the session token.

        Args:
            email: Account email address.
            password: Account password.

        Returns:
            True if authentication was successful, False otherwise.
        """
        ...

    @abstractmethod
    def logout(self) -> None:
        """Forget the stored session token."""
        ...

    @abstractmethod
    def is_authenticated(self) -> bool:
        """Return True if a session token is stored."""
        ...
