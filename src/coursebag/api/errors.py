"""Exceptions raised by the API request layer.

Each failure class carries the message shown to users, so that callers
(the CLI, the lesson player) can report a problem without inspecting the
underlying HTTP exchange.
"""


class ApiError(RuntimeError):
    """Base class for failed API requests."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, endpoint: str | None = None):
        super().__init__(message or self.user_message)
        self.endpoint = endpoint

    @property
    def message(self) -> str:
        return str(self)


class RequestTimeoutError(ApiError):
    """The request was cancelled after exceeding its timeout."""

    user_message = "Request timed out. Please try again."


class NetworkError(ApiError):
    """The server could not be reached."""

    user_message = "Unable to reach the server. Please check your connection."


class AuthenticationError(ApiError):
    """Base class for authentication-class failures.

    These are the failures suppressed on course endpoints.
    """


class AuthenticationRequiredError(AuthenticationError):
    """The endpoint needs a token and none is stored."""

    user_message = "Authentication required. Please log in."


class AuthenticationExpiredError(AuthenticationError):
    """The server rejected the stored token with a 401."""

    user_message = "Authentication expired. Please log in again."


class NonJsonResponseError(ApiError):
    """The server answered with something other than JSON, usually an HTML error page."""

    user_message = (
        "Server returned HTML instead of JSON. "
        "The API server might be unavailable or misconfigured."
    )

    def __init__(self, message: str | None = None, endpoint: str | None = None, snippet: str = ""):
        super().__init__(message, endpoint)
        self.snippet = snippet


class HttpStatusError(ApiError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str | None = None, endpoint: str | None = None):
        super().__init__(message or f"Request failed with status {status_code}", endpoint)
        self.status_code = status_code

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return str(self)


def describe_error(exc: BaseException) -> str:
    """Return the user-facing message for any exception."""
    if isinstance(exc, ApiError):
        return exc.message
    return str(exc) or "Unknown error occurred"
