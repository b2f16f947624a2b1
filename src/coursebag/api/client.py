"""Client for the LMS REST API.

Every call to the backend goes through `ApiClient.request`, which adds
response caching for GET requests, per-endpoint timeouts, bearer-token
injection and the authentication-failure policy: course endpoints degrade to
public data, everything else logs the user out and asks for a new login.
"""

import dataclasses
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from coursebag.api import endpoints
from coursebag.api.cache import ResponseCache, default_cache
from coursebag.api.errors import (
    AuthenticationError,
    AuthenticationExpiredError,
    AuthenticationRequiredError,
    HttpStatusError,
    NetworkError,
    NonJsonResponseError,
    RequestTimeoutError,
)
from coursebag.api.token_store import TokenStore
from coursebag.clients import LMSClient
from coursebag.config import Settings

LOGIN_PATH = "/login"
_SNIPPET_LENGTH = 150


def unwrap_data(payload: Any) -> Any:
    """Strip the backend's `{"success": ..., "data": ...}` envelope if present."""
    if isinstance(payload, dict) and "success" in payload and "data" in payload:
        return payload["data"]
    return payload


def empty_enrollment(course: Any) -> dict[str, Any]:
    """The shape returned for a course the caller cannot see progress for."""
    return {"course": course if course is not None else {}, "isEnrolled": False, "progress": None}


def _error_text(payload: Any) -> str | None:
    if isinstance(payload, dict):
        error = payload.get("error") or payload.get("message")
        if isinstance(error, str) and error:
            return error
    return None


def _has_error(payload: Any) -> bool:
    return isinstance(payload, dict) and bool(payload.get("error"))


class ApiClient(LMSClient):
    """Client to interact with the LMS backend over HTTP.

    Attributes:
        settings: Connection, timeout and cache settings.
        token_store: Where the bearer token is kept.
        cache: GET response cache. Defaults to the process-wide cache.
        navigate: Called with the login URL when the user has to log in again.
        login_redirect: The last login URL requested, or None.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        token_store: TokenStore | None = None,
        cache: ResponseCache | None = None,
        transport: httpx.BaseTransport | None = None,
        navigate: Callable[[str], None] | None = None,
        base_url: str | None = None,
    ):
        """Initializes the ApiClient."""
        settings = settings if settings is not None else Settings()
        if base_url is not None:
            settings = dataclasses.replace(settings, base_url=base_url)
        self.settings = settings
        if token_store is not None:
            self.token_store = token_store
        else:
            self.token_store = TokenStore(settings.token_path)
        self.cache = cache if cache is not None else default_cache
        self.navigate = navigate
        self.login_redirect: str | None = None
        self._http = httpx.Client(base_url=settings.api_url, transport=transport)

    @property
    def base_url(self) -> str:  # type: ignore[override]
        return self.settings.api_url

    @property
    def token_path(self):  # type: ignore[override]
        return self.token_store.path

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Authentication

    def authenticate(self, email: str, password: str) -> bool:
        """Log in with email and password and store the returned token.

        Args:
            email: Account email address.
            password: Account password.

        Returns:
            bool: True if a token was received and stored, False otherwise.
        """
        try:
            payload = self.post("/auth/login", {"email": email, "password": password})
        except HttpStatusError as e:
            logger.error(f"Login failed: {e}")
            return False
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            logger.error("Login response did not include a token")
            return False
        self.token_store.set(token)
        # Cached anonymous responses may hide enrollment data now available.
        self.cache.clear()
        logger.info(f"Logged in as {email}")
        return True

    def logout(self) -> None:
        self.token_store.clear()
        self.cache.clear()
        logger.info("Logged out")

    def is_authenticated(self) -> bool:
        return self.token_store.get() is not None

    def _handle_auth_error(self, endpoint: str) -> None:
        """Apply the logout policy for an authentication failure on `endpoint`.

        Course endpoints keep the token so the page can go on with public
        data. Any other endpoint discards the token and asks for a login that
        returns to the current path.
        """
        if endpoints.is_course_endpoint(endpoint):
            logger.info(f"Preserving authentication for course endpoint {endpoint}")
            return
        logger.warning(f"Logging out after authentication failure on {endpoint}")
        self.token_store.clear()
        redirect = f"{LOGIN_PATH}?redirect={quote(self.settings.current_path, safe='')}"
        self.login_redirect = redirect
        if self.navigate is not None:
            self.navigate(redirect)

    # Requests

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        json: Any = None,
        files: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        requires_auth: bool = False,
    ) -> Any:
        """Make a request to the API.

        Args:
            endpoint: API path without the `/api/v1` prefix, e.g. `/courses/42`.
            method: HTTP method. GET responses are cached.
            json: JSON-serialisable request body.
            files: Multipart upload, passed through to httpx.
            headers: Extra request headers.
            requires_auth: Send the stored bearer token.

        Returns:
            The parsed JSON body. For course endpoints, authentication problems
            produce a fallback payload instead of an exception.

        Raises:
            ApiError: A subclass describing the failure.
        """
        try:
            return self._request(endpoint, method.upper(), json, files, headers, requires_auth)
        except AuthenticationError as e:
            if endpoints.is_course_endpoint(endpoint):
                logger.info(f"Suppressing auth error for course endpoint {endpoint}: {e}")
                return {"error": e.message}
            raise

    def _request(
        self,
        endpoint: str,
        method: str,
        json: Any,
        files: dict[str, Any] | None,
        headers: dict[str, str] | None,
        requires_auth: bool,
    ) -> Any:
        is_course = endpoints.is_course_endpoint(endpoint)
        is_get = method == "GET"

        if is_get:
            ttl = endpoints.cache_ttl(endpoint, self.settings.course_cache_ttl, self.settings.cache_ttl)
            cached = self.cache.get(endpoint, requires_auth, ttl)
            if cached is not None:
                return cached

        timeout = endpoints.request_timeout(endpoint, self.settings.course_timeout, self.settings.timeout)
        logger.debug(f"Setting timeout to {timeout}s for {endpoint}")

        request_headers = dict(headers or {})
        if files is None:
            request_headers["Content-Type"] = "application/json"

        sent_token = False
        if requires_auth:
            token = self.token_store.get()
            if token is None:
                if not is_course:
                    self._handle_auth_error(endpoint)
                    raise AuthenticationRequiredError(endpoint=endpoint)
                logger.info(f"Continuing with course request without auth: {endpoint}")
            else:
                request_headers["Authorization"] = f"Bearer {token}"
                sent_token = True

        deadline = time.monotonic() + timeout
        try:
            with self._http.stream(
                method,
                endpoint,
                json=json,
                files=files,
                headers=request_headers,
                timeout=timeout,
            ) as streamed:
                response = self._read_before(streamed, deadline, endpoint, timeout)
        except httpx.TimeoutException as e:
            logger.error(f"Request to {endpoint} timed out after {timeout}s")
            raise RequestTimeoutError(endpoint=endpoint) from e
        except httpx.TransportError as e:
            logger.error(f"Request to {endpoint} failed: {e}")
            raise NetworkError(endpoint=endpoint) from e

        payload = self._parse(response, endpoint)

        if response.is_success:
            if is_get and not _has_error(payload):
                self.cache.put(endpoint, requires_auth, payload)
            return payload

        status = response.status_code
        message = _error_text(payload)

        if status == 401 and is_course:
            self._handle_auth_error(endpoint)
            logger.warning(f"Auth failed for {endpoint}, falling back to public data")
            if endpoints.has_public_equivalent(endpoint):
                public = endpoints.public_endpoint(endpoint)
                logger.info(f"Retrying with public endpoint {public}")
                public_payload = self.request(public, method="GET", requires_auth=False)
                if _has_error(public_payload):
                    return public_payload
                return empty_enrollment(unwrap_data(public_payload))
            course = payload.get("course") if isinstance(payload, dict) else None
            return empty_enrollment(course)

        if status == 401 and sent_token:
            self._handle_auth_error(endpoint)
            raise AuthenticationExpiredError(endpoint=endpoint)

        if is_course:
            logger.warning(f"Request to {endpoint} failed with status {status} but returning partial data")
            if isinstance(payload, dict) and payload.get("course"):
                return payload
            return {"error": message or f"Request failed with status {status}"}

        logger.error(f"Request to {endpoint} failed with status {status}: {message}")
        raise HttpStatusError(status, message, endpoint=endpoint)

    @staticmethod
    def _read_before(response: httpx.Response, deadline: float, endpoint: str, timeout: float) -> httpx.Response:
        """Read a streamed response body, giving up once `deadline` has passed.

        httpx applies its timeout to each network operation, so a server that
        trickles bytes could otherwise hold the call open indefinitely.

        Returns:
            httpx.Response: A fully read copy of the response.

        Raises:
            RequestTimeoutError: If the body is not complete by the deadline.
        """
        chunks = []
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if time.monotonic() > deadline:
                break
        if time.monotonic() > deadline:
            logger.error(f"Request to {endpoint} exceeded its {timeout}s deadline")
            raise RequestTimeoutError(endpoint=endpoint)
        # The body is already decoded.
        headers = [(k, v) for k, v in response.headers.multi_items() if k.lower() != "content-encoding"]
        return httpx.Response(
            response.status_code,
            headers=headers,
            content=b"".join(chunks),
            request=response.request,
        )

    @staticmethod
    def _parse(response: httpx.Response, endpoint: str) -> Any:
        """Parse a JSON body, rejecting HTML error pages and other non-JSON content."""
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            snippet = response.text[:_SNIPPET_LENGTH]
            logger.error(f"Server returned non-JSON response for {endpoint}: {snippet}...")
            raise NonJsonResponseError(endpoint=endpoint, snippet=snippet)
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Error parsing JSON response for {endpoint}: {e}")
            raise NonJsonResponseError("Invalid JSON response from server", endpoint=endpoint) from e

    def get(self, endpoint: str, requires_auth: bool = False) -> Any:
        return self.request(endpoint, method="GET", requires_auth=requires_auth)

    def post(
        self,
        endpoint: str,
        data: Any = None,
        requires_auth: bool = False,
        files: dict[str, Any] | None = None,
    ) -> Any:
        """POST JSON `data`, or a multipart upload when `files` is given."""
        if files is not None:
            return self.request(endpoint, method="POST", files=files, requires_auth=requires_auth)
        return self.request(endpoint, method="POST", json=data if data is not None else {}, requires_auth=requires_auth)

    def put(self, endpoint: str, data: Any = None, requires_auth: bool = False) -> Any:
        return self.request(endpoint, method="PUT", json=data if data is not None else {}, requires_auth=requires_auth)

    def delete(self, endpoint: str, requires_auth: bool = False) -> Any:
        return self.request(endpoint, method="DELETE", requires_auth=requires_auth)


# Convenience module-level functions for CLI and simple scripting
def api_request(
    endpoint: str,
    method: str = "GET",
    data: Any = None,
    requires_auth: bool = False,
    settings: Settings | None = None,
) -> Any:
    """Make a single request with a short-lived client.

    Clients share the process-wide response cache, so repeated GETs within
    the cache lifetime are still served locally.

    Args:
        endpoint: API path without the `/api/v1` prefix.
        method: HTTP method.
        data: JSON body for POST and PUT.
        requires_auth: Send the stored bearer token.
        settings: Override the default settings.

    Returns:
        The parsed JSON body.
    """
    with ApiClient(settings=settings) as client:
        return client.request(endpoint, method=method, json=data, requires_auth=requires_auth)


def api_get(endpoint: str, requires_auth: bool = False, settings: Settings | None = None) -> Any:
    return api_request(endpoint, "GET", requires_auth=requires_auth, settings=settings)


def api_post(endpoint: str, data: Any = None, requires_auth: bool = False, settings: Settings | None = None) -> Any:
    return api_request(endpoint, "POST", data if data is not None else {}, requires_auth, settings)


def api_put(endpoint: str, data: Any = None, requires_auth: bool = False, settings: Settings | None = None) -> Any:
    return api_request(endpoint, "PUT", data if data is not None else {}, requires_auth, settings)


def api_delete(endpoint: str, requires_auth: bool = False, settings: Settings | None = None) -> Any:
    return api_request(endpoint, "DELETE", requires_auth=requires_auth, settings=settings)
