"""Keep a logged-in session alive by refreshing its token while the user is active."""

import time
from collections.abc import Callable

from loguru import logger

from coursebag.api.client import ApiClient
from coursebag.api.errors import (
    ApiError,
    AuthenticationError,
    HttpStatusError,
    NetworkError,
    RequestTimeoutError,
)

INACTIVITY_THRESHOLD = 30 * 60.0  # seconds
TOKEN_REFRESH_INTERVAL = 25 * 60.0
CHECK_INTERVAL = 60.0

REFRESH_ENDPOINT = "/auth/refresh-token"

_EXPIRED_MARKERS = ("jwt expired", "invalid token")


class SessionKeeper:
    """Refreshes the stored token for an active user.

    Call `touch()` whenever the user does something and `tick()` periodically
    (every `CHECK_INTERVAL` seconds). Inactive sessions are left to expire.

    Attributes:
        client: The API client whose token is refreshed.
        last_activity: Clock reading of the most recent activity.
    """

    def __init__(
        self,
        client: ApiClient,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.client = client
        self.clock = clock if clock is not None else time.monotonic
        self.sleep = sleep if sleep is not None else time.sleep
        self.last_activity = self.clock()

    def touch(self) -> None:
        self.last_activity = self.clock()

    def idle_time(self) -> float:
        return self.clock() - self.last_activity

    def tick(self) -> bool:
        """Refresh the token if the user has been active recently.

        Returns:
            bool: True if the token was refreshed.
        """
        if not self.client.is_authenticated():
            return False
        idle = self.idle_time()
        if idle > INACTIVITY_THRESHOLD:
            logger.debug(f"Session idle for {idle:.0f}s; not refreshing")
            return False
        if idle >= TOKEN_REFRESH_INTERVAL:
            return False
        try:
            return self.refresh()
        except ApiError as e:
            logger.warning(f"Failed to refresh token, but continuing: {e}")
            return False

    def refresh(self, retries: int = 3, delay: float = 1.0) -> bool:
        """Exchange the stored token for a fresh one.

        Network failures are retried with exponential backoff.

        Args:
            retries: Number of retries after the first attempt.
            delay: Seconds to wait before the first retry; doubles each time.

        Returns:
            bool: True if a new token was stored, False if there is no usable session.

        Raises:
            ApiError: If the refresh fails for any reason other than the above.
        """
        if not self.client.is_authenticated():
            return False

        for attempt in range(retries + 1):
            try:
                logger.debug("Attempting to refresh token...")
                payload = self.client.post(REFRESH_ENDPOINT, {}, requires_auth=True)
            except (NetworkError, RequestTimeoutError) as e:
                if attempt < retries:
                    logger.warning(f"Network error during token refresh, retries left: {retries - attempt}")
                    self.sleep(delay)
                    delay *= 2
                    continue
                logger.error(f"Max retries exceeded refreshing token: {e}")
                raise
            except AuthenticationError as e:
                # The client has already discarded the rejected token.
                logger.info(f"Token could not be refreshed: {e}")
                return False
            except HttpStatusError as e:
                if "User not found" in e.message:
                    logger.info("User not found, clearing token to prompt re-login")
                    self.client.token_store.clear()
                    return False
                if any(marker in e.message for marker in _EXPIRED_MARKERS):
                    logger.info("Clearing expired token")
                    self.client.token_store.clear()
                    return False
                raise

            token = payload.get("token") if isinstance(payload, dict) else None
            if not token:
                raise ApiError(payload.get("error") if isinstance(payload, dict) else None, endpoint=REFRESH_ENDPOINT)
            self.client.token_store.set(token)
            self.touch()
            logger.info("Token refreshed successfully")
            return True
        return False
