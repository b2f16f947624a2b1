"""Endpoint classification for the LMS REST API.

Course endpoints (anything under `/courses/<id>`) are public-friendly: they
get longer cache lifetimes and timeouts, and authentication problems on them
degrade to public data instead of logging the user out.
"""

API_PREFIX = "/api/v1"

CACHE_DURATION = 60.0  # seconds
COURSE_CACHE_DURATION = 5 * 60.0

REQUEST_TIMEOUT = 15.0
COURSE_REQUEST_TIMEOUT = 30.0

COURSE_MARKER = "/courses/"
PROGRESS_SUFFIX = "/with-progress"


def is_course_endpoint(endpoint: str) -> bool:
    """Return True if the endpoint addresses a single course or something below it."""
    return COURSE_MARKER in endpoint


def has_public_equivalent(endpoint: str) -> bool:
    return PROGRESS_SUFFIX in endpoint


def public_endpoint(endpoint: str) -> str:
    """Strip the progress segment, e.g. `/courses/42/with-progress` -> `/courses/42`."""
    return endpoint.replace(PROGRESS_SUFFIX, "")


def cache_ttl(endpoint: str, course_ttl: float = COURSE_CACHE_DURATION, default_ttl: float = CACHE_DURATION) -> float:
    return course_ttl if is_course_endpoint(endpoint) else default_ttl


def request_timeout(
    endpoint: str,
    course_timeout: float = COURSE_REQUEST_TIMEOUT,
    default_timeout: float = REQUEST_TIMEOUT,
) -> float:
    return course_timeout if is_course_endpoint(endpoint) else default_timeout
