"""
HTTP helpers shared by the content retrievers and health checks.
"""

import logging
from typing import Optional

import requests

from .errors import FetchError, StatusCodeError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
UUID_PLACEHOLDER = "{uuid}"


def transform_content_uri(url: str, uuid: str) -> str:
    """Substitute the identifier into a URL template such as /content/{uuid}."""
    if uuid:
        return url.replace(UUID_PLACEHOLDER, uuid)
    return url


def new_session(user_agent: str = "post-publication-combiner") -> requests.Session:
    """Create a pooled session reused across messages and requests."""
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    return session


def execute_request(url: str, session: Optional[requests.Session] = None,
                    timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """
    GET a URL and return the raw body.

    Raises:
        StatusCodeError: the service answered with anything but 200
        FetchError: the request could not be executed
    """
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"error executing request for url {url!r}: {e}") from e

    if response.status_code != 200:
        raise StatusCodeError(url, response.status_code)

    logger.debug(f"GET {url} -> {len(response.content)} bytes")
    return response.content
