"""
Content retrievers for the document store, the content collection store and
the internal content API.

A 404 from any of these services means the item legitimately does not exist
there: the retrievers return None instead of raising, and callers check the
returned content rather than an exception to detect absence.
"""

import json
import logging
from typing import List, Optional, Tuple

import requests

from .errors import FetchError, StatusCodeError
from .http_client import DEFAULT_TIMEOUT, execute_request, transform_content_uri
from .models import Annotation, ContentModel, Thing

logger = logging.getLogger(__name__)


def _decode_object(body: bytes, what: str) -> dict:
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise FetchError(f"error unmarshalling {what}: {e}") from e
    if not isinstance(data, dict):
        raise FetchError(f"error unmarshalling {what}: expected a JSON object, got {type(data).__name__}")
    return data


class ContentRetriever:
    """Fetches the stored representation of an item from a {uuid} URL template."""

    def __init__(self, address: str, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.address = address
        self.session = session
        self.timeout = timeout

    def get_content(self, uuid: str) -> Optional[ContentModel]:
        """
        Fetch content by identifier.

        Returns:
            The content, or None when the service does not know the identifier
        """
        url = transform_content_uri(self.address, uuid)
        try:
            body = execute_request(url, self.session, self.timeout)
        except StatusCodeError as e:
            if e.status_code == 404:
                logger.debug(f"Content {uuid} not found at {url}")
                return None
            raise

        return ContentModel(_decode_object(body, "content"))


class InternalContentRetriever:
    """Fetches enriched internal content together with its annotations."""

    def __init__(self, address: str, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.address = address
        self.session = session
        self.timeout = timeout

    def get_internal_content(self, uuid: str) -> Tuple[Optional[ContentModel], Optional[List[Annotation]]]:
        """
        Fetch internal content and the annotations embedded in the same response.

        The annotations key is removed from the returned content so the two
        views don't carry the same payload twice.

        Returns:
            Tuple of (content, annotations); (None, None) when not found
        """
        url = transform_content_uri(self.address, uuid)
        try:
            body = execute_request(url, self.session, self.timeout)
        except StatusCodeError as e:
            if e.status_code == 404:
                logger.debug(f"Internal content {uuid} not found at {url}")
                return None, None
            raise

        content = ContentModel(_decode_object(body, "internal content"))
        things = content.pop("annotations", None) or []

        try:
            annotations = [Annotation(thing=Thing.model_validate(t)) for t in things]
        except (ValueError, TypeError) as e:
            raise FetchError(f"error unmarshalling annotations for internal content: {e}") from e

        return content, annotations or None
