"""
Error types for the Content Combiner Function.

Every failure the combine/filter/forward pipeline can report is a subclass of
CombinerError, so callers branch on the class instead of the message text.
"""

from typing import List, Optional


class CombinerError(Exception):
    """Base class for all combiner failures."""


class NotFoundError(CombinerError):
    """No content and no metadata exist for the requested identifier."""

    def __init__(self, uuid: str = ""):
        self.uuid = uuid
        super().__init__(f"Content not found: {uuid}" if uuid else "Content not found")


class InvalidContentTypeError(CombinerError):
    """Content type is not on the allow-list."""

    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(f"Invalid content type: {content_type!r}")


class FetchError(CombinerError):
    """Hard failure talking to a content service or parsing its response."""


class StatusCodeError(FetchError):
    """A content service answered with a non-200 status."""

    def __init__(self, url: str, status_code: int):
        self.url = url
        self.status_code = status_code
        super().__init__(f"request to {url!r} failed with status: {status_code}")


class PolicyEvaluationError(CombinerError):
    """The policy agent could not produce a decision."""


class PolicySkipError(CombinerError):
    """The policy agent decided the message must not be forwarded."""

    def __init__(self, reasons: Optional[List[str]] = None):
        self.reasons = list(reasons or [])
        super().__init__(format_skip_reasons(self.reasons))


class SendError(CombinerError):
    """The outbound producer failed to publish the combined message."""


class MalformedInputError(CombinerError):
    """An inbound message could not be decoded or misses a required field."""


def format_skip_reasons(reasons: List[str]) -> str:
    return ", ".join(reasons)
