"""Content Combiner Function: combines published content with internal content and annotations."""

from .errors import (
    CombinerError,
    FetchError,
    InvalidContentTypeError,
    MalformedInputError,
    NotFoundError,
    PolicyEvaluationError,
    PolicySkipError,
    SendError,
    StatusCodeError,
)
from .models import CombinedModel, ContentModel, QueueMessage

__all__ = [
    "CombinerError",
    "FetchError",
    "InvalidContentTypeError",
    "MalformedInputError",
    "NotFoundError",
    "PolicyEvaluationError",
    "PolicySkipError",
    "SendError",
    "StatusCodeError",
    "CombinedModel",
    "ContentModel",
    "QueueMessage",
]
