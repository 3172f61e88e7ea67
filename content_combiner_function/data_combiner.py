"""
Data combiner: joins public content, internal content and annotations into a
single CombinedModel.
"""

import logging
from typing import Optional

from .data_retriever import ContentRetriever, InternalContentRetriever
from .errors import CombinerError
from .models import (
    AnnotationsMessage,
    CombinedModel,
    ContentModel,
    CONTENT_COLLECTION_TYPE,
)

logger = logging.getLogger(__name__)


class DataCombiner:
    """
    Builds combined records for content events, annotation events and plain identifiers.

    Content packages are never written to the document store, so identifiers
    missing there are looked up in the content collection store as well.
    """

    def __init__(self, content_retriever: ContentRetriever,
                 internal_content_retriever: InternalContentRetriever,
                 content_collection_retriever: ContentRetriever,
                 log: Optional[logging.Logger] = None):
        self.content_retriever = content_retriever
        self.internal_content_retriever = internal_content_retriever
        self.content_collection_retriever = content_collection_retriever
        self.logger = log or logger

    def for_content(self, content: ContentModel) -> CombinedModel:
        """Combine a content event payload with its internal content and annotations."""
        uuid = content.get_uuid()
        if not uuid:
            raise CombinerError("content has no UUID provided")

        internal_content, annotations = self.internal_content_retriever.get_internal_content(uuid)

        return CombinedModel(
            uuid=uuid,
            content=content,
            internal_content=internal_content,
            metadata=annotations,
            last_modified=content.get_last_modified(),
        )

    def for_annotations(self, message: AnnotationsMessage) -> CombinedModel:
        """Combine the content referenced by an annotations event."""
        uuid = message.get_content_uuid()
        if not uuid:
            raise CombinerError("annotations have no UUID referenced")

        return self.by_identifier(uuid)

    def by_identifier(self, uuid: str) -> CombinedModel:
        """
        Build the combined record for an identifier.

        A record with the requested UUID and no content or metadata means the
        identifier is unknown everywhere; that is not an error.
        """
        content = self._find_content(uuid)
        internal_content, annotations = self.internal_content_retriever.get_internal_content(uuid)

        return CombinedModel(
            uuid=uuid,
            content=content,
            internal_content=internal_content,
            metadata=annotations,
            last_modified=content.get_last_modified() if content is not None else "",
        )

    def _find_content(self, uuid: str) -> Optional[ContentModel]:
        content = self.content_retriever.get_content(uuid)
        if content is not None and content.get_uuid():
            return content

        collection = self.content_collection_retriever.get_content(uuid)
        if collection:
            # the collection store never sets a type
            collection["type"] = CONTENT_COLLECTION_TYPE
            self.logger.debug(f"Content {uuid} resolved from the content collection store")
            return collection

        self.logger.debug(f"Content {uuid} not found in document store or content collection store")
        return None
