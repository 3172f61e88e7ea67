"""
Message processor: routes inbound publication events through the combiner and
the forwarder.

Each message is classified by its Message-Type header:

- "concept-annotation" events take the metadata path: the referenced content
  is looked up by UUID and combined with its annotations
- anything else takes the content path: the event payload is combined with
  internal content and annotations, or forwarded as a delete

Every dropped message is logged with its transaction id; nothing is retried.
"""

import logging
import secrets
import string
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .data_combiner import DataCombiner
from .errors import MalformedInputError
from .forwarder import Forwarder
from .models import AnnotationsMessage, CombinedModel, ContentMessage, QueueMessage

logger = logging.getLogger(__name__)

TID_HEADER = "X-Request-Id"
MESSAGE_TYPE_HEADER = "Message-Type"
ORIGIN_SYSTEM_HEADER = "Origin-System-Id"

ANNOTATION_MESSAGE_TYPE = "concept-annotation"

TID_PREFIX = "tid_"
TID_SUFFIX = "_post_publication_combiner"
TID_RANDOM_LENGTH = 10
_TID_ALPHABET = string.ascii_letters + string.digits


@dataclass
class MsgProcessorConfig:
    supported_content_uris: List[str] = field(default_factory=list)
    supported_origin_systems: List[str] = field(default_factory=list)


def generate_tid(prefix: str = TID_PREFIX) -> str:
    random_part = "".join(secrets.choice(_TID_ALPHABET) for _ in range(TID_RANDOM_LENGTH))
    return f"{prefix}{random_part}{TID_SUFFIX}"


def extract_tid(headers: Dict[str, str]) -> str:
    """Return the message transaction id, generating one when missing."""
    tid = headers.get(TID_HEADER)
    if tid:
        return tid
    tid = generate_tid()
    logger.info(f"Header {TID_HEADER} not present, generated transaction id: {tid}")
    return tid


def contains_substring_of(values: Iterable[str], element: str) -> bool:
    """True when any configured value occurs inside element."""
    return any(value in element for value in values)


class MessageProcessor:
    """Combines and forwards inbound messages one at a time."""

    def __init__(self, config: MsgProcessorConfig, data_combiner: DataCombiner,
                 forwarder: Forwarder, log: Optional[logging.Logger] = None):
        self.config = config
        self.data_combiner = data_combiner
        self.forwarder = forwarder
        self.logger = log or logger

    def process_messages(self, source: Iterable[QueueMessage]) -> None:
        """Drain the inbound stream until it is closed."""
        self.logger.info("Started processing combiner messages")
        for message in source:
            try:
                self.process_message(message)
            except Exception as e:
                tid = message.headers.get(TID_HEADER, "")
                self.logger.error(f"{tid} - Unexpected error processing message: {e}", exc_info=True)
        self.logger.info("Message stream closed, stopped processing combiner messages")

    def process_message(self, message: QueueMessage) -> bool:
        """
        Route one message.

        Returns:
            True when a combined message was forwarded, False when it was dropped
        """
        tid = extract_tid(message.headers)
        message.headers[TID_HEADER] = tid

        if message.headers.get(MESSAGE_TYPE_HEADER) == ANNOTATION_MESSAGE_TYPE:
            return self._process_metadata_message(tid, message)
        return self._process_content_message(tid, message)

    # ========================================================================
    # Content path
    # ========================================================================

    def _process_content_message(self, tid: str, message: QueueMessage) -> bool:
        try:
            content_msg = ContentMessage.parse(message.body)
        except MalformedInputError as e:
            self.logger.error(f"{tid} - Could not unmarshal content message ({len(message.body)} bytes): {e}")
            return False

        if not contains_substring_of(self.config.supported_content_uris, content_msg.content_uri):
            self.logger.info(f"{tid} - Skipped unsupported content with contentUri: {content_msg.content_uri}")
            return False

        content = content_msg.content
        uuid = content.get_uuid()
        if not uuid:
            self.logger.error(f"{tid} - UUID not found after message marshalling, skipping message with contentUri {content_msg.content_uri}")
            return False

        if content.is_deleted():
            combined = CombinedModel(
                uuid=uuid,
                content_uri=content_msg.content_uri,
                last_modified=content_msg.last_modified,
                deleted=True,
            )
        else:
            try:
                combined = self.data_combiner.for_content(content)
            except Exception as e:
                self.logger.error(f"{tid} - Error obtaining the combined message for content {uuid}: {e}")
                return False
            combined.content_uri = content_msg.content_uri

        return self._forward(tid, message.headers, combined)

    # ========================================================================
    # Metadata path
    # ========================================================================

    def _process_metadata_message(self, tid: str, message: QueueMessage) -> bool:
        origin = message.headers.get(ORIGIN_SYSTEM_HEADER, "")
        if not contains_substring_of(self.config.supported_origin_systems, origin):
            self.logger.info(f"{tid} - Skipped annotations with not supported Origin-System-Id: {origin!r}")
            return False

        try:
            annotations_msg = AnnotationsMessage.parse(message.body)
        except MalformedInputError as e:
            self.logger.error(f"{tid} - Could not unmarshal annotations message: {e}")
            return False

        try:
            combined = self.data_combiner.for_annotations(annotations_msg)
        except Exception as e:
            self.logger.error(f"{tid} - Error obtaining the combined message for annotations: {e}")
            return False

        if combined.content is None or not combined.content.get_uuid():
            self.logger.info(
                f"{tid} - Could not find content with uuid {annotations_msg.get_content_uuid()} "
                f"referenced by annotations, skipping"
            )
            return False

        return self._forward(tid, message.headers, combined)

    def _forward(self, tid: str, headers: Dict[str, str], combined: CombinedModel) -> bool:
        try:
            published = self.forwarder.filter_and_forward(headers, combined)
        except Exception as e:
            self.logger.error(f"{tid} - Failed to forward message for uuid {combined.uuid}: {e}")
            return False

        if not published:
            self.logger.warning(f"{tid} - No publisher configured, combined message for uuid {combined.uuid} was not published")
            return False

        self.logger.info(f"{tid} - Forwarded combined message for uuid {combined.uuid}")
        return True
