"""
On-demand (forced) publication of a combined message for one identifier.
"""

import logging
from typing import Optional

from .data_combiner import DataCombiner
from .errors import NotFoundError
from .forwarder import Forwarder
from .msg_processor import ORIGIN_SYSTEM_HEADER, TID_HEADER, generate_tid

logger = logging.getLogger(__name__)

FORCED_TID_PREFIX = "tid_force_publish"
FORCED_ORIGIN_SYSTEM = "forced-combined-msg"
CONTENT_TYPE_JSON = "application/json"


class RequestProcessor:
    """Builds and forwards a combined message on request rather than on a queue event."""

    def __init__(self, data_combiner: DataCombiner, forwarder: Forwarder,
                 log: Optional[logging.Logger] = None):
        self.data_combiner = data_combiner
        self.forwarder = forwarder
        self.logger = log or logger

    def force_publication(self, uuid: str, tid: str = "") -> bool:
        """
        Combine the current state of an item and publish it to the forced topic.

        Returns:
            True when the message was published, False when no publisher is configured

        Raises:
            NotFoundError: neither content nor metadata exist for the identifier
            CombinerError: fetch, policy or send failures, propagated unchanged
        """
        if not tid:
            tid = generate_tid(FORCED_TID_PREFIX)
            self.logger.info(f"{tid} - Generated tid for forced publication of {uuid}")

        headers = {
            TID_HEADER: tid,
            "Content-Type": CONTENT_TYPE_JSON,
            ORIGIN_SYSTEM_HEADER: FORCED_ORIGIN_SYSTEM,
        }

        try:
            combined = self.data_combiner.by_identifier(uuid)
        except Exception as e:
            self.logger.error(f"{tid} - Error obtaining the combined message for {uuid}: {e}")
            raise

        content_uuid = combined.content.get_uuid() if combined.content is not None else ""
        if not content_uuid and not combined.metadata:
            self.logger.error(f"{tid} - Could not find content with uuid {uuid}")
            raise NotFoundError(uuid)

        if not self.forwarder.filter_and_forward(headers, combined):
            self.logger.warning(f"{tid} - No publisher configured, forced publication for uuid {uuid} was not sent")
            return False

        self.logger.info(f"{tid} - Forced publication sent for uuid {uuid}")
        return True
