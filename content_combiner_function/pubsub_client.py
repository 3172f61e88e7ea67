"""
Pub/Sub transport adapters.

Message headers travel as Pub/Sub message attributes; the body is the UTF-8
encoded JSON payload.
"""

import base64
import logging
import queue
from typing import Dict, Iterator, List, Optional

from .errors import MalformedInputError
from .models import QueueMessage

logger = logging.getLogger(__name__)

DEFAULT_PUBLISH_TIMEOUT = 60.0


class PubSubProducer:
    """Publishes combined messages to one topic."""

    def __init__(self, publisher, project_id: str, topic: str,
                 timeout: float = DEFAULT_PUBLISH_TIMEOUT):
        self.publisher = publisher
        self.project_id = project_id
        self.topic = topic
        self.timeout = timeout

    @property
    def topic_path(self) -> str:
        return self.publisher.topic_path(self.project_id, self.topic)

    def send(self, headers: Dict[str, str], body: str) -> Optional[str]:
        """
        Publish one message.

        Returns:
            The Pub/Sub message id, or None when no publisher is configured (local env)
        """
        if not self.publisher:
            logger.warning(f"Pub/Sub publisher not available (local env), skipping publish to {self.topic}")
            return None

        attributes = {str(k): str(v) for k, v in headers.items()}
        future = self.publisher.publish(self.topic_path, body.encode("utf-8"), **attributes)
        message_id = future.result(timeout=self.timeout)

        logger.info(f"{headers.get('X-Request-Id', '')} - Published message to {self.topic} (message_id: {message_id})")
        return message_id

    def connectivity_check(self) -> None:
        """Raise if the topic cannot be looked up."""
        if not self.publisher:
            raise RuntimeError("Pub/Sub publisher not configured")
        self.publisher.get_topic(request={"topic": self.topic_path})


class PubSubConsumer:
    """
    Streams messages from one or more subscriptions into a local queue.

    The queue is the single inbound stream the message processor drains; a
    None item marks it closed.
    """

    def __init__(self, subscriber, project_id: str, subscriptions: List[str],
                 sink_queue: "queue.Queue[Optional[QueueMessage]]"):
        self.subscriber = subscriber
        self.project_id = project_id
        self.subscriptions = [s for s in subscriptions if s]
        self.sink_queue = sink_queue
        self._futures = []

    def _callback(self, message) -> None:
        try:
            body = message.data.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.error(f"Discarding message {message.message_id}: body is not UTF-8: {e}")
            message.ack()
            return

        self.sink_queue.put(QueueMessage(headers=dict(message.attributes), body=body))
        message.ack()

    def start(self) -> None:
        for subscription in self.subscriptions:
            path = self.subscriber.subscription_path(self.project_id, subscription)
            self._futures.append(self.subscriber.subscribe(path, callback=self._callback))
            logger.info(f"Listening for messages on {path}")

    def stop(self) -> None:
        for future in self._futures:
            future.cancel()
        self._futures = []
        self.sink_queue.put(None)
        logger.info("Pub/Sub consumer stopped")


def iter_queue(source: "queue.Queue[Optional[QueueMessage]]") -> Iterator[QueueMessage]:
    """Yield queued messages until the None sentinel is read."""
    while True:
        item = source.get()
        if item is None:
            return
        yield item


def decode_pubsub_event(event) -> QueueMessage:
    """
    Turn a background function Pub/Sub event into a QueueMessage.

    Raises:
        MalformedInputError: the event carries no decodable data
    """
    if not isinstance(event, dict) or "data" not in event:
        raise MalformedInputError("Pub/Sub event has no data")

    try:
        body = base64.b64decode(event["data"]).decode("utf-8")
    except (ValueError, TypeError) as e:
        raise MalformedInputError(f"Error decoding Pub/Sub message: {e}") from e

    attributes = event.get("attributes") or {}
    return QueueMessage(headers={str(k): str(v) for k, v in attributes.items()}, body=body)
