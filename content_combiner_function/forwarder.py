"""
Forwarder: content type admission, policy evaluation and dispatch of combined
messages to the outbound topic.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Protocol

from .errors import (
    InvalidContentTypeError,
    PolicySkipError,
    SendError,
    format_skip_reasons,
)
from .models import CombinedModel, PolicyDecision

logger = logging.getLogger(__name__)

COMBINER_MESSAGE_TYPE = "cms-combined-content-published"

POLICY_INPUT_COMBINED = "combined"
POLICY_INPUT_CONTENT = "content"
POLICY_INPUTS = (POLICY_INPUT_COMBINED, POLICY_INPUT_CONTENT)


class MessageProducer(Protocol):
    def send(self, headers: Dict[str, str], body: str) -> Optional[str]: ...


class PolicyAgent(Protocol):
    def evaluate(self, query: Dict[str, Any]) -> PolicyDecision: ...


class Forwarder:
    """Gatekeeps a combined message and hands it to the producer."""

    def __init__(self, producer: MessageProducer, supported_content_types: Iterable[str],
                 policy_agent: Optional[PolicyAgent] = None,
                 policy_input: str = POLICY_INPUT_COMBINED,
                 log: Optional[logging.Logger] = None):
        if policy_input not in POLICY_INPUTS:
            raise ValueError(f"policy_input must be one of {POLICY_INPUTS}, got {policy_input!r}")

        self.producer = producer
        self.supported_content_types = list(supported_content_types)
        self.policy_agent = policy_agent
        self.policy_input = policy_input
        self.logger = log or logger

        if policy_agent is None:
            self.logger.warning("No policy agent configured - policy evaluation is disabled")

    def is_type_allowed(self, content_type: str) -> bool:
        return content_type in self.supported_content_types

    def policy_query(self, message: CombinedModel) -> Dict[str, Any]:
        if self.policy_input == POLICY_INPUT_CONTENT:
            return dict(message.content or {})
        return message.to_dict()

    def filter_and_forward(self, headers: Dict[str, str], message: CombinedModel) -> bool:
        """
        Filter a combined message and publish it.

        Adds the Message-Type header to the supplied headers in place.

        Returns:
            True when the producer published the message, False when it had no
            publisher to send with

        Raises:
            InvalidContentTypeError: content type not on the allow-list
            PolicyEvaluationError: the policy agent failed to answer
            PolicySkipError: the policy agent decided to skip the message
            SendError: the producer failed
        """
        tid = headers.get("X-Request-Id", "")

        # Delete events carry no content and always pass
        if message.content is not None:
            content_type = message.content.get_type()
            if not self.is_type_allowed(content_type):
                raise InvalidContentTypeError(content_type)

        if self.policy_agent is not None:
            decision = self.policy_agent.evaluate(self.policy_query(message))
            if decision.skip:
                reason = format_skip_reasons(decision.reasons)
                self.logger.error(f"{tid} - Message for uuid {message.uuid} skipped by policy: {reason}")
                raise PolicySkipError(decision.reasons)

        return self.forward_msg(headers, message)

    def forward_msg(self, headers: Dict[str, str], message: CombinedModel) -> bool:
        body = message.to_json()
        headers["Message-Type"] = COMBINER_MESSAGE_TYPE
        try:
            message_id = self.producer.send(headers, body)
        except Exception as e:
            raise SendError(f"error forwarding message to Pub/Sub: {e}") from e
        return message_id is not None
