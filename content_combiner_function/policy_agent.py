"""
Open Policy Agent client.

Queries a policy package over the OPA data API:

    POST {base_url}/v1/data/{policy_path}
    {"input": {...}}

and expects a decision shaped as

    {"decision_id": "...", "result": {"skip": true, "reasons": ["..."]}}
"""

import logging
from typing import Any, Dict, Optional

import requests

from .errors import PolicyEvaluationError
from .http_client import DEFAULT_TIMEOUT
from .models import PolicyDecision

logger = logging.getLogger(__name__)

DATA_API_PREFIX = "v1/data"
DEFAULT_POLICY_PATH = "kafka/ingest_content"


class OpenPolicyAgent:
    """Evaluates the content ingest policy for one message at a time."""

    def __init__(self, base_url: str, policy_path: str = DEFAULT_POLICY_PATH,
                 session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 log: Optional[logging.Logger] = None):
        self.base_url = base_url.rstrip("/")
        self.policy_path = policy_path.strip("/")
        self.session = session
        self.timeout = timeout
        self.logger = log or logger

    @property
    def url(self) -> str:
        return f"{self.base_url}/{DATA_API_PREFIX}/{self.policy_path}"

    def evaluate(self, query: Dict[str, Any]) -> PolicyDecision:
        """
        Submit a query and return the skip decision.

        Raises:
            PolicyEvaluationError: transport failure, non-200 answer or malformed decision
        """
        http = self.session or requests
        try:
            response = http.post(self.url, json={"input": query}, timeout=self.timeout)
        except requests.RequestException as e:
            raise PolicyEvaluationError(f"error evaluating policy {self.policy_path}: {e}") from e

        if response.status_code != 200:
            raise PolicyEvaluationError(
                f"error evaluating policy {self.policy_path}: request returned status {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise PolicyEvaluationError(f"error evaluating policy {self.policy_path}: invalid JSON: {e}") from e

        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, dict):
            raise PolicyEvaluationError(f"error evaluating policy {self.policy_path}: decision has no result")

        decision = PolicyDecision(
            skip=bool(result.get("skip", False)),
            reasons=[str(r) for r in result.get("reasons") or []],
        )

        self.logger.info(
            f"Evaluated content policy: decisionID: {body.get('decision_id', '')!r}, "
            f"skip: {decision.skip}, reasons: {decision.reasons}"
        )
        return decision
