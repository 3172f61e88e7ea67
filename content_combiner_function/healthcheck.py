"""
Good-to-go and health reports for the combiner's upstream and downstream services.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from .http_client import DEFAULT_TIMEOUT, execute_request

logger = logging.getLogger(__name__)

GTG_ENDPOINT = "/__gtg"
RESPONSE_OK = "OK"
SYSTEM_CODE = "post-publication-combiner"


@dataclass
class Check:
    name: str
    business_impact: str
    technical_summary: str
    checker: Callable[[], str]
    severity: int = 2

    def run(self) -> Dict[str, Any]:
        try:
            output = self.checker()
            ok = True
        except Exception as e:
            output = str(e)
            ok = False
        return {
            "name": self.name,
            "ok": ok,
            "severity": self.severity,
            "businessImpact": self.business_impact,
            "technicalSummary": self.technical_summary,
            "checkOutput": output,
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }


class HealthChecker:
    """Runs connectivity checks against the document store, internal content API and producer."""

    def __init__(self, producer, doc_store_base_url: str, internal_content_base_url: str,
                 session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.producer = producer
        self.doc_store_base_url = doc_store_base_url.rstrip("/")
        self.internal_content_base_url = internal_content_base_url.rstrip("/")
        self.session = session
        self.timeout = timeout

    def _check_gtg(self, base_url: str) -> str:
        try:
            execute_request(base_url + GTG_ENDPOINT, self.session, self.timeout)
        except Exception as e:
            logger.error(f"Healthcheck error for {base_url}: {e}")
            raise
        return RESPONSE_OK

    def check_document_store(self) -> str:
        return self._check_gtg(self.doc_store_base_url)

    def check_internal_content_api(self) -> str:
        return self._check_gtg(self.internal_content_base_url)

    def check_producer(self) -> str:
        self.producer.connectivity_check()
        return "Successfully connected to Pub/Sub"

    def checks(self) -> List[Check]:
        return [
            Check(
                name="Check connectivity to Pub/Sub",
                business_impact="Can't write CombinedPostPublicationEvents and ForcedCombinedPostPublicationEvents "
                                "messages to the topic. Indexing for search won't work.",
                technical_summary="Combined messages can't be forwarded. Check if the Pub/Sub topic exists and is reachable.",
                checker=self.check_producer,
            ),
            Check(
                name="Check connectivity to document-store-api",
                business_impact="CombinedPostPublication messages can't be constructed. Indexing for content search won't work.",
                technical_summary="Document-store-api is not reachable. Messages can't be successfully constructed, neither forwarded.",
                checker=self.check_document_store,
            ),
            Check(
                name="Check connectivity to internal-content-api",
                business_impact="CombinedPostPublication messages can't be constructed. Indexing for content search won't work.",
                technical_summary="Internal-content-api is not reachable. Messages can't be successfully constructed, neither forwarded.",
                checker=self.check_internal_content_api,
            ),
        ]

    def gtg(self) -> Dict[str, Any]:
        """Fail fast on the first failing check."""
        for check in self.checks():
            try:
                check.checker()
            except Exception as e:
                return {"ok": False, "message": str(e)}
        return {"ok": True, "message": RESPONSE_OK}

    def health(self) -> Dict[str, Any]:
        results = [check.run() for check in self.checks()]
        return {
            "schemaVersion": 1,
            "systemCode": SYSTEM_CODE,
            "name": "Post Publication Combiner",
            "description": "Combines content, internal content and annotations of published items and forwards them",
            "checks": results,
            "ok": all(r["ok"] for r in results),
        }
