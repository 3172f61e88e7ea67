"""
Content Combiner Cloud Function

Listens to content and annotation publication events, combines each published
item with its internal content and annotations, and forwards the combined
message to the CombinedPostPublicationEvents topic.

Entry points:
  combine_message(event, context) - Pub/Sub background trigger, one message per invocation
  main(request)                   - HTTP trigger
  run_consumer()                  - long-running streaming pull over both subscriptions

HTTP endpoints:
  POST /{uuid}    - Force publication of a combined message to ForcedCombinedPostPublicationEvents
  GET  /__gtg     - Good-to-go check
  GET  /__health  - Health report
"""

import os
import sys
import json
import queue
import signal
import logging
import uuid as uuid_lib
from typing import Any, Dict, List, Optional

import functions_framework
from dotenv import load_dotenv
from flask import Request
from google.cloud import pubsub_v1

from .data_combiner import DataCombiner
from .data_retriever import ContentRetriever, InternalContentRetriever
from .errors import InvalidContentTypeError, MalformedInputError, NotFoundError
from .forwarder import Forwarder
from .healthcheck import HealthChecker
from .http_client import new_session
from .msg_processor import MessageProcessor, MsgProcessorConfig, TID_HEADER
from .policy_agent import OpenPolicyAgent
from .pubsub_client import PubSubConsumer, PubSubProducer, decode_pubsub_event, iter_queue
from .request_processor import RequestProcessor

load_dotenv()

# Enhanced logging configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
    force=True
)

logger = logging.getLogger(__name__)
logger.info("Logging configuration initialized for content_combiner_function")

# Environment Configuration
ENVIRONMENT = os.getenv('ENVIRONMENT', 'development')
PROJECT_ID = os.getenv('GOOGLE_CLOUD_PROJECT', '')

# Pub/Sub Topics and Subscriptions
COMBINED_TOPIC = os.getenv('COMBINED_TOPIC', 'CombinedPostPublicationEvents')
FORCED_COMBINED_TOPIC = os.getenv('FORCED_COMBINED_TOPIC', 'ForcedCombinedPostPublicationEvents')
CONTENT_SUBSCRIPTION = os.getenv('CONTENT_SUBSCRIPTION', 'content-post-publication-combiner')
METADATA_SUBSCRIPTION = os.getenv('METADATA_SUBSCRIPTION', 'metadata-post-publication-combiner')

# Content services
DOCUMENT_STORE_BASE_URL = os.getenv('DOCUMENT_STORE_BASE_URL', 'http://localhost:8080/__document-store-api')
DOCUMENT_STORE_API_ENDPOINT = os.getenv('DOCUMENT_STORE_API_ENDPOINT', '/content/{uuid}')
INTERNAL_CONTENT_API_BASE_URL = os.getenv('INTERNAL_CONTENT_API_BASE_URL', 'http://localhost:8080/__internal-content-api')
INTERNAL_CONTENT_API_ENDPOINT = os.getenv('INTERNAL_CONTENT_API_ENDPOINT', '/internalcontent/{uuid}?unrollContent=true')
CONTENT_COLLECTION_RW_BASE_URL = os.getenv('CONTENT_COLLECTION_RW_BASE_URL', 'http://localhost:8080/__content-collection-rw-neo4j')
CONTENT_COLLECTION_RW_ENDPOINT = os.getenv('CONTENT_COLLECTION_RW_ENDPOINT', '/content-collection/content-package/{uuid}')

# Allow-lists (comma-separated)
WHITELISTED_METADATA_ORIGIN_SYSTEM_HEADERS = os.getenv(
    'WHITELISTED_METADATA_ORIGIN_SYSTEM_HEADERS',
    'http://cmdb.ft.com/systems/pac,http://cmdb.ft.com/systems/next-video-editor'
)
WHITELISTED_CONTENT_URIS = os.getenv('WHITELISTED_CONTENT_URIS', 'next-video-mapper,upp-content-validator')
# Trailing empty entry admits content without a type
WHITELISTED_CONTENT_TYPES = os.getenv('WHITELISTED_CONTENT_TYPES', 'Article,Video,MediaResource,Audio,')

# Policy agent
OPA_URL = os.getenv('OPA_URL', '')
OPA_POLICY_PATH = os.getenv('OPA_POLICY_PATH', 'kafka/ingest_content')
POLICY_INPUT = os.getenv('POLICY_INPUT', 'combined')

# Timeouts (seconds)
HTTP_TIMEOUT = float(os.getenv('HTTP_TIMEOUT', '10'))
PUBLISH_TIMEOUT = float(os.getenv('PUBLISH_TIMEOUT', '60'))

GTG_PATH = '/__gtg'
HEALTH_PATH = '/__health'

# Initialize Google Cloud clients (only in cloud environment)
if ENVIRONMENT != 'local':
    publisher = pubsub_v1.PublisherClient()
else:
    publisher = None
    logger.info("Running in local environment - skipping Google Cloud client initialization")

# Components are built on first use and shared across invocations
_components: Dict[str, Any] = {}


# =============================================================================
# COMPONENT WIRING
# =============================================================================

def split_list(value: str, keep_empty: bool = False) -> List[str]:
    """Split a comma-separated setting, dropping blank entries unless keep_empty."""
    items = [item.strip() for item in value.split(',')]
    if keep_empty:
        return items
    return [item for item in items if item]


def build_data_combiner(session) -> DataCombiner:
    return DataCombiner(
        content_retriever=ContentRetriever(
            DOCUMENT_STORE_BASE_URL + DOCUMENT_STORE_API_ENDPOINT, session, HTTP_TIMEOUT
        ),
        internal_content_retriever=InternalContentRetriever(
            INTERNAL_CONTENT_API_BASE_URL + INTERNAL_CONTENT_API_ENDPOINT, session, HTTP_TIMEOUT
        ),
        content_collection_retriever=ContentRetriever(
            CONTENT_COLLECTION_RW_BASE_URL + CONTENT_COLLECTION_RW_ENDPOINT, session, HTTP_TIMEOUT
        ),
    )


def build_policy_agent(session) -> Optional[OpenPolicyAgent]:
    if not OPA_URL:
        return None
    return OpenPolicyAgent(OPA_URL, OPA_POLICY_PATH, session, HTTP_TIMEOUT)


def build_forwarder(topic: str, session) -> Forwarder:
    producer = PubSubProducer(publisher, PROJECT_ID, topic, PUBLISH_TIMEOUT)
    return Forwarder(
        producer,
        split_list(WHITELISTED_CONTENT_TYPES, keep_empty=True),
        policy_agent=build_policy_agent(session),
        policy_input=POLICY_INPUT,
    )


def _session():
    if 'session' not in _components:
        _components['session'] = new_session()
    return _components['session']


def get_message_processor() -> MessageProcessor:
    if 'message_processor' not in _components:
        session = _session()
        config = MsgProcessorConfig(
            supported_content_uris=split_list(WHITELISTED_CONTENT_URIS),
            supported_origin_systems=split_list(WHITELISTED_METADATA_ORIGIN_SYSTEM_HEADERS),
        )
        _components['message_processor'] = MessageProcessor(
            config, build_data_combiner(session), build_forwarder(COMBINED_TOPIC, session)
        )
    return _components['message_processor']


def get_request_processor() -> RequestProcessor:
    if 'request_processor' not in _components:
        session = _session()
        _components['request_processor'] = RequestProcessor(
            build_data_combiner(session), build_forwarder(FORCED_COMBINED_TOPIC, session)
        )
    return _components['request_processor']


def get_health_checker() -> HealthChecker:
    if 'health_checker' not in _components:
        _components['health_checker'] = HealthChecker(
            PubSubProducer(publisher, PROJECT_ID, COMBINED_TOPIC, PUBLISH_TIMEOUT),
            DOCUMENT_STORE_BASE_URL,
            INTERNAL_CONTENT_API_BASE_URL,
            _session(),
            HTTP_TIMEOUT,
        )
    return _components['health_checker']


# =============================================================================
# PUB/SUB TRIGGER
# =============================================================================

def combine_message(event, context):
    """
    Background Cloud Function to be triggered by Pub/Sub.

    Args:
        event (dict): The Pub/Sub message data and attributes.
        context (google.cloud.functions.Context): The Cloud Functions event metadata.
    """
    logger.info("=== CONTENT COMBINER TRIGGERED ===")
    logger.info(f"Function triggered by context: {context}")

    try:
        message = decode_pubsub_event(event)
    except MalformedInputError as e:
        logger.error(f"Error decoding Pub/Sub message: {e}")
        return {'status': 'error', 'error': str(e)}

    try:
        forwarded = get_message_processor().process_message(message)
    except Exception as e:
        logger.error(f"Error in combine_message: {e}", exc_info=True)
        return {'status': 'error', 'error': str(e)}

    result = {
        'status': 'forwarded' if forwarded else 'skipped',
        'tid': message.headers.get(TID_HEADER, ''),
    }
    logger.info(f"=== CONTENT COMBINER COMPLETED === {result}")
    return result


# =============================================================================
# HTTP HELPERS
# =============================================================================

def json_response(data: Any, status: int = 200):
    """Create JSON response."""
    return (json.dumps(data, ensure_ascii=False), status, {'Content-Type': 'application/json'})


def error_response(message: str, status: int = 400):
    """Create error response."""
    return json_response({'error': message}, status)


def is_valid_uuid(value: str) -> bool:
    try:
        uuid_lib.UUID(value)
    except ValueError:
        return False
    return True


# =============================================================================
# HANDLERS
# =============================================================================

def handle_force_publish(request: Request, content_uuid: str):
    """Force publication of the combined message for one UUID."""
    tid = request.headers.get(TID_HEADER, '')

    if not is_valid_uuid(content_uuid):
        logger.error(f"{tid} - Invalid UUID: {content_uuid}")
        return error_response(f'Invalid UUID: {content_uuid}', 400)

    try:
        published = get_request_processor().force_publication(content_uuid, tid)
    except NotFoundError as e:
        logger.error(f"{tid} - Failed message publication: {e}")
        return error_response(str(e), 404)
    except InvalidContentTypeError as e:
        logger.error(f"{tid} - Failed message publication: {e}")
        return error_response(str(e), 422)
    except Exception as e:
        logger.error(f"{tid} - Failed message publication: {e}", exc_info=True)
        return error_response(str(e), 500)

    if not published:
        return json_response({'status': 'not_published', 'uuid': content_uuid})

    logger.info(f"{tid} - Message published successfully for uuid {content_uuid}")
    return json_response({'status': 'published', 'uuid': content_uuid})


def handle_gtg():
    status = get_health_checker().gtg()
    if status['ok']:
        return (status['message'], 200, {'Content-Type': 'text/plain; charset=US-ASCII', 'Cache-Control': 'no-cache'})
    return (status['message'], 503, {'Content-Type': 'text/plain; charset=US-ASCII', 'Cache-Control': 'no-cache'})


def handle_health():
    return json_response(get_health_checker().health())


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

@functions_framework.http
def main(request: Request):
    """HTTP Cloud Function entry point - routes requests to handlers."""
    path = request.path.rstrip('/')
    method = request.method

    logger.info(f"{method} {path}")

    if path == GTG_PATH:
        if method == 'GET':
            return handle_gtg()

    elif path == HEALTH_PATH:
        if method == 'GET':
            return handle_health()

    elif path.count('/') == 1 and len(path) > 1:
        if method == 'POST':
            return handle_force_publish(request, path[1:])

    return error_response(f'Not found: {method} {path}', 404)


# =============================================================================
# STREAMING CONSUMER
# =============================================================================

def run_consumer():
    """Pull content and metadata events until interrupted."""
    logger.info("=== CONTENT COMBINER CONSUMER STARTED ===")

    if ENVIRONMENT == 'local':
        logger.warning("Pub/Sub subscriber not available (local env), consumer not started")
        return

    inbound: "queue.Queue" = queue.Queue()
    subscriber = pubsub_v1.SubscriberClient()
    consumer = PubSubConsumer(
        subscriber, PROJECT_ID, [CONTENT_SUBSCRIPTION, METADATA_SUBSCRIPTION], inbound
    )

    def shutdown(signum, frame):
        logger.info(f"Received signal {signum}, stopping consumer")
        consumer.stop()

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    consumer.start()
    try:
        get_message_processor().process_messages(iter_queue(inbound))
    finally:
        subscriber.close()
        logger.info("=== CONTENT COMBINER CONSUMER STOPPED ===")


if __name__ == "__main__":
    run_consumer()
