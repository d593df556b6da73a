"""
HTTP transport: one POST per full-sync action.

Request body::

    {"action": "full_sync_posts", "payload": {"ids": [...], "previous_cursor": 101}}

Connection errors, timeouts and 5xx/429 responses are retried with
exponential backoff; a request that still fails, or any other non-2xx
response, raises ``TransportFailure``.
"""

import logging
from typing import Any

import requests
from opentelemetry import trace
from prometheus_client import Counter, Histogram

from fullsync.exceptions import TransportFailure
from utils.metrics import get_or_create_metric
from utils.retry import retry_with_backoff
from utils.tracing import trace_operation

from .base import TransportSender

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


TRANSPORT_REQUESTS = get_or_create_metric(
    lambda: Counter(
        "fullsync_transport_requests_total",
        "Full sync actions posted to the remote consumer",
        ["action", "outcome"],  # outcome: success, failure
    ),
    "fullsync_transport_requests_total",
)

TRANSPORT_LATENCY = get_or_create_metric(
    lambda: Histogram(
        "fullsync_transport_request_seconds",
        "Time to post one full sync action, retries included",
        ["action"],
        buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    ),
    "fullsync_transport_request_seconds",
)


class RetryableResponse(Exception):
    """A response worth retrying (throttling or server error)."""

    def __init__(self, response: requests.Response):
        self.response = response
        super().__init__(f"HTTP {response.status_code} from {response.url}")


class HttpTransportSender(TransportSender):
    """Posts full-sync actions as JSON to a single endpoint."""

    def __init__(
        self,
        endpoint: str,
        token: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
        session: requests.Session | None = None,
    ):
        """
        Args:
            endpoint: URL receiving the POSTs
            token: Bearer token, if the consumer requires one
            timeout: Per-request timeout in seconds
            max_retries: Retries for transient failures per action
            retry_base_delay: Initial backoff delay in seconds
            session: Session to reuse (a new one is created otherwise)
        """
        if not endpoint:
            raise ValueError("Transport endpoint is required")

        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

        self._post = retry_with_backoff(
            max_retries=max_retries,
            base_delay=retry_base_delay,
            retryable_exceptions=(
                requests.ConnectionError,
                requests.Timeout,
                RetryableResponse,
            ),
        )(self._post_once)

        logger.info(f"HTTP transport configured for {self.endpoint}")

    def send(self, action_name: str, payload: dict[str, Any]) -> None:
        body = {"action": action_name, "payload": payload}

        with trace_operation(
            "transport_send",
            kind=trace.SpanKind.CLIENT,
            action=action_name,
            ids=len(payload.get("ids", ())),
        ):
            with TRANSPORT_LATENCY.labels(action=action_name).time():
                try:
                    response = self._post(body)
                except RetryableResponse as e:
                    TRANSPORT_REQUESTS.labels(action=action_name, outcome="failure").inc()
                    raise TransportFailure(
                        f"{action_name} rejected with HTTP {e.response.status_code}"
                    ) from e
                except requests.RequestException as e:
                    TRANSPORT_REQUESTS.labels(action=action_name, outcome="failure").inc()
                    raise TransportFailure(f"{action_name} could not be sent: {e}") from e

            if not response.ok:
                TRANSPORT_REQUESTS.labels(action=action_name, outcome="failure").inc()
                raise TransportFailure(
                    f"{action_name} rejected with HTTP {response.status_code}: "
                    f"{response.text[:200]}"
                )

            TRANSPORT_REQUESTS.labels(action=action_name, outcome="success").inc()

    def _post_once(self, body: dict[str, Any]) -> requests.Response:
        response = self.session.post(self.endpoint, json=body, timeout=self.timeout)
        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableResponse(response)
        return response

    def close(self) -> None:
        self.session.close()
