"""
Dispatch Gateway

Sends classified intents to the automation webhook. Owns the request
deadline and turns every outcome into a DispatchResult so callers never
have to handle transport exceptions.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx

from ops_assistant.config.settings import AssistantSettings
from ops_assistant.core.deadline import CancelToken, DeadlineExceeded, OperationCancelled, with_deadline
from ops_assistant.core.ids import IdGenerator, new_session_id
from ops_assistant.exceptions import (
    ConfigurationError,
    DispatchCancelledError,
    DispatchError,
    DispatchTimeoutError,
    DispatchTransportError,
    RemoteBusinessError,
)
from ops_assistant.models import DispatchEnvelope, DispatchResult, IntentClassification

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 60.0

ERROR_TIMEOUT = "timeout"
ERROR_CANCELLED = "cancelled"

TIMEOUT_MESSAGE = "The request is taking longer than expected. Please try again."
CANCELLED_MESSAGE = "The request was cancelled."
TRANSPORT_FAILURE_MESSAGE = "Failed to process your request"
SUCCESS_MESSAGE = "Request processed successfully"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DispatchGateway:
    """Posts intent envelopes to the automation webhook under a deadline"""

    def __init__(self, webhook_url: str, timeout_sec: Optional[float] = DEFAULT_TIMEOUT_SEC,
                 http_client: Optional[httpx.AsyncClient] = None,
                 session_id_factory: Optional[IdGenerator] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the gateway

        Args:
            webhook_url: automation endpoint receiving the POST
            timeout_sec: deadline for a single dispatch, ``None`` disables it
            http_client: shared client; one is created (and owned) when omitted
            session_id_factory: source of per-dispatch session identifiers
            clock: returns the current time for envelope timestamps
        """
        if not webhook_url:
            raise ConfigurationError("A webhook URL is required for dispatch")

        self.webhook_url = webhook_url
        self.timeout_sec = timeout_sec
        self.session_id_factory = session_id_factory or new_session_id
        self.clock = clock or _utcnow

        self._owns_client = http_client is None
        # The deadline below governs; the client timeout is only a backstop
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout_sec)

    @classmethod
    def from_settings(cls, settings: AssistantSettings,
                      http_client: Optional[httpx.AsyncClient] = None) -> 'DispatchGateway':
        """Create a gateway from application settings"""
        if not settings.WEBHOOK_URL:
            raise ConfigurationError("WEBHOOK_URL setting is required")
        return cls(
            webhook_url=settings.WEBHOOK_URL,
            timeout_sec=settings.DISPATCH_TIMEOUT_SEC,
            http_client=http_client,
        )

    def build_envelope(self, classification: IntentClassification, user_input: str) -> DispatchEnvelope:
        """Wrap a classification with a fresh session id and timestamp"""
        return DispatchEnvelope(
            intent=classification.category,
            action=classification.action,
            entities=classification.entities.to_payload(),
            user_input=user_input,
            timestamp=self.clock().isoformat(),
            session_id=self.session_id_factory(),
        )

    async def _post(self, envelope: DispatchEnvelope) -> httpx.Response:
        response = await self.http_client.post(
            self.webhook_url,
            json=envelope.to_wire(),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        return response

    async def send(self, envelope: DispatchEnvelope,
                   cancel_token: Optional[CancelToken] = None) -> Any:
        """
        Post an envelope and return the parsed body

        Raises:
            DispatchTimeoutError: the deadline elapsed
            DispatchCancelledError: the cancel token fired
            DispatchTransportError: network failure, non-2xx status or bad body
            RemoteBusinessError: the webhook reported ``success: false``
        """
        try:
            response = await with_deadline(self._post(envelope), self.timeout_sec, cancel_token)
        except DeadlineExceeded as e:
            raise DispatchTimeoutError(str(e)) from e
        except OperationCancelled as e:
            raise DispatchCancelledError(str(e)) from e
        except httpx.TimeoutException as e:
            raise DispatchTimeoutError(f"HTTP timeout: {e}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise DispatchTransportError(
                f"Webhook request failed: {status} {e.response.reason_phrase}",
                status_code=status,
                response=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise DispatchTransportError(str(e) or type(e).__name__) from e

        try:
            body = response.json() if response.content else {}
        except ValueError as e:
            raise DispatchTransportError(
                f"Invalid JSON in webhook response: {e}",
                status_code=response.status_code,
                response=response.text,
            ) from e

        if isinstance(body, dict) and body.get("success") is False:
            raise RemoteBusinessError(
                str(body.get("message") or TRANSPORT_FAILURE_MESSAGE),
                status_code=response.status_code,
                response=response.text,
            )
        return body

    async def dispatch(self, classification: IntentClassification, user_input: str,
                       cancel_token: Optional[CancelToken] = None) -> DispatchResult:
        """Send a classified utterance to the webhook. Never raises."""
        envelope = self.build_envelope(classification, user_input)

        logger.info(f"🚀 Dispatching {envelope.intent.value}/{envelope.action} to webhook (session={envelope.session_id})")
        logger.debug(f"📦 Payload: {envelope.to_wire()}")

        try:
            body = await self.send(envelope, cancel_token)
        except DispatchTimeoutError as e:
            logger.warning(f"⏱️ Webhook dispatch timed out after {self.timeout_sec}s: {e.message}")
            return DispatchResult(success=False, message=TIMEOUT_MESSAGE, error=ERROR_TIMEOUT)
        except DispatchCancelledError:
            logger.info(f"🛑 Webhook dispatch cancelled (session={envelope.session_id})")
            return DispatchResult(success=False, message=CANCELLED_MESSAGE, error=ERROR_CANCELLED)
        except RemoteBusinessError as e:
            logger.info(f"⚠️ Webhook reported failure: {e.message}")
            return DispatchResult(success=False, message=e.message)
        except DispatchError as e:
            logger.error(f"❌ Webhook error: {e.message}")
            return DispatchResult(success=False, message=TRANSPORT_FAILURE_MESSAGE, error=e.message)
        except Exception as e:
            logger.error(f"❌ Unexpected webhook error: {type(e).__name__}: {e}")
            return DispatchResult(success=False, message=TRANSPORT_FAILURE_MESSAGE, error=str(e) or type(e).__name__)

        message = body.get("message") if isinstance(body, dict) else None
        logger.info(f"✅ Webhook response received (session={envelope.session_id})")
        return DispatchResult(success=True, message=str(message or SUCCESS_MESSAGE), data=body)

    async def close(self) -> None:
        """Close the HTTP client if the gateway created it"""
        if self._owns_client:
            await self.http_client.aclose()
