"""Decision webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List
import httpx
from lender_gateway.config import settings
from lender_gateway.domain.models import LenderApplication
from lender_gateway.domain.status import OFFER_STATUSES
from lender_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)


def offer_event(record: LenderApplication) -> Dict[str, Any]:
    """Webhook payload for a lender offer"""
    return {
        "event": "LENDER_OFFER_RECEIVED",
        "application_id": record.application_id,
        "lender_id": record.lender_id,
        "lender_name": record.lender_name,
        "status": record.status.value,
        "interest_rate": record.interest_rate,
        "approved_amount": record.approved_amount,
        "loan_tenure": record.loan_tenure,
        "emi_amount": record.emi_amount,
    }


class DecisionWebhookClient:
    """Client for pushing lender offers to a downstream dealer/CRM endpoint"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.decision_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.webhook_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def _is_retryable(self, error: httpx.HTTPError) -> bool:
        """Network failures and 5xx are worth another attempt; 4xx means the payload is wrong"""
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code >= 500
        return isinstance(error, httpx.RequestError)

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        POST one event, retrying transient failures.

        Backoff doubles from backoff_base (1s, 2s, 4s, 8s with the defaults)
        until max_retries attempts have been made; the last error is raised.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                    return
                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    webhook_failure_counter.inc()
                    if attempt >= self.max_retries or not self._is_retryable(e):
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    logger.warning(
                        f"Decision webhook attempt {attempt} failed, retrying in {backoff}s",
                        extra={"event": payload.get("event"), "error": str(e)},
                    )
                    await asyncio.sleep(backoff)

    async def notify_offers(self, records: Iterable[LenderApplication]) -> int:
        """
        Post one event per offer-bearing record. Runs as a background task,
        so a delivery that exhausts its retries is logged, not raised.

        Returns:
            Number of events delivered
        """
        if not self.enabled:
            return 0

        offers: List[LenderApplication] = [r for r in records if r.status in OFFER_STATUSES]
        delivered = 0
        for record in offers:
            try:
                await self.send_event(offer_event(record))
                delivered += 1
            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                logger.error(
                    f"Decision webhook delivery failed: {e}",
                    extra={"application_id": record.application_id, "lender_id": record.lender_id},
                )
        return delivered
