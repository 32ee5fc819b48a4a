"""Reminder webhook client with exponential backoff retry logic"""

import httpx
import asyncio
from typing import Dict, Any
from lendbook.config import settings
from lendbook.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


class ReminderWebhookClient:
    """Client forwarding ledger events to the external reminder scheduler"""

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.reminder_webhook_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.anticipation_days = settings.reminder_anticipation_days
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_ledger_event(self, payload: Dict[str, Any]) -> None:
        """
        Send a ledger event to the reminder scheduler with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx errors and network failures; 4xx is final
        - Tracks latency histogram and failure counter

        Args:
            payload: LedgerEvent.to_payload() output
        """
        if not self.enabled:
            return

        body = {**payload, "anticipation_days": self.anticipation_days}
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=body)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    client_error = (
                        isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500
                    )
                    if client_error or attempt >= self.max_retries:
                        # Final failure: not retryable or out of attempts
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
