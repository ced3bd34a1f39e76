"""
Notification dispatch with bounded retry.

``send`` never raises. A gateway error, or a response without a
notification id, counts as a failed attempt; attempts are retried with
exponentially growing delays until the configured budget is spent, and
the last error is returned. The caller owns the NotificationLog row.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
from typing import Any, Protocol

from ..core.config import Settings, get_settings

logger = logging.getLogger(__name__)

MISSING_ID_ERROR = "Notify response did not include a notification id"


class EmailGateway(Protocol):
    async def send_email(
        self,
        template_id: str,
        email_address: str,
        personalisation: dict[str, Any],
        reference: str | None = None,
    ) -> dict[str, Any]: ...


@dataclass
class DispatchResult:
    success: bool
    notification_id: str | None = None
    error: str | None = None
    attempts: int = 0


class NotificationDispatcher:
    """Sends one email per call through the gateway, retrying on failure."""

    def __init__(
        self,
        gateway: EmailGateway,
        retry_attempts: int = 1,
        initial_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if retry_attempts < 0:
            raise ValueError("retry_attempts must not be negative")
        self.gateway = gateway
        self.retry_attempts = retry_attempts
        self.initial_delay = initial_delay
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        gateway: EmailGateway,
        settings: Settings | None = None,
    ) -> "NotificationDispatcher":
        settings = settings or get_settings()
        return cls(
            gateway,
            retry_attempts=settings.notify_retry_attempts,
            initial_delay=settings.notify_retry_initial_delay_seconds,
        )

    def backoff_delays(self) -> list[float]:
        """Delays slept between attempts: d, 2d, 4d, ..."""
        return [self.initial_delay * 2**i for i in range(self.retry_attempts)]

    async def send(
        self,
        recipient_address: str,
        template_parameters: dict[str, Any],
        template_id: str,
        reference: str | None = None,
    ) -> DispatchResult:
        delays = self.backoff_delays()
        total_attempts = self.retry_attempts + 1
        last_error = "Unknown error"

        for attempt in range(1, total_attempts + 1):
            try:
                response = await self.gateway.send_email(
                    template_id=template_id,
                    email_address=recipient_address,
                    personalisation=template_parameters,
                    reference=reference,
                )
                notification_id = response.get("id") if isinstance(response, dict) else None
                if notification_id:
                    return DispatchResult(
                        success=True,
                        notification_id=str(notification_id),
                        attempts=attempt,
                    )
                last_error = MISSING_ID_ERROR
            except Exception as e:
                last_error = str(e) or e.__class__.__name__

            if attempt < total_attempts:
                delay = delays[attempt - 1]
                logger.warning(
                    f"[notifications] Send attempt {attempt}/{total_attempts} failed "
                    f"(ref {reference}), retrying in {delay}s"
                )
                await self._sleep(delay)

        logger.error(
            f"[notifications] Send failed after {total_attempts} attempt(s) (ref {reference})"
        )
        return DispatchResult(success=False, error=last_error, attempts=total_attempts)
