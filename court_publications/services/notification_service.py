"""
Publication notification service.

For one published artefact:

1. Collect recipients from location subscriptions and list-type
   subscriptions (language-filtered), one entry per user.
2. Skip users already sent this publication, so re-runs are idempotent.
3. Write a PENDING NotificationLog per recipient, then dispatch emails
   concurrently (bounded), then move each log to SENT or FAILED.

A log row is created once and only its status and timestamps change
afterwards. Status moves PENDING -> SENT | FAILED and never back.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
import re
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.database import get_session_context
from ..models import (
    Artefact,
    ListType,
    Location,
    NotificationLog,
    NotificationStatus,
)
from ..models.base import utcnow
from .list_type_subscriptions import ListTypeSubscriptionService
from .list_types import build_case_summary, format_case_summary
from .notification_dispatcher import DispatchResult, NotificationDispatcher
from .notification_templates import (
    build_template_parameters,
    file_upload,
    is_pdf_under_limit,
    select_template,
)
from .notify_client import GovNotifyClient
from .subscriptions import Recipient, SubscriptionService

logger = logging.getLogger(__name__)

NO_EMAIL_ERROR = "No email address"

_EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

PdfProvider = Callable[[UUID], Awaitable[bytes | None]]


def redact_email(text: str) -> str:
    return _EMAIL_PATTERN.sub("[REDACTED_EMAIL]", text)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class InvalidStatusTransitionError(Exception):
    """A NotificationLog was asked to leave a terminal status."""

    pass


ALLOWED_TRANSITIONS: dict[NotificationStatus, set[NotificationStatus]] = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.SENT: set(),
    NotificationStatus.FAILED: set(),
}


def transition(
    log: NotificationLog,
    new_status: NotificationStatus,
    *,
    error_message: str | None = None,
    gov_notify_id: str | None = None,
) -> None:
    current = NotificationStatus(log.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            f"Cannot move notification {log.id} from {current.value} to {new_status.value}"
        )

    log.status = new_status
    if new_status == NotificationStatus.SENT:
        log.sent_at = utcnow()
        log.gov_notify_id = gov_notify_id
    else:
        log.failed_at = utcnow()
        log.error_message = error_message


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class NotificationSummary:
    total_subscriptions: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class _Delivery:
    recipient: Recipient
    has_location_subscription: bool
    log: NotificationLog | None = None
    result: DispatchResult | None = None


# =============================================================================
# SERVICE
# =============================================================================


class PublicationNotificationService:
    """Notify subscribers that a publication is available."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher,
        settings: Settings | None = None,
        pdf_provider: PdfProvider | None = None,
    ):
        self.session = session
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.pdf_provider = pdf_provider

    async def collect_recipients(self, artefact: Artefact) -> list[_Delivery]:
        """Location subscribers first, then list-type subscribers; one per user."""
        location_recipients: list[Recipient] = []
        try:
            location_id = int(artefact.location_id)
        except ValueError:
            logger.warning(
                f"[notifications] Artefact {artefact.artefact_id} has non-numeric location "
                f"{artefact.location_id}; skipping location subscribers"
            )
        else:
            location_recipients = await SubscriptionService(
                self.session, self.settings
            ).find_recipients_for_location(location_id)

        list_type_recipients = await ListTypeSubscriptionService(
            self.session, self.settings
        ).find_recipients_for_list_type(artefact.list_type_id, artefact.language)

        deliveries: dict[UUID, _Delivery] = {}
        for recipient in location_recipients:
            deliveries.setdefault(recipient.user_id, _Delivery(recipient, True))
        for recipient in list_type_recipients:
            deliveries.setdefault(recipient.user_id, _Delivery(recipient, False))
        return list(deliveries.values())

    async def _already_sent(self, publication_id: UUID) -> set[UUID]:
        result = await self.session.execute(
            select(NotificationLog.user_id).where(
                NotificationLog.publication_id == publication_id,
                NotificationLog.status == NotificationStatus.SENT,
            )
        )
        return set(result.scalars().all())

    def _new_log(self, artefact: Artefact, recipient: Recipient) -> NotificationLog:
        log = NotificationLog(
            subscription_id=recipient.subscription_id,
            list_type_subscription_id=recipient.list_type_subscription_id,
            user_id=recipient.user_id,
            publication_id=artefact.artefact_id,
            location_id=artefact.location_id,
            status=NotificationStatus.PENDING,
        )
        self.session.add(log)
        return log

    async def notify_for_artefact(self, artefact_id: UUID) -> NotificationSummary:
        artefact = await self.session.get(Artefact, artefact_id)
        if not artefact:
            logger.error(f"[notifications] Artefact {artefact_id} not found")
            return NotificationSummary(errors=[f"Artefact {artefact_id} not found"])

        if artefact.no_match:
            logger.info(
                f"[notifications] Skipping artefact {artefact_id}: location not in reference data"
            )
            return NotificationSummary()

        deliveries = await self.collect_recipients(artefact)
        summary = NotificationSummary(total_subscriptions=len(deliveries))
        if not deliveries:
            logger.info(f"[notifications] No subscribers for artefact {artefact_id}")
            return summary

        list_type = await self.session.get(ListType, artefact.list_type_id)
        list_type_name = list_type.friendly_name if list_type else str(artefact.list_type_id)
        location = (
            await self.session.get(Location, int(artefact.location_id))
            if artefact.location_id.isdigit()
            else None
        )
        location_name = location.name if location else artefact.location_id

        case_summary = ""
        if list_type:
            case_summary = format_case_summary(build_case_summary(list_type.name, artefact.payload))

        pdf = await self.pdf_provider(artefact_id) if self.pdf_provider else None
        pdf_under_limit = pdf is not None and is_pdf_under_limit(len(pdf), self.settings)
        template_id = select_template(
            artefact.list_type_id, pdf is not None, pdf_under_limit, self.settings
        )
        if not template_id:
            logger.error("[notifications] No GOV.UK Notify subscription template configured")
            summary.errors.append("No notification template configured")
            return summary

        # Phase 1: audit rows
        already_sent = await self._already_sent(artefact.artefact_id)
        to_send: list[_Delivery] = []
        for delivery in deliveries:
            recipient = delivery.recipient
            if recipient.user_id in already_sent:
                summary.skipped += 1
                continue
            delivery.log = self._new_log(artefact, recipient)
            if not recipient.email:
                transition(delivery.log, NotificationStatus.FAILED, error_message=NO_EMAIL_ERROR)
                summary.skipped += 1
                summary.errors.append(f"User {recipient.user_id}: {NO_EMAIL_ERROR}")
                continue
            to_send.append(delivery)
        await self.session.commit()

        # Phase 2: send
        semaphore = asyncio.Semaphore(self.settings.notify_max_concurrency)

        async def dispatch(delivery: _Delivery) -> None:
            parameters = build_template_parameters(
                list_type_name=list_type_name,
                content_date=artefact.content_date,
                location_name=location_name,
                has_location_subscription=delivery.has_location_subscription,
                case_summary=case_summary,
                settings=self.settings,
            )
            if pdf is not None and pdf_under_limit:
                parameters["link_to_file"] = file_upload(pdf, f"{artefact.artefact_id}.pdf")
            subscription_id = (
                delivery.recipient.subscription_id
                or delivery.recipient.list_type_subscription_id
            )
            async with semaphore:
                delivery.result = await self.dispatcher.send(
                    delivery.recipient.email,
                    parameters,
                    template_id,
                    reference=f"{artefact.artefact_id}-{subscription_id}",
                )

        await asyncio.gather(*(dispatch(d) for d in to_send))

        # Phase 3: outcomes
        for delivery in to_send:
            result = delivery.result
            if result.success:
                transition(
                    delivery.log,
                    NotificationStatus.SENT,
                    gov_notify_id=result.notification_id,
                )
                summary.sent += 1
            else:
                transition(delivery.log, NotificationStatus.FAILED, error_message=result.error)
                summary.failed += 1
                summary.errors.append(f"User {delivery.recipient.user_id}: {result.error}")
        await self.session.commit()

        summary.errors = [redact_email(e) for e in summary.errors]
        logger.info(
            f"[notifications] Artefact {artefact_id}: {summary.total_subscriptions} recipient(s), "
            f"{summary.sent} sent, {summary.failed} failed, {summary.skipped} skipped"
        )
        for error in summary.errors:
            logger.warning(f"[notifications] {error}")
        return summary


async def send_publication_notifications(artefact_id: UUID) -> NotificationSummary | None:
    """Background entry point: notify subscribers in a fresh session.

    Failures are logged, never raised, so a broken gateway cannot affect
    the ingestion that scheduled this.
    """
    settings = get_settings()
    if not settings.notify_enabled:
        logger.warning(
            f"[notifications] GOV.UK Notify not configured; skipping artefact {artefact_id}"
        )
        return None

    client: GovNotifyClient | None = None
    try:
        client = GovNotifyClient.from_settings(settings)
        async with get_session_context() as session:
            service = PublicationNotificationService(
                session,
                NotificationDispatcher.from_settings(client, settings),
                settings,
            )
            return await service.notify_for_artefact(artefact_id)
    except Exception:
        logger.exception(f"[notifications] Failed to process publication {artefact_id}")
        return None
    finally:
        if client:
            await client.close()
