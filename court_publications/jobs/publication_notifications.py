"""
Publication Notifications Job: re-send subscriber emails for one artefact.

Used when a background notification run failed part-way, or the gateway
was down. Recipients already marked SENT for the artefact are skipped,
so running the job twice does not email anyone twice.

Usage: python -m court_publications.jobs.publication_notifications --artefact-id ID
"""

import asyncio
from dataclasses import asdict
from datetime import datetime, timezone
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from ..core.config import Settings, get_settings
from ..services.notification_dispatcher import NotificationDispatcher
from ..services.notification_service import PublicationNotificationService
from ..services.notify_client import GovNotifyClient

logger = logging.getLogger(__name__)


async def run_publication_notifications(
    artefact_id: UUID,
    database_url: str,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Notify subscribers of one artefact and return a result summary."""
    settings = settings or get_settings()
    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting notification job for artefact {artefact_id}")

    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    client = GovNotifyClient.from_settings(settings)

    try:
        async with session_factory() as session:
            service = PublicationNotificationService(
                session,
                NotificationDispatcher.from_settings(client, settings),
                settings,
            )
            summary = await service.notify_for_artefact(artefact_id)
    finally:
        await client.close()
        await engine.dispose()

    results = asdict(summary)
    results["artefact_id"] = str(artefact_id)
    results["duration_seconds"] = (datetime.now(timezone.utc) - start_time).total_seconds()

    logger.info(
        f"Notification job completed in {results['duration_seconds']:.2f}s: "
        f"{summary.sent} sent, {summary.failed} failed, {summary.skipped} skipped"
    )
    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for the notification job."""
    import argparse

    settings = get_settings()

    parser = argparse.ArgumentParser(description="Re-run subscriber notifications for an artefact")
    parser.add_argument(
        "--artefact-id",
        type=UUID,
        required=True,
        help="Artefact to notify subscribers about",
    )
    parser.add_argument(
        "--database-url",
        default=settings.database_url_async,
        help="PostgreSQL connection string",
    )

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not settings.notify_enabled:
        print("Error: GOVUK_NOTIFY_API_KEY is required")
        exit(1)

    try:
        results = asyncio.run(run_publication_notifications(
            artefact_id=args.artefact_id,
            database_url=args.database_url,
            settings=settings,
        ))
        print(f"Job completed: {results}")
    except Exception as e:
        print(f"Job failed: {e}")
        exit(1)

    # Unknown artefact or undelivered emails
    if results["failed"] or (results["errors"] and not results["total_subscriptions"]):
        exit(1)


if __name__ == "__main__":
    main()
