"""Subscription email templates and their personalisation."""

import base64
from datetime import date
import logging
from typing import Any

from ..core.config import Settings, get_settings

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def format_content_date(value: date) -> str:
    """15 January 2024"""
    return f"{value.day} {MONTH_NAMES[value.month - 1]} {value.year}"


def is_pdf_under_limit(size_bytes: int, settings: Settings | None = None) -> bool:
    """Whether a PDF is small enough to attach. The limit itself is not."""
    settings = settings or get_settings()
    return size_bytes < settings.pdf_max_size_bytes


def select_template(
    list_type_id: int,
    has_pdf: bool,
    pdf_under_limit: bool,
    settings: Settings | None = None,
) -> str | None:
    """Pick the Notify template for a publication email.

    The PDF + summary template is used only when a PDF exists and is under
    the size limit; everything else gets the summary-only template. An
    unset specific template falls back to the base subscription template.
    """
    settings = settings or get_settings()

    if has_pdf and pdf_under_limit:
        template_id = settings.notify_template_id_pdf_and_summary
        if not template_id:
            logger.warning(
                "[notifications] PDF and summary template not set, falling back to base template"
            )
            return settings.notify_template_id_subscription
        return template_id

    template_id = settings.notify_template_id_summary_only
    if not template_id:
        logger.warning(
            f"[notifications] Summary-only template not set for list type {list_type_id}, "
            "falling back to base template"
        )
        return settings.notify_template_id_subscription
    return template_id


def build_template_parameters(
    *,
    list_type_name: str,
    content_date: date,
    location_name: str,
    has_location_subscription: bool,
    case_summary: str = "",
    settings: Settings | None = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    return {
        "ListType": list_type_name,
        "content_date": format_content_date(content_date),
        "start_page_link": settings.service_url,
        "subscription_page_link": settings.service_url,
        "locations": location_name if has_location_subscription else "",
        "display_locations": "yes" if has_location_subscription else "",
        "case": "",
        "display_case": "",
        "display_summary": "yes" if case_summary else "",
        "summary_of_cases": case_summary,
    }


def file_upload(content: bytes, filename: str) -> dict[str, Any]:
    """Personalisation value for a Notify file attachment."""
    return {
        "file": base64.b64encode(content).decode("ascii"),
        "filename": filename,
        "confirm_email_before_download": True,
    }
