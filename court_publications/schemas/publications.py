"""Schemas for publication listings and data."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from ..models import Language, Sensitivity
from .base import ApiBaseModel


class PublicationSummary(ApiBaseModel):
    """Publication metadata, safe to show to anyone allowed to list it."""

    artefact_id: UUID
    location_id: str
    list_type_id: int
    content_date: date
    sensitivity: Sensitivity
    language: Language
    display_from: datetime
    display_to: datetime
    provenance: str
    is_flat_file: bool
    no_match: bool
    last_received_date: datetime
    superseded_count: int


class PublicationData(ApiBaseModel):
    """The stored list body."""

    artefact_id: UUID
    list_type_id: int
    payload: Any = None


class PaginationInfo(ApiBaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next: bool
    has_previous: bool
    page_numbers: list[int]
    next_page: int | None = None
    previous_page: int | None = None


class PublicationListResponse(ApiBaseModel):
    items: list[PublicationSummary]
    pagination: PaginationInfo
