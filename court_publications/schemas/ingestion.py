"""Schemas for inbound list submissions."""

from typing import Any
from uuid import UUID

from pydantic import AliasChoices, Field

from ..models import IngestionStatus
from .base import ApiBaseModel, ErrorDetail


class BlobIngestionRequest(ApiBaseModel):
    """A list submission as sent by a source system.

    Fields are deliberately loose: the ingestion validator reports every
    missing or malformed field in one pass instead of failing on the first.
    """

    court_id: Any = None
    provenance: Any = None
    content_date: Any = Field(
        default=None,
        validation_alias=AliasChoices("content_date", "publication_date"),
    )
    list_type: Any = None
    sensitivity: Any = None
    language: Any = None
    display_from: Any = None
    display_to: Any = None
    hearing_list: Any = None


class BlobIngestionResponse(ApiBaseModel):
    """Structured ingestion outcome returned to the source system."""

    success: bool
    artefact_id: UUID | None = None
    no_match: bool | None = None
    message: str
    errors: list[ErrorDetail] | None = None

    # Used by the HTTP layer to choose a status code; never serialised
    outcome: IngestionStatus = Field(exclude=True)
