"""
Validation of inbound list submissions.

Pure function over the submission, its raw body size and a reference
data snapshot. Every applicable error is collected so the source system
can fix a submission in one round trip. An unknown court is not an
error: it is reported through ``location_exists`` so the list can still
be stored as a no-match artefact.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
import re
from typing import Any

from ..core.config import Settings, get_settings
from ..models import Language, Provenance, Sensitivity
from ..schemas import BlobIngestionRequest
from .list_types import validate_hearing_list
from .reference_data import ReferenceData

# Source system names as sent on the wire, mapped to canonical values.
# Unmapped values pass through unchanged.
PROVENANCE_MAP: dict[str, str] = {
    **{p.value: p.value for p in Provenance},
    **{p.value.lower(): p.value for p in Provenance},
}

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


@dataclass
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ParsedSubmission:
    """Typed values extracted from a valid submission."""

    court_id: str
    location_id: int
    provenance: str
    content_date: date
    sensitivity: Sensitivity
    language: Language
    display_from: datetime
    display_to: datetime
    list_type_name: str
    hearing_list: Any


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[FieldError] = field(default_factory=list)
    location_exists: bool = False
    list_type_id: int | None = None
    submission: ParsedSubmission | None = None


def canonical_provenance(value: str) -> str:
    return PROVENANCE_MAP.get(value, value)


def _text(value: Any) -> str | None:
    """Coerce a scalar field to text. Empty and missing values give None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def _parse_date(value: str) -> date | None:
    if not _ISO_DATE.match(value):
        return None
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _parse_datetime(value: str) -> datetime | None:
    if "T" not in value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _size_label(limit: int) -> str:
    return f"{limit / 1024 / 1024:g}MB"


def validate_submission(
    request: BlobIngestionRequest,
    raw_body_size: int,
    reference_data: ReferenceData,
    settings: Settings | None = None,
) -> ValidationResult:
    settings = settings or get_settings()
    errors: list[FieldError] = []

    # Size
    if raw_body_size > settings.ingestion_max_body_bytes:
        errors.append(FieldError(
            "body",
            f"Payload too large. Maximum size is {_size_label(settings.ingestion_max_body_bytes)}",
        ))

    # Court
    court_id = _text(request.court_id)
    if court_id is None:
        errors.append(FieldError("court_id", "court_id is required"))

    # Provenance
    provenance: str | None = None
    raw_provenance = _text(request.provenance)
    if raw_provenance is None:
        errors.append(FieldError("provenance", "provenance is required"))
    else:
        provenance = canonical_provenance(raw_provenance)
        allowed = settings.allowed_provenances
        if provenance not in allowed:
            errors.append(FieldError(
                "provenance",
                f"Invalid provenance. Allowed values: {', '.join(allowed)}",
            ))
            provenance = None

    # Content date
    content_date: date | None = None
    raw_content_date = _text(request.content_date)
    if raw_content_date is None:
        errors.append(FieldError("content_date", "content_date is required"))
    else:
        content_date = _parse_date(raw_content_date)
        if content_date is None:
            errors.append(FieldError("content_date", "content_date must be a valid ISO 8601 date"))

    # List type
    list_type = None
    list_type_name = _text(request.list_type)
    if list_type_name is None:
        errors.append(FieldError("list_type", "list_type is required"))
    else:
        list_type = reference_data.list_type_by_name(list_type_name)
        if list_type is None:
            allowed_names = ", ".join(sorted(reference_data.list_types))
            errors.append(FieldError(
                "list_type",
                f"Invalid list type. Allowed values: {allowed_names}",
            ))

    if list_type and provenance and list_type.allowed_provenance:
        if provenance not in list_type.allowed_provenance:
            errors.append(FieldError(
                "provenance",
                f"provenance {provenance} is not permitted for list type {list_type.name}",
            ))

    # Sensitivity
    sensitivity: Sensitivity | None = None
    raw_sensitivity = _text(request.sensitivity)
    if raw_sensitivity is None:
        errors.append(FieldError("sensitivity", "sensitivity is required"))
    else:
        try:
            sensitivity = Sensitivity(raw_sensitivity)
        except ValueError:
            errors.append(FieldError(
                "sensitivity",
                f"Invalid sensitivity. Allowed values: {', '.join(s.value for s in Sensitivity)}",
            ))

    # Language
    language: Language | None = None
    raw_language = _text(request.language)
    if raw_language is None:
        errors.append(FieldError("language", "language is required"))
    else:
        try:
            language = Language(raw_language)
        except ValueError:
            errors.append(FieldError(
                "language",
                f"Invalid language. Allowed values: {', '.join(lang.value for lang in Language)}",
            ))

    # Display window
    display_from = display_to = None
    for name in ("display_from", "display_to"):
        raw = _text(getattr(request, name))
        if raw is None:
            errors.append(FieldError(name, f"{name} is required"))
            continue
        parsed = _parse_datetime(raw)
        if parsed is None:
            errors.append(FieldError(name, f"{name} must be a valid ISO 8601 datetime"))
        elif name == "display_from":
            display_from = parsed
        else:
            display_to = parsed

    if display_from and display_to and display_to < display_from:
        errors.append(FieldError("display_to", "display_to must be after display_from"))

    # Payload
    hearing_list = request.hearing_list
    if hearing_list is None or hearing_list == "":
        errors.append(FieldError("hearing_list", "hearing_list is required"))

    # Location lookup never fails validation on its own
    location_id: int | None = None
    location_exists = False
    if court_id is not None:
        try:
            location_id = int(court_id)
        except ValueError:
            errors.append(FieldError("court_id", "court_id must be a valid number"))
        else:
            location_exists = reference_data.has_location(location_id)

    # Structural check of the payload, only once everything else is sound
    if list_type and not errors:
        for message in validate_hearing_list(list_type.name, hearing_list):
            errors.append(FieldError("hearing_list", message))

    if errors:
        return ValidationResult(
            is_valid=False,
            errors=errors,
            location_exists=location_exists,
            list_type_id=list_type.id if list_type else None,
        )

    return ValidationResult(
        is_valid=True,
        location_exists=location_exists,
        list_type_id=list_type.id,
        submission=ParsedSubmission(
            court_id=court_id,
            location_id=location_id,
            provenance=provenance,
            content_date=content_date,
            sensitivity=sensitivity,
            language=language,
            display_from=display_from,
            display_to=display_to,
            list_type_name=list_type.name,
            hearing_list=hearing_list,
        ),
    )
