"""
List-type handlers: payload document models and email summaries.

Each list type that carries structured JSON registers a handler here,
keyed by list-type name. The ingestion validator uses the handler's
document model to check ``hearing_list``; the notification service uses
its summary builder for the case summary in subscriber emails. List types
with no registered handler accept any payload and get no case summary.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError
from pydantic.alias_generators import to_camel

SummaryRow = list[tuple[str, str]]


class _Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# =============================================================================
# CIVIL AND FAMILY DAILY CAUSE LIST
# =============================================================================


class IndividualDetails(_Document):
    individual_forenames: str | None = None
    individual_surname: str | None = None


class OrganisationDetails(_Document):
    organisation_name: str | None = None


class Party(_Document):
    party_role: str | None = None
    individual_details: IndividualDetails | None = None
    organisation_details: OrganisationDetails | None = None

    @property
    def display_name(self) -> str | None:
        if self.individual_details:
            parts = [
                self.individual_details.individual_forenames,
                self.individual_details.individual_surname,
            ]
            name = " ".join(p for p in parts if p)
            return name or None
        if self.organisation_details:
            return self.organisation_details.organisation_name
        return None


class Case(_Document):
    case_number: str
    case_name: str | None = None
    case_type: str | None = None
    party: list[Party] = Field(default_factory=list)


class Hearing(_Document):
    hearing_type: str | None = None
    case: list[Case] = Field(default_factory=list)


class Sitting(_Document):
    hearing: list[Hearing] = Field(default_factory=list)


class CourtSession(_Document):
    sittings: list[Sitting] = Field(default_factory=list)


class CourtRoom(_Document):
    court_room_name: str | None = None
    session: list[CourtSession] = Field(default_factory=list)


class CourtHouse(_Document):
    court_house_name: str | None = None
    court_room: list[CourtRoom] = Field(default_factory=list)


class CourtList(_Document):
    court_house: CourtHouse


class DocumentInfo(_Document):
    publication_date: str


class Venue(_Document):
    venue_name: str


class CauseListDocument(_Document):
    document: DocumentInfo
    venue: Venue
    court_lists: list[CourtList] = Field(..., min_length=1)


def summarise_cause_list(document: CauseListDocument) -> list[SummaryRow]:
    rows: list[SummaryRow] = []
    for court_list in document.court_lists:
        for room in court_list.court_house.court_room:
            for session in room.session:
                for sitting in session.sittings:
                    for hearing in sitting.hearing:
                        for case in hearing.case:
                            row: SummaryRow = []
                            applicant = next(
                                (
                                    p.display_name
                                    for p in case.party
                                    if p.party_role == "APPLICANT_PETITIONER" and p.display_name
                                ),
                                None,
                            )
                            if applicant:
                                row.append(("Applicant", applicant))
                            row.append(("Case reference", case.case_number))
                            if case.case_name:
                                row.append(("Case name", case.case_name))
                            if case.case_type:
                                row.append(("Case type", case.case_type))
                            if hearing.hearing_type:
                                row.append(("Hearing type", hearing.hearing_type))
                            rows.append(row)
    return rows


# =============================================================================
# WEEKLY HEARING LISTS (tabular)
# =============================================================================


class WeeklyHearing(_Document):
    date: str
    case_name: str
    hearing_length: str
    hearing_type: str
    venue: str
    additional_information: str | None = None


class WeeklyHearingList(RootModel[list[WeeklyHearing]]):
    pass


def summarise_weekly_hearing_list(document: WeeklyHearingList) -> list[SummaryRow]:
    return [
        [
            ("Case name", hearing.case_name),
            ("Hearing date", hearing.date),
            ("Hearing type", hearing.hearing_type),
        ]
        for hearing in document.root
    ]


# =============================================================================
# REGISTRY
# =============================================================================


@dataclass(frozen=True)
class ListTypeHandler:
    document_model: type[BaseModel]
    summarise: Callable[[Any], list[SummaryRow]]


LIST_TYPE_HANDLERS: dict[str, ListTypeHandler] = {
    "CIVIL_AND_FAMILY_DAILY_CAUSE_LIST": ListTypeHandler(
        document_model=CauseListDocument,
        summarise=summarise_cause_list,
    ),
    "CARE_STANDARDS_TRIBUNAL_WEEKLY_HEARING_LIST": ListTypeHandler(
        document_model=WeeklyHearingList,
        summarise=summarise_weekly_hearing_list,
    ),
}


def get_handler(list_type_name: str) -> ListTypeHandler | None:
    return LIST_TYPE_HANDLERS.get(list_type_name)


def _format_location(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def validate_hearing_list(list_type_name: str, payload: Any) -> list[str]:
    """Check a payload against its list type's document model.

    Returns human-readable error messages; empty means valid or unregistered.
    """
    handler = get_handler(list_type_name)
    if handler is None:
        return []

    try:
        handler.document_model.model_validate(payload)
    except ValidationError as e:
        messages = []
        for error in e.errors():
            location = _format_location(error["loc"])
            messages.append(f"{location}: {error['msg']}" if location else error["msg"])
        return messages
    return []


def build_case_summary(list_type_name: str, payload: Any) -> list[SummaryRow]:
    """Case summary rows for a stored payload. Invalid payloads give none."""
    handler = get_handler(list_type_name)
    if handler is None or payload is None:
        return []
    try:
        document = handler.document_model.model_validate(payload)
    except ValidationError:
        return []
    return handler.summarise(document)


def format_case_summary(rows: list[SummaryRow]) -> str:
    """Render summary rows as a Notify markdown block."""
    return "\n---\n".join(
        "\n".join(f"{label} - {value}" for label, value in row) for row in rows
    )
