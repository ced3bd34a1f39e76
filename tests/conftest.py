"""
Shared fixtures: an in-memory database seeded with reference data, and
an HTTP client bound to the application.
"""

from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta, timezone
from uuid import UUID, uuid4

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from court_publications.core.config import Settings
from court_publications.core.database import get_session
from court_publications.models import (
    Artefact,
    Base,
    Language,
    ListType,
    Location,
    Provenance,
    Sensitivity,
    User,
    UserProvenance,
    UserRole,
)

CAUSE_LIST_ID = 8
WEEKLY_LIST_ID = 9
OXFORD = 1
CARDIFF = 2
NOTIFY_SERVICE_ID = "26785a09-ab16-4eb0-8407-a37497a57506"
NOTIFY_SECRET = "3d844edf-8d35-48ac-975b-e847b4f122b0"
NOTIFY_API_KEY = f"test_key-{NOTIFY_SERVICE_ID}-{NOTIFY_SECRET}"


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        session.add_all([
            Location(location_id=OXFORD, name="Oxford Combined Court Centre"),
            Location(location_id=CARDIFF, name="Cardiff Civil and Family Justice Centre",
                     welsh_name="Canolfan Cyfiawnder Sifil a Theulu Caerdydd"),
            ListType(
                id=CAUSE_LIST_ID,
                name="CIVIL_AND_FAMILY_DAILY_CAUSE_LIST",
                friendly_name="Civil and Family Daily Cause List",
                default_sensitivity=Sensitivity.PUBLIC,
                allowed_provenance=[],
                viewer_provenance=UserProvenance.CFT_IDAM.value,
            ),
            ListType(
                id=WEEKLY_LIST_ID,
                name="CARE_STANDARDS_TRIBUNAL_WEEKLY_HEARING_LIST",
                friendly_name="Care Standards Tribunal Weekly Hearing List",
                default_sensitivity=Sensitivity.PUBLIC,
                allowed_provenance=[Provenance.MANUAL_UPLOAD.value],
                is_non_strategic=True,
            ),
        ])
        await session.commit()
        yield session


async def make_user(
    session: AsyncSession,
    email: str | None = "jane.smith@example.com",
    role: UserRole | None = UserRole.VERIFIED,
    provenance: UserProvenance | None = UserProvenance.B2C_IDAM,
) -> User:
    user = User(
        id=uuid4(),
        email=email,
        first_name="Jane",
        surname="Smith",
        role=role,
        provenance=provenance,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def user(session: AsyncSession) -> User:
    return await make_user(session)


async def make_artefact(
    session: AsyncSession,
    location_id: str = str(OXFORD),
    list_type_id: int = CAUSE_LIST_ID,
    sensitivity: Sensitivity = Sensitivity.PUBLIC,
    language: Language = Language.ENGLISH,
    content_date: date = date(2024, 1, 15),
    payload: dict | list | None = None,
    no_match: bool = False,
    display_from: datetime | None = None,
    display_to: datetime | None = None,
) -> Artefact:
    now = datetime.now(timezone.utc)
    artefact = Artefact(
        artefact_id=uuid4(),
        location_id=location_id,
        list_type_id=list_type_id,
        content_date=content_date,
        sensitivity=sensitivity,
        language=language,
        display_from=display_from or now - timedelta(days=1),
        display_to=display_to or now + timedelta(days=1),
        provenance=Provenance.MANUAL_UPLOAD.value,
        no_match=no_match,
        payload=payload if payload is not None else cause_list_payload(),
    )
    session.add(artefact)
    await session.commit()
    return artefact


# =============================================================================
# PAYLOADS AND SUBMISSIONS
# =============================================================================


def cause_list_payload() -> dict:
    return {
        "document": {"publicationDate": "2024-01-15T09:00:00Z"},
        "venue": {"venueName": "Oxford Combined Court Centre"},
        "courtLists": [
            {
                "courtHouse": {
                    "courtHouseName": "Oxford Combined Court Centre",
                    "courtRoom": [
                        {
                            "courtRoomName": "Court 1",
                            "session": [
                                {
                                    "sittings": [
                                        {
                                            "hearing": [
                                                {
                                                    "hearingType": "Directions",
                                                    "case": [
                                                        {
                                                            "caseNumber": "AB12C345",
                                                            "caseName": "Smith v Jones",
                                                            "party": [
                                                                {
                                                                    "partyRole": "APPLICANT_PETITIONER",
                                                                    "individualDetails": {
                                                                        "individualForenames": "Jane",
                                                                        "individualSurname": "Smith",
                                                                    },
                                                                }
                                                            ],
                                                        }
                                                    ],
                                                }
                                            ]
                                        }
                                    ]
                                }
                            ],
                        }
                    ],
                }
            }
        ],
    }


def submission(**overrides) -> dict:
    """A valid ingestion submission for the cause list at Oxford."""
    data = {
        "court_id": str(OXFORD),
        "provenance": "XHIBIT",
        "content_date": "2024-01-15",
        "list_type": "CIVIL_AND_FAMILY_DAILY_CAUSE_LIST",
        "sensitivity": "PUBLIC",
        "language": "ENGLISH",
        "display_from": "2024-01-15T00:00:00Z",
        "display_to": "2024-01-16T00:00:00Z",
        "hearing_list": cause_list_payload(),
    }
    data.update(overrides)
    return data


# =============================================================================
# SETTINGS AND NOTIFY
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        notify_api_key=NOTIFY_API_KEY,
        notify_template_id_subscription="base-template",
        notify_template_id_pdf_and_summary="pdf-template",
        notify_template_id_summary_only="summary-template",
        notify_retry_attempts=2,
        notify_retry_initial_delay_seconds=0.5,
    )


class FakeGateway:
    """Email gateway that records calls and replays scripted outcomes.

    Each outcome is an exception to raise or a response dict to return.
    Once the script runs out, every send succeeds.
    """

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls: list[dict] = []

    async def send_email(self, template_id, email_address, personalisation, reference=None):
        self.calls.append({
            "template_id": template_id,
            "email_address": email_address,
            "personalisation": personalisation,
            "reference": reference,
        })
        outcome = self.outcomes.pop(0) if self.outcomes else {"id": str(uuid4())}
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def notifications_scheduled() -> list[UUID]:
    return []


@pytest.fixture
async def client(session: AsyncSession, notifications_scheduled: list[UUID]):
    from court_publications.api.publications import get_notification_runner
    from court_publications.main import app

    async def override_session():
        yield session
        await session.commit()

    async def record(artefact_id: UUID):
        notifications_scheduled.append(artefact_id)

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_notification_runner] = lambda: record

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
