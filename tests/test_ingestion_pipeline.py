"""
Tests for the ingestion pipeline - verifying the audit guarantees.

These tests verify:
1. Every call writes exactly one ingestion log row
2. The pipeline never raises, whatever fails underneath
3. Unknown courts are stored as no-match artefacts
4. A resubmission supersedes the artefact with the same publication key
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from court_publications.models import Artefact, IngestionLog, IngestionStatus, Sensitivity
from court_publications.schemas import BlobIngestionRequest
from court_publications.services.ingestion import IngestionPipeline

from conftest import CAUSE_LIST_ID, make_artefact, submission


async def ingest(session: AsyncSession, size: int = 1000, **overrides):
    request = BlobIngestionRequest.model_validate(submission(**overrides))
    return await IngestionPipeline(session).process_ingestion(request, size)


async def logs(session: AsyncSession) -> list[IngestionLog]:
    result = await session.execute(select(IngestionLog).order_by(IngestionLog.timestamp))
    return list(result.scalars().all())


async def artefact_count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Artefact))
    return result.scalar_one()


# =============================================================================
# TEST: SUCCESSFUL INGESTION
# =============================================================================


class TestSuccessfulIngestion:
    """Valid submissions become artefacts."""

    async def test_stores_artefact_and_logs_success(self, session: AsyncSession):
        result = await ingest(session)

        assert result.success is True
        assert result.no_match is False
        assert result.message == "Blob ingested and published successfully"
        assert result.outcome == IngestionStatus.SUCCESS

        artefact = await session.get(Artefact, result.artefact_id)
        assert artefact is not None
        assert artefact.location_id == "1"
        assert artefact.list_type_id == CAUSE_LIST_ID
        assert artefact.superseded_count == 0

        entries = await logs(session)
        assert len(entries) == 1
        assert entries[0].status == IngestionStatus.SUCCESS
        assert entries[0].artefact_id == result.artefact_id
        assert entries[0].source_system == "XHIBIT"
        assert entries[0].court_id == "1"

    async def test_unknown_location_stored_as_no_match(self, session: AsyncSession):
        result = await ingest(session, court_id="9999")

        assert result.success is True
        assert result.no_match is True
        assert result.message == "Blob ingested but location not found in reference data"

        artefact = await session.get(Artefact, result.artefact_id)
        assert artefact.no_match is True

    async def test_resubmission_supersedes_existing_artefact(self, session: AsyncSession):
        first = await ingest(session)
        second = await ingest(session, sensitivity="PRIVATE")

        assert second.success is True
        assert second.artefact_id == first.artefact_id
        assert await artefact_count(session) == 1

        artefact = await session.get(Artefact, first.artefact_id)
        await session.refresh(artefact)
        assert artefact.superseded_count == 1
        assert artefact.sensitivity == "PRIVATE"

        assert len(await logs(session)) == 2

    async def test_different_language_is_a_separate_publication(self, session: AsyncSession):
        english = await ingest(session)
        welsh = await ingest(session, language="WELSH")

        assert english.artefact_id != welsh.artefact_id
        assert await artefact_count(session) == 2

    async def test_court_id_spellings_share_one_publication(self, session: AsyncSession):
        padded = await ingest(session, court_id="01")
        plain = await ingest(session, court_id=" 1 ")

        assert plain.artefact_id == padded.artefact_id
        assert await artefact_count(session) == 1

        artefact = await session.get(Artefact, padded.artefact_id)
        assert artefact.location_id == "1"

    async def test_concurrent_insert_of_same_key_becomes_supersede(
        self,
        session: AsyncSession,
        monkeypatch,
    ):
        first = await ingest(session)
        pipeline = IngestionPipeline(session)
        find_existing = pipeline._find_existing
        lookups = []

        # The first lookup misses, as if the other request had not committed yet
        async def racing_find_existing(*args, **kwargs):
            lookups.append(args)
            if len(lookups) == 1:
                return None
            return await find_existing(*args, **kwargs)

        monkeypatch.setattr(pipeline, "_find_existing", racing_find_existing)

        result = await pipeline.process_ingestion(
            BlobIngestionRequest.model_validate(submission(sensitivity="PRIVATE")), 1000
        )

        assert result.success is True
        assert result.artefact_id == first.artefact_id
        assert len(lookups) == 2
        assert await artefact_count(session) == 1

        artefact = await session.get(Artefact, first.artefact_id)
        await session.refresh(artefact)
        assert artefact.superseded_count == 1
        assert artefact.sensitivity == "PRIVATE"

        statuses = [e.status for e in await logs(session)]
        assert statuses == [IngestionStatus.SUCCESS, IngestionStatus.SUCCESS]

    async def test_publication_key_is_unique(self, session: AsyncSession):
        await make_artefact(session)

        with pytest.raises(IntegrityError):
            await make_artefact(session, sensitivity=Sensitivity.PRIVATE)
        await session.rollback()

        assert await artefact_count(session) == 1


# =============================================================================
# TEST: FAILED INGESTION
# =============================================================================


class TestFailedIngestion:
    """Failures are returned, logged, and never raised."""

    async def test_validation_failure_is_logged_without_artefact(self, session: AsyncSession):
        result = await ingest(session, court_id=None, language="FRENCH")

        assert result.success is False
        assert result.message == "Validation failed"
        assert result.outcome == IngestionStatus.VALIDATION_ERROR
        assert {e.field for e in result.errors} == {"court_id", "language"}
        assert await artefact_count(session) == 0

        entries = await logs(session)
        assert len(entries) == 1
        assert entries[0].status == IngestionStatus.VALIDATION_ERROR
        assert entries[0].artefact_id is None
        assert entries[0].court_id == "UNKNOWN"
        assert "court_id: court_id is required" in entries[0].error_message

    async def test_missing_provenance_logged_as_unknown(self, session: AsyncSession):
        await ingest(session, provenance=None)

        entries = await logs(session)
        assert entries[0].source_system == "UNKNOWN"

    async def test_storage_failure_is_a_system_error(self, session: AsyncSession, monkeypatch):
        async def broken_store(*args, **kwargs):
            raise RuntimeError("connection reset by peer")

        pipeline = IngestionPipeline(session)
        monkeypatch.setattr(pipeline, "_store_artefact", broken_store)

        result = await pipeline.process_ingestion(
            BlobIngestionRequest.model_validate(submission()), 1000
        )

        assert result.success is False
        assert result.outcome == IngestionStatus.SYSTEM_ERROR
        assert result.message == "Internal server error during ingestion"
        assert result.errors is None
        # Internals stay out of the response
        assert "connection reset" not in result.model_dump_json()

        entries = await logs(session)
        assert len(entries) == 1
        assert entries[0].status == IngestionStatus.SYSTEM_ERROR
        assert entries[0].error_message == "connection reset by peer"
        assert await artefact_count(session) == 0

    async def test_unwritable_audit_log_still_returns(self, session: AsyncSession, monkeypatch):
        async def broken_write_log(*args, **kwargs):
            raise RuntimeError("database unavailable")

        pipeline = IngestionPipeline(session)
        monkeypatch.setattr(pipeline, "_write_log", broken_write_log)

        result = await pipeline.process_ingestion(
            BlobIngestionRequest.model_validate(submission()), 1000
        )

        assert result.success is False
        assert result.outcome == IngestionStatus.SYSTEM_ERROR

    async def test_one_log_per_call(self, session: AsyncSession):
        await ingest(session)
        await ingest(session, court_id="abc")
        await ingest(session, court_id="9999")

        statuses = [e.status for e in await logs(session)]
        assert sorted(statuses) == sorted([
            IngestionStatus.SUCCESS,
            IngestionStatus.VALIDATION_ERROR,
            IngestionStatus.SUCCESS,
        ])
