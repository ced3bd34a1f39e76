"""
Ingestion pipeline: submission -> validation -> artefact -> audit log.

The pipeline never raises. Every outcome, including database failures,
is returned as a BlobIngestionResponse, and every call writes exactly one
IngestionLog row. Validation failures carry field-level errors back to
the source system; system failures are opaque to the caller and fully
detailed in the audit log.
"""

import logging
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..models import Artefact, IngestionLog, IngestionStatus
from ..models.base import utcnow
from ..schemas import BlobIngestionRequest, BlobIngestionResponse, ErrorDetail
from .ingestion_validator import ParsedSubmission, validate_submission
from .reference_data import ReferenceData, load_reference_data

logger = logging.getLogger(__name__)

UNKNOWN = "UNKNOWN"
VALIDATION_FAILED_MESSAGE = "Validation failed"
SYSTEM_ERROR_MESSAGE = "Internal server error during ingestion"
PUBLISHED_MESSAGE = "Blob ingested and published successfully"
NO_MATCH_MESSAGE = "Blob ingested but location not found in reference data"


def _source(value) -> str:
    return str(value).strip() if value not in (None, "") else UNKNOWN


class IngestionPipeline:
    """Turns one inbound submission into a stored artefact."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        reference_data: ReferenceData | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self._reference_data = reference_data

    async def process_ingestion(
        self,
        request: BlobIngestionRequest,
        raw_body_size: int,
    ) -> BlobIngestionResponse:
        source_system = _source(request.provenance)
        court_id = _source(request.court_id)

        try:
            return await self._process(request, raw_body_size, source_system, court_id)
        except Exception:
            # Only reached when the audit log itself cannot be written
            logger.exception(
                f"[blob-ingestion] Unrecoverable error for court {court_id} from {source_system}"
            )
            return self._system_error_response()

    async def _process(
        self,
        request: BlobIngestionRequest,
        raw_body_size: int,
        source_system: str,
        court_id: str,
    ) -> BlobIngestionResponse:
        try:
            reference_data = self._reference_data or await load_reference_data(self.session)
        except Exception as e:
            logger.error(f"[blob-ingestion] Failed to load reference data: {e}")
            await self.session.rollback()
            await self._write_log(
                source_system, court_id, IngestionStatus.SYSTEM_ERROR, error_message=str(e)
            )
            return self._system_error_response()

        validation = validate_submission(request, raw_body_size, reference_data, self.settings)

        if not validation.is_valid:
            error_message = "; ".join(str(e) for e in validation.errors)
            logger.info(
                f"[blob-ingestion] Validation failed for court {court_id} from {source_system}: "
                f"{len(validation.errors)} error(s)"
            )
            await self._write_log(
                source_system,
                court_id,
                IngestionStatus.VALIDATION_ERROR,
                error_message=error_message,
            )
            return BlobIngestionResponse(
                success=False,
                message=VALIDATION_FAILED_MESSAGE,
                errors=[ErrorDetail(field=e.field, message=e.message) for e in validation.errors],
                outcome=IngestionStatus.VALIDATION_ERROR,
            )

        submission = validation.submission
        no_match = not validation.location_exists

        try:
            artefact_id = await self._store_artefact(
                submission, validation.list_type_id, no_match
            )
        except Exception as e:
            logger.error(
                f"[blob-ingestion] Failed to store artefact for court {court_id}: {e}"
            )
            await self.session.rollback()
            await self._write_log(
                source_system, court_id, IngestionStatus.SYSTEM_ERROR, error_message=str(e)
            )
            return self._system_error_response()

        await self._write_log(
            source_system, court_id, IngestionStatus.SUCCESS, artefact_id=artefact_id
        )

        if no_match:
            logger.info(
                f"[blob-ingestion] Artefact {artefact_id} stored with no_match=true "
                f"(court {court_id} not in reference data)"
            )
        else:
            logger.info(f"[blob-ingestion] Artefact {artefact_id} published for court {court_id}")

        return BlobIngestionResponse(
            success=True,
            artefact_id=artefact_id,
            no_match=no_match,
            message=NO_MATCH_MESSAGE if no_match else PUBLISHED_MESSAGE,
            outcome=IngestionStatus.SUCCESS,
        )

    async def _store_artefact(
        self,
        submission: ParsedSubmission,
        list_type_id: int,
        no_match: bool,
    ) -> UUID:
        """Insert the artefact, or supersede the one with the same publication key."""
        location_id = str(submission.location_id)
        existing = await self._find_existing(location_id, list_type_id, submission)
        if existing:
            return await self._supersede(existing, submission, no_match)

        artefact = Artefact(
            artefact_id=uuid4(),
            location_id=location_id,
            list_type_id=list_type_id,
            content_date=submission.content_date,
            sensitivity=submission.sensitivity,
            language=submission.language,
            display_from=submission.display_from,
            display_to=submission.display_to,
            provenance=submission.provenance,
            is_flat_file=False,
            no_match=no_match,
            payload=submission.hearing_list,
            last_received_date=utcnow(),
        )
        self.session.add(artefact)
        try:
            await self.session.flush()
        except IntegrityError:
            # A concurrent submission stored the same publication key first
            await self.session.rollback()
            existing = await self._find_existing(location_id, list_type_id, submission)
            if existing is None:
                raise
            logger.info(
                f"[blob-ingestion] Publication key for court {location_id} taken concurrently, "
                f"superseding artefact {existing.artefact_id}"
            )
            return await self._supersede(existing, submission, no_match)
        return artefact.artefact_id

    async def _find_existing(
        self,
        location_id: str,
        list_type_id: int,
        submission: ParsedSubmission,
    ) -> Artefact | None:
        result = await self.session.execute(
            select(Artefact).where(
                Artefact.location_id == location_id,
                Artefact.list_type_id == list_type_id,
                Artefact.content_date == submission.content_date,
                Artefact.language == submission.language,
            )
        )
        return result.scalars().first()

    async def _supersede(
        self,
        existing: Artefact,
        submission: ParsedSubmission,
        no_match: bool,
    ) -> UUID:
        existing.sensitivity = submission.sensitivity
        existing.display_from = submission.display_from
        existing.display_to = submission.display_to
        existing.provenance = submission.provenance
        existing.no_match = no_match
        existing.payload = submission.hearing_list
        existing.last_received_date = utcnow()
        existing.superseded_count += 1
        await self.session.flush()
        logger.info(
            f"[blob-ingestion] Artefact {existing.artefact_id} superseded "
            f"({existing.superseded_count} time(s))"
        )
        return existing.artefact_id

    async def _write_log(
        self,
        source_system: str,
        court_id: str,
        status: IngestionStatus,
        error_message: str | None = None,
        artefact_id: UUID | None = None,
    ) -> None:
        self.session.add(
            IngestionLog(
                source_system=source_system,
                court_id=court_id,
                status=status,
                error_message=error_message,
                artefact_id=artefact_id,
            )
        )
        await self.session.commit()

    @staticmethod
    def _system_error_response() -> BlobIngestionResponse:
        return BlobIngestionResponse(
            success=False,
            message=SYSTEM_ERROR_MESSAGE,
            outcome=IngestionStatus.SYSTEM_ERROR,
        )
