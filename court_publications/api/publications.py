"""API routes for list ingestion and publication access."""

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
import json
import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import PublisherDep, SessionDep, ViewerDep
from ..models import Artefact, IngestionStatus, ListType, Sensitivity
from ..schemas import (
    BlobIngestionRequest,
    BlobIngestionResponse,
    PaginationInfo,
    PublicationData,
    PublicationListResponse,
    PublicationSummary,
)
from ..services import (
    IngestionPipeline,
    can_view_data,
    can_view_metadata,
    filter_publications_for_summary,
    paginate,
    send_publication_notifications,
)
from ..services.access import DEFAULT_POLICY, Viewer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["publications"])

NotificationRunner = Callable[[UUID], Awaitable[Any]]


def get_notification_runner() -> NotificationRunner:
    return send_publication_notifications


NotificationRunnerDep = Annotated[NotificationRunner, Depends(get_notification_runner)]

STATUS_BY_OUTCOME = {
    IngestionStatus.SUCCESS: status.HTTP_201_CREATED,
    IngestionStatus.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    IngestionStatus.SYSTEM_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# =============================================================================
# INGESTION
# =============================================================================


@router.post(
    "/publication",
    response_model=BlobIngestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def ingest_publication(
    request: Request,
    session: SessionDep,
    publisher: PublisherDep,
    background_tasks: BackgroundTasks,
    notify: NotificationRunnerDep,
):
    """Ingest a court or tribunal list from a source system.

    Returns 201 when stored, 400 with field errors when the submission is
    invalid, and 500 when it could not be stored.
    """
    body = await request.body()
    try:
        data = json.loads(body) if body else {}
    except ValueError:
        logger.info(f"[blob-ingestion] Unparseable JSON body from client {publisher.sub}")
        data = {}
    if not isinstance(data, dict):
        data = {}

    submission = BlobIngestionRequest.model_validate(data)
    result = await IngestionPipeline(session).process_ingestion(submission, len(body))

    if result.success and not result.no_match:
        background_tasks.add_task(notify, result.artefact_id)

    return JSONResponse(
        status_code=STATUS_BY_OUTCOME[IngestionStatus(result.outcome)],
        content=result.model_dump(mode="json", exclude_none=True),
    )


# =============================================================================
# PUBLICATIONS
# =============================================================================


async def _list_types_by_id(session: AsyncSession) -> dict[int, ListType]:
    result = await session.execute(select(ListType))
    return {lt.id: lt for lt in result.scalars().all()}


def _candidate_filter(query: Select, viewer: Viewer, now: datetime) -> Select:
    """Narrow the listing query to rows the access check could accept."""
    role = viewer.role
    if role in DEFAULT_POLICY.full_access_roles or role in DEFAULT_POLICY.metadata_only_roles:
        return query

    query = query.where(Artefact.display_from <= now, Artefact.display_to >= now)
    if role not in DEFAULT_POLICY.verified_roles:
        query = query.where(Artefact.sensitivity == Sensitivity.PUBLIC)
    return query


@router.get("/publications", response_model=PublicationListResponse)
async def list_publications(
    session: SessionDep,
    viewer: ViewerDep,
    location_id: str | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
):
    """List publications the viewer may see, newest content first."""
    now = datetime.now(timezone.utc)
    query = select(Artefact).order_by(Artefact.content_date.desc(), Artefact.created_at.desc())
    if location_id:
        query = query.where(Artefact.location_id == location_id)
    query = _candidate_filter(query, viewer, now)

    artefacts = (await session.execute(query)).scalars().all()
    visible = filter_publications_for_summary(
        viewer, artefacts, await _list_types_by_id(session), now=now
    )

    pagination = paginate(page, len(visible), page_size)
    items = visible[pagination.offset:pagination.offset + page_size]

    return PublicationListResponse(
        items=[PublicationSummary.model_validate(a) for a in items],
        pagination=PaginationInfo(
            current_page=pagination.current_page,
            total_pages=pagination.total_pages,
            total_items=pagination.total_items,
            items_per_page=pagination.items_per_page,
            has_next=pagination.has_next,
            has_previous=pagination.has_previous,
            page_numbers=pagination.page_numbers,
            next_page=pagination.next_page,
            previous_page=pagination.previous_page,
        ),
    )


async def _get_artefact(session: AsyncSession, artefact_id: UUID) -> tuple[Artefact, ListType | None]:
    artefact = await session.get(Artefact, artefact_id)
    if not artefact:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Publication not found",
        )
    return artefact, await session.get(ListType, artefact.list_type_id)


@router.get("/publications/{artefact_id}", response_model=PublicationSummary)
async def get_publication(artefact_id: UUID, session: SessionDep, viewer: ViewerDep):
    """Get publication metadata."""
    artefact, list_type = await _get_artefact(session, artefact_id)
    if not can_view_metadata(viewer, artefact, list_type):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view this publication",
        )
    return PublicationSummary.model_validate(artefact)


@router.get("/publications/{artefact_id}/data", response_model=PublicationData)
async def get_publication_data(artefact_id: UUID, session: SessionDep, viewer: ViewerDep):
    """Get the stored list body."""
    artefact, list_type = await _get_artefact(session, artefact_id)
    if not can_view_data(viewer, artefact, list_type):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view this publication",
        )
    return PublicationData.model_validate(artefact)
