"""API routes for location and list-type subscriptions."""

from typing import Annotated, NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.dependencies import CurrentViewerDep, SessionDep
from ..schemas import (
    BulkDeleteResult,
    BulkSubscriptionResult,
    ListTypeSubscriptionCreate,
    ListTypeSubscriptionResponse,
    ListTypeSubscriptionUpdate,
    ReplaceSubscriptionsResult,
    SubscriptionBulkDelete,
    SubscriptionCreate,
    SubscriptionReplace,
    SubscriptionResponse,
)
from ..services import (
    DuplicateSubscriptionError,
    ListTypeSubscriptionService,
    SubscriptionError,
    SubscriptionNotFoundError,
    SubscriptionOwnershipError,
    SubscriptionService,
    UnknownUserError,
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])
list_type_router = APIRouter(prefix="/list-type-subscriptions", tags=["subscriptions"])


def get_subscription_service(session: SessionDep) -> SubscriptionService:
    return SubscriptionService(session)


def get_list_type_subscription_service(session: SessionDep) -> ListTypeSubscriptionService:
    return ListTypeSubscriptionService(session)


SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
ListTypeSubscriptionServiceDep = Annotated[
    ListTypeSubscriptionService, Depends(get_list_type_subscription_service)
]


def _raise_http(e: SubscriptionError) -> NoReturn:
    """Translate a subscription error into an HTTP error."""
    if isinstance(e, (SubscriptionNotFoundError, UnknownUserError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, SubscriptionOwnershipError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(e, DuplicateSubscriptionError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    raise HTTPException(status_code=code, detail=str(e))


# =============================================================================
# LOCATION SUBSCRIPTIONS
# =============================================================================


@router.get("", response_model=list[SubscriptionResponse])
async def list_subscriptions(viewer: CurrentViewerDep, service: SubscriptionServiceDep):
    return await service.list_subscriptions(viewer.user_id)


@router.post("", response_model=BulkSubscriptionResult)
async def create_subscriptions(
    data: SubscriptionCreate,
    viewer: CurrentViewerDep,
    service: SubscriptionServiceDep,
):
    """Subscribe to several locations. Each is attempted independently."""
    try:
        result = await service.create_multiple_subscriptions(viewer.user_id, data.location_ids)
    except SubscriptionError as e:
        _raise_http(e)
    return BulkSubscriptionResult(
        succeeded=result.succeeded,
        failed=result.failed,
        errors=result.errors,
    )


@router.put("", response_model=ReplaceSubscriptionsResult)
async def replace_subscriptions(
    data: SubscriptionReplace,
    viewer: CurrentViewerDep,
    service: SubscriptionServiceDep,
):
    try:
        result = await service.replace_user_subscriptions(viewer.user_id, data.location_ids)
    except SubscriptionError as e:
        _raise_http(e)
    return ReplaceSubscriptionsResult(added=result.added, removed=result.removed)


@router.post("/bulk-delete", response_model=BulkDeleteResult)
async def bulk_delete_subscriptions(
    data: SubscriptionBulkDelete,
    viewer: CurrentViewerDep,
    service: SubscriptionServiceDep,
):
    try:
        deleted = await service.delete_subscriptions_by_ids(viewer.user_id, data.subscription_ids)
    except SubscriptionError as e:
        _raise_http(e)
    return BulkDeleteResult(deleted=deleted)


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: UUID,
    viewer: CurrentViewerDep,
    service: SubscriptionServiceDep,
):
    try:
        await service.remove_subscription(viewer.user_id, subscription_id)
    except SubscriptionError as e:
        _raise_http(e)


# =============================================================================
# LIST TYPE SUBSCRIPTIONS
# =============================================================================


@list_type_router.get("", response_model=list[ListTypeSubscriptionResponse])
async def list_list_type_subscriptions(
    viewer: CurrentViewerDep,
    service: ListTypeSubscriptionServiceDep,
):
    return await service.list_subscriptions(viewer.user_id)


@list_type_router.post(
    "",
    response_model=list[ListTypeSubscriptionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_list_type_subscriptions(
    data: ListTypeSubscriptionCreate,
    viewer: CurrentViewerDep,
    service: ListTypeSubscriptionServiceDep,
):
    try:
        return await service.create_list_type_subscriptions(
            viewer.user_id, data.list_type_ids, data.language
        )
    except SubscriptionError as e:
        _raise_http(e)


@list_type_router.put("/{list_type_id}", response_model=ListTypeSubscriptionResponse)
async def update_list_type_subscription(
    list_type_id: int,
    data: ListTypeSubscriptionUpdate,
    viewer: CurrentViewerDep,
    service: ListTypeSubscriptionServiceDep,
):
    try:
        return await service.update_language(viewer.user_id, list_type_id, data.language)
    except SubscriptionError as e:
        _raise_http(e)


@list_type_router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_list_type_subscription(
    subscription_id: UUID,
    viewer: CurrentViewerDep,
    service: ListTypeSubscriptionServiceDep,
):
    try:
        await service.delete_list_type_subscription(viewer.user_id, subscription_id)
    except SubscriptionError as e:
        _raise_http(e)
