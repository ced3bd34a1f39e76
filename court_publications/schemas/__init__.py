"""Pydantic schemas for API request/response validation."""

from .base import ApiBaseModel, ErrorDetail, ErrorResponse
from .ingestion import BlobIngestionRequest, BlobIngestionResponse
from .publications import (
    PaginationInfo,
    PublicationData,
    PublicationListResponse,
    PublicationSummary,
)
from .subscriptions import (
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

__all__ = [
    # Base
    "ApiBaseModel",
    "ErrorDetail",
    "ErrorResponse",
    # Ingestion
    "BlobIngestionRequest",
    "BlobIngestionResponse",
    # Publications
    "PublicationSummary",
    "PublicationData",
    "PaginationInfo",
    "PublicationListResponse",
    # Subscriptions
    "SubscriptionCreate",
    "SubscriptionReplace",
    "SubscriptionBulkDelete",
    "SubscriptionResponse",
    "BulkSubscriptionResult",
    "ReplaceSubscriptionsResult",
    "BulkDeleteResult",
    "ListTypeSubscriptionCreate",
    "ListTypeSubscriptionUpdate",
    "ListTypeSubscriptionResponse",
]
