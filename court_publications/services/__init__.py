"""Business logic services for court publications."""

from .access import (
    ANONYMOUS,
    AccessPolicy,
    Viewer,
    can_view_data,
    can_view_metadata,
    filter_accessible_publications,
    filter_publications_for_summary,
)
from .ingestion import IngestionPipeline
from .ingestion_validator import FieldError, ValidationResult, validate_submission
from .list_type_subscriptions import ListTypeSubscriptionService, language_matches
from .notification_dispatcher import DispatchResult, NotificationDispatcher
from .notification_service import (
    InvalidStatusTransitionError,
    NotificationSummary,
    PublicationNotificationService,
    send_publication_notifications,
)
from .notification_templates import is_pdf_under_limit, select_template
from .notify_client import CachedToken, GovNotifyClient, NotifyClientError
from .pagination import Pagination, paginate
from .reference_data import ReferenceData, load_reference_data
from .subscriptions import (
    BulkCreateResult,
    DuplicateSubscriptionError,
    InvalidListTypeError,
    InvalidLocationError,
    Recipient,
    ReplaceResult,
    SubscriptionError,
    SubscriptionLimitError,
    SubscriptionNotFoundError,
    SubscriptionOwnershipError,
    SubscriptionService,
    UnknownUserError,
)

__all__ = [
    # Access
    "ANONYMOUS",
    "AccessPolicy",
    "Viewer",
    "can_view_data",
    "can_view_metadata",
    "filter_accessible_publications",
    "filter_publications_for_summary",
    # Ingestion
    "IngestionPipeline",
    "FieldError",
    "ValidationResult",
    "validate_submission",
    "ReferenceData",
    "load_reference_data",
    # Pagination
    "Pagination",
    "paginate",
    # Subscriptions
    "SubscriptionService",
    "ListTypeSubscriptionService",
    "language_matches",
    "Recipient",
    "BulkCreateResult",
    "ReplaceResult",
    "SubscriptionError",
    "UnknownUserError",
    "InvalidLocationError",
    "InvalidListTypeError",
    "DuplicateSubscriptionError",
    "SubscriptionLimitError",
    "SubscriptionNotFoundError",
    "SubscriptionOwnershipError",
    # Notifications
    "PublicationNotificationService",
    "NotificationSummary",
    "InvalidStatusTransitionError",
    "send_publication_notifications",
    "NotificationDispatcher",
    "DispatchResult",
    "select_template",
    "is_pdf_under_limit",
    "GovNotifyClient",
    "CachedToken",
    "NotifyClientError",
]
