"""SQLAlchemy ORM Models for court publications."""

from .base import Base, UUIDMixin
from .models import (
    # Enums
    IngestionStatus,
    Language,
    NotificationStatus,
    Provenance,
    Sensitivity,
    UserProvenance,
    UserRole,
    # Reference data
    ListType,
    Location,
    User,
    # Publications
    Artefact,
    IngestionLog,
    # Subscriptions
    Subscription,
    SubscriptionListType,
    # Notifications
    NotificationLog,
)

__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    # Enums
    "Sensitivity",
    "Language",
    "Provenance",
    "IngestionStatus",
    "NotificationStatus",
    "UserRole",
    "UserProvenance",
    # Reference data
    "Location",
    "ListType",
    "User",
    # Publications
    "Artefact",
    "IngestionLog",
    # Subscriptions
    "Subscription",
    "SubscriptionListType",
    # Notifications
    "NotificationLog",
]
