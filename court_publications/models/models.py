"""SQLAlchemy ORM Models for court publications.

Reference data (locations, list types) and users are owned by other
parts of the service and are only read here. Artefacts, ingestion logs,
subscriptions and notification logs are written by this package.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, utcnow


# =============================================================================
# ENUMS
# =============================================================================


class Sensitivity(str, PyEnum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    CLASSIFIED = "CLASSIFIED"


class Language(str, PyEnum):
    ENGLISH = "ENGLISH"
    WELSH = "WELSH"
    BILINGUAL = "BILINGUAL"


class Provenance(str, PyEnum):
    """Canonical source systems that publish lists."""
    XHIBIT = "XHIBIT"
    LIBRA = "LIBRA"
    SJP = "SJP"
    MANUAL_UPLOAD = "MANUAL_UPLOAD"
    SNL = "SNL"
    COMMON_PLATFORM = "COMMON_PLATFORM"


class IngestionStatus(str, PyEnum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SUCCESS = "SUCCESS"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class NotificationStatus(str, PyEnum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class UserRole(str, PyEnum):
    SYSTEM_ADMIN = "SYSTEM_ADMIN"
    INTERNAL_ADMIN_CTSC = "INTERNAL_ADMIN_CTSC"
    INTERNAL_ADMIN_LOCAL = "INTERNAL_ADMIN_LOCAL"
    VERIFIED = "VERIFIED"


class UserProvenance(str, PyEnum):
    """Identity provider a user signed in through."""
    SSO = "SSO"
    CFT_IDAM = "CFT_IDAM"
    B2C_IDAM = "B2C_IDAM"
    CRIME_IDAM = "CRIME_IDAM"


# =============================================================================
# REFERENCE DATA
# =============================================================================


class Location(Base):
    """Court or tribunal from the location reference data."""

    __tablename__ = "locations"

    location_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    welsh_name: Mapped[str | None] = mapped_column(String(255))


class ListType(Base):
    """Hearing list definition."""

    __tablename__ = "list_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    friendly_name: Mapped[str] = mapped_column(String(255), nullable=False)
    welsh_friendly_name: Mapped[str | None] = mapped_column(String(255))
    default_sensitivity: Mapped[Sensitivity] = mapped_column(
        Enum(Sensitivity, name="sensitivity"),
        default=Sensitivity.PUBLIC,
        nullable=False,
    )
    allowed_provenance: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        comment="Source systems allowed to publish this list type (empty = any)",
    )
    viewer_provenance: Mapped[str | None] = mapped_column(
        String(50),
        comment="Identity provider whose verified users may view CLASSIFIED data",
    )
    is_non_strategic: Mapped[bool] = mapped_column(Boolean, default=False)


class User(Base):
    """Service user. Managed by the account subsystem."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    email: Mapped[str | None] = mapped_column(String(255))
    first_name: Mapped[str | None] = mapped_column(String(255))
    surname: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[UserRole | None] = mapped_column(Enum(UserRole, name="user_role"))
    provenance: Mapped[UserProvenance | None] = mapped_column(
        Enum(UserProvenance, name="user_provenance")
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


# =============================================================================
# PUBLICATIONS
# =============================================================================


class Artefact(Base):
    """One published court or tribunal list."""

    __tablename__ = "artefacts"

    artefact_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    location_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="May reference a location unknown to reference data (see no_match)",
    )
    list_type_id: Mapped[int] = mapped_column(
        ForeignKey("list_types.id"), nullable=False
    )
    content_date: Mapped[date] = mapped_column(Date, nullable=False)
    sensitivity: Mapped[Sensitivity] = mapped_column(
        Enum(Sensitivity, name="sensitivity"), nullable=False
    )
    language: Mapped[Language] = mapped_column(
        Enum(Language, name="language"), nullable=False
    )
    display_from: Mapped[datetime] = mapped_column(nullable=False)
    display_to: Mapped[datetime] = mapped_column(nullable=False)
    provenance: Mapped[str] = mapped_column(String(50), nullable=False)
    is_flat_file: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    no_match: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSON)
    last_received_date: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    superseded_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("display_from <= display_to", name="display_window"),
        UniqueConstraint(
            "location_id",
            "list_type_id",
            "content_date",
            "language",
            name="uq_artefacts_publication_key",
        ),
        Index("idx_artefacts_location_content_date", "location_id", "content_date"),
    )


class IngestionLog(Base, UUIDMixin):
    """Append-only audit trail of ingestion attempts."""

    __tablename__ = "ingestion_logs"

    timestamp: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    source_system: Mapped[str] = mapped_column(String(100), nullable=False)
    court_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[IngestionStatus] = mapped_column(
        Enum(IngestionStatus, name="ingestion_status"), nullable=False
    )
    error_message: Mapped[str | None] = mapped_column(Text)
    artefact_id: Mapped[UUID | None] = mapped_column()

    __table_args__ = (
        CheckConstraint(
            "(status = 'SUCCESS' AND artefact_id IS NOT NULL) "
            "OR (status <> 'SUCCESS' AND artefact_id IS NULL)",
            name="artefact_iff_success",
        ),
        Index("idx_ingestion_logs_timestamp", "timestamp"),
    )


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================


class Subscription(Base, UUIDMixin):
    """A user's subscription to every list published for a location."""

    __tablename__ = "subscriptions"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    location_id: Mapped[int] = mapped_column(Integer, nullable=False)
    date_added: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "location_id", name="uq_subscriptions_user_location"),
        Index("idx_subscriptions_location", "location_id"),
    )


class SubscriptionListType(Base, UUIDMixin):
    """A user's subscription to a list type in one or more languages."""

    __tablename__ = "subscription_list_types"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    list_type_id: Mapped[int] = mapped_column(
        ForeignKey("list_types.id"), nullable=False
    )
    language: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    date_added: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "list_type_id", name="uq_subscription_list_types_user_list_type"),
        Index("idx_subscription_list_types_list_type", "list_type_id"),
    )


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class NotificationLog(Base, UUIDMixin):
    """One row per attempted delivery of a publication notification."""

    __tablename__ = "notification_logs"

    subscription_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("subscriptions.id", ondelete="CASCADE")
    )
    list_type_subscription_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("subscription_list_types.id", ondelete="CASCADE")
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    publication_id: Mapped[UUID] = mapped_column(
        ForeignKey("artefacts.artefact_id", ondelete="CASCADE"), nullable=False
    )
    location_id: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[NotificationStatus] = mapped_column(
        Enum(NotificationStatus, name="notification_status"),
        default=NotificationStatus.PENDING,
        nullable=False,
    )
    gov_notify_id: Mapped[str | None] = mapped_column(String(255))
    error_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column()
    failed_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        Index("idx_notification_logs_publication", "publication_id", "user_id"),
        Index("idx_notification_logs_status", "status"),
    )
