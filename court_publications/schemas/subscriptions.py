"""Schemas for location and list-type subscriptions."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field, field_validator

from .base import ApiBaseModel

SubscriptionLanguage = Literal["ENGLISH", "WELSH"]


# =============================================================================
# LOCATION SUBSCRIPTIONS
# =============================================================================


class SubscriptionCreate(ApiBaseModel):
    """Subscribe to one or more locations."""

    location_ids: list[int] = Field(..., min_length=1)


class SubscriptionReplace(ApiBaseModel):
    """Replace the full set of subscribed locations."""

    location_ids: list[int] = Field(default_factory=list)


class SubscriptionBulkDelete(ApiBaseModel):
    subscription_ids: list[UUID] = Field(default_factory=list)


class SubscriptionResponse(ApiBaseModel):
    id: UUID
    location_id: int
    date_added: datetime


class BulkSubscriptionResult(ApiBaseModel):
    succeeded: int
    failed: int
    errors: list[str] = []


class ReplaceSubscriptionsResult(ApiBaseModel):
    added: int
    removed: int


class BulkDeleteResult(ApiBaseModel):
    deleted: int


# =============================================================================
# LIST TYPE SUBSCRIPTIONS
# =============================================================================


class ListTypeSubscriptionCreate(ApiBaseModel):
    """Subscribe to one or more list types in the given languages."""

    list_type_ids: list[int] = Field(..., min_length=1)
    language: list[SubscriptionLanguage] = Field(..., min_length=1)

    @field_validator("language")
    @classmethod
    def dedupe_language(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))


class ListTypeSubscriptionUpdate(ApiBaseModel):
    language: list[SubscriptionLanguage] = Field(..., min_length=1)

    @field_validator("language")
    @classmethod
    def dedupe_language(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))


class ListTypeSubscriptionResponse(ApiBaseModel):
    id: UUID
    list_type_id: int
    language: list[str]
    date_added: datetime
