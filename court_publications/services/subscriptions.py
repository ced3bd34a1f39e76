"""
Location subscriptions.

Users subscribe to courts and tribunals to be emailed when a list is
published there. Each batch of changes runs in one transaction that
first locks the user's row, so the per-user cap and the duplicate check
hold even when the same user submits twice concurrently.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..models import Location, Subscription, User

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class SubscriptionError(Exception):
    """Base exception for subscription operations."""

    pass


class UnknownUserError(SubscriptionError):
    pass


class InvalidLocationError(SubscriptionError):
    pass


class InvalidListTypeError(SubscriptionError):
    pass


class DuplicateSubscriptionError(SubscriptionError):
    pass


class SubscriptionLimitError(SubscriptionError):
    pass


class SubscriptionNotFoundError(SubscriptionError):
    pass


class SubscriptionOwnershipError(SubscriptionError):
    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class Recipient:
    """A user to notify about a publication, and the subscription that matched."""

    user_id: UUID
    email: str | None
    first_name: str | None = None
    surname: str | None = None
    subscription_id: UUID | None = None
    list_type_subscription_id: UUID | None = None


@dataclass
class BulkCreateResult:
    succeeded: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class ReplaceResult:
    added: int
    removed: int


def dedupe(values: Iterable) -> list:
    return list(dict.fromkeys(values))


def user_lock_statement(user_id: UUID) -> Select:
    return select(User).where(User.id == user_id).with_for_update()


async def lock_user(session: AsyncSession, user_id: UUID) -> User:
    """Lock the user's row for the rest of the transaction.

    Concurrent batches for one user queue on this lock, so the cap check
    always sees the other batch's rows.
    """
    result = await session.execute(user_lock_statement(user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UnknownUserError("User not found")
    return user


# =============================================================================
# SERVICE
# =============================================================================


class SubscriptionService:
    """Create, replace and remove a user's location subscriptions."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    @property
    def max_subscriptions(self) -> int:
        return self.settings.max_subscriptions

    async def _location_exists(self, location_id: int) -> bool:
        result = await self.session.execute(
            select(Location.location_id).where(Location.location_id == location_id)
        )
        return result.scalar_one_or_none() is not None

    async def _count(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Subscription).where(Subscription.user_id == user_id)
        )
        return result.scalar_one()

    async def _existing_location_ids(self, user_id: UUID) -> dict[int, Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.user_id == user_id)
        )
        return {sub.location_id: sub for sub in result.scalars().all()}

    async def _create_locked(
        self,
        user_id: UUID,
        location_id: int,
        existing: dict[int, Subscription],
    ) -> Subscription:
        """Create one subscription. Caller holds the user lock."""
        if not await self._location_exists(location_id):
            raise InvalidLocationError("Invalid location ID")

        if location_id in existing:
            raise DuplicateSubscriptionError("You are already subscribed to this court")

        if len(existing) >= self.max_subscriptions:
            raise SubscriptionLimitError(f"Maximum {self.max_subscriptions} subscriptions allowed")

        subscription = Subscription(user_id=user_id, location_id=location_id)
        self.session.add(subscription)
        await self.session.flush()
        existing[location_id] = subscription
        return subscription

    async def create_subscription(self, user_id: UUID, location_id: int) -> Subscription:
        await lock_user(self.session, user_id)
        existing = await self._existing_location_ids(user_id)
        subscription = await self._create_locked(user_id, location_id, existing)
        logger.info(f"[subscriptions] User {user_id} subscribed to location {location_id}")
        return subscription

    async def create_multiple_subscriptions(
        self,
        user_id: UUID,
        location_ids: list[int],
    ) -> BulkCreateResult:
        """Attempt each location independently; one failure does not abort the rest."""
        await lock_user(self.session, user_id)
        existing = await self._existing_location_ids(user_id)
        result = BulkCreateResult()

        for location_id in dedupe(location_ids):
            try:
                await self._create_locked(user_id, location_id, existing)
                result.succeeded += 1
            except SubscriptionError as e:
                result.failed += 1
                result.errors.append(str(e))

        logger.info(
            f"[subscriptions] Bulk create for user {user_id}: "
            f"{result.succeeded} succeeded, {result.failed} failed"
        )
        return result

    async def replace_user_subscriptions(
        self,
        user_id: UUID,
        location_ids: list[int],
    ) -> ReplaceResult:
        """Make the user's subscriptions exactly the given set of locations."""
        await lock_user(self.session, user_id)
        existing = await self._existing_location_ids(user_id)
        wanted = dedupe(location_ids)
        wanted_set = set(wanted)

        to_delete = [sub for loc, sub in existing.items() if loc not in wanted_set]
        to_add = [loc for loc in wanted if loc not in existing]

        if to_add:
            remaining = len(existing) - len(to_delete)
            if remaining + len(to_add) > self.max_subscriptions:
                raise SubscriptionLimitError(f"Maximum {self.max_subscriptions} subscriptions allowed")

        # Validate everything before mutating anything
        for location_id in to_add:
            if not await self._location_exists(location_id):
                raise InvalidLocationError(f"Invalid location ID: {location_id}")

        for sub in to_delete:
            await self.session.delete(sub)
        for location_id in to_add:
            self.session.add(Subscription(user_id=user_id, location_id=location_id))
        await self.session.flush()

        return ReplaceResult(added=len(to_add), removed=len(to_delete))

    async def remove_subscription(self, user_id: UUID, subscription_id: UUID) -> None:
        result = await self.session.execute(
            select(Subscription).where(
                Subscription.id == subscription_id,
                Subscription.user_id == user_id,
            )
        )
        subscription = result.scalar_one_or_none()
        if not subscription:
            raise SubscriptionNotFoundError("Subscription not found")

        await self.session.delete(subscription)
        await self.session.flush()

    async def delete_subscriptions_by_ids(
        self,
        user_id: UUID,
        subscription_ids: list[UUID],
    ) -> int:
        """Delete several subscriptions; all must belong to the user or none are deleted."""
        if not subscription_ids:
            raise SubscriptionError("No subscriptions provided for deletion")

        ids = dedupe(subscription_ids)
        result = await self.session.execute(
            select(func.count()).select_from(Subscription).where(
                Subscription.id.in_(ids),
                Subscription.user_id == user_id,
            )
        )
        if result.scalar_one() != len(ids):
            raise SubscriptionOwnershipError(
                "Unauthorized: User does not own all selected subscriptions"
            )

        await self.session.execute(
            delete(Subscription).where(
                Subscription.id.in_(ids),
                Subscription.user_id == user_id,
            )
        )
        return len(ids)

    async def list_subscriptions(self, user_id: UUID) -> list[Subscription]:
        result = await self.session.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.date_added.desc())
        )
        return list(result.scalars().all())

    async def find_recipients_for_location(self, location_id: int) -> list[Recipient]:
        """Users subscribed to a location."""
        result = await self.session.execute(
            select(Subscription, User)
            .join(User, Subscription.user_id == User.id)
            .where(Subscription.location_id == location_id)
        )
        return [
            Recipient(
                user_id=user.id,
                email=user.email,
                first_name=user.first_name,
                surname=user.surname,
                subscription_id=sub.id,
            )
            for sub, user in result.all()
        ]
