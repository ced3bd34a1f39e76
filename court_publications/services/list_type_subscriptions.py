"""List-type subscriptions with a language preference."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..models import Language, ListType, SubscriptionListType, User
from .subscriptions import (
    InvalidListTypeError,
    Recipient,
    SubscriptionError,
    SubscriptionLimitError,
    SubscriptionNotFoundError,
    dedupe,
    lock_user,
)

logger = logging.getLogger(__name__)

SINGLE_LANGUAGES = frozenset({Language.ENGLISH.value, Language.WELSH.value})


def language_matches(subscribed: list[str], artefact_language: Language | str) -> bool:
    """Whether a subscription's language set covers an artefact's language.

    Single-language artefacts need the language in the set. Bilingual
    artefacts match a subscriber registered for either language.
    """
    language = artefact_language.value if isinstance(artefact_language, Language) else artefact_language
    languages = set(subscribed or ())
    if language == Language.BILINGUAL.value:
        return bool(languages & (SINGLE_LANGUAGES | {Language.BILINGUAL.value}))
    return language in languages


class ListTypeSubscriptionService:
    """Subscribe users to list types regardless of location."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def _existing(self, user_id: UUID) -> dict[int, SubscriptionListType]:
        result = await self.session.execute(
            select(SubscriptionListType).where(SubscriptionListType.user_id == user_id)
        )
        return {sub.list_type_id: sub for sub in result.scalars().all()}

    async def create_list_type_subscriptions(
        self,
        user_id: UUID,
        list_type_ids: list[int],
        languages: list[str],
    ) -> list[SubscriptionListType]:
        """Subscribe to each list type, updating the language of existing ones.

        The whole batch succeeds or fails together.
        """
        if not languages:
            raise SubscriptionError("At least one language is required")
        languages = dedupe(languages)

        await lock_user(self.session, user_id)
        ids = dedupe(list_type_ids)

        result = await self.session.execute(select(ListType.id).where(ListType.id.in_(ids)))
        known = set(result.scalars().all())
        unknown = [i for i in ids if i not in known]
        if unknown:
            raise InvalidListTypeError(f"Invalid list type ID: {unknown[0]}")

        existing = await self._existing(user_id)
        new_ids = [i for i in ids if i not in existing]
        max_subscriptions = self.settings.max_subscriptions
        if len(existing) + len(new_ids) > max_subscriptions:
            raise SubscriptionLimitError(
                f"Maximum {max_subscriptions} list type subscriptions allowed"
            )

        subscriptions = []
        for list_type_id in ids:
            sub = existing.get(list_type_id)
            if sub:
                sub.language = list(languages)
            else:
                sub = SubscriptionListType(
                    user_id=user_id,
                    list_type_id=list_type_id,
                    language=list(languages),
                )
                self.session.add(sub)
            subscriptions.append(sub)

        await self.session.flush()
        logger.info(
            f"[subscriptions] User {user_id} subscribed to {len(new_ids)} new list type(s), "
            f"{len(ids) - len(new_ids)} updated"
        )
        return subscriptions

    async def update_language(
        self,
        user_id: UUID,
        list_type_id: int,
        languages: list[str],
    ) -> SubscriptionListType:
        if not languages:
            raise SubscriptionError("At least one language is required")

        result = await self.session.execute(
            select(SubscriptionListType).where(
                SubscriptionListType.user_id == user_id,
                SubscriptionListType.list_type_id == list_type_id,
            )
        )
        sub = result.scalar_one_or_none()
        if not sub:
            raise SubscriptionNotFoundError("Subscription not found")

        sub.language = dedupe(languages)
        await self.session.flush()
        return sub

    async def delete_list_type_subscription(self, user_id: UUID, subscription_id: UUID) -> None:
        result = await self.session.execute(
            select(SubscriptionListType).where(
                SubscriptionListType.id == subscription_id,
                SubscriptionListType.user_id == user_id,
            )
        )
        sub = result.scalar_one_or_none()
        if not sub:
            raise SubscriptionNotFoundError("Subscription not found")

        await self.session.delete(sub)
        await self.session.flush()

    async def list_subscriptions(self, user_id: UUID) -> list[SubscriptionListType]:
        result = await self.session.execute(
            select(SubscriptionListType)
            .where(SubscriptionListType.user_id == user_id)
            .order_by(SubscriptionListType.date_added.desc())
        )
        return list(result.scalars().all())

    async def find_recipients_for_list_type(
        self,
        list_type_id: int,
        language: Language | str,
    ) -> list[Recipient]:
        """Users subscribed to a list type whose language set covers the artefact."""
        result = await self.session.execute(
            select(SubscriptionListType, User)
            .join(User, SubscriptionListType.user_id == User.id)
            .where(SubscriptionListType.list_type_id == list_type_id)
        )
        return [
            Recipient(
                user_id=user.id,
                email=user.email,
                first_name=user.first_name,
                surname=user.surname,
                list_type_subscription_id=sub.id,
            )
            for sub, user in result.all()
            if language_matches(sub.language, language)
        ]
