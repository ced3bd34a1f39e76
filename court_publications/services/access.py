"""
Publication access decisions.

Answers two questions for a viewer and an artefact:

- may the viewer see the artefact's metadata (that it exists, its court,
  list type, dates)?
- may the viewer see the underlying list data?

Both are pure functions over an explicit Viewer value, the artefact and
its list type. Nothing here reads request or session state, and nothing
raises: callers turn ``False`` into a 403 at the HTTP boundary.

Decision table (admin roles are exempt from the display window):

    SYSTEM_ADMIN                      metadata: yes   data: yes
    INTERNAL_ADMIN_LOCAL / _CTSC      metadata: yes   data: PUBLIC only
    anyone else, outside the window   metadata: no    data: no
    PUBLIC, inside the window         metadata: yes   data: yes
    VERIFIED, PRIVATE                 metadata: yes   data: yes
    VERIFIED, CLASSIFIED              metadata: yes   data: provenance match
    no role, non-PUBLIC               metadata: no    data: no
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol, TypeVar
from uuid import UUID

from ..models import Sensitivity, UserProvenance, UserRole


class PublicationLike(Protocol):
    sensitivity: Any
    display_from: datetime
    display_to: datetime
    list_type_id: int


class ListTypeLike(Protocol):
    viewer_provenance: str | None


T = TypeVar("T", bound=PublicationLike)


@dataclass(frozen=True)
class Viewer:
    """Who is asking. An empty Viewer is an anonymous member of the public."""

    user_id: UUID | None = None
    role: UserRole | None = None
    provenance: UserProvenance | str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def from_claims(
        cls,
        user_id: UUID | None,
        role: str | None,
        provenance: str | None,
    ) -> "Viewer":
        """Build a viewer from token claims. Unknown roles are dropped."""
        try:
            parsed_role = UserRole(role) if role else None
        except ValueError:
            parsed_role = None
        return cls(user_id=user_id, role=parsed_role, provenance=provenance)


ANONYMOUS = Viewer()


@dataclass(frozen=True)
class AccessPolicy:
    """Which roles fall in which row of the decision table."""

    full_access_roles: frozenset[UserRole] = field(
        default_factory=lambda: frozenset({UserRole.SYSTEM_ADMIN})
    )
    metadata_only_roles: frozenset[UserRole] = field(
        default_factory=lambda: frozenset(
            {UserRole.INTERNAL_ADMIN_CTSC, UserRole.INTERNAL_ADMIN_LOCAL}
        )
    )
    verified_roles: frozenset[UserRole] = field(
        default_factory=lambda: frozenset({UserRole.VERIFIED})
    )


DEFAULT_POLICY = AccessPolicy()


def _value(item: Any) -> Any:
    return item.value if isinstance(item, Enum) else item


def resolve_sensitivity(value: Any) -> Sensitivity:
    """Normalise a stored sensitivity. Missing or unknown values fail closed."""
    if isinstance(value, Sensitivity):
        return value
    try:
        return Sensitivity(value)
    except ValueError:
        return Sensitivity.CLASSIFIED


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_within_display_window(artefact: PublicationLike, now: datetime | None = None) -> bool:
    """Check the inclusive [display_from, display_to] window."""
    now = _as_utc(now or datetime.now(timezone.utc))
    return _as_utc(artefact.display_from) <= now <= _as_utc(artefact.display_to)


def can_view_metadata(
    viewer: Viewer,
    artefact: PublicationLike,
    list_type: ListTypeLike | None = None,
    *,
    now: datetime | None = None,
    policy: AccessPolicy = DEFAULT_POLICY,
) -> bool:
    role = viewer.role
    if role in policy.full_access_roles or role in policy.metadata_only_roles:
        return True

    if not is_within_display_window(artefact, now):
        return False

    if resolve_sensitivity(artefact.sensitivity) == Sensitivity.PUBLIC:
        return True

    return role in policy.verified_roles


def can_view_data(
    viewer: Viewer,
    artefact: PublicationLike,
    list_type: ListTypeLike | None = None,
    *,
    now: datetime | None = None,
    policy: AccessPolicy = DEFAULT_POLICY,
) -> bool:
    """Data access implies metadata access; the converse does not hold."""
    role = viewer.role
    sensitivity = resolve_sensitivity(artefact.sensitivity)

    if role in policy.full_access_roles:
        return True

    if role in policy.metadata_only_roles:
        return sensitivity == Sensitivity.PUBLIC

    if not is_within_display_window(artefact, now):
        return False

    if sensitivity == Sensitivity.PUBLIC:
        return True

    if role not in policy.verified_roles:
        return False

    if sensitivity == Sensitivity.PRIVATE:
        return True

    # CLASSIFIED: the viewer must come from the list type's identity provider
    if list_type is None or not list_type.viewer_provenance:
        return False
    return _value(viewer.provenance) == list_type.viewer_provenance


def filter_accessible_publications(
    viewer: Viewer,
    artefacts: Iterable[T],
    list_types: Mapping[int, ListTypeLike],
    *,
    now: datetime | None = None,
    policy: AccessPolicy = DEFAULT_POLICY,
) -> list[T]:
    """Keep only artefacts whose data the viewer may read."""
    return [
        artefact
        for artefact in artefacts
        if can_view_data(
            viewer,
            artefact,
            list_types.get(artefact.list_type_id),
            now=now,
            policy=policy,
        )
    ]


def filter_publications_for_summary(
    viewer: Viewer,
    artefacts: Iterable[T],
    list_types: Mapping[int, ListTypeLike],
    *,
    now: datetime | None = None,
    policy: AccessPolicy = DEFAULT_POLICY,
) -> list[T]:
    """Keep only artefacts the viewer may see listed."""
    return [
        artefact
        for artefact in artefacts
        if can_view_metadata(
            viewer,
            artefact,
            list_types.get(artefact.list_type_id),
            now=now,
            policy=policy,
        )
    ]
