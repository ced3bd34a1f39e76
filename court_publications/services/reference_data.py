"""Read-only snapshot of locations and list types."""

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ListType, Location, Sensitivity


@dataclass(frozen=True)
class ListTypeRef:
    id: int
    name: str
    friendly_name: str
    welsh_friendly_name: str | None = None
    default_sensitivity: Sensitivity = Sensitivity.PUBLIC
    allowed_provenance: tuple[str, ...] = ()
    viewer_provenance: str | None = None

    @classmethod
    def from_model(cls, list_type: ListType) -> "ListTypeRef":
        return cls(
            id=list_type.id,
            name=list_type.name,
            friendly_name=list_type.friendly_name,
            welsh_friendly_name=list_type.welsh_friendly_name,
            default_sensitivity=list_type.default_sensitivity,
            allowed_provenance=tuple(list_type.allowed_provenance or ()),
            viewer_provenance=list_type.viewer_provenance,
        )


@dataclass(frozen=True)
class ReferenceData:
    location_names: dict[int, str] = field(default_factory=dict)
    list_types: dict[str, ListTypeRef] = field(default_factory=dict)

    def has_location(self, location_id: int) -> bool:
        return location_id in self.location_names

    def list_type_by_name(self, name: str) -> ListTypeRef | None:
        return self.list_types.get(name)


async def load_reference_data(session: AsyncSession) -> ReferenceData:
    """Take a snapshot of the current reference data."""
    locations = (await session.execute(select(Location))).scalars().all()
    list_types = (await session.execute(select(ListType))).scalars().all()

    return ReferenceData(
        location_names={loc.location_id: loc.name for loc in locations},
        list_types={lt.name: ListTypeRef.from_model(lt) for lt in list_types},
    )
