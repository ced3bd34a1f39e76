"""
Tests for publication access decisions.

Access is decided from an explicit Viewer, so these use plain objects
for artefacts and list types.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from court_publications.models import Sensitivity, UserProvenance, UserRole
from court_publications.services.access import (
    ANONYMOUS,
    Viewer,
    can_view_data,
    can_view_metadata,
    filter_accessible_publications,
    filter_publications_for_summary,
    resolve_sensitivity,
)

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeArtefact:
    sensitivity: object
    display_from: datetime = NOW - timedelta(days=1)
    display_to: datetime = NOW + timedelta(days=1)
    list_type_id: int = 8


@dataclass
class FakeListType:
    viewer_provenance: str | None = UserProvenance.CFT_IDAM.value


def viewer(role=None, provenance=None) -> Viewer:
    return Viewer(user_id=uuid4(), role=role, provenance=provenance)


SYSTEM_ADMIN = viewer(UserRole.SYSTEM_ADMIN, UserProvenance.SSO)
LOCAL_ADMIN = viewer(UserRole.INTERNAL_ADMIN_LOCAL, UserProvenance.SSO)
CTSC_ADMIN = viewer(UserRole.INTERNAL_ADMIN_CTSC, UserProvenance.SSO)
VERIFIED_CFT = viewer(UserRole.VERIFIED, UserProvenance.CFT_IDAM)
VERIFIED_B2C = viewer(UserRole.VERIFIED, UserProvenance.B2C_IDAM)
NO_ROLE = viewer()

EXPIRED = dict(display_from=NOW - timedelta(days=3), display_to=NOW - timedelta(days=2))


# =============================================================================
# TEST: DECISION TABLE
# =============================================================================


class TestMetadataAccess:
    """Who may see that a publication exists."""

    @pytest.mark.parametrize("sensitivity", list(Sensitivity))
    @pytest.mark.parametrize("admin", [SYSTEM_ADMIN, LOCAL_ADMIN, CTSC_ADMIN])
    def test_admins_see_all_metadata_even_outside_window(self, admin, sensitivity):
        artefact = FakeArtefact(sensitivity, **EXPIRED)

        assert can_view_metadata(admin, artefact, FakeListType(), now=NOW) is True

    def test_public_visible_to_anonymous(self):
        artefact = FakeArtefact(Sensitivity.PUBLIC)

        assert can_view_metadata(ANONYMOUS, artefact, now=NOW) is True

    @pytest.mark.parametrize("sensitivity", [Sensitivity.PRIVATE, Sensitivity.CLASSIFIED])
    def test_non_public_hidden_from_viewers_without_role(self, sensitivity):
        artefact = FakeArtefact(sensitivity)

        assert can_view_metadata(ANONYMOUS, artefact, now=NOW) is False
        assert can_view_metadata(NO_ROLE, artefact, now=NOW) is False

    @pytest.mark.parametrize("sensitivity", [Sensitivity.PRIVATE, Sensitivity.CLASSIFIED])
    def test_verified_sees_non_public_metadata(self, sensitivity):
        artefact = FakeArtefact(sensitivity)

        assert can_view_metadata(VERIFIED_B2C, artefact, FakeListType(), now=NOW) is True

    def test_outside_window_hidden_from_public(self):
        artefact = FakeArtefact(Sensitivity.PUBLIC, **EXPIRED)

        assert can_view_metadata(ANONYMOUS, artefact, now=NOW) is False
        assert can_view_metadata(VERIFIED_CFT, artefact, now=NOW) is False

    def test_window_bounds_are_inclusive(self):
        artefact = FakeArtefact(Sensitivity.PUBLIC, display_from=NOW, display_to=NOW)

        assert can_view_metadata(ANONYMOUS, artefact, now=NOW) is True


class TestDataAccess:
    """Who may read the list itself."""

    @pytest.mark.parametrize("sensitivity", list(Sensitivity))
    def test_system_admin_reads_everything(self, sensitivity):
        artefact = FakeArtefact(sensitivity, **EXPIRED)

        assert can_view_data(SYSTEM_ADMIN, artefact, FakeListType(), now=NOW) is True

    @pytest.mark.parametrize("admin", [LOCAL_ADMIN, CTSC_ADMIN])
    def test_internal_admins_read_public_only(self, admin):
        list_type = FakeListType()

        assert can_view_data(admin, FakeArtefact(Sensitivity.PUBLIC), list_type, now=NOW) is True
        assert can_view_data(admin, FakeArtefact(Sensitivity.PRIVATE), list_type, now=NOW) is False
        assert can_view_data(admin, FakeArtefact(Sensitivity.CLASSIFIED), list_type, now=NOW) is False

    def test_public_data_readable_by_anyone_in_window(self):
        artefact = FakeArtefact(Sensitivity.PUBLIC)

        assert can_view_data(ANONYMOUS, artefact, now=NOW) is True
        assert can_view_data(ANONYMOUS, FakeArtefact(Sensitivity.PUBLIC, **EXPIRED), now=NOW) is False

    def test_private_data_needs_verified_role(self):
        artefact = FakeArtefact(Sensitivity.PRIVATE)

        assert can_view_data(VERIFIED_B2C, artefact, now=NOW) is True
        assert can_view_data(NO_ROLE, artefact, now=NOW) is False
        assert can_view_data(ANONYMOUS, artefact, now=NOW) is False

    def test_classified_data_needs_matching_provenance(self):
        artefact = FakeArtefact(Sensitivity.CLASSIFIED)
        list_type = FakeListType(viewer_provenance=UserProvenance.CFT_IDAM.value)

        assert can_view_data(VERIFIED_CFT, artefact, list_type, now=NOW) is True
        assert can_view_data(VERIFIED_B2C, artefact, list_type, now=NOW) is False

    def test_classified_without_list_type_is_denied(self):
        artefact = FakeArtefact(Sensitivity.CLASSIFIED)

        assert can_view_data(VERIFIED_CFT, artefact, None, now=NOW) is False
        assert can_view_data(VERIFIED_CFT, artefact, FakeListType(None), now=NOW) is False

    def test_string_provenance_matches(self):
        artefact = FakeArtefact(Sensitivity.CLASSIFIED)
        cft_viewer = Viewer(user_id=uuid4(), role=UserRole.VERIFIED, provenance="CFT_IDAM")

        assert can_view_data(cft_viewer, artefact, FakeListType(), now=NOW) is True

    @pytest.mark.parametrize("sensitivity", list(Sensitivity))
    @pytest.mark.parametrize(
        "who",
        [ANONYMOUS, NO_ROLE, VERIFIED_B2C, VERIFIED_CFT, LOCAL_ADMIN, CTSC_ADMIN, SYSTEM_ADMIN],
    )
    def test_data_access_implies_metadata_access(self, who, sensitivity):
        for artefact in (FakeArtefact(sensitivity), FakeArtefact(sensitivity, **EXPIRED)):
            if can_view_data(who, artefact, FakeListType(), now=NOW):
                assert can_view_metadata(who, artefact, FakeListType(), now=NOW)


# =============================================================================
# TEST: SENSITIVITY AND VIEWERS
# =============================================================================


class TestSensitivityResolution:
    def test_unknown_sensitivity_fails_closed(self):
        assert resolve_sensitivity("TOP_SECRET") == Sensitivity.CLASSIFIED
        assert resolve_sensitivity(None) == Sensitivity.CLASSIFIED

    def test_string_values_resolve(self):
        assert resolve_sensitivity("PUBLIC") == Sensitivity.PUBLIC

    def test_unknown_sensitivity_hidden_from_public(self):
        artefact = FakeArtefact("TOP_SECRET")

        assert can_view_metadata(ANONYMOUS, artefact, now=NOW) is False
        assert can_view_data(VERIFIED_B2C, artefact, FakeListType(), now=NOW) is False


class TestViewerFromClaims:
    def test_known_role_is_parsed(self):
        result = Viewer.from_claims(uuid4(), "VERIFIED", "CFT_IDAM")

        assert result.role == UserRole.VERIFIED
        assert result.is_authenticated is True

    def test_unknown_role_is_dropped(self):
        result = Viewer.from_claims(uuid4(), "SUPER_USER", None)

        assert result.role is None

    def test_anonymous_is_not_authenticated(self):
        assert ANONYMOUS.is_authenticated is False


# =============================================================================
# TEST: FILTERING
# =============================================================================


class TestFiltering:
    def test_filters_keep_order(self):
        public = FakeArtefact(Sensitivity.PUBLIC)
        private = FakeArtefact(Sensitivity.PRIVATE)
        classified = FakeArtefact(Sensitivity.CLASSIFIED)
        artefacts = [classified, public, private]
        list_types = {8: FakeListType()}

        assert filter_publications_for_summary(ANONYMOUS, artefacts, list_types, now=NOW) == [public]
        assert filter_publications_for_summary(
            VERIFIED_B2C, artefacts, list_types, now=NOW
        ) == [classified, public, private]
        assert filter_accessible_publications(
            VERIFIED_B2C, artefacts, list_types, now=NOW
        ) == [public, private]
        assert filter_accessible_publications(
            VERIFIED_CFT, artefacts, list_types, now=NOW
        ) == [classified, public, private]
