"""Tests for moderator case management."""

import pytest

from teslajustice.cases.manager import CaseManager
from teslajustice.core.errors import CaseNotFoundError, InvalidStatusError, TeslaJusticeError
from teslajustice.data.repository import CaseRepository
from teslajustice.data.schemas import BuildingDetails, CaseCreate


@pytest.fixture
def repo(tmp_path):
    repository = CaseRepository(f"sqlite:///{tmp_path / 'test_manager.db'}")
    yield repository
    repository.close()


@pytest.fixture
def manager(repo):
    return CaseManager(repo)


@pytest.fixture
def case(repo):
    return repo.create_case(CaseCreate(
        headline="Tesla dealership vandalized in Denver, CO",
        summary="A Tesla dealership was vandalized in Denver, CO.",
        target_type="building",
        target_details=BuildingDetails(building_type="dealership"),
        location_city="Denver",
        location_state="CO",
        damage_type=["broken_windows"],
    ))


class TestStatus:
    def test_status_change_is_recorded(self, manager, repo, case):
        result = manager.update_case_status(case.id, "verified", "Confirmed by local news")
        assert result.status == "verified"

        update = repo.get_updates(case.id)[0]
        assert update.update_type == "status_change"
        assert update.previous_status == "reported"
        assert update.new_status == "verified"
        assert update.description == "Confirmed by local news"
        assert update.importance == 4

    def test_invalid_status(self, manager, case):
        with pytest.raises(InvalidStatusError):
            manager.update_case_status(case.id, "closed")

    def test_missing_case(self, manager):
        with pytest.raises(CaseNotFoundError):
            manager.update_case_status(42, "verified")


class TestUpdateCase:
    def test_location_update(self, manager, repo, case):
        result = manager.update_case(case.id, {"location_city": "Boulder", "headline": None})
        assert result.location_city == "Boulder"
        assert result.headline == case.headline
        assert repo.get_updates(case.id)[0].update_type == "location_update"

    def test_status_through_update(self, manager, repo, case):
        manager.update_case(case.id, {"status": "identified"})
        update = repo.get_updates(case.id)[0]
        assert update.update_type == "status_change"
        assert update.title == "Status changed to identified"

    def test_status_through_update_records_transition(self, manager, repo, case):
        manager.update_case(case.id, {"status": "identified", "severity": "major"})
        update = repo.get_updates(case.id)[0]
        assert update.previous_status == "reported"
        assert update.new_status == "identified"

    def test_location_update_has_no_transition(self, manager, repo, case):
        manager.update_case(case.id, {"location_city": "Boulder"})
        update = repo.get_updates(case.id)[0]
        assert update.previous_status is None
        assert update.new_status is None

    def test_other_fields(self, manager, repo, case):
        manager.update_case(case.id, {"severity": "major"})
        assert repo.get_updates(case.id)[0].update_type == "other"

    def test_rejects_unknown_status(self, manager, case):
        with pytest.raises(InvalidStatusError):
            manager.update_case(case.id, {"status": "archived"})


def test_mark_duplicate(manager, repo, case):
    other = repo.create_case(CaseCreate(
        headline="Duplicate report",
        summary="Same incident.",
        target_type="building",
        target_details=BuildingDetails(),
        damage_type=["other_damage"],
    ))
    result = manager.mark_duplicate(other.id, case.id)
    assert result.is_duplicate
    assert result.duplicate_of == case.id


def test_cannot_duplicate_itself(manager, case):
    with pytest.raises(TeslaJusticeError):
        manager.mark_duplicate(case.id, case.id)


def test_case_details(manager, repo, case):
    manager.update_case_status(case.id, "verified")
    detail = manager.get_case_with_details(case.id)
    assert detail.id == case.id
    assert detail.target_details["building_type"] == "dealership"
    assert [u.new_status for u in detail.updates] == ["verified"]
    assert detail.media == []
    assert detail.related_cases == []


def test_list_cases_pagination(manager, case):
    listing = manager.list_cases({"location_state": "CO"}, page=1, page_size=10)
    assert listing["pagination"] == {"page": 1, "page_size": 10, "total_count": 1, "total_pages": 1}
    assert listing["cases"][0]["headline"] == case.headline
