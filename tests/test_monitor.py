"""Tests for the monitoring cycle, using an in-memory ingestor."""

from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from teslajustice.core.errors import IngestorError, RepositoryError
from teslajustice.core.database import CaseUpdate
from teslajustice.data.repository import CaseRepository
from teslajustice.data.schemas import SearchPage, SourceCreate
from teslajustice.intel.monitor import MonitoringCycle


def make_post(platform_id, content, author="witness", **kwargs):
    return SourceCreate(
        platform="twitter",
        platform_id=platform_id,
        url=f"https://twitter.com/{author}/status/{platform_id}",
        author_username=author,
        content=content,
        posted_at=datetime(2025, 3, 1, 8, 0),
        **kwargs,
    )


class FakeIngestor:
    platform = "twitter"

    def __init__(self, pages=None, replies=None, failing=()):
        self.pages = pages or {}
        self.replies = replies or {}
        self.failing = set(failing)
        self.queries = []

    def search(self, query, count=20, cursor=None):
        self.queries.append(query)
        if query in self.failing:
            raise IngestorError(f"rate limited on {query}")
        posts = self.pages.get(query, [])
        return SearchPage(posts=posts, raw_count=len(posts))

    def fetch_replies(self, platform_id):
        return self.replies.get(platform_id, [])


@pytest.fixture
def repo(tmp_path):
    repository = CaseRepository(f"sqlite:///{tmp_path / 'test_monitor.db'}")
    yield repository
    repository.close()


@pytest.fixture
def sleeps():
    return []


def make_monitor(repo, ingestor, sleeps):
    return MonitoringCycle(repo, ingestor, request_delay=0.5, sleep=sleeps.append)


def test_query_order_and_delays(repo, sleeps):
    repo.add_keyword("tesla vandalism")
    repo.add_keyword("cybertruck keyed")
    repo.add_account("TeslaJustice")
    ingestor = FakeIngestor()

    summary = make_monitor(repo, ingestor, sleeps).run_cycle()

    assert ingestor.queries == ["tesla vandalism", "cybertruck keyed", "@TeslaJustice", "#TeslaJustice"]
    assert sleeps == [0.5, 0.5, 0.5]
    assert len(summary.results) == 4


def test_cycle_aggregates_new_and_updated_cases(repo, sleeps):
    repo.add_keyword("tesla keyed")
    ingestor = FakeIngestor(pages={
        "tesla keyed": [
            make_post("1", "White Tesla Model 3 keyed in Austin, TX"),
            make_post("2", "Love my Tesla"),
        ],
        "#TeslaJustice": [
            make_post("3", "Another Tesla Model 3 keyed in Austin, TX #TeslaJustice"),
        ],
    })

    summary = make_monitor(repo, ingestor, sleeps).run_cycle()

    keyword_result = summary.results[0]
    assert keyword_result.new_posts == 2
    assert keyword_result.relevant_posts == 1
    assert keyword_result.new_cases == 1
    assert summary.total_new_cases == 1
    assert summary.total_updated_cases == 1

    event = repo.events("monitoring_cycle")[0]
    assert event.event_data["total_new_cases"] == 1
    assert event.event_data["queries"] == 2


def test_failed_search_does_not_stop_cycle(repo, sleeps):
    repo.add_keyword("broken query")
    ingestor = FakeIngestor(
        pages={"#TeslaJustice": [make_post("1", "Tesla Model Y smashed in Denver, CO")]},
        failing={"broken query"},
    )

    summary = make_monitor(repo, ingestor, sleeps).run_cycle()

    assert summary.results[0].errors == ["rate limited on broken query"]
    assert summary.total_new_cases == 1


def test_rerunning_a_cycle_creates_nothing_new(repo, sleeps):
    ingestor = FakeIngestor(pages={
        "#TeslaJustice": [make_post("1", "White Tesla Model 3 keyed in Austin, TX")],
    })
    monitor = make_monitor(repo, ingestor, sleeps)
    monitor.run_cycle()
    summary = monitor.run_cycle()

    assert summary.total_new_cases == 0
    assert summary.total_updated_cases == 0
    assert summary.results[-1].relevant_posts == 1
    assert repo.list_cases()[1] == 1


def test_database_read_failure_skips_only_that_post(repo, sleeps, monkeypatch):
    repo.add_keyword("tesla keyed")
    first = make_post("1", "White Tesla Model 3 keyed in Austin, TX")
    ingestor = FakeIngestor(pages={"tesla keyed": [first]})
    monitor = make_monitor(repo, ingestor, sleeps)
    monitor.run_cycle()

    real_query = repo.session.query

    def locked_query(*entities, **kwargs):
        if entities and entities[0] is CaseUpdate:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return real_query(*entities, **kwargs)

    monkeypatch.setattr(repo.session, "query", locked_query)
    ingestor.pages["tesla keyed"] = [first, make_post("2", "Tesla Model Y keyed in Denver, CO")]
    summary = monitor.run_cycle()

    keyword_result = summary.results[0]
    assert keyword_result.relevant_posts == 2
    assert keyword_result.new_cases == 1
    assert len(keyword_result.errors) == 1
    assert "database is locked" in keyword_result.errors[0]
    monkeypatch.undo()
    assert repo.list_cases()[1] == 2


def test_config_failure_aborts_cycle(repo, sleeps, monkeypatch):
    def broken(platform=None):
        raise RepositoryError("database is locked")

    monkeypatch.setattr(repo, "active_keywords", broken)
    ingestor = FakeIngestor()

    with pytest.raises(RepositoryError):
        make_monitor(repo, ingestor, sleeps).run_cycle()
    assert ingestor.queries == []


def test_reply_sweep(repo, sleeps):
    ingestor = FakeIngestor(
        pages={"#TeslaJustice": [make_post("100", "Tesla Model 3 keyed in Austin, TX")]},
        replies={"100": [make_post("101", "I saw who did it", author="neighbor",
                                   is_reply=True, reply_to_id="100")]},
    )
    monitor = make_monitor(repo, ingestor, sleeps)
    monitor.run_cycle()
    case_id = repo.list_cases()[0][0].id

    outcome = monitor.check_case_for_updates(case_id)
    assert outcome == {"case_id": case_id, "updates_found": True, "new_updates": 1}
    assert repo.get_updates(case_id)[0].title == "New reply to social media post"

    summary = monitor.check_all_cases_for_updates()
    assert summary.cases_checked == 1
    assert summary.total_new_updates == 0
    assert repo.events("case_update_check")[0].event_data["cases_checked"] == 1


def test_closed_cases_are_not_swept(repo, sleeps):
    ingestor = FakeIngestor(pages={"#TeslaJustice": [make_post("1", "Tesla Model 3 keyed in Austin, TX")]})
    monitor = make_monitor(repo, ingestor, sleeps)
    monitor.run_cycle()
    case = repo.list_cases()[0][0]
    repo.update_case_fields(case.id, {"status": "resolved"})

    assert monitor.check_all_cases_for_updates().cases_checked == 0
