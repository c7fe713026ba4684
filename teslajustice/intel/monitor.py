"""
Monitoring cycle: polls social media for every active keyword and monitored
account, analyzes what comes back, and feeds relevant posts into the
deduplication engine.

Requests are made one at a time with a fixed pause in between to stay inside
the search API's rate limits.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from teslajustice.cases.dedup import DeduplicationEngine
from teslajustice.core.config import DEFAULT_HASHTAG, MONITORING_REQUEST_DELAY, SEARCH_RESULT_COUNT
from teslajustice.core.results import Failure, FailureAction, attempt, unwrap
from teslajustice.data.repository import CaseRepository
from teslajustice.data.schemas import (
    CycleSummary,
    MonitoringResult,
    SourceCreate,
    UpdateCheckSummary,
)
from teslajustice.intel.analyzer import ContentAnalyzer, KeywordAnalyzer
from teslajustice.intel.ingestor import SourceIngestor

logger = logging.getLogger(__name__)


class MonitoringCycle:
    """
    Runs monitoring passes against one ingestor.

    Failures are handled per item: a post that cannot be analyzed or stored
    is skipped, a search that fails is recorded on its query's result, and
    only a failure to load the monitoring configuration aborts the cycle.
    """

    def __init__(self, repository: CaseRepository, ingestor: SourceIngestor,
                 analyzer: Optional[ContentAnalyzer] = None,
                 engine: Optional[DeduplicationEngine] = None,
                 request_delay: float = MONITORING_REQUEST_DELAY,
                 sleep: Callable[[float], None] = time.sleep,
                 hashtag: Optional[str] = DEFAULT_HASHTAG):
        self.repository = repository
        self.ingestor = ingestor
        self.analyzer = analyzer or KeywordAnalyzer()
        self.engine = engine or DeduplicationEngine(repository, self.analyzer)
        self.request_delay = request_delay
        self.sleep = sleep
        self.hashtag = hashtag

    def run_cycle(self) -> CycleSummary:
        """
        Search every active keyword, then every monitored account's mentions,
        then the campaign hashtag.
        """
        start = time.monotonic()
        platform = self.ingestor.platform

        keywords = unwrap(attempt(self.repository.active_keywords, platform,
                                  action=FailureAction.ABORT_CYCLE, context="load keywords"))
        accounts = unwrap(attempt(self.repository.active_accounts, platform,
                                  action=FailureAction.ABORT_CYCLE, context="load accounts"))

        results = []
        for keyword in keywords:
            results.append(self.search(keyword.keyword))
            self.sleep(self.request_delay)

        for account in accounts:
            results.append(self.search(f"@{account.username}"))
            self.sleep(self.request_delay)

        if self.hashtag:
            results.append(self.search(self.hashtag))

        summary = CycleSummary(
            results=results,
            total_new_cases=sum(r.new_cases for r in results),
            total_updated_cases=sum(r.updated_cases for r in results),
            processing_time=round(time.monotonic() - start, 3),
            timestamp=datetime.utcnow(),
        )
        logger.info(f"Monitoring cycle finished: {summary.total_new_cases} new, "
                    f"{summary.total_updated_cases} updated in {summary.processing_time}s")

        self.repository.log_event("monitoring_cycle", {
            "platforms": [platform],
            "queries": len(results),
            "total_new_cases": summary.total_new_cases,
            "total_updated_cases": summary.total_updated_cases,
            "processing_time": summary.processing_time,
            "timestamp": summary.timestamp.isoformat(),
        })
        return summary

    def search(self, query: str, count: int = SEARCH_RESULT_COUNT) -> MonitoringResult:
        """Search one query and resolve every relevant post it returns."""
        start = time.monotonic()
        result = MonitoringResult(platform=self.ingestor.platform, query=query,
                                  timestamp=datetime.utcnow())

        page = attempt(self.ingestor.search, query, count, context=f"search {query!r}")
        if isinstance(page, Failure):
            logger.warning(f"Search for {query!r} failed: {page.message}")
            result.errors.append(page.message)
            result.processing_time = round(time.monotonic() - start, 3)
            return result

        result.new_posts = page.value.raw_count or len(page.value.posts)
        for post in page.value.posts:
            outcome = self.process_post(post)
            if outcome is None:
                continue
            result.relevant_posts += 1
            if isinstance(outcome, Failure):
                logger.error(f"Skipping {post.platform}/{post.platform_id}: {outcome.message}")
                result.errors.append(outcome.message)
            elif outcome.value.already_linked:
                continue
            elif outcome.value.is_new_case:
                result.new_cases += 1
            else:
                result.updated_cases += 1

        result.processing_time = round(time.monotonic() - start, 3)
        return result

    def process_post(self, post: SourceCreate):
        """
        Analyze a post and resolve it into a case when relevant.

        Returns None for irrelevant posts, otherwise a Success wrapping the
        resolution or a Failure describing why the post was skipped.
        """
        analysis = attempt(self.analyzer.analyze, post.content,
                           context=f"analyze {post.platform_id}")
        if isinstance(analysis, Failure):
            return analysis

        analysis = analysis.value
        if not analysis.is_relevant:
            return None

        analysis.platform = post.platform
        if not analysis.media_urls:
            analysis.media_urls = list(post.media)

        return attempt(self.engine.resolve_incident, post, analysis,
                       context=f"resolve {post.platform_id}")

    def check_case_for_updates(self, case_id: int) -> dict:
        """Record new replies to any of the case's posts as case updates."""
        new_updates = 0
        for source in self.repository.sources_for_case(case_id):
            if source.platform != self.ingestor.platform or source.is_reply:
                continue

            replies = attempt(self.ingestor.fetch_replies, source.platform_id,
                              context=f"replies to {source.platform_id}")
            if isinstance(replies, Failure):
                logger.warning(f"Could not fetch replies for case #{case_id}: {replies.message}")
                continue

            for reply in replies.value:
                stored, created = self.repository.get_or_create_source(reply, reply_to_id=source.id)
                if not created:
                    continue
                self.repository.append_update(
                    case_id,
                    "new_information",
                    "New reply to social media post",
                    f"@{reply.author_username} replied to a post related to this case. "
                    f"The reply may contain additional information about the incident.",
                    source_id=stored.id,
                    importance=2,
                )
                new_updates += 1

        return {"case_id": case_id, "updates_found": new_updates > 0, "new_updates": new_updates}

    def check_all_cases_for_updates(self) -> UpdateCheckSummary:
        """Sweep every case that is not resolved or unresolved."""
        start = time.monotonic()
        cases = self.repository.active_cases()

        summary = UpdateCheckSummary(cases_checked=len(cases))
        for case in cases:
            outcome = self.check_case_for_updates(case.id)
            if outcome["updates_found"]:
                summary.cases_with_updates += 1
                summary.total_new_updates += outcome["new_updates"]

        summary.processing_time = round(time.monotonic() - start, 3)
        self.repository.log_event("case_update_check", summary.model_dump())
        logger.info(f"Checked {summary.cases_checked} cases, "
                    f"{summary.total_new_updates} new updates")
        return summary
