"""
Case deduplication and linking.

Each incoming post is scored against recent cases in the same city with the
same target type. The score is a weighted sum of four criteria:

- location: same city, with a bonus when the state also matches
- target: same target type, with a bonus for a matching vehicle make/model
- damage: fraction of the new post's damage tags already on the case
- time proximity: linear decay from full weight to zero over 48 hours

A post scoring above the duplicate threshold is merged into the best case.
Otherwise a new case is created and every candidate above the related
threshold is linked to it as a possible duplicate.

The candidate query and the writes that follow are not isolated from other
writers. Running two resolutions against the same store concurrently can
create duplicate cases; callers must serialize them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from teslajustice.cases.classification import determine_damage_types, determine_target_type
from teslajustice.cases.synthesis import build_target_details, generate_headline, generate_summary
from teslajustice.core.config import DEDUP_CONFIG, DEFAULT_COUNTRY, SIMILARITY_WEIGHTS
from teslajustice.core.database import Case
from teslajustice.data.repository import CaseRepository
from teslajustice.data.schemas import (
    CaseCreate,
    ContentAnalysis,
    MediaItem,
    ResolutionResult,
    SourceCreate,
)

logger = logging.getLogger(__name__)


@dataclass
class IncidentProfile:
    """The fields of an incident that take part in similarity scoring."""

    city: str
    state: str
    target_type: str
    target_details: dict
    damage_types: list[str]
    timestamp: datetime

    @classmethod
    def from_case(cls, case: Case) -> "IncidentProfile":
        return cls(
            city=case.location_city or "",
            state=case.location_state or "",
            target_type=case.target_type,
            target_details=case.target_details or {},
            damage_types=list(case.damage_type or []),
            timestamp=case.created_at,
        )


@dataclass
class SimilarityBreakdown:
    location: float = 0.0
    target: float = 0.0
    damage: float = 0.0
    time_proximity: float = 0.0

    @property
    def total(self) -> float:
        raw = self.location + self.target + self.damage + self.time_proximity
        return round(max(0.0, min(1.0, raw)), 6)


@dataclass
class CandidateScore:
    case: Case
    breakdown: SimilarityBreakdown = field(default_factory=SimilarityBreakdown)

    @property
    def score(self) -> float:
        return self.breakdown.total


def time_proximity_term(hours_apart: float, window_hours: float = 48,
                        weight: float = SIMILARITY_WEIGHTS["time_proximity"]) -> float:
    """Full weight at zero hours, decaying linearly to zero at the window edge."""
    hours_apart = max(0.0, hours_apart)
    if hours_apart >= window_hours:
        return 0.0
    return weight * (1 - hours_apart / window_hours)


def damage_overlap_term(new_tags: list[str], case_tags: list[str],
                        weight: float = SIMILARITY_WEIGHTS["damage_type"]) -> float:
    """Weight times the share of the new post's tags that the case already has."""
    if not new_tags:
        return 0.0
    matching = [t for t in new_tags if t in case_tags]
    return weight * (len(matching) / len(new_tags))


def score_similarity(new: IncidentProfile, existing: IncidentProfile,
                     weights: dict = SIMILARITY_WEIGHTS,
                     window_hours: float = DEDUP_CONFIG["time_proximity_hours"]) -> SimilarityBreakdown:
    breakdown = SimilarityBreakdown()

    if existing.city and existing.city == new.city:
        breakdown.location += weights["city"]
        if existing.state == new.state:
            breakdown.location += weights["state"]

    if existing.target_type == new.target_type:
        breakdown.target += weights["target_type"]
        old, cur = existing.target_details, new.target_details
        if (existing.target_type == "vehicle"
                and old.get("make") == cur.get("make")
                and old.get("model") == cur.get("model")):
            breakdown.target += weights["vehicle_model"]

    breakdown.damage = damage_overlap_term(new.damage_types, existing.damage_types,
                                           weights["damage_type"])

    hours = (new.timestamp - existing.timestamp).total_seconds() / 3600
    breakdown.time_proximity = time_proximity_term(hours, window_hours, weights["time_proximity"])
    return breakdown


class DeduplicationEngine:
    """Decides whether a post is a new case, a duplicate, or related to others."""

    def __init__(self, repository: CaseRepository, analyzer=None,
                 config: Optional[dict] = None, weights: Optional[dict] = None,
                 clock: Callable[[], datetime] = datetime.utcnow):
        self.repository = repository
        self.analyzer = analyzer
        self.config = {**DEDUP_CONFIG, **(config or {})}
        self.weights = {**SIMILARITY_WEIGHTS, **(weights or {})}
        self.clock = clock

    def build_profile(self, source: SourceCreate, analysis: ContentAnalysis,
                      now: Optional[datetime] = None) -> IncidentProfile:
        target_type = determine_target_type(source.content)
        details = build_target_details(target_type, source.content, analysis)
        return IncidentProfile(
            city=analysis.location_info.city or "",
            state=analysis.location_info.state or "",
            target_type=target_type,
            target_details=details.model_dump(),
            damage_types=determine_damage_types(source.content),
            timestamp=now or self.clock(),
        )

    def find_potential_duplicates(self, profile: IncidentProfile) -> list[CandidateScore]:
        """Score recent cases with the same city and target type, best first."""
        cases = self.repository.find_candidate_cases(
            profile.city, profile.target_type, limit=self.config["candidate_limit"]
        )
        scored = [
            CandidateScore(
                case=case,
                breakdown=score_similarity(profile, IncidentProfile.from_case(case),
                                           self.weights, self.config["time_proximity_hours"]),
            )
            for case in cases
        ]
        return sorted(scored, key=lambda c: c.score, reverse=True)

    def resolve_incident(self, source: SourceCreate, analysis: ContentAnalysis) -> ResolutionResult:
        """
        Merge the post into an existing case or create a new one.

        Persistence errors propagate; nothing already written is undone.
        """
        existing_source = self.repository.find_source(source.platform, source.platform_id)
        if existing_source is not None:
            linked = self.repository.linked_case_id(existing_source.id)
            if linked is not None:
                logger.info(f"Source {source.platform}/{source.platform_id} already "
                            f"attached to case #{linked}, skipping")
                return ResolutionResult(case_id=linked, is_new_case=False, is_duplicate=True,
                                        source_id=existing_source.id, already_linked=True)

        now = self.clock()
        profile = self.build_profile(source, analysis, now)
        candidates = self.find_potential_duplicates(profile)
        top_score = candidates[0].score if candidates else None

        if candidates and candidates[0].score > self.config["duplicate_threshold"]:
            case = candidates[0].case
            source_id = self._link_source(
                source, case.id,
                title="Additional report of the same incident",
                description=f"A new social media post about this incident was found on {source.platform}.",
                importance=2,
            )
            self._attach_media(case.id, source_id, source, analysis)
            logger.info(f"Merged {source.platform}/{source.platform_id} into case #{case.id} "
                        f"(score {top_score:.2f})")
            return ResolutionResult(case_id=case.id, is_new_case=False, is_duplicate=True,
                                    source_id=source_id, top_score=top_score)

        case = self.repository.create_case(self._synthesize_case(source, analysis, profile, now))
        source_id = self._link_source(
            source, case.id,
            title=f"New information from {source.platform}",
            description=f"A post on {source.platform} by @{source.author_username} "
                        f"has been linked to this case.",
            importance=3,
        )
        self._attach_media(case.id, source_id, source, analysis)

        related = []
        for candidate in candidates:
            if candidate.score > self.config["related_threshold"]:
                self.repository.link_related_cases(case.id, candidate.case.id,
                                                   "possible_duplicate", candidate.score)
                related.append(candidate.case.id)

        return ResolutionResult(case_id=case.id, is_new_case=True, is_duplicate=False,
                                source_id=source_id, top_score=top_score,
                                related_case_ids=related)

    def _synthesize_case(self, source: SourceCreate, analysis: ContentAnalysis,
                         profile: IncidentProfile, now: datetime) -> CaseCreate:
        content = source.content
        target_type = profile.target_type
        damage = profile.damage_types
        location = analysis.location_info
        return CaseCreate(
            headline=generate_headline(content, analysis, target_type, damage),
            summary=analysis.summary or generate_summary(content, analysis, target_type, damage,
                                                         platform=source.platform),
            target_type=target_type,
            target_details=profile.target_details,
            location_city=location.city or None,
            location_state=location.state or None,
            location_country=location.country or DEFAULT_COUNTRY,
            damage_type=damage,
            ai_confidence=analysis.relevance_score or 0.7,
            created_at=now,
        )

    def _link_source(self, source: SourceCreate, case_id: int, title: str,
                     description: str, importance: int) -> int:
        stored, _ = self.repository.get_or_create_source(source)
        self.repository.append_update(
            case_id=case_id,
            update_type="new_information",
            title=title,
            description=description,
            source_id=stored.id,
            importance=importance,
        )
        return stored.id

    def _attach_media(self, case_id: int, source_id: int, source: SourceCreate,
                      analysis: ContentAnalysis) -> None:
        items: list[MediaItem] = source.media or analysis.media_urls
        if not items:
            return
        needs_primary = not self.repository.has_primary_media(case_id)
        for index, media in enumerate(items):
            media_analysis = None
            if self.analyzer is not None:
                media_type = "video" if media.type == "video" else "image"
                media_analysis = self.analyzer.analyze_media(media.url, media_type).model_dump()
            self.repository.add_media(
                case_id, source_id, media,
                is_primary=needs_primary and index == 0,
                ai_analysis=media_analysis,
            )
