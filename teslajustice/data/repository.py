"""
Case repository: persistence for cases, sources, updates, related-case
links, media and monitoring configuration.
"""

import logging
import re
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from teslajustice.core.config import CLOSED_STATUSES
from teslajustice.core.database import (
    AnalyticsEvent,
    Case,
    CaseMedia,
    CaseUpdate,
    MonitoringAccount,
    MonitoringKeyword,
    RelatedCase,
    SocialMediaSource,
    get_session,
    init_db,
)
from teslajustice.core.errors import CaseNotFoundError, RepositoryError
from teslajustice.data.schemas import CaseCreate, MediaItem, SourceCreate

logger = logging.getLogger(__name__)


class CaseRepository:
    """
    Stores and queries case records.

    Writes are committed one operation at a time with no surrounding
    transaction, so a multi-step resolution can leave partial state behind
    if a later step fails. Callers are expected to be the only writer.
    """

    def __init__(self, db_url: Optional[str] = None):
        if db_url:
            init_db(db_url)
            self.session = get_session(db_url)
        else:
            init_db()
            self.session = get_session()

    @contextmanager
    def _write(self, what: str):
        try:
            yield
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to {what}: {e}")
            raise RepositoryError(f"Failed to {what}: {e}") from e

    @contextmanager
    def _read(self, what: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to {what}: {e}")
            raise RepositoryError(f"Failed to {what}: {e}") from e

    # --- Sources ---

    def find_source(self, platform: str, platform_id: str) -> Optional[SocialMediaSource]:
        with self._read(f"look up source {platform}/{platform_id}"):
            return (
                self.session.query(SocialMediaSource)
                .filter_by(platform=platform, platform_id=platform_id)
                .first()
            )

    def get_or_create_source(self, data: SourceCreate,
                             reply_to_id: Optional[int] = None) -> tuple[SocialMediaSource, bool]:
        """
        Insert a source unless one with the same (platform, platform_id) exists.

        Returns the stored source and whether it was created by this call.
        """
        existing = self.find_source(data.platform, data.platform_id)
        if existing is not None:
            return existing, False

        source = SocialMediaSource(
            platform=data.platform,
            platform_id=data.platform_id,
            url=data.url,
            author_username=data.author_username,
            author_display_name=data.author_display_name or "",
            author_avatar_url=data.author_avatar_url or "",
            content=data.content,
            posted_at=data.posted_at,
            is_reply=data.is_reply,
            reply_to_id=reply_to_id,
            metadata_=data.metadata or {},
        )
        with self._write(f"store source {data.platform}/{data.platform_id}"):
            self.session.add(source)
        with self._read(f"reload source {data.platform}/{data.platform_id}"):
            self.session.refresh(source)
        logger.info(f"Stored source #{source.id} ({data.platform}/{data.platform_id})")
        return source, True

    def linked_case_id(self, source_id: int) -> Optional[int]:
        """Return the case a source was first attached to, if any."""
        with self._read(f"look up case for source #{source_id}"):
            update = (
                self.session.query(CaseUpdate)
                .filter(CaseUpdate.source_id == source_id)
                .order_by(CaseUpdate.id)
                .first()
            )
        return update.case_id if update else None

    def sources_for_case(self, case_id: int) -> list[SocialMediaSource]:
        source_ids = select(CaseUpdate.source_id).where(
            CaseUpdate.case_id == case_id, CaseUpdate.source_id.isnot(None)
        )
        with self._read(f"load sources of case #{case_id}"):
            return (
                self.session.query(SocialMediaSource)
                .filter(SocialMediaSource.id.in_(source_ids))
                .order_by(SocialMediaSource.id)
                .all()
            )

    # --- Cases ---

    def create_case(self, data: CaseCreate) -> Case:
        case = Case(
            headline=data.headline,
            summary=data.summary,
            target_type=data.target_type,
            target_details=data.target_details.model_dump(),
            location_city=data.location_city,
            location_state=data.location_state,
            location_country=data.location_country,
            status=data.status,
            damage_type=list(data.damage_type),
            ai_confidence=data.ai_confidence,
            is_verified=data.is_verified,
        )
        if data.created_at is not None:
            case.created_at = data.created_at
            case.updated_at = data.created_at
        with self._write("create case"):
            self.session.add(case)
        with self._read("reload new case"):
            self.session.refresh(case)
        logger.info(f"Created case #{case.id}: {case.headline}")
        return case

    def get_case(self, case_id: int) -> Case:
        with self._read(f"load case #{case_id}"):
            case = self.session.get(Case, case_id)
        if case is None:
            raise CaseNotFoundError(case_id)
        return case

    def update_case_fields(self, case_id: int, fields: dict) -> Case:
        case = self.get_case(case_id)
        with self._write(f"update case #{case_id}"):
            for key, value in fields.items():
                setattr(case, key, value)
        with self._read(f"reload case #{case_id}"):
            self.session.refresh(case)
        return case

    def find_candidate_cases(self, city: str, target_type: str, limit: int = 10) -> list[Case]:
        """Most recent cases in the same city with the same target type."""
        if not city:
            return []
        with self._read("query candidate cases"):
            return (
                self.session.query(Case)
                .filter(Case.location_city == city, Case.target_type == target_type)
                .order_by(Case.created_at.desc(), Case.id.desc())
                .limit(limit)
                .all()
            )

    def list_cases(self, status: Optional[str] = None, target_type: Optional[str] = None,
                   location_city: Optional[str] = None, location_state: Optional[str] = None,
                   search: Optional[str] = None, page: int = 1,
                   page_size: int = 20) -> tuple[list[Case], int]:
        with self._read("list cases"):
            query = self.session.query(Case)

            if status:
                query = query.filter(Case.status == status)
            if target_type:
                query = query.filter(Case.target_type == target_type)
            if location_city:
                query = query.filter(Case.location_city == location_city)
            if location_state:
                query = query.filter(Case.location_state == location_state)
            if search:
                pattern = f"%{search}%"
                query = query.filter(or_(
                    Case.headline.ilike(pattern),
                    Case.summary.ilike(pattern),
                    Case.location_city.ilike(pattern),
                ))

            total = query.count()
            cases = (
                query.order_by(Case.created_at.desc(), Case.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
                .all()
            )
        return cases, total

    def active_cases(self) -> list[Case]:
        with self._read("load active cases"):
            return (
                self.session.query(Case)
                .filter(Case.status.notin_(CLOSED_STATUSES))
                .order_by(Case.created_at.desc())
                .all()
            )

    # --- Updates, links, media ---

    def append_update(self, case_id: int, update_type: str, title: str, description: str,
                      source_id: Optional[int] = None, previous_status: Optional[str] = None,
                      new_status: Optional[str] = None, importance: int = 3,
                      is_public: bool = True) -> CaseUpdate:
        update = CaseUpdate(
            case_id=case_id,
            source_id=source_id,
            update_type=update_type,
            title=title,
            description=description,
            previous_status=previous_status,
            new_status=new_status,
            importance=importance,
            is_public=is_public,
        )
        with self._write(f"append update to case #{case_id}"):
            self.session.add(update)
        return update

    def get_updates(self, case_id: int, public_only: bool = True) -> list[CaseUpdate]:
        with self._read(f"load updates of case #{case_id}"):
            query = self.session.query(CaseUpdate).filter(CaseUpdate.case_id == case_id)
            if public_only:
                query = query.filter(CaseUpdate.is_public.is_(True))
            return query.order_by(CaseUpdate.created_at.desc(), CaseUpdate.id.desc()).all()

    def link_related_cases(self, case_id: int, related_case_id: int,
                           relationship_type: str, strength: float) -> None:
        """Store the relationship in both directions with the same type and strength."""
        strength = max(0.0, min(1.0, strength))
        with self._write(f"link case #{case_id} to #{related_case_id}"):
            for a, b in ((case_id, related_case_id), (related_case_id, case_id)):
                self.session.merge(RelatedCase(
                    case_id=a,
                    related_case_id=b,
                    relationship_type=relationship_type,
                    relationship_strength=strength,
                    is_ai_generated=True,
                ))
        logger.info(f"Linked case #{case_id} <-> #{related_case_id} "
                    f"({relationship_type}, {strength:.2f})")

    def get_related(self, case_id: int) -> list[RelatedCase]:
        with self._read(f"load cases related to #{case_id}"):
            return (
                self.session.query(RelatedCase)
                .filter(RelatedCase.case_id == case_id)
                .order_by(RelatedCase.relationship_strength.desc())
                .all()
            )

    def has_primary_media(self, case_id: int) -> bool:
        with self._read(f"check primary media of case #{case_id}"):
            return (
                self.session.query(CaseMedia)
                .filter_by(case_id=case_id, is_primary=True)
                .first()
            ) is not None

    def add_media(self, case_id: int, source_id: Optional[int], media: MediaItem,
                  is_primary: bool = False, ai_analysis: Optional[dict] = None) -> CaseMedia:
        is_video = media.type == "video"
        item = CaseMedia(
            case_id=case_id,
            source_id=source_id,
            media_type="video" if is_video else "image",
            url=media.url,
            thumbnail_url=re.sub(r"\.mp4$", ".jpg", media.url) if is_video else media.url,
            width=media.width,
            height=media.height,
            duration=media.duration,
            is_primary=is_primary,
            ai_analysis=ai_analysis,
        )
        with self._write(f"add media to case #{case_id}"):
            self.session.add(item)
        return item

    def get_media(self, case_id: int) -> list[CaseMedia]:
        with self._read(f"load media of case #{case_id}"):
            return (
                self.session.query(CaseMedia)
                .filter(CaseMedia.case_id == case_id)
                .order_by(CaseMedia.is_primary.desc(), CaseMedia.created_at.desc())
                .all()
            )

    # --- Monitoring configuration ---

    def add_keyword(self, keyword: str, platform: str = "all", priority: int = 3) -> MonitoringKeyword:
        item = MonitoringKeyword(keyword=keyword, platform=platform, priority=priority, is_active=True)
        with self._write(f"add keyword '{keyword}'"):
            self.session.add(item)
        with self._read(f"reload keyword '{keyword}'"):
            self.session.refresh(item)
        return item

    def add_account(self, username: str, platform: str = "twitter", priority: int = 3) -> MonitoringAccount:
        item = MonitoringAccount(username=username.lstrip("@"), platform=platform,
                                 priority=priority, is_active=True)
        with self._write(f"add account '{username}'"):
            self.session.add(item)
        with self._read(f"reload account '{username}'"):
            self.session.refresh(item)
        return item

    def active_keywords(self, platform: Optional[str] = None) -> list[MonitoringKeyword]:
        with self._read("load monitoring keywords"):
            query = self.session.query(MonitoringKeyword).filter(MonitoringKeyword.is_active.is_(True))
            if platform:
                query = query.filter(MonitoringKeyword.platform.in_([platform, "all"]))
            return query.order_by(MonitoringKeyword.priority.desc(), MonitoringKeyword.id).all()

    def active_accounts(self, platform: Optional[str] = None) -> list[MonitoringAccount]:
        with self._read("load monitoring accounts"):
            query = self.session.query(MonitoringAccount).filter(MonitoringAccount.is_active.is_(True))
            if platform:
                query = query.filter(MonitoringAccount.platform == platform)
            return query.order_by(MonitoringAccount.priority.desc(), MonitoringAccount.id).all()

    def log_event(self, event_type: str, data: dict, case_id: Optional[int] = None) -> None:
        """Record an analytics event. Failures are logged, never raised."""
        try:
            with self._write(f"log {event_type} event"):
                self.session.add(AnalyticsEvent(event_type=event_type, event_data=data, case_id=case_id))
        except RepositoryError as e:
            logger.warning(f"Analytics event dropped: {e}")

    def events(self, event_type: Optional[str] = None) -> list[AnalyticsEvent]:
        with self._read("load analytics events"):
            query = self.session.query(AnalyticsEvent)
            if event_type:
                query = query.filter(AnalyticsEvent.event_type == event_type)
            return query.order_by(AnalyticsEvent.id).all()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the database session."""
        self.session.close()
