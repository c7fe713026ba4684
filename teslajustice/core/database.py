"""
Database models for TeslaJustice case tracking.
Uses SQLAlchemy ORM with SQLite (upgradeable to PostgreSQL).
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import DeclarativeBase, Session, relationship, sessionmaker

class Base(DeclarativeBase):
    pass


class SocialMediaSource(Base):
    """A single originating social media post. Never modified once stored."""

    __tablename__ = "social_media_sources"
    __table_args__ = (UniqueConstraint("platform", "platform_id", name="uq_source_platform_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform = Column(String(20), nullable=False, index=True)
    platform_id = Column(String(100), nullable=False)
    url = Column(String(500), nullable=False, default="")
    author_username = Column(String(200), nullable=False)
    author_display_name = Column(String(200), nullable=True)
    author_avatar_url = Column(String(500), nullable=True)
    content = Column(Text, nullable=True)
    posted_at = Column(DateTime, nullable=False)
    collected_at = Column(DateTime, default=datetime.utcnow)
    is_reply = Column(Boolean, default=False)
    reply_to_id = Column(Integer, ForeignKey("social_media_sources.id"), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)


class Case(Base):
    """A tracked vandalism incident."""

    __tablename__ = "cases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    headline = Column(String(500), nullable=False)
    summary = Column(Text, nullable=False)
    target_type = Column(String(20), nullable=False, index=True)
    target_details = Column(JSON, nullable=True)
    location_city = Column(String(100), nullable=True, index=True)
    location_state = Column(String(50), nullable=True)
    location_country = Column(String(50), nullable=True)
    location_address = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    incident_date = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default="reported", index=True)
    severity = Column(String(20), nullable=True)
    damage_type = Column(JSON, nullable=False, default=list)
    ai_confidence = Column(Float, default=0.7)
    is_verified = Column(Boolean, default=False)
    is_duplicate = Column(Boolean, default=False)
    duplicate_of = Column(Integer, ForeignKey("cases.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    updates = relationship("CaseUpdate", back_populates="case", cascade="all, delete-orphan")
    media = relationship("CaseMedia", back_populates="case", cascade="all, delete-orphan")


class CaseUpdate(Base):
    """Append-only timeline entry attached to a case."""

    __tablename__ = "case_updates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    source_id = Column(Integer, ForeignKey("social_media_sources.id"), nullable=True)
    update_type = Column(String(30), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    previous_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=True)
    is_public = Column(Boolean, default=True)
    importance = Column(Integer, default=3)
    created_at = Column(DateTime, default=datetime.utcnow)

    case = relationship("Case", back_populates="updates")
    source = relationship("SocialMediaSource")


class CaseMedia(Base):
    """Media attached to a case, usually taken from a source post."""

    __tablename__ = "case_media"

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    source_id = Column(Integer, ForeignKey("social_media_sources.id"), nullable=True)
    media_type = Column(String(20), nullable=False)
    url = Column(String(500), nullable=False)
    thumbnail_url = Column(String(500), nullable=True)
    width = Column(Integer, default=0)
    height = Column(Integer, default=0)
    duration = Column(Float, default=0)
    is_primary = Column(Boolean, default=False)
    ai_analysis = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    case = relationship("Case", back_populates="media")


class RelatedCase(Base):
    """One direction of a symmetric relationship between two cases."""

    __tablename__ = "related_cases"

    case_id = Column(Integer, ForeignKey("cases.id"), primary_key=True)
    related_case_id = Column(Integer, ForeignKey("cases.id"), primary_key=True)
    relationship_type = Column(String(30), nullable=False)
    relationship_strength = Column(Float, nullable=False)
    is_ai_generated = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class MonitoringKeyword(Base):
    """Search keyword polled on every monitoring cycle."""

    __tablename__ = "monitoring_keywords"

    id = Column(Integer, primary_key=True, autoincrement=True)
    keyword = Column(String(200), nullable=False)
    platform = Column(String(20), nullable=False, default="all")
    is_active = Column(Boolean, default=True)
    priority = Column(Integer, default=3)
    created_at = Column(DateTime, default=datetime.utcnow)


class MonitoringAccount(Base):
    """Account whose mentions are polled on every monitoring cycle."""

    __tablename__ = "monitoring_accounts"
    __table_args__ = (UniqueConstraint("platform", "username", name="uq_account_platform_username"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform = Column(String(20), nullable=False)
    username = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True)
    priority = Column(Integer, default=3)
    created_at = Column(DateTime, default=datetime.utcnow)


class AnalyticsEvent(Base):
    """Operational events such as completed monitoring cycles."""

    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String(50), nullable=False, index=True)
    event_data = Column(JSON, nullable=False)
    occurred_at = Column(DateTime, default=datetime.utcnow)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=True)


_engine_cache = {}


def get_engine(url: str = None):
    if url is None:
        from teslajustice.core.config import DATABASE_URL
        url = DATABASE_URL
    if url in _engine_cache:
        return _engine_cache[url]
    kwargs = {"echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"timeout": 30, "check_same_thread": False}
    eng = create_engine(url, **kwargs)
    # Enable WAL mode for SQLite to allow concurrent reads + writes
    if url.startswith("sqlite"):
        from sqlalchemy import event
        @event.listens_for(eng, "connect")
        def _set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()
    _engine_cache[url] = eng
    return eng


def get_session(url: str = None) -> Session:
    engine = get_engine(url)
    session_factory = sessionmaker(bind=engine)
    return session_factory()


def init_db(url: str = None):
    """Create all tables in the database."""
    engine = get_engine(url)
    Base.metadata.create_all(engine)
    return engine
