"""
Pydantic schemas for data validation and serialization.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

Platform = Literal["twitter", "instagram", "facebook", "youtube", "reddit", "tiktok"]
CaseStatus = Literal[
    "reported", "verified", "identified", "apprehended",
    "prosecuted", "resolved", "unresolved",
]


class MediaItem(BaseModel):
    """A photo or video attached to a social media post."""

    type: str = "photo"
    url: str
    width: int = 0
    height: int = 0
    duration: float = 0


class SourceCreate(BaseModel):
    """Schema for an incoming social media post."""

    platform: Platform = "twitter"
    platform_id: str
    url: str = ""
    author_username: str
    author_display_name: Optional[str] = None
    author_avatar_url: Optional[str] = None
    content: str = Field(min_length=1)
    posted_at: datetime
    is_reply: bool = False
    reply_to_id: Optional[str] = None
    metadata: dict = {}
    media: list[MediaItem] = []


class SearchPage(BaseModel):
    """One page of search results from a source ingestor."""

    posts: list[SourceCreate] = []
    next_cursor: Optional[str] = None
    raw_count: int = 0


# --- Content analysis ---

class LocationInfo(BaseModel):
    city: str = ""
    state: str = ""
    country: str = "US"
    confidence: float = Field(default=0.2, ge=0.0, le=1.0)


class TargetInfo(BaseModel):
    type: Optional[str] = None
    make: str = "Tesla"
    model: str = ""
    color: str = ""
    year: str = ""
    confidence: float = Field(default=0.3, ge=0.0, le=1.0)


class Entity(BaseModel):
    type: str
    text: str
    start: int
    end: int


class ContentAnalysis(BaseModel):
    """Relevance and classification signals produced by a content analyzer."""

    is_relevant: bool = False
    is_vandalism: bool = False
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    has_tesla_reference: bool = False
    has_vandalism_reference: bool = False
    location_info: LocationInfo = Field(default_factory=LocationInfo)
    target_info: TargetInfo = Field(default_factory=TargetInfo)
    damage_types: list[str] = []
    summary: str = ""
    entities: list[Entity] = []
    media_urls: list[MediaItem] = []
    platform: Optional[str] = None


class MediaAnalysis(BaseModel):
    is_vandalism: bool = True
    confidence: float = 0.85
    damage_type: str = "unknown"
    damage_location: str = "vehicle_body"
    detected_objects: list[str] = []
    analysis: str = ""


# --- Target details, one variant per target type ---

class VehicleDetails(BaseModel):
    type: Literal["vehicle"] = "vehicle"
    make: str = "Tesla"
    model: str = ""
    color: str = ""
    year: str = ""


class BuildingDetails(BaseModel):
    type: Literal["building"] = "building"
    building_type: Literal["dealership", "supercharger", "store", "factory", "other"] = "other"


class PropertyDetails(BaseModel):
    type: Literal["property"] = "property"
    property_type: Literal["sign", "equipment", "other"] = "other"


TargetDetails = Annotated[
    Union[VehicleDetails, BuildingDetails, PropertyDetails],
    Field(discriminator="type"),
]


class CaseCreate(BaseModel):
    """Schema for creating a new case record."""

    headline: str
    summary: str
    target_type: Literal["vehicle", "building", "property"]
    target_details: TargetDetails
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    location_country: Optional[str] = "US"
    status: CaseStatus = "reported"
    damage_type: list[str] = Field(min_length=1)
    ai_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    is_verified: bool = False
    created_at: Optional[datetime] = None


class ResolutionResult(BaseModel):
    """Outcome of resolving one incoming post against existing cases."""

    case_id: int
    is_new_case: bool
    is_duplicate: bool
    source_id: Optional[int] = None
    top_score: Optional[float] = None
    related_case_ids: list[int] = []
    # The post had already been attached to a case by an earlier run
    already_linked: bool = False


# --- Monitoring ---

class MonitoringResult(BaseModel):
    """Outcome of a single search query within a monitoring cycle."""

    platform: str
    query: str
    timestamp: datetime
    new_posts: int = 0
    relevant_posts: int = 0
    new_cases: int = 0
    updated_cases: int = 0
    processing_time: float = 0.0
    errors: list[str] = []


class CycleSummary(BaseModel):
    results: list[MonitoringResult] = []
    total_new_cases: int = 0
    total_updated_cases: int = 0
    processing_time: float = 0.0
    timestamp: datetime


class UpdateCheckSummary(BaseModel):
    cases_checked: int = 0
    cases_with_updates: int = 0
    total_new_updates: int = 0
    processing_time: float = 0.0


class KeywordCreate(BaseModel):
    keyword: str = Field(min_length=1)
    platform: Union[Platform, Literal["all"]] = "all"
    priority: int = Field(default=3, ge=1, le=5)


class AccountCreate(BaseModel):
    username: str = Field(min_length=1)
    platform: Platform = "twitter"
    priority: int = Field(default=3, ge=1, le=5)


# --- Case management ---

class CasePatch(BaseModel):
    """Fields a moderator may change on a case."""

    headline: Optional[str] = None
    summary: Optional[str] = None
    status: Optional[CaseStatus] = None
    severity: Optional[Literal["minor", "moderate", "major", "severe"]] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    location_country: Optional[str] = None
    location_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_verified: Optional[bool] = None


class StatusChange(BaseModel):
    status: str
    reason: str = ""


class DuplicateMark(BaseModel):
    duplicate_of: int


class CaseResponse(BaseModel):
    """Schema for returning case data."""

    id: int
    headline: str
    summary: str
    target_type: str
    target_details: Optional[dict] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    location_country: Optional[str] = None
    status: str
    severity: Optional[str] = None
    damage_type: list[str] = []
    ai_confidence: Optional[float] = None
    is_verified: bool = False
    is_duplicate: bool = False
    duplicate_of: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CaseUpdateResponse(BaseModel):
    id: int
    case_id: int
    source_id: Optional[int] = None
    update_type: str
    title: str
    description: str
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    importance: int
    created_at: datetime

    class Config:
        from_attributes = True


class CaseMediaResponse(BaseModel):
    id: int
    media_type: str
    url: str
    thumbnail_url: Optional[str] = None
    is_primary: bool = False

    class Config:
        from_attributes = True


class RelatedCaseResponse(BaseModel):
    related_case_id: int
    relationship_type: str
    relationship_strength: float

    class Config:
        from_attributes = True


class CaseDetail(CaseResponse):
    media: list[CaseMediaResponse] = []
    updates: list[CaseUpdateResponse] = []
    related_cases: list[RelatedCaseResponse] = []
