"""
Domain models for the Opportunity Explorer.

Contains the core entities, value objects, and enums used throughout the application.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ===========================================
# ENUMS
# ===========================================


class AuthRequirement(str, Enum):
    """How strictly an operation requires a signed-in principal."""

    NONE = "none"
    OPTIONAL = "optional"
    REQUIRED = "required"


class Environment(str, Enum):
    """Deployment environments with their own security profiles."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ActivityType(str, Enum):
    """What a signed-in user did."""

    VIEWED_OPPORTUNITY = "viewed_opportunity"
    VIEWED_COMMUNITY = "viewed_community"
    SEARCHED = "searched"
    SAVED_OPPORTUNITY = "saved_opportunity"
    UNSAVED_OPPORTUNITY = "unsaved_opportunity"


class ResourceType(str, Enum):
    """Kind of record an activity refers to."""

    OPPORTUNITY = "opportunity"
    COMMUNITY = "community"
    SEARCH_QUERY = "search_query"


# ===========================================
# IDENTITY
# ===========================================


ADMIN_ROLE = "admin"


class PublicMetadata(BaseModel):
    """Role and permission claims published by the identity provider."""

    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)


class IdentitySession(BaseModel):
    """Session lookup result returned by an identity provider."""

    is_authenticated: bool = False
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    public_metadata: PublicMetadata = Field(default_factory=PublicMetadata)


class Principal(BaseModel):
    """
    The resolved identity of a request.

    Anonymous requests have no Principal at all (``None``), never an empty one.
    """

    id: str
    session_id: Optional[str] = None
    roles: set[str] = Field(default_factory=set)
    permissions: set[str] = Field(default_factory=set)

    @classmethod
    def from_session(cls, session: IdentitySession) -> Optional["Principal"]:
        if not session.is_authenticated or not session.user_id:
            return None
        return cls(
            id=session.user_id,
            session_id=session.session_id,
            roles=set(session.public_metadata.roles),
            permissions=set(session.public_metadata.permissions),
        )


# ===========================================
# RATE LIMITING
# ===========================================


class RateLimitCounter(BaseModel):
    """Fixed-window counter for one (subject, policy) pair."""

    count: int = Field(default=0, ge=0)
    reset_at: float


class RefreshAttempts(BaseModel):
    """Session refresh attempts recorded for one principal."""

    count: int = Field(default=0, ge=0)
    window_started_at: float
    last_attempt_at: float


# ===========================================
# READ MODELS (data store)
# ===========================================


class Community(BaseModel):
    """A tracked subreddit with activity counts."""

    id: int
    name: str
    display_name: str
    subscriber_count: int = 0
    icon_path: Optional[str] = None
    post_count: int = 0
    opportunity_count: int = 0

    class Config:
        from_attributes = True


class Solution(BaseModel):
    """A proposed solution attached to an opportunity."""

    id: int
    title: str
    description: Optional[str] = None
    solution_order: int = 0

    class Config:
        from_attributes = True


class BusinessOpportunity(BaseModel):
    """A precomputed business opportunity derived from subreddit discussion."""

    id: int
    main_title: str
    problem_description: Optional[str] = None
    affected_audience: Optional[str] = None
    subreddit: str
    business_impact_score: float = 0.0
    is_featured: bool = False
    is_active: bool = True
    tags: list[str] = Field(default_factory=list)
    solutions: list[Solution] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=utc_now)

    class Config:
        from_attributes = True


class Bookmark(BaseModel):
    """A business opportunity saved by a user."""

    user_id: str
    opportunity: BusinessOpportunity
    saved_at: datetime = Field(default_factory=utc_now)


class DashboardStats(BaseModel):
    """Aggregated pipeline counts for the dashboard."""

    total_subreddits: int = 0
    total_posts: int = 0
    total_comments: int = 0
    total_clusters: int = 0
    processed_clusters: int = 0
    total_opportunities: int = 0
    featured_opportunities: int = 0

    @property
    def processing_rate(self) -> int:
        """Percentage of clusters processed, rounded to an integer."""
        if self.total_clusters <= 0:
            return 0
        return round(self.processed_clusters / self.total_clusters * 100)


# ===========================================
# USER ACTIVITY
# ===========================================


class UserActivity(BaseModel):
    """
    One entry of a user's activity log.

    Opportunity views are kept once per (user, opportunity): viewing again
    moves the existing entry to the current time.
    """

    id: Optional[int] = None
    user_id: str
    activity_type: ActivityType
    resource_id: Optional[int] = None
    resource_type: Optional[ResourceType] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    class Config:
        from_attributes = True


class RecentlyViewed(BaseModel):
    """An opportunity together with the time the user last viewed it."""

    opportunity: BusinessOpportunity
    viewed_at: datetime


class UserDashboardData(BaseModel):
    """Per-user summary shown on the dashboard."""

    recently_viewed: list[RecentlyViewed] = Field(default_factory=list)
    bookmarks: list[Bookmark] = Field(default_factory=list)
    recently_viewed_count: int = 0
    bookmarked_count: int = 0
    recent_days_back: int = 2
