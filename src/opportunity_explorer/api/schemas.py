"""
API request/response models.

Responses use camelCase keys, the format the dashboard front end consumes.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from opportunity_explorer.domain.models import ActivityType, ResourceType


class ApiModel(BaseModel):
    """Base for API models: camelCase aliases, built from domain objects."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ===========================================
# RESPONSE MODELS
# ===========================================


class SubredditOut(ApiModel):
    id: int
    name: str
    display_name: str
    subscriber_count: int


class CommunityOut(SubredditOut):
    icon_path: Optional[str] = None
    post_count: int = 0
    opportunity_count: int = 0


class SolutionOut(ApiModel):
    id: int
    title: str
    description: Optional[str] = None
    solution_order: int = 0


class OpportunityOut(ApiModel):
    id: int
    main_title: str
    problem_description: Optional[str] = None
    affected_audience: Optional[str] = None
    subreddit: str
    business_impact_score: float
    is_featured: bool
    tags: list[str]
    solutions: list[SolutionOut]
    processed_at: datetime


class BookmarkOut(ApiModel):
    opportunity: OpportunityOut
    saved_at: datetime


class RecentlyViewedOut(ApiModel):
    opportunity: OpportunityOut
    viewed_at: datetime


class UserActivityOut(ApiModel):
    id: int
    activity_type: ActivityType
    resource_id: Optional[int] = None
    resource_type: Optional[ResourceType] = None
    metadata: dict[str, Any]
    created_at: datetime


class UserDashboardOut(ApiModel):
    recently_viewed: list[RecentlyViewedOut]
    bookmarks: list[BookmarkOut]
    recently_viewed_count: int
    bookmarked_count: int
    recent_days_back: int


class DashboardStatsOut(ApiModel):
    total_subreddits: int
    total_posts: int
    total_comments: int
    total_clusters: int
    processed_clusters: int
    total_opportunities: int
    featured_opportunities: int
    processing_rate: int


# ===========================================
# REQUEST MODELS
# ===========================================


class SaveIdeaRequest(ApiModel):
    """Body of save/unsave requests."""

    idea_id: Optional[int] = None


class BookmarkRequest(ApiModel):
    opportunity_id: Optional[int] = None


class TrackActivityRequest(ApiModel):
    activity_type: ActivityType
    resource_id: Optional[int] = None
    resource_type: Optional[ResourceType] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
