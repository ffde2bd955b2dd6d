"""In-memory Adapter for the Opportunity Store."""

from datetime import datetime, timedelta
from itertools import count
from typing import Callable, Iterable, Optional

from opportunity_explorer.domain.exceptions import OpportunityNotFoundError
from opportunity_explorer.domain.models import (
    ActivityType,
    Bookmark,
    BusinessOpportunity,
    Community,
    DashboardStats,
    RecentlyViewed,
    ResourceType,
    Solution,
    UserActivity,
    utc_now,
)
from opportunity_explorer.interfaces.opportunity_store import OpportunityStorePort


class InMemoryOpportunityStore(OpportunityStorePort):
    """Opportunity store backed by plain dictionaries. Used for development and tests."""

    def __init__(
        self,
        communities: Iterable[Community] = (),
        opportunities: Iterable[BusinessOpportunity] = (),
        total_posts: int = 0,
        total_comments: int = 0,
        total_clusters: int = 0,
        processed_clusters: int = 0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._communities: dict[int, Community] = {c.id: c for c in communities}
        self._opportunities: dict[int, BusinessOpportunity] = {o.id: o for o in opportunities}
        self._bookmarks: dict[str, dict[int, datetime]] = {}
        self._activities: list[UserActivity] = []
        self._activity_ids = count(1)
        self._clock = clock
        self._counts = {
            "total_posts": total_posts,
            "total_comments": total_comments,
            "total_clusters": total_clusters,
            "processed_clusters": processed_clusters,
        }

    async def get_communities(
        self,
        limit: int = 20,
        search_term: Optional[str] = None,
    ) -> tuple[list[Community], int]:
        communities = list(self._communities.values())
        if search_term:
            needle = search_term.lower()
            communities = [
                c for c in communities
                if needle in c.name.lower() or needle in c.display_name.lower()
            ]
        communities.sort(key=lambda c: c.subscriber_count, reverse=True)
        return [self._with_counts(c) for c in communities[:limit]], len(communities)

    async def get_simple_subreddits(self, limit: int = 5) -> list[Community]:
        communities = sorted(
            self._communities.values(),
            key=lambda c: c.subscriber_count,
            reverse=True,
        )
        return [c.model_copy() for c in communities[:limit]]

    async def get_dashboard_stats(self) -> DashboardStats:
        return DashboardStats(
            total_subreddits=len(self._communities),
            total_opportunities=len(self._opportunities),
            featured_opportunities=sum(1 for o in self._opportunities.values() if o.is_featured),
            **self._counts,
        )

    async def list_opportunities(
        self,
        limit: int = 20,
        offset: int = 0,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> list[BusinessOpportunity]:
        opportunities = [o for o in self._opportunities.values() if o.is_active]

        if featured is not None:
            opportunities = [o for o in opportunities if o.is_featured == featured]
        if tag:
            opportunities = [o for o in opportunities if tag in o.tags]

        if search:
            needle = search.lower()
            opportunities = [o for o in opportunities if self._matches(o, needle)]
            opportunities.sort(key=lambda o: o.business_impact_score, reverse=True)
        else:
            opportunities.sort(key=lambda o: o.processed_at, reverse=True)

        return opportunities[offset:offset + limit]

    async def get_opportunity(self, opportunity_id: int) -> Optional[BusinessOpportunity]:
        return self._opportunities.get(opportunity_id)

    async def get_bookmarks(self, user_id: str, limit: int = 20) -> list[Bookmark]:
        saved = self._bookmarks.get(user_id, {})
        bookmarks = [
            Bookmark(user_id=user_id, opportunity=self._opportunities[opp_id], saved_at=saved_at)
            for opp_id, saved_at in saved.items()
            if opp_id in self._opportunities
        ]
        bookmarks.sort(key=lambda b: b.saved_at, reverse=True)
        return bookmarks[:limit]

    async def add_bookmark(self, user_id: str, opportunity_id: int) -> bool:
        if opportunity_id not in self._opportunities:
            raise OpportunityNotFoundError(opportunity_id)
        saved = self._bookmarks.setdefault(user_id, {})
        if opportunity_id in saved:
            return False
        saved[opportunity_id] = self._clock()
        return True

    async def remove_bookmark(self, user_id: str, opportunity_id: int) -> bool:
        saved = self._bookmarks.get(user_id, {})
        return saved.pop(opportunity_id, None) is not None

    async def is_bookmarked(self, user_id: str, opportunity_id: int) -> bool:
        return opportunity_id in self._bookmarks.get(user_id, {})

    async def count_bookmarks(self, user_id: str) -> int:
        return sum(1 for opp_id in self._bookmarks.get(user_id, {}) if opp_id in self._opportunities)

    async def track_activity(self, activity: UserActivity) -> None:
        now = self._clock()
        if activity.activity_type == ActivityType.VIEWED_OPPORTUNITY:
            existing = self._find_view(activity.user_id, activity.resource_id)
            if existing is not None:
                existing.created_at = now
                existing.metadata = dict(activity.metadata)
                return
        self._activities.append(
            activity.model_copy(update={"id": next(self._activity_ids), "created_at": now})
        )

    async def get_recently_viewed(
        self,
        user_id: str,
        limit: int = 5,
        days_back: int = 2,
    ) -> list[RecentlyViewed]:
        return self._recent_views(user_id, days_back)[:limit]

    async def count_recently_viewed(self, user_id: str, days_back: int = 2) -> int:
        return len(self._recent_views(user_id, days_back))

    async def get_activity_history(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[UserActivity]:
        history = [a for a in self._activities if a.user_id == user_id]
        history.sort(key=lambda a: (a.created_at, a.id), reverse=True)
        return [a.model_copy() for a in history[offset:offset + limit]]

    async def clear_activity(self, user_id: str) -> int:
        kept = [a for a in self._activities if a.user_id != user_id]
        removed = len(self._activities) - len(kept)
        self._activities = kept
        return removed

    async def cleanup_activities(self, days_to_keep: int = 365) -> int:
        cutoff = self._clock() - timedelta(days=days_to_keep)
        kept = [a for a in self._activities if a.created_at >= cutoff]
        removed = len(self._activities) - len(kept)
        self._activities = kept
        return removed

    def _find_view(self, user_id: str, opportunity_id: Optional[int]) -> Optional[UserActivity]:
        for activity in self._activities:
            if (
                activity.user_id == user_id
                and activity.activity_type == ActivityType.VIEWED_OPPORTUNITY
                and activity.resource_id == opportunity_id
            ):
                return activity
        return None

    def _recent_views(self, user_id: str, days_back: int) -> list[RecentlyViewed]:
        cutoff = self._clock() - timedelta(days=days_back)
        views = []
        for activity in self._activities:
            if (
                activity.user_id != user_id
                or activity.activity_type != ActivityType.VIEWED_OPPORTUNITY
                or activity.resource_type != ResourceType.OPPORTUNITY
                or activity.created_at < cutoff
            ):
                continue
            opportunity = self._opportunities.get(activity.resource_id)
            if opportunity is None or not opportunity.is_active:
                continue
            views.append(RecentlyViewed(opportunity=opportunity, viewed_at=activity.created_at))
        views.sort(key=lambda v: v.viewed_at, reverse=True)
        return views

    def _with_counts(self, community: Community) -> Community:
        opportunity_count = sum(
            1 for o in self._opportunities.values() if o.subreddit == community.name
        )
        return community.model_copy(update={"opportunity_count": opportunity_count})

    @staticmethod
    def _matches(opportunity: BusinessOpportunity, needle: str) -> bool:
        fields = (
            opportunity.main_title,
            opportunity.problem_description or "",
            opportunity.affected_audience or "",
            opportunity.subreddit,
        )
        return any(needle in value.lower() for value in fields)

    @classmethod
    def with_sample_data(cls, **kwargs) -> "InMemoryOpportunityStore":
        """A small fixed data set for local development."""
        now = utc_now()
        communities = [
            Community(id=1, name="smallbusiness", display_name="Small Business", subscriber_count=1_800_000, post_count=420),
            Community(id=2, name="freelance", display_name="Freelance", subscriber_count=450_000, post_count=180),
            Community(id=3, name="selfhosted", display_name="Self-Hosted", subscriber_count=390_000, post_count=150),
        ]
        opportunities = [
            BusinessOpportunity(
                id=1,
                main_title="Invoice chasing for solo consultants",
                problem_description="Freelancers lose hours every month following up on late invoices.",
                affected_audience="Freelancers and solo consultants",
                subreddit="freelance",
                business_impact_score=87.0,
                is_featured=True,
                tags=["finance", "automation"],
                solutions=[
                    Solution(id=1, title="Automated reminder sequences", solution_order=1),
                    Solution(id=2, title="Late fee calculator", solution_order=2),
                ],
                processed_at=now - timedelta(hours=2),
            ),
            BusinessOpportunity(
                id=2,
                main_title="Inventory forecasting for corner shops",
                problem_description="Owners over-order perishables without demand data.",
                affected_audience="Independent retailers",
                subreddit="smallbusiness",
                business_impact_score=74.0,
                tags=["retail", "analytics"],
                processed_at=now - timedelta(days=1),
            ),
            BusinessOpportunity(
                id=3,
                main_title="One-click backups for home servers",
                problem_description="Home lab users lose data after failed upgrades.",
                affected_audience="Self-hosting hobbyists",
                subreddit="selfhosted",
                business_impact_score=61.0,
                tags=["infrastructure"],
                processed_at=now - timedelta(days=3),
            ),
        ]
        return cls(
            communities=communities,
            opportunities=opportunities,
            total_posts=750,
            total_comments=9_400,
            total_clusters=40,
            processed_clusters=30,
            **kwargs,
        )
