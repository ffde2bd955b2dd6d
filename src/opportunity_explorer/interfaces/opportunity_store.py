"""Opportunity Store Port (Interface)."""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from opportunity_explorer.domain.models import (
    Bookmark,
    BusinessOpportunity,
    Community,
    DashboardStats,
    RecentlyViewed,
    UserActivity,
    UserDashboardData,
)


class OpportunityStorePort(ABC):
    """
    Port (interface) for read access to pipeline output.

    Subreddits, opportunities and counts are produced by an external
    pipeline; only user bookmarks and user activity are written through
    this port.
    """

    @abstractmethod
    async def get_communities(
        self,
        limit: int = 20,
        search_term: Optional[str] = None,
    ) -> tuple[list[Community], int]:
        """Get communities by subscriber count, plus the total number tracked."""
        pass

    @abstractmethod
    async def get_simple_subreddits(self, limit: int = 5) -> list[Community]:
        """Get the largest subreddits without activity counts."""
        pass

    @abstractmethod
    async def get_dashboard_stats(self) -> DashboardStats:
        """Get aggregated pipeline counts."""
        pass

    @abstractmethod
    async def list_opportunities(
        self,
        limit: int = 20,
        offset: int = 0,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> list[BusinessOpportunity]:
        """
        List active opportunities.

        ``search`` matches title, problem description, affected audience and
        subreddit name case-insensitively and orders by impact score.
        Otherwise results are ordered by most recently processed.
        """
        pass

    @abstractmethod
    async def get_opportunity(self, opportunity_id: int) -> Optional[BusinessOpportunity]:
        """Get a single opportunity, or None if it does not exist."""
        pass

    @abstractmethod
    async def get_bookmarks(self, user_id: str, limit: int = 20) -> list[Bookmark]:
        """Get a user's saved opportunities, newest first."""
        pass

    @abstractmethod
    async def add_bookmark(self, user_id: str, opportunity_id: int) -> bool:
        """
        Save an opportunity for a user.

        Returns False if it was already saved.

        Raises:
            OpportunityNotFoundError: If the opportunity does not exist
        """
        pass

    @abstractmethod
    async def remove_bookmark(self, user_id: str, opportunity_id: int) -> bool:
        """Remove a saved opportunity. Returns False if it was not saved."""
        pass

    @abstractmethod
    async def is_bookmarked(self, user_id: str, opportunity_id: int) -> bool:
        pass

    @abstractmethod
    async def count_bookmarks(self, user_id: str) -> int:
        pass

    # ===========================================
    # USER ACTIVITY
    # ===========================================

    @abstractmethod
    async def track_activity(self, activity: UserActivity) -> None:
        """
        Record an activity.

        A repeated opportunity view updates the timestamp and metadata of the
        existing entry instead of adding a new one.
        """
        pass

    @abstractmethod
    async def get_recently_viewed(
        self,
        user_id: str,
        limit: int = 5,
        days_back: int = 2,
    ) -> list[RecentlyViewed]:
        """Active opportunities the user viewed in the last ``days_back`` days, newest first."""
        pass

    @abstractmethod
    async def count_recently_viewed(self, user_id: str, days_back: int = 2) -> int:
        pass

    @abstractmethod
    async def get_activity_history(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[UserActivity]:
        """Get a user's activity log, newest first."""
        pass

    @abstractmethod
    async def clear_activity(self, user_id: str) -> int:
        """Delete a user's activity log. Returns the number of entries removed."""
        pass

    @abstractmethod
    async def cleanup_activities(self, days_to_keep: int = 365) -> int:
        """Delete every activity older than ``days_to_keep`` days. Returns the number removed."""
        pass

    async def get_user_dashboard_data(
        self,
        user_id: str,
        recent_days_back: int = 2,
    ) -> UserDashboardData:
        """Recently viewed and saved opportunities with their totals."""
        recently_viewed, bookmarks, recently_viewed_count, bookmarked_count = await asyncio.gather(
            self.get_recently_viewed(user_id, limit=5, days_back=recent_days_back),
            self.get_bookmarks(user_id, limit=5),
            self.count_recently_viewed(user_id, days_back=recent_days_back),
            self.count_bookmarks(user_id),
        )
        return UserDashboardData(
            recently_viewed=recently_viewed,
            bookmarks=bookmarks,
            recently_viewed_count=recently_viewed_count,
            bookmarked_count=bookmarked_count,
            recent_days_back=recent_days_back,
        )
