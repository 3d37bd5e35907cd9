"""
Leaderboard Ranker - read-time ranking of profiles by experience
"""
from datetime import datetime
from typing import List, Optional, Sequence
import logging

from config import settings
from models.progress import LeaderboardEntry, LeaderboardPage
from models.user import UserProfile
from utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)

# Profiles without a creation time sort after every dated profile with the same XP
_UNDATED = datetime.max


def ranking_key(profile: UserProfile):
    """xp_points descending, then account creation order, then id"""
    return (-profile.xp_points, profile.created_at or _UNDATED, profile.id)


def rank_profiles(profiles: Sequence[UserProfile]) -> List[LeaderboardEntry]:
    ordered = sorted(profiles, key=ranking_key)
    return [
        LeaderboardEntry(
            rank=position,
            user_id=profile.id,
            display_name=profile.display_name,
            avatar_url=profile.avatar_url,
            xp_points=profile.xp_points,
            level=profile.level,
            streak_days=profile.streak_days
        )
        for position, profile in enumerate(ordered, start=1)
    ]


class LeaderboardRanker:

    def __init__(self, store, limit: int = settings.LEADERBOARD_LIMIT,
                 timeout: Optional[float] = settings.REMOTE_CALL_TIMEOUT_SECONDS):
        self.store = store
        self.limit = limit
        self.timeout = timeout

    def top(self) -> List[LeaderboardEntry]:
        """Top ``limit`` profiles with 1-based ranks"""
        profiles = call_with_timeout(self.timeout, self.store.list_profiles_by_xp, self.limit)
        entries = rank_profiles(profiles)[:self.limit]
        logger.debug(f"Leaderboard fetched: {len(entries)} entries")
        return entries

    def rank_of(self, user_id: str) -> Optional[int]:
        """Rank of a user in the full ordering, not just the displayed page"""
        profile = call_with_timeout(self.timeout, self.store.get_profile, user_id)
        if profile is None:
            return None
        ahead = call_with_timeout(self.timeout, self.store.count_profiles_ahead, profile)
        return ahead + 1

    def page(self, viewer_id: Optional[str] = None) -> LeaderboardPage:
        entries = self.top()
        viewer_rank = None
        in_page = False
        if viewer_id:
            viewer_rank = next((e.rank for e in entries if e.user_id == viewer_id), None)
            in_page = viewer_rank is not None
            if viewer_rank is None:
                viewer_rank = self.rank_of(viewer_id)
        return LeaderboardPage(
            entries=entries,
            limit=self.limit,
            viewer_rank=viewer_rank,
            viewer_in_page=in_page
        )
