"""
XP and Level Calculator Service
"""
from config import settings
from models.progress import LevelProgress
from typing import Tuple
import math


class XPCalculator:
    """Map accumulated XP to levels and progress-bar figures"""

    # level = floor(sqrt(xp / 100)) + 1
    #   0 XP -> 1, 100 XP -> 2, 400 XP -> 3, 900 XP -> 4, ...
    XP_STEP = settings.LEVEL_XP_STEP

    @staticmethod
    def get_level_from_xp(total_xp: int) -> int:
        """Determine level from total XP"""
        # isqrt(xp // step) == floor(sqrt(xp / step)) without float rounding
        return math.isqrt(max(total_xp, 0) // XPCalculator.XP_STEP) + 1

    @staticmethod
    def xp_threshold_for_level(level: int) -> int:
        """XP span of the progress bar shown for a level"""
        return level * XPCalculator.XP_STEP

    @staticmethod
    def check_level_up(old_xp: int, new_xp: int) -> Tuple[bool, int, int]:
        """
        Check if user leveled up

        Returns:
            Tuple of (level_up: bool, old_level: int, new_level: int)
        """
        old_level = XPCalculator.get_level_from_xp(old_xp)
        new_level = XPCalculator.get_level_from_xp(new_xp)
        return new_level > old_level, old_level, new_level

    @staticmethod
    def get_xp_to_next_level(current_xp: int, level: int = None) -> LevelProgress:
        """
        Get XP progress to next level, as drawn on the profile and lesson screens

        ``level`` defaults to the level derived from ``current_xp``; pass the
        cached profile level to render exactly what is stored.
        """
        current_xp = max(current_xp or 0, 0)
        if level is None:
            level = XPCalculator.get_level_from_xp(current_xp)

        xp_for_next = XPCalculator.xp_threshold_for_level(level)
        xp_into_level = current_xp % xp_for_next
        progress = int((xp_into_level / xp_for_next) * 100)

        return LevelProgress(
            level=level,
            xp_current=current_xp,
            xp_into_level=xp_into_level,
            xp_for_next=xp_for_next,
            xp_needed=xp_for_next - xp_into_level,
            progress_percent=progress
        )
