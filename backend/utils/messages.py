"""
Localized toast messages for lesson completion results
"""
from typing import Dict, Optional, Tuple

from config import settings

MESSAGES: Dict[str, Dict[str, Tuple[str, str]]] = {
    "id": {
        "completed": ("Lesson Selesai! 🎉", "Kamu mendapatkan {xp} XP.{level_up}"),
        "level_up": ("", " Level Up! Sekarang Level {level}! 🎉"),
        "repaired": (
            "XP Diperbaiki",
            "Progress sudah tersimpan sebelumnya, XP yang tertunda sebesar {xp} XP sudah ditambahkan.{level_up}"
        ),
        "already_completed": (
            "Lesson Sudah Diselesaikan",
            "Kamu sudah menyelesaikan lesson ini sebelumnya. XP sudah diberikan."
        ),
        "partial": (
            "Progress Disimpan",
            "Progress berhasil disimpan, tapi gagal menambahkan XP. Buka lesson ini lagi nanti untuk mencoba ulang. Error: {reason}"
        ),
        "failed": ("Error", "Gagal menyimpan progress: {reason}"),
        "rejected": ("Error", "User atau lesson tidak ditemukan."),
        "quiz_failed": (
            "Quiz Belum Sempurna",
            "Kamu menjawab {score} dari {total} pertanyaan dengan benar ({percentage}%). "
            "Minimal {min_score} benar untuk menyelesaikan lesson."
        ),
    },
    "en": {
        "completed": ("Lesson Complete! 🎉", "You earned {xp} XP.{level_up}"),
        "level_up": ("", " Level Up! You are now Level {level}! 🎉"),
        "repaired": (
            "XP Restored",
            "Your progress was already saved; the missing {xp} XP has now been added.{level_up}"
        ),
        "already_completed": (
            "Lesson Already Completed",
            "You have completed this lesson before. XP was already awarded."
        ),
        "partial": (
            "Progress Saved",
            "Your progress was saved, but adding XP failed. Open this lesson again later to retry. Error: {reason}"
        ),
        "failed": ("Error", "Failed to save progress: {reason}"),
        "rejected": ("Error", "User or lesson not found."),
        "quiz_failed": (
            "Quiz Not Passed",
            "You answered {score} of {total} questions correctly ({percentage}%). "
            "At least {min_score} correct answers are needed to complete the lesson."
        ),
    },
}


def resolve_locale(locale: Optional[str]) -> str:
    """Fall back to the default locale for unknown or missing values"""
    if locale:
        short = locale.split("-")[0].lower()
        if short in settings.SUPPORTED_LOCALES and short in MESSAGES:
            return short
    return settings.DEFAULT_LOCALE if settings.DEFAULT_LOCALE in MESSAGES else "en"


def render(key: str, locale: Optional[str] = None, **values) -> Tuple[str, str]:
    """Return the (title, description) pair for a message key"""
    catalog = MESSAGES[resolve_locale(locale)]
    title, description = catalog[key]
    return title, description.format(**values)
