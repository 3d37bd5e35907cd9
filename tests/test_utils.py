import time

import pytest

from config import settings
from utils.errors import RemoteTimeout, StoreError
from utils.messages import render, resolve_locale
from utils.timeouts import call_with_timeout


def test_call_with_timeout_returns_value() -> None:
    assert call_with_timeout(1.0, lambda a, b: a + b, 2, 3) == 5


def test_call_with_timeout_gives_up_waiting() -> None:
    with pytest.raises(RemoteTimeout):
        call_with_timeout(0.05, time.sleep, 0.5)


def test_call_with_timeout_propagates_errors() -> None:
    def broken():
        raise StoreError("down")

    with pytest.raises(StoreError, match="down"):
        call_with_timeout(1.0, broken)


def test_no_timeout_runs_inline() -> None:
    assert call_with_timeout(None, len, "abc") == 3


@pytest.mark.parametrize(
    ("locale", "expected"),
    [("en", "en"), ("en-US", "en"), ("ID", "id"), ("fr", "id"), (None, "id")],
)
def test_resolve_locale(locale, expected) -> None:
    assert resolve_locale(locale) == expected


def test_render_fills_placeholders() -> None:
    title, description = render("failed", "en", reason="disk full")
    assert title == "Error"
    assert description == "Failed to save progress: disk full"


def test_locale_outside_supported_list_uses_default(monkeypatch) -> None:
    monkeypatch.setattr(settings, "SUPPORTED_LOCALES", ["id"])
    assert resolve_locale("en") == "id"
    assert render("rejected", "en")[1] == "User atau lesson tidak ditemukan."
