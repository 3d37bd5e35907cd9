import pytest

from conftest import InMemoryDataStore, days_after_epoch
from services.leaderboard import LeaderboardRanker, rank_profiles
from utils.errors import StoreError


@pytest.fixture
def board() -> InMemoryDataStore:
    data = InMemoryDataStore()
    data.add_profile("ana", xp_points=500, created_at=days_after_epoch(3))
    data.add_profile("budi", xp_points=500, created_at=days_after_epoch(1))
    data.add_profile("citra", xp_points=900, created_at=days_after_epoch(5))
    data.add_profile("dewi", xp_points=20, created_at=days_after_epoch(0))
    data.add_profile("eko", xp_points=20, created_at=None)
    return data


def test_ranking_orders_by_xp_then_account_age(board: InMemoryDataStore) -> None:
    entries = rank_profiles(list(board.profiles.values()))
    assert [e.user_id for e in entries] == ["citra", "budi", "ana", "dewi", "eko"]
    assert [e.rank for e in entries] == [1, 2, 3, 4, 5]


def test_equal_xp_and_creation_time_falls_back_to_id() -> None:
    data = InMemoryDataStore()
    data.add_profile("zed", xp_points=10)
    data.add_profile("amy", xp_points=10)
    assert [e.user_id for e in rank_profiles(list(data.profiles.values()))] == ["amy", "zed"]


def test_top_is_limited(board: InMemoryDataStore) -> None:
    entries = LeaderboardRanker(board, limit=2, timeout=None).top()
    assert [e.user_id for e in entries] == ["citra", "budi"]
    assert entries[0].level == 4


def test_viewer_outside_page_still_gets_a_rank(board: InMemoryDataStore) -> None:
    page = LeaderboardRanker(board, limit=2, timeout=None).page(viewer_id="dewi")
    assert len(page.entries) == 2
    assert page.viewer_rank == 4
    assert page.viewer_in_page is False
    assert board.count("list_profiles_by_xp") == 1
    assert board.count("count_profiles_ahead") == 1


def test_undated_viewer_ranks_after_dated_peers(board: InMemoryDataStore) -> None:
    ranker = LeaderboardRanker(board, limit=1, timeout=None)
    assert ranker.rank_of("eko") == 5
    assert ranker.rank_of("dewi") == 4


def test_viewer_inside_page(board: InMemoryDataStore) -> None:
    page = LeaderboardRanker(board, limit=3, timeout=None).page(viewer_id="ana")
    assert page.viewer_rank == 3
    assert page.viewer_in_page is True
    assert board.count("list_profiles_by_xp") == 1


def test_unknown_viewer_has_no_rank(board: InMemoryDataStore) -> None:
    page = LeaderboardRanker(board, limit=3, timeout=None).page(viewer_id="ghost")
    assert page.viewer_rank is None


def test_store_errors_propagate(board: InMemoryDataStore) -> None:
    board.failures["list_profiles_by_xp"] = StoreError("down")
    with pytest.raises(StoreError):
        LeaderboardRanker(board, timeout=None).top()
