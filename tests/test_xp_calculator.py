import pytest

from services.xp_calculator import XPCalculator


@pytest.mark.parametrize(
    ("xp", "level"),
    [(0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (899, 3), (900, 4), (10_000, 11)],
)
def test_level_from_xp(xp: int, level: int) -> None:
    assert XPCalculator.get_level_from_xp(xp) == level


def test_level_is_monotonic_and_never_below_one() -> None:
    levels = [XPCalculator.get_level_from_xp(xp) for xp in range(0, 5000, 7)]
    assert levels[0] == 1
    assert all(a <= b for a, b in zip(levels, levels[1:]))


def test_negative_xp_is_level_one() -> None:
    assert XPCalculator.get_level_from_xp(-50) == 1


def test_exact_square_boundaries_are_not_lost_to_float_rounding() -> None:
    # 100 * k^2 must land exactly on level k + 1 for large k
    for k in (10, 1_000, 100_000):
        assert XPCalculator.get_level_from_xp(100 * k * k) == k + 1
        assert XPCalculator.get_level_from_xp(100 * k * k - 1) == k


def test_check_level_up() -> None:
    assert XPCalculator.check_level_up(90, 100) == (True, 1, 2)
    assert XPCalculator.check_level_up(0, 10) == (False, 1, 1)
    assert XPCalculator.check_level_up(350, 450) == (True, 2, 3)


def test_progress_to_next_level() -> None:
    progress = XPCalculator.get_xp_to_next_level(150)
    assert progress.level == 2
    assert progress.xp_for_next == 200
    assert progress.xp_into_level == 150
    assert progress.xp_needed == 50
    assert progress.progress_percent == 75


def test_progress_uses_given_cached_level() -> None:
    progress = XPCalculator.get_xp_to_next_level(30, level=1)
    assert progress.xp_for_next == 100
    assert progress.xp_into_level == 30
    assert progress.progress_percent == 30


def test_progress_for_new_profile() -> None:
    progress = XPCalculator.get_xp_to_next_level(0)
    assert progress.level == 1
    assert progress.xp_needed == 100
    assert progress.progress_percent == 0
