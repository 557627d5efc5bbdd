import pytest

from courtbook.core import catalog
from courtbook.core.enums import Sport
from courtbook.core.exceptions import NotFoundException, ValidationException


def test_inventory():
    assert catalog.court_ids("badminton") == tuple(f"badminton-{n}" for n in range(1, 9))
    assert catalog.court_ids(Sport.PICKLEBALL) == tuple(f"pickleball-{n}" for n in range(1, 5))
    assert catalog.sport_for_court("pickleball-3") == Sport.PICKLEBALL
    assert catalog.sport_for_court("pickleball-9") is None


@pytest.mark.parametrize(
    "sport, duration, courts, expected",
    [
        ("badminton", 1, 1, 12),
        ("badminton", 2, 1, 24),
        ("badminton", 2, 3, 72),
        ("pickleball", 1, 1, 14),
        ("pickleball", 5, 4, 280),
    ],
)
def test_compute_price(sport, duration, courts, expected):
    assert catalog.compute_price(sport, duration, courts) == expected


def test_slot_hours_cover_opening_to_last_start():
    hours = catalog.slot_hours()
    assert hours[0] == 6
    assert hours[-1] == 21
    assert len(hours) == 16


def test_unknown_sport_is_a_validation_error():
    with pytest.raises(ValidationException):
        catalog.get_sport("tennis")


def test_credit_packages():
    regular = catalog.get_credit_package("regular")
    assert (regular.credits, regular.price_usd, regular.is_popular) == (110, 100, True)
    with pytest.raises(NotFoundException):
        catalog.get_credit_package("platinum")


def test_rewards_catalog():
    assert catalog.get_reward("free-hour").points_cost == 1200
    grouped = catalog.rewards_by_category()
    assert list(grouped) == ["discounts", "features", "vouchers"]
    assert [r.id for r in grouped["vouchers"]] == ["weekend-discount", "free-hour"]
    with pytest.raises(NotFoundException):
        catalog.get_reward("free-lunch")


def test_points_tasks_catalog():
    assert catalog.get_points_task("daily-login").points_reward == 10
    assert all(task.points_reward > 0 for task in catalog.POINTS_TASKS)
    with pytest.raises(NotFoundException):
        catalog.get_points_task("climb-everest")
