"""Rewards bought with points and tasks that award them."""

import pytest

from courtbook.core.enums import LedgerAccountKind, LedgerReason
from courtbook.core.exceptions import (
    InsufficientFundsException,
    NotFoundException,
    TaskRecentlyCompletedException,
)
from courtbook.services.points_service import PointsService


@pytest.fixture
def points_service(db, clock, ledger_service):
    return PointsService(db, clock, ledger_service)


@pytest.fixture
def give_points(ledger_service):
    def _give(user_id, amount):
        ledger_service.earn(
            user_id=user_id, kind=LedgerAccountKind.POINTS, amount=amount, reason=LedgerReason.BONUS
        )

    return _give


def _points(ledger_service, user_id="user-1"):
    return ledger_service.get_balance(user_id=user_id, kind=LedgerAccountKind.POINTS)


def _entry(ledger_service, entry_id, user_id="user-1"):
    entries = ledger_service.list_entries(user_id=user_id, kind=LedgerAccountKind.POINTS)
    return next(e for e in entries if e.id == entry_id)


class TestRedeemReward:
    def test_redeeming_spends_points_and_records_the_reward(
        self, points_service, ledger_service, give_points
    ):
        give_points("user-1", 500)

        redemption = points_service.redeem_reward(user_id="user-1", reward_id="discount-5")

        assert redemption.points_spent == 450
        assert redemption.reward_id == "discount-5"
        assert _points(ledger_service) == 50
        entry = _entry(ledger_service, redemption.ledger_entry_id)
        assert entry.amount == -450
        assert entry.reason == LedgerReason.SPENT.value
        assert [r.id for r in points_service.list_redemptions("user-1")] == [redemption.id]

    def test_insufficient_points_records_nothing(self, points_service, ledger_service, give_points):
        give_points("user-1", 199)

        with pytest.raises(InsufficientFundsException) as exc_info:
            points_service.redeem_reward(user_id="user-1", reward_id="discount-2")

        assert exc_info.value.details["account"] == "points"
        assert exc_info.value.details["shortfall"] == 1
        assert _points(ledger_service) == 199
        assert points_service.list_redemptions("user-1") == []

    def test_unknown_reward(self, points_service, give_points):
        give_points("user-1", 5000)
        with pytest.raises(NotFoundException):
            points_service.redeem_reward(user_id="user-1", reward_id="free-lunch")

    def test_booking_points_can_be_redeemed(self, make_booking, points_service, ledger_service, give_points):
        make_booking(duration_hours=2)  # 20 points
        give_points("user-1", 180)

        points_service.redeem_reward(user_id="user-1", reward_id="discount-2")

        assert _points(ledger_service) == 0
        assert ledger_service.reconcile(user_id="user-1", kind=LedgerAccountKind.POINTS).consistent


class TestCompleteTask:
    def test_completion_awards_points(self, points_service, ledger_service):
        completion = points_service.complete_task(user_id="user-1", task_id="write-review")

        assert completion.points_awarded == 30
        assert _points(ledger_service) == 30
        entry = _entry(ledger_service, completion.ledger_entry_id)
        assert entry.amount == 30
        assert entry.reason == LedgerReason.EARNED.value

    def test_once_per_day(self, points_service, ledger_service, clock):
        points_service.complete_task(user_id="user-1", task_id="daily-login")

        clock.advance(hours=23, minutes=59)
        with pytest.raises(TaskRecentlyCompletedException):
            points_service.complete_task(user_id="user-1", task_id="daily-login")
        assert _points(ledger_service) == 10

        clock.advance(minutes=1)
        points_service.complete_task(user_id="user-1", task_id="daily-login")
        assert _points(ledger_service) == 20
        assert len(points_service.list_completions("user-1")) == 2

    def test_cooldown_is_per_task_and_per_user(self, points_service, ledger_service):
        points_service.complete_task(user_id="user-1", task_id="daily-login")
        points_service.complete_task(user_id="user-1", task_id="share-booking")
        points_service.complete_task(user_id="user-2", task_id="daily-login")

        assert _points(ledger_service) == 25
        assert _points(ledger_service, "user-2") == 10

    def test_unknown_task(self, points_service):
        with pytest.raises(NotFoundException):
            points_service.complete_task(user_id="user-1", task_id="climb-everest")


def test_catalogs_are_exposed(points_service):
    rewards = points_service.list_rewards()
    assert rewards[0].id == "discount-2"
    grouped = points_service.rewards_by_category()
    assert [r.points_cost for r in grouped["discounts"]] == [200, 450, 850]
    assert {t.id for t in points_service.list_tasks()} >= {"daily-login", "refer-friend"}
