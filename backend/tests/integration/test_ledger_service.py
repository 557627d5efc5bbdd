import pytest
from sqlalchemy import text

from courtbook.core.enums import LedgerAccountKind, LedgerReason
from courtbook.core.exceptions import InsufficientFundsException, ValidationException

CREDITS = LedgerAccountKind.CREDITS
POINTS = LedgerAccountKind.POINTS


def test_balance_of_unknown_account_is_zero(ledger_service):
    assert ledger_service.get_balance(user_id="nobody", kind=CREDITS) == 0
    assert ledger_service.fold_balance(user_id="nobody", kind=CREDITS) == 0


def test_entries_conserve_the_balance(ledger_service, clock):
    ledger_service.earn(user_id="user-1", kind=CREDITS, amount=50, reason=LedgerReason.BONUS)
    clock.advance(minutes=1)
    ledger_service.spend(user_id="user-1", kind=CREDITS, amount=20)
    clock.advance(minutes=1)
    ledger_service.refund(user_id="user-1", kind=CREDITS, amount=5)

    assert ledger_service.get_balance(user_id="user-1", kind=CREDITS) == 35
    reconciliation = ledger_service.reconcile(user_id="user-1", kind=CREDITS)
    assert reconciliation.consistent
    assert reconciliation.folded_balance == 35

    entries = ledger_service.list_entries(user_id="user-1", kind=CREDITS)
    assert [(e.amount, e.reason, e.balance_after) for e in entries] == [
        (5, "refunded", 35),
        (-20, "spent", 30),
        (50, "bonus", 50),
    ]


def test_accounts_are_separate(ledger_service):
    ledger_service.earn(user_id="user-1", kind=CREDITS, amount=10, reason=LedgerReason.BONUS)
    ledger_service.earn(user_id="user-1", kind=POINTS, amount=7)
    ledger_service.earn(user_id="user-2", kind=CREDITS, amount=3, reason=LedgerReason.BONUS)

    assert ledger_service.get_balance(user_id="user-1", kind=CREDITS) == 10
    assert ledger_service.get_balance(user_id="user-1", kind="points") == 7
    assert ledger_service.get_balance(user_id="user-2", kind=CREDITS) == 3
    assert len(ledger_service.list_entries(user_id="user-1")) == 2


def test_overdraw_is_rejected_without_an_entry(ledger_service):
    ledger_service.earn(user_id="user-1", kind=CREDITS, amount=10, reason=LedgerReason.BONUS)

    with pytest.raises(InsufficientFundsException) as exc_info:
        ledger_service.spend(user_id="user-1", kind=CREDITS, amount=11)

    assert exc_info.value.details["balance"] == 10
    assert ledger_service.get_balance(user_id="user-1", kind=CREDITS) == 10
    assert len(ledger_service.list_entries(user_id="user-1")) == 1


@pytest.mark.parametrize("amount", [0, -5, 1.5, True])
def test_amounts_must_be_positive_integers(ledger_service, amount):
    with pytest.raises(ValidationException):
        ledger_service.earn(user_id="user-1", kind=CREDITS, amount=amount)


def test_reason_direction_is_enforced(ledger_service):
    with pytest.raises(ValidationException):
        ledger_service.spend(user_id="user-1", kind=CREDITS, amount=1, reason=LedgerReason.BONUS)
    with pytest.raises(ValidationException):
        ledger_service.earn(user_id="user-1", kind=CREDITS, amount=1, reason=LedgerReason.SPENT)
    with pytest.raises(ValidationException):
        ledger_service.earn(user_id="user-1", kind="gold", amount=1)


def test_reverse_is_capped_at_balance(ledger_service):
    ledger_service.earn(user_id="user-1", kind=POINTS, amount=20)
    ledger_service.spend(user_id="user-1", kind=POINTS, amount=15)

    entry = ledger_service.reverse(user_id="user-1", kind=POINTS, amount=20)

    assert entry.amount == -5
    assert ledger_service.get_balance(user_id="user-1", kind=POINTS) == 0
    assert ledger_service.reverse(user_id="user-1", kind=POINTS, amount=20) is None


def test_reconcile_reports_drift(ledger_service, db):
    ledger_service.earn(user_id="user-1", kind=CREDITS, amount=10, reason=LedgerReason.BONUS)
    db.execute(
        text("UPDATE ledger_accounts SET balance = 99 WHERE user_id = :user_id"),
        {"user_id": "user-1"},
    )
    db.commit()
    db.expire_all()

    reconciliation = ledger_service.reconcile(user_id="user-1", kind=CREDITS)

    assert not reconciliation.consistent
    assert reconciliation.cached_balance == 99
    assert reconciliation.folded_balance == 10


def test_operation_metrics_are_recorded(ledger_service):
    ledger_service.earn(user_id="user-1", kind=CREDITS, amount=5, reason=LedgerReason.BONUS)
    with pytest.raises(InsufficientFundsException):
        ledger_service.spend(user_id="user-1", kind=CREDITS, amount=50)

    metrics = ledger_service.get_metrics()
    assert metrics["ledger_earn"]["success_count"] >= 1
    assert metrics["ledger_spend"]["failure_count"] >= 1
    assert metrics["ledger_spend"]["avg_time"] >= 0.0
