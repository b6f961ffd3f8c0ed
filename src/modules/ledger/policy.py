"""
Account status policy and recomputation of derived ledger fields.

These functions are pure with respect to the journal: they take the journal's
aggregate as a ``JournalSnapshot`` and only ever write to the account object
they were given.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from src.modules.ledger.models import AccountStatus, LedgerAccount
from src.shared.utils.money import ZERO, round_money


@dataclass(frozen=True)
class JournalSnapshot:
    """Aggregate of non-reversed payment events for one student and period."""

    paid_amount: Decimal = ZERO
    payment_count: int = 0


def derive_status(
    *,
    balance: Decimal,
    paid_amount: Decimal,
    payment_count: int,
    due_date: date | None,
    today: date,
    is_active: bool = True,
) -> AccountStatus:
    """
    Status of an account from its numbers and the calendar.

    Order matters: settled accounts first, then overdue (which wins over both
    partial and pending), then partial, then pending. Deactivated accounts are
    never reported overdue.
    """
    if balance <= 0:
        return AccountStatus.PAID if payment_count > 0 else AccountStatus.NORMAL

    if is_active and due_date is not None and today > due_date:
        return AccountStatus.OVERDUE

    if paid_amount > 0:
        return AccountStatus.PARTIAL

    return AccountStatus.PENDING


def compute_total_due(account: LedgerAccount) -> Decimal:
    """tuition + other charges + forwarded - discount - scholarship amount."""
    return round_money(
        account.tuition_fee
        + account.other_charges
        + account.forwarded
        - account.discount
        - account.scholarship_amount
    )


def recompute(
    account: LedgerAccount,
    snapshot: JournalSnapshot,
    *,
    due_date: date | None = None,
    today: date | None = None,
) -> LedgerAccount:
    """Rewrite total_due, paid_amount, balance and status on ``account``."""
    today = today or date.today()

    total_due = compute_total_due(account)
    paid_amount = round_money(snapshot.paid_amount)
    balance = round_money(total_due - paid_amount)

    account.total_due = total_due
    account.paid_amount = paid_amount
    account.balance = balance
    account.status = derive_status(
        balance=balance,
        paid_amount=paid_amount,
        payment_count=snapshot.payment_count,
        due_date=due_date,
        today=today,
        is_active=account.is_active,
    ).value
    return account
