"""Service for Payments module: the payment journal."""

from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.database.locks import account_transaction
from src.core.documents.number_generator import DocumentNumberGenerator
from src.core.exceptions import (
    NonPositiveAmountError,
    NotFoundError,
    UnknownPaymentMethodError,
    UnknownPaymentTypeError,
    ValidationError,
)
from src.core.logger import get_logger
from src.modules.ledger.policy import JournalSnapshot
from src.modules.payments.models import (
    PaymentEvent,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)
from src.modules.payments.schemas import PaymentCreate, PaymentFilters
from src.shared.utils.money import has_sub_cent_digits, round_money

if TYPE_CHECKING:
    from src.modules.ledger.service import LedgerService

logger = get_logger(__name__)


def parse_payment_type(value: str | PaymentType) -> PaymentType:
    try:
        return PaymentType(str(value).strip().lower())
    except ValueError:
        raise UnknownPaymentTypeError(value)


def parse_payment_method(value: str | PaymentMethod) -> PaymentMethod:
    try:
        return PaymentMethod(str(value).strip().lower())
    except ValueError:
        raise UnknownPaymentMethodError(value)


class PaymentJournal:
    """
    Append-only journal of payment events.

    Every record/reverse recomputes all ledger accounts of the event's student
    period (a deactivated account and its replacement share one total) inside
    the same transaction and under their account locks, so no paid amount ever
    disagrees with the journal.
    """

    def __init__(self, db: AsyncSession, ledger: "LedgerService | None" = None):
        self.db = db
        self.audit = AuditService(db)
        self._ledger = ledger

    @property
    def ledger(self) -> "LedgerService":
        if self._ledger is None:
            from src.modules.ledger.service import LedgerService

            self._ledger = LedgerService(self.db)
        return self._ledger

    # --- Aggregation ---

    async def snapshot(self, student_id: int, academic_year: str, semester: int) -> JournalSnapshot:
        """Sum and count of non-reversed events for the student and period."""
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(PaymentEvent.amount), 0),
                func.count(PaymentEvent.id),
            ).where(
                PaymentEvent.student_id == student_id,
                PaymentEvent.academic_year == academic_year,
                PaymentEvent.semester == semester,
                PaymentEvent.is_reversed == False,
            )
        )
        total, count = result.one()
        return JournalSnapshot(
            paid_amount=round_money(Decimal(str(total or 0))),
            payment_count=int(count or 0),
        )

    async def aggregate(self, student_id: int, academic_year: str, semester: int) -> Decimal:
        return (await self.snapshot(student_id, academic_year, semester)).paid_amount

    async def payment_counts(self, student_ids: Iterable[int]) -> dict[tuple[int, str, int], int]:
        """Non-reversed event counts per (student, academic year, semester), in one query."""
        result = await self.db.execute(
            select(
                PaymentEvent.student_id,
                PaymentEvent.academic_year,
                PaymentEvent.semester,
                func.count(PaymentEvent.id),
            )
            .where(
                PaymentEvent.student_id.in_(list(student_ids)),
                PaymentEvent.is_reversed == False,
            )
            .group_by(PaymentEvent.student_id, PaymentEvent.academic_year, PaymentEvent.semester)
        )
        return {
            (student_id, academic_year, semester): count
            for student_id, academic_year, semester, count in result.all()
        }

    # --- Writes ---

    async def record(self, data: PaymentCreate, recorded_by_id: int) -> PaymentEvent:
        """Append a payment and recompute every account of the student's period."""
        if data.amount <= 0:
            raise NonPositiveAmountError(data.amount)
        if has_sub_cent_digits(data.amount):
            raise ValidationError(
                f"Payment amount cannot have more than two decimal places, got {data.amount}",
                field="amount",
            )
        amount = round_money(data.amount)
        payment_type = parse_payment_type(data.payment_type)
        payment_method = parse_payment_method(data.payment_method)

        await self.ledger.students.get_student(data.student_id)
        account = await self.ledger.get_active_account(
            data.student_id, data.academic_year, data.semester
        )
        period = (account.student_id, account.academic_year, account.semester)
        period_ids = await self.ledger.period_account_ids(*period)

        async with account_transaction(self.db, *period_ids):
            accounts = await self.ledger.lock_period_accounts(*period)
            account = next((a for a in accounts if a.id == account.id), None)
            if account is None or not account.is_active:
                raise NotFoundError("Active ledger account for student", data.student_id)

            number_gen = DocumentNumberGenerator(self.db)
            payment_number = await number_gen.next_payment_number(data.payment_date)

            event = PaymentEvent(
                payment_number=payment_number,
                student_id=account.student_id,
                account_id=account.id,
                academic_year=account.academic_year,
                semester=account.semester,
                amount=amount,
                payment_date=data.payment_date,
                due_date=data.due_date,
                payment_type=payment_type.value,
                payment_method=payment_method.value,
                status=(data.status or PaymentStatus.PAID).value,
                reference=data.reference,
                notes=data.notes,
                recorded_by_id=recorded_by_id,
                is_reversed=False,
            )
            self.db.add(event)
            await self.db.flush()

            await self.ledger.recompute_period(accounts, recorded_by_id)

            await self.audit.log(
                action=AuditAction.RECORD_PAYMENT,
                entity_type="PaymentEvent",
                entity_id=event.id,
                entity_identifier=payment_number,
                user_id=recorded_by_id,
                new_values={
                    "account_id": account.id,
                    "amount": str(amount),
                    "payment_type": payment_type.value,
                    "payment_method": payment_method.value,
                    "paid_amount": str(account.paid_amount),
                    "balance": str(account.balance),
                },
            )
            await self.db.commit()

        await self.db.refresh(event)
        logger.info(
            "payment.recorded",
            payment_id=event.id,
            payment_number=payment_number,
            account_id=account.id,
            amount=str(amount),
            balance=str(account.balance),
        )
        return event

    async def reverse(
        self, event_id: int, reversed_by_id: int, reason: str | None = None
    ) -> PaymentEvent:
        """
        Exclude an event from aggregation. The row stays for audit.

        Reversing a missing or already reversed event is NotFoundError.
        """
        event = await self._get_unreversed(event_id)
        period = (event.student_id, event.academic_year, event.semester)
        period_ids = await self.ledger.period_account_ids(*period)

        async with account_transaction(self.db, event.account_id, *period_ids):
            accounts = await self.ledger.lock_period_accounts(*period)
            account = next((a for a in accounts if a.id == event.account_id), None)
            if account is None:
                raise NotFoundError("LedgerAccount", event.account_id)
            # Re-check under the lock: a concurrent reversal may have won
            event = await self._get_unreversed(event_id, refresh=True)

            event.is_reversed = True
            event.reversed_at = datetime.now(timezone.utc)
            event.reversed_by_id = reversed_by_id
            event.reversal_reason = reason
            await self.db.flush()

            await self.ledger.recompute_period(accounts, reversed_by_id)

            await self.audit.log(
                action=AuditAction.REVERSE_PAYMENT,
                entity_type="PaymentEvent",
                entity_id=event.id,
                entity_identifier=event.payment_number,
                user_id=reversed_by_id,
                old_values={"is_reversed": False},
                new_values={
                    "is_reversed": True,
                    "paid_amount": str(account.paid_amount),
                    "balance": str(account.balance),
                },
                comment=reason,
            )
            await self.db.commit()

        await self.db.refresh(event)
        logger.info(
            "payment.reversed",
            payment_id=event.id,
            account_id=account.id,
            amount=str(event.amount),
            balance=str(account.balance),
        )
        return event

    # --- Reads ---

    async def get_event(self, event_id: int) -> PaymentEvent:
        result = await self.db.execute(select(PaymentEvent).where(PaymentEvent.id == event_id))
        event = result.scalar_one_or_none()
        if not event:
            raise NotFoundError("PaymentEvent", event_id)
        return event

    async def _get_unreversed(self, event_id: int, refresh: bool = False) -> PaymentEvent:
        query = select(PaymentEvent).where(PaymentEvent.id == event_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        event = (await self.db.execute(query)).scalar_one_or_none()
        if not event or event.is_reversed:
            raise NotFoundError("PaymentEvent", event_id)
        return event

    async def list_events(self, filters: PaymentFilters) -> tuple[list[PaymentEvent], int]:
        """List journal entries with filters."""
        query = select(PaymentEvent)

        if filters.student_id:
            query = query.where(PaymentEvent.student_id == filters.student_id)
        if filters.academic_year:
            query = query.where(PaymentEvent.academic_year == filters.academic_year)
        if filters.semester:
            query = query.where(PaymentEvent.semester == filters.semester)
        if filters.payment_type:
            query = query.where(
                PaymentEvent.payment_type == parse_payment_type(filters.payment_type).value
            )
        if filters.payment_method:
            query = query.where(
                PaymentEvent.payment_method == parse_payment_method(filters.payment_method).value
            )
        if not filters.include_reversed:
            query = query.where(PaymentEvent.is_reversed == False)
        if filters.date_from:
            query = query.where(PaymentEvent.payment_date >= filters.date_from)
        if filters.date_to:
            query = query.where(PaymentEvent.payment_date <= filters.date_to)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(PaymentEvent.payment_date.desc(), PaymentEvent.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def history(
        self, student_id: int, include_reversed: bool = True
    ) -> tuple[list[PaymentEvent], Decimal, int]:
        """
        All payments of a student, newest first.

        Returns (events, total of non-reversed amounts, reversed count).
        """
        await self.ledger.students.get_student(student_id)

        query = select(PaymentEvent).where(PaymentEvent.student_id == student_id)
        if not include_reversed:
            query = query.where(PaymentEvent.is_reversed == False)
        query = query.order_by(PaymentEvent.payment_date.desc(), PaymentEvent.id.desc())
        events = list((await self.db.execute(query)).scalars().all())

        total = round_money(sum((e.amount for e in events if not e.is_reversed), Decimal("0")))
        reversed_count = sum(1 for e in events if e.is_reversed)
        return events, total, reversed_count
