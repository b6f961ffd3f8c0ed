"""Tests for LedgerService: opening, promotion, cadence, activation, re-pricing."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog
from src.core.exceptions import (
    DependencyError,
    DiscountExceedsFeeError,
    DuplicateAccountError,
    InvalidFeeError,
    InvalidPaidTypeError,
    NotFoundError,
    ValidationError,
)
from src.modules.ledger.adjustments import AdjustmentService
from src.modules.ledger.models import AccountStatus, DiscountValueType, PaidType
from src.modules.ledger.schemas import (
    AccountCreate,
    AccountFilters,
    AccountPromote,
    AccountReprice,
    DiscountApply,
    ScholarshipApply,
)
from src.modules.ledger.service import LedgerService, parse_paid_type
from src.modules.payments.schemas import PaymentCreate
from src.modules.payments.service import PaymentJournal
from tests.conftest import (
    ACADEMIC_YEAR,
    ACTOR_ID,
    create_student,
    set_payment_deadline,
    set_tuition_price,
)


class TestParsePaidType:
    def test_accepts_values_and_labels(self):
        assert parse_paid_type("per_month") == PaidType.PER_MONTH
        assert parse_paid_type("Per Month") == PaidType.PER_MONTH
        assert parse_paid_type("per-year") == PaidType.PER_YEAR
        assert parse_paid_type(PaidType.ONE_TIME) == PaidType.ONE_TIME

    def test_rejects_unknown(self):
        with pytest.raises(InvalidPaidTypeError):
            parse_paid_type("weekly")


class TestCreateAccount:
    async def test_uses_catalog_price(self, db_session: AsyncSession):
        student = await create_student(db_session)
        await set_tuition_price(db_session, "1000.00")

        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1),
            ACTOR_ID,
        )

        assert account.id is not None
        assert account.tuition_fee == Decimal("1000.00")
        assert account.total_due == Decimal("1000.00")
        assert account.paid_amount == Decimal("0.00")
        assert account.balance == Decimal("1000.00")
        assert account.status == AccountStatus.PENDING.value
        assert account.paid_type == PaidType.PER_SEMESTER.value
        assert account.is_active is True
        assert account.created_by_id == ACTOR_ID

    async def test_explicit_fee_overrides_catalog(self, db_session: AsyncSession):
        student = await create_student(db_session)

        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(
                student_id=student.id,
                academic_year=ACADEMIC_YEAR,
                semester=1,
                tuition_fee="750.50",
                paid_type=PaidType.PER_MONTH,
            ),
            ACTOR_ID,
        )

        assert account.tuition_fee == Decimal("750.50")
        assert account.paid_type == PaidType.PER_MONTH.value

    async def test_zero_fee_account_is_normal(self, db_session: AsyncSession):
        student = await create_student(db_session)

        account = await LedgerService(db_session).create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="0"
            ),
            ACTOR_ID,
        )

        assert account.balance == Decimal("0.00")
        assert account.status == AccountStatus.NORMAL.value

    async def test_negative_fee_rejected(self, db_session: AsyncSession):
        student = await create_student(db_session)

        with pytest.raises(InvalidFeeError):
            await LedgerService(db_session).create_account(
                AccountCreate(
                    student_id=student.id,
                    academic_year=ACADEMIC_YEAR,
                    semester=1,
                    tuition_fee="-1.00",
                ),
                ACTOR_ID,
            )

    async def test_missing_catalog_price_is_dependency_error(self, db_session: AsyncSession):
        student = await create_student(db_session)

        with pytest.raises(DependencyError) as exc_info:
            await LedgerService(db_session).create_account(
                AccountCreate(student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1),
                ACTOR_ID,
            )
        assert exc_info.value.details["dependency"] == "catalog"

    async def test_unknown_student(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await LedgerService(db_session).create_account(
                AccountCreate(
                    student_id=9999, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="100"
                ),
                ACTOR_ID,
            )

    async def test_second_active_account_for_period_rejected(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        data = AccountCreate(
            student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="100"
        )
        await service.create_account(data, ACTOR_ID)

        with pytest.raises(DuplicateAccountError):
            await service.create_account(data, ACTOR_ID)

    async def test_creation_is_audited(self, db_session: AsyncSession):
        student = await create_student(db_session)
        account = await LedgerService(db_session).create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="100"
            ),
            ACTOR_ID,
        )

        result = await db_session.execute(
            select(AuditLog).where(
                AuditLog.entity_type == "LedgerAccount", AuditLog.entity_id == account.id
            )
        )
        log = result.scalar_one()
        assert log.action == "CREATE"
        assert log.user_id == ACTOR_ID
        assert log.new_values["tuition_fee"] == "100.00"


class TestSnapshot:
    async def test_status_turns_overdue_without_writes(self, db_session: AsyncSession):
        student = await create_student(db_session)
        await set_payment_deadline(db_session, date(2026, 1, 31))
        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="500"
            ),
            ACTOR_ID,
        )
        stored_status = account.status
        version = account.version

        before = await service.snapshot(account.id, today=date(2026, 1, 15))
        after = await service.snapshot(account.id, today=date(2026, 2, 1))

        assert before.status == AccountStatus.PENDING
        assert after.status == AccountStatus.OVERDUE
        assert after.due_date == date(2026, 1, 31)
        # Reading twice changes nothing
        refreshed = await service.get_account(account.id)
        assert refreshed.status == stored_status
        assert refreshed.version == version

    async def test_unknown_account(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await LedgerService(db_session).snapshot(12345)


class TestListAccounts:
    async def test_filters(self, db_session: AsyncSession):
        first = await create_student(db_session, student_number="STU-1")
        second = await create_student(db_session, student_number="STU-2")
        service = LedgerService(db_session)
        for student in (first, second):
            await service.create_account(
                AccountCreate(
                    student_id=student.id,
                    academic_year=ACADEMIC_YEAR,
                    semester=1,
                    tuition_fee="100",
                ),
                ACTOR_ID,
            )

        accounts, total = await service.list_accounts(AccountFilters(student_id=second.id))
        assert total == 1
        assert accounts[0].student_id == second.id

        accounts, total = await service.list_accounts(AccountFilters(is_active=True))
        assert total == 2

    async def test_page_snapshots_use_batched_lookups(self, db_session: AsyncSession):
        await set_payment_deadline(db_session, date(2026, 1, 31))
        service = LedgerService(db_session)
        journal = PaymentJournal(db_session, ledger=service)
        for number in range(5):
            student = await create_student(db_session, student_number=f"STU-{number}")
            await service.create_account(
                AccountCreate(
                    student_id=student.id,
                    academic_year=ACADEMIC_YEAR,
                    semester=1,
                    tuition_fee="100",
                ),
                ACTOR_ID,
            )
            if number % 2 == 0:
                await journal.record(
                    PaymentCreate(
                        student_id=student.id,
                        amount="40.00",
                        payment_date=date(2026, 1, 10),
                        payment_type="tuition",
                        payment_method="cash",
                    ),
                    ACTOR_ID,
                )
        accounts, _ = await service.list_accounts(AccountFilters())
        today = date(2026, 2, 15)

        statements: list[str] = []

        def _count(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        sync_engine = db_session.bind.sync_engine
        event.listen(sync_engine, "before_cursor_execute", _count)
        try:
            snapshots = await service.snapshots(accounts, today=today)
        finally:
            event.remove(sync_engine, "before_cursor_execute", _count)

        # one calendar lookup for the shared period, one grouped journal count
        assert len(statements) == 2
        for snapshot in snapshots:
            single = await service.snapshot(snapshot.account.id, today=today)
            assert snapshot.status == single.status
            assert snapshot.due_date == date(2026, 1, 31)
        assert {s.status for s in snapshots} == {AccountStatus.OVERDUE}

    async def test_empty_page_snapshots(self, db_session: AsyncSession):
        assert await LedgerService(db_session).snapshots([]) == []



class TestPaidType:
    async def test_changes_cadence_only(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="900"
            ),
            ACTOR_ID,
        )

        updated = await service.set_paid_type(account.id, "Per Year", ACTOR_ID)

        assert updated.paid_type == PaidType.PER_YEAR.value
        assert updated.total_due == Decimal("900.00")
        assert updated.balance == Decimal("900.00")

    async def test_unknown_cadence_leaves_account_unchanged(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="900"
            ),
            ACTOR_ID,
        )

        with pytest.raises(InvalidPaidTypeError):
            await service.set_paid_type(account.id, "fortnightly", ACTOR_ID)

        account = await service.get_account(account.id)
        assert account.paid_type == PaidType.PER_SEMESTER.value


class TestActivation:
    async def test_deactivate_and_reactivate(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="900"
            ),
            ACTOR_ID,
        )

        account = await service.deactivate(account.id, ACTOR_ID, reason="Withdrawn")
        assert account.is_active is False
        with pytest.raises(ValidationError):
            await service.deactivate(account.id, ACTOR_ID)

        account = await service.reactivate(account.id, ACTOR_ID)
        assert account.is_active is True

    async def test_deactivated_account_frees_the_period(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        data = AccountCreate(
            student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="900"
        )
        old = await service.create_account(data, ACTOR_ID)
        await service.deactivate(old.id, ACTOR_ID)

        new = await service.create_account(data, ACTOR_ID)
        assert new.id != old.id

        # The old one cannot come back while the new one is active
        with pytest.raises(DuplicateAccountError):
            await service.reactivate(old.id, ACTOR_ID)

    async def test_deactivated_account_rejects_payments(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="900"
            ),
            ACTOR_ID,
        )
        await service.deactivate(account.id, ACTOR_ID)

        with pytest.raises(NotFoundError):
            await PaymentJournal(db_session).record(
                PaymentCreate(
                    student_id=student.id,
                    amount="100.00",
                    payment_date=date(2026, 1, 10),
                    payment_type="tuition",
                    payment_method="cash",
                ),
                ACTOR_ID,
            )


class TestReprice:
    async def test_scholarship_follows_new_fee_discount_does_not(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        adjustments = AdjustmentService(db_session, ledger=service)
        account = await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="1000"
            ),
            ACTOR_ID,
        )
        await adjustments.apply_discount(
            account.id,
            DiscountApply(value_type=DiscountValueType.PERCENTAGE, value="10"),
            ACTOR_ID,
        )
        await adjustments.apply_scholarship(
            account.id, ScholarshipApply(percentage="20"), ACTOR_ID
        )

        account = await service.reprice(account.id, AccountReprice(tuition_fee="2000"), ACTOR_ID)

        assert account.tuition_fee == Decimal("2000.00")
        assert account.discount == Decimal("100.00")
        assert account.scholarship_amount == Decimal("400.00")
        assert account.total_due == Decimal("1500.00")

    async def test_reprice_from_catalog(self, db_session: AsyncSession):
        student = await create_student(db_session)
        price = await set_tuition_price(db_session, "1000.00")
        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1),
            ACTOR_ID,
        )

        # Catalog price changes after the account was opened
        price.amount = Decimal("1100.00")
        await db_session.commit()

        account = await service.get_account(account.id)
        assert account.tuition_fee == Decimal("1000.00")

        account = await service.reprice(account.id, AccountReprice(), ACTOR_ID)
        assert account.tuition_fee == Decimal("1100.00")
        assert account.balance == Decimal("1100.00")

    async def test_fee_below_discount_rejected(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        account = await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="1000"
            ),
            ACTOR_ID,
        )
        await AdjustmentService(db_session, ledger=service).apply_discount(
            account.id, DiscountApply(value_type=DiscountValueType.FIXED, value="300"), ACTOR_ID
        )

        with pytest.raises(DiscountExceedsFeeError):
            await service.reprice(account.id, AccountReprice(tuition_fee="200"), ACTOR_ID)

        account = await service.get_account(account.id)
        assert account.tuition_fee == Decimal("1000.00")


class TestPromote:
    async def test_balance_is_carried_forward(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        first = await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="1000"
            ),
            ACTOR_ID,
        )
        await PaymentJournal(db_session, ledger=service).record(
            PaymentCreate(
                student_id=student.id,
                amount="700.00",
                payment_date=date.today(),
                payment_type="tuition",
                payment_method="bank_transfer",
            ),
            ACTOR_ID,
        )

        second = await service.promote(
            AccountPromote(
                student_id=student.id,
                academic_year=ACADEMIC_YEAR,
                semester=2,
                tuition_fee="1000",
            ),
            ACTOR_ID,
        )

        first = await service.get_account(first.id)
        assert first.is_active is False
        assert second.is_active is True
        assert second.semester == 2
        assert second.forwarded == Decimal("300.00")
        assert second.total_due == Decimal("1300.00")
        assert second.paid_amount == Decimal("0.00")

        active = await service.get_active_account(student.id)
        assert active.id == second.id

    async def test_credit_is_carried_as_negative(self, db_session: AsyncSession):
        student = await create_student(db_session)
        service = LedgerService(db_session)
        await service.create_account(
            AccountCreate(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="500"
            ),
            ACTOR_ID,
        )
        await PaymentJournal(db_session, ledger=service).record(
            PaymentCreate(
                student_id=student.id,
                amount="600.00",
                payment_date=date.today() - timedelta(days=1),
                payment_type="tuition",
                payment_method="cash",
            ),
            ACTOR_ID,
        )

        second = await service.promote(
            AccountPromote(
                student_id=student.id, academic_year="2026/2027", semester=1, tuition_fee="500"
            ),
            ACTOR_ID,
        )

        assert second.forwarded == Decimal("-100.00")
        assert second.balance == Decimal("400.00")

    async def test_without_previous_account_opens_fresh(self, db_session: AsyncSession):
        student = await create_student(db_session)

        account = await LedgerService(db_session).promote(
            AccountPromote(
                student_id=student.id, academic_year=ACADEMIC_YEAR, semester=1, tuition_fee="800"
            ),
            ACTOR_ID,
        )

        assert account.forwarded == Decimal("0.00")
        assert account.total_due == Decimal("800.00")
