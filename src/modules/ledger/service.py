"""Service for Ledger module."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.database.locks import account_transaction
from src.core.exceptions import (
    ConflictError,
    DiscountExceedsFeeError,
    DuplicateAccountError,
    InvalidFeeError,
    InvalidPaidTypeError,
    NotFoundError,
    ValidationError,
)
from src.core.logger import get_logger
from src.modules.catalog.service import PaymentCalendar, TuitionCatalog
from src.modules.ledger.models import AccountStatus, LedgerAccount, PaidType
from src.modules.ledger.policy import derive_status, recompute
from src.modules.ledger.schemas import (
    AccountCreate,
    AccountFilters,
    AccountPromote,
    AccountReprice,
)
from src.modules.payments.service import PaymentJournal
from src.modules.students.models import Student
from src.modules.students.service import StudentDirectory
from src.shared.utils.money import ZERO, round_money

logger = get_logger(__name__)


def parse_paid_type(value: str | PaidType) -> PaidType:
    """Accept enum values and display labels ("Per Month", "per-month", ...)."""
    if isinstance(value, PaidType):
        return value
    normalized = str(value).strip().lower().replace(" ", "_").replace("-", "_")
    try:
        return PaidType(normalized)
    except ValueError:
        raise InvalidPaidTypeError(value)


@dataclass(frozen=True)
class AccountSnapshot:
    """Account as read, with status evaluated against today's date."""

    account: LedgerAccount
    status: AccountStatus
    due_date: date | None


class LedgerService:
    """Ledger accounts: opening, recomputation, cadence, activation, re-pricing."""

    def __init__(
        self,
        db: AsyncSession,
        catalog: TuitionCatalog | None = None,
        calendar: PaymentCalendar | None = None,
    ):
        self.db = db
        self.audit = AuditService(db)
        self.catalog = catalog or TuitionCatalog(db)
        self.calendar = calendar or PaymentCalendar(db)
        self.students = StudentDirectory(db)
        self.journal = PaymentJournal(db, ledger=self)

    # --- Reads ---

    async def get_account(self, account_id: int) -> LedgerAccount:
        result = await self.db.execute(
            select(LedgerAccount).where(LedgerAccount.id == account_id)
        )
        account = result.scalar_one_or_none()
        if not account:
            raise NotFoundError("LedgerAccount", account_id)
        return account

    async def lock_account(self, account_id: int) -> LedgerAccount:
        """Re-read the account with a row lock, overwriting any stale identity-map state."""
        result = await self.db.execute(
            select(LedgerAccount)
            .where(LedgerAccount.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        account = result.scalar_one_or_none()
        if not account:
            raise NotFoundError("LedgerAccount", account_id)
        return account

    @staticmethod
    def _period_filter(student_id: int, academic_year: str, semester: int) -> tuple:
        return (
            LedgerAccount.student_id == student_id,
            LedgerAccount.academic_year == academic_year,
            LedgerAccount.semester == semester,
        )

    async def period_account_ids(
        self, student_id: int, academic_year: str, semester: int
    ) -> list[int]:
        """Ids of every account (active or not) of the student's period."""
        result = await self.db.execute(
            select(LedgerAccount.id)
            .where(*self._period_filter(student_id, academic_year, semester))
            .order_by(LedgerAccount.id)
        )
        return list(result.scalars().all())

    async def lock_period_accounts(
        self, student_id: int, academic_year: str, semester: int
    ) -> list[LedgerAccount]:
        """Row-lock every account of the student's period in id order."""
        result = await self.db.execute(
            select(LedgerAccount)
            .where(*self._period_filter(student_id, academic_year, semester))
            .order_by(LedgerAccount.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_active_account(
        self,
        student_id: int,
        academic_year: str | None = None,
        semester: int | None = None,
    ) -> LedgerAccount:
        """The student's active account, the most recent period if several are open."""
        query = select(LedgerAccount).where(
            LedgerAccount.student_id == student_id,
            LedgerAccount.is_active == True,
        )
        if academic_year is not None:
            query = query.where(LedgerAccount.academic_year == academic_year)
        if semester is not None:
            query = query.where(LedgerAccount.semester == semester)
        query = query.order_by(
            LedgerAccount.academic_year.desc(),
            LedgerAccount.semester.desc(),
            LedgerAccount.id.desc(),
        ).limit(1)

        account = (await self.db.execute(query)).scalar_one_or_none()
        if not account:
            raise NotFoundError("Active ledger account for student", student_id)
        return account

    def _evaluate(
        self,
        account: LedgerAccount,
        payment_count: int,
        due_date: date | None,
        today: date,
    ) -> AccountSnapshot:
        status = derive_status(
            balance=account.balance,
            paid_amount=account.paid_amount,
            payment_count=payment_count,
            due_date=due_date,
            today=today,
            is_active=account.is_active,
        )
        return AccountSnapshot(account=account, status=status, due_date=due_date)

    async def snapshot(self, account_id: int, today: date | None = None) -> AccountSnapshot:
        """
        Composition, derived totals and the status as of ``today``.

        Read-only: time passing can turn a stored ``pending`` into ``overdue``
        without any write, so the status is evaluated here rather than trusted.
        """
        account = await self.get_account(account_id)
        due_date = await self.calendar.get_payment_due_date(account.academic_year, account.semester)
        payment_count = (
            await self.journal.snapshot(account.student_id, account.academic_year, account.semester)
        ).payment_count
        return self._evaluate(account, payment_count, due_date, today or date.today())

    async def snapshots(
        self, accounts: list[LedgerAccount], today: date | None = None
    ) -> list[AccountSnapshot]:
        """
        Snapshots for a page of already loaded accounts.

        One calendar lookup per distinct period and one grouped journal count,
        whatever the page size.
        """
        if not accounts:
            return []
        today = today or date.today()

        due_dates: dict[tuple[str, int], date | None] = {}
        for period in sorted({(a.academic_year, a.semester) for a in accounts}):
            due_dates[period] = await self.calendar.get_payment_due_date(*period)
        counts = await self.journal.payment_counts({a.student_id for a in accounts})

        return [
            self._evaluate(
                account,
                counts.get((account.student_id, account.academic_year, account.semester), 0),
                due_dates[(account.academic_year, account.semester)],
                today,
            )
            for account in accounts
        ]

    async def list_accounts(self, filters: AccountFilters) -> tuple[list[LedgerAccount], int]:
        """List accounts with filters."""
        query = select(LedgerAccount)

        if filters.student_id:
            query = query.where(LedgerAccount.student_id == filters.student_id)
        if filters.academic_year:
            query = query.where(LedgerAccount.academic_year == filters.academic_year)
        if filters.semester:
            query = query.where(LedgerAccount.semester == filters.semester)
        if filters.status:
            query = query.where(LedgerAccount.status == filters.status.value)
        if filters.is_active is not None:
            query = query.where(LedgerAccount.is_active == filters.is_active)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(LedgerAccount.created_at.desc(), LedgerAccount.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    # --- Recompute ---

    async def recompute_account(self, account: LedgerAccount) -> LedgerAccount:
        """
        Rewrite derived fields from the journal aggregate and the calendar.

        Must run after the triggering write has been flushed so the aggregate
        sees it. Does not commit.
        """
        snapshot = await self.journal.snapshot(
            account.student_id, account.academic_year, account.semester
        )
        due_date = await self.calendar.get_payment_due_date(account.academic_year, account.semester)
        recompute(account, snapshot, due_date=due_date)
        await self.db.flush()
        return account

    async def recompute_period(
        self, accounts: list[LedgerAccount], updated_by_id: int
    ) -> None:
        """
        Recompute all accounts sharing one student period after a journal write.

        The journal total is keyed by student and period, so a deactivated
        account and its replacement move together. Does not commit.
        """
        for account in accounts:
            account.updated_by_id = updated_by_id
            await self.recompute_account(account)

    # --- Account lifecycle ---

    async def _resolve_tuition_fee(
        self, student: Student, academic_year: str, semester: int, explicit: Decimal | None
    ) -> Decimal:
        if explicit is not None:
            fee = round_money(explicit)
        else:
            fee = await self.catalog.get_base_fee(student.department_id, academic_year, semester)
        if fee < 0:
            raise InvalidFeeError(f"Tuition fee cannot be negative, got {fee}")
        return fee

    async def _ensure_no_active_account(
        self,
        student_id: int,
        academic_year: str,
        semester: int,
        exclude_id: int | None = None,
    ) -> None:
        query = select(LedgerAccount.id).where(
            LedgerAccount.student_id == student_id,
            LedgerAccount.academic_year == academic_year,
            LedgerAccount.semester == semester,
            LedgerAccount.is_active == True,
        )
        if exclude_id is not None:
            query = query.where(LedgerAccount.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise DuplicateAccountError(student_id, academic_year, semester)

    def _new_account(
        self,
        student_id: int,
        academic_year: str,
        semester: int,
        tuition_fee: Decimal,
        paid_type: PaidType,
        created_by_id: int,
        forwarded: Decimal = ZERO,
    ) -> LedgerAccount:
        return LedgerAccount(
            student_id=student_id,
            academic_year=academic_year,
            semester=semester,
            tuition_fee=tuition_fee,
            other_charges=ZERO,
            discount=ZERO,
            scholarship_percentage=ZERO,
            forwarded=round_money(forwarded),
            total_due=ZERO,
            paid_amount=ZERO,
            balance=ZERO,
            status=AccountStatus.PENDING.value,
            paid_type=paid_type.value,
            is_active=True,
            created_by_id=created_by_id,
        )

    async def _insert_account(self, account: LedgerAccount) -> None:
        self.db.add(account)
        try:
            await self.db.flush()
        except IntegrityError as e:
            # Lost the race against another request opening the same period
            await self.db.rollback()
            raise DuplicateAccountError(
                account.student_id, account.academic_year, account.semester
            ) from e

    async def create_account(self, data: AccountCreate, created_by_id: int) -> LedgerAccount:
        """Open the account for a student and period."""
        paid_type = parse_paid_type(data.paid_type)
        student = await self.students.get_student(data.student_id)
        tuition_fee = await self._resolve_tuition_fee(
            student, data.academic_year, data.semester, data.tuition_fee
        )
        await self._ensure_no_active_account(student.id, data.academic_year, data.semester)

        try:
            account = self._new_account(
                student.id, data.academic_year, data.semester, tuition_fee, paid_type, created_by_id
            )
            await self.recompute_account(account)
            await self._insert_account(account)

            await self.audit.log(
                action=AuditAction.CREATE,
                entity_type="LedgerAccount",
                entity_id=account.id,
                entity_identifier=f"{student.student_number} {account.period_label}",
                user_id=created_by_id,
                new_values={
                    "student_id": student.id,
                    "academic_year": data.academic_year,
                    "semester": data.semester,
                    "tuition_fee": str(tuition_fee),
                    "paid_type": paid_type.value,
                },
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(account)
        logger.info(
            "ledger_account.created",
            account_id=account.id,
            student_id=student.id,
            period=account.period_label,
            tuition_fee=str(tuition_fee),
        )
        return account

    async def promote(self, data: AccountPromote, created_by_id: int) -> LedgerAccount:
        """
        Move a student into a new period.

        The current active account is deactivated and its balance (debt or
        credit) becomes the new account's forwarded balance.
        """
        student = await self.students.get_student(data.student_id)
        try:
            previous = await self.get_active_account(student.id)
        except NotFoundError:
            previous = None

        if previous is None:
            return await self.create_account(
                AccountCreate(
                    student_id=student.id,
                    academic_year=data.academic_year,
                    semester=data.semester,
                    tuition_fee=data.tuition_fee,
                    paid_type=data.paid_type or PaidType.PER_SEMESTER,
                ),
                created_by_id,
            )

        paid_type = parse_paid_type(data.paid_type or previous.paid_type)
        tuition_fee = await self._resolve_tuition_fee(
            student, data.academic_year, data.semester, data.tuition_fee
        )

        async with account_transaction(self.db, previous.id):
            previous = await self.lock_account(previous.id)
            if not previous.is_active:
                raise ConflictError("Current ledger account was closed concurrently, retry")
            await self._ensure_no_active_account(student.id, data.academic_year, data.semester)

            carried = previous.balance
            previous.is_active = False
            previous.updated_by_id = created_by_id
            await self.recompute_account(previous)

            account = self._new_account(
                student.id,
                data.academic_year,
                data.semester,
                tuition_fee,
                paid_type,
                created_by_id,
                forwarded=carried,
            )
            await self.recompute_account(account)
            await self._insert_account(account)

            await self.audit.log(
                action=AuditAction.PROMOTE,
                entity_type="LedgerAccount",
                entity_id=account.id,
                entity_identifier=f"{student.student_number} {account.period_label}",
                user_id=created_by_id,
                old_values={"account_id": previous.id, "period": previous.period_label},
                new_values={
                    "period": account.period_label,
                    "tuition_fee": str(tuition_fee),
                    "forwarded": str(carried),
                },
            )
            await self.db.commit()

        await self.db.refresh(account)
        logger.info(
            "ledger_account.promoted",
            account_id=account.id,
            previous_account_id=previous.id,
            forwarded=str(carried),
        )
        return account

    async def set_paid_type(
        self, account_id: int, paid_type: str | PaidType, updated_by_id: int
    ) -> LedgerAccount:
        """Change the billing cadence. Financial fields are untouched."""
        new_type = parse_paid_type(paid_type)

        async with account_transaction(self.db, account_id):
            account = await self.lock_account(account_id)
            old_type = account.paid_type
            account.paid_type = new_type.value
            account.updated_by_id = updated_by_id

            await self.audit.log(
                action=AuditAction.SET_PAID_TYPE,
                entity_type="LedgerAccount",
                entity_id=account.id,
                user_id=updated_by_id,
                old_values={"paid_type": old_type},
                new_values={"paid_type": new_type.value},
            )
            await self.db.commit()

        await self.db.refresh(account)
        return account

    async def deactivate(
        self, account_id: int, updated_by_id: int, reason: str | None = None
    ) -> LedgerAccount:
        """Close the account for further activity. Nothing is deleted."""
        async with account_transaction(self.db, account_id):
            account = await self.lock_account(account_id)
            if not account.is_active:
                raise ValidationError("Ledger account is already inactive", field="is_active")

            account.is_active = False
            account.updated_by_id = updated_by_id
            await self.recompute_account(account)

            await self.audit.log(
                action=AuditAction.DEACTIVATE,
                entity_type="LedgerAccount",
                entity_id=account.id,
                user_id=updated_by_id,
                old_values={"is_active": True},
                new_values={"is_active": False},
                comment=reason,
            )
            await self.db.commit()

        await self.db.refresh(account)
        logger.info("ledger_account.deactivated", account_id=account.id)
        return account

    async def reactivate(self, account_id: int, updated_by_id: int) -> LedgerAccount:
        async with account_transaction(self.db, account_id):
            account = await self.lock_account(account_id)
            if account.is_active:
                raise ValidationError("Ledger account is already active", field="is_active")
            await self._ensure_no_active_account(
                account.student_id, account.academic_year, account.semester, exclude_id=account.id
            )

            account.is_active = True
            account.updated_by_id = updated_by_id
            await self.recompute_account(account)

            await self.audit.log(
                action=AuditAction.REACTIVATE,
                entity_type="LedgerAccount",
                entity_id=account.id,
                user_id=updated_by_id,
                old_values={"is_active": False},
                new_values={"is_active": True},
            )
            await self.db.commit()

        await self.db.refresh(account)
        logger.info("ledger_account.reactivated", account_id=account.id)
        return account

    async def reprice(
        self, account_id: int, data: AccountReprice, updated_by_id: int
    ) -> LedgerAccount:
        """
        Replace the tuition fee, from the caller or the current catalog price.

        The scholarship follows the new fee; the discount amount does not.
        """
        async with account_transaction(self.db, account_id):
            account = await self.lock_account(account_id)
            student = await self.students.get_student(account.student_id)
            new_fee = await self._resolve_tuition_fee(
                student, account.academic_year, account.semester, data.tuition_fee
            )
            if account.discount > new_fee:
                raise DiscountExceedsFeeError(account.discount, new_fee)

            old_fee = account.tuition_fee
            account.tuition_fee = new_fee
            account.updated_by_id = updated_by_id
            await self.recompute_account(account)

            await self.audit.log(
                action=AuditAction.REPRICE,
                entity_type="LedgerAccount",
                entity_id=account.id,
                user_id=updated_by_id,
                old_values={"tuition_fee": str(old_fee)},
                new_values={"tuition_fee": str(new_fee), "total_due": str(account.total_due)},
            )
            await self.db.commit()

        await self.db.refresh(account)
        logger.info(
            "ledger_account.repriced",
            account_id=account.id,
            old_fee=str(old_fee),
            new_fee=str(new_fee),
        )
        return account
