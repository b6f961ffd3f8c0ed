"""Ledger account model."""

from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import ActorStampMixin, BaseModel
from src.shared.utils.money import percentage_of, round_money


class PaidType(StrEnum):
    """Billing cadence of the account."""

    PER_MONTH = "per_month"
    PER_SEMESTER = "per_semester"
    PER_YEAR = "per_year"
    ONE_TIME = "one_time"


class AccountStatus(StrEnum):
    """Derived account status, see ``policy.derive_status``."""

    NORMAL = "normal"
    PENDING = "pending"
    PARTIAL = "partial"
    OVERDUE = "overdue"
    PAID = "paid"


class DiscountValueType(StrEnum):
    """How a discount is expressed when applied."""

    FIXED = "fixed"
    PERCENTAGE = "percentage"


class LedgerAccount(ActorStampMixin, BaseModel):
    """
    Financial record of one student for one academic period.

    Composition (tuition_fee, other_charges, discount, scholarship_percentage,
    forwarded) is written by the adjustment operations. Everything else
    (total_due, paid_amount, balance, status) is derived and rewritten by
    ``recompute`` in the same transaction as the change that triggered it.

    Discount is stored as an amount frozen at application time; scholarship is
    stored as a percentage and re-derives when the tuition fee changes.
    """

    __tablename__ = "ledger_accounts"

    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)

    # Composition
    tuition_fee: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    other_charges: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    scholarship_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0.00")
    )
    forwarded: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )  # negative = credit carried in, positive = debt carried in

    # Derived
    total_due: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )  # negative = overpayment
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountStatus.PENDING.value, index=True
    )

    paid_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaidType.PER_SEMESTER.value
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="ledger_accounts")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        # One active account per student and period; deactivated history may repeat.
        Index(
            "uq_ledger_accounts_active_period",
            "student_id",
            "academic_year",
            "semester",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        CheckConstraint("tuition_fee >= 0", name="ck_ledger_accounts_tuition_fee_non_negative"),
        CheckConstraint("discount <= tuition_fee", name="ck_ledger_accounts_discount_le_fee"),
        CheckConstraint(
            "scholarship_percentage >= 0 AND scholarship_percentage <= 100",
            name="ck_ledger_accounts_scholarship_range",
        ),
    )

    @property
    def scholarship_amount(self) -> Decimal:
        return percentage_of(self.tuition_fee, self.scholarship_percentage)

    @property
    def gross_charges(self) -> Decimal:
        """Everything billed before reductions."""
        return round_money(self.tuition_fee + self.other_charges + self.forwarded)

    @property
    def period_label(self) -> str:
        return f"{self.academic_year} S{self.semester}"


# Import at the end to avoid circular imports
from src.modules.students.models import Student
