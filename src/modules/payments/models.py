"""Payment journal model."""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BigIntPK


class PaymentType(StrEnum):
    """What the payment is for."""

    TUITION = "tuition"
    ID_CARD = "id_card"
    CERTIFICATE = "certificate"
    GRADUATION = "graduation"
    HOUSING = "housing"
    ADMINISTRATIVE = "administrative"
    DEPOSITS = "deposits"
    OTHER = "other"


class PaymentMethod(StrEnum):
    """Payment method options."""

    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    CHECK = "check"


class PaymentStatus(StrEnum):
    """Status recorded on the event by the cashier."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    PARTIAL = "partial"


class PaymentEvent(Base):
    """
    Journal entry: one payment received from a student.

    Append-only. The amount and references never change after insert; the
    only permitted update is reversal, which excludes the event from the
    account's paid amount while keeping the row for audit.
    """

    __tablename__ = "payment_events"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    payment_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )

    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ledger_accounts.id"), nullable=False, index=True
    )
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_type: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PAID.value
    )

    reference: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )  # bank reference, mobile money transaction id, check number
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    recorded_by_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Reversal
    is_reversed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reversed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reversed_by_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    reversal_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    account: Mapped["LedgerAccount"] = relationship("LedgerAccount")

    __table_args__ = (
        Index("ix_payment_events_student_period", "student_id", "academic_year", "semester"),
        CheckConstraint("amount > 0", name="ck_payment_events_amount_positive"),
    )


# Import for type hints
from src.modules.ledger.models import LedgerAccount
