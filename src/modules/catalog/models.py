"""Tuition pricing and payment deadlines published by the academic catalog/calendar."""

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Date, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import BaseModel


class TuitionPrice(BaseModel):
    """
    Base tuition per department for an academic period.

    Read once when a ledger account is opened, and again only on explicit
    re-pricing.
    """

    __tablename__ = "tuition_prices"

    department_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "department_id", "academic_year", "semester", name="uq_tuition_price_department_period"
        ),
    )


class PaymentDeadline(BaseModel):
    """Fee payment due date for an academic period."""

    __tablename__ = "payment_deadlines"

    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("academic_year", "semester", name="uq_payment_deadline_period"),
    )
