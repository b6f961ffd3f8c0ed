"""Pydantic schemas for Payments module."""

from datetime import date, datetime

from pydantic import Field

from src.modules.payments.models import PaymentStatus
from src.shared.schemas.base import BaseSchema, MoneyIn, MoneyOut


class PaymentCreate(BaseSchema):
    """
    Record a payment against the student's active ledger account.

    Type and method are plain strings so unknown values reach the journal and
    are rejected there with a domain error. academic_year/semester pick a
    specific account instead of the active one.
    """

    student_id: int
    amount: MoneyIn
    payment_date: date
    payment_type: str
    payment_method: str
    due_date: date | None = None
    status: PaymentStatus = PaymentStatus.PAID
    academic_year: str | None = Field(None, max_length=20)
    semester: int | None = Field(None, ge=1)
    reference: str | None = Field(None, max_length=100)
    notes: str | None = None


class PaymentReverse(BaseSchema):
    reason: str | None = Field(None, max_length=500)


class PaymentFilters(BaseSchema):
    student_id: int | None = None
    academic_year: str | None = None
    semester: int | None = None
    payment_type: str | None = None
    payment_method: str | None = None
    include_reversed: bool = True
    date_from: date | None = None
    date_to: date | None = None
    page: int = 1
    limit: int = 50


class PaymentResponse(BaseSchema):
    """Schema for payment response."""

    id: int
    payment_number: str
    student_id: int
    account_id: int
    academic_year: str
    semester: int
    amount: MoneyOut
    payment_date: date
    due_date: date | None
    payment_type: str
    payment_method: str
    status: str
    reference: str | None
    notes: str | None
    recorded_by_id: int
    created_at: datetime
    is_reversed: bool
    reversed_at: datetime | None
    reversed_by_id: int | None
    reversal_reason: str | None


class PaymentHistory(BaseSchema):
    """A student's journal with totals over the non-reversed entries."""

    student_id: int
    total_paid: MoneyOut
    payment_count: int
    reversed_count: int
    payments: list[PaymentResponse]
