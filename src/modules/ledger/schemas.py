"""Schemas for Ledger module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from src.modules.ledger.models import AccountStatus, DiscountValueType, PaidType
from src.shared.schemas.base import BaseSchema, MoneyIn, MoneyOut


# --- Account Schemas ---


class AccountCreate(BaseSchema):
    """
    Open a ledger account for a student and period.

    When tuition_fee is omitted the catalog price for the student's
    department is used.
    """

    student_id: int
    academic_year: str = Field(..., min_length=1, max_length=20)
    semester: int = Field(..., ge=1)
    tuition_fee: MoneyIn | None = None
    paid_type: PaidType = PaidType.PER_SEMESTER


class AccountPromote(BaseSchema):
    """Open the next period's account, carrying the current balance forward."""

    student_id: int
    academic_year: str = Field(..., min_length=1, max_length=20)
    semester: int = Field(..., ge=1)
    tuition_fee: MoneyIn | None = None
    paid_type: PaidType | None = None


class AccountReprice(BaseSchema):
    """Explicit re-pricing. Omit tuition_fee to take the current catalog price."""

    tuition_fee: MoneyIn | None = None


class PaidTypeUpdate(BaseSchema):
    # Plain string so unknown cadences reach the service and get a domain error
    paid_type: str


class AccountFilters(BaseSchema):
    student_id: int | None = None
    academic_year: str | None = None
    semester: int | None = None
    status: AccountStatus | None = None
    is_active: bool | None = None
    page: int = 1
    limit: int = 50


# --- Adjustment Schemas ---


class DiscountApply(BaseSchema):
    """Fixed amount, or percentage of the tuition fee (0-100)."""

    value_type: DiscountValueType
    value: MoneyIn = Field(..., ge=0)
    reason: str | None = Field(None, max_length=500)


class ScholarshipApply(BaseSchema):
    # Range checked by the service so it raises InvalidPercentageError
    percentage: MoneyIn
    reason: str | None = Field(None, max_length=500)


class ForwardedBalanceApply(BaseSchema):
    """Signed: negative is a credit carried in, positive a debt."""

    amount: MoneyIn
    reason: str | None = Field(None, max_length=500)


class OtherChargesUpdate(BaseSchema):
    amount: MoneyIn
    reason: str | None = Field(None, max_length=500)


# --- Responses ---


class AccountResponse(BaseSchema):
    """Account snapshot: composition, derived totals and status."""

    id: int
    student_id: int
    academic_year: str
    semester: int

    tuition_fee: MoneyOut
    other_charges: MoneyOut
    discount: MoneyOut
    scholarship_percentage: Decimal
    scholarship_amount: MoneyOut
    forwarded: MoneyOut

    total_due: MoneyOut
    paid_amount: MoneyOut
    balance: MoneyOut
    status: AccountStatus

    paid_type: PaidType
    is_active: bool
    due_date: date | None = None
    balance_display: str | None = None

    created_by_id: int
    updated_by_id: int | None
    created_at: datetime
    updated_at: datetime
