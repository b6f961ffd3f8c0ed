"""
Adjustments to a ledger account's fee composition.

Discounts are frozen as an amount when applied (a percentage is converted
against the tuition fee of that moment). Scholarships are kept as a
percentage and follow later tuition changes. Both behaviours are business
rules; do not unify them.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.database.locks import account_transaction
from src.core.exceptions import (
    DiscountExceedsFeeError,
    InvalidPercentageError,
    ValidationError,
)
from src.core.logger import get_logger
from src.modules.ledger.models import DiscountValueType, LedgerAccount
from src.modules.ledger.schemas import (
    DiscountApply,
    ForwardedBalanceApply,
    OtherChargesUpdate,
    ScholarshipApply,
)
from src.modules.ledger.service import LedgerService
from src.shared.utils.money import (
    HUNDRED,
    has_sub_cent_digits,
    percentage_of,
    require_non_negative,
    round_money,
    to_decimal,
)

logger = get_logger(__name__)


def validate_percentage(value: Decimal, field: str = "percentage") -> Decimal:
    """Check 0 <= value <= 100 on the value as given, at most two decimal places."""
    percentage = to_decimal(value)
    if not percentage.is_finite() or percentage < 0 or percentage > HUNDRED:
        raise InvalidPercentageError(value, field=field)
    if has_sub_cent_digits(percentage):
        raise InvalidPercentageError(
            value,
            field=field,
            message=f"Percentage cannot have more than two decimal places, got {value}",
        )
    return round_money(percentage)


def calculate_discount_amount(
    value_type: DiscountValueType | str, value: Decimal, tuition_fee: Decimal
) -> Decimal:
    """Discount amount for a fixed value or a percentage of the tuition fee."""
    if value_type == DiscountValueType.FIXED.value:
        return require_non_negative(value, "discount")
    elif value_type == DiscountValueType.PERCENTAGE.value:
        percentage = validate_percentage(value, field="discount")
        return percentage_of(tuition_fee, percentage)
    else:
        raise ValidationError(f"Unknown discount value type: {value_type}", field="value_type")


class AdjustmentService:
    """Discount, scholarship, forwarded balance and other charges."""

    def __init__(self, db: AsyncSession, ledger: LedgerService | None = None):
        self.db = db
        self.audit = AuditService(db)
        self.ledger = ledger or LedgerService(db)

    async def apply_discount(
        self, account_id: int, data: DiscountApply, applied_by_id: int
    ) -> LedgerAccount:
        """Replace the account's discount. Fails without changes if it would exceed tuition."""
        async with account_transaction(self.db, account_id):
            account = await self.ledger.lock_account(account_id)

            discount = calculate_discount_amount(data.value_type, data.value, account.tuition_fee)
            if discount > account.tuition_fee:
                raise DiscountExceedsFeeError(discount, account.tuition_fee)

            old_discount = account.discount
            account.discount = discount
            account.updated_by_id = applied_by_id
            await self.ledger.recompute_account(account)

            await self.audit.log(
                action=AuditAction.APPLY_DISCOUNT,
                entity_type="LedgerAccount",
                entity_id=account.id,
                user_id=applied_by_id,
                old_values={"discount": str(old_discount)},
                new_values={
                    "discount": str(discount),
                    "value_type": str(data.value_type),
                    "value": str(data.value),
                    "total_due": str(account.total_due),
                },
                comment=data.reason,
            )
            await self.db.commit()

        await self.db.refresh(account)
        logger.info("ledger_account.discount_applied", account_id=account.id, discount=str(discount))
        return account

    async def apply_scholarship(
        self, account_id: int, data: ScholarshipApply, applied_by_id: int
    ) -> LedgerAccount:
        """Set the scholarship percentage (0-100)."""
        percentage = validate_percentage(data.percentage, field="scholarship_percentage")

        async with account_transaction(self.db, account_id):
            account = await self.ledger.lock_account(account_id)

            old_percentage = account.scholarship_percentage
            account.scholarship_percentage = percentage
            account.updated_by_id = applied_by_id
            await self.ledger.recompute_account(account)

            await self.audit.log(
                action=AuditAction.APPLY_SCHOLARSHIP,
                entity_type="LedgerAccount",
                entity_id=account.id,
                user_id=applied_by_id,
                old_values={"scholarship_percentage": str(old_percentage)},
                new_values={
                    "scholarship_percentage": str(percentage),
                    "scholarship_amount": str(account.scholarship_amount),
                    "total_due": str(account.total_due),
                },
                comment=data.reason,
            )
            await self.db.commit()

        await self.db.refresh(account)
        logger.info(
            "ledger_account.scholarship_applied",
            account_id=account.id,
            percentage=str(percentage),
        )
        return account

    async def apply_forwarded_balance(
        self, account_id: int, data: ForwardedBalanceApply, applied_by_id: int
    ) -> LedgerAccount:
        """Set the balance carried from a prior period. Any sign."""
        if not data.amount.is_finite():
            raise ValidationError("Forwarded balance must be a finite amount", field="amount")
        forwarded = round_money(data.amount)

        async with account_transaction(self.db, account_id):
            account = await self.ledger.lock_account(account_id)

            old_forwarded = account.forwarded
            account.forwarded = forwarded
            account.updated_by_id = applied_by_id
            await self.ledger.recompute_account(account)

            await self.audit.log(
                action=AuditAction.APPLY_FORWARDED,
                entity_type="LedgerAccount",
                entity_id=account.id,
                user_id=applied_by_id,
                old_values={"forwarded": str(old_forwarded)},
                new_values={"forwarded": str(forwarded), "total_due": str(account.total_due)},
                comment=data.reason,
            )
            await self.db.commit()

        await self.db.refresh(account)
        logger.info("ledger_account.forwarded_applied", account_id=account.id, forwarded=str(forwarded))
        return account

    async def set_other_charges(
        self, account_id: int, data: OtherChargesUpdate, applied_by_id: int
    ) -> LedgerAccount:
        other_charges = require_non_negative(data.amount, "other_charges")

        async with account_transaction(self.db, account_id):
            account = await self.ledger.lock_account(account_id)

            old_charges = account.other_charges
            account.other_charges = other_charges
            account.updated_by_id = applied_by_id
            await self.ledger.recompute_account(account)

            await self.audit.log(
                action=AuditAction.SET_OTHER_CHARGES,
                entity_type="LedgerAccount",
                entity_id=account.id,
                user_id=applied_by_id,
                old_values={"other_charges": str(old_charges)},
                new_values={"other_charges": str(other_charges), "total_due": str(account.total_due)},
                comment=data.reason,
            )
            await self.db.commit()

        await self.db.refresh(account)
        return account
