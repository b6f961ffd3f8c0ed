"""
Catalog and calendar collaborators.

The ledger never prices anything itself: base tuition comes from the catalog
and the payment due date from the academic calendar. Both calls may fail;
they are retried a bounded number of times and then surfaced as
``DependencyError``. A missing tuition price is also a ``DependencyError``,
since opening an account at zero would silently corrupt the ledger.
"""

from collections.abc import Awaitable, Callable
from datetime import date
from decimal import Decimal
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import DependencyError
from src.core.logger import get_logger
from src.modules.catalog.models import PaymentDeadline, TuitionPrice
from src.shared.utils.money import round_money
from src.shared.utils.retry import retry

logger = get_logger(__name__)

T = TypeVar("T")

# Transient failures worth another attempt
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    ConnectionError,
    TimeoutError,
)


async def call_dependency(name: str, fn: Callable[[], Awaitable[T]]) -> T:
    """Run a collaborator call with bounded retries; wrap failures in DependencyError."""
    try:
        return await retry(
            fn,
            attempts=settings.dependency_retry_attempts,
            base_ms=settings.dependency_retry_base_ms,
            max_ms=settings.dependency_retry_max_ms,
            retry_on=RETRYABLE_ERRORS,
        )
    except DependencyError:
        raise
    except (*RETRYABLE_ERRORS, DBAPIError) as e:
        logger.error("dependency.failed", dependency=name, error=str(e))
        raise DependencyError(name, str(e)) from e


class TuitionCatalog:
    """Catalog lookup: base tuition for a department and period."""

    name = "catalog"

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_base_fee(self, department_id: int, academic_year: str, semester: int) -> Decimal:
        async def _lookup() -> Decimal:
            result = await self.db.execute(
                select(TuitionPrice.amount).where(
                    TuitionPrice.department_id == department_id,
                    TuitionPrice.academic_year == academic_year,
                    TuitionPrice.semester == semester,
                )
            )
            amount = result.scalar_one_or_none()
            if amount is None:
                raise DependencyError(
                    self.name,
                    f"no tuition price for department {department_id} "
                    f"in {academic_year} semester {semester}",
                )
            return round_money(amount)

        return await call_dependency(self.name, _lookup)


class PaymentCalendar:
    """Calendar lookup: payment due date for a period, None if not published yet."""

    name = "calendar"

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_payment_due_date(self, academic_year: str, semester: int) -> date | None:
        async def _lookup() -> date | None:
            result = await self.db.execute(
                select(PaymentDeadline.due_date).where(
                    PaymentDeadline.academic_year == academic_year,
                    PaymentDeadline.semester == semester,
                )
            )
            return result.scalar_one_or_none()

        return await call_dependency(self.name, _lookup)
