"""API endpoints for Ledger module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import LedgerReader, LedgerWriter
from src.core.config import settings
from src.core.database.session import get_db
from src.modules.ledger.adjustments import AdjustmentService
from src.modules.ledger.models import AccountStatus
from src.modules.ledger.schemas import (
    AccountCreate,
    AccountFilters,
    AccountPromote,
    AccountReprice,
    AccountResponse,
    DiscountApply,
    ForwardedBalanceApply,
    OtherChargesUpdate,
    PaidTypeUpdate,
    ScholarshipApply,
)
from src.modules.ledger.service import AccountSnapshot, LedgerService
from src.shared.schemas.base import ApiResponse, PaginatedResponse
from src.shared.utils.money import format_money

router = APIRouter(prefix="/ledger", tags=["Ledger"])


def _account_to_response(snapshot: AccountSnapshot) -> AccountResponse:
    """Helper to convert an account snapshot to response."""
    response = AccountResponse.model_validate(snapshot.account)
    return response.model_copy(
        update={
            "status": snapshot.status,
            "due_date": snapshot.due_date,
            "balance_display": format_money(snapshot.account.balance, settings.currency_code),
        }
    )


async def _respond(service: LedgerService, account_id: int, message: str | None = None):
    snapshot = await service.snapshot(account_id)
    return ApiResponse(success=True, message=message, data=_account_to_response(snapshot))


# --- Accounts ---


@router.post(
    "/accounts",
    response_model=ApiResponse[AccountResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_account(
    data: AccountCreate,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    """Open a ledger account for a student and period."""
    service = LedgerService(db)
    account = await service.create_account(data, current_user.id)
    return await _respond(service, account.id, "Ledger account created successfully")


@router.get(
    "/accounts",
    response_model=ApiResponse[PaginatedResponse[AccountResponse]],
)
async def list_accounts(
    current_user: LedgerReader,
    student_id: int | None = Query(None),
    academic_year: str | None = Query(None),
    semester: int | None = Query(None, ge=1),
    account_status: AccountStatus | None = Query(None, alias="status"),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List ledger accounts. The status filter matches the stored status."""
    service = LedgerService(db)
    filters = AccountFilters(
        student_id=student_id,
        academic_year=academic_year,
        semester=semester,
        status=account_status,
        is_active=is_active,
        page=page,
        limit=limit,
    )
    accounts, total = await service.list_accounts(filters)
    items = [_account_to_response(snapshot) for snapshot in await service.snapshots(accounts)]
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(items=items, total=total, page=page, limit=limit),
    )


@router.get(
    "/accounts/{account_id}",
    response_model=ApiResponse[AccountResponse],
)
async def get_account(
    account_id: int,
    current_user: LedgerReader,
    db: AsyncSession = Depends(get_db),
):
    """Account snapshot with status as of today."""
    return await _respond(LedgerService(db), account_id)


@router.get(
    "/students/{student_id}/account",
    response_model=ApiResponse[AccountResponse],
)
async def get_student_account(
    student_id: int,
    current_user: LedgerReader,
    academic_year: str | None = Query(None),
    semester: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """The student's active account (most recent period unless one is given)."""
    service = LedgerService(db)
    await service.students.get_student(student_id)
    account = await service.get_active_account(student_id, academic_year, semester)
    return await _respond(service, account.id)


@router.post(
    "/promotions",
    response_model=ApiResponse[AccountResponse],
    status_code=status.HTTP_201_CREATED,
)
async def promote_student(
    data: AccountPromote,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    """Open the next period's account and carry the balance forward."""
    service = LedgerService(db)
    account = await service.promote(data, current_user.id)
    return await _respond(service, account.id, "Student promoted successfully")


@router.patch(
    "/accounts/{account_id}/paid-type",
    response_model=ApiResponse[AccountResponse],
)
async def set_paid_type(
    account_id: int,
    data: PaidTypeUpdate,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    service = LedgerService(db)
    await service.set_paid_type(account_id, data.paid_type, current_user.id)
    return await _respond(service, account_id, "Paid type updated")


@router.post(
    "/accounts/{account_id}/reprice",
    response_model=ApiResponse[AccountResponse],
)
async def reprice_account(
    account_id: int,
    data: AccountReprice,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    """Replace the tuition fee explicitly or from the current catalog price."""
    service = LedgerService(db)
    await service.reprice(account_id, data, current_user.id)
    return await _respond(service, account_id, "Tuition fee updated")


@router.post(
    "/accounts/{account_id}/deactivate",
    response_model=ApiResponse[AccountResponse],
)
async def deactivate_account(
    account_id: int,
    current_user: LedgerWriter,
    reason: str | None = Query(None, max_length=500),
    db: AsyncSession = Depends(get_db),
):
    service = LedgerService(db)
    await service.deactivate(account_id, current_user.id, reason)
    return await _respond(service, account_id, "Ledger account deactivated")


@router.post(
    "/accounts/{account_id}/reactivate",
    response_model=ApiResponse[AccountResponse],
)
async def reactivate_account(
    account_id: int,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    service = LedgerService(db)
    await service.reactivate(account_id, current_user.id)
    return await _respond(service, account_id, "Ledger account reactivated")


# --- Adjustments ---


@router.post(
    "/accounts/{account_id}/discount",
    response_model=ApiResponse[AccountResponse],
)
async def apply_discount(
    account_id: int,
    data: DiscountApply,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    """Replace the account's discount (fixed or percentage of tuition)."""
    service = LedgerService(db)
    await AdjustmentService(db, ledger=service).apply_discount(account_id, data, current_user.id)
    return await _respond(service, account_id, "Discount applied")


@router.post(
    "/accounts/{account_id}/scholarship",
    response_model=ApiResponse[AccountResponse],
)
async def apply_scholarship(
    account_id: int,
    data: ScholarshipApply,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    service = LedgerService(db)
    await AdjustmentService(db, ledger=service).apply_scholarship(
        account_id, data, current_user.id
    )
    return await _respond(service, account_id, "Scholarship applied")


@router.post(
    "/accounts/{account_id}/forwarded",
    response_model=ApiResponse[AccountResponse],
)
async def apply_forwarded_balance(
    account_id: int,
    data: ForwardedBalanceApply,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    service = LedgerService(db)
    await AdjustmentService(db, ledger=service).apply_forwarded_balance(
        account_id, data, current_user.id
    )
    return await _respond(service, account_id, "Forwarded balance applied")


@router.post(
    "/accounts/{account_id}/other-charges",
    response_model=ApiResponse[AccountResponse],
)
async def set_other_charges(
    account_id: int,
    data: OtherChargesUpdate,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    service = LedgerService(db)
    await AdjustmentService(db, ledger=service).set_other_charges(
        account_id, data, current_user.id
    )
    return await _respond(service, account_id, "Other charges updated")
