"""API endpoints for Payments module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import LedgerReader, LedgerWriter
from src.core.database.session import get_db
from src.modules.payments.schemas import (
    PaymentCreate,
    PaymentFilters,
    PaymentHistory,
    PaymentResponse,
    PaymentReverse,
)
from src.modules.payments.service import PaymentJournal
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    data: PaymentCreate,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    """Record a payment against the student's active ledger account."""
    journal = PaymentJournal(db)
    event = await journal.record(data, current_user.id)
    return ApiResponse(
        success=True,
        message="Payment recorded successfully",
        data=PaymentResponse.model_validate(event),
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[PaymentResponse]],
)
async def list_payments(
    current_user: LedgerReader,
    student_id: int | None = Query(None),
    academic_year: str | None = Query(None),
    semester: int | None = Query(None, ge=1),
    payment_type: str | None = Query(None),
    payment_method: str | None = Query(None),
    include_reversed: bool = Query(True),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List journal entries with optional filters."""
    journal = PaymentJournal(db)
    filters = PaymentFilters(
        student_id=student_id,
        academic_year=academic_year,
        semester=semester,
        payment_type=payment_type,
        payment_method=payment_method,
        include_reversed=include_reversed,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    events, total = await journal.list_events(filters)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[PaymentResponse.model_validate(e) for e in events],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get(
    "/students/{student_id}/history",
    response_model=ApiResponse[PaymentHistory],
)
async def get_payment_history(
    student_id: int,
    current_user: LedgerReader,
    include_reversed: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """A student's payments, newest first."""
    journal = PaymentJournal(db)
    events, total_paid, reversed_count = await journal.history(student_id, include_reversed)
    return ApiResponse(
        success=True,
        data=PaymentHistory(
            student_id=student_id,
            total_paid=total_paid,
            payment_count=len(events) - reversed_count,
            reversed_count=reversed_count,
            payments=[PaymentResponse.model_validate(e) for e in events],
        ),
    )


@router.get(
    "/{payment_id}",
    response_model=ApiResponse[PaymentResponse],
)
async def get_payment(
    payment_id: int,
    current_user: LedgerReader,
    db: AsyncSession = Depends(get_db),
):
    journal = PaymentJournal(db)
    event = await journal.get_event(payment_id)
    return ApiResponse(success=True, data=PaymentResponse.model_validate(event))


@router.post(
    "/{payment_id}/reverse",
    response_model=ApiResponse[PaymentResponse],
)
async def reverse_payment(
    payment_id: int,
    data: PaymentReverse,
    current_user: LedgerWriter,
    db: AsyncSession = Depends(get_db),
):
    """Reverse a payment. The entry stays in the journal, excluded from totals."""
    journal = PaymentJournal(db)
    event = await journal.reverse(payment_id, current_user.id, data.reason)
    return ApiResponse(
        success=True,
        message="Payment reversed",
        data=PaymentResponse.model_validate(event),
    )
