from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.exceptions import AppException
from src.core.logger import get_logger
from src.shared.schemas import ErrorResponse, ErrorDetail

logger = get_logger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application exceptions."""
    if exc.status_code >= 500:
        logger.error("request.failed", path=request.url.path, error=exc.message, details=exc.details)
    else:
        logger.info("request.rejected", path=request.url.path, status_code=exc.status_code, error=exc.message)

    field = exc.details.get("field")
    errors = [ErrorDetail(field=field, message=exc.message)]

    response = ErrorResponse(
        message=exc.message,
        errors=errors,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(),
    )


def _format_validation_errors(errors: list[dict]) -> list[ErrorDetail]:
    details: list[ErrorDetail] = []
    for error in errors:
        loc = error.get("loc", ())
        # Drop top-level "body" for cleaner field paths
        if loc and loc[0] == "body":
            loc = loc[1:]
        field = ".".join(str(part) for part in loc) if loc else None
        details.append(ErrorDetail(field=field, message=error.get("msg", "Invalid value")))
    return details


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI validation errors."""
    response = ErrorResponse(
        message="Validation error",
        errors=_format_validation_errors(exc.errors()),
    )
    return JSONResponse(
        status_code=422,
        content=response.model_dump(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle generic HTTP exceptions."""
    errors = [ErrorDetail(field=None, message=str(exc.detail) if exc.detail else "HTTP error")]
    response = ErrorResponse(
        message=str(exc.detail) if exc.detail else "HTTP error",
        errors=errors,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(),
    )


# Last line of defence behind the service-level checks
_CHECK_CONSTRAINT_MESSAGES: dict[str, tuple[str, str]] = {
    "ck_ledger_accounts_tuition_fee_non_negative": ("Tuition fee cannot be negative", "tuition_fee"),
    "ck_ledger_accounts_discount_le_fee": ("Discount cannot exceed tuition fee", "discount"),
    "ck_ledger_accounts_scholarship_range": (
        "Scholarship percentage must be between 0 and 100",
        "scholarship_percentage",
    ),
    "ck_payment_events_amount_positive": ("Payment amount must be positive", "amount"),
}


def _friendly_db_error(exc: Exception) -> tuple[str, str | None, int]:
    """
    Convert common DB constraint errors to a stable, user-facing message.

    Full DB error text is only exposed when debug is enabled.
    """
    raw = str(getattr(exc, "orig", exc))
    lower = raw.lower()

    if "does not exist" in lower and "column" in lower:
        # Typical after deploying code without running Alembic migrations.
        return (
            "Database schema is out of date. Run the latest migrations and try again.",
            None,
            500,
        )

    if "uq_ledger_accounts_active_period" in lower or (
        "unique" in lower and "ledger_accounts" in lower
    ):
        return (
            "An active ledger account already exists for this student and period.",
            "student_id",
            409,
        )

    for constraint, (message, field) in _CHECK_CONSTRAINT_MESSAGES.items():
        if constraint in lower:
            return (message, field, 422)

    if "could not serialize" in lower or "deadlock detected" in lower:
        return ("Concurrent update detected. Reload and try again.", None, 409)

    if settings.debug:
        return (raw, None, 500)

    return ("Database error", None, 500)


async def sqlalchemy_db_error_handler(request: Request, exc: Exception) -> JSONResponse:
    message, field, status_code = _friendly_db_error(exc)
    if status_code >= 500:
        logger.error("database.error", path=request.url.path, error=str(getattr(exc, "orig", exc)))
    response = ErrorResponse(
        message=message,
        errors=[ErrorDetail(field=field, message=message)],
    )
    return JSONResponse(status_code=status_code, content=response.model_dump())
