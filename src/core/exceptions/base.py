from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error. Raised before any mutation, caller may retry with corrected input."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401)


class AuthorizationError(AppException):
    """Not authorized to perform action."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message=message, status_code=403)


class ConflictError(AppException):
    """State conflict. Caller must reload and retry."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=409, details=details)


class DependencyError(AppException):
    """An upstream collaborator (catalog, calendar) failed or had no answer."""

    def __init__(self, dependency: str, message: str):
        super().__init__(
            message=f"{dependency} lookup failed: {message}",
            status_code=503,
            details={"dependency": dependency},
        )


# --- Ledger ---


class DuplicateAccountError(ConflictError):
    """An active ledger account already exists for the student and period."""

    def __init__(self, student_id: int, academic_year: str, semester: int):
        super().__init__(
            message=(
                f"Active ledger account already exists for student {student_id} "
                f"in {academic_year} semester {semester}"
            ),
            details={"student_id": student_id, "academic_year": academic_year, "semester": semester},
        )


class InvalidFeeError(ValidationError):
    def __init__(self, message: str = "Tuition fee cannot be negative", field: str = "tuition_fee"):
        super().__init__(message=message, field=field)


class InvalidPaidTypeError(ValidationError):
    def __init__(self, value: Any):
        super().__init__(message=f"Unknown paid type: {value}", field="paid_type")


class DiscountExceedsFeeError(ValidationError):
    def __init__(self, discount: Any, tuition_fee: Any):
        super().__init__(
            message=f"Discount ({discount}) cannot exceed tuition fee ({tuition_fee})",
            field="discount",
        )


class InvalidPercentageError(ValidationError):
    def __init__(self, value: Any, field: str = "percentage", message: str | None = None):
        super().__init__(
            message=message or f"Percentage must be between 0 and 100, got {value}", field=field
        )


class NonPositiveAmountError(ValidationError):
    def __init__(self, amount: Any):
        super().__init__(message=f"Payment amount must be positive, got {amount}", field="amount")


class UnknownPaymentTypeError(ValidationError):
    def __init__(self, value: Any):
        super().__init__(message=f"Unknown payment type: {value}", field="payment_type")


class UnknownPaymentMethodError(ValidationError):
    def __init__(self, value: Any):
        super().__init__(message=f"Unknown payment method: {value}", field="payment_method")
