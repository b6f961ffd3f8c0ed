from src.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DependencyError,
    DuplicateAccountError,
    InvalidFeeError,
    InvalidPaidTypeError,
    DiscountExceedsFeeError,
    InvalidPercentageError,
    NonPositiveAmountError,
    UnknownPaymentTypeError,
    UnknownPaymentMethodError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "DependencyError",
    "DuplicateAccountError",
    "InvalidFeeError",
    "InvalidPaidTypeError",
    "DiscountExceedsFeeError",
    "InvalidPercentageError",
    "NonPositiveAmountError",
    "UnknownPaymentTypeError",
    "UnknownPaymentMethodError",
]
