"""
API middleware module.
"""
from wifidesk.api.middleware.error_handler import (
    AppException,
    NotFoundException,
    BadRequestException,
    InvalidTransitionException,
    ConflictException,
    DuplicateCustomerException,
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    store_exception_handler,
    unhandled_exception_handler,
)
from wifidesk.api.middleware.correlation import CorrelationIdMiddleware

__all__ = [
    "AppException",
    "NotFoundException",
    "BadRequestException",
    "InvalidTransitionException",
    "ConflictException",
    "DuplicateCustomerException",
    "app_exception_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "store_exception_handler",
    "unhandled_exception_handler",
    "CorrelationIdMiddleware",
]
