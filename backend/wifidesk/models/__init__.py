"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from wifidesk.models.customers import Customer, PackageType, PaymentStatus, PACKAGE_PRICES
from wifidesk.models.customer_histories import CustomerHistory

__all__ = [
    "Customer",
    "CustomerHistory",
    "PackageType",
    "PaymentStatus",
    "PACKAGE_PRICES",
]
