"""
Customer model - one subscription record for one billing month.
"""
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4
import enum

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    DateTime,
    Uuid,
    Enum as SQLEnum,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from wifidesk.lib.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PackageType(str, enum.Enum):
    """Subscription package enumeration."""
    BASIC = "BASIC"
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"


# Monthly price per package, snapshotted onto the record at write time
PACKAGE_PRICES: Dict[PackageType, int] = {
    PackageType.BASIC: 500,
    PackageType.STANDARD: 700,
    PackageType.PREMIUM: 1000,
}


class PaymentStatus(str, enum.Enum):
    """Payment lifecycle: PENDING -> PAID -> COMPLETED."""
    PENDING = "PENDING"
    PAID = "PAID"
    COMPLETED = "COMPLETED"


class Customer(Base):
    """
    Customer entity - a customer's subscription for one billing month.
    (phone, month) is unique; a new month is a new row.
    """
    __tablename__ = "customers"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Contact
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    # Subscription
    package: Mapped[PackageType] = mapped_column(
        SQLEnum(PackageType, name="package_type", validate_strings=True),
        nullable=False,
        default=PackageType.BASIC,
    )
    price: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status", validate_strings=True),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )

    # Billing period, YYYY-MM
    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("phone", "month", name="uq_customers_phone_month"),
        CheckConstraint("price >= 0", name="customer_price_non_negative"),
        CheckConstraint("days >= 1", name="customer_days_positive"),
    )

    __mapper_args__ = {"version_id_col": version}

    def snapshot(self) -> Dict[str, Any]:
        """Plain-value view of the tracked fields, used for diffing."""
        return {
            "days": self.days,
            "payment_status": self.payment_status.value,
            "package": self.package.value,
            "price": float(self.price),
        }

    def __repr__(self) -> str:
        return (
            f"<Customer(id={self.id}, phone={self.phone}, month={self.month}, "
            f"status={self.payment_status})>"
        )
