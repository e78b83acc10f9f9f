"""
ReportingService - read-only views over customer records for the dashboard.

Provides:
- Active / completed customer lists for a billing month
- Distinct billing months (newest first) for month pickers
- Monthly balance: billed, collected and outstanding amounts
"""
from typing import Any, Dict, List
import enum

from sqlalchemy import select, func, case
from sqlalchemy.orm import Session

from wifidesk.lib.logging import get_logger
from wifidesk.models.customers import Customer, PaymentStatus


logger = get_logger(__name__)


class CustomerBucket(str, enum.Enum):
    """Dashboard tab a customer list is requested for."""
    ACTIVE = "active"
    COMPLETED = "completed"


BUCKET_STATUSES = {
    CustomerBucket.ACTIVE: (PaymentStatus.PENDING, PaymentStatus.PAID),
    CustomerBucket.COMPLETED: (PaymentStatus.COMPLETED,),
}

# Statuses whose price counts as collected
SETTLED_STATUSES = (PaymentStatus.PAID, PaymentStatus.COMPLETED)


def _number(value: Any) -> Any:
    """Normalise SQL sums (Decimal / float) to int when whole, float otherwise."""
    if value is None:
        return 0
    value = float(value)
    return int(value) if value.is_integer() else value


class ReportingService:
    """Aggregations over the customers table."""

    def __init__(self, db: Session):
        self.db = db

    def list_customers(self, month: str, bucket: CustomerBucket = CustomerBucket.ACTIVE) -> List[Customer]:
        """
        Customers for a month in the given bucket, newest first.

        Args:
            month: Billing month (YYYY-MM)
            bucket: active (PENDING or PAID) or completed (COMPLETED)
        """
        stmt = (
            select(Customer)
            .where(Customer.month == month)
            .where(Customer.payment_status.in_(BUCKET_STATUSES[CustomerBucket(bucket)]))
            .order_by(Customer.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def distinct_months(self) -> List[str]:
        """Every billing month present in the store, most recent first."""
        stmt = select(Customer.month).distinct().order_by(Customer.month.desc())
        return list(self.db.execute(stmt).scalars().all())

    def monthly_balance(self, month: str) -> Dict[str, Any]:
        """
        Balance summary for a month.

        Returns:
            {
                'totalAmount': sum of price over all records,
                'paidAmount': sum of price over PAID and COMPLETED records,
                'pendingAmount': totalAmount - paidAmount,
                'customerCount': number of records,
                'paidCustomers': number of PAID and COMPLETED records,
            }
        """
        settled = Customer.payment_status.in_(SETTLED_STATUSES)
        stmt = select(
            func.coalesce(func.sum(Customer.price), 0),
            func.coalesce(func.sum(case((settled, Customer.price), else_=0)), 0),
            func.count(Customer.id),
            func.coalesce(func.sum(case((settled, 1), else_=0)), 0),
        ).where(Customer.month == month)

        total, paid, count, paid_count = self.db.execute(stmt).one()
        total, paid = _number(total), _number(paid)

        logger.debug("Monthly balance computed", extra={"month": month, "customer_count": count})

        return {
            "totalAmount": total,
            "paidAmount": paid,
            "pendingAmount": _number(total - paid),
            "customerCount": int(count),
            "paidCustomers": int(paid_count),
        }
