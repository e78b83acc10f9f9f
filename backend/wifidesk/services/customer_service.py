"""
CustomerService - create, read and update customer subscription records.

Update orchestration:
1. Load the record (404 when missing)
2. Validate any requested payment status move
3. Re-derive price when the package changes without an explicit price,
   then round it to cents
4. Diff against the pre-update snapshot
5. Commit the update
6. Record the diff (best-effort)
7. Re-run the lifecycle policy on post-update values; an automatic
   PAID -> COMPLETED move is committed and audited as its own entry
8. Return the final record
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from wifidesk.api.middleware.error_handler import (
    ConflictException,
    DuplicateCustomerException,
    NotFoundException,
)
from wifidesk.lib.logging import get_logger
from wifidesk.lib.metrics import get_metrics_collector
from wifidesk.models.customers import Customer, PackageType, PaymentStatus, PACKAGE_PRICES
from wifidesk.models.customer_histories import CustomerHistory
from wifidesk.services import lifecycle
from wifidesk.services.history_recorder import FieldChange, HistoryRecorder, compute_changes


logger = get_logger(__name__)

# Fields a PATCH may touch
UPDATABLE_FIELDS = ("days", "payment_status", "package", "price")

LIFECYCLE_ACTOR = "lifecycle-policy"

# Precision of the price column
CENTS = Decimal("0.01")


def to_stored_price(value: Union[int, float, Decimal]) -> float:
    """Round a price to the precision it is stored with, so diffs match what is persisted."""
    return float(Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP))


class CustomerService:
    """Customer record operations on a single request-scoped session."""

    def __init__(self, db: Session):
        self.db = db
        self.metrics = get_metrics_collector()
        self.history = HistoryRecorder(db)

    # ===== Create =====

    def find_by_phone_and_month(self, phone: str, month: str) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.phone == phone, Customer.month == month)
        return self.db.execute(stmt).scalar_one_or_none()

    def create_customer(
        self,
        name: str,
        phone: str,
        package: PackageType,
        days: int,
        month: str,
        price: Optional[Union[float, Decimal]] = None,
    ) -> Customer:
        """
        Create a PENDING customer record for one billing month.

        Raises:
            DuplicateCustomerException: a record already exists for (phone, month)
        """
        package = PackageType(package)
        if self.find_by_phone_and_month(phone, month) is not None:
            self._reject_duplicate(phone, month)

        customer = Customer(
            name=name,
            phone=phone,
            package=package,
            price=to_stored_price(PACKAGE_PRICES[package] if price is None else price),
            days=days,
            month=month,
            payment_status=PaymentStatus.PENDING,
        )
        self.db.add(customer)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost the race against a concurrent create for the same (phone, month)
            self.db.rollback()
            self._reject_duplicate(phone, month)

        self.db.refresh(customer)
        self.metrics.increment_customers_created(package=package.value)
        logger.info(
            "Customer created",
            extra={
                "customer_id": str(customer.id),
                "month": month,
                "package": package.value,
            },
        )
        return customer

    def _reject_duplicate(self, phone: str, month: str) -> None:
        self.metrics.increment_duplicate_rejections()
        logger.warning("Duplicate customer rejected", extra={"month": month})
        raise DuplicateCustomerException(phone, month)

    # ===== Read =====

    def get_customer(self, customer_id: UUID) -> Customer:
        """
        Raises:
            NotFoundException: no record with this id
        """
        customer = self.db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundException("Customer", str(customer_id))
        return customer

    def get_history(self, customer_id: UUID) -> List[CustomerHistory]:
        """History entries for a customer id, newest first."""
        return self.history.list_for_customer(customer_id)

    # ===== Update =====

    def update_customer(
        self,
        customer_id: UUID,
        update: Dict[str, Any],
        updated_by: str = "system",
    ) -> Customer:
        """
        Apply a partial update and re-evaluate the lifecycle policy.

        Args:
            customer_id: Record to update
            update: Subset of days / payment_status / package / price
            updated_by: Actor stored on the history entry

        Returns:
            The record in its final (post-policy) state

        Raises:
            NotFoundException: unknown id
            InvalidTransitionException: backwards or explicit COMPLETED status move
            ConflictException: the record changed underneath this update
        """
        update = {k: v for k, v in update.items() if k in UPDATABLE_FIELDS and v is not None}

        customer = self.get_customer(customer_id)
        snapshot = customer.snapshot()

        if "payment_status" in update:
            update["payment_status"] = PaymentStatus(update["payment_status"])
            lifecycle.validate_requested_status(customer.payment_status, update["payment_status"])

        if "package" in update:
            update["package"] = PackageType(update["package"])
            if "price" not in update:
                update["price"] = PACKAGE_PRICES[update["package"]]
        if "price" in update:
            update["price"] = to_stored_price(update["price"])

        changes = compute_changes(snapshot, update)

        for field, value in update.items():
            if field == "price":
                value = Decimal(str(value))
            setattr(customer, field, value)
        self._commit_update(customer_id)

        self.metrics.increment_updates(changed=bool(changes))
        if "payment_status" in update and update["payment_status"].value != snapshot["payment_status"]:
            self.metrics.increment_transitions(
                snapshot["payment_status"], update["payment_status"].value, trigger="manual"
            )
        logger.info(
            "Customer updated",
            extra={
                "customer_id": str(customer_id),
                "fields": [change.field for change in changes],
            },
        )

        self.history.record(customer_id, changes, updated_by=updated_by)

        self._apply_lifecycle_policy(customer)
        return customer

    def _apply_lifecycle_policy(self, customer: Customer) -> None:
        if not lifecycle.should_complete(customer.payment_status, customer.days):
            return

        previous = customer.payment_status
        customer.payment_status = PaymentStatus.COMPLETED
        self._commit_update(customer.id)

        self.metrics.increment_transitions(previous.value, PaymentStatus.COMPLETED.value, trigger="auto")
        logger.info(
            "Customer completed by lifecycle policy",
            extra={"customer_id": str(customer.id), "days": customer.days},
        )
        self.history.record(
            customer.id,
            [FieldChange("paymentStatus", previous.value, PaymentStatus.COMPLETED.value)],
            updated_by=LIFECYCLE_ACTOR,
            source="lifecycle",
        )

    def _commit_update(self, customer_id: UUID) -> None:
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConflictException(
                "Customer was modified by another request; reload and retry",
                details={"customer_id": str(customer_id)},
            )
