"""
History Recorder - diff-based audit trail for customer updates.

Diffs are always taken against the PRE-update snapshot. Persisting the entry
is best-effort: a store failure is logged and counted, never raised, so the
primary update it documents still succeeds.
"""
import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wifidesk.lib.logging import get_logger
from wifidesk.lib.metrics import get_metrics_collector
from wifidesk.models.customer_histories import CustomerHistory


logger = get_logger(__name__)

# Attribute name -> name recorded in the audit entry (matches the JSON API)
FIELD_LABELS = {
    "days": "days",
    "payment_status": "paymentStatus",
    "package": "package",
    "price": "price",
}


@dataclass(frozen=True)
class FieldChange:
    """One changed attribute within an update."""
    field: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "oldValue": self.old_value, "newValue": self.new_value}


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    return value


def compute_changes(snapshot: Mapping[str, Any], update: Mapping[str, Any]) -> List[FieldChange]:
    """
    Fields of `update` whose value differs from `snapshot`, in update order.

    Comparison is strict inequality on plain values: enum members compare by
    their string value, numbers compare numerically, and a string never equals
    a number.
    """
    changes = []
    for attr, new_value in update.items():
        old, new = _plain(snapshot.get(attr)), _plain(new_value)
        if type(old) is not type(new) and not (_is_number(old) and _is_number(new)):
            differs = True
        else:
            differs = old != new
        if differs:
            changes.append(FieldChange(FIELD_LABELS.get(attr, attr), old, new))
    return changes


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class HistoryRecorder:
    """Appends CustomerHistory entries on the caller's session."""

    def __init__(self, db: Session):
        self.db = db
        self.metrics = get_metrics_collector()

    def record(
        self,
        customer_id: UUID,
        changes: List[FieldChange],
        updated_by: str = "system",
        source: str = "update",
    ) -> Optional[CustomerHistory]:
        """
        Persist one entry holding every change, or nothing when `changes` is empty.

        Returns:
            The stored entry, or None when nothing was written
        """
        if not changes:
            return None

        entry = CustomerHistory(
            customer_id=customer_id,
            changes=[change.to_dict() for change in changes],
            updated_by=updated_by,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self.metrics.increment_history_failures()
            logger.error(
                "Failed to write customer history",
                extra={
                    "customer_id": str(customer_id),
                    "fields": [change.field for change in changes],
                },
                exc_info=True,
            )
            return None

        self.metrics.increment_history_entries(source=source)
        logger.info(
            "Customer history recorded",
            extra={
                "customer_id": str(customer_id),
                "fields": [change.field for change in changes],
                "updated_by": updated_by,
            },
        )
        return entry

    def list_for_customer(self, customer_id: UUID) -> List[CustomerHistory]:
        """All entries for a customer, newest first."""
        stmt = (
            select(CustomerHistory)
            .where(CustomerHistory.customer_id == customer_id)
            .order_by(CustomerHistory.created_at.desc(), CustomerHistory.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())
