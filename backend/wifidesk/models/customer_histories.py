"""
CustomerHistory model - append-only audit trail of customer updates.
"""
from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import String, Integer, DateTime, Uuid, JSON
from sqlalchemy.orm import Mapped, mapped_column

from wifidesk.lib.db import Base
from wifidesk.models.customers import utcnow


class CustomerHistory(Base):
    """
    One audit entry per update that changed at least one field.

    `customer_id` is a weak reference: no foreign key, so deleting a
    customer leaves its history in place.
    """
    __tablename__ = "customer_histories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    customer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
    )

    # [{"field": ..., "oldValue": ..., "newValue": ...}, ...] in update order
    changes: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False)

    updated_by: Mapped[str] = mapped_column(String(64), nullable=False, default="system")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<CustomerHistory(id={self.id}, customer_id={self.customer_id}, changes={len(self.changes)})>"
