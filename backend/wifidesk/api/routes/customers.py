"""
Customers API routes.

Provides:
- POST /customers: create a subscription record for a billing month
- GET /customers: active or completed records for a month
- GET /customers/months: billing months present in the store
- GET /customers/{id}: one record
- PATCH /customers/{id}: partial update with audit trail and lifecycle policy
- GET /customers/{id}/history: audit entries, newest first
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from wifidesk.lib.db import get_db
from wifidesk.lib.logging import get_logger
from wifidesk.models.customers import PackageType, PaymentStatus
from wifidesk.services.customer_service import CustomerService
from wifidesk.services.reporting_service import CustomerBucket, ReportingService


logger = get_logger(__name__)
router = APIRouter(prefix="/customers", tags=["customers"])

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# Pydantic schemas
class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON (either accepted on input)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CustomerCreate(CamelModel):
    """New customer subscription for one billing month. Status always starts as PENDING."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, description="Customer name")
    phone: str = Field(min_length=11, description="Phone number (unique per month)")
    package: PackageType = Field(default=PackageType.BASIC, description="Subscription package")
    days: int = Field(ge=1, description="Subscription duration in days")
    month: str = Field(pattern=MONTH_PATTERN, description="Billing month, YYYY-MM")
    price: Optional[Decimal] = Field(
        default=None,
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Price snapshot; defaults to the package price",
    )


class CustomerUpdate(CamelModel):
    """Partial update; only the fields present are applied."""
    model_config = ConfigDict(extra="forbid")

    days: Optional[int] = Field(default=None, ge=1)
    payment_status: Optional[PaymentStatus] = None
    package: Optional[PackageType] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)

    @field_validator("days", "payment_status", "package", "price", mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        # Omit a field to leave it unchanged
        if value is None:
            raise ValueError("must not be null")
        return value


class CustomerResponse(CamelModel):
    """Customer record as returned by the API."""
    id: UUID
    name: str
    phone: str
    package: PackageType
    price: float
    days: int
    payment_status: PaymentStatus
    month: str
    created_at: datetime
    updated_at: datetime


class HistoryChange(CamelModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class CustomerHistoryResponse(CamelModel):
    """One audit entry."""
    id: int
    customer_id: UUID
    changes: List[HistoryChange]
    updated_by: str
    created_at: datetime


@router.post(
    "",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
)
def create_customer(
    payload: CustomerCreate,
    db: Session = Depends(get_db),
) -> CustomerResponse:
    """
    Create a customer record in PENDING status.

    Returns 400 when a record already exists for the same phone and month.
    """
    service = CustomerService(db)
    customer = service.create_customer(
        name=payload.name,
        phone=payload.phone,
        package=payload.package,
        days=payload.days,
        month=payload.month,
        price=payload.price,
    )
    return CustomerResponse.model_validate(customer)


@router.get("", response_model=List[CustomerResponse], summary="List customers for a month")
def list_customers(
    month: str = Query(..., pattern=MONTH_PATTERN, description="Billing month, YYYY-MM"),
    bucket: CustomerBucket = Query(
        CustomerBucket.ACTIVE,
        alias="status",
        description="active (PENDING or PAID) or completed (COMPLETED)",
    ),
    db: Session = Depends(get_db),
) -> List[CustomerResponse]:
    """Customers for a month in the requested bucket, newest first."""
    customers = ReportingService(db).list_customers(month, bucket)
    return [CustomerResponse.model_validate(c) for c in customers]


@router.get("/months", response_model=List[str], summary="List billing months")
def list_months(db: Session = Depends(get_db)) -> List[str]:
    return ReportingService(db).distinct_months()


@router.get("/{customer_id}", response_model=CustomerResponse, summary="Get customer")
def get_customer(customer_id: UUID, db: Session = Depends(get_db)) -> CustomerResponse:
    customer = CustomerService(db).get_customer(customer_id)
    return CustomerResponse.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerResponse, summary="Update customer")
def update_customer(
    customer_id: UUID,
    payload: CustomerUpdate,
    updated_by: str = Header(
        "system",
        alias="X-Updated-By",
        max_length=64,
        description="Who made the change (stored on the history entry)",
    ),
    db: Session = Depends(get_db),
) -> CustomerResponse:
    """
    Update days, payment status, package or price.

    Field changes are written to the customer's history. A PAID record that
    reaches 30 days is moved to COMPLETED in the same request; the response
    reflects that final state.
    """
    service = CustomerService(db)
    customer = service.update_customer(
        customer_id,
        payload.model_dump(exclude_unset=True),
        updated_by=updated_by,
    )
    return CustomerResponse.model_validate(customer)


@router.get(
    "/{customer_id}/history",
    response_model=List[CustomerHistoryResponse],
    summary="Customer change history",
)
def get_customer_history(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> List[CustomerHistoryResponse]:
    """History entries for a customer, newest first."""
    entries = CustomerService(db).get_history(customer_id)
    return [CustomerHistoryResponse.model_validate(e) for e in entries]
