"""
Monthly balance route - billed vs collected amounts for one billing month.
"""
from typing import Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from wifidesk.api.routes.customers import MONTH_PATTERN
from wifidesk.lib.db import get_db
from wifidesk.services.reporting_service import ReportingService


router = APIRouter(prefix="/balance", tags=["balance"])

Amount = Union[int, float]


class BalanceResponse(BaseModel):
    """Monthly balance (field names match the dashboard chart)."""
    totalAmount: Amount = Field(description="Sum of price over all records")
    paidAmount: Amount = Field(description="Sum of price over PAID and COMPLETED records")
    pendingAmount: Amount = Field(description="totalAmount - paidAmount")
    customerCount: int = Field(description="Number of records in the month")
    paidCustomers: int = Field(description="Number of PAID and COMPLETED records")


@router.get("", response_model=BalanceResponse, summary="Monthly balance")
def get_balance(
    month: str = Query(..., pattern=MONTH_PATTERN, description="Billing month, YYYY-MM"),
    db: Session = Depends(get_db),
) -> BalanceResponse:
    """
    Balance for a month. A month without records returns all zeros.
    """
    return BalanceResponse(**ReportingService(db).monthly_balance(month))
