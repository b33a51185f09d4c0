# salonledger/schemas/reports.py
from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer

from salonledger.core.records import RowType

CENTS = Decimal("0.01")

# Engine math keeps full precision; responses carry cents.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: v.quantize(CENTS, rounding=ROUND_HALF_UP), return_type=Decimal, when_used="json"),
]


class DiscountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount: Money
    value: Optional[Decimal] = None
    type: Optional[str] = None


class CommissionRowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sale_id: str
    professional_id: str
    professional_name: str
    client_id: Optional[str] = None
    item_id: Optional[str] = None
    item_name: str
    item_type: RowType
    sale_amount: Money
    commission_amount: Money
    commission_percentage: Money
    discount: Optional[DiscountOut] = None


class ProfessionalSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    professional_id: str
    professional_name: str
    total_sales: Money
    total_commission: Money
    details: List[CommissionRowOut]


class CategoryTotalsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sales: Money
    commission: Money


class UnassignedOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lines: int
    sale_amount: Money


class CommissionReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date_from: date
    date_to: date
    location_id: Optional[str] = None
    professional_id: Optional[str] = None
    discounts_affect_commissions: bool

    by_professional: List[ProfessionalSummaryOut]
    by_category: Dict[RowType, CategoryTotalsOut]
    total_sales: Money
    total_commission: Money
    unassigned: UnassignedOut
    skipped_lines: int


class ProductSalesLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    product_name: str
    units: int
    revenue: Money
    reinvestment: Money
    commission: Money
    profit: Money


class ProductSalesReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date_from: date
    date_to: date
    location_id: Optional[str] = None

    lines: List[ProductSalesLineOut]
    units: int
    revenue: Money
    reinvestment: Money
    commission: Money
    profit: Money
