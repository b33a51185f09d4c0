# salonledger/schemas/finance.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from salonledger.core.records import AdminCommissionType
from salonledger.schemas.reports import Money


class AdminRateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: AdminCommissionType
    value: Decimal


class AdminCommissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    admin_id: str
    admin_name: str
    amount: Money
    rate: Optional[AdminRateOut] = None


class MonthBucketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    month: Optional[int] = None
    label: str

    ingresos_servicios: Money
    venta_productos: Money
    total_revenue: Money
    reinversion: Money
    comision_profesionales_productos: Money
    gastos_manuales: Money
    egresos_servicios: Money
    utilidad_servicios_subtotal: Money
    utilidad_productos_subtotal: Money
    comisiones_admin_servicios: Money
    comisiones_admin_productos: Money
    utilidad_neta_servicios: Money
    utilidad_neta_productos: Money
    utilidad_neta: Money
    rendimiento: Money

    admin_commissions_services: Dict[str, AdminCommissionOut]
    admin_commissions_products: Dict[str, AdminCommissionOut]


class AnnualRollupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    location_id: Optional[str] = None
    discounts_affect_commissions: bool
    months: List[MonthBucketOut]
    totals: MonthBucketOut


class DailyIncomeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    cash: Money
    deposit: Money
    total: Money


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    date: datetime
    amount: Money
    concept: str
    recipient: str
    location_id: Optional[str] = None


class MonthDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bucket: MonthBucketOut
    daily_income: List[DailyIncomeOut]
    expenses: List[ExpenseOut]
