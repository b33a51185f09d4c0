# salonledger/core/monthly_rollup.py
"""
Monthly and annual profit & loss.

Services and products are kept as two P&Ls:

  services:  ingresos_servicios - egresos_servicios            -> subtotal
  products:  venta_productos - reinversion - product commission -> subtotal

Manual expenses already include what was paid out to professionals, so the
product-line commission is taken back out of egresos_servicios: it belongs to
the product P&L. Each admin's commission is then charged against both
subtotals independently, with separate monthly override maps.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from salonledger.core.allocation import (
    DEFAULT_FULL_PAYMENT_TOLERANCE,
    collected_amount,
    recognised_revenue,
)
from salonledger.core.commission_aggregator import build_commission_rows
from salonledger.core.records import (
    HUNDRED,
    ZERO,
    AdminCommissionType,
    AdminRate,
    AdminUser,
    Catalog,
    CommissionSettings,
    Expense,
    ItemKind,
    MonthlyAdjustment,
    PaymentStatus,
    RowType,
    Sale,
)

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


@dataclass
class AdminCommission:
    admin_id: str
    admin_name: str
    amount: Decimal
    # None on annual totals, where several monthly rates may have applied
    rate: Optional[AdminRate] = None


@dataclass
class MonthBucket:
    year: int
    month: Optional[int]  # None for annual totals
    ingresos_servicios: Decimal = ZERO
    venta_productos: Decimal = ZERO
    reinversion: Decimal = ZERO
    comision_profesionales_productos: Decimal = ZERO
    gastos_manuales: Decimal = ZERO
    egresos_servicios: Decimal = ZERO
    utilidad_servicios_subtotal: Decimal = ZERO
    utilidad_productos_subtotal: Decimal = ZERO
    comisiones_admin_servicios: Decimal = ZERO
    comisiones_admin_productos: Decimal = ZERO
    utilidad_neta_servicios: Decimal = ZERO
    utilidad_neta_productos: Decimal = ZERO
    rendimiento: Decimal = ZERO
    admin_commissions_services: dict[str, AdminCommission] = field(default_factory=dict)
    admin_commissions_products: dict[str, AdminCommission] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return MONTH_NAMES[self.month - 1] if self.month else "Total"

    @property
    def total_revenue(self) -> Decimal:
        return self.ingresos_servicios + self.venta_productos

    @property
    def utilidad_neta(self) -> Decimal:
        return self.utilidad_neta_servicios + self.utilidad_neta_productos


# Money fields that annual totals add up month by month.
SUMMED_FIELDS = tuple(
    f.name
    for f in fields(MonthBucket)
    if f.name not in {"year", "month", "rendimiento", "admin_commissions_services", "admin_commissions_products"}
)


@dataclass
class AnnualRollup:
    year: int
    months: list[MonthBucket]
    totals: MonthBucket


@dataclass
class DailyIncome:
    day: date
    cash: Decimal = ZERO
    deposit: Decimal = ZERO
    total: Decimal = ZERO


@dataclass
class MonthDetail:
    bucket: MonthBucket
    daily_income: list[DailyIncome]
    expenses: list[Expense]


def local_month(ts: datetime, tz: Optional[tzinfo]) -> tuple[int, int]:
    """(year, month) of a timestamp in business time. Naive timestamps are taken as already local."""
    if tz is not None and ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts.year, ts.month


def local_day(ts: datetime, tz: Optional[tzinfo]) -> date:
    if tz is not None and ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts.date()


def yield_pct(net: Decimal, revenue: Decimal) -> Decimal:
    if revenue > 0:
        return net / revenue * HUNDRED
    return ZERO


def admin_commission_amount(rate: AdminRate, subtotal: Decimal) -> Decimal:
    if rate.type is AdminCommissionType.FIXED:
        return rate.value
    if rate.type is AdminCommissionType.PERCENTAGE:
        return subtotal * rate.value / HUNDRED
    return ZERO


def _admin_commissions(
    admins: Sequence[AdminUser],
    overrides: Mapping[str, AdminRate],
    subtotal: Decimal,
) -> dict[str, AdminCommission]:
    out: dict[str, AdminCommission] = {}
    for admin in sorted(admins, key=lambda a: a.id):
        rate = overrides.get(admin.id, admin.default_rate)
        amount = admin_commission_amount(rate, subtotal)
        if amount > 0:
            out[admin.id] = AdminCommission(admin_id=admin.id, admin_name=admin.name, amount=amount, rate=rate)
    return out


def _settle(bucket: MonthBucket, admins: Sequence[AdminUser], adjustment: Optional[MonthlyAdjustment]) -> None:
    """Fill the derived fields of a bucket whose raw sums are in place."""
    bucket.egresos_servicios = bucket.gastos_manuales - bucket.comision_profesionales_productos
    bucket.utilidad_servicios_subtotal = bucket.ingresos_servicios - bucket.egresos_servicios
    bucket.utilidad_productos_subtotal = (
        bucket.venta_productos - bucket.reinversion - bucket.comision_profesionales_productos
    )

    service_overrides = adjustment.service_overrides if adjustment else {}
    product_overrides = adjustment.product_overrides if adjustment else {}
    bucket.admin_commissions_services = _admin_commissions(admins, service_overrides, bucket.utilidad_servicios_subtotal)
    bucket.admin_commissions_products = _admin_commissions(admins, product_overrides, bucket.utilidad_productos_subtotal)

    bucket.comisiones_admin_servicios = sum((c.amount for c in bucket.admin_commissions_services.values()), ZERO)
    bucket.comisiones_admin_productos = sum((c.amount for c in bucket.admin_commissions_products.values()), ZERO)

    bucket.utilidad_neta_servicios = bucket.utilidad_servicios_subtotal - bucket.comisiones_admin_servicios
    bucket.utilidad_neta_productos = bucket.utilidad_productos_subtotal - bucket.comisiones_admin_productos
    bucket.rendimiento = yield_pct(bucket.utilidad_neta, bucket.total_revenue)


def _merge_admin(into: dict[str, AdminCommission], source: Mapping[str, AdminCommission]) -> None:
    for admin_id, commission in source.items():
        existing = into.get(admin_id)
        if existing is None:
            into[admin_id] = AdminCommission(admin_id, commission.admin_name, commission.amount)
        else:
            existing.amount += commission.amount


def annual_totals(year: int, months: Iterable[MonthBucket]) -> MonthBucket:
    """Field-wise sum of the monthly buckets; yield is recomputed from the sums."""
    totals = MonthBucket(year=year, month=None)
    for bucket in months:
        for name in SUMMED_FIELDS:
            setattr(totals, name, getattr(totals, name) + getattr(bucket, name))
        _merge_admin(totals.admin_commissions_services, bucket.admin_commissions_services)
        _merge_admin(totals.admin_commissions_products, bucket.admin_commissions_products)

    totals.admin_commissions_services = dict(sorted(totals.admin_commissions_services.items()))
    totals.admin_commissions_products = dict(sorted(totals.admin_commissions_products.items()))
    totals.rendimiento = yield_pct(totals.utilidad_neta, totals.total_revenue)
    return totals


def build_annual_rollup(
    year: int,
    *,
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    catalog: Catalog,
    admins: Sequence[AdminUser],
    adjustments: Iterable[MonthlyAdjustment],
    settings: CommissionSettings,
    tz: Optional[tzinfo] = None,
    tolerance: Decimal = DEFAULT_FULL_PAYMENT_TOLERANCE,
) -> AnnualRollup:
    months = [MonthBucket(year=year, month=m) for m in range(1, 13)]

    year_sales: list[Sale] = []
    sale_month: dict[str, int] = {}
    # ratio-scaled revenue does not sum exactly; fix the order so the totals do not depend on it
    for sale in sorted(sales, key=lambda s: (s.timestamp, s.id)):
        y, m = local_month(sale.timestamp, tz)
        if y != year:
            continue
        year_sales.append(sale)
        sale_month[sale.id] = m
        bucket = months[m - 1]

        for item in sale.items:
            revenue = recognised_revenue(sale, item)
            if item.kind is ItemKind.SERVICE:
                bucket.ingresos_servicios += revenue
                continue

            bucket.venta_productos += revenue
            product = catalog.products.get(item.item_id)
            if product is None:
                logger.warning("sale %s: unknown product %s; no purchase cost counted", sale.id, item.item_id)
                continue
            bucket.reinversion += product.purchase_cost * item.quantity

    rows, _ = build_commission_rows(year_sales, catalog, settings, tolerance=tolerance)
    for row in rows:
        if row.item_type is RowType.PRODUCT:
            months[sale_month[row.sale_id] - 1].comision_profesionales_productos += row.commission_amount

    for expense in expenses:
        y, m = local_month(expense.date, tz)
        if y == year:
            months[m - 1].gastos_manuales += expense.amount

    by_month = {a.month: a for a in adjustments if a.year == year}
    for bucket in months:
        _settle(bucket, admins, by_month.get(bucket.month))

    return AnnualRollup(year=year, months=months, totals=annual_totals(year, months))


def _daily_income(sales: Iterable[Sale], tz: Optional[tzinfo]) -> list[DailyIncome]:
    days: dict[date, DailyIncome] = {}
    for sale in sales:
        day = local_day(sale.timestamp, tz)
        entry = days.setdefault(day, DailyIncome(day=day))
        paid = collected_amount(sale)
        method = (sale.payment_method or "").lower()

        if sale.payment_status is PaymentStatus.DEPOSIT_PAID or method in {"online", "card", "transfer"}:
            entry.deposit += paid
        elif method == "cash":
            entry.cash += paid
        elif method == "combined":
            split = sale.combined_payment
            entry.cash += split.get("cash", ZERO)
            entry.deposit += split.get("card", ZERO) + split.get("online", ZERO)
        entry.total += paid

    return [days[d] for d in sorted(days)]


def build_month_detail(
    year: int,
    month: int,
    *,
    sales: Sequence[Sale],
    expenses: Sequence[Expense],
    catalog: Catalog,
    admins: Sequence[AdminUser],
    adjustments: Iterable[MonthlyAdjustment],
    settings: CommissionSettings,
    tz: Optional[tzinfo] = None,
    tolerance: Decimal = DEFAULT_FULL_PAYMENT_TOLERANCE,
) -> MonthDetail:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")

    rollup = build_annual_rollup(
        year,
        sales=sales,
        expenses=expenses,
        catalog=catalog,
        admins=admins,
        adjustments=adjustments,
        settings=settings,
        tz=tz,
        tolerance=tolerance,
    )
    month_sales = [s for s in sales if local_month(s.timestamp, tz) == (year, month)]
    month_expenses = sorted(
        (e for e in expenses if local_month(e.date, tz) == (year, month)),
        key=lambda e: (e.date, e.id),
    )
    return MonthDetail(
        bucket=rollup.months[month - 1],
        daily_income=_daily_income(month_sales, tz),
        expenses=month_expenses,
    )
