# salonledger/crud/snapshot.py
"""
Storage side of the reports: load ORM rows and turn them into engine records.

Malformed rows are dropped (or the malformed part is ignored) with a warning;
one bad record never fails a report.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salonledger.core import records as r
from salonledger.core.commission_cascade import parse_commission_config
from salonledger.crud.settings import load_commission_settings
from salonledger.models.catalog import Product, Service
from salonledger.models.ledger import AdminUser, Expense, MonthlyAdjustment
from salonledger.models.professional import Professional
from salonledger.models.sale import Sale

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOCAL_ADMIN_ROLE = "local_admin"

_PAYMENT_STATUS_ALIASES = {
    "paid": r.PaymentStatus.PAID,
    "pagado": r.PaymentStatus.PAID,
    "deposit_paid": r.PaymentStatus.DEPOSIT_PAID,
    "pago parcial": r.PaymentStatus.DEPOSIT_PAID,
    "partial": r.PaymentStatus.DEPOSIT_PAID,
    "pending": r.PaymentStatus.PENDING,
    "pendiente": r.PaymentStatus.PENDING,
}


def _sid(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _dec(value: Any) -> Decimal:
    if value is None:
        return r.ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _config(raw: Any, where: str) -> Optional[r.CommissionConfig]:
    try:
        return parse_commission_config(raw)
    except ValueError as e:
        logger.warning("%s: ignoring malformed commission config %r (%s)", where, raw, e)
        return None


def _json_object(raw: Any, where: str) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning("%s: expected a JSON object, got %s; ignored", where, type(raw).__name__)
        return {}
    return raw


def _config_map(raw: Any, where: str) -> dict[str, r.CommissionConfig]:
    out: dict[str, r.CommissionConfig] = {}
    for item_id, cfg in _json_object(raw, where).items():
        parsed = _config(cfg, f"{where}[{item_id}]")
        if parsed is not None:
            out[str(item_id)] = parsed
    return out


def parse_payment_status(value: Optional[str], sale_id: str) -> r.PaymentStatus:
    status = _PAYMENT_STATUS_ALIASES.get((value or "").strip().lower())
    if status is None:
        # unknown status: still counted as revenue, never pays commission
        logger.warning("sale %s: unknown payment status %r; treated as pending", sale_id, value)
        return r.PaymentStatus.PENDING
    return status


def parse_admin_rate(raw: Any, where: str) -> Optional[r.AdminRate]:
    if not isinstance(raw, dict):
        return None
    try:
        kind = r.AdminCommissionType(str(raw.get("type") or "none").strip().lower())
        value = _dec(raw.get("value"))
    except (ValueError, ArithmeticError):
        logger.warning("%s: ignoring malformed admin commission %r", where, raw)
        return None
    if not value.is_finite():
        logger.warning("%s: ignoring non-finite admin commission %r", where, raw)
        return None
    if value < 0:
        logger.warning("%s: ignoring negative admin commission %r", where, raw)
        return None
    return r.AdminRate(kind, value)


# -----------------------------
# ORM -> record
# -----------------------------
def to_professional(row: Professional) -> r.Professional:
    where = f"professional {row.id}"
    return r.Professional(
        id=str(row.id),
        name=row.name,
        active=bool(row.is_active),
        default_commission=_config(row.default_commission, where),
        service_commissions=_config_map(row.service_commissions, f"{where} services"),
        product_commissions=_config_map(row.product_commissions, f"{where} products"),
    )


def to_service(row: Service) -> r.CatalogEntry:
    return r.CatalogEntry(
        id=str(row.id),
        name=row.name,
        kind=r.ItemKind.SERVICE,
        default_commission=_config(row.default_commission, f"service {row.id}"),
    )


def to_product(row: Product) -> r.CatalogEntry:
    return r.CatalogEntry(
        id=str(row.id),
        name=row.name,
        kind=r.ItemKind.PRODUCT,
        default_commission=_config(row.default_commission, f"product {row.id}"),
        purchase_cost=_dec(row.purchase_cost),
    )


def _combined_payment(raw: Any, sale_id: str) -> dict[str, Decimal]:
    where = f"sale {sale_id} combined payment"
    out: dict[str, Decimal] = {}
    for method, amount in _json_object(raw, where).items():
        try:
            value = _dec(amount)
        except ArithmeticError:
            value = None
        if value is None or not value.is_finite():
            logger.warning("%s: ignoring %s amount %r", where, method, amount)
            continue
        out[str(method)] = value
    return out


def to_sale(row: Sale) -> r.Sale:
    sale_id = str(row.id)
    items: list[r.SaleItem] = []
    for it in row.items:
        try:
            kind = r.ItemKind((it.kind or "").strip().lower())
        except ValueError:
            logger.warning("sale %s: line %s has unknown kind %r; skipped", sale_id, it.id, it.kind)
            continue
        if it.quantity is None or it.quantity < 0:
            logger.warning("sale %s: line %s has invalid quantity %r; skipped", sale_id, it.id, it.quantity)
            continue
        items.append(
            r.SaleItem(
                item_id=str(it.item_id),
                kind=kind,
                name=it.name or "",
                quantity=it.quantity,
                unit_price=_dec(it.unit_price),
                subtotal=_dec(it.subtotal),
                discount_amount=_dec(it.discount_amount),
                discount_value=it.discount_value,
                discount_type=it.discount_type,
                professional_id=_sid(it.professional_id),
            )
        )

    return r.Sale(
        id=sale_id,
        timestamp=row.occurred_at,
        total=_dec(row.total),
        payment_status=parse_payment_status(row.payment_status, sale_id),
        items=tuple(items),
        location_id=_sid(row.location_id),
        client_id=_sid(row.client_id),
        payment_method=row.payment_method or "",
        amount_paid_actual=row.amount_paid_actual,
        tip=_dec(row.tip),
        discount=_dec(row.discount),
        reservation_id=_sid(row.reservation_id),
        combined_payment=_combined_payment(row.combined_payment, sale_id),
    )


def to_expense(row: Expense) -> r.Expense:
    return r.Expense(
        id=str(row.id),
        date=row.spent_at,
        amount=_dec(row.amount),
        concept=row.concept or "",
        recipient=row.recipient or "",
        location_id=_sid(row.location_id),
    )


def to_admin(row: AdminUser) -> r.AdminUser:
    rate = parse_admin_rate(
        {"type": row.commission_type, "value": row.commission_value},
        f"admin {row.id}",
    )
    return r.AdminUser(
        id=str(row.id),
        name=row.name,
        role=row.role,
        default_rate=rate or r.AdminRate(r.AdminCommissionType.NONE),
    )


def to_adjustment(row: MonthlyAdjustment) -> r.MonthlyAdjustment:
    def overrides(raw: Any, label: str) -> dict[str, r.AdminRate]:
        out: dict[str, r.AdminRate] = {}
        where = f"adjustment {row.year}-{row.month:02d} {label}"
        for admin_id, cfg in _json_object(raw, where).items():
            rate = parse_admin_rate(cfg, f"{where}[{admin_id}]")
            if rate is not None:
                out[str(admin_id)] = rate
        return out

    return r.MonthlyAdjustment(
        year=row.year,
        month=row.month,
        service_overrides=overrides(row.service_admin_commissions, "services"),
        product_overrides=overrides(row.product_admin_commissions, "products"),
    )


def day_bounds(date_from: date, date_to: Optional[date], tz: tzinfo) -> tuple[datetime, datetime]:
    """[start of date_from, start of the day after date_to) in business time."""
    start = datetime.combine(date_from, time.min, tzinfo=tz)
    end = datetime.combine((date_to or date_from) + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def year_bounds(year: int, tz: tzinfo) -> tuple[datetime, datetime]:
    return day_bounds(date(year, 1, 1), date(year, 12, 31), tz)


# -----------------------------
# Loader
# -----------------------------
class SnapshotLoader:
    """
    Request-scoped loader. Each dataset is fetched at most once per loader:
    concurrent callers asking for the same dataset wait on the first fetch
    instead of issuing their own.
    """

    def __init__(self, db: AsyncSession, tz: tzinfo) -> None:
        self.db = db
        self.tz = tz
        self._loaded: dict[Any, Any] = {}
        self._locks: defaultdict[Any, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _once(self, key: Any, fetch: Callable[[], Awaitable[T]]) -> T:
        async with self._locks[key]:
            if key not in self._loaded:
                self._loaded[key] = await fetch()
            return self._loaded[key]

    async def commission_settings(self) -> r.CommissionSettings:
        return await self._once("settings", lambda: load_commission_settings(self.db))

    async def catalog(self) -> r.Catalog:
        async def fetch() -> r.Catalog:
            professionals = (await self.db.execute(select(Professional).order_by(Professional.id))).scalars().all()
            services = (await self.db.execute(select(Service).order_by(Service.id))).scalars().all()
            products = (await self.db.execute(select(Product).order_by(Product.id))).scalars().all()
            return r.Catalog.build(
                professionals=[to_professional(p) for p in professionals],
                services=[to_service(s) for s in services],
                products=[to_product(p) for p in products],
            )

        return await self._once("catalog", fetch)

    async def sales(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[r.Sale]:
        """Sales with start <= occurred_at < end; no bounds means the full history."""

        async def fetch() -> list[r.Sale]:
            stmt = select(Sale)
            if start is not None:
                stmt = stmt.where(Sale.occurred_at >= start)
            if end is not None:
                stmt = stmt.where(Sale.occurred_at < end)
            stmt = stmt.order_by(Sale.occurred_at, Sale.id)
            rows = (await self.db.execute(stmt)).scalars().all()
            logger.debug("loaded %d sales [%s, %s)", len(rows), start, end)
            return [to_sale(row) for row in rows]

        return await self._once(("sales", start, end), fetch)

    async def expenses(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[r.Expense]:
        async def fetch() -> list[r.Expense]:
            stmt = select(Expense)
            if start is not None:
                stmt = stmt.where(Expense.spent_at >= start)
            if end is not None:
                stmt = stmt.where(Expense.spent_at < end)
            stmt = stmt.order_by(Expense.spent_at, Expense.id)
            return [to_expense(row) for row in (await self.db.execute(stmt)).scalars().all()]

        return await self._once(("expenses", start, end), fetch)

    async def admins(self) -> list[r.AdminUser]:
        async def fetch() -> list[r.AdminUser]:
            stmt = select(AdminUser).where(AdminUser.role == LOCAL_ADMIN_ROLE).order_by(AdminUser.id)
            return [to_admin(row) for row in (await self.db.execute(stmt)).scalars().all()]

        return await self._once("admins", fetch)

    async def adjustments(self, year: int) -> list[r.MonthlyAdjustment]:
        async def fetch() -> list[r.MonthlyAdjustment]:
            stmt = (
                select(MonthlyAdjustment)
                .where(MonthlyAdjustment.year == year)
                .order_by(MonthlyAdjustment.month)
            )
            return [to_adjustment(row) for row in (await self.db.execute(stmt)).scalars().all()]

        return await self._once(("adjustments", year), fetch)
