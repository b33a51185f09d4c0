# salonledger/models/ledger.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from salonledger.db.base import Base


class Expense(Base):
    """
    Hand-entered money out: payroll, commission payouts, fixed costs.
    Commission rows are never stored here; they are always recomputed.
    """

    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    spent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    concept: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    # professional id, or a free label such as "Fixed costs"
    recipient: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    location_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AdminUser(Base):
    """
    Local administrators earn a cut of each month's profit.
    commission_type: none | fixed | percentage
    """

    __tablename__ = "admin_users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(40), nullable=False, default="local_admin")

    commission_type: Mapped[str] = mapped_column(String(20), nullable=False, default="none", server_default="none")
    commission_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), server_default="0.00")


class MonthlyAdjustment(Base):
    """
    Per-month admin commission overrides, one map per P&L:
      {admin_user_id: {"type": "fixed" | "percentage", "value": n}}
    """

    __tablename__ = "monthly_adjustments"
    __table_args__ = (
        UniqueConstraint("year", "month", name="uq_monthly_adjustments_year_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    service_admin_commissions: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict, server_default="{}")
    product_admin_commissions: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict, server_default="{}")


class StockMovement(Base):
    """Append-only audit of stock changes."""

    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    location_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    from_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    to_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    # Cancellation | Sale | Adjustment | Restock
    cause: Mapped[str] = mapped_column(String(40), nullable=False)
    actor: Mapped[str] = mapped_column(String(200), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    # no FK: the sale is deleted by the cancellation that writes this row
    sale_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AppSetting(Base):
    """Key/value business settings, e.g. key="commissions" -> {"discounts_affect_commissions": true}."""

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict, server_default="{}")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
