# salonledger/core/records.py
"""
In-memory records the commission and rollup engines work on.

These are plain frozen dataclasses: the storage layer (crud/snapshot.py)
builds them from ORM rows, tests build them by hand. Money is always Decimal,
ids are always str.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional, Union

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    DEPOSIT_PAID = "deposit_paid"
    PAID = "paid"


class ItemKind(str, enum.Enum):
    SERVICE = "service"
    PRODUCT = "product"


class RowType(str, enum.Enum):
    SERVICE = "service"
    PRODUCT = "product"
    TIP = "tip"


class AdminCommissionType(str, enum.Enum):
    NONE = "none"
    FIXED = "fixed"
    PERCENTAGE = "percentage"


# -----------------------------
# Commission config (tagged union)
# -----------------------------
@dataclass(frozen=True)
class Percentage:
    value: Decimal


@dataclass(frozen=True)
class Fixed:
    value: Decimal


CommissionConfig = Union[Percentage, Fixed]


@dataclass(frozen=True)
class CommissionSettings:
    discounts_affect_commissions: bool = True


# -----------------------------
# Source records
# -----------------------------
@dataclass(frozen=True)
class SaleItem:
    item_id: str
    kind: ItemKind
    subtotal: Decimal
    quantity: int = 1
    unit_price: Decimal = ZERO
    discount_amount: Decimal = ZERO
    name: str = ""
    professional_id: Optional[str] = None
    # how the discount was entered at the till ("%" or "$"), display only
    discount_value: Optional[Decimal] = None
    discount_type: Optional[str] = None


@dataclass(frozen=True)
class Sale:
    id: str
    timestamp: datetime
    total: Decimal
    payment_status: PaymentStatus
    items: tuple[SaleItem, ...] = ()
    location_id: Optional[str] = None
    client_id: Optional[str] = None
    payment_method: str = "cash"
    amount_paid_actual: Optional[Decimal] = None
    tip: Decimal = ZERO
    discount: Decimal = ZERO
    reservation_id: Optional[str] = None
    # split for payment_method == "combined": {"cash": ..., "card": ..., "online": ...}
    combined_payment: Mapping[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class Professional:
    id: str
    name: str
    active: bool = True
    default_commission: Optional[CommissionConfig] = None
    service_commissions: Mapping[str, CommissionConfig] = field(default_factory=dict)
    product_commissions: Mapping[str, CommissionConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    kind: ItemKind
    default_commission: Optional[CommissionConfig] = None
    purchase_cost: Decimal = ZERO


@dataclass(frozen=True)
class AdminRate:
    type: AdminCommissionType
    value: Decimal = ZERO


@dataclass(frozen=True)
class AdminUser:
    id: str
    name: str
    role: str = "local_admin"
    default_rate: AdminRate = AdminRate(AdminCommissionType.NONE)


@dataclass(frozen=True)
class MonthlyAdjustment:
    year: int
    month: int  # 1..12
    service_overrides: Mapping[str, AdminRate] = field(default_factory=dict)
    product_overrides: Mapping[str, AdminRate] = field(default_factory=dict)


@dataclass(frozen=True)
class Expense:
    id: str
    date: datetime
    amount: Decimal
    concept: str = ""
    recipient: str = ""
    location_id: Optional[str] = None


@dataclass(frozen=True)
class Catalog:
    """Lookup tables the engines resolve ids against."""

    professionals: Mapping[str, Professional] = field(default_factory=dict)
    services: Mapping[str, CatalogEntry] = field(default_factory=dict)
    products: Mapping[str, CatalogEntry] = field(default_factory=dict)

    @classmethod
    def build(cls, professionals=(), services=(), products=()) -> "Catalog":
        return cls(
            professionals={p.id: p for p in professionals},
            services={s.id: s for s in services},
            products={p.id: p for p in products},
        )

    def entry_for(self, item: SaleItem) -> Optional[CatalogEntry]:
        table = self.services if item.kind is ItemKind.SERVICE else self.products
        return table.get(item.item_id)
