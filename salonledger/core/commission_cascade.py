# salonledger/core/commission_cascade.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from salonledger.core.records import (
    HUNDRED,
    ZERO,
    CatalogEntry,
    CommissionConfig,
    Fixed,
    ItemKind,
    Percentage,
    Professional,
    SaleItem,
)

# Stored shapes seen in the wild: {"type": "%", "value": 10}, {"type": "percentage", ...},
# {"type": "$", "value": 50}, {"type": "fixed", ...}
_PERCENT_TAGS = {"%", "percent", "percentage"}
_FIXED_TAGS = {"$", "fixed", "amount"}


def parse_commission_config(raw: Any) -> Optional[CommissionConfig]:
    """
    Build a CommissionConfig from its stored JSON shape.

    Returns None for "no config" shapes (None, {}, missing value).
    Raises ValueError for shapes that are present but invalid:
      - non-numeric, NaN or infinite value
      - unknown type tag
      - negative value
      - percentage above 100
    """
    if raw is None:
        return None
    if isinstance(raw, (Percentage, Fixed)):
        return raw
    if not isinstance(raw, dict) or not raw:
        return None

    value = raw.get("value")
    if value is None or value == "":
        return None

    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Commission value is not a number: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Commission value is not a finite number: {value!r}")

    tag = str(raw.get("type") or "").strip().lower()
    if amount < 0:
        raise ValueError(f"Commission value must be >= 0, got {amount}")
    if tag in _PERCENT_TAGS:
        if amount > HUNDRED:
            raise ValueError(f"Commission percentage must be <= 100, got {amount}")
        return Percentage(amount)
    if tag in _FIXED_TAGS:
        return Fixed(amount)
    raise ValueError(f"Unknown commission type: {raw.get('type')!r}")


def resolve(
    professional: Professional,
    item: SaleItem,
    catalog_entry: Optional[CatalogEntry],
) -> Optional[CommissionConfig]:
    """
    Priority cascade, first match wins:
      1) professional's per-item override (service map or product map)
      2) catalog entry's default commission
      3) professional's default commission
    None means the line earns no commission.
    """
    overrides = (
        professional.service_commissions
        if item.kind is ItemKind.SERVICE
        else professional.product_commissions
    )
    candidates = (
        overrides.get(item.item_id),
        catalog_entry.default_commission if catalog_entry is not None else None,
        professional.default_commission,
    )
    for config in candidates:
        if config is not None:
            return config
    return None


def commission_amount(config: CommissionConfig, base: Decimal) -> Decimal:
    """
    Percentage: base * value / 100.
    Fixed: the flat value, never more than the line it is paid on.
    """
    if isinstance(config, Fixed):
        return min(config.value, max(base, ZERO))
    return base * config.value / HUNDRED


def commission_percentage(config: CommissionConfig, commission: Decimal, sale_amount: Decimal) -> Decimal:
    """Effective percentage shown next to a row (fixed amounts are expressed against the sale amount)."""
    if isinstance(config, Percentage):
        return config.value
    if sale_amount > 0:
        return commission / sale_amount * HUNDRED
    return ZERO
