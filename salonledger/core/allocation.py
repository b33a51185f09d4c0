# salonledger/core/allocation.py
"""
Money actually collected per sale line, and which sales may pay commission.

Two inclusion rules live here and must not be confused:
  - is_commission_eligible(): fully paid sales only; gates commission rows.
  - payment_ratio(): every sale counts toward revenue, scaled by what was
    actually collected. Never applied to commission rows.
"""
from __future__ import annotations

from decimal import Decimal

from salonledger.core.records import (
    ZERO,
    CommissionSettings,
    PaymentStatus,
    Sale,
    SaleItem,
)

DEFAULT_FULL_PAYMENT_TOLERANCE = Decimal("1")
ONE = Decimal("1")


def real_sale_amount(item: SaleItem) -> Decimal:
    return item.subtotal - item.discount_amount


def commission_base_amount(item: SaleItem, settings: CommissionSettings) -> Decimal:
    if settings.discounts_affect_commissions:
        return real_sale_amount(item)
    return item.subtotal


def outstanding_amount(sale: Sale) -> Decimal:
    if sale.amount_paid_actual is None:
        return ZERO
    return sale.total - sale.amount_paid_actual


def is_commission_eligible(
    sale: Sale,
    tolerance: Decimal = DEFAULT_FULL_PAYMENT_TOLERANCE,
) -> bool:
    """
    A sale pays commission only when it is settled:
      - DepositPaid / Pending never qualify
      - Paid qualifies unless the recorded amount falls short of the total
        by more than the tolerance
    """
    if sale.payment_status is not PaymentStatus.PAID:
        return False
    return outstanding_amount(sale) <= tolerance


def payment_ratio(sale: Sale) -> Decimal:
    if sale.amount_paid_actual is None or sale.total <= 0:
        return ONE
    if sale.amount_paid_actual < sale.total:
        return sale.amount_paid_actual / sale.total
    return ONE


def recognised_revenue(sale: Sale, item: SaleItem) -> Decimal:
    """Line revenue at the proportion actually collected for the sale."""
    return real_sale_amount(item) * payment_ratio(sale)


def collected_amount(sale: Sale) -> Decimal:
    if sale.amount_paid_actual is not None and sale.amount_paid_actual < sale.total:
        return sale.amount_paid_actual
    return sale.total
