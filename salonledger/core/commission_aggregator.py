# salonledger/core/commission_aggregator.py
"""
Commission rows and their summaries.

The aggregator is filter-agnostic: callers pass the sales they want counted
(see core/filters.py) and the settings loaded for this request. A shared sale
still holds colleagues' lines, so a per-professional report passes
professional_id to keep rows and tallies to that professional.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from salonledger.core import commission_cascade
from salonledger.core.allocation import (
    DEFAULT_FULL_PAYMENT_TOLERANCE,
    commission_base_amount,
    is_commission_eligible,
    real_sale_amount,
)
from salonledger.core.records import (
    HUNDRED,
    ZERO,
    Catalog,
    CommissionSettings,
    ItemKind,
    RowType,
    Sale,
)

logger = logging.getLogger(__name__)

TIP_ITEM_NAME = "Tip"


@dataclass(frozen=True)
class DiscountDetail:
    amount: Decimal
    value: Optional[Decimal] = None
    type: Optional[str] = None


@dataclass(frozen=True)
class CommissionRow:
    sale_id: str
    professional_id: str
    professional_name: str
    client_id: Optional[str]
    item_id: Optional[str]  # None on tip rows
    item_name: str
    item_type: RowType
    sale_amount: Decimal
    commission_amount: Decimal
    commission_percentage: Decimal
    discount: Optional[DiscountDetail] = None


@dataclass
class ProfessionalSummary:
    professional_id: str
    professional_name: str
    total_sales: Decimal = ZERO
    total_commission: Decimal = ZERO
    details: list[CommissionRow] = field(default_factory=list)


@dataclass
class CategoryTotals:
    sales: Decimal = ZERO
    commission: Decimal = ZERO


@dataclass
class UnassignedTally:
    """Lines that resolved to no commission config."""

    lines: int = 0
    sale_amount: Decimal = ZERO


@dataclass
class CommissionReport:
    rows: list[CommissionRow]
    by_professional: list[ProfessionalSummary]
    by_category: dict[RowType, CategoryTotals]
    total_sales: Decimal
    total_commission: Decimal
    unassigned: UnassignedTally
    skipped_lines: int


def _line_rows(
    sale: Sale,
    catalog: Catalog,
    settings: CommissionSettings,
    unassigned: UnassignedTally,
    only_professional: Optional[str] = None,
) -> tuple[list[CommissionRow], int]:
    rows: list[CommissionRow] = []
    skipped = 0

    for item in sale.items:
        if only_professional and item.professional_id != only_professional:
            continue
        if not item.professional_id:
            logger.warning("sale %s: %s line %s has no professional; skipped", sale.id, item.kind.value, item.item_id)
            skipped += 1
            continue

        professional = catalog.professionals.get(item.professional_id)
        if professional is None:
            logger.warning("sale %s: unknown professional %s; line skipped", sale.id, item.professional_id)
            skipped += 1
            continue

        entry = catalog.entry_for(item)
        if entry is None:
            logger.warning("sale %s: unknown %s %s; line skipped", sale.id, item.kind.value, item.item_id)
            skipped += 1
            continue

        sale_amount = real_sale_amount(item)
        config = commission_cascade.resolve(professional, item, entry)
        if config is None:
            unassigned.lines += 1
            unassigned.sale_amount += sale_amount
            continue

        amount = commission_cascade.commission_amount(config, commission_base_amount(item, settings))
        discount = None
        if item.discount_amount > 0:
            discount = DiscountDetail(amount=item.discount_amount, value=item.discount_value, type=item.discount_type)

        rows.append(
            CommissionRow(
                sale_id=sale.id,
                professional_id=professional.id,
                professional_name=professional.name,
                client_id=sale.client_id,
                item_id=item.item_id,
                item_name=entry.name or item.name,
                item_type=RowType.SERVICE if item.kind is ItemKind.SERVICE else RowType.PRODUCT,
                sale_amount=sale_amount,
                commission_amount=amount,
                commission_percentage=commission_cascade.commission_percentage(config, amount, sale_amount),
                discount=discount,
            )
        )

    return rows, skipped


def tip_recipient(sale: Sale) -> Optional[str]:
    """
    Professional with the highest cumulative line subtotal in the sale.
    Ties go to the lowest professional id so the answer never depends on line order.
    """
    per_professional: dict[str, Decimal] = {}
    for item in sale.items:
        if item.professional_id:
            per_professional[item.professional_id] = per_professional.get(item.professional_id, ZERO) + item.subtotal

    if not per_professional:
        return None
    return min(per_professional, key=lambda pid: (-per_professional[pid], pid))


def _tip_row(sale: Sale, catalog: Catalog, only_professional: Optional[str] = None) -> Optional[CommissionRow]:
    if sale.tip <= 0:
        return None

    pid = tip_recipient(sale)
    if pid is None:
        logger.warning("sale %s: tip %s has no professional to attribute to", sale.id, sale.tip)
        return None
    if only_professional and pid != only_professional:
        return None

    professional = catalog.professionals.get(pid)
    if professional is None:
        logger.warning("sale %s: tip recipient %s is unknown; tip skipped", sale.id, pid)
        return None

    return CommissionRow(
        sale_id=sale.id,
        professional_id=professional.id,
        professional_name=professional.name,
        client_id=sale.client_id,
        item_id=None,
        item_name=TIP_ITEM_NAME,
        item_type=RowType.TIP,
        sale_amount=sale.tip,
        commission_amount=sale.tip,
        commission_percentage=HUNDRED,
    )


def build_commission_rows(
    sales: Iterable[Sale],
    catalog: Catalog,
    settings: CommissionSettings,
    *,
    tolerance: Decimal = DEFAULT_FULL_PAYMENT_TOLERANCE,
    unassigned: Optional[UnassignedTally] = None,
    professional_id: Optional[str] = None,
) -> tuple[list[CommissionRow], int]:
    """
    Rows for every commission-eligible sale, in sale order then line order,
    with the tip row (if any) after the sale's lines.

    With professional_id set, other professionals' lines and tips are left out
    entirely: no rows, and nothing in the unassigned or skipped tallies.

    Returns (rows, skipped_lines).
    """
    if unassigned is None:
        unassigned = UnassignedTally()

    rows: list[CommissionRow] = []
    skipped = 0
    for sale in sales:
        if not is_commission_eligible(sale, tolerance):
            continue

        line_rows, line_skipped = _line_rows(sale, catalog, settings, unassigned, professional_id)
        rows.extend(line_rows)
        skipped += line_skipped

        tip = _tip_row(sale, catalog, professional_id)
        if tip is not None:
            rows.append(tip)

    return rows, skipped


def summarize_by_professional(rows: Iterable[CommissionRow]) -> list[ProfessionalSummary]:
    grouped: dict[str, ProfessionalSummary] = {}
    for row in rows:
        summary = grouped.get(row.professional_id)
        if summary is None:
            summary = grouped[row.professional_id] = ProfessionalSummary(
                professional_id=row.professional_id,
                professional_name=row.professional_name,
            )
        summary.total_sales += row.sale_amount
        summary.total_commission += row.commission_amount
        summary.details.append(row)

    return sorted(grouped.values(), key=lambda s: (s.professional_name.casefold(), s.professional_id))


def summarize_by_category(rows: Iterable[CommissionRow]) -> dict[RowType, CategoryTotals]:
    totals = {row_type: CategoryTotals() for row_type in RowType}
    for row in rows:
        bucket = totals[row.item_type]
        bucket.sales += row.sale_amount
        bucket.commission += row.commission_amount
    return totals


def aggregate(
    sales: Iterable[Sale],
    catalog: Catalog,
    settings: CommissionSettings,
    *,
    tolerance: Decimal = DEFAULT_FULL_PAYMENT_TOLERANCE,
    professional_id: Optional[str] = None,
) -> CommissionReport:
    unassigned = UnassignedTally()
    rows, skipped = build_commission_rows(
        sales,
        catalog,
        settings,
        tolerance=tolerance,
        unassigned=unassigned,
        professional_id=professional_id,
    )
    return report_from_rows(rows, unassigned=unassigned, skipped_lines=skipped)


def report_from_rows(
    rows: list[CommissionRow],
    *,
    unassigned: Optional[UnassignedTally] = None,
    skipped_lines: int = 0,
) -> CommissionReport:
    by_professional = summarize_by_professional(rows)

    return CommissionReport(
        rows=rows,
        by_professional=by_professional,
        by_category=summarize_by_category(rows),
        total_sales=sum((s.total_sales for s in by_professional), ZERO),
        total_commission=sum((s.total_commission for s in by_professional), ZERO),
        unassigned=unassigned if unassigned is not None else UnassignedTally(),
        skipped_lines=skipped_lines,
    )
