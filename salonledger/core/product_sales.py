# salonledger/core/product_sales.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from salonledger.core.allocation import DEFAULT_FULL_PAYMENT_TOLERANCE, recognised_revenue
from salonledger.core.commission_aggregator import build_commission_rows
from salonledger.core.records import ZERO, Catalog, CommissionSettings, ItemKind, RowType, Sale

logger = logging.getLogger(__name__)


@dataclass
class ProductSalesLine:
    product_id: str
    product_name: str
    units: int = 0
    revenue: Decimal = ZERO
    reinvestment: Decimal = ZERO
    commission: Decimal = ZERO

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.reinvestment - self.commission


@dataclass
class ProductSalesReport:
    lines: list[ProductSalesLine]
    units: int
    revenue: Decimal
    reinvestment: Decimal
    commission: Decimal

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.reinvestment - self.commission


def build_product_sales(
    sales: Sequence[Sale],
    catalog: Catalog,
    settings: CommissionSettings,
    *,
    tolerance: Decimal = DEFAULT_FULL_PAYMENT_TOLERANCE,
) -> ProductSalesReport:
    """
    Per-product units, collected revenue, purchase cost and professional commission.
    Revenue follows revenue recognition; commission follows commission eligibility.
    """
    lines: dict[str, ProductSalesLine] = {}

    for sale in sales:
        for item in sale.items:
            if item.kind is not ItemKind.PRODUCT:
                continue

            product = catalog.products.get(item.item_id)
            line = lines.get(item.item_id)
            if line is None:
                line = lines[item.item_id] = ProductSalesLine(
                    product_id=item.item_id,
                    product_name=product.name if product else item.name,
                )

            line.units += item.quantity
            line.revenue += recognised_revenue(sale, item)
            if product is None:
                logger.warning("sale %s: unknown product %s; no purchase cost counted", sale.id, item.item_id)
            else:
                line.reinvestment += product.purchase_cost * item.quantity

    rows, _ = build_commission_rows(sales, catalog, settings, tolerance=tolerance)
    for row in rows:
        if row.item_type is RowType.PRODUCT and row.item_id in lines:
            lines[row.item_id].commission += row.commission_amount

    ordered = sorted(lines.values(), key=lambda l: (l.product_name.casefold(), l.product_id))
    return ProductSalesReport(
        lines=ordered,
        units=sum(l.units for l in ordered),
        revenue=sum((l.revenue for l in ordered), ZERO),
        reinvestment=sum((l.reinvestment for l in ordered), ZERO),
        commission=sum((l.commission for l in ordered), ZERO),
    )
