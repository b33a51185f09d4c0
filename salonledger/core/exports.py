# salonledger/core/exports.py
"""
Tabular shapes for spreadsheet/CSV export. Column order is part of the contract.
"""
from __future__ import annotations

import csv
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from salonledger.core.commission_aggregator import ProfessionalSummary
from salonledger.core.monthly_rollup import AnnualRollup, MonthBucket

COMMISSION_COLUMNS = ("Professional", "Period", "TotalSales", "TotalCommission")

ROLLUP_COLUMNS = (
    "Month",
    "ServiceIncome",
    "ProductSales",
    "Reinvestment",
    "ProductCommission",
    "OperatingExpenses",
    "ServiceProfit",
    "ProductProfit",
    "NetProfit",
    "Yield%",
)

CENTS = Decimal("0.01")


def money(value: Decimal) -> str:
    return str(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def commission_summary_rows(summaries: Iterable[ProfessionalSummary], period: str) -> list[list[str]]:
    return [
        [s.professional_name, period, money(s.total_sales), money(s.total_commission)]
        for s in summaries
    ]


def _rollup_row(bucket: MonthBucket) -> list[str]:
    return [
        bucket.label,
        money(bucket.ingresos_servicios),
        money(bucket.venta_productos),
        money(bucket.reinversion),
        money(bucket.comision_profesionales_productos),
        money(bucket.egresos_servicios),
        money(bucket.utilidad_neta_servicios),
        money(bucket.utilidad_neta_productos),
        money(bucket.utilidad_neta),
        money(bucket.rendimiento),
    ]


def rollup_rows(rollup: AnnualRollup) -> list[list[str]]:
    """Twelve month rows followed by the annual total row."""
    return [_rollup_row(b) for b in rollup.months] + [_rollup_row(rollup.totals)]


def to_csv(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()
