# tests/test_exports.py
from __future__ import annotations

from datetime import date
from decimal import Decimal

from salonledger.core import records as r
from salonledger.core.commission_aggregator import aggregate
from salonledger.core.exports import (
    COMMISSION_COLUMNS,
    ROLLUP_COLUMNS,
    commission_summary_rows,
    money,
    rollup_rows,
    to_csv,
)
from salonledger.core.filters import SalesFilter
from salonledger.core.monthly_rollup import build_annual_rollup

from conftest import make_sale, product_line, service_line, utc


def test_money_rounds_half_up_to_cents():
    assert money(Decimal("2.345")) == "2.35"
    assert money(Decimal("10")) == "10.00"
    assert money(Decimal("-0.005")) == "-0.01"


def test_commission_export_has_one_row_per_professional(catalog):
    sales = [
        make_sale("v1", [service_line("s1", 100, professional_id="p2")]),
        make_sale("v2", [service_line("s1", "33.33", professional_id="p1")]),
    ]
    report = aggregate(sales, catalog, r.CommissionSettings())
    period = SalesFilter(date(2024, 3, 1), date(2024, 3, 31)).period_label

    rows = commission_summary_rows(report.by_professional, period)

    assert rows == [
        ["Ana", "2024-03-01 - 2024-03-31", "33.33", "3.33"],
        ["Beto", "2024-03-01 - 2024-03-31", "100.00", "8.00"],
    ]
    assert to_csv(COMMISSION_COLUMNS, rows).splitlines()[0] == "Professional,Period,TotalSales,TotalCommission"


def test_rollup_export_has_twelve_months_and_a_total(catalog):
    sales = [
        make_sale("v1", [service_line("s1", 500)], when=utc(2024, 3, 4)),
        make_sale("v2", [product_line("pr1", 100, quantity=2)], when=utc(2024, 3, 20)),
    ]
    expenses = [r.Expense(id="e1", date=utc(2024, 3, 31), amount=Decimal("300"))]
    rollup = build_annual_rollup(
        2024,
        sales=sales,
        expenses=expenses,
        catalog=catalog,
        admins=[],
        adjustments=[],
        settings=r.CommissionSettings(),
    )

    rows = rollup_rows(rollup)

    assert len(rows) == 13
    assert [row[0] for row in rows][:3] == ["January", "February", "March"]
    assert rows[2] == ["March", "500.00", "100.00", "80.00", "10.00", "290.00", "210.00", "10.00", "220.00", "36.67"]
    assert rows[-1][0] == "Total"
    assert rows[-1][1:] == rows[2][1:]
    assert len(rows[0]) == len(ROLLUP_COLUMNS)
