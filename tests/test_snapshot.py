# tests/test_snapshot.py
from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from salonledger.core import records as r
from salonledger.crud.snapshot import (
    day_bounds,
    parse_admin_rate,
    parse_payment_status,
    to_adjustment,
    to_product,
    to_professional,
    to_sale,
)
from salonledger.models.catalog import Product
from salonledger.models.ledger import MonthlyAdjustment
from salonledger.models.professional import Professional
from salonledger.models.sale import Sale, SaleItem

D = Decimal


def test_professional_with_malformed_config_keeps_the_valid_parts():
    row = Professional(
        id=uuid.uuid4(),
        name="Ana",
        is_active=True,
        default_commission={"type": "%", "value": 140},
        service_commissions={"s1": {"type": "%", "value": 10}, "s2": {"type": "bonus", "value": 3}},
        product_commissions={},
    )

    pro = to_professional(row)

    assert pro.default_commission is None
    assert pro.service_commissions == {"s1": r.Percentage(D("10"))}


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", "sNaN"])
def test_non_finite_commission_values_are_ignored(value):
    product = Product(
        id=uuid.uuid4(),
        name="Shampoo",
        default_commission={"type": "%", "value": value},
        purchase_cost=D("40.00"),
    )
    pro = Professional(
        id=uuid.uuid4(),
        name="Ana",
        is_active=True,
        default_commission={"type": "$", "value": value},
        service_commissions={"s1": {"type": "%", "value": value}, "s2": {"type": "%", "value": 10}},
        product_commissions={},
    )

    assert to_product(product).default_commission is None
    converted = to_professional(pro)
    assert converted.default_commission is None
    assert converted.service_commissions == {"s2": r.Percentage(D("10"))}
    assert parse_admin_rate({"type": "percentage", "value": value}, "x") is None


def test_non_object_commission_maps_are_ignored():
    row = Professional(
        id=uuid.uuid4(),
        name="Ana",
        is_active=True,
        default_commission={"type": "%", "value": 5},
        service_commissions=[{"type": "%", "value": 10}],
        product_commissions="10%",
    )

    pro = to_professional(row)

    assert pro.default_commission == r.Percentage(D("5"))
    assert pro.service_commissions == {}
    assert pro.product_commissions == {}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("paid", r.PaymentStatus.PAID),
        ("Pagado", r.PaymentStatus.PAID),
        ("pago parcial", r.PaymentStatus.DEPOSIT_PAID),
        ("deposit_paid", r.PaymentStatus.DEPOSIT_PAID),
        ("pendiente", r.PaymentStatus.PENDING),
        ("refunded", r.PaymentStatus.PENDING),
        (None, r.PaymentStatus.PENDING),
    ],
)
def test_parse_payment_status(raw, expected):
    assert parse_payment_status(raw, "v1") is expected


def test_parse_admin_rate():
    assert parse_admin_rate({"type": "percentage", "value": "7.5"}, "x") == r.AdminRate(r.AdminCommissionType.PERCENTAGE, D("7.5"))
    assert parse_admin_rate({"type": "salary", "value": 1}, "x") is None
    assert parse_admin_rate({"type": "fixed", "value": -5}, "x") is None
    assert parse_admin_rate("fixed", "x") is None


def test_sale_conversion_drops_unusable_lines():
    pro_id, item_id = uuid.uuid4(), uuid.uuid4()
    row = Sale(
        id=uuid.uuid4(),
        occurred_at=datetime(2024, 3, 5, 15, tzinfo=timezone.utc),
        payment_method="combined",
        payment_status="Pagado",
        total=D("150.00"),
        tip=D("10.00"),
        discount=D("0.00"),
        combined_payment={"cash": 100, "card": "50"},
    )
    row.items = [
        SaleItem(kind="Service", item_id=item_id, name="Cut", quantity=1, subtotal=D("140.00"), discount_amount=D("0"), professional_id=pro_id),
        SaleItem(kind="voucher", item_id=uuid.uuid4(), name="?", quantity=1, subtotal=D("5.00"), discount_amount=D("0")),
        SaleItem(kind="product", item_id=uuid.uuid4(), name="Oil", quantity=-1, subtotal=D("5.00"), discount_amount=D("0")),
    ]

    sale = to_sale(row)

    assert sale.payment_status is r.PaymentStatus.PAID
    assert sale.combined_payment == {"cash": D("100"), "card": D("50")}
    [line] = sale.items
    assert line.kind is r.ItemKind.SERVICE
    assert line.item_id == str(item_id)
    assert line.professional_id == str(pro_id)


def test_adjustment_conversion_ignores_bad_overrides():
    row = MonthlyAdjustment(
        year=2024,
        month=2,
        service_admin_commissions={"a1": {"type": "fixed", "value": 40}, "a2": {"type": "?", "value": 1}},
        product_admin_commissions={},
    )

    adj = to_adjustment(row)

    assert adj.service_overrides == {"a1": r.AdminRate(r.AdminCommissionType.FIXED, D("40"))}
    assert adj.product_overrides == {}


def test_day_bounds_cover_whole_local_days():
    tz = ZoneInfo("America/Mexico_City")
    start, end = day_bounds(date(2024, 3, 1), date(2024, 3, 31), tz)

    assert start == datetime(2024, 3, 1, tzinfo=tz)
    assert end == datetime(2024, 4, 1, tzinfo=tz)
    assert day_bounds(date(2024, 3, 1), None, tz)[1] == datetime(2024, 3, 2, tzinfo=tz)


def test_non_object_json_on_sales_and_adjustments_is_ignored():
    sale_row = Sale(
        id=uuid.uuid4(),
        occurred_at=datetime(2024, 3, 5, 15, tzinfo=timezone.utc),
        payment_method="combined",
        payment_status="paid",
        total=D("100.00"),
        tip=D("0.00"),
        discount=D("0.00"),
        combined_payment=["cash", 100],
    )
    sale_row.items = []
    adjustment_row = MonthlyAdjustment(
        year=2024,
        month=5,
        service_admin_commissions=[{"type": "fixed", "value": 40}],
        product_admin_commissions={"a1": {"type": "fixed", "value": "NaN"}},
    )

    assert to_sale(sale_row).combined_payment == {}
    adj = to_adjustment(adjustment_row)
    assert adj.service_overrides == {}
    assert adj.product_overrides == {}


def test_combined_payment_drops_unusable_amounts():
    row = Sale(
        id=uuid.uuid4(),
        occurred_at=datetime(2024, 3, 5, 15, tzinfo=timezone.utc),
        payment_method="combined",
        payment_status="paid",
        total=D("150.00"),
        tip=D("0.00"),
        discount=D("0.00"),
        combined_payment={"cash": "100", "card": "lots", "transfer": "Infinity"},
    )
    row.items = []

    assert to_sale(row).combined_payment == {"cash": D("100")}
