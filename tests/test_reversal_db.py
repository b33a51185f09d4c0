# tests/test_reversal_db.py
"""
SqlAlchemyReversalUnitOfWork against a real Postgres.
Tests that touch the database are skipped unless TEST_DATABASE_URL_ASYNC is set.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from salonledger.core.exceptions import SaleNotFound
from salonledger.core.inventory_reversal import InventoryReversalCoordinator
from salonledger.crud.reversal import SqlAlchemyReversalUnitOfWork
from salonledger.models.catalog import Product
from salonledger.models.ledger import StockMovement
from salonledger.models.reservation import Reservation
from salonledger.models.sale import Sale, SaleItem


async def seed(db) -> tuple[Sale, Product, Reservation]:
    product = Product(name="Shampoo", price=Decimal("30.00"), purchase_cost=Decimal("12.00"), stock=10)
    reservation = Reservation(
        status="completed",
        payment_status="paid",
        total=Decimal("300.00"),
        deposit_paid=Decimal("100.00"),
        amount_paid=Decimal("300.00"),
        pending_balance=Decimal("0.00"),
    )
    db.add_all([product, reservation])
    await db.flush()

    sale = Sale(
        occurred_at=datetime(2024, 3, 5, 15, tzinfo=timezone.utc),
        payment_method="cash",
        payment_status="paid",
        total=Decimal("90.00"),
        reservation_id=reservation.id,
    )
    sale.items = [
        SaleItem(position=0, kind="product", item_id=product.id, name="Shampoo", quantity=3, subtotal=Decimal("90.00")),
    ]
    db.add(sale)
    await db.commit()
    return sale, product, reservation


@pytest.mark.asyncio
async def test_cancel_sale_in_postgres(pg_sessionmaker):
    async with pg_sessionmaker() as db:
        sale, product, reservation = await seed(db)

    async with pg_sessionmaker() as session:
        coordinator = InventoryReversalCoordinator(lambda: SqlAlchemyReversalUnitOfWork(session))
        result = await coordinator.cancel_sale(str(sale.id), actor="tests")

        assert [(m.from_stock, m.to_stock) for m in result.movements] == [(10, 13)]

        with pytest.raises(SaleNotFound):
            await coordinator.cancel_sale(str(sale.id))

    async with pg_sessionmaker() as db:
        assert await db.scalar(select(Product.stock).where(Product.id == product.id)) == 13
        assert await db.scalar(select(func.count()).select_from(Sale)) == 0
        assert await db.scalar(select(func.count()).select_from(SaleItem)) == 0
        movements = (await db.execute(select(StockMovement))).scalars().all()
        assert [(m.from_stock, m.to_stock, m.cause, m.sale_id) for m in movements] == [(10, 13, "Cancellation", sale.id)]

        res = await db.get(Reservation, reservation.id)
        assert res.payment_status == "deposit_paid"
        assert res.status == "booked"
        assert res.pending_balance == Decimal("200.00")
        assert res.amount_paid == Decimal("100.00")


@pytest.mark.asyncio
async def test_unknown_sale_id_is_not_found(pg_sessionmaker):
    async with pg_sessionmaker() as session:
        coordinator = InventoryReversalCoordinator(lambda: SqlAlchemyReversalUnitOfWork(session))
        with pytest.raises(SaleNotFound):
            await coordinator.cancel_sale(str(uuid.uuid4()))
        with pytest.raises(SaleNotFound):
            await coordinator.cancel_sale("not-a-uuid")


@pytest.mark.asyncio
async def test_exit_without_enter_is_an_error():
    uow = SqlAlchemyReversalUnitOfWork(session=None)
    with pytest.raises(RuntimeError):
        await uow.__aexit__(None, None, None)
