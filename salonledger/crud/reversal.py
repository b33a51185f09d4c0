# salonledger/crud/reversal.py
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from salonledger.core import records as r
from salonledger.core.inventory_reversal import (
    ReservationRollback,
    ReservationState,
    StockMovement as StockMovementRecord,
)
from salonledger.crud.snapshot import parse_payment_status, to_sale
from salonledger.models.catalog import Product
from salonledger.models.ledger import StockMovement
from salonledger.models.reservation import Reservation
from salonledger.models.sale import Sale


def _uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SqlAlchemyReversalUnitOfWork:
    """
    ReversalUnitOfWork over one AsyncSession transaction.

    Rows are read with SELECT ... FOR UPDATE, so two cancellations of the same
    sale (or two writers on the same product) serialize instead of both
    crediting stock.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._tx: AsyncSessionTransaction | None = None
        self._sales: dict[str, Sale] = {}

    async def __aenter__(self) -> "SqlAlchemyReversalUnitOfWork":
        if self.session.in_transaction():
            # e.g. a request dependency already read something; start clean
            await self.session.rollback()
        self._tx = await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._tx is None:
            raise RuntimeError("unit of work exited without being entered")
        if exc_type is None:
            await self._tx.commit()
        else:
            await self._tx.rollback()

    async def get_sale(self, sale_id: str) -> Optional[r.Sale]:
        sid = _uuid(sale_id)
        if sid is None:
            return None
        row = await self.session.get(Sale, sid, with_for_update=True)
        if row is None:
            return None
        self._sales[sale_id] = row
        return to_sale(row)

    async def lock_stock(self, product_id: str) -> Optional[int]:
        pid = _uuid(product_id)
        if pid is None:
            return None
        stmt = select(Product.stock).where(Product.id == pid).with_for_update()
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def increment_stock(self, product_id: str, quantity: int) -> None:
        stmt = (
            update(Product)
            .where(Product.id == uuid.UUID(product_id))
            .values(stock=Product.stock + quantity)
        )
        await self.session.execute(stmt)

    async def add_stock_movement(self, movement: StockMovementRecord) -> None:
        self.session.add(
            StockMovement(
                product_id=uuid.UUID(movement.product_id),
                location_id=_uuid(movement.location_id) if movement.location_id else None,
                from_stock=movement.from_stock,
                to_stock=movement.to_stock,
                cause=movement.cause,
                actor=movement.actor,
                comment=movement.comment,
                sale_id=_uuid(movement.sale_id),
                occurred_at=movement.timestamp,
            )
        )

    async def get_reservation(self, reservation_id: str) -> Optional[ReservationState]:
        rid = _uuid(reservation_id)
        if rid is None:
            return None
        row = await self.session.get(Reservation, rid, with_for_update=True)
        if row is None:
            return None
        return ReservationState(
            id=str(row.id),
            total=row.total,
            deposit_paid=row.deposit_paid,
            payment_status=parse_payment_status(row.payment_status, f"reservation {row.id}"),
            pending_balance=row.pending_balance,
            amount_paid=row.amount_paid,
        )

    async def save_reservation(self, rollback: ReservationRollback) -> None:
        stmt = (
            update(Reservation)
            .where(Reservation.id == uuid.UUID(rollback.reservation_id))
            .values(
                status=rollback.status,
                payment_status=rollback.payment_status.value,
                pending_balance=rollback.pending_balance,
                amount_paid=rollback.amount_paid,
            )
        )
        await self.session.execute(stmt)

    async def delete_sale(self, sale_id: str) -> None:
        row = self._sales.get(sale_id)
        if row is None:
            row = await self.session.get(Sale, uuid.UUID(sale_id))
        if row is not None:
            await self.session.delete(row)
        await self.session.flush()
