# salonledger/core/inventory_reversal.py
"""
Sale cancellation: put sold products back on the shelf, roll the linked
reservation back to its pre-payment state, delete the sale. One transaction.

The coordinator only talks to a ReversalUnitOfWork, so the ordering and the
rules live here while crud/reversal.py owns the SQL.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, Protocol

from salonledger.core.exceptions import (
    ReversalFailed,
    SaleCancellationError,
    SaleNotCancellable,
    SaleNotFound,
)
from salonledger.core.records import ZERO, ItemKind, PaymentStatus, Sale

logger = logging.getLogger(__name__)

CANCELLATION_CAUSE = "Cancellation"
RESERVATION_BOOKED = "booked"

CANCELLABLE_STATUSES = {PaymentStatus.PAID, PaymentStatus.DEPOSIT_PAID}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StockMovement:
    product_id: str
    from_stock: int
    to_stock: int
    cause: str
    actor: str
    timestamp: datetime
    sale_id: str
    location_id: Optional[str] = None
    comment: str = ""


@dataclass(frozen=True)
class ReservationState:
    id: str
    total: Decimal
    deposit_paid: Decimal
    payment_status: PaymentStatus
    pending_balance: Decimal = ZERO
    amount_paid: Decimal = ZERO


@dataclass(frozen=True)
class ReservationRollback:
    reservation_id: str
    payment_status: PaymentStatus
    pending_balance: Decimal
    amount_paid: Decimal
    status: str = RESERVATION_BOOKED


@dataclass
class CancellationResult:
    sale_id: str
    movements: list[StockMovement] = field(default_factory=list)
    reservation: Optional[ReservationRollback] = None


class ReversalUnitOfWork(Protocol):
    """
    One transaction. Leaving the context normally commits; leaving it with an
    exception rolls everything back.
    """

    async def __aenter__(self) -> "ReversalUnitOfWork": ...

    async def __aexit__(self, exc_type, exc, tb) -> None: ...

    async def get_sale(self, sale_id: str) -> Optional[Sale]: ...

    async def lock_stock(self, product_id: str) -> Optional[int]:
        """Current stock with the product row locked until the end of the unit; None if unknown."""
        ...

    async def increment_stock(self, product_id: str, quantity: int) -> None: ...

    async def add_stock_movement(self, movement: StockMovement) -> None: ...

    async def get_reservation(self, reservation_id: str) -> Optional[ReservationState]: ...

    async def save_reservation(self, rollback: ReservationRollback) -> None: ...

    async def delete_sale(self, sale_id: str) -> None: ...


def rollback_reservation(reservation: ReservationState) -> Optional[ReservationRollback]:
    """
    Paid -> DepositPaid when a deposit was taken, else -> Pending.
    Anything not Paid has nothing to undo.
    """
    if reservation.payment_status is not PaymentStatus.PAID:
        return None

    deposit = reservation.deposit_paid
    total = reservation.total
    return ReservationRollback(
        reservation_id=reservation.id,
        payment_status=PaymentStatus.DEPOSIT_PAID if deposit > 0 else PaymentStatus.PENDING,
        pending_balance=total - deposit if total > deposit else total,
        amount_paid=deposit,
    )


class InventoryReversalCoordinator:
    def __init__(
        self,
        uow_factory: Callable[[], ReversalUnitOfWork],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    async def cancel_sale(self, sale_id: str, actor: str = "system") -> CancellationResult:
        """
        Raises:
          SaleNotFound        the sale does not exist (or was already cancelled)
          SaleNotCancellable  the sale is neither Paid nor DepositPaid
          ReversalFailed      the transaction aborted; nothing was written
        """
        try:
            async with self._uow_factory() as uow:
                result = await self._reverse(uow, sale_id, actor)
        except SaleCancellationError:
            raise
        except Exception as exc:
            logger.exception("cancellation of sale %s aborted", sale_id)
            raise ReversalFailed(sale_id) from exc

        logger.info(
            "sale %s cancelled by %s: %d stock movement(s), reservation %s",
            sale_id,
            actor,
            len(result.movements),
            result.reservation.reservation_id if result.reservation else "-",
        )
        return result

    async def _reverse(self, uow: ReversalUnitOfWork, sale_id: str, actor: str) -> CancellationResult:
        sale = await uow.get_sale(sale_id)
        if sale is None:
            raise SaleNotFound(sale_id)
        if sale.payment_status not in CANCELLABLE_STATUSES:
            raise SaleNotCancellable(sale_id, sale.payment_status.value)

        result = CancellationResult(sale_id=sale_id)
        now = self._clock()

        for item in sale.items:
            if item.kind is not ItemKind.PRODUCT:
                continue
            quantity = item.quantity or 1

            current = await uow.lock_stock(item.item_id)
            if current is None:
                logger.warning("sale %s: product %s no longer exists; nothing to restock", sale_id, item.item_id)
                continue

            await uow.increment_stock(item.item_id, quantity)
            movement = StockMovement(
                product_id=item.item_id,
                from_stock=current,
                to_stock=current + quantity,
                cause=CANCELLATION_CAUSE,
                actor=actor,
                timestamp=now,
                sale_id=sale_id,
                location_id=sale.location_id,
                comment=f"Automatic return for cancelled sale {sale_id}",
            )
            await uow.add_stock_movement(movement)
            result.movements.append(movement)

        if sale.reservation_id:
            reservation = await uow.get_reservation(sale.reservation_id)
            if reservation is None:
                logger.warning("sale %s: reservation %s not found; nothing to roll back", sale_id, sale.reservation_id)
            else:
                rollback = rollback_reservation(reservation)
                if rollback is not None:
                    await uow.save_reservation(rollback)
                    result.reservation = rollback

        await uow.delete_sale(sale_id)
        return result
