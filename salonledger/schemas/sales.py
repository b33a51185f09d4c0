# salonledger/schemas/sales.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from salonledger.core.records import PaymentStatus


class CancelSaleIn(BaseModel):
    # who pressed the button; recorded on every stock movement
    actor: str = Field(default="system", min_length=1, max_length=200)


class StockMovementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    location_id: Optional[str] = None
    from_stock: int
    to_stock: int
    cause: str
    actor: str
    timestamp: datetime
    comment: str


class ReservationRollbackOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reservation_id: str
    status: str
    payment_status: PaymentStatus
    pending_balance: Decimal
    amount_paid: Decimal


class CancellationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str = "cancelled"
    sale_id: str
    movements: List[StockMovementOut]
    reservation: Optional[ReservationRollbackOut] = None
