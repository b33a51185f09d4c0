# salonledger/api/v1/sales.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from salonledger.api.deps.reports import get_reversal_coordinator
from salonledger.core.exceptions import (
    ReversalFailed,
    SaleCancellationError,
    SaleNotCancellable,
    SaleNotFound,
)
from salonledger.core.inventory_reversal import InventoryReversalCoordinator
from salonledger.schemas.sales import CancelSaleIn, CancellationOut

router = APIRouter(prefix="/sales", tags=["sales"])

_STATUS_BY_ERROR = {
    SaleNotFound: status.HTTP_404_NOT_FOUND,
    SaleNotCancellable: status.HTTP_409_CONFLICT,
    ReversalFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.post("/{sale_id}/cancel", response_model=CancellationOut)
async def cancel_sale(
    sale_id: str,
    payload: Optional[CancelSaleIn] = Body(default=None),
    coordinator: InventoryReversalCoordinator = Depends(get_reversal_coordinator),
):
    """
    Cancel a paid / deposit-paid sale:
      - product lines go back to stock (one stock movement per line)
      - a linked reservation returns to deposit-paid or pending
      - the sale is deleted
    All or nothing. Cancelling the same sale again returns 404 and changes nothing.
    """
    actor = payload.actor if payload else "system"
    try:
        result = await coordinator.cancel_sale(sale_id, actor=actor)
    except SaleCancellationError as e:
        raise HTTPException(
            status_code=_STATUS_BY_ERROR.get(type(e), status.HTTP_400_BAD_REQUEST),
            detail={"error": e.code, "sale_id": e.sale_id, "message": str(e)},
        )

    return CancellationOut.model_validate(result, from_attributes=True)
