# salonledger/core/exceptions.py
from __future__ import annotations


class SalonLedgerError(Exception):
    """Base class for domain errors surfaced to API callers."""


class SaleCancellationError(SalonLedgerError):
    code = "SALE_CANCELLATION_FAILED"

    def __init__(self, sale_id: str, message: str | None = None) -> None:
        self.sale_id = sale_id
        super().__init__(message or f"Sale {sale_id} could not be cancelled")


class SaleNotFound(SaleCancellationError):
    """Missing sale, which includes a sale that was already cancelled."""

    code = "SALE_NOT_FOUND"

    def __init__(self, sale_id: str) -> None:
        super().__init__(sale_id, f"Sale {sale_id} not found (it may already be cancelled)")


class SaleNotCancellable(SaleCancellationError):
    code = "SALE_NOT_CANCELLABLE"

    def __init__(self, sale_id: str, payment_status: str) -> None:
        self.payment_status = payment_status
        super().__init__(
            sale_id,
            f"Sale {sale_id} has payment status {payment_status!r}; only paid or deposit-paid sales can be cancelled",
        )


class ReversalFailed(SaleCancellationError):
    """The reversal transaction aborted; nothing was written."""

    code = "REVERSAL_FAILED"

    def __init__(self, sale_id: str) -> None:
        super().__init__(sale_id, f"Cancellation of sale {sale_id} failed; no changes were applied")
