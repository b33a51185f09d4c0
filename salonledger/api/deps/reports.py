# salonledger/api/deps/reports.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from salonledger.core.config import settings
from salonledger.core.filters import SalesFilter
from salonledger.core.inventory_reversal import InventoryReversalCoordinator
from salonledger.crud.reversal import SqlAlchemyReversalUnitOfWork
from salonledger.crud.snapshot import SnapshotLoader
from salonledger.db.session import get_db


async def get_snapshot_loader(db: AsyncSession = Depends(get_db)) -> SnapshotLoader:
    """One loader per request: every dataset is fetched at most once per request."""
    return SnapshotLoader(db, settings.business_tz)


async def get_reversal_coordinator(db: AsyncSession = Depends(get_db)) -> InventoryReversalCoordinator:
    return InventoryReversalCoordinator(lambda: SqlAlchemyReversalUnitOfWork(db))


def get_sales_filter(
    date_from: date = Query(..., description="First day, inclusive (business time)"),
    date_to: Optional[date] = Query(None, description="Last day, inclusive; defaults to date_from"),
    location_id: Optional[str] = Query(None),
    professional_id: Optional[str] = Query(None),
) -> SalesFilter:
    try:
        return SalesFilter(
            date_from=date_from,
            date_to=date_to or date_from,
            location_id=location_id or None,
            professional_id=professional_id or None,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
