# salonledger/api/v1/finance.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import Response

from salonledger.api.deps.reports import get_snapshot_loader
from salonledger.core.config import settings
from salonledger.core.exports import ROLLUP_COLUMNS, rollup_rows, to_csv
from salonledger.core.filters import SalesFilter, filter_expenses, filter_sales
from salonledger.core.monthly_rollup import AnnualRollup, build_annual_rollup, build_month_detail
from salonledger.crud.snapshot import SnapshotLoader, year_bounds
from salonledger.schemas.finance import AnnualRollupOut, MonthDetailOut

router = APIRouter(prefix="/finance", tags=["finance"])


async def _inputs(loader: SnapshotLoader, year: int, location_id: Optional[str]) -> dict:
    """Everything the rollup needs for one year, location filter applied."""
    start, end = year_bounds(year, loader.tz)
    f = SalesFilter(date_from=date(year, 1, 1), date_to=date(year, 12, 31), location_id=location_id or None)
    return {
        "sales": filter_sales(await loader.sales(start, end), f, loader.tz),
        "expenses": filter_expenses(await loader.expenses(start, end), f, loader.tz),
        "catalog": await loader.catalog(),
        "admins": await loader.admins(),
        "adjustments": await loader.adjustments(year),
        "settings": await loader.commission_settings(),
    }


async def _annual(loader: SnapshotLoader, year: int, location_id: Optional[str]) -> tuple[AnnualRollup, dict]:
    inputs = await _inputs(loader, year, location_id)
    rollup = build_annual_rollup(year, tz=loader.tz, tolerance=settings.FULL_PAYMENT_TOLERANCE, **inputs)
    return rollup, inputs


@router.get("/{year}", response_model=AnnualRollupOut)
async def get_annual_summary(
    year: int = Path(..., ge=2000, le=2100),
    location_id: Optional[str] = Query(None),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
):
    """
    Twelve monthly P&L buckets (services and products kept apart) plus annual totals.
    """
    rollup, inputs = await _annual(loader, year, location_id)
    return AnnualRollupOut.model_validate(
        {
            "year": year,
            "location_id": location_id,
            "discounts_affect_commissions": inputs["settings"].discounts_affect_commissions,
            "months": rollup.months,
            "totals": rollup.totals,
        },
        from_attributes=True,
    )


# must be declared before /{year}/{month}
@router.get("/{year}/export.csv")
async def export_annual_summary(
    year: int = Path(..., ge=2000, le=2100),
    location_id: Optional[str] = Query(None),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
):
    rollup, _ = await _annual(loader, year, location_id)
    return Response(
        content=to_csv(ROLLUP_COLUMNS, rollup_rows(rollup)),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="finance_{year}.csv"'},
    )


@router.get("/{year}/{month}", response_model=MonthDetailOut)
async def get_month_detail(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    location_id: Optional[str] = Query(None),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
):
    """
    One month: its P&L bucket, daily income split cash/deposit, and the manual expenses.
    """
    inputs = await _inputs(loader, year, location_id)
    detail = build_month_detail(year, month, tz=loader.tz, tolerance=settings.FULL_PAYMENT_TOLERANCE, **inputs)
    return MonthDetailOut.model_validate(detail, from_attributes=True)
