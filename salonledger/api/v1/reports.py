# salonledger/api/v1/reports.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from salonledger.api.deps.reports import get_sales_filter, get_snapshot_loader
from salonledger.core.commission_aggregator import CommissionReport, aggregate
from salonledger.core.config import settings
from salonledger.core.exports import COMMISSION_COLUMNS, commission_summary_rows, to_csv
from salonledger.core.filters import SalesFilter, filter_sales
from salonledger.core.product_sales import build_product_sales
from salonledger.core.records import CommissionSettings
from salonledger.crud.snapshot import SnapshotLoader, day_bounds
from salonledger.schemas.reports import CommissionReportOut, ProductSalesReportOut

router = APIRouter(prefix="/reports", tags=["reports"])


async def _commission_report(loader: SnapshotLoader, f: SalesFilter) -> tuple[CommissionReport, CommissionSettings]:
    start, end = day_bounds(f.date_from, f.date_to, loader.tz)
    commission_settings = await loader.commission_settings()
    catalog = await loader.catalog()
    sales = filter_sales(await loader.sales(start, end), f, loader.tz)

    report = aggregate(
        sales,
        catalog,
        commission_settings,
        tolerance=settings.FULL_PAYMENT_TOLERANCE,
        professional_id=f.professional_id,
    )
    return report, commission_settings


@router.get("/commissions", response_model=CommissionReportOut)
async def get_commission_report(
    f: SalesFilter = Depends(get_sales_filter),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
):
    """
    Commission rows grouped per professional, plus service/product/tip totals.
    Only fully paid sales generate rows.
    """
    report, commission_settings = await _commission_report(loader, f)
    return CommissionReportOut.model_validate(
        {
            "date_from": f.date_from,
            "date_to": f.date_to,
            "location_id": f.location_id,
            "professional_id": f.professional_id,
            "discounts_affect_commissions": commission_settings.discounts_affect_commissions,
            "by_professional": report.by_professional,
            "by_category": report.by_category,
            "total_sales": report.total_sales,
            "total_commission": report.total_commission,
            "unassigned": report.unassigned,
            "skipped_lines": report.skipped_lines,
        },
        from_attributes=True,
    )


@router.get("/commissions/export.csv")
async def export_commission_report(
    f: SalesFilter = Depends(get_sales_filter),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
):
    report, _ = await _commission_report(loader, f)
    body = to_csv(COMMISSION_COLUMNS, commission_summary_rows(report.by_professional, f.period_label))
    filename = f"commissions_{f.date_from.isoformat()}_{f.date_to.isoformat()}.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/product-sales", response_model=ProductSalesReportOut)
async def get_product_sales_report(
    f: SalesFilter = Depends(get_sales_filter),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
):
    """
    Units, collected revenue, purchase cost and professional commission per product.
    """
    start, end = day_bounds(f.date_from, f.date_to, loader.tz)
    commission_settings = await loader.commission_settings()
    catalog = await loader.catalog()
    sales = filter_sales(await loader.sales(start, end), f, loader.tz)

    report = build_product_sales(sales, catalog, commission_settings, tolerance=settings.FULL_PAYMENT_TOLERANCE)
    return ProductSalesReportOut.model_validate(
        {
            "date_from": f.date_from,
            "date_to": f.date_to,
            "location_id": f.location_id,
            "lines": report.lines,
            "units": report.units,
            "revenue": report.revenue,
            "reinvestment": report.reinvestment,
            "commission": report.commission,
            "profit": report.profit,
        },
        from_attributes=True,
    )
