# salonledger/core/filters.py
"""
Pre-filters applied by callers before handing records to the engines.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Iterable, Optional

from salonledger.core.records import Expense, Sale


@dataclass(frozen=True)
class SalesFilter:
    date_from: date
    date_to: Optional[date] = None
    location_id: Optional[str] = None
    professional_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.date_to is not None and self.date_to < self.date_from:
            raise ValueError("date_to must be on or after date_from")

    @property
    def period_label(self) -> str:
        end = self.date_to or self.date_from
        return f"{self.date_from.isoformat()} - {end.isoformat()}"


def _local_date(ts: datetime, tz: Optional[tzinfo]) -> date:
    if tz is not None and ts.tzinfo is not None:
        ts = ts.astimezone(tz)
    return ts.date()


def _in_range(day: date, f: SalesFilter) -> bool:
    if day < f.date_from:
        return False
    return f.date_to is None or day <= f.date_to


def filter_sales(sales: Iterable[Sale], f: SalesFilter, tz: Optional[tzinfo] = None) -> list[Sale]:
    """
    Date range is inclusive on both ends (whole days, business time).
    The professional filter keeps sales where that professional worked at least one line.
    """
    out: list[Sale] = []
    for sale in sales:
        if not _in_range(_local_date(sale.timestamp, tz), f):
            continue
        if f.location_id and sale.location_id != f.location_id:
            continue
        if f.professional_id and not any(i.professional_id == f.professional_id for i in sale.items):
            continue
        out.append(sale)
    return out


def filter_expenses(expenses: Iterable[Expense], f: SalesFilter, tz: Optional[tzinfo] = None) -> list[Expense]:
    return [
        e
        for e in expenses
        if _in_range(_local_date(e.date, tz), f) and (not f.location_id or e.location_id == f.location_id)
    ]

