# Overview: Sales reporting over register session history; pure and read-only.

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable

from ..money import divide_cents
from .register_service import tally_payment_methods
from pdv.time_utils import to_local, to_utc_z

TOP_PRODUCTS_LIMIT = 5


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


class TimeRange(str, enum.Enum):
    TODAY = "today"
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    ALL = "all"

    @classmethod
    def parse(cls, value) -> "TimeRange":
        if isinstance(value, cls):
            return value
        for member in cls:
            if value == member.value or (isinstance(value, str) and value.upper() == member.name):
                return member
        raise ReportError(f"range must be one of {[m.value for m in cls]}")


@dataclass
class ProductStat:
    product_id: str
    name: str
    quantity: int = 0
    revenue_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "revenue_cents": self.revenue_cents,
        }


def range_start(time_range: TimeRange, now: datetime, tz: tzinfo) -> datetime | None:
    """Inclusive lower bound (aware) of a window ending at `now`; None for ALL."""
    local_now = now.astimezone(tz)
    if time_range is TimeRange.TODAY:
        return local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_range is TimeRange.LAST_7_DAYS:
        return local_now - timedelta(days=7)
    if time_range is TimeRange.LAST_30_DAYS:
        return local_now - timedelta(days=30)
    return None


def flatten_sales(sessions) -> list:
    return [sale for session in sessions for sale in session.sales]


def filter_sales(sessions, time_range=TimeRange.ALL, now: datetime | None = None, tz: tzinfo = timezone.utc) -> list:
    """Sales of all given sessions (open or closed) sold inside the window."""
    time_range = TimeRange.parse(time_range)
    now = now or datetime.now(tz)
    start = range_start(time_range, now, tz)

    sales = flatten_sales(sessions)
    if start is None:
        return sales
    return [sale for sale in sales if to_local(sale.sold_at, tz) >= start]


def rank_products(sales: Iterable, limit: int | None = TOP_PRODUCTS_LIMIT) -> list[ProductStat]:
    """
    Per-product quantity and revenue, highest quantity first.

    Ties are broken by product id so results are reproducible. The name
    shown is the first snapshot encountered. `limit=None` returns all.
    """
    stats: dict[str, ProductStat] = {}
    for sale in sales:
        for line in sale.lines:
            stat = stats.get(line.product_id)
            if stat is None:
                stat = stats[line.product_id] = ProductStat(product_id=line.product_id, name=line.name)
            stat.quantity += line.quantity
            stat.revenue_cents += line.line_total_cents

    ranking = sorted(stats.values(), key=lambda s: (-s.quantity, s.product_id))
    if limit is not None:
        ranking = ranking[:limit]
    return ranking


def compute_kpis(sales: list) -> dict:
    revenue = sum(sale.total_cents for sale in sales)
    count = len(sales)
    ranking = rank_products(sales, limit=1)
    best = ranking[0] if ranking else None
    return {
        "total_revenue_cents": revenue,
        "sale_count": count,
        "average_ticket_cents": divide_cents(revenue, count),
        "best_seller": best.to_dict() if best else None,
    }


def daily_revenue(sales: Iterable, tz: tzinfo = timezone.utc) -> list[dict]:
    """Revenue per local calendar day, oldest first."""
    by_day: dict = {}
    for sale in sales:
        day = to_local(sale.sold_at, tz).date()
        by_day[day] = by_day.get(day, 0) + sale.total_cents
    return [
        {"date": day.isoformat(), "revenue_cents": by_day[day]}
        for day in sorted(by_day)
    ]


def payment_method_totals(sales: Iterable) -> dict[str, int]:
    return {method.value: cents for method, cents in tally_payment_methods(sales).items()}


def build_report(
    sessions,
    time_range=TimeRange.LAST_7_DAYS,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    top_limit: int | None = TOP_PRODUCTS_LIMIT,
) -> dict:
    time_range = TimeRange.parse(time_range)
    now = now or datetime.now(tz)
    sales = filter_sales(sessions, time_range, now=now, tz=tz)
    start = range_start(time_range, now, tz)

    return {
        "range": time_range.value,
        "start": to_utc_z(start) if start else None,
        "generated_at": to_utc_z(now),
        "kpis": compute_kpis(sales),
        "top_products": [stat.to_dict() for stat in rank_products(sales, limit=top_limit)],
        "daily_revenue": daily_revenue(sales, tz),
        "payment_methods": payment_method_totals(sales),
    }
