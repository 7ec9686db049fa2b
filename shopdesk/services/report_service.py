from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, time, timezone
from decimal import Decimal

from shopdesk.core.constants import DEFAULT_MIN_STOCK, SUMMARY_PERIODS, UNKNOWN_PRODUCT_NAME, ZERO
from shopdesk.core.dates import month_start, week_start
from shopdesk.core.errors import InvalidArgument
from shopdesk.core.money import line_total, to_money
from shopdesk.storage.base import DailySummary, is_low_stock


@dataclass
class PeriodSummary:
    period: str
    date: object
    total: Decimal
    count: int


@dataclass
class TopProduct:
    product_id: int
    name: str
    quantity_sold: int
    total_amount: Decimal


@dataclass
class InventoryReport:
    total_value: Decimal
    product_count: int
    out_of_stock_count: int
    low_stock_count: int
    low_stock: list


@dataclass
class DashboardSummary:
    client_count: int
    product_count: int
    low_stock_count: int
    out_of_stock_count: int
    inventory_value: Decimal
    sales_today_total: Decimal
    sales_today_count: int


def summarize_by_day(storage, start, end) -> list[DailySummary]:
    """Days in ``[start, end]`` with at least one sale, oldest first."""
    if start is not None and end is not None and start > end:
        raise InvalidArgument("startDate must not be after endDate.")
    return storage.sales.summarize_by_day(start, end)


_PERIOD_KEYS = {
    "day": lambda day: day,
    "week": week_start,
    "month": month_start,
}


def group_summary_by_period(daily, period="day") -> list[PeriodSummary]:
    """Re-bucket daily entries by day, ISO week (keyed by Monday) or month."""
    if period not in SUMMARY_PERIODS:
        raise InvalidArgument(
            "period must be one of: {}".format(", ".join(SUMMARY_PERIODS)),
            details={"period": period},
        )
    key_for = _PERIOD_KEYS[period]
    buckets = OrderedDict()
    for entry in sorted(daily, key=lambda item: item.date):
        key = key_for(entry.date)
        bucket = buckets.setdefault(key, [ZERO, 0])
        bucket[0] += to_money(entry.total)
        bucket[1] += entry.count
    return [
        PeriodSummary(period=period, date=key, total=total, count=count)
        for key, (total, count) in buckets.items()
    ]


def top_products(items, limit=5) -> list[TopProduct]:
    """
    Rank products by quantity sold.

    ``items`` are sale-item rows carrying ``product_id``, ``quantity``,
    ``unit_price`` and ``product_name``. Amounts use the unit price recorded
    on the item, never the product's current price. Ties keep the order in
    which products were first seen. Products missing from the catalog are
    kept under ``UNKNOWN_PRODUCT_NAME``.
    """
    if limit is None or int(limit) < 1:
        raise InvalidArgument("limit must be a positive integer.", details={"limit": limit})

    grouped = OrderedDict()
    for item in items:
        entry = grouped.get(item.product_id)
        if entry is None:
            entry = grouped[item.product_id] = {"name": None, "quantity": 0, "total": ZERO}
        if entry["name"] is None and getattr(item, "product_name", None):
            entry["name"] = item.product_name
        entry["quantity"] += item.quantity
        entry["total"] += line_total(item.quantity, item.unit_price)

    ranked = sorted(grouped.items(), key=lambda pair: pair[1]["quantity"], reverse=True)
    return [
        TopProduct(
            product_id=product_id,
            name=entry["name"] or UNKNOWN_PRODUCT_NAME,
            quantity_sold=entry["quantity"],
            total_amount=entry["total"],
        )
        for product_id, entry in ranked[: int(limit)]
    ]


def inventory_report(products, default_min_stock=DEFAULT_MIN_STOCK) -> InventoryReport:
    products = list(products)
    total_value = sum(
        (line_total(product.stock, product.price) for product in products),
        ZERO,
    )
    low_stock = [product for product in products if is_low_stock(product, default_min_stock)]
    return InventoryReport(
        total_value=total_value,
        product_count=len(products),
        out_of_stock_count=sum(1 for product in products if product.stock == 0),
        low_stock_count=len(low_stock),
        low_stock=low_stock,
    )


def dashboard_summary(storage, today, default_min_stock=DEFAULT_MIN_STOCK) -> DashboardSummary:
    report = inventory_report(storage.products.list(), default_min_stock)
    day_start = datetime.combine(today, time.min, tzinfo=timezone.utc)
    day_end = datetime.combine(today, time.max, tzinfo=timezone.utc)
    today_rows = storage.sales.summarize_by_day(day_start, day_end)
    return DashboardSummary(
        client_count=len(storage.clients.list()),
        product_count=report.product_count,
        low_stock_count=report.low_stock_count,
        out_of_stock_count=report.out_of_stock_count,
        inventory_value=report.total_value,
        sales_today_total=sum((row.total for row in today_rows), ZERO),
        sales_today_count=sum(row.count for row in today_rows),
    )


__all__ = [
    "DashboardSummary",
    "InventoryReport",
    "PeriodSummary",
    "TopProduct",
    "dashboard_summary",
    "group_summary_by_period",
    "inventory_report",
    "summarize_by_day",
    "top_products",
]
