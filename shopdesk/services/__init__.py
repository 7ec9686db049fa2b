from shopdesk.services.report_service import (
    dashboard_summary,
    group_summary_by_period,
    inventory_report,
    summarize_by_day,
    top_products,
)
from shopdesk.services.sales_service import apply_total_policy, parse_sale_payload, record_sale

__all__ = [
    "apply_total_policy",
    "dashboard_summary",
    "group_summary_by_period",
    "inventory_report",
    "parse_sale_payload",
    "record_sale",
    "summarize_by_day",
    "top_products",
]
