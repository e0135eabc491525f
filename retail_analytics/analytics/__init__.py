"""
Warehouse Analytics Module
"""
from .clock import resolve_reference_date
from .customers import compute_customer_report, rank_customers, summarize_customer_segments
from .exceptions import AnalyticsError, ClockNotConfiguredError, InvalidInputError
from .overview import (
    compute_category_contribution,
    compute_date_range,
    compute_key_metrics,
    compute_magnitude,
)
from .products import compute_product_report, rank_products, segment_products_by_cost
from .runner import ReportResult, ReportRunner, ReportType
from .schema import WarehouseSnapshot
from .trends import compute_running_sales, compute_sales_over_time, compute_yearly_product_trend

__all__ = [
    "resolve_reference_date",
    "compute_customer_report",
    "rank_customers",
    "summarize_customer_segments",
    "AnalyticsError",
    "ClockNotConfiguredError",
    "InvalidInputError",
    "compute_category_contribution",
    "compute_date_range",
    "compute_key_metrics",
    "compute_magnitude",
    "compute_product_report",
    "rank_products",
    "segment_products_by_cost",
    "ReportResult",
    "ReportRunner",
    "ReportType",
    "WarehouseSnapshot",
    "compute_running_sales",
    "compute_sales_over_time",
    "compute_yearly_product_trend",
]
