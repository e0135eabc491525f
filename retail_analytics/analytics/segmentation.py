"""
Segmentation and Metric Expressions

Reusable Polars expressions shared by the reports:
- Calendar month and year differences
- Division-guarded ratios
- Age groups
- Customer segments (VIP / Regular / New)
- Product segments (High / Mid / Low Performer)
- Product cost ranges
"""

from datetime import date
from enum import Enum
from typing import Optional

import polars as pl

from retail_analytics.config import get_settings
from retail_analytics.config.settings import SegmentationSettings


class CustomerSegment(str, Enum):
    """Customer segment labels"""
    VIP = "VIP"
    REGULAR = "Regular"
    NEW = "New"


class ProductSegment(str, Enum):
    """Product segment labels"""
    HIGH = "High Performer"
    MID = "Mid Performer"
    LOW = "Low Performer"


class AgeGroup(str, Enum):
    """Age group labels"""
    UNDER_20 = "Under 20"
    TWENTIES = "20-29"
    THIRTIES = "30-39"
    FORTIES = "40-49"
    LEGACY_TWENTIES = "21-29"
    LEGACY_THIRTIES = "31-39"
    LEGACY_FORTIES = "41-49"
    FIFTY_PLUS = "50 and above"


class CostRange(str, Enum):
    """Product cost range labels"""
    BELOW_100 = "Below 100"
    FROM_100_TO_500 = "100-500"
    FROM_500_TO_1000 = "500-1000"
    ABOVE_1000 = "Above 1000"


def _thresholds(thresholds: Optional[SegmentationSettings]) -> SegmentationSettings:
    return thresholds or get_settings().segmentation


# =============================================================================
# DATE DIFFERENCES
# =============================================================================

def month_index(expr: pl.Expr) -> pl.Expr:
    """Absolute month number (year * 12 + month) of a date expression"""
    return expr.dt.year().cast(pl.Int64) * 12 + expr.dt.month().cast(pl.Int64)


def month_diff(start: pl.Expr, end: pl.Expr) -> pl.Expr:
    """
    Calendar month difference between two date expressions.

    Day of month is ignored: 2024-01-31 to 2024-02-01 is one month.
    """
    return month_index(end) - month_index(start)


def months_until(start: pl.Expr, reference_date: date) -> pl.Expr:
    """Calendar months from a date expression to the reference date"""
    reference_month = reference_date.year * 12 + reference_date.month
    return pl.lit(reference_month, dtype=pl.Int64) - month_index(start)


def years_until(start: pl.Expr, reference_date: date) -> pl.Expr:
    """Calendar years from a date expression to the reference date"""
    return pl.lit(reference_date.year, dtype=pl.Int64) - start.dt.year().cast(pl.Int64)


# =============================================================================
# GUARDED RATIOS
# =============================================================================

def average_per_order(total_sales: str, total_orders: str) -> pl.Expr:
    """Sales per distinct order, 0 when there are no sales or no orders"""
    return (
        pl.when((pl.col(total_sales) == 0) | (pl.col(total_orders) == 0))
        .then(pl.lit(0.0))
        .otherwise((pl.col(total_sales) / pl.col(total_orders)).round(2))
    )


def average_per_month(total_sales: str, lifespan_months: str) -> pl.Expr:
    """Sales per lifespan month, the total itself when the lifespan is 0"""
    return (
        pl.when(pl.col(lifespan_months) == 0)
        .then(pl.col(total_sales))
        .otherwise((pl.col(total_sales) / pl.col(lifespan_months)).round(2))
    )


def percent_of(part: pl.Expr, whole: pl.Expr) -> pl.Expr:
    """Percentage share rounded to 2 decimals, 0 when the whole is 0"""
    return (
        pl.when(whole == 0)
        .then(pl.lit(0.0))
        .otherwise((part / whole * 100).round(2))
    )


# =============================================================================
# LABELS
# =============================================================================

def age_group(age: pl.Expr, legacy: Optional[bool] = None) -> pl.Expr:
    """
    Bucket ages into labelled groups.

    The legacy buckets reproduce the warehouse's historical report: 21-29,
    31-39 and 41-49, so ages 20, 30, 40 and unknown ages land in
    "50 and above". The contiguous buckets cover every age and leave
    unknown ages null.

    Args:
        age: Integer age expression
        legacy: Use legacy buckets (defaults to REPORT_LEGACY_AGE_GROUPS)
    """
    if legacy is None:
        legacy = get_settings().reports.legacy_age_groups

    if legacy:
        return (
            pl.when(age < 20).then(pl.lit(AgeGroup.UNDER_20.value))
            .when(age.is_between(21, 29)).then(pl.lit(AgeGroup.LEGACY_TWENTIES.value))
            .when(age.is_between(31, 39)).then(pl.lit(AgeGroup.LEGACY_THIRTIES.value))
            .when(age.is_between(41, 49)).then(pl.lit(AgeGroup.LEGACY_FORTIES.value))
            .otherwise(pl.lit(AgeGroup.FIFTY_PLUS.value))
        )

    return (
        pl.when(age.is_null()).then(pl.lit(None, dtype=pl.Utf8))
        .when(age < 20).then(pl.lit(AgeGroup.UNDER_20.value))
        .when(age < 30).then(pl.lit(AgeGroup.TWENTIES.value))
        .when(age < 40).then(pl.lit(AgeGroup.THIRTIES.value))
        .when(age < 50).then(pl.lit(AgeGroup.FORTIES.value))
        .otherwise(pl.lit(AgeGroup.FIFTY_PLUS.value))
    )


def customer_segment(
    lifespan_months: pl.Expr,
    total_sales: pl.Expr,
    thresholds: Optional[SegmentationSettings] = None,
) -> pl.Expr:
    """VIP / Regular / New label from lifespan and total sales"""
    t = _thresholds(thresholds)
    established = lifespan_months >= t.customer_min_lifespan_months

    return (
        pl.when(established & (total_sales > t.vip_sales_threshold))
        .then(pl.lit(CustomerSegment.VIP.value))
        .when(established & (total_sales <= t.vip_sales_threshold))
        .then(pl.lit(CustomerSegment.REGULAR.value))
        .otherwise(pl.lit(CustomerSegment.NEW.value))
    )


def product_segment(
    total_sales: pl.Expr,
    thresholds: Optional[SegmentationSettings] = None,
) -> pl.Expr:
    """High / Mid / Low Performer label from total sales"""
    t = _thresholds(thresholds)

    return (
        pl.when(total_sales > t.high_performer_threshold)
        .then(pl.lit(ProductSegment.HIGH.value))
        .when(total_sales >= t.mid_performer_threshold)
        .then(pl.lit(ProductSegment.MID.value))
        .otherwise(pl.lit(ProductSegment.LOW.value))
    )


def cost_range(cost: pl.Expr) -> pl.Expr:
    """Product cost range label"""
    return (
        pl.when(cost < 100).then(pl.lit(CostRange.BELOW_100.value))
        .when(cost.is_between(100, 500)).then(pl.lit(CostRange.FROM_100_TO_500.value))
        .when(cost.is_between(500, 1000)).then(pl.lit(CostRange.FROM_500_TO_1000.value))
        .otherwise(pl.lit(CostRange.ABOVE_1000.value))
    )
