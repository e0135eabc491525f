"""
Customer Reports

Customer-level metrics and segmentation computed from sales lines joined to
the customer dimension. Reports are sales-driven: a customer without dated
sales produces no row.
"""

from typing import List, Optional

import polars as pl
import structlog

from retail_analytics.config.settings import SegmentationSettings
from .clock import DateLike, resolve_reference_date
from .schema import RelationLike, dated_sales, prepare_customers, prepare_sales
from .segmentation import (
    age_group,
    average_per_month,
    average_per_order,
    customer_segment,
    month_diff,
    months_until,
    years_until,
)

logger = structlog.get_logger(__name__)

CUSTOMER_REPORT_COLUMNS: List[str] = [
    "customer_key",
    "customer_number",
    "customer_name",
    "age",
    "age_group",
    "segment",
    "last_order_date",
    "recency_months",
    "total_orders",
    "total_sales",
    "total_quantity",
    "total_products",
    "lifespan_months",
    "average_order_value",
    "average_monthly_spend",
]

RANKABLE_CUSTOMER_MEASURES = ("total_sales", "total_orders", "total_quantity")


def _customer_name() -> pl.Expr:
    return pl.concat_str(
        [pl.col("first_name"), pl.col("last_name")], separator=" "
    ).alias("customer_name")


def compute_customer_report(
    customers: RelationLike,
    sales: RelationLike,
    reference_date: Optional[DateLike] = None,
    legacy_age_groups: Optional[bool] = None,
    thresholds: Optional[SegmentationSettings] = None,
) -> pl.DataFrame:
    """
    Build the customer report.

    Args:
        customers: Customer dimension
        sales: Sales fact lines
        reference_date: "Now" for age and recency
        legacy_age_groups: Override REPORT_LEGACY_AGE_GROUPS
        thresholds: Override segmentation thresholds

    Returns:
        One row per customer_key with sales, sorted by customer_key

    Raises:
        InvalidInputError: If a relation violates its contract
        ClockNotConfiguredError: If no reference date is available
    """
    ref = resolve_reference_date(reference_date, "customer report")
    customers_df = prepare_customers(customers)
    sales_df = dated_sales(prepare_sales(sales))

    base = sales_df.join(
        customers_df.select([
            "customer_key",
            "customer_number",
            "first_name",
            "last_name",
            "birthdate",
        ]),
        on="customer_key",
        how="left",
    )

    report = base.group_by("customer_key").agg([
        pl.col("customer_number").first(),
        _customer_name().first(),
        pl.col("birthdate").first(),
        pl.col("order_number").drop_nulls().n_unique().cast(pl.Int64).alias("total_orders"),
        pl.col("sales_amount").sum().alias("total_sales"),
        pl.col("quantity").sum().alias("total_quantity"),
        pl.col("product_key").drop_nulls().n_unique().cast(pl.Int64).alias("total_products"),
        pl.col("order_date").min().alias("first_order_date"),
        pl.col("order_date").max().alias("last_order_date"),
    ])

    report = report.with_columns([
        month_diff(pl.col("first_order_date"), pl.col("last_order_date")).alias("lifespan_months"),
        months_until(pl.col("last_order_date"), ref).alias("recency_months"),
        years_until(pl.col("birthdate"), ref).alias("age"),
    ])

    report = report.with_columns([
        age_group(pl.col("age"), legacy_age_groups).alias("age_group"),
        customer_segment(pl.col("lifespan_months"), pl.col("total_sales"), thresholds).alias("segment"),
        average_per_order("total_sales", "total_orders").alias("average_order_value"),
        average_per_month("total_sales", "lifespan_months").alias("average_monthly_spend"),
    ])

    report = report.select(CUSTOMER_REPORT_COLUMNS).sort("customer_key", nulls_last=True)

    logger.info(
        "Customer report computed",
        customers=len(report),
        sales_lines=len(sales_df),
        reference_date=ref.isoformat(),
    )
    return report


def summarize_customer_segments(customer_report: pl.DataFrame) -> pl.DataFrame:
    """Count customers per segment of a customer report"""
    return (
        customer_report.group_by("segment")
        .agg(pl.len().cast(pl.Int64).alias("total_customers"))
        .sort(["total_customers", "segment"], descending=[True, False])
    )


def rank_customers(
    customers: RelationLike,
    sales: RelationLike,
    top_n: int = 10,
    by: str = "total_sales",
    ascending: bool = False,
) -> pl.DataFrame:
    """
    Rank customers by a sales measure.

    Ties share a rank and leave a gap after them, so more than ``top_n``
    rows can be returned.

    Args:
        customers: Customer dimension
        sales: Sales fact lines
        top_n: Highest rank to keep
        by: "total_sales", "total_orders" or "total_quantity"
        ascending: Rank the lowest values first (bottom-N)
    """
    if by not in RANKABLE_CUSTOMER_MEASURES:
        raise ValueError(f"Cannot rank customers by '{by}'. Use one of {RANKABLE_CUSTOMER_MEASURES}")

    customers_df = prepare_customers(customers)
    sales_df = prepare_sales(sales)

    totals = sales_df.group_by("customer_key").agg([
        pl.col("sales_amount").sum().alias("total_sales"),
        pl.col("order_number").drop_nulls().n_unique().cast(pl.Int64).alias("total_orders"),
        pl.col("quantity").sum().alias("total_quantity"),
    ])

    ranked = (
        totals.join(
            customers_df.select(["customer_key", "first_name", "last_name"]),
            on="customer_key",
            how="left",
        )
        .with_columns([
            _customer_name(),
            pl.col(by).rank("min", descending=not ascending).cast(pl.Int64).alias("rank"),
        ])
        .filter(pl.col("rank") <= top_n)
    )

    return ranked.select(
        ["rank", "customer_key", "customer_name", "total_sales", "total_orders", "total_quantity"]
    ).sort(["rank", "customer_key"])
