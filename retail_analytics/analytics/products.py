"""
Product Reports

Product-level performance metrics, rankings and cost segmentation.
"""

from typing import List, Optional

import polars as pl
import structlog

from retail_analytics.config.settings import SegmentationSettings
from .clock import DateLike, resolve_reference_date
from .schema import RelationLike, dated_sales, prepare_products, prepare_sales
from .segmentation import (
    average_per_month,
    average_per_order,
    cost_range,
    month_diff,
    months_until,
    product_segment,
)

logger = structlog.get_logger(__name__)

PRODUCT_REPORT_COLUMNS: List[str] = [
    "product_key",
    "product_name",
    "category",
    "subcategory",
    "cost",
    "last_order_date",
    "recency_months",
    "product_segment",
    "lifespan_months",
    "total_orders",
    "total_sales",
    "total_quantity",
    "total_customers",
    "avg_selling_price",
    "average_order_revenue",
    "average_monthly_revenue",
]


def compute_product_report(
    products: RelationLike,
    sales: RelationLike,
    reference_date: Optional[DateLike] = None,
    thresholds: Optional[SegmentationSettings] = None,
) -> pl.DataFrame:
    """
    Build the product report.

    Args:
        products: Product dimension
        sales: Sales fact lines
        reference_date: "Now" for recency
        thresholds: Override segmentation thresholds

    Returns:
        One row per product_key with sales, sorted by product_key
    """
    ref = resolve_reference_date(reference_date, "product report")
    products_df = prepare_products(products)
    sales_df = dated_sales(prepare_sales(sales))

    base = sales_df.join(
        products_df.select(["product_key", "product_name", "category", "subcategory", "cost"]),
        on="product_key",
        how="left",
    )

    # Unit price per line, skipping zero-quantity lines
    line_price = (
        pl.when(pl.col("quantity") != 0)
        .then(pl.col("sales_amount") / pl.col("quantity"))
        .otherwise(None)
    )

    report = base.group_by("product_key").agg([
        pl.col("product_name").first(),
        pl.col("category").first(),
        pl.col("subcategory").first(),
        pl.col("cost").first(),
        pl.col("order_number").drop_nulls().n_unique().cast(pl.Int64).alias("total_orders"),
        pl.col("sales_amount").sum().alias("total_sales"),
        pl.col("quantity").sum().alias("total_quantity"),
        pl.col("customer_key").drop_nulls().n_unique().cast(pl.Int64).alias("total_customers"),
        line_price.mean().round(2).alias("avg_selling_price"),
        pl.col("order_date").min().alias("first_order_date"),
        pl.col("order_date").max().alias("last_order_date"),
    ])

    report = report.with_columns([
        month_diff(pl.col("first_order_date"), pl.col("last_order_date")).alias("lifespan_months"),
        months_until(pl.col("last_order_date"), ref).alias("recency_months"),
        product_segment(pl.col("total_sales"), thresholds).alias("product_segment"),
    ])

    report = report.with_columns([
        average_per_order("total_sales", "total_orders").alias("average_order_revenue"),
        average_per_month("total_sales", "lifespan_months").alias("average_monthly_revenue"),
    ])

    report = report.select(PRODUCT_REPORT_COLUMNS).sort("product_key", nulls_last=True)

    logger.info(
        "Product report computed",
        products=len(report),
        sales_lines=len(sales_df),
        reference_date=ref.isoformat(),
    )
    return report


def rank_products(
    products: RelationLike,
    sales: RelationLike,
    top_n: int = 5,
    ascending: bool = False,
) -> pl.DataFrame:
    """
    Rank products by revenue.

    Args:
        products: Product dimension
        sales: Sales fact lines
        top_n: Highest rank to keep
        ascending: Rank the worst sellers first (bottom-N)

    Returns:
        DataFrame with rank, product_key, product_name and total_sales
    """
    products_df = prepare_products(products)
    sales_df = prepare_sales(sales)

    totals = sales_df.group_by("product_key").agg(
        pl.col("sales_amount").sum().alias("total_sales")
    )

    ranked = (
        totals.join(
            products_df.select(["product_key", "product_name"]),
            on="product_key",
            how="left",
        )
        .with_columns(
            pl.col("total_sales").rank("min", descending=not ascending).cast(pl.Int64).alias("rank")
        )
        .filter(pl.col("rank") <= top_n)
    )

    return ranked.select(["rank", "product_key", "product_name", "total_sales"]).sort(
        ["rank", "product_key"]
    )


def segment_products_by_cost(products: RelationLike) -> pl.DataFrame:
    """Count products per cost range, largest range first"""
    products_df = prepare_products(products)

    return (
        products_df.with_columns(cost_range(pl.col("cost")).alias("cost_range"))
        .group_by("cost_range")
        .agg(pl.len().cast(pl.Int64).alias("total_products"))
        .sort(["total_products", "cost_range"], descending=[True, False])
    )
