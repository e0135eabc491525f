"""
Sales Trend Reports

Window-style reports over time. Each window is evaluated over a frame sorted
by its partition and order keys, so cumulative and lag expressions fold over
rows in time order.
"""

from enum import Enum
from typing import List

import polars as pl
import structlog

from .schema import RelationLike, dated_sales, prepare_products, prepare_sales

logger = structlog.get_logger(__name__)


class AverageChange(str, Enum):
    """Position of a year's sales relative to the product average"""
    ABOVE = "Above Average"
    BELOW = "Below Average"
    AVERAGE = "Avg"


class SalesChange(str, Enum):
    """Year-over-year sales movement"""
    IMPROVED = "Sales Improved"
    DECREASED = "Sales Decreased"
    NO_CHANGE = "No Change"


class Granularity(str, Enum):
    """Time bucket size for change-over-time reports"""
    YEAR = "year"
    MONTH = "month"


RUNNING_SALES_COLUMNS: List[str] = [
    "year",
    "month",
    "total_sales",
    "running_sales",
    "moving_avg_price",
]

YEARLY_TREND_COLUMNS: List[str] = [
    "year",
    "product_key",
    "product_name",
    "total_sales",
    "average_sales",
    "diff_vs_average",
    "avg_change_label",
    "previous_year_sales",
    "diff_vs_previous",
    "sale_change_label",
]


def _with_order_period(sales_df: pl.DataFrame) -> pl.DataFrame:
    return sales_df.with_columns([
        pl.col("order_date").dt.year().cast(pl.Int64).alias("year"),
        pl.col("order_date").dt.month().cast(pl.Int64).alias("month"),
    ])


def compute_running_sales(sales: RelationLike) -> pl.DataFrame:
    """
    Monthly sales with a running total and moving average price per year.

    ``running_sales`` restarts at the first month of every year.
    ``moving_avg_price`` is the cumulative mean of the monthly average
    price within the year, rounded to 2 decimals.

    Args:
        sales: Sales fact lines

    Returns:
        One row per (year, month), sorted chronologically
    """
    sales_df = _with_order_period(dated_sales(prepare_sales(sales)))

    monthly = (
        sales_df.group_by(["year", "month"])
        .agg([
            pl.col("sales_amount").sum().alias("total_sales"),
            pl.col("price").mean().alias("avg_price"),
        ])
        .sort(["year", "month"])
    )

    monthly = monthly.with_columns([
        pl.col("total_sales").cum_sum().over("year").alias("running_sales"),
        (
            pl.col("avg_price").cum_sum().over("year")
            / pl.col("avg_price").cum_count().over("year")
        ).round(2).alias("moving_avg_price"),
    ])

    logger.info("Running sales computed", months=len(monthly))
    return monthly.select(RUNNING_SALES_COLUMNS)


def compute_yearly_product_trend(
    sales: RelationLike,
    products: RelationLike,
) -> pl.DataFrame:
    """
    Yearly product sales compared with the product average and prior year.

    ``previous_year_sales`` is the product's sales in its preceding sales
    year (null for the first year), and ``sale_change_label`` is null
    whenever there is no previous year.

    Args:
        sales: Sales fact lines
        products: Product dimension

    Returns:
        One row per (product_key, year), sorted by product_key then year
    """
    products_df = prepare_products(products)
    sales_df = _with_order_period(dated_sales(prepare_sales(sales)))

    yearly = (
        sales_df.join(
            products_df.select(["product_key", "product_name"]),
            on="product_key",
            how="left",
        )
        .group_by(["product_key", "year"])
        .agg([
            pl.col("product_name").first(),
            pl.col("sales_amount").sum().alias("total_sales"),
        ])
        .sort(["product_key", "year"], nulls_last=True)
    )

    yearly = yearly.with_columns([
        pl.col("total_sales").mean().over("product_key").alias("average_sales"),
        pl.col("total_sales").shift(1).over("product_key").alias("previous_year_sales"),
    ])

    yearly = yearly.with_columns([
        (pl.col("total_sales") - pl.col("average_sales")).alias("diff_vs_average"),
        (pl.col("total_sales") - pl.col("previous_year_sales")).alias("diff_vs_previous"),
    ])

    yearly = yearly.with_columns([
        pl.when(pl.col("diff_vs_average") > 0)
        .then(pl.lit(AverageChange.ABOVE.value))
        .when(pl.col("diff_vs_average") < 0)
        .then(pl.lit(AverageChange.BELOW.value))
        .otherwise(pl.lit(AverageChange.AVERAGE.value))
        .alias("avg_change_label"),

        pl.when(pl.col("previous_year_sales").is_null())
        .then(pl.lit(None, dtype=pl.Utf8))
        .when(pl.col("diff_vs_previous") > 0)
        .then(pl.lit(SalesChange.IMPROVED.value))
        .when(pl.col("diff_vs_previous") < 0)
        .then(pl.lit(SalesChange.DECREASED.value))
        .otherwise(pl.lit(SalesChange.NO_CHANGE.value))
        .alias("sale_change_label"),
    ])

    logger.info("Yearly product trend computed", rows=len(yearly))
    return yearly.select(YEARLY_TREND_COLUMNS)


def compute_sales_over_time(
    sales: RelationLike,
    granularity: str = "month",
) -> pl.DataFrame:
    """
    Sales, customers and quantity per year or per month.

    Args:
        sales: Sales fact lines
        granularity: "year" or "month"
    """
    granularity = Granularity(granularity)
    sales_df = _with_order_period(dated_sales(prepare_sales(sales)))

    keys = ["year"] if granularity == Granularity.YEAR else ["year", "month"]

    return (
        sales_df.group_by(keys)
        .agg([
            pl.col("sales_amount").sum().alias("total_sales"),
            pl.col("customer_key").drop_nulls().n_unique().cast(pl.Int64).alias("total_customers"),
            pl.col("quantity").sum().alias("total_quantity"),
        ])
        .sort(keys)
    )
