"""
Overview Reports

Warehouse-wide summaries:
- Category contribution to overall sales (part-to-whole)
- Sales magnitude per dimension attribute
- Key business measures
- Date range exploration
"""

from typing import Any, Dict, List, Optional, Tuple

import polars as pl
import structlog

from .clock import DateLike, resolve_reference_date
from .schema import (
    CUSTOMERS,
    PRODUCTS,
    RELATION_SCHEMAS,
    RelationLike,
    dated_sales,
    prepare_customers,
    prepare_products,
    prepare_relation,
    prepare_sales,
)
from .segmentation import percent_of

logger = structlog.get_logger(__name__)

DIMENSION_KEYS: Dict[str, str] = {
    CUSTOMERS: "customer_key",
    PRODUCTS: "product_key",
}

DATE_RANGE_SCHEMA: Dict[str, Any] = {
    "first_order_date": pl.Date,
    "last_order_date": pl.Date,
    "order_range_months": pl.Int64,
    "oldest_birthdate": pl.Date,
    "youngest_birthdate": pl.Date,
    "oldest_customer_age": pl.Int64,
    "youngest_customer_age": pl.Int64,
}


def compute_category_contribution(
    products: RelationLike,
    sales: RelationLike,
) -> pl.DataFrame:
    """
    Share of overall sales per product category.

    Args:
        products: Product dimension
        sales: Sales fact lines

    Returns:
        DataFrame with category, sales, overall_sales and
        contribution_percent, largest category first
    """
    products_df = prepare_products(products)
    sales_df = prepare_sales(sales)

    by_category = (
        sales_df.join(
            products_df.select(["product_key", "category"]),
            on="product_key",
            how="left",
        )
        .group_by("category")
        .agg(pl.col("sales_amount").sum().alias("sales"))
    )

    contribution = by_category.with_columns(
        pl.col("sales").sum().alias("overall_sales")
    ).with_columns(
        percent_of(pl.col("sales"), pl.col("overall_sales")).alias("contribution_percent")
    )

    logger.info("Category contribution computed", categories=len(contribution))
    return contribution.select(
        ["category", "sales", "overall_sales", "contribution_percent"]
    ).sort(["sales", "category"], descending=[True, False], nulls_last=True)


def compute_magnitude(
    sales: RelationLike,
    dimension: RelationLike,
    by: str,
    relation: str = CUSTOMERS,
) -> pl.DataFrame:
    """
    Aggregate sales per attribute of a dimension.

    Example:
        compute_magnitude(sales, customers, by="country")
        compute_magnitude(sales, products, by="category", relation="products")

    Args:
        sales: Sales fact lines
        dimension: Customer or product dimension
        by: Dimension attribute to group on
        relation: "customers" or "products"
    """
    if relation not in DIMENSION_KEYS:
        raise ValueError(f"Magnitude needs a dimension relation, got '{relation}'")
    if by not in RELATION_SCHEMAS[relation]:
        raise ValueError(f"'{by}' is not a {relation} attribute")

    key = DIMENSION_KEYS[relation]
    dimension_df = prepare_relation(dimension, relation)
    sales_df = prepare_sales(sales)

    attributes = [key] if by == key else [key, by]

    return (
        sales_df.join(dimension_df.select(attributes), on=key, how="left")
        .group_by(by)
        .agg([
            pl.col("sales_amount").sum().alias("total_sales"),
            pl.col("quantity").sum().alias("total_quantity"),
            pl.col("order_number").drop_nulls().n_unique().cast(pl.Int64).alias("total_orders"),
        ])
        .sort(["total_sales", by], descending=[True, False], nulls_last=True)
    )


def compute_key_metrics(
    customers: RelationLike,
    products: RelationLike,
    sales: RelationLike,
) -> pl.DataFrame:
    """
    Key business measures in long format.

    Returns:
        DataFrame with measure_name and measure_value columns
    """
    customers_df = prepare_customers(customers)
    products_df = prepare_products(products)
    sales_df = prepare_sales(sales)

    average_price = sales_df["price"].mean()

    measures: List[Tuple[str, Optional[float]]] = [
        ("Total Sales", sales_df["sales_amount"].sum()),
        ("Total Quantity", sales_df["quantity"].sum()),
        ("Average Price", round(average_price, 2) if average_price is not None else None),
        ("Total Orders", sales_df["order_number"].drop_nulls().n_unique()),
        ("Total Products", products_df["product_key"].drop_nulls().n_unique()),
        ("Total Customers", customers_df["customer_key"].drop_nulls().n_unique()),
        ("Customers With Orders", sales_df["customer_key"].drop_nulls().n_unique()),
    ]

    return pl.DataFrame(
        {
            "measure_name": [name for name, _ in measures],
            "measure_value": [float(value) if value is not None else None for _, value in measures],
        },
        schema={"measure_name": pl.Utf8, "measure_value": pl.Float64},
    )


def compute_date_range(
    customers: RelationLike,
    sales: RelationLike,
    reference_date: Optional[DateLike] = None,
) -> pl.DataFrame:
    """
    Boundaries of the order history and of customer birthdates.

    Returns:
        Single-row DataFrame; fields are null when no data backs them
    """
    ref = resolve_reference_date(reference_date, "date range")
    customers_df = prepare_customers(customers)
    sales_df = dated_sales(prepare_sales(sales))

    first_order = sales_df["order_date"].min()
    last_order = sales_df["order_date"].max()
    oldest = customers_df["birthdate"].min()
    youngest = customers_df["birthdate"].max()

    order_range = None
    if first_order is not None and last_order is not None:
        order_range = (last_order.year - first_order.year) * 12 + (last_order.month - first_order.month)

    row = {
        "first_order_date": first_order,
        "last_order_date": last_order,
        "order_range_months": order_range,
        "oldest_birthdate": oldest,
        "youngest_birthdate": youngest,
        "oldest_customer_age": ref.year - oldest.year if oldest is not None else None,
        "youngest_customer_age": ref.year - youngest.year if youngest is not None else None,
    }

    return pl.DataFrame([row], schema=DATE_RANGE_SCHEMA)
