"""
Relation Contracts and Input Preparation

Defines the column contract of the three warehouse relations and coerces
supplied data (Polars, Pandas or plain records) into typed Polars frames.
Handles:
- Required column checks
- Date parsing from ISO strings and datetimes
- Numeric and key casting
- String trimming
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Union

import pandas as pd
import polars as pl
import structlog

from .exceptions import InvalidInputError

logger = structlog.get_logger(__name__)

RelationLike = Union[pl.DataFrame, pl.LazyFrame, pd.DataFrame, Iterable[Mapping[str, Any]]]

CUSTOMERS = "customers"
PRODUCTS = "products"
SALES = "sales"

CUSTOMER_SCHEMA: Dict[str, Any] = {
    "customer_key": pl.Int64,
    "customer_id": pl.Int64,
    "customer_number": pl.Utf8,
    "first_name": pl.Utf8,
    "last_name": pl.Utf8,
    "birthdate": pl.Date,
    "gender": pl.Utf8,
    "country": pl.Utf8,
    "create_date": pl.Date,
}

PRODUCT_SCHEMA: Dict[str, Any] = {
    "product_key": pl.Int64,
    "product_id": pl.Int64,
    "product_name": pl.Utf8,
    "category": pl.Utf8,
    "subcategory": pl.Utf8,
    "cost": pl.Float64,
    "start_date": pl.Date,
}

SALES_SCHEMA: Dict[str, Any] = {
    "order_number": pl.Utf8,
    "product_key": pl.Int64,
    "customer_key": pl.Int64,
    "order_date": pl.Date,
    "shipping_date": pl.Date,
    "due_date": pl.Date,
    "sales_amount": pl.Float64,
    "quantity": pl.Int64,
    "price": pl.Float64,
}

RELATION_SCHEMAS: Dict[str, Dict[str, Any]] = {
    CUSTOMERS: CUSTOMER_SCHEMA,
    PRODUCTS: PRODUCT_SCHEMA,
    SALES: SALES_SCHEMA,
}

DATE_FORMAT = "%Y-%m-%d"


def to_frame(data: RelationLike, relation: str) -> pl.DataFrame:
    """
    Convert supported inputs to a Polars DataFrame.

    Args:
        data: Polars/Pandas frame or an iterable of row mappings
        relation: Relation name ("customers", "products" or "sales")

    Returns:
        Untyped Polars DataFrame
    """
    if isinstance(data, pl.DataFrame):
        return data
    if isinstance(data, pl.LazyFrame):
        return data.collect()
    if isinstance(data, pd.DataFrame):
        return pl.from_pandas(data)

    rows = [dict(row) for row in data]
    if not rows:
        return pl.DataFrame(schema=RELATION_SCHEMAS[relation])
    return pl.from_dicts(rows, infer_schema_length=None)


def _coerce(column: str, target: Any, current: Any) -> pl.Expr:
    """Build the expression casting one column to its contract dtype"""
    col = pl.col(column)

    if target == pl.Date:
        if current == pl.Date:
            return col
        if current == pl.Datetime:
            return col.dt.date().alias(column)
        if current == pl.Utf8:
            stripped = col.str.strip_chars()
            return (
                pl.when(stripped == "")
                .then(None)
                .otherwise(stripped)
                .str.to_date(DATE_FORMAT, strict=True)
                .alias(column)
            )
        return col.cast(pl.Date, strict=True)

    if target == pl.Utf8:
        if current == pl.Utf8:
            return col.str.strip_chars().alias(column)
        return col.cast(pl.Utf8)

    return col.cast(target, strict=True)


def require_columns(df: pl.DataFrame, relation: str) -> None:
    """Raise InvalidInputError if any contract column is absent"""
    missing = [c for c in RELATION_SCHEMAS[relation] if c not in df.columns]
    if missing:
        raise InvalidInputError(
            relation,
            f"missing required columns {missing}",
            columns=missing,
        )


def prepare_relation(data: RelationLike, relation: str) -> pl.DataFrame:
    """
    Validate and coerce a relation to its column contract.

    Only contract columns are kept, in contract order.

    Args:
        data: Relation data in any supported form
        relation: Relation name

    Returns:
        Typed Polars DataFrame

    Raises:
        InvalidInputError: On missing columns or uncoercible values
    """
    if relation not in RELATION_SCHEMAS:
        raise ValueError(f"Unknown relation: {relation}")

    df = to_frame(data, relation)
    require_columns(df, relation)

    schema = RELATION_SCHEMAS[relation]
    exprs = [_coerce(name, dtype, df.schema[name]) for name, dtype in schema.items()]

    try:
        df = df.select(exprs)
    except pl.exceptions.PolarsError as e:
        raise InvalidInputError(relation, f"could not coerce columns: {e}") from e

    logger.debug("Prepared relation", relation=relation, rows=len(df))
    return df


def prepare_customers(data: RelationLike) -> pl.DataFrame:
    """Prepare the customers relation"""
    return prepare_relation(data, CUSTOMERS)


def prepare_products(data: RelationLike) -> pl.DataFrame:
    """Prepare the products relation"""
    return prepare_relation(data, PRODUCTS)


def prepare_sales(data: RelationLike) -> pl.DataFrame:
    """Prepare the sales relation"""
    return prepare_relation(data, SALES)


def dated_sales(sales: pl.DataFrame) -> pl.DataFrame:
    """Sales lines with a known order date; undated lines never enter reports"""
    return sales.filter(pl.col("order_date").is_not_null())


@dataclass(frozen=True)
class WarehouseSnapshot:
    """Immutable snapshot of the three warehouse relations"""
    customers: pl.DataFrame
    products: pl.DataFrame
    sales: pl.DataFrame

    @classmethod
    def from_sources(
        cls,
        customers: RelationLike,
        products: RelationLike,
        sales: RelationLike,
    ) -> "WarehouseSnapshot":
        """Build a typed snapshot from raw relation data"""
        return cls(
            customers=prepare_customers(customers),
            products=prepare_products(products),
            sales=prepare_sales(sales),
        )

    @property
    def row_counts(self) -> Dict[str, int]:
        """Row count per relation"""
        return {
            CUSTOMERS: len(self.customers),
            PRODUCTS: len(self.products),
            SALES: len(self.sales),
        }
