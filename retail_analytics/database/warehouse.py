"""
Warehouse Snapshot Loading

Reads the three gold-layer relations into typed Polars frames.
"""

from typing import Any, Dict

import polars as pl
import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from retail_analytics.analytics.schema import (
    CUSTOMER_SCHEMA,
    PRODUCT_SCHEMA,
    SALES_SCHEMA,
    WarehouseSnapshot,
)
from .models import DimCustomer, DimProduct, FactSale

logger = structlog.get_logger(__name__)


def _read_table(session: Session, model: Any, schema: Dict[str, Any]) -> pl.DataFrame:
    """Select the contract columns of a table into a Polars frame"""
    columns = [getattr(model, name) for name in schema]
    rows = [dict(row) for row in session.execute(select(*columns)).mappings()]

    df = pl.from_dicts(rows, schema=schema) if rows else pl.DataFrame(schema=schema)
    logger.info(f"Read {len(df)} rows from {model.__tablename__}")
    return df


def load_snapshot(session: Session) -> WarehouseSnapshot:
    """
    Load customers, products and sales from the warehouse.

    Args:
        session: Open database session

    Returns:
        WarehouseSnapshot of typed frames
    """
    return WarehouseSnapshot(
        customers=_read_table(session, DimCustomer, CUSTOMER_SCHEMA),
        products=_read_table(session, DimProduct, PRODUCT_SCHEMA),
        sales=_read_table(session, FactSale, SALES_SCHEMA),
    )
