"""
Database Models - Gold Layer Star Schema

The warehouse exposes one fact table and two dimensions:

Fact Tables:
- FactSale: Sales order lines

Dimension Tables:
- DimCustomer: Customer attributes
- DimProduct: Product catalog with categories and cost
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# DIMENSION TABLES
# =============================================================================

class DimCustomer(Base):
    """
    Customer Dimension Table

    One row per customer with demographic attributes.
    """
    __tablename__ = "dim_customers"

    customer_key: Mapped[int] = mapped_column(Integer, primary_key=True)  # Surrogate key
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_number: Mapped[str] = mapped_column(String(50), nullable=False)

    first_name: Mapped[Optional[str]] = mapped_column(String(50))
    last_name: Mapped[Optional[str]] = mapped_column(String(50))
    country: Mapped[Optional[str]] = mapped_column(String(50))
    gender: Mapped[Optional[str]] = mapped_column(String(20))
    birthdate: Mapped[Optional[date]] = mapped_column(Date)
    create_date: Mapped[Optional[date]] = mapped_column(Date)

    # Relationships
    sales: Mapped[List["FactSale"]] = relationship(back_populates="customer")

    __table_args__ = (
        Index("ix_dim_customers_number", "customer_number"),
        Index("ix_dim_customers_country", "country"),
    )


class DimProduct(Base):
    """
    Product Dimension Table

    Product catalog with category hierarchy and unit cost.
    """
    __tablename__ = "dim_products"

    product_key: Mapped[int] = mapped_column(Integer, primary_key=True)  # Surrogate key
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[Optional[str]] = mapped_column(String(100))

    category: Mapped[Optional[str]] = mapped_column(String(50))
    subcategory: Mapped[Optional[str]] = mapped_column(String(50))
    cost: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))
    start_date: Mapped[Optional[date]] = mapped_column(Date)

    # Relationships
    sales: Mapped[List["FactSale"]] = relationship(back_populates="product")

    __table_args__ = (
        Index("ix_dim_products_category", "category", "subcategory"),
    )


# =============================================================================
# FACT TABLES
# =============================================================================

class FactSale(Base):
    """
    Sales Fact Table

    Grain: one order line. An order number can span several lines.
    """
    __tablename__ = "fact_sales"

    sale_line_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)

    # Foreign keys
    product_key: Mapped[Optional[int]] = mapped_column(ForeignKey("dim_products.product_key"))
    customer_key: Mapped[Optional[int]] = mapped_column(ForeignKey("dim_customers.customer_key"))

    # Dates
    order_date: Mapped[Optional[date]] = mapped_column(Date)
    shipping_date: Mapped[Optional[date]] = mapped_column(Date)
    due_date: Mapped[Optional[date]] = mapped_column(Date)

    # Measures
    sales_amount: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))
    quantity: Mapped[Optional[int]] = mapped_column(Integer)
    price: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))

    # Relationships
    customer: Mapped[Optional["DimCustomer"]] = relationship(back_populates="sales")
    product: Mapped[Optional["DimProduct"]] = relationship(back_populates="sales")

    __table_args__ = (
        Index("ix_fact_sales_order_number", "order_number"),
        Index("ix_fact_sales_order_date", "order_date"),
        Index("ix_fact_sales_customer", "customer_key"),
        Index("ix_fact_sales_product", "product_key"),
    )
