"""
Test Suite Configuration
"""
from datetime import date
from typing import Generator

import polars as pl
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from retail_analytics.config import Settings
from retail_analytics.database.models import Base


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def reference_date() -> date:
    """Fixed 'now' for age and recency metrics"""
    return date(2025, 6, 15)


@pytest.fixture
def sample_customers_df() -> pl.DataFrame:
    """Create sample customers DataFrame for testing"""
    return pl.DataFrame({
        "customer_key": [1, 2, 3, 4],
        "customer_id": [11001, 11002, 11003, 11004],
        "customer_number": ["AW00011001", "AW00011002", "AW00011003", "AW00011004"],
        "first_name": ["Jon", "Eugene", "Ruben", "Christy"],
        "last_name": ["Yang", "Huang", "Torres", "Zhu"],
        "birthdate": [date(1990, 4, 8), date(1965, 5, 14), date(2010, 8, 12), date(2000, 2, 15)],
        "gender": ["Male", "Male", "Male", "Female"],
        "country": ["Australia", "United States", "Australia", "Canada"],
        "create_date": [date(2022, 10, 6)] * 4,
    })


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Create sample products DataFrame for testing"""
    return pl.DataFrame({
        "product_key": [1, 2, 3, 4],
        "product_id": [201, 202, 203, 204],
        "product_name": ["Road Tire", "Road-150", "Team Jersey", "Sport Helmet"],
        "category": ["Accessories", "Bikes", "Clothing", "Accessories"],
        "subcategory": ["Tires and Tubes", "Road Bikes", "Jerseys", "Helmets"],
        "cost": [20.0, 2000.0, 30.0, 14.0],
        "start_date": [date(2020, 1, 1)] * 4,
    })


@pytest.fixture
def sample_sales_df() -> pl.DataFrame:
    """
    Create sample sales DataFrame for testing.

    Order SO1003 spans two lines; customer 4 and product 4 have no sales.
    """
    order_dates = [
        date(2024, 1, 15),
        date(2024, 3, 10),
        date(2023, 1, 5),
        date(2023, 1, 5),
        date(2024, 2, 20),
        date(2024, 6, 1),
    ]
    return pl.DataFrame({
        "order_number": ["SO1001", "SO1002", "SO1003", "SO1003", "SO1004", "SO1005"],
        "product_key": [1, 1, 2, 3, 2, 3],
        "customer_key": [1, 1, 2, 2, 2, 3],
        "order_date": order_dates,
        "shipping_date": order_dates,
        "due_date": order_dates,
        "sales_amount": [100.0, 150.0, 3000.0, 500.0, 2800.0, 40.0],
        "quantity": [2, 1, 1, 2, 1, 1],
        "price": [50.0, 150.0, 3000.0, 250.0, 2800.0, 40.0],
    })


def make_sales(rows) -> pl.DataFrame:
    """Build a sales frame from (order_number, product_key, customer_key, order_date, amount) tuples"""
    return pl.DataFrame({
        "order_number": [r[0] for r in rows],
        "product_key": [r[1] for r in rows],
        "customer_key": [r[2] for r in rows],
        "order_date": [r[3] for r in rows],
        "shipping_date": [r[3] for r in rows],
        "due_date": [r[3] for r in rows],
        "sales_amount": [float(r[4]) for r in rows],
        "quantity": [1 for _ in rows],
        "price": [float(r[4]) for r in rows],
    }, schema_overrides={"order_date": pl.Date, "shipping_date": pl.Date, "due_date": pl.Date})


@pytest.fixture
def sales_factory():
    """Factory for compact synthetic sales frames"""
    return make_sales


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """In-memory SQLite warehouse session"""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    with session_factory() as session:
        yield session
        session.rollback()

    engine.dispose()
