"""
Unit Tests - Warehouse Database
"""
import pytest
from sqlalchemy import func, insert, select

from retail_analytics.analytics.schema import CUSTOMER_SCHEMA, SALES_SCHEMA
from retail_analytics.database.connection import check_database_health
from retail_analytics.database import (
    Base,
    DimCustomer,
    DimProduct,
    FactSale,
    close_database,
    get_db,
    get_engine,
    init_database,
    load_snapshot,
)


@pytest.fixture
def seeded_session(db_session, sample_customers_df, sample_products_df, sample_sales_df):
    """Session over a warehouse loaded with the sample relations"""
    db_session.execute(insert(DimCustomer), sample_customers_df.to_dicts())
    db_session.execute(insert(DimProduct), sample_products_df.to_dicts())
    db_session.execute(insert(FactSale), sample_sales_df.to_dicts())
    db_session.flush()
    return db_session


@pytest.fixture
def memory_database():
    """Initialized module-level engine over in-memory SQLite"""
    engine = init_database("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    close_database()


class TestLoadSnapshot:
    """Tests for load_snapshot"""

    def test_row_counts(self, seeded_session):
        """Test every relation is read"""
        snapshot = load_snapshot(seeded_session)

        assert snapshot.row_counts == {"customers": 4, "products": 4, "sales": 6}

    def test_contract_dtypes(self, seeded_session):
        """Test frames carry the relation contract"""
        snapshot = load_snapshot(seeded_session)

        assert dict(snapshot.customers.schema) == CUSTOMER_SCHEMA
        assert dict(snapshot.sales.schema) == SALES_SCHEMA
        assert "sale_line_id" not in snapshot.sales.columns

    def test_values(self, seeded_session, sample_sales_df):
        """Test values survive the round trip through the warehouse"""
        snapshot = load_snapshot(seeded_session)

        assert sorted(snapshot.sales["sales_amount"].to_list()) == sorted(
            sample_sales_df["sales_amount"].to_list()
        )
        assert snapshot.products["cost"].to_list() == [20.0, 2000.0, 30.0, 14.0]

    def test_empty_warehouse(self, db_session):
        """Test an empty warehouse gives empty typed frames"""
        snapshot = load_snapshot(db_session)

        assert snapshot.row_counts == {"customers": 0, "products": 0, "sales": 0}
        assert dict(snapshot.sales.schema) == SALES_SCHEMA


class TestSessions:
    """Tests for transactional session handling"""

    def test_commit(self, memory_database, sample_customers_df):
        """Test a successful block is committed"""
        with get_db() as db:
            db.execute(insert(DimCustomer), sample_customers_df.to_dicts())

        with get_db() as db:
            count = db.execute(select(func.count()).select_from(DimCustomer)).scalar_one()

        assert count == 4

    def test_rollback_on_error(self, memory_database, sample_customers_df):
        """Test a failing block leaves no partial writes"""
        with pytest.raises(RuntimeError):
            with get_db() as db:
                db.execute(insert(DimCustomer), sample_customers_df.to_dicts())
                raise RuntimeError("report failed")

        with get_db() as db:
            count = db.execute(select(func.count()).select_from(DimCustomer)).scalar_one()

        assert count == 0

    def test_not_initialized(self):
        """Test sessions require an initialized engine"""
        close_database()

        with pytest.raises(RuntimeError):
            get_engine()

        with pytest.raises(RuntimeError):
            with get_db():
                pass

    def test_health_check(self, memory_database):
        """Test health check on a live engine"""
        health = check_database_health()

        assert health["status"] == "healthy"
        assert health["latency_ms"] >= 0
