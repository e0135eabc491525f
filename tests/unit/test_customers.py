"""
Unit Tests - Customer Reports
"""
from datetime import date, datetime

import polars as pl
import pytest

from retail_analytics.analytics.customers import (
    CUSTOMER_REPORT_COLUMNS,
    compute_customer_report,
    rank_customers,
    summarize_customer_segments,
)
from retail_analytics.analytics.exceptions import ClockNotConfiguredError, InvalidInputError
from retail_analytics.config import Settings
from retail_analytics.config.settings import SegmentationSettings


def _by_key(report: pl.DataFrame) -> dict:
    return {row["customer_key"]: row for row in report.to_dicts()}


class TestCustomerReport:
    """Tests for compute_customer_report"""

    def test_two_order_example(self, sample_customers_df, reference_date):
        """Test the documented two-order customer example"""
        sales = pl.DataFrame({
            "order_number": ["1001", "1002"],
            "product_key": [1, 1],
            "customer_key": [1, 1],
            "order_date": ["2024-01-15", "2024-03-10"],
            "shipping_date": [None, None],
            "due_date": [None, None],
            "sales_amount": [100, 150],
            "quantity": [2, 1],
            "price": [50, 150],
        })

        report = compute_customer_report(sample_customers_df, sales, reference_date)
        row = report.to_dicts()[0]

        assert len(report) == 1
        assert row["total_sales"] == 250
        assert row["total_orders"] == 2
        assert row["lifespan_months"] == 2
        assert row["average_order_value"] == pytest.approx(125.00)

    def test_report_columns(self, sample_customers_df, sample_sales_df, reference_date):
        """Test output columns and ordering"""
        report = compute_customer_report(sample_customers_df, sample_sales_df, reference_date)

        assert report.columns == CUSTOMER_REPORT_COLUMNS
        assert report["customer_key"].to_list() == [1, 2, 3]

    def test_customer_without_sales_excluded(self, sample_customers_df, sample_sales_df, reference_date):
        """Test that customers with no orders are absent"""
        report = compute_customer_report(sample_customers_df, sample_sales_df, reference_date)

        assert 4 not in report["customer_key"].to_list()

    def test_distinct_order_count(self, sample_customers_df, sample_sales_df, reference_date):
        """Test total_orders counts distinct order numbers, not lines"""
        rows = _by_key(compute_customer_report(sample_customers_df, sample_sales_df, reference_date))

        # Customer 2 has three lines across two orders
        assert rows[2]["total_orders"] == 2
        assert rows[2]["total_quantity"] == 4
        assert rows[2]["total_products"] == 2

    def test_metrics(self, sample_customers_df, sample_sales_df, reference_date):
        """Test derived metrics for a long-lived customer"""
        rows = _by_key(compute_customer_report(sample_customers_df, sample_sales_df, reference_date))
        vip = rows[2]

        assert vip["customer_name"] == "Eugene Huang"
        assert vip["customer_number"] == "AW00011002"
        assert vip["total_sales"] == pytest.approx(6300.0)
        assert vip["lifespan_months"] == 13
        assert vip["last_order_date"] == date(2024, 2, 20)
        assert vip["recency_months"] == 16
        assert vip["average_order_value"] == pytest.approx(3150.0)
        assert vip["average_monthly_spend"] == pytest.approx(484.62)
        assert vip["age"] == 60
        assert vip["segment"] == "VIP"

    def test_zero_lifespan_monthly_spend(self, sample_customers_df, sample_sales_df, reference_date):
        """Test monthly spend equals total sales when lifespan is 0"""
        rows = _by_key(compute_customer_report(sample_customers_df, sample_sales_df, reference_date))

        assert rows[3]["lifespan_months"] == 0
        assert rows[3]["average_monthly_spend"] == rows[3]["total_sales"]

    def test_zero_sales_order_value(self, sample_customers_df, sales_factory, reference_date):
        """Test average order value is 0 when total sales is 0"""
        sales = sales_factory([
            ("SO1", 1, 1, date(2024, 1, 1), 0),
            ("SO2", 1, 1, date(2024, 5, 1), 0),
        ])

        row = compute_customer_report(sample_customers_df, sales, reference_date).to_dicts()[0]

        assert row["average_order_value"] == 0
        assert row["average_monthly_spend"] == 0

    def test_regular_segment(self, sample_customers_df, sales_factory, reference_date):
        """Test long-lived customer at exactly the VIP threshold is Regular"""
        sales = sales_factory([
            ("SO1", 1, 1, date(2023, 1, 1), 2500),
            ("SO2", 1, 1, date(2024, 1, 1), 2500),
        ])

        row = compute_customer_report(sample_customers_df, sales, reference_date).to_dicts()[0]

        assert row["lifespan_months"] == 12
        assert row["total_sales"] == 5000
        assert row["segment"] == "Regular"

    def test_segments_exhaustive(self, sample_customers_df, sales_factory, reference_date):
        """Test every customer gets exactly one of the three segments"""
        sales = sales_factory([
            ("SO1", 1, 1, date(2022, 1, 1), 6000),
            ("SO2", 1, 1, date(2023, 6, 1), 10),
            ("SO3", 1, 2, date(2023, 1, 1), 100),
            ("SO4", 1, 2, date(2024, 1, 1), 100),
            ("SO5", 1, 3, date(2024, 1, 1), 9000),
            ("SO6", 1, 3, date(2024, 11, 1), 9000),
        ])

        report = compute_customer_report(sample_customers_df, sales, reference_date)
        segments = dict(zip(report["customer_key"].to_list(), report["segment"].to_list()))

        assert segments == {1: "VIP", 2: "Regular", 3: "New"}

    def test_custom_thresholds(self, sample_customers_df, sample_sales_df, reference_date):
        """Test segmentation thresholds can be overridden"""
        thresholds = SegmentationSettings(vip_sales_threshold=10000)

        rows = _by_key(compute_customer_report(
            sample_customers_df, sample_sales_df, reference_date, thresholds=thresholds
        ))

        assert rows[2]["segment"] == "Regular"

    def test_legacy_age_groups(self, sales_factory, reference_date):
        """Test legacy buckets leave 20, 30 and 40 in '50 and above'"""
        ages = [19, 20, 25, 30, 35, 40, 45, 50]
        customers = pl.DataFrame({
            "customer_key": list(range(1, len(ages) + 1)),
            "customer_id": list(range(1, len(ages) + 1)),
            "customer_number": [f"C{i}" for i in range(len(ages))],
            "first_name": ["A"] * len(ages),
            "last_name": ["B"] * len(ages),
            "birthdate": [date(reference_date.year - age, 1, 1) for age in ages],
            "gender": ["n/a"] * len(ages),
            "country": ["Germany"] * len(ages),
            "create_date": [date(2020, 1, 1)] * len(ages),
        })
        sales = sales_factory([
            (f"SO{i}", 1, i, date(2024, 1, 1), 10) for i in range(1, len(ages) + 1)
        ])

        report = compute_customer_report(customers, sales, reference_date, legacy_age_groups=True)

        assert report["age"].to_list() == ages
        assert report["age_group"].to_list() == [
            "Under 20", "50 and above", "21-29", "50 and above",
            "31-39", "50 and above", "41-49", "50 and above",
        ]

        report = compute_customer_report(customers, sales, reference_date, legacy_age_groups=False)

        assert report["age_group"].to_list() == [
            "Under 20", "20-29", "20-29", "30-39",
            "30-39", "40-49", "40-49", "50 and above",
        ]

    def test_unknown_birthdate(self, sample_customers_df, sample_sales_df, reference_date):
        """Test customers without birthdate"""
        customers = sample_customers_df.with_columns(
            pl.when(pl.col("customer_key") == 1)
            .then(None)
            .otherwise(pl.col("birthdate"))
            .alias("birthdate")
        )

        legacy = _by_key(compute_customer_report(customers, sample_sales_df, reference_date, legacy_age_groups=True))
        contiguous = _by_key(compute_customer_report(customers, sample_sales_df, reference_date, legacy_age_groups=False))

        assert legacy[1]["age"] is None
        assert legacy[1]["age_group"] == "50 and above"
        assert contiguous[1]["age_group"] is None

    def test_unmatched_customer_key(self, sample_customers_df, sales_factory, reference_date):
        """Test sales for unknown customers surface with null attributes"""
        sales = sales_factory([("SO1", 1, 99, date(2024, 1, 1), 10)])

        row = compute_customer_report(sample_customers_df, sales, reference_date).to_dicts()[0]

        assert row["customer_key"] == 99
        assert row["customer_name"] is None
        assert row["total_sales"] == 10

    def test_undated_sales_ignored(self, sample_customers_df, sample_sales_df, reference_date):
        """Test sales lines without order date are dropped"""
        undated = pl.DataFrame({
            "order_number": ["SO9999"],
            "product_key": [1],
            "customer_key": [1],
            "order_date": [None],
            "shipping_date": [None],
            "due_date": [None],
            "sales_amount": [999.0],
            "quantity": [1],
            "price": [999.0],
        })
        sales = pl.concat([sample_sales_df, undated], how="vertical_relaxed")

        rows = _by_key(compute_customer_report(sample_customers_df, sales, reference_date))

        assert rows[1]["total_sales"] == 250

    def test_empty_sales(self, sample_customers_df, reference_date):
        """Test empty input yields an empty report"""
        report = compute_customer_report(sample_customers_df, [], reference_date)

        assert len(report) == 0
        assert report.columns == CUSTOMER_REPORT_COLUMNS

    def test_idempotent(self, sample_customers_df, sample_sales_df, reference_date):
        """Test repeated runs give identical output"""
        first = compute_customer_report(sample_customers_df, sample_sales_df, reference_date)
        second = compute_customer_report(sample_customers_df, sample_sales_df, reference_date)

        assert first.equals(second)

    def test_datetime_reference(self, sample_customers_df, sample_sales_df, reference_date):
        """Test datetime and ISO string reference dates"""
        from_datetime = compute_customer_report(
            sample_customers_df, sample_sales_df, datetime(2025, 6, 15, 23, 59)
        )
        from_string = compute_customer_report(sample_customers_df, sample_sales_df, "2025-06-15")

        assert from_datetime.equals(from_string)

    def test_missing_column(self, sample_customers_df, sample_sales_df, reference_date):
        """Test missing required column raises"""
        with pytest.raises(InvalidInputError) as exc_info:
            compute_customer_report(
                sample_customers_df, sample_sales_df.drop("order_number"), reference_date
            )

        assert exc_info.value.relation == "sales"
        assert exc_info.value.columns == ["order_number"]

    def test_missing_clock(self, sample_customers_df, sample_sales_df, monkeypatch):
        """Test report refuses to run without a reference date"""
        monkeypatch.delenv("REPORT_REFERENCE_DATE", raising=False)
        monkeypatch.setattr(
            "retail_analytics.analytics.clock.get_settings",
            lambda: Settings(_env_file=None),
        )

        with pytest.raises(ClockNotConfiguredError):
            compute_customer_report(sample_customers_df, sample_sales_df)

    def test_configured_clock(self, sample_customers_df, sample_sales_df, reference_date, monkeypatch):
        """Test reference date falls back to configuration"""
        monkeypatch.setenv("REPORT_REFERENCE_DATE", "2025-06-15")
        monkeypatch.setattr(
            "retail_analytics.analytics.clock.get_settings",
            lambda: Settings(_env_file=None),
        )

        configured = compute_customer_report(sample_customers_df, sample_sales_df)
        injected = compute_customer_report(sample_customers_df, sample_sales_df, reference_date)

        assert configured.equals(injected)


class TestCustomerSummaries:
    """Tests for customer segment summary and ranking"""

    def test_summarize_segments(self, sample_customers_df, sample_sales_df, reference_date):
        """Test segment counts"""
        report = compute_customer_report(sample_customers_df, sample_sales_df, reference_date)
        summary = summarize_customer_segments(report)

        assert summary.to_dicts() == [
            {"segment": "New", "total_customers": 2},
            {"segment": "VIP", "total_customers": 1},
        ]

    def test_rank_by_sales(self, sample_customers_df, sample_sales_df):
        """Test top customers by revenue"""
        ranked = rank_customers(sample_customers_df, sample_sales_df, top_n=2)

        assert ranked["customer_name"].to_list() == ["Eugene Huang", "Jon Yang"]
        assert ranked["rank"].to_list() == [1, 2]

    def test_rank_fewest_orders(self, sample_customers_df, sample_sales_df):
        """Test bottom customers by order count"""
        ranked = rank_customers(
            sample_customers_df, sample_sales_df, top_n=1, by="total_orders", ascending=True
        )

        assert ranked["customer_key"].to_list() == [3]

    def test_rank_invalid_measure(self, sample_customers_df, sample_sales_df):
        """Test ranking by an unknown measure"""
        with pytest.raises(ValueError):
            rank_customers(sample_customers_df, sample_sales_df, by="age")
