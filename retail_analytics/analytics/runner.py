"""
Report Runner

Orchestrates snapshot validation, report computation and report output
into a single run over one warehouse snapshot and one reference date.
"""

import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

import polars as pl
import structlog

from retail_analytics.config import get_settings
from retail_analytics.quality.validators import (
    ValidationResult,
    ValidationStatus,
    create_customers_validator,
    create_products_validator,
    create_sales_validator,
)
from .clock import DateLike, resolve_reference_date
from .customers import compute_customer_report, rank_customers, summarize_customer_segments
from .exceptions import InvalidInputError
from .overview import (
    compute_category_contribution,
    compute_date_range,
    compute_key_metrics,
)
from .products import compute_product_report, rank_products, segment_products_by_cost
from .schema import CUSTOMERS, PRODUCTS, SALES, WarehouseSnapshot
from .trends import compute_running_sales, compute_sales_over_time, compute_yearly_product_trend

logger = structlog.get_logger(__name__)


class ReportType(str, Enum):
    """Reports produced by a run"""
    CUSTOMERS = "customer_report"
    PRODUCTS = "product_report"
    CATEGORY_CONTRIBUTION = "category_contribution"
    RUNNING_SALES = "running_sales"
    YEARLY_PRODUCT_TREND = "yearly_product_trend"
    KEY_METRICS = "key_metrics"
    DATE_RANGE = "date_range"
    SALES_OVER_TIME = "sales_over_time"
    TOP_PRODUCTS = "top_products"
    BOTTOM_PRODUCTS = "bottom_products"
    TOP_CUSTOMERS = "top_customers"
    CUSTOMER_SEGMENTS = "customer_segments"
    PRODUCT_COST_RANGES = "product_cost_ranges"


ReportBuilder = Callable[[WarehouseSnapshot, date], pl.DataFrame]

REPORT_BUILDERS: Dict[ReportType, ReportBuilder] = {
    ReportType.CUSTOMERS: lambda s, ref: compute_customer_report(s.customers, s.sales, ref),
    ReportType.PRODUCTS: lambda s, ref: compute_product_report(s.products, s.sales, ref),
    ReportType.CATEGORY_CONTRIBUTION: lambda s, ref: compute_category_contribution(s.products, s.sales),
    ReportType.RUNNING_SALES: lambda s, ref: compute_running_sales(s.sales),
    ReportType.YEARLY_PRODUCT_TREND: lambda s, ref: compute_yearly_product_trend(s.sales, s.products),
    ReportType.KEY_METRICS: lambda s, ref: compute_key_metrics(s.customers, s.products, s.sales),
    ReportType.DATE_RANGE: lambda s, ref: compute_date_range(s.customers, s.sales, ref),
    ReportType.SALES_OVER_TIME: lambda s, ref: compute_sales_over_time(s.sales, "month"),
    ReportType.TOP_PRODUCTS: lambda s, ref: rank_products(s.products, s.sales, top_n=5),
    ReportType.BOTTOM_PRODUCTS: lambda s, ref: rank_products(s.products, s.sales, top_n=5, ascending=True),
    ReportType.TOP_CUSTOMERS: lambda s, ref: rank_customers(s.customers, s.sales, top_n=10),
    ReportType.CUSTOMER_SEGMENTS: lambda s, ref: summarize_customer_segments(
        compute_customer_report(s.customers, s.sales, ref)
    ),
    ReportType.PRODUCT_COST_RANGES: lambda s, ref: segment_products_by_cost(s.products),
}


@dataclass
class ReportResult:
    """Result of one report computation"""
    report_type: ReportType
    rows: int
    reference_date: date
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    data: pl.DataFrame = field(repr=False)
    output_path: Optional[str] = None


class ReportRunner:
    """
    Runs warehouse reports against a snapshot.

    Validates the snapshot, computes each report and optionally writes it
    to the report output directory. Any failure propagates: a run either
    returns every requested report or raises.

    Example:
        runner = ReportRunner(write_output=True)
        results = runner.run_all(snapshot, reference_date=date(2024, 6, 30))
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        write_output: Optional[bool] = None,
        validate: Optional[bool] = None,
        output_format: Optional[str] = None,
    ):
        settings = get_settings()
        self.output_path = Path(output_path or settings.reports.output_path)
        self.write_output = settings.reports.write_output if write_output is None else write_output
        self.validate = settings.data_quality.enable_data_quality_checks if validate is None else validate
        self.output_format = output_format or settings.reports.output_format
        self.strict_mode = settings.data_quality.strict_mode

    def _write_output(self, df: pl.DataFrame, name: str, reference_date: date) -> str:
        """Write a report file named after the report and reference date"""
        self.output_path.mkdir(parents=True, exist_ok=True)
        output_file = self.output_path / f"{name}_{reference_date.strftime('%Y%m%d')}.{self.output_format}"

        if self.output_format == "csv":
            df.write_csv(output_file)
        else:
            df.write_parquet(output_file)

        logger.info(f"Written {len(df)} rows to {output_file}")
        return str(output_file)

    def validate_snapshot(self, snapshot: WarehouseSnapshot) -> Dict[str, ValidationResult]:
        """
        Run data quality checks on every relation.

        Raises:
            InvalidInputError: If any relation fails its checks
        """
        validators = {
            CUSTOMERS: (create_customers_validator(self.strict_mode), snapshot.customers),
            PRODUCTS: (create_products_validator(self.strict_mode), snapshot.products),
            SALES: (
                create_sales_validator(snapshot.customers, snapshot.products, self.strict_mode),
                snapshot.sales,
            ),
        }

        results = {}
        for relation, (validator, df) in validators.items():
            result = validator.validate(df)
            results[relation] = result

            if result.status == ValidationStatus.FAILED:
                failed = [c.name for c in result.checks if not c.passed]
                raise InvalidInputError(relation, f"data quality checks failed: {failed}")

        return results

    def _compute(self, report_type: ReportType, snapshot: WarehouseSnapshot, ref: date) -> ReportResult:
        """Build one report frame without writing it"""
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()

        try:
            df = REPORT_BUILDERS[report_type](snapshot, ref)
        except Exception as e:
            logger.error(f"{report_type.value} failed", error=str(e), error_type=type(e).__name__)
            raise

        duration = time.perf_counter() - start

        logger.info(
            f"{report_type.value} complete",
            rows=len(df),
            duration_seconds=round(duration, 3),
        )

        return ReportResult(
            report_type=report_type,
            rows=len(df),
            reference_date=ref,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            duration_seconds=duration,
            data=df,
        )

    def _write_results(self, results: List[ReportResult]) -> None:
        """Write computed reports; only called once every report succeeded"""
        for result in results:
            result.output_path = self._write_output(
                result.data, result.report_type.value, result.reference_date
            )

    def run(
        self,
        report_type: ReportType,
        snapshot: WarehouseSnapshot,
        reference_date: Optional[DateLike] = None,
    ) -> ReportResult:
        """
        Compute a single report.

        Args:
            report_type: Report to build
            snapshot: Warehouse snapshot
            reference_date: "Now" for date-dependent metrics

        Returns:
            ReportResult with the report frame
        """
        report_type = ReportType(report_type)
        ref = resolve_reference_date(reference_date, report_type.value)

        result = self._compute(report_type, snapshot, ref)
        if self.write_output:
            self._write_results([result])
        return result

    def run_all(
        self,
        snapshot: WarehouseSnapshot,
        reference_date: Optional[DateLike] = None,
        reports: Optional[List[ReportType]] = None,
    ) -> Dict[str, ReportResult]:
        """
        Validate the snapshot and compute every requested report.

        Args:
            snapshot: Warehouse snapshot
            reference_date: "Now" for date-dependent metrics
            reports: Subset of reports, all reports by default

        Returns:
            Dictionary of report results keyed by report name
        """
        ref = resolve_reference_date(reference_date, "report run")

        # Every log line of the run carries its reference date
        with structlog.contextvars.bound_contextvars(reference_date=ref.isoformat()):
            logger.info("Starting report run", **snapshot.row_counts)

            if self.validate:
                self.validate_snapshot(snapshot)

            requested = list(ReportType) if reports is None else reports

            # Files are written only after every requested report is computed
            results = {}
            for report_type in requested:
                result = self._compute(ReportType(report_type), snapshot, ref)
                results[result.report_type.value] = result

            if self.write_output:
                self._write_results(list(results.values()))

        total_rows = sum(r.rows for r in results.values())
        total_duration = sum(r.duration_seconds for r in results.values())

        logger.info(
            f"Report run complete: {len(results)} reports, {total_rows} rows, "
            f"duration: {total_duration:.2f}s"
        )

        return results
