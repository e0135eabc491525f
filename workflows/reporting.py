"""
Prefect Workflow Orchestration - Warehouse Reports

Workflow that loads a warehouse snapshot and builds every report with:
- A single injected reference date
- Data quality checks before reporting
- Retries on warehouse reads
"""

from datetime import date
from typing import Optional

from prefect import flow, task, get_run_logger

from retail_analytics.analytics.clock import resolve_reference_date
from retail_analytics.analytics.runner import ReportRunner
from retail_analytics.analytics.schema import WarehouseSnapshot
from retail_analytics.config.logging import configure_logging
from retail_analytics.database import close_database, get_db, init_database, load_snapshot


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="load_warehouse_snapshot",
    description="Read customers, products and sales from the warehouse",
    retries=3,
    retry_delay_seconds=30,
)
def load_warehouse_snapshot(database_url: Optional[str] = None) -> WarehouseSnapshot:
    """Load the three warehouse relations in one transaction"""
    logger = get_run_logger()

    init_database(database_url)
    try:
        with get_db() as db:
            snapshot = load_snapshot(db)
    finally:
        close_database()

    logger.info(f"Loaded snapshot: {snapshot.row_counts}")
    return snapshot


@task(
    name="validate_snapshot",
    description="Run data quality checks on the snapshot",
)
def validate_snapshot(snapshot: WarehouseSnapshot) -> dict:
    """Validate data quality; raises on failed checks"""
    logger = get_run_logger()

    results = ReportRunner(validate=True).validate_snapshot(snapshot)

    summary = {
        relation: {
            "status": result.status.value,
            "passed_checks": result.passed_checks,
            "total_checks": result.total_checks,
        }
        for relation, result in results.items()
    }
    logger.info(f"Validation summary: {summary}")
    return summary


@task(
    name="build_reports",
    description="Compute and write every report",
)
def build_reports(
    snapshot: WarehouseSnapshot,
    reference_date: date,
    output_path: Optional[str] = None,
) -> dict:
    """Compute all reports and write them to the output directory"""
    logger = get_run_logger()

    runner = ReportRunner(output_path=output_path, write_output=True, validate=False)
    results = runner.run_all(snapshot, reference_date)

    logger.info(f"Built {len(results)} reports for {reference_date.isoformat()}")

    return {
        name: {
            "rows": result.rows,
            "duration_seconds": result.duration_seconds,
            "output_path": result.output_path,
        }
        for name, result in results.items()
    }


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="warehouse_reports",
    description="Build customer, product and trend reports from the warehouse",
)
def warehouse_reports(
    reference_date: Optional[date] = None,
    database_url: Optional[str] = None,
    output_path: Optional[str] = None,
) -> dict:
    """
    Warehouse reporting pipeline.

    Steps:
    1. Resolve the reference date (argument or REPORT_REFERENCE_DATE)
    2. Load the warehouse snapshot
    3. Validate data quality
    4. Build and write all reports
    """
    logger = get_run_logger()

    ref = resolve_reference_date(reference_date, "warehouse_reports")
    logger.info(f"Starting warehouse reports for {ref.isoformat()}")

    snapshot = load_warehouse_snapshot(database_url)
    validation = validate_snapshot(snapshot)
    reports = build_reports(snapshot, ref, output_path)

    return {
        "reference_date": ref.isoformat(),
        "validation": validation,
        "reports": reports,
        "status": "success",
    }


if __name__ == "__main__":
    configure_logging()
    warehouse_reports()
