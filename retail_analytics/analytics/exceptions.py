"""Exception classes raised by report operations."""

from typing import Optional, Sequence


class AnalyticsError(Exception):
    """Base class for report computation errors."""


class InvalidInputError(AnalyticsError, ValueError):
    """Raised when a supplied relation is malformed or missing required columns."""

    def __init__(
        self,
        relation: str,
        detail: str,
        columns: Optional[Sequence[str]] = None,
    ) -> None:
        self.relation = relation
        self.detail = detail
        self.columns = list(columns or [])
        super().__init__(f"Invalid {relation} relation: {detail}")


class ClockNotConfiguredError(AnalyticsError, RuntimeError):
    """Raised when a date-dependent report has no reference date."""

    def __init__(self, report: str, detail: Optional[str] = None) -> None:
        self.report = report
        self.detail = detail
        message = (
            f"{report} needs a reference date: pass reference_date "
            "or set REPORT_REFERENCE_DATE"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
