"""
Reference Date Resolution

Age and recency metrics are measured against an explicit reference date.
The system clock is never consulted.
"""

from datetime import date, datetime
from typing import Optional, Union

from retail_analytics.config import get_settings
from .exceptions import ClockNotConfiguredError

DateLike = Union[date, datetime, str]


def resolve_reference_date(
    reference_date: Optional[DateLike],
    report: str = "report",
) -> date:
    """
    Resolve the reference date for a report call.

    Args:
        reference_date: Injected date, datetime or ISO string
        report: Report name used in the error message

    Returns:
        The reference date as a ``date``

    Raises:
        ClockNotConfiguredError: If no date is injected or configured, or
            an injected string is not an ISO date
    """
    if reference_date is None:
        reference_date = get_settings().reports.reference_date

    if reference_date is None:
        raise ClockNotConfiguredError(report)

    if isinstance(reference_date, datetime):
        return reference_date.date()
    if isinstance(reference_date, str):
        try:
            return date.fromisoformat(reference_date)
        except ValueError as e:
            raise ClockNotConfiguredError(report, f"invalid date {reference_date!r}") from e
    return reference_date
