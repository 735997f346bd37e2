"""Date parsing utilities."""

from datetime import date, timedelta

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from balancekit.domain.errors import ValidationError


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Accepts "today", "yesterday", "tomorrow" and anything dateutil
    understands ("2024-01-15", "Jan 15 2024", ...).

    Raises:
        ValidationError: If the string is not a date
    """
    text = date_str.strip().lower()
    today = date.today()

    shortcuts = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in shortcuts:
        return shortcuts[text]

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValidationError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str) -> tuple[date, date]:
    """Return the inclusive (start, end) dates of a named period.

    Supported periods: this-month, last-month, this-year, last-year,
    last-30-days, last-90-days. Every period fits a mass query window.

    Raises:
        ValidationError: If the period is unknown
    """
    period = period.strip().lower()
    today = date.today()
    first_of_month = today.replace(day=1)
    first_of_year = today.replace(month=1, day=1)

    if period == "this-month":
        return first_of_month, today
    if period == "last-month":
        return first_of_month - relativedelta(months=1), first_of_month - timedelta(days=1)
    if period == "this-year":
        return first_of_year, today
    if period == "last-year":
        return first_of_year - relativedelta(years=1), first_of_year - timedelta(days=1)
    if period == "last-30-days":
        return today - timedelta(days=30), today
    if period == "last-90-days":
        return today - timedelta(days=90), today

    raise ValidationError(
        f"Unknown period '{period}'. Supported periods: this-month, last-month, "
        "this-year, last-year, last-30-days, last-90-days"
    )
