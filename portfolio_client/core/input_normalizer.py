"""Parse and validate raw form input into an AnalysisRequest."""

import logging
import math
import re
from dataclasses import dataclass, replace
from datetime import date

from dateutil import parser as date_parser

from portfolio_client.domain.entities.allocation import WeightAllocation
from portfolio_client.exceptions import DateRangeMismatch, ValidationError
from portfolio_client.models.request import AnalysisRequest

logger = logging.getLogger(__name__)

_YEAR_MONTH = re.compile(r"^\d{4}-\d{2}$")

# User-facing validation messages
MSG_NO_TICKERS = "Enter at least one ticker symbol."
MSG_MISSING_DATES = "Enter both a start date and an end date."
MSG_START_NOT_BEFORE_END = "The start date must be earlier than the end date."
MSG_WEIGHTS_MISMATCH = "Weights do not match the current ticker list."


@dataclass(frozen=True)
class RawFormInput:
    """Form values exactly as the user typed them."""

    tickers: str
    start_date: str = ""
    end_date: str = ""
    include_dividends: bool = False
    initial_amount: str | float | None = None


def parse_tickers(text: str) -> list[str]:
    """Split comma-separated symbols.

    Whitespace is stripped, symbols are uppercased and empty tokens dropped.
    Order is preserved and duplicates are kept.
    """
    return [t.strip().upper() for t in (text or "").split(",") if t.strip()]


def normalize_month_input(value: str) -> str:
    """Turn YYYY-MM into YYYY-MM-01; return anything else unchanged."""
    value = (value or "").strip()
    return f"{value}-01" if _YEAR_MONTH.match(value) else value


def parse_initial_amount(value: str | float | None) -> float:
    """Parse the initial investment.

    Missing, unparsable, negative or non-finite input yields 0.0, which
    disables amount tracking.
    """
    if value is None:
        return 0.0
    try:
        amount = float(str(value).strip())
    except ValueError:
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def _parse_for_comparison(value: str) -> date | None:
    """Best-effort calendar date for range checks; None if unparsable."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return date_parser.parse(value).date()
    except (ValueError, OverflowError):
        return None


def validate_date_range(start_date: str, end_date: str) -> None:
    """Require both dates, with start strictly before end.

    Raises:
        ValidationError: on a missing date, an unparsable date or a start
            date that is not earlier than the end date
    """
    if not start_date or not end_date:
        raise ValidationError(MSG_MISSING_DATES, field="dates")

    start = _parse_for_comparison(start_date)
    end = _parse_for_comparison(end_date)
    if start is None or end is None or start >= end:
        raise ValidationError(MSG_START_NOT_BEFORE_END, field="start_date")


def normalize_input(
    raw: RawFormInput, allocation: WeightAllocation | None = None
) -> AnalysisRequest:
    """Build a validated AnalysisRequest from raw form input.

    Checks run in order and stop at the first failure: tickers present,
    both dates present, start before end.

    Args:
        raw: Form values as typed
        allocation: Current weight allocation; None or empty means the
            service decides (equal weight)

    Returns:
        AnalysisRequest ready to submit

    Raises:
        ValidationError: if any check fails (nothing is sent to the service)
    """
    tickers = parse_tickers(raw.tickers)
    if not tickers:
        raise ValidationError(MSG_NO_TICKERS, field="tickers")

    start_date = normalize_month_input(raw.start_date)
    end_date = normalize_month_input(raw.end_date)
    validate_date_range(start_date, end_date)

    weights: list[float] | None = None
    if allocation is not None and len(allocation) > 0:
        if list(allocation.tickers) != tickers:
            raise ValidationError(MSG_WEIGHTS_MISMATCH, field="weights")
        weights = list(allocation.to_fractions())

    request = AnalysisRequest(
        tickers=tickers,
        weights=weights,
        start_date=start_date,
        end_date=end_date,
        include_dividends=raw.include_dividends,
        initial_amount=parse_initial_amount(raw.initial_amount),
    )
    logger.debug(
        f"Normalized request: {len(tickers)} tickers, "
        f"{start_date} to {end_date}, weights={'set' if weights else 'service default'}"
    )
    return request


def apply_suggested_start(raw: RawFormInput, mismatch: DateRangeMismatch) -> RawFormInput:
    """Pre-fill the start date the service suggested after a date-range mismatch."""
    return replace(raw, start_date=mismatch.suggested_start_date)
