"""Custom exceptions for portfolio_client.

Every failure of an analysis run maps to one of these classes so callers can
decide between re-editing input, pre-filling a suggestion, or showing the
service's message verbatim.
"""

import re
from dataclasses import dataclass


class PortfolioClientError(Exception):
    """Base exception for all portfolio_client errors."""

    pass


# ============================================================================
# Input errors
# ============================================================================


class ValidationError(PortfolioClientError):
    """Raised when form input fails local validation.

    Never sent to the service. Examples:
    - No ticker symbols entered
    - Missing start or end date
    - Start date not before end date
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


# ============================================================================
# Analysis run errors
# ============================================================================


class AnalysisError(PortfolioClientError):
    """Base class for failures of an analysis run after validation."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DateRangeMismatch(AnalysisError):
    """Raised when the tickers' price histories start on different dates.

    Recoverable: the caller pre-fills ``suggested_start_date`` and invites
    the user to resubmit. Never retried automatically.
    """

    def __init__(self, message: str, suggested_start_date: str):
        super().__init__(message)
        self.suggested_start_date = suggested_start_date


class ServiceError(AnalysisError):
    """Raised for any other service-side or transport failure.

    The message is surfaced to the user verbatim.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidTransitionError(PortfolioClientError):
    """Raised when an analysis run is moved through an illegal state change."""

    pass


# ============================================================================
# Non-fatal adaptation warnings
# ============================================================================


@dataclass(frozen=True)
class AdaptationWarning:
    """A missing or ambiguous response shape that was tolerated.

    The run still reaches READY; the affected section is empty or absent.
    """

    source: str  # e.g. "comparisonChart", "amount"
    message: str


# Matches "...different start dates... The latest start date is 2022-03-01."
_DATE_MISMATCH_PATTERN = re.compile(
    r"different start dates.*?The latest start date is\s+(?P<date>[^\s]+?)\.?\s*$",
    re.DOTALL,
)


def classify_failure(message: str | None, fallback: str, status_code: int | None = None) -> AnalysisError:
    """Turn a failed response's message into the matching AnalysisError.

    Args:
        message: ``message`` field of the error body, if any
        fallback: text to use when there is no message (e.g. "HTTP 500: Internal Server Error")
        status_code: HTTP status of the failed response

    Returns:
        DateRangeMismatch when the message names a latest start date,
        ServiceError otherwise.
    """
    if message:
        match = _DATE_MISMATCH_PATTERN.search(message)
        if match:
            return DateRangeMismatch(message, suggested_start_date=match.group("date"))
        return ServiceError(message, status_code=status_code)
    return ServiceError(fallback, status_code=status_code)
