"""Weight allocation domain service.

Pure functions over immutable ``WeightAllocation`` values. Each operation
takes the current allocation and returns a new one; nothing here reads or
writes shared state.

Values are percentages with one-decimal granularity. Rounding is half-up on
the decimal representation, matching the one-decimal figure shown to the
user (e.g. 100 / 3 -> 33.3, 100 / 6 -> 16.7).
"""

import math
from decimal import ROUND_HALF_UP, Decimal

from portfolio_client.domain.entities.allocation import WeightAllocation, WeightRow

MIN_WEIGHT = 0.0
MAX_WEIGHT = 100.0

_ONE_DECIMAL = Decimal("0.1")
_HUNDRED = Decimal(100)


def round_one_decimal(value: float) -> float:
    """Round half-up to one decimal place."""
    return float(Decimal(str(value)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def equal_share(count: int) -> float:
    """Equal percentage per row for ``count`` rows, rounded to one decimal."""
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    return round_one_decimal(100 / count)


def clamp_weight(value: float) -> float:
    """Clamp a percentage into [0, 100]. NaN and infinities read as 0."""
    if not math.isfinite(value):
        return MIN_WEIGHT
    return min(max(value, MIN_WEIGHT), MAX_WEIGHT)


def rebuild(tickers: list[str] | tuple[str, ...]) -> WeightAllocation:
    """Fresh equal-share allocation for a new ticker list.

    Prior edits are discarded; this is a reset, not a merge.

    Args:
        tickers: Current tickers in input order (duplicates kept)

    Returns:
        Empty allocation if ``tickers`` is empty, otherwise one row per ticker
        at ``round(100 / count, 1)``.
    """
    if not tickers:
        return WeightAllocation()
    share = equal_share(len(tickers))
    return WeightAllocation(rows=tuple(WeightRow(t, share) for t in tickers))


def edit(allocation: WeightAllocation, ticker: str, value: float) -> WeightAllocation:
    """Set one ticker's weight, clamped into [0, 100].

    Siblings are left untouched (no auto-rebalancing). Every row carrying
    ``ticker`` is updated, since duplicate tickers share one key.

    Raises:
        KeyError: if ``ticker`` has no row
    """
    if ticker not in allocation.tickers:
        raise KeyError(ticker)
    clamped = clamp_weight(value)
    return WeightAllocation(
        rows=tuple(
            WeightRow(row.ticker, clamped) if row.ticker == ticker else row
            for row in allocation.rows
        )
    )


def equalize(allocation: WeightAllocation) -> WeightAllocation:
    """Reset every row to the equal share. No-op for an empty allocation."""
    if not allocation.rows:
        return allocation
    return rebuild(allocation.tickers)


def _rescale(values: list[Decimal], total: Decimal) -> list[Decimal]:
    """Per-row ``round(v / total * 100, 1)``, then settle the total at 100.

    Per-row rounding can leave the sum off by up to 0.05 per row. The
    leftover is moved in 0.1 steps onto the rows whose rounding moved them
    furthest from their exact share (ties go to the earlier row).
    """
    exact = [v / total * _HUNDRED for v in values]
    rounded = [e.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP) for e in exact]

    steps = int((_HUNDRED - sum(rounded)) / _ONE_DECIMAL)
    if steps == 0:
        return rounded

    step = _ONE_DECIMAL if steps > 0 else -_ONE_DECIMAL
    # Short rows first when adding, rows rounded up furthest first when removing
    order = sorted(
        range(len(values)),
        key=lambda i: (rounded[i] - exact[i]) * (1 if steps > 0 else -1),
    )
    for i in order[: abs(steps)]:
        rounded[i] += step
    return rounded


def normalize(allocation: WeightAllocation) -> WeightAllocation:
    """Rescale rows proportionally so the total becomes 100.

    Each row is ``round(old_i / total * 100, 1)``, with any rounding leftover
    spread 0.1 at a time so the result always sums to exactly 100.0. A zero
    total delegates to ``equalize``. The output is its own normalization, so
    normalizing twice equals normalizing once.
    """
    if not allocation.rows:
        return allocation

    values = [Decimal(str(v)) for v in allocation.values]
    total = sum(values)
    if total == 0:
        return equalize(allocation)

    return WeightAllocation(
        rows=tuple(
            WeightRow(row.ticker, float(v))
            for row, v in zip(allocation.rows, _rescale(values, total))
        )
    )


class AllocationTable:
    """Holds the current allocation for a session.

    Each method swaps in the result of the matching pure operation, so the
    held value is always a complete allocation.
    """

    def __init__(self, tickers: list[str] | None = None):
        self._allocation = rebuild(tickers or [])

    @property
    def allocation(self) -> WeightAllocation:
        return self._allocation

    def set_tickers(self, tickers: list[str]) -> WeightAllocation:
        """Rebuild when the ticker list changed; keep edits otherwise."""
        if tuple(tickers) != self._allocation.tickers:
            self._allocation = rebuild(tickers)
        return self._allocation

    def edit(self, ticker: str, value: float) -> WeightAllocation:
        self._allocation = edit(self._allocation, ticker, value)
        return self._allocation

    def equalize(self) -> WeightAllocation:
        self._allocation = equalize(self._allocation)
        return self._allocation

    def normalize(self) -> WeightAllocation:
        self._allocation = normalize(self._allocation)
        return self._allocation

    def to_fractions(self) -> tuple[float, ...]:
        return self._allocation.to_fractions()
