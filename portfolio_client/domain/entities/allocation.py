"""Allocation-related domain entities."""

from dataclasses import dataclass
from enum import Enum

# |total - 100| below this reads as a full allocation
BALANCE_TOLERANCE = 0.1


class WeightStatus(str, Enum):
    """Advisory classification of the total weight. Never blocks submission."""

    BALANCED = "balanced"
    OVER = "over"
    UNDER = "under"


@dataclass(frozen=True)
class WeightRow:
    """Percentage weight (0-100) assigned to one ticker."""

    ticker: str
    value: float


@dataclass(frozen=True)
class WeightAllocation:
    """Per-ticker weights in ticker order.

    Immutable: every allocator operation returns a new allocation.
    """

    rows: tuple[WeightRow, ...] = ()

    @property
    def tickers(self) -> tuple[str, ...]:
        return tuple(row.ticker for row in self.rows)

    @property
    def values(self) -> tuple[float, ...]:
        return tuple(row.value for row in self.rows)

    @property
    def total(self) -> float:
        """Sum of all row values, in percent."""
        return sum(self.values)

    @property
    def status(self) -> WeightStatus:
        total = self.total
        if abs(total - 100) < BALANCE_TOLERANCE:
            return WeightStatus.BALANCED
        if total > 100:
            return WeightStatus.OVER
        return WeightStatus.UNDER

    @property
    def display_total(self) -> str:
        """Total formatted the way the weight panel shows it (e.g. '100.0%')."""
        return f"{self.total:.1f}%"

    def __len__(self) -> int:
        return len(self.rows)

    def get(self, ticker: str) -> float:
        """Value of the first row for ``ticker``.

        Raises:
            KeyError: if no row has this ticker
        """
        for row in self.rows:
            if row.ticker == ticker:
                return row.value
        raise KeyError(ticker)

    def to_fractions(self) -> tuple[float, ...]:
        """Row values divided by 100, in ticker order (empty when no rows)."""
        return tuple(row.value / 100 for row in self.rows)
