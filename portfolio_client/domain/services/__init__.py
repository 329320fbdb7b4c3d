"""Domain services: pure functions over domain entities."""

from portfolio_client.domain.services.weights import (
    AllocationTable,
    clamp_weight,
    edit,
    equal_share,
    equalize,
    normalize,
    rebuild,
    round_one_decimal,
)

__all__ = [
    "AllocationTable",
    "clamp_weight",
    "edit",
    "equal_share",
    "equalize",
    "normalize",
    "rebuild",
    "round_one_decimal",
]
