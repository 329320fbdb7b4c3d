"""Request model for the analysis service."""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class AnalysisRequest(BaseModel):
    """Body for POST /analyze/all, /analyze and /chart/* endpoints.

    Serialized with camelCase keys via ``to_payload()``. ``weights`` stays in
    the payload as ``null`` when unspecified (equal weight, service decides).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    tickers: list[str] = Field(
        ..., min_length=1, description="Uppercase ticker symbols, order preserved"
    )
    weights: list[float] | None = Field(
        None, description="Fractional weights aligned with tickers, or None"
    )
    start_date: str = Field(..., description="Analysis start (YYYY-MM-DD)")
    end_date: str = Field(..., description="Analysis end (YYYY-MM-DD)")
    include_dividends: bool = Field(
        False, description="Use total return including dividends"
    )
    initial_amount: float = Field(
        0.0, ge=0, description="Initial investment; 0 disables amount tracking"
    )

    @model_validator(mode="after")
    def _weights_align_with_tickers(self) -> "AnalysisRequest":
        if self.weights is not None and len(self.weights) != len(self.tickers):
            raise ValueError(
                f"weights has {len(self.weights)} entries for {len(self.tickers)} tickers"
            )
        return self

    @property
    def tracks_amount(self) -> bool:
        """Whether the service should produce an amount series."""
        return self.initial_amount > 0

    def to_payload(self) -> dict:
        """JSON body sent to the service."""
        return self.model_dump(by_alias=True)
