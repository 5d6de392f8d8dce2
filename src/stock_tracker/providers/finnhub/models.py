"""Models for the Finnhub /quote endpoint."""
from pydantic import BaseModel, Field


class FinnhubQuotePayload(BaseModel):
    """Raw /quote response body.

    c: current price, d: change, dp: percent change, h/l/o: day high/low/open,
    pc: previous close, t: Unix timestamp (s), v: volume (not always present).
    """

    c: float = Field(gt=0)
    d: float | None = None
    dp: float | None = None
    h: float | None = Field(default=None, gt=0)
    l: float | None = Field(default=None, gt=0)  # noqa: E741
    o: float | None = Field(default=None, gt=0)
    pc: float | None = Field(default=None, gt=0)
    t: int = Field(gt=0)
    v: float | None = Field(default=None, ge=0)


class FinnhubQuoteParams(BaseModel):
    """Query params for /quote."""

    symbol: str
