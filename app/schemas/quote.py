from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

Market = Literal["indian", "global"]


class Quote(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    symbol: str
    name: str
    sector: str
    exchange: str
    currency: str
    market: Market
    price: float
    change: float
    change_percent: float
    high: float
    low: float
    previous_close: float
    volume: int
    market_cap: int
    market_open: bool
    timestamp: datetime
    source: str
    mock: bool = False

    @field_validator("price", "change", "change_percent", "high", "low", "previous_close")
    @classmethod
    def round_price_fields(cls, value: float) -> float:
        return round(float(value), 2)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class QuoteAnalysis(BaseModel):
    trend: str
    volatility: str
    strength: str
    support: float
    resistance: float


class SearchResult(BaseModel):
    symbol: str
    name: str
    market: Market
    currency: str
    exchange: str
