from __future__ import annotations

from app.schemas.quote import Quote, QuoteAnalysis


def trend_label(change_percent: float) -> str:
    if change_percent > 3:
        return "Strong Bullish"
    if change_percent > 1:
        return "Bullish"
    if change_percent < -3:
        return "Strong Bearish"
    if change_percent < -1:
        return "Bearish"
    return "Neutral"


def volatility_label(high: float, low: float, price: float) -> str:
    if price <= 0:
        return "Low"
    day_range = (high - low) / price * 100
    if day_range > 5:
        return "High"
    if day_range > 2:
        return "Medium"
    return "Low"


def strength_label(volume: int, price: float, market_cap: float) -> str:
    """Turnover as a percentage of market cap."""
    if market_cap <= 0:
        return "Weak"
    turnover = volume * price / market_cap * 100
    if turnover > 0.1:
        return "Strong"
    if turnover > 0.05:
        return "Medium"
    return "Weak"


def analyze(quote: Quote) -> QuoteAnalysis:
    return QuoteAnalysis(
        trend=trend_label(quote.change_percent),
        volatility=volatility_label(quote.high, quote.low, quote.price),
        strength=strength_label(quote.volume, quote.price, quote.market_cap),
        support=round(quote.low * 0.98, 2),
        resistance=round(quote.high * 1.02, 2),
    )
