from __future__ import annotations

from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from app.schemas.quote import Market, SearchResult

_CRORE = 10_000_000
_BILLION = 1_000_000_000

_SUFFIX_EXCHANGES = {".NS": "NSE", ".BO": "BSE"}
_NASDAQ_SYMBOLS = frozenset(
    {"AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "META", "NVDA", "NFLX", "ADBE", "CRM"}
)


class SymbolMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    sector: str
    market: Market
    exchange: str
    currency: str
    shares_outstanding: int
    baseline_price: float
    volatility: float


def _indian(symbol: str, name: str, sector: str, price: float, vol: float, shares_cr: float) -> SymbolMetadata:
    return SymbolMetadata(
        symbol=symbol,
        name=name,
        sector=sector,
        market="indian",
        exchange="NSE",
        currency="INR",
        shares_outstanding=int(shares_cr * _CRORE),
        baseline_price=price,
        volatility=vol,
    )


def _global(symbol: str, name: str, sector: str, price: float, vol: float, shares_bn: float) -> SymbolMetadata:
    return SymbolMetadata(
        symbol=symbol,
        name=name,
        sector=sector,
        market="global",
        exchange="NASDAQ" if symbol in _NASDAQ_SYMBOLS else "NYSE",
        currency="USD",
        shares_outstanding=int(shares_bn * _BILLION),
        baseline_price=price,
        volatility=vol,
    )


_TABLE = [
    _indian("RELIANCE", "Reliance Industries Ltd", "Oil & Gas", 2800, 80, 676),
    _indian("TCS", "Tata Consultancy Services", "IT Services", 3900, 120, 365),
    _indian("HDFCBANK", "HDFC Bank Limited", "Banking", 1650, 60, 547),
    _indian("INFY", "Infosys Limited", "IT Services", 1750, 90, 425),
    _indian("HINDUNILVR", "Hindustan Unilever Ltd", "FMCG", 2650, 100, 235),
    _indian("ITC", "ITC Limited", "FMCG", 450, 25, 1240),
    _indian("SBIN", "State Bank of India", "Banking", 650, 40, 891),
    _indian("BHARTIARTL", "Bharti Airtel Limited", "Telecom", 950, 50, 534),
    _indian("ASIANPAINT", "Asian Paints Limited", "Paints", 3200, 150, 96),
    _indian("MARUTI", "Maruti Suzuki India Ltd", "Automotive", 10500, 400, 30),
    _indian("ADANIGREEN", "Adani Green Energy Ltd", "Renewable Energy", 1200, 200, 154),
    _indian("TATASTEEL", "Tata Steel Limited", "Steel", 140, 30, 123),
    _indian("WIPRO", "Wipro Limited", "IT Services", 450, 35, 527),
    _indian("LT", "Larsen & Toubro Limited", "Engineering", 3400, 120, 140),
    _indian("HCLTECH", "HCL Technologies Limited", "IT Services", 1200, 80, 271),
    _indian("ICICIBANK", "ICICI Bank Limited", "Banking", 1000, 40, 700),
    _indian("KOTAKBANK", "Kotak Mahindra Bank", "Banking", 1750, 60, 199),
    _indian("BAJFINANCE", "Bajaj Finance Limited", "Financial Services", 7000, 250, 62),
    _global("AAPL", "Apple Inc.", "Technology", 175, 8, 15.7),
    _global("GOOGL", "Alphabet Inc.", "Technology", 142, 6, 12.9),
    _global("MSFT", "Microsoft Corporation", "Technology", 378, 12, 7.4),
    _global("AMZN", "Amazon.com Inc.", "E-commerce", 153, 7, 10.7),
    _global("TSLA", "Tesla Inc.", "Electric Vehicles", 248, 15, 3.2),
    _global("META", "Meta Platforms Inc.", "Social Media", 325, 12, 2.5),
    _global("NVDA", "NVIDIA Corporation", "Semiconductors", 465, 20, 2.5),
    _global("NFLX", "Netflix Inc.", "Entertainment", 445, 18, 0.44),
    _global("BRK.B", "Berkshire Hathaway Inc.", "Conglomerate", 350, 10, 1.5),
    _global("JPM", "JPMorgan Chase & Co.", "Banking", 145, 8, 2.9),
    _global("V", "Visa Inc.", "Financial Services", 245, 12, 2.1),
    _global("JNJ", "Johnson & Johnson", "Healthcare", 160, 6, 2.6),
    _global("WMT", "Walmart Inc.", "Retail", 155, 7, 2.7),
    _global("PG", "Procter & Gamble Co.", "Consumer Goods", 150, 5, 2.4),
    _global("UNH", "UnitedHealth Group Inc.", "Healthcare", 525, 15, 0.9),
    _global("DIS", "The Walt Disney Company", "Entertainment", 95, 10, 1.8),
    _global("ADBE", "Adobe Inc.", "Software", 525, 18, 0.46),
    _global("CRM", "Salesforce Inc.", "Software", 210, 15, 0.98),
]

SYMBOL_TABLE: MappingProxyType[str, SymbolMetadata] = MappingProxyType({m.symbol: m for m in _TABLE})

INDIAN_SYMBOLS: tuple[str, ...] = tuple(m.symbol for m in _TABLE if m.market == "indian")
GLOBAL_SYMBOLS: tuple[str, ...] = tuple(m.symbol for m in _TABLE if m.market == "global")


def split_symbol(symbol: str) -> tuple[str, str | None]:
    """Return (canonical symbol, exchange implied by suffix or None)."""
    value = symbol.strip().upper()
    for suffix, exchange in _SUFFIX_EXCHANGES.items():
        if value.endswith(suffix):
            return value[: -len(suffix)], exchange
    return value, None


def normalize_symbol(symbol: str) -> str:
    return split_symbol(symbol)[0]


def lookup(symbol: str) -> SymbolMetadata:
    """Metadata for a symbol; unknown symbols get per-market defaults."""
    canonical, suffix_exchange = split_symbol(symbol)
    known = SYMBOL_TABLE.get(canonical)
    if known is not None:
        if suffix_exchange and suffix_exchange != known.exchange:
            return known.model_copy(update={"exchange": suffix_exchange})
        return known

    if suffix_exchange:
        return SymbolMetadata(
            symbol=canonical,
            name=canonical,
            sector="Unknown",
            market="indian",
            exchange=suffix_exchange,
            currency="INR",
            shares_outstanding=100 * _CRORE,
            baseline_price=1000,
            volatility=50,
        )
    return SymbolMetadata(
        symbol=canonical,
        name=canonical,
        sector="Unknown",
        market="global",
        exchange="NASDAQ" if canonical in _NASDAQ_SYMBOLS else "NYSE",
        currency="USD",
        shares_outstanding=_BILLION,
        baseline_price=100,
        volatility=5,
    )


def symbols_for_market(market: Market) -> tuple[str, ...]:
    return INDIAN_SYMBOLS if market == "indian" else GLOBAL_SYMBOLS


def search_symbols(query: str, market: Market | None = None, limit: int = 10) -> list[SearchResult]:
    needle = query.strip().lower()
    if market is None:
        candidates = INDIAN_SYMBOLS + GLOBAL_SYMBOLS
    else:
        candidates = symbols_for_market(market)

    out: list[SearchResult] = []
    for symbol in candidates:
        meta = SYMBOL_TABLE[symbol]
        if needle not in symbol.lower() and needle not in meta.name.lower():
            continue
        out.append(
            SearchResult(
                symbol=symbol,
                name=meta.name,
                market=meta.market,
                currency=meta.currency,
                exchange=meta.exchange,
            )
        )
        if len(out) >= limit:
            break
    return out
