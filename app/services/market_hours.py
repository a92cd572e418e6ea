from __future__ import annotations

from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict

from app.schemas.quote import Market


class MarketSession(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    market: Market
    timezone: ZoneInfo
    timezone_label: str
    open_time: time
    close_time: time
    exchanges: tuple[str, ...]
    currency: str

    @property
    def trading_hours(self) -> str:
        return f"{self.open_time:%H:%M} - {self.close_time:%H:%M} {self.timezone_label}"


SESSIONS: dict[str, MarketSession] = {
    "indian": MarketSession(
        market="indian",
        timezone=ZoneInfo("Asia/Kolkata"),
        timezone_label="IST",
        open_time=time(9, 15),
        close_time=time(15, 30),
        exchanges=("NSE", "BSE"),
        currency="INR",
    ),
    "global": MarketSession(
        market="global",
        timezone=ZoneInfo("America/New_York"),
        timezone_label="ET",
        open_time=time(9, 30),
        close_time=time(16, 0),
        exchanges=("NYSE", "NASDAQ"),
        currency="USD",
    ),
}


def _local_now(session: MarketSession, now: datetime | None) -> datetime:
    current = now or datetime.now(session.timezone)
    if current.tzinfo is None:
        return current.replace(tzinfo=session.timezone)
    return current.astimezone(session.timezone)


def is_market_open(market: Market = "indian", now: datetime | None = None) -> bool:
    """Return whether the market's regular session is open (weekdays, open <= t < close)."""
    session = SESSIONS[market]
    local = _local_now(session, now)
    if local.weekday() >= 5:
        return False
    return session.open_time <= local.time() < session.close_time


def next_session_open(market: Market, now: datetime | None = None) -> datetime:
    """First session opening strictly after `now`, in the market's timezone."""
    session = SESSIONS[market]
    local = _local_now(session, now)
    candidate = datetime.combine(local.date(), session.open_time, tzinfo=session.timezone)
    if candidate <= local:
        candidate += timedelta(days=1)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


def open_home_market(now: datetime | None = None) -> Market | None:
    for market in ("indian", "global"):
        if is_market_open(market, now):
            return market
    return None
