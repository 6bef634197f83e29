# history.py
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

import pandas as pd
from sqlalchemy import func, select

from config import MARKET_TZ
from model import PriceSnapshot, isoformat_utc, utcnow
from normalize import coerce_days

HISTORY_COLUMNS = ["id", "price", "abs_change", "time_of_quote", "captured_at"]


@dataclass
class HistoryPoint:
    price: Decimal
    time_of_quote: Optional[str]
    captured_at: datetime
    abs_change: Optional[Decimal] = None

    def to_dict(self) -> dict:
        return {
            "precio": float(self.price),
            "hora": self.time_of_quote,
            "fecha_registro": isoformat_utc(self.captured_at),
            "var_abs": float(self.abs_change) if self.abs_change is not None else None,
        }


def get_latest(session) -> List[PriceSnapshot]:
    """Newest row per symbol by captured_at; equal timestamps resolve to the highest id."""
    ranked = select(
        PriceSnapshot.id,
        func.row_number()
        .over(
            partition_by=PriceSnapshot.symbol,
            order_by=(PriceSnapshot.captured_at.desc(), PriceSnapshot.id.desc()),
        )
        .label("rn"),
    ).subquery()
    stmt = (
        select(PriceSnapshot)
        .join(ranked, PriceSnapshot.id == ranked.c.id)
        .where(ranked.c.rn == 1)
        .order_by(PriceSnapshot.symbol)
    )
    return list(session.execute(stmt).scalars().all())


def last_per_market_day(df: pd.DataFrame) -> pd.DataFrame:
    """Keep the closing row of each calendar day on the exchange clock. Expects rows sorted by (captured_at, id)."""
    if df.empty:
        return df
    local = pd.to_datetime(df["captured_at"]).dt.tz_localize("UTC").dt.tz_convert(MARKET_TZ)
    return df.groupby(local.dt.date, sort=True).tail(1)


def get_history(session, symbol: str, days, now: Optional[datetime] = None) -> List[HistoryPoint]:
    """
    Price history for one symbol over the last `days` days.

    A one-day range returns every snapshot in [now - 1d, now]. Longer ranges
    return the last snapshot of each market day in [now - days, now]. Output
    is ascending in time; unknown symbols yield an empty list.
    """
    days = coerce_days(days)
    now = now or utcnow()
    # Ranges reaching past datetime.min mean "everything".
    days = min(days, (now - datetime.min).days)
    since = now - timedelta(days=days)

    stmt = (
        select(
            PriceSnapshot.id,
            PriceSnapshot.price,
            PriceSnapshot.abs_change,
            PriceSnapshot.time_of_quote,
            PriceSnapshot.captured_at,
        )
        .where(
            PriceSnapshot.symbol == symbol,
            PriceSnapshot.captured_at >= since,
            PriceSnapshot.captured_at <= now,
        )
        .order_by(PriceSnapshot.captured_at.asc(), PriceSnapshot.id.asc())
    )
    rows = [tuple(r) for r in session.execute(stmt).all()]
    if not rows:
        return []

    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    if days > 1:
        df = last_per_market_day(df)

    return [
        HistoryPoint(
            price=r.price,
            time_of_quote=r.time_of_quote,
            captured_at=pd.Timestamp(r.captured_at).to_pydatetime(),
            abs_change=None if pd.isna(r.abs_change) else r.abs_change,
        )
        for r in df.itertuples(index=False)
    ]
