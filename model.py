# model.py
from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Index

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC wall clock; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _num(value):
    return float(value) if value is not None else None


def isoformat_utc(ts: datetime) -> str:
    return ts.replace(tzinfo=timezone.utc).isoformat()


class PriceSnapshot(Base):
    __tablename__ = "precios"
    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(32), index=True, nullable=False)
    name = Column(String(255))
    price = Column(Numeric(20, 4), nullable=False)
    abs_change = Column(Numeric(20, 4))
    rel_change = Column(Numeric(20, 4))
    volume = Column(Numeric(24, 2))
    cash_amount = Column(Numeric(24, 2))
    time_of_quote = Column(String(32))
    icon_url = Column(String(512))
    captured_at = Column(DateTime, index=True, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_precios_symbol_captured_at", "symbol", "captured_at"),
    )

    def to_dict(self) -> dict:
        # Keys follow the dashboard's wire format.
        return {
            "id": self.id,
            "symbol": self.symbol,
            "nombre": self.name,
            "precio": _num(self.price),
            "var_abs": _num(self.abs_change),
            "var_rel": _num(self.rel_change),
            "volumen": _num(self.volume),
            "monto_efectivo": _num(self.cash_amount),
            "hora": self.time_of_quote,
            "icon": self.icon_url,
            "fecha_registro": isoformat_utc(self.captured_at),
        }

    def __repr__(self):
        return f"<PriceSnapshot {self.symbol} {self.price} @ {self.captured_at}>"
