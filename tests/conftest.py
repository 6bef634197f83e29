from datetime import datetime
from decimal import Decimal

import pytest

from db import init_db, make_engine, make_session_factory
from errors import FetchError
from model import PriceSnapshot

# Tuesday 2025-03-11 10:00 in Caracas (UTC-4).
NOW = datetime(2025, 3, 11, 14, 0)


class FakeClient:
    def __init__(self, records=None, error=None):
        self.records = records if records is not None else []
        self.error = error
        self.calls = 0

    def fetch_summary(self):
        self.calls += 1
        if self.error:
            raise FetchError(self.error)
        return list(self.records)


def record(symbol, price="10,50", name=None, **extra):
    item = {
        "COD_SIMB": symbol,
        "DESC_SIMB": name or f"{symbol} S.A.",
        "PRECIO": price,
        "VAR_ABS": "0,25",
        "VAR_REL": "2,44",
        "VOLUMEN": "1.234",
        "MONTO_EFECTIVO": "12.957,00",
        "HORA": "12:59",
        "ICON": f"https://example.com/{symbol}.png",
    }
    item.update(extra)
    return item


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def sessions(engine):
    factory = make_session_factory(engine)
    yield factory
    factory.remove()


@pytest.fixture
def add_snapshot(sessions):
    def _add(symbol, price, captured_at, **extra):
        session = sessions()
        snap = PriceSnapshot(symbol=symbol, name=symbol, price=Decimal(str(price)),
                             captured_at=captured_at, **extra)
        session.add(snap)
        session.commit()
        snap_id = snap.id
        session.close()
        return snap_id

    return _add


def count_rows(sessions):
    session = sessions()
    try:
        return session.query(PriceSnapshot).count()
    finally:
        session.close()
