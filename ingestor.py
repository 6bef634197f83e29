# ingestor.py
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Callable, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from config import MARKET_TZ
from db import session_scope
from errors import EmptyUpstreamError, FetchError, WriteError
from model import PriceSnapshot, utcnow
from normalize import to_row

log = logging.getLogger("bolsa.ingestor")

OK = "ok"
SKIPPED = "skipped"
BUSY = "busy"
FETCH_FAILED = "fetch-failed"
WRITE_FAILED = "write-failed"


@dataclass
class CycleResult:
    status: str
    inserted: int = 0
    pruned: int = 0
    error: Optional[str] = None
    captured_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.status == OK


def parse_hhmm(value: str) -> time:
    hh, mm = value.strip().split(":")
    return time(int(hh), int(mm))


def market_is_open(now_utc: datetime, open_at: time, close_at: time) -> bool:
    """Weekday and inside [open_at, close_at) on the exchange's local clock."""
    local = now_utc.replace(tzinfo=timezone.utc).astimezone(MARKET_TZ)
    if local.weekday() >= 5:
        return False
    return open_at <= local.time() < close_at


class Ingestor:
    """
    One scrape -> insert -> prune cycle per call.

    Every failure is logged and reported through CycleResult; nothing is
    raised to the scheduler. Storage is only touched once the upstream has
    returned a non-empty list, and the insert plus prune commit or roll back
    together.
    """

    def __init__(
        self,
        session_factory,
        client,
        retention_days: int = 30,
        market_open: str = "09:00",
        market_close: str = "13:00",
        gate_enabled: bool = True,
        symbol_names: Optional[Mapping[str, str]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.client = client
        self.retention_days = retention_days
        self.open_at = parse_hhmm(market_open)
        self.close_at = parse_hhmm(market_close)
        self.gate_enabled = gate_enabled
        self.symbol_names = dict(symbol_names or {})
        self.clock = clock
        self.publishers: List[Callable[[CycleResult], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, fn: Callable[[CycleResult], None]):
        self.publishers.append(fn)
        return fn

    def run_cycle(self, force: bool = False) -> CycleResult:
        if not self._lock.acquire(blocking=False):
            log.warning("Cycle already in flight, dropping trigger")
            return CycleResult(BUSY)
        try:
            result = self._run(force)
        finally:
            self._lock.release()

        if result.ok:
            self._publish(result)
        return result

    def _run(self, force: bool) -> CycleResult:
        now = self.clock()
        if not force and self.gate_enabled and not market_is_open(now, self.open_at, self.close_at):
            log.debug("Market closed, skipping cycle")
            return CycleResult(SKIPPED, captured_at=now)

        try:
            records = self.client.fetch_summary()
            if not records:
                raise EmptyUpstreamError("exchange returned zero records")
        except FetchError as e:
            log.error(f"Fetch failed, storage left untouched: {e}")
            return CycleResult(FETCH_FAILED, error=str(e), captured_at=now)

        try:
            inserted, pruned = self._write(records, now)
        except WriteError as e:
            log.error(f"Write failed, batch rolled back: {e}")
            return CycleResult(WRITE_FAILED, error=str(e), captured_at=now)

        log.info(f"Stored {inserted} snapshots, pruned {pruned} older than {self.retention_days}d")
        return CycleResult(OK, inserted=inserted, pruned=pruned, captured_at=now)

    def _write(self, records, now: datetime):
        cutoff = now - timedelta(days=self.retention_days)
        with session_scope(self.session_factory) as session:
            try:
                rows = [PriceSnapshot(captured_at=now, **to_row(item, self.symbol_names)) for item in records]
                session.add_all(rows)
                session.flush()
                pruned = (
                    session.query(PriceSnapshot)
                    .filter(PriceSnapshot.captured_at < cutoff)
                    .delete(synchronize_session=False)
                )
                session.commit()
            except (SQLAlchemyError, TypeError, AttributeError) as e:
                session.rollback()
                raise WriteError(str(e)) from e
        return len(rows), pruned

    def _publish(self, result: CycleResult):
        for fn in self.publishers:
            try:
                fn(result)
            except Exception as e:
                log.warning(f"Publisher {getattr(fn, '__name__', fn)} failed: {e}")
