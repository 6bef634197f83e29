# db.py
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool

from model import Base

log = logging.getLogger("bolsa.db")


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def make_engine(url: str):
    kwargs = {"future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            # One shared connection, otherwise every thread sees an empty database.
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(url, **kwargs)


def make_session_factory(engine):
    return scoped_session(sessionmaker(bind=engine, autoflush=False, autocommit=False))


def init_db(engine):
    Base.metadata.create_all(engine)
    log.info(f"Schema ready on {engine.url.render_as_string(hide_password=True)}")


@contextmanager
def session_scope(session_factory):
    """Yield a session and always close it; callers commit or roll back themselves."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
