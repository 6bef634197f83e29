# app.py
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import click
from flask import Flask, current_app, jsonify
from flask_cors import CORS
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from db import init_db, make_engine, make_session_factory, session_scope
from errors import QueryError
from history import get_history, get_latest
from ingestor import Ingestor
from model import PriceSnapshot
from normalize import load_symbol_names
from scraper import BolsaClient
from streaming.socketio_service import init_socketio, make_publisher, socketio

log = logging.getLogger("bolsa")


def _bolsa():
    return current_app.extensions["bolsa"]


# ---------------- Scheduler ----------------
def start_scheduler(app: Flask) -> BackgroundScheduler:
    ingestor = app.extensions["bolsa"]["ingestor"]
    scheduler = BackgroundScheduler(daemon=True)
    scheduler.add_job(
        ingestor.run_cycle,
        "interval",
        seconds=app.config["POLL_SECONDS"],
        id="ingest_job",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    app.extensions["bolsa"]["scheduler"] = scheduler
    log.info(f"Polling every {app.config['POLL_SECONDS']}s")
    return scheduler


# ---------------- App factory ----------------
def create_app(overrides: Optional[Mapping[str, Any]] = None, client=None) -> Flask:
    app = Flask(__name__)
    app.config.from_mapping(Config.as_dict())
    if overrides:
        app.config.from_mapping(overrides)

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    engine = make_engine(app.config["DATABASE_URL"])
    init_db(engine)
    sessions = make_session_factory(engine)

    ingestor = Ingestor(
        sessions,
        client or BolsaClient(app.config["BOLSA_SOURCE_URL"], timeout=app.config["FETCH_TIMEOUT"]),
        retention_days=app.config["RETENTION_DAYS"],
        market_open=app.config["MARKET_OPEN"],
        market_close=app.config["MARKET_CLOSE"],
        gate_enabled=app.config["MARKET_GATE"],
        symbol_names=load_symbol_names(app.config["SYMBOL_NAMES_FILE"]),
    )
    ingestor.subscribe(make_publisher(sessions))

    app.extensions["bolsa"] = {
        "engine": engine,
        "sessions": sessions,
        "ingestor": ingestor,
        "scheduler": None,
    }

    @app.teardown_appcontext
    def remove_session(exc=None):
        sessions.remove()

    register_routes(app)
    register_commands(app)
    init_socketio(app, cors_origins=app.config["CORS_ORIGINS"])
    return app


# ---------------- REST APIs ----------------
def register_routes(app: Flask):
    @app.errorhandler(QueryError)
    def query_error(e):
        log.error(f"Query failed: {e}")
        return jsonify({"error": str(e)}), 500

    @app.get("/api/health")
    def health():
        scheduler = _bolsa()["scheduler"]
        return jsonify({
            "status": "ok",
            "time": datetime.now(timezone.utc).isoformat(),
            "scheduler": bool(scheduler and scheduler.running),
        })

    @app.get("/api/bolsa/actual")
    def actual():
        try:
            with session_scope(_bolsa()["sessions"]) as session:
                rows = [s.to_dict() for s in get_latest(session)]
        except SQLAlchemyError as e:
            raise QueryError(str(e)) from e
        return jsonify(rows)

    # The router decodes %2F before matching, so symbols may contain "/".
    @app.get("/api/bolsa/historial/<path:symbol>/<days>")
    def historial(symbol: str, days: str):
        try:
            with session_scope(_bolsa()["sessions"]) as session:
                points = [p.to_dict() for p in get_history(session, symbol, days)]
        except SQLAlchemyError as e:
            raise QueryError(str(e)) from e
        return jsonify(points)


# ---------------- CLI ----------------
def register_commands(app: Flask):
    @app.cli.command("init-db")
    def init_db_command():
        """Create the snapshot table if it does not exist."""
        init_db(_bolsa()["engine"])
        click.echo("Schema ready.")

    @app.cli.command("ingest")
    @click.option("--force", is_flag=True, help="Ignore the market-hours gate.")
    def ingest_command(force):
        """Run one scrape-and-store cycle now."""
        result = _bolsa()["ingestor"].run_cycle(force=force)
        click.echo(f"{result.status}: inserted={result.inserted} pruned={result.pruned}"
                   + (f" error={result.error}" if result.error else ""))

    @app.cli.command("clear-snapshots")
    @click.confirmation_option(prompt="Delete every stored snapshot?")
    def clear_command():
        """Delete all rows from the snapshot table."""
        with session_scope(_bolsa()["sessions"]) as session:
            deleted = session.query(PriceSnapshot).delete(synchronize_session=False)
            session.commit()
        click.echo(f"Deleted {deleted} snapshots.")


if __name__ == "__main__":
    app = create_app()
    # Prime the table on boot; the gate still applies.
    app.extensions["bolsa"]["ingestor"].run_cycle()
    if app.config["SCHEDULER_ENABLED"]:
        start_scheduler(app)
    socketio.run(app, host="0.0.0.0", port=app.config["PORT"], allow_unsafe_werkzeug=True)
