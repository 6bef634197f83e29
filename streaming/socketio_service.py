import logging

from flask import current_app
from flask_socketio import SocketIO, emit

from db import session_scope
from history import get_latest

NAMESPACE = "/bolsa"
EVENT = "snapshot"

log = logging.getLogger("bolsa.socketio")

socketio = SocketIO(async_mode="threading")


def _latest_payload(session_factory):
    with session_scope(session_factory) as session:
        return [s.to_dict() for s in get_latest(session)]


@socketio.on("connect", namespace=NAMESPACE)
def on_connect():
    emit(EVENT, _latest_payload(current_app.extensions["bolsa"]["sessions"]))


def make_publisher(session_factory):
    """Build an Ingestor subscriber that broadcasts the fresh snapshot to every client."""

    def publish_latest(result):
        payload = _latest_payload(session_factory)
        socketio.emit(EVENT, payload, namespace=NAMESPACE)
        log.info(f"Broadcast {len(payload)} rows to {NAMESPACE} after {result.inserted} inserts")

    return publish_latest


def init_socketio(app, cors_origins="*"):
    socketio.init_app(app, cors_allowed_origins=cors_origins)
    return socketio
