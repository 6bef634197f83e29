# config.py
import os
from datetime import timedelta, timezone

from dotenv import load_dotenv

load_dotenv()

# Caracas has no DST; the exchange clock is a fixed UTC-4.
MARKET_TZ = timezone(timedelta(hours=-4), "VET")

DEFAULT_SOURCE_URL = (
    "https://www.bolsadecaracas.com/wp-admin/admin-ajax.php"
    "?action=resumenMercadoRentaVariable"
)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///bolsa.db")
    BOLSA_SOURCE_URL = os.getenv("BOLSA_SOURCE_URL", DEFAULT_SOURCE_URL)
    FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "15"))
    POLL_SECONDS = int(os.getenv("POLL_SECONDS", "300"))
    RETENTION_DAYS = int(os.getenv("RETENTION_DAYS", "30"))
    MARKET_OPEN = os.getenv("MARKET_OPEN", "09:00")
    MARKET_CLOSE = os.getenv("MARKET_CLOSE", "13:00")
    MARKET_GATE = _flag("MARKET_GATE", "1")
    SCHEDULER_ENABLED = _flag("SCHEDULER_ENABLED", "1")
    SYMBOL_NAMES_FILE = os.getenv("SYMBOL_NAMES_FILE", "")
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", "3000"))

    @classmethod
    def as_dict(cls) -> dict:
        return {k: getattr(cls, k) for k in dir(cls) if k.isupper()}
