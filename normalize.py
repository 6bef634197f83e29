# normalize.py
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

log = logging.getLogger("bolsa.normalize")

# Share counts arrive es-VE formatted ("1.234" is 1234).
SOURCE_DECIMAL_MARK = ","


def parse_decimal(value: Any, decimal_mark: Optional[str] = None) -> Optional[Decimal]:
    """
    Parse a locale-formatted number into a Decimal.

    With `decimal_mark` set ("," for es-VE, "." for en-US) the other
    separator is always a thousands separator. Without it the mark is
    guessed: accepts "1.234,56", "1,234.56", "12,5", "-0.50", "3,2%" and
    plain numbers. When both separators appear, the last one is the decimal
    mark. A single kind of separator repeated more than once is a thousands
    separator. Returns None for empty or unparsable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            d = Decimal(str(value))
        except InvalidOperation:
            return None
        return d if d.is_finite() else None

    s = str(value).strip().replace("%", "").replace(" ", "").replace("\u00a0", "")
    if not s:
        return None

    has_dot, has_comma = "." in s, "," in s
    if decimal_mark == ",":
        s = s.replace(".", "").replace(",", ".")
    elif decimal_mark == ".":
        s = s.replace(",", "")
    elif has_dot and has_comma:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif has_comma:
        s = s.replace(",", "") if s.count(",") > 1 else s.replace(",", ".")
    elif has_dot and s.count(".") > 1:
        s = s.replace(".", "")

    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def coerce_days(raw: Any, default: int = 1) -> int:
    """Requested history range in days; anything that is not an integer >= 1 becomes `default`."""
    try:
        days = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return days if days >= 1 else default


def load_symbol_names(path: str) -> Dict[str, str]:
    if not path:
        return {}
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of symbol -> name")
    log.info(f"Loaded {len(data)} symbol name overrides from {path}")
    return {str(k): str(v) for k, v in data.items()}


def to_row(item: Mapping[str, Any], names: Mapping[str, str]) -> Dict[str, Any]:
    """Map one upstream record to PriceSnapshot column values."""
    symbol = item.get("COD_SIMB")
    if isinstance(symbol, str):
        symbol = symbol.strip()
    return {
        "symbol": symbol,
        "name": names.get(symbol) or item.get("DESC_SIMB"),
        "price": parse_decimal(item.get("PRECIO")),
        "abs_change": parse_decimal(item.get("VAR_ABS")),
        "rel_change": parse_decimal(item.get("VAR_REL")),
        "volume": parse_decimal(item.get("VOLUMEN"), decimal_mark=SOURCE_DECIMAL_MARK),
        "cash_amount": parse_decimal(item.get("MONTO_EFECTIVO")),
        "time_of_quote": item.get("HORA"),
        "icon_url": item.get("ICON") or None,
    }
