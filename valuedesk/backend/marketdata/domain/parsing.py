# marketdata/domain/parsing.py
from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any


def to_int(x: Any) -> int | None:
    if x is None or x == "":
        return None
    try:
        return int(float(x))
    except (TypeError, ValueError, OverflowError):
        return None


def to_float(x: Any) -> float | None:
    if x is None or x == "":
        return None
    if isinstance(x, str):
        # "1,850,000" style amounts from the registry exports
        x = x.replace(",", "").strip()
    try:
        v = float(x)
    except (TypeError, ValueError, OverflowError):
        return None
    # json turns 1e400 / Infinity into inf; nothing downstream can use it
    return v if math.isfinite(v) else None


def to_str(x: Any) -> str | None:
    if x is None:
        return None
    s = str(x).strip()
    return s if s else None


def to_bool(x: Any) -> bool:
    if isinstance(x, bool):
        return x
    if isinstance(x, (int, float)):
        return x != 0
    if isinstance(x, str):
        return x.strip().lower() in ("1", "true", "yes", "y", "verified")
    return False


def to_date(x: Any) -> date | None:
    """Accepts date, datetime, 'YYYY-MM-DD' and full ISO timestamps."""
    if x is None or x == "":
        return None
    if isinstance(x, datetime):
        return x.date()
    if isinstance(x, date):
        return x
    s = str(x).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def get_first(payload: dict[str, Any], *keys: str) -> Any:
    """Return first non-empty key from payload."""
    for k in keys:
        v = payload.get(k)
        if v is None:
            continue
        if isinstance(v, str) and not v.strip():
            continue
        return v
    return None


def get_nested(payload: dict[str, Any], path: str) -> Any:
    """Tiny dot-path getter: 'buildingRights.far' or 'viewshed.viewQuality'."""
    cur: Any = payload
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
        if cur is None:
            return None
    return cur


def as_list_of_dicts(payload: Any, *envelope_keys: str) -> list[dict[str, Any]]:
    """
    Accept either:
      - list[dict]
      - {"<key>": list[dict]} for any of envelope_keys (CKAN "result.records", OData "value", ...)
    """
    if isinstance(payload, list):
        return [x for x in payload if isinstance(x, dict)]
    if isinstance(payload, dict):
        for key in envelope_keys:
            v = get_nested(payload, key)
            if isinstance(v, list):
                return [x for x in v if isinstance(x, dict)]
    return []
