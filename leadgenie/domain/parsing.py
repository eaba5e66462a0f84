# leadgenie/domain/parsing.py
from __future__ import annotations

import math
import re
from typing import Any

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?|\.\d+")
_SUFFIX_RE = re.compile(r"^\s*\$?\s*(\d+(?:\.\d+)?)\s*([kKmM])\b")
_INT_RE = re.compile(r"-?\d+")


def clean_text(x: Any) -> str:
    """str() + whitespace collapse; None becomes ''."""
    if x is None:
        return ""
    return " ".join(str(x).split())


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
    """Tiny dot-path getter: 'address.line1' or 'hdpData.homeInfo.price'."""
    cur: Any = payload
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
        if cur is None:
            return None
    return cur


def unwrap_value(x: Any) -> Any:
    """Embedded search payloads wrap scalars as {"value": 123, "level": 1}."""
    if isinstance(x, dict) and "value" in x:
        return x.get("value")
    return x


def parse_price(raw: Any) -> float | None:
    """
    "$1,234,567" -> 1234567.0, "$2.5M" -> 2500000.0.
    Anything that is not a positive finite number -> None (never 0).
    """
    raw = unwrap_value(raw)
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        val = float(raw)
    else:
        s = str(raw).strip()
        if not s:
            return None

        m = _SUFFIX_RE.match(s)
        if m:
            mult = 1_000.0 if m.group(2).lower() == "k" else 1_000_000.0
            val = float(m.group(1)) * mult
        else:
            # first number only: "$300,000 - $350,000" -> 300000
            nm = _NUMBER_RE.search(s)
            if not nm:
                return None
            try:
                val = float(nm.group(0).replace(",", ""))
            except ValueError:
                return None

    if not math.isfinite(val) or val <= 0:
        return None
    return val


def parse_days_on_market(raw: Any) -> int:
    """Non-negative int; absent or unparsable -> 0."""
    raw = unwrap_value(raw)
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, (int, float)):
        if not math.isfinite(float(raw)):
            return 0
        return max(0, int(raw))

    m = _INT_RE.search(str(raw).replace(",", ""))
    if not m:
        return 0
    return max(0, int(m.group(0)))
