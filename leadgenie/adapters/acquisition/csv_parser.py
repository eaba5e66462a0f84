# leadgenie/adapters/acquisition/csv_parser.py
from __future__ import annotations

import csv
import io
import logging
import re

log = logging.getLogger(__name__)

# non-CSV lines some exports put above the header
_PREAMBLE_RE = re.compile(r"^\s*(?://|\{\}&&|\)\]\}'|#)[ \t]*")

# canonical field -> (header substrings, header substrings that disqualify)
# first matching, not-yet-claimed header wins; rule order matters
COLUMN_RULES: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = [
    ("url", ("URL", "LINK"), ()),
    ("sale_type", ("SALE TYPE", "LISTING TYPE"), ()),
    ("property_type", ("PROPERTY TYPE", "HOME TYPE"), ()),
    ("street", ("ADDRESS", "STREET"), ()),
    ("city", ("CITY",), ()),
    ("state", ("STATE", "PROVINCE"), ()),
    ("zipcode", ("ZIP", "POSTAL"), ()),
    ("price", ("PRICE",), ("$/", "PER ")),
    ("beds", ("BEDS", "BEDROOMS"), ()),
    ("baths", ("BATHS", "BATHROOMS"), ()),
    ("area", ("SQUARE FEET", "SQFT", "SQ FT"), ("$/", "LOT")),
    ("year_built", ("YEAR BUILT",), ()),
    ("days_on_market", ("DAYS ON",), ()),
    ("status", ("STATUS",), ()),
    ("description", ("DESCRIPTION", "REMARKS"), ()),
    ("mls", ("MLS",), ()),
]

REQUIRED_COLUMNS = ("street", "price")


def strip_preamble(text: str) -> str:
    """Drop a leading guard/comment line; keep the header if it shares that line."""
    body = (text or "").lstrip("\ufeff").lstrip()
    m = _PREAMBLE_RE.match(body)
    if not m:
        return body

    first, _, rest = body[m.end():].partition("\n")
    if "," in first:
        # "// SALE TYPE,ADDRESS,..." -> header survives
        return f"{first}\n{rest}"
    return rest.lstrip()


def map_columns(headers: list[str]) -> dict[str, int]:
    """Case-insensitive substring match of header names to canonical fields."""
    upper = [h.strip().upper() for h in headers]
    claimed: set[int] = set()
    out: dict[str, int] = {}

    for name, includes, excludes in COLUMN_RULES:
        for idx, h in enumerate(upper):
            if idx in claimed:
                continue
            if any(x in h for x in excludes):
                continue
            if any(x in h for x in includes):
                out[name] = idx
                claimed.add(idx)
                break
    return out


def parse_export(text: str) -> list[dict[str, str]]:
    """
    Raw export text -> rows keyed by canonical field name.
    Not tabular (or no address/price columns) -> [].
    """
    body = strip_preamble(text)
    if not body:
        return []

    reader = csv.reader(io.StringIO(body))
    headers = next(reader, None)
    if not headers or len(headers) < 2:
        log.warning("export has no usable header row")
        return []

    columns = map_columns(headers)
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        log.warning("export header missing %s: %s", missing, headers[:20])
        return []

    core_reach = max(columns[c] for c in REQUIRED_COLUMNS) + 1
    min_fields = max(core_reach, len(headers) // 2)

    rows: list[dict[str, str]] = []
    skipped = 0
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        if len(values) < min_fields:
            skipped += 1
            continue
        rows.append({name: (values[idx].strip() if idx < len(values) else "") for name, idx in columns.items()})

    if skipped:
        log.debug("export: skipped %d short rows (< %d fields)", skipped, min_fields)
    return rows
