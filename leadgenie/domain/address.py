# leadgenie/domain/address.py
from __future__ import annotations

import re

from .parsing import clean_text

STATE_ABBREVIATIONS: dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "district of columbia": "DC", "florida": "FL", "georgia": "GA", "hawaii": "HI",
    "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME",
    "maryland": "MD", "massachusetts": "MA", "michigan": "MI", "minnesota": "MN",
    "mississippi": "MS", "missouri": "MO", "montana": "MT", "nebraska": "NE",
    "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM",
    "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI",
    "south carolina": "SC", "south dakota": "SD", "tennessee": "TN", "texas": "TX",
    "utah": "UT", "vermont": "VT", "virginia": "VA", "washington": "WA",
    "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
}

_STATE_ZIP_RE = re.compile(r"^([A-Za-z]{2})\s+(\d{5}(?:-\d{4})?)$")
_ZIP_RE = re.compile(r"^\d{5}(?:-\d{4})?$")


def state_abbreviation(state: str | None) -> str:
    """'Texas' -> 'TX', 'tx' -> 'TX'. Unknown names pass through upper-cased."""
    s = clean_text(state)
    if not s:
        return ""
    if len(s) == 2:
        return s.upper()
    return STATE_ABBREVIATIONS.get(s.lower(), s.upper())


def parse_location(location: str) -> tuple[str, str]:
    """
    "Austin, TX" -> ("Austin", "TX"); "Salt Lake City, Utah" -> ("Salt Lake City", "UT").
    No comma -> (location, "").
    """
    s = clean_text(location)
    if "," not in s:
        return s, ""
    city, _, state = s.rpartition(",")
    return clean_text(city), state_abbreviation(state)


def compose_address(street: str, city: str, state: str, zipcode: str | None = None) -> str:
    """
    street, city, state [zip] joined with ', ', skipping absent parts:
      ("12 Oak St", "Austin", "TX", "78701") -> "12 Oak St, Austin, TX 78701"
    """
    state_zip = " ".join(p for p in (clean_text(state), clean_text(zipcode)) if p)
    parts = [clean_text(street), clean_text(city), state_zip]
    return ", ".join(p for p in parts if p)


def split_full_address(full: str) -> dict[str, str]:
    """
    Best-effort split of a one-line address:
      "123 Main St, Austin, TX 78701" -> street/city/state/zipcode
      "123 Main St, Austin, TX"       -> street/city/state
      "123 Main St"                   -> street
    """
    parts = [clean_text(p) for p in clean_text(full).split(",")]
    parts = [p for p in parts if p]
    out: dict[str, str] = {}
    if not parts:
        return out

    out["street"] = parts[0]
    if len(parts) == 1:
        return out

    tail = parts[-1]
    m = _STATE_ZIP_RE.match(tail)
    if m:
        out["state"] = m.group(1).upper()
        out["zipcode"] = m.group(2)
        city_parts = parts[1:-1]
    elif len(tail) == 2 and tail.isalpha():
        out["state"] = tail.upper()
        city_parts = parts[1:-1]
    elif _ZIP_RE.match(tail):
        out["zipcode"] = tail
        city_parts = parts[1:-1]
    else:
        city_parts = parts[1:]

    if city_parts:
        # "Unit 4, Austin" style middles: the city is the last remaining part
        if len(city_parts) > 1:
            out["street"] = ", ".join([parts[0], *city_parts[:-1]])
        out["city"] = city_parts[-1]
    return out


def slugify(text: str) -> str:
    """'Salt Lake City' -> 'Salt-Lake-City' (marketplace path convention)."""
    return re.sub(r"\s+", "-", clean_text(text))
