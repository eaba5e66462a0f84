# leadgenie/domain/normalize.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Union
from urllib.parse import quote_plus

from ..models import Lead, LeadSource, ListingFilter, ListingType
from .address import compose_address, split_full_address, state_abbreviation
from .parsing import (
    clean_text,
    get_first,
    get_nested,
    parse_days_on_market,
    parse_price,
    unwrap_value,
)

log = logging.getLogger(__name__)


# -----------------------------
# Raw record shapes
# -----------------------------
@dataclass(frozen=True)
class CsvRow:
    """One export row, already keyed by canonical field name (see csv_parser)."""

    fields: dict[str, str]
    kind: str = field(default="csv", init=False)


@dataclass(frozen=True)
class JsonObject:
    """One listing object pulled from an embedded page data blob."""

    data: dict[str, Any]
    kind: str = field(default="json", init=False)


@dataclass(frozen=True)
class DomFragment:
    """Text pulled out of one rendered listing card (or a bare detail link)."""

    fields: dict[str, str]
    kind: str = field(default="dom", init=False)


RawRecord = Union[CsvRow, JsonObject, DomFragment]


@dataclass(frozen=True)
class NormalizeContext:
    """What the normalizer needs to know about the request that produced a record."""

    city: str
    state: str
    source: LeadSource
    base_url: str = "https://www.redfin.com"
    requested: ListingFilter = ListingFilter.both


# -----------------------------
# Shape-specific field access
# -----------------------------
_OWNER_MARKERS = ("fsbo", "by owner", "by-owner", "by_owner", "owner-listed", "owner listed")
_AGENT_MARKERS = ("mls listing", "mls", "agent", "broker", "new construction")


def _fields_from_json(d: dict[str, Any]) -> dict[str, Any]:
    # search payloads nest the interesting bits under a couple of known wrappers
    home = get_nested(d, "homeData") or get_nested(d, "hdpData.homeInfo") or {}
    if not isinstance(home, dict):
        home = {}

    def pick(*keys: str) -> Any:
        v = get_first(d, *keys)
        if v is None:
            v = get_first(home, *keys)
        return unwrap_value(v)

    street = pick("streetLine", "streetAddress", "addressStreet", "addressLine", "street")
    if isinstance(street, dict):
        street = get_first(street, "value", "line", "streetAddress")
    city = pick("city", "addressCity")
    state = pick("state", "stateCode", "addressState")
    zipcode = pick("zip", "zipcode", "zipCode", "postalCode", "addressZipcode")

    address = d.get("address") if isinstance(d.get("address"), (str, dict)) else None
    if isinstance(address, dict):
        street = street or get_first(address, "streetAddress", "streetLine", "line1", "line")
        city = city or get_first(address, "city", "addressLocality")
        state = state or get_first(address, "state", "addressRegion")
        zipcode = zipcode or get_first(address, "zip", "zipcode", "postalCode")
    elif isinstance(address, str):
        split = split_full_address(address)
        street = street or split.get("street")
        city = city or split.get("city")
        state = state or split.get("state")
        zipcode = zipcode or split.get("zipcode")

    info = pick("addressInfo")
    if isinstance(info, dict):
        street = street or get_first(info, "formattedStreetLine", "streetLine", "street")
        city = city or get_first(info, "city")
        state = state or get_first(info, "state")
        zipcode = zipcode or get_first(info, "zip", "zipcode", "postalCode")

    price = pick("price", "unformattedPrice", "listPrice", "priceInfo")
    if isinstance(price, dict):
        price = get_nested(price, "amount.amount") or get_first(price, "amount", "value")

    owner_flag = pick("isFSBO", "isFsbo", "is_fsbo", "isForSaleByOwner")
    sale_type = pick("saleType", "listingType", "statusType", "statusText", "marketingStatus")
    if owner_flag is True or get_nested(d, "listing_sub_type.is_FSBO") is True:
        sale_type = "fsbo"

    return {
        "street": street,
        "city": city,
        "state": state,
        "zipcode": zipcode,
        "price": price,
        "days_on_market": pick("dom", "daysOnMarket", "daysOnZillow"),
        "description": pick("listingRemarks", "remarks", "description"),
        "url": pick("url", "detailUrl", "listingUrl"),
        "property_type": pick("propertyTypeName", "propertyType", "homeType"),
        "beds": pick("beds", "bedrooms"),
        "baths": pick("baths", "bathrooms"),
        "area": pick("sqFt", "area", "livingArea", "squareFeet"),
        "year_built": pick("yearBuilt"),
        "sale_type": sale_type,
        "broker": pick("brokerName", "listingAgent", "listingBroker"),
    }


def _fields_from_flat(fields: dict[str, Any]) -> dict[str, Any]:
    out = dict(fields)
    # cards and generic links sometimes only have the one-line address
    if not out.get("city") and out.get("street") and "," in str(out["street"]):
        split = split_full_address(str(out["street"]))
        out.update({k: v for k, v in split.items() if v})
    if out.get("city_line") and not (out.get("city") and out.get("state")):
        split = split_full_address(f"_, {out['city_line']}")
        for k in ("city", "state", "zipcode"):
            if split.get(k) and not out.get(k):
                out[k] = split[k]
    return out


def record_fields(record: RawRecord) -> dict[str, Any]:
    if isinstance(record, JsonObject):
        return _fields_from_json(record.data)
    return _fields_from_flat(record.fields)


# -----------------------------
# Shared logic
# -----------------------------
def listing_type_from(fields: dict[str, Any], requested: ListingFilter) -> ListingType:
    sale = clean_text(fields.get("sale_type")).lower()
    if sale:
        if any(m in sale for m in _OWNER_MARKERS):
            return ListingType.owner_sold
        if any(m in sale for m in _AGENT_MARKERS):
            return ListingType.agent_listed
    if clean_text(fields.get("broker")):
        return ListingType.agent_listed
    # source can't tell: carry what the caller asked for
    return requested.as_listing_type()


def synthesize_description(fields: dict[str, Any], listing_type: ListingType) -> str:
    """Source remarks win; otherwise '3 beds, 2 baths, 1450 sqft. Built in 1987.'"""
    remarks = clean_text(fields.get("description"))
    if remarks:
        return remarks

    stats = []
    for key, label in (("beds", "beds"), ("baths", "baths"), ("area", "sqft")):
        v = clean_text(unwrap_value(fields.get(key)))
        if v:
            stats.append(f"{v} {label}")

    desc = f"{', '.join(stats)}." if stats else ""
    year = clean_text(unwrap_value(fields.get("year_built")))
    if year:
        desc = f"{desc} Built in {year}.".strip()
    if listing_type == ListingType.owner_sold and desc:
        desc += " For sale by owner."
    return desc


def normalize_url(raw: Any, address: str, base_url: str) -> str:
    """Absolute source URL if we have one, else a search URL for the composed address."""
    url = clean_text(raw)
    if url.startswith(("http://", "https://")):
        return url
    base = base_url.rstrip("/")
    if url.startswith("/"):
        return f"{base}{url}"
    return f"{base}/search?location={quote_plus(address)}"


def normalize(record: RawRecord, ctx: NormalizeContext) -> Lead | None:
    """
    One raw record -> one Lead, or None when the record can't satisfy the Lead
    invariants (street + city present, positive parseable price).
    """
    f = record_fields(record)

    street = clean_text(f.get("street"))
    if not street:
        log.debug("discard %s record: empty street", record.kind)
        return None

    city = clean_text(f.get("city")) or ctx.city
    if not city:
        log.debug("discard %s record: empty city", record.kind)
        return None
    state = state_abbreviation(f.get("state")) or ctx.state
    zipcode = clean_text(f.get("zipcode")) or None

    price = parse_price(f.get("price"))
    if price is None:
        log.debug("discard %s record %r: unparseable price %r", record.kind, street, f.get("price"))
        return None

    listing_type = listing_type_from(f, ctx.requested)
    address = compose_address(street, city, state, zipcode)
    property_type = clean_text(f.get("property_type")) or None

    return Lead(
        address=address,
        city=city,
        state=state,
        zipcode=zipcode,
        price=price,
        days_on_market=parse_days_on_market(f.get("days_on_market")),
        description=synthesize_description(f, listing_type),
        source=ctx.source,
        listing_url=normalize_url(f.get("url"), address, ctx.base_url),
        property_type=property_type,
        listing_type=listing_type,
    )


def normalize_all(records: list[RawRecord], ctx: NormalizeContext) -> list[Lead]:
    out: list[Lead] = []
    for r in records:
        lead = normalize(r, ctx)
        if lead is not None:
            out.append(lead)
    return out
