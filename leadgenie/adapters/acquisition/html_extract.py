# leadgenie/adapters/acquisition/html_extract.py
from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from ...domain.normalize import DomFragment, JsonObject, RawRecord
from ...domain.parsing import clean_text
from .location import strip_json_guard

log = logging.getLogger(__name__)

# -------------------------
# Embedded data blobs
# -------------------------
_ASSIGNMENT_RE = re.compile(
    r"(?:window\.|root\.)?"
    r"(?:__reactServerState\.InitialContext|__NEXT_DATA__|__INITIAL_STATE__|__PRELOADED_STATE__|__REDUX_STATE__)"
    r"\s*=\s*"
)
_JSON_SCRIPT_IDS = ("__NEXT_DATA__",)
_JSON_START_RE = re.compile(r"[\[{]")

_LIST_KEYS = ("listResults", "mapResults", "homes", "searchResults", "results", "listings")
_ADDRESS_KEYS = {"address", "addressInfo", "streetLine", "streetAddress", "addressStreet", "addressLine"}
_PRICE_KEYS = {"price", "unformattedPrice", "listPrice", "priceInfo"}
_MAX_DEPTH = 14

# -------------------------
# Rendered cards
# -------------------------
PRIMARY_CARD_SELECTORS: tuple[str, ...] = (
    '[data-test="property-card"]',
    '[data-rf-test-name="mapHomeCard"]',
    "div.HomeCardContainer",
    "div.bp-Homecard",
    "div.HomeCard",
    "article.property-card",
)
_ADDRESS_SELECTORS = (
    '[data-test="property-card-addr"]',
    ".bp-Homecard__Address",
    ".homeAddressV2",
    ".homecardV2__address",
    "address",
)
_CITY_LINE_SELECTORS = (
    '[data-test="property-card-city"]',
    ".bp-Homecard__Address--cityStateZip",
    ".cityStateZip",
)
_PRICE_SELECTORS = (
    '[data-test="property-card-price"]',
    ".bp-Homecard__Price--value",
    ".homecardV2Price",
    ".price",
)
_STATS_SELECTORS = (
    '[data-test="property-card-details"]',
    ".bp-Homecard__Stats",
    ".HomeStatsV2",
    ".stats",
)
_BEDS_RE = re.compile(r"([\d.]+)\s*(?:bds?|beds?|bedrooms?)\b", re.I)
_BATHS_RE = re.compile(r"([\d.]+)\s*(?:ba|baths?|bathrooms?)\b", re.I)
_AREA_RE = re.compile(r"([\d,]+)\s*(?:sq\.?\s*ft\.?|sqft)", re.I)
_DOLLARS_RE = re.compile(r"\$\s?[\d,]+(?:\.\d+)?(?:\s*[KkMm]\b)?")

# -------------------------
# Generic detail links
# -------------------------
LISTING_HREF_RE = re.compile(r"/home/\d+|/homedetails/|_zpid/?|/realestateandhomes-detail/")


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def _first_text(node: Tag, selectors: tuple[str, ...]) -> str:
    for sel in selectors:
        el = node.select_one(sel)
        if el is not None:
            txt = el.get_text(" ", strip=True)
            if txt:
                return txt
    return ""


def has_digits(text: str) -> bool:
    return any(ch.isdigit() for ch in text or "")


def _decode_at(text: str, start: int) -> Any:
    """json.raw_decode from the first '{' or '[' at/after start."""
    m = _JSON_START_RE.search(text, start)
    if not m:
        return None
    try:
        obj, _ = json.JSONDecoder().raw_decode(text, m.start())
    except ValueError:
        return None
    return obj


def embedded_blobs(html: str) -> list[Any]:
    """Every JSON document we can find in inline scripts, in page order."""
    soup = _soup(html)
    out: list[Any] = []
    for script in soup.find_all("script"):
        text = script.string if script.string is not None else script.get_text()
        if not text or not text.strip():
            continue

        if script.get("id") in _JSON_SCRIPT_IDS or "json" in str(script.get("type") or "").lower():
            try:
                out.append(json.loads(text))
                continue
            except ValueError:
                pass

        for m in _ASSIGNMENT_RE.finditer(text):
            obj = _decode_at(text, m.end())
            if obj is not None:
                out.append(obj)
    return out


def _looks_like_listing(d: Any) -> bool:
    if not isinstance(d, dict):
        return False
    keys = set(d)
    for wrapper in ("homeData", "hdpData"):
        inner = d.get(wrapper)
        if isinstance(inner, dict):
            keys |= set(inner)
            if isinstance(inner.get("homeInfo"), dict):
                keys |= set(inner["homeInfo"])
    return bool(keys & _ADDRESS_KEYS) and bool(keys & _PRICE_KEYS)


def _listing_lists(obj: Any, depth: int = 0) -> Iterator[list[dict[str, Any]]]:
    """Depth-first walk yielding lists that look like search results."""
    if depth > _MAX_DEPTH:
        return
    if isinstance(obj, dict):
        # preferred keys first, then everything else
        keys = [k for k in _LIST_KEYS if k in obj] + [k for k in obj if k not in _LIST_KEYS]
        for k in keys:
            yield from _listing_lists(obj[k], depth + 1)
    elif isinstance(obj, list):
        items = [x for x in obj if isinstance(x, dict)]
        if items and sum(1 for x in items if _looks_like_listing(x)) * 2 >= len(items):
            yield items
            return
        for x in obj:
            yield from _listing_lists(x, depth + 1)
    elif isinstance(obj, str) and len(obj) > 64 and obj.lstrip().startswith(("{}&&", "{\"")):
        # some pages cache raw API responses as strings inside the state blob
        try:
            inner = json.loads(strip_json_guard(obj))
        except ValueError:
            return
        yield from _listing_lists(inner, depth + 1)


def extract_embedded_json(html: str) -> list[RawRecord]:
    for blob in embedded_blobs(html):
        for items in _listing_lists(blob):
            records = [JsonObject(data=x) for x in items if _looks_like_listing(x)]
            if records:
                log.info("embedded data: %d listing objects", len(records))
                return records
    return []


def _card_fragment(card: Tag, base_url: str) -> DomFragment | None:
    street = _first_text(card, _ADDRESS_SELECTORS)
    price_text = _first_text(card, _PRICE_SELECTORS)
    if not price_text:
        m = _DOLLARS_RE.search(card.get_text(" ", strip=True))
        price_text = m.group(0) if m else ""

    if not street or not has_digits(price_text):
        return None

    stats = _first_text(card, _STATS_SELECTORS) or card.get_text(" ", strip=True)
    fields: dict[str, str] = {
        "street": street,
        "city_line": _first_text(card, _CITY_LINE_SELECTORS),
        "price": price_text,
    }
    for key, rx in (("beds", _BEDS_RE), ("baths", _BATHS_RE), ("area", _AREA_RE)):
        m = rx.search(stats)
        if m:
            fields[key] = m.group(1).replace(",", "")

    link = card.select_one("a[href]")
    if link is not None:
        fields["url"] = urljoin(base_url + "/", str(link["href"]))
    return DomFragment(fields=fields)


def extract_dom_cards(html: str, base_url: str) -> list[RawRecord]:
    soup = _soup(html)
    for sel in PRIMARY_CARD_SELECTORS:
        cards = soup.select(sel)
        if not cards:
            continue
        out: list[RawRecord] = []
        for card in cards:
            frag = _card_fragment(card, base_url)
            if frag is None:
                log.debug("card skipped: missing address or price")
                continue
            out.append(frag)
        log.info("dom cards: selector %s matched %d, kept %d", sel, len(cards), len(out))
        return out
    return []


def _nearby_price(link: Tag, levels: int = 3) -> str:
    node: Tag | None = link
    for _ in range(levels):
        if node is None:
            break
        m = _DOLLARS_RE.search(node.get_text(" ", strip=True))
        if m:
            return m.group(0)
        node = node.parent if isinstance(node.parent, Tag) else None
    return ""


def extract_generic_links(html: str, base_url: str) -> list[RawRecord]:
    """Last resort: any detail-page link, with whatever address/price sits next to it."""
    soup = _soup(html)
    seen: set[str] = set()
    out: list[RawRecord] = []
    for a in soup.find_all("a", href=True):
        href = str(a["href"])
        if not LISTING_HREF_RE.search(href):
            continue
        url = urljoin(base_url + "/", href)
        if url in seen:
            continue
        seen.add(url)

        text = clean_text(a.get_text(" ", strip=True))
        address = clean_text(a.get("title") or a.get("aria-label") or "")
        if not address or _DOLLARS_RE.search(address):
            address = _DOLLARS_RE.sub("", text).strip(" ,|")
        price = _nearby_price(a)
        if not address or not has_digits(price):
            continue
        out.append(DomFragment(fields={"street": address, "price": price, "url": url}))

    if out:
        log.info("generic links: %d listing links", len(out))
    return out


class HtmlFallbackExtractor:
    """
    Search page -> raw records for one named stage.
    The fallback chain runs them in STAGES order.
    """

    STAGES = ("json", "dom", "generic")

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def stage(self, name: str, html: str) -> list[RawRecord]:
        if name == "json":
            return extract_embedded_json(html)
        if name == "dom":
            return extract_dom_cards(html, self.base_url)
        if name == "generic":
            return extract_generic_links(html, self.base_url)
        raise ValueError(f"unknown extraction stage {name!r}")

