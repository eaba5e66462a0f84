# leadgenie/adapters/acquisition/location.py
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Pattern
from urllib.parse import urlparse

from ...domain.address import slugify
from ..clients.http_resilience import ListingHttp
from .errors import AcquisitionError, LocationResolutionFailure

log = logging.getLogger(__name__)

AUTOCOMPLETE_PATH = "/stingray/do/location-autocomplete"

# region-type codes used by the export endpoint
REGION_TYPE_CITY = "6"
REGION_TYPE_COUNTY = "5"
REGION_TYPE_ZIP = "2"

# directly constructed search paths, tried in order
PROBE_PATHS: tuple[str, ...] = (
    "/{state}/{city}",
    "/city/{state}/{city}",
    "/{state}/{city}/real-estate",
)

# autocomplete responses are prefixed to defeat JSON hijacking
_JSON_GUARD_RE = re.compile(r"^\s*(?:\{\}&&|//|\)\]\}',?)\s*")

_QUERY_ID_RE = re.compile(r'"queryId"\s*:\s*"([^"]+)"')
_ROW_ID_RE = re.compile(r"^(\d+)_(\d+)$")


@dataclass(frozen=True)
class RegionRef:
    """Opaque export scope for one city, plus whatever we learned on the way."""

    region_id: str
    region_type: str | None = None
    url: str | None = None
    search_query_id: str | None = None
    strategy: str = "autocomplete"


Extractor = Callable[["re.Match[str]"], tuple[str, str | None]]


def _id_only(region_type: str | None) -> Extractor:
    return lambda m: (m.group(1), region_type)


def _id_and_type(m: "re.Match[str]") -> tuple[str, str | None]:
    return m.group(1), m.group(2)


# final URL path patterns, most specific to typical queries first
URL_PATTERNS: list[tuple[Pattern[str], Extractor]] = [
    (re.compile(r"/city/(\d+)(?:/|$)", re.I), _id_only(REGION_TYPE_CITY)),
    (re.compile(r"/county/(\d+)(?:/|$)", re.I), _id_only(REGION_TYPE_COUNTY)),
    (re.compile(r"/zipcode/(\d+)(?:/|$)", re.I), _id_only(REGION_TYPE_ZIP)),
]

# page body patterns; several spellings of "region id" show up across page versions
BODY_PATTERNS: list[tuple[Pattern[str], Extractor]] = [
    (re.compile(r'"regionId"\s*:\s*"?(\d+)"?\s*,\s*"regionType"\s*:\s*"?(\d+)'), _id_and_type),
    (re.compile(r'"region_id"\s*:\s*"?(\d+)"?\s*,\s*"region_type"\s*:\s*"?(\d+)'), _id_and_type),
    (re.compile(r'"regionId"\s*:\s*"?(\d+)'), _id_only(None)),
    (re.compile(r'"region_id"\s*:\s*"?(\d+)'), _id_only(None)),
    (re.compile(r'"RegionId"\s*:\s*"?(\d+)'), _id_only(None)),
    (re.compile(r'data-region-id\s*=\s*["\'](\d+)', re.I), _id_only(None)),
    (re.compile(r'region[_-]?id["\']?\s*[:=]\s*["\']?(\d+)', re.I), _id_only(None)),
]


def first_match(text: str, patterns: list[tuple[Pattern[str], Extractor]]) -> tuple[str, str | None] | None:
    for pattern, extractor in patterns:
        m = pattern.search(text)
        if m:
            return extractor(m)
    return None


def strip_json_guard(text: str) -> str:
    return _JSON_GUARD_RE.sub("", text, count=1)


def extract_query_id(body: str) -> str | None:
    m = _QUERY_ID_RE.search(body)
    return m.group(1) if m else None


def _row_identity(row: dict[str, Any]) -> tuple[str, str | None] | None:
    """
    Suggestion rows carry ids like "2_30818" (type code _ region id) and/or a
    canonical url like "/city/30818/TX/Austin".
    """
    url = str(row.get("url") or "")
    raw_id = str(row.get("id") or "").strip()

    m = _ROW_ID_RE.match(raw_id)
    hit = first_match(url, URL_PATTERNS) if url else None
    if hit:
        return hit
    if m:
        return m.group(2), None
    if raw_id:
        return raw_id, None
    return None


def _is_city_row(row: dict[str, Any]) -> bool:
    t = str(row.get("type") or "").strip().lower()
    url = str(row.get("url") or "").lower()
    return t == "city" or "/city/" in url


def pick_suggestion(payload: dict[str, Any]) -> dict[str, Any] | None:
    """Exact match first, else the first city row in any section."""
    body = payload.get("payload") if isinstance(payload.get("payload"), dict) else payload

    exact = body.get("exactMatch")
    if isinstance(exact, dict) and (exact.get("id") or exact.get("url")):
        return exact

    for section in body.get("sections") or []:
        if not isinstance(section, dict):
            continue
        for row in section.get("rows") or []:
            if isinstance(row, dict) and _is_city_row(row):
                return row
    return None


class LocationResolver:
    """
    "City, ST" -> RegionRef, or None.

    1) suggestion endpoint
    2) probe constructed URLs, read the id out of the final (redirected) URL
    3) regex the fetched page body
    """

    def __init__(self, http: ListingHttp, pages: dict[str, str | None] | None = None) -> None:
        self.http = http
        # url -> body of every page probed, so callers can reuse them
        self.pages = pages if pages is not None else {}

    async def resolve(self, city: str, state: str) -> RegionRef | None:
        steps = (
            ("autocomplete", self._from_autocomplete),
            ("url_probe", self._from_probes),
        )
        for name, step in steps:
            try:
                ref = await step(city, state)
            except AcquisitionError as e:
                log.info("location step %s failed for %s, %s: %s", name, city, state, e)
                continue
            except Exception:
                log.exception("location step %s crashed for %s, %s", name, city, state)
                continue
            if ref is not None:
                log.info("resolved %s, %s -> region %s (type=%s, via %s)", city, state, ref.region_id, ref.region_type, ref.strategy)
                return ref

        log.warning("could not resolve region for %s, %s", city, state)
        return None

    async def _from_autocomplete(self, city: str, state: str) -> RegionRef | None:
        location = f"{city}, {state}" if state else city
        params = {
            "location": location,
            "start": 0,
            "count": 10,
            "v": 2,
            "market": "global",
            "al": 1,
            "iss": "false",
            "ooa": "true",
            "mrs": "false",
        }
        text, _ = await self.http.get_text(AUTOCOMPLETE_PATH, params=params, kind="xhr")

        try:
            data = json.loads(strip_json_guard(text))
        except ValueError as e:
            raise LocationResolutionFailure(f"autocomplete response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise LocationResolutionFailure("autocomplete response has no payload")

        row = pick_suggestion(data)
        if row is None:
            raise LocationResolutionFailure(f"no usable suggestion for {location!r}")

        ident = _row_identity(row)
        if ident is None:
            raise LocationResolutionFailure(f"suggestion for {location!r} has no id or url")

        region_id, region_type = ident
        url = str(row.get("url") or "") or None
        return RegionRef(
            region_id=region_id,
            region_type=region_type,
            url=self.http.session.url(url) if url else None,
            strategy="autocomplete",
        )

    def probe_urls(self, city: str, state: str) -> list[str]:
        values = {"city": slugify(city), "state": state.upper()}
        return [self.http.session.url(p.format(**values)) for p in PROBE_PATHS]

    async def _from_probes(self, city: str, state: str) -> RegionRef | None:
        if not state:
            raise LocationResolutionFailure("no state to build probe URLs from")

        for url in self.probe_urls(city, state):
            try:
                body, final_url = await self.http.get_text(url)
            except AcquisitionError as e:
                log.debug("probe %s failed: %s", url, e)
                self.pages[url] = None
                continue
            self.pages[url] = body
            self.pages[final_url] = body

            query_id = extract_query_id(body)
            hit = first_match(urlparse(final_url).path, URL_PATTERNS)
            strategy = "url_probe"
            if hit is None:
                hit = first_match(body, BODY_PATTERNS)
                strategy = "page_regex"
            if hit is None:
                log.debug("probe %s -> %s carried no region id", url, final_url)
                continue

            region_id, region_type = hit
            return RegionRef(
                region_id=region_id,
                region_type=region_type,
                url=final_url,
                search_query_id=query_id,
                strategy=strategy,
            )
        return None

