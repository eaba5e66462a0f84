# leadgenie/adapters/acquisition/export.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from ...config import AcquisitionConfig
from ...models import ListingFilter
from ..clients.http_resilience import ListingHttp
from ..clients.snapshots import write_snapshot
from .errors import AcquisitionError, InvalidPayload
from .location import REGION_TYPE_CITY, REGION_TYPE_COUNTY, REGION_TYPE_ZIP, RegionRef, strip_json_guard

log = logging.getLogger(__name__)

EXPORT_PATH = "/stingray/api/gis-csv"
EXPORT_ALT_PATH = "/stingray/do/gis-csv"

REGION_TYPE_CANDIDATES: tuple[str, ...] = (REGION_TYPE_CITY, REGION_TYPE_COUNTY, REGION_TYPE_ZIP)


@dataclass(frozen=True)
class ExportVariant:
    path: str
    region_type: str
    page_size: int


@dataclass(frozen=True)
class ExportPayload:
    text: str
    variant: ExportVariant


def validate_export_payload(text: str, *, min_bytes: int) -> None:
    """Raise InvalidPayload unless the body plausibly is CSV."""
    body = (text or "").strip()
    if len(body) < min_bytes:
        raise InvalidPayload(f"too short ({len(body)} < {min_bytes} bytes)")
    head = body[:512].lower()
    if "<!doctype" in head or "<html" in head[:100]:
        raise InvalidPayload("looks like an HTML document")
    if strip_json_guard(body).lstrip().startswith(("{", "[")):
        # error envelopes come back as 200 with a guarded JSON body
        raise InvalidPayload("looks like a JSON document")
    if "," not in body:
        raise InvalidPayload("no delimiters")


def export_variants(region: RegionRef, config: AcquisitionConfig) -> list[ExportVariant]:
    """
    Ordered attempts:
      hinted region type, then the other type codes (full page size),
      then a reduced page size, then the alternate URL shape.
    """
    hint = region.region_type or REGION_TYPE_CITY
    types = [hint] + [t for t in REGION_TYPE_CANDIDATES if t != hint]

    out = [ExportVariant(EXPORT_PATH, t, config.export_page_size) for t in types]
    out.append(ExportVariant(EXPORT_PATH, hint, config.export_reduced_page_size))
    out.append(ExportVariant(EXPORT_ALT_PATH, hint, config.export_page_size))
    return out


class BulkExportFetcher:
    def __init__(self, http: ListingHttp) -> None:
        self.http = http
        self.config = http.config

    def build_params(
        self,
        region: RegionRef,
        variant: ExportVariant,
        *,
        market: str,
        requested: ListingFilter = ListingFilter.both,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "al": 1,
            "market": market.lower().replace(" ", ""),
            "num_homes": variant.page_size,
            "ord": "redfin-recommended-asc",
            "page_number": 1,
            "region_id": region.region_id,
            "region_type": variant.region_type,
            "sf": "1,2,3,5,6,7,14",
            "status": 9,
            "uipt": "1,2,3,4,5,6,7,8",
            "v": 8,
            "_": int(time.time() * 1000),  # cache buster
        }
        if requested == ListingFilter.owner_sold:
            params["is_fsbo"] = "true"
        elif requested == ListingFilter.agent_listed:
            params["is_fsbo"] = "false"
        if region.search_query_id:
            params["searchQueryId"] = region.search_query_id
        return params

    async def fetch(
        self,
        region: RegionRef,
        *,
        market: str,
        requested: ListingFilter = ListingFilter.both,
    ) -> ExportPayload | None:
        """First variant whose body validates, or None. Never raises AcquisitionError."""
        for variant in export_variants(region, self.config):
            params = self.build_params(region, variant, market=market, requested=requested)
            try:
                text, _ = await self.http.get_text(
                    variant.path, params=params, kind="xhr", referer=region.url
                )
                validate_export_payload(text, min_bytes=self.config.export_min_bytes)
            except InvalidPayload as e:
                log.warning("export %s type=%s size=%s rejected: %s", variant.path, variant.region_type, variant.page_size, e.reason)
                write_snapshot(self.config, "export_invalid", f"{region.region_id}:{variant}", text)
                continue
            except AcquisitionError as e:
                log.warning("export %s type=%s size=%s failed: %s", variant.path, variant.region_type, variant.page_size, e)
                continue

            log.info("export ok: region=%s type=%s size=%s (%d bytes)", region.region_id, variant.region_type, variant.page_size, len(text))
            return ExportPayload(text=text, variant=variant)

        return None
