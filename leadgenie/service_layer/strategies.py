# leadgenie/service_layer/strategies.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Protocol

from ..adapters.acquisition.csv_parser import parse_export
from ..adapters.acquisition.errors import (
    AcquisitionError,
    FetchFailure,
    InvalidPayload,
    LocationResolutionFailure,
    ParseFailure,
)
from ..adapters.acquisition.export import BulkExportFetcher
from ..adapters.acquisition.html_extract import HtmlFallbackExtractor
from ..adapters.acquisition.location import LocationResolver, RegionRef, extract_query_id
from ..adapters.clients.http_resilience import ListingHttp
from ..adapters.clients.snapshots import write_snapshot
from ..config import AcquisitionConfig
from ..domain.address import slugify
from ..domain.filters import LeadFilters, apply_listing_filter
from ..domain.normalize import CsvRow, NormalizeContext, RawRecord, normalize_all
from ..models import Lead, LeadSource, ListingFilter

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcquisitionRequest:
    city: str
    state: str
    keywords: tuple[str, ...] = ()
    listing_filter: ListingFilter = ListingFilter.both
    filters: LeadFilters = field(default_factory=LeadFilters)


@dataclass
class AttemptContext:
    """
    State shared by the strategies of ONE chain attempt.
    A retry builds a new context, so nothing cached here survives a restart.
    """

    request: AcquisitionRequest
    config: AcquisitionConfig
    http: ListingHttp
    attempt: int = 1
    region: RegionRef | None = None
    pages: dict[str, str | None] = field(default_factory=dict)

    def normalize_ctx(self, source: LeadSource) -> NormalizeContext:
        return NormalizeContext(
            city=self.request.city,
            state=self.request.state,
            source=source,
            base_url=self.config.base_url,
            requested=self.request.listing_filter,
        )

    def search_page_url(self) -> str:
        if self.region is not None and self.region.url:
            return self.region.url
        city, state = self.request.city, self.request.state
        if state:
            return LocationResolver(self.http).probe_urls(city, state)[0]
        return self.http.session.url(f"/{slugify(city)}")

    async def search_page(self) -> str | None:
        """Rendered search results page, fetched at most once per attempt."""
        url = self.search_page_url()
        if url not in self.pages:
            try:
                body, _ = await self.http.get_text(url)
            except FetchFailure as e:
                log.warning("search page %s unavailable: %s", url, e)
                body = None
            self.pages[url] = body
        return self.pages[url]


class AcquisitionStrategy(Protocol):
    name: str

    async def attempt(self, ctx: AttemptContext) -> tuple[list[Lead], bool]:
        raise NotImplementedError


class _RecordStrategy:
    """Shared shell: records -> normalize -> listing-type filter, failing soft."""

    name = "base"
    source = LeadSource.redfin_export

    async def records(self, ctx: AttemptContext) -> list[RawRecord]:
        raise NotImplementedError

    async def attempt(self, ctx: AttemptContext) -> tuple[list[Lead], bool]:
        try:
            records = await self.records(ctx)
            leads = normalize_all(records, ctx.normalize_ctx(self.source))
            leads = apply_listing_filter(leads, ctx.request.listing_filter)
            if not leads:
                raise ParseFailure(f"{len(records)} raw records, 0 usable leads")
        except AcquisitionError as e:
            log.info("strategy %s (attempt %d) gave nothing: %s", self.name, ctx.attempt, e)
            return [], False
        except Exception:
            log.exception("strategy %s (attempt %d) crashed", self.name, ctx.attempt)
            return [], False

        log.info("strategy %s (attempt %d): %d leads", self.name, ctx.attempt, len(leads))
        return leads, True


class ExportStrategy(_RecordStrategy):
    name = "export"
    source = LeadSource.redfin_export

    async def records(self, ctx: AttemptContext) -> list[RawRecord]:
        region = ctx.region
        if region is None:
            raise LocationResolutionFailure("no region id; export skipped")

        if not region.search_query_id and region.url:
            page = await ctx.search_page()
            qid = extract_query_id(page or "")
            if qid:
                region = replace(region, search_query_id=qid)

        payload = await BulkExportFetcher(ctx.http).fetch(
            region,
            market=ctx.request.city,
            requested=ctx.request.listing_filter,
        )
        if payload is None:
            raise InvalidPayload("every export variant failed")

        rows = parse_export(payload.text)
        if ctx.config.strict_city_match:
            want = ctx.request.city.strip().lower()
            kept = [r for r in rows if not r.get("city") or r["city"].strip().lower() == want]
            if len(kept) != len(rows):
                log.debug("export: dropped %d rows outside %s", len(rows) - len(kept), ctx.request.city)
            rows = kept

        if not rows:
            write_snapshot(ctx.config, "export_empty", region.region_id, payload.text)
        return [CsvRow(fields=r) for r in rows]


class HtmlStrategy(_RecordStrategy):
    """One stage of the HTML fallback, over the (shared) search results page."""

    def __init__(self, stage: str, source: LeadSource) -> None:
        if stage not in HtmlFallbackExtractor.STAGES:
            raise ValueError(f"unknown html stage {stage!r}")
        self.stage = stage
        self.source = source
        self.name = f"html_{stage}"

    async def records(self, ctx: AttemptContext) -> list[RawRecord]:
        page = await ctx.search_page()
        if not page:
            raise FetchFailure("no search page to extract from", url=ctx.search_page_url())

        records = HtmlFallbackExtractor(ctx.config.base_url).stage(self.stage, page)
        if not records:
            write_snapshot(ctx.config, self.name, ctx.search_page_url(), page)
        return records


def default_strategies(config: AcquisitionConfig) -> list[AcquisitionStrategy]:
    """Fixed priority order: export, then embedded JSON, cards, generic links."""
    chain: list[AcquisitionStrategy] = [ExportStrategy()]
    if config.html_fallback_enabled:
        chain += [
            HtmlStrategy("json", LeadSource.redfin_html_json),
            HtmlStrategy("dom", LeadSource.redfin_html_dom),
            HtmlStrategy("generic", LeadSource.redfin_html_generic),
        ]
    return chain
