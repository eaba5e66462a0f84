# leadgenie/service_layer/use_cases/acquire.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import httpx

from ...adapters.acquisition.location import LocationResolver
from ...adapters.clients.http_resilience import Deadline, ListingHttp, SleepFn, build_client
from ...adapters.clients.session import SessionContext
from ...config import AcquisitionConfig
from ...domain.address import parse_location
from ...domain.filters import LeadFilters, apply_keyword_filter, apply_listing_filter, clean_keywords
from ...models import Lead, ListingFilter
from ..mock_leads import mock_leads
from ..strategies import AcquisitionRequest, AcquisitionStrategy, AttemptContext, default_strategies

log = logging.getLogger(__name__)

MAX_RESULTS = 50
MOCK_STRATEGY = "mock"


@dataclass
class AcquisitionResult:
    leads: list[Lead]
    degraded: bool
    strategy: str | None
    attempts: int
    trail: list[str] = field(default_factory=list)
    retry_delays: list[float] = field(default_factory=list)


def _finish(leads: Iterable[Lead], request: AcquisitionRequest) -> list[Lead]:
    out = request.filters.apply(leads)
    out = apply_keyword_filter(out, request.keywords)
    return out[:MAX_RESULTS]


def _mock_result(
    request: AcquisitionRequest,
    config: AcquisitionConfig,
    *,
    location: str,
    attempts: int,
    trail: list[str],
    delays: list[float],
) -> AcquisitionResult:
    trail.append(MOCK_STRATEGY)
    if not config.mock_fallback_enabled:
        log.warning("acquisition for %r exhausted; mock fallback disabled", location)
        return AcquisitionResult([], True, None, attempts, trail, delays)

    leads = mock_leads(
        request.city or location.strip(),
        request.state,
        requested=request.listing_filter,
        base_url=config.base_url,
    )
    leads = apply_listing_filter(leads, request.listing_filter)
    # mock rows skip the price/DOM window: they're placeholders, not market data
    out = apply_keyword_filter(leads, request.keywords)[:MAX_RESULTS]
    return AcquisitionResult(out, True, MOCK_STRATEGY, attempts, trail, delays)


async def _run_chain(
    request: AcquisitionRequest,
    config: AcquisitionConfig,
    http: ListingHttp,
    chain: Sequence[AcquisitionStrategy],
    *,
    location: str,
    sleep: SleepFn,
) -> AcquisitionResult:
    deadline = http.deadline
    allowed = max(1, int(config.max_retries))
    trail: list[str] = []
    delays: list[float] = []
    attempts = 0

    for attempt in range(1, allowed + 1):
        if deadline.expired:
            log.warning("deadline reached before attempt %d for %r", attempt, location)
            break
        attempts = attempt

        ctx = AttemptContext(request=request, config=config, http=http, attempt=attempt)
        trail.append("resolve")
        if request.city:
            ctx.region = await LocationResolver(http, pages=ctx.pages).resolve(request.city, request.state)

        for strategy in chain:
            if deadline.expired:
                break
            trail.append(strategy.name)
            leads, ok = await strategy.attempt(ctx)
            if ok and leads:
                final = _finish(leads, request)
                log.info(
                    "acquired %d leads for %r via %s (attempt %d, %d before filters)",
                    len(final), location, strategy.name, attempt, len(leads),
                )
                return AcquisitionResult(final, False, strategy.name, attempt, trail, delays)

        if attempt < allowed:
            delay = attempt * float(config.retry_base_delay_s)
            rem = deadline.remaining()
            if rem is not None:
                if rem <= 0:
                    break
                delay = min(delay, rem)
            log.info("attempt %d for %r found nothing; retrying in %.2fs", attempt, location, delay)
            delays.append(delay)
            await sleep(delay)

    log.warning("all %d attempt(s) failed for %r", attempts, location)
    return _mock_result(request, config, location=location, attempts=attempts, trail=trail, delays=delays)


async def acquire_leads_with_status(
    location: str,
    keywords: Iterable[str] | None = None,
    listing_type: Any = ListingFilter.both,
    max_retries: int | None = None,
    *,
    config: AcquisitionConfig | None = None,
    deadline_s: float | None = None,
    filters: LeadFilters | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    strategies: Sequence[AcquisitionStrategy] | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> AcquisitionResult:
    """
    Location + keywords -> leads, with a record of how we got them.

    Never raises for source trouble: the worst case is the mock set with
    degraded=True. Cancellation propagates.

    Every call gets its own client and cookie jar. A caller-supplied transport
    is shared across calls (connection pooling, tests) and is left open.
    """
    cfg = (config or AcquisitionConfig.from_settings()).with_overrides(
        max_retries=max_retries,
        deadline_s=deadline_s,
    )
    city, state = parse_location(location or "")
    request = AcquisitionRequest(
        city=city,
        state=state,
        keywords=tuple(clean_keywords(keywords)),
        listing_filter=ListingFilter.coerce(listing_type),
        filters=filters or LeadFilters(),
    )
    log.info(
        "acquire: location=%r city=%r state=%r listing=%s keywords=%s",
        location, city, state, request.listing_filter.value, list(request.keywords),
    )

    http_client = build_client(cfg, transport=transport)
    http = ListingHttp(
        client=http_client,
        session=SessionContext.fresh(cfg),
        config=cfg,
        deadline=Deadline.after(cfg.deadline_s),
        sleep=sleep,
    )
    chain = list(strategies) if strategies is not None else default_strategies(cfg)

    try:
        return await _run_chain(request, cfg, http, chain, location=location, sleep=sleep)
    except asyncio.CancelledError:
        raise
    except Exception:
        log.exception("acquisition for %r crashed; serving mock data", location)
        return _mock_result(request, cfg, location=location, attempts=0, trail=[], delays=[])
    finally:
        if transport is None:
            await http_client.aclose()


async def acquire_leads(
    location: str,
    keywords: Iterable[str] | None = None,
    listing_type: Any = ListingFilter.both,
    max_retries: int | None = None,
    **kw: Any,
) -> list[Lead]:
    result = await acquire_leads_with_status(location, keywords, listing_type, max_retries, **kw)
    return result.leads
