import re
from dataclasses import replace

import httpx
import pytest

from leadgenie.adapters.acquisition.export import EXPORT_PATH
from leadgenie.adapters.acquisition.location import AUTOCOMPLETE_PATH
from leadgenie.domain.filters import LeadFilters
from leadgenie.models import Lead, LeadSource, ListingType
from leadgenie.schemas import AcquisitionOut
from leadgenie.service_layer.mock_leads import mock_leads
from leadgenie.service_layer.use_cases.acquire import (
    MAX_RESULTS,
    AcquisitionResult,
    acquire_leads,
    acquire_leads_with_status,
)

from conftest import EXPORT_CSV, SEARCH_PAGE_CARDS, SEARCH_PAGE_JSON, SEARCH_PAGE_LINKS

AUTOCOMPLETE_OK = '{}&&{"payload":{"exactMatch":{"id":"2_30818","type":"2","url":"/city/30818/TX/Austin"}}}'
MOCK_ADDRESS_RE = re.compile(r"^\d+ [A-Z][a-z]+ [A-Z][a-z]+, Austin, TX$")


@pytest.mark.asyncio
async def test_export_path_end_to_end(config, router, sleeps):
    handler = router(
        {
            AUTOCOMPLETE_PATH: (200, AUTOCOMPLETE_OK),
            "/city/30818/TX/Austin": (200, '<script>{"queryId":"q-42"}</script>'),
            EXPORT_PATH: (200, EXPORT_CSV),
        }
    )
    res = await acquire_leads_with_status(
        "Austin, TX", [], "both", 3, config=config, transport=httpx.MockTransport(handler), sleep=sleeps
    )

    assert res.degraded is False
    assert res.strategy == "export"
    assert res.attempts == 1
    assert res.trail == ["resolve", "export"]
    # short row, N/A price and the Round Rock row are gone
    assert [x.address for x in res.leads] == [
        "123 Main St, Austin, TX 78701",
        "45 Elm Ln, Unit 4, Austin, TX 78702",
    ]
    assert all(x.source == LeadSource.redfin_export for x in res.leads)

    export_req = [r for r in handler.seen if r.url.path == EXPORT_PATH][0]
    assert export_req.url.params["region_id"] == "30818"
    assert export_req.url.params["searchQueryId"] == "q-42"
    assert sleeps.recorded == []


@pytest.mark.asyncio
async def test_owner_sold_request_filters_agent_rows(config, router):
    handler = router({AUTOCOMPLETE_PATH: (200, AUTOCOMPLETE_OK), EXPORT_PATH: (200, EXPORT_CSV)})
    leads = await acquire_leads("Austin, TX", None, "owner_sold", 1, config=config, transport=httpx.MockTransport(handler))

    assert [x.address for x in leads] == ["45 Elm Ln, Unit 4, Austin, TX 78702"]
    assert leads[0].listing_type == ListingType.owner_sold
    export_req = [r for r in handler.seen if r.url.path == EXPORT_PATH][0]
    assert export_req.url.params["is_fsbo"] == "true"


@pytest.mark.asyncio
async def test_keywords_are_applied_to_live_results(config, router):
    handler = router({AUTOCOMPLETE_PATH: (200, AUTOCOMPLETE_OK), EXPORT_PATH: (200, EXPORT_CSV)})
    leads = await acquire_leads("Austin, TX", ["main"], "both", 1, config=config, transport=httpx.MockTransport(handler))

    assert [x.address for x in leads] == ["123 Main St, Austin, TX 78701"]
    assert leads[0].keywords_matched == ("main",)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "page, strategy, source",
    [
        (SEARCH_PAGE_JSON, "html_json", LeadSource.redfin_html_json),
        (SEARCH_PAGE_CARDS, "html_dom", LeadSource.redfin_html_dom),
        (SEARCH_PAGE_LINKS, "html_generic", LeadSource.redfin_html_generic),
    ],
)
async def test_html_fallback_order(config, router, page, strategy, source):
    # export is dead; the search page holds only one kind of listing data
    handler = router(
        {
            AUTOCOMPLETE_PATH: (200, AUTOCOMPLETE_OK),
            EXPORT_PATH: (500, "boom"),
            "/city/30818/TX/Austin": (200, page),
        }
    )
    res = await acquire_leads_with_status("Austin, TX", [], config=config, transport=httpx.MockTransport(handler))

    chain = ["export", "html_json", "html_dom", "html_generic"]
    assert res.degraded is False
    assert res.strategy == strategy
    assert res.trail == ["resolve"] + chain[: chain.index(strategy) + 1]
    assert res.leads
    assert all(x.source == source for x in res.leads)


@pytest.mark.asyncio
async def test_retry_bound_then_deterministic_mock(config, router, sleeps):
    cfg = replace(config, retry_base_delay_s=1.5)
    handler = router({}, default_status=503)

    res = await acquire_leads_with_status(
        "Austin, TX", [], "both", 3, config=cfg, transport=httpx.MockTransport(handler), sleep=sleeps
    )

    assert res.attempts == 3
    assert res.trail.count("resolve") == 3
    assert res.trail[-1] == "mock"
    assert sleeps.recorded == [1.5, 3.0]
    assert res.retry_delays == [1.5, 3.0]

    assert res.degraded is True
    assert res.strategy == "mock"
    assert len(res.leads) == 6
    assert all(x.source == LeadSource.redfin_mock for x in res.leads)
    assert all(MOCK_ADDRESS_RE.match(x.address) for x in res.leads), [x.address for x in res.leads]
    assert res.leads[0].address == "1250 Maple St, Austin, TX"


@pytest.mark.asyncio
async def test_mock_set_is_stable_between_calls(config, router):
    handler = router({}, default_status=503)
    a = await acquire_leads("Austin, TX", [], "both", 1, config=config, transport=httpx.MockTransport(handler))
    b = await acquire_leads("Austin, TX", [], "both", 1, config=config, transport=httpx.MockTransport(handler))

    assert [(x.address, x.price, x.description) for x in a] == [(x.address, x.price, x.description) for x in b]
    assert a[0].id != b[0].id


@pytest.mark.asyncio
async def test_mock_goes_through_keyword_filter(config, router):
    handler = router({}, default_status=503)
    leads = await acquire_leads("Austin, TX", ["motivated"], "owner_sold", 1, config=config, transport=httpx.MockTransport(handler))

    assert len(leads) == 1
    assert leads[0].keywords_matched == ("motivated",)
    assert leads[0].listing_type == ListingType.owner_sold

    assert await acquire_leads("Austin, TX", ["swimming pool"], "both", 1, config=config, transport=httpx.MockTransport(handler)) == []


@pytest.mark.asyncio
async def test_mock_fallback_can_be_disabled(config, router):
    handler = router({}, default_status=503)
    res = await acquire_leads_with_status(
        "Austin, TX", [], config=replace(config, mock_fallback_enabled=False), max_retries=1, transport=httpx.MockTransport(handler)
    )
    assert res.leads == []
    assert res.degraded is True
    assert res.strategy is None


@pytest.mark.asyncio
async def test_expired_deadline_skips_network(config, router):
    handler = router({AUTOCOMPLETE_PATH: (200, AUTOCOMPLETE_OK), EXPORT_PATH: (200, EXPORT_CSV)})
    res = await acquire_leads_with_status("Austin, TX", [], config=config, deadline_s=0, transport=httpx.MockTransport(handler))

    assert handler.seen == []
    assert res.attempts == 0
    assert res.degraded is True


class _Flood:
    name = "flood"

    async def attempt(self, ctx):
        leads = [
            Lead(
                address=f"{i} Flood St, Austin, TX",
                city="Austin",
                state="TX",
                price=100000.0 + i,
                days_on_market=i,
                source=LeadSource.redfin_export,
                listing_url=f"https://www.redfin.com/home/{i}",
            )
            for i in range(1, 81)
        ]
        return leads, True


class _Broken:
    name = "broken"

    async def attempt(self, ctx):
        raise RuntimeError("strategy bug")


@pytest.mark.asyncio
async def test_results_are_capped(config, router):
    handler = router({})
    res = await acquire_leads_with_status("Austin, TX", [], config=config, transport=httpx.MockTransport(handler), strategies=[_Flood()])
    assert len(res.leads) == MAX_RESULTS
    assert res.strategy == "flood"


@pytest.mark.asyncio
async def test_post_filters_apply_before_cap(config, router):
    handler = router({})
    res = await acquire_leads_with_status(
        "Austin, TX",
        [],
        config=config,
        transport=httpx.MockTransport(handler),
        strategies=[_Flood()],
        filters=LeadFilters(days_on_market=70, days_on_market_option="more"),
    )
    assert [x.days_on_market for x in res.leads] == list(range(70, 81))


@pytest.mark.asyncio
async def test_unexpected_errors_still_return_a_list(config, router):
    handler = router({})
    res = await acquire_leads_with_status(
        "Austin, TX", [], max_retries=1, config=config, transport=httpx.MockTransport(handler), strategies=[_Broken()]
    )
    assert res.degraded is True
    assert len(res.leads) == 6


@pytest.mark.asyncio
async def test_unparseable_location_never_raises(config, router):
    handler = router({}, default_status=503)
    leads = await acquire_leads("", [], "both", 1, config=config, transport=httpx.MockTransport(handler))
    assert isinstance(leads, list)


def test_acquisition_out_schema():
    leads = mock_leads("Austin", "TX")
    out = AcquisitionOut.from_result(AcquisitionResult(leads, True, "mock", 3, ["resolve", "mock"]))
    data = out.model_dump(mode="json")

    assert data["degraded"] is True
    assert data["count"] == 6
    assert data["leads"][0]["source"] == "redfin_mock"
    assert data["leads"][0]["address"] == "1250 Maple St, Austin, TX"
    assert data["leads"][0]["keywords_matched"] == []


@pytest.mark.asyncio
async def test_strict_city_match_can_be_relaxed(config, router):
    handler = router({AUTOCOMPLETE_PATH: (200, AUTOCOMPLETE_OK), EXPORT_PATH: (200, EXPORT_CSV)})
    leads = await acquire_leads(
        "Austin, TX", [], "both", 1, config=replace(config, strict_city_match=False), transport=httpx.MockTransport(handler)
    )
    assert [x.city for x in leads] == ["Austin", "Austin", "Round Rock"]


@pytest.mark.asyncio
async def test_calls_sharing_a_transport_do_not_share_cookies(config, router):
    def autocomplete(request):
        if "Austin" in request.url.params["location"]:
            return httpx.Response(200, text=AUTOCOMPLETE_OK, headers={"Set-Cookie": "RF_AUTH=caller-a; Path=/"})
        return httpx.Response(200, text='{}&&{"payload":{"exactMatch":{"id":"2_11093","url":"/city/11093/CO/Denver"}}}')

    handler = router({AUTOCOMPLETE_PATH: autocomplete, EXPORT_PATH: (200, EXPORT_CSV)})
    transport = httpx.MockTransport(handler)

    await acquire_leads("Austin, TX", [], "both", 1, config=config, transport=transport)
    first_call = len(handler.seen)
    export_req = [r for r in handler.seen if r.url.path == EXPORT_PATH][0]
    assert "RF_AUTH=caller-a" in export_req.headers["Cookie"]

    await acquire_leads("Denver, CO", [], "both", 1, config=config, transport=transport)
    second_call = handler.seen[first_call:]
    assert second_call
    assert all("caller-a" not in r.headers.get("Cookie", "") for r in second_call)


@pytest.mark.asyncio
async def test_page_read_while_resolving_is_not_fetched_again(config, router):
    handler = router(
        {
            AUTOCOMPLETE_PATH: (500, "boom"),
            "/TX/Austin": (301, "", {"Location": "https://www.redfin.com/city/30818/TX/Austin"}),
            "/city/30818/TX/Austin": (200, SEARCH_PAGE_CARDS),
            EXPORT_PATH: (500, "boom"),
        }
    )
    res = await acquire_leads_with_status("Austin, TX", [], max_retries=1, config=config, transport=httpx.MockTransport(handler))

    assert res.strategy == "html_dom"
    assert res.degraded is False
    paths = [r.url.path for r in handler.seen]
    assert paths.count("/TX/Austin") == 1
    assert paths.count("/city/30818/TX/Austin") == 1
