# tests/conftest.py
from typing import Any, Callable

import httpx
import pytest

from leadgenie.adapters.clients.http_resilience import ListingHttp
from leadgenie.adapters.clients.session import SessionContext
from leadgenie.config import AcquisitionConfig


EXPORT_CSV = (
    "SALE TYPE,PROPERTY TYPE,ADDRESS,CITY,STATE OR PROVINCE,ZIP OR POSTAL CODE,PRICE,BEDS,BATHS,"
    "SQUARE FEET,LOT SIZE,YEAR BUILT,DAYS ON MARKET,$/SQUARE FEET,"
    "URL (SEE https://www.redfin.com/buy-a-home/comparative-market-analysis FOR INFO ON PRICING),MLS#\n"
    'MLS Listing,Single Family Residential,123 Main St,Austin,TX,78701,"$450,000",3,2,1800,5000,1995,12,250,'
    "https://www.redfin.com/TX/Austin/123-Main-St-78701/home/1,MLS1\n"
    'For-Sale-by-Owner Listing,Townhouse,"45 Elm Ln, Unit 4",Austin,TX,78702,325000,2,1.5,1100,,2005,40,295,'
    "https://www.redfin.com/TX/Austin/45-Elm-Ln-78702/home/2,\n"
    "MLS Listing,Condo,9 Short Rd\n"
    "MLS Listing,Condo,77 Nowhere Ave,Austin,TX,78703,N/A,1,1,700,,1980,3,,,MLS3\n"
    "MLS Listing,Single Family Residential,8 Ridge Rd,Round Rock,TX,78664,275000,3,2,1500,,2010,5,183,,MLS4\n"
)

SEARCH_PAGE_JSON = """
<html><head><title>Austin homes</title></head><body>
<script>window.__INITIAL_STATE__ = {"searchResults": {"listResults": [
  {"streetAddress": "10 Oak Ave", "city": "Austin", "state": "TX", "zipcode": "78702",
   "price": "$425,000", "beds": 3, "baths": 2, "area": 1500, "yearBuilt": 1987,
   "detailUrl": "/homedetails/10-Oak-Ave-Austin-TX-78702/1_zpid/"},
  {"streetAddress": "12 Oak Ave", "city": "Austin", "state": "TX", "zipcode": "78702",
   "price": "$399,000", "beds": 2, "baths": 1, "area": 980, "isFSBO": true,
   "detailUrl": "/homedetails/12-Oak-Ave-Austin-TX-78702/2_zpid/"}
]}};</script>
</body></html>
"""

SEARCH_PAGE_CARDS = """
<html><body>
<div class="HomeCard">
  <a href="/TX/Austin/55-Pine-Dr-78704/home/777"><div class="homeAddressV2">55 Pine Dr</div></a>
  <div class="cityStateZip">Austin, TX 78704</div>
  <span class="homecardV2Price">$299,900</span>
  <div class="HomeStatsV2">3 Beds 2 Baths 1,400 Sq. Ft.</div>
</div>
<div class="HomeCard">
  <div class="homeAddressV2">No Price Way</div>
</div>
</body></html>
"""

SEARCH_PAGE_LINKS = """
<html><body>
<ul>
  <li><a href="/TX/Austin/9-Cedar-Ct-78705/home/901" title="9 Cedar Ct, Austin, TX 78705">$510,000</a></li>
  <li><a href="/TX/Austin/9-Cedar-Ct-78705/home/901" title="9 Cedar Ct, Austin, TX 78705">photos</a></li>
  <li><a href="/about">About us</a></li>
</ul>
</body></html>
"""

Responder = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def config():
    """No polite gap, no retry delay, no snapshots: tests never wait on the clock."""
    return AcquisitionConfig(
        http_sleep_s=0.0,
        retry_base_delay_s=0.0,
        snapshots_enabled=False,
    )


@pytest.fixture
def router():
    """
    Build a MockTransport handler from {path: response}.
    A response is (status, text), (status, text, headers) or a callable(request).
    Unknown paths -> 404. Every request is appended to handler.seen.
    """

    def _make(routes: dict[str, Any], default_status: int = 404) -> Responder:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            spec = routes.get(request.url.path)
            if spec is None:
                return httpx.Response(default_status, text="not found")
            if callable(spec):
                return spec(request)
            status, text, *rest = spec
            return httpx.Response(status, text=text, headers=rest[0] if rest else None)

        handler.seen = seen  # type: ignore[attr-defined]
        return handler

    return _make


@pytest.fixture
async def make_client():
    clients: list[httpx.AsyncClient] = []

    def _make(handler: Responder) -> httpx.AsyncClient:
        c = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        await c.aclose()


@pytest.fixture
def make_http(config, make_client):
    def _make(handler: Responder, cfg: AcquisitionConfig | None = None) -> ListingHttp:
        cfg = cfg or config
        return ListingHttp(client=make_client(handler), session=SessionContext.fresh(cfg), config=cfg)

    return _make


@pytest.fixture
def sleeps():
    """Fake sleep that records requested delays instead of waiting."""
    recorded: list[float] = []

    async def _sleep(delay: float) -> None:
        recorded.append(delay)

    _sleep.recorded = recorded  # type: ignore[attr-defined]
    return _sleep
