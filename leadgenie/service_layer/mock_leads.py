# leadgenie/service_layer/mock_leads.py
from __future__ import annotations

import logging
from urllib.parse import quote_plus

from ..domain.address import compose_address, slugify
from ..models import Lead, LeadSource, ListingFilter, ListingType

log = logging.getLogger(__name__)

MOCK_COUNT = 6

_STREETS = ("Maple St", "Oak Ave", "Pine Dr", "Elm Ln", "Cedar Ct", "Willow Way", "Birch Pl", "Spruce Blvd")
_PROPERTY_TYPES = ("Single Family", "Condo", "Townhouse", "Multi-family")
_REMARKS = (
    "Motivated seller! Price recently reduced for quick sale.",
    "Fixer-upper with lots of potential in a desirable neighborhood.",
    "Selling as-is, perfect for investors looking to renovate.",
    "Estate sale, property needs some TLC but has good bones.",
    "Handyman special with great potential in an up-and-coming area.",
    "Owner financing available. Must sell soon due to job transfer.",
)


def _listing_type_for(i: int, requested: ListingFilter) -> ListingType:
    if requested == ListingFilter.owner_sold:
        return ListingType.owner_sold
    if requested == ListingFilter.agent_listed:
        return ListingType.agent_listed
    return ListingType.owner_sold if i % 3 == 0 else ListingType.agent_listed


def mock_leads(
    city: str,
    state: str,
    *,
    requested: ListingFilter = ListingFilter.both,
    base_url: str = "https://www.redfin.com",
    count: int = MOCK_COUNT,
) -> list[Lead]:
    """
    Deterministic placeholder leads for when every live strategy failed.

    Same inputs -> same addresses, prices and descriptions; only id/created_at differ.
    Tagged LeadSource.redfin_mock so callers can tell them apart from real listings.
    """
    log.warning("using mock listings for %s, %s", city, state)
    base = base_url.rstrip("/")
    out: list[Lead] = []

    for i in range(count):
        number = 1000 + 250 * (i + 1)
        street = f"{number} {_STREETS[i % len(_STREETS)]}"
        listing_type = _listing_type_for(i, requested)
        beds = 2 + i % 3
        baths = 1 + i % 2
        sqft = 1100 + 150 * i
        property_type = _PROPERTY_TYPES[i % len(_PROPERTY_TYPES)]

        description = f"{beds} beds, {baths} baths, {sqft} sqft. {_REMARKS[i % len(_REMARKS)]}"
        if listing_type == ListingType.owner_sold:
            description += " For sale by owner."

        slug = "-".join(p for p in (state.lower(), slugify(city).lower(), slugify(street).lower()) if p)
        out.append(
            Lead(
                address=compose_address(street, city, state),
                city=city,
                state=state,
                price=float(185_000 + 45_000 * i),
                days_on_market=7 * (i + 1),
                description=description,
                source=LeadSource.redfin_mock,
                listing_url=f"{base}/search?location={quote_plus(slug)}",
                property_type=property_type,
                listing_type=listing_type,
            )
        )
    return out
