# leadgenie/domain/filters.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Literal

from ..models import Lead, ListingFilter


def keyword_key(keyword: str) -> str:
    """What a keyword is compared by: whitespace collapsed, lowercased."""
    return " ".join(str(keyword).split()).lower()


def clean_keywords(keywords: Iterable[str] | None) -> list[str]:
    """
    Drop blanks and duplicates, keep caller order.
    Survivors are the caller's own strings; only comparison is normalized.
    """
    out: list[str] = []
    seen: set[str] = set()
    for k in keywords or []:
        if k is None:
            continue
        key = keyword_key(k)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(k)
    return out


def match_keywords(lead: Lead, keywords: list[str]) -> tuple[str, ...]:
    texts = [keyword_key(lead.address), keyword_key(lead.description)]
    return tuple(k for k in keywords if any(keyword_key(k) in t for t in texts))


def apply_keyword_filter(leads: Iterable[Lead], keywords: Iterable[str] | None) -> list[Lead]:
    """
    No keywords: every lead passes with an empty keywords_matched.
    Keywords: only leads matching at least one survive, annotated with the matches.
    """
    kws = clean_keywords(keywords)
    out: list[Lead] = []
    for lead in leads:
        matched = match_keywords(lead, kws) if kws else ()
        if kws and not matched:
            continue
        out.append(replace(lead, keywords_matched=matched))
    return out


def apply_listing_filter(leads: Iterable[Lead], requested: ListingFilter) -> list[Lead]:
    return [lead for lead in leads if requested.accepts(lead.listing_type)]


@dataclass(frozen=True)
class LeadFilters:
    """Optional caller post-filters (price window, days on market)."""

    price_min: float | None = None
    price_max: float | None = None
    days_on_market: int | None = None
    days_on_market_option: Literal["less", "more"] = "less"

    def accepts(self, lead: Lead) -> bool:
        if self.price_min is not None and lead.price < self.price_min:
            return False
        if self.price_max is not None and lead.price > self.price_max:
            return False
        if self.days_on_market is not None:
            if self.days_on_market_option == "more":
                return lead.days_on_market >= self.days_on_market
            return lead.days_on_market <= self.days_on_market
        return True

    def apply(self, leads: Iterable[Lead]) -> list[Lead]:
        return [lead for lead in leads if self.accepts(lead)]
