# leadgenie/models.py
from __future__ import annotations

import enum
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


# -----------------------------
# Core enums
# -----------------------------
class LeadSource(str, enum.Enum):
    # one tag per acquisition strategy; mock is never disguised as live data
    redfin_export = "redfin_export"
    redfin_html_json = "redfin_html_json"
    redfin_html_dom = "redfin_html_dom"
    redfin_html_generic = "redfin_html_generic"
    redfin_mock = "redfin_mock"


class ListingType(str, enum.Enum):
    owner_sold = "owner_sold"
    agent_listed = "agent_listed"
    unspecified = "unspecified"


class ListingFilter(str, enum.Enum):
    owner_sold = "owner_sold"
    agent_listed = "agent_listed"
    both = "both"

    @classmethod
    def coerce(cls, raw: Any) -> "ListingFilter":
        """Accepts enum members plus the legacy 'fsbo' / 'agent' spellings."""
        if isinstance(raw, cls):
            return raw
        s = str(raw or "").strip().lower().replace("-", "_")
        aliases = {
            "fsbo": cls.owner_sold,
            "owner": cls.owner_sold,
            "by_owner": cls.owner_sold,
            "agent": cls.agent_listed,
            "mls": cls.agent_listed,
        }
        if s in aliases:
            return aliases[s]
        try:
            return cls(s)
        except ValueError:
            return cls.both

    def as_listing_type(self) -> ListingType:
        if self == ListingFilter.owner_sold:
            return ListingType.owner_sold
        if self == ListingFilter.agent_listed:
            return ListingType.agent_listed
        return ListingType.unspecified

    def accepts(self, listing_type: ListingType) -> bool:
        # undeterminable listings are kept; they already carry the requested type
        if self == ListingFilter.both or listing_type == ListingType.unspecified:
            return True
        return listing_type == self.as_listing_type()


def new_lead_id(source: LeadSource) -> str:
    return f"{source.value}-{uuid.uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------
# Lead
# -----------------------------
@dataclass(frozen=True)
class Lead:
    address: str
    city: str
    state: str
    price: float
    source: LeadSource
    listing_url: str
    listing_type: ListingType = ListingType.unspecified
    zipcode: str | None = None
    days_on_market: int = 0
    description: str = ""
    keywords_matched: tuple[str, ...] = ()
    property_type: str | None = None
    id: str = ""
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.id:
            object.__setattr__(self, "id", new_lead_id(self.source))
        if not (self.price > 0):
            raise ValueError(f"Lead price must be positive, got {self.price!r}")
        if self.days_on_market < 0:
            raise ValueError(f"days_on_market must be non-negative, got {self.days_on_market!r}")

    def to_dict(self) -> dict[str, Any]:
        """Plain dict for collaborators that persist or display leads."""
        out = asdict(self)
        out["source"] = self.source.value
        out["listing_type"] = self.listing_type.value
        out["keywords_matched"] = list(self.keywords_matched)
        out["created_at"] = self.created_at.isoformat()
        return out
