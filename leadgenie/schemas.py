from pydantic import BaseModel, Field
from datetime import datetime

from .models import Lead, LeadSource, ListingType
from .service_layer.use_cases.acquire import AcquisitionResult


class LeadOut(BaseModel):
    id: str
    source: LeadSource
    listing_type: ListingType

    address: str
    city: str
    state: str
    zipcode: str | None = None

    price: float = Field(..., gt=0)
    days_on_market: int = Field(0, ge=0)
    description: str = ""
    keywords_matched: list[str] = Field(default_factory=list)
    property_type: str | None = None
    listing_url: str

    created_at: datetime

    @classmethod
    def from_lead(cls, lead: Lead) -> "LeadOut":
        return cls(
            id=lead.id,
            source=lead.source,
            listing_type=lead.listing_type,
            address=lead.address,
            city=lead.city,
            state=lead.state,
            zipcode=lead.zipcode,
            price=lead.price,
            days_on_market=lead.days_on_market,
            description=lead.description,
            keywords_matched=list(lead.keywords_matched),
            property_type=lead.property_type,
            listing_url=lead.listing_url,
            created_at=lead.created_at,
        )


class AcquisitionOut(BaseModel):
    leads: list[LeadOut]
    count: int = Field(..., ge=0)
    degraded: bool
    strategy: str | None = None
    attempts: int = Field(..., ge=0)
    trail: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: AcquisitionResult) -> "AcquisitionOut":
        return cls(
            leads=[LeadOut.from_lead(x) for x in result.leads],
            count=len(result.leads),
            degraded=result.degraded,
            strategy=result.strategy,
            attempts=result.attempts,
            trail=list(result.trail),
        )
