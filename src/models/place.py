from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Address columns written back to the record store
ADDRESS_FIELDS = ("street", "house_number", "city", "county", "state", "country", "postcode")


class AddressComponents(BaseModel):
    """Normalized address. A missing field means the provider did not supply it."""

    street: Optional[str] = None
    house_number: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postcode: Optional[str] = None

    def to_update_fields(self) -> Dict[str, str]:
        # Fields the provider did not supply are left out so stored values survive
        supplied = self.model_dump(exclude_none=True)
        return {name: supplied[name] for name in ADDRESS_FIELDS if name in supplied}


class LocationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    latitude: float
    longitude: float
    name: Optional[str] = None
    street: Optional[str] = None
    house_number: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postcode: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def needs_address(self) -> bool:
        # Candidate rule: street or city is missing
        return not self.street or not self.city


class Coordinate(BaseModel):
    id: str
    latitude: float
    longitude: float


class EnrichmentResult(BaseModel):
    """
    Outcome of resolving one coordinate.

    address is None with no error when the provider had nothing for this place.
    error is set when the resolution itself failed.
    """

    id: str
    address: Optional[AddressComponents] = None
    error: Optional[str] = None


class BatchReport(BaseModel):
    message: str
    enriched_count: int = 0
    total: Optional[int] = None
    errors: List[str] = Field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        response: Dict[str, Any] = {
            "message": self.message,
            "enriched": self.enriched_count,
        }
        if self.total is not None:
            response["total"] = self.total
        if self.errors:
            response["errors"] = list(self.errors)
        return response


# API schemas

class EnrichRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    place_ids: Any = Field(default=None, alias="placeIds")
    batch_mode: bool = Field(default=False, alias="batchMode")


class EnrichResponse(BaseModel):
    message: str
    enriched: int
    total: Optional[int] = None
    errors: Optional[List[str]] = None


class CandidatePlace(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    latitude: float
    longitude: float
    street: Optional[str] = None
    city: Optional[str] = None
    created_at: Optional[datetime] = None


class CandidateListResponse(BaseModel):
    places: List[CandidatePlace]
    total: int
    limit: int
    offset: int


class LookupRequest(BaseModel):
    latitude: Any = None
    longitude: Any = None
    language: Optional[str] = None


class LookupResponse(BaseModel):
    coordinates: Dict[str, float]
    address: AddressComponents
    formatted: str
    timestamp: datetime
