from typing import Any
from pydantic import BaseModel, ConfigDict, Field
from .data.base import EstimateResult, PropertyKind, PropertyQuery

class EstimateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: PropertyKind
    # Checked by the endpoint so a missing address reports "address missing"
    address: str | None = None
    living_area: float = Field(alias="livingArea", gt=0, allow_inf_nan=False)
    rooms: int = Field(ge=1)
    condition: str | None = None
    construction_year: int | None = Field(default=None, alias="constructionYear")
    floor: int | None = None
    has_elevator: bool | None = Field(default=None, alias="hasElevator")
    land_area: float | None = Field(default=None, alias="landArea", ge=0, allow_inf_nan=False)

    def to_query(self) -> PropertyQuery:
        return PropertyQuery(
            kind=self.type,
            address=(self.address or "").strip(),
            living_area_sqm=self.living_area,
            rooms=self.rooms,
            condition=self.condition,
            construction_year=self.construction_year,
            floor=self.floor,
            has_elevator=self.has_elevator,
            land_area_sqm=self.land_area,
        )

class PriceRange(BaseModel):
    min: int
    max: int

class EstimateResponse(BaseModel):
    average_price_per_sqm: int = Field(ge=0)
    estimated_price: int = Field(ge=0)
    price_range: PriceRange
    comparable_sales: int = Field(ge=0)
    confidence_score: float = Field(ge=0, le=1)

    @classmethod
    def from_result(cls, r: EstimateResult) -> "EstimateResponse":
        return cls(
            average_price_per_sqm=r.average_price_per_sqm,
            estimated_price=r.estimated_price,
            price_range=PriceRange(min=r.price_range_min, max=r.price_range_max),
            comparable_sales=r.comparable_sale_count,
            confidence_score=r.confidence_score,
        )

class ErrorResponse(BaseModel):
    error: str

# ----- Notifications -----

class NoticeProperty(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: PropertyKind
    address: str
    living_area: float = Field(alias="livingArea")
    rooms: int
    condition: str | None = None
    construction_year: int | None = Field(default=None, alias="constructionYear")
    floor: int | None = None
    has_elevator: bool | None = Field(default=None, alias="hasElevator")
    # Free-form answers from the later wizard steps (bathrooms, energyRating, ...)
    details: dict[str, Any] = Field(default_factory=dict)
    features: dict[str, Any] = Field(default_factory=dict)

class Ownership(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_owner: bool = Field(default=True, alias="isOwner")
    selling_timeline: str | None = Field(default=None, alias="sellingTimeline")
    wants_contact: bool = Field(default=False, alias="wantsContact")
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    phone: str | None = None

class EstimationNotice(BaseModel):
    property: NoticeProperty
    estimate: EstimateResponse
    ownership: Ownership | None = None

class ContactRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    phone: str | None = None

class Accepted(BaseModel):
    success: bool = True
