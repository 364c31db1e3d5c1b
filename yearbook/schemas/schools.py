from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from yearbook.services.currency import Currency

ALL = "all"


class SchoolRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    country: Optional[str] = None
    year_founded: Optional[int] = Field(default=None, alias="yearFounded")
    city: Optional[str] = None
    state: Optional[str] = None
    logo: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        # Upstream ids are sometimes numeric.
        return str(v) if v is not None else v


class FilterCriteria(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(default="", description="Free-text search string.")
    country: str = Field(
        default=ALL, description="Exact country name, or 'all' for no constraint."
    )
    founding_decade: str = Field(
        default=ALL,
        alias="foundingDecade",
        description="Decade bucket label such as '1990s', or 'all'.",
    )

    @field_validator("query", mode="before")
    @classmethod
    def default_query(cls, v):
        return "" if v is None else v

    @field_validator("country", "founding_decade", mode="before")
    @classmethod
    def default_all(cls, v):
        return ALL if v in (None, "") else v


class DisplayLimitsIn(BaseModel):
    no_query_limit: Optional[int] = Field(default=None, ge=1, alias="noQueryLimit")
    query_limit: Optional[int] = Field(default=None, ge=1, alias="queryLimit")

    model_config = ConfigDict(populate_by_name=True)


class SchoolSearchRequest(BaseModel):
    criteria: FilterCriteria = Field(default_factory=FilterCriteria)
    preset: str = Field(
        default="school_select",
        description="Named search preset ('school_select' or 'advanced_search').",
    )
    limits: Optional[DisplayLimitsIn] = Field(
        default=None,
        description="Overrides the preset's display caps when provided.",
    )


class SchoolSearchMeta(BaseModel):
    total_matches: int
    returned: int


class SchoolSearchResponse(BaseModel):
    criteria: FilterCriteria
    preset: str
    meta: SchoolSearchMeta
    schools: List[SchoolRecord]


class DecadeBucketOut(BaseModel):
    label: str
    start: int
    end: int


class FilterMetadata(BaseModel):
    countries: List[str]
    decades: List[DecadeBucketOut]
    presets: List[str]


class PriceOut(BaseModel):
    product: str
    usd_amount: float
    amount: float
    formatted: str


class PriceListResponse(BaseModel):
    currency: Currency
    exchange_rate: float
    prices: List[PriceOut]


class VerificationRequest(BaseModel):
    email: EmailStr


class VerificationIssued(BaseModel):
    email: str
    email_sent: bool
    message: str


class VerificationResultOut(BaseModel):
    success: bool
    message: str
