"""Pydantic models for chart API request/response validation and the chart snapshot."""

from datetime import date as date_type, datetime
from typing import Optional

import pytz
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from chart import AspectType, BodyId, Element, Modality


class CamelModel(BaseModel):
    """Models whose JSON form uses camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SnapshotModel(CamelModel):
    """Immutable parts of a chart snapshot."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# Request Models
class BirthData(BaseModel):
    """Birth (or event) moment and place."""

    name: Optional[str] = Field(None, description="Name of the chart subject")
    date: date_type = Field(..., description="Local date", examples=["1990-06-15"])
    time: str = Field(
        ...,
        description="Local time as HH:MM (24h) or h:mm am/pm",
        examples=["14:30"]
    )
    place: Optional[str] = Field(None, description="Free-text place name")
    latitude: float = Field(
        ...,
        ge=-90,
        le=90,
        description="Latitude in decimal degrees (-90 to 90)"
    )
    longitude: float = Field(
        ...,
        ge=-180,
        le=180,
        description="Longitude in decimal degrees (-180 to 180)"
    )
    timezone: Optional[str] = Field(
        None,
        description="IANA timezone name (e.g., 'America/New_York'). If not provided, assumes UTC."
    )

    @field_validator('time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Accept 24-hour or 12-hour input and store it as HH:MM."""
        value = v.strip()
        for fmt in ('%H:%M', '%I:%M %p', '%I:%M%p'):
            try:
                return datetime.strptime(value, fmt).strftime('%H:%M')
            except ValueError:
                continue
        raise ValueError(f"Invalid time: {v}")

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Validate timezone string."""
        if v is None:
            return v
        try:
            pytz.timezone(v)
            return v
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}")

    def local_datetime(self) -> datetime:
        hour, minute = (int(part) for part in self.time.split(':'))
        return datetime(self.date.year, self.date.month, self.date.day, hour, minute)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{
                "name": "Test User",
                "date": "1990-06-15",
                "time": "14:30",
                "place": "New York, NY",
                "latitude": 40.7128,
                "longitude": -74.0060,
                "timezone": "America/New_York"
            }]
        }
    )


class BodyInput(CamelModel):
    """One body as delivered by a position source."""
    id: BodyId
    name: Optional[str] = None
    symbol: Optional[str] = None
    longitude: float
    latitude: Optional[float] = None
    color: Optional[str] = None
    is_retrograde: bool = False


class HouseCuspInput(CamelModel):
    house_number: int = Field(..., ge=1, le=12)
    longitude: float


class PointInput(CamelModel):
    longitude: float


class ChartSnapshotRequest(BaseModel):
    """Request model for building a snapshot from known positions."""
    birth: BirthData
    bodies: list[BodyInput]
    cusps: list[HouseCuspInput]
    ascendant: PointInput
    midheaven: PointInput
    include_minor_aspects: bool = Field(
        default=False,
        description="Include minor aspects in calculations"
    )
    orb_factor: float = Field(
        default=1.0,
        ge=0.1,
        le=3.0,
        description="Multiplier for aspect orbs (1.0 = default, <1.0 = tighter, >1.0 = wider)"
    )

    @field_validator('cusps')
    @classmethod
    def validate_cusps(cls, v: list[HouseCuspInput]) -> list[HouseCuspInput]:
        """Require the 12 cusps in house order."""
        if [c.house_number for c in v] != list(range(1, 13)):
            raise ValueError("cusps must contain houses 1 to 12 in order")
        return v


class ChartCalculationRequest(BaseModel):
    """Request model for chart calculation from birth data."""
    birth: BirthData
    house_system: Optional[str] = Field(
        None,
        description="House system for the Swiss Ephemeris source (defaults to settings)"
    )
    include_minor_aspects: Optional[bool] = Field(
        None,
        description="Include minor aspects (defaults to settings)"
    )
    orb_factor: Optional[float] = Field(
        None,
        ge=0.1,
        le=3.0,
        description="Multiplier for aspect orbs (defaults to settings)"
    )


class ChartCalculationRequestWithId(ChartCalculationRequest):
    """Chart request with optional ID for batch operations."""
    id: Optional[str] = Field(
        None,
        description="Optional identifier for this chart in batch operations"
    )


class ChartBatchRequest(BaseModel):
    """Request model for batch chart calculations."""
    charts: list[ChartCalculationRequestWithId] = Field(
        ...,
        description="List of charts to calculate"
    )


class TransitMoment(BaseModel):
    """Moment (and observer place) the transits are computed for."""
    date: datetime = Field(
        ...,
        description="Transit date and time in ISO 8601 format"
    )
    timezone: Optional[str] = Field(
        None,
        description="IANA timezone name for the transit date"
    )
    latitude: float = Field(40.7128, ge=-90, le=90)
    longitude: float = Field(-74.0060, ge=-180, le=180)

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            pytz.timezone(v)
            return v
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}")


class TransitCalculationRequest(ChartCalculationRequest):
    """Request model for transit calculation."""
    transit: TransitMoment

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{
                "birth": {
                    "date": "1990-06-15",
                    "time": "14:30",
                    "latitude": 40.7128,
                    "longitude": -74.0060,
                    "timezone": "America/New_York"
                },
                "transit": {
                    "date": "2025-12-25T12:00:00",
                    "timezone": "America/New_York"
                },
                "include_minor_aspects": False,
                "orb_factor": 1.0
            }]
        }
    )


class AnalysisRequest(ChartCalculationRequest):
    """Request model for the text analysis of a chart."""
    transit: Optional[TransitMoment] = None


# Snapshot Models
class BasicInfo(SnapshotModel):
    name: str
    birth_date: str
    birth_time: str
    birth_place: str
    latitude: float
    longitude: float


class PlanetPlacement(SnapshotModel):
    """A body placed in sign and house."""
    id: BodyId
    planet: str
    symbol: str
    longitude: float
    sign: str
    degree: str
    house: int
    is_retrograde: bool
    element: Element
    modality: Modality
    color: Optional[str] = None


class HousePlacement(SnapshotModel):
    house: int
    sign: str
    degree: str
    longitude: float


class AspectEntry(SnapshotModel):
    aspect: AspectType
    planet1: str
    planet2: str
    orb: str


class PointPlacement(SnapshotModel):
    longitude: float
    sign: str
    degree: str


class SpecialPoints(SnapshotModel):
    ascendant: PointPlacement
    midheaven: PointPlacement


class TransitAspectEntry(SnapshotModel):
    aspect: AspectType
    transit_planet: str
    natal_planet: str
    orb: str


class TransitSnapshot(SnapshotModel):
    date: str
    time: str
    planets: list[PlanetPlacement]
    aspects: list[TransitAspectEntry]
    transit_to_transit: list[AspectEntry] = Field(default_factory=list)


class ChartSnapshot(SnapshotModel):
    """Complete chart snapshot consumed by renderers, exporters and analysis."""
    basic_info: BasicInfo
    planets: list[PlanetPlacement]
    houses: list[HousePlacement]
    aspects: list[AspectEntry]
    special_points: SpecialPoints
    transits: Optional[TransitSnapshot] = None
    timestamp: str

    @model_validator(mode='after')
    def validate_houses(self):
        """A snapshot always carries the 12 house cusps."""
        if len(self.houses) != 12:
            raise ValueError("snapshot must contain 12 houses")
        return self


# Response Models
class ChartAnalysis(BaseModel):
    """Text analysis sections for a chart."""
    summary: str
    planets: str
    houses: str
    aspects: str
    elements: str
    transits: Optional[str] = None


class ErrorDetail(BaseModel):
    """Error detail for batch operations."""
    type: str
    message: str
    detail: Optional[dict] = None


class BatchResultItem(BaseModel):
    """Single result in a batch operation."""
    id: Optional[str]
    success: bool
    data: Optional[ChartSnapshot] = None
    error: Optional[ErrorDetail] = None


class BatchSummary(BaseModel):
    """Summary statistics for batch operation."""
    total: int
    successful: int
    failed: int


class BatchResponse(BaseModel):
    """Response for batch operations."""
    results: list[BatchResultItem]
    summary: BatchSummary


class AspectDefinitionResponse(BaseModel):
    """Aspect definition with its orb."""
    aspect: AspectType
    name: str
    symbol: str
    angle: float
    orb: float


class ConfigAspectsResponse(BaseModel):
    """Configuration response for aspects."""
    major_aspects: list[AspectDefinitionResponse]
    minor_aspects: list[AspectDefinitionResponse]


class ConfigHouseSystemsResponse(BaseModel):
    """Configuration response for house systems."""
    house_systems: list[str]


# Profile Models
class Profile(BaseModel):
    """Saved birth data."""
    id: Optional[str] = None
    birth: BirthData
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
