from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lon: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class Place(BaseModel):
    name: str
    reason: str = ""
    coordinate: Coordinate | None = None

    def to_response(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "reason": self.reason,
            "lat": self.coordinate.lat if self.coordinate else None,
            "lon": self.coordinate.lon if self.coordinate else None,
        }


class Route(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Coordinate
    end: Coordinate


class Itinerary(BaseModel):
    route: Route
    places: list[Place] = Field(default_factory=list)
    narrative: str = ""

    def to_response(self) -> dict[str, Any]:
        """Shape returned by the API and stored as the trip's plan."""
        return {
            "route": self.route.model_dump(),
            "places": [p.to_response() for p in self.places],
            "plan": self.narrative,
        }


class GeocodeResult(BaseModel):
    """A resolved place with optional administrative metadata from the provider."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    display_name: str = ""
    city: str | None = None
    state: str | None = None
    country: str | None = None


# =============================================================================
# Trip request / persistence schemas
# =============================================================================


class TripType(str, Enum):
    FAMILY = "family"
    FRIENDS = "friends"
    BUSINESS = "business"


class TripGenerateRequest(BaseModel):
    """Body of POST /api/generate-plan."""

    model_config = ConfigDict(populate_by_name=True)

    start_location: str = Field(..., alias="startLocation", min_length=1, max_length=200)
    destination: str = Field(..., min_length=1, max_length=200)
    days: int = Field(..., gt=0, le=60)
    interests: list[str] = Field(default_factory=list)
    trip_type: TripType = Field(TripType.FRIENDS, alias="tripType")

    @field_validator("start_location", "destination")
    @classmethod
    def strip_location(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Location must not be blank")
        return v

    @field_validator("interests", mode="before")
    @classmethod
    def clean_interests(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, (list, tuple)):
            raise ValueError("interests must be a list of strings")

        cleaned: list[str] = []
        seen: set[str] = set()
        for item in v:
            interest = str(item).strip()
            if interest and interest.casefold() not in seen:
                seen.add(interest.casefold())
                cleaned.append(interest)
        return cleaned

    @field_validator("trip_type", mode="before")
    @classmethod
    def default_trip_type(cls, v: Any) -> Any:
        if v is None or v == "":
            return TripType.FRIENDS
        if isinstance(v, str):
            return v.strip().lower()
        return v


class TripRecord(BaseModel):
    """A generated trip as appended to a user's history."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    start_location: str = Field(..., alias="startLocation")
    destination: str
    days: int
    interests: list[str] = Field(default_factory=list)
    trip_type: TripType = Field(TripType.FRIENDS, alias="tripType")
    plan: dict[str, Any]
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )
