import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path

from tripplanner.core.geocoder import Geocoder, get_geocoder
from tripplanner.core.itinerary_assembler import ItineraryAssembler
from tripplanner.core.llm_provider import get_llm_provider
from tripplanner.core.repository import TripRepository, get_repo
from tripplanner.core.route_filter import build_policy
from tripplanner.core.schemas import TripGenerateRequest, TripRecord
from tripplanner.core.security import get_current_user_id
from tripplanner.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["trips"])


def get_assembler(
    geocoder: Geocoder = Depends(get_geocoder),
    provider: Any = Depends(get_llm_provider),
    settings: Settings = Depends(get_settings),
) -> ItineraryAssembler:
    """A fresh assembler per request over the shared geocoder and provider."""
    return ItineraryAssembler(
        geocoder=geocoder,
        provider=provider,
        policy=build_policy(settings),
        temperature=settings.llm_temperature,
        llm_timeout=settings.llm_timeout_seconds,
    )


@router.post("/generate-plan")
async def generate_plan(
    payload: TripGenerateRequest,
    user_id: str = Depends(get_current_user_id),
    assembler: ItineraryAssembler = Depends(get_assembler),
    repo: TripRepository = Depends(get_repo),
) -> dict[str, Any]:
    """
    Generate a route-aware trip plan and append it to the user's history.

    Terminal pipeline errors are raised as TripPlanningError subclasses and
    rendered by the app-level handler; nothing is persisted on failure.
    """
    itinerary = await assembler.assemble(
        payload.start_location,
        payload.destination,
        payload.days,
        payload.interests,
        payload.trip_type,
    )
    plan = itinerary.to_response()

    record = TripRecord(
        id=f"trip_{uuid.uuid4().hex[:12]}",
        start_location=payload.start_location,
        destination=payload.destination,
        days=payload.days,
        interests=payload.interests,
        trip_type=payload.trip_type,
        plan=plan,
    )
    repo.append_trip(user_id, record)
    logger.info(f"Saved trip {record.id} for user {user_id}")
    return plan


@router.get("/my-trips")
def get_my_trips(
    user_id: str = Depends(get_current_user_id),
    repo: TripRepository = Depends(get_repo),
) -> list[dict[str, Any]]:
    """Trips for the authenticated user, newest first."""
    return repo.get_user_trips(user_id)


@router.get("/trip/{trip_id}")
def get_trip(
    trip_id: str = Path(
        ...,
        min_length=1,
        max_length=50,
        pattern="^[a-zA-Z0-9_-]+$",
        description="Trip ID",
    ),
    repo: TripRepository = Depends(get_repo),
) -> dict[str, Any]:
    trip = repo.get_trip(trip_id)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip
