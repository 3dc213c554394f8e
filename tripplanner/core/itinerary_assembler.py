"""
Trip itinerary assembly.

Runs one request through a fixed sequence of stages:

    GEOCODING_ENDPOINTS -> FETCHING_CANDIDATES -> RESOLVING_COORDINATES
        -> FILTERING -> ASSEMBLED

Any stage may end the run with a terminal error (InvalidLocation,
GenerationFailed, NoValidPlaces). Nothing is retried.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from enum import Enum
from typing import Any

from tripplanner.core.errors import GenerationFailed, InvalidLocation, NoValidPlaces
from tripplanner.core.geocoder import Geocoder
from tripplanner.core.route_filter import MembershipPolicy, filter_places
from tripplanner.core.schemas import Coordinate, Itinerary, Place, Route, TripType

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class AssemblyState(str, Enum):
    GEOCODING_ENDPOINTS = "GEOCODING_ENDPOINTS"
    FETCHING_CANDIDATES = "FETCHING_CANDIDATES"
    RESOLVING_COORDINATES = "RESOLVING_COORDINATES"
    FILTERING = "FILTERING"
    ASSEMBLED = "ASSEMBLED"
    INVALID_LOCATION = "INVALID_LOCATION"
    GENERATION_FAILED = "GENERATION_FAILED"
    NO_VALID_PLACES = "NO_VALID_PLACES"


def build_prompt(
    start_name: str,
    dest_name: str,
    route: Route,
    days: int,
    interests: list[str],
    trip_type: TripType,
) -> str:
    interests_text = ", ".join(interests) if interests else "general"
    return (
        f"Create a {days}-day {trip_type.value} trip from {start_name} "
        f"(lat {route.start.lat:.4f}, lon {route.start.lon:.4f}) to {dest_name} "
        f"(lat {route.end.lat:.4f}, lon {route.end.lon:.4f}).\n"
        f"Trip type: {trip_type.value}\n"
        f"Interests: {interests_text}\n\n"
        "Only suggest places that lie on or close to the route between the start and "
        "the destination, or near either of them. Do not suggest places in other regions.\n\n"
        "Return JSON ONLY in this format:\n"
        "{\n"
        '  "places": [\n'
        "    {\n"
        '      "name": "Place name",\n'
        '      "reason": "Reason to visit",\n'
        '      "lat": 12.3456,\n'
        '      "lon": 78.9012\n'
        "    }\n"
        "  ],\n"
        '  "plan": "Detailed day-by-day itinerary as a string"\n'
        "}\n"
    )


def extract_json_block(raw_text: str) -> dict[str, Any] | None:
    """
    Return the first JSON object found in model output, or None.

    Handles bare JSON, ```json fenced blocks, and objects embedded in prose.
    """
    if not raw_text:
        return None
    text = raw_text.strip()

    # Try direct parse first
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except ValueError:
        pass

    # Fenced code blocks
    for match in _FENCE_RE.finditer(text):
        try:
            data = json.loads(match.group(1).strip())
        except ValueError:
            continue
        if isinstance(data, dict):
            return data

    # First decodable object starting at any '{'
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            data, _ = decoder.raw_decode(text, start)
        except ValueError:
            data = None
        if isinstance(data, dict):
            return data
        start = text.find("{", start + 1)

    return None


def _coerce_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _coordinate_from(item: dict[str, Any]) -> Coordinate | None:
    lat = _coerce_float(item.get("lat", item.get("latitude")))
    lon = _coerce_float(item.get("lon", item.get("lng", item.get("longitude"))))
    if lat is None or lon is None:
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return Coordinate(lat=lat, lon=lon)


def parse_candidates(data: dict[str, Any]) -> tuple[list[Place], str]:
    """
    Convert decoded model output into candidate places and the narrative plan.

    Raises:
        GenerationFailed: if the payload does not contain a list of places
    """
    raw_places = data.get("places")
    if not isinstance(raw_places, list):
        raise GenerationFailed("Trip generator returned no list of places")

    places: list[Place] = []
    for item in raw_places:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        reason = item.get("reason")
        places.append(
            Place(
                name=name.strip(),
                reason=reason.strip() if isinstance(reason, str) else "",
                coordinate=_coordinate_from(item),
            )
        )

    plan = data.get("plan")
    if isinstance(plan, (dict, list)):
        plan = json.dumps(plan, ensure_ascii=False)
    narrative = plan.strip() if isinstance(plan, str) else ""
    return places, narrative


class ItineraryAssembler:
    """Builds one itinerary per call to `assemble`. Not retried on failure."""

    def __init__(
        self,
        geocoder: Geocoder,
        provider: Any,
        policy: MembershipPolicy,
        temperature: float = 0.7,
        llm_timeout: float | None = 60,
    ) -> None:
        self.geocoder = geocoder
        self.provider = provider
        self.policy = policy
        self.temperature = temperature
        self.llm_timeout = llm_timeout
        self.state: AssemblyState | None = None

    def _enter(self, state: AssemblyState) -> None:
        self.state = state
        logger.debug(f"Itinerary assembly -> {state.value}")

    async def _geocode_endpoints(self, start_name: str, dest_name: str) -> Route:
        self._enter(AssemblyState.GEOCODING_ENDPOINTS)
        start = await asyncio.to_thread(self.geocoder.resolve, start_name)
        if start is None:
            self._enter(AssemblyState.INVALID_LOCATION)
            raise InvalidLocation(f"Failed to geocode start location '{start_name}'")
        end = await asyncio.to_thread(self.geocoder.resolve, dest_name)
        if end is None:
            self._enter(AssemblyState.INVALID_LOCATION)
            raise InvalidLocation(f"Failed to geocode destination '{dest_name}'")
        return Route(start=start.coordinate, end=end.coordinate)

    async def _fetch_candidates(self, prompt: str) -> tuple[list[Place], str]:
        self._enter(AssemblyState.FETCHING_CANDIDATES)
        try:
            raw = await self.provider.generate_async(
                prompt, temperature=self.temperature, timeout=self.llm_timeout
            )
        except asyncio.TimeoutError as e:
            self._enter(AssemblyState.GENERATION_FAILED)
            logger.warning(f"Trip generation timed out after {self.llm_timeout}s")
            raise GenerationFailed("Trip generation timed out") from e
        except Exception as e:
            self._enter(AssemblyState.GENERATION_FAILED)
            logger.error(f"Trip generation provider error: {e}", exc_info=True)
            raise GenerationFailed() from e

        data = extract_json_block(raw or "")
        if data is None:
            self._enter(AssemblyState.GENERATION_FAILED)
            logger.error(f"Unparseable trip generation output: {(raw or '')[:200]!r}")
            raise GenerationFailed()

        try:
            return parse_candidates(data)
        except GenerationFailed:
            self._enter(AssemblyState.GENERATION_FAILED)
            raise

    async def _resolve_coordinates(self, places: list[Place]) -> None:
        self._enter(AssemblyState.RESOLVING_COORDINATES)
        missing = [p for p in places if p.coordinate is None]
        if not missing:
            return
        results = await asyncio.to_thread(
            self.geocoder.resolve_many, [p.name for p in missing]
        )
        for place, result in zip(missing, results):
            if result is None:
                logger.warning(f"No coords found for place: {place.name}")
                continue
            place.coordinate = result.coordinate

    def _filter(self, places: list[Place], route: Route) -> list[Place]:
        self._enter(AssemblyState.FILTERING)
        try:
            return filter_places(places, route, self.policy)
        except NoValidPlaces:
            self._enter(AssemblyState.NO_VALID_PLACES)
            raise

    async def assemble(
        self,
        start_name: str,
        dest_name: str,
        days: int,
        interests: list[str] | None = None,
        trip_type: TripType = TripType.FRIENDS,
    ) -> Itinerary:
        """
        Plan a trip between two named places.

        Raises:
            InvalidLocation: start or destination could not be geocoded
            GenerationFailed: the language model failed or returned unparseable output
            NoValidPlaces: no suggested place survived route filtering
        """
        interests = interests or []
        route = await self._geocode_endpoints(start_name, dest_name)

        prompt = build_prompt(start_name, dest_name, route, days, interests, trip_type)
        candidates, narrative = await self._fetch_candidates(prompt)
        logger.info(
            f"Trip generator suggested {len(candidates)} places for {start_name} -> {dest_name}"
        )

        await self._resolve_coordinates(candidates)

        places = self._filter(candidates, route)
        self._enter(AssemblyState.ASSEMBLED)
        logger.info(f"Assembled itinerary with {len(places)} of {len(candidates)} places")
        return Itinerary(route=route, places=places, narrative=narrative)
