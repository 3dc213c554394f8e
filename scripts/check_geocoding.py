"""
Quick manual check of live Nominatim geocoding and route filtering.

Usage:
    python scripts/check_geocoding.py "Tirupati" "Mumbai" "Lonavala" "Hyderabad" "Delhi"
    python scripts/check_geocoding.py --context=Maharashtra "Pune" "Mumbai" "Lonavala"

With --context, stops are looked up as "<stop>, <context>" first and then by
bare name.
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tripplanner.core.errors import NoValidPlaces
from tripplanner.core.geo_utils import distance_km
from tripplanner.core.geocoder import get_geocoder
from tripplanner.core.route_filter import build_policy, filter_places
from tripplanner.core.schemas import Place, Route
from tripplanner.core.settings import get_settings


def check_geocoding(
    start: str, destination: str, stops: list[str], context: str | None = None
) -> None:
    settings = get_settings()
    geocoder = get_geocoder()
    policy = build_policy(settings)
    print(f"Policy: {policy!r}")

    start_result = geocoder.resolve(start)
    dest_result = geocoder.resolve(destination)
    if not start_result or not dest_result:
        print("❌ Could not geocode start or destination")
        return

    route = Route(start=start_result.coordinate, end=dest_result.coordinate)
    print(f"Start: {start_result.display_name} ({route.start.lat}, {route.start.lon})")
    print(f"End:   {dest_result.display_name} ({route.end.lat}, {route.end.lon})")
    print(f"Route length: {distance_km(route.start, route.end):.1f} km")

    candidates = []
    for name, result in zip(stops, geocoder.resolve_many(stops, context=context)):
        if result is None:
            print(f"  {name}: not found")
        else:
            print(
                f"  {name}: ({result.coordinate.lat}, {result.coordinate.lon}) "
                f"{result.state or ''} admitted={policy.admits(result.coordinate, route)}"
            )
        candidates.append(Place(name=name, coordinate=result.coordinate if result else None))

    try:
        kept = filter_places(candidates, route, policy)
    except NoValidPlaces:
        print("\nNo stops survive the filter")
        return

    print("\nOn-route stops in order:")
    for i, place in enumerate(kept, 1):
        print(f"{i}. {place.name} ({distance_km(route.start, place.coordinate):.1f} km from start)")


if __name__ == "__main__":
    args = sys.argv[1:]
    context = None
    if args and args[0].startswith("--context="):
        context = args.pop(0).split("=", 1)[1]
    if len(args) < 2:
        print(__doc__)
        sys.exit(1)
    check_geocoding(args[0], args[1], args[2:], context=context)
