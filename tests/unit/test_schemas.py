import pytest
from pydantic import ValidationError

from tripplanner.core.schemas import TripGenerateRequest, TripType

BASE = {"startLocation": "Tirupati", "destination": "Mumbai", "days": 3}


def test_interests_are_deduplicated_in_first_seen_order():
    request = TripGenerateRequest(
        **BASE, interests=["Temples", "beaches", " temples ", "Beaches", "forts", ""]
    )
    assert request.interests == ["Temples", "beaches", "forts"]


def test_comma_separated_interests_are_split():
    request = TripGenerateRequest(**BASE, interests="temples, forts,,temples")
    assert request.interests == ["temples", "forts"]


@pytest.mark.parametrize("bad", [5, 3.5, True, {"temples": 1}])
def test_scalar_interests_are_a_validation_error(bad):
    with pytest.raises(ValidationError) as exc:
        TripGenerateRequest(**BASE, interests=bad)
    assert exc.value.errors()[0]["loc"] == ("interests",)


def test_trip_type_is_case_insensitive_and_defaults():
    assert TripGenerateRequest(**BASE, tripType="Family").trip_type is TripType.FAMILY
    assert TripGenerateRequest(**BASE, tripType="").trip_type is TripType.FRIENDS
