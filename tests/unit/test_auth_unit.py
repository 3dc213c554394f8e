from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from tripplanner.core.auth import ALGORITHM, create_access_token, verify_token
from tripplanner.core.repository import InMemoryTripRepo
from tripplanner.core.schemas import TripRecord, TripType
from tripplanner.core.security import get_current_user_id


def test_token_round_trip_uses_id_claim():
    token = create_access_token({"id": "abc123", "username": "a@example.com"})
    assert verify_token(token) == "abc123"


def test_sub_claim_is_accepted():
    token = create_access_token({"sub": "user-sub"})
    assert verify_token(token) == "user-sub"


def test_expired_token_is_rejected():
    token = create_access_token({"id": "abc"}, expires_delta=timedelta(seconds=-5))
    assert verify_token(token) is None


def test_token_signed_with_other_secret_is_rejected():
    token = jwt.encode({"id": "abc"}, "some-other-secret", algorithm=ALGORITHM)
    assert verify_token(token) is None


def test_token_without_user_is_rejected():
    assert verify_token(create_access_token({"username": "nobody"})) is None


@pytest.mark.asyncio
async def test_dependency_missing_credentials():
    with pytest.raises(HTTPException) as exc:
        await get_current_user_id(None)
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_dependency_invalid_credentials():
    creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")
    with pytest.raises(HTTPException) as exc:
        await get_current_user_id(creds)
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_dependency_valid_credentials():
    creds = HTTPAuthorizationCredentials(
        scheme="Bearer", credentials=create_access_token({"id": "u1"})
    )
    assert await get_current_user_id(creds) == "u1"


def make_record(trip_id, days=3):
    return TripRecord(
        id=trip_id,
        start_location="Tirupati",
        destination="Mumbai",
        days=days,
        trip_type=TripType.BUSINESS,
        plan={"route": {}, "places": [], "plan": "x"},
    )


def test_in_memory_repo_appends_and_reads_newest_first():
    repo = InMemoryTripRepo()
    repo.append_trip("u1", make_record("trip_a", days=1))
    repo.append_trip("u1", make_record("trip_b", days=2))
    repo.append_trip("u2", make_record("trip_c"))

    assert [t["id"] for t in repo.get_user_trips("u1")] == ["trip_b", "trip_a"]
    assert repo.get_trip("trip_c")["tripType"] == "business"
    assert repo.get_trip("trip_z") is None
    assert repo.get_user_trips("nobody") == []
