import os

# Settings read the environment at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["TRIP_STORE"] = "memory"
os.environ["NOMINATIM_MIN_INTERVAL_SECONDS"] = "0"

import json

import pytest

from tripplanner.core.errors import ProviderUnavailable
from tripplanner.core.geocoder import Geocoder

KNOWN_PLACES = {
    "tirupati": (13.6288, 79.4192),
    "mumbai": (19.0760, 72.8777),
    "tirumala": (13.6833, 79.3474),
    "chandragiri fort": (13.5860, 79.3170),
    "lonavala": (18.7546, 73.4062),
    "thane": (19.2183, 72.9781),
    "hyderabad": (17.3850, 78.4867),
    "delhi": (28.6139, 77.2090),
    "kolkata": (22.5726, 88.3639),
}


class FakeNominatim:
    """Stands in for NominatimProvider; answers from a fixed table."""

    def __init__(self, places=None, failures=None):
        self.places = {k.casefold(): v for k, v in (places or {}).items()}
        # query -> number of calls that raise before answering normally
        self.failures = {k.casefold(): v for k, v in (failures or {}).items()}
        self.calls = []

    def search(self, query):
        self.calls.append(query)
        key = query.casefold()
        if self.failures.get(key, 0) > 0:
            self.failures[key] -= 1
            raise ProviderUnavailable(f"provider down for {query}")
        coords = self.places.get(key)
        if coords is None:
            return []
        lat, lon = coords
        return [
            {
                "lat": str(lat),
                "lon": str(lon),
                "display_name": f"{query}, India",
                "address": {"city": query, "state": "Somewhere", "country": "India"},
            }
        ]


class FakeLLM:
    """Stands in for LLMProvider."""

    def __init__(self, response="", error=None):
        self.response = response
        self.error = error
        self.prompts = []

    async def generate_async(self, prompt, temperature=1.0, timeout=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def llm_payload():
    """Serialize places the way a well-behaved model would answer."""

    def _payload(places, plan="Day 1: drive. Day 2: explore. Day 3: return."):
        return json.dumps({"places": places, "plan": plan})

    return _payload


@pytest.fixture
def make_nominatim():
    def _make(places=None, failures=None):
        return FakeNominatim(KNOWN_PLACES if places is None else places, failures)

    return _make


@pytest.fixture
def nominatim(make_nominatim):
    return make_nominatim()


@pytest.fixture
def geocoder(nominatim):
    return Geocoder(nominatim, cache={}, max_workers=2)


@pytest.fixture
def make_llm():
    def _make(response="", error=None):
        return FakeLLM(response=response, error=error)

    return _make


@pytest.fixture
def tirupati_mumbai_places():
    """Model output for Tirupati -> Mumbai: two on-route stops, one missing coords, strays."""
    return [
        {"name": "Tirumala", "reason": "Venkateswara temple", "lat": 13.6833, "lon": 79.3474},
        {"name": "Lonavala", "reason": "Hill station on the expressway"},
        {"name": "Delhi", "reason": "Capital city", "lat": 28.6139, "lon": 77.2090},
        {"name": "Hyderabad", "reason": "Biryani stop", "lat": 17.3850, "lon": 78.4867},
        {"name": "Thane", "reason": "Creek flamingos", "lat": 19.2183, "lon": 72.9781},
        {"name": "Chandragiri Fort", "reason": "Vijayanagara fort", "lat": "13.5860", "lon": "79.3170"},
        {"name": "Tirumala.", "reason": "Duplicate suggestion", "lat": 13.6833, "lon": 79.3474},
    ]
