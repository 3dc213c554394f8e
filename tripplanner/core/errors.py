"""
Error taxonomy for trip planning.

Each terminal error carries the HTTP status and the machine-readable code
the API layer returns alongside the user-facing message.
"""


class TripPlanningError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Failed to generate plan"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class InvalidInput(TripPlanningError):
    status_code = 400
    code = "INVALID_INPUT"
    default_message = "Missing fields"


class InvalidLocation(TripPlanningError):
    """Start or destination could not be geocoded."""

    status_code = 400
    code = "INVALID_LOCATION"
    default_message = "Failed to geocode start or destination"


class GenerationFailed(TripPlanningError):
    """The language model call failed or returned nothing parseable."""

    status_code = 500
    code = "GENERATION_FAILED"
    default_message = "Failed to generate plan"


class NoValidPlaces(TripPlanningError):
    """Filtering removed every candidate stop."""

    status_code = 400
    code = "NO_VALID_PLACES"
    default_message = "No valid places found along this route. Try different inputs."


class ProviderUnavailable(Exception):
    """An outbound provider call failed (network, timeout, bad status, bad body)."""
