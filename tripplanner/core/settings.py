import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    aisuite_model: str = os.getenv("AISUITE_MODEL", "openai:gpt-4.1-mini")
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    llm_timeout_seconds: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

    nominatim_url: str = os.getenv(
        "NOMINATIM_URL", "https://nominatim.openstreetmap.org/search"
    )
    # Nominatim usage policy requires an identifying user agent
    nominatim_user_agent: str = os.getenv(
        "NOMINATIM_USER_AGENT", "TravelPlannerApp/1.0 (contact@example.com)"
    )
    nominatim_min_interval_seconds: float = float(
        os.getenv("NOMINATIM_MIN_INTERVAL_SECONDS", "1.0")
    )
    geocode_timeout_seconds: float = float(os.getenv("GEOCODE_TIMEOUT_SECONDS", "10"))
    geocode_cache_size: int = int(os.getenv("GEOCODE_CACHE_SIZE", "2048"))
    geocode_max_workers: int = int(os.getenv("GEOCODE_MAX_WORKERS", "4"))

    # radius | bbox
    route_filter_policy: str = os.getenv("ROUTE_FILTER_POLICY", "radius")
    route_radius_km: float = float(os.getenv("ROUTE_RADIUS_KM", "100"))
    # either | start | end
    route_radius_anchor: str = os.getenv("ROUTE_RADIUS_ANCHOR", "either")
    route_bbox_buffer_deg: float = float(os.getenv("ROUTE_BBOX_BUFFER_DEG", "1.5"))

    # mongo | memory
    trip_store: str = os.getenv("TRIP_STORE", "mongo")
    mongodb_uri: str = os.getenv("MONGODB_URI", "")
    database_name: str = os.getenv("DATABASE_NAME", "travelPlanner")

    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def get_settings() -> Settings:
    return Settings()
