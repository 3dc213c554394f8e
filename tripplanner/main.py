import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tripplanner.api.routers.trips import router as trips_router
from tripplanner.core.csrf_middleware import CSRFProtectionMiddleware
from tripplanner.core.errors import InvalidInput, TripPlanningError
from tripplanner.core.settings import get_settings

load_dotenv()

logger = logging.getLogger(__name__)


def register_exception_handlers(application: FastAPI) -> None:
    @application.exception_handler(TripPlanningError)
    async def trip_planning_error_handler(request: Request, exc: TripPlanningError):
        logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @application.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
        body = InvalidInput().to_dict()
        body["fields"] = [f for f in fields if f]
        return JSONResponse(status_code=InvalidInput.status_code, content=body)

    @application.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @application.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
        )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    application = FastAPI(title="Travel Planner Backend")

    # Frontend dev server; production origins come from ALLOWED_ORIGINS
    allowed_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    allowed_origins.extend(
        [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
    )

    # CSRF first so CORS wraps it and rejections still carry CORS headers
    application.add_middleware(CSRFProtectionMiddleware, allowed_origins=allowed_origins)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    @application.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return "Hello! The server is running."

    @application.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    application.include_router(trips_router)
    return application


app = create_app()
