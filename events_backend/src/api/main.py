import logging
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Route

from .errors import EventsError
from .logging_config import setup_logging
from .settings import get_settings
from .routers import events as events_router

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "events",
        "description": "Public event calendar and admin-gated create/update/delete.",
    },
]

_settings = get_settings()

setup_logging(_settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Game Store Events",
    description="Event calendar backend for a hobby game store: weekly nights, one-time events and tournaments.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _allowed_methods(path: str, routed: Optional[str] = None) -> List[str]:
    """
    Every method routed for a concrete path, merged with the Allow value the
    matching route reported. Matches against the routes each router declares,
    so included routers count however the app stores them.
    """
    methods = {m.strip() for m in (routed or "").split(",") if m.strip()}
    for route in (*app.router.routes, *events_router.router.routes):
        if isinstance(route, Route) and route.methods and route.path_regex.match(path):
            methods.update(route.methods)
    return sorted(methods)


@app.exception_handler(EventsError)
async def events_error_handler(request: Request, exc: EventsError) -> JSONResponse:
    """Render the error taxonomy as {"error": message}."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Same {"error": ...} body for routing errors. A 405 lists every method the
    path supports in its Allow header, not only those of the first matching route.
    """
    headers = dict(exc.headers or {})
    message = exc.detail
    if exc.status_code == 405:
        headers["Allow"] = ", ".join(_allowed_methods(request.url.path, headers.get("Allow")))
        message = "Method not allowed"
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=headers)


# Global exception handlers for consistent JSON on validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": _jsonable_errors(exc),
        },
    )


def _jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raised ValueError, which JSONResponse cannot serialize
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": get_settings().persistence_backend}


# Include routers
app.include_router(events_router.router)
