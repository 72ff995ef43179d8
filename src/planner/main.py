import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .assistant import get_chat_service
from .routers import chat as chat_router
from .routers import events as events_router
from .routers import tasks as tasks_router
from .settings import get_settings
from .store import get_store

_settings = get_settings()

logging.basicConfig(
    level=getattr(logging, _settings.log_level, logging.INFO),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "tasks", "description": "CRUD, completion toggling and filtered views for tasks."},
    {"name": "events", "description": "CRUD, completion toggling and per-day views for calendar events."},
    {"name": "chat", "description": "Free-text assistant that turns messages into tasks and events."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_store()
    service = get_chat_service()
    logger.info(
        "Planner started (storage=%s, remote assistant=%s)",
        _settings.storage_backend,
        "on" if service.remote is not None else "off",
    )
    yield
    store.close()
    await service.close()
    get_store.cache_clear()
    get_chat_service.cache_clear()


app = FastAPI(
    title="Planner Backend",
    description="Tasks, calendar events and a chat assistant that fills them in.",
    version="0.1.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
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


def _jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic error contexts may carry exception objects
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


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


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": _settings.storage_backend}


# Include routers
app.include_router(tasks_router.router)
app.include_router(events_router.router)
app.include_router(chat_router.router)
