import logging
from contextlib import asynccontextmanager

import requests
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paddock.api.routes import (
    admin, auth, drivers, health, images, predictions, races, sprint_predictions, sprint_races, stats, users,
)
from paddock.core.config import settings
from paddock.core.exceptions import ForbiddenError, InvalidStateError, NotAuthenticatedError, NotFoundError
from paddock.core.logging import configure_logging
from paddock.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    sync = None
    if settings.sync_on_startup or settings.scheduler_enabled:
        sync = admin.get_datasync()
    if settings.sync_on_startup:
        try:
            sync.initialize_data()
        except (requests.RequestException, ValueError):
            logger.exception("Initial data sync failed, starting with the data already stored")
    if settings.scheduler_enabled:
        start_scheduler(sync)
    yield
    if settings.scheduler_enabled:
        stop_scheduler()


app = FastAPI(title="Paddock Predictions API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins + [settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def _error(status: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": str(exc)})

@app.exception_handler(NotFoundError)
async def not_found(request: Request, exc: NotFoundError):
    return _error(404, exc)

@app.exception_handler(InvalidStateError)
async def invalid_state(request: Request, exc: InvalidStateError):
    return _error(400, exc)

@app.exception_handler(NotAuthenticatedError)
async def not_authenticated(request: Request, exc: NotAuthenticatedError):
    return _error(401, exc)

@app.exception_handler(ForbiddenError)
async def forbidden(request: Request, exc: ForbiddenError):
    return _error(403, exc)

@app.exception_handler(requests.RequestException)
async def upstream_failed(request: Request, exc: requests.RequestException):
    logger.error("Data provider request failed on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"error": f"Data provider request failed: {exc}"})

# Routers
app.include_router(health.router, tags=["system"])
app.include_router(races.router, prefix="/races", tags=["races"])
app.include_router(sprint_races.router, prefix="/sprint-races", tags=["races"])
app.include_router(drivers.router, prefix="/drivers", tags=["drivers"])
app.include_router(predictions.router, prefix="/predictions", tags=["predictions"])
app.include_router(sprint_predictions.router, prefix="/sprint-predictions", tags=["predictions"])
app.include_router(stats.router, prefix="/stats", tags=["stats"])
app.include_router(auth.router, tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(images.router, prefix="/images", tags=["images"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])

@app.get("/", include_in_schema=False)
def root():
    return {"message": "Paddock Predictions API - see /docs"}
