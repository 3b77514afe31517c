import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import SessionLocal
from .redis_client import redis_client
from .routers import appointments, businesses, maintenance, slots
from .services.slots import (
    BookingError,
    BusinessNotFound,
    ScheduleConfigError,
    ServiceNotFound,
    SlotConflict,
    SlotMaintenance,
    maintenance_loop,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.maintenance = SlotMaintenance(
        SessionLocal,
        redis=redis_client,
        business_delay_seconds=settings.maintenance_business_delay_seconds,
    )

    task = None
    if settings.maintenance_enabled:
        task = asyncio.create_task(
            maintenance_loop(app.state.maintenance, settings.maintenance_interval_seconds)
        )
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


app = FastAPI(title="Calendar Slot Engine", lifespan=lifespan)

app.include_router(slots.router)
app.include_router(appointments.router)
app.include_router(businesses.router)
app.include_router(maintenance.router)


# ===== Error mapping =====

@app.exception_handler(BusinessNotFound)
async def business_not_found_handler(request: Request, exc: BusinessNotFound):
    return JSONResponse(status_code=404, content={"code": "business_not_found", "detail": str(exc)})


@app.exception_handler(ScheduleConfigError)
async def schedule_config_handler(request: Request, exc: ScheduleConfigError):
    return JSONResponse(
        status_code=422,
        content={"code": "schedule_config_error", "field": exc.field, "detail": exc.message},
    )


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if isinstance(exc, SlotConflict):
        status_code = 409
    elif isinstance(exc, ServiceNotFound):
        status_code = 404
    else:
        status_code = 422
    return JSONResponse(status_code=status_code, content={"code": exc.code, "detail": exc.message})


@app.get("/health")
def health():
    return {"redis": redis_client.ping() if redis_client is not None else None}
