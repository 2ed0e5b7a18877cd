import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api.routes import availability, reservations, blocks, lessons, settings, notifications, misc
from .db.session import Base, engine, SessionLocal
from .config import get_settings
from .services.settings_service import ensure_default_capacity_bands
from .workers.scheduler import get_scheduler

logger = logging.getLogger(__name__)

app = FastAPI(title="Pool Reservation API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(availability.router, prefix="/api/v1")
app.include_router(reservations.router, prefix="/api/v1")
app.include_router(blocks.router, prefix="/api/v1")
app.include_router(lessons.router, prefix="/api/v1")
app.include_router(settings.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(misc.router, prefix="/api/v1")

scheduler = get_scheduler()


@app.on_event("startup")
async def startup_event() -> None:
    Base.metadata.create_all(bind=engine)
    config = get_settings()
    with SessionLocal() as session:
        ensure_default_capacity_bands(session, config)
    if config.scheduler_enabled:
        scheduler.start()
        logger.info("Background scheduler started")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
