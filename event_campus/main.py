import logging
import uvicorn
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from event_campus import __version__, config
from event_campus.database import create_tables, engine
from event_campus.init_data import init_admin
from event_campus.router.auth import router as auth_router
from event_campus.router.whitelist import router as whitelist_router
from event_campus.router.event import router as event_router
from event_campus.router.registration import router as registration_router
from event_campus.services.notifications import notifier
from event_campus.services.scheduler import schedule_jobs
from event_campus.utils.logging import setup_logging




logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await create_tables()
    logger.info("Database ready")
    await init_admin()

    scheduler = schedule_jobs() if config.SCHEDULER_ENABLED else None
    yield

    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    await notifier.drain()
    await engine.dispose()
    logger.info("Shutdown complete")


# routes that take no bearer token
PUBLIC_PATHS = {
    ("/auth/register", "post"),
    ("/auth/login", "post"),
    ("/events", "get"),
    ("/events/{event_id}", "get"),
    ("/health", "get"),
}


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Event Campus API",
        version=__version__,
        description="Campus event management: events, registrations with waitlist, attendance",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "Bearer": {
            "type": "http",
            "scheme": "bearer",
        }
    }

    for path, operations in openapi_schema["paths"].items():
        for method, operation in operations.items():
            if (path, method) not in PUBLIC_PATHS:
                operation["security"] = [{"Bearer": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app = FastAPI(lifespan=lifespan)
app.openapi = custom_openapi

app.include_router(auth_router)
app.include_router(whitelist_router)
app.include_router(event_router)
app.include_router(registration_router)


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok"}



if __name__ == "__main__":
    uvicorn.run(
        "event_campus.main:app",
        port=config.PORT,
        host=config.HOST
    )
