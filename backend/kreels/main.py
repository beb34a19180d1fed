"""
FastAPI app entrypoint.

Notifications backend: inbox REST API, push-token registration, per-user realtime socket.
Shared resources (DB engine/session factory, Expo client, socket manager, notification
service, scheduler) are built once in lifespan and kept on app.state.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from kreels.api.routes import notifications, push, realtime
from kreels.config import Settings, settings
from kreels.core.constants import RETENTION_INTERVAL_HOURS, RETENTION_JOB_ID
from kreels.db.session import build_engine, build_session_factory
from kreels.scheduler.retention_job import run_retention_job
from kreels.services.notification_service import NotificationService
from kreels.services.push import ExpoPushClient
from kreels.services.realtime import ConnectionManager

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings = settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(app_settings.database_url)
        session_factory = build_session_factory(engine)
        push_client = ExpoPushClient(
            app_settings.expo_push_url,
            access_token=app_settings.expo_access_token,
            timeout=app_settings.expo_push_timeout_seconds,
        )
        manager = ConnectionManager()
        app.state.settings = app_settings
        app.state.session_factory = session_factory
        app.state.connection_manager = manager
        app.state.notification_service = NotificationService(
            session_factory,
            push_sender=push_client,
            relay=manager,
            push_chunk_size=app_settings.push_chunk_size,
        )

        scheduler = BackgroundScheduler()
        if app_settings.retention_job_enabled:
            scheduler.add_job(
                run_retention_job,
                "interval",
                hours=RETENTION_INTERVAL_HOURS,
                id=RETENTION_JOB_ID,
                args=[session_factory, app_settings],
            )
            scheduler.start()
        app.state.scheduler = scheduler
        logger.info("Notifications backend ready")
        yield
        if scheduler.running:
            scheduler.shutdown(wait=False)
        await push_client.aclose()
        engine.dispose()

    app = FastAPI(title="Kreels Notifications", version="0.1.0", lifespan=lifespan)

    # CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the web client
    cors_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8081",
        "http://127.0.0.1:8081",
    ]
    cors_extra = os.getenv("CORS_ORIGINS", "")
    if cors_extra:
        cors_origins.extend(o.strip() for o in cors_extra.split(",") if o.strip())
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # push before notifications: DELETE /push-token must not be captured by DELETE /{notification_id}
    app.include_router(push.router, prefix="/api/notifications", tags=["push"])
    app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
    app.include_router(realtime.router, tags=["realtime"])

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
