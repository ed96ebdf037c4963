"""
FastAPI application factory and configuration.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import Settings, get_settings, load_appointment_settings
from ..services.booking import BookingService, CommitGateway
from ..services.memory import InMemorySessionStore, SessionStore, SessionSweeper, SQLiteSessionStore
from ..services.nlu import LanguageModelGateway, NaturalLanguageParser, RetryPolicy
from ..services.notifications import NotificationService
from ..services.persistence import SQLiteAppointmentRepository
from ..utils.date import DateParser, now_in_timezone
from ..utils.event_log import set_log_path
from ..utils.logging import configure_logging, get_logger
from .handlers import ChatHandler, HealthHandler
from .middleware import LoggingMiddleware, SecurityHeaders

logger = get_logger("clinic.app")


@dataclass
class Runtime:
    """Long-lived collaborators owned by the application."""

    service: BookingService
    sweeper: SessionSweeper
    notifications: Optional[NotificationService] = None


async def build_runtime(settings: Settings) -> Runtime:
    """Wire repository, session store, parser and notifications from settings."""
    repository = SQLiteAppointmentRepository(settings.clinic_db_path, clinic_name=settings.clinic_name)
    if settings.appointment_settings_path:
        await repository.save_appointment_settings(
            load_appointment_settings(settings.appointment_settings_path)
        )
        logger.info(f"app: appointment settings loaded from {settings.appointment_settings_path}")

    session_store: SessionStore
    if settings.state_db_path:
        session_store = SQLiteSessionStore(settings.state_db_path, ttl_seconds=settings.session_ttl_seconds)
    else:
        session_store = InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds)

    gateway = LanguageModelGateway.from_settings(settings)
    parser = NaturalLanguageParser(gateway, date_parser=DateParser(settings.timezone))
    # Nothing to retry against when no provider is configured.
    retry_policy = RetryPolicy.from_settings(settings) if gateway.providers else RetryPolicy.no_retry()

    notifications = NotificationService.from_settings(settings)
    service = BookingService(
        repository,
        session_store,
        parser,
        commit_gateway=CommitGateway(
            repository, notifications, clock=lambda: now_in_timezone(settings.timezone)
        ),
        retry_policy=retry_policy,
        settings=settings,
    )
    sweeper = SessionSweeper(session_store, interval_seconds=settings.session_sweep_interval_seconds)
    return Runtime(service=service, sweeper=sweeper, notifications=notifications)


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[BookingService] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Passing ``service`` skips wiring from settings; the sweeper then runs
    against that service's session store.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        set_log_path(settings.event_log_path)
        if service is None:
            runtime = await build_runtime(settings)
        else:
            runtime = Runtime(
                service=service,
                sweeper=SessionSweeper(
                    service.session_store, interval_seconds=settings.session_sweep_interval_seconds
                ),
                notifications=service.commit_gateway.notifications,
            )
        app.state.booking_service = runtime.service
        runtime.sweeper.start()
        try:
            yield
        finally:
            await runtime.sweeper.stop()
            if runtime.notifications is not None:
                await runtime.notifications.drain()

    app = FastAPI(
        title=settings.app_name,
        description="Conversational appointment booking assistant",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeaders)
    app.add_middleware(LoggingMiddleware)

    health_handler = HealthHandler(settings)
    chat_handler = ChatHandler()

    app.include_router(health_handler.router, prefix="/health", tags=["health"])
    app.include_router(chat_handler.router, prefix="/chat", tags=["chat"])

    return app
