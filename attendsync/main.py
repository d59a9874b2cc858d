# attendsync/main.py
from fastapi import FastAPI

from attendsync.api.routes import availability, health, internal, meetings
from attendsync.core.config import get_settings
from attendsync.core.logging import setup_logging
from attendsync.db.session import init_db_for_startup


def create_app() -> FastAPI:
    """
    Application factory for the AttendSync service.
    """
    settings = get_settings()
    setup_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Availability and meeting scheduling backend for the attendance tracker.\n"
            "Infers when people are usually working from their attendance history,\n"
            "suggests common meeting windows and tracks invitations, reminders and\n"
            "attendance for scheduled meetings."
        ),
        version="0.1.0",
    )

    # Routers
    app.include_router(health.router)
    app.include_router(availability.router)
    app.include_router(meetings.router)
    app.include_router(internal.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        if settings.DB_CREATE_ON_STARTUP:
            await init_db_for_startup()

    return app


app = create_app()
