from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.trustedhost import TrustedHostMiddleware

from station_dashboard.api.router import api_router
from station_dashboard.clients.licor import create_licor_client
from station_dashboard.core.config import Settings, load_settings
from station_dashboard.core.logging_config import configure_logging
from station_dashboard.models.weather import DashboardState
from station_dashboard.services.dashboard import DashboardService, DashboardStore, FetchGuard
from station_dashboard.web.router import ui_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop_event: threading.Event | None = None
        bg_thread: threading.Thread | None = None

        app.state.station_client = app.state.station_client_factory(settings)
        if not settings.provider_configured:
            logger.warning("LI-COR API token or logger serial not set; fetches will fail")

        if settings.auto_refresh_enabled:
            stop_event = threading.Event()
            bg_service = DashboardService(
                source=app.state.station_client,
                store=app.state.dashboard_store,
                guard=app.state.fetch_guard,
                default_hours=settings.default_time_range_hours,
            )

            def _loop() -> None:
                while stop_event is not None and not stop_event.is_set():
                    try:
                        bg_service.tick()
                    except Exception:
                        logger.exception("Background refresh failed")
                    stop_event.wait(settings.auto_refresh_interval_seconds)

            bg_thread = threading.Thread(
                target=_loop, name="station-auto-refresh", daemon=True
            )
            bg_thread.start()
            app.state.refresh_thread = bg_thread

        yield
        if stop_event is not None:
            stop_event.set()
        if bg_thread is not None and bg_thread.is_alive():
            bg_thread.join(timeout=2.0)
        app.state.station_client.close()

    docs_enabled = settings.docs_enabled and not settings.is_production
    app = FastAPI(
        title="Weather Station Dashboard",
        version="0.1.0",
        debug=settings.debug,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    # Replaced in tests to serve a fake station before startup.
    app.state.station_client_factory = create_licor_client
    app.state.refresh_thread = None
    app.state.dashboard_store = DashboardStore(
        DashboardState(time_range_hours=settings.default_time_range_hours)
    )
    app.state.fetch_guard = FetchGuard()

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    if settings.trusted_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if settings.is_production:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response

    @app.get("/", tags=["meta"])
    def root():
        return {"name": "weather-station-dashboard", "status": "ok"}

    app.include_router(api_router)
    app.include_router(ui_router)

    static_dir = Path(__file__).resolve().parent / "web" / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    return app
