"""
FastAPI application factory.

Assembles the app, builds the long-lived collaborators from one
`Settings` object (token service, device resolver, threat analyzer,
notification worker, rate limiters), registers all routers, and wires
up lifecycle events.  Database schema is managed by Alembic, NOT
create_all.
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from admin_auth.controllers.account_controller import router as account_router
from admin_auth.controllers.admin_controller import router as admin_router
from admin_auth.controllers.auth_controller import router as auth_router
from admin_auth.core.config import Settings, settings
from admin_auth.core.database import engine
from admin_auth.core.http import validation_exception_handler
from admin_auth.core.rate_limit import RateLimiter
from admin_auth.core.security import TokenService
from admin_auth.models import Base  # noqa: F401 (registers every model)
from admin_auth.services.auth_service import AuthService
from admin_auth.services.device_service import DeviceResolver
from admin_auth.services.email_service import EmailSender
from admin_auth.services.notification_service import AccountNotifier, NotificationDispatcher
from admin_auth.services.threat_service import ThreatAnalyzer

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def build_rate_limiters(config: Settings) -> dict[str, RateLimiter]:
    enabled = config.RATE_LIMIT_ENABLED
    return {
        "login": RateLimiter(
            "login", config.LOGIN_RATE_LIMIT, config.LOGIN_RATE_WINDOW_SECONDS, enabled=enabled
        ),
        "registration": RateLimiter(
            "registration",
            config.REGISTRATION_RATE_LIMIT,
            config.REGISTRATION_RATE_WINDOW_SECONDS,
            enabled=enabled,
        ),
        "password_reset": RateLimiter(
            "password_reset",
            config.PASSWORD_RESET_RATE_LIMIT,
            config.PASSWORD_RESET_RATE_WINDOW_SECONDS,
            enabled=enabled,
        ),
    }


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or settings
    app = FastAPI(
        title=config.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Collaborators (process lifetime) ─────────────────────────────
    resolver = DeviceResolver.from_settings(config)
    dispatcher = NotificationDispatcher.from_settings(config)
    notifier = AccountNotifier(dispatcher, EmailSender(config))

    app.state.settings = config
    app.state.device_resolver = resolver
    app.state.dispatcher = dispatcher
    app.state.notifier = notifier
    app.state.rate_limiters = build_rate_limiters(config)
    app.state.auth_service = AuthService(
        tokens=TokenService.from_settings(config),
        analyzer=ThreatAnalyzer(resolver.is_high_risk_ip),
        notifier=notifier,
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # ── Register routers ─────────────────────────────────────────────
    app.include_router(auth_router)
    app.include_router(account_router)
    app.include_router(admin_router)

    # ── Startup / Shutdown ───────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup() -> None:
        """
        NOTE: Database schema is managed by Alembic migrations.
        Run `alembic upgrade head` before starting the app.
        """
        app.state.dispatcher.start()
        if not config.EMAIL_ENABLED:
            logger.warning("SENDER_EMAIL not set; outbound email is disabled")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await app.state.dispatcher.stop()
        await engine.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
