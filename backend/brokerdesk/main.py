from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from brokerdesk.core.config import settings
from brokerdesk.core.exceptions import BrokerDeskException
from brokerdesk.core.logging import setup_logging
from brokerdesk.core.security_headers import install_security_headers_middleware
from brokerdesk.routers import notifications
from brokerdesk.services.deadlines.hub import stop_notification_hub


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        try:
            yield
        finally:
            # Sessions start lazily on the first authenticated request.
            await stop_notification_hub()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_security_headers_middleware(app, settings)

    app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])

    @app.exception_handler(BrokerDeskException)
    async def handle_brokerdesk_exception(_: Request, exc: BrokerDeskException) -> JSONResponse:
        headers = exc.headers if getattr(exc, "headers", None) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    return app


app = create_app()
