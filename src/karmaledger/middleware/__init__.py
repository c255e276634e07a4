"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from karmaledger.config import Settings
from karmaledger.middleware.error_handler import setup_error_handlers
from karmaledger.middleware.logging import setup_logging
from karmaledger.middleware.request_context import RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette executes middleware in reverse-add order (last added = outermost).
    CORS is added last so it also wraps error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
    )
