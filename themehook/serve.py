"""FastAPI application factory and server entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from themehook import __version__
from themehook.config import Settings, get_settings
from themehook.events import ThemeEventBroadcaster
from themehook.store import ThemeStore
from themehook.webhooks.handlers import register_webhook_routes
from themehook.webhooks.receiver import ThemeWebhookReceiver

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the themehook logger tree."""
    root = logging.getLogger("themehook")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build an app with its own store, subscriber registry and receiver."""
    settings = settings or get_settings()

    store = ThemeStore(settings.data_file)
    broadcaster = ThemeEventBroadcaster(queue_size=settings.subscriber_queue_size)
    receiver = ThemeWebhookReceiver(store, broadcaster, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        broadcaster.close_all()

    app = FastAPI(title="themehook", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Cache-Control", "X-Webhook-Signature"],
    )
    register_webhook_routes(app, receiver, store, broadcaster, settings)

    app.state.settings = settings
    app.state.store = store
    app.state.broadcaster = broadcaster
    app.state.receiver = receiver

    if settings.skip_signature_verification:
        logger.warning("Signature verification is DISABLED (skip flag set)")
    elif not settings.webhook_secret:
        logger.warning("No webhook secret configured, signatures are not checked")
    logger.info(
        "themehook ready: environment=%s data_file=%s",
        settings.environment,
        settings.data_file,
    )
    return app


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
