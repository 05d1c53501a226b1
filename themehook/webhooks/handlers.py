"""Webhook HTTP handlers: FastAPI routes for theme ingestion and delivery.

Routes:
- POST /webhook          receive a theme envelope (200 / 400 / 401 / 500)
- GET  /webhook          health and capability probe
- GET  /webhook/latest   pull the current theme (data is null when empty)
- GET  /events           Server-Sent Events push stream (alias /webhook/events)

Every failure is returned to the caller as {"success": false, "error", "message"}
with the status code of the ThemeHookError raised.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from themehook.config import Settings
from themehook.errors import ThemeHookError
from themehook.events import ThemeEventBroadcaster, event_stream
from themehook.store import ThemeStore
from themehook.webhooks.receiver import ThemeWebhookReceiver, utc_now_iso
from themehook.webhooks.verification import SIGNATURE_HEADER

logger = logging.getLogger(__name__)

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Stop nginx-style proxies from buffering the stream
    "X-Accel-Buffering": "no",
}


def _error_response(exc: ThemeHookError) -> JSONResponse:
    body = exc.to_dict()
    body["timestamp"] = utc_now_iso()
    return JSONResponse(body, status_code=exc.status_code)


def register_webhook_routes(
    app: FastAPI,
    receiver: ThemeWebhookReceiver,
    store: ThemeStore,
    broadcaster: ThemeEventBroadcaster,
    settings: Settings,
) -> None:
    """Register theme webhook and delivery routes on the FastAPI app."""

    @app.post("/webhook")
    async def receive_theme(request: Request):
        """Receive a theme envelope from the generator."""
        # Raw bytes: the signature covers exactly what was sent
        body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER)
        try:
            ack = await receiver.submit(body, signature)
        except ThemeHookError as exc:
            return _error_response(exc)
        return JSONResponse(ack.to_wire())

    @app.get("/webhook")
    async def webhook_health():
        """Readiness plus whether signature verification is active."""
        return {
            "status": "healthy",
            "message": "Theme webhook endpoint is ready",
            "signatureVerification": settings.verification_active,
            "environment": settings.environment,
            "timestamp": utc_now_iso(),
        }

    @app.get("/webhook/latest")
    async def latest_theme():
        """Current stored envelope, returned as-is. Pollers detect change themselves."""
        try:
            latest = await asyncio.to_thread(store.get)
        except ThemeHookError as exc:
            return _error_response(exc)
        return {
            "success": True,
            "data": latest.envelope.to_wire() if latest is not None else None,
            "timestamp": utc_now_iso(),
        }

    async def _events(request: Request) -> StreamingResponse:
        stream = event_stream(
            request, broadcaster, keepalive_seconds=settings.sse_keepalive_seconds
        )
        return StreamingResponse(
            stream, media_type="text/event-stream", headers=_SSE_HEADERS
        )

    @app.get("/events")
    async def theme_events(request: Request):
        """Push stream of theme updates."""
        return await _events(request)

    @app.get("/webhook/events")
    async def theme_events_alias(request: Request):
        return await _events(request)

    logger.info("Webhook routes registered: /webhook, /webhook/latest, /events")
