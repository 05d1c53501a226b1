"""Webhook Receiver: validate, persist and announce one theme envelope.

submit() steps:
1. Parse the raw body into a ThemeEnvelope (400 on failure)
2. Verify the signature against the raw bytes (401 on failure)
3. Stamp the acceptance time if the envelope carries none
4. Derive the style-variable document
5. Persist, replacing the previous theme (500 on failure, never retried)
6. Broadcast to push subscribers
7. Return the acknowledgment
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from themehook.config import Settings
from themehook.errors import MalformedPayload, StorageFailure, Unauthorized
from themehook.events import ThemeEventBroadcaster
from themehook.models import StoredLatest, ThemeEnvelope, WebhookAck
from themehook.presentation import render_css_variables
from themehook.store import ThemeStore
from themehook.webhooks.verification import authorize

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors()[:5]:
        location = ".".join(str(p) for p in error["loc"]) or "body"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def parse_envelope(raw_body: bytes) -> ThemeEnvelope:
    """Parse raw request bytes into an envelope.

    Raises:
        MalformedPayload: body is not a JSON object, or theme/themeId are
            missing or invalid.
    """
    try:
        payload = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedPayload("Invalid webhook payload - body is not valid JSON") from exc

    if not isinstance(payload, dict):
        raise MalformedPayload("Invalid webhook payload - expected a JSON object")

    if not payload.get("theme") or payload.get("themeId") in (None, ""):
        raise MalformedPayload("Invalid webhook payload - missing theme or themeId")

    try:
        return ThemeEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise MalformedPayload(
            f"Invalid webhook payload - {_describe_validation_error(exc)}"
        ) from exc


class ThemeWebhookReceiver:
    """Accepts theme envelopes and hands them to the store and the broadcaster."""

    def __init__(
        self,
        store: ThemeStore,
        broadcaster: ThemeEventBroadcaster,
        settings: Settings,
    ) -> None:
        self.store = store
        self.broadcaster = broadcaster
        self.settings = settings

    async def submit(self, raw_body: bytes, signature: str | None = None) -> WebhookAck:
        """Process one webhook call.

        Raises:
            MalformedPayload: unparseable body or missing required fields.
            Unauthorized: rejected by the signature policy.
            StorageFailure: the theme could not be persisted.
        """
        try:
            envelope = parse_envelope(raw_body)
        except MalformedPayload:
            _log_webhook("unknown", "malformed")
            raise

        try:
            authorize(raw_body, signature, self.settings)
        except Unauthorized:
            _log_webhook(envelope.theme_id, "signature_failed")
            raise

        if envelope.timestamp is None:
            envelope = envelope.model_copy(update={"timestamp": utc_now_iso()})

        css_variables = render_css_variables(envelope.theme)
        latest = StoredLatest(
            envelope=envelope,
            css_variables=css_variables,
            received_at=utc_now_iso(),
        )

        try:
            await asyncio.to_thread(self.store.put, latest)
        except StorageFailure:
            logger.exception("Failed to persist theme %s", envelope.theme_id)
            _log_webhook(envelope.theme_id, "storage_failed")
            raise

        delivered = self.broadcaster.broadcast(envelope.to_wire())
        _log_webhook(envelope.theme_id, "accepted", delivered)

        return WebhookAck(
            theme_id=envelope.theme_id,
            theme_name=envelope.theme_name,
            timestamp=envelope.timestamp,
            css_variables=css_variables,
            theme=envelope.theme,
        )


def _log_webhook(theme_id: str | int, status: str, subscribers: int = 0) -> None:
    """Audit log for webhook activity."""
    logger.info(
        "WEBHOOK_AUDIT theme_id=%s status=%s subscribers=%d",
        theme_id,
        status,
        subscribers,
    )
