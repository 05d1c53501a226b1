"""Client Theme Applicator: follow the server's latest theme and apply it locally.

Two ways to follow updates, usable together:
- ThemePoller pulls /webhook/latest on a fixed interval
- listen() consumes the /events push stream

Both feed one ThemeApplicator, which applies an envelope only when its
timestamp differs from the last one applied. ThemeHistory is a display log
only; nothing reads it to decide whether to apply.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from themehook.models import ThemeEnvelope
from themehook.presentation import style_variables

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_HISTORY_LIMIT = 10

ApplyFn = Callable[[dict[str, str]], None]


def style_properties(envelope: ThemeEnvelope) -> dict[str, str]:
    """Style variables to set on the page root, legacy aliases included."""
    return style_variables(envelope.theme, legacy=True)


class ThemeHistory:
    """Bounded log of applied themes, oldest evicted first."""

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._entries: deque[ThemeEnvelope] = deque(maxlen=limit)

    def record(self, envelope: ThemeEnvelope) -> None:
        self._entries.append(envelope)

    def entries(self) -> list[ThemeEnvelope]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class ThemeApplicator:
    """Applies envelopes to local style variables, skipping ones already applied."""

    def __init__(self, apply_fn: ApplyFn, history: Optional[ThemeHistory] = None) -> None:
        self._apply_fn = apply_fn
        self.history = history if history is not None else ThemeHistory()
        self.last_applied: Optional[str] = None

    def offer(self, envelope: ThemeEnvelope) -> bool:
        """Apply ``envelope`` if it is new. Returns True if it was applied."""
        if envelope.timestamp is not None and envelope.timestamp == self.last_applied:
            return False
        self._apply_fn(style_properties(envelope))
        self.last_applied = envelope.timestamp
        self.history.record(envelope)
        logger.info("Applied theme %s (%s)", envelope.theme_id, envelope.timestamp)
        return True

    def offer_payload(self, payload: Any) -> bool:
        """Apply a raw JSON payload; anything that is not an envelope is ignored."""
        if not isinstance(payload, dict) or "theme" not in payload:
            return False
        try:
            envelope = ThemeEnvelope.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Ignoring invalid theme payload: %s", exc)
            return False
        return self.offer(envelope)


class ThemePoller:
    """Pulls the latest theme on a fixed interval.

    Failed polls are logged and retried on the next tick: no backoff, no cap.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        applicator: ThemeApplicator,
        interval: float = DEFAULT_POLL_INTERVAL,
        path: str = "/webhook/latest",
    ) -> None:
        self.client = client
        self.applicator = applicator
        self.interval = interval
        self.path = path

    async def fetch_latest(self) -> Optional[ThemeEnvelope]:
        """Return the server's current envelope, or None if it has none yet."""
        response = await self.client.get(self.path)
        response.raise_for_status()
        body = response.json()
        if not body.get("success") or body.get("data") is None:
            return None
        return ThemeEnvelope.model_validate(body["data"])

    async def poll_once(self) -> bool:
        """One poll. Returns True if a new theme was applied."""
        try:
            envelope = await self.fetch_latest()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Theme poll failed: %s", exc)
            return False
        if envelope is None:
            return False
        return self.applicator.offer(envelope)

    async def run(self, stop: asyncio.Event) -> None:
        """Poll until ``stop`` is set."""
        while not stop.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass


async def listen(
    client: httpx.AsyncClient,
    applicator: ThemeApplicator,
    path: str = "/events",
) -> int:
    """Consume the push stream until the server closes it.

    The connection acknowledgment and keep-alive frames are skipped.

    Returns:
        Number of themes applied.
    """
    applied = 0
    async with client.stream("GET", path, timeout=None) as response:
        response.raise_for_status()
        async for line in response.aiter_lines():
            if not line.startswith("data: "):
                continue
            try:
                payload = json.loads(line[6:])
            except json.JSONDecodeError:
                logger.warning("Unparseable event frame: %.80s", line)
                continue
            if isinstance(payload, dict) and payload.get("type") == "connected":
                logger.debug("Event stream connected")
                continue
            if applicator.offer_payload(payload):
                applied += 1
    return applied
