"""Theme Store: durable single-slot persistence of the latest accepted theme.

The slot is one JSON document on the local filesystem, fully overwritten on
each accepted webhook. Writes go to a unique temp file in the same directory
and are swapped in with os.replace(), so readers see either the old document
or the new one, never a partial write. Concurrent writers are
last-writer-wins.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from themehook.errors import StorageFailure
from themehook.models import StoredLatest

logger = logging.getLogger(__name__)


class ThemeStore:
    """File-backed store holding at most one StoredLatest."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def put(self, latest: StoredLatest) -> None:
        """Atomically replace the stored document.

        Raises:
            StorageFailure: if the document could not be written.
        """
        document = json.dumps(latest.to_wire(), indent=2)
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise StorageFailure(f"Failed to persist theme: {exc.strerror or exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temp file %s", tmp_name)

        logger.debug(
            "Theme persisted: %s -> %s", latest.envelope.theme_id, self.path
        )

    def get(self) -> StoredLatest | None:
        """Return the stored document, or None if nothing was ever received.

        Raises:
            StorageFailure: if the document exists but cannot be read or parsed.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to read theme from %s: %s", self.path, exc)
            raise StorageFailure(f"Failed to read stored theme: {exc.strerror or exc}") from exc

        try:
            return StoredLatest.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.error("Stored theme at %s is corrupt: %s", self.path, exc)
            raise StorageFailure("Stored theme document is corrupt") from exc

    def clear(self) -> None:
        """Remove the stored document, returning the store to empty."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise StorageFailure(f"Failed to clear stored theme: {exc.strerror or exc}") from exc
