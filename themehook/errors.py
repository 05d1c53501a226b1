"""Error taxonomy for webhook ingestion.

Every failure that reaches an HTTP caller is a ThemeHookError subclass
carrying its status code and a machine-readable code string.
"""

from __future__ import annotations


class ThemeHookError(Exception):
    """Base class for errors surfaced to the webhook caller."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"success": False, "error": self.code, "message": self.message}


class MalformedPayload(ThemeHookError):
    """Body is not JSON, or the envelope is missing theme/themeId."""

    status_code = 400
    code = "malformed_payload"


class Unauthorized(ThemeHookError):
    """Signature required and missing, or present and wrong."""

    status_code = 401
    code = "unauthorized"


class StorageFailure(ThemeHookError):
    """The theme document could not be written or read back."""

    status_code = 500
    code = "storage_failure"
