"""Theme data model: value objects exchanged over the wire and persisted.

Wire format is camelCase JSON; Python attributes are snake_case. Every model
is frozen, so a new webhook call always yields a wholly new Theme.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    StrictInt,
    field_validator,
)
from pydantic.alias_generators import to_camel

COLOR_ROLES = (
    "primary",
    "secondary",
    "accent",
    "neutral",
    "info",
    "success",
    "warning",
    "error",
)
RADIUS_ROLES = ("box", "field", "selector")

# JSON allows 1e309, which json.loads turns into inf
Pixels = Union[NonNegativeInt, Annotated[float, Field(ge=0, allow_inf_nan=False)]]

# Senders use either string or numeric ids; the type is kept as received
ThemeId = Union[Annotated[str, Field(min_length=1)], StrictInt]

# Characters that would let a value escape its CSS declaration
_FORBIDDEN_COLOR_CHARS = set(";{}<>\r\n")


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """JSON-ready dict using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True)


class ThemeColors(_WireModel):
    primary: str
    secondary: str
    accent: str
    neutral: str
    info: str
    success: str
    warning: str
    error: str

    @field_validator(*COLOR_ROLES)
    @classmethod
    def _check_css_color(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("color must be a non-empty CSS color string")
        if _FORBIDDEN_COLOR_CHARS.intersection(value):
            raise ValueError("color contains characters not allowed in a CSS value")
        return value


class ThemeRadius(_WireModel):
    """Corner radii in pixels."""

    box: Pixels
    field: Pixels
    selector: Pixels


class ThemeEffects(_WireModel):
    depth: bool = False
    noise: bool = False


class Theme(_WireModel):
    colors: ThemeColors
    radius: ThemeRadius
    effects: ThemeEffects = Field(default_factory=ThemeEffects)


class ThemeEnvelope(_WireModel):
    """A theme plus identifying and timing metadata.

    This is the unit exchanged over the wire and the unit persisted.
    ``timestamp`` is kept as the exact ISO-8601 string received so that a
    stored envelope compares equal to the one submitted.
    """

    theme: Theme
    theme_id: ThemeId
    theme_name: Optional[str] = None
    timestamp: Optional[str] = None
    signature: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _check_iso8601(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError(f"timestamp is not ISO-8601: {value!r}") from exc
        return value


class StoredLatest(_WireModel):
    """The single persisted envelope plus its derived presentation."""

    envelope: ThemeEnvelope
    css_variables: str
    received_at: str


class WebhookAck(_WireModel):
    """Acknowledgment returned to the webhook caller.

    Echoes the full stored theme so the caller can confirm exactly what was
    persisted without a follow-up read.
    """

    success: bool = True
    message: str = "Theme updated successfully"
    theme_id: ThemeId
    theme_name: Optional[str] = None
    timestamp: str
    css_variables: str
    theme: Theme
