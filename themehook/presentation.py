"""Derive presentation forms from a Theme.

Pure functions: no I/O, no state.
"""

from __future__ import annotations

from typing import Union

from themehook.models import COLOR_ROLES, RADIUS_ROLES, Theme

# Short names the page stylesheet used before the --color-* scheme
_LEGACY_ALIASES = {
    "primary": "primary",
    "secondary": "secondary",
    "accent": "accent",
    "muted": "neutral",
    "destructive": "error",
    "success": "success",
    "warning": "warning",
}


def _px(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}px"


def style_variables(theme: Theme, legacy: bool = False) -> dict[str, str]:
    """Flatten palette and radius into an ordered ``{--name: value}`` map."""
    variables: dict[str, str] = {}
    for role in COLOR_ROLES:
        variables[f"--color-{role}"] = getattr(theme.colors, role)
    for role in RADIUS_ROLES:
        variables[f"--radius-{role}"] = _px(getattr(theme.radius, role))
    if legacy:
        for alias, role in _LEGACY_ALIASES.items():
            variables[f"--{alias}"] = getattr(theme.colors, role)
    return variables


def render_css_variables(theme: Theme) -> str:
    """Render the theme as a ``:root { ... }`` style-variable document."""
    lines = [f"  {name}: {value};" for name, value in style_variables(theme).items()]
    return ":root {\n" + "\n".join(lines) + "\n}\n"
