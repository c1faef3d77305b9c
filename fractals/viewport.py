"""Complex-plane viewports and their text form."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .errors import ConfigurationError

VIEWPORT_FORMAT = "xmin;xmax;ymin;ymax"
_FIELD_NAMES = ("xmin", "xmax", "ymin", "ymax")


@dataclass(frozen=True)
class Viewport:
    """Rectangular region of the complex plane mapped onto the pixel grid."""

    xmin: float
    xmax: float
    ymin: float
    ymax: float

    def validate(self) -> "Viewport":
        bounds = (self.xmin, self.xmax, self.ymin, self.ymax)
        for name, value in zip(_FIELD_NAMES, bounds):
            if not math.isfinite(value):
                raise ConfigurationError(f"{name} must be a finite number, got {value!r}.")
        if not self.xmin < self.xmax:
            raise ConfigurationError(f"xmin ({self.xmin}) must be smaller than xmax ({self.xmax}).")
        if not self.ymin < self.ymax:
            raise ConfigurationError(f"ymin ({self.ymin}) must be smaller than ymax ({self.ymax}).")
        return self

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.xmin, self.xmax, self.ymin, self.ymax)

    def __str__(self) -> str:
        return ";".join(f"{value:g}" for value in self.as_tuple())


DEFAULT_VIEWPORT = Viewport(-2.0, 2.0, -1.5, 1.5)


def parse_viewport(text: str) -> Viewport:
    """Parse ``xmin;xmax;ymin;ymax`` into a validated :class:`Viewport`.

    Each field is parsed on its own, so the error names the first field that
    is not a number. No default is substituted on failure; callers that want
    a fallback catch :class:`ConfigurationError` themselves.
    """

    parts = text.strip().split(";")
    if len(parts) != len(_FIELD_NAMES):
        raise ConfigurationError(f"Input must be in the format {VIEWPORT_FORMAT}")

    values = []
    for name, part in zip(_FIELD_NAMES, parts):
        try:
            values.append(float(part.strip()))
        except ValueError as exc:
            raise ConfigurationError(f"Error parsing {name}: {part.strip()!r} is not a number") from exc

    return Viewport(*values).validate()


def as_viewport(value) -> Viewport:
    """Accept a :class:`Viewport` or a ``(xmin, xmax, ymin, ymax)`` sequence."""

    if isinstance(value, Viewport):
        return value
    try:
        xmin, xmax, ymin, ymax = (float(bound) for bound in value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Expected four viewport bounds, got {value!r}.") from exc
    return Viewport(xmin, xmax, ymin, ymax)
