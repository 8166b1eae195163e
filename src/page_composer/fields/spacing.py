from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Mapping

SIDES = ("top", "right", "bottom", "left")
UNITS = ("px", "em", "rem", "%", "vw", "vh")
KEYWORDS = ("auto", "inherit", "initial", "unset")

_UNIT_RE = re.compile(r"[a-zA-Z%]+$")


@dataclass(frozen=True)
class Spacing:
    top: float | str = 0
    right: float | str = 0
    bottom: float | str = 0
    left: float | str = 0
    unit: str = "px"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, default_unit: str = "px") -> "Spacing":
        return cls(
            top=_side(data.get("top", 0)),
            right=_side(data.get("right", 0)),
            bottom=_side(data.get("bottom", 0)),
            left=_side(data.get("left", 0)),
            unit=str(data.get("unit") or default_unit),
        )


def _side(raw: Any) -> float | str:
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, (int, float)):
        return int(raw) if float(raw).is_integer() else raw
    if str(raw).strip().lower() in KEYWORDS:
        return str(raw).strip().lower()
    text = _UNIT_RE.sub("", str(raw).strip())
    try:
        value = float(text)
    except ValueError:
        return 0
    return int(value) if value.is_integer() else value


def parse_spacing(value: Any, default_unit: str = "px") -> Spacing:
    """Expand a CSS margin/padding shorthand into explicit sides.

    ``"10px"`` applies to every side, ``"10px 5px"`` is vertical/horizontal,
    ``"1px 2px 3px"`` is top/horizontal/bottom and four parts are explicit TRBL.
    """
    if isinstance(value, Spacing):
        return value
    if isinstance(value, Mapping):
        return Spacing.from_mapping(value, default_unit=default_unit)
    if value is None or str(value).strip() == "":
        return Spacing(unit=default_unit)

    parts = str(value).split()[:4]
    unit = default_unit
    for part in parts:
        if part.lower() in KEYWORDS:
            continue
        match = _UNIT_RE.search(part)
        if match:
            unit = match.group(0)
        break
    values = [_side(part) for part in parts]

    if len(values) == 1:
        top = right = bottom = left = values[0]
    elif len(values) == 2:
        top, right = values
        bottom, left = top, right
    elif len(values) == 3:
        top, right, bottom = values
        left = right
    else:
        top, right, bottom, left = values
    return Spacing(top=top, right=right, bottom=bottom, left=left, unit=unit)


def format_spacing(spacing: Spacing | Mapping[str, Any]) -> str:
    if not isinstance(spacing, Spacing):
        spacing = Spacing.from_mapping(spacing)
    return " ".join(side_css(getattr(spacing, side), spacing.unit) for side in SIDES)


def side_css(value: float | str, unit: str) -> str:
    """One side as CSS text; keywords such as ``auto`` carry no unit."""
    if isinstance(value, str):
        return value
    return f"{value}{unit}"


def normalize_spacing(value: Any, default_unit: str = "px") -> str:
    return format_spacing(parse_spacing(value, default_unit))


def parse_responsive_spacing(value: Any) -> dict[str, Spacing]:
    """Per-device spacing; a bare shorthand string applies to desktop only."""
    devices = ("desktop", "tablet", "mobile")
    if isinstance(value, Mapping) and any(device in value for device in devices):
        return {device: parse_spacing(value.get(device)) for device in devices}
    return {
        "desktop": parse_spacing(value),
        "tablet": Spacing(),
        "mobile": Spacing(),
    }


__all__ = [
    "Spacing",
    "SIDES",
    "UNITS",
    "KEYWORDS",
    "side_css",
    "parse_spacing",
    "format_spacing",
    "normalize_spacing",
    "parse_responsive_spacing",
]
