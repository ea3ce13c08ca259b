"""Light/dark appearance data shared by the page export and diagram compilers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

__all__ = ["Theme", "Palette", "palette_for", "mermaid_config", "parse_theme"]

ColorTuple = Tuple[int, int, int]

_DIAGRAM_FONT = 'Inter, "Noto Sans SC", sans-serif'


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"

    @property
    def is_dark(self) -> bool:
        return self is Theme.DARK


@dataclass(frozen=True, slots=True)
class Palette:
    """Colors used by the exported page and by compiled diagrams."""

    background: ColorTuple
    foreground: ColorTuple
    surface: ColorTuple
    border: ColorTuple
    accent: ColorTuple
    code_background: ColorTuple
    code_foreground: ColorTuple
    muted: ColorTuple
    warning: ColorTuple
    node_background: ColorTuple
    node_text: ColorTuple
    node_border: ColorTuple
    line: ColorTuple
    edge_label_background: ColorTuple

    def css(self, name: str) -> str:
        value = getattr(self, name)
        return _tuple_to_hex(value)


_LIGHT = Palette(
    background=(255, 255, 255),
    foreground=(51, 65, 85),
    surface=(248, 250, 252),
    border=(226, 232, 240),
    accent=(79, 70, 229),
    code_background=(30, 30, 30),
    code_foreground=(212, 212, 212),
    muted=(100, 116, 139),
    warning=(180, 83, 9),
    node_background=(255, 255, 255),
    node_text=(30, 41, 59),
    node_border=(148, 163, 184),
    line=(100, 116, 139),
    edge_label_background=(226, 232, 240),
)

_DARK = Palette(
    background=(15, 23, 42),
    foreground=(226, 232, 240),
    surface=(30, 41, 59),
    border=(51, 65, 85),
    accent=(129, 140, 248),
    code_background=(15, 23, 42),
    code_foreground=(212, 212, 212),
    muted=(148, 163, 184),
    warning=(251, 191, 36),
    node_background=(30, 41, 59),
    node_text=(226, 232, 240),
    node_border=(71, 85, 105),
    line=(148, 163, 184),
    edge_label_background=(51, 65, 85),
)


def parse_theme(value: Any, default: Theme = Theme.LIGHT) -> Theme:
    if isinstance(value, Theme):
        return value
    text = str(value or "").strip().lower()
    try:
        return Theme(text)
    except ValueError:
        return default


def palette_for(theme: Theme) -> Palette:
    return _DARK if theme.is_dark else _LIGHT


def mermaid_config(theme: Theme) -> Dict[str, Any]:
    """Return a mermaid initialization config for ``theme``."""

    palette = palette_for(theme)
    return {
        "startOnLoad": False,
        "theme": "dark" if theme.is_dark else "base",
        "securityLevel": "loose",
        "fontFamily": _DIAGRAM_FONT,
        "themeVariables": {
            "fontFamily": _DIAGRAM_FONT,
            "fontSize": "14px",
            "primaryColor": palette.css("node_background"),
            "primaryTextColor": palette.css("foreground"),
            "primaryBorderColor": palette.css("node_border"),
            "lineColor": palette.css("line"),
            "secondaryColor": palette.css("surface"),
            "tertiaryColor": palette.css("node_background"),
            "nodeTextColor": palette.css("node_text"),
            "mainBkg": palette.css("node_background"),
            "edgeLabelBackground": palette.css("edge_label_background"),
        },
        "flowchart": {"htmlLabels": True, "curve": "basis", "padding": 20},
        "sequence": {
            "actorMargin": 50,
            "boxMargin": 10,
            "boxTextMargin": 5,
            "noteMargin": 10,
            "messageMargin": 35,
        },
    }


def _tuple_to_hex(value: ColorTuple) -> str:
    return "#" + "".join(f"{max(0, min(255, component)):02x}" for component in value)
