# config_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any

try:
    import yaml  # PyYAML
except ImportError as e:
    raise SystemExit(
        "Missing dependency: PyYAML\n"
        "Install with: python -m pip install pyyaml"
    ) from e


# Style table defaults. These reproduce the reference look exactly.
HEADING_FONT_SIZES: tuple[float, ...] = (38.0, 32.0, 26.0, 20.0, 16.0, 12.0)
BLOCKQUOTE_COLOR = 0x888888
LINK_COLOR = 0x0000EE
TEXT_COLOR = 0x000000
BACKGROUND_COLOR = 0xDEDEDE
MONOSPACE_FAMILY = "monospace"
# Block separator; fixed, not configurable.
PARAGRAPH_BREAK = "\n\n"
OPEN_LINK_COMMAND = "marker.open-link"


class PreviewConfig:
    """
    Immutable-ish container for preview configuration.
    """

    def __init__(
        self,
        *,
        heading_sizes: tuple[float, ...],
        blockquote_color: int,
        link_color: int,
        text_color: int,
        background_color: int,
        monospace_family: str,
        enable_strikethrough: bool,
        enable_tables: bool,
        markdown_suffixes: set[str],
        window_title: str,
        open_link_command: str,
    ):
        self.heading_sizes = heading_sizes
        self.blockquote_color = blockquote_color
        self.link_color = link_color
        self.text_color = text_color
        self.background_color = background_color
        self.monospace_family = monospace_family
        self.enable_strikethrough = enable_strikethrough
        self.enable_tables = enable_tables
        self.markdown_suffixes = markdown_suffixes
        self.window_title = window_title
        self.open_link_command = open_link_command

    def heading_size(self, level: int) -> float:
        """Font size in points for a heading level (1..6)."""
        if not 1 <= level <= len(self.heading_sizes):
            raise ValueError(f"Heading level out of range: {level}")
        return self.heading_sizes[level - 1]


# ---------------- Defaults ---------------------------------------------------

DEFAULT_CONFIG = PreviewConfig(
    heading_sizes=HEADING_FONT_SIZES,
    blockquote_color=BLOCKQUOTE_COLOR,
    link_color=LINK_COLOR,
    text_color=TEXT_COLOR,
    background_color=BACKGROUND_COLOR,
    monospace_family=MONOSPACE_FAMILY,
    enable_strikethrough=True,
    enable_tables=False,
    markdown_suffixes={".md"},
    window_title="Marker",
    open_link_command=OPEN_LINK_COMMAND,
)

# ---------------- Loader -----------------------------------------------------


def _as_color(value: Any, name: str) -> int:
    """
    Accept a color as int (0xRRGGBB) or as a '#rrggbb' string.
    """
    if isinstance(value, bool):
        raise TypeError(f"{name} must be a color, got a boolean")
    if isinstance(value, int):
        color = value
    elif isinstance(value, str):
        raw = value.strip().lstrip("#")
        if len(raw) != 6:
            raise ValueError(f"{name} must look like '#rrggbb', got {value!r}")
        try:
            color = int(raw, 16)
        except ValueError as e:
            raise ValueError(f"{name} is not a hex color: {value!r}") from e
    else:
        raise TypeError(f"{name} must be a color string or integer")

    if not 0 <= color <= 0xFFFFFF:
        raise ValueError(f"{name} out of range: {value!r}")
    return color


def _as_heading_sizes(value: Any) -> tuple[float, ...]:
    if not isinstance(value, list) or len(value) != 6:
        raise ValueError("heading_sizes must be a list of six numbers")
    sizes: list[float] = []
    for v in value:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or v <= 0:
            raise ValueError(f"heading_sizes entries must be positive numbers, got {v!r}")
        sizes.append(float(v))
    return tuple(sizes)


def _as_suffix_set(value: Any, name: str) -> set[str]:
    if value is None:
        return set()
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list of strings")
    out: set[str] = set()
    for v in value:
        suffix = str(v).lower()
        out.add(suffix if suffix.startswith(".") else f".{suffix}")
    return out


def _as_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be true or false")
    return value


def load_config(path: Path) -> PreviewConfig:
    """
    Load YAML config and return a PreviewConfig instance.
    """
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise TypeError("Config root must be a mapping")

    if "paragraph_break" in raw:
        raise ValueError("paragraph_break is fixed to two newlines and cannot be configured")

    colors = raw.get("colors", {}) or {}
    if not isinstance(colors, dict):
        raise TypeError("colors must be a mapping")

    parser = raw.get("parser", {}) or {}
    if not isinstance(parser, dict):
        raise TypeError("parser must be a mapping")

    return PreviewConfig(
        heading_sizes=_as_heading_sizes(
            raw.get("heading_sizes", list(DEFAULT_CONFIG.heading_sizes))
        ),
        blockquote_color=_as_color(
            colors.get("blockquote", DEFAULT_CONFIG.blockquote_color),
            "colors.blockquote",
        ),
        link_color=_as_color(
            colors.get("link", DEFAULT_CONFIG.link_color),
            "colors.link",
        ),
        text_color=_as_color(
            colors.get("text", DEFAULT_CONFIG.text_color),
            "colors.text",
        ),
        background_color=_as_color(
            colors.get("background", DEFAULT_CONFIG.background_color),
            "colors.background",
        ),
        monospace_family=str(raw.get("monospace_family", DEFAULT_CONFIG.monospace_family)),
        enable_strikethrough=_as_bool(
            parser.get("strikethrough", DEFAULT_CONFIG.enable_strikethrough),
            "parser.strikethrough",
        ),
        enable_tables=_as_bool(
            parser.get("tables", DEFAULT_CONFIG.enable_tables),
            "parser.tables",
        ),
        markdown_suffixes=_as_suffix_set(
            raw.get("markdown_suffixes", sorted(DEFAULT_CONFIG.markdown_suffixes)),
            "markdown_suffixes",
        ),
        window_title=str(raw.get("window_title", DEFAULT_CONFIG.window_title)),
        open_link_command=str(raw.get("open_link_command", DEFAULT_CONFIG.open_link_command)),
    )
