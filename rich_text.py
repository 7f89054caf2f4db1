# rich_text.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator


# Attribute kinds understood by the display layers.
FONT_SIZE = "font_size"
WEIGHT = "weight"
STYLE = "style"
TEXT_COLOR = "text_color"
UNDERLINE = "underline"
STRIKETHROUGH = "strikethrough"
FONT_FAMILY = "font_family"
LINK = "link"

BOLD_WEIGHT = 700
ITALIC = "italic"


@dataclass(frozen=True, order=True)
class StyleAttribute:
    """
    One visual attribute, e.g. StyleAttribute("font_size", 38.0).

    A span carries a set of these; two attributes with the same kind on
    overlapping spans are resolved in favour of the later range.
    """
    kind: str
    value: Any


def font_size(points: float) -> StyleAttribute:
    return StyleAttribute(FONT_SIZE, float(points))


def bold() -> StyleAttribute:
    return StyleAttribute(WEIGHT, BOLD_WEIGHT)


def italic() -> StyleAttribute:
    return StyleAttribute(STYLE, ITALIC)


def text_color(rgb: int) -> StyleAttribute:
    return StyleAttribute(TEXT_COLOR, rgb)


def underline(on: bool = True) -> StyleAttribute:
    return StyleAttribute(UNDERLINE, on)


def strikethrough(on: bool = True) -> StyleAttribute:
    return StyleAttribute(STRIKETHROUGH, on)


def font_family(name: str) -> StyleAttribute:
    return StyleAttribute(FONT_FAMILY, name)


def link_action(target: str) -> StyleAttribute:
    return StyleAttribute(LINK, target)


@dataclass(frozen=True)
class AttributeRange:
    start: int
    end: int
    attributes: frozenset[StyleAttribute] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.start < 0 or self.start > self.end:
            raise ValueError(f"Invalid range: {self.start}..{self.end}")

    def covers(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def get(self, kind: str, default: Any = None) -> Any:
        for attr in self.attributes:
            if attr.kind == kind:
                return attr.value
        return default


def _compose(ranges: list[AttributeRange]) -> dict[str, Any]:
    style: dict[str, Any] = {}
    for rng in ranges:
        # later ranges win for the kinds they redefine
        for attr in sorted(rng.attributes):
            style[attr.kind] = attr.value
    return style


def utf8_length(text: str) -> int:
    """Length of text in UTF-8 bytes."""
    return len(text.encode("utf-8"))


@dataclass(frozen=True)
class RichText:
    """
    Immutable styled text: plain text plus attribute ranges in the order
    they were recorded.

    Range offsets are UTF-8 byte positions into plain_text and always fall
    on character boundaries.
    """
    plain_text: str = ""
    ranges: tuple[AttributeRange, ...] = ()
    _char_index: dict[int, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # byte offset of every character boundary -> character index
        char_index: dict[int, int] = {0: 0}
        pos = 0
        for i, ch in enumerate(self.plain_text, start=1):
            pos += utf8_length(ch)
            char_index[pos] = i
        object.__setattr__(self, "_char_index", char_index)

        length = pos
        for rng in self.ranges:
            if rng.end > length:
                raise ValueError(
                    f"Range {rng.start}..{rng.end} exceeds text length {length}"
                )
            if rng.start not in char_index or rng.end not in char_index:
                raise ValueError(
                    f"Range {rng.start}..{rng.end} splits a character"
                )

    @property
    def byte_length(self) -> int:
        return max(self._char_index)

    def attributes_at(self, offset: int) -> dict[str, Any]:
        """Composed style at one byte position."""
        return _compose([r for r in self.ranges if r.covers(offset)])

    def char_ranges(self) -> list[tuple[int, int, frozenset[StyleAttribute]]]:
        """
        Ranges converted to Python string indices, for slicing plain_text.
        """
        return [
            (self._char_index[r.start], self._char_index[r.end], r.attributes)
            for r in self.ranges
        ]

    def segments(self) -> Iterator[tuple[str, dict[str, Any]]]:
        """
        Split the text on every range boundary and yield (text, style) pieces.
        """
        bounds = {0, self.byte_length}
        for rng in self.ranges:
            bounds.add(rng.start)
            bounds.add(rng.end)
        points = sorted(bounds)

        for seg_start, seg_end in zip(points, points[1:]):
            if seg_start == seg_end:
                continue
            active = [r for r in self.ranges if r.start <= seg_start and seg_end <= r.end]
            piece = self.plain_text[self._char_index[seg_start]:self._char_index[seg_end]]
            yield piece, _compose(active)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation; offsets are UTF-8 bytes."""
        return {
            "plain_text": self.plain_text,
            "ranges": [
                {
                    "start": r.start,
                    "end": r.end,
                    "attributes": {a.kind: a.value for a in sorted(r.attributes)},
                }
                for r in self.ranges
            ],
        }
