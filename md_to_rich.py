#!/usr/bin/env python3
"""
md_to_rich.py

Markdown → styled text converter for the live preview.

- md_parser.iter_markdown_events() turns markdown into structural events
- the converter walks those events once, keeps a LIFO stack of open spans
  and records one AttributeRange per styled span
- the result is an immutable rich_text.RichText (plain text + ranges)

A small HTML painter turns a RichText into markup for the web preview and
for standalone export.
"""
from __future__ import annotations
from config_loader import DEFAULT_CONFIG, PARAGRAPH_BREAK, PreviewConfig, load_config
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional
import argparse
import html

from helper import report_error
from md_parser import (
    BlockQuote,
    CodeBlock,
    Emphasis,
    Heading,
    Link,
    MdEvent,
    Strikethrough,
    Strong,
    TagDescriptor,
    iter_markdown_events,
)
from rich_text import (
    AttributeRange,
    RichText,
    StyleAttribute,
    bold,
    font_family,
    font_size,
    italic,
    link_action,
    strikethrough,
    text_color,
    underline,
    utf8_length,
)

# Inline tags continue the current paragraph; everything else is a block.
INLINE_TAGS: tuple[type, ...] = (Emphasis, Strong, Strikethrough, Link)


class MarkdownStructureError(ValueError):
    """The event stream is not well nested."""


class UnbalancedStructureError(MarkdownStructureError):
    """An end event without an open span, or spans left open at the end."""


class TagMismatchError(MarkdownStructureError):
    """An end event whose tag differs from the innermost open span."""


# ---------------- Tag mapping ------------------------------------------------


def attributes_for_tag(
    tag: TagDescriptor,
    cfg: PreviewConfig = DEFAULT_CONFIG,
) -> frozenset[StyleAttribute]:
    """
    Map a structural tag to the visual attributes of its span.

    Tags without a visual effect (paragraphs, lists, images, ...) map to an
    empty set.
    """
    if isinstance(tag, Heading):
        return frozenset({font_size(cfg.heading_size(tag.level)), bold()})
    if isinstance(tag, BlockQuote):
        return frozenset({italic(), text_color(cfg.blockquote_color)})
    if isinstance(tag, CodeBlock):
        return frozenset({font_family(cfg.monospace_family)})
    if isinstance(tag, Emphasis):
        return frozenset({italic()})
    if isinstance(tag, Strong):
        return frozenset({bold()})
    if isinstance(tag, Strikethrough):
        return frozenset({strikethrough(True)})
    if isinstance(tag, Link):
        return frozenset({
            underline(True),
            text_color(cfg.link_color),
            link_action(tag.target),
        })
    return frozenset()


def needs_break_after(tag: TagDescriptor) -> bool:
    """True if closing this tag ends a block and needs a paragraph break."""
    return not isinstance(tag, INLINE_TAGS)


# ---------------- Conversion state -------------------------------------------


@dataclass(frozen=True)
class OpenSpan:
    start: int
    tag: TagDescriptor


class TagStack:
    """LIFO stack of open spans; every close must match the innermost open."""

    def __init__(self) -> None:
        self._spans: list[OpenSpan] = []

    def __len__(self) -> int:
        return len(self._spans)

    def push(self, tag: TagDescriptor, offset: int) -> None:
        self._spans.append(OpenSpan(offset, tag))

    def pop(self, tag: TagDescriptor) -> OpenSpan:
        if not self._spans:
            raise UnbalancedStructureError(f"End of {tag!r} without a matching start")
        span = self._spans.pop()
        if span.tag != tag:
            raise TagMismatchError(f"Mismatched tags: open {span.tag!r}, close {tag!r}")
        return span

    def ensure_empty(self) -> None:
        if self._spans:
            still_open = ", ".join(repr(s.tag) for s in self._spans)
            raise UnbalancedStructureError(f"Unclosed tags at end of input: {still_open}")


class TextBufferBuilder:
    """Accumulates the plain text and tracks the write cursor in UTF-8 bytes."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    def append(self, text: str) -> tuple[int, int]:
        start = self._offset
        self._parts.append(text)
        self._offset += utf8_length(text)
        return start, self._offset

    def text(self) -> str:
        return "".join(self._parts)


class AttributeRecorder:
    """Collects attribute ranges in the order spans are closed."""

    def __init__(self) -> None:
        self._ranges: list[AttributeRange] = []

    def record(self, start: int, end: int, attributes: Iterable[StyleAttribute]) -> None:
        attrs = frozenset(attributes)
        if not attrs:
            return
        self._ranges.append(AttributeRange(start, end, attrs))

    def ranges(self) -> tuple[AttributeRange, ...]:
        return tuple(self._ranges)


class RichTextConverter:
    """
    Single-pass event consumer. Create one per conversion.
    """

    def __init__(self, cfg: PreviewConfig = DEFAULT_CONFIG) -> None:
        self.cfg = cfg
        self.stack = TagStack()
        self.buffer = TextBufferBuilder()
        self.recorder = AttributeRecorder()

    def feed(self, event: MdEvent) -> None:
        etype = event.type

        if etype == "start":
            self.stack.push(event.tag, self.buffer.offset)

        elif etype == "end":
            span = self.stack.pop(event.tag)
            self.recorder.record(
                span.start,
                self.buffer.offset,
                attributes_for_tag(span.tag, self.cfg),
            )
            if needs_break_after(span.tag):
                self.buffer.append(PARAGRAPH_BREAK)

        elif etype == "text":
            self.buffer.append(event.text)

        elif etype == "code":
            start, end = self.buffer.append(event.text)
            self.recorder.record(start, end, {font_family(self.cfg.monospace_family)})

        elif etype == "html":
            start, end = self.buffer.append(event.text)
            self.recorder.record(
                start,
                end,
                {font_family(self.cfg.monospace_family), text_color(self.cfg.blockquote_color)},
            )

        elif etype == "hard_break":
            self.buffer.append(PARAGRAPH_BREAK)

        # soft breaks and rules are not rendered

    def finish(self) -> RichText:
        self.stack.ensure_empty()
        return RichText(self.buffer.text(), self.recorder.ranges())


def rebuild_from_events(
    events: Iterable[MdEvent],
    cfg: PreviewConfig = DEFAULT_CONFIG,
) -> RichText:
    """
    Convert a structural event stream into a RichText.

    Raises MarkdownStructureError if the stream is not well nested; no
    partial result is produced in that case.
    """
    converter = RichTextConverter(cfg)
    for event in events:
        converter.feed(event)
    return converter.finish()


def rebuild_rendered_text(text: str, cfg: PreviewConfig = DEFAULT_CONFIG) -> RichText:
    """Parse a markdown string and build its styled preview text."""
    return rebuild_from_events(iter_markdown_events(text, cfg), cfg)


# ---------------- HTML painter -----------------------------------------------


def escape_html(text: str) -> str:
    """Escape text for HTML output."""
    return html.escape(text, quote=True)


def css_color(rgb: int) -> str:
    return f"#{rgb:06x}"


def style_to_css(style: dict[str, Any]) -> str:
    """Translate a composed attribute style into an inline CSS declaration."""
    decls: list[str] = []
    if "font_size" in style:
        decls.append(f"font-size: {style['font_size']:g}pt")
    if "weight" in style:
        decls.append(f"font-weight: {style['weight']}")
    if "style" in style:
        decls.append(f"font-style: {style['style']}")
    if "text_color" in style:
        decls.append(f"color: {css_color(style['text_color'])}")
    if "font_family" in style:
        decls.append(f"font-family: {style['font_family']}")

    lines: list[str] = []
    if style.get("underline"):
        lines.append("underline")
    if style.get("strikethrough"):
        lines.append("line-through")
    if lines:
        decls.append(f"text-decoration: {' '.join(lines)}")
    return "; ".join(decls)


def render_segment_text(text: str) -> str:
    """Escape a text piece and keep its line breaks visible."""
    return escape_html(text).replace("\n", "<br />\n")


def render_rich_text_html(rich: RichText, cfg: PreviewConfig = DEFAULT_CONFIG) -> str:
    """
    Paint a RichText as HTML.

    Each piece between range boundaries becomes one <span> with the composed
    style; pieces with a link target become <a> elements carrying the
    open-link command so the page can dispatch activation.
    """
    out: list[str] = []
    for piece, style in rich.segments():
        inner = render_segment_text(piece)
        css = style_to_css(style)
        style_attr = f' style="{escape_html(css)}"' if css else ""

        target = style.get("link")
        if target is not None:
            out.append(
                f'<a href="{escape_html(str(target))}"'
                f' data-command="{escape_html(cfg.open_link_command)}"'
                f"{style_attr}>{inner}</a>"
            )
        elif style_attr:
            out.append(f"<span{style_attr}>{inner}</span>")
        else:
            out.append(inner)
    return "".join(out)


def open_html_document(title: Optional[str], cfg: PreviewConfig = DEFAULT_CONFIG) -> str:
    """Return the HTML prolog with the preview colors."""
    safe_title = escape_html(title or cfg.window_title)
    return (
        "<!doctype html>\n"
        "<html lang=\"en\">\n"
        "<head>\n"
        "  <meta charset=\"utf-8\" />\n"
        f"  <title>{safe_title}</title>\n"
        "  <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />\n"
        "</head>\n"
        f"<body style=\"background: {css_color(cfg.background_color)}; "
        f"color: {css_color(cfg.text_color)}\">\n"
        "<div class=\"preview\">"
    )


def close_html_document() -> str:
    """Return the HTML epilog."""
    return "</div>\n</body>\n</html>\n"


def render_markdown_to_html_document(
    input_path: Path,
    cfg: PreviewConfig,
) -> str:
    """
    Render a markdown file into a complete standalone preview page.
    """
    rich = rebuild_rendered_text(input_path.read_text(encoding="utf-8"), cfg)
    return (
        open_html_document(input_path.name, cfg)
        + render_rich_text_html(rich, cfg)
        + close_html_document()
    )


def markdown_to_html(
    input_path: Path,
    output_path: Path,
    cfg: PreviewConfig,
) -> None:
    """
    Convert a markdown file to a preview page and write it to disk.
    """
    document = render_markdown_to_html_document(input_path, cfg)
    output_path.write_text(document, encoding="utf-8")


def format_ranges(rich: RichText) -> str:
    """Plain text dump of a RichText, one range per line."""
    lines = [repr(rich.plain_text)]
    for rng in rich.ranges:
        attrs = ", ".join(f"{a.kind}={a.value!r}" for a in sorted(rng.attributes))
        lines.append(f"[{rng.start}, {rng.end}) {attrs}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Convert markdown to a styled preview.")
    parser.add_argument("input", nargs="?", default="README.md", help="Input markdown file (default: README.md)")

    parser.add_argument("-o", "--output", default="out.html", help="Output HTML file (default: out.html)")
    parser.add_argument("-c", "--config", default=None, help="Config YAML file (default: built-in settings)")
    parser.add_argument("--ranges", action="store_true", help="Print plain text and attribute ranges instead of HTML")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(Path(args.config)) if args.config else DEFAULT_CONFIG
    except Exception as e:
        report_error("md_to_rich", f"Failed to load config: {e}")
        return 2

    input_path = Path(args.input)
    try:
        if args.ranges:
            rich = rebuild_rendered_text(input_path.read_text(encoding="utf-8"), cfg)
            print(format_ranges(rich))
        else:
            markdown_to_html(input_path, Path(args.output), cfg)
    except (OSError, UnicodeDecodeError) as e:
        report_error("md_to_rich", f"Error while reading: {e}")
        return 1
    except MarkdownStructureError as e:
        report_error("md_to_rich", f"Conversion failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
