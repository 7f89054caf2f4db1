#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Union

from markdown_it import MarkdownIt
from markdown_it.token import Token

from config_loader import DEFAULT_CONFIG, PreviewConfig


# ---------------- Tag descriptors --------------------------------------------


@dataclass(frozen=True)
class Heading:
    level: int


@dataclass(frozen=True)
class BlockQuote:
    pass


@dataclass(frozen=True)
class CodeBlock:
    info: str = ""


@dataclass(frozen=True)
class Emphasis:
    pass


@dataclass(frozen=True)
class Strong:
    pass


@dataclass(frozen=True)
class Strikethrough:
    pass


@dataclass(frozen=True)
class Link:
    target: str
    title: str = ""


@dataclass(frozen=True)
class Other:
    """Structural tag without visual effect (paragraph, list, image, ...)."""
    name: str


TagDescriptor = Union[Heading, BlockQuote, CodeBlock, Emphasis, Strong, Strikethrough, Link, Other]


@dataclass
class MdEvent:
    """
    A structural event emitted by the markdown tokenizer adapter.

    type:
      - "start"       (tag set)
      - "end"         (tag set)
      - "text"
      - "code"        inline code span
      - "html"        raw inline or block HTML
      - "hard_break"
      - "soft_break"
      - "rule"        thematic break
    """
    type: str
    tag: Optional[TagDescriptor] = None
    text: str = ""


def start(tag: TagDescriptor) -> MdEvent:
    return MdEvent(type="start", tag=tag)


def end(tag: TagDescriptor) -> MdEvent:
    return MdEvent(type="end", tag=tag)


def text(value: str) -> MdEvent:
    return MdEvent(type="text", text=value)


# ---------------- markdown-it adapter ----------------------------------------

# Paired token prefixes (xxx_open / xxx_close) that carry no styling.
_OTHER_BLOCKS: dict[str, str] = {
    "paragraph": "paragraph",
    "bullet_list": "bullet_list",
    "ordered_list": "ordered_list",
    "list_item": "list_item",
    "table": "table",
    "thead": "table_head",
    "tbody": "table_body",
    "tr": "table_row",
    "th": "table_cell",
    "td": "table_cell",
}


def build_markdown_parser(cfg: PreviewConfig = DEFAULT_CONFIG) -> MarkdownIt:
    """
    CommonMark parser with the extensions the preview understands.
    """
    md = MarkdownIt("commonmark")
    if cfg.enable_strikethrough:
        md.enable("strikethrough")
    if cfg.enable_tables:
        md.enable("table")
    return md


def heading_level_for_tag(html_tag: str) -> int:
    """Map 'h1'..'h6' to 1..6."""
    try:
        level = int(html_tag[1:])
    except (ValueError, IndexError) as e:
        raise ValueError(f"Not a heading tag: {html_tag!r}") from e
    if not 1 <= level <= 6:
        raise ValueError(f"Not a heading tag: {html_tag!r}")
    return level


def _pair_name(token_type: str) -> tuple[str, str]:
    """Split 'strong_open' into ('strong', 'open')."""
    base, _, suffix = token_type.rpartition("_")
    return base, suffix


def _iter_inline_events(children: list[Token], link_stack: list[Link]) -> Iterator[MdEvent]:
    for tok in children:
        ttype = tok.type

        if ttype in {"text", "text_special"}:
            if tok.content:
                yield text(tok.content)

        elif ttype == "code_inline":
            yield MdEvent(type="code", text=tok.content)

        elif ttype == "html_inline":
            yield MdEvent(type="html", text=tok.content)

        elif ttype == "hardbreak":
            yield MdEvent(type="hard_break")

        elif ttype == "softbreak":
            yield MdEvent(type="soft_break")

        elif ttype == "em_open":
            yield start(Emphasis())
        elif ttype == "em_close":
            yield end(Emphasis())

        elif ttype == "strong_open":
            yield start(Strong())
        elif ttype == "strong_close":
            yield end(Strong())

        elif ttype == "s_open":
            yield start(Strikethrough())
        elif ttype == "s_close":
            yield end(Strikethrough())

        elif ttype == "link_open":
            link = Link(
                target=str(tok.attrGet("href") or ""),
                title=str(tok.attrGet("title") or ""),
            )
            link_stack.append(link)
            yield start(link)
        elif ttype == "link_close":
            # link_close carries no attributes; reuse the opener's descriptor
            if not link_stack:
                yield end(Link(target=""))
            else:
                yield end(link_stack.pop())

        elif ttype == "image":
            tag = Other("image")
            yield start(tag)
            yield from _iter_inline_events(tok.children or [], link_stack)
            yield end(tag)

        # anything else (e.g. plugin tokens) has no preview representation


def iter_markdown_events(
    source: str,
    cfg: PreviewConfig = DEFAULT_CONFIG,
    *,
    md: Optional[MarkdownIt] = None,
) -> Iterator[MdEvent]:
    """
    Tokenize markdown and yield structural events in document order.
    """
    parser = md if md is not None else build_markdown_parser(cfg)
    link_stack: list[Link] = []

    for tok in parser.parse(source):
        ttype = tok.type

        if ttype == "inline":
            yield from _iter_inline_events(tok.children or [], link_stack)
            continue

        if ttype in {"fence", "code_block"}:
            tag = CodeBlock(info=(tok.info or "").strip())
            yield start(tag)
            if tok.content:
                yield text(tok.content)
            yield end(tag)
            continue

        if ttype == "html_block":
            yield MdEvent(type="html", text=tok.content)
            continue

        if ttype == "hr":
            yield MdEvent(type="rule")
            continue

        base, suffix = _pair_name(ttype)
        if suffix not in {"open", "close"}:
            continue

        if base == "heading":
            tag = Heading(heading_level_for_tag(tok.tag))
        elif base == "blockquote":
            tag = BlockQuote()
        elif base in _OTHER_BLOCKS:
            # tight list items render their paragraphs without tags
            if base == "paragraph" and tok.hidden:
                continue
            tag = Other(_OTHER_BLOCKS[base])
        else:
            tag = Other(base)

        yield start(tag) if suffix == "open" else end(tag)


def describe_event(event: MdEvent) -> str:
    """
    One-line human readable form of an event (used for console tracing).
    """
    if event.type in {"start", "end"}:
        return f"{event.type.upper():<5} {event.tag!r}"
    if event.text:
        return f"{event.type.upper():<5} {event.text!r}"
    return event.type.upper()
