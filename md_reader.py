from __future__ import annotations

import argparse
from pathlib import Path
from typing import Callable, Optional

from config_loader import DEFAULT_CONFIG, PreviewConfig, load_config
from md_parser import describe_event, iter_markdown_events
from md_to_rich import MarkdownStructureError, rebuild_rendered_text
from rich_text import RichText
from helper import print_event_gray, report_error

Converter = Callable[[str, PreviewConfig], RichText]


def confine_path(raw: str, *, root: Path | None = None) -> Path:
    """
    Resolve a user-supplied path and keep it inside `root` if one is given.

    The path does not have to exist yet, so save targets go through here too.
    Raises ValueError for empty input, NUL bytes, '..' segments and paths that
    land outside root.
    """
    if not raw or not raw.strip():
        raise ValueError("Empty path.")
    if "\x00" in raw:
        raise ValueError("NUL byte in path is not allowed.")

    p = Path(raw).expanduser()
    if ".." in p.parts:
        raise ValueError("Path traversal ('..') is not allowed.")

    resolved = p.resolve(strict=False)
    if root is not None:
        base = root.resolve(strict=True)
        try:
            resolved.relative_to(base)
        except ValueError as e:
            raise ValueError(f"Path must be within {base}") from e
    return resolved


def is_markdown_path(path: Path, cfg: PreviewConfig = DEFAULT_CONFIG) -> bool:
    """True if the file suffix is one of the configured markdown suffixes."""
    return path.suffix.lower() in cfg.markdown_suffixes


def safe_input_path(
    raw: str,
    *,
    root: Path | None = None,
    cfg: PreviewConfig | None = None,
) -> Path:
    """
    Confine `raw` (see confine_path) and require an existing file.

    With `cfg`, the file must also carry one of cfg.markdown_suffixes.
    """
    resolved = confine_path(raw, root=root)
    if not resolved.exists():
        raise FileNotFoundError(f"File not found: {resolved}")
    if not resolved.is_file():
        raise IsADirectoryError(f"Not a file: {resolved}")
    if cfg is not None and not is_markdown_path(resolved, cfg):
        suffixes = ", ".join(sorted(cfg.markdown_suffixes))
        raise ValueError(f"Not a markdown file ({suffixes}): {resolved.name}")
    return resolved


def read_markdown(path: Path) -> str:
    """Read a markdown file as UTF-8 text."""
    return Path(path).read_text(encoding="utf-8")


class Document:
    """
    The edited document: raw markdown, where it lives on disk, and the last
    successfully rendered preview.

    The preview is rebuilt from scratch whenever the raw text changes. If a
    rebuild fails, the previous preview is kept and the error is remembered
    in `last_error`.
    """

    def __init__(
        self,
        raw_text: str = "",
        path: Optional[Path] = None,
        *,
        cfg: PreviewConfig = DEFAULT_CONFIG,
        converter: Converter = rebuild_rendered_text,
    ):
        self.cfg = cfg
        self.converter = converter
        self.raw_text = ""
        self.path = Path(path) if path is not None else None
        self.rendered = RichText()
        self.last_error: Optional[MarkdownStructureError] = None
        self.set_text(raw_text, force=True)

    def set_text(self, text: str, *, force: bool = False) -> bool:
        """
        Replace the raw text; re-render if it changed.

        Returns True if the preview was rebuilt.
        """
        if text == self.raw_text and not force:
            return False

        self.raw_text = text
        try:
            rendered = self.converter(text, self.cfg)
        except MarkdownStructureError as e:
            self.last_error = e
            report_error("document", f"Preview not updated: {e}")
            return False

        self.rendered = rendered
        self.last_error = None
        return True

    def open(self, path: Path) -> None:
        path = Path(path)
        text = read_markdown(path)
        self.path = path
        self.set_text(text)

    def save(self) -> None:
        if self.path is None:
            raise ValueError("Document has no path yet; use save_as().")
        self.save_as(self.path)

    def save_as(self, path: Path) -> None:
        path = Path(path)
        path.write_text(self.raw_text, encoding="utf-8")
        self.path = path


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="md_reader.py",
        description="Read a markdown file and optionally trace its structural events.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        default="README.md",
        help="Markdown file to read (default: README.md)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yml (default: built-in settings)",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Optional root directory: input file must be within this directory.",
    )
    parser.add_argument(
        "--events",
        action="store_true",
        help="Print the structural event stream instead of the raw text.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    try:
        cfg = load_config(Path(args.config)) if args.config else DEFAULT_CONFIG
    except Exception as e:
        report_error("md_reader", f"Failed to load config: {e}")
        return 2

    root_dir: Path | None = None
    if args.root:
        try:
            root_dir = Path(args.root).expanduser().resolve(strict=True)
        except Exception as e:
            report_error("md_reader", f"Invalid --root: {e}")
            return 2

    try:
        input_path = safe_input_path(args.input, root=root_dir, cfg=cfg)
    except Exception as e:
        report_error("md_reader", f"Invalid input path: {e}")
        return 2

    try:
        text = read_markdown(input_path)
    except Exception as e:
        report_error("md_reader", f"Error while reading: {e}")
        return 1

    if args.events:
        for event in iter_markdown_events(text, cfg):
            print_event_gray(describe_event(event))
    else:
        print(text, end="")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
