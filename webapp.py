#!/usr/bin/env python3
from __future__ import annotations
from pathlib import Path
from threading import Lock

from flask import Flask, abort, jsonify, render_template_string, request

from config_loader import DEFAULT_CONFIG, load_config
from md_reader import Document, confine_path, is_markdown_path
from md_to_rich import css_color, render_rich_text_html

BASE_DIR = Path.cwd()
CONFIG_PATH = BASE_DIR / "config.yml"
DOCS_DIR = BASE_DIR / "docs"

app = Flask(__name__)
cfg = load_config(CONFIG_PATH) if CONFIG_PATH.is_file() else DEFAULT_CONFIG

document = Document(cfg=cfg)
document_lock = Lock()


LAYOUT_TEMPLATE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ page_title }}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    body { margin: 0; font-family: sans-serif; }
    .split { display: flex; height: 100vh; }
    .split > * { flex: 1 1 50%; min-width: 300px; box-sizing: border-box; }
    #editor { font-family: monospace; padding: 1em; border: 0; resize: none; }
    #preview { overflow-y: auto; padding: 1em; white-space: pre-wrap;
               background: {{ background }}; color: {{ text_color }}; }
    #status { position: fixed; bottom: 0; right: 0; padding: 0.2em 0.6em;
              background: #fdd; display: none; }
  </style>
</head>
<body>
  <div class="split">
    <textarea id="editor" spellcheck="false">{{ raw_text }}</textarea>
    <div id="preview">{{ preview|safe }}</div>
  </div>
  <div id="status"></div>
  <script>
    const editor = document.getElementById("editor");
    const preview = document.getElementById("preview");
    const status = document.getElementById("status");

    editor.addEventListener("input", async () => {
      const resp = await fetch("/render", {
        method: "POST",
        headers: {"Content-Type": "application/json"},
        body: JSON.stringify({text: editor.value}),
      });
      const data = await resp.json();
      preview.innerHTML = data.html;
      status.textContent = data.error || "";
      status.style.display = data.ok ? "none" : "block";
    });

    preview.addEventListener("click", (ev) => {
      const link = ev.target.closest("a[data-command='{{ open_link_command }}']");
      if (!link) return;
      ev.preventDefault();
      window.open(link.getAttribute("href"), "_blank", "noopener");
    });
  </script>
</body>
</html>
"""


def resolve_doc_path(rel: str) -> Path:
    """
    Map a request path to a markdown file inside DOCS_DIR, or abort(404).
    """
    try:
        path = confine_path(str(DOCS_DIR / rel), root=DOCS_DIR)
    except (ValueError, OSError):
        abort(404)

    if not is_markdown_path(path, cfg):
        abort(404)
    return path


def render_payload(ok: bool = True) -> dict:
    """JSON body describing the current preview."""
    rendered = document.rendered
    payload = rendered.to_dict()
    payload["ok"] = ok
    payload["error"] = str(document.last_error) if document.last_error else None
    payload["html"] = render_rich_text_html(rendered, cfg)
    return payload


@app.route("/")
def index():
    with document_lock:
        title = document.path.name if document.path else cfg.window_title
        return render_template_string(
            LAYOUT_TEMPLATE,
            page_title=title,
            raw_text=document.raw_text,
            preview=render_rich_text_html(document.rendered, cfg),
            background=css_color(cfg.background_color),
            text_color=css_color(cfg.text_color),
            open_link_command=cfg.open_link_command,
        )


@app.route("/render", methods=["POST"])
def render():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("text"), str):
        abort(400)

    with document_lock:
        document.set_text(data["text"])
        return jsonify(render_payload(ok=document.last_error is None))


@app.route("/open/<path:filename>")
def open_file(filename: str):
    path = resolve_doc_path(filename)
    if not path.is_file():
        abort(404)

    with document_lock:
        try:
            document.open(path)
        except UnicodeDecodeError as e:
            payload = render_payload(ok=False)
            payload["error"] = f"{filename} is not UTF-8 text: {e.reason}"
            return jsonify(payload), 415
        except OSError as e:
            payload = render_payload(ok=False)
            payload["error"] = f"Cannot read {filename}: {e.strerror or e}"
            return jsonify(payload), 400
        return jsonify(render_payload(ok=document.last_error is None))


@app.route("/save", methods=["POST"])
def save():
    with document_lock:
        if document.path is None:
            abort(409)
        document.save()
        return jsonify({"ok": True, "path": document.path.name})


@app.route("/save-as/<path:filename>", methods=["POST"])
def save_as(filename: str):
    path = resolve_doc_path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    with document_lock:
        document.save_as(path)
        return jsonify({"ok": True, "path": path.name})


if __name__ == "__main__":
    # Run in dev mode
    app.run(debug=False)
