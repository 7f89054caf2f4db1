import io
import tempfile
import unittest
from contextlib import redirect_stderr
from pathlib import Path
from unittest import mock

import webapp
from md_reader import Document
from md_to_rich import UnbalancedStructureError, rebuild_rendered_text


class TestWebPreview(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.docs = Path(self.tmp.name) / "docs"
        self.docs.mkdir()

        self.document = Document(cfg=webapp.cfg)
        patches = [
            mock.patch.object(webapp, "DOCS_DIR", self.docs),
            mock.patch.object(webapp, "document", self.document),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

        self.client = webapp.app.test_client()

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_index_shows_editor_and_preview(self):
        self.document.set_text("# Hello <you>")
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        body = resp.get_data(as_text=True)
        self.assertIn('<textarea id="editor"', body)
        self.assertIn("# Hello &lt;you&gt;", body)
        self.assertIn("font-size: 38pt", body)

    def test_render_returns_rich_text(self):
        resp = self.client.post("/render", json={"text": "**b**"})
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertTrue(data["ok"])
        self.assertIsNone(data["error"])
        self.assertEqual(data["plain_text"], "b\n\n")
        self.assertEqual(data["ranges"], [{"start": 0, "end": 1, "attributes": {"weight": 700}}])
        self.assertIn("font-weight: 700", data["html"])
        self.assertEqual(self.document.raw_text, "**b**")

    def test_render_requires_text(self):
        self.assertEqual(self.client.post("/render", json={"nope": 1}).status_code, 400)
        self.assertEqual(self.client.post("/render", data="x").status_code, 400)

    def test_render_failure_keeps_previous_preview(self):
        self.client.post("/render", json={"text": "# ok"})

        def broken(text, cfg):
            raise UnbalancedStructureError("Unclosed tags")

        self.document.converter = broken
        with redirect_stderr(io.StringIO()):
            resp = self.client.post("/render", json={"text": "# changed"})
        data = resp.get_json()
        self.assertFalse(data["ok"])
        self.assertIn("Unclosed", data["error"])
        self.assertEqual(data["plain_text"], "ok\n\n")

        self.document.converter = rebuild_rendered_text

    def test_open_file(self):
        (self.docs / "a.md").write_text("*x*", encoding="utf-8")
        resp = self.client.get("/open/a.md")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["plain_text"], "x\n\n")
        self.assertEqual(self.document.path, (self.docs / "a.md").resolve())

    def test_open_non_utf8_file_leaves_document_alone(self):
        self.client.post("/render", json={"text": "# kept"})
        (self.docs / "bad.md").write_bytes(b"\xff\xfe bad")

        resp = self.client.get("/open/bad.md")
        self.assertEqual(resp.status_code, 415)
        data = resp.get_json()
        self.assertFalse(data["ok"])
        self.assertIn("bad.md", data["error"])
        self.assertEqual(data["plain_text"], "kept\n\n")
        self.assertIsNone(self.document.path)
        self.assertEqual(self.document.raw_text, "# kept")

    def test_render_offsets_are_utf8_bytes(self):
        data = self.client.post("/render", json={"text": "# Café"}).get_json()
        self.assertEqual(data["plain_text"], "Café\n\n")
        self.assertEqual((data["ranges"][0]["start"], data["ranges"][0]["end"]), (0, 5))

    def test_open_rejects_other_files(self):
        (self.docs / "a.txt").write_text("x", encoding="utf-8")
        self.assertEqual(self.client.get("/open/a.txt").status_code, 404)
        self.assertEqual(self.client.get("/open/missing.md").status_code, 404)
        self.assertEqual(self.client.get("/open/../secret.md").status_code, 404)

    def test_save_needs_a_path(self):
        self.assertEqual(self.client.post("/save").status_code, 409)

    def test_save_as_then_save(self):
        self.client.post("/render", json={"text": "first"})
        resp = self.client.post("/save-as/notes/n.md")
        self.assertEqual(resp.status_code, 200)
        target = self.docs / "notes" / "n.md"
        self.assertEqual(target.read_text(encoding="utf-8"), "first")

        self.client.post("/render", json={"text": "second"})
        self.assertEqual(self.client.post("/save").status_code, 200)
        self.assertEqual(target.read_text(encoding="utf-8"), "second")


if __name__ == "__main__":
    unittest.main()
