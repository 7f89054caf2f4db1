import unittest

from rich_text import (
    AttributeRange,
    RichText,
    StyleAttribute,
    bold,
    font_size,
    italic,
    link_action,
    text_color,
)


class TestAttributeRange(unittest.TestCase):
    def test_rejects_inverted_range(self):
        with self.assertRaises(ValueError):
            AttributeRange(3, 2, frozenset({bold()}))

    def test_rejects_negative_start(self):
        with self.assertRaises(ValueError):
            AttributeRange(-1, 2, frozenset())

    def test_get_attribute_value(self):
        rng = AttributeRange(0, 1, frozenset({font_size(12), bold()}))
        self.assertEqual(rng.get("font_size"), 12.0)
        self.assertIsNone(rng.get("link"))

    def test_covers_is_half_open(self):
        rng = AttributeRange(1, 3)
        self.assertFalse(rng.covers(0))
        self.assertTrue(rng.covers(1))
        self.assertFalse(rng.covers(3))


class TestRichText(unittest.TestCase):
    def test_range_past_end_is_rejected(self):
        with self.assertRaises(ValueError):
            RichText("ab", (AttributeRange(0, 3, frozenset({bold()})),))

    def test_is_immutable(self):
        rich = RichText("a")
        with self.assertRaises(AttributeError):
            rich.plain_text = "b"

    def test_attributes_at_composes_later_last(self):
        rich = RichText(
            "abcd",
            (
                AttributeRange(0, 2, frozenset({text_color(0x0000EE), link_action("u")})),
                AttributeRange(0, 4, frozenset({italic(), text_color(0x888888)})),
            ),
        )
        self.assertEqual(
            rich.attributes_at(1),
            {"text_color": 0x888888, "link": "u", "style": "italic"},
        )
        self.assertEqual(rich.attributes_at(3), {"text_color": 0x888888, "style": "italic"})

    def test_segments_split_on_boundaries(self):
        rich = RichText(
            "A bb c",
            (
                AttributeRange(2, 4, frozenset({bold()})),
                AttributeRange(0, 6, frozenset({font_size(32)})),
            ),
        )
        self.assertEqual(
            list(rich.segments()),
            [
                ("A ", {"font_size": 32.0}),
                ("bb", {"weight": 700, "font_size": 32.0}),
                (" c", {"font_size": 32.0}),
            ],
        )

    def test_segments_of_unstyled_text(self):
        self.assertEqual(list(RichText("xy").segments()), [("xy", {})])
        self.assertEqual(list(RichText("").segments()), [])

    def test_offsets_are_utf8_bytes(self):
        # é is 2 bytes, € is 3 bytes
        rich = RichText("é€x", (AttributeRange(2, 5, frozenset({bold()})),))
        self.assertEqual(rich.byte_length, 6)
        self.assertEqual(rich.char_ranges(), [(1, 2, frozenset({bold()}))])
        self.assertEqual(
            list(rich.segments()),
            [("é", {}), ("€", {"weight": 700}), ("x", {})],
        )
        self.assertEqual(rich.attributes_at(2), {"weight": 700})
        self.assertEqual(rich.attributes_at(5), {})

    def test_range_inside_a_character_is_rejected(self):
        with self.assertRaises(ValueError):
            RichText("é", (AttributeRange(0, 1, frozenset({bold()})),))
        with self.assertRaises(ValueError):
            RichText("é", (AttributeRange(0, 3, frozenset({bold()})),))

    def test_to_dict(self):
        rich = RichText("hi", (AttributeRange(0, 2, frozenset({bold(), italic()})),))
        self.assertEqual(
            rich.to_dict(),
            {
                "plain_text": "hi",
                "ranges": [{"start": 0, "end": 2, "attributes": {"style": "italic", "weight": 700}}],
            },
        )

    def test_attributes_are_hashable_values(self):
        self.assertEqual(StyleAttribute("weight", 700), bold())
        self.assertEqual(len({bold(), bold(), italic()}), 2)


if __name__ == "__main__":
    unittest.main()
