"""Unified diff splitting, strict parsing, and per-file preview rendering."""

from __future__ import annotations

import unittest

from jarmanifest.diff import (
    EMPTY_DIFF_MESSAGE,
    NO_CHANGES_MESSAGE,
    normalize_patch,
    parse_patch,
    render_patch,
    split_patch_by_file,
)
from jarmanifest.errors import DiffParseError
from jarmanifest.syntax import DEFAULT_STYLE, highlight_diff, normalize_style, sanitize_terminal_text

MULTI_FILE_DIFF = """\
diff --git a/src/App.java b/src/App.java
index 1111111..2222222 100644
--- a/src/App.java
+++ b/src/App.java
@@ -1,3 +1,3 @@ class App
 line one
-line two
+line 2
 line three
diff --git a/old.txt b/old.txt
deleted file mode 100644
index 3333333..0000000
--- a/old.txt
+++ /dev/null
@@ -1 +0,0 @@
-gone
diff --git a/logo.png b/logo.png
new file mode 100644
index 0000000..4444444
Binary files /dev/null and b/logo.png differ
"""


class SplitPatchTests(unittest.TestCase):
    def test_splits_per_file_including_deletions_and_binaries(self) -> None:
        patches = split_patch_by_file(MULTI_FILE_DIFF)
        self.assertEqual(list(patches), ["src/App.java", "old.txt", "logo.png"])
        self.assertTrue(patches["old.txt"].startswith("diff --git a/old.txt b/old.txt"))
        self.assertIn("+line 2", patches["src/App.java"])

    def test_empty_text_yields_no_patches(self) -> None:
        self.assertEqual(split_patch_by_file(""), {})


class ParsePatchTests(unittest.TestCase):
    def test_parses_hunks_with_counts(self) -> None:
        hunks = parse_patch("src/App.java", split_patch_by_file(MULTI_FILE_DIFF)["src/App.java"])

        self.assertEqual(len(hunks), 1)
        hunk = hunks[0]
        self.assertEqual((hunk.old_start, hunk.old_count, hunk.new_start, hunk.new_count), (1, 3, 1, 3))
        self.assertEqual(hunk.section, "class App")
        self.assertEqual((hunk.added, hunk.removed), (1, 1))

    def test_bare_hunks_get_file_header(self) -> None:
        patch = "@@ -1 +1 @@\n-a\n+b\n"
        self.assertTrue(normalize_patch("x.txt", patch).startswith("diff --git a/x.txt b/x.txt\n--- a/x.txt\n"))
        self.assertEqual(len(parse_patch("x.txt", patch)), 1)

    def test_no_newline_marker_is_accepted(self) -> None:
        patch = "@@ -1 +1 @@\n-a\n\\ No newline at end of file\n+b\n\\ No newline at end of file\n"
        self.assertEqual(parse_patch("x.txt", patch)[0].lines, [("-", "a"), ("+", "b")])

    def test_header_only_patch_has_no_hunks(self) -> None:
        self.assertEqual(parse_patch("logo.png", split_patch_by_file(MULTI_FILE_DIFF)["logo.png"]), [])

    def test_malformed_input_raises(self) -> None:
        cases = {
            "bad header": "@@ nonsense @@\n+a\n",
            "stray line": "this is not a diff\n",
            "short hunk": "@@ -1,2 +1,2 @@\n a\n",
            "bad marker": "@@ -1,2 +1,2 @@\n a\n*b\n",
        }
        for name, patch in cases.items():
            with self.subTest(name=name):
                with self.assertRaises(DiffParseError) as ctx:
                    parse_patch("x.txt", patch)
                self.assertEqual(ctx.exception.path, "x.txt")


class RenderPatchTests(unittest.TestCase):
    def test_missing_patch_reports_no_changes(self) -> None:
        self.assertEqual(render_patch("a.txt", None).text, NO_CHANGES_MESSAGE)
        self.assertEqual(render_patch("a.txt", "").text, NO_CHANGES_MESSAGE)

    def test_header_only_patch_reports_empty_diff(self) -> None:
        rendered = render_patch("logo.png", split_patch_by_file(MULTI_FILE_DIFF)["logo.png"], colorize=False)
        self.assertEqual(rendered.text, EMPTY_DIFF_MESSAGE)

    def test_plain_render_numbers_lines(self) -> None:
        rendered = render_patch("x.txt", "@@ -4,2 +4,2 @@\n keep\n-old\n+new\n", colorize=False)
        self.assertFalse(rendered.is_raw)
        self.assertEqual(rendered.hunk_count, 1)
        self.assertEqual(
            rendered.text.splitlines(),
            [
                "@@ -4,2 +4,2 @@",
                "    4     4   keep",
                "    5       - old",
                "          5 + new",
            ],
        )

    def test_malformed_patch_falls_back_to_raw_text(self) -> None:
        rendered = render_patch("x.txt", "@@ broken\n+a\n", colorize=False)
        self.assertTrue(rendered.is_raw)
        self.assertIsNotNone(rendered.error)
        self.assertIn("@@ broken", rendered.text)
        self.assertTrue(rendered.text.startswith("diff --git a/x.txt b/x.txt"))

    def test_control_bytes_are_escaped(self) -> None:
        rendered = render_patch("x.txt", "@@ -1 +1 @@\n-a\x07\n+b\n", colorize=False)
        self.assertIn("\\x07", rendered.text)
        self.assertNotIn("\x07", rendered.text)

    def test_colorized_render_uses_ansi(self) -> None:
        rendered = render_patch("x.txt", "@@ -1 +1 @@\n-a\n+b\n", colorize=True)
        self.assertIn("\033[", rendered.text)


class SyntaxHelperTests(unittest.TestCase):
    def test_sanitize_keeps_newlines_and_tabs(self) -> None:
        self.assertEqual(sanitize_terminal_text("a\tb\nc"), "a\tb\nc")
        self.assertEqual(sanitize_terminal_text("x\x1b[2Jy"), "x\\x1b[2Jy")

    def test_unknown_style_falls_back(self) -> None:
        self.assertEqual(normalize_style("definitely-not-a-style"), DEFAULT_STYLE)
        self.assertEqual(normalize_style("monokai"), "monokai")

    def test_highlight_diff_preserves_line_count(self) -> None:
        text = "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b"
        highlighted = highlight_diff(text)
        self.assertEqual(len(highlighted.splitlines()), len(text.splitlines()))
        self.assertFalse(highlighted.endswith("\n"))
        self.assertEqual(highlight_diff(""), "")


if __name__ == "__main__":
    unittest.main()
