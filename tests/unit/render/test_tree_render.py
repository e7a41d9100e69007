"""Tree row formatting: markers, tri-state checkboxes, badges, highlighting."""

from __future__ import annotations

import unittest

from jarmanifest.overrides import FileOverride, OverrideStatus
from jarmanifest.render import (
    DEFAULT_THEME,
    PLAIN_THEME,
    format_override_rows,
    format_status_badge,
    highlight_substring,
    render_tree,
    theme_for,
)
from jarmanifest.selection import SelectionManager
from jarmanifest.tree_model import ChangeEntry, ChangeStatus, build_tree, build_tree_index


def _tree():
    return build_tree(
        [
            ChangeEntry("src/App.java", "modified"),
            ChangeEntry("src/New.java", "added"),
            ChangeEntry("pom.xml", "unmodified"),
        ]
    )


class RenderTreeTests(unittest.TestCase):
    def test_plain_rows_show_markers_checkboxes_and_badges(self) -> None:
        nodes = _tree()
        selection = SelectionManager(build_tree_index(nodes))
        selection.toggle_file("src/App.java")

        rows = render_tree(nodes, {"src"}, selection, theme=PLAIN_THEME)

        self.assertEqual(
            rows,
            [
                "▾ [-] src/",
                "    [x] App.java [M]",
                "    [ ] New.java [A]",
                "  [ ] pom.xml",
            ],
        )

    def test_collapsed_folder_hides_children(self) -> None:
        rows = render_tree(_tree(), frozenset(), theme=PLAIN_THEME)
        self.assertEqual(rows, ["▸ src/", "  pom.xml"])

    def test_full_folder_shows_checked_box(self) -> None:
        nodes = _tree()
        selection = SelectionManager(build_tree_index(nodes))
        selection.toggle_folder("src")
        rows = render_tree(nodes, frozenset(), selection, theme=PLAIN_THEME)
        self.assertEqual(rows[0], "▸ [x] src/")

    def test_default_theme_emits_ansi(self) -> None:
        rows = render_tree(_tree(), {"src"}, theme=DEFAULT_THEME)
        self.assertIn(DEFAULT_THEME.tree_dir, rows[0])
        self.assertIn(DEFAULT_THEME.badge_modified, rows[1])

    def test_theme_for_respects_color_flag(self) -> None:
        self.assertIs(theme_for(True), DEFAULT_THEME)
        self.assertIs(theme_for(False), PLAIN_THEME)


class RowHelperTests(unittest.TestCase):
    def test_highlight_substring_marks_first_match(self) -> None:
        self.assertEqual(highlight_substring("AppTest.java", "test"), "App\033[7;1mTest\033[27;22m.java")
        self.assertEqual(highlight_substring("App.java", "zzz"), "App.java")
        self.assertEqual(highlight_substring("App.java", "app", PLAIN_THEME), "App.java")

    def test_unmodified_files_get_no_badge(self) -> None:
        self.assertEqual(format_status_badge(ChangeStatus.UNMODIFIED, PLAIN_THEME), "")
        self.assertEqual(format_status_badge(None, PLAIN_THEME), "")
        self.assertEqual(format_status_badge(ChangeStatus.DELETED, PLAIN_THEME), " [D]")

    def test_override_rows_describe_application(self) -> None:
        override = FileOverride("conf/app.properties", "x")
        rows = format_override_rows(
            [
                OverrideStatus(override, selected=True, will_apply=True),
                OverrideStatus(override, selected=True, will_apply=False),
                OverrideStatus(override, selected=False, will_apply=False),
            ],
            PLAIN_THEME,
        )
        self.assertEqual(
            rows,
            [
                "conf/app.properties (applies)",
                "conf/app.properties (not applied)",
                "conf/app.properties (not selected)",
            ],
        )


if __name__ == "__main__":
    unittest.main()
