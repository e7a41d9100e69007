"""Selection semantics: leaf toggles, all-or-none folders, derived states."""

from __future__ import annotations

import unittest

from jarmanifest.errors import UnknownPathError
from jarmanifest.selection import FolderState, SelectionManager
from jarmanifest.tree_model import ChangeEntry, build_tree, build_tree_index, filter_tree


def _index():
    return build_tree_index(
        build_tree(
            [
                ChangeEntry("src/a/X.java", "modified"),
                ChangeEntry("src/b/Y.java", "added"),
                ChangeEntry("src/b/Z.java", "added"),
                ChangeEntry("pom.xml", "modified"),
            ]
        )
    )


class SelectionToggleTests(unittest.TestCase):
    def test_toggle_file_is_its_own_inverse(self) -> None:
        selection = SelectionManager(_index())
        self.assertTrue(selection.toggle_file("pom.xml"))
        self.assertIn("pom.xml", selection)
        self.assertFalse(selection.toggle_file("pom.xml"))
        self.assertEqual(selection.selected, frozenset())

    def test_toggle_file_normalizes_path(self) -> None:
        selection = SelectionManager(_index())
        selection.toggle_file("./src//a/X.java")
        self.assertEqual(selection.sorted_paths(), ["src/a/X.java"])
        self.assertTrue(selection.is_selected("src/a/X.java"))

    def test_membership_normalizes_like_is_selected(self) -> None:
        selection = SelectionManager(_index())
        selection.toggle_file("pom.xml")
        self.assertIn("./pom.xml", selection)
        self.assertTrue(selection.is_selected("./pom.xml"))
        self.assertNotIn("", selection)
        self.assertNotIn("./", selection)
        self.assertNotIn(None, selection)

    def test_toggle_unknown_path_raises(self) -> None:
        selection = SelectionManager(_index())
        with self.assertRaises(UnknownPathError):
            selection.toggle_file("src/missing.java")
        with self.assertRaises(UnknownPathError):
            selection.toggle_file("src")
        with self.assertRaises(UnknownPathError):
            selection.toggle_folder("pom.xml")

    def test_toggle_folder_selects_all_then_none(self) -> None:
        selection = SelectionManager(_index())
        self.assertTrue(selection.toggle_folder("src"))
        self.assertEqual(selection.selected, {"src/a/X.java", "src/b/Y.java", "src/b/Z.java"})
        self.assertFalse(selection.toggle_folder("src"))
        self.assertEqual(selection.selected, frozenset())

    def test_toggle_partial_folder_completes_it(self) -> None:
        selection = SelectionManager(_index())
        selection.toggle_file("src/b/Y.java")
        self.assertIs(selection.folder_state("src/b"), FolderState.PARTIAL)

        self.assertTrue(selection.toggle_folder("src/b"))

        self.assertIs(selection.folder_state("src/b"), FolderState.ALL)
        self.assertIs(selection.folder_state("src"), FolderState.PARTIAL)
        self.assertIs(selection.folder_state("src/a"), FolderState.NONE)

    def test_toggle_folder_leaves_other_paths_alone(self) -> None:
        selection = SelectionManager(_index())
        selection.toggle_file("pom.xml")
        selection.toggle_folder("src/a")
        selection.toggle_folder("src/a")
        self.assertEqual(selection.selected, {"pom.xml"})

    def test_folder_toggle_uses_canonical_leaves_while_filtered(self) -> None:
        nodes = build_tree(
            [
                ChangeEntry("src/a/X.java", "modified"),
                ChangeEntry("src/b/Y.java", "added"),
            ]
        )
        filtered, _forced = filter_tree(nodes, "X.java")
        self.assertEqual(len(filtered[0].children), 1)

        selection = SelectionManager(build_tree_index(nodes))
        selection.toggle_folder("src")

        self.assertEqual(selection.selected, {"src/a/X.java", "src/b/Y.java"})


class SelectionBulkTests(unittest.TestCase):
    def test_select_all_and_clear(self) -> None:
        selection = SelectionManager(_index())
        selection.select_all()
        self.assertEqual(len(selection), 4)
        self.assertIs(selection.folder_state("src"), FolderState.ALL)
        selection.clear()
        self.assertEqual(len(selection), 0)

    def test_reset_binds_new_index_and_drops_selection(self) -> None:
        selection = SelectionManager(_index())
        selection.select_all()
        replacement = build_tree_index(build_tree([ChangeEntry("pom.xml", "unmodified")]))

        selection.reset(replacement)

        self.assertEqual(selection.selected, frozenset())
        self.assertIs(selection.index, replacement)
        with self.assertRaises(UnknownPathError):
            selection.toggle_file("src/a/X.java")

    def test_empty_manager_rejects_every_path(self) -> None:
        selection = SelectionManager()
        with self.assertRaises(UnknownPathError):
            selection.toggle_file("a.txt")


if __name__ == "__main__":
    unittest.main()
