import tempfile
import unittest
from pathlib import Path

from workspace_ai.commands import COMMAND_RULES, CommandContext, match_command, merge_candidates
from workspace_ai.errors import InvalidArgument
from workspace_ai.filler import is_filler, strip_filler
from workspace_ai.workspace import Workspace

from .fakes import make_tree


class TestFiller(unittest.TestCase):
    def test_strip_trailing_and_leading(self):
        self.assertEqual(strip_filler("move a.txt to new workspace as well"), "move a.txt to new workspace")
        self.assertEqual(strip_filler("please list files"), "list files")
        self.assertEqual(strip_filler("kindly delete x.txt too, thanks!"), "delete x.txt")
        self.assertEqual(strip_filler("pls show info pls"), "show info")

    def test_words_inside_names_survive(self):
        self.assertEqual(strip_filler("open tattoo"), "open tattoo")
        self.assertEqual(strip_filler("rename also.txt to b.txt"), "rename also.txt to b.txt")

    def test_is_filler(self):
        for phrase in ("also", "too", "As Well", "please", "thanks!", "as well please"):
            self.assertTrue(is_filler(phrase), phrase)
        for phrase in ("photos", "", None, "too many"):
            self.assertFalse(is_filler(phrase), phrase)


class MatcherTestCase(unittest.TestCase):
    files = {
        "report.pdf": b"%PDF",
        "notes.txt": "notes",
        "photos": None,
        "Docs/a.txt": "a" * 100,
        "Docs/b.bin": b"b" * 1024,
        "Docs/Sub/deep.md": "# deep",
    }

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        make_tree(self.root, self.files)
        self.ws = Workspace(self.root)

    def tearDown(self):
        self._tmp.cleanup()

    def match(self, text, current=""):
        candidates = merge_candidates(self.ws.try_list_entries(""), self.ws.try_list_entries(current))
        return match_command(text, CommandContext(self.ws, current, candidates))

    def single(self, text, current=""):
        result = self.match(text, current)
        self.assertIsNotNone(result, f"no rule matched {text!r}")
        rule_name, steps = result
        self.assertEqual(len(steps), 1, steps)
        return rule_name, steps[0]


class TestSimpleRules(MatcherTestCase):
    def test_show_info_targets_current_directory(self):
        rule, step = self.single("show info", current="Docs")
        self.assertEqual(rule, "info_here")
        self.assertEqual((step.action, step.params), ("info", {"path": "Docs"}))

    def test_duplicates(self):
        self.assertEqual(self.single("remove duplicates")[1].action, "remove_duplicates")
        self.assertEqual(self.single("clean up duplicates")[1].action, "remove_duplicates")
        self.assertEqual(self.single("find duplicates")[1].action, "suggest")

    def test_list_phrases(self):
        for text in ("list", "list files", "what's here", "refresh", "reload"):
            self.assertEqual(self.single(text)[1].action, "list", text)

    def test_contents_of_known_directory(self):
        _, step = self.single("what's in docs")
        self.assertEqual((step.action, step.params), ("list", {"path": "Docs"}))

    def test_contents_of_unknown_directory_falls_through(self):
        self.assertIsNone(self.match("what's in nowhere"))

    def test_category_search(self):
        _, step = self.single("find my photos")
        self.assertEqual((step.action, step.params), ("search", {"category": "images"}))
        _, step = self.single("search for all music")
        self.assertEqual(step.params, {"category": "audio"})

    def test_show_me_folder_navigates(self):
        """Folder names that look like categories still open the folder."""
        for text, path in (("show me Docs", "Docs"), ("show me Photos", "photos")):
            rule, step = self.single(text)
            self.assertEqual(rule, "navigate", text)
            self.assertEqual((step.action, step.params), ("navigate", {"path": path}), text)

    def test_navigation(self):
        _, step = self.single("go to docs")
        self.assertEqual((step.action, step.params), ("navigate", {"path": "Docs"}))
        _, step = self.single("go back", current="Docs/Sub")
        self.assertEqual(step.params, {"path": "Docs"})
        _, step = self.single("go home", current="Docs/Sub")
        self.assertEqual(step.params, {"path": ""})

    def test_unresolved_target_returns_none(self):
        self.assertIsNone(self.match("delete ghost.txt"))


class TestSizeRules(MatcherTestCase):
    def test_size_of_directory(self):
        rule, step = self.single("size of Docs")
        self.assertEqual(rule, "size_of")
        self.assertEqual((step.action, step.params), ("directory_size", {"path": "Docs"}))

    def test_size_of_file_is_info(self):
        _, step = self.single("notes.txt its size")
        self.assertEqual((step.action, step.params), ("info", {"path": "notes.txt"}))

    def test_current_directory_size(self):
        rule, step = self.single("size of this folder", current="Docs")
        self.assertEqual(rule, "size_here")
        self.assertEqual(step.params, {"path": "Docs"})

    def test_size_falls_back_to_raw_stat(self):
        """Nested paths that are not in the candidate set are still found on disk."""
        _, step = self.single("size of Docs/Sub/deep.md")
        self.assertEqual((step.action, step.params), ("info", {"path": "Docs/Sub/deep.md"}))

    def test_generic_size_defaults_to_current_directory(self):
        rule, step = self.single("how big is something-unknown", current="Docs")
        self.assertEqual(rule, "size_generic")
        self.assertEqual((step.action, step.params), ("directory_size", {"path": "Docs"}))


class TestMetadataRules(MatcherTestCase):
    def test_favorites(self):
        _, step = self.single("add notes.txt to favorites")
        self.assertEqual((step.action, step.params), ("add_favorite", {"path": "notes.txt"}))
        _, step = self.single("remove notes.txt from favorites")
        self.assertEqual((step.action, step.params), ("remove_favorite", {"path": "notes.txt"}))

    def test_tag(self):
        _, step = self.single("tag report.pdf as #finance")
        self.assertEqual((step.action, step.params), ("add_tag", {"path": "report.pdf", "tag": "finance"}))

    def test_tag_without_name_is_an_error(self):
        with self.assertRaises(InvalidArgument):
            self.match("tag report.pdf")
        with self.assertRaises(InvalidArgument):
            self.match("tag report.pdf as well")

    def test_comment(self):
        _, step = self.single("comment on notes.txt: call the bank")
        self.assertEqual(step.params, {"path": "notes.txt", "comment": "call the bank"})
        with self.assertRaises(InvalidArgument):
            self.match("add comment to notes.txt")


class TestMutationRules(MatcherTestCase):
    def test_rename(self):
        _, step = self.single("rename report.pdf to summary.pdf")
        self.assertEqual((step.action, step.params), ("rename", {"path": "report.pdf", "newName": "summary.pdf"}))

    def test_names_ending_in_size_are_not_size_queries(self):
        rule, step = self.single("rename notes.txt to notes size")
        self.assertEqual(rule, "rename")
        self.assertEqual(step.params, {"path": "notes.txt", "newName": "notes size"})
        _, step = self.single("tag notes.txt as size")
        self.assertEqual((step.action, step.params), ("add_tag", {"path": "notes.txt", "tag": "size"}))

    def test_delete_requires_confirmation(self):
        _, step = self.single("delete report.pdf")
        self.assertEqual(step.action, "delete")
        self.assertTrue(step.requires_confirm)

    def test_create_folder(self):
        _, step = self.single("create folder Invoices", current="Docs")
        self.assertEqual(step.params, {"name": "Invoices", "parent": "Docs"})
        _, step = self.single("create a new workspace Clients", current="Docs")
        self.assertEqual(step.params, {"name": "Clients", "parent": ""})

    def test_filler_is_never_a_folder_name(self):
        self.assertIsNone(self.match("create folder too"))

    def test_move_and_copy_into_directory(self):
        _, step = self.single("move report.pdf to docs")
        self.assertEqual((step.action, step.params), ("move", {"from": "report.pdf", "to": "Docs/report.pdf"}))
        self.assertTrue(step.requires_confirm)
        _, step = self.single("copy notes.txt into the Docs folder")
        self.assertEqual((step.action, step.params), ("copy", {"from": "notes.txt", "to": "Docs/notes.txt"}))

    def test_duplicate_here_avoids_collision(self):
        _, step = self.single("duplicate report.pdf")
        self.assertEqual(step.params, {"from": "report.pdf", "to": "report (2).pdf"})

    def test_move_here(self):
        _, step = self.single("move notes.txt here", current="Docs")
        self.assertEqual(step.params, {"from": "notes.txt", "to": "Docs/notes.txt"})


class TestNewWorkspace(MatcherTestCase):
    def test_filler_immunity(self):
        """'as well' never becomes the workspace name."""
        rule, steps = self.match("move deep.md to new workspace as well", current="Docs/Sub")
        self.assertEqual(rule, "move_new_workspace")
        self.assertEqual([s.action for s in steps], ["create_folder", "move"])
        self.assertEqual(steps[0].params, {"name": "Deep.md", "parent": ""})
        self.assertEqual(steps[1].params, {"from": "Docs/Sub/deep.md", "to": "Deep.md/deep.md"})

    def test_root_source_gets_workspace_suffix(self):
        _, steps = self.match("move photos to new workspace")
        self.assertEqual(steps[0].params["name"], "Photos Workspace")
        self.assertEqual(steps[1].params, {"from": "photos", "to": "Photos Workspace/photos"})

    def test_explicit_name(self):
        rule, steps = self.match("move report.pdf to new workspace Finance")
        self.assertEqual(rule, "move_new_workspace_named")
        self.assertEqual(steps[0].params, {"name": "Finance", "parent": ""})
        self.assertEqual(steps[1].params, {"from": "report.pdf", "to": "Finance/report.pdf"})

    def test_explicit_existing_workspace_is_reused(self):
        _, steps = self.match("move report.pdf to new workspace docs")
        self.assertEqual([s.action for s in steps], ["move"])
        self.assertEqual(steps[0].params["to"], "Docs/report.pdf")

    def test_explicit_name_with_separator_is_rejected(self):
        with self.assertRaises(InvalidArgument):
            self.match("move report.pdf to new workspace a/b")


class TestRuleOrder(unittest.TestCase):
    def test_specific_rules_come_first(self):
        names = [rule.name for rule in COMMAND_RULES]
        self.assertEqual(len(names), len(set(names)))
        self.assertLess(names.index("info_here"), names.index("info_target"))
        self.assertLess(names.index("find_duplicates"), names.index("search"))
        self.assertLess(names.index("size_of"), names.index("size_generic"))
        self.assertLess(names.index("move_new_workspace_named"), names.index("transfer"))
        self.assertLess(names.index("move_new_workspace"), names.index("transfer"))
        self.assertLess(names.index("semantic_search"), names.index("search"))


if __name__ == "__main__":
    unittest.main()
