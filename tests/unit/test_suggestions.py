import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from workspace_ai.errors import InvalidArgument, InvalidModelResponse
from workspace_ai.suggestions import (
    MAX_IMAGE_BYTES,
    MAX_IMAGES_PER_REQUEST,
    MAX_TEXT_EXCERPT,
    get_file_content_info,
    get_smart_suggestions,
    semantic_match,
    suggest_comment,
    suggest_tags,
)
from workspace_ai.workspace import Workspace

from .fakes import FakeLLM, make_tree, no_model


class SuggestionTestCase(unittest.TestCase):
    files = {}

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        make_tree(self.root, self.files)
        self.ws = Workspace(self.root)

    def tearDown(self):
        self._tmp.cleanup()


class TestSmartSuggestions(SuggestionTestCase):
    files = {
        "report.pdf": b"%PDF",
        "report (1).pdf": b"%PDF",
        "holiday.jpg": b"jpg",
        "Archive": None,
    }

    def test_unknown_names_are_dropped(self):
        llm = FakeLLM({
            "duplicates": [["report.pdf", "report (1).pdf", "report (2).pdf"], ["ghost.txt", "holiday.jpg"]],
            "folderSuggestions": [
                {"folder": "Reports", "files": ["report.pdf", "invented.pdf"], "reason": "Same topic"},
                {"folder": "Nothing", "files": ["ghost.txt"]},
                {"folder": "Folders", "files": ["Archive"]},
                {"folder": "../Escape", "files": ["holiday.jpg"]},
            ],
        })

        result = get_smart_suggestions(self.ws.list_entries(""), llm=llm)

        self.assertEqual(result["duplicates"], [["report.pdf", "report (1).pdf"]])
        self.assertEqual(result["folderSuggestions"], [
            {"folder": "Reports", "files": ["report.pdf"], "reason": "Same topic"},
        ])
        self.assertEqual(llm.calls[0][0], "suggest")

    def test_empty_listing_skips_the_model(self):
        self.assertEqual(get_smart_suggestions([], llm=no_model), {"duplicates": [], "folderSuggestions": []})

    def test_bad_json_propagates(self):
        with self.assertRaises(InvalidModelResponse):
            get_smart_suggestions(self.ws.list_entries(""), llm=FakeLLM("no idea"))


class TestSemanticMatch(SuggestionTestCase):
    files = {
        "notes.txt": "groceries: milk, eggs " + "x" * 3000,
        "beach.png": b"\x89PNG fake",
        "data.bin": b"\x00\x01",
        "Photos": None,
    }

    def test_hallucinated_paths_are_dropped(self):
        llm = FakeLLM({"paths": ["notes.txt", "imaginary.txt", "/beach.png", {"path": "notes.txt"}]})

        matched = semantic_match(self.ws, self.ws.list_entries(""), "shopping list", llm=llm)

        self.assertEqual([e.path for e in matched], ["notes.txt", "beach.png"])

    def test_request_parts(self):
        llm = FakeLLM({"paths": []})
        semantic_match(self.ws, self.ws.list_entries(""), "the beach", llm=llm)

        purpose, parts = llm.calls[0]
        self.assertEqual(purpose, "semantic")
        self.assertIn('"the beach"', parts[0])

        text_part = next(p for p in parts if isinstance(p, str) and p.startswith("FILE: notes.txt"))
        self.assertEqual(len(text_part), len("FILE: notes.txt\n") + MAX_TEXT_EXCERPT)

        inline = [p for p in parts if isinstance(p, dict)]
        self.assertEqual(inline, [{"mime_type": "image/png", "data": b"\x89PNG fake"}])
        self.assertIn("FILE: data.bin (other, name only)", parts)
        self.assertFalse(any(isinstance(p, str) and "Photos" in p for p in parts))

    def test_image_cap(self):
        make_tree(self.root, {f"img{i}.jpg": b"jpeg" for i in range(MAX_IMAGES_PER_REQUEST + 3)})
        llm = FakeLLM({"paths": []})

        entries = self.ws.list_entries("")

        with patch("workspace_ai.suggestions.get_file_content_info", wraps=get_file_content_info) as reader:
            semantic_match(self.ws, entries, "sunsets", llm=llm)

        parts = llm.calls[0][1]
        inline = [p for p in parts if isinstance(p, dict)]
        self.assertEqual(len(inline), MAX_IMAGES_PER_REQUEST)
        # beach.png plus eleven jpgs; images past the cap are never read
        overflow = 12 - MAX_IMAGES_PER_REQUEST
        self.assertEqual(reader.call_count, len(entries) - 1 - overflow)
        names_only = [p for p in parts if isinstance(p, str) and p.endswith("(image, name only)")]
        self.assertEqual(len(names_only), overflow)

    def test_directories_only(self):
        entries = [e for e in self.ws.list_entries("") if e.is_dir]
        self.assertEqual(semantic_match(self.ws, entries, "anything", llm=no_model), [])


class TestFileContent(SuggestionTestCase):
    def test_large_image_is_downscaled(self):
        path = self.root / "big.bmp"
        Image.frombytes("RGB", (1500, 1000), os.urandom(1500 * 1000 * 3)).save(path, format="BMP")
        self.assertGreater(path.stat().st_size, MAX_IMAGE_BYTES)

        info = get_file_content_info(self.ws, "big.bmp")

        self.assertEqual(info.kind, "image")
        self.assertEqual(info.mime, "image/jpeg")
        self.assertLessEqual(len(info.data), MAX_IMAGE_BYTES)

    def test_pdf_uses_extractor(self):
        make_tree(self.root, {"scan.pdf": b"%PDF-1.4"})
        seen = []

        def extractor(path):
            seen.append(path.name)
            return "Invoice total 42 EUR"

        info = get_file_content_info(self.ws, "scan.pdf", pdf_extractor=extractor)
        self.assertEqual((info.kind, info.text), ("pdf", "Invoice total 42 EUR"))
        self.assertEqual(seen, ["scan.pdf"])

        self.assertEqual(get_file_content_info(self.ws, "scan.pdf").text, "")

    def test_directories_and_missing_paths(self):
        make_tree(self.root, {"Folder": None})
        self.assertIsNone(get_file_content_info(self.ws, "Folder"))
        self.assertIsNone(get_file_content_info(self.ws, "missing.txt"))


class TestTagsAndComments(SuggestionTestCase):
    files = {
        "budget.csv": "month,amount\njan,10\n",
        "cat.png": b"\x89PNG",
        "Folder": None,
    }

    def test_tags_are_normalized(self):
        llm = FakeLLM({"tags": ["Finance", "finance", " Budget ", "", "2024", "csv", "monthly", "extra"]})

        tags = suggest_tags(self.ws, "budget.csv", llm=llm)

        self.assertEqual(tags, ["finance", "budget", "2024", "csv", "monthly"])
        purpose, prompt = llm.calls[0]
        self.assertEqual(purpose, "tags")
        self.assertIn("month,amount", prompt)

    def test_tags_for_directory_rejected(self):
        with self.assertRaises(InvalidArgument):
            suggest_tags(self.ws, "Folder", llm=no_model)

    def test_comment_for_text(self):
        llm = FakeLLM({"comment": "  Monthly household budget.  "})
        self.assertEqual(suggest_comment(self.ws, "budget.csv", llm=llm), "Monthly household budget.")
        self.assertEqual(llm.calls[0][0], "comment")

    def test_comment_for_image_sends_the_image_first(self):
        llm = FakeLLM({"comment": "A cat."})
        suggest_comment(self.ws, "cat.png", llm=llm)

        parts = llm.calls[0][1]
        self.assertEqual(parts[0], {"mime_type": "image/png", "data": b"\x89PNG"})
        self.assertIn("describe what you see", parts[1])

    def test_missing_comment_is_empty(self):
        self.assertEqual(suggest_comment(self.ws, "budget.csv", llm=FakeLLM({"other": 1})), "")


if __name__ == "__main__":
    unittest.main()
