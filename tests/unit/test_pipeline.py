import tempfile
import unittest
from pathlib import Path

from workspace_ai.errors import InvalidArgument, ModelTransportError, NotFound
from workspace_ai.pipeline import plan_goal, run_command
from workspace_ai.workspace import Workspace

from .fakes import FakeLLM, make_tree, no_model


class PipelineTestCase(unittest.TestCase):
    files = {
        "report.pdf": b"%PDF",
        "c.txt": "c",
        "Docs/a.txt": b"a" * 100,
        "Docs/b.bin": b"b" * 1024,
    }

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        make_tree(self.root, self.files)
        self.ws = Workspace(self.root)

    def tearDown(self):
        self._tmp.cleanup()


class TestRuleCommands(PipelineTestCase):
    def test_size_of_docs(self):
        result = run_command(self.ws, "size of Docs", llm=no_model)
        self.assertEqual(result["action"], "directory_size")
        self.assertEqual(result["bytes"], 1124)
        self.assertEqual(result["size"], "1.1 KB")
        self.assertEqual(result["source"], "rule")

    def test_move_to_new_workspace_ignores_filler(self):
        result = run_command(self.ws, "please move report.pdf to new workspace as well", llm=no_model)

        self.assertEqual(result["action"], "multi_step")
        self.assertTrue(result["success"])
        self.assertTrue((self.root / "Report.pdf Workspace" / "report.pdf").is_file())
        self.assertFalse((self.root / "as well").exists())
        self.assertIn("Report.pdf Workspace", self.ws.workspaces())

    def test_items_from_caller_are_candidates(self):
        make_tree(self.root, {"A/B/deep.txt": "deep"})
        items = [{"name": "deep.txt", "path": "A/B/deep.txt", "type": "file"}]

        result = run_command(self.ws, "delete deep.txt", items=items, llm=no_model)

        self.assertEqual(result["path"], "A/B/deep.txt")
        self.assertFalse((self.root / "A" / "B" / "deep.txt").exists())

    def test_empty_request(self):
        for query in ("", "   ", "please", "thanks!"):
            with self.assertRaises(InvalidArgument, msg=query):
                run_command(self.ws, query, llm=no_model)


class TestModelCommands(PipelineTestCase):
    def test_unparseable_model_output_falls_back_to_list(self):
        llm = FakeLLM("I'm not sure what you mean.")
        result = run_command(self.ws, "asdkjasd", current_path="Docs", llm=llm)

        self.assertEqual(result["action"], "list")
        self.assertTrue(result["fallback"])
        self.assertEqual(result["path"], "Docs")
        self.assertEqual(len(llm.calls), 1)
        self.assertEqual(llm.calls[0][0], "command")

    def test_unknown_model_action_falls_back_to_list(self):
        result = run_command(self.ws, "do the thing", llm=FakeLLM({"action": "explode", "params": {}}))
        self.assertEqual(result["action"], "list")
        self.assertTrue(result["fallback"])

    def test_prompt_contains_merged_listing(self):
        llm = FakeLLM({"action": "list", "params": {}})
        run_command(self.ws, "whatever is going on", current_path="Docs", llm=llm)
        prompt = llm.calls[0][1]
        self.assertIn('"Docs"', prompt)
        self.assertLess(prompt.index("- report.pdf"), prompt.index("- Docs/a.txt"))

    def test_model_steps_run_in_order(self):
        llm = FakeLLM({"steps": [
            {"action": "create_folder", "params": {"name": "Invoices"}},
            {"action": "move", "params": {"from": "report.pdf", "to": "Invoices/report.pdf"}},
        ]})
        result = run_command(self.ws, "file the report under invoices somehow", llm=llm)

        self.assertEqual(result["source"], "model")
        self.assertEqual([r["action"] for r in result["results"]], ["create_folder", "move"])
        self.assertTrue((self.root / "Invoices" / "report.pdf").exists())

    def test_model_plan_aborts_on_first_failure(self):
        llm = FakeLLM({"steps": [
            {"action": "create_folder", "params": {"name": "A"}},
            {"action": "move", "params": {"from": "ghost.txt", "to": "A/ghost.txt"}},
            {"action": "create_folder", "params": {"name": "B"}},
        ]})
        with self.assertRaises(NotFound):
            run_command(self.ws, "shuffle things around", llm=llm)
        self.assertTrue((self.root / "A").is_dir())
        self.assertFalse((self.root / "B").exists())

    def test_confirmation_is_forced_for_delete(self):
        """The model cannot switch confirmation off for destructive steps."""
        llm = FakeLLM({"action": "delete", "params": {"path": "c.txt"}, "requiresConfirm": False})
        asked = []

        def confirm(step):
            asked.append(step.requires_confirm)
            return False

        result = run_command(self.ws, "get rid of the c thing", llm=llm, confirm=confirm)

        self.assertEqual(asked, [True])
        self.assertTrue(result["cancelled"])
        self.assertTrue((self.root / "c.txt").exists())

    def test_transport_errors_surface(self):
        with self.assertRaises(ModelTransportError):
            run_command(self.ws, "something odd", llm=FakeLLM(ModelTransportError("down")))


class TestPlanGoal(PipelineTestCase):
    def test_plan_marks_destructive_steps(self):
        llm = FakeLLM({
            "steps": [
                {"action": "create_folder", "params": {"name": "Text"}, "requiresConfirm": False},
                {"action": "move", "params": {"from": "c.txt", "to": "Text/c.txt"}, "requiresConfirm": False},
                {"action": "launch", "params": {}},
            ],
            "summary": "Group text files",
        })

        plan = plan_goal(self.ws, "tidy up text files", llm=llm)

        self.assertEqual(plan["action"], "plan")
        self.assertEqual(plan["summary"], "Group text files")
        self.assertEqual(plan["itemCount"], 3)
        self.assertEqual([s["action"] for s in plan["steps"]], ["create_folder", "move"])
        self.assertFalse(plan["steps"][0]["requiresConfirm"])
        self.assertTrue(plan["steps"][1]["requiresConfirm"])
        self.assertEqual(llm.calls[0][0], "plan")
        # Nothing is executed while planning
        self.assertFalse((self.root / "Text").exists())

    def test_plan_requires_goal(self):
        with self.assertRaises(InvalidArgument):
            plan_goal(self.ws, "  ", llm=no_model)


if __name__ == "__main__":
    unittest.main()
