#!/usr/bin/env python3
"""
Workspace AI - CLI Entry Point
==============================

Usage:
    python -m workspace_ai run "move report.pdf to new workspace"
    python -m workspace_ai run "size of Docs" --cwd Projects
    python -m workspace_ai plan "organize my downloads" -o plan.json
    python -m workspace_ai exec plan.json --yes
    python -m workspace_ai workspaces
    python -m workspace_ai suggest-tags Docs/report.pdf
    python -m workspace_ai suggest-comment Photos/beach.jpg
"""

import argparse
import json
import sys
from pathlib import Path

from rich.prompt import Confirm

from .actions import CanonicalAction
from .config import load_settings
from .errors import WorkspaceError
from .llm import GEMINI_MODELS, DEFAULT_MODEL, call_llm
from .executor import execute_approved_steps
from .pipeline import plan_goal, run_command, steps_from_dicts
from .suggestions import suggest_comment, suggest_tags
from .utils import (
    load_json,
    output,
    print_error,
    print_header,
    print_info,
    print_items_table,
    print_steps_tree,
    print_success,
    print_warning,
    save_json,
)
from .workspace import Workspace


def _open_workspace(args) -> Workspace:
    settings = load_settings()
    if args.workspace:
        settings.workspace_path = args.workspace
    if getattr(args, "model", None):
        settings.model = args.model
    args.settings = settings
    return Workspace.from_settings(settings)


def _llm_for(args):
    """Model callable bound to the CLI's settings."""
    def llm(parts, purpose="command"):
        return call_llm(parts, purpose=purpose, settings=args.settings)
    return llm


def _ask_confirm(step: CanonicalAction) -> bool:
    params = json.dumps(step.params, ensure_ascii=False)
    return Confirm.ask(f"[yellow]{step.action}[/yellow] {params} - proceed?", default=False)


def _render_result(result: dict):
    """Print one action result."""
    if result.get("fallback"):
        print_warning(result.get("message", "Request not understood"))
    if result.get("cancelled"):
        print_warning(f"Cancelled: {result.get('action')}")
        return

    action = result.get("action")
    if action == "multi_step":
        print_steps_tree(result.get("steps", []), title="Steps")
        for sub in result.get("results", []):
            _render_result(sub)
        return

    if "items" in result:
        title = f"{action}: {result.get('path') or result.get('query') or result.get('category') or 'root'}"
        print_items_table(result["items"], title=title)
        print_info(f"{result.get('count', len(result['items']))} item(s)")
    elif action == "suggest":
        output.print_json(data=result.get("suggestions", {}))
    elif result.get("message"):
        print_success(result["message"])
    else:
        fields = {k: v for k, v in result.items() if k not in ("success", "action", "source", "rule", "step")}
        print_success(f"{action}: {json.dumps(fields, ensure_ascii=False)}")


# =============================================================================
# Commands
# =============================================================================

def cmd_run(args) -> int:
    """Run command - interpret and execute a free-text request."""
    ws = _open_workspace(args)
    confirm = None if args.yes else _ask_confirm
    result = run_command(ws, args.query, current_path=args.cwd, llm=_llm_for(args), confirm=confirm)
    if args.json:
        output.print_json(data=result)
    else:
        _render_result(result)
    return 0 if result.get("success") else 1


def cmd_plan(args) -> int:
    """Plan command - ask the model for steps toward a goal."""
    ws = _open_workspace(args)
    print_header("Workspace AI", f"Planning: {args.goal}")
    plan = plan_goal(ws, args.goal, current_path=args.cwd, llm=_llm_for(args))

    if not plan["steps"]:
        print_info("No steps proposed")
    else:
        print_steps_tree(plan["steps"], title=plan["summary"] or "Plan")
    if args.output:
        save_json({**plan, "cwd": args.cwd}, args.output)
        print_info(f"Plan saved to {args.output}")
    return 0


def cmd_exec(args) -> int:
    """Exec command - execute the steps of a saved plan, continuing past failures."""
    ws = _open_workspace(args)
    plan = load_json(args.plan)
    steps = steps_from_dicts(plan.get("steps", []))
    if not steps:
        print_info("Plan has no steps")
        return 0

    print_steps_tree([s.to_dict() for s in steps], title=plan.get("summary") or "Plan")
    if not args.yes:
        approved = [s for s in steps if not s.requires_confirm or _ask_confirm(s)]
    else:
        approved = steps
    if not approved:
        print_warning("Nothing approved")
        return 0

    report = execute_approved_steps(ws, approved, current_path=plan.get("cwd", args.cwd), llm=_llm_for(args))
    print_steps_tree([{**r["step"], "error": r.get("error")} for r in report["results"]], title="Results")
    if report["failed"]:
        print_warning(f"{report['failed']} of {report['count']} step(s) failed")
        return 1
    print_success(f"Executed {report['count']} step(s)")
    return 0


def cmd_workspaces(args) -> int:
    """Workspaces command - list registered top-level workspaces."""
    ws = _open_workspace(args)
    names = ws.workspaces()
    if not names:
        print_info("No workspaces registered")
        return 0
    print_items_table([{"name": n, "type": "directory", "path": n} for n in names], title="Workspaces")
    return 0


def cmd_suggest_tags(args) -> int:
    ws = _open_workspace(args)
    tags = suggest_tags(ws, args.path, llm=_llm_for(args))
    output.print(", ".join(tags) if tags else "(no tags suggested)")
    return 0


def cmd_suggest_comment(args) -> int:
    ws = _open_workspace(args)
    comment = suggest_comment(ws, args.path, llm=_llm_for(args))
    output.print(comment or "(no comment suggested)")
    return 0


# =============================================================================
# Main
# =============================================================================

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Workspace AI - manage a workspace folder with natural-language commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--workspace", type=Path,
                        help="Workspace root (default: $WORKSPACE_PATH or ./workspace)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    model_choices = list(GEMINI_MODELS.keys())

    # --- RUN command ---
    run_parser = subparsers.add_parser("run", help="Interpret and execute a request")
    run_parser.add_argument("query", type=str, help="The request, e.g. \"list files\"")
    run_parser.add_argument("--cwd", type=str, default="", help="Current folder, relative to the workspace")
    run_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask before move/delete")
    run_parser.add_argument("--json", action="store_true", help="Print the raw result as JSON")
    run_parser.add_argument("--model", type=str, choices=model_choices,
                            help=f"Gemini model to use (default: {DEFAULT_MODEL})")
    run_parser.set_defaults(func=cmd_run)

    # --- PLAN command ---
    plan_parser = subparsers.add_parser("plan", help="Propose steps toward a goal")
    plan_parser.add_argument("goal", type=str, help="What you want to achieve")
    plan_parser.add_argument("--cwd", type=str, default="", help="Current folder, relative to the workspace")
    plan_parser.add_argument("-o", "--output", type=Path, help="Save the plan as JSON")
    plan_parser.add_argument("--model", type=str, choices=model_choices,
                             help=f"Gemini model to use (default: {DEFAULT_MODEL})")
    plan_parser.set_defaults(func=cmd_plan)

    # --- EXEC command ---
    exec_parser = subparsers.add_parser("exec", help="Execute a saved plan")
    exec_parser.add_argument("plan", type=Path, help="Plan file written by 'plan -o'")
    exec_parser.add_argument("--cwd", type=str, default="", help="Current folder if the plan has none")
    exec_parser.add_argument("--yes", "-y", action="store_true", help="Approve every step")
    exec_parser.set_defaults(func=cmd_exec)

    # --- WORKSPACES command ---
    ws_parser = subparsers.add_parser("workspaces", help="List registered workspaces")
    ws_parser.set_defaults(func=cmd_workspaces)

    # --- SUGGEST-TAGS / SUGGEST-COMMENT ---
    tags_parser = subparsers.add_parser("suggest-tags", help="Suggest tags for a file")
    tags_parser.add_argument("path", type=str, help="File path, relative to the workspace")
    tags_parser.set_defaults(func=cmd_suggest_tags)

    comment_parser = subparsers.add_parser("suggest-comment", help="Suggest a comment for a file")
    comment_parser.add_argument("path", type=str, help="File path, relative to the workspace")
    comment_parser.set_defaults(func=cmd_suggest_comment)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except WorkspaceError as e:
        print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
