"""
Action execution for workspace_ai.

A single dispatch surface that applies a canonical (action, params,
current_path) triple to the workspace. The executor is stateless: all state
lives on disk (the workspace tree and the sidecar metadata document).
Every path is containment-checked right before the filesystem is touched.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from tqdm import tqdm

from .actions import CanonicalAction, enforce_confirmation, is_known_action
from .commands.resolver import copy_suffix_key, next_free_name
from .errors import (
    InvalidArgument,
    InvalidModelResponse,
    ModelTransportError,
    NotFound,
    Unsupported,
    WorkspaceError,
)
from .filler import is_filler
from .llm import call_llm
from .metadata import (
    entry_for,
    register_workspace,
    remove_paths,
    rename_paths,
    unregister_workspace,
)
from .sandbox import Sandbox
from .suggestions import PdfExtractor, get_smart_suggestions, semantic_match
from .utils import (
    CATEGORY_ALIASES,
    CATEGORY_EXTENSIONS,
    extension_of,
    format_bytes,
    is_image,
    print_warning,
)
from .workspace import Workspace, basename_rel, join_rel, parent_rel

Confirm = Callable[[CanonicalAction], bool]

_QUOTES = "\"'`"
_INVALID_NAME_CHARS = re.compile(r'[/\\<>:"|?*]')


@dataclass
class ExecutionContext:
    workspace: Workspace
    current_path: str
    llm: Callable[..., str]
    pdf_extractor: PdfExtractor | None = None


def _param(params: dict, *names: str) -> str | None:
    for name in names:
        value = params.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _transfer_params(params: dict, verb: str) -> tuple[str, str]:
    """(from, to) for move/copy. An empty "to" means the workspace root."""
    src = _param(params, "from", "source")
    dst = params.get("to", params.get("destination"))
    if not src or not isinstance(dst, str):
        raise InvalidArgument("from and to paths required")
    if not Sandbox.safe_relative(src):
        raise InvalidArgument(f"Cannot {verb} the workspace root")
    return Sandbox.safe_relative(src), Sandbox.safe_relative(dst)


def _clean_name(name: str, what: str) -> str:
    name = name.strip().strip(_QUOTES).strip()
    if not name or name in (".", ".."):
        raise InvalidArgument(f"{what} required")
    if _INVALID_NAME_CHARS.search(name):
        raise InvalidArgument(f"Invalid {what.lower()}: {name}")
    if is_filler(name):
        raise InvalidArgument(f"'{name}' is not a valid {what.lower()}")
    return name


def _update_meta(ws: Workspace, change: Callable[[dict], object]) -> dict:
    """Read-modify-write the sidecar; skip the write when nothing changed."""
    data = ws.meta.read()
    before = json.dumps(data, sort_keys=True)
    change(data)
    if json.dumps(data, sort_keys=True) != before:
        ws.meta.write(data)
    return data


def _rekey_metadata(ws: Workspace, old_rel: str, new_rel: str) -> None:
    def change(data):
        rename_paths(data, old_rel, new_rel)
        if "/" not in old_rel and old_rel in data.get("userWorkspaces", []):
            unregister_workspace(data, old_rel)
            if "/" not in new_rel:
                register_workspace(data, new_rel)

    _update_meta(ws, change)


def _is_within(child: Path, parent: Path) -> bool:
    return child == parent or parent in child.parents


def _resolve_destination(ws: Workspace, src: Path, dst_rel: str) -> tuple[str, Path]:
    """An existing directory as destination means "into that directory"."""
    dst = ws.path(dst_rel)
    if dst.is_dir() and dst != src:
        dst_rel = join_rel(dst_rel, src.name)
        dst = ws.path(dst_rel)
    return dst_rel, dst


# -----------------------------------------------------------------------------
# Handlers
# -----------------------------------------------------------------------------

def _do_list(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    rel = ws.normalize(_param(params, "path", "folder") or ctx.current_path)
    items = [e.to_dict() for e in ws.list_entries(rel, with_stats=True)]
    return {"success": True, "action": "list", "path": rel, "items": items, "count": len(items)}


def _do_create_folder(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    raw = _param(params, "name", "folderName")
    if not raw:
        raise InvalidArgument("Folder name required")
    name = _clean_name(raw, "Folder name")

    parent = ws.normalize(params["parent"]) if isinstance(params.get("parent"), str) else ws.normalize(ctx.current_path)
    parent_path = ws.path(parent)
    if not parent_path.is_dir():
        raise NotFound(f"Folder not found: {parent or '(root)'}")

    final = next_free_name(name, lambda n: (parent_path / n).exists(), separator="", split_extension=False)
    target_rel = join_rel(parent, final)
    ws.fs.mkdir(ws.path(target_rel))

    if not parent:
        _update_meta(ws, lambda data: register_workspace(data, final))

    return {"success": True, "action": "create_folder", "path": target_rel, "name": final}


def _do_move(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    src_rel, dst_raw = _transfer_params(params, "move")

    src = ws.path(src_rel)
    if not src.exists():
        raise NotFound(f"Not found: {src_rel}")
    dst_rel, dst = _resolve_destination(ws, src, dst_raw)

    if dst == src:
        return {"success": True, "action": "move", "from": src_rel, "to": dst_rel, "unchanged": True}
    if src.is_dir() and _is_within(dst, src):
        raise InvalidArgument("Cannot move a folder into itself")
    if dst.exists():
        raise InvalidArgument(f"Destination already exists: {dst_rel}")

    ws.fs.mkdir(ws.path(parent_rel(dst_rel)), recursive=True)
    ws.fs.rename(src, dst)
    _rekey_metadata(ws, src_rel, dst_rel)
    return {"success": True, "action": "move", "from": src_rel, "to": dst_rel}


def _do_copy(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    src_rel, dst_raw = _transfer_params(params, "copy")

    src = ws.path(src_rel)
    if not src.exists():
        raise NotFound(f"Not found: {src_rel}")
    dst_rel, dst = _resolve_destination(ws, src, dst_raw)

    if dst.exists():
        dst_parent = dst.parent
        dst_rel = join_rel(parent_rel(dst_rel), next_free_name(dst.name, lambda n: (dst_parent / n).exists()))
        dst = ws.path(dst_rel)
    if src.is_dir() and _is_within(dst, src):
        raise InvalidArgument("Cannot copy a folder into itself")

    ws.fs.mkdir(ws.path(parent_rel(dst_rel)), recursive=True)
    ws.fs.copy_recursive(src, dst)
    return {"success": True, "action": "copy", "from": src_rel, "to": dst_rel}


def _do_delete(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    raw = _param(params, "path", "target")
    if not raw:
        raise InvalidArgument("path required")
    rel = ws.normalize(raw)
    if not rel:
        raise InvalidArgument("Refusing to delete the workspace root")

    target = ws.path(rel)
    st = ws.fs.stat(target)
    if st.is_dir:
        ws.fs.remove_recursive(target)
    else:
        ws.fs.unlink(target)

    def change(data):
        remove_paths(data, [rel])
        if "/" not in rel:
            unregister_workspace(data, rel)

    _update_meta(ws, change)
    return {"success": True, "action": "delete", "path": rel}


def _do_rename(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    raw = _param(params, "path", "target", "from")
    new_raw = _param(params, "newName", "new_name", "name", "to")
    if not raw:
        raise InvalidArgument("path required")
    if not new_raw:
        raise InvalidArgument("New name required")
    rel = ws.normalize(raw)
    if not rel:
        raise InvalidArgument("Cannot rename the workspace root")
    new_name = _clean_name(new_raw, "New name")

    src = ws.path(rel)
    if not src.exists():
        raise NotFound(f"Not found: {rel}")
    dst_rel = join_rel(parent_rel(rel), new_name)
    dst = ws.path(dst_rel)
    if dst_rel == rel:
        return {"success": True, "action": "rename", "path": rel, "newPath": dst_rel, "newName": new_name, "unchanged": True}
    # A case-only rename on a case-insensitive filesystem sees itself as the destination
    if dst.exists() and not dst.samefile(src):
        raise InvalidArgument(f"Destination already exists: {dst_rel}")

    ws.fs.rename(src, dst)
    _rekey_metadata(ws, rel, dst_rel)
    return {"success": True, "action": "rename", "path": rel, "newPath": dst_rel, "newName": new_name}


def _do_info(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    rel = ws.normalize(_param(params, "path", "target") or ctx.current_path)
    st = ws.stat(rel)
    record = ws.meta.read().get("meta", {}).get(rel, {})

    result = {
        "success": True,
        "action": "info",
        "path": rel,
        "name": basename_rel(rel) or ws.disk_label,
        "type": "directory" if st.is_dir else "file",
        "modified": st.modified,
        "created": st.created,
        "tags": record.get("tags", []),
        "starred": bool(record.get("starred")),
        "comments": record.get("comments", ""),
    }
    if st.is_dir:
        size, file_count = ws.total_size(rel)
        result["itemCount"] = len(ws.list_entries(rel))
        result["fileCount"] = file_count
    else:
        size = st.size
    result["size"] = size
    result["sizeFormatted"] = format_bytes(size)
    return result


def _initials(name: str) -> str:
    words = re.sub(r'[^a-z0-9\s]', ' ', name.lower()).split()
    return "".join(w[0] for w in words)


def _do_search(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    category = _param(params, "category", "type")
    query = _param(params, "query", "q")

    if category:
        key = CATEGORY_ALIASES.get(category.lower(), category.lower())
        if key not in CATEGORY_EXTENSIONS:
            raise InvalidArgument(f"Unknown category: {category}")
        extensions = CATEGORY_EXTENSIONS[key]

        def matches(e):
            return not e.is_dir and extension_of(e.name) in extensions
    elif query:
        q = query.lower()

        def matches(e):
            return q in e.name.lower() or (len(q) > 1 and " " not in q and q in _initials(e.name))
    else:
        raise InvalidArgument("search query required")

    seen = set()
    items = []
    for entry in ws.walk(""):
        if entry.path in seen or not matches(entry):
            continue
        seen.add(entry.path)
        items.append(entry.to_dict())

    result = {"success": True, "action": "search", "items": items, "count": len(items)}
    if category:
        result["category"] = CATEGORY_ALIASES.get(category.lower(), category.lower())
    else:
        result["query"] = query
    return result


def _do_semantic_search(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    query = _param(params, "query", "q")
    if not query:
        raise InvalidArgument("search query required")
    files = [e for e in ws.walk("") if not e.is_dir]
    matched = semantic_match(ws, files, query, llm=ctx.llm, pdf_extractor=ctx.pdf_extractor)
    items = [e.to_dict() for e in matched]
    return {"success": True, "action": "semantic_search", "query": query, "items": items, "count": len(items)}


def _do_suggest(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    rel = ws.normalize(ctx.current_path)
    suggestions = get_smart_suggestions(ws.list_entries(rel, with_stats=True), llm=ctx.llm)
    return {"success": True, "action": "suggest", "path": rel, "suggestions": suggestions}


def _move_many(ws: Workspace, moves: list[tuple[str, str]]) -> tuple[int, list[dict]]:
    """
    Move each (src_rel, dest_dir_rel) pair, never overwriting.

    Not transactional: the returned count and failure list are the record
    of what happened.
    """
    moved = 0
    failures = []
    for src_rel, dest_dir in tqdm(moves, desc="Moving files", unit="file", disable=None, leave=False):
        try:
            src = ws.path(src_rel)
            if not src.exists():
                raise NotFound(f"Not found: {src_rel}")
            dest_path = ws.path(dest_dir)
            name = next_free_name(src.name, lambda n: (dest_path / n).exists())
            dst_rel = join_rel(dest_dir, name)
            ws.fs.rename(src, ws.path(dst_rel))
            _rekey_metadata(ws, src_rel, dst_rel)
            moved += 1
        except (WorkspaceError, OSError) as e:
            print_warning(f"Could not move {src_rel}: {e}")
            failures.append({"path": src_rel, "error": str(e)})
    return moved, failures


def _ensure_folder(ws: Workspace, rel: str) -> bool:
    """Create ``rel`` if missing. Returns True if it was created."""
    path = ws.path(rel)
    if path.is_dir():
        return False
    if path.exists():
        raise InvalidArgument(f"A file named {basename_rel(rel)} already exists")
    ws.fs.mkdir(path)
    return True


def _do_organize(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    base = ws.normalize(ctx.current_path)
    kind = (_param(params, "type", "category") or "all").lower()

    if kind in ("images", "image", "photos", "pictures"):
        folder_rel = join_rel(base, "Images")
        images = [e for e in ws.list_entries(base) if not e.is_dir and is_image(e.name)]
        created = _ensure_folder(ws, folder_rel) if images else False
        moved, failures = _move_many(ws, [(e.path, folder_rel) for e in images])
        return {
            "success": True,
            "action": "organize",
            "type": "images",
            "folder": folder_rel,
            "foldersCreated": [folder_rel] if created else [],
            "moved": moved,
            "failed": len(failures),
            "errors": failures,
            "message": f"Moved {moved} image(s) to Images",
        }

    suggestions = get_smart_suggestions(ws.list_entries(base, with_stats=True), llm=ctx.llm)
    folders_created = []
    moves = []
    failures = []
    for suggestion in suggestions["folderSuggestions"]:
        folder_rel = join_rel(base, suggestion["folder"])
        try:
            if _ensure_folder(ws, folder_rel):
                folders_created.append(folder_rel)
        except WorkspaceError as e:
            failures.append({"path": folder_rel, "error": str(e)})
            continue
        for name in suggestion["files"]:
            src_rel = join_rel(base, name)
            if ws.path(src_rel).is_file():
                moves.append((src_rel, folder_rel))

    moved, move_failures = _move_many(ws, moves)
    failures.extend(move_failures)
    return {
        "success": True,
        "action": "organize",
        "type": kind,
        "foldersCreated": folders_created,
        "moved": moved,
        "failed": len(failures),
        "errors": failures,
        "suggestions": suggestions,
        "message": f"Moved {moved} file(s) into {len(folders_created)} new folder(s)",
    }


def _do_navigate(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    rel = ws.normalize(_param(params, "path", "target") or "")
    st = ws.stat(rel)
    if st.is_file:
        parent = parent_rel(rel)
        return {
            "success": True,
            "action": "navigate",
            "path": parent,
            "select": rel,
            "message": f"Opened {parent or 'root'} and selected {basename_rel(rel)}",
        }
    return {"success": True, "action": "navigate", "path": rel, "message": f"Navigated to {rel or 'root'}"}


def _require_existing(ws: Workspace, params: dict) -> str:
    raw = _param(params, "path", "target")
    if not raw:
        raise InvalidArgument("path required")
    rel = ws.normalize(raw)
    ws.stat(rel)
    return rel


def _set_starred(ctx: ExecutionContext, params: dict, starred: bool) -> dict:
    ws = ctx.workspace
    rel = _require_existing(ws, params)
    _update_meta(ws, lambda data: entry_for(data, rel).update(starred=starred))
    action = "add_favorite" if starred else "remove_favorite"
    return {"success": True, "action": action, "path": rel, "starred": starred}


def _do_add_tag(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    tag = (_param(params, "tag", "name") or "").lstrip("#").strip()
    if not tag:
        raise InvalidArgument("Tag name required")
    rel = _require_existing(ws, params)

    added = False

    def change(data):
        nonlocal added
        tags = entry_for(data, rel)["tags"]
        if tag not in tags:
            tags.append(tag)
            added = True

    data = _update_meta(ws, change)
    return {"success": True, "action": "add_tag", "path": rel, "tag": tag,
            "added": added, "tags": list(data["meta"][rel]["tags"])}


def _do_add_comment(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    comment = params.get("comment", params.get("text"))
    if not isinstance(comment, str) or not comment.strip():
        raise InvalidArgument("Comment text required")
    rel = _require_existing(ws, params)
    _update_meta(ws, lambda data: entry_for(data, rel).update(comments=comment.strip()))
    return {"success": True, "action": "add_comment", "path": rel, "comment": comment.strip()}


def _merge_groups(groups: list[list[str]]) -> list[list[str]]:
    """Union groups that share a member, preserving first-seen order."""
    merged: list[list[str]] = []
    for group in groups:
        members = list(dict.fromkeys(group))
        overlapping = [m for m in merged if set(m) & set(members)]
        for m in overlapping:
            merged.remove(m)
            members = list(dict.fromkeys(m + members))
        merged.append(members)
    return [m for m in merged if len(m) > 1]


def _do_remove_duplicates(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    base = ws.normalize(ctx.current_path)
    files = [e for e in ws.list_entries(base, with_stats=True) if not e.is_dir]
    file_names = {e.name for e in files}

    try:
        model_groups = get_smart_suggestions(files, llm=ctx.llm)["duplicates"]
    except (InvalidModelResponse, ModelTransportError) as e:
        print_warning(f"Model duplicate detection unavailable ({e}); using name heuristic only")
        model_groups = []

    buckets: dict[str, list[str]] = {}
    for entry in files:
        key, _suffixed = copy_suffix_key(entry.name)
        buckets.setdefault(key, []).append(entry.name)
    heuristic_groups = [names for names in buckets.values() if len(names) > 1]

    groups = _merge_groups(
        [[n for n in g if n in file_names] for g in model_groups] + heuristic_groups
    )

    removed = []
    failures = []
    report = []
    for group in sorted(groups, key=lambda g: sorted(n.lower() for n in g)):
        ordered = sorted(group, key=lambda n: (copy_suffix_key(n)[1], n.lower()))
        keep, extras = ordered[0], ordered[1:]
        gone = []
        for name in extras:
            rel = join_rel(base, name)
            try:
                ws.fs.unlink(ws.path(rel))
                gone.append(name)
                removed.append(rel)
            except (WorkspaceError, OSError) as e:
                failures.append({"path": rel, "error": str(e)})
        report.append([keep, *gone])

    if removed:
        _update_meta(ws, lambda data: remove_paths(data, removed))

    return {
        "success": True,
        "action": "remove_duplicates",
        "removed": len(removed),
        "failed": len(failures),
        "errors": failures,
        "duplicates": report,
        "message": f"Removed {len(removed)} duplicate(s)",
    }


def _do_directory_size(ctx: ExecutionContext, params: dict) -> dict:
    ws = ctx.workspace
    rel = ws.normalize(_param(params, "path", "target") or ctx.current_path)
    size, count = ws.total_size(rel)
    return {
        "success": True,
        "action": "directory_size",
        "path": rel,
        "bytes": size,
        "size": format_bytes(size),
        "fileCount": count,
    }


_HANDLERS: dict[str, Callable[[ExecutionContext, dict], dict]] = {
    "list": _do_list,
    "create_folder": _do_create_folder,
    "move": _do_move,
    "copy": _do_copy,
    "delete": _do_delete,
    "rename": _do_rename,
    "info": _do_info,
    "search": _do_search,
    "semantic_search": _do_semantic_search,
    "suggest": _do_suggest,
    "organize": _do_organize,
    "navigate": _do_navigate,
    "add_favorite": lambda ctx, params: _set_starred(ctx, params, True),
    "remove_favorite": lambda ctx, params: _set_starred(ctx, params, False),
    "add_tag": _do_add_tag,
    "add_comment": _do_add_comment,
    "remove_duplicates": _do_remove_duplicates,
    "directory_size": _do_directory_size,
}


def execute_action(
    workspace: Workspace,
    action: str,
    params: dict | None,
    current_path: str = "",
    llm: Callable[..., str] = call_llm,
    pdf_extractor: PdfExtractor | None = None,
) -> dict:
    """
    Execute one canonical action.

    Args:
        workspace: The sandboxed workspace.
        action: Canonical action name.
        params: Action parameters (see the executor table in the docs).
        current_path: Workspace-relative folder the user is in.
        llm: Model callable used by suggest/organize/semantic actions.
        pdf_extractor: Optional PDF text extractor for semantic search.

    Returns:
        Result dict with "success" and "action" plus action-specific fields.

    Raises:
        AccessDenied, NotFound, InvalidArgument, Unsupported; model errors
        from the model-backed actions propagate unchanged.
    """
    name = (action or "").strip().lower()
    if not is_known_action(name):
        raise Unsupported(f"Unknown action: {action}")
    ctx = ExecutionContext(
        workspace=workspace,
        current_path=workspace.normalize(current_path),
        llm=llm,
        pdf_extractor=pdf_extractor,
    )
    return _HANDLERS[name](ctx, dict(params or {}))


def run_plan(
    workspace: Workspace,
    steps: list[CanonicalAction],
    current_path: str = "",
    llm: Callable[..., str] = call_llm,
    confirm: Confirm | None = None,
    pdf_extractor: PdfExtractor | None = None,
) -> list[dict]:
    """
    Execute planned steps strictly in order; the first failure aborts.

    A step that needs confirmation and is declined stops the plan and is
    reported as cancelled.
    """
    results = []
    for step in enforce_confirmation(steps):
        if step.requires_confirm and confirm is not None and not confirm(step):
            results.append({"success": False, "action": step.action, "cancelled": True,
                            "params": dict(step.params)})
            break
        results.append(execute_action(workspace, step.action, step.params, current_path,
                                      llm=llm, pdf_extractor=pdf_extractor))
    return results


def execute_approved_steps(
    workspace: Workspace,
    steps: list[CanonicalAction | dict],
    current_path: str = "",
    llm: Callable[..., str] = call_llm,
    pdf_extractor: PdfExtractor | None = None,
) -> dict:
    """
    Execute steps the user already approved, isolating failures per step.

    Returns:
        {"success": True, "action": "execute", "results": [...]} with one entry
        per step, either the action result or {"error", "code"}.
    """
    results = []
    for raw in steps:
        step = raw if isinstance(raw, CanonicalAction) else CanonicalAction.from_dict(raw)
        try:
            result = execute_action(
                workspace, step.action, step.params, current_path, llm=llm, pdf_extractor=pdf_extractor
            )
            results.append({**result, "step": step.to_dict()})
        except WorkspaceError as e:
            results.append({"success": False, "error": str(e), "code": e.code, "step": step.to_dict()})
    failed = sum(1 for r in results if not r.get("success"))
    return {"success": True, "action": "execute", "results": results, "count": len(results), "failed": failed}
