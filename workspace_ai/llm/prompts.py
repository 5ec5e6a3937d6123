"""
Prompt builders for model-backed command handling.

Provides prompts for:
- Command interpretation: free text -> {action, params} or {steps}
- Agent planning: goal -> ordered steps
- Smart suggestions: duplicates and folder ideas for a listing
- Semantic matching: which files match a description
- Tag and comment suggestions for a single file
"""

import json

ACTION_CATALOGUE = """1. list - List files in a folder. Params: {} or {"path": "folder"}
2. create_folder - Create a folder in the current folder. Params: {"name": "FolderName"}
3. move - Move file/folder. Params: {"from": "source_path", "to": "dest_path"}
4. copy - Copy file/folder. Params: {"from": "source_path", "to": "dest_path"}
5. delete - Delete file/folder. Params: {"path": "path_to_delete"}
6. rename - Rename in place. Params: {"path": "path", "newName": "new_name.ext"}
7. info - Size, item count and dates. Params: {"path": "path"} (omit for current folder)
8. search - Search by file name. Params: {"query": "search_term"}
9. semantic_search - Find files by what they contain or show. Params: {"query": "description"}
10. suggest - Suggest duplicates and folder organization for the current folder. Params: {}
11. organize - Organize the current folder. Params: {"type": "images"} or {"type": "all"}
12. navigate - Open a folder. Params: {"path": "folder"}
13. add_favorite / remove_favorite - Star or unstar. Params: {"path": "path"}
14. add_tag - Tag an item. Params: {"path": "path", "tag": "tag"}
15. add_comment - Comment on an item. Params: {"path": "path", "comment": "text"}
16. remove_duplicates - Delete duplicate files in the current folder. Params: {}
17. directory_size - Total size of a folder. Params: {"path": "folder"} (omit for current folder)"""


def _format_listing(entries: list[dict]) -> str:
    lines = []
    for e in entries:
        size = e.get("size")
        size_note = f", {size}B" if isinstance(size, int) else ""
        lines.append(f"- {e['path']} ({e['type']}{size_note})")
    return "\n".join(lines) or "(empty)"


def build_command_prompt(query: str, current_path: str, entries: list[dict]) -> str:
    """
    Build the prompt that maps a free-text request to canonical actions.

    Args:
        query: The user's request (filler words already stripped).
        current_path: Workspace-relative current folder ("" for root).
        entries: Merged root + current folder listing, root entries first.

    Returns:
        Prompt string for the LLM.
    """
    return f"""You are a file organizer assistant. The user's current folder path is: "{current_path or "(root)"}".

## Known files and folders (paths are relative to the workspace root):
{_format_listing(entries)}

## Available actions
{ACTION_CATALOGUE}

## Rules

- Use EXACT paths from the list above. Copy them character-for-character.
- If the user misspells a name, pick the closest existing path from the list.
- Items in the current folder are listed with the current folder as prefix. When moving into a
  nested folder, the destination must include the full path prefix, e.g. "Work/Reports/file.pdf".
- "move X to new workspace Y": create folder Y at the root, then move X into Y. Without an
  explicit Y, name the workspace after X.
- Words like "also", "too", "as well", "please", "thanks" are NEVER file or folder names.
- For several operations return {{"steps": [{{"action": "...", "params": {{...}}}}, ...]}}.

## Example

Request: "make a folder Invoices and put bill.pdf in it"
Response: {{"steps": [{{"action": "create_folder", "params": {{"name": "Invoices"}}}}, {{"action": "move", "params": {{"from": "bill.pdf", "to": "Invoices/bill.pdf"}}}}]}}

## User request
"{query}"

Respond ONLY with valid JSON: {{"action": "...", "params": {{...}}}} or {{"steps": [...]}}
"""


def build_agent_prompt(goal: str, current_path: str, entries: list[dict]) -> str:
    """Build the prompt asking for a step-by-step plan toward a goal."""
    return f"""You are an autonomous file organizer agent. The user's goal: "{goal}"
Current folder: "{current_path or "(root)"}"
Files in this folder:
{_format_listing(entries)}

Create a step-by-step plan to achieve the goal. Use ONLY these actions:
- list (no params) - list current folder (usually first step)
- create_folder - {{"name": "FolderName"}}
- move - {{"from": "source_path", "to": "dest_path"}} (dest can be folder or folder/filename)
- copy - {{"from": "source_path", "to": "dest_path"}}
- rename - {{"path": "path", "newName": "new_name"}}
- delete - {{"path": "path_to_delete"}}

Rules:
- Paths are relative to workspace root. Use the exact paths from the list.
- For "organize" goals: create folders first, then move files into them.
- For "clean up" goals: suggest moving duplicates or unused files.
- Require user confirmation for move and delete (destructive).
- Return 1-10 steps. Be specific with paths.

Respond with JSON only: {{"steps": [{{"action": "create_folder", "params": {{"name": "X"}}, "requiresConfirm": false}}, {{"action": "move", "params": {{"from": "a.pdf", "to": "Documents/a.pdf"}}, "requiresConfirm": true}}], "summary": "Brief description of the plan"}}
"""


def build_suggestions_prompt(entries: list[dict]) -> str:
    """Build the prompt asking for duplicate groups and folder ideas."""
    files_json = json.dumps(
        [{"name": e["name"], "type": e["type"], "size": e.get("size")} for e in entries],
        indent=2,
    )
    return f"""You are a file organization assistant. Look at this folder listing:
{files_json}

1. Find likely DUPLICATES: files that are copies of each other (same base name with "(1)", "(2)",
   "copy" suffixes, or the same name and size).
2. Suggest FOLDERS that would group related files.

Rules:
- Use EXACT names from the listing. Never invent names.
- Only suggest folders for files, never for existing folders.
- Return empty arrays if the folder is already organized.

Respond with JSON only:
{{"duplicates": [["name1.ext", "name1 (1).ext"]], "folderSuggestions": [{{"folder": "FolderName", "files": ["a.ext", "b.ext"], "reason": "Brief reason"}}]}}
"""


def build_semantic_prompt(query: str) -> str:
    """Header text for semantic matching; content blocks follow as separate parts."""
    return f"""You are a precise file search engine. The user is looking for: "{query}"

Each file below is introduced with "FILE: <path>" followed by its content excerpt or image.
Return ONLY files that clearly match the request. Prefer returning an empty list over a wrong match.
Use the exact paths given after "FILE:".

Respond with JSON only: {{"paths": ["exact/path.ext"]}}
"""


def build_tags_prompt(name: str, preview: str) -> str:
    content = f"Content preview:\n{preview}" if preview else "Binary/file type - use filename and extension only."
    return f"""Suggest 3-5 short tags (single words or 2-word phrases) to help organize this file. Use lowercase.
Filename: "{name}"
{content}
Respond with JSON only: {{"tags": ["tag1", "tag2", "tag3"]}}"""


def build_comment_prompt(name: str, kind: str, preview: str) -> str:
    if kind == "image":
        body = "Based on the image above, describe what you see (subjects, scene, context)."
    elif preview:
        body = f"Content preview:\n{preview}"
    else:
        body = "Binary file - infer from filename and extension."
    return f"""Generate a brief descriptive comment (1-2 sentences) for this file to help remember what it is.
Filename: "{name}"
{body}
Respond with JSON only: {{"comment": "your generated comment here"}}"""
