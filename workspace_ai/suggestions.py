"""
Smart-suggestion and semantic-match helpers.

These assemble per-file content (text excerpts, inline image data) for the
model and never trust the names it sends back: every returned file name or
path is intersected with the real input set before it is used.
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PIL import Image, UnidentifiedImageError
from tqdm import tqdm

from .actions import DirectoryEntry
from .errors import InvalidArgument, NotFound
from .llm import (
    build_comment_prompt,
    build_semantic_prompt,
    build_suggestions_prompt,
    build_tags_prompt,
    call_llm,
    inline_binary,
    parse_llm_json,
)
from .utils import TEXT_EXTENSIONS, extension_of, print_warning

MAX_TEXT_EXCERPT = 1500
MAX_SEMANTIC_FILES = 80
MAX_IMAGES_PER_REQUEST = 8
MAX_IMAGE_BYTES = 4 * 1024 * 1024  # 4MB per image
THUMBNAIL_SIZE = (1024, 1024)

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".heic": "image/heic",
    ".tiff": "image/tiff",
}

PdfExtractor = Callable[[Path], str]


@dataclass
class ContentInfo:
    path: str
    kind: str  # "text" | "pdf" | "image" | "other"
    text: str = ""
    data: bytes | None = None
    mime: str | None = None


def _image_payload(raw: bytes, ext: str) -> tuple[bytes, str] | None:
    """Return (bytes, mime) small enough to inline, downscaling with Pillow if needed."""
    if len(raw) <= MAX_IMAGE_BYTES:
        return raw, IMAGE_MIME_TYPES[ext]
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.thumbnail(THUMBNAIL_SIZE)
            buf = io.BytesIO()
            img.convert("RGB").save(buf, format="JPEG", quality=85)
    except (UnidentifiedImageError, OSError):
        return None
    data = buf.getvalue()
    if len(data) > MAX_IMAGE_BYTES:
        return None
    return data, "image/jpeg"


def get_file_content_info(
    workspace,
    rel_path: str,
    text_limit: int = MAX_TEXT_EXCERPT,
    pdf_extractor: PdfExtractor | None = None,
) -> ContentInfo | None:
    """
    Collect what the model may see of a file.

    PDF text comes from ``pdf_extractor`` when one is supplied; PDF parsing
    itself is left to that collaborator.

    Returns:
        ContentInfo, or None for directories and missing paths.
    """
    full = workspace.path(rel_path)
    try:
        st = workspace.fs.stat(full)
    except NotFound:
        return None
    if st.is_dir:
        return None

    ext = extension_of(rel_path)
    if ext == ".pdf":
        text = pdf_extractor(full)[:text_limit] if pdf_extractor else ""
        return ContentInfo(path=rel_path, kind="pdf", text=text)
    if ext in TEXT_EXTENSIONS:
        return ContentInfo(path=rel_path, kind="text", text=workspace.fs.read_text(full, limit=text_limit))
    if ext in IMAGE_MIME_TYPES:
        payload = _image_payload(workspace.fs.read_bytes(full), ext)
        if payload is None:
            return ContentInfo(path=rel_path, kind="image")
        data, mime = payload
        return ContentInfo(path=rel_path, kind="image", data=data, mime=mime)
    return ContentInfo(path=rel_path, kind="other")


def get_smart_suggestions(entries: list[DirectoryEntry], llm: Callable[..., str] = call_llm) -> dict:
    """
    Ask the model for duplicate groups and folder suggestions.

    Returns:
        {"duplicates": [[name, ...]], "folderSuggestions": [{"folder", "files", "reason"}]}
        where every name exists in ``entries``.
    """
    if not entries:
        return {"duplicates": [], "folderSuggestions": []}

    all_names = {e.name for e in entries}
    file_names = {e.name for e in entries if not e.is_dir}

    data = parse_llm_json(llm(build_suggestions_prompt([e.to_dict() for e in entries]), purpose="suggest"))
    dropped = 0

    duplicates = []
    for group in data.get("duplicates") or []:
        if not isinstance(group, list):
            continue
        members = []
        for name in group:
            if isinstance(name, str) and name in all_names and name not in members:
                members.append(name)
            else:
                dropped += 1
        if len(members) > 1:
            duplicates.append(members)

    folder_suggestions = []
    for suggestion in data.get("folderSuggestions") or []:
        if not isinstance(suggestion, dict):
            continue
        folder = str(suggestion.get("folder") or "").strip().strip("/")
        if not folder or "/" in folder or "\\" in folder:
            continue
        files = []
        for name in suggestion.get("files") or []:
            if isinstance(name, str) and name in file_names and name not in files:
                files.append(name)
            else:
                dropped += 1
        if files:
            folder_suggestions.append({
                "folder": folder,
                "files": files,
                "reason": str(suggestion.get("reason") or ""),
            })

    if dropped:
        print_warning(f"Dropped {dropped} suggested name(s) not present in the folder")

    return {"duplicates": duplicates, "folderSuggestions": folder_suggestions}


def semantic_match(
    workspace,
    items: list[DirectoryEntry],
    query: str,
    llm: Callable[..., str] = call_llm,
    pdf_extractor: PdfExtractor | None = None,
) -> list[DirectoryEntry]:
    """
    Ask the model which files match a description.

    Only the first MAX_SEMANTIC_FILES files are considered and at most
    MAX_IMAGES_PER_REQUEST images are inlined. Returned paths that are not
    in ``items`` are silently dropped.
    """
    files = [i for i in items if not i.is_dir][:MAX_SEMANTIC_FILES]
    if not files:
        return []

    parts: list = [build_semantic_prompt(query)]
    images = 0
    for entry in tqdm(files, desc="Reading files", unit="file", disable=None, leave=False):
        if images >= MAX_IMAGES_PER_REQUEST and extension_of(entry.path) in IMAGE_MIME_TYPES:
            parts.append(f"FILE: {entry.path} (image, name only)")
            continue
        info = get_file_content_info(workspace, entry.path, pdf_extractor=pdf_extractor)
        if info is None:
            continue
        if info.kind == "image" and info.data and images < MAX_IMAGES_PER_REQUEST:
            parts.append(f"FILE: {entry.path} (image)")
            parts.append(inline_binary(info.mime, info.data))
            images += 1
        elif info.text.strip():
            parts.append(f"FILE: {entry.path}\n{info.text}")
        else:
            parts.append(f"FILE: {entry.path} ({info.kind}, name only)")

    data = parse_llm_json(llm(parts, purpose="semantic"))

    by_path = {e.path: e for e in files}
    matched = []
    for item in data.get("paths") or []:
        raw = item.get("path") if isinstance(item, dict) else item
        if not isinstance(raw, str):
            continue
        key = raw.replace("\\", "/").strip("/")
        entry = by_path.get(key)
        if entry is not None and entry not in matched:
            matched.append(entry)
    return matched


def _require_file(workspace, rel_path: str) -> Path:
    full = workspace.path(rel_path)
    st = workspace.fs.stat(full)
    if not st.is_file:
        raise InvalidArgument("Not a file")
    return full


def suggest_tags(workspace, rel_path: str, llm: Callable[..., str] = call_llm) -> list[str]:
    """Up to five lowercase tags for a file."""
    full = _require_file(workspace, rel_path)
    preview = ""
    if extension_of(rel_path) in TEXT_EXTENSIONS:
        preview = workspace.fs.read_text(full, limit=MAX_TEXT_EXCERPT)

    data = parse_llm_json(llm(build_tags_prompt(full.name, preview), purpose="tags"))
    tags = []
    for tag in data.get("tags") or []:
        tag = str(tag).strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:5]


def suggest_comment(
    workspace,
    rel_path: str,
    llm: Callable[..., str] = call_llm,
    pdf_extractor: PdfExtractor | None = None,
) -> str:
    """A one or two sentence description of a file."""
    full = _require_file(workspace, rel_path)
    info = get_file_content_info(workspace, rel_path, text_limit=2000, pdf_extractor=pdf_extractor)

    if info is not None and info.kind == "image" and info.data:
        parts = [inline_binary(info.mime, info.data), build_comment_prompt(full.name, "image", "")]
    else:
        kind = info.kind if info else "other"
        preview = info.text if info else ""
        parts = [build_comment_prompt(full.name, kind, preview)]

    data = parse_llm_json(llm(parts, purpose="comment"))
    comment = data.get("comment")
    return comment.strip() if isinstance(comment, str) else ""
