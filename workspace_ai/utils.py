"""
Utility functions for workspace_ai.

Includes:
- Console/log helpers
- JSON save/load helpers
- File category tables
- Size formatting
"""

import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

# Library diagnostics go to stderr, results are rendered by the CLI on stdout
console = Console(stderr=True)
output = Console()


def print_header(title: str, subtitle: str = ""):
    """Print a styled header."""
    output.print(Panel(f"[bold blue]{title}[/bold blue]\n[italic]{subtitle}[/italic]", expand=False))

def print_info(msg: str):
    console.print(f"[dim][INFO] {msg}[/dim]")

def print_error(msg: str):
    console.print(f"[bold red]ERROR:[/bold red] {msg}")

def print_warning(msg: str):
    console.print(f"[bold yellow]WARNING:[/bold yellow] {msg}")

def print_success(msg: str):
    console.print(f"[bold green]SUCCESS:[/bold green] {msg}")


def print_items_table(items: list[dict], title: str = "Items"):
    """Print a listing or search result as a table."""
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Path", style="dim")
    table.add_column("Size", justify="right")

    for item in items[:200]:
        size = item.get("size")
        table.add_row(
            item.get("name", ""),
            item.get("type", ""),
            item.get("path", ""),
            format_bytes(size) if isinstance(size, int) else "",
        )
    output.print(table)
    if len(items) > 200:
        output.print(f"[italic]... and {len(items) - 200} more[/italic]")


def print_steps_tree(steps: list[dict], title: str = "Plan"):
    """Print plan steps (or per-step results) as a tree."""
    tree = Tree(f"[bold green]{title}[/bold green]")
    for i, step in enumerate(steps, 1):
        action = step.get("action", "?")
        params = step.get("params", {})
        label = f"{i}. [yellow]{action}[/yellow] {json.dumps(params, ensure_ascii=False)}"
        if step.get("requires_confirm") or step.get("requiresConfirm"):
            label += " [red](confirm)[/red]"
        if step.get("error"):
            label += f" [bold red]failed: {step['error']}[/bold red]"
        tree.add(label)
    output.print(tree)


# -----------------------------------------------------------------------------
# File categories
# -----------------------------------------------------------------------------

IMAGE_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".heic", ".tiff", ".svg",
}

AUDIO_EXTENSIONS = {
    ".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a", ".wma",
}

VIDEO_EXTENSIONS = {
    ".mp4", ".mov", ".avi", ".mkv", ".wmv", ".flv", ".webm", ".m4v",
}

DOCUMENT_EXTENSIONS = {
    ".pdf", ".doc", ".docx", ".txt", ".rtf", ".odt", ".xls", ".xlsx",
    ".ppt", ".pptx", ".md", ".csv",
}

TEXT_EXTENSIONS = {
    ".txt", ".md", ".html", ".css", ".js", ".json", ".csv", ".xml", ".py", ".log",
}

# Words users say -> extension set
CATEGORY_EXTENSIONS = {
    "images": IMAGE_EXTENSIONS,
    "audio": AUDIO_EXTENSIONS,
    "video": VIDEO_EXTENSIONS,
    "documents": DOCUMENT_EXTENSIONS,
    "pdfs": {".pdf"},
}

CATEGORY_ALIASES = {
    "photos": "images", "pictures": "images", "images": "images", "pics": "images",
    "audio": "audio", "music": "audio", "songs": "audio",
    "videos": "video", "movies": "video", "video": "video",
    "pdfs": "pdfs", "pdf": "pdfs",
    "documents": "documents", "docs": "documents",
}


def extension_of(name: str) -> str:
    return Path(name).suffix.lower()


def is_image(name: str) -> bool:
    return extension_of(name) in IMAGE_EXTENSIONS


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def format_bytes(size: int) -> str:
    """
    Format a byte count with binary prefixes.

    Args:
        size: Number of bytes.

    Returns:
        "N B" below 1 KB, otherwise one decimal place, e.g. "1.1 KB".
    """
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ("KB", "MB", "GB"):
        value /= 1024
        if value < 1024 or unit == "GB":
            return f"{value:.1f} {unit}"
    return f"{value:.1f} GB"


def save_json(data: Any, path: Path) -> None:
    """
    Save data to a JSON file with pretty formatting.

    Args:
        data: The data to serialize.
        path: The output file path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def load_json(path: Path) -> Any:
    """
    Load data from a JSON file.

    Args:
        path: The input file path.

    Returns:
        The deserialized data.
    """
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
