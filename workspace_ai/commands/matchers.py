"""
Pattern command matchers.

Deterministic, model-free recognition of common requests. Rules are tried
top-to-bottom in COMMAND_RULES order, so more specific phrasing must come
before generic phrasing. A rule either builds canonical action(s) or
returns None to let the next rule (and finally the model) have a go.
Only explicit user mistakes, like a tag command without a tag, raise.
"""

import re
from dataclasses import dataclass, field
from typing import Callable

from ..actions import CanonicalAction, DirectoryEntry
from ..errors import AccessDenied, InvalidArgument, NotFound
from ..filler import is_filler, strip_filler
from ..utils import CATEGORY_ALIASES
from ..workspace import Workspace, basename_rel, join_rel, parent_rel
from .resolver import ItemResolver, match_entry, next_free_name

__all__ = [
    "CommandContext",
    "CommandRule",
    "COMMAND_RULES",
    "match_command",
    "strip_filler",
    "is_filler",
]

BuildResult = CanonicalAction | list[CanonicalAction] | None

_QUOTES = "\"'`‘’“”"
_LEADING_WORDS = re.compile(r'^(?:(?:the|my|this|that|a)\s+)?(?:(?:file|folder|directory|dir|workspace)\s+)?', re.I)
_TRAILING_WORDS = re.compile(r'\s+(?:file|folder|directory|dir)$', re.I)
_ROOT_WORDS = {"root", "home", "/", "~", "the root", "top level", "workspace root"}
_SEPARATORS = re.compile(r'[/\\]')


@dataclass
class CommandContext:
    """What a rule may look at: the workspace, where the user is, and known entries."""
    workspace: Workspace
    current_path: str
    candidates: list[DirectoryEntry]
    resolver: ItemResolver | None = field(default=None, repr=False)

    def __post_init__(self):
        if self.resolver is None:
            self.resolver = ItemResolver(self.workspace, self.current_path, self.candidates)

    def resolve(self, phrase: str, kind: str | None = None) -> DirectoryEntry | None:
        """Resolve the phrase as typed, then with articles and type words removed."""
        for variant in _phrase_variants(phrase):
            hit = self.resolver.resolve(variant, kind)
            if hit is not None:
                return hit
        return None

    def root_names(self) -> set[str]:
        return {e.name.lower() for e in self.workspace.try_list_entries("")}


@dataclass(frozen=True)
class CommandRule:
    name: str
    pattern: re.Pattern
    build: Callable[[re.Match, CommandContext], BuildResult]


def _rule(name: str, pattern: str, build: Callable[[re.Match, CommandContext], BuildResult]) -> CommandRule:
    return CommandRule(name, re.compile(pattern, re.IGNORECASE), build)


def _unquote(text: str | None) -> str:
    return (text or "").strip().strip(_QUOTES).strip()


def _phrase_variants(phrase: str) -> list[str]:
    raw = _unquote(phrase).lstrip("@")
    trimmed = _TRAILING_WORDS.sub("", _LEADING_WORDS.sub("", raw)).strip()
    return [v for v in dict.fromkeys([raw, _unquote(trimmed)]) if v]


def _action(name: str, /, **params) -> CanonicalAction:
    return CanonicalAction(action=name, params=params)


# -----------------------------------------------------------------------------
# Builders
# -----------------------------------------------------------------------------

def _build_info_here(m, ctx):
    return _action("info", path=ctx.current_path)


def _build_info_target(m, ctx):
    hit = ctx.resolve(m.group("target"))
    return _action("info", path=hit.path) if hit else None


def _build_remove_duplicates(m, ctx):
    return _action("remove_duplicates")


def _build_suggest(m, ctx):
    return _action("suggest")


def _build_list_here(m, ctx):
    return _action("list", path=ctx.current_path)


def _build_contents_of(m, ctx):
    hit = ctx.resolve(m.group("target"), kind="directory")
    return _action("list", path=hit.path) if hit else None


def _build_size_here(m, ctx):
    return _action("directory_size", path=ctx.current_path)


def _size_action(path: str, is_dir: bool) -> CanonicalAction:
    return _action("directory_size", path=path) if is_dir else _action("info", path=path)


def _build_size_named(m, ctx):
    target = m.group("target")
    hit = ctx.resolve(target)
    if hit is not None:
        return _size_action(hit.path, hit.is_dir)

    # Last resort: the phrase may be a literal path the listings never saw
    phrase = _unquote(target).lstrip("@")
    for rel in dict.fromkeys([join_rel(ctx.current_path, phrase), phrase]):
        try:
            st = ctx.workspace.stat(rel)
        except (NotFound, AccessDenied):
            continue
        return _size_action(ctx.workspace.normalize(rel), st.is_dir)
    return None


def _build_size_generic(m, ctx):
    target = _unquote(m.group("target"))
    if not target or target.lower() in ("it", "this", "here", "everything"):
        return _action("directory_size", path=ctx.current_path)

    variants = _phrase_variants(target)
    dirs = [e for e in ctx.candidates if e.is_dir]
    for strategy in ("exact_name", "substring"):
        for variant in variants:
            q = variant.lower()
            for entry in dirs:
                if (q == entry.name.lower()) if strategy == "exact_name" else (q in entry.name.lower()):
                    return _action("directory_size", path=entry.path)

    live = ctx.workspace.try_list_entries(ctx.current_path)
    for variant in variants:
        hit = match_entry(variant, live, kind="directory")
        if hit is not None:
            return _action("directory_size", path=hit.path)

    for variant in variants:
        q = variant.lower()
        for entry in [*ctx.candidates, *live]:
            if not entry.is_dir and entry.name.lower() == q:
                return _action("info", path=entry.path)

    return _action("directory_size", path=ctx.current_path)


def _build_category_search(m, ctx):
    category = CATEGORY_ALIASES[m.group("category").lower()]
    return _action("search", category=category)


def _build_go_up(m, ctx):
    return _action("navigate", path=parent_rel(ctx.current_path))


def _build_go_home(m, ctx):
    return _action("navigate", path="")


def _build_navigate(m, ctx):
    target = _unquote(m.group("target"))
    if target.lower() in _ROOT_WORDS:
        return _action("navigate", path="")
    hit = ctx.resolve(target, kind="directory") or ctx.resolve(target)
    return _action("navigate", path=hit.path) if hit else None


def _build_add_favorite(m, ctx):
    hit = ctx.resolve(m.group("target"))
    return _action("add_favorite", path=hit.path) if hit else None


def _build_remove_favorite(m, ctx):
    hit = ctx.resolve(m.group("target"))
    return _action("remove_favorite", path=hit.path) if hit else None


def _build_tag(m, ctx):
    tag = _unquote(m.group("tag")).lstrip("#").strip() if m.group("tag") else ""
    if not tag or is_filler(tag):
        raise InvalidArgument("Tag name required, e.g. \"tag report.pdf as finance\"")
    hit = ctx.resolve(m.group("target"))
    return _action("add_tag", path=hit.path, tag=tag) if hit else None


def _build_comment(m, ctx):
    comment = _unquote(m.group("comment")) if m.group("comment") else ""
    if not comment:
        raise InvalidArgument("Comment text required, e.g. \"comment on report.pdf: final draft\"")
    hit = ctx.resolve(m.group("target"))
    return _action("add_comment", path=hit.path, comment=comment) if hit else None


def _build_rename(m, ctx):
    new_name = _unquote(m.group("name"))
    if not new_name or is_filler(new_name):
        raise InvalidArgument("New name required")
    if _SEPARATORS.search(new_name):
        raise InvalidArgument(f"New name cannot contain path separators: {new_name}")
    hit = ctx.resolve(m.group("target"))
    return _action("rename", path=hit.path, newName=new_name) if hit else None


def _build_delete(m, ctx):
    hit = ctx.resolve(m.group("target"))
    return _action("delete", path=hit.path) if hit else None


def _build_create_folder(m, ctx):
    name = _unquote(m.group("name"))
    if not name or is_filler(name):
        raise InvalidArgument("Folder name required")
    if _SEPARATORS.search(name):
        raise InvalidArgument(f"Folder name cannot contain path separators: {name}")
    kind = (m.groupdict().get("kind") or "").lower()
    parent = "" if kind == "workspace" else ctx.current_path
    return _action("create_folder", name=name, parent=parent)


def _free_name_here(ctx: CommandContext, name: str) -> str:
    taken = {e.name.lower() for e in ctx.workspace.try_list_entries(ctx.current_path)}
    return next_free_name(name, lambda n: n.lower() in taken)


def _build_copy_here(m, ctx):
    hit = ctx.resolve(m.group("target"))
    if hit is None:
        return None
    return _action("copy", **{"from": hit.path, "to": join_rel(ctx.current_path, _free_name_here(ctx, hit.name))})


def _build_move_here(m, ctx):
    hit = ctx.resolve(m.group("target"))
    if hit is None:
        return None
    if parent_rel(hit.path) == ctx.current_path:
        return _action("move", **{"from": hit.path, "to": hit.path})
    return _action("move", **{"from": hit.path, "to": join_rel(ctx.current_path, _free_name_here(ctx, hit.name))})


def _workspace_steps(ctx: CommandContext, source: DirectoryEntry, name: str) -> list[CanonicalAction]:
    steps = []
    if name.lower() not in ctx.root_names():
        steps.append(_action("create_folder", name=name, parent=""))
    steps.append(_action("move", **{"from": source.path, "to": join_rel(name, source.name)}))
    return steps


def _derived_workspace_name(ctx: CommandContext, source: DirectoryEntry) -> str:
    name = source.name[:1].upper() + source.name[1:]
    # On case-insensitive filesystems "photos" and "Photos" are the same entry
    if name.lower() == source.path.lower():
        name = f"{name} Workspace"
    taken = ctx.root_names()
    return next_free_name(name, lambda n: n.lower() in taken, separator="", split_extension=False)


def _build_move_new_workspace_named(m, ctx):
    source = ctx.resolve(m.group("target"))
    if source is None:
        return None
    name = _unquote(m.group("name"))
    if not name or is_filler(name):
        return _workspace_steps(ctx, source, _derived_workspace_name(ctx, source))
    if _SEPARATORS.search(name):
        raise InvalidArgument(f"Workspace name cannot contain path separators: {name}")
    if name.lower() == source.path.lower():
        raise InvalidArgument(f"Cannot move {source.name} into itself")
    existing = ctx.workspace.try_list_entries("")
    match = next((e for e in existing if e.name.lower() == name.lower()), None)
    if match is not None and not match.is_dir:
        raise InvalidArgument(f"A file named {match.name} already exists")
    return _workspace_steps(ctx, source, match.name if match else name)


def _build_move_new_workspace(m, ctx):
    source = ctx.resolve(m.group("target"))
    if source is None:
        return None
    return _workspace_steps(ctx, source, _derived_workspace_name(ctx, source))


def _build_transfer(m, ctx):
    verb = m.group("verb").lower()
    dest_phrase = _unquote(m.group("dest"))
    source = ctx.resolve(m.group("target"))
    if source is None:
        return None

    if dest_phrase.lower() in _ROOT_WORDS:
        dest_path = ""
    else:
        dest = ctx.resolve(dest_phrase, kind="directory")
        if dest is None:
            return None
        dest_path = dest.path
    action = "copy" if verb == "copy" else "move"
    return _action(action, **{"from": source.path, "to": join_rel(dest_path, basename_rel(source.path))})


def _build_semantic_search(m, ctx):
    return _action("semantic_search", query=_unquote(m.group("query")))


def _build_search(m, ctx):
    query = _unquote(m.group("query"))
    if not query or is_filler(query):
        return None
    return _action("search", query=query)


def _build_organize_images(m, ctx):
    return _action("organize", type="images")


def _build_organize(m, ctx):
    return _action("organize", type="all")


# -----------------------------------------------------------------------------
# Priority order
# -----------------------------------------------------------------------------

# Only the plain nouns; looser words like "docs" or "pics" are usually folder names
_CATEGORY_NOUNS = "photos|images|audio|music|videos|pdfs|documents"
_WHATS = r"(?:what'?s|what is|whats|what’s)"

COMMAND_RULES: list[CommandRule] = [
    _rule("info_here", r"(?:show|get) info", _build_info_here),
    _rule("info_target", r"(?:show |get )?info (?:on|about|for|of) (?P<target>.+)", _build_info_target),
    _rule("remove_duplicates",
          r"(?:remove|merge|delete|clean(?: up)?) (?:all |the |my )?duplicates?(?: files)?(?: here| in this folder)?",
          _build_remove_duplicates),
    _rule("find_duplicates", r"(?:find|show|list|check for) (?:all |the |my |any )?duplicates?(?: files)?(?: here)?",
          _build_suggest),
    _rule("list_here",
          rf"list|list contents|list files|list everything|show files|ls|refresh|reload|{_WHATS} here|{_WHATS} in here",
          _build_list_here),
    _rule("contents_of", rf"(?:(?:show |list )?contents of|{_WHATS} in(?:side)?|list files in|list|ls) (?P<target>.+)",
          _build_contents_of),
    _rule("size_here",
          rf"(?:{_WHATS} )?(?:the )?(?:size of (?:this|the current|current) (?:directory|folder|dir)"
          rf"|(?:this|current) (?:directory|folder|dir)(?:'s)? size)"
          rf"|how big is (?:this|the current) (?:directory|folder|dir)",
          _build_size_here),
    _rule("size_its", r"(?P<target>.+?) (?:its|it's|it’s) size", _build_size_named),
    _rule("size_of", rf"(?:{_WHATS} )?(?:the )?size of (?P<target>.+)", _build_size_named),
    _rule("category_search",
          rf"(?:find|search for) (?:all my |all the |all |my |the )?(?P<category>{_CATEGORY_NOUNS})(?: files)?",
          _build_category_search),
    _rule("go_up", r"go back|go up|back|up|cd \.\.|go to parent(?: folder)?", _build_go_up),
    _rule("go_home", r"go home|go to root|home|cd /|cd ~", _build_go_home),
    _rule("navigate", r"(?:open|go to|goto|navigate to|cd|enter|show me|take me to) (?P<target>.+)", _build_navigate),
    _rule("size_generic",
          r"(?:how big is|how large is|how much space (?:does|is)|(?:get |show |check )?(?:the )?size(?: of)?)"
          r"(?: (?P<target>.+?))?(?: take| taking| use| using)?",
          _build_size_generic),
    _rule("remove_favorite_from",
          r"(?:remove|unstar|unfavou?rite) (?P<target>.+?) from (?:my )?(?:favou?rites?|starred)",
          _build_remove_favorite),
    _rule("remove_favorite", r"(?:unstar|unfavou?rite|un-favou?rite) (?P<target>.+)", _build_remove_favorite),
    _rule("add_favorite_to", r"add (?P<target>.+?) to (?:my )?(?:favou?rites?|starred)", _build_add_favorite),
    _rule("add_favorite", r"(?:star|favou?rite|mark) (?P<target>.+?)(?: as (?:a )?(?:favou?rite|starred))?",
          _build_add_favorite),
    _rule("tag_as", r"tag (?P<target>.+?)(?: (?:as|with) (?P<tag>.*))?", _build_tag),
    _rule("add_tag_to", r"add (?:a )?tag(?: (?P<tag>.+?))? (?:to|on) (?P<target>.+)", _build_tag),
    _rule("comment_quoted",
          r"(?:add (?:a )?)?comment (?P<comment>[\"'“].+[\"'”]) (?:to|on) (?P<target>.+)",
          _build_comment),
    _rule("comment_on",
          r"(?:add (?:a )?)?comment (?:to|on) (?P<target>.+?)(?:(?: ?: ?| saying | - )(?P<comment>.*))?",
          _build_comment),
    _rule("rename", r"rename (?P<target>.+?) (?:to|as) (?P<name>.+)", _build_rename),
    _rule("delete", r"(?:delete|remove|trash|erase|rm) (?P<target>.+)", _build_delete),
    _rule("create_folder",
          r"(?:create|make|add|new|mkdir)(?: a| an)?(?: new)? (?P<kind>folder|directory|dir|workspace)"
          r"(?: (?:called|named))? (?P<name>.+)",
          _build_create_folder),
    _rule("mkdir", r"mkdir (?P<name>.+)", _build_create_folder),
    _rule("copy_here", r"(?:duplicate|copy) (?P<target>.+?) (?:to )?here", _build_copy_here),
    _rule("duplicate", r"duplicate (?P<target>.+)", _build_copy_here),
    _rule("move_here", r"move (?P<target>.+?) (?:to )?here", _build_move_here),
    _rule("move_new_workspace_named",
          r"move (?P<target>.+?) (?:to|into) (?:a )?new workspace (?:called |named )?(?P<name>.+)",
          _build_move_new_workspace_named),
    _rule("move_new_workspace", r"move (?P<target>.+?) (?:to|into) (?:a )?new workspace",
          _build_move_new_workspace),
    _rule("transfer",
          r"(?P<verb>move|copy|put) (?P<target>.+?) (?:to|into|in) (?:the )?(?P<dest>.+?)(?: folder| directory)?",
          _build_transfer),
    _rule("semantic_search",
          r"(?:find|search for|look for|show me)(?: all)? (?:files?|documents?|docs|photos?|images?|pictures?|notes?)"
          r" (?:about|with|containing|showing|that show|mentioning|related to) (?P<query>.+)",
          _build_semantic_search),
    _rule("search", r"(?:search for|search|find|look for|locate)(?: files?(?: named| called)?)? (?P<query>.+)",
          _build_search),
    _rule("organize_images",
          r"(?:organi[sz]e|sort|tidy(?: up)?|clean up) (?:all |my |the |all my )?(?:images|photos|pictures|pics)",
          _build_organize_images),
    _rule("organize",
          r"(?:organi[sz]e|sort|tidy(?: up)?|clean up)(?: (?:this|the|my|current) (?:folder|directory))?"
          r"(?: (?:files|everything))?(?: for me)?",
          _build_organize),
    _rule("suggest",
          r"suggest(?:ions)?|(?:give me|any|show) suggestions|how (?:should|can) i organi[sz]e (?:this|it|these)",
          _build_suggest),
]


def match_command(text: str, ctx: CommandContext) -> tuple[str, list[CanonicalAction]] | None:
    """
    Run COMMAND_RULES in order against filler-stripped ``text``.

    Returns:
        (rule name, steps) for the first rule that builds something, or None.

    Raises:
        InvalidArgument: The request was recognized but is missing a required part.
    """
    text = " ".join(strip_filler(text).split())
    if not text:
        return None
    for rule in COMMAND_RULES:
        m = rule.pattern.fullmatch(text)
        if m is None:
            continue
        try:
            built = rule.build(m, ctx)
        except (NotFound, AccessDenied):
            built = None
        if built is None:
            continue
        steps = built if isinstance(built, list) else [built]
        return rule.name, steps
    return None
