"""Canonical language definitions for rendering snippets.

Maps a language name (as reported by the search service) or a file path to:
- the MIME type used on resource blocks
- the tag used on markdown code fences

Lookup order: language name first, then file extension. Unknown inputs fall
back to ``text/plain`` with no fence tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath

DEFAULT_MIME_TYPE = "text/plain"


@dataclass(frozen=True, slots=True)
class Language:
    """Canonical definition for a language.

    Attributes:
        name: Unique identifier (lowercase, e.g., "python")
        extensions: File extensions including dot (e.g., ".py")
        aliases: Extra language names that resolve to this entry (lowercase)
        mime_type: MIME type for resource blocks
        fence: Markdown fence tag
    """

    name: str
    extensions: frozenset[str]
    mime_type: str
    fence: str
    aliases: frozenset[str] = field(default_factory=frozenset)


# =============================================================================
# Language Definitions
# =============================================================================
# RULES:
# 1. Extensions and aliases are lowercase
# 2. An extension or alias may belong to one entry only
# 3. JS and TS share one entry, matching what deployed clients expect

ALL_LANGUAGES: tuple[Language, ...] = (
    Language(
        name="python",
        extensions=frozenset({".py", ".pyi"}),
        aliases=frozenset({"py"}),
        mime_type="text/x-python",
        fence="python",
    ),
    Language(
        name="typescript",
        extensions=frozenset({".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"}),
        aliases=frozenset({"ts", "tsx", "javascript", "js", "jsx"}),
        mime_type="text/x-typescript",
        fence="ts",
    ),
    Language(
        name="go",
        extensions=frozenset({".go"}),
        aliases=frozenset({"golang"}),
        mime_type="text/x-go",
        fence="go",
    ),
    Language(
        name="rust",
        extensions=frozenset({".rs"}),
        aliases=frozenset({"rs"}),
        mime_type="text/x-rust",
        fence="rust",
    ),
    Language(
        name="java",
        extensions=frozenset({".java"}),
        mime_type="text/x-java",
        fence="java",
    ),
    Language(
        name="shell",
        extensions=frozenset({".sh", ".bash", ".zsh"}),
        aliases=frozenset({"bash", "sh", "zsh"}),
        mime_type="text/x-shellscript",
        fence="bash",
    ),
    Language(
        name="sql",
        extensions=frozenset({".sql"}),
        mime_type="text/x-sql",
        fence="sql",
    ),
    Language(
        name="markdown",
        extensions=frozenset({".md", ".markdown"}),
        aliases=frozenset({"md"}),
        mime_type="text/markdown",
        fence="markdown",
    ),
    Language(
        name="json",
        extensions=frozenset({".json"}),
        mime_type="application/json",
        fence="json",
    ),
    Language(
        name="html",
        extensions=frozenset({".html", ".htm"}),
        mime_type="text/html",
        fence="html",
    ),
    Language(
        name="css",
        extensions=frozenset({".css"}),
        mime_type="text/css",
        fence="css",
    ),
    Language(
        name="yaml",
        extensions=frozenset({".yaml", ".yml"}),
        aliases=frozenset({"yml"}),
        mime_type="text/yaml",
        fence="yaml",
    ),
    Language(
        name="toml",
        extensions=frozenset({".toml"}),
        mime_type="application/toml",
        fence="toml",
    ),
)


def _build_name_map() -> dict[str, Language]:
    mapping: dict[str, Language] = {}
    for lang in ALL_LANGUAGES:
        mapping[lang.name] = lang
        for alias in lang.aliases:
            mapping[alias] = lang
    return mapping


def _build_extension_map() -> dict[str, Language]:
    return {ext: lang for lang in ALL_LANGUAGES for ext in lang.extensions}


NAME_TO_LANGUAGE: dict[str, Language] = _build_name_map()
EXTENSION_TO_LANGUAGE: dict[str, Language] = _build_extension_map()


def resolve_language(lang: str | None = None, path: str | None = None) -> Language | None:
    """Resolve a language by name, then by the extension of *path*."""
    if lang:
        found = NAME_TO_LANGUAGE.get(lang.strip().lower())
        if found is not None:
            return found
    if path:
        suffix = PurePosixPath(path.lower()).suffix
        if suffix:
            return EXTENSION_TO_LANGUAGE.get(suffix)
    return None


def mime_from_lang_or_path(lang: str | None = None, path: str | None = None) -> str:
    """MIME type for a snippet, ``text/plain`` when unknown."""
    found = resolve_language(lang, path)
    return found.mime_type if found is not None else DEFAULT_MIME_TYPE


def fence_lang(lang: str | None = None, path: str | None = None) -> str | None:
    """Markdown fence tag for a snippet, ``None`` when unknown."""
    found = resolve_language(lang, path)
    return found.fence if found is not None else None


def validate_language_table() -> list[str]:
    """Return descriptions of extensions or aliases claimed by more than one entry."""
    errors: list[str] = []
    seen_ext: dict[str, str] = {}
    seen_name: dict[str, str] = {}
    for lang in ALL_LANGUAGES:
        for ext in lang.extensions:
            if ext in seen_ext:
                errors.append(f"{ext} claimed by {seen_ext[ext]} and {lang.name}")
            seen_ext[ext] = lang.name
        for name in (lang.name, *lang.aliases):
            if name in seen_name:
                errors.append(f"{name} claimed by {seen_name[name]} and {lang.name}")
            seen_name[name] = lang.name
    return errors
