"""Local context closure around the files selected for editing.

The closure is a single hop from each primary file: its direct local imports,
the components that import it, and the components it imports. A handful of
global files (entry component, theme config, global stylesheet) always lead
the list. Two-hop dependencies are intentionally left out to keep the
assembled prompt small.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from . import config
from .manifest import Manifest

logger = logging.getLogger(__name__)

ENTRY_FILENAMES = ("App.jsx", "App.tsx", "App.js", "App.ts")
THEME_CONFIG_FILENAMES = (
    "tailwind.config.js",
    "tailwind.config.ts",
    "tailwind.config.cjs",
    "tailwind.config.mjs",
)
GLOBAL_STYLESHEET_FILENAMES = ("index.css", "globals.css")

_MULTI_SLASH = re.compile(r"/+")


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _first_named(all_paths: Iterable[str], names: Sequence[str]) -> Optional[str]:
    for path in all_paths:
        if _basename(path) in names:
            return path
    return None


def find_entry_component(all_paths: Iterable[str]) -> Optional[str]:
    """First path whose filename is an accepted entry component name."""
    return _first_named(all_paths, ENTRY_FILENAMES)


def find_essential_files(all_paths: Sequence[str], primary_files: Sequence[str]) -> List[str]:
    """Return the always-relevant global files that are not already primary.

    Order: entry component, theme configuration, global stylesheet.
    """
    primary = set(primary_files)
    essential: List[str] = []

    for names in (ENTRY_FILENAMES, THEME_CONFIG_FILENAMES, GLOBAL_STYLESHEET_FILENAMES):
        found = _first_named(all_paths, names)
        if found and found not in primary and found not in essential:
            essential.append(found)

    return essential


def _join_segments(base_dir: str, relative: str, absolute: bool) -> str:
    parts = [p for p in base_dir.split("/") if p]
    for part in (p for p in relative.split("/") if p):
        if part == "..":
            if parts:
                parts.pop()
        elif part != ".":
            parts.append(part)
    joined = "/".join(parts)
    return f"/{joined}" if absolute else joined


def resolve_import_path(
    from_file: str,
    specifier: str,
    all_paths: Iterable[str],
    extensions: Sequence[str] = config.CODE_EXTENSIONS,
) -> Optional[str]:
    """Resolve a relative import specifier to a project path.

    Args:
        from_file: Path of the importing file
        specifier: Import source as written (``./Header``, ``../lib/``)
        all_paths: Known project paths
        extensions: Accepted code extensions in precedence order

    Returns:
        The first candidate present in *all_paths*, or None when the
        specifier is not relative or nothing matches.
    """
    if not specifier.startswith("."):
        return None

    known = all_paths if isinstance(all_paths, (set, frozenset, dict)) else set(all_paths)
    absolute = from_file.startswith("/")
    from_dir = from_file.rsplit("/", 1)[0] if "/" in from_file else ""
    resolved = _join_segments(from_dir, specifier, absolute)

    if specifier.endswith("/"):
        candidates = [f"{resolved}/index{ext}" for ext in extensions]
    elif any(specifier.endswith(ext) for ext in extensions):
        candidates = [resolved]
    else:
        candidates = [f"{resolved}{ext}" for ext in extensions]

    for candidate in candidates:
        normalized = _MULTI_SLASH.sub("/", candidate)
        if normalized in known:
            return normalized

    logger.debug("Unresolved import '%s' from %s", specifier, from_file)
    return None


def build_local_context(primary_files: Sequence[str], manifest: Manifest) -> List[str]:
    """Compute the ordered, de-duplicated context files for *primary_files*.

    Essential files come first, then graph-derived files in discovery order.
    No primary file is ever returned.
    """
    all_paths = manifest.list_paths()
    known = set(all_paths)
    primary = set(primary_files)

    essential = find_essential_files(all_paths, primary_files)
    # dict preserves insertion order and gives O(1) membership
    ordered: Dict[str, None] = dict.fromkeys(essential)

    def add(path: Optional[str]) -> None:
        if path and path in known and path not in primary and path not in ordered:
            ordered[path] = None

    for primary_file in primary_files:
        record = manifest.get_file(primary_file)
        if record is None:
            logger.debug("Primary file %s not in manifest, skipping", primary_file)
            continue

        # 1. Direct local imports
        for spec in record.local_imports:
            add(resolve_import_path(primary_file, spec.source, known))

        # 2. Consumers and dependencies from the component graph
        if record.component_info is None:
            continue
        node = manifest.component_node(record.component_info.name)
        if node is None:
            continue
        for name in list(node.imported_by) + list(node.imports):
            related = manifest.component_node(name)
            if related is not None:
                add(related.file)

    context = list(ordered)
    logger.debug("Local context for %s: %s", list(primary_files), context)
    return context
