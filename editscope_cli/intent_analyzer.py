"""Keyword-based edit intent analysis for the coarse file-selection path."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from .context_builder import find_entry_component
from .manifest import Manifest
from .models import EditIntent, EditType, FileKind

logger = logging.getLogger(__name__)

# Checked in order; the first family with a whole-word hit decides the type
_TYPE_KEYWORDS: List[Tuple[EditType, Tuple[str, ...]]] = [
    (EditType.FULL_REBUILD, ("rebuild", "recreate", "start over", "from scratch", "redesign everything")),
    (EditType.REFACTOR, ("refactor", "clean up", "cleanup", "reorganize", "restructure", "extract")),
    (EditType.ADD_DEPENDENCY, ("install", "dependency", "package", "npm", "library")),
    (EditType.FIX_ISSUE, ("fix", "bug", "error", "broken", "not working", "issue", "crash")),
    (EditType.REMOVE_ELEMENT, ("remove", "delete", "hide", "get rid of")),
    (EditType.UPDATE_STYLE, (
        "color", "colour", "style", "background", "font", "padding", "margin", "spacing",
        "rounded", "border", "shadow", "dark mode", "bigger", "smaller", "bold", "css",
    )),
    (EditType.ADD_FEATURE, ("add", "create", "new", "implement", "build", "include", "insert")),
]

_TYPE_LABELS = {
    EditType.UPDATE_COMPONENT: "Update existing component",
    EditType.ADD_FEATURE: "Add new feature",
    EditType.FIX_ISSUE: "Fix an issue",
    EditType.UPDATE_STYLE: "Update styling",
    EditType.REFACTOR: "Refactor code",
    EditType.FULL_REBUILD: "Rebuild application",
    EditType.ADD_DEPENDENCY: "Add dependency",
    EditType.REMOVE_ELEMENT: "Remove element",
}

# Words that usually refer to something living inside another component
_COMPONENT_ALIASES = {
    "nav": "Header",
    "navigation": "Header",
    "navbar": "Header",
    "menu": "Header",
    "logo": "Header",
    "banner": "Hero",
}

_QUOTED = re.compile(r"[\"'‘’“”]([^\"'‘’“”]{2,})[\"'‘’“”]")


def _has_word(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def detect_edit_type(prompt: str) -> EditType:
    """Classify a request by keyword families.

    Args:
        prompt: User request

    Returns:
        The first matching edit type, UPDATE_COMPONENT when nothing matches
    """
    text = prompt.lower()
    for edit_type, keywords in _TYPE_KEYWORDS:
        if any(_has_word(text, kw) for kw in keywords):
            return edit_type
    return EditType.UPDATE_COMPONENT


class IntentAnalyzer(ABC):
    """Turns a request into an :class:`EditIntent` over a manifest."""

    @abstractmethod
    def analyze(self, prompt: str, manifest: Manifest) -> EditIntent:
        ...


class KeywordIntentAnalyzer(IntentAnalyzer):
    """Offline analyzer: keyword categories plus name and quoted-text matching."""

    def analyze(self, prompt: str, manifest: Manifest) -> EditIntent:
        edit_type = detect_edit_type(prompt)
        text = prompt.lower()
        paths = manifest.list_paths()
        entry = find_entry_component(paths) or (
            manifest.entry_point if manifest.has_file(manifest.entry_point) else None
        )

        if edit_type == EditType.FULL_REBUILD:
            targets = [
                path for path in paths
                if manifest.files[path].kind in (FileKind.COMPONENT, FileKind.PAGE)
            ] or ([entry] if entry else [])
            return self._intent(edit_type, targets, 0.9, [], "all components")

        if edit_type == EditType.ADD_DEPENDENCY:
            package_json = next((p for p in paths if p.rsplit("/", 1)[-1] == "package.json"), None)
            targets = [p for p in (package_json, entry) if p]
            return self._intent(edit_type, targets, 0.7, [], "package manifest")

        named, terms = self._match_names(text, manifest)
        confidence = 0.9
        if not named:
            named, terms = self._match_quoted(prompt, manifest)
            confidence = 0.85
        if not named:
            named, terms = self._match_aliases(text, manifest)
            confidence = 0.75

        if not named:
            targets = [entry] if entry else []
            return self._intent(edit_type, targets, 0.5 if entry else 0.2, [], "entry component")

        return self._intent(edit_type, named, confidence, terms, ", ".join(terms))

    @staticmethod
    def _intent(
        edit_type: EditType,
        targets: List[str],
        confidence: float,
        terms: List[str],
        focus: str,
    ) -> EditIntent:
        description = f"{_TYPE_LABELS[edit_type]} ({focus})" if focus else _TYPE_LABELS[edit_type]
        logger.debug("Intent %s -> %s", edit_type.value, targets)
        return EditIntent(
            type=edit_type,
            description=description,
            confidence=confidence,
            target_files=targets,
            search_terms=terms,
        )

    @staticmethod
    def _match_names(text: str, manifest: Manifest) -> Tuple[List[str], List[str]]:
        targets: List[str] = []
        terms: List[str] = []
        for path, record in manifest.files.items():
            stem = path.rsplit("/", 1)[-1].split(".", 1)[0]
            names = {stem}
            if record.component_info:
                names.add(record.component_info.name)
            for name in sorted(names):
                if len(name) > 2 and name.lower() not in {"app", "index", "main"} and _has_word(text, name.lower()):
                    if path not in targets:
                        targets.append(path)
                    if name not in terms:
                        terms.append(name)
        return targets, terms

    @staticmethod
    def _match_quoted(prompt: str, manifest: Manifest) -> Tuple[List[str], List[str]]:
        quoted = [q.strip() for q in _QUOTED.findall(prompt) if q.strip()]
        targets: List[str] = []
        terms: List[str] = []
        for phrase in quoted:
            needle = phrase.lower()
            for path, record in manifest.files.items():
                if needle in record.content.lower():
                    if path not in targets:
                        targets.append(path)
                    if phrase not in terms:
                        terms.append(phrase)
        return targets, terms

    @staticmethod
    def _match_aliases(text: str, manifest: Manifest) -> Tuple[List[str], List[str]]:
        for alias, component in _COMPONENT_ALIASES.items():
            if not _has_word(text, alias):
                continue
            node = manifest.component_node(component)
            if node is not None and manifest.has_file(node.file):
                return [node.file], [component]
        return [], []


def analyze_edit_intent(prompt: str, manifest: Manifest, analyzer: Optional[IntentAnalyzer] = None) -> EditIntent:
    return (analyzer or KeywordIntentAnalyzer()).analyze(prompt, manifest)
