"""Core data models shared by targeting, search, and prompt assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class FileKind(str, Enum):
    COMPONENT = "component"
    PAGE = "page"
    STYLE = "style"
    CONFIG = "config"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FileKind":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OTHER


class EditType(str, Enum):
    """Category of an edit request; drives instructions and target selection."""

    UPDATE_COMPONENT = "update-component"
    ADD_FEATURE = "add-feature"
    FIX_ISSUE = "fix-issue"
    UPDATE_STYLE = "update-style"
    REFACTOR = "refactor"
    FULL_REBUILD = "full-rebuild"
    ADD_DEPENDENCY = "add-dependency"
    REMOVE_ELEMENT = "remove-element"

    @classmethod
    def parse(cls, value: Any, default: Optional["EditType"] = None) -> Optional["EditType"]:
        """Accept ``UPDATE_STYLE``, ``update_style`` or ``update-style``.

        Unknown values return *default* (None unless given).
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return default
        normalized = value.strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            logger.warning("Unknown edit type '%s'", value)
            return default


@dataclass
class ImportSpec:
    source: str
    is_local: bool = False
    resolved: bool = False


@dataclass
class ComponentInfo:
    name: str
    child_components: List[str] = field(default_factory=list)
    imports: List[ImportSpec] = field(default_factory=list)


@dataclass
class FileRecord:
    path: str
    content: str
    kind: FileKind = FileKind.OTHER
    component_info: Optional[ComponentInfo] = None
    imports: List[ImportSpec] = field(default_factory=list)

    @property
    def local_imports(self) -> List[ImportSpec]:
        """Local import specifiers, falling back to the component's own list."""
        specs = self.imports or (self.component_info.imports if self.component_info else [])
        return [spec for spec in specs if spec.is_local and spec.source]


@dataclass
class ComponentTreeNode:
    name: str
    file: str
    imports: List[str] = field(default_factory=list)
    imported_by: List[str] = field(default_factory=list)


@dataclass
class Route:
    path: str
    component: str


@dataclass
class EditIntent:
    type: EditType
    description: str
    confidence: float
    target_files: List[str] = field(default_factory=list)
    search_terms: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Clamp confidence into [0, 1]."""
        self.confidence = max(0.0, min(1.0, float(self.confidence)))


@dataclass
class FallbackSearch:
    terms: List[str] = field(default_factory=list)
    patterns: List[str] = field(default_factory=list)


@dataclass
class SearchPlan:
    """Classifier-produced strategy for locating the exact code to edit."""

    edit_type: EditType
    reasoning: str = ""
    search_terms: List[str] = field(default_factory=list)
    regex_patterns: List[str] = field(default_factory=list)
    file_types: List[str] = field(default_factory=list)
    expected_matches: int = 1
    fallback: Optional[FallbackSearch] = None

    def __post_init__(self):
        """Clamp the sanity signal into its documented 1-10 range."""
        self.expected_matches = max(1, min(10, int(self.expected_matches)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchPlan":
        """Build a plan from the classifier's JSON shape (camelCase or snake_case)."""
        if not isinstance(data, dict):
            raise ValueError("Search plan must be a JSON object")

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        edit_type = EditType.parse(
            pick("editType", "edit_type", "type"), default=EditType.UPDATE_COMPONENT
        )

        fallback = None
        raw_fallback = pick("fallbackSearch", "fallback_search", "fallback")
        if isinstance(raw_fallback, dict):
            fallback = FallbackSearch(
                terms=_string_list(raw_fallback.get("terms")),
                patterns=_string_list(raw_fallback.get("patterns")),
            )

        expected = pick("expectedMatches", "expected_matches", default=1)
        try:
            expected = int(expected)
        except (TypeError, ValueError, OverflowError):
            expected = 1

        return cls(
            edit_type=edit_type,
            reasoning=str(pick("reasoning", "rationale", default="")),
            search_terms=_string_list(pick("searchTerms", "search_terms")),
            regex_patterns=_string_list(pick("regexPatterns", "regex_patterns")),
            file_types=_string_list(pick("fileTypesToSearch", "file_types")),
            expected_matches=expected,
            fallback=fallback,
        )


def _string_list(value: Any) -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return [str(value)]
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Expected a string or a list, got {type(value).__name__}")
    return [str(item) for item in value if isinstance(item, (str, int, float))]
