"""Execute classifier search plans against in-memory file contents.

Literal terms are matched case-insensitively line by line; regex patterns are
matched per line as well. Each hit is scored so a single surgical target can
be chosen deterministically:

- literal term equal to the whole (stripped) line: 1.0
- literal substring: 0.5 + 0.4 * term length / line length (always < 1.0)
- regex: 0.3 + 0.5 * match span / line length
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from . import config
from .models import EditType, SearchPlan

logger = logging.getLogger(__name__)

SINGLE_POINT_EDITS = frozenset({
    EditType.UPDATE_STYLE,
    EditType.FIX_ISSUE,
    EditType.UPDATE_COMPONENT,
    EditType.REMOVE_ELEMENT,
})

EXACT_SCORE = 1.0
SUBSTRING_BASE, SUBSTRING_SPAN = 0.5, 0.4
REGEX_BASE, REGEX_SPAN = 0.3, 0.5


@dataclass
class SearchResult:
    file_path: str
    line_number: int
    line_content: str
    score: float
    matched_term: str
    match_type: Literal["exact", "substring", "regex"]
    context_before: List[str] = field(default_factory=list)
    context_after: List[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        kind = "pattern" if self.match_type == "regex" else "text"
        return f'{self.match_type} match for {kind} "{self.matched_term}"'

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line_number} ({self.score:.2f})"


@dataclass
class SearchExecution:
    success: bool
    results: List[SearchResult] = field(default_factory=list)
    files_searched: int = 0
    used_fallback: bool = False
    invalid_patterns: List[str] = field(default_factory=list)


def _normalize_extensions(file_types: Iterable[str]) -> Tuple[str, ...]:
    normalized = []
    for ext in file_types:
        ext = ext.strip().lower()
        if not ext:
            continue
        normalized.append(ext if ext.startswith(".") else f".{ext}")
    return tuple(normalized)


def _compile_patterns(patterns: Sequence[str]) -> Tuple[List[Tuple[str, "re.Pattern[str]"]], List[str]]:
    compiled, invalid = [], []
    for raw in patterns:
        if not raw:
            continue
        try:
            compiled.append((raw, re.compile(raw, re.IGNORECASE)))
        except re.error as exc:
            logger.warning("Skipping invalid search pattern %r: %s", raw, exc)
            invalid.append(raw)
    return compiled, invalid


def _make_result(
    path: str,
    lines: List[str],
    index: int,
    score: float,
    term: str,
    match_type: str,
    context_lines: int,
) -> SearchResult:
    return SearchResult(
        file_path=path,
        line_number=index + 1,
        line_content=lines[index].rstrip(),
        score=round(score, 4),
        matched_term=term,
        match_type=match_type,
        context_before=lines[max(0, index - context_lines):index],
        context_after=lines[index + 1:index + 1 + context_lines],
    )


def _search_file(
    path: str,
    content: str,
    terms: Sequence[str],
    patterns: Sequence[Tuple[str, "re.Pattern[str]"]],
    context_lines: int,
) -> List[SearchResult]:
    lines = content.splitlines()
    needles = [(term, term.strip().lower()) for term in terms if term.strip()]
    results: List[SearchResult] = []

    for index, line in enumerate(lines):
        stripped = line.strip()
        if not stripped:
            continue
        lowered = stripped.lower()

        for term, needle in needles:
            if needle not in lowered:
                continue
            if needle == lowered:
                score, match_type = EXACT_SCORE, "exact"
            else:
                score = SUBSTRING_BASE + SUBSTRING_SPAN * len(needle) / len(lowered)
                match_type = "substring"
            results.append(_make_result(path, lines, index, score, term, match_type, context_lines))

        for raw, pattern in patterns:
            match = pattern.search(stripped)
            if match is None or match.end() == match.start():
                continue
            score = REGEX_BASE + REGEX_SPAN * (match.end() - match.start()) / len(stripped)
            results.append(_make_result(path, lines, index, score, raw, "regex", context_lines))

    return results


def _run(
    terms: Sequence[str],
    patterns: Sequence[str],
    candidates: Dict[str, str],
    context_lines: int,
) -> Tuple[List[SearchResult], List[str]]:
    compiled, invalid = _compile_patterns(patterns)
    results: List[SearchResult] = []
    if not any(t.strip() for t in terms) and not compiled:
        return results, invalid
    for path in sorted(candidates):
        results.extend(_search_file(path, candidates[path], terms, compiled, context_lines))
    return results, invalid


def execute_search_plan(
    plan: SearchPlan,
    file_contents: Dict[str, str],
    context_lines: int = config.SEARCH_CONTEXT_LINES,
) -> SearchExecution:
    """Run *plan* over *file_contents* (path -> text).

    An empty or unusable plan is not an error: it yields ``success=True``
    with no results, and the caller falls back to coarse file selection.
    """
    extensions = _normalize_extensions(plan.file_types) or config.CODE_EXTENSIONS
    candidates = {
        path: content
        for path, content in file_contents.items()
        if path.lower().endswith(extensions)
    }

    results, invalid = _run(plan.search_terms, plan.regex_patterns, candidates, context_lines)
    used_fallback = False

    if not results and plan.fallback is not None:
        logger.info("Primary search found nothing, trying fallback terms")
        results, fallback_invalid = _run(plan.fallback.terms, plan.fallback.patterns, candidates, context_lines)
        invalid.extend(fallback_invalid)
        used_fallback = True

    results.sort(key=lambda r: (-r.score, r.file_path, r.line_number))

    # expected_matches is a sanity signal only
    if len(results) > plan.expected_matches:
        logger.debug("Search found %d matches, plan expected %d", len(results), plan.expected_matches)

    return SearchExecution(
        success=True,
        results=results,
        files_searched=len(candidates),
        used_fallback=used_fallback,
        invalid_patterns=invalid,
    )


def group_results_by_file(results: Sequence[SearchResult]) -> Dict[str, List[SearchResult]]:
    """Group results by path, keeping the order in which paths first appear."""
    grouped: Dict[str, List[SearchResult]] = {}
    for result in results:
        grouped.setdefault(result.file_path, []).append(result)
    return grouped


def select_target_file(results: Sequence[SearchResult], edit_type: EditType) -> Optional[SearchResult]:
    """Pick the single surgical target for point edits.

    Highest score wins; ties go to the earliest line, then the lexically
    smaller path. Broad edit types (add-feature, refactor, full-rebuild,
    add-dependency) return None so the caller uses coarse file selection.
    """
    if not results:
        return None
    if edit_type not in SINGLE_POINT_EDITS:
        logger.debug("Edit type %s has no single target", edit_type.value)
        return None

    target = min(results, key=lambda r: (-r.score, r.line_number, r.file_path))
    logger.info("Selected target %s (%s)", target, target.reason)
    return target


def format_search_results_for_ai(
    results: Sequence[SearchResult],
    limit: int = config.MAX_RESULTS_FOR_AI,
) -> str:
    """Render the top results grouped by file, with surrounding lines."""
    if not results:
        return "## Search Results\nNo matches found."

    shown = list(results)[:limit]
    grouped = group_results_by_file(shown)
    sections = [
        "## Search Results",
        f"Found {len(results)} match{'es' if len(results) != 1 else ''} in "
        f"{len(group_results_by_file(results))} file(s)",
    ]

    for path, file_results in grouped.items():
        sections.append(f"\n### {path} ({len(file_results)} match{'es' if len(file_results) != 1 else ''})")
        for result in file_results:
            sections.append(f"Line {result.line_number} ({result.reason}, score {result.score:.2f}):")
            first = result.line_number - len(result.context_before)
            block = [f"  {first + i}: {text}" for i, text in enumerate(result.context_before)]
            block.append(f"> {result.line_number}: {result.line_content}")
            block.extend(
                f"  {result.line_number + 1 + i}: {text}" for i, text in enumerate(result.context_after)
            )
            sections.append("```\n" + "\n".join(block) + "\n```")

    if len(results) > limit:
        sections.append(f"\n... {len(results) - limit} more match(es) omitted")

    return "\n".join(sections)
