"""Turn a free-text generator's reply into a :class:`SearchPlan`."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from .manifest import Manifest
from .models import SearchPlan

logger = logging.getLogger(__name__)

PLANNER_SYSTEM_PROMPT = """You are an expert at planning code searches. Your job is to create a search strategy to find the exact code that needs to be edited.

DO NOT GUESS which files to edit. Instead, provide specific search terms that will locate the code.

SEARCH STRATEGY RULES:
1. For text changes (e.g., "change 'Start Deploying' to 'Go Now'"):
   - Search for the EXACT text: "Start Deploying"

2. For style changes (e.g., "make header black"):
   - Search for component names: "Header", "<header"
   - Search for class names: "header", "navbar"
   - Search for className attributes containing relevant words

3. For removing elements (e.g., "remove the deploy button"):
   - Search for the button text or aria-label
   - Search for relevant IDs or data-testids

4. For navigation/header issues:
   - Search for: "navigation", "nav", "Header", "navbar"
   - Look for Link components or href attributes

5. Be SPECIFIC:
   - Use exact capitalization for user-visible text
   - Include multiple search terms for redundancy
   - Add regex patterns for structural searches

Respond with ONE JSON object and nothing else:
{{
  "editType": "UPDATE_COMPONENT | ADD_FEATURE | FIX_ISSUE | UPDATE_STYLE | REFACTOR | ADD_DEPENDENCY | REMOVE_ELEMENT",
  "reasoning": "explanation of the search strategy",
  "searchTerms": ["exact text to find"],
  "regexPatterns": ["optional regex"],
  "fileTypesToSearch": [".jsx", ".tsx", ".js", ".ts"],
  "expectedMatches": 1,
  "fallbackSearch": {{"terms": ["backup term"], "patterns": []}}
}}

Current project structure for context:
{file_summary}"""

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_NUMERIC_TAIL = re.compile(r"/\d+$")


class SearchPlanError(ValueError):
    """The generator produced no usable search plan."""


def build_file_summary(manifest: Manifest) -> str:
    """One line per real file: path, component name and rendered children."""
    lines = []
    for path, record in manifest.files.items():
        if "." not in path or _NUMERIC_TAIL.search(path):
            continue
        info = record.component_info
        name = info.name if info else path.rsplit("/", 1)[-1]
        children = ", ".join(info.child_components) if info and info.child_components else "none"
        lines.append(f"- {path} ({name}, renders: {children})")
    return "\n".join(lines)


def build_planning_prompt(prompt: str, manifest: Manifest) -> str:
    summary = build_file_summary(manifest)
    if not summary:
        raise SearchPlanError("No valid files found in manifest")
    return (
        PLANNER_SYSTEM_PROMPT.format(file_summary=summary)
        + f'\n\nUser request: "{prompt}"\n\n'
        "Create a search plan to find the exact code that needs to be modified. "
        "Include specific search terms and patterns."
    )


def extract_json_object(text: str) -> Dict[str, Any]:
    """Pull the first JSON object out of a model reply.

    Accepts bare JSON, fenced ```json blocks, and JSON surrounded by prose.

    Raises:
        SearchPlanError: If no JSON object can be decoded
    """
    fenced = _FENCE.search(text)
    candidate = fenced.group(1) if fenced else text
    start = candidate.find("{")
    if start == -1:
        raise SearchPlanError("Reply contains no JSON object")

    try:
        data, _ = json.JSONDecoder().raw_decode(candidate[start:])
    except json.JSONDecodeError as exc:
        raise SearchPlanError(f"Reply is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise SearchPlanError("Reply JSON is not an object")
    return data


class SearchPlanner:
    """Ask a text generator for a search plan.

    *generator* is any object with ``generate(prompt) -> Optional[str]``.
    """

    def __init__(self, generator):
        self.generator = generator

    def plan(self, prompt: str, manifest: Manifest) -> SearchPlan:
        """Build a search plan for *prompt*.

        Raises:
            SearchPlanError: On an empty reply, non-JSON or a plan with no
                search terms, patterns or fallback
        """
        reply = self.generator.generate(build_planning_prompt(prompt, manifest))
        if not reply or not reply.strip():
            raise SearchPlanError("Generator returned no response")

        data = extract_json_object(reply)
        try:
            plan = SearchPlan.from_dict(data)
        except (TypeError, ValueError) as exc:
            raise SearchPlanError(f"Malformed search plan: {exc}") from exc

        if not plan.search_terms and not plan.regex_patterns and plan.fallback is None:
            raise SearchPlanError("Search plan has no terms or patterns")

        logger.info(
            "Search plan: %s, %d term(s), %d pattern(s)",
            plan.edit_type.value, len(plan.search_terms), len(plan.regex_patterns),
        )
        return plan
