"""Coarse file selection: intent, primary files, local context, system prompt."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .context_builder import build_local_context
from .intent_analyzer import IntentAnalyzer, analyze_edit_intent
from .manifest import Manifest
from .models import EditIntent
from .prompt_assembler import build_system_prompt

logger = logging.getLogger(__name__)


@dataclass
class FileContext:
    """Files chosen for an edit and the system prompt built around them."""
    edit_intent: EditIntent
    primary_files: List[str] = field(default_factory=list)
    context_files: List[str] = field(default_factory=list)
    system_prompt: str = ""


def select_files_for_edit(
    prompt: str,
    manifest: Manifest,
    analyzer: Optional[IntentAnalyzer] = None,
) -> FileContext:
    """Select files and build context for *prompt*.

    Args:
        prompt: User request
        manifest: Project snapshot
        analyzer: Intent classifier, :class:`KeywordIntentAnalyzer` by default

    Returns:
        FileContext whose primary files are the intent's targets that
        exist in the manifest
    """
    intent = analyze_edit_intent(prompt, manifest, analyzer)

    primary = [path for path in intent.target_files if manifest.has_file(path)]
    if len(primary) != len(intent.target_files):
        logger.debug("Dropped unknown targets: %s", set(intent.target_files) - set(primary))

    context = build_local_context(primary, manifest)
    system_prompt = build_system_prompt(prompt, intent, primary, context, manifest)

    logger.info("Selected %d primary and %d context file(s)", len(primary), len(context))
    return FileContext(
        edit_intent=intent,
        primary_files=primary,
        context_files=context,
        system_prompt=system_prompt,
    )
