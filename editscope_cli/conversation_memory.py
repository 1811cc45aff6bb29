"""Bounded conversation memory and the digest injected into prompts.

The message log is hard-truncated once it grows past a threshold; the session
summary is the only durable trace of evicted turns. The digest rendered from
a state is capped in characters and is a size safety valve, not a semantic
summarizer.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from . import config
from .conversation import (
    AIResult,
    AppliedFile,
    ConversationEdit,
    ConversationMessage,
    ConversationState,
    MajorChange,
    MessageMetadata,
    SessionSummary,
    UserPreferences,
    new_message,
)

logger = logging.getLogger(__name__)

TRUNCATION_NOTICE = "\n[Memory truncated to prevent context overflow]"

_TARGETED_EDIT = re.compile(r"\b(update|change|fix|modify|edit|remove|delete)\s+(\w+\s+)?(\w+)\b")
_COMPREHENSIVE_EDIT = re.compile(r"\b(rebuild|recreate|redesign|overhaul|refactor)\b")

# keyword(s) -> request pattern label, checked in this order
_REQUEST_PATTERNS: List[Tuple[Tuple[str, ...], str]] = [
    (("hero",), "hero section edits"),
    (("header",), "header modifications"),
    (("color", "style"), "styling changes"),
    (("button",), "button updates"),
    (("animation",), "animation requests"),
]

Interaction = Tuple[ConversationMessage, Optional[ConversationMessage]]

_FILE_BLOCK = re.compile(r'<file path="([^"]+)">(.*?)</file>', re.DOTALL)
_COMPONENT_FILE = re.compile(r"(?:^|/)([A-Z]\w*)\.(?:jsx|tsx)$")


def trim_messages(
    state: ConversationState,
    max_messages: int = config.MAX_MESSAGES,
    retained: int = config.RETAINED_MESSAGES,
) -> int:
    """Drop the oldest messages once the log exceeds *max_messages*.

    Returns:
        Number of messages evicted
    """
    before = len(state.messages)
    if before <= max_messages:
        return 0
    state.messages = state.messages[-retained:]
    evicted = before - len(state.messages)
    logger.debug("Evicted %d messages from %s", evicted, state.conversation_id)
    return evicted


def update_conversation_memory(
    state: ConversationState,
    user_message: ConversationMessage,
    ai_result: Optional[AIResult] = None,
    now: Optional[float] = None,
) -> None:
    """Record one user turn and, when present, the assistant's result."""
    timestamp = time.time() if now is None else now
    state.messages.append(user_message)

    if ai_result is not None:
        metadata = MessageMetadata(
            generated_code=ai_result.generated_code,
            applied_files=list(ai_result.applied_files),
            action_summary=ai_result.action_summary,
            file_count=ai_result.file_count,
            component_count=ai_result.component_count,
            added_packages=list(ai_result.packages_to_install),
            edited_files=[f.path for f in ai_result.applied_files],
        )
        state.messages.append(new_message(
            "assistant",
            ai_result.action_summary or "Generated code response",
            metadata=metadata,
            now=timestamp,
        ))
        update_session_summary(state.summary, ai_result)

    state.user_preferences = analyze_user_preferences(state.messages, previous=state.user_preferences)
    trim_messages(state)
    state.last_updated = timestamp


def _project_relative(path: str) -> str:
    if path.startswith(config.PROJECT_ROOT_PREFIX):
        path = path[len(config.PROJECT_ROOT_PREFIX):]
    return path.lstrip("/")


def parse_generated_files(generated_code: str, existing: Iterable[str] = ()) -> List[AppliedFile]:
    """Extract the <file path="..."> blocks of a model response.

    Paths listed in *existing* are reported as modified, everything else as
    created; comparison ignores the project root prefix. Sizes are the
    stripped body lengths. PascalCase .jsx/.tsx files carry their stem as
    the component name.
    """
    known = {_project_relative(p) for p in existing}
    applied = []
    for path, body in _FILE_BLOCK.findall(generated_code or ""):
        component = _COMPONENT_FILE.search(path)
        applied.append(AppliedFile(
            path=path,
            action="modified" if _project_relative(path) in known else "created",
            size=len(body.strip()),
            component_name=component.group(1) if component else None,
        ))
    return applied


def update_session_summary(summary: SessionSummary, ai_result: AIResult) -> None:
    """Fold one AI result into the cumulative summary."""
    summary.total_interactions += 1
    summary.last_action_summary = ai_result.action_summary

    for applied in ai_result.applied_files:
        if applied.action == "created":
            if applied.path not in summary.files_created:
                summary.files_created.add(applied.path)
                if applied.component_name:
                    summary.components_created.add(applied.component_name)
        elif applied.action == "modified":
            summary.files_modified.add(applied.path)

    for package in ai_result.packages_to_install:
        summary.packages_added.add(package)


def record_edit(state: ConversationState, edit: ConversationEdit, limit: int = config.MAX_EDIT_HISTORY) -> None:
    state.edits.append(edit)
    if len(state.edits) > limit:
        state.edits = state.edits[-limit:]


def record_major_change(
    state: ConversationState,
    description: str,
    files_affected: Optional[List[str]] = None,
    now: Optional[float] = None,
    limit: int = config.MAX_MAJOR_CHANGES,
) -> None:
    state.major_changes.append(MajorChange(
        timestamp=time.time() if now is None else now,
        description=description,
        files_affected=list(files_affected or []),
    ))
    if len(state.major_changes) > limit:
        state.major_changes = state.major_changes[-limit:]


def set_current_topic(state: ConversationState, topic: Optional[str]) -> None:
    state.current_topic = topic.strip() if topic and topic.strip() else None


def get_recent_interactions(messages: List[ConversationMessage], max_count: int) -> List[Interaction]:
    """Pair each user message with the assistant reply directly after it.

    A user message with no reply is paired with None. Returns the newest
    *max_count* pairs, oldest first.
    """
    if max_count <= 0:
        return []

    interactions: List[Interaction] = []
    for index, message in enumerate(messages):
        if message.role != "user":
            continue
        following = messages[index + 1] if index + 1 < len(messages) else None
        reply = following if following is not None and following.role == "assistant" else None
        interactions.append((message, reply))

    return interactions[-max_count:]


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def generate_action_summary(message: ConversationMessage) -> str:
    """Describe an assistant turn from its counts."""
    metadata = message.metadata
    if metadata is None:
        return "Generated response"

    parts = []
    if metadata.file_count:
        parts.append(f"Modified {_plural(metadata.file_count, 'file')}")
    if metadata.component_count:
        parts.append(f"created {_plural(metadata.component_count, 'component')}")
    if metadata.added_packages:
        parts.append(f"added {_plural(len(metadata.added_packages), 'package')}")

    return ", ".join(parts) if parts else "Generated code"


def summarize_file_actions(applied_files: List[AppliedFile]) -> str:
    by_action = {"created": [], "modified": [], "deleted": []}
    for applied in applied_files:
        by_action.setdefault(applied.action, []).append(applied.path.rsplit("/", 1)[-1] or applied.path)

    summaries = []
    for action in ("created", "modified"):
        names = by_action[action]
        if names:
            extra = f" (+{len(names) - 3})" if len(names) > 3 else ""
            summaries.append(f"{action} {', '.join(names[:3])}{extra}")
    if by_action["deleted"]:
        summaries.append(f"deleted {', '.join(by_action['deleted'])}")

    return ", ".join(summaries)


def analyze_user_preferences(
    messages: List[ConversationMessage],
    previous: Optional[UserPreferences] = None,
    max_patterns: int = config.MAX_PATTERNS,
) -> UserPreferences:
    """Infer edit style and common request patterns from user messages.

    Edit style is a majority vote between targeted and comprehensive verbs;
    ties count as comprehensive.
    """
    targeted = comprehensive = 0
    patterns: List[str] = []

    for message in messages:
        if message.role != "user":
            continue
        content = message.content.lower()
        if _TARGETED_EDIT.search(content):
            targeted += 1
        if _COMPREHENSIVE_EDIT.search(content):
            comprehensive += 1
        for keywords, label in _REQUEST_PATTERNS:
            if any(k in content for k in keywords) and label not in patterns:
                patterns.append(label)

    return UserPreferences(
        edit_style="targeted" if targeted > comprehensive else "comprehensive",
        common_requests=patterns[:max_patterns],
        package_preferences=list(previous.package_preferences) if previous else [],
    )


def time_ago(timestamp: float, now: Optional[float] = None) -> str:
    """Human-readable age of *timestamp* (seconds since the epoch)."""
    current = time.time() if now is None else now
    minutes = int((current - timestamp) // 60)

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def _rollup(label: str, items, limit: int) -> Optional[str]:
    if not items:
        return None
    recent = items.tail(limit)
    extra = f" (+{len(items) - limit} more)" if len(items) > limit else ""
    return f"**{label}:** {', '.join(recent)}{extra}"


def build_conversation_history_prompt(
    state: Optional[ConversationState],
    now: Optional[float] = None,
    char_limit: int = config.MEMORY_CHAR_LIMIT,
) -> str:
    """Render a compact digest of the session for the system prompt.

    Returns an empty string when there is no prior turn worth summarizing.
    The result never exceeds *char_limit* plus the truncation notice.
    """
    if state is None or len(state.messages) <= 1:
        return ""

    current = time.time() if now is None else now
    summary = state.summary
    sections: List[str] = [
        "## 🧠 CONVERSATION MEMORY",
        f"Session started: {datetime.fromtimestamp(state.started_at).strftime('%H:%M:%S')}",
        f"Total interactions: {summary.total_interactions or len(state.messages)}",
    ]

    interactions = get_recent_interactions(state.messages, config.RECENT_INTERACTIONS)
    if interactions:
        sections.append("\n### Recent Conversation:")
        for index, (user_msg, ai_msg) in enumerate(interactions):
            excerpt = truncate_text(user_msg.content, config.USER_EXCERPT_CHARS)
            sections.append(
                f'\n**{len(interactions) - index}. User ({time_ago(user_msg.timestamp, current)}):** "{excerpt}"'
            )
            if ai_msg is None:
                continue
            action = (ai_msg.metadata and ai_msg.metadata.action_summary) or generate_action_summary(ai_msg)
            sections.append(f"**AI Response:** {action}")
            if ai_msg.metadata and ai_msg.metadata.applied_files:
                sections.append(f"**Files:** {summarize_file_actions(ai_msg.metadata.applied_files)}")

    rollups = [
        _rollup("Created files", summary.files_created, config.ROLLUP_LIMIT),
        _rollup("Modified files", summary.files_modified, config.ROLLUP_LIMIT),
        _rollup("Components created", summary.components_created, config.ROLLUP_LIMIT),
        _rollup("Packages added", summary.packages_added, config.ROLLUP_LIMIT),
    ]
    rollups = [line for line in rollups if line]
    if rollups:
        sections.append("\n### Session Summary:")
        sections.extend(rollups)

    prefs = analyze_user_preferences(state.messages)
    if prefs.common_requests:
        sections.append("\n### User Patterns:")
        sections.append(f"**Edit style:** {prefs.edit_style}")
        sections.append(f"**Common requests:** {', '.join(prefs.common_requests)}")

    if state.current_topic:
        sections.append(f"\n### Current Focus: {state.current_topic}")

    recent_changes = state.major_changes[-config.RECENT_MAJOR_CHANGES:]
    if recent_changes:
        sections.append("\n### Recent Major Changes:")
        for change in recent_changes:
            sections.append(f"- {change.description} ({time_ago(change.timestamp, current)})")

    result = "\n".join(sections)
    if len(result) > char_limit:
        result = result[:char_limit] + TRUNCATION_NOTICE
    return result
