"""Data models for conversation memory across edit requests."""

from __future__ import annotations

import time
import uuid
from collections.abc import MutableSet
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Literal, Optional


class OrderedSet(MutableSet):
    """Insertion-ordered set; re-adding an item keeps its first position."""

    def __init__(self, items: Iterable[str] = ()):
        self._items: Dict[str, None] = dict.fromkeys(items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: str) -> None:
        self._items.setdefault(item, None)

    def discard(self, item: str) -> None:
        self._items.pop(item, None)

    def tail(self, n: int) -> List[str]:
        """The *n* most recently added items, oldest first."""
        items = list(self._items)
        return items[-n:] if n > 0 else []

    def __repr__(self) -> str:
        return f"OrderedSet({list(self._items)!r})"


@dataclass
class AppliedFile:
    """A file the assistant's output was applied to."""
    path: str
    action: Literal["created", "modified", "deleted"]
    size: int = 0
    component_name: Optional[str] = None


@dataclass
class MessageMetadata:
    edited_files: List[str] = field(default_factory=list)
    added_packages: List[str] = field(default_factory=list)
    edit_type: Optional[str] = None
    generated_code: Optional[str] = None
    applied_files: List[AppliedFile] = field(default_factory=list)
    action_summary: Optional[str] = None
    file_count: int = 0
    component_count: int = 0


@dataclass
class ConversationMessage:
    """Represents a single message in the conversation log."""
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: float
    metadata: Optional[MessageMetadata] = None

    def __str__(self) -> str:
        return f"[{self.role}] {self.content[:100]}"


@dataclass
class AIResult:
    """Outcome of one assistant generation, as reported by the caller."""
    generated_code: Optional[str] = None
    applied_files: List[AppliedFile] = field(default_factory=list)
    action_summary: Optional[str] = None
    file_count: int = 0
    component_count: int = 0
    packages_to_install: List[str] = field(default_factory=list)


@dataclass
class ConversationEdit:
    timestamp: float
    user_request: str
    edit_type: str
    target_files: List[str]
    confidence: float
    outcome: Literal["success", "partial", "failed"]
    error_message: Optional[str] = None


@dataclass
class MajorChange:
    timestamp: float
    description: str
    files_affected: List[str] = field(default_factory=list)


@dataclass
class UserPreferences:
    edit_style: Optional[Literal["targeted", "comprehensive"]] = None
    common_requests: List[str] = field(default_factory=list)
    package_preferences: List[str] = field(default_factory=list)


@dataclass
class SessionSummary:
    """Cumulative roll-up; never shrinks when old messages are evicted."""
    total_interactions: int = 0
    files_created: OrderedSet = field(default_factory=OrderedSet)
    files_modified: OrderedSet = field(default_factory=OrderedSet)
    packages_added: OrderedSet = field(default_factory=OrderedSet)
    components_created: OrderedSet = field(default_factory=OrderedSet)
    last_action_summary: Optional[str] = None


@dataclass
class ConversationState:
    conversation_id: str
    started_at: float
    last_updated: float
    messages: List[ConversationMessage] = field(default_factory=list)
    edits: List[ConversationEdit] = field(default_factory=list)
    current_topic: Optional[str] = None
    initial_state: Optional[str] = None
    major_changes: List[MajorChange] = field(default_factory=list)
    user_preferences: UserPreferences = field(default_factory=UserPreferences)
    summary: SessionSummary = field(default_factory=SessionSummary)

    @property
    def message_count(self) -> int:
        return len(self.messages)


def new_conversation_state(conversation_id: Optional[str] = None, now: Optional[float] = None) -> ConversationState:
    """Create an empty conversation state."""
    timestamp = time.time() if now is None else now
    return ConversationState(
        conversation_id=conversation_id or f"conv-{uuid.uuid4().hex[:12]}",
        started_at=timestamp,
        last_updated=timestamp,
    )


def new_message(
    role: Literal["user", "assistant"],
    content: str,
    metadata: Optional[MessageMetadata] = None,
    now: Optional[float] = None,
) -> ConversationMessage:
    """Create a message with a fresh id."""
    prefix = "msg" if role == "user" else "ai"
    return ConversationMessage(
        id=f"{prefix}-{uuid.uuid4().hex[:12]}",
        role=role,
        content=content,
        timestamp=time.time() if now is None else now,
        metadata=metadata,
    )


def metadata_to_dict(metadata: Optional[MessageMetadata]) -> Optional[Dict[str, Any]]:
    if metadata is None:
        return None
    return {
        "edited_files": list(metadata.edited_files),
        "added_packages": list(metadata.added_packages),
        "edit_type": metadata.edit_type,
        "generated_code": metadata.generated_code,
        "applied_files": [
            {
                "path": f.path,
                "action": f.action,
                "size": f.size,
                "component_name": f.component_name,
            }
            for f in metadata.applied_files
        ],
        "action_summary": metadata.action_summary,
        "file_count": metadata.file_count,
        "component_count": metadata.component_count,
    }


def metadata_from_dict(data: Optional[Dict[str, Any]]) -> Optional[MessageMetadata]:
    if not data:
        return None
    return MessageMetadata(
        edited_files=list(data.get("edited_files", [])),
        added_packages=list(data.get("added_packages", [])),
        edit_type=data.get("edit_type"),
        generated_code=data.get("generated_code"),
        applied_files=[
            AppliedFile(
                path=f["path"],
                action=f.get("action", "modified"),
                size=f.get("size", 0),
                component_name=f.get("component_name"),
            )
            for f in data.get("applied_files", [])
        ],
        action_summary=data.get("action_summary"),
        file_count=data.get("file_count", 0) or 0,
        component_count=data.get("component_count", 0) or 0,
    )
