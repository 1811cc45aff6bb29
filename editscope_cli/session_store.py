"""Session-keyed conversation state with per-session locking."""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .conversation import (
    ConversationEdit,
    ConversationMessage,
    ConversationState,
    MajorChange,
    OrderedSet,
    SessionSummary,
    UserPreferences,
    metadata_from_dict,
    metadata_to_dict,
    new_conversation_state,
)

logger = logging.getLogger(__name__)


class SessionStore:
    """In-process mapping of session id to conversation state.

    Each session has its own lock; callers that mutate a state should hold it
    through :meth:`session` so eviction, summary updates and timestamps of
    concurrent requests do not interleave.
    """

    def __init__(self):
        self._states: Dict[str, ConversationState] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def create_session(self, session_id: Optional[str] = None) -> ConversationState:
        """Create a new session, replacing any state stored under the same id."""
        state = new_conversation_state(session_id)
        with self._guard:
            self._states[state.conversation_id] = state
            self._locks.setdefault(state.conversation_id, threading.Lock())
        logger.debug("Created session %s", state.conversation_id)
        return state

    def get_session(self, session_id: str) -> Optional[ConversationState]:
        with self._guard:
            return self._states.get(session_id)

    def get_or_create(self, session_id: str) -> ConversationState:
        with self._guard:
            state = self._states.get(session_id)
            if state is None:
                state = new_conversation_state(session_id)
                self._states[session_id] = state
                self._locks.setdefault(session_id, threading.Lock())
            return state

    @contextmanager
    def session(self, session_id: str) -> Iterator[ConversationState]:
        """Hold the session's lock for the duration of the block."""
        state = self.get_or_create(session_id)
        with self._guard:
            lock = self._locks.setdefault(session_id, threading.Lock())
        with lock:
            yield state

    def list_sessions(self) -> List[dict]:
        """List sessions, most recently updated first."""
        with self._guard:
            sessions = [
                {
                    "id": state.conversation_id,
                    "started_at": state.started_at,
                    "last_updated": state.last_updated,
                    "message_count": len(state.messages),
                    "total_interactions": state.summary.total_interactions,
                }
                for state in self._states.values()
            ]
        sessions.sort(key=lambda s: s["last_updated"], reverse=True)
        return sessions

    def delete_session(self, session_id: str) -> bool:
        """Delete a session.

        The session's lock is kept, so a block still holding it and any
        later :meth:`session` on the same id stay mutually exclusive.

        Returns:
            True if deleted, False if not found
        """
        with self._guard:
            return self._states.pop(session_id, None) is not None


def state_to_dict(state: ConversationState) -> Dict[str, Any]:
    """Serialize a state for callers that own persistence."""
    summary = state.summary
    return {
        "conversation_id": state.conversation_id,
        "started_at": state.started_at,
        "last_updated": state.last_updated,
        "current_topic": state.current_topic,
        "initial_state": state.initial_state,
        "messages": [
            {
                "id": msg.id,
                "role": msg.role,
                "content": msg.content,
                "timestamp": msg.timestamp,
                "metadata": metadata_to_dict(msg.metadata),
            }
            for msg in state.messages
        ],
        "edits": [
            {
                "timestamp": e.timestamp,
                "user_request": e.user_request,
                "edit_type": e.edit_type,
                "target_files": list(e.target_files),
                "confidence": e.confidence,
                "outcome": e.outcome,
                "error_message": e.error_message,
            }
            for e in state.edits
        ],
        "major_changes": [
            {
                "timestamp": c.timestamp,
                "description": c.description,
                "files_affected": list(c.files_affected),
            }
            for c in state.major_changes
        ],
        "user_preferences": {
            "edit_style": state.user_preferences.edit_style,
            "common_requests": list(state.user_preferences.common_requests),
            "package_preferences": list(state.user_preferences.package_preferences),
        },
        "summary": {
            "total_interactions": summary.total_interactions,
            "files_created": list(summary.files_created),
            "files_modified": list(summary.files_modified),
            "packages_added": list(summary.packages_added),
            "components_created": list(summary.components_created),
            "last_action_summary": summary.last_action_summary,
        },
    }


def state_from_dict(data: Dict[str, Any]) -> ConversationState:
    """Rebuild a state serialized by :func:`state_to_dict`.

    Raises:
        ValueError: If required keys are missing
    """
    try:
        state = ConversationState(
            conversation_id=data["conversation_id"],
            started_at=float(data["started_at"]),
            last_updated=float(data.get("last_updated", data["started_at"])),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid conversation state: {exc}") from exc

    state.current_topic = data.get("current_topic")
    state.initial_state = data.get("initial_state")

    for msg in data.get("messages", []):
        state.messages.append(ConversationMessage(
            id=msg.get("id", ""),
            role=msg.get("role", "user"),
            content=msg.get("content", ""),
            timestamp=float(msg.get("timestamp", state.started_at)),
            metadata=metadata_from_dict(msg.get("metadata")),
        ))

    for edit in data.get("edits", []):
        state.edits.append(ConversationEdit(
            timestamp=float(edit["timestamp"]),
            user_request=edit.get("user_request", ""),
            edit_type=edit.get("edit_type", ""),
            target_files=list(edit.get("target_files", [])),
            confidence=float(edit.get("confidence", 0.0)),
            outcome=edit.get("outcome", "success"),
            error_message=edit.get("error_message"),
        ))

    for change in data.get("major_changes", []):
        state.major_changes.append(MajorChange(
            timestamp=float(change["timestamp"]),
            description=change.get("description", ""),
            files_affected=list(change.get("files_affected", [])),
        ))

    prefs = data.get("user_preferences", {})
    state.user_preferences = UserPreferences(
        edit_style=prefs.get("edit_style"),
        common_requests=list(prefs.get("common_requests", [])),
        package_preferences=list(prefs.get("package_preferences", [])),
    )

    summary = data.get("summary", {})
    state.summary = SessionSummary(
        total_interactions=int(summary.get("total_interactions", 0)),
        files_created=OrderedSet(summary.get("files_created", [])),
        files_modified=OrderedSet(summary.get("files_modified", [])),
        packages_added=OrderedSet(summary.get("packages_added", [])),
        components_created=OrderedSet(summary.get("components_created", [])),
        last_action_summary=summary.get("last_action_summary"),
    )
    return state


def load_state(path: Path) -> ConversationState:
    """Read a serialized state from a JSON file."""
    return state_from_dict(json.loads(Path(path).read_text(encoding="utf-8")))


def save_state(state: ConversationState, path: Path) -> None:
    Path(path).write_text(json.dumps(state_to_dict(state), indent=2), encoding="utf-8")
