"""Per-request coordination of search planning, file selection and memory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Literal, Optional, Tuple

from .context_selector import FileContext, select_files_for_edit
from .conversation import AIResult, ConversationEdit, MessageMetadata, new_message
from .conversation_memory import (
    build_conversation_history_prompt,
    parse_generated_files,
    record_edit,
    record_major_change,
    set_current_topic,
    trim_messages,
    update_conversation_memory,
)
from .intent_analyzer import IntentAnalyzer
from .manifest import Manifest
from .models import EditIntent
from .prompt_assembler import (
    build_full_prompt,
    build_request_system_prompt,
    build_surgical_prompt,
    get_file_contents,
)
from .search_executor import SearchExecution, SearchResult, execute_search_plan, select_target_file
from .search_planner import SearchPlanner
from .session_store import SessionStore

logger = logging.getLogger(__name__)

SURGICAL_CONFIDENCE = 0.95


@dataclass
class PreparedRequest:
    """Everything the caller needs to invoke the model for one request."""
    user_prompt: str
    conversation_prompt: str
    edit_context: Optional[FileContext] = None
    search_execution: Optional[SearchExecution] = None
    target: Optional[SearchResult] = None
    is_edit: bool = True

    @property
    def system_prompt(self) -> str:
        """Base rules, memory digest, edit rules and the edit-context prompt."""
        edit_prompt = self.edit_context.system_prompt if self.edit_context else ""
        return build_request_system_prompt(self.conversation_prompt, self.is_edit, edit_prompt)

    @property
    def is_surgical(self) -> bool:
        return self.target is not None


class EditContextOrchestrator:
    """Prepares edit requests and records their outcomes per session."""

    def __init__(
        self,
        sessions: Optional[SessionStore] = None,
        planner: Optional[SearchPlanner] = None,
        analyzer: Optional[IntentAnalyzer] = None,
    ):
        self.sessions = sessions or SessionStore()
        self.planner = planner
        self.analyzer = analyzer

    def prepare(
        self,
        prompt: str,
        manifest: Manifest,
        session_id: str,
        is_edit: bool = True,
    ) -> PreparedRequest:
        """Build the prompts for one request.

        Edits try the search-plan path first; when planning fails or no single
        target is found, coarse file selection is used instead.
        """
        with self.sessions.session(session_id) as state:
            trim_messages(state)
            conversation_prompt = build_conversation_history_prompt(state)

        edit_context: Optional[FileContext] = None
        execution: Optional[SearchExecution] = None
        target: Optional[SearchResult] = None

        if is_edit:
            edit_context, execution, target = self._surgical_context(prompt, manifest)
            if edit_context is None:
                edit_context = select_files_for_edit(prompt, manifest, self.analyzer)

        if edit_context is not None and edit_context.primary_files:
            user_prompt = build_full_prompt(
                prompt,
                get_file_contents(edit_context.primary_files, manifest),
                get_file_contents(edit_context.context_files, manifest),
                {},
            )
        else:
            user_prompt = build_full_prompt(prompt, {}, {}, manifest.file_contents())

        return PreparedRequest(
            user_prompt=user_prompt,
            conversation_prompt=conversation_prompt,
            edit_context=edit_context,
            search_execution=execution,
            target=target,
            is_edit=is_edit,
        )

    def _surgical_context(
        self,
        prompt: str,
        manifest: Manifest,
    ) -> Tuple[Optional[FileContext], Optional[SearchExecution], Optional[SearchResult]]:
        if self.planner is None:
            return None, None, None

        try:
            plan = self.planner.plan(prompt, manifest)
        except Exception as exc:
            logger.warning("Search planning failed, falling back to file selection: %s", exc)
            return None, None, None

        execution = execute_search_plan(plan, manifest.file_contents())
        target = select_target_file(execution.results, plan.edit_type)
        if target is None:
            logger.info("No surgical target (%d result(s)), using file selection", len(execution.results))
            return None, execution, None

        intent = EditIntent(
            type=plan.edit_type,
            description=plan.reasoning,
            confidence=SURGICAL_CONFIDENCE,
            target_files=[target.file_path],
            search_terms=list(plan.search_terms),
        )
        context = FileContext(
            edit_intent=intent,
            primary_files=[target.file_path],
            context_files=[],
            system_prompt=build_surgical_prompt(execution, target, prompt),
        )
        return context, execution, target

    def record(
        self,
        session_id: str,
        prompt: str,
        ai_result: Optional[AIResult] = None,
        prepared: Optional[PreparedRequest] = None,
        outcome: Literal["success", "partial", "failed"] = "success",
        error_message: Optional[str] = None,
    ) -> None:
        """Append the request and its result to the session's memory."""
        intent = prepared.edit_context.edit_intent if prepared and prepared.edit_context else None
        metadata = MessageMetadata(edit_type=intent.type.value) if intent else None

        with self.sessions.session(session_id) as state:
            if ai_result is not None and not ai_result.applied_files and ai_result.generated_code:
                known = set(state.summary.files_created) | set(state.summary.files_modified)
                if prepared is not None and prepared.edit_context is not None:
                    known.update(prepared.edit_context.primary_files)
                    known.update(prepared.edit_context.context_files)
                applied = parse_generated_files(ai_result.generated_code, known)
                ai_result = replace(
                    ai_result,
                    applied_files=applied,
                    file_count=ai_result.file_count or len(applied),
                )

            update_conversation_memory(state, new_message("user", prompt, metadata=metadata), ai_result)

            if intent is not None:
                record_edit(state, ConversationEdit(
                    timestamp=state.last_updated,
                    user_request=prompt,
                    edit_type=intent.type.value,
                    target_files=list(intent.target_files),
                    confidence=intent.confidence,
                    outcome=outcome,
                    error_message=error_message,
                ))
                set_current_topic(state, intent.description)

            if ai_result is not None:
                created = [f.path for f in ai_result.applied_files if f.action == "created"]
                if created:
                    record_major_change(
                        state,
                        ai_result.action_summary or f"Created {len(created)} file(s)",
                        created,
                        now=state.last_updated,
                    )
