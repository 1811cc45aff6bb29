"""Tests for bounded conversation memory and the rendered digest."""

from editscope_cli.conversation import (
    AIResult,
    AppliedFile,
    ConversationEdit,
    OrderedSet,
    new_message,
)
from editscope_cli.conversation_memory import (
    TRUNCATION_NOTICE,
    analyze_user_preferences,
    build_conversation_history_prompt,
    generate_action_summary,
    get_recent_interactions,
    parse_generated_files,
    record_edit,
    record_major_change,
    set_current_topic,
    summarize_file_actions,
    time_ago,
    trim_messages,
    truncate_text,
    update_conversation_memory,
)


def _user(text: str, now: float = 1_000.0):
    return new_message("user", text, now=now)


class TestEviction:
    """Tests for the message log bound."""

    def test_twenty_first_append_trims_to_fifteen(self, state):
        for i in range(1, 21):
            update_conversation_memory(state, _user(f"request {i}"), now=1_000.0 + i)
            assert len(state.messages) == i

        update_conversation_memory(state, _user("request 21"), now=1_100.0)
        assert len(state.messages) == 15
        assert state.messages[-1].content == "request 21"
        assert state.messages[0].content == "request 7"

    def test_log_stays_bounded(self, state, ai_result):
        for i in range(25):
            update_conversation_memory(state, _user(f"add section {i}"), ai_result, now=1_000.0 + i)
            assert len(state.messages) <= 20

        assert state.summary.total_interactions == 25

    def test_trim_messages_returns_evicted_count(self, state):
        state.messages = [_user(str(i)) for i in range(22)]
        assert trim_messages(state) == 7
        assert trim_messages(state) == 0
        assert len(state.messages) == 15

    def test_last_updated(self, state):
        update_conversation_memory(state, _user("hi"), now=5_000.0)
        assert state.last_updated == 5_000.0


class TestSessionSummary:
    """Tests for the cumulative summary."""

    def test_counts_survive_eviction(self, state, ai_result):
        seen = []
        for i in range(15):
            update_conversation_memory(state, _user(f"edit {i}"), ai_result, now=1_000.0 + i)
            seen.append(state.summary.total_interactions)
        assert seen == sorted(seen)
        assert seen[-1] == 15

    def test_files_and_packages(self, state, ai_result):
        update_conversation_memory(state, _user("add pricing"), ai_result)
        update_conversation_memory(state, _user("again"), ai_result)

        summary = state.summary
        assert list(summary.files_created) == ["src/components/Pricing.jsx"]
        assert list(summary.components_created) == ["Pricing"]
        assert list(summary.files_modified) == ["src/App.jsx"]
        assert list(summary.packages_added) == ["framer-motion"]
        assert summary.last_action_summary == "Added a pricing section"

    def test_assistant_message_metadata(self, state, ai_result):
        update_conversation_memory(state, _user("add pricing"), ai_result)
        reply = state.messages[-1]
        assert reply.role == "assistant"
        assert reply.content == "Added a pricing section"
        assert reply.metadata.edited_files == ["src/components/Pricing.jsx", "src/App.jsx"]
        assert reply.metadata.added_packages == ["framer-motion"]

    def test_user_only_turn_does_not_count(self, state):
        update_conversation_memory(state, _user("hello"))
        assert state.summary.total_interactions == 0


class TestHistoryLogs:
    """Tests for edit history, major changes and topic."""

    def test_edit_history_capped(self, state):
        for i in range(60):
            record_edit(state, ConversationEdit(
                timestamp=float(i),
                user_request=f"edit {i}",
                edit_type="update-style",
                target_files=["a.jsx"],
                confidence=0.9,
                outcome="success",
            ))
        assert len(state.edits) == 50
        assert state.edits[0].user_request == "edit 10"

    def test_major_changes_capped(self, state):
        for i in range(12):
            record_major_change(state, f"change {i}", ["a.jsx"], now=float(i))
        assert len(state.major_changes) == 10
        assert state.major_changes[-1].description == "change 11"

    def test_topic(self, state):
        set_current_topic(state, "  hero redesign ")
        assert state.current_topic == "hero redesign"
        set_current_topic(state, "   ")
        assert state.current_topic is None


class TestPreferences:
    """Tests for analyze_user_preferences."""

    def test_targeted_style(self):
        messages = [_user("update the header color"), _user("change the button text")]
        prefs = analyze_user_preferences(messages)
        assert prefs.edit_style == "targeted"
        assert prefs.common_requests == ["header modifications", "styling changes", "button updates"]

    def test_tie_is_comprehensive(self):
        messages = [_user("fix the footer"), _user("rebuild everything")]
        assert analyze_user_preferences(messages).edit_style == "comprehensive"

    def test_assistant_messages_ignored(self):
        messages = [new_message("assistant", "update the header color")]
        prefs = analyze_user_preferences(messages)
        assert prefs.common_requests == []

    def test_pattern_limit(self):
        messages = [_user("hero header color button animation")]
        assert len(analyze_user_preferences(messages, max_patterns=2).common_requests) == 2


class TestHelpers:
    """Tests for digest helpers."""

    def test_recent_interactions_pairing(self):
        messages = [
            _user("one"),
            new_message("assistant", "done one"),
            _user("two"),
            _user("three"),
            new_message("assistant", "done three"),
        ]
        pairs = get_recent_interactions(messages, 5)
        assert [(u.content, a.content if a else None) for u, a in pairs] == [
            ("one", "done one"),
            ("two", None),
            ("three", "done three"),
        ]
        assert [u.content for u, _ in get_recent_interactions(messages, 2)] == ["two", "three"]

    def test_time_ago(self):
        assert time_ago(100.0, now=130.0) == "just now"
        assert time_ago(0.0, now=5 * 60) == "5m ago"
        assert time_ago(0.0, now=3 * 3600) == "3h ago"
        assert time_ago(0.0, now=2 * 86400) == "2d ago"

    def test_truncate_text(self):
        assert truncate_text("short", 80) == "short"
        assert truncate_text("x" * 100, 10) == "xxxxxxx..."

    def test_action_summary_from_counts(self, ai_result):
        message = new_message("assistant", "ok")
        assert generate_action_summary(message) == "Generated response"

        from editscope_cli.conversation import MessageMetadata

        message.metadata = MessageMetadata(file_count=2, component_count=1, added_packages=["a"])
        assert generate_action_summary(message) == "Modified 2 files, created 1 component, added 1 package"

    def test_summarize_file_actions(self):
        files = [AppliedFile(path=f"src/C{i}.jsx", action="created") for i in range(5)]
        files.append(AppliedFile(path="src/old.jsx", action="deleted"))
        assert summarize_file_actions(files) == "created C0.jsx, C1.jsx, C2.jsx (+2), deleted old.jsx"

    def test_ordered_set(self):
        items = OrderedSet(["a", "b", "a", "c"])
        assert list(items) == ["a", "b", "c"]
        assert items.tail(2) == ["b", "c"]
        items.discard("b")
        assert list(items) == ["a", "c"]


class TestHistoryPrompt:
    """Tests for build_conversation_history_prompt."""

    def test_empty_for_missing_or_single_message(self, state):
        assert build_conversation_history_prompt(None) == ""
        assert build_conversation_history_prompt(state) == ""
        update_conversation_memory(state, _user("hello"))
        assert build_conversation_history_prompt(state) == ""

    def test_digest_sections(self, state, ai_result):
        update_conversation_memory(state, _user("update the header color", now=1_000.0), ai_result, now=1_000.0)
        set_current_topic(state, "header styling")
        record_major_change(state, "Added pricing page", ["src/Pricing.jsx"], now=1_000.0)

        digest = build_conversation_history_prompt(state, now=1_000.0 + 600)
        assert digest.startswith("## 🧠 CONVERSATION MEMORY")
        assert "Total interactions: 1" in digest
        assert '"update the header color"' in digest
        assert "(10m ago)" in digest
        assert "**AI Response:** Added a pricing section" in digest
        assert "**Files:** created Pricing.jsx, modified App.jsx" in digest
        assert "**Created files:** src/components/Pricing.jsx" in digest
        assert "**Packages added:** framer-motion" in digest
        assert "### Current Focus: header styling" in digest
        assert "- Added pricing page (10m ago)" in digest

    def test_digest_bounded(self, state):
        for i in range(20):
            reply = AIResult(
                applied_files=[AppliedFile(path=f"src/{'Long' * 30}{i}.jsx", action="created")],
                action_summary="x" * 500,
            )
            update_conversation_memory(state, _user("update the hero " + "y" * 400), reply)
        for i in range(10):
            record_major_change(state, "z" * 300)

        digest = build_conversation_history_prompt(state)
        assert len(digest) <= 2000 + len(TRUNCATION_NOTICE)
        assert digest.endswith(TRUNCATION_NOTICE)

    def test_custom_char_limit(self, state, ai_result):
        update_conversation_memory(state, _user("add pricing"), ai_result)
        digest = build_conversation_history_prompt(state, char_limit=50)
        assert digest == build_conversation_history_prompt(state)[:50] + TRUNCATION_NOTICE


class TestParseGeneratedFiles:
    """Tests for parse_generated_files."""

    GENERATED = (
        "Here are the changes.\n"
        '<file path="src/components/Pricing.jsx">\n'
        "export default function Pricing() {\n  return <section />;\n}\n"
        "</file>\n"
        '<file path="src/index.css">\n@tailwind base;\n</file>'
    )

    def test_blocks_become_created_files(self):
        applied = parse_generated_files(self.GENERATED)

        assert [f.path for f in applied] == ["src/components/Pricing.jsx", "src/index.css"]
        assert all(f.action == "created" for f in applied)
        assert applied[0].size == len("export default function Pricing() {\n  return <section />;\n}")
        assert applied[0].component_name == "Pricing"
        assert applied[1].component_name is None

    def test_existing_paths_are_modified(self):
        applied = parse_generated_files(self.GENERATED, existing=["/home/user/app/src/index.css"])
        assert [f.action for f in applied] == ["created", "modified"]

    def test_no_blocks(self):
        assert parse_generated_files("Sorry, nothing to change.") == []
        assert parse_generated_files("") == []

    def test_lowercase_stem_is_not_a_component(self):
        applied = parse_generated_files('<file path="src/utils/myHelpers.jsx">x</file>')
        assert applied[0].component_name is None
