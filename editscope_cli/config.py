"""Limits and defaults for edit targeting and context assembly."""

from __future__ import annotations

from .config_manager import load_limits

# Load overrides from ~/.editscope/config.toml (if present)
_limits = load_limits()
_memory = _limits["memory"]
_context = _limits["context"]
_search = _limits["search"]

# Conversation memory: once the log exceeds MAX_MESSAGES keep only the newest RETAINED_MESSAGES
MAX_MESSAGES = int(_memory["max_messages"])
RETAINED_MESSAGES = int(_memory["retained_messages"])
MEMORY_CHAR_LIMIT = int(_memory["char_limit"])
RECENT_INTERACTIONS = int(_memory["recent_interactions"])
USER_EXCERPT_CHARS = int(_memory["user_excerpt_chars"])
ROLLUP_LIMIT = int(_memory["rollup_limit"])
MAX_PATTERNS = int(_memory["max_patterns"])
RECENT_MAJOR_CHANGES = int(_memory["recent_major_changes"])
MAX_MAJOR_CHANGES = int(_memory["max_major_changes"])
MAX_EDIT_HISTORY = int(_memory["max_edit_history"])

# Prompt assembly
CONTEXT_FILE_CHAR_LIMIT = int(_context["context_file_char_limit"])
PROJECT_ROOT_PREFIX = str(_context["project_root_prefix"])

# Search; extension order is also the import-resolution precedence
CODE_EXTENSIONS = tuple(_search["code_extensions"])
SEARCH_CONTEXT_LINES = int(_search["context_lines"])
MAX_RESULTS_FOR_AI = int(_search["max_results_for_ai"])

