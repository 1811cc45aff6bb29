"""Assemble system prompts and file blocks for an edit request."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from . import config
from .edit_instructions import build_edit_instructions, get_component_pattern_prompt, get_edit_examples_prompt
from .manifest import Manifest
from .models import EditIntent, EditType, FileKind
from .search_executor import SearchExecution, SearchResult, format_search_results_for_ai

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n// ... [truncated for context length]"

_LANGUAGES = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "css": "css",
    "json": "json",
}

_RELATIONSHIP_TYPES = (EditType.UPDATE_COMPONENT, EditType.ADD_FEATURE)


def _display_path(path: str) -> str:
    return path.replace(config.PROJECT_ROOT_PREFIX, "")


def _language_for(path: str) -> str:
    ext = path.rsplit(".", 1)[-1] if "." in path else ""
    return _LANGUAGES.get(ext, ext)


def _annotated(paths: Sequence[str], manifest: Manifest) -> str:
    lines = []
    for path in paths:
        record = manifest.get_file(path)
        if record is not None and record.component_info is not None:
            lines.append(f"- {path} ({record.component_info.name} component)")
        else:
            lines.append(f"- {path}")
    return "\n".join(lines)


def build_file_structure_section(manifest: Manifest) -> str:
    """Overview of every project file, the component table, entry point and routes."""
    all_files = sorted(
        _display_path(path) for path in manifest.files if "node_modules" not in path
    )
    components = [
        f"- {record.component_info.name if record.component_info else path.rsplit('/', 1)[-1]}"
        f" → {_display_path(path)} ({record.kind.value})"
        for path, record in manifest.files.items()
        if record.kind in (FileKind.COMPONENT, FileKind.PAGE)
    ]
    routes = "\n".join(
        f"- {route.path} → {route.component.rsplit('/', 1)[-1]}" for route in manifest.routes
    ) or "No routes detected"

    return f"""## 🚨 EXISTING PROJECT FILES - DO NOT CREATE NEW FILES WITH SIMILAR NAMES 🚨

### ALL PROJECT FILES ({len(all_files)} files)
```
{chr(10).join(all_files)}
```

### Component Files (USE THESE EXACT NAMES)
{chr(10).join(components)}

### CRITICAL: Component Relationships
**ALWAYS CHECK App.jsx FIRST** to understand what components exist and how they're imported!

Common component overlaps to watch for:
- "nav" or "navigation" → Often INSIDE Header.jsx, not a separate file
- "menu" → Usually part of Header/Nav, not separate
- "logo" → Typically in Header, not standalone

When user says "nav" or "navigation":
1. First check if Header.jsx exists
2. Look inside Header.jsx for navigation elements
3. Only create Nav.jsx if navigation doesn't exist anywhere

Entry Point: {manifest.entry_point}

### Routes
{routes}"""


def build_component_relationships(files: Sequence[str], manifest: Manifest) -> str:
    """Imports / Used by / Renders for each primary file with a graph node."""
    lines = ["## Component Relationships"]
    for path in files:
        record = manifest.get_file(path)
        if record is None or record.component_info is None:
            continue
        info = record.component_info
        node = manifest.component_node(info.name)
        if node is None:
            continue

        lines.append(f"\n### {info.name}")
        if node.imports:
            lines.append(f"Imports: {', '.join(node.imports)}")
        if node.imported_by:
            lines.append(f"Used by: {', '.join(node.imported_by)}")
        if info.child_components:
            lines.append(f"Renders: {', '.join(info.child_components)}")
    return "\n".join(lines)


def build_system_prompt(
    user_prompt: str,
    intent: EditIntent,
    primary_files: Sequence[str],
    context_files: Sequence[str],
    manifest: Manifest,
) -> str:
    """Concatenate the prompt sections in their fixed order.

    Args:
        user_prompt: The request, quoted verbatim
        intent: Classified edit intent
        primary_files: Files the assistant should modify
        context_files: Files included for reference only
        manifest: Project snapshot

    Returns:
        Sections joined by blank lines
    """
    sections: List[str] = []

    if intent.type != EditType.FULL_REBUILD:
        sections.append(get_edit_examples_prompt())

    sections.append(
        "## Edit Intent\n"
        f"Type: {intent.type.value}\n"
        f"Description: {intent.description}\n"
        f"Confidence: {intent.confidence * 100:.0f}%\n\n"
        f'User Request: "{user_prompt}"'
    )
    sections.append(build_file_structure_section(manifest))
    sections.append(get_component_pattern_prompt("\n".join(_display_path(p) for p in manifest.files)))

    if primary_files:
        sections.append("## Files to Edit\n" + _annotated(primary_files, manifest))
    if context_files:
        sections.append("## Context Files (for reference only)\n" + _annotated(context_files, manifest))

    sections.append(build_edit_instructions(intent.type))

    if intent.type in _RELATIONSHIP_TYPES:
        sections.append(build_component_relationships(primary_files, manifest))

    return "\n\n".join(sections)


def get_file_contents(paths: Sequence[str], manifest: Manifest) -> Dict[str, str]:
    """Path -> content for each known path; unknown paths are skipped."""
    return {path: manifest.files[path].content for path in paths if manifest.has_file(path)}


def format_files_for_ai(
    primary_contents: Dict[str, str],
    context_contents: Dict[str, str],
    limit: int = config.CONTEXT_FILE_CHAR_LIMIT,
) -> str:
    """Render file bodies for the model.

    Primary files are always included whole; only context files are cut
    to *limit* characters, followed by the truncation marker.
    """
    sections = [
        "# File Organization for Edit Request\n",
        "The files below are organized into two categories to help you understand what to modify vs what to reference:\n",
        "## 📝 Files to Edit\n",
        "**THESE are the files you should modify to fulfill the user's request.**\n",
        "🚨 You MUST ONLY generate the files listed in this section. Do NOT generate any other files! 🚨\n",
        '⚠️ CRITICAL: Return the COMPLETE file - NEVER truncate with "..." or skip any lines! ⚠️\n',
        "The file MUST include ALL imports, ALL functions, ALL JSX, and ALL closing tags.\n\n",
    ]

    if not primary_contents:
        sections.append(
            "*No primary files identified for editing. Please analyze the request "
            "and determine which files need modification.*\n\n"
        )
    for path, content in primary_contents.items():
        sections.append(
            f"### {path}\n"
            "**IMPORTANT: This is the COMPLETE file. Your output must include EVERY line shown below, "
            "modified only where necessary.**\n"
            f"```{_language_for(path)}\n{content}\n```\n"
        )

    if context_contents:
        sections.extend([
            "\n## 📚 Context Files for Reference\n",
            "**THESE files are provided for context and understanding relationships.**\n",
            "- Use these to understand component APIs, import paths, and architectural patterns\n",
            "- DO NOT modify these files unless they are explicitly mentioned in the user's request\n",
            "- These files show you how components are connected and what dependencies exist\n\n",
        ])
        for path, content in context_contents.items():
            if len(content) > limit:
                logger.debug("Truncating context file %s (%d chars)", path, len(content))
                content = content[:limit] + TRUNCATION_MARKER
            sections.append(f"### {path} (Reference Only)\n```{_language_for(path)}\n{content}\n```\n")

    sections.extend([
        "\n## 🎯 Instructions\n",
        '1. **Focus on "Files to Edit"** - These are your primary targets\n',
        '2. **Reference "Context Files"** - Use these to understand relationships and APIs\n',
        "3. **Maintain consistency** - Follow patterns shown in the context files\n",
        "4. **Preserve existing functionality** - Only change what the user specifically requested\n",
    ])
    return "\n".join(sections)


def build_surgical_prompt(execution: SearchExecution, target: SearchResult, user_prompt: str) -> str:
    """System prompt for the precise path: ranked matches plus the chosen line."""
    return (
        f"{format_search_results_for_ai(execution.results)}\n\n"
        "SURGICAL EDIT INSTRUCTIONS:\n"
        f"- File: {target.file_path}\n"
        f"- Line: {target.line_number}\n"
        f"- Reason: {target.reason}\n\n"
        "Make ONLY the change requested.\n"
        f'User request: "{user_prompt}"'
    )


def build_full_prompt(
    user_prompt: str,
    primary_contents: Dict[str, str],
    context_contents: Dict[str, str],
    all_contents: Dict[str, str],
) -> str:
    """User-turn text: formatted files when targets exist, otherwise every file."""
    if primary_contents:
        context = format_files_for_ai(primary_contents, context_contents)
    else:
        context = "\n".join(
            f'<file path="{path}">\n{content}\n</file>' for path, content in all_contents.items()
        )
    return f"CONTEXT:\n{context}\n\nUSER REQUEST:\n{user_prompt}"


BASE_SYSTEM_PROMPT = """You are an expert React developer with perfect memory of the conversation. You maintain context across messages and remember generated components and applied code. Generate clean, modern React code for Vite applications.

## 🎯 SMART CONTEXT UNDERSTANDING
When you receive file context, it will be organized into two important categories:

### 📝 Files to Edit
- These are the PRIMARY files you should modify to fulfill the user's request
- Focus your changes on these files ONLY
- These files have been selected based on the user's request and code relationships

### 📚 Context Files for Reference
- These provide supporting context to understand component relationships and APIs
- Use these to understand how components connect and what patterns to follow
- DO NOT modify these files unless explicitly requested by the user
- These help you make informed decisions about the primary files"""

CRITICAL_RULES = """CRITICAL RULES - YOUR MOST IMPORTANT INSTRUCTIONS:
1. **DO EXACTLY WHAT IS ASKED - NOTHING MORE, NOTHING LESS**
2. **CHECK App.jsx FIRST** - ALWAYS see what components exist before creating new ones
3. **NAVIGATION LIVES IN Header.jsx** - Don't create Nav.jsx if Header exists with nav
4. **USE STANDARD TAILWIND CLASSES ONLY**:
   - CORRECT: bg-white, text-black, bg-blue-500, bg-gray-100, text-gray-900
   - WRONG: bg-background, text-foreground, bg-primary, bg-muted, text-secondary
5. **FILE COUNT LIMITS**:
   - Simple style/text change = 1 file ONLY
   - New component = 2 files MAX (component + parent)"""

EDIT_RULES = """CRITICAL: THIS IS AN EDIT TO AN EXISTING APPLICATION

YOU MUST FOLLOW THESE EDIT RULES:
0. NEVER create tailwind.config.js, vite.config.js, package.json, or any other config files - they already exist!
1. DO NOT regenerate the entire application
2. DO NOT create files that already exist (like App.jsx, index.css, tailwind.config.js)
3. ONLY edit the EXACT files needed for the requested change - NO MORE, NO LESS
4. If the user says "update the header", ONLY edit the Header component - DO NOT touch Footer, Hero, or any other components
5. If you're unsure which file to edit, choose the SINGLE most specific one related to the request."""

OUTPUT_RULES = """CRITICAL STYLING RULES - MUST FOLLOW:
- NEVER use inline styles with style={{ }} in JSX
- NEVER use <style jsx> tags or any CSS-in-JS solutions
- NEVER create App.css, Component.css, or any component-specific CSS files
- NEVER import './App.css' or any CSS files except index.css
- ALWAYS use Tailwind CSS classes for ALL styling
- ONLY create src/index.css with the @tailwind directives

Use this XML format for React components only:
<file path="src/components/Example.jsx">
// Your React component code here
</file>

CRITICAL COMPLETION RULES:
1. NEVER say "I'll continue with the remaining components"
2. NEVER use <continue> tags
3. Generate ALL components in ONE response
4. Complete EVERYTHING before ending your response"""


def build_request_system_prompt(conversation_prompt: str, is_edit: bool, edit_prompt: str = "") -> str:
    """Full system prompt for one generation request.

    Args:
        conversation_prompt: Rendered conversation memory digest (may be empty)
        is_edit: Whether the request modifies an existing application
        edit_prompt: Surgical or coarse edit-context prompt (may be empty)

    Returns:
        Base rules, memory digest, edit rules and edit context joined by blank lines
    """
    sections = [BASE_SYSTEM_PROMPT]
    if conversation_prompt:
        sections.append(conversation_prompt.strip())
    sections.append(CRITICAL_RULES)
    if is_edit:
        sections.append(EDIT_RULES)
    sections.append(OUTPUT_RULES)
    if edit_prompt:
        sections.append(edit_prompt)
    return "\n\n".join(sections)
