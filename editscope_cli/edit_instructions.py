"""Edit-type instruction blocks and prompt guidance appended to system prompts."""

from __future__ import annotations

from typing import Dict

from .models import EditType

EDIT_INSTRUCTIONS: Dict[EditType, str] = {
    EditType.UPDATE_COMPONENT: """## SURGICAL EDIT INSTRUCTIONS
- You MUST preserve 99% of the original code
- ONLY edit the specific component(s) mentioned
- Make ONLY the minimal change requested
- DO NOT rewrite or refactor unless explicitly asked
- DO NOT remove any existing code unless explicitly asked
- DO NOT change formatting or structure
- Preserve all imports and exports
- Maintain the existing code style
- Return the COMPLETE file with the surgical change applied
- Think of yourself as a surgeon making a precise incision, not an artist repainting""",

    EditType.ADD_FEATURE: """## Instructions
- Create new components in appropriate directories
- IMPORTANT: Update parent components to import and use the new component
- Update routing if adding new pages
- Follow existing patterns and conventions
- Add necessary styles to match existing design
- Example workflow:
  1. Create NewComponent.jsx
  2. Import it in the parent: import NewComponent from './NewComponent'
  3. Use it in the parent's render: <NewComponent />""",

    EditType.FIX_ISSUE: """## Instructions
- Identify and fix the specific issue
- Test the fix doesn't break other functionality
- Preserve existing behavior except for the bug
- Add error handling if needed""",

    EditType.UPDATE_STYLE: """## SURGICAL STYLE EDIT INSTRUCTIONS
- Change ONLY the specific style/class mentioned
- If user says "change background to blue", change ONLY the background class
- DO NOT touch any other styles, classes, or attributes
- DO NOT refactor or "improve" the styling
- DO NOT change the component structure
- Preserve ALL other classes and styles exactly as they are
- Return the COMPLETE file with only the specific style change""",

    EditType.REFACTOR: """## Instructions
- Improve code quality without changing functionality
- Follow project conventions
- Maintain all existing features
- Improve readability and maintainability""",

    EditType.FULL_REBUILD: """## Instructions
- You may rebuild the entire application
- Keep the same core functionality
- Improve upon the existing design
- Use modern best practices""",

    EditType.ADD_DEPENDENCY: """## Instructions
- Update package.json with new dependency
- Add necessary import statements
- Configure the dependency if needed
- Update any build configuration""",
}


def build_edit_instructions(edit_type: EditType) -> str:
    """Instruction block for *edit_type*; unlisted types get the surgical edit block."""
    return EDIT_INSTRUCTIONS.get(edit_type, EDIT_INSTRUCTIONS[EditType.UPDATE_COMPONENT])


def get_edit_examples_prompt() -> str:
    return """## EDIT EXAMPLES - HOW TO MAKE TARGETED CHANGES

### Example 1: Changing button text
User: "change 'Start Deploying' to 'Go Now'"
CORRECT: Edit ONLY the file containing the button, change ONLY the text inside it.
WRONG: Regenerating the whole page, renaming the component, or restyling the button.

### Example 2: Changing a background color
User: "make the header background black"
CORRECT: In Header.jsx replace the existing bg-* class on the header element with bg-black.
WRONG: Touching Hero.jsx, Footer.jsx, or any other class on the header.

### Example 3: Adding a new section
User: "add a testimonials section"
CORRECT: Create Testimonials.jsx, then import and render it in App.jsx.
WRONG: Creating the component without wiring it into its parent.

### Example 4: Removing an element
User: "remove the deploy button"
CORRECT: Delete ONLY the button element and anything used exclusively by it.
WRONG: Removing the surrounding container or unrelated buttons.

Always return the COMPLETE content of every file you edit."""


def get_component_pattern_prompt(file_list: str) -> str:
    return f"""## COMPONENT PATTERNS
Existing files in this project:
{file_list}

- Reuse existing components before creating new ones
- Match the import style already used (default exports, relative paths)
- Keep one component per file, named after the component
- Style with standard Tailwind utility classes only
- New components must be imported and rendered by an existing parent"""
