"""Pytest configuration and fixtures for EditScope CLI tests."""

from pathlib import Path
from typing import List, Optional

import pytest

from editscope_cli.conversation import AIResult, AppliedFile, ConversationState, new_conversation_state
from editscope_cli.manifest import Manifest, load_manifest

FIXTURES = Path(__file__).parent / "fixtures"
APP_ROOT = "/home/user/app"
APP = f"{APP_ROOT}/src/App.jsx"
MAIN = f"{APP_ROOT}/src/main.jsx"
HEADER = f"{APP_ROOT}/src/components/Header.jsx"
HERO = f"{APP_ROOT}/src/components/Hero.jsx"
BUTTON = f"{APP_ROOT}/src/components/Button.jsx"
FOOTER = f"{APP_ROOT}/src/components/Footer.jsx"
INDEX_CSS = f"{APP_ROOT}/src/index.css"
TAILWIND = f"{APP_ROOT}/tailwind.config.js"
PACKAGE_JSON = f"{APP_ROOT}/package.json"


class StubGenerator:
    """Text generator returning a canned reply and recording prompts."""

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> Optional[str]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def manifest_path() -> Path:
    return FIXTURES / "manifest.json"


@pytest.fixture
def search_plan_path() -> Path:
    return FIXTURES / "search_plan.json"


@pytest.fixture
def manifest(manifest_path: Path) -> Manifest:
    """Sample Vite/React project: App renders Header, Hero and Footer; Hero renders Button."""
    return load_manifest(manifest_path)


@pytest.fixture
def state() -> ConversationState:
    return new_conversation_state("test-session", now=1_000.0)


@pytest.fixture
def ai_result() -> AIResult:
    return AIResult(
        generated_code='<file path="src/components/Pricing.jsx">...</file>',
        applied_files=[
            AppliedFile(path="src/components/Pricing.jsx", action="created", size=420, component_name="Pricing"),
            AppliedFile(path="src/App.jsx", action="modified", size=310),
        ],
        action_summary="Added a pricing section",
        file_count=2,
        component_count=1,
        packages_to_install=["framer-motion"],
    )


@pytest.fixture
def temp_config(tmp_path: Path, monkeypatch):
    """Point the config manager at a throwaway TOML file."""
    config_file = tmp_path / "config.toml"
    monkeypatch.setattr("editscope_cli.config_manager.CONFIG_FILE", config_file)
    return config_file
