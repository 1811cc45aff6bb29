"""Tests for manifest parsing and the boundary models."""

import pytest

from conftest import APP, BUTTON, HEADER, HERO
from editscope_cli.manifest import Manifest, tree_is_symmetric
from editscope_cli.models import ComponentTreeNode, EditIntent, EditType, FileKind, SearchPlan


class TestManifest:
    """Tests for Manifest parsing and lookups."""

    def test_loaded_fixture(self, manifest):
        assert len(manifest.files) == 9
        assert manifest.entry_point == "/home/user/app/src/main.jsx"
        assert manifest.routes[0].path == "/"
        assert manifest.get_file(HEADER).kind == FileKind.COMPONENT
        assert manifest.get_file("/missing.jsx") is None

    def test_derived_component_tree(self, manifest):
        app = manifest.component_node("App")
        assert app.file == APP
        assert app.imports == ["Header", "Hero", "Footer"]
        assert manifest.component_node("Hero").imported_by == ["App"]
        assert manifest.component_node("Button").file == BUTTON
        assert manifest.component_node("Ghost") is None

    def test_tree_is_symmetric(self, manifest):
        assert tree_is_symmetric(manifest.component_tree)

    def test_asymmetric_tree_detected(self):
        tree = {
            "A": ComponentTreeNode(name="A", file="/A.jsx", imports=["B"]),
            "B": ComponentTreeNode(name="B", file="/B.jsx"),
        }
        assert not tree_is_symmetric(tree)

    def test_explicit_component_tree(self):
        manifest = Manifest.from_dict({
            "files": {"/A.jsx": {"type": "component", "componentInfo": {"name": "A"}}},
            "componentTree": {"A": {"file": "/A.jsx", "imports": [], "importedBy": ["Root"]}},
        })
        assert manifest.component_node("A").imported_by == ["Root"]

    def test_string_imports(self):
        manifest = Manifest.from_dict({"files": {"/A.jsx": {"imports": ["./B", "react"]}}})
        specs = manifest.get_file("/A.jsx").imports
        assert [(s.source, s.is_local) for s in specs] == [("./B", True), ("react", False)]

    def test_missing_files_mapping(self):
        with pytest.raises(ValueError):
            Manifest.from_dict({"entryPoint": "/src/main.jsx"})

    def test_null_optional_fields(self):
        manifest = Manifest.from_dict({
            "files": {"/A.jsx": {"content": None, "imports": None, "componentInfo": {"name": "A", "childComponents": None}}},
            "routes": None,
            "entryPoint": None,
        })
        assert manifest.routes == []
        assert manifest.entry_point == ""
        assert manifest.get_file("/A.jsx").content == ""
        assert manifest.get_file("/A.jsx").imports == []
        assert manifest.get_file("/A.jsx").component_info.child_components == []

    def test_null_tree_node_lists(self):
        manifest = Manifest.from_dict({
            "files": {"/A.jsx": {"type": "component"}},
            "componentTree": {"A": {"file": "/A.jsx", "imports": None, "importedBy": None}},
        })
        node = manifest.component_node("A")
        assert node.imports == []
        assert node.imported_by == []

    def test_file_contents(self, manifest):
        contents = manifest.file_contents()
        assert "Start Deploying" in contents[HEADER]
        assert list(contents) == manifest.list_paths()

    def test_local_imports(self, manifest):
        assert [s.source for s in manifest.get_file(HERO).local_imports] == ["./Button"]
        assert manifest.get_file(HEADER).local_imports == []


class TestModels:
    """Tests for enum parsing and clamping."""

    @pytest.mark.parametrize("raw", ["UPDATE_STYLE", "update-style", "update_style", " Update-Style "])
    def test_edit_type_parse(self, raw):
        assert EditType.parse(raw) == EditType.UPDATE_STYLE

    def test_edit_type_unknown(self):
        assert EditType.parse("SOMETHING") is None
        assert EditType.parse(None, default=EditType.REFACTOR) == EditType.REFACTOR

    def test_file_kind_unknown(self):
        assert FileKind.parse("widget") == FileKind.OTHER
        assert FileKind.parse("PAGE") == FileKind.PAGE

    def test_confidence_clamped(self):
        assert EditIntent(type=EditType.REFACTOR, description="", confidence=1.7).confidence == 1.0
        assert EditIntent(type=EditType.REFACTOR, description="", confidence=-1).confidence == 0.0

    @pytest.mark.parametrize("raw, expected", [(0, 1), (4, 4), (50, 10), ("three", 1)])
    def test_expected_matches_clamped(self, raw, expected):
        plan = SearchPlan.from_dict({"searchTerms": ["x"], "expectedMatches": raw})
        assert plan.expected_matches == expected

    def test_snake_case_plan(self):
        plan = SearchPlan.from_dict({
            "edit_type": "fix-issue",
            "search_terms": "TypeError",
            "regex_patterns": ["on\\w+="],
            "fallback_search": {"terms": ["onClick"]},
        })
        assert plan.edit_type == EditType.FIX_ISSUE
        assert plan.search_terms == ["TypeError"]
        assert plan.regex_patterns == ["on\\w+="]
        assert plan.fallback.terms == ["onClick"]
        assert plan.fallback.patterns == []

    def test_plan_must_be_object(self):
        with pytest.raises(ValueError):
            SearchPlan.from_dict(["x"])

    def test_infinite_expected_matches(self):
        plan = SearchPlan.from_dict({"searchTerms": ["x"], "expectedMatches": float("inf")})
        assert plan.expected_matches == 1

    def test_scalar_search_terms(self):
        assert SearchPlan.from_dict({"searchTerms": 5}).search_terms == ["5"]

    def test_non_list_search_terms(self):
        with pytest.raises(ValueError):
            SearchPlan.from_dict({"searchTerms": {"term": "x"}})
