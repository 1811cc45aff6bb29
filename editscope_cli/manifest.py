"""Read-only project manifest: files, import edges, and the component graph."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import ComponentInfo, ComponentTreeNode, FileKind, FileRecord, ImportSpec, Route

logger = logging.getLogger(__name__)


class Manifest:
    """Static snapshot of a project, produced by an external analyzer.

    Lookups never raise: a missing path or component yields ``None`` and the
    caller skips it.
    """

    def __init__(
        self,
        files: Dict[str, FileRecord],
        component_tree: Optional[Dict[str, ComponentTreeNode]] = None,
        entry_point: str = "",
        routes: Optional[List[Route]] = None,
    ):
        self.files = files
        self.component_tree = component_tree if component_tree is not None else build_component_tree(files)
        self.entry_point = entry_point
        self.routes = routes or []

    def get_file(self, path: str) -> Optional[FileRecord]:
        return self.files.get(path)

    def has_file(self, path: str) -> bool:
        return path in self.files

    def list_paths(self) -> List[str]:
        return list(self.files)

    def component_node(self, name: str) -> Optional[ComponentTreeNode]:
        return self.component_tree.get(name)

    def file_contents(self) -> Dict[str, str]:
        """Path -> content mapping, the input shape of the search executor."""
        return {path: record.content for path, record in self.files.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        """Parse the analyzer's JSON shape.

        Raises:
            ValueError: If ``files`` is missing or not a mapping
        """
        raw_files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(raw_files, dict):
            raise ValueError("Manifest must contain a 'files' mapping")

        files: Dict[str, FileRecord] = {}
        for path, info in raw_files.items():
            if not isinstance(info, dict):
                logger.debug("Skipping malformed manifest entry %s", path)
                continue
            files[path] = _parse_file_record(path, info)

        raw_tree = data.get("componentTree", data.get("component_tree"))
        tree: Optional[Dict[str, ComponentTreeNode]] = None
        if isinstance(raw_tree, dict):
            tree = {}
            for name, node in raw_tree.items():
                if not isinstance(node, dict):
                    continue
                tree[name] = ComponentTreeNode(
                    name=name,
                    file=str(node.get("file") or ""),
                    imports=list(node.get("imports") or []),
                    imported_by=list(node.get("importedBy") or node.get("imported_by") or []),
                )

        routes = [
            Route(path=str(r.get("path") or ""), component=str(r.get("component") or ""))
            for r in data.get("routes") or []
            if isinstance(r, dict)
        ]

        return cls(
            files=files,
            component_tree=tree,
            entry_point=str(data.get("entryPoint") or data.get("entry_point") or ""),
            routes=routes,
        )


def _parse_imports(raw: Optional[Iterable[Any]]) -> List[ImportSpec]:
    specs = []
    for item in raw or []:
        if isinstance(item, str):
            specs.append(ImportSpec(source=item, is_local=item.startswith(".")))
        elif isinstance(item, dict) and item.get("source"):
            source = str(item["source"])
            specs.append(ImportSpec(
                source=source,
                is_local=bool(item.get("isLocal", item.get("is_local", source.startswith(".")))),
                resolved=bool(item.get("resolved", False)),
            ))
    return specs


def _parse_file_record(path: str, info: Dict[str, Any]) -> FileRecord:
    component_info = None
    raw_component = info.get("componentInfo", info.get("component_info"))
    if isinstance(raw_component, dict) and raw_component.get("name"):
        component_info = ComponentInfo(
            name=str(raw_component["name"]),
            child_components=list(
                raw_component.get("childComponents") or raw_component.get("child_components") or []
            ),
            imports=_parse_imports(raw_component.get("imports")),
        )

    return FileRecord(
        path=path,
        content=str(info.get("content") or ""),
        kind=FileKind.parse(info.get("type", info.get("kind"))),
        component_info=component_info,
        imports=_parse_imports(info.get("imports")),
    )


def load_manifest(path: Path) -> Manifest:
    """Load a manifest JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return Manifest.from_dict(data)


def build_component_tree(files: Dict[str, FileRecord]) -> Dict[str, ComponentTreeNode]:
    """Derive a symmetric component graph from per-file metadata.

    An edge A -> B is recorded when A's file has a local import that resolves
    to B's file. Cycles are kept as-is.
    """
    from .context_builder import resolve_import_path

    all_paths = list(files)
    by_path: Dict[str, str] = {}
    tree: Dict[str, ComponentTreeNode] = {}

    for path, record in files.items():
        if record.component_info:
            name = record.component_info.name
            by_path[path] = name
            tree.setdefault(name, ComponentTreeNode(name=name, file=path))

    for path, record in files.items():
        src_name = by_path.get(path)
        if src_name is None:
            continue
        for spec in record.local_imports:
            target = resolve_import_path(path, spec.source, all_paths)
            dst_name = by_path.get(target) if target else None
            if dst_name is None or dst_name == src_name:
                continue
            src_node, dst_node = tree[src_name], tree[dst_name]
            if dst_name not in src_node.imports:
                src_node.imports.append(dst_name)
            if src_name not in dst_node.imported_by:
                dst_node.imported_by.append(src_name)

    return tree


def tree_is_symmetric(tree: Dict[str, ComponentTreeNode]) -> bool:
    """Check A in imports(B) <=> B in imported_by(A) for every known node."""
    for name, node in tree.items():
        for dep in node.imports:
            other = tree.get(dep)
            if other is not None and name not in other.imported_by:
                return False
        for user in node.imported_by:
            other = tree.get(user)
            if other is not None and name not in other.imports:
                return False
    return True
