from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional

from . import pathkey
from .filestore import FileRecord


@dataclass
class TreeNode:
    name: str
    path: str
    is_directory: bool = False
    children: dict = field(default_factory=dict)
    is_expanded: bool = False

    def sorted_children(self) -> list["TreeNode"]:
        return sorted(self.children.values(), key=lambda n: (not n.is_directory, n.name))

    def to_dict(self) -> dict:
        if not self.is_directory:
            return {"name": self.name, "path": self.path, "type": "file"}
        return {
            "name": self.name,
            "path": self.path,
            "type": "folder",
            "expanded": self.is_expanded,
            "children": [c.to_dict() for c in self.sorted_children()],
        }

    def walk(self):
        yield self
        for child in self.sorted_children():
            yield from child.walk()


def build_tree(records: Iterable[FileRecord], expansion: Optional[Mapping[str, bool]] = None) -> TreeNode:
    """Derive the folder tree from the flat record list.

    Missing ancestors are synthesized. A node is a folder if any path passes
    through it or its own record says so. The root is always expanded.
    """
    expansion = expansion or {}
    root = TreeNode(name="", path="", is_directory=True, is_expanded=True)
    for record in sorted(records, key=lambda r: r.path):
        parts = pathkey.split(record.path)
        node = root
        for depth, part in enumerate(parts):
            child = node.children.get(part)
            if child is None:
                child = TreeNode(name=part, path=pathkey.SEP.join(parts[:depth + 1]))
                node.children[part] = child
            terminal = depth == len(parts) - 1
            if not terminal or record.is_directory:
                child.is_directory = True
            node = child
    for node in root.walk():
        if node.is_directory and node.path:
            node.is_expanded = bool(expansion.get(node.path, False))
    return root


class FolderExpansion:
    """Remembered open/closed state per folder path; folders start closed."""

    def __init__(self, state: Optional[Mapping[str, bool]] = None,
                 on_change: Optional[Callable[[], None]] = None):
        self._state = {k: bool(v) for k, v in (state or {}).items()}
        self.on_change = on_change

    def _changed(self):
        if self.on_change is not None:
            self.on_change()

    def is_expanded(self, path: str) -> bool:
        return self._state.get(path, False)

    def set(self, path: str, expanded: bool):
        self._state[path] = bool(expanded)
        self._changed()

    def toggle(self, path: str) -> bool:
        expanded = not self.is_expanded(path)
        self.set(path, expanded)
        return expanded

    def rebase(self, old_path: str, new_path: str):
        state = {}
        for key, value in self._state.items():
            if pathkey.is_same_or_descendant(key, old_path):
                key = pathkey.rebase(key, old_path, new_path)
            state[key] = value
        self._state = state
        self._changed()

    def forget(self, path: str):
        self._state = {k: v for k, v in self._state.items()
                       if not pathkey.is_same_or_descendant(k, path)}
        self._changed()

    def to_dict(self) -> dict:
        return dict(self._state)
