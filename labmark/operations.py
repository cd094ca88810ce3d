"""Editor actions from the file tree's context menu and drag and drop.

Each action is a small dataclass carrying exactly what it needs.
``parse_operation`` turns a JSON payload into one, ``apply_operation`` runs
it against the application state and returns a JSON-ready result.
"""
from dataclasses import dataclass
from typing import Union

from . import pathkey
from .errors import EmptyInput, InvalidName
from .state import AppState


@dataclass(frozen=True)
class CreateFile:
    parent: str
    name: str
    content: str = ""


@dataclass(frozen=True)
class CreateFolder:
    parent: str
    name: str


@dataclass(frozen=True)
class Rename:
    path: str
    new_name: str


@dataclass(frozen=True)
class Move:
    source: str
    target_dir: str


@dataclass(frozen=True)
class Delete:
    path: str
    confirm: bool = False


@dataclass(frozen=True)
class OpenFile:
    path: str


@dataclass(frozen=True)
class ToggleFolder:
    path: str


Operation = Union[CreateFile, CreateFolder, Rename, Move, Delete, OpenFile, ToggleFolder]


def _text(payload: dict, key: str, required: bool = True) -> str:
    value = payload.get(key, "")
    if not isinstance(value, str):
        raise InvalidName(f"{key} must be a string")
    value = value.strip()
    if required and not value:
        raise EmptyInput(f"{key} is required")
    return value


def parse_operation(payload: dict) -> Operation:
    op = payload.get("op")
    if op == "createFile":
        return CreateFile(_text(payload, "parent", False), _text(payload, "name"),
                          payload.get("content") or "")
    if op == "createFolder":
        return CreateFolder(_text(payload, "parent", False), _text(payload, "name"))
    if op == "rename":
        return Rename(_text(payload, "path"), _text(payload, "newName"))
    if op == "move":
        return Move(_text(payload, "source"), _text(payload, "targetDir", False))
    if op == "delete":
        return Delete(_text(payload, "path"), bool(payload.get("confirm", False)))
    if op == "open":
        return OpenFile(_text(payload, "path"))
    if op == "toggle":
        return ToggleFolder(_text(payload, "path"))
    raise InvalidName(f"Unknown operation: {op!r}")


def apply_operation(state: AppState, op: Operation) -> dict:
    if isinstance(op, CreateFile):
        record = state.store.create(pathkey.join(op.parent, op.name), content=op.content)
        return {"path": record.path}
    if isinstance(op, CreateFolder):
        record = state.store.create(pathkey.join(op.parent, op.name), is_directory=True)
        return {"path": record.path}
    if isinstance(op, Rename):
        return {"path": state.rename(op.path, op.new_name)}
    if isinstance(op, Move):
        return {"path": state.move(op.source, op.target_dir)}
    if isinstance(op, Delete):
        if not op.confirm:
            raise EmptyInput(f"Deleting {op.path} needs confirmation")
        return {"removed": state.delete(op.path)}
    if isinstance(op, OpenFile):
        record = state.store.open(op.path)
        return {"path": record.path, "content": record.content}
    if isinstance(op, ToggleFolder):
        return {"path": op.path, "expanded": state.toggle_folder(op.path)}
    raise TypeError(f"Unknown operation: {op!r}")
