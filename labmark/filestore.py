import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional

from . import pathkey
from .errors import (
    DuplicatePath,
    InvalidMove,
    InvalidName,
    IsADirectory,
    NotADirectory,
    NotFound,
)

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".md", ".json", ".sh", ".txt"}


@dataclass
class FileRecord:
    name: str
    path: str
    content: str = ""
    is_directory: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "content": self.content,
            "isDirectory": self.is_directory,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileRecord":
        path = data["path"]
        is_directory = bool(data.get("isDirectory", False))
        return cls(
            name=data.get("name") or pathkey.basename(path),
            path=path,
            content="" if is_directory else data.get("content", ""),
            is_directory=is_directory,
        )


def check_name(name: str, is_directory: bool = False):
    if not name or pathkey.SEP in name or name in (".", ".."):
        raise InvalidName(f"Invalid name: {name!r}")
    if is_directory:
        return
    ext = pathkey.extension(name)
    if ext and ext not in ALLOWED_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
        raise InvalidName(f"File type {ext} not allowed (use {allowed})")


class FileStore:
    """Flat ``path -> FileRecord`` mapping standing in for a folder tree.

    Folders are records too. Renaming or moving a folder rewrites the key of
    every record under it; deleting one removes the whole subtree. Each
    public mutation validates first and only then touches the mapping, so a
    rejected call leaves the store as it was. ``on_change`` runs after every
    successful mutation.
    """

    def __init__(self, records: Iterable[FileRecord] = (), current_file: Optional[str] = None,
                 on_change: Optional[Callable[[], None]] = None):
        self._files: dict[str, FileRecord] = {}
        for record in records:
            self._files[record.path] = replace(record)
        self.current_file = None
        if current_file in self._files and not self._files[current_file].is_directory:
            self.current_file = current_file
        self.on_change = on_change

    def __len__(self):
        return len(self._files)

    def __contains__(self, path):
        return path in self._files

    def _changed(self):
        if self.on_change is not None:
            self.on_change()

    def _require(self, path: str) -> FileRecord:
        record = self._files.get(path)
        if record is None:
            raise NotFound(path)
        return record

    def exists(self, path: str) -> bool:
        return path in self._files

    def get(self, path: str) -> FileRecord:
        return replace(self._require(path))

    def paths(self) -> list[str]:
        return sorted(self._files)

    def records(self) -> list[FileRecord]:
        return [replace(self._files[p]) for p in sorted(self._files)]

    def items(self) -> list[tuple[str, FileRecord]]:
        return [(r.path, r) for r in self.records()]

    def snapshot(self) -> tuple[tuple[str, FileRecord], ...]:
        return tuple(self.items())

    def create(self, path: str, is_directory: bool = False, content: str = "") -> FileRecord:
        path = pathkey.normalize(path)
        name = pathkey.basename(path)
        check_name(name, is_directory)
        if path in self._files:
            raise DuplicatePath(path)
        record = FileRecord(name=name, path=path,
                            content="" if is_directory else content,
                            is_directory=is_directory)
        self._files[path] = record
        logger.debug(f"Created {'folder' if is_directory else 'file'} {path}")
        self._changed()
        return replace(record)

    def read(self, path: str) -> str:
        record = self._require(path)
        if record.is_directory:
            raise IsADirectory(path)
        return record.content

    def write(self, path: str, content: str):
        record = self._require(path)
        if record.is_directory:
            raise IsADirectory(path)
        record.content = content
        self._changed()

    def open(self, path: str) -> FileRecord:
        record = self._require(path)
        if record.is_directory:
            raise IsADirectory(path)
        self.current_file = path
        self._changed()
        return replace(record)

    def close(self):
        if self.current_file is not None:
            self.current_file = None
            self._changed()

    def rename(self, path: str, new_name: str) -> str:
        record = self._require(path)
        new_name = new_name.strip()
        check_name(new_name, record.is_directory)
        new_path = pathkey.join(pathkey.parent(path), new_name)
        self._check_relocation(path, new_path)
        self._relocate(path, new_path)
        logger.debug(f"Renamed {path} -> {new_path}")
        self._changed()
        return new_path

    def move(self, source: str, target_dir: str) -> str:
        """Move ``source`` into ``target_dir``. An empty target is the root."""
        self._require(source)
        if target_dir:
            target = self._require(target_dir)
            if not target.is_directory:
                raise NotADirectory(target_dir)
            if pathkey.is_same_or_descendant(target_dir, source):
                raise InvalidMove(f"Cannot move {source} into itself")
        new_path = pathkey.join(target_dir, pathkey.basename(source))
        self._check_relocation(source, new_path)
        self._relocate(source, new_path)
        logger.debug(f"Moved {source} -> {new_path}")
        self._changed()
        return new_path

    def _check_relocation(self, old_path: str, new_path: str):
        if new_path in self._files:
            raise DuplicatePath(new_path)
        # folders may exist only implicitly, so children can still collide
        for key in self._files:
            if pathkey.is_ancestor(old_path, key):
                target = pathkey.rebase(key, old_path, new_path)
                if target in self._files:
                    raise DuplicatePath(target)

    def _relocate(self, old_path: str, new_path: str):
        files = {}
        for key, record in self._files.items():
            if pathkey.is_same_or_descendant(key, old_path):
                key = pathkey.rebase(key, old_path, new_path)
                record.path = key
                record.name = pathkey.basename(key)
            files[key] = record
        self._files = files
        if self.current_file and pathkey.is_same_or_descendant(self.current_file, old_path):
            self.current_file = pathkey.rebase(self.current_file, old_path, new_path)

    def delete(self, path: str) -> list[str]:
        self._require(path)
        removed = sorted(p for p in self._files if pathkey.is_same_or_descendant(p, path))
        for key in removed:
            del self._files[key]
        if self.current_file in removed:
            self.current_file = None
        logger.debug(f"Deleted {path} ({len(removed)} records)")
        self._changed()
        return removed

    def replace_all(self, records: Iterable[FileRecord]):
        self._files = {r.path: replace(r) for r in records}
        current = self._files.get(self.current_file) if self.current_file else None
        if current is None or current.is_directory:
            self.current_file = None
        self._changed()
