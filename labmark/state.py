import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from . import pathkey
from .errors import NotADirectory, NotFound
from .filestore import FileRecord, FileStore
from .tree import FolderExpansion, build_tree

logger = logging.getLogger(__name__)

MAX_SUBMISSIONS = 20
THEMES = ("light", "dark")


@dataclass
class UserSettings:
    theme: str = "light"
    auto_detect: bool = False

    def to_dict(self) -> dict:
        return {"theme": self.theme, "autoDetect": self.auto_detect}

    @classmethod
    def from_dict(cls, data: dict) -> "UserSettings":
        theme = data.get("theme", "light")
        return cls(
            theme=theme if theme in THEMES else "light",
            auto_detect=bool(data.get("autoDetect", False)),
        )


@dataclass(frozen=True)
class Submission:
    id: str
    lab_name: str
    author_name: str
    timestamp: str
    files: tuple = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "labName": self.lab_name,
            "authorName": self.author_name,
            "timestamp": self.timestamp,
            "files": [[path, record.to_dict()] for path, record in self.files],
        }

    def summary(self) -> dict:
        data = self.to_dict()
        data["files"] = [path for path, _ in self.files]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Submission":
        return cls(
            id=data["id"],
            lab_name=data.get("labName", ""),
            author_name=data.get("authorName", ""),
            timestamp=data.get("timestamp", ""),
            files=tuple((path, FileRecord.from_dict(rec)) for path, rec in data.get("files", [])),
        )


class AppState:
    """Everything the editor remembers between requests.

    Backed by one JSON file with the keys ``files``, ``currentFile``,
    ``userSettings``, ``previousSubmissions`` and ``folderExpansionState``.
    Any change to the store or the folder table is written out before the
    call returns.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self.store = FileStore(on_change=self.save)
        self.expansion = FolderExpansion(on_change=self.save)
        self.settings = UserSettings()
        self.submissions: list[Submission] = []

    @classmethod
    def load(cls, path: Path) -> "AppState":
        state = cls(path)
        path = Path(path)
        if not path.exists():
            logger.debug(f"No saved state at {path}, starting empty")
            return state
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load state from {path}: {e}, starting empty")
            return state

        records = [FileRecord.from_dict(rec) for _, rec in data.get("files", [])]
        state.store = FileStore(records, data.get("currentFile"), on_change=state.save)
        state.expansion = FolderExpansion(data.get("folderExpansionState", {}), on_change=state.save)
        state.settings = UserSettings.from_dict(data.get("userSettings", {}))
        state.submissions = [Submission.from_dict(s) for s in data.get("previousSubmissions", [])][:MAX_SUBMISSIONS]
        logger.info(f"Loaded {len(state.store)} files from {path}")
        return state

    def to_dict(self) -> dict:
        return {
            "files": [[path, record.to_dict()] for path, record in self.store.items()],
            "currentFile": self.store.current_file,
            "userSettings": self.settings.to_dict(),
            "previousSubmissions": [s.to_dict() for s in self.submissions],
            "folderExpansionState": self.expansion.to_dict(),
        }

    def save(self):
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        os.replace(tmp, self.path)

    def tree(self):
        return build_tree(self.store.records(), self.expansion.to_dict())

    def rename(self, path: str, new_name: str) -> str:
        new_path = self.store.rename(path, new_name)
        self.expansion.rebase(path, new_path)
        return new_path

    def move(self, source: str, target_dir: str) -> str:
        new_path = self.store.move(source, target_dir)
        self.expansion.rebase(source, new_path)
        return new_path

    def toggle_folder(self, path: str) -> bool:
        if path in self.store:
            if not self.store.get(path).is_directory:
                raise NotADirectory(path)
        elif not any(pathkey.is_ancestor(path, key) for key in self.store.paths()):
            raise NotFound(path)
        return self.expansion.toggle(path)

    def delete(self, path: str) -> list[str]:
        removed = self.store.delete(path)
        self.expansion.forget(path)
        return removed

    def update_settings(self, theme: Optional[str] = None, auto_detect: Optional[bool] = None) -> UserSettings:
        if theme is not None and theme in THEMES:
            self.settings.theme = theme
        if auto_detect is not None:
            self.settings.auto_detect = bool(auto_detect)
        self.save()
        return self.settings

    def record_submission(self, lab_name: str, author_name: str = "") -> Submission:
        submission = Submission(
            id=uuid.uuid4().hex,
            lab_name=lab_name,
            author_name=author_name,
            timestamp=datetime.now(timezone.utc).isoformat(),
            files=self.store.snapshot(),
        )
        self.submissions = [submission] + self.submissions[:MAX_SUBMISSIONS - 1]
        self.save()
        return submission

    def find_submission(self, submission_id: str) -> Submission:
        for submission in self.submissions:
            if submission.id == submission_id:
                return submission
        raise NotFound(submission_id)

    def restore_submission(self, submission_id: str) -> Submission:
        submission = self.find_submission(submission_id)
        self.store.replace_all(record for _, record in submission.files)
        logger.info(f"Restored submission {submission_id} ({len(submission.files)} files)")
        return submission
