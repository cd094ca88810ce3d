import json
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from . import pathkey
from .filestore import FileRecord, FileStore

INDEX_FILE = "index.json"
STEP_DIR_RE = re.compile(r"^step(\d+)$")
SETUP_FILES = ("setup.sh", "background.sh")


@dataclass
class LabStepFile:
    folder: str
    text_file: Optional[str] = None
    verify_file: Optional[str] = None


@dataclass
class LabFiles:
    intro_file: Optional[str] = None
    setup_file: Optional[str] = None
    finish_file: Optional[str] = None
    steps: list = field(default_factory=list)


def scan_lab_files(records: Iterable[FileRecord]) -> LabFiles:
    paths = {r.path for r in records if not r.is_directory}
    lab = LabFiles()
    if "intro.md" in paths:
        lab.intro_file = "intro.md"
    if "finish.md" in paths:
        lab.finish_file = "finish.md"
    for name in SETUP_FILES:
        if name in paths:
            lab.setup_file = name
            break

    steps = {}
    for path in paths:
        parts = pathkey.split(path)
        if len(parts) < 2 or STEP_DIR_RE.match(parts[0]) is None:
            continue
        steps.setdefault(parts[0], LabStepFile(folder=parts[0]))
    for folder, step in steps.items():
        if f"{folder}/text.md" in paths:
            step.text_file = f"{folder}/text.md"
        if f"{folder}/verify.sh" in paths:
            step.verify_file = f"{folder}/verify.sh"
    lab.steps = sorted(steps.values(), key=lambda s: int(STEP_DIR_RE.match(s.folder).group(1)))
    return lab


def build_index(title: str, description: str, imageid: str, lab: LabFiles) -> dict:
    details = {}
    if lab.intro_file:
        intro = {"text": lab.intro_file}
        if lab.setup_file:
            intro["background"] = lab.setup_file
        details["intro"] = intro
    steps = []
    for number, step in enumerate(lab.steps, 1):
        entry = {"title": f"Step {number}"}
        if step.text_file:
            entry["text"] = step.text_file
        if step.verify_file:
            entry["verify"] = step.verify_file
        steps.append(entry)
    details["steps"] = steps
    if lab.finish_file:
        details["finish"] = {"text": lab.finish_file}
    return {
        "title": title,
        "description": description,
        "details": details,
        "backend": {"imageid": imageid},
    }


STARTER_FILES = {
    "intro.md": "{{h1}} Introduction\n\nWhat this lab covers.",
    "setup.sh": "#!/bin/bash\n",
    "step1": None,
    "step1/text.md": "{{h1}} Step 1\n\n{{exec}}\necho \"Hello KillerCoda!\"",
    "step1/verify.sh": "#!/bin/bash\nexit 0\n",
    "finish.md": "{{h1}} Done\n\nYou finished the lab.",
}


def scaffold_lab(store: FileStore, title: str = "My Lab", imageid: str = "ubuntu") -> list[str]:
    """Create a starter lab, leaving files that already exist alone."""
    created = []
    for path, content in STARTER_FILES.items():
        if store.exists(path):
            continue
        store.create(path, is_directory=content is None, content=content or "")
        created.append(path)
    if not store.exists(INDEX_FILE):
        index = build_index(title, "", imageid, scan_lab_files(store.records()))
        store.create(INDEX_FILE, content=json.dumps(index, indent=2))
        created.append(INDEX_FILE)
    return created
