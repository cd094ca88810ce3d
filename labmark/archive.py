import io
import zipfile
from datetime import datetime
from typing import Iterable, Optional

from .convert import convert_file
from .state import AppState


def build_archive(entries: Iterable[tuple[str, Optional[str]]]) -> bytes:
    """Zip ``(path, content)`` pairs; ``None`` content marks a folder."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for path, content in entries:
            if content is None:
                zf.writestr(path.rstrip("/") + "/", "")
            else:
                zf.writestr(path, content)
    return buf.getvalue()


def export_entries(state: AppState, converted: bool = True) -> list[tuple[str, Optional[str]]]:
    auto = state.settings.auto_detect
    entries = []
    for record in state.store.records():
        if record.is_directory:
            entries.append((record.path, None))
        elif converted:
            entries.append((record.path, convert_file(record.path, record.content, auto)))
        else:
            entries.append((record.path, record.content))
    return entries


def archive_name(prefix: str = "lab") -> str:
    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    return f"{prefix}_{stamp}.zip"
