import argparse
import json
import logging
import shutil
from pathlib import Path

from labmark.archive import archive_name, build_archive, export_entries
from labmark.labindex import INDEX_FILE, build_index, scan_lab_files
from labmark.logger import setup_logging
from labmark.state import AppState
from server import HOME, _load_config

logger = logging.getLogger(__name__)

OUTPUT = HOME / "_lab"


def clean_output(output: Path):
    if output.exists():
        for item in output.iterdir():
            if item.name == ".git":
                continue
            if item.is_dir():
                shutil.rmtree(item)
            else:
                item.unlink()
    output.mkdir(parents=True, exist_ok=True)


def write_files(output: Path, entries) -> int:
    count = 0
    for path, content in entries:
        target = output / path
        if content is None:
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        count += 1
    return count


def ensure_index(state: AppState, title: str) -> bool:
    if state.store.exists(INDEX_FILE):
        return False
    descriptor = build_index(title, "", "ubuntu", scan_lab_files(state.store.records()))
    state.store.create(INDEX_FILE, content=json.dumps(descriptor, indent=2))
    return True


def build(state: AppState, output: Path = OUTPUT, title: str = "") -> Path:

    logger.info(f"Exporting lab to {output}")
    clean_output(output)

    if title and ensure_index(state, title):
        logger.info(f"  {INDEX_FILE} generated")

    entries = export_entries(state)
    written = write_files(output, entries)
    logger.info(f"  {written} files written")

    zip_path = output / archive_name()
    zip_path.write_bytes(build_archive(entries))
    zip_size = zip_path.stat().st_size / 1024
    logger.info(f"  {zip_path.name} ({zip_size:.0f} KB, {written} files)")
    return zip_path


def main(argv=None):
    cfg = _load_config()
    parser = argparse.ArgumentParser(description="Export a saved lab as platform Markdown.")
    parser.add_argument("--state", default=cfg["state_file"], help="state file to read")
    parser.add_argument("--output", default=str(OUTPUT), help="output directory")
    parser.add_argument("--title", default="", help="generate index.json with this title if missing")
    args = parser.parse_args(argv)

    setup_logging(cfg["log_level"])
    state_file = Path(args.state)
    if not state_file.is_absolute():
        state_file = HOME / state_file
    # exports never write back to the editor's state file
    state = AppState.load(state_file)
    state.path = None
    build(state, Path(args.output), args.title)


if __name__ == "__main__":
    main()
