import json

from labmark.filestore import FileRecord, FileStore
from labmark.labindex import INDEX_FILE, build_index, scaffold_lab, scan_lab_files
from conftest import make_lab_records


def test_scan_orders_steps_numerically():
    records = make_lab_records() + [FileRecord("text.md", "step2/text.md"), FileRecord("setup.sh", "setup.sh")]
    lab = scan_lab_files(records)
    assert lab.intro_file == "intro.md"
    assert lab.finish_file == "finish.md"
    assert lab.setup_file == "setup.sh"
    assert [s.folder for s in lab.steps] == ["step1", "step2", "step10"]
    assert lab.steps[0].verify_file == "step1/verify.sh"
    assert lab.steps[1].verify_file is None


def test_build_index_layout():
    index = build_index("Demo", "A demo", "ubuntu", scan_lab_files(make_lab_records()))
    assert index == {
        "title": "Demo",
        "description": "A demo",
        "details": {
            "intro": {"text": "intro.md"},
            "steps": [
                {"title": "Step 1", "text": "step1/text.md", "verify": "step1/verify.sh"},
                {"title": "Step 2", "text": "step10/text.md"},
            ],
            "finish": {"text": "finish.md"},
        },
        "backend": {"imageid": "ubuntu"},
    }


def test_scaffold_empty_store():
    store = FileStore()
    created = scaffold_lab(store, title="Starter")
    assert created[-1] == INDEX_FILE
    assert store.get("step1").is_directory
    index = json.loads(store.read(INDEX_FILE))
    assert index["title"] == "Starter"
    assert index["details"]["intro"] == {"text": "intro.md", "background": "setup.sh"}


def test_scaffold_keeps_existing_files():
    store = FileStore(make_lab_records())
    created = scaffold_lab(store)
    assert "intro.md" not in created
    assert "setup.sh" in created
    assert store.read("intro.md") == "{{h1}} Intro"
