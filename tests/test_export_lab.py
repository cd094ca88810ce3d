import zipfile

from export_lab import build, main
from labmark.state import AppState


def test_build_writes_converted_tree(state, tmp_path):
    output = tmp_path / "out"
    zip_path = build(state, output, title="Demo")

    assert (output / "step1" / "text.md").read_text(encoding="utf-8") == "````bash\nls -la\n````{{exec}}"
    assert (output / "step1" / "verify.sh").read_text(encoding="utf-8") == "exit 0"
    assert (output / "index.json").exists()
    with zipfile.ZipFile(zip_path) as zf:
        assert "intro.md" in zf.namelist()


def test_build_clears_previous_output(state, tmp_path):
    output = tmp_path / "out"
    (output / "stale").mkdir(parents=True)
    (output / "stale" / "old.md").write_text("old", encoding="utf-8")
    build(state, output)
    assert not (output / "stale").exists()
    assert not (output / "index.json").exists()


def test_main_does_not_touch_state_file(state, tmp_path):
    before = state.path.read_text(encoding="utf-8")
    main(["--state", str(state.path), "--output", str(tmp_path / "out"), "--title", "Demo"])
    assert state.path.read_text(encoding="utf-8") == before
    assert (tmp_path / "out" / "index.json").exists()
    assert not AppState.load(state.path).store.exists("index.json")
