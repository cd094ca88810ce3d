import io
import zipfile

from labmark.archive import archive_name, build_archive, export_entries


def read_zip(data):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name).decode("utf-8") for name in zf.namelist()}


def test_folders_become_directory_entries():
    files = read_zip(build_archive([("step1", None), ("step1/text.md", "hi")]))
    assert files == {"step1/": "", "step1/text.md": "hi"}


def test_export_converts_markdown_only(state):
    files = read_zip(build_archive(export_entries(state)))
    assert files["step1/text.md"] == "````bash\nls -la\n````{{exec}}"
    assert files["intro.md"] == "# Intro"
    assert files["step1/verify.sh"] == "exit 0"
    assert "step10/" in files


def test_export_raw(state):
    entries = dict(export_entries(state, converted=False))
    assert entries["step1/text.md"] == "{{exec}}\nls -la"
    assert entries["step1"] is None


def test_export_follows_auto_detect_setting(state):
    state.store.write("finish.md", "$ echo bye")
    state.update_settings(auto_detect=True)
    entries = dict(export_entries(state))
    assert entries["finish.md"] == "* `echo bye`{{exec}}"


def test_archive_name():
    name = archive_name("kube")
    assert name.startswith("kube_")
    assert name.endswith(".zip")
