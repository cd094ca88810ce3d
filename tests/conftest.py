"""Shared fixtures for the store, the application state and the Flask app."""

import pytest

from labmark.filestore import FileRecord, FileStore
from labmark.state import AppState


def make_lab_records():
    """A small two-step lab with a sibling-prefix trap (step1 vs step10)."""
    return [
        FileRecord("intro.md", "intro.md", "{{h1}} Intro"),
        FileRecord("step1", "step1", is_directory=True),
        FileRecord("text.md", "step1/text.md", "{{exec}}\nls -la"),
        FileRecord("verify.sh", "step1/verify.sh", "exit 0"),
        FileRecord("step10", "step10", is_directory=True),
        FileRecord("text.md", "step10/text.md", "* ten"),
        FileRecord("finish.md", "finish.md", "Done"),
    ]


@pytest.fixture
def store():
    return FileStore(make_lab_records())


@pytest.fixture
def state(tmp_path):
    state = AppState.load(tmp_path / "state.json")
    state.store.replace_all(make_lab_records())
    return state


@pytest.fixture
def app(tmp_path):
    from server import create_app

    app = create_app({
        "state_file": str(tmp_path / "state.json"),
        "github_owner": "acme",
        "github_repo": "labs",
    })
    app.config["TESTING"] = True
    app.config["LABMARK_STATE"].store.replace_all(make_lab_records())
    return app


@pytest.fixture
def client(app):
    return app.test_client()
