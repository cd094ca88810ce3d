import io
import json as _json
import logging
import os
from pathlib import Path

from flask import Blueprint, Flask, current_app, jsonify, render_template_string, request, send_file
from werkzeug.utils import secure_filename

from labmark.archive import archive_name, build_archive, export_entries
from labmark.convert import convert_file, convert_text, preview_file
from labmark.deploy import DEFAULT_API_URL, GitHubClient, deploy_lab, lab_folder
from labmark.errors import EmptyInput, InvalidName, LabmarkError, NoSelection
from labmark.filestore import ALLOWED_EXTENSIONS
from labmark.labindex import INDEX_FILE, build_index, scaffold_lab, scan_lab_files
from labmark.logger import setup_logging
from labmark.operations import Delete, apply_operation, parse_operation
from labmark.preview import render_preview
from labmark.state import AppState
from labmark.tagparser import TEMPLATES, insert_template

logger = logging.getLogger(__name__)

HOME = Path(os.environ.get("LABMARK_HOME", ".")).resolve()

_CONFIG_PATH = HOME / "labmark.config.json"
_DEFAULTS = {
    "port": 3000,
    "host": "0.0.0.0",
    "state_file": "labmark.state.json",
    "github_owner": "",
    "github_repo": "",
    "github_branch": "main",
    "github_api": DEFAULT_API_URL,
    "log_level": "INFO",
}


def _load_config() -> dict:
    cfg = dict(_DEFAULTS)
    if _CONFIG_PATH.is_file():
        try:
            with open(_CONFIG_PATH) as f:
                user = _json.load(f)
            cfg.update(user)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load {_CONFIG_PATH.name}: {e}")
    return cfg


def _clean_path(raw_path: str) -> str:
    parts = [p for p in raw_path.replace("\\", "/").split("/") if p]
    clean_parts = [secure_filename(p) for p in parts]
    if not clean_parts or not all(clean_parts):
        raise InvalidName(f"Invalid path: {raw_path!r}")
    return "/".join(clean_parts)


api = Blueprint("api", __name__)


def _state() -> AppState:
    return current_app.config["LABMARK_STATE"]


def _cfg() -> dict:
    return current_app.config["LABMARK"]


def _body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _text(body: dict, key: str, default: str = "") -> str:
    value = body.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidName(f"{key} must be a string")
    return value


@api.app_errorhandler(LabmarkError)
def _labmark_error(e):
    logger.warning(f"{request.method} {request.path}: {e}")
    return jsonify({"ok": False, "error": str(e)}), e.status


@api.route("/")
def index():
    return render_template_string(MAIN_TEMPLATE)


@api.route("/api/config")
def api_config():
    cfg = _cfg()
    settings = _state().settings
    return jsonify({
        "theme": settings.theme,
        "autoDetect": settings.auto_detect,
        "extensions": sorted(ALLOWED_EXTENSIONS),
        "deployConfigured": bool(cfg["github_owner"] and cfg["github_repo"]),
    })


@api.route("/api/tree")
def api_tree():
    state = _state()
    return jsonify({"tree": state.tree().to_dict()["children"], "currentFile": state.store.current_file})


@api.route("/api/tree/toggle", methods=["POST"])
def api_tree_toggle():
    path = _text(_body(), "path").strip()
    if not path:
        raise EmptyInput("Folder path is required")
    return jsonify({"ok": True, "path": path, "expanded": _state().toggle_folder(path)})


@api.route("/api/files/<path:file_path>", methods=["GET", "PUT", "DELETE"])
def api_file(file_path):
    state = _state()
    if request.method == "PUT":
        content = _text(_body(), "content")
        state.store.write(file_path, content)
        return jsonify({"ok": True, "path": file_path})
    if request.method == "DELETE":
        confirm = request.args.get("confirm") in ("1", "true", "yes")
        return jsonify({"ok": True, **apply_operation(state, Delete(file_path, confirm))})
    return jsonify(state.store.get(file_path).to_dict())


@api.route("/api/files/new", methods=["POST"])
def api_files_new():
    body = _body()
    raw_path = _text(body, "path").strip()
    if not raw_path:
        raise EmptyInput("Path is required")
    is_directory = bool(body.get("isDirectory", False))
    record = _state().store.create(_clean_path(raw_path), is_directory=is_directory,
                                   content=_text(body, "content"))
    return jsonify({"ok": True, "path": record.path})


@api.route("/api/ops", methods=["POST"])
def api_ops():
    op = parse_operation(_body())
    return jsonify({"ok": True, **apply_operation(_state(), op)})


@api.route("/api/convert", methods=["POST"])
def api_convert():
    body = _body()
    text = _text(body, "text")
    path = _text(body, "path")
    auto = _state().settings.auto_detect
    if path:
        markdown_text = convert_file(path, text, auto)
        html = preview_file(path, text, auto)
    else:
        markdown_text = convert_text(text, auto)
        html = render_preview(markdown_text)
    return jsonify({"markdown": markdown_text, "html": html})


@api.route("/api/preview/<path:file_path>")
def api_preview(file_path):
    state = _state()
    content = state.store.read(file_path)
    auto = state.settings.auto_detect
    return jsonify({
        "path": file_path,
        "markdown": convert_file(file_path, content, auto),
        "html": preview_file(file_path, content, auto),
    })


@api.route("/api/settings", methods=["GET", "PUT"])
def api_settings():
    state = _state()
    if request.method == "PUT":
        body = _body()
        state.update_settings(theme=body.get("theme"), auto_detect=body.get("autoDetect"))
    return jsonify(state.settings.to_dict())


@api.route("/api/templates")
def api_templates():
    return jsonify(TEMPLATES)


@api.route("/api/templates/insert", methods=["POST"])
def api_templates_insert():
    body = _body()
    return jsonify({"text": insert_template(_text(body, "text"), _text(body, "name"))})


@api.route("/api/download-all")
def api_download_all():
    data = build_archive(export_entries(_state()))
    return send_file(io.BytesIO(data), mimetype="application/zip",
                     as_attachment=True, download_name=archive_name())


@api.route("/api/deploy", methods=["POST"])
def api_deploy():
    state = _state()
    cfg = _cfg()
    body = _body()
    selected = body.get("files") or []
    if not isinstance(selected, list) or not all(isinstance(p, str) for p in selected):
        raise InvalidName("files must be a list of paths")
    if not selected:
        raise NoSelection("Select at least one file to deploy")
    lab_name = _text(body, "labName")
    author_name = _text(body, "authorName")
    lab_folder(lab_name, author_name)
    if not (cfg["github_owner"] and cfg["github_repo"]):
        raise EmptyInput("GitHub repository is not configured")

    auto = state.settings.auto_detect
    files = []
    for path in selected:
        record = state.store.get(path)
        if not record.is_directory:
            files.append((record.path, convert_file(record.path, record.content, auto)))

    client = GitHubClient(cfg["github_owner"], cfg["github_repo"], os.environ.get("GITHUB_TOKEN"),
                          api_url=cfg["github_api"], session=current_app.config.get("LABMARK_HTTP"))
    commit = deploy_lab(client, cfg["github_branch"], files, lab_name, author_name, _text(body, "message") or None)
    submission = state.record_submission(lab_name, author_name)
    return jsonify({"ok": True, "commit": commit, "submission": submission.summary()})


@api.route("/api/submissions")
def api_submissions():
    return jsonify([s.summary() for s in _state().submissions])


@api.route("/api/submissions/<submission_id>/restore", methods=["POST"])
def api_submission_restore(submission_id):
    submission = _state().restore_submission(submission_id)
    return jsonify({"ok": True, "submission": submission.summary()})


@api.route("/api/lab/scaffold", methods=["POST"])
def api_lab_scaffold():
    body = _body()
    created = scaffold_lab(_state().store, _text(body, "title") or "My Lab", _text(body, "imageid") or "ubuntu")
    return jsonify({"ok": True, "created": created})


@api.route("/api/lab/index", methods=["POST"])
def api_lab_index():
    store = _state().store
    body = _body()
    title = _text(body, "title").strip()
    if not title:
        raise EmptyInput("Lab title is required")
    descriptor = build_index(title, _text(body, "description"), _text(body, "imageid") or "ubuntu",
                             scan_lab_files(store.records()))
    content = _json.dumps(descriptor, indent=2)
    if store.exists(INDEX_FILE):
        store.write(INDEX_FILE, content)
    else:
        store.create(INDEX_FILE, content=content)
    return jsonify({"ok": True, "index": descriptor})


def create_app(cfg: dict = None) -> Flask:
    cfg = dict(_DEFAULTS, **(cfg or {}))
    state_file = Path(cfg["state_file"])
    if not state_file.is_absolute():
        state_file = HOME / state_file

    app = Flask(__name__)
    app.config["LABMARK"] = cfg
    app.config["LABMARK_STATE"] = AppState.load(state_file)
    app.register_blueprint(api)
    return app


MAIN_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Labmark</title>
<style>
*, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

:root {
  --bg-primary: #ffffff;
  --bg-secondary: #f4f5f7;
  --bg-hover: rgba(80,100,200,.08);
  --bg-active: rgba(80,100,200,.15);
  --text: #1f2330;
  --text-muted: #6b7080;
  --accent: #4a63d8;
  --border: rgba(0,0,0,.1);
  --sidebar-width: 260px;
  --font: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Ubuntu, sans-serif;
  --font-mono: 'Fira Code', 'JetBrains Mono', 'Consolas', monospace;
}
body.dark {
  --bg-primary: #1a1a2e;
  --bg-secondary: #16162a;
  --bg-hover: rgba(134,112,255,.08);
  --bg-active: rgba(134,112,255,.15);
  --text: #e0def4;
  --text-muted: #908caa;
  --accent: #8673ff;
  --border: rgba(255,255,255,.08);
}

html, body { height: 100%; background: var(--bg-primary); color: var(--text); font-family: var(--font); font-size: 15px; }
.app { display: flex; height: 100vh; }
.sidebar { width: var(--sidebar-width); background: var(--bg-secondary); border-right: 1px solid var(--border); display: flex; flex-direction: column; }
.sidebar-actions { display: flex; flex-wrap: wrap; gap: 4px; padding: 8px; border-bottom: 1px solid var(--border); }
.file-tree { flex: 1; overflow: auto; padding: 6px 0; }
.tree-item { display: flex; align-items: center; gap: 6px; padding: 3px 10px 3px calc(10px + var(--depth, 0) * 14px); cursor: pointer; user-select: none; }
.tree-item:hover { background: var(--bg-hover); }
.tree-item.active { background: var(--bg-active); color: var(--accent); }
.tree-item.drop-target { outline: 1px dashed var(--accent); }
.tree-chevron { width: 10px; display: inline-block; transition: transform .15s; }
.tree-chevron.open { transform: rotate(90deg); }
.main { flex: 1; display: flex; flex-direction: column; min-width: 0; }
.topbar { display: flex; align-items: center; gap: 6px; padding: 6px 10px; border-bottom: 1px solid var(--border); }
.topbar .spacer { flex: 1; }
.btn { background: transparent; color: var(--text); border: 1px solid var(--border); border-radius: 4px; padding: 3px 10px; font-size: 13px; cursor: pointer; }
.btn:hover { border-color: var(--accent); }
.btn.primary { background: var(--accent); border-color: var(--accent); color: #fff; }
.btn:disabled { opacity: .5; cursor: default; }
.panes { flex: 1; display: grid; grid-template-columns: 1fr 1fr 1fr; min-height: 0; }
.pane { display: flex; flex-direction: column; border-right: 1px solid var(--border); min-height: 0; }
.pane h3 { font-size: 12px; text-transform: uppercase; color: var(--text-muted); padding: 6px 10px; }
textarea, .output { flex: 1; width: 100%; border: none; resize: none; padding: 10px; background: var(--bg-primary); color: var(--text); font-family: var(--font-mono); font-size: 13px; overflow: auto; white-space: pre-wrap; }
.preview { flex: 1; overflow: auto; padding: 10px 16px; line-height: 1.6; }
.preview pre { background: var(--bg-secondary); padding: 8px; border-radius: 4px; overflow: auto; }
.exec-block, .copy-block { position: relative; border-left: 3px solid var(--accent); margin: 8px 0; }
.copy-block { border-left-color: #3aa876; }
code.exec-block, code.copy-block { border-left-width: 2px; padding: 0 4px; cursor: pointer; }
.notice { position: fixed; bottom: 14px; right: 14px; background: var(--accent); color: #fff; padding: 8px 14px; border-radius: 4px; display: none; }
.notice.error { background: #d0455b; }
.history { max-height: 30%; overflow: auto; border-top: 1px solid var(--border); font-size: 12px; padding: 6px 10px; }
.history div { cursor: pointer; padding: 2px 0; }
</style>
</head>
<body>
<div class="app">
  <aside class="sidebar">
    <div class="sidebar-actions">
      <button class="btn" id="newFileBtn">+ File</button>
      <button class="btn" id="newFolderBtn">+ Folder</button>
      <button class="btn" id="renameBtn">Rename</button>
      <button class="btn" id="deleteBtn">Delete</button>
      <button class="btn" id="scaffoldBtn">New lab</button>
    </div>
    <div class="file-tree" id="fileTree"></div>
    <div class="history" id="history"></div>
  </aside>
  <main class="main">
    <div class="topbar">
      <span id="currentName">No file open</span>
      <span class="spacer"></span>
      <select id="templateSelect" class="btn"><option value="">Insert template...</option></select>
      <label><input type="checkbox" id="autoDetect"> Auto-detect</label>
      <button class="btn" id="themeBtn">Theme</button>
      <button class="btn" id="downloadBtn">Download zip</button>
      <button class="btn primary" id="deployBtn">Deploy</button>
    </div>
    <div class="panes">
      <div class="pane"><h3>Input</h3><textarea id="inputText" spellcheck="false" disabled></textarea></div>
      <div class="pane"><h3>Markdown</h3><pre class="output"><code id="outputMarkdown"></code></pre></div>
      <div class="pane"><h3>Preview</h3><div class="preview" id="preview"></div></div>
    </div>
  </main>
</div>
<div class="notice" id="notice"></div>
<script>
const $ = s => document.querySelector(s);
const inputText = $('#inputText');
let currentFile = null;
let selectedPath = null;
let saveTimer = null;

function esc(s) {
  return s.replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;').replace(/"/g, '&quot;');
}

function notify(msg, isError) {
  const n = $('#notice');
  n.textContent = msg;
  n.className = 'notice' + (isError ? ' error' : '');
  n.style.display = 'block';
  setTimeout(() => { n.style.display = 'none'; }, 3000);
}

async function call(method, url, body) {
  const res = await fetch(url, {
    method,
    headers: {'Content-Type': 'application/json'},
    body: body === undefined ? undefined : JSON.stringify(body),
  });
  const data = await res.json().catch(() => ({}));
  if (!res.ok) throw new Error(data.error || ('Request failed: ' + res.status));
  return data;
}

async function op(payload) {
  try {
    const data = await call('POST', '/api/ops', payload);
    await reloadTree();
    return data;
  } catch (e) {
    notify(e.message, true);
    return null;
  }
}

function renderTree(items, container, depth) {
  items.forEach(item => {
    const row = document.createElement('div');
    row.className = 'tree-item' + (item.path === selectedPath ? ' active' : '');
    row.style.setProperty('--depth', depth);
    row.dataset.path = item.path;
    row.draggable = true;
    if (item.type === 'folder') {
      row.innerHTML = `<span class="tree-chevron${item.expanded ? ' open' : ''}">&#9656;</span><span>${esc(item.name)}</span>`;
      row.addEventListener('click', () => { selectedPath = item.path; op({op: 'toggle', path: item.path}); });
      row.addEventListener('dragover', e => { e.preventDefault(); row.classList.add('drop-target'); });
      row.addEventListener('dragleave', () => row.classList.remove('drop-target'));
      row.addEventListener('drop', e => {
        e.preventDefault();
        const source = e.dataTransfer.getData('text/plain');
        if (source && source !== item.path) op({op: 'move', source, targetDir: item.path});
      });
      container.appendChild(row);
      if (item.expanded) renderTree(item.children, container, depth + 1);
    } else {
      row.innerHTML = `<span class="tree-chevron"></span><span>${esc(item.name)}</span>`;
      row.addEventListener('click', () => openFile(item.path));
      container.appendChild(row);
    }
    row.addEventListener('dragstart', e => e.dataTransfer.setData('text/plain', item.path));
  });
}

async function reloadTree() {
  const data = await call('GET', '/api/tree');
  const tree = $('#fileTree');
  tree.innerHTML = '';
  renderTree(data.tree, tree, 0);
  if (currentFile !== data.currentFile) {
    currentFile = data.currentFile;
    if (!currentFile) closeEditor();
  }
}

function closeEditor() {
  inputText.value = '';
  inputText.disabled = true;
  $('#currentName').textContent = 'No file open';
  $('#outputMarkdown').textContent = '';
  $('#preview').innerHTML = '';
}

async function openFile(path) {
  const data = await op({op: 'open', path});
  if (!data) return;
  currentFile = selectedPath = path;
  inputText.value = data.content;
  inputText.disabled = false;
  $('#currentName').textContent = path;
  await reloadTree();
  generate();
}

async function generate() {
  const data = await call('POST', '/api/convert', {text: inputText.value, path: currentFile});
  $('#outputMarkdown').textContent = data.markdown;
  $('#preview').innerHTML = data.html;
}

inputText.addEventListener('input', () => {
  generate();
  clearTimeout(saveTimer);
  saveTimer = setTimeout(() => {
    if (currentFile) call('PUT', '/api/files/' + encodeURI(currentFile), {content: inputText.value})
      .catch(e => notify(e.message, true));
  }, 300);
});

function parentOfSelection() {
  if (!selectedPath) return '';
  const row = document.querySelector(`.tree-item[data-path="${CSS.escape(selectedPath)}"] .tree-chevron.open`);
  if (row) return selectedPath;
  return selectedPath.includes('/') ? selectedPath.slice(0, selectedPath.lastIndexOf('/')) : '';
}

$('#newFileBtn').addEventListener('click', () => {
  const name = prompt('File name (.md, .json, .sh, .txt)');
  if (!name) return notify('A name is required', true);
  op({op: 'createFile', parent: parentOfSelection(), name});
});
$('#newFolderBtn').addEventListener('click', () => {
  const name = prompt('Folder name');
  if (!name) return notify('A name is required', true);
  op({op: 'createFolder', parent: parentOfSelection(), name});
});
$('#renameBtn').addEventListener('click', async () => {
  if (!selectedPath) return notify('Select a file or folder first', true);
  const newName = prompt('New name', selectedPath.split('/').pop());
  if (!newName) return;
  const data = await op({op: 'rename', path: selectedPath, newName});
  if (data) { selectedPath = data.path; reloadTree(); }
});
$('#deleteBtn').addEventListener('click', () => {
  if (!selectedPath) return notify('Select a file or folder first', true);
  if (!confirm('Delete ' + selectedPath + '?')) return;
  op({op: 'delete', path: selectedPath, confirm: true}).then(() => { selectedPath = null; });
});
$('#scaffoldBtn').addEventListener('click', async () => {
  const title = prompt('Lab title', 'My Lab');
  if (!title) return;
  await call('POST', '/api/lab/scaffold', {title}).catch(e => notify(e.message, true));
  reloadTree();
});

$('#templateSelect').addEventListener('change', async e => {
  const name = e.target.value;
  e.target.value = '';
  if (!name || !currentFile) return;
  const data = await call('POST', '/api/templates/insert', {text: inputText.value, name});
  inputText.value = data.text;
  inputText.dispatchEvent(new Event('input'));
});

$('#autoDetect').addEventListener('change', async e => {
  await call('PUT', '/api/settings', {autoDetect: e.target.checked});
  if (currentFile) generate();
});
$('#themeBtn').addEventListener('click', async () => {
  const theme = document.body.classList.contains('dark') ? 'light' : 'dark';
  const s = await call('PUT', '/api/settings', {theme});
  document.body.classList.toggle('dark', s.theme === 'dark');
});
$('#downloadBtn').addEventListener('click', () => { window.location.href = '/api/download-all'; });

$('#deployBtn').addEventListener('click', async () => {
  const btn = $('#deployBtn');
  const labName = prompt('Lab name');
  if (!labName) return notify('A lab name is required', true);
  const authorName = prompt('Author name (optional)') || '';
  const tree = await call('GET', '/api/tree');
  const files = [];
  (function collect(items) {
    items.forEach(i => i.type === 'file' ? files.push(i.path) : collect(i.children || []));
  })(tree.tree);
  btn.disabled = true;
  try {
    const data = await call('POST', '/api/deploy', {labName, authorName, files});
    notify('Deployed ' + data.commit.slice(0, 7));
    loadHistory();
  } catch (e) {
    notify(e.message, true);
  } finally {
    btn.disabled = false;
  }
});

async function loadHistory() {
  const subs = await call('GET', '/api/submissions');
  const h = $('#history');
  h.innerHTML = subs.length ? '<b>Previous submissions</b>' : '';
  subs.forEach(s => {
    const row = document.createElement('div');
    row.textContent = `${s.labName}${s.authorName ? ' - ' + s.authorName : ''} (${new Date(s.timestamp).toLocaleString()})`;
    row.addEventListener('click', async () => {
      if (!confirm('Restore this submission? Current files are replaced.')) return;
      await call('POST', `/api/submissions/${s.id}/restore`);
      closeEditor();
      reloadTree();
    });
    h.appendChild(row);
  });
}

(async function init() {
  const cfg = await call('GET', '/api/config');
  document.body.classList.toggle('dark', cfg.theme === 'dark');
  $('#autoDetect').checked = cfg.autoDetect;
  $('#deployBtn').disabled = !cfg.deployConfigured;
  const templates = await call('GET', '/api/templates');
  Object.keys(templates).forEach(name => {
    const o = document.createElement('option');
    o.value = name;
    o.textContent = name;
    $('#templateSelect').appendChild(o);
  });
  await reloadTree();
  if (currentFile) openFile(currentFile);
  loadHistory();
})();
</script>
</body>
</html>
"""


app = create_app(_load_config())


if __name__ == "__main__":
    import socket
    cfg = app.config["LABMARK"]
    setup_logging(cfg["log_level"])
    hostname = socket.gethostname()
    local_ip = socket.gethostbyname(hostname)
    logger.info(f"Lab state: {app.config['LABMARK_STATE'].path}")
    logger.info(f"Open http://localhost:{cfg['port']}    (this machine)")
    logger.info(f"     http://{local_ip}:{cfg['port']}  (other devices on network)")
    app.run(host=cfg["host"], port=cfg["port"], threaded=False)
