import logging
import re
from typing import Iterable, Optional

import requests

from . import pathkey
from .errors import EmptyInput, NetworkFailure, NoSelection

logger = logging.getLogger(__name__)

USER_AGENT = "Labmark/0.1.0"
DEFAULT_TIMEOUT = 15
DEFAULT_API_URL = "https://api.github.com"


def lab_folder(lab_name: str, author_name: str = "") -> str:
    lab = re.sub(r"\s+", "_", lab_name.strip())
    if not lab:
        raise EmptyInput("Lab name is required")
    author = re.sub(r"\s+", "_", author_name.strip())
    return f"{lab}-{author}" if author else lab


def file_mode(path: str) -> str:
    return "100755" if pathkey.extension(path) == ".sh" else "100644"


class GitHubClient:
    """The handful of Git Data API calls a deployment needs."""

    def __init__(self, owner: str, repo: str, token: Optional[str] = None,
                 api_url: str = DEFAULT_API_URL, session: Optional[requests.Session] = None):
        self.owner = owner
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/vnd.github+json",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _url(self, suffix: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/git/{suffix}"

    def _request(self, method: str, suffix: str, payload: Optional[dict] = None) -> dict:
        try:
            response = self.session.request(method, self._url(suffix), json=payload, timeout=DEFAULT_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"GitHub API {method} {suffix} failed: {e}")
            raise NetworkFailure("Deployment failed, please try again") from e

    def get_branch_head(self, branch: str) -> str:
        return self._request("GET", f"ref/heads/{branch}")["object"]["sha"]

    def get_commit_tree(self, commit_sha: str) -> str:
        return self._request("GET", f"commits/{commit_sha}")["tree"]["sha"]

    def create_tree(self, base_tree: str, files: Iterable[tuple[str, str]]) -> str:
        entries = [
            {"path": path, "mode": file_mode(path), "type": "blob", "content": content}
            for path, content in files
        ]
        return self._request("POST", "trees", {"base_tree": base_tree, "tree": entries})["sha"]

    def create_commit(self, message: str, tree_sha: str, parent_sha: str) -> str:
        payload = {"message": message, "tree": tree_sha, "parents": [parent_sha]}
        return self._request("POST", "commits", payload)["sha"]

    def update_ref(self, branch: str, commit_sha: str) -> dict:
        return self._request("PATCH", f"refs/heads/{branch}", {"sha": commit_sha, "force": False})


def deploy_lab(client: GitHubClient, branch: str, files: list[tuple[str, str]],
               lab_name: str, author_name: str = "", message: Optional[str] = None) -> str:
    """Commit ``files`` under the lab's folder on ``branch`` and return the commit sha.

    Validation happens before the first request. Any HTTP failure surfaces
    as ``NetworkFailure`` and nothing is retried.
    """
    if not files:
        raise NoSelection("Select at least one file to deploy")
    folder = lab_folder(lab_name, author_name)
    message = message or f"Deploy {folder}"
    namespaced = [(pathkey.join(folder, path), content) for path, content in files]

    head = client.get_branch_head(branch)
    base_tree = client.get_commit_tree(head)
    tree = client.create_tree(base_tree, namespaced)
    commit = client.create_commit(message, tree, head)
    client.update_ref(branch, commit)
    logger.info(f"Deployed {len(namespaced)} files to {client.owner}/{client.repo}@{branch} as {folder}/ ({commit[:7]})")
    return commit
