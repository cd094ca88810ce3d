import requests


class FakeResponse:

    def __init__(self, data, status=200):
        self.data = data
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self.data


class FakeGitHub:
    """Records Git Data API calls and answers them with canned shas."""

    def __init__(self, fail_on=None):
        self.headers = {}
        self.calls = []
        self.fail_on = fail_on

    def request(self, method, url, json=None, timeout=None):
        suffix = url.split("/git/", 1)[1]
        self.calls.append((method, suffix, json))
        if self.fail_on and suffix.startswith(self.fail_on):
            raise requests.exceptions.ConnectionError("connection reset")
        if method == "GET" and suffix.startswith("ref/heads/"):
            return FakeResponse({"object": {"sha": "head123"}})
        if method == "GET" and suffix.startswith("commits/"):
            return FakeResponse({"tree": {"sha": "basetree"}})
        if method == "POST" and suffix == "trees":
            return FakeResponse({"sha": "newtree"})
        if method == "POST" and suffix == "commits":
            return FakeResponse({"sha": "commit4567890"})
        if method == "PATCH":
            return FakeResponse({"object": {"sha": json["sha"]}})
        return FakeResponse({"message": "Not Found"}, 404)
