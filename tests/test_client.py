"""Tests for gitdata.client."""

import json
import logging

import httpx
import pytest

from gitdata import (
    BlobMode,
    CreateBlob,
    CreateGitTreeBlob,
    CreateGitTreeSha,
    CreateTree,
    DecodeError,
    GitDataClient,
    GitHubAPIError,
    GitMode,
    GitTreeType,
    get_token,
)

API = "https://api.github.com"
TREE_SHA = "9fb037999f264ba9a7fc6274d15fa3ae2ab98312"


def tree_body(sha=TREE_SHA, truncated=False):
    return {
        "sha": sha,
        "url": f"{API}/repos/octocat/hello-world/git/trees/{sha}",
        "tree": [
            {"path": "README", "mode": "100644", "type": "blob", "size": 12, "sha": "aaa"},
            {"path": "src", "mode": "040000", "type": "tree", "sha": "bbb"},
        ],
        "truncated": truncated,
    }


class Recorder:
    """Mock transport handler recording requests and replaying responses."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


@pytest.fixture(autouse=True)
def no_env_token(monkeypatch):
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


@pytest.fixture
def no_sleep(monkeypatch):
    """Skip tenacity backoff waits."""
    monkeypatch.setattr("time.sleep", lambda seconds: None)


def make_client(handler, **kwargs):
    return GitDataClient(token="secret", transport=httpx.MockTransport(handler), **kwargs)


class TestGetToken:
    """Token resolution order."""

    def test_explicit_token_wins(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        assert get_token("explicit") == "explicit"

    def test_gh_token_before_github_token(self, monkeypatch):
        monkeypatch.setenv("GH_TOKEN", "gh")
        monkeypatch.setenv("GITHUB_TOKEN", "github")
        assert get_token() == "gh"

    def test_gh_cli_only_when_allowed(self, monkeypatch):
        monkeypatch.setattr("gitdata.client.get_token_from_gh_cli", lambda: "cli-token")
        assert get_token() is None
        assert get_token(use_gh_cli=True) == "cli-token"


class TestGitDataClient:
    """Requests and response decoding."""

    def test_authorization_header(self):
        recorder = Recorder(httpx.Response(200, json=tree_body()))
        make_client(recorder).get_tree("octocat", "hello-world", TREE_SHA)
        request = recorder.requests[0]
        assert request.headers["Authorization"] == "token secret"
        assert request.headers["Accept"] == "application/vnd.github.v3+json"

    def test_no_token_no_header(self):
        recorder = Recorder(httpx.Response(200, json=tree_body()))
        GitDataClient(transport=httpx.MockTransport(recorder)).get_tree("o", "r", TREE_SHA)
        assert "Authorization" not in recorder.requests[0].headers

    def test_get_blob(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "content": "aGVsbG8K\n",
                    "encoding": "base64",
                    "url": f"{API}/repos/o/r/git/blobs/ce0136",
                    "sha": "ce0136",
                    "size": 6,
                },
            )
        )
        blob = make_client(recorder).get_blob("o", "r", "ce0136")
        assert recorder.requests[0].method == "GET"
        assert recorder.requests[0].url.path == "/repos/o/r/git/blobs/ce0136"
        assert blob.decoded_content() == b"hello\n"

    def test_create_blob(self):
        recorder = Recorder(
            httpx.Response(201, json={"url": f"{API}/repos/o/r/git/blobs/3a0f86", "sha": "3a0f86"})
        )
        new_blob = make_client(recorder).create_blob("o", "r", CreateBlob.from_text("Content of the blob"))
        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/repos/o/r/git/blobs"
        assert json.loads(request.content) == {"content": "Content of the blob", "encoding": "utf-8"}
        assert new_blob.sha == "3a0f86"

    @pytest.mark.parametrize("recursive, query", [(False, b""), (True, b"recursive=1")])
    def test_get_tree(self, recursive, query):
        recorder = Recorder(httpx.Response(200, json=tree_body()))
        tree = make_client(recorder).get_tree("o", "r", TREE_SHA, recursive=recursive)
        assert recorder.requests[0].url.path == f"/repos/o/r/git/trees/{TREE_SHA}"
        assert recorder.requests[0].url.query == query
        assert [entry.path for entry in tree.git_trees] == ["README", "src"]

    def test_truncated_tree_is_logged(self, caplog):
        recorder = Recorder(httpx.Response(200, json=tree_body(truncated=True)))
        with caplog.at_level(logging.WARNING, logger="gitdata.client"):
            tree = make_client(recorder).get_tree("o", "r", TREE_SHA, recursive=True)
        assert tree.truncated is True
        assert "truncated" in caplog.text

    def test_create_tree(self):
        recorder = Recorder(httpx.Response(201, json=tree_body(sha="cd8274")))
        request = CreateTree(
            tree=[
                CreateGitTreeBlob(path="run.sh", content="echo hi\n", mode=BlobMode.EXECUTABLE),
                CreateGitTreeSha(path="old", sha=None, type=GitTreeType.BLOB, mode=GitMode.FILE),
            ],
            base_tree_sha=TREE_SHA,
        )
        created = make_client(recorder).create_tree("o", "r", request)
        sent = recorder.requests[0]
        assert sent.method == "POST"
        assert sent.url.path == "/repos/o/r/git/trees"
        assert json.loads(sent.content) == {
            "tree": [
                {"path": "run.sh", "type": "blob", "mode": "100755", "content": "echo hi\n"},
                {"path": "old", "sha": None, "type": "blob", "mode": "100644"},
            ],
            "base_tree": TREE_SHA,
        }
        assert created.sha == "cd8274"

    def test_create_tree_without_base_warns(self, caplog):
        recorder = Recorder(httpx.Response(201, json=tree_body()))
        with caplog.at_level(logging.WARNING, logger="gitdata.client"):
            make_client(recorder).create_tree("o", "r", CreateTree(tree=[]))
        assert json.loads(recorder.requests[0].content) == {"tree": [], "base_tree": None}
        assert "without base_tree" in caplog.text

    def test_client_error_raises(self):
        recorder = Recorder(httpx.Response(404, json={"message": "Not Found"}))
        with pytest.raises(GitHubAPIError, match="Not Found") as exc_info:
            make_client(recorder).get_blob("o", "r", "missing")
        assert exc_info.value.status_code == 404
        assert len(recorder.requests) == 1

    def test_non_json_body_raises(self):
        recorder = Recorder(httpx.Response(200, text="<html>maintenance</html>"))
        with pytest.raises(GitHubAPIError, match="non-JSON") as exc_info:
            make_client(recorder).get_tree("o", "r", TREE_SHA)
        assert exc_info.value.status_code == 200

    def test_malformed_response_raises_decode_error(self):
        body = tree_body()
        body["tree"][1]["mode"] = "999999"
        recorder = Recorder(httpx.Response(200, json=body))
        with pytest.raises(DecodeError) as exc_info:
            make_client(recorder).get_tree("o", "r", TREE_SHA)
        assert exc_info.value.history == ("tree", 1, "mode")

    def test_server_error_is_retried(self, no_sleep):
        recorder = Recorder(
            httpx.Response(502, json={"message": "Bad Gateway"}),
            httpx.Response(200, json=tree_body()),
        )
        tree = make_client(recorder, max_retries=3).get_tree("o", "r", TREE_SHA)
        assert len(recorder.requests) == 2
        assert tree.sha == TREE_SHA

    def test_server_error_gives_up(self, no_sleep):
        recorder = Recorder(*[httpx.Response(503) for _ in range(2)])
        with pytest.raises(GitHubAPIError) as exc_info:
            make_client(recorder, max_retries=2).get_tree("o", "r", TREE_SHA)
        assert exc_info.value.status_code == 503
        assert len(recorder.requests) == 2

    def test_connection_error_is_retried(self, no_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=tree_body())

        tree = make_client(handler).get_tree("o", "r", TREE_SHA)
        assert len(calls) == 2
        assert tree.sha == TREE_SHA
