"""Shared test fixtures for ghsync."""

from __future__ import annotations

import base64
import hashlib
import json
import threading

import httpx
import pytest

from ghsync import GitHubApiClient, RepositoryCoordinates, TokenCipher

TEST_SECRET = "a]f9$kL2mN7pQ4rS8tU1vW3xY6zA0bC"


def blob_sha(content: str | bytes) -> str:
    """Blob sha the fake server assigns to ``content``."""
    raw = content.encode("utf-8") if isinstance(content, str) else content
    return "blob-" + hashlib.sha1(raw).hexdigest()[:10]


def classify(request: httpx.Request) -> str:
    """Name the GitHub operation a request targets."""
    path = request.url.path
    method = request.method
    if path == "/user/repos":
        return "list_repos"
    if path == "/user/emails":
        return "user_emails"
    if path == "/user":
        return "user"
    if "/git/ref/heads/" in path and method == "GET":
        return "get_branch_ref"
    if "/git/commits/" in path and method == "GET":
        return "get_commit"
    if path.endswith("/git/blobs"):
        return "create_blob"
    if path.endswith("/git/trees"):
        return "create_tree"
    if path.endswith("/git/commits"):
        return "create_commit"
    if "/git/refs/heads/" in path and method == "PATCH":
        return "update_ref"
    if path.endswith("/git/refs") and method == "POST":
        return "create_ref"
    if "/contents/" in path and method == "GET":
        return "get_contents"
    if "/contents/" in path and method == "PUT":
        return "put_contents"
    raise AssertionError(f"unexpected request {method} {path}")


class FakeGitHub:
    """In-memory stand-in for the GitHub API behind an httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.calls: list[str] = []
        self.failures: dict[str, tuple[int, object]] = {}  # operation -> (status, body)
        self.network_errors: dict[str, str] = {}  # operation -> error message
        self.html_responses: set[str] = set()  # operations answered with a 200 HTML page
        self.blob_failures: dict[bytes, int] = {}  # raw content -> status
        self.files: dict[str, str] = {}  # path -> sha, for the contents API
        self.repos: list[dict] = []
        self.head_sha = "head-sha-001"
        self.base_tree_sha = "base-tree-sha-002"
        self.tree_sha = "new-tree-sha-003"
        self.commit_sha = "new-commit-sha-004"
        self._lock = threading.Lock()

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls_to(self, operation: str) -> list[httpx.Request]:
        return [r for r, c in zip(self.requests, self.calls) if c == operation]

    def fail(self, operation: str, status: int, body: object = None) -> None:
        self.failures[operation] = (status, body)

    def handle(self, request: httpx.Request) -> httpx.Response:
        operation = classify(request)
        with self._lock:
            self.requests.append(request)
            self.calls.append(operation)

        if operation in self.network_errors:
            raise httpx.ConnectError(self.network_errors[operation], request=request)
        if operation in self.html_responses:
            return httpx.Response(200, text="<html><body>Unicorn!</body></html>")
        if operation in self.failures:
            status, body = self.failures[operation]
            if body is None:
                return httpx.Response(status, text=f"Error {status}")
            return httpx.Response(status, json=body)

        body = json.loads(request.content) if request.content else None
        if operation == "create_blob":
            raw = base64.b64decode(body["content"])
            if raw in self.blob_failures:
                return httpx.Response(self.blob_failures[raw], text="blob rejected")
            return httpx.Response(201, json={"sha": blob_sha(raw)})
        status, payload = self._respond(operation, request)
        return httpx.Response(status, json=payload)

    def _respond(self, operation: str, request: httpx.Request) -> tuple[int, object]:
        if operation == "get_branch_ref":
            return 200, {"object": {"sha": self.head_sha}}
        if operation == "get_commit":
            return 200, {"tree": {"sha": self.base_tree_sha}}
        if operation == "create_tree":
            return 201, {"sha": self.tree_sha}
        if operation == "create_commit":
            return 201, {
                "sha": self.commit_sha,
                "html_url": f"https://github.com/acme/site/commit/{self.commit_sha}",
            }
        if operation == "update_ref":
            return 200, {"ref": "refs/heads/main"}
        if operation == "create_ref":
            return 201, {"ref": json.loads(request.content)["ref"]}
        if operation == "get_contents":
            path = request.url.path.split("/contents/", 1)[1]
            if path in self.files:
                return 200, {"sha": self.files[path]}
            return 404, {"message": "Not Found"}
        if operation == "put_contents":
            path = request.url.path.split("/contents/", 1)[1]
            return 201, {
                "commit": {"sha": "contents-commit-sha", "html_url": "https://github.com/commit"},
                "content": {"html_url": f"https://github.com/acme/site/blob/main/{path}"},
            }
        if operation == "list_repos":
            return 200, self.repos
        raise AssertionError(f"no canned response for {operation}")


@pytest.fixture
def github() -> FakeGitHub:
    """Provide a fake GitHub API."""
    return FakeGitHub()


@pytest.fixture
def client(github: FakeGitHub):
    """Provide an API client wired to the fake GitHub API."""
    with GitHubApiClient("tok", transport=github.transport()) as api:
        yield api


@pytest.fixture
def cipher() -> TokenCipher:
    """Provide a cipher with a passphrase secret."""
    return TokenCipher(TEST_SECRET)


@pytest.fixture
def coords() -> RepositoryCoordinates:
    return RepositoryCoordinates(owner="acme", repo="site", branch="main")
