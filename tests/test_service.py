"""Tests for the encrypted-token entry points."""

from __future__ import annotations

import functools

import httpx
import pytest

import ghsync.service as service_module
from conftest import FakeGitHub
from ghsync import (
    ConfigurationError,
    CredentialFormatError,
    FileToCommit,
    GitHubSync,
    RetryingApiClient,
    Settings,
    TokenCipher,
)


@pytest.fixture
def sync(cipher: TokenCipher, github: FakeGitHub) -> GitHubSync:
    return GitHubSync(cipher, settings=Settings(blob_concurrency=2), transport=github.transport())


class TestGitHubSync:
    """Tests for decrypt-then-call behaviour."""

    def test_push_files_uses_decrypted_token(self, sync: GitHubSync, cipher: TokenCipher, github: FakeGitHub, coords) -> None:
        encrypted = cipher.encrypt("gho_my_actual_github_token")
        files = [
            FileToCommit(path=".x/data.json", content="{}"),
            FileToCommit(path=".x/page.html", content="<h1>Hi</h1>"),
        ]

        result = sync.push_files(encrypted, coords, files, "Update prototype files")

        assert result.commit_sha == github.commit_sha
        assert len(github.requests) == 7
        for request in github.requests:
            assert request.headers["authorization"] == "Bearer gho_my_actual_github_token"

    def test_push_file(self, sync: GitHubSync, cipher: TokenCipher, github: FakeGitHub, coords) -> None:
        result = sync.push_file(cipher.encrypt("gho_x"), coords, "page.html", "<h1/>", "msg")

        assert result.commit_sha == "contents-commit-sha"
        assert all(r.headers["authorization"] == "Bearer gho_x" for r in github.requests)

    def test_create_branch(self, sync: GitHubSync, cipher: TokenCipher, github: FakeGitHub) -> None:
        assert sync.create_branch(cipher.encrypt("gho_x"), "acme", "site", "proto-1", "main") is True

    def test_list_repositories(self, sync: GitHubSync, cipher: TokenCipher, github: FakeGitHub) -> None:
        assert sync.list_repositories(cipher.encrypt("gho_x")) == []

    def test_invalid_token_makes_no_request(self, sync: GitHubSync, github: FakeGitHub, coords) -> None:
        with pytest.raises(CredentialFormatError, match="Invalid encrypted token format"):
            sync.push_files("not-a-valid-encrypted-token", coords, [], "msg")
        assert github.requests == []

    def test_missing_key_makes_no_request(self, github: FakeGitHub, coords) -> None:
        sync = GitHubSync(TokenCipher(None), transport=github.transport())
        with pytest.raises(ConfigurationError, match="ENCRYPTION_KEY not configured"):
            sync.push_files("aabb:ccdd:eeff", coords, [], "msg")
        assert github.requests == []

    def test_cipher_defaults_to_settings_key(self, github: FakeGitHub, coords) -> None:
        sync = GitHubSync(settings=Settings(encryption_key="settings-secret"), transport=github.transport())
        encrypted = TokenCipher("settings-secret").encrypt("gho_from_settings")

        sync.push_file(encrypted, coords, "page.html", "<h1/>", "msg")

        assert github.requests[0].headers["authorization"] == "Bearer gho_from_settings"

    def test_retries_network_errors_when_enabled(
        self, cipher: TokenCipher, github: FakeGitHub, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise httpx.ConnectError("Connection reset", request=request)
            return github.handle(request)

        monkeypatch.setattr(
            service_module,
            "RetryingApiClient",
            functools.partial(RetryingApiClient, min_wait=0, max_wait=0),
        )
        sync = GitHubSync(cipher, max_retries=3, transport=httpx.MockTransport(handler))

        assert sync.list_repositories(cipher.encrypt("gho_x")) == []
        assert attempts["n"] == 2

    def test_no_retries_by_default(self, sync: GitHubSync, cipher: TokenCipher, github: FakeGitHub) -> None:
        github.network_errors["list_repos"] = "Connection reset"

        with pytest.raises(httpx.ConnectError):
            sync.list_repositories(cipher.encrypt("gho_x"))
        assert github.calls == ["list_repos"]
