"""Operations that start from a stored, encrypted access token."""

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

import httpx

from .branches import create_branch
from .cipher import TokenCipher
from .client import ApiClient, GitHubApiClient
from .config import Settings
from .contents import publish_file
from .models import FileToCommit, PushResult, Repository, RepositoryCoordinates
from .publisher import CommitPublisher
from .repos import list_repositories
from .retry import RetryingApiClient

logger = logging.getLogger(__name__)


class GitHubSync:
    """
    Entry point used by the application layer.

    Each call decrypts the stored token, opens a client for that call only
    and closes it before returning. Nothing is kept between calls.
    """

    def __init__(
        self,
        cipher: TokenCipher | None = None,
        settings: Settings | None = None,
        max_retries: int = 1,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize sync service.

        Args:
            cipher: Cipher holding the token encryption secret. Defaults to
                one reading ``settings.encryption_key`` at call time
            settings: API URL, timeout and blob concurrency
            max_retries: Attempts per request on network errors (1 disables retries)
            transport: Custom httpx transport (used by tests)
        """
        self.settings = settings or Settings()
        self.cipher = cipher or TokenCipher.from_settings(self.settings)
        self.max_retries = max_retries
        self.transport = transport

    @contextmanager
    def _client(self, encrypted_token: str) -> Iterator[ApiClient]:
        token = self.cipher.decrypt(encrypted_token)
        http = GitHubApiClient(
            token,
            base_url=self.settings.api_base_url,
            timeout=self.settings.timeout,
            transport=self.transport,
        )
        try:
            if self.max_retries > 1:
                yield RetryingApiClient(http, max_retries=self.max_retries)
            else:
                yield http
        finally:
            http.close()

    def push_files(
        self,
        encrypted_token: str,
        coords: RepositoryCoordinates,
        files: Sequence[FileToCommit],
        message: str,
    ) -> PushResult:
        """Publish files atomically as one commit."""
        with self._client(encrypted_token) as client:
            publisher = CommitPublisher(client, max_workers=self.settings.blob_concurrency)
            return publisher.publish(coords, files, message)

    def push_file(
        self,
        encrypted_token: str,
        coords: RepositoryCoordinates,
        path: str,
        content: str | bytes,
        message: str,
    ) -> PushResult:
        """Create or update a single file."""
        with self._client(encrypted_token) as client:
            return publish_file(client, coords, path, content, message)

    def create_branch(
        self,
        encrypted_token: str,
        owner: str,
        repo: str,
        branch_name: str,
        from_branch: str,
    ) -> bool:
        """Ensure ``branch_name`` exists, branched from ``from_branch``."""
        with self._client(encrypted_token) as client:
            return create_branch(client, owner, repo, branch_name, from_branch)

    def list_repositories(self, encrypted_token: str) -> list[Repository]:
        """List repositories visible to the token's owner."""
        with self._client(encrypted_token) as client:
            return list_repositories(client)
