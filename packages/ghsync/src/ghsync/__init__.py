"""Publish files to GitHub from stored OAuth credentials."""

from .branches import create_branch
from .cipher import TokenCipher, generate_key
from .client import ApiClient, GitHubApiClient
from .config import Settings
from .contents import publish_file
from .errors import (
    BranchError,
    ConfigurationError,
    CredentialAuthenticationError,
    CredentialFormatError,
    GitHubSyncError,
    InvalidCredentialError,
    OAuthError,
    PublishStepError,
    RemoteApiError,
)
from .models import FileToCommit, PushResult, Repository, RepositoryCoordinates
from .publisher import CommitPublisher, PublishStep, publish_files
from .repos import list_repositories
from .retry import RetryingApiClient
from .service import GitHubSync

__all__ = [
    "ApiClient",
    "BranchError",
    "CommitPublisher",
    "ConfigurationError",
    "CredentialAuthenticationError",
    "CredentialFormatError",
    "FileToCommit",
    "GitHubApiClient",
    "GitHubSync",
    "GitHubSyncError",
    "InvalidCredentialError",
    "OAuthError",
    "PublishStep",
    "PublishStepError",
    "PushResult",
    "RemoteApiError",
    "Repository",
    "RepositoryCoordinates",
    "RetryingApiClient",
    "Settings",
    "TokenCipher",
    "create_branch",
    "generate_key",
    "list_repositories",
    "publish_file",
    "publish_files",
]
