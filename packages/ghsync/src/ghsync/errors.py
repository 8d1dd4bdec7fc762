"""Exceptions raised by the GitHub sync pipeline."""


class GitHubSyncError(Exception):
    """Base class for all ghsync errors."""


class ConfigurationError(GitHubSyncError):
    """A required secret or setting is missing or malformed."""


class InvalidCredentialError(GitHubSyncError):
    """An encrypted credential could not be decrypted."""


class CredentialFormatError(InvalidCredentialError):
    """The encrypted credential is not a well-formed ``nonce:tag:ciphertext`` string."""


class CredentialAuthenticationError(InvalidCredentialError):
    """The authentication tag did not verify (wrong key or tampered data)."""


class RemoteApiError(GitHubSyncError):
    """GitHub answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, remote_message: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.remote_message = remote_message


class PublishStepError(RemoteApiError):
    """One stage of the atomic commit protocol failed."""

    def __init__(
        self,
        step: str,
        message: str,
        status_code: int | None = None,
        remote_message: str | None = None,
        path: str | None = None,
    ):
        super().__init__(message, status_code=status_code, remote_message=remote_message)
        self.step = step
        self.path = path


class BranchError(RemoteApiError):
    """Branch provisioning failed."""


class OAuthError(GitHubSyncError):
    """GitHub rejected an OAuth exchange."""
