"""GitHub sync data models."""

import base64

from pydantic import BaseModel, ConfigDict, Field


class RepositoryCoordinates(BaseModel):
    """Target repository and branch. Values are untrusted path segments."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    branch: str = Field(min_length=1)


class FileToCommit(BaseModel):
    """File to publish."""

    path: str = Field(min_length=1)  # Relative repository path, may contain "/"
    content: str | bytes

    def encoded_content(self) -> str:
        """Return the file body as base64 text."""
        raw = self.content.encode("utf-8") if isinstance(self.content, str) else self.content
        return base64.b64encode(raw).decode("ascii")


class PushResult(BaseModel):
    """Commit created by a publish."""

    commit_sha: str
    html_url: str


class RepositoryOwner(BaseModel):
    """Repository owner."""

    login: str


class Repository(BaseModel):
    """Repository visible to the authenticated user."""

    name: str
    full_name: str
    owner: RepositoryOwner
    default_branch: str
    private: bool
    html_url: str


class GitHubUser(BaseModel):
    """Authenticated GitHub user profile."""

    id: int
    login: str
    name: str | None = None
    email: str | None = None
    avatar_url: str


class OAuthToken(BaseModel):
    """Result of an OAuth code exchange."""

    access_token: str = Field(repr=False)
    token_type: str
    scope: str = ""
