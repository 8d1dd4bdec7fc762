"""Authenticated GitHub REST API client."""

import logging
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from .config import DEFAULT_API_URL, DEFAULT_TIMEOUT
from .errors import RemoteApiError

logger = logging.getLogger(__name__)

USER_AGENT = "ghsync-client"
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def encode_segment(value: str) -> str:
    """Percent-encode a single opaque path segment. Slashes are escaped."""
    return quote(value, safe="")


def encode_path(path: str) -> str:
    """Percent-encode a repository file path, keeping ``/`` as separator."""
    return "/".join(encode_segment(part) for part in path.split("/"))


def repo_path(owner: str, repo: str, *rest: str) -> str:
    """Build ``/repos/{owner}/{repo}/...`` with owner and repo encoded.

    ``rest`` is appended verbatim and must already be encoded.
    """
    base = f"/repos/{encode_segment(owner)}/{encode_segment(repo)}"
    return "/".join([base, *rest]) if rest else base


def remote_message(response: httpx.Response) -> str | None:
    """Extract the ``message`` field from an error body, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return None


class ApiClient(Protocol):
    """Single authenticated call against the GitHub API."""

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        ...


class GitHubApiClient:
    """GitHub REST API client bound to one bearer token."""

    BASE_URL = DEFAULT_API_URL

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: Decrypted OAuth access token
            base_url: Custom base URL (defaults to GitHub API)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (used by tests)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": USER_AGENT,
            },
        )
        logger.debug("GitHub client ready, base_url=%s", self.base_url)

    def __repr__(self) -> str:
        return f"GitHubApiClient(base_url={self.base_url!r})"

    def __enter__(self) -> "GitHubApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._http.close()

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make one HTTP request to the GitHub API.

        Args:
            method: HTTP method
            path: Request path, already percent-encoded
            json: Request body, sent as JSON
            params: Query parameters

        Returns:
            Parsed JSON body, or None for an empty body

        Raises:
            RemoteApiError: Non-success status, or a success body that is not JSON
            httpx.TransportError: Network failure (not wrapped)
        """
        method = method.upper()
        headers = {"Content-Type": "application/json"} if method in WRITE_METHODS else None
        logger.debug("Request: %s %s", method, path)
        response = self._http.request(method, path, json=json, params=params, headers=headers)
        logger.debug("Response: %s %s (status=%d)", method, path, response.status_code)

        if not response.is_success:
            message = remote_message(response)
            raise RemoteApiError(
                f"GitHub API error ({response.status_code}): {message or 'Unknown error'}",
                status_code=response.status_code,
                remote_message=message,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("Non-JSON body from %s %s (status=%d)", method, path, response.status_code)
            raise RemoteApiError(
                f"GitHub API error ({response.status_code}): invalid JSON body",
                status_code=response.status_code,
                remote_message="invalid JSON body",
            ) from None
