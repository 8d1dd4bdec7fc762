"""Single-file create-or-update through the Contents API."""

import logging

import httpx

from .client import ApiClient, encode_path, repo_path
from .errors import RemoteApiError
from .models import FileToCommit, PushResult, RepositoryCoordinates

logger = logging.getLogger(__name__)


def get_file_sha(client: ApiClient, coords: RepositoryCoordinates, path: str) -> str | None:
    """
    Look up the blob sha of a file on the target branch.

    Any failure reads as "file does not exist yet".
    """
    try:
        data = client.request(
            "GET",
            repo_path(coords.owner, coords.repo, "contents", encode_path(path)),
            params={"ref": coords.branch},
        )
    except RemoteApiError as err:
        logger.debug("Existence check for %s returned %s, treating as new file", path, err.status_code)
        return None
    except httpx.TransportError as err:
        logger.warning("Existence check for %s failed (%s), treating as new file", path, type(err).__name__)
        return None
    sha = data.get("sha") if isinstance(data, dict) else None
    return sha if isinstance(sha, str) and sha else None


def publish_file(
    client: ApiClient,
    coords: RepositoryCoordinates,
    path: str,
    content: str | bytes,
    message: str,
) -> PushResult:
    """
    Create or update one file on ``coords.branch``.

    Args:
        client: Authenticated API client
        coords: Target repository and branch
        path: File path in repository
        content: File body
        message: Commit message

    Returns:
        PushResult with the commit sha and the file's html_url
    """
    file = FileToCommit(path=path, content=content)
    existing_sha = get_file_sha(client, coords, path)
    logger.info(
        "%s %s in %s/%s@%s",
        "Updating" if existing_sha else "Creating", path, coords.owner, coords.repo, coords.branch,
    )

    body = {"message": message, "content": file.encoded_content(), "branch": coords.branch}
    if existing_sha:
        body["sha"] = existing_sha

    try:
        data = client.request(
            "PUT",
            repo_path(coords.owner, coords.repo, "contents", encode_path(path)),
            json=body,
        )
    except RemoteApiError as err:
        raise RemoteApiError(
            f"GitHub push failed ({err.status_code}): {err.remote_message or 'Unknown error'}",
            status_code=err.status_code,
            remote_message=err.remote_message,
        ) from err

    try:
        return PushResult(commit_sha=data["commit"]["sha"], html_url=data["content"]["html_url"])
    except (KeyError, TypeError):
        raise RemoteApiError("GitHub push failed: unexpected response body") from None
