"""Branch provisioning."""

import logging

from .client import ApiClient, encode_segment, repo_path
from .errors import BranchError, RemoteApiError

logger = logging.getLogger(__name__)

# GitHub answers 422 when the ref already exists
REF_EXISTS_STATUS = 422


def create_branch(
    client: ApiClient,
    owner: str,
    repo: str,
    branch_name: str,
    from_branch: str,
) -> bool:
    """
    Create ``branch_name`` at the current tip of ``from_branch``.

    Returns:
        True if the branch was created, False if it already existed

    Raises:
        BranchError: Source lookup or ref creation failed
    """
    try:
        data = client.request(
            "GET",
            repo_path(owner, repo, "git", "ref", "heads", encode_segment(from_branch)),
        )
    except RemoteApiError as err:
        raise BranchError(
            f"Failed to get source branch: {err.status_code}",
            status_code=err.status_code,
            remote_message=err.remote_message,
        ) from err

    sha = (data.get("object") or {}).get("sha") if isinstance(data, dict) else None
    if not sha:
        raise BranchError("Failed to get source branch: response has no object.sha")

    try:
        client.request(
            "POST",
            repo_path(owner, repo, "git", "refs"),
            json={"ref": f"refs/heads/{branch_name}", "sha": sha},
        )
    except RemoteApiError as err:
        if err.status_code == REF_EXISTS_STATUS:
            logger.info("Branch %s already exists in %s/%s", branch_name, owner, repo)
            return False
        raise BranchError(
            f"Failed to create branch ({err.status_code}): {err.remote_message or 'Unknown'}",
            status_code=err.status_code,
            remote_message=err.remote_message,
        ) from err

    logger.info("Created branch %s from %s in %s/%s", branch_name, from_branch, owner, repo)
    return True
