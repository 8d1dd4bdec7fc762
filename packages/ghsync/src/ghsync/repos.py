"""Repository listing."""

import logging

from .client import ApiClient
from .errors import RemoteApiError
from .models import Repository

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100
AFFILIATION = "owner,collaborator,organization_member"


def list_repositories(client: ApiClient, per_page: int = MAX_PER_PAGE) -> list[Repository]:
    """
    List repositories visible to the authenticated user, most recently pushed first.

    Args:
        client: Authenticated API client
        per_page: Page size, capped at 100

    Returns:
        List of repositories (first page only)
    """
    per_page = max(1, min(per_page, MAX_PER_PAGE))
    try:
        data = client.request(
            "GET",
            "/user/repos",
            params={"sort": "pushed", "per_page": per_page, "affiliation": AFFILIATION},
        )
    except RemoteApiError as err:
        raise RemoteApiError(
            f"Failed to list repos: {err.status_code}",
            status_code=err.status_code,
            remote_message=err.remote_message,
        ) from err

    repos = [Repository(**item) for item in data or []]
    logger.info("Listed %d repositories", len(repos))
    return repos
