"""GitHub OAuth web flow helpers."""

import logging
import secrets
from urllib.parse import urlencode

import httpx

from .client import ApiClient, remote_message
from .config import Settings
from .errors import ConfigurationError, OAuthError, RemoteApiError
from .models import GitHubUser, OAuthToken

logger = logging.getLogger(__name__)

OAUTH_SCOPE = "repo user:email"
STATE_BYTES = 32


def build_authorize_url(settings: Settings) -> tuple[str, str]:
    """
    Build the GitHub authorization URL.

    Returns:
        (url, state); the caller keeps ``state`` to validate the callback
    """
    if not settings.client_id:
        raise ConfigurationError("GITHUB_CLIENT_ID not configured")
    if not settings.callback_url:
        raise ConfigurationError("GITHUB_CALLBACK_URL not configured")

    state = secrets.token_hex(STATE_BYTES)
    query = urlencode({
        "client_id": settings.client_id,
        "redirect_uri": settings.callback_url,
        "scope": OAUTH_SCOPE,
        "state": state,
    })
    return f"{settings.oauth_base_url.rstrip('/')}/login/oauth/authorize?{query}", state


def exchange_code(
    settings: Settings,
    code: str,
    transport: httpx.BaseTransport | None = None,
) -> OAuthToken:
    """Exchange an authorization code for an access token."""
    if not settings.client_id or not settings.client_secret:
        raise ConfigurationError("GitHub OAuth credentials not configured")

    url = f"{settings.oauth_base_url.rstrip('/')}/login/oauth/access_token"
    logger.info("Exchanging OAuth code")
    with httpx.Client(timeout=settings.timeout, transport=transport) as http:
        response = http.post(
            url,
            headers={"Accept": "application/json"},
            json={
                "client_id": settings.client_id,
                "client_secret": settings.client_secret,
                "code": code,
            },
        )
    if not response.is_success:
        raise RemoteApiError(
            f"GitHub token exchange failed: {response.status_code}",
            status_code=response.status_code,
            remote_message=remote_message(response),
        )

    data = response.json()
    if data.get("error"):
        raise OAuthError(f"GitHub OAuth error: {data.get('error_description') or data['error']}")
    return OAuthToken(**data)


def fetch_user(client: ApiClient) -> GitHubUser:
    """Fetch the authenticated user's profile."""
    try:
        data = client.request("GET", "/user")
    except RemoteApiError as err:
        raise RemoteApiError(
            f"GitHub user fetch failed: {err.status_code}",
            status_code=err.status_code,
            remote_message=err.remote_message,
        ) from err
    return GitHubUser(**data)


def fetch_verified_email(client: ApiClient) -> str | None:
    """
    Return the user's primary verified email, else any verified one.

    Unverified addresses are never returned. API failures yield None.
    """
    try:
        emails = client.request("GET", "/user/emails") or []
    except RemoteApiError as err:
        logger.debug("Email lookup failed (%s)", err.status_code)
        return None

    verified = [e for e in emails if e.get("verified")]
    for entry in verified:
        if entry.get("primary"):
            return entry["email"]
    return verified[0]["email"] if verified else None
