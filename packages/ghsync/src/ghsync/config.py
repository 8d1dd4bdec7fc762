"""Runtime settings for the GitHub sync pipeline."""

import logging
import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_OAUTH_URL = "https://github.com"
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_BLOB_CONCURRENCY = 8


class Settings(BaseModel):
    """Settings for ciphers, clients and the OAuth flow."""

    encryption_key: str | None = Field(default=None, repr=False)
    api_base_url: str = DEFAULT_API_URL
    oauth_base_url: str = DEFAULT_OAUTH_URL
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    blob_concurrency: int = Field(default=DEFAULT_BLOB_CONCURRENCY, ge=1)
    client_id: str | None = None
    client_secret: str | None = Field(default=None, repr=False)
    callback_url: str | None = None

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Read settings from environment variables.

        Args:
            load_env_file: Load a ``.env`` file first (existing variables win)

        Returns:
            Settings populated from the environment
        """
        if load_env_file:
            load_dotenv(find_dotenv(usecwd=True))

        values: dict[str, object] = {
            "encryption_key": os.environ.get("ENCRYPTION_KEY"),
            "client_id": os.environ.get("GITHUB_CLIENT_ID"),
            "client_secret": os.environ.get("GITHUB_CLIENT_SECRET"),
            "callback_url": os.environ.get("GITHUB_CALLBACK_URL"),
        }
        if os.environ.get("GITHUB_API_URL"):
            values["api_base_url"] = os.environ["GITHUB_API_URL"]
        if os.environ.get("GITHUB_OAUTH_URL"):
            values["oauth_base_url"] = os.environ["GITHUB_OAUTH_URL"]
        if os.environ.get("GHSYNC_TIMEOUT"):
            values["timeout"] = os.environ["GHSYNC_TIMEOUT"]
        if os.environ.get("GHSYNC_BLOB_CONCURRENCY"):
            values["blob_concurrency"] = os.environ["GHSYNC_BLOB_CONCURRENCY"]

        settings = cls(**values)
        logger.debug(
            "Settings loaded: api=%s timeout=%.1f blob_concurrency=%d",
            settings.api_base_url, settings.timeout, settings.blob_concurrency,
        )
        return settings
