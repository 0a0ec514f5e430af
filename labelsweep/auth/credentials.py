"""OAuth token storage for the Gmail API."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)


def get_token_path() -> Path:
    """Get the path for storing OAuth tokens."""
    path = Path(os.getenv("TOKEN_PATH", "./data/credentials/token.json"))
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def load_credentials() -> Optional[Credentials]:
    """
    Load OAuth credentials from the token file.

    Returns:
        Credentials object if a readable token exists, None otherwise.
    """
    token_path = get_token_path()

    if not token_path.exists():
        return None

    try:
        return Credentials.from_authorized_user_file(str(token_path))
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("Ignoring unreadable token file %s: %s", token_path, e)
        return None


def save_credentials(creds: Credentials) -> None:
    """Write credentials to the token file."""
    token_path = get_token_path()
    token_path.write_text(creds.to_json(), encoding="utf-8")
    logger.debug("Saved OAuth token to %s", token_path)


def refresh_if_needed(creds: Credentials) -> Credentials:
    """
    Refresh credentials if they are expired.

    Raises:
        google.auth.exceptions.RefreshError: If refresh fails.
    """
    if creds.expired and creds.refresh_token:
        logger.debug("Refreshing expired OAuth token")
        creds.refresh(Request())
        save_credentials(creds)

    return creds


def delete_credentials() -> bool:
    """
    Delete stored credentials.

    Returns:
        True if credentials were deleted, False if they didn't exist.
    """
    token_path = get_token_path()

    if token_path.exists():
        token_path.unlink()
        return True

    return False
