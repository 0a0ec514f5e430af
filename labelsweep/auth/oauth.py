"""OAuth 2.0 flow for Gmail API authentication."""

import logging
import os
from pathlib import Path

import requests
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build, Resource

from .credentials import (
    delete_credentials,
    load_credentials,
    refresh_if_needed,
    save_credentials,
)

logger = logging.getLogger(__name__)

# Sweeping needs label listing plus message modify (add label, drop INBOX).
SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.labels",
]

REVOKE_URL = "https://oauth2.googleapis.com/revoke"


def get_credentials_path() -> Path:
    """Get the path to the OAuth client credentials file."""
    return Path(os.getenv("GOOGLE_CREDENTIALS_PATH", "./credentials.json"))


def authenticate() -> Credentials:
    """
    Authenticate with Gmail API using OAuth 2.0.

    1. Try to load existing credentials from token file
    2. Refresh if expired
    3. Run OAuth flow if no valid credentials exist

    Returns:
        Valid Google OAuth credentials.

    Raises:
        FileNotFoundError: If credentials.json is not found.
    """
    creds = load_credentials()

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        try:
            return refresh_if_needed(creds)
        except RefreshError as e:
            logger.warning("Token refresh failed, re-running OAuth flow: %s", e)

    credentials_path = get_credentials_path()

    if not credentials_path.exists():
        raise FileNotFoundError(
            f"OAuth credentials file not found at {credentials_path}. "
            "Please download credentials.json from Google Cloud Console "
            "and place it in the project root."
        )

    logger.info("Starting OAuth flow with %s", credentials_path)
    flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
    creds = flow.run_local_server(port=0)

    save_credentials(creds)

    return creds


def get_gmail_service() -> Resource:
    """
    Get an authenticated Gmail API service.

    Raises:
        FileNotFoundError: If credentials.json is not found.
    """
    creds = authenticate()
    return build("gmail", "v1", credentials=creds)


def revoke_credentials() -> bool:
    """
    Revoke the current token with Google and delete it locally.

    Returns:
        True if a local token was deleted.
    """
    creds = load_credentials()

    if creds:
        try:
            requests.post(
                REVOKE_URL,
                params={"token": creds.token},
                headers={"content-type": "application/x-www-form-urlencoded"},
                timeout=10,
            )
        except requests.RequestException as e:
            # Remote revocation is best-effort; the local token still goes.
            logger.warning("Token revocation request failed: %s", e)

    return delete_credentials()
