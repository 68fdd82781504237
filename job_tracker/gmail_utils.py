"""
Gmail utility functions used by the message source.
Centralizes the Gmail API calls the pipeline relies on.
"""

import logging
import os.path
from typing import Any, Dict, List, Optional, Tuple

import httplib2
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

# Gmail API Scopes
SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]

# Default file paths
TOKEN_FILE = "token.json"
TOKEN_URI = "https://oauth2.googleapis.com/token"

logger = logging.getLogger(__name__)


def load_credentials(
    token_file: str = TOKEN_FILE, scopes: Optional[List[str]] = None
) -> Optional[Credentials]:
    """
    Loads stored OAuth credentials, refreshing them if they have expired.

    Args:
        token_file: Path to an authorized-user token file
        scopes: List of Gmail API scopes (defaults to SCOPES)

    Returns:
        Credentials, or None if no usable token is available
    """
    if scopes is None:
        scopes = SCOPES

    if not os.path.exists(token_file):
        logger.warning(f"Token file not found: {token_file}")
        return None

    try:
        creds = Credentials.from_authorized_user_file(token_file, scopes)
    except (ValueError, OSError) as e:
        logger.warning(f"Failed to load credentials from {token_file}: {e}")
        return None

    if not creds.valid and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
            logger.info("Credentials refreshed successfully")
        except Exception as e:
            logger.error(f"Failed to refresh credentials: {e}")
            return None

    return creds


def build_credentials(
    access_token: str,
    refresh_token: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    token_uri: str = TOKEN_URI,
) -> Credentials:
    """
    Wraps tokens obtained elsewhere into google-auth credentials.

    Args:
        access_token: OAuth access token
        refresh_token: Optional refresh token
        client_id: OAuth client ID (needed for refresh)
        client_secret: OAuth client secret (needed for refresh)
        token_uri: Token endpoint used for refresh

    Returns:
        Credentials object usable by the Gmail client
    """
    return Credentials(
        token=access_token,
        refresh_token=refresh_token,
        client_id=client_id,
        client_secret=client_secret,
        token_uri=token_uri,
        scopes=SCOPES,
    )


def get_gmail_client(credentials: Credentials) -> Resource:
    """
    Creates a Gmail API client for the given credentials.

    Args:
        credentials: Authorized google-auth credentials

    Returns:
        Gmail API client resource
    """
    return build("gmail", "v1", credentials=credentials, cache_discovery=False)


def create_authorized_http(credentials: Credentials) -> AuthorizedHttp:
    """
    Creates a dedicated authorized HTTP transport.

    httplib2 transports are not thread-safe, so each worker thread needs its own.
    """
    return AuthorizedHttp(credentials, http=httplib2.Http())


def list_messages(
    gmail: Resource,
    query: Optional[str] = None,
    max_results: Optional[int] = None,
    page_token: Optional[str] = None,
    include_spam_trash: bool = False,
) -> Tuple[List[dict], Optional[str]]:
    """
    Fetches one page of message references matching the given query.

    Args:
        gmail: Authenticated Gmail API client
        query: Gmail search query (e.g., "after:1700000000 before:1700086400")
        max_results: Maximum number of results per page
        page_token: Token for pagination
        include_spam_trash: Whether to include spam and trash messages

    Returns:
        Tuple of (list of {'id', 'threadId'} dictionaries, next page token or None)

    Raises:
        HttpError: If the API request fails
    """
    try:
        request_params = {"userId": "me", "includeSpamTrash": include_spam_trash}

        if query:
            request_params["q"] = query
        if max_results:
            request_params["maxResults"] = max_results
        if page_token:
            request_params["pageToken"] = page_token

        results = gmail.users().messages().list(**request_params).execute()
        messages = results.get("messages", [])
        next_token = results.get("nextPageToken") or None

        logger.debug(f"Listed {len(messages)} messages with query: {query}")
        return messages, next_token

    except HttpError as error:
        logger.error(f"Failed to list messages: {error}")
        raise


def get_message(
    gmail: Resource,
    message_id: str,
    format: str = "full",
    http: Optional[Any] = None,
) -> Dict[str, Any]:
    """
    Retrieves a single message resource.

    Args:
        gmail: Authenticated Gmail API client
        message_id: The ID of the message to retrieve
        format: Format for the message (minimal, full, raw, metadata)
        http: Optional transport to execute the request with

    Returns:
        The Gmail message resource dictionary

    Raises:
        HttpError: If the API request fails
    """
    try:
        request = gmail.users().messages().get(userId="me", id=message_id, format=format)
        if http is not None:
            return request.execute(http=http)  # type: ignore[no-any-return]
        return request.execute()  # type: ignore[no-any-return]

    except HttpError as error:
        logger.error(f"Failed to retrieve message {message_id}: {error}")
        raise
