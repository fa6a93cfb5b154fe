"""
OAuth session for the Drive API.

Runs the installed-app consent flow once and keeps the refresh token in a
small JSON cache next to the client secrets, in the same ``authorized_user``
format the Google client libraries read.
"""
import json
import os
from typing import Optional, Sequence

import structlog
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .config import Settings
from .crypto import decrypt_token, is_encrypted, wrap_cache
from ..utils.errors import AuthenticationError, ConfigurationError

logger = structlog.get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/drive.file",
]


def load_saved_credentials(
    token_path: str,
    scopes: Sequence[str] = SCOPES,
    key_b64: Optional[str] = None,
) -> Optional[Credentials]:
    """Return cached credentials, or None when there is no usable cache."""
    try:
        with open(token_path, "r") as fh:
            cache = json.load(fh)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable token cache", path=token_path, error=str(exc))
        return None

    if is_encrypted(cache):
        try:
            plaintext = decrypt_token(cache.get("payload"), key_b64)
        except ConfigurationError as exc:
            logger.warning("Ignoring encrypted token cache without a usable key", path=token_path, error=exc.message)
            return None
        if plaintext is None:
            logger.warning("Ignoring token cache that could not be decrypted", path=token_path)
            return None
        try:
            cache = json.loads(plaintext)
        except ValueError as exc:
            logger.warning("Ignoring malformed token cache", path=token_path, error=str(exc))
            return None

    try:
        return Credentials.from_authorized_user_info(cache, list(scopes))
    except ValueError as exc:
        logger.warning("Ignoring malformed token cache", path=token_path, error=str(exc))
        return None


def _read_client_config(credentials_path: str) -> dict:
    try:
        with open(credentials_path, "r") as fh:
            keys = json.load(fh)
    except FileNotFoundError:
        raise ConfigurationError(
            f"OAuth client secrets not found at {credentials_path}",
            setting="DH_CREDENTIALS_PATH",
        )
    except ValueError as exc:
        raise ConfigurationError(
            f"OAuth client secrets at {credentials_path} are not valid JSON: {exc}",
            setting="DH_CREDENTIALS_PATH",
        )
    key = keys.get("installed") or keys.get("web")
    if not key:
        raise ConfigurationError(
            f"{credentials_path} has neither an 'installed' nor a 'web' section",
            setting="DH_CREDENTIALS_PATH",
        )
    return key


def save_credentials(
    creds: Credentials,
    credentials_path: str,
    token_path: str,
    key_b64: Optional[str] = None,
) -> None:
    """Persist the refresh token so later runs skip the consent screen."""
    key = _read_client_config(credentials_path)
    payload = json.dumps({
        "type": "authorized_user",
        "client_id": key.get("client_id"),
        "client_secret": key.get("client_secret"),
        "refresh_token": creds.refresh_token,
    })
    if key_b64:
        payload = wrap_cache(payload, key_b64)

    fd = os.open(token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as fh:
        fh.write(payload)
    logger.info("Saved token cache", path=token_path, encrypted=bool(key_b64))


def authenticate(scopes: Sequence[str], credentials_path: str, port: int = 0) -> Credentials:
    """Run the browser consent flow against the local redirect server."""
    if not os.path.exists(credentials_path):
        raise ConfigurationError(
            f"OAuth client secrets not found at {credentials_path}",
            setting="DH_CREDENTIALS_PATH",
        )
    flow = InstalledAppFlow.from_client_secrets_file(credentials_path, list(scopes))
    return flow.run_local_server(port=port)


def authorize(settings: Settings) -> Credentials:
    creds = load_saved_credentials(settings.token_path, SCOPES, settings.token_encryption_key)
    if creds is not None:
        if creds.valid:
            return creds
        try:
            creds.refresh(Request())
            logger.debug("Refreshed cached credentials")
            return creds
        except RefreshError as exc:
            logger.warning("Cached token was rejected, running consent flow again", error=str(exc))
        except TransportError as exc:
            raise AuthenticationError(
                "Could not reach Google to refresh the access token",
                details={"original_error": str(exc)},
            ) from exc

    logger.info("No usable token cache, starting consent flow", credentials_path=settings.credentials_path)
    creds = authenticate(SCOPES, settings.credentials_path, settings.oauth_port)
    if creds.refresh_token:
        save_credentials(creds, settings.credentials_path, settings.token_path, settings.token_encryption_key)
    else:
        logger.warning("Consent flow returned no refresh token, nothing cached")
    return creds
