"""Credential manager: OAuth consent, silent token refresh and profile fetch.

The manager owns the process-wide :class:`Session`. It is the only component
that writes the bearer token; everything else reads a snapshot through
:attr:`CredentialManager.token`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import google.auth.exceptions
from google.auth.transport.requests import Request as GoogleRequest
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from drivetree.core.config import settings
from drivetree.core.logging import get_logger
from drivetree.services.drive_client import (
    execute_with_token,
    get_drive_resource,
    http_error_details,
)
from drivetree.services.drive_errors import (
    AuthorizationError,
    ProfileFetchError,
    RefreshError,
)
from drivetree.services.drive_models import Session, StorageQuota, UserProfile

logger = get_logger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

PROFILE_FIELDS = "user/*,storageQuota/*"

ConsentFlow = Callable[[], Credentials]


class CredentialManager:
    """Owns the bearer token and authorization state for one process."""

    def __init__(
        self,
        session: Session | None = None,
        consent_flow: ConsentFlow | None = None,
        drive: Resource | None = None,
    ):
        """Initialize the credential manager.

        Args:
            session: Session state to manage. A fresh unauthenticated session
                is created when omitted.
            consent_flow: Blocking callable that runs the interactive consent
                and returns OAuth credentials. Defaults to the installed-app
                flow with a local redirect server.
            drive: Drive API resource used for the profile call.
        """
        self.session = session or Session()
        self._consent_flow = consent_flow
        self._drive = drive
        self._credentials: Credentials | None = None

    @property
    def token(self) -> str | None:
        """Snapshot of the current bearer token."""
        return self.session.token

    @property
    def authorized(self) -> bool:
        return self.session.authorized

    # ========== Interactive Authorization ==========

    async def authorize(self) -> UserProfile:
        """Run the interactive consent flow and load the user profile.

        Returns:
            The profile of the account that granted access.

        Raises:
            AuthorizationError: If consent is denied, fails, or OAuth is not
                configured.
            ProfileFetchError: If the profile call fails after a successful
                consent. The new token is kept in that case.
        """
        if self._consent_flow is None and not settings.google_oauth_configured:
            self.session.authorized = False
            raise AuthorizationError(
                {
                    "error": "oauth_not_configured",
                    "description": "Set DRIVETREE_GOOGLE_CLIENT_ID and DRIVETREE_GOOGLE_CLIENT_SECRET",
                }
            )

        logger.info("authorization_started")
        try:
            credentials = await asyncio.to_thread(self._consent_flow or self._run_installed_app_flow)
        except (OAuth2Error, google.auth.exceptions.GoogleAuthError, OSError, ValueError, Warning) as e:
            self.session.authorized = False
            payload = self._error_payload(e)
            logger.warning("authorization_failed", error=payload["error"])
            raise AuthorizationError(payload) from e

        if not credentials or not credentials.token:
            self.session.authorized = False
            logger.warning("authorization_failed", error="no_token")
            raise AuthorizationError(
                {"error": "no_token", "description": "Consent flow returned no access token"}
            )

        self._credentials = credentials
        self.session.authorized = True
        self.session.token = credentials.token
        logger.info("authorization_succeeded", has_refresh_token=bool(credentials.refresh_token))

        return await self.get_user_profile()

    def _run_installed_app_flow(self) -> Credentials:
        """Run the installed-app consent flow with a local redirect server."""
        flow = InstalledAppFlow.from_client_config(
            {
                "installed": {
                    "client_id": settings.google_client_id,
                    "client_secret": settings.google_client_secret,
                    "auth_uri": GOOGLE_AUTH_URI,
                    "token_uri": GOOGLE_TOKEN_URI,
                }
            },
            scopes=settings.google_scopes,
        )
        return flow.run_local_server(
            port=settings.google_oauth_port,
            open_browser=settings.google_open_browser,
            access_type="offline",
            prompt="consent",
        )

    @staticmethod
    def _error_payload(error: Exception) -> dict[str, Any]:
        """Build the provider error payload for a failed consent."""
        if isinstance(error, OAuth2Error):
            return {"error": error.error, "description": error.description}
        if isinstance(error, Warning):
            # oauthlib raises a bare Warning when fewer scopes were granted than requested
            return {"error": "scope_changed", "description": str(error)}
        return {"error": type(error).__name__, "description": str(error)}

    # ========== Silent Refresh ==========

    async def refresh(self) -> None:
        """Renew the access token without user interaction.

        Leaves ``authorized`` unchanged whatever the outcome.

        Raises:
            RefreshError: If there is no grant to refresh or renewal fails.
        """
        if self._credentials is None:
            raise RefreshError("no_grant", "No authorization grant to refresh")

        logger.info("token_refresh_started")
        try:
            await asyncio.to_thread(self._credentials.refresh, GoogleRequest())
        except google.auth.exceptions.RefreshError as e:
            code, message = self._refresh_error_details(e)
            logger.warning("token_refresh_failed", code=code, error=message)
            raise RefreshError(code, message) from e
        except google.auth.exceptions.TransportError as e:
            logger.warning("token_refresh_failed", code="transport_error", error=str(e))
            raise RefreshError("transport_error", str(e)) from e

        self.session.token = self._credentials.token
        logger.info("token_refreshed")

    @staticmethod
    def _refresh_error_details(error: google.auth.exceptions.RefreshError) -> tuple[str, str]:
        """Pull the token endpoint's error code and description, if present."""
        message = str(error.args[0]) if error.args else "Token refresh failed"
        if len(error.args) > 1 and isinstance(error.args[1], dict):
            body = error.args[1]
            return str(body.get("error", "refresh_failed")), str(
                body.get("error_description", message)
            )
        return "refresh_failed", message

    # ========== Profile ==========

    async def get_user_profile(self) -> UserProfile:
        """Fetch the account's display name, email, and storage quota.

        Returns:
            The stored user profile.

        Raises:
            ProfileFetchError: If the API call fails.
        """
        drive = self._drive or get_drive_resource()
        request = drive.about().get(fields=PROFILE_FIELDS)

        try:
            response = await execute_with_token(request, self.token)
        except HttpError as e:
            code, message = http_error_details(e)
            logger.error("profile_fetch_failed", code=code, error=message)
            raise ProfileFetchError(code, message) from e

        user = response.get("user", {})
        quota = response.get("storageQuota", {})
        profile = UserProfile(
            name=user.get("displayName"),
            email=user.get("emailAddress"),
            storage=StorageQuota(
                limit=quota.get("limit"),
                usage=quota.get("usage", 0),
                usage_in_drive=quota.get("usageInDrive", 0),
                usage_in_drive_trash=quota.get("usageInDriveTrash", 0),
            ),
        )
        self.session.user = profile
        logger.info("profile_fetched", email=profile.email)
        return profile
