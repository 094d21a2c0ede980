"""Exceptions raised by the Drive tree services."""

from __future__ import annotations

from typing import Any


class DriveError(Exception):
    """Base exception for Drive tree errors."""

    pass


class ProviderError(DriveError):
    """An error carrying the provider's code and message.

    Renders as ``"{code} {message}"``.
    """

    def __init__(self, code: int | str | None, message: str):
        super().__init__(f"{code} {message}" if code is not None else message)
        self.code = code
        self.message = message


class AuthorizationError(DriveError):
    """Raised when the interactive consent flow is denied or fails."""

    def __init__(self, payload: dict[str, Any]):
        super().__init__(payload.get("error", "authorization_failed"))
        self.payload = payload


class RefreshError(ProviderError):
    """Raised when silent token renewal fails."""

    pass


class ProfileFetchError(ProviderError):
    """Raised when the account profile cannot be fetched."""

    pass


class QueryError(ProviderError):
    """Raised when a logical listing query fails.

    ``refresh_error`` is set when the query failed because the credentials
    could not be renewed after a 401.
    """

    def __init__(
        self,
        code: int | str | None,
        message: str,
        refresh_error: RefreshError | None = None,
    ):
        super().__init__(code, message)
        self.refresh_error = refresh_error
        if refresh_error is not None:
            self.args = (f"Failed to refresh token: {self.args[0]}",)
