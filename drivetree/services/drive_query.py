"""Drive query composition and the paginated query executor."""

from __future__ import annotations

from typing import Iterable

import httplib2
from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from drivetree.core.config import settings
from drivetree.core.logging import get_logger
from drivetree.services.credentials import CredentialManager
from drivetree.services.drive_client import (
    execute_with_token,
    get_drive_resource,
    http_error_details,
)
from drivetree.services.drive_errors import QueryError, RefreshError
from drivetree.services.drive_models import FOLDER_MIME_TYPE, ROOT_ID, RemoteEntry

logger = get_logger(__name__)

LIST_FIELDS = "nextPageToken, files(id, name, mimeType, parents)"

UNAUTHORIZED = 401


# ========== Filter Composition ==========


def quote(value: str) -> str:
    """Quote a string literal for the Drive query language."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def in_parents(parent_id: str) -> str:
    """Match entries that have ``parent_id`` among their parents."""
    return f"{quote(parent_id)} in parents"


def children_filter(parent_id: str) -> str:
    """Base filter for listing the direct children of a folder."""
    return in_parents(parent_id)


def root_filter() -> str:
    """Base filter for the virtual root: shared-with-me items plus My Drive's top level."""
    return f"(sharedWithMe or {in_parents(ROOT_ID)})"


def subfolder_filter(parent_ids: Iterable[str]) -> str:
    """Match folders whose parents include any of ``parent_ids``."""
    any_parent = " or ".join(in_parents(pid) for pid in parent_ids)
    return f"({any_parent}) and mimeType = {quote(FOLDER_MIME_TYPE)}"


def exclude_trashed(expression: str) -> str:
    return f"{expression} and trashed = false"


# ========== Executor ==========


class PaginatedQueryExecutor:
    """Runs one logical query across every result page.

    A 401 on any page triggers one credential refresh followed by one retry of
    that same page. Pages already collected are kept across the retry.
    """

    def __init__(
        self,
        credentials: CredentialManager,
        drive: Resource | None = None,
        page_size: int | None = None,
    ):
        """Initialize the executor.

        Args:
            credentials: Credential manager supplying tokens and refreshes.
            drive: Drive API resource. Defaults to the shared resource.
            page_size: Entries requested per page. Defaults to settings.
        """
        self._credentials = credentials
        self._drive = drive
        self.page_size = page_size or settings.drive_page_size

    async def query(self, expression: str) -> list[RemoteEntry]:
        """Return every non-trashed entry matching ``expression``.

        Args:
            expression: Drive query filter expression.

        Returns:
            All matching entries, in the order the pages returned them.

        Raises:
            QueryError: If any page fails for a reason other than a 401 that
                a single refresh and retry resolves. Nothing is returned for
                pages fetched before the failure.
        """
        q = exclude_trashed(expression)
        entries: list[RemoteEntry] = []
        page_token: str | None = None
        retried = False
        pages = 0

        while True:
            try:
                response = await self._fetch_page(q, page_token)
            except HttpError as e:
                status, message = http_error_details(e)
                if status == UNAUTHORIZED and not retried:
                    logger.info("query_unauthorized_refreshing", page=pages + 1)
                    try:
                        await self._credentials.refresh()
                    except RefreshError as refresh_error:
                        logger.error(
                            "query_failed",
                            code=status,
                            error=message,
                            reason="token_refresh_failed",
                        )
                        raise QueryError(status, message, refresh_error=refresh_error) from refresh_error
                    retried = True
                    continue

                logger.error("query_failed", code=status, error=message, page=pages + 1)
                raise QueryError(status, message) from e
            except (OSError, httplib2.HttpLib2Error) as e:
                logger.error("query_failed", error=str(e), page=pages + 1)
                raise QueryError(None, str(e)) from e

            pages += 1
            retried = False
            entries.extend(RemoteEntry.model_validate(f) for f in response.get("files", []))

            page_token = response.get("nextPageToken")
            if not page_token:
                logger.debug("query_complete", pages=pages, entries=len(entries))
                return entries

    async def _fetch_page(self, q: str, page_token: str | None) -> dict:
        drive = self._drive or get_drive_resource()
        request = drive.files().list(
            q=q,
            fields=LIST_FIELDS,
            pageToken=page_token,
            pageSize=self.page_size,
        )
        response = await execute_with_token(request, self._credentials.token)
        logger.debug(
            "drive_page_fetched",
            continued=page_token is not None,
            entries=len(response.get("files", [])),
        )
        return response
