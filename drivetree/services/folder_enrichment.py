"""Subfolder detection for listed folders.

Listing a folder only tells us which children are folders, not whether those
folders contain folders themselves. One extra query over all candidate ids
answers that for the whole batch.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from drivetree.core.logging import get_logger
from drivetree.services.drive_models import RemoteEntry
from drivetree.services.drive_query import subfolder_filter

logger = get_logger(__name__)

QueryFn = Callable[[str], Awaitable[list[RemoteEntry]]]


async def check_subfolders(entries: list[RemoteEntry], query: QueryFn) -> list[RemoteEntry]:
    """Annotate folder entries that contain at least one folder.

    Args:
        entries: Entries from the primary listing.
        query: Paginated query capability, called at most once.

    Returns:
        The entries in their original order, with ``has_subfolders`` set on
        every folder that has a folder child.

    Raises:
        QueryError: If the secondary query fails.
    """
    candidates = {entry.id for entry in entries if entry.is_folder}
    if not candidates:
        return entries

    subfolders = await query(subfolder_filter(sorted(candidates)))

    with_subfolders: set[str] = set()
    for subfolder in subfolders:
        with_subfolders.update(p for p in subfolder.parents if p in candidates)

    logger.debug(
        "subfolders_checked",
        candidates=len(candidates),
        with_subfolders=len(with_subfolders),
    )

    return [
        entry.model_copy(update={"has_subfolders": True}) if entry.id in with_subfolders else entry
        for entry in entries
    ]
