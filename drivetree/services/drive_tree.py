"""Lazy Drive folder tree.

The tree starts as a single virtual root. Each call to
:meth:`DriveTreeService.get_files` lists one folder, detects which of its
child folders have subfolders, and replaces that folder's children.
"""

from __future__ import annotations

from drivetree.core.logging import get_logger
from drivetree.services.credentials import CredentialManager
from drivetree.services.drive_models import ROOT_ID, ROOT_NAME, FileNode, RemoteEntry, UserProfile
from drivetree.services.drive_query import PaginatedQueryExecutor, children_filter, root_filter
from drivetree.services.folder_enrichment import check_subfolders

logger = get_logger(__name__)


def to_file_node(entry: RemoteEntry) -> FileNode:
    return FileNode(
        id=entry.id,
        name=entry.name,
        is_folder=entry.is_folder,
        has_subfolders=entry.has_subfolders,
    )


def sort_nodes(nodes: list[FileNode]) -> list[FileNode]:
    """Folders first, then by name (case-sensitive)."""
    return sorted(nodes, key=lambda node: (not node.is_folder, node.name))


class DriveTreeService:
    """Builds the folder tree one listing at a time."""

    def __init__(
        self,
        credentials: CredentialManager | None = None,
        executor: PaginatedQueryExecutor | None = None,
    ):
        """Initialize the tree service.

        Args:
            credentials: Credential manager for this process.
            executor: Query executor. Built from ``credentials`` when omitted.
        """
        self.credentials = credentials or CredentialManager()
        self.executor = executor or PaginatedQueryExecutor(self.credentials)
        self.root = FileNode(id=ROOT_ID, name=ROOT_NAME, is_folder=True)
        self._nodes: dict[str, FileNode] = {ROOT_ID: self.root}

    async def authorize(self) -> UserProfile:
        """Run the consent flow through the credential manager."""
        return await self.credentials.authorize()

    def find_node(self, node_id: str) -> FileNode | None:
        """Look up a node that has been attached to the tree."""
        return self._nodes.get(node_id)

    async def get_files(self, parent: FileNode | None = None) -> list[FileNode]:
        """List a folder and attach the result as its children.

        Args:
            parent: Folder to list. ``None`` lists the virtual root, which
                combines My Drive's top level with items shared with the user.

        Returns:
            The sorted child nodes, also assigned to ``parent.children``.

        Raises:
            QueryError: If either the listing or the subfolder check fails.
                ``parent.children`` is left untouched in that case.
        """
        target = parent if parent is not None else self.root
        expression = root_filter() if parent is None else children_filter(target.id)

        entries = await self.executor.query(expression)
        annotated = await check_subfolders(entries, self.executor.query)

        children = sort_nodes([to_file_node(entry) for entry in annotated])
        if target.children is not None:
            self._unindex(target.children)
        target.children = children

        for child in children:
            self._nodes[child.id] = child

        logger.info(
            "folder_listed",
            parent_id=target.id,
            children=len(children),
            folders=sum(1 for c in children if c.is_folder),
        )
        return children

    def _unindex(self, nodes: list[FileNode]) -> None:
        """Drop a replaced subtree from the index.

        Entries that already point at a node elsewhere in the tree are kept.
        """
        for node in nodes:
            if self._nodes.get(node.id) is node:
                del self._nodes[node.id]
            if node.children:
                self._unindex(node.children)


# Global service instance
_service: DriveTreeService | None = None


def get_drive_tree_service() -> DriveTreeService:
    """Get or create the process-wide tree service."""
    global _service
    if _service is None:
        _service = DriveTreeService()
    return _service
