"""Drive tree services."""

from drivetree.services.credentials import CredentialManager
from drivetree.services.drive_errors import (
    AuthorizationError,
    DriveError,
    ProfileFetchError,
    QueryError,
    RefreshError,
)
from drivetree.services.drive_models import FileNode, RemoteEntry, Session, UserProfile
from drivetree.services.drive_query import PaginatedQueryExecutor
from drivetree.services.drive_tree import DriveTreeService, get_drive_tree_service
from drivetree.services.folder_enrichment import check_subfolders

__all__ = [
    "AuthorizationError",
    "CredentialManager",
    "DriveError",
    "DriveTreeService",
    "FileNode",
    "PaginatedQueryExecutor",
    "ProfileFetchError",
    "QueryError",
    "RefreshError",
    "RemoteEntry",
    "Session",
    "UserProfile",
    "check_subfolders",
    "get_drive_tree_service",
]
