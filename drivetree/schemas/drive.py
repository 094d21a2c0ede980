"""Drive API schemas."""

from __future__ import annotations

from pydantic import BaseModel

from drivetree.services.drive_models import FileNode, UserProfile


class AuthStatusResponse(BaseModel):
    """Authorization status response."""

    configured: bool
    authorized: bool
    user: UserProfile | None = None


class FileListResponse(BaseModel):
    """Children of one listed folder."""

    parent_id: str
    items: list[FileNode]
    total: int
