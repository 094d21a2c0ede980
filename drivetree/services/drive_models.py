"""Data models for Drive listings, the in-memory tree, and the session."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

# The implicit top of "My Drive"; it has no listing entry of its own
ROOT_ID = "root"
ROOT_NAME = "My Drive"


class RemoteEntry(BaseModel):
    """A raw record from the Drive files.list endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    mime_type: str = Field(alias="mimeType")
    parents: list[str] = Field(default_factory=list)
    has_subfolders: bool = False

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


class FileNode(BaseModel):
    """A file or folder in the in-memory tree.

    ``children`` stays ``None`` until a listing of this node succeeds. After
    that it holds the complete, sorted child list as of the last fetch.
    """

    id: str
    name: str
    is_folder: bool = False
    has_subfolders: bool = False
    children: list[FileNode] | None = None

    @property
    def is_loaded(self) -> bool:
        return self.children is not None


class StorageQuota(BaseModel):
    """Drive storage quota in bytes. ``limit`` is absent for unlimited accounts."""

    limit: int | None = None
    usage: int = 0
    usage_in_drive: int = 0
    usage_in_drive_trash: int = 0


class UserProfile(BaseModel):
    """Account details fetched after authorization."""

    name: str | None = None
    email: str | None = None
    storage: StorageQuota = Field(default_factory=StorageQuota)


class Session(BaseModel):
    """Process-wide authorization state.

    Only the credential manager writes to it.
    """

    authorized: bool = False
    token: str | None = None
    user: UserProfile | None = None
