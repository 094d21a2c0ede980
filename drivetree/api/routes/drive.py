"""Google Drive tree API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from drivetree.core.config import settings
from drivetree.core.logging import get_logger
from drivetree.schemas.drive import AuthStatusResponse, FileListResponse
from drivetree.services.drive_errors import AuthorizationError, ProfileFetchError, QueryError
from drivetree.services.drive_models import FileNode, UserProfile
from drivetree.services.drive_tree import DriveTreeService, get_drive_tree_service

logger = get_logger(__name__)

router = APIRouter(prefix="/drive", tags=["drive"])


@router.get("/status", response_model=AuthStatusResponse)
async def get_status(
    service: DriveTreeService = Depends(get_drive_tree_service),
) -> AuthStatusResponse:
    """Get OAuth configuration and session authorization state."""
    session = service.credentials.session
    return AuthStatusResponse(
        configured=settings.google_oauth_configured,
        authorized=session.authorized,
        user=session.user,
    )


@router.post("/authorize", response_model=UserProfile)
async def authorize(
    service: DriveTreeService = Depends(get_drive_tree_service),
) -> UserProfile:
    """Run the interactive consent flow.

    Blocks until the user completes or abandons consent in the browser.
    """
    try:
        return await service.authorize()
    except AuthorizationError as e:
        raise HTTPException(status_code=401, detail=e.payload)
    except ProfileFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/files", response_model=FileListResponse)
async def list_files(
    parent_id: str | None = Query(default=None, description="Folder to list; omit for the root"),
    service: DriveTreeService = Depends(get_drive_tree_service),
) -> FileListResponse:
    """List the children of a folder and attach them to the tree.

    Only the root and folders returned by an earlier listing can be expanded.
    """
    if not service.credentials.authorized:
        raise HTTPException(status_code=401, detail="Not authorized with Google Drive")

    parent: FileNode | None = None
    if parent_id is not None:
        parent = service.find_node(parent_id)
        if parent is None:
            raise HTTPException(status_code=404, detail=f"Unknown node: {parent_id}")
        if not parent.is_folder:
            raise HTTPException(status_code=400, detail=f"Not a folder: {parent_id}")

    try:
        items = await service.get_files(parent)
    except QueryError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return FileListResponse(
        parent_id=parent.id if parent is not None else service.root.id,
        items=items,
        total=len(items),
    )


@router.get("/tree", response_model=FileNode)
async def get_tree(
    service: DriveTreeService = Depends(get_drive_tree_service),
) -> FileNode:
    """Return the tree as loaded so far, starting at the virtual root."""
    return service.root
