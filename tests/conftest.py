"""Pytest configuration and fixtures.

Drive calls are replayed from scripted responses (see ``drive_fakes``), so no
test touches the network or needs real OAuth credentials.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from drivetree.services import drive_client, drive_tree


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop process-wide instances so each test starts clean."""
    drive_client._pacer = None
    drive_client._resource = None
    drive_tree._service = None
    yield
    drive_client._pacer = None
    drive_client._resource = None
    drive_tree._service = None


@pytest.fixture
def credentials() -> MagicMock:
    """Credential manager double whose refresh rotates the token."""
    manager = MagicMock()
    manager.token = "token-1"
    manager.authorized = True

    async def rotate() -> None:
        manager.token = "token-2"

    manager.refresh = AsyncMock(side_effect=rotate)
    return manager
