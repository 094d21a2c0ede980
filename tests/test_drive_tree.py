"""Tests for DriveTreeService - listing, sorting and tree assembly."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from drive_fakes import FakeDrive, RoutedFakeDrive, file_entry, folder_entry, make_http_error, page
from drivetree.services.drive_errors import QueryError
from drivetree.services.drive_models import FileNode
from drivetree.services.drive_query import PaginatedQueryExecutor
from drivetree.services.drive_tree import (
    DriveTreeService,
    get_drive_tree_service,
    sort_nodes,
)


def make_service(credentials, drive: FakeDrive) -> DriveTreeService:
    return DriveTreeService(credentials, PaginatedQueryExecutor(credentials, drive=drive))


# =============================================================================
# Sorting Tests
# =============================================================================


class TestSortNodes:
    """Tests for child ordering."""

    def test_folders_first_then_name(self):
        nodes = [
            FileNode(id="b", name="b", is_folder=False),
            FileNode(id="a", name="a", is_folder=True),
            FileNode(id="c", name="c", is_folder=True),
        ]

        assert [n.id for n in sort_nodes(nodes)] == ["a", "c", "b"]

    def test_name_order_is_case_sensitive(self):
        nodes = [
            FileNode(id="1", name="apple"),
            FileNode(id="2", name="Banana"),
        ]

        assert [n.name for n in sort_nodes(nodes)] == ["Banana", "apple"]


# =============================================================================
# get_files Tests
# =============================================================================


class TestGetFiles:
    """Tests for DriveTreeService.get_files."""

    @pytest.mark.asyncio
    async def test_root_listing_uses_shared_or_root_filter(self, credentials):
        drive = FakeDrive(
            [
                page([file_entry("f1", "mine.pdf", ["root"]), file_entry("s1", "shared.pdf")]),
            ]
        )
        service = make_service(credentials, drive)

        children = await service.get_files()

        assert drive.queries == ["(sharedWithMe or 'root' in parents) and trashed = false"]
        assert {c.id for c in children} == {"f1", "s1"}
        assert service.root.children == children

    @pytest.mark.asyncio
    async def test_folder_listing_sorts_and_enriches(self, credentials):
        drive = FakeDrive(
            [
                page(
                    [
                        file_entry("b", "b", ["P"]),
                        folder_entry("a", "a", ["P"]),
                        folder_entry("c", "c", ["P"]),
                    ]
                ),
                page([folder_entry("x", "x", ["c"])]),
            ]
        )
        service = make_service(credentials, drive)
        parent = FileNode(id="P", name="Projects", is_folder=True)

        children = await service.get_files(parent)

        assert [c.id for c in children] == ["a", "c", "b"]
        assert [c.has_subfolders for c in children] == [False, True, False]
        assert [c.is_folder for c in children] == [True, True, False]
        assert parent.children is children
        assert drive.queries[0] == "'P' in parents and trashed = false"
        assert drive.queries[1].startswith("('a' in parents or 'c' in parents)")

    @pytest.mark.asyncio
    async def test_files_only_listing_makes_one_query(self, credentials):
        drive = FakeDrive([page([file_entry("f1", "one.pdf", ["P"])])])
        service = make_service(credentials, drive)

        await service.get_files(FileNode(id="P", name="P", is_folder=True))

        assert len(drive.list_requests) == 1

    @pytest.mark.asyncio
    async def test_children_are_not_loaded_until_listed(self, credentials):
        drive = FakeDrive([page([folder_entry("a", "a", ["P"])]), page([])])
        service = make_service(credentials, drive)
        parent = FileNode(id="P", name="P", is_folder=True)

        [child] = await service.get_files(parent)

        assert parent.is_loaded
        assert not child.is_loaded
        assert child.children is None

    @pytest.mark.asyncio
    async def test_relisting_is_structurally_equal(self, credentials):
        listing = [file_entry("f1", "one.pdf", ["P"]), folder_entry("d1", "docs", ["P"])]
        drive = FakeDrive([page(listing), page([]), page(listing), page([])])
        service = make_service(credentials, drive)
        parent = FileNode(id="P", name="P", is_folder=True)

        first = await service.get_files(parent)
        second = await service.get_files(parent)

        assert first == second
        assert parent.children is second

    @pytest.mark.asyncio
    async def test_failure_leaves_children_untouched(self, credentials):
        drive = FakeDrive([make_http_error(500, "Backend Error")])
        service = make_service(credentials, drive)
        parent = FileNode(id="P", name="P", is_folder=True, children=[FileNode(id="old", name="old")])
        existing = parent.children

        with pytest.raises(QueryError):
            await service.get_files(parent)

        assert parent.children is existing

    @pytest.mark.asyncio
    async def test_enrichment_failure_leaves_children_untouched(self, credentials):
        drive = FakeDrive(
            [
                page([folder_entry("a", "a", ["P"])]),
                make_http_error(403, "Rate Limit Exceeded"),
            ]
        )
        service = make_service(credentials, drive)
        parent = FileNode(id="P", name="P", is_folder=True)

        with pytest.raises(QueryError):
            await service.get_files(parent)

        assert parent.children is None


class TestNodeIndex:
    """Tests for find_node."""

    def test_root_is_indexed(self, credentials):
        service = DriveTreeService(credentials, MagicMock())

        assert service.find_node("root") is service.root
        assert service.root.name == "My Drive"
        assert service.root.is_folder

    @pytest.mark.asyncio
    async def test_listed_children_are_indexed(self, credentials):
        drive = FakeDrive([page([folder_entry("d1", "docs", ["root"])]), page([])])
        service = make_service(credentials, drive)

        [child] = await service.get_files()

        assert service.find_node("d1") is child
        assert service.find_node("missing") is None

    @pytest.mark.asyncio
    async def test_newest_node_wins(self, credentials):
        drive = FakeDrive(
            [
                page([file_entry("f1", "one.pdf", ["root"])]),
                page([file_entry("f1", "one.pdf", ["root"])]),
            ]
        )
        service = make_service(credentials, drive)

        await service.get_files()
        [second] = await service.get_files()

        assert service.find_node("f1") is second

    @pytest.mark.asyncio
    async def test_relisting_drops_replaced_subtree(self, credentials):
        """Test that ids under a re-listed folder resolve to nodes in the tree."""
        root_listing = [
            page([folder_entry("d1", "docs", ["root"])]),
            page([folder_entry("e1", "inner", ["d1"])]),
        ]
        drive = FakeDrive(
            root_listing
            + [page([folder_entry("e1", "inner", ["d1"])]), page([])]
            + root_listing
            + [page([folder_entry("e1", "inner", ["d1"])]), page([])]
            + [page([file_entry("f1", "report.pdf", ["e1"])])]
        )
        service = make_service(credentials, drive)

        await service.get_files()
        await service.get_files(service.find_node("d1"))
        await service.get_files()

        d1 = service.find_node("d1")
        assert d1 is service.root.children[0]
        assert d1.children is None
        assert service.find_node("e1") is None

        await service.get_files(d1)
        await service.get_files(service.find_node("e1"))

        assert service.root.children[0].children[0].children[0].id == "f1"
        assert service.find_node("f1") is service.root.children[0].children[0].children[0]

    @pytest.mark.asyncio
    async def test_relisting_keeps_node_listed_under_other_parent(self, credentials):
        """Test that a shared id stays indexed when the newer copy is elsewhere."""
        drive = FakeDrive(
            [
                page([file_entry("x", "shared.pdf", ["A"])]),
                page([file_entry("x", "shared.pdf", ["B"])]),
                page([]),
            ]
        )
        service = make_service(credentials, drive)
        folder_a = FileNode(id="A", name="A", is_folder=True)
        folder_b = FileNode(id="B", name="B", is_folder=True)

        await service.get_files(folder_a)
        [under_b] = await service.get_files(folder_b)
        assert await service.get_files(folder_a) == []

        assert service.find_node("x") is under_b
        assert under_b is folder_b.children[0]


class TestConcurrentListings:
    """Tests for independent listings running at the same time."""

    @pytest.mark.asyncio
    async def test_sibling_listings_keep_separate_state(self, credentials):
        drive = RoutedFakeDrive(
            {
                "A": [
                    page([file_entry("a1", "a1", ["A"])], next_token="ta"),
                    make_http_error(401, "Invalid Credentials"),
                    page([file_entry("a2", "a2", ["A"])]),
                ],
                "B": [
                    page([file_entry("b1", "b1", ["B"])], next_token="tb"),
                    page([file_entry("b2", "b2", ["B"])]),
                ],
            }
        )
        service = make_service(credentials, drive)
        folder_a = FileNode(id="A", name="A", is_folder=True)
        folder_b = FileNode(id="B", name="B", is_folder=True)

        children_a, children_b = await asyncio.gather(
            service.get_files(folder_a),
            service.get_files(folder_b),
        )

        credentials.refresh.assert_awaited_once()
        assert [c.id for c in children_a] == ["a1", "a2"]
        assert [c.id for c in children_b] == ["b1", "b2"]
        assert folder_a.children is children_a
        assert folder_b.children is children_b
        assert [r.params["pageToken"] for r in drive.requests_for("A")] == [None, "ta", "ta"]
        assert [r.params["pageToken"] for r in drive.requests_for("B")] == [None, "tb"]
        assert drive.requests_for("A")[-1].headers["authorization"] == "Bearer token-2"

    @pytest.mark.asyncio
    async def test_failure_in_one_listing_leaves_sibling_intact(self, credentials):
        drive = RoutedFakeDrive(
            {
                "A": [make_http_error(500, "Backend Error")],
                "B": [page([file_entry("b1", "b1", ["B"])])],
            }
        )
        service = make_service(credentials, drive)
        folder_a = FileNode(id="A", name="A", is_folder=True)
        folder_b = FileNode(id="B", name="B", is_folder=True)

        results = await asyncio.gather(
            service.get_files(folder_a),
            service.get_files(folder_b),
            return_exceptions=True,
        )

        assert isinstance(results[0], QueryError)
        assert [c.id for c in results[1]] == ["b1"]
        assert folder_a.children is None
        credentials.refresh.assert_not_awaited()


class TestAuthorize:
    """Tests for authorize delegation."""

    @pytest.mark.asyncio
    async def test_delegates_to_credential_manager(self, credentials):
        credentials.authorize = AsyncMock(return_value="profile")
        service = DriveTreeService(credentials, MagicMock())

        assert await service.authorize() == "profile"
        credentials.authorize.assert_awaited_once()


class TestGetDriveTreeService:
    """Tests for the process-wide service."""

    def test_returns_same_instance(self):
        assert get_drive_tree_service() is get_drive_tree_service()
