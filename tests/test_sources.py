"""Tests for virtual paths, file systems, and source resolution."""

from __future__ import annotations

import typing as typ

import pytest

from razor_pages.errors import TemplateNotFoundError
from razor_pages.sources import (
    DirectoryFileSystem,
    InMemoryFileSystem,
    SourceResolver,
    VirtualFileSystem,
    directory_ancestry,
    find_page_by_name,
    normalize_path,
)

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("views/Home.cshtml", "/views/Home.cshtml"),
        ("/views//Folder/../Home.cshtml", "/views/Home.cshtml"),
        ("\\views\\Home.cshtml", "/views/Home.cshtml"),
        ("/", "/"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_directory_ancestry_runs_from_nearest_to_root() -> None:
    assert directory_ancestry("/views/Folder/Nested.cshtml") == (
        "/views/Folder",
        "/views",
        "/",
    )
    assert directory_ancestry("/Top.cshtml") == ("/",)


def test_find_page_by_name() -> None:
    """Names match file stems case-insensitively, shallowest first."""
    paths = [
        "/views/Deep/Er/Home.cshtml",
        "/views/b/Home.cshtml",
        "/views/a/Home.cshtml",
        "/views/_Home.cshtml",
        "/views/Other.cshtml",
    ]
    assert find_page_by_name(paths, "home") == "/views/a/Home.cshtml"
    assert find_page_by_name(paths, "_Home") is None
    assert find_page_by_name(paths, "Missing") is None


class TestInMemoryFileSystem:
    """Dictionary-backed storage."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryFileSystem(), VirtualFileSystem)

    def test_add_replace_and_remove_notify_listeners(self) -> None:
        file_system = InMemoryFileSystem({"views/A.cshtml": "a"})
        changes: list[str] = []
        file_system.subscribe(changes.append)

        file_system.add_file("/views/A.cshtml", "a2")
        file_system.remove_file("/views/A.cshtml")
        file_system.remove_file("/views/A.cshtml")

        assert changes == ["/views/A.cshtml", "/views/A.cshtml"]
        assert not file_system.exists("/views/A.cshtml")

    def test_modification_token_changes_on_write(self) -> None:
        file_system = InMemoryFileSystem({"/views/A.cshtml": "a"})
        before = file_system.modified("/views/A.cshtml")
        file_system.add_file("/views/A.cshtml", "b")
        assert file_system.modified("/views/A.cshtml") != before
        assert file_system.read_text("/views/A.cshtml") == "b"

    def test_missing_files_raise(self) -> None:
        file_system = InMemoryFileSystem()
        with pytest.raises(FileNotFoundError):
            file_system.read_text("/views/A.cshtml")
        with pytest.raises(FileNotFoundError):
            file_system.modified("/views/A.cshtml")


class TestDirectoryFileSystem:
    """Disk-backed storage mounted at a virtual directory."""

    @pytest.fixture
    def file_system(self, tmp_path: Path) -> DirectoryFileSystem:
        root = tmp_path / "views"
        (root / "Folder").mkdir(parents=True)
        (root / "Home.cshtml").write_text("home", encoding="utf-8")
        (root / "Folder" / "Nested.cshtml").write_text("nested", encoding="utf-8")
        (root / "notes.txt").write_text("notes", encoding="utf-8")
        (tmp_path / "secret.cshtml").write_text("secret", encoding="utf-8")
        return DirectoryFileSystem(root, mount="/views")

    def test_lists_files_under_mount(self, file_system: DirectoryFileSystem) -> None:
        assert file_system.list_files() == [
            "/views/Folder/Nested.cshtml",
            "/views/Home.cshtml",
            "/views/notes.txt",
        ]

    def test_reads_mounted_files(self, file_system: DirectoryFileSystem) -> None:
        assert file_system.read_text("/views/Folder/Nested.cshtml") == "nested"
        assert file_system.exists("/views/Home.cshtml")

    def test_paths_outside_mount_are_absent(self, file_system: DirectoryFileSystem) -> None:
        assert not file_system.exists("/Home.cshtml")
        assert not file_system.exists("/views/../secret.cshtml")
        with pytest.raises(FileNotFoundError):
            file_system.read_text("/other/Home.cshtml")

    def test_poll_skips_files_deleted_after_listing(
        self,
        file_system: DirectoryFileSystem,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A file vanishing mid-poll is reported as removed, not raised."""
        notified: list[str] = []
        file_system.subscribe(notified.append)
        file_system.poll_changes()
        notified.clear()

        listed = file_system.list_files()
        (tmp_path / "views" / "Home.cshtml").unlink()
        monkeypatch.setattr(file_system, "list_files", lambda: listed)

        assert file_system.poll_changes() == ["/views/Home.cshtml"]
        assert notified == ["/views/Home.cshtml"]


class TestSourceResolver:
    """Resolution of logical page paths."""

    @pytest.fixture
    def resolver(self) -> SourceResolver:
        return SourceResolver(
            InMemoryFileSystem(
                {
                    "/views/Folder/Nested.cshtml": "nested",
                    "/views/readme.md": "docs",
                }
            )
        )

    def test_qualify_appends_extension(self, resolver: SourceResolver) -> None:
        assert resolver.qualify("views/Folder/Nested") == "/views/Folder/Nested.cshtml"
        assert resolver.qualify("/views/site.css") == "/views/site.css"

    def test_resolve_returns_source_and_ancestry(self, resolver: SourceResolver) -> None:
        source = resolver.resolve("/views/Folder/Nested")
        assert source.path == "/views/Folder/Nested.cshtml"
        assert source.text == "nested"
        assert source.ancestry == ("/views/Folder", "/views", "/")

    def test_missing_page(self, resolver: SourceResolver) -> None:
        with pytest.raises(TemplateNotFoundError) as excinfo:
            resolver.resolve("/views/Missing")
        assert excinfo.value.path == "/views/Missing.cshtml"
        assert isinstance(excinfo.value, LookupError)
        assert resolver.modified("/views/Missing") is None

    def test_page_paths_filter_by_extension(self, resolver: SourceResolver) -> None:
        assert resolver.page_paths() == ["/views/Folder/Nested.cshtml"]
        assert resolver.find_by_name("NESTED") == "/views/Folder/Nested.cshtml"
