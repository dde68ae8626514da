"""Template source resolution over a virtual file system.

Pages are addressed by absolute, ``/``-separated virtual paths such as
``/views/Folder/Nested.cshtml``. A :class:`SourceResolver` maps those paths to
source text, a modification token, and the page's directory ancestry, backed
by any object implementing :class:`VirtualFileSystem`. Two file systems ship
with the package: :class:`InMemoryFileSystem` for programmatic templates and
tests, and :class:`DirectoryFileSystem` for a views folder on disk.

Example
-------
>>> from razor_pages.sources import InMemoryFileSystem, SourceResolver
>>> fs = InMemoryFileSystem()
>>> fs.add_file("/views/Home.cshtml", "Hello @Model.Name!")
>>> SourceResolver(fs).resolve("/views/Home.cshtml").ancestry
('/views', '/')
"""

from __future__ import annotations

import dataclasses as dc
import logging
import posixpath
import threading
import typing as typ
from pathlib import Path

from .errors import TemplateNotFoundError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)

ChangeListener = typ.Callable[[str], None]


def normalize_path(path: str) -> str:
    """Return ``path`` as an absolute, normalized virtual path."""
    return posixpath.normpath("/" + path.replace("\\", "/").lstrip("/"))


def directory_ancestry(path: str) -> tuple[str, ...]:
    """Return the directories containing ``path``, nearest first, ending at ``/``.

    Examples
    --------
    >>> directory_ancestry("/views/Folder/Nested.cshtml")
    ('/views/Folder', '/views', '/')
    """
    directory = posixpath.dirname(normalize_path(path))
    ancestry = [directory]
    while directory != "/":
        directory = posixpath.dirname(directory)
        ancestry.append(directory)
    return tuple(ancestry)


def find_page_by_name(paths: cabc.Iterable[str], name: str) -> str | None:
    """Return the page in ``paths`` whose file stem matches ``name``.

    Matching ignores case and skips ``_``-prefixed files such as layouts. The
    shallowest match wins; ties break alphabetically.

    Examples
    --------
    >>> find_page_by_name(["/views/a/Nested.cshtml", "/views/_Layout.cshtml"], "nested")
    '/views/a/Nested.cshtml'
    """
    wanted = name.casefold()
    matches = [
        path
        for path in paths
        if not posixpath.basename(path).startswith("_")
        and posixpath.splitext(posixpath.basename(path))[0].casefold() == wanted
    ]
    if not matches:
        return None
    return min(matches, key=lambda path: (path.count("/"), path))


@dc.dataclass(frozen=True, slots=True)
class TemplateSource:
    """Source text and metadata for one resolved page."""

    path: str
    text: str
    modified: float
    ancestry: tuple[str, ...]


@typ.runtime_checkable
class VirtualFileSystem(typ.Protocol):
    """Storage capability consumed by :class:`SourceResolver`."""

    def exists(self, path: str) -> bool:
        """Return whether a file is stored at ``path``."""
        ...

    def read_text(self, path: str) -> str:
        """Return the file text or raise :class:`FileNotFoundError`."""
        ...

    def modified(self, path: str) -> float:
        """Return an opaque token that changes whenever the file changes."""
        ...

    def list_files(self) -> cabc.Iterable[str]:
        """Yield the virtual path of every stored file."""
        ...

    def subscribe(self, listener: ChangeListener) -> None:
        """Register ``listener`` for change notifications carrying a path."""
        ...


class _ChangeNotifier:
    """Fan out change notifications to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _notify(self, path: str) -> None:
        for listener in list(self._listeners):
            listener(path)


class InMemoryFileSystem(_ChangeNotifier):
    """Thread-safe dictionary-backed file system."""

    def __init__(self, files: cabc.Mapping[str, str] | None = None) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._files: dict[str, tuple[str, int]] = {}
        self._revision = 0
        for path, text in (files or {}).items():
            self.add_file(path, text)

    def add_file(self, path: str, text: str) -> None:
        """Store ``text`` at ``path``, replacing any previous content."""
        path = normalize_path(path)
        with self._lock:
            self._revision += 1
            self._files[path] = (text, self._revision)
        self._notify(path)

    def remove_file(self, path: str) -> None:
        """Delete the file at ``path`` if it exists."""
        path = normalize_path(path)
        with self._lock:
            removed = self._files.pop(path, None)
        if removed is not None:
            self._notify(path)

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self._files

    def read_text(self, path: str) -> str:
        try:
            return self._files[normalize_path(path)][0]
        except KeyError as exc:
            raise FileNotFoundError(path) from exc

    def modified(self, path: str) -> float:
        try:
            return float(self._files[normalize_path(path)][1])
        except KeyError as exc:
            raise FileNotFoundError(path) from exc

    def list_files(self) -> list[str]:
        with self._lock:
            return sorted(self._files)


class DirectoryFileSystem(_ChangeNotifier):
    """Expose an on-disk directory at a virtual mount point.

    Parameters
    ----------
    root : Path
        Directory holding the template files.
    mount : str, optional
        Virtual directory the ``root`` appears at; defaults to ``/views``.
    """

    def __init__(self, root: Path, mount: str = "/views") -> None:
        super().__init__()
        self.root = root.resolve()
        self.mount = normalize_path(mount)
        self._seen: dict[str, int] = {}

    def _disk_path(self, path: str) -> Path | None:
        path = normalize_path(path)
        prefix = self.mount.rstrip("/") + "/"
        if not path.startswith(prefix):
            return None
        candidate = (self.root / path[len(prefix) :]).resolve()
        if not candidate.is_relative_to(self.root):
            return None
        return candidate

    def exists(self, path: str) -> bool:
        disk_path = self._disk_path(path)
        return disk_path is not None and disk_path.is_file()

    def read_text(self, path: str) -> str:
        disk_path = self._disk_path(path)
        if disk_path is None or not disk_path.is_file():
            raise FileNotFoundError(path)
        return disk_path.read_text(encoding="utf-8")

    def modified(self, path: str) -> float:
        disk_path = self._disk_path(path)
        if disk_path is None:
            raise FileNotFoundError(path)
        return float(disk_path.stat().st_mtime_ns)

    def list_files(self) -> list[str]:
        base = self.mount.rstrip("/")
        return sorted(
            f"{base}/{file.relative_to(self.root).as_posix()}"
            for file in self.root.rglob("*")
            if file.is_file()
        )

    def poll_changes(self) -> list[str]:
        """Notify listeners about files added, modified, or removed since the last poll.

        Returns
        -------
        list[str]
            Virtual paths that changed, in sorted order.
        """
        current: dict[str, int] = {}
        for path in self.list_files():
            try:
                current[path] = int(self.modified(path))
            except FileNotFoundError:
                # deleted after listing; treated as removed
                continue
        changed = sorted(
            path
            for path in set(current) | set(self._seen)
            if current.get(path) != self._seen.get(path)
        )
        self._seen = current
        for path in changed:
            logger.debug("Detected change in %s", path)
            self._notify(path)
        return changed


class SourceResolver:
    """Resolve logical page paths to :class:`TemplateSource` records."""

    def __init__(self, file_system: VirtualFileSystem, extension: str = ".cshtml") -> None:
        self.file_system = file_system
        self.extension = extension

    def qualify(self, path: str) -> str:
        """Normalize ``path`` and append the template extension when missing."""
        path = normalize_path(path)
        if not posixpath.splitext(path)[1]:
            path = f"{path}{self.extension}"
        return path

    def exists(self, path: str) -> bool:
        return self.file_system.exists(self.qualify(path))

    def resolve(self, path: str) -> TemplateSource:
        """Return the source text and metadata stored at ``path``.

        Raises
        ------
        TemplateNotFoundError
            If no file exists at the qualified path.
        """
        qualified = self.qualify(path)
        try:
            text = self.file_system.read_text(qualified)
            modified = self.file_system.modified(qualified)
        except FileNotFoundError as exc:
            raise TemplateNotFoundError(qualified) from exc
        return TemplateSource(
            path=qualified,
            text=text,
            modified=modified,
            ancestry=directory_ancestry(qualified),
        )

    def modified(self, path: str) -> float | None:
        """Return the current modification token, or ``None`` when the file is gone."""
        try:
            return self.file_system.modified(self.qualify(path))
        except FileNotFoundError:
            return None

    def page_paths(self) -> list[str]:
        """Return every stored file carrying the template extension."""
        return [
            path
            for path in self.file_system.list_files()
            if path.endswith(self.extension)
        ]

    def find_by_name(self, name: str) -> str | None:
        """Locate a stored page by logical name; see :func:`find_page_by_name`."""
        return find_page_by_name(self.page_paths(), name)

    def subscribe(self, listener: ChangeListener) -> None:
        """Forward change notifications from the underlying file system."""
        self.file_system.subscribe(listener)


__all__ = [
    "DirectoryFileSystem",
    "InMemoryFileSystem",
    "SourceResolver",
    "TemplateSource",
    "VirtualFileSystem",
    "directory_ancestry",
    "find_page_by_name",
    "normalize_path",
]
