"""Cache of compiled pages keyed by logical path.

The registry is the only shared mutable structure in the engine. Lookups of
published units read a plain dictionary without locking. A miss takes a short
registry lock only to claim or join the per-path pending compilation: the
first caller compiles outside any lock while concurrent callers for the same
path wait on that caller's future. Compiling one path therefore never blocks
lookups or compilations of other paths.

Failed compilations are delivered to every waiter and are never cached, so
the next call starts from scratch. Invalidation removes the published unit;
renders already holding the old unit finish with it.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import typing as typ

from .errors import TemplateError
from .sources import find_page_by_name

if typ.TYPE_CHECKING:
    from .compiler import PageCompiler, PageUnit
    from .sources import SourceResolver

logger = logging.getLogger(__name__)


class PageRegistry:
    """Map page paths to compiled :class:`~razor_pages.compiler.PageUnit` objects.

    Parameters
    ----------
    resolver : SourceResolver
        Source of file-backed templates; its change notifications invalidate
        cached units.
    compiler : PageCompiler
        Compiler used on cache misses.
    live_reload : bool, optional
        Compare the source modification token on every hit and recompile
        stale units.
    """

    def __init__(
        self,
        resolver: SourceResolver,
        compiler: PageCompiler,
        *,
        live_reload: bool = False,
    ) -> None:
        self.resolver = resolver
        self.compiler = compiler
        self.live_reload = live_reload
        self._lock = threading.Lock()
        self._units: dict[str, PageUnit] = {}
        self._pending: dict[str, concurrent.futures.Future[PageUnit]] = {}
        self._generations: dict[str, int] = {}
        self._inline: dict[str, str] = {}
        resolver.subscribe(self.invalidate)

    def qualify(self, path: str) -> str:
        return self.resolver.qualify(path)

    def cached(self, path: str) -> PageUnit | None:
        """Return the published unit for ``path`` without compiling."""
        return self._units.get(self.qualify(path))

    def exists(self, path: str) -> bool:
        """Return whether ``path`` is registered inline or present in storage."""
        qualified = self.qualify(path)
        return qualified in self._inline or self.resolver.exists(qualified)

    def page_paths(self) -> list[str]:
        """Return every inline and file-backed page path, sorted."""
        return sorted(set(self._inline) | set(self.resolver.page_paths()))

    def find_by_name(self, name: str) -> str | None:
        """Locate a page by logical name across inline and stored pages."""
        return find_page_by_name(self.page_paths(), name)

    def register_inline(self, path: str, source: str) -> str:
        """Associate ``source`` with ``path``, overriding any stored file.

        Returns
        -------
        str
            The qualified path the source was registered under.
        """
        qualified = self.qualify(path)
        with self._lock:
            self._inline[qualified] = source
        self.invalidate(qualified)
        return qualified

    def discard_inline(self, path: str) -> None:
        """Forget the inline source for ``path`` and drop its compiled unit."""
        qualified = self.qualify(path)
        with self._lock:
            self._inline.pop(qualified, None)
        self.invalidate(qualified)

    def invalidate(self, path: str) -> None:
        """Drop the cached unit for ``path`` so the next lookup recompiles."""
        qualified = self.qualify(path)
        with self._lock:
            self._generations[qualified] = self._generations.get(qualified, 0) + 1
            dropped = self._units.pop(qualified, None)
        if dropped is not None:
            logger.debug("Invalidated %s", qualified)

    def get_or_compile(self, path: str) -> PageUnit:
        """Return the compiled unit for ``path``, compiling it at most once concurrently.

        Raises
        ------
        TemplateNotFoundError
            If ``path`` is neither registered inline nor present in storage.
        CompilationError
            If the source is malformed. The failure is not cached.
        """
        qualified = self.qualify(path)
        unit = self._units.get(qualified)
        if unit is not None:
            if not self._is_stale(unit):
                logger.debug("Cache hit for %s", qualified)
                return unit
            self._discard_stale(qualified, unit)

        with self._lock:
            unit = self._units.get(qualified)
            if unit is not None:
                return unit
            pending = self._pending.get(qualified)
            if pending is None:
                future: concurrent.futures.Future[PageUnit] = concurrent.futures.Future()
                self._pending[qualified] = future
                generation = self._generations.get(qualified, 0)
        if pending is not None:
            return pending.result()

        try:
            unit = self._compile(qualified)
        except BaseException as exc:
            with self._lock:
                self._pending.pop(qualified, None)
            future.set_exception(exc)
            if isinstance(exc, TemplateError):
                logger.warning("Failed to compile %s: %s", qualified, exc)
            raise
        with self._lock:
            self._pending.pop(qualified, None)
            if self._generations.get(qualified, 0) == generation:
                self._units[qualified] = unit
        future.set_result(unit)
        return unit

    def precompile(self, max_workers: int | None = None) -> dict[str, TemplateError]:
        """Compile every known page concurrently.

        Returns
        -------
        dict[str, TemplateError]
            Failures keyed by page path; empty when every page compiled.
        """
        failures: dict[str, TemplateError] = {}
        paths = self.page_paths()
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {pool.submit(self.get_or_compile, path): path for path in paths}
            for future in concurrent.futures.as_completed(futures):
                exc = future.exception()
                if isinstance(exc, TemplateError):
                    failures[futures[future]] = exc
                elif exc is not None:
                    raise exc
        return failures

    def _compile(self, path: str) -> PageUnit:
        inline = self._inline.get(path)
        if inline is not None:
            return self.compiler.compile(inline, path)
        source = self.resolver.resolve(path)
        unit = self.compiler.compile(source.text, source.path, modified=source.modified)
        logger.debug("Compiled %s", path)
        return unit

    def _is_stale(self, unit: PageUnit) -> bool:
        if not self.live_reload or unit.inline:
            return False
        return self.resolver.modified(unit.path) != unit.modified

    def _discard_stale(self, path: str, unit: PageUnit) -> None:
        with self._lock:
            if self._units.get(path) is unit:
                del self._units[path]
                self._generations[path] = self._generations.get(path, 0) + 1
        logger.debug("Source changed for %s; recompiling", path)


__all__ = ["PageRegistry"]
