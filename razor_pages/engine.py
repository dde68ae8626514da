"""High-level facade wiring the template engine together.

:class:`ViewEngine` owns one source resolver, compiler, page registry, layout
resolver, and render executor. It is safe to share a single engine between
threads: concurrent renders only share the registry, which handles its own
synchronization.

Example
-------
>>> from razor_pages import ViewEngine
>>> engine = ViewEngine()
>>> engine.add_page("/views/_Layout.cshtml", "<main>@RenderBody()</main>")  # doctest: +ELLIPSIS
PageUnit(path='/views/_Layout.cshtml', ...)
>>> _ = engine.add_page("/views/Home.cshtml", "Hello @Model.Name!")
>>> engine.render("/views/Home.cshtml", {"Name": "World"})
'<main>Hello World!</main>'
>>> engine.render("/views/Home.cshtml", {"Name": "World"}, layout="none")
'Hello World!'
"""

from __future__ import annotations

import collections
import hashlib
import posixpath
import threading
import typing as typ

from ._constants import INLINE_DIRECTORY
from .compiler import PageCompiler, PageUnit
from .config import EngineConfig, load_engine_config
from .dispatch import ViewDispatcher
from .executor import RenderExecutor, RenderResult
from .html import HtmlHelper
from .layouts import LayoutResolver
from .registry import PageRegistry
from .sources import (
    DirectoryFileSystem,
    InMemoryFileSystem,
    SourceResolver,
    VirtualFileSystem,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from .dispatch import InboundRequest, ResponseSink
    from .errors import TemplateError


class ViewEngine:
    """Compile, cache, and render layout-aware templates.

    Parameters
    ----------
    file_system : VirtualFileSystem, optional
        Template storage. Defaults to a :class:`DirectoryFileSystem` over
        ``config.views_dir`` when set, otherwise an empty
        :class:`InMemoryFileSystem`.
    config : EngineConfig, optional
        Engine settings; defaults to :class:`EngineConfig` defaults.
    model_types : Mapping[str, type], optional
        Types that ``@model`` directives may name.
    """

    def __init__(
        self,
        file_system: VirtualFileSystem | None = None,
        config: EngineConfig | None = None,
        *,
        model_types: cabc.Mapping[str, type] | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        if file_system is None:
            if self.config.views_dir is not None:
                file_system = DirectoryFileSystem(
                    self.config.views_dir, mount=self.config.template_root
                )
            else:
                file_system = InMemoryFileSystem()
        self.file_system = file_system
        self.resolver = SourceResolver(file_system, self.config.extension)
        self.compiler = PageCompiler(model_types)
        self.registry = PageRegistry(
            self.resolver, self.compiler, live_reload=self.config.live_reload
        )
        self.layouts = LayoutResolver(self.registry, self.config)
        self.html = HtmlHelper(self.config.pygments_style)
        self.executor = RenderExecutor(
            self.registry, self.layouts, self.config, html=self.html
        )
        self.dispatcher = ViewDispatcher(self)
        self._anonymous: collections.OrderedDict[str, None] = collections.OrderedDict()
        self._anonymous_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        path: Path,
        *,
        model_types: cabc.Mapping[str, type] | None = None,
    ) -> ViewEngine:
        """Build an engine from a YAML configuration file."""
        return cls(config=load_engine_config(path), model_types=model_types)

    def add_page(self, path: str, source: str) -> PageUnit:
        """Register ``source`` under ``path`` and return its compiled unit."""
        qualified = self.registry.register_inline(path, source)
        return self.registry.get_or_compile(qualified)

    def get_page(self, path: str) -> PageUnit:
        """Return the compiled unit for ``path``, compiling it when needed."""
        return self.registry.get_or_compile(path)

    def find_page(self, name: str) -> str | None:
        """Return the path of the page whose file stem matches ``name``."""
        return self.registry.find_by_name(name)

    def render(
        self,
        page: str | PageUnit,
        model: typ.Any = None,
        *,
        layout: str | None = None,
    ) -> str:
        """Render ``page`` with ``model``; see :meth:`RenderExecutor.render_view`."""
        return self.executor.render(page, model, layout=layout)

    def render_view(
        self,
        page: str | PageUnit,
        model: typ.Any = None,
        *,
        layout: str | None = None,
    ) -> RenderResult:
        """Render ``page`` and return the text with the executed view chain."""
        return self.executor.render_view(page, model, layout=layout)

    def create_and_render(
        self,
        source: str,
        model: typ.Any = None,
        *,
        layout: str | None = None,
    ) -> str:
        """Render template ``source`` that has no path of its own.

        The source is registered under a content-derived path so repeated
        calls with the same text reuse one compiled unit. At most
        ``config.max_inline_templates`` such sources stay registered; the
        least recently rendered is discarded first.
        """
        digest = hashlib.sha1(source.encode("utf-8"), usedforsecurity=False).hexdigest()
        path = posixpath.join(INLINE_DIRECTORY, f"{digest}{self.config.extension}")
        evicted: list[str] = []
        with self._anonymous_lock:
            if path in self._anonymous:
                self._anonymous.move_to_end(path)
            else:
                self.registry.register_inline(path, source)
                self._anonymous[path] = None
                while len(self._anonymous) > self.config.max_inline_templates:
                    evicted.append(self._anonymous.popitem(last=False)[0])
        for stale in evicted:
            self.registry.discard_inline(stale)
        return self.executor.render(path, model, layout=layout)

    def invalidate(self, path: str) -> None:
        """Drop the cached unit for ``path``."""
        self.registry.invalidate(path)

    def precompile(self, max_workers: int | None = None) -> dict[str, TemplateError]:
        """Compile every known page; return failures keyed by path."""
        return self.registry.precompile(max_workers=max_workers)

    def process_request(
        self, request: InboundRequest, response: ResponseSink, dto: typ.Any
    ) -> str:
        """Render the page named after ``request``'s operation into ``response``."""
        return self.dispatcher.process_request(request, response, dto)


__all__ = ["ViewEngine"]
