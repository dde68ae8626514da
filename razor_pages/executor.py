"""Execute pages and the chain of layouts wrapping them.

A render call executes the requested page into a fresh
:class:`~razor_pages.runtime.PageInstance`, resolves its layout, and then
executes each layout in turn with the previous instance as its child, until
no further layout resolves. The body of the last executed instance is the
rendered text.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import posixpath
import typing as typ

from .compiler import PageUnit
from .errors import LayoutCycleError, RenderError
from .runtime import PageInstance, ViewBag

if typ.TYPE_CHECKING:
    from .config import EngineConfig
    from .html import HtmlHelper
    from .layouts import LayoutResolver
    from .registry import PageRegistry

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class RenderResult:
    """Rendered text plus the final executed instance.

    ``view.child`` walks back down the layout chain to the content page.
    """

    text: str
    view: PageInstance

    @property
    def page(self) -> PageInstance:
        """Return the content page instance at the bottom of the chain."""
        instance = self.view
        while instance.child is not None:
            instance = instance.child
        return instance


class RenderExecutor:
    """Render pages by path or compiled unit."""

    def __init__(
        self,
        registry: PageRegistry,
        layouts: LayoutResolver,
        config: EngineConfig,
        html: HtmlHelper | None = None,
    ) -> None:
        self.registry = registry
        self.layouts = layouts
        self.config = config
        self.html = html

    def render(
        self,
        page: str | PageUnit,
        model: typ.Any = None,
        *,
        layout: str | None = None,
    ) -> str:
        """Render ``page`` with ``model`` and return the final text."""
        return self.render_view(page, model, layout=layout).text

    def render_view(
        self,
        page: str | PageUnit,
        model: typ.Any = None,
        *,
        layout: str | None = None,
    ) -> RenderResult:
        """Render ``page`` and keep the executed instances.

        Parameters
        ----------
        page : str | PageUnit
            Page path or an already compiled unit.
        model : Any, optional
            Value bound to ``Model`` in the page and every layout.
        layout : str, optional
            Layout override; ``"none"`` renders the page without any layout.

        Raises
        ------
        TemplateNotFoundError
            If the page or a resolved layout does not exist.
        CompilationError
            If the page or a layout fails to compile.
        RenderError
            If executing a page or layout fails.
        LayoutCycleError
            If the layout chain revisits a page.
        """
        unit = page if isinstance(page, PageUnit) else self.registry.get_or_compile(page)
        view_bag = ViewBag()
        instance = self._instantiate(unit, model, view_bag=view_bag)
        instance.execute()

        visited = [unit.path]
        layout_path = self.layouts.resolve_layout(instance, override=layout)
        while layout_path is not None:
            if layout_path in visited:
                raise LayoutCycleError([*visited, layout_path])
            visited.append(layout_path)
            layout_unit = self.registry.get_or_compile(layout_path)
            instance = self._instantiate(
                layout_unit, model, view_bag=view_bag, child=instance
            )
            instance.execute()
            layout_path = self.layouts.resolve_layout(instance, apply_defaults=False)
        return RenderResult(text=instance.body, view=instance)

    def _instantiate(
        self,
        unit: PageUnit,
        model: typ.Any,
        *,
        view_bag: ViewBag,
        child: PageInstance | None = None,
        depth: int = 0,
    ) -> PageInstance:
        return unit.create_instance(
            model,
            child=child,
            view_bag=view_bag,
            html=self.html,
            autoescape=self.config.autoescape,
            strict_sections=self.config.strict_sections,
            render_partial=self._render_partial,
            depth=depth,
        )

    def _render_partial(self, name: str, model: typ.Any, parent: PageInstance) -> str:
        depth = parent.depth + 1
        if depth > self.config.max_partial_depth:
            msg = f"Partial nesting exceeds {self.config.max_partial_depth} levels."
            raise RenderError(msg, path=parent.path, reference=f"RenderPage({name!r})")
        path = self._resolve_partial(name, parent.path)
        unit = self.registry.get_or_compile(path)
        partial = self._instantiate(unit, model, view_bag=parent.view_bag, depth=depth)
        return partial.execute()

    def _resolve_partial(self, name: str, parent_path: str) -> str:
        """Look next to the calling page first, then under the template root."""
        if name.startswith("/"):
            return self.registry.qualify(name)
        sibling = self.registry.qualify(posixpath.join(posixpath.dirname(parent_path), name))
        if self.registry.exists(sibling):
            return sibling
        return self.registry.qualify(posixpath.join(self.config.template_root, name))


__all__ = ["RenderExecutor", "RenderResult"]
