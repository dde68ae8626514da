"""Per-render execution state for compiled pages.

A :class:`PageInstance` is created for every render call (and for every layout
applied during that call). It owns the output buffer, the section map, the
view bag, and the layout directive set by the template. Instances are never
shared between render calls, so none of this state needs locking.

A layout instance holds a reference to the child instance it wraps; the
template-facing ``RenderBody``/``RenderSection``/``IsSectionDefined`` callables
read from that child.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from jinja2 import Undefined
from jinja2.exceptions import UndefinedError
from markupsafe import Markup, escape

from .errors import MissingSectionError, RenderError, TemplateError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .compiler.nodes import Expression
    from .compiler.page import PageUnit, Renderer
    from .html import HtmlHelper

PartialRenderer = typ.Callable[[str, typ.Any, "PageInstance"], str]

_UNSET: typ.Final = object()


class ViewBag(dict[str, typ.Any]):
    """Values shared by a page and the layouts wrapping it.

    Missing members read as ``None`` so layouts can probe optional values.

    Examples
    --------
    >>> bag = ViewBag(Title="Home")
    >>> bag.Title, bag.Subtitle
    ('Home', None)
    """

    def __getattr__(self, name: str) -> typ.Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name: str, value: typ.Any) -> None:
        self[name] = value


@dc.dataclass(slots=True)
class _DeferredSection:
    name: str
    body: Renderer
    scope: dict[str, typ.Any]


class PageInstance:
    """One execution of a :class:`~razor_pages.compiler.page.PageUnit`.

    Parameters
    ----------
    unit : PageUnit
        Compiled page being executed.
    model : Any
        Value bound to ``Model`` inside the template.
    child : PageInstance, optional
        Executed page this instance wraps when acting as a layout.
    view_bag : ViewBag, optional
        Bag shared along the layout chain; a fresh one is created when omitted.
    html : HtmlHelper, optional
        Helper exposed to templates as ``Html``.
    autoescape : bool, optional
        HTML-escape expression output unless it is already markup.
    strict_sections : bool, optional
        Default for ``RenderSection``'s ``required`` argument.
    render_partial : PartialRenderer, optional
        Callback implementing ``RenderPage``.
    depth : int, optional
        Partial nesting depth of this instance.
    """

    def __init__(
        self,
        unit: PageUnit,
        model: typ.Any = None,
        *,
        child: PageInstance | None = None,
        view_bag: ViewBag | None = None,
        html: HtmlHelper | None = None,
        autoescape: bool = True,
        strict_sections: bool = False,
        render_partial: PartialRenderer | None = None,
        depth: int = 0,
    ) -> None:
        self.unit = unit
        self.model = model
        self.child = child
        self.view_bag = view_bag if view_bag is not None else ViewBag()
        self.html = html
        self.autoescape = autoescape
        self.strict_sections = strict_sections
        self.depth = depth
        self._render_partial = render_partial
        self._layout: typ.Any = _UNSET
        self._buffers: list[list[str]] = [[]]
        self._pending_sections: dict[str, _DeferredSection] = {}
        self._sections: dict[str, _DeferredSection] = {}
        self._rendered_sections: dict[str, Markup] = {}
        self._executed = False
        self.body = ""

    def __repr__(self) -> str:
        return f"PageInstance({self.path!r}, layout={self.layout!r})"

    @property
    def path(self) -> str:
        return self.unit.path

    @property
    def executed(self) -> bool:
        return self._executed

    @property
    def layout_is_set(self) -> bool:
        """Return whether the template assigned ``Layout`` during execution."""
        return self._layout is not _UNSET

    @property
    def layout(self) -> str | None:
        """Return the layout named by the template, or ``None`` when unset or opted out."""
        if self._layout is _UNSET or not self._layout:
            return None
        return str(self._layout)

    def set_layout(self, value: str | None) -> None:
        """Record an explicit layout directive; ``None`` or ``""`` opts out."""
        self._layout = value

    # ------------------------------------------------------------------
    # execution

    def execute(self) -> str:
        """Run the compiled body once and publish the body text and sections."""
        if self._executed:
            msg = "Page instance has already been executed."
            raise RenderError(msg, path=self.path)
        self.unit.body(self, self._base_scope())
        self.body = "".join(self._buffers[0])
        self._sections = self._pending_sections
        self._executed = True
        return self.body

    def _base_scope(self) -> dict[str, typ.Any]:
        return {
            "Model": self.model,
            "ViewBag": self.view_bag,
            "Layout": self.layout,
            "Html": self.html,
            "RenderBody": self._render_body,
            "RenderSection": self._render_child_section,
            "IsSectionDefined": self._is_child_section_defined,
            "RenderPage": self._render_page,
        }

    def write(self, text: str) -> None:
        self._buffers[-1].append(text)

    def write_value(self, value: typ.Any) -> None:
        """Write an expression result, escaping it unless it is markup."""
        if value is None:
            return
        if self.autoescape:
            self._buffers[-1].append(str(escape(value)))
        else:
            self._buffers[-1].append(str(value))

    def capture(self, renderer: Renderer, scope: dict[str, typ.Any]) -> str:
        """Run ``renderer`` into a fresh buffer and return what it wrote."""
        self._buffers.append([])
        try:
            renderer(self, scope)
        finally:
            captured = self._buffers.pop()
        return "".join(captured)

    def evaluate(self, expression: Expression, scope: dict[str, typ.Any]) -> typ.Any:
        """Evaluate ``expression`` against ``scope``, wrapping failures in :class:`RenderError`."""
        try:
            value = expression.evaluate(scope)
        except TemplateError:
            raise
        except UndefinedError as exc:
            raise RenderError(
                exc.message or "Undefined value.", path=self.path, reference=expression.source
            ) from exc
        except Exception as exc:
            raise RenderError(
                f"{type(exc).__name__}: {exc}", path=self.path, reference=expression.source
            ) from exc
        if isinstance(value, Undefined):
            raise RenderError(
                f"'{expression.source}' is undefined.",
                path=self.path,
                reference=expression.source,
            )
        return value

    def is_true(self, expression: Expression, scope: dict[str, typ.Any]) -> bool:
        return bool(self.evaluate(expression, scope))

    def iterate(
        self, expression: Expression, scope: dict[str, typ.Any]
    ) -> cabc.Iterator[typ.Any]:
        value = self.evaluate(expression, scope)
        try:
            return iter(value)
        except TypeError as exc:
            msg = f"Value of type {type(value).__name__} is not iterable."
            raise RenderError(msg, path=self.path, reference=expression.source) from exc

    def assign(
        self,
        target: str,
        attribute: str | None,
        value: typ.Any,
        scope: dict[str, typ.Any],
    ) -> None:
        """Apply a code-block assignment to the instance or the current scope."""
        if attribute is not None:
            self.view_bag[attribute] = value
            return
        if target == "Layout":
            self.set_layout(value)
            scope["Layout"] = self.layout
            return
        scope[target] = value

    # ------------------------------------------------------------------
    # sections

    def define_section(
        self, name: str, body: Renderer, scope: dict[str, typ.Any]
    ) -> None:
        key = name.casefold()
        if key in self._pending_sections:
            msg = f"Section '{name}' is already defined."
            raise RenderError(msg, path=self.path)
        self._pending_sections[key] = _DeferredSection(name, body, dict(scope))

    @property
    def section_names(self) -> list[str]:
        """Return the names of sections defined by the executed page."""
        return [section.name for section in self._sections.values()]

    def is_section_defined(self, name: str) -> bool:
        """Return whether the executed page declared section ``name``."""
        return name.casefold() in self._sections

    def render_section(self, name: str, *, required: bool = True) -> Markup:
        """Render this page's section ``name``.

        Raises
        ------
        MissingSectionError
            If ``required`` is true and the section was not defined.
        """
        key = name.casefold()
        section = self._sections.get(key)
        if section is None:
            if required:
                raise MissingSectionError(name, path=self.path)
            return Markup("")
        rendered = self._rendered_sections.get(key)
        if rendered is None:
            rendered = Markup(self.capture(section.body, section.scope))
            self._rendered_sections[key] = rendered
        return rendered

    # ------------------------------------------------------------------
    # template-facing callables

    def _require_child(self, operation: str) -> PageInstance:
        if self.child is None:
            msg = f"{operation} can only be called from a layout page."
            raise RenderError(msg, path=self.path, reference=operation)
        return self.child

    def _render_body(self) -> Markup:
        return Markup(self._require_child("RenderBody").body)

    def _render_child_section(self, name: str, required: bool | None = None) -> Markup:
        child = self._require_child("RenderSection")
        if required is None:
            required = self.strict_sections
        try:
            return child.render_section(name, required=required)
        except MissingSectionError as exc:
            raise MissingSectionError(name, path=self.path) from exc

    def _is_child_section_defined(self, name: str) -> bool:
        return self._require_child("IsSectionDefined").is_section_defined(name)

    def _render_page(self, path: str, model: typ.Any = _UNSET) -> Markup:
        if self._render_partial is None:
            msg = "Partial rendering is not available for this page."
            raise RenderError(msg, path=self.path, reference="RenderPage")
        bound = self.model if model is _UNSET else model
        return Markup(self._render_partial(path, bound, self))


__all__ = ["PageInstance", "PartialRenderer", "ViewBag"]
