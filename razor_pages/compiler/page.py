"""Compile parsed templates into executable, immutable page units.

:class:`PageCompiler` parses template source, compiles every embedded
expression with Jinja2's expression compiler, and folds the syntax tree into a
chain of closures. The resulting :class:`PageUnit` holds no per-render state,
so one unit is safely executed by any number of concurrent renders; all
mutable state lives in the :class:`~razor_pages.runtime.PageInstance` passed to
the body.

Example
-------
>>> from razor_pages.compiler import PageCompiler
>>> unit = PageCompiler().compile("Hello @Model.Name!", "/views/Hello.cshtml")
>>> instance = unit.create_instance({"Name": "World"})
>>> instance.execute()
'Hello World!'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError

from razor_pages.errors import CompilationError, RenderError
from razor_pages.runtime import PageInstance

from .nodes import (
    Assign,
    Conditional,
    Expression,
    Loop,
    Node,
    Output,
    Section,
    Text,
)
from .parser import parse_template

logger = logging.getLogger(__name__)

Renderer = typ.Callable[[PageInstance, dict[str, typ.Any]], None]


def _render_nothing(instance: PageInstance, scope: dict[str, typ.Any]) -> None:
    return None


@dc.dataclass(frozen=True, slots=True)
class PageUnit:
    """Immutable compiled form of one template.

    Attributes
    ----------
    path : str
        Logical path the unit was compiled from.
    body : Renderer
        Compiled body; writes output and records sections on the instance it
        receives.
    modified : float | None
        Source modification token at compile time; ``None`` for inline sources.
    model_type : type | None
        Declared base model type, if any.
    section_names : frozenset[str]
        Case-folded names of the sections the template declares.
    """

    path: str
    body: Renderer = dc.field(repr=False, compare=False)
    modified: float | None = None
    model_type: type | None = None
    section_names: frozenset[str] = frozenset()

    @property
    def inline(self) -> bool:
        return self.modified is None

    def create_instance(self, model: typ.Any = None, **options: typ.Any) -> PageInstance:
        """Bind ``model`` and return a fresh instance ready to execute.

        Raises
        ------
        RenderError
            If the unit declares a model type and ``model`` is not an instance of it.
        """
        if (
            self.model_type is not None
            and model is not None
            and not isinstance(model, self.model_type)
        ):
            msg = (
                f"Model of type {type(model).__name__} does not match the declared "
                f"model type {self.model_type.__name__}."
            )
            raise RenderError(msg, path=self.path, reference="Model")
        return PageInstance(self, model, **options)


class ModelEnvironment(Environment):
    """Jinja environment whose member access reads mapping keys first.

    ``Model.items`` on a dictionary model yields the ``"items"`` entry, not
    the bound ``dict.items`` method. Keys absent from the mapping fall back to
    Jinja's attribute-then-item lookup.
    """

    def getattr(self, obj: typ.Any, attribute: str) -> typ.Any:
        if isinstance(obj, cabc.Mapping) and attribute in obj:
            return obj[attribute]
        return super().getattr(obj, attribute)


class PageCompiler:
    """Turn template source into :class:`PageUnit` objects.

    Compilation performs no I/O and keeps no per-call state on the compiler,
    so one compiler serves concurrent compilations of different paths.

    Parameters
    ----------
    model_types : Mapping[str, type], optional
        Types that ``@model`` directives may name, keyed by name.
    """

    def __init__(self, model_types: cabc.Mapping[str, type] | None = None) -> None:
        self._environment = ModelEnvironment(undefined=StrictUndefined, autoescape=False)
        self._model_types: dict[str, type] = dict(model_types or {})

    def register_model_type(self, model_type: type, name: str | None = None) -> None:
        """Allow ``@model`` directives to reference ``model_type``."""
        self._model_types[name or model_type.__name__] = model_type

    def compile(
        self,
        source: str,
        path: str,
        *,
        modified: float | None = None,
        model_type: type | None = None,
    ) -> PageUnit:
        """Compile ``source`` into a :class:`PageUnit`.

        Parameters
        ----------
        source : str
            Template text.
        path : str
            Logical path used for error locations and the resulting unit.
        modified : float, optional
            Source modification token recorded on the unit.
        model_type : type, optional
            Model type overriding any ``@model`` directive in the source.

        Raises
        ------
        CompilationError
            If the markup, an expression, or the ``@model`` directive is invalid.
        """
        logger.debug("Compiling %s", path)

        def compile_expression(text: str, line: int, column: int) -> Expression:
            try:
                evaluate = self._environment.compile_expression(
                    text, undefined_to_none=False
                )
            except TemplateSyntaxError as exc:
                msg = f"Invalid expression {text!r}: {exc.message}"
                raise CompilationError(
                    msg, path=path, line=line + (exc.lineno or 1) - 1, column=column
                ) from exc
            return Expression(source=text, line=line, column=column, evaluate=evaluate)

        document = parse_template(source, path, compile_expression)
        if model_type is None and document.model_type_name is not None:
            model_type = self._resolve_model_type(
                document.model_type_name, path, document.model_type_location or (1, 1)
            )
        return PageUnit(
            path=path,
            body=compile_nodes(document.nodes),
            modified=modified,
            model_type=model_type,
            section_names=frozenset(
                node.name.casefold() for node in document.nodes if isinstance(node, Section)
            ),
        )

    def _resolve_model_type(
        self, name: str, path: str, location: tuple[int, int]
    ) -> type:
        model_type = self._model_types.get(name) or self._model_types.get(
            name.rsplit(".", 1)[-1]
        )
        if model_type is None:
            line, column = location
            msg = f"Unknown model type '{name}'."
            raise CompilationError(msg, path=path, line=line, column=column)
        return model_type


def compile_nodes(nodes: cabc.Sequence[Node]) -> Renderer:
    """Fold ``nodes`` into a single renderer closure."""
    renderers = [_compile_node(node) for node in nodes]
    if not renderers:
        return _render_nothing
    if len(renderers) == 1:
        return renderers[0]

    def render_sequence(instance: PageInstance, scope: dict[str, typ.Any]) -> None:
        for renderer in renderers:
            renderer(instance, scope)

    return render_sequence


def _compile_node(node: Node) -> Renderer:
    match node:
        case Text(text=text):

            def render_text(instance: PageInstance, scope: dict[str, typ.Any]) -> None:
                instance.write(text)

            return render_text
        case Output(expression=expression):

            def render_output(instance: PageInstance, scope: dict[str, typ.Any]) -> None:
                instance.write_value(instance.evaluate(expression, scope))

            return render_output
        case Assign(target=target, attribute=attribute, expression=expression):

            def run_assignment(instance: PageInstance, scope: dict[str, typ.Any]) -> None:
                value = instance.evaluate(expression, scope)
                instance.assign(target, attribute, value, scope)

            return run_assignment
        case Section(name=name, body=body):
            section_body = compile_nodes(body)

            def declare_section(instance: PageInstance, scope: dict[str, typ.Any]) -> None:
                instance.define_section(name, section_body, scope)

            return declare_section
        case Conditional(branches=branches, otherwise=otherwise):
            compiled = [(condition, compile_nodes(body)) for condition, body in branches]
            fallback = compile_nodes(otherwise) if otherwise is not None else None

            def render_conditional(
                instance: PageInstance, scope: dict[str, typ.Any]
            ) -> None:
                for condition, branch in compiled:
                    if instance.is_true(condition, scope):
                        branch(instance, scope)
                        return
                if fallback is not None:
                    fallback(instance, scope)

            return render_conditional
        case Loop(variable=variable, iterable=iterable, body=body):
            loop_body = compile_nodes(body)

            def render_loop(instance: PageInstance, scope: dict[str, typ.Any]) -> None:
                for item in instance.iterate(iterable, scope):
                    loop_body(instance, {**scope, variable: item})

            return render_loop
    msg = f"Unsupported node {node!r}"  # pragma: no cover - exhaustive match
    raise TypeError(msg)


__all__ = ["ModelEnvironment", "PageCompiler", "PageUnit", "Renderer", "compile_nodes"]
