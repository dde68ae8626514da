"""Syntax tree produced by :mod:`razor_pages.compiler.parser`."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

Evaluator = typ.Callable[[dict[str, typ.Any]], typ.Any]


@dc.dataclass(frozen=True, slots=True)
class Expression:
    """An embedded expression compiled by the expression-language backend."""

    source: str
    line: int
    column: int
    evaluate: Evaluator = dc.field(repr=False, compare=False)


@dc.dataclass(frozen=True, slots=True)
class Text:
    """Literal markup emitted verbatim."""

    text: str


@dc.dataclass(frozen=True, slots=True)
class Output:
    """Expression whose value is written to the output buffer."""

    expression: Expression


@dc.dataclass(frozen=True, slots=True)
class Assign:
    """Assignment statement from a code block.

    ``attribute`` is set for ``ViewBag.<attribute> = ...`` assignments.
    """

    target: str
    expression: Expression
    attribute: str | None = None


@dc.dataclass(frozen=True, slots=True)
class Section:
    """Named block captured for deferred rendering by a layout."""

    name: str
    body: tuple[Node, ...]
    line: int
    column: int


@dc.dataclass(frozen=True, slots=True)
class Conditional:
    """``@if`` chain with optional ``else`` branch."""

    branches: tuple[tuple[Expression, tuple[Node, ...]], ...]
    otherwise: tuple[Node, ...] | None = None


@dc.dataclass(frozen=True, slots=True)
class Loop:
    """``@foreach`` over the value of ``iterable``."""

    variable: str
    iterable: Expression
    body: tuple[Node, ...]


Node = Text | Output | Assign | Section | Conditional | Loop


@dc.dataclass(frozen=True, slots=True)
class Document:
    """Parsed template: top-level nodes plus directives."""

    nodes: tuple[Node, ...]
    model_type_name: str | None = None
    model_type_location: tuple[int, int] | None = None


__all__ = [
    "Assign",
    "Conditional",
    "Document",
    "Evaluator",
    "Expression",
    "Loop",
    "Node",
    "Output",
    "Section",
    "Text",
]
