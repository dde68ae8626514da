"""Parse template markup into a :class:`~razor_pages.compiler.nodes.Document`.

The parser understands the ``@`` transition syntax: implicit expressions
(``@Model.Name``), explicit expressions (``@(a + b)``), code blocks
(``@{ Layout = "Site"; }``), ``@section``, ``@if``/``else``, ``@foreach``,
``@model`` directives, ``@* comments *@`` and the ``@@`` escape. Everything
between those constructs is literal text; inside a block, braces within
quoted tag attributes and ``<script>``/``<style>`` bodies never close it.
Embedded expressions are handed to an ``ExpressionCompiler`` callback so the
expression language stays a black box to this module.
"""

from __future__ import annotations

import bisect
import dataclasses as dc
import re
import typing as typ

from razor_pages.errors import CompilationError

from .nodes import (
    Assign,
    Conditional,
    Document,
    Expression,
    Loop,
    Node,
    Output,
    Section,
    Text,
)

ExpressionCompiler = typ.Callable[[str, int, int], Expression]

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
ASSIGNMENT_PATTERN = re.compile(
    r"^(?:var\s+)?(?P<target>[A-Za-z_]\w*)(?:\.(?P<attribute>[A-Za-z_]\w*))?"
    r"\s*=(?!=)\s*(?P<expression>.+)$",
    re.DOTALL,
)
FOREACH_PATTERN = re.compile(
    r"^\s*(?:var\s+)?(?P<variable>[A-Za-z_]\w*)\s+in\s+(?P<iterable>.+?)\s*$",
    re.DOTALL,
)
MODEL_TYPE_PATTERN = re.compile(r"[A-Za-z_][\w.]*")
LINE_END_PATTERN = re.compile(r"[ \t]*\r?\n")
TAG_PATTERN = re.compile(r"<(?P<closing>/)?(?P<name>[A-Za-z][\w:-]*)")
RAW_TEXT_ELEMENTS = frozenset({"script", "style"})
_CLOSERS = {"(": ")", "[": "]", "{": "}"}
_QUOTES = "\"'"


@dc.dataclass(slots=True)
class _MarkupContext:
    """Track tags so braces in attribute values and raw-text elements stay literal."""

    in_tag: bool = False
    quote: str | None = None
    raw_text: str | None = None
    pending_raw: str | None = None

    def counts_braces(self) -> bool:
        return not self.in_tag and self.raw_text is None

    def feed(self, source: str, pos: int) -> None:
        char = source[pos]
        if self.in_tag:
            if self.quote is not None:
                if char == self.quote:
                    self.quote = None
            elif char in _QUOTES:
                self.quote = char
            elif char == ">":
                self.in_tag = False
                if source[pos - 1] != "/":
                    self.raw_text = self.pending_raw
                self.pending_raw = None
            return
        if char != "<":
            return
        tag = TAG_PATTERN.match(source, pos)
        if tag is None:
            return
        name = tag.group("name").casefold()
        closing = tag.group("closing") is not None
        if self.raw_text is not None:
            if not closing or name != self.raw_text:
                return
            self.raw_text = None
        self.in_tag = True
        if not closing and name in RAW_TEXT_ELEMENTS:
            self.pending_raw = name


class TemplateParser:
    """Single-use recursive descent parser for one template source.

    Parameters
    ----------
    source : str
        Template text.
    path : str
        Logical path reported in :class:`CompilationError` locations.
    compile_expression : ExpressionCompiler
        Callback turning expression source and its one-based line/column into
        an :class:`Expression`.
    """

    def __init__(
        self, source: str, path: str, compile_expression: ExpressionCompiler
    ) -> None:
        self.source = source
        self.path = path
        self._compile_expression = compile_expression
        self._pos = 0
        self._line_starts = [0] + [
            match.end() for match in re.finditer(r"\n", source)
        ]
        self._model_type_name: str | None = None
        self._model_type_location: tuple[int, int] | None = None
        self._section_names: set[str] = set()

    def parse(self) -> Document:
        """Parse the whole source and return the document tree."""
        nodes = self._parse_markup(in_block=False, block_start=0)
        return Document(
            nodes=nodes,
            model_type_name=self._model_type_name,
            model_type_location=self._model_type_location,
        )

    # ------------------------------------------------------------------
    # location helpers

    def _location(self, offset: int) -> tuple[int, int]:
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index] + 1

    def _error(self, message: str, offset: int) -> CompilationError:
        line, column = self._location(offset)
        return CompilationError(message, path=self.path, line=line, column=column)

    def _expression(self, text: str, offset: int) -> Expression:
        stripped = text.strip()
        if not stripped:
            raise self._error("Empty expression.", offset)
        offset += len(text) - len(text.lstrip())
        line, column = self._location(offset)
        return self._compile_expression(stripped, line, column)

    # ------------------------------------------------------------------
    # markup

    def _parse_markup(self, *, in_block: bool, block_start: int) -> tuple[Node, ...]:
        nodes: list[Node] = []
        buffer: list[str] = []
        depth = 0
        source = self.source
        context = _MarkupContext()

        def flush() -> None:
            if buffer:
                nodes.append(Text("".join(buffer)))
                buffer.clear()

        while self._pos < len(source):
            char = source[self._pos]
            if char == "@":
                literal = self._literal_at()
                if literal is not None:
                    buffer.append(literal)
                    continue
                flush()
                nodes.extend(self._parse_transition(in_block=in_block))
                continue
            if in_block:
                if context.counts_braces():
                    if char == "{":
                        depth += 1
                    elif char == "}":
                        if depth == 0:
                            self._pos += 1
                            flush()
                            return tuple(nodes)
                        depth -= 1
                context.feed(source, self._pos)
            buffer.append(char)
            self._pos += 1

        if in_block:
            raise self._error("Unterminated block; expected '}'.", block_start)
        flush()
        return tuple(nodes)

    def _literal_at(self) -> str | None:
        """Consume and return literal text for an ``@`` that is not a transition."""
        source = self.source
        pos = self._pos
        following = source[pos + 1 : pos + 2]
        if following == "@":
            self._pos += 2
            return "@"
        preceding = source[pos - 1 : pos] if pos else ""
        if preceding.isalnum() and following.isalnum():
            # e-mail address
            self._pos += 1
            return "@"
        return None

    def _parse_transition(self, *, in_block: bool) -> tuple[Node, ...]:
        start = self._pos
        self._pos += 1
        source = self.source
        following = source[self._pos : self._pos + 1]
        if following == "*":
            end = source.find("*@", self._pos + 1)
            if end < 0:
                raise self._error("Unterminated comment; expected '*@'.", start)
            self._pos = end + 2
            return ()
        if following == "{":
            return self._parse_code_block(start)
        if following == "(":
            end = self._scan_balanced(self._pos)
            expression = self._expression(source[self._pos + 1 : end - 1], self._pos + 1)
            self._pos = end
            return (Output(expression),)

        match = IDENTIFIER_PATTERN.match(source, self._pos)
        if match is None:
            raise self._error("Expected an expression or keyword after '@'.", start)
        keyword = match.group()
        if keyword == "section":
            if in_block:
                raise self._error("Sections can only be declared at the top level.", start)
            self._pos = match.end()
            return (self._parse_section(start),)
        if keyword == "if":
            self._pos = match.end()
            return (self._parse_conditional(start),)
        if keyword == "foreach":
            self._pos = match.end()
            return (self._parse_loop(start),)
        if keyword == "model" and source[match.end() : match.end() + 1].isspace():
            self._pos = match.end()
            self._parse_model_directive(start, in_block=in_block)
            return ()
        return (Output(self._parse_implicit_expression()),)

    def _parse_implicit_expression(self) -> Expression:
        source = self.source
        start = self._pos
        self._pos = IDENTIFIER_PATTERN.match(source, start).end()  # type: ignore[union-attr]
        while self._pos < len(source):
            char = source[self._pos]
            if char == ".":
                member = IDENTIFIER_PATTERN.match(source, self._pos + 1)
                if member is None:
                    break
                self._pos = member.end()
            elif char in "([":
                self._pos = self._scan_balanced(self._pos)
            else:
                break
        return self._expression(source[start : self._pos], start)

    # ------------------------------------------------------------------
    # code constructs

    def _parse_code_block(self, start: int) -> tuple[Node, ...]:
        end = self._scan_balanced(self._pos)
        body_start = self._pos + 1
        body = self.source[body_start : end - 1]
        self._pos = end
        return tuple(
            self._parse_statement(text, body_start + offset)
            for text, offset in self._split_statements(body)
        )

    def _parse_statement(self, text: str, offset: int) -> Assign:
        stripped = text.strip()
        offset += len(text) - len(text.lstrip())
        match = ASSIGNMENT_PATTERN.match(stripped)
        if match is None:
            raise self._error(
                f"Unsupported statement {stripped!r}; expected 'name = expression'.",
                offset,
            )
        target = match.group("target")
        attribute = match.group("attribute")
        if attribute is not None and target != "ViewBag":
            raise self._error(
                f"Cannot assign to '{target}.{attribute}'; only ViewBag members are assignable.",
                offset,
            )
        expression = self._expression(
            match.group("expression"), offset + match.start("expression")
        )
        return Assign(target=target, attribute=attribute, expression=expression)

    def _parse_section(self, start: int) -> Section:
        self._skip_whitespace()
        match = IDENTIFIER_PATTERN.match(self.source, self._pos)
        if match is None:
            raise self._error("Expected a section name after '@section'.", start)
        name = match.group()
        if name.casefold() in self._section_names:
            raise self._error(f"Section '{name}' is already defined.", start)
        self._section_names.add(name.casefold())
        self._pos = match.end()
        body = self._parse_braced_markup(start, f"section '{name}'")
        line, column = self._location(start)
        return Section(name=name, body=body, line=line, column=column)

    def _parse_conditional(self, start: int) -> Conditional:
        branches: list[tuple[Expression, tuple[Node, ...]]] = []
        otherwise: tuple[Node, ...] | None = None
        condition = self._parse_parenthesized(start, "if")
        branches.append((condition, self._parse_braced_markup(start, "if")))
        while True:
            resume = self._pos
            self._skip_whitespace()
            if not self._consume_keyword("else"):
                self._pos = resume
                break
            self._skip_whitespace()
            if self._consume_keyword("if"):
                condition = self._parse_parenthesized(start, "else if")
                branches.append((condition, self._parse_braced_markup(start, "else if")))
                continue
            otherwise = self._parse_braced_markup(start, "else")
            break
        return Conditional(branches=tuple(branches), otherwise=otherwise)

    def _parse_loop(self, start: int) -> Loop:
        self._skip_whitespace()
        if self.source[self._pos : self._pos + 1] != "(":
            raise self._error("Expected '(' after '@foreach'.", start)
        end = self._scan_balanced(self._pos)
        header_start = self._pos + 1
        header = self.source[header_start : end - 1]
        match = FOREACH_PATTERN.match(header)
        if match is None:
            raise self._error("Expected '@foreach (item in expression)'.", start)
        iterable = self._expression(
            match.group("iterable"), header_start + match.start("iterable")
        )
        self._pos = end
        body = self._parse_braced_markup(start, "foreach")
        return Loop(variable=match.group("variable"), iterable=iterable, body=body)

    def _parse_model_directive(self, start: int, *, in_block: bool) -> None:
        if in_block:
            raise self._error("'@model' is only allowed at the top level.", start)
        if self._model_type_name is not None:
            raise self._error("'@model' may only be declared once.", start)
        self._skip_whitespace()
        match = MODEL_TYPE_PATTERN.match(self.source, self._pos)
        if match is None:
            raise self._error("Expected a type name after '@model'.", start)
        self._model_type_name = match.group()
        self._model_type_location = self._location(start)
        self._pos = match.end()
        line_end = LINE_END_PATTERN.match(self.source, self._pos)
        if line_end is not None:
            self._pos = line_end.end()

    def _parse_parenthesized(self, start: int, keyword: str) -> Expression:
        self._skip_whitespace()
        if self.source[self._pos : self._pos + 1] != "(":
            raise self._error(f"Expected '(' after '{keyword}'.", start)
        end = self._scan_balanced(self._pos)
        expression = self._expression(self.source[self._pos + 1 : end - 1], self._pos + 1)
        self._pos = end
        return expression

    def _parse_braced_markup(self, start: int, construct: str) -> tuple[Node, ...]:
        self._skip_whitespace()
        if self.source[self._pos : self._pos + 1] != "{":
            raise self._error(f"Expected '{{' to open {construct} block.", start)
        block_start = self._pos
        self._pos += 1
        return self._parse_markup(in_block=True, block_start=block_start)

    # ------------------------------------------------------------------
    # scanning primitives

    def _skip_whitespace(self) -> None:
        while self._pos < len(self.source) and self.source[self._pos].isspace():
            self._pos += 1

    def _consume_keyword(self, keyword: str) -> bool:
        match = IDENTIFIER_PATTERN.match(self.source, self._pos)
        if match is None or match.group() != keyword:
            return False
        self._pos = match.end()
        return True

    def _scan_balanced(self, start: int) -> int:
        """Return the offset just past the bracket matching ``source[start]``."""
        source = self.source
        stack = [_CLOSERS[source[start]]]
        pos = start + 1
        while pos < len(source):
            char = source[pos]
            if char in _QUOTES:
                pos = self._skip_string(pos)
                continue
            if char in _CLOSERS:
                stack.append(_CLOSERS[char])
            elif char == stack[-1]:
                stack.pop()
                if not stack:
                    return pos + 1
            elif char in ")]}":
                raise self._error(f"Unexpected '{char}'.", pos)
            pos += 1
        raise self._error(f"Unterminated '{source[start]}'.", start)

    def _skip_string(self, start: int) -> int:
        quote = self.source[start]
        pos = start + 1
        while pos < len(self.source):
            char = self.source[pos]
            if char == "\\":
                pos += 2
                continue
            if char == quote:
                return pos + 1
            pos += 1
        raise self._error("Unterminated string literal.", start)

    def _split_statements(self, body: str) -> list[tuple[str, int]]:
        """Split a code block body on ``;`` and newlines outside brackets and strings."""
        statements: list[tuple[str, int]] = []
        depth = 0
        segment_start = 0
        pos = 0
        quote: str | None = None
        while pos < len(body):
            char = body[pos]
            if quote is not None:
                if char == "\\":
                    pos += 2
                    continue
                if char == quote:
                    quote = None
            elif char in _QUOTES:
                quote = char
            elif char in "([{":
                depth += 1
            elif char in ")]}":
                depth -= 1
            elif char in ";\n" and depth == 0:
                statements.append((body[segment_start:pos], segment_start))
                segment_start = pos + 1
            pos += 1
        statements.append((body[segment_start:], segment_start))
        return [(text, offset) for text, offset in statements if text.strip()]


def parse_template(
    source: str, path: str, compile_expression: ExpressionCompiler
) -> Document:
    """Parse ``source`` into a :class:`Document`.

    Raises
    ------
    CompilationError
        If the markup or an embedded expression is malformed.
    """
    return TemplateParser(source, path, compile_expression).parse()


__all__ = ["ExpressionCompiler", "TemplateParser", "parse_template"]
