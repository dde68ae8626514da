"""Exception taxonomy raised by the template engine.

Every error derives from :class:`TemplateError` so callers can catch the whole
family at once. None of these are swallowed internally: they surface
synchronously to the caller of ``render``.
"""

from __future__ import annotations

import typing as typ


class TemplateError(RuntimeError):
    """Base class for all template engine failures."""


class TemplateNotFoundError(TemplateError, LookupError):
    """Raised when a logical page path cannot be resolved to source text."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Template '{path}' not found.")


class CompilationError(TemplateError):
    """Raised when template source text is malformed.

    Attributes
    ----------
    path : str
        Logical path of the template being compiled.
    line : int
        One-based line of the offending construct.
    column : int
        One-based column of the offending construct.
    message : str
        Human-readable description of the problem.
    """

    def __init__(self, message: str, *, path: str, line: int, column: int) -> None:
        self.message = message
        self.path = path
        self.line = line
        self.column = column
        super().__init__(f"{path}:{line}:{column}: {message}")


class RenderError(TemplateError):
    """Raised when executing a compiled page against a model fails."""

    def __init__(
        self, message: str, *, path: str, reference: str | None = None
    ) -> None:
        self.path = path
        self.reference = reference
        detail = f" (while evaluating '{reference}')" if reference else ""
        super().__init__(f"{path}: {message}{detail}")


class MissingSectionError(RenderError):
    """Raised when a layout renders a required section its child never defined."""

    def __init__(self, name: str, *, path: str) -> None:
        self.name = name
        super().__init__(
            f"Section '{name}' is not defined by the child page.", path=path
        )


class LayoutCycleError(TemplateError):
    """Raised when a layout chain revisits a layout it already applied."""

    def __init__(self, chain: typ.Sequence[str]) -> None:
        self.chain = tuple(chain)
        super().__init__("Layout cycle detected: " + " -> ".join(self.chain))


__all__ = [
    "CompilationError",
    "LayoutCycleError",
    "MissingSectionError",
    "RenderError",
    "TemplateError",
    "TemplateNotFoundError",
]
