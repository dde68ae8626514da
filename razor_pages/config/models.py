"""Typed dataclasses describing view engine configuration."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path  # noqa: TC003 - used for runtime type metadata

from razor_pages._constants import (
    BARE_LAYOUT,
    DEFAULT_EXTENSION,
    DEFAULT_LAYOUT_NAME,
    DEFAULT_OPT_OUT_MARKER,
    DEFAULT_TEMPLATE_ROOT,
)


class EngineConfigError(ValueError):
    """Raised when the engine configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class EngineConfig:
    """Settings shared by the compiler, registry, and layout resolver.

    Attributes
    ----------
    template_root : str
        Virtual directory that relative layout names resolve against.
    extension : str
        File extension appended to page names that omit one.
    default_layout_name : str
        Reserved file stem marking a directory-default layout.
    bare_layout_name : str
        Layout override that resolves to the root ``bare`` page when present
        and to no layout otherwise.
    autoescape : bool
        HTML-escape expression output unless it is already markup.
    strict_sections : bool
        Treat ``RenderSection`` of an undefined section as an error unless the
        call passes ``required=False``.
    live_reload : bool
        Compare source modification tokens on each cache hit and recompile
        stale pages.
    directory_opt_out : bool
        Stop the directory-default layout search at a directory holding the
        opt-out marker file.
    opt_out_marker : str
        File stem of the opt-out marker.
    max_partial_depth : int
        Maximum nesting of ``RenderPage`` partial calls within one render.
    max_inline_templates : int
        Number of path-less templates from ``create_and_render`` kept
        registered; the least recently used are dropped beyond it.
    views_dir : Path | None
        On-disk directory mounted at ``template_root``.
    pygments_style : str
        Pygments style used by the ``Html`` code helpers.
    """

    template_root: str = DEFAULT_TEMPLATE_ROOT
    extension: str = DEFAULT_EXTENSION
    default_layout_name: str = DEFAULT_LAYOUT_NAME
    bare_layout_name: str = BARE_LAYOUT
    autoescape: bool = True
    strict_sections: bool = False
    live_reload: bool = False
    directory_opt_out: bool = False
    opt_out_marker: str = DEFAULT_OPT_OUT_MARKER
    max_partial_depth: int = 16
    max_inline_templates: int = 256
    views_dir: Path | None = None
    pygments_style: str = "monokai"

    def __post_init__(self) -> None:
        """Validate invariants that the loader cannot express as types."""
        if not self.template_root.startswith("/"):
            msg = f"template_root must be an absolute virtual path, got {self.template_root!r}."
            raise EngineConfigError(msg)
        if not self.extension.startswith("."):
            msg = f"extension must start with '.', got {self.extension!r}."
            raise EngineConfigError(msg)
        if self.max_partial_depth < 1:
            msg = "max_partial_depth must be at least 1."
            raise EngineConfigError(msg)
        if self.max_inline_templates < 1:
            msg = "max_inline_templates must be at least 1."
            raise EngineConfigError(msg)

    @property
    def default_layout_file(self) -> str:
        """Return the directory-default layout file name."""
        return f"{self.default_layout_name}{self.extension}"

    @property
    def opt_out_file(self) -> str:
        """Return the directory opt-out marker file name."""
        return f"{self.opt_out_marker}{self.extension}"


__all__ = ["EngineConfig", "EngineConfigError"]
