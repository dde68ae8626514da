"""Layout-aware template rendering with cascading directory layouts.

Templates use the ``@`` syntax (``@Model.Name``, ``@{ Layout = "Site"; }``,
``@section Title { ... }``, ``@RenderBody()``) and are compiled once into
immutable page units that many threads can render concurrently.

Exports
-------
- ``ViewEngine``: facade compiling, caching, and rendering pages.
- ``EngineConfig`` / ``load_engine_config``: engine settings.
- ``InMemoryFileSystem`` / ``DirectoryFileSystem``: template storage.
- Error types raised by compilation and rendering.

Examples
--------
>>> from razor_pages import ViewEngine
>>> ViewEngine().create_and_render("Hello @Model.Name!", {"Name": "World"})
'Hello World!'
"""

from __future__ import annotations

from ._constants import BARE_LAYOUT, NO_LAYOUT
from .config import EngineConfig, EngineConfigError, load_engine_config
from .engine import ViewEngine
from .errors import (
    CompilationError,
    LayoutCycleError,
    MissingSectionError,
    RenderError,
    TemplateError,
    TemplateNotFoundError,
)
from .executor import RenderResult
from .sources import DirectoryFileSystem, InMemoryFileSystem

__all__ = [
    "BARE_LAYOUT",
    "NO_LAYOUT",
    "CompilationError",
    "DirectoryFileSystem",
    "EngineConfig",
    "EngineConfigError",
    "InMemoryFileSystem",
    "LayoutCycleError",
    "MissingSectionError",
    "RenderError",
    "RenderResult",
    "TemplateError",
    "TemplateNotFoundError",
    "ViewEngine",
    "load_engine_config",
]
