"""Decide which layout, if any, wraps an executed page.

Resolution order for a content page:

1. A render-time override, when given.
2. The layout the template assigned with ``Layout = ...`` (including an
   explicit opt-out with ``none`` or an empty string).
3. The nearest directory-default layout (``_Layout.cshtml``), searching from
   the page's own directory up to the virtual root.

Explicit choices always win: an opt-out suppresses directory defaults too.
Relative layout names are resolved against the template root, not against the
page's directory. Instances acting as layouts only follow explicit directives.
"""

from __future__ import annotations

import logging
import posixpath
import typing as typ

from ._constants import NO_LAYOUT
from .sources import directory_ancestry

if typ.TYPE_CHECKING:
    from .config import EngineConfig
    from .registry import PageRegistry
    from .runtime import PageInstance

logger = logging.getLogger(__name__)


class LayoutResolver:
    """Resolve layout paths for executed page instances."""

    def __init__(self, registry: PageRegistry, config: EngineConfig) -> None:
        self.registry = registry
        self.config = config

    def resolve_layout(
        self,
        instance: PageInstance,
        *,
        override: str | None = None,
        apply_defaults: bool = True,
    ) -> str | None:
        """Return the qualified layout path wrapping ``instance``, or ``None``.

        Parameters
        ----------
        instance : PageInstance
            Executed page whose layout is being resolved.
        override : str, optional
            Render-time layout name taking precedence over the template's own
            directive. ``"none"`` suppresses every layout.
        apply_defaults : bool, optional
            Search directory-default layouts when nothing explicit was set.
            Disabled for instances that are themselves layouts.
        """
        if override is not None:
            resolved = self.resolve_name(override)
            source = "override"
        elif instance.layout_is_set:
            resolved = self.resolve_name(instance.layout)
            source = "directive"
        elif apply_defaults:
            resolved = self.find_directory_default(instance.path)
            source = "directory default"
        else:
            return None
        logger.debug("Layout for %s via %s: %s", instance.path, source, resolved)
        return resolved

    def resolve_name(self, name: str | None) -> str | None:
        """Qualify an explicit layout name against the template root.

        ``None``, ``""`` and ``"none"`` mean no layout. The bare layout name
        resolves to the root bare page only when one exists.
        """
        if not name or name.casefold() == NO_LAYOUT:
            return None
        if name.startswith("/"):
            path = self.registry.qualify(name)
        else:
            path = self.registry.qualify(posixpath.join(self.config.template_root, name))
        if (
            name.casefold() == self.config.bare_layout_name.casefold()
            and not self.registry.exists(path)
        ):
            return None
        return path

    def find_directory_default(self, page_path: str) -> str | None:
        """Return the nearest directory-default layout above ``page_path``.

        When ``directory_opt_out`` is enabled, a directory holding the opt-out
        marker file ends the search with no layout.
        """
        for directory in directory_ancestry(page_path):
            if self.config.directory_opt_out and self.registry.exists(
                posixpath.join(directory, self.config.opt_out_file)
            ):
                return None
            candidate = posixpath.join(directory, self.config.default_layout_file)
            if candidate != page_path and self.registry.exists(candidate):
                return candidate
        return None


__all__ = ["LayoutResolver"]
