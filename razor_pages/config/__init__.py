"""Load and validate view engine configuration.

The primary entry point is :func:`load_engine_config`, which reads an
``engine`` mapping from YAML, applies defaults, and returns an
:class:`EngineConfig` ready for :class:`~razor_pages.engine.ViewEngine`.

Examples
--------
>>> from razor_pages.config import EngineConfig
>>> EngineConfig().default_layout_file
'_Layout.cshtml'
"""

from .loader import build_engine_config, load_engine_config
from .models import EngineConfig, EngineConfigError

__all__ = [
    "EngineConfig",
    "EngineConfigError",
    "build_engine_config",
    "load_engine_config",
]
