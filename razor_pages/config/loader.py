"""Load view engine configuration YAML into typed dataclasses."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .models import EngineConfig, EngineConfigError

_BOOL_FIELDS = (
    "autoescape",
    "strict_sections",
    "live_reload",
    "directory_opt_out",
)
_STR_FIELDS = (
    "template_root",
    "extension",
    "default_layout_name",
    "bare_layout_name",
    "opt_out_marker",
    "pygments_style",
)


def load_engine_config(path: Path) -> EngineConfig:
    """Load the YAML configuration describing template lookup and rendering.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file. Settings live under a
        top-level ``engine`` mapping; a relative ``views_dir`` is resolved
        against the configuration file's directory.

    Returns
    -------
    EngineConfig
        Parsed configuration with defaults applied for missing keys.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    EngineConfigError
        If the YAML structure or a setting has the wrong type or an unknown key.

    Examples
    --------
    >>> from pathlib import Path
    >>> from razor_pages.config import load_engine_config
    >>> config = load_engine_config(Path("razor.yaml"))  # doctest: +SKIP
    >>> config.template_root  # doctest: +SKIP
    '/views'
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise EngineConfigError(msg)
    raw = loaded.get("engine", {}) or {}
    if not isinstance(raw, dict):
        msg = "The 'engine' section must be a mapping."
        raise EngineConfigError(msg)
    return build_engine_config(raw, base_dir=path.parent)


def build_engine_config(
    raw: typ.Mapping[str, typ.Any], *, base_dir: Path | None = None
) -> EngineConfig:
    """Build an :class:`EngineConfig` from an already-parsed mapping."""
    known = {field.name for field in dc.fields(EngineConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        msg = f"Unknown engine settings: {', '.join(unknown)}"
        raise EngineConfigError(msg)

    values: dict[str, typ.Any] = {}
    for key, value in raw.items():
        match key:
            case _ if key in _BOOL_FIELDS:
                values[key] = _expect(key, value, bool)
            case _ if key in _STR_FIELDS:
                values[key] = _expect(key, value, str)
            case "max_partial_depth" | "max_inline_templates":
                if isinstance(value, bool):
                    msg = f"Setting '{key}' must be an integer."
                    raise EngineConfigError(msg)
                values[key] = _expect(key, value, int)
            case "views_dir":
                if value is None:
                    values[key] = None
                    continue
                views_dir = Path(_expect(key, value, str)).expanduser()
                if not views_dir.is_absolute() and base_dir is not None:
                    views_dir = base_dir / views_dir
                values[key] = views_dir
    return EngineConfig(**values)


def _expect(key: str, value: typ.Any, kind: type) -> typ.Any:
    if not isinstance(value, kind):
        msg = f"Setting '{key}' must be of type {kind.__name__}, got {type(value).__name__}."
        raise EngineConfigError(msg)
    return value


__all__ = ["build_engine_config", "load_engine_config"]
