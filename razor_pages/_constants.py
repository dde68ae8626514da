"""Common literal values used across razor_pages.

These constants keep reserved file names, sentinels, and defaults centralized
so the compiler, layout resolver, configuration loader, and tests agree on the
same values.

Examples
--------
>>> from razor_pages import _constants
>>> _constants.DEFAULT_EXTENSION
'.cshtml'
>>> _constants.INLINE_DIRECTORY
'/__inline__'
"""

import typing as typ

DEFAULT_TEMPLATE_ROOT: typ.Final = "/views"
DEFAULT_EXTENSION: typ.Final = ".cshtml"
DEFAULT_LAYOUT_NAME: typ.Final = "_Layout"
DEFAULT_OPT_OUT_MARKER: typ.Final = "_NoLayout"

NO_LAYOUT: typ.Final = "none"
BARE_LAYOUT: typ.Final = "bare"

INLINE_DIRECTORY: typ.Final = "/__inline__"
