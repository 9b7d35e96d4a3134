"""
funcs.py

Responsibility: the base set of template extension functions.

`DEFAULT_FUNCS` is built once at import and exposed read-only; every
`Executor` copies it into its own Jinja2 environment.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Mapping

from jinja2 import Undefined

from treeweave.strcase import to_camel_case, to_kebab_case, to_pascal_case, to_snake_case


def _default(value: Any, default_value: Any) -> Any:
    if value is None or isinstance(value, Undefined):
        return default_value
    return value


def _split(s: str, sep: str, n: int = -1, keep_sep: bool = False) -> list[str]:
    """
    Split `s` around `sep` into at most `n` pieces (no limit when n < 0, none
    when n == 0). An empty `sep` splits into characters. With `keep_sep`, every
    piece but the last ends with its separator.
    """
    if n == 0:
        return []
    if not sep:
        chars = list(s)
        if 0 < n < len(chars):
            chars[n - 1 :] = ["".join(chars[n - 1 :])]
        return chars
    parts = s.split(sep, n - 1 if n > 0 else -1)
    if keep_sep:
        parts[:-1] = [p + sep for p in parts[:-1]]
    return parts


DEFAULT_FUNCS: Mapping[str, Callable[..., Any]] = MappingProxyType(
    {
        "lower": str.lower,
        "upper": str.upper,
        "trim": str.strip,
        "split": lambda s, sep: _split(s, sep),
        "join": lambda items, sep: sep.join(str(i) for i in items),
        "replace": lambda s, old, new: s.replace(old, new),
        "contains": lambda s, sub: sub in s,
        "has_prefix": str.startswith,
        "has_suffix": str.endswith,
        "trim_prefix": str.removeprefix,
        "trim_suffix": str.removesuffix,
        "trim_space": str.strip,
        "trim_left": str.lstrip,
        "trim_right": str.rstrip,
        "count": lambda s, sub: s.count(sub),
        "repeat": lambda s, n: s * n,
        "equal_fold": lambda a, b: a.casefold() == b.casefold(),
        "split_n": lambda s, sep, n: _split(s, sep, n),
        "split_after": lambda s, sep: _split(s, sep, keep_sep=True),
        "split_after_n": lambda s, sep, n: _split(s, sep, n, keep_sep=True),
        "fields": str.split,
        # Title mapping, which is upper case outside a handful of digraphs.
        "title_case": str.upper,
        "snake_case": to_snake_case,
        "camel_case": to_camel_case,
        "kebab_case": to_kebab_case,
        "pascal_case": to_pascal_case,
        "default": _default,
    }
)
