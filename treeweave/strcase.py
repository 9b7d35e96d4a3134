"""
strcase.py

Responsibility: word-case conversions exposed to templates.

Words are delimited by spaces, underscores and hyphens. snake/kebab case also
break on a lower-to-upper transition (`HelloWorld` -> `hello_world`).
"""

from __future__ import annotations

_DELIMITERS = (" ", "_", "-")


def _delimit(s: str, sep: str) -> str:
    out: list[str] = []
    previous_is_lower = False
    for ch in s:
        if ch.isupper() and previous_is_lower:
            out.append(sep)
            out.append(ch.lower())
            previous_is_lower = False
        elif ch in _DELIMITERS:
            out.append(sep)
            previous_is_lower = False
        elif ch.islower() or ch.isdigit():
            out.append(ch)
            previous_is_lower = True
        else:
            out.append(ch.lower())
            previous_is_lower = False
    return "".join(out)


def _words(s: str) -> list[str]:
    for delimiter in _DELIMITERS:
        s = s.replace(delimiter, " ")
    return ["".join(ch for ch in word if ch.isalnum()) for word in s.split()]


def _capitalize(word: str) -> str:
    if not word:
        return word
    return word[0].upper() + word[1:].lower()


def to_snake_case(s: str) -> str:
    return _delimit(s, "_")


def to_kebab_case(s: str) -> str:
    return _delimit(s, "-")


def to_camel_case(s: str) -> str:
    words = _words(s)
    if not words:
        return ""
    return words[0].lower() + "".join(_capitalize(w) for w in words[1:])


def to_pascal_case(s: str) -> str:
    return "".join(_capitalize(w) for w in _words(s))
