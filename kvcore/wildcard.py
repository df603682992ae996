"""Glob-style patterns as used by key matching commands."""

from __future__ import annotations

import re
import warnings
from dataclasses import dataclass, field

ERR_END_WITH_ESCAPE = "end with escape \\"

# characters of a wildcard that need another meaning in a regular expression
_REPLACE = {
    "+": r"\+",
    ")": r"\)",
    "$": r"\$",
    ".": r"\.",
    "{": r"\{",
    "}": r"\}",
    "|": r"\|",
    "*": ".*",
    "?": ".",
}


@dataclass(frozen=True)
class Pattern:
    """A compiled wildcard pattern."""

    source: str
    _regex: re.Pattern[str] = field(repr=False, compare=False)

    def is_match(self, s: str) -> bool:
        """Tell whether the whole of s matches the pattern."""
        return self._regex.fullmatch(s) is not None


def _translate(src: str) -> str:
    parts: list[str] = []
    i = 0
    while i < len(src):
        ch = src[i]
        if ch == "\\":
            if i == len(src) - 1:
                raise ValueError(ERR_END_WITH_ESCAPE)
            parts.append(ch + src[i + 1])
            i += 2
            continue
        if ch == "^":
            # negation only right after an unescaped "["
            negates = i >= 1 and src[i - 1] == "[" and (i == 1 or src[i - 2] != "\\")
            parts.append("^" if negates else r"\^")
        else:
            parts.append(_REPLACE.get(ch, ch))
        i += 1
    return "".join(parts)


def compile_pattern(src: str) -> Pattern:
    """Compile a wildcard supporting *, ?, [...], [^...] and backslash escapes."""
    expression = _translate(src)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", FutureWarning)
            regex = re.compile(expression, re.DOTALL if False else 0)
    except re.error as exc:
        raise ValueError(str(exc)) from exc
    return Pattern(src, regex)