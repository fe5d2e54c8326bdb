"""Name and identifier grammars used to validate writer arguments.

Every grammar is a member of :class:`Grammar`: a pure predicate plus the
human-readable description that error messages name.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from enum import Enum

from scriptwriters.errors import InvalidIdentifierError, InvalidNameError

_HASKELL_CONID = re.compile(r"[A-Z][A-Za-z0-9_']*")
_PACKAGE_VERSION = re.compile(r"^(.*?)-(\d.*)$")


class Grammar(Enum):
    FILENAME = "POSIX filename"
    ABSOLUTE_PATHNAME = "POSIX absolute pathname"
    HASKELL_CONID = "Haskell constructor identifier"
    HASKELL_MODID = "Haskell module identifier"

    @property
    def description(self) -> str:
        return self.value

    def check(self, value: object) -> bool:
        return _PREDICATES[self](value)


def _is_filename(value: object) -> bool:
    return (
        isinstance(value, str)
        and value not in ("", ".", "..")
        and "/" not in value
        and "\0" not in value
    )


def _is_absolute_pathname(value: object) -> bool:
    if not isinstance(value, str) or not value.startswith("/"):
        return False
    # Duplicate and trailing slashes normalize away.
    segments = [segment for segment in value.split("/") if segment]
    return bool(segments) and all(_is_filename(segment) for segment in segments)


def _is_haskell_conid(value: object) -> bool:
    return isinstance(value, str) and _HASKELL_CONID.fullmatch(value) is not None


def _is_haskell_modid(value: object) -> bool:
    return isinstance(value, str) and all(_is_haskell_conid(part) for part in value.split("."))


_PREDICATES: dict[Grammar, Callable[[object], bool]] = {
    Grammar.FILENAME: _is_filename,
    Grammar.ABSOLUTE_PATHNAME: _is_absolute_pathname,
    Grammar.HASKELL_CONID: _is_haskell_conid,
    Grammar.HASKELL_MODID: _is_haskell_modid,
}

NAME_GRAMMARS = (Grammar.ABSOLUTE_PATHNAME, Grammar.FILENAME)


def describe(grammars: tuple[Grammar, ...]) -> str:
    """Render one or more grammars as a phrase, e.g. ``A or B``."""
    return " or ".join(grammar.description for grammar in grammars)


def matches(value: object, grammars: tuple[Grammar, ...]) -> bool:
    return any(grammar.check(value) for grammar in grammars)


def require_name(
    value: str,
    grammars: tuple[Grammar, ...] = NAME_GRAMMARS,
    *,
    argument: str = "name",
) -> str:
    """Return *value* unchanged or raise :class:`InvalidNameError`."""
    if not matches(value, grammars):
        raise InvalidNameError(
            value,
            expected=describe(grammars),
            argument=argument,
            hint="Use a bare filename such as `hello` or an absolute path such as `/bin/hello`.",
        )
    return value


def require_identifier(value: str, grammar: Grammar, *, argument: str) -> str:
    """Return *value* unchanged or raise :class:`InvalidIdentifierError`."""
    if not grammar.check(value):
        raise InvalidIdentifierError(value, expected=grammar.description, argument=argument)
    return value


def base_name(name: str) -> str:
    """Last non-empty segment of *name*."""
    segments = [segment for segment in name.split("/") if segment]
    return segments[-1] if segments else name


def relative_path(name: str) -> str:
    """Absolute pathname *name* as a normalized path relative to an output root."""
    return "/".join(segment for segment in name.split("/") if segment)


def parse_package_name(value: str) -> tuple[str, str]:
    """Split ``name-version`` at the first dash followed by a digit.

    >>> parse_package_name("hello-world-1.2")
    ('hello-world', '1.2')
    >>> parse_package_name("hello")
    ('hello', '')
    """
    match = _PACKAGE_VERSION.match(value)
    if match is None:
        return value, ""
    return match.group(1), match.group(2)
