from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Any

from solplan.package.domain.errors import MalformedIdentifierError

BUILD_TYPE_SEP = "."
TARGET_TYPE_SEP = "+"

# [project][.build-type][+target-type]; each present segment is a non-empty name
_IDENTIFIER_RE = re.compile(r"""
    ^
    (?P<project>[^.+\s]+)?          # optional project name
    (?:\.(?P<build>[^.+\s]+))?      # optional .build-type
    (?:\+(?P<target>[^.+\s]+))?     # optional +target-type
    $
""", re.VERBOSE)


def _check_name(axis: str, value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise TypeError(f"{axis} must be a string, got {type(value)!r}")
    if re.search(r"[.+\s]", value):
        raise MalformedIdentifierError(f"invalid {axis} name: {value!r}", subject=value)
    return value


@total_ordering
@dataclass(frozen=True, slots=True, eq=True)
class ContextIdentifier:
    """
    Names one context, or a pattern over contexts, as `project[.build-type][+target-type]`.

    Any axis left empty acts as a wildcard when the identifier is used as a
    pattern. Empty axes are stored as None so that `ContextIdentifier("App")`
    and `ContextIdentifier("App", "")` are the same value.

    Attributes:
        project (str | None): Project name.
        build_type (str | None): Build-type name.
        target_type (str | None): Target-type name.
    """
    project: str | None = None
    build_type: str | None = None
    target_type: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "project", _check_name("project", self.project))
        object.__setattr__(self, "build_type", _check_name("build-type", self.build_type))
        object.__setattr__(self, "target_type", _check_name("target-type", self.target_type))

    @classmethod
    def parse(cls, text: str) -> ContextIdentifier:
        """
        Parses the textual form `[project][.build-type][+target-type]`.

        Args:
            text (str): The identifier text, e.g. "App.Debug+BoardA", ".Debug" or "+BoardA".

        Returns:
            ContextIdentifier: The parsed identifier.

        Raises:
            MalformedIdentifierError: If the text does not follow the grammar or
                names no axis at all.
        """
        if not isinstance(text, str):
            raise MalformedIdentifierError(f"context identifier must be a string, got {type(text)!r}")
        m = _IDENTIFIER_RE.match(text)
        if m is None or not any(m.group(g) for g in ("project", "build", "target")):
            raise MalformedIdentifierError(f"malformed context identifier: {text!r}", subject=text)
        return cls(m.group("project"), m.group("build"), m.group("target"))

    def format(self) -> str:
        text = self.project or ""
        if self.build_type:
            text += BUILD_TYPE_SEP + self.build_type
        if self.target_type:
            text += TARGET_TYPE_SEP + self.target_type
        return text

    def matches(self, concrete: ContextIdentifier) -> bool:
        """
        True when every non-empty field of this pattern equals the same field of
        `concrete`.
        """
        return all(
            mine is None or mine == theirs
            for mine, theirs in zip(self._fields(), concrete._fields()))

    def _fields(self) -> tuple[str | None, str | None, str | None]:
        return self.project, self.build_type, self.target_type

    def _sort_key(self) -> tuple[str, str, str]:
        return tuple(f or "" for f in self._fields())  # type: ignore[return-value]

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, ContextIdentifier):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        return self.format()


def parse(text: str) -> ContextIdentifier:
    return ContextIdentifier.parse(text)


def format(identifier: ContextIdentifier) -> str:  # noqa: A001
    return identifier.format()


def matches(pattern: ContextIdentifier, concrete: ContextIdentifier) -> bool:
    return pattern.matches(concrete)


def matches_target_type(pattern_text: str, target_type: str | None) -> bool:
    """
    Applies identifier matching to the target-type axis only.

    Accepts either a bare target-type name ("BoardA") or the identifier form
    ("+BoardA"). A pattern that names no target-type matches every target-type.

    Raises:
        MalformedIdentifierError: If the pattern text is malformed.
    """
    text = pattern_text.strip()
    if not text.startswith(TARGET_TYPE_SEP):
        text = TARGET_TYPE_SEP + text
    pattern = ContextIdentifier.parse(text)
    return ContextIdentifier(target_type=pattern.target_type).matches(
        ContextIdentifier(target_type=target_type))
