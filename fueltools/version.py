"""Semantic version numbers with strict parsing and semver ordering."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass

_MAX_COMPONENT = 2**64 - 1
_IDENT = r"[0-9A-Za-z-]+"
_PATTERN = re.compile(
    r"(?P<major>0|[1-9][0-9]*)\.(?P<minor>0|[1-9][0-9]*)\.(?P<patch>0|[1-9][0-9]*)"
    rf"(?:-(?P<pre>{_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+(?P<build>{_IDENT}(?:\.{_IDENT})*))?"
)


class VersionError(ValueError):
    """Raised when a string is not a valid semantic version."""


def _identifier_key(ident: str) -> tuple[int, int, str]:
    if ident.isdigit():
        return (0, int(ident), ident)
    return (1, 0, ident)


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version: major.minor.patch with optional pre-release and build."""

    major: int
    minor: int
    patch: int
    pre: str = ""
    build: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a strict semantic version string."""
        if not text:
            raise VersionError("empty string, expected a semver version")
        match = _PATTERN.fullmatch(text)
        if match is None:
            raise VersionError(f"invalid semver version: {text!r}")
        numbers = [int(match[part]) for part in ("major", "minor", "patch")]
        if any(number > _MAX_COMPONENT for number in numbers):
            raise VersionError(f"version number exceeds u64 range: {text!r}")
        pre = match["pre"] or ""
        for ident in pre.split(".") if pre else ():
            if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
                raise VersionError(f"leading zero in pre-release identifier: {text!r}")
        return cls(*numbers, pre=pre, build=match["build"] or "")

    def _key(self) -> tuple:
        pre_key = (
            (1,) if not self.pre
            else (0, tuple(_identifier_key(i) for i in self.pre.split(".")))
        )
        build_key = (
            (0,) if not self.build
            else (1, tuple(_identifier_key(i) for i in self.build.split(".")))
        )
        return (self.major, self.minor, self.patch, pre_key, build_key)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += f"-{self.pre}"
        if self.build:
            text += f"+{self.build}"
        return text