"""Semantic versions, version constraints and bump classification."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Callable

__all__ = [
    "SemverError",
    "Version",
    "Constraint",
    "parse_version",
    "parse_strict_version",
    "parse_constraint",
    "semver_bump",
    "highest_semver_bump",
]


class SemverError(ValueError):
    """Raised for malformed versions or constraints."""


_IDENT = r"[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*"
_LOOSE = re.compile(
    rf"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:-({_IDENT}))?(?:\+({_IDENT}))?$"
)
_STRICT = re.compile(
    rf"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-({_IDENT}))?(?:\+({_IDENT}))?$"
)
_WILD = {"x", "X", "*"}
_PART = r"(\d+|[xX*])"
_CONSTRAINT_VERSION = re.compile(
    rf"^v?{_PART}(?:\.{_PART})?(?:\.{_PART})?(?:-({_IDENT}))?(?:\+({_IDENT}))?$"
)
_PRIMITIVE = re.compile(r"^(!=|>=|=>|<=|=<|>|<|=|~>|~|\^)?\s*(\S+)$")


def _prerelease_key(pre: str) -> tuple:
    parts = []
    for ident in pre.split("."):
        if ident.isdigit():
            parts.append((0, int(ident), ""))
        else:
            parts.append((1, 0, ident))
    return tuple(parts)


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version; build metadata does not take part in ordering."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    metadata: str = ""

    def _key(self) -> tuple:
        # A release sorts after any of its prereleases.
        pre = (1,) if not self.prerelease else (0, _prerelease_key(self.prerelease))
        return (self.major, self.minor, self.patch, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Version) -> bool:
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text


def parse_version(text: str) -> Version:
    """Parse a version leniently: a leading v and missing parts are allowed."""
    match = _LOOSE.match(text.strip())
    if not match:
        raise SemverError("invalid semantic version")
    major, minor, patch, pre, meta = match.groups()
    return Version(int(major), int(minor or 0), int(patch or 0), pre or "", meta or "")


def parse_strict_version(text: str) -> Version:
    """Parse a version that must be exactly MAJOR.MINOR.PATCH[-pre][+meta]."""
    match = _STRICT.match(text)
    if not match:
        raise SemverError("invalid semantic version")
    major, minor, patch, pre, meta = match.groups()
    return Version(int(major), int(minor), int(patch), pre or "", meta or "")


@dataclass(frozen=True)
class _Primitive:
    test: Callable[[Version], bool]
    has_prerelease: bool

    def check(self, version: Version) -> bool:
        if version.prerelease and not self.has_prerelease:
            return False
        return self.test(version)


def _parse_primitive(text: str, original: str) -> _Primitive:
    match = _PRIMITIVE.match(text)
    if not match:
        raise SemverError(f"improper constraint: {original}")
    op = match.group(1) or "="
    vmatch = _CONSTRAINT_VERSION.match(match.group(2))
    if not vmatch:
        raise SemverError(f"improper constraint: {original}")
    raw = vmatch.groups()[:3]
    pre = vmatch.group(4) or ""

    # Number of leading concrete components; later ones are wildcards.
    given = 0
    for part in raw:
        if part is None or part in _WILD:
            break
        given += 1
    nums = [int(p) if i < given else 0 for i, p in enumerate(raw)]
    base = Version(nums[0], nums[1], nums[2], pre)

    def next_at(level: int) -> Version:
        if level == 0:
            return Version(nums[0] + 1, 0, 0)
        if level == 1:
            return Version(nums[0], nums[1] + 1, 0)
        return Version(nums[0], nums[1], nums[2] + 1)

    if given == 0:
        lower, upper = Version(0, 0, 0), None
    elif given < 3:
        lower, upper = base, next_at(given - 1)
    else:
        lower, upper = base, None

    def in_range(v: Version) -> bool:
        if upper is None:
            return v == base if given == 3 else v >= lower
        return lower <= v < upper

    if op == "=":
        test = in_range
    elif op == "!=":
        test = lambda v: not in_range(v)  # noqa: E731
    elif op == ">":
        if given == 3:
            test = lambda v: v > base  # noqa: E731
        elif given == 0:
            test = lambda v: False  # noqa: E731
        else:
            test = lambda v: v >= upper  # noqa: E731
    elif op in (">=", "=>"):
        test = lambda v: v >= base  # noqa: E731
    elif op == "<":
        test = lambda v: v < base  # noqa: E731
    elif op in ("<=", "=<"):
        if given == 3:
            test = lambda v: v <= base  # noqa: E731
        elif given == 0:
            test = lambda v: True  # noqa: E731
        else:
            test = lambda v: v < upper  # noqa: E731
    elif op in ("~", "~>"):
        top = next_at(0) if given <= 1 else next_at(1)
        test = lambda v: base <= v < top  # noqa: E731
    else:  # caret
        if nums[0] > 0 or given <= 1:
            top = next_at(0)
        elif nums[1] > 0 or given == 2:
            top = next_at(1)
        else:
            top = next_at(2)
        test = lambda v: base <= v < top  # noqa: E731
    return _Primitive(test, bool(pre))


class Constraint:
    """A set of version ranges joined by || with comma or space separated ANDs."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._alternatives: list[list[_Primitive]] = []
        for alternative in text.split("||"):
            alternative = alternative.strip()
            if not alternative:
                raise SemverError(f"improper constraint: {text}")
            hyphen = re.match(r"^(\S+)\s+-\s+(\S+)$", alternative)
            if hyphen:
                parts = [f">={hyphen.group(1)}", f"<={hyphen.group(2)}"]
            else:
                normalised = re.sub(r"(!=|>=|=>|<=|=<|>|<|=|~>|~|\^)\s+", r"\1", alternative)
                parts = [p for p in re.split(r"[\s,]+", normalised) if p]
            if not parts:
                raise SemverError(f"improper constraint: {text}")
            self._alternatives.append([_parse_primitive(p, text) for p in parts])

    def check(self, version: Version) -> bool:
        """Report whether the version satisfies the constraint."""
        return any(all(p.check(version) for p in group) for group in self._alternatives)

    def __repr__(self) -> str:
        return f"Constraint({self.text!r})"


def parse_constraint(text: str) -> Constraint:
    """Parse a constraint string such as "1.*" or ">=1.2, <2"."""
    return Constraint(text)


def semver_bump(old_version: str, new_version: str) -> str:
    """Classify the change between two strict versions as major, minor, patch or <none>."""
    old = parse_strict_version(old_version)
    new = parse_strict_version(new_version)
    if new.major > old.major:
        return "major"
    if new.minor > old.minor:
        return "minor"
    if new.patch > old.patch:
        return "patch"
    return "<none>"


_RANK = {"<none>": 0, "patch": 1, "minor": 2, "major": 3}


def highest_semver_bump(highest: str, current: str) -> str:
    """Return the larger of two bump names."""
    if highest not in _RANK:
        return highest
    if highest == "<none>":
        return current
    if _RANK.get(current, -1) > _RANK[highest]:
        return current
    return highest