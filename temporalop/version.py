"""Temporal server versions and semantic-version constraints."""

from __future__ import annotations

import functools
import json
import re
from dataclasses import dataclass

_VERSION_RE = re.compile(
    r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)

_TERM_RE = re.compile(
    r"(!=|>=|=>|<=|=<|~>|=|>|<|~|\^)?\s*"
    r"(v?[0-9xX*]+(?:\.[0-9xX*]+){0,2}"
    r"(?:-[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*)?"
    r"(?:\+[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*)?)"
)

_OP_ALIASES = {"=>": ">=", "=<": "<=", "~>": "~", "": "="}
_WILDCARDS = frozenset("xX*")


def _compare_prerelease(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return 1
    if not b:
        return -1
    left, right = a.split("."), b.split(".")
    for x, y in zip(left, right):
        if x == y:
            continue
        x_num, y_num = x.isdigit(), y.isdigit()
        if x_num and y_num:
            return -1 if int(x) < int(y) else 1
        if x_num:
            return -1
        if y_num:
            return 1
        return -1 if x < y else 1
    if len(left) == len(right):
        return 0
    return -1 if len(left) < len(right) else 1


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A semantic version; build metadata is ignored when comparing."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    metadata: str = ""

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    def _compare(self, other: Version) -> int:
        mine = (self.major, self.minor, self.patch)
        theirs = (other.major, other.minor, other.patch)
        if mine != theirs:
            return -1 if mine < theirs else 1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) == 0

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) < 0

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def validate(self) -> None:
        """Raise ValueError unless the version is in the supported range."""
        if not SUPPORTED_VERSIONS_RANGE.check(self):
            raise ValueError("provided version not in the supported range")

    def greater_or_equal(self, other: Version) -> bool:
        return parse_constraint(f">= {other}").check(self)

    def upgrade_constraint(self) -> Constraint:
        """Constraint allowing only an upgrade from v1.n.x to v1.n+1.x."""
        next_minor = self.inc_minor()
        return parse_constraint(
            f">= {self.major}.{self.minor}.{self.patch} <= {self.major}.{next_minor.minor}"
        )

    def inc_minor(self) -> Version:
        return Version(self.major, self.minor + 1, 0)

    def inc_patch(self) -> Version:
        if self.prerelease:
            return Version(self.major, self.minor, self.patch)
        return Version(self.major, self.minor, self.patch + 1)

    def to_json(self) -> str:
        return json.dumps(str(self))


def parse_version(text: str) -> Version:
    """Parse a version, accepting a leading "v" and missing minor or patch parts."""
    match = _VERSION_RE.match(text.strip())
    if match is None:
        raise ValueError(f"Invalid Semantic Version: {text!r}")
    major, minor, patch, pre, meta = match.groups()
    return Version(int(major), int(minor or 0), int(patch or 0), pre or "", meta or "")


def version_from_json(data: str | bytes) -> Version:
    value = json.loads(data)
    if not isinstance(value, str):
        raise ValueError(f"expected a JSON string, got {type(value).__name__}")
    return parse_version(value)


@dataclass(frozen=True)
class _Term:
    op: str
    version: Version
    # 0: exact, 1: patch is a wildcard, 2: minor too, 3: everything.
    wildcard: int
    original: str

    def __str__(self) -> str:
        return f"{self.op}{self.original}"

    def _equal(self, v: Version) -> bool:
        c = self.version
        if self.wildcard >= 3:
            return True
        if v.major != c.major:
            return False
        if self.wildcard >= 2:
            return True
        if v.minor != c.minor:
            return False
        if self.wildcard >= 1:
            return True
        return v == c

    def matches(self, v: Version) -> bool:
        c = self.version
        if v.prerelease and not c.prerelease:
            return False
        op, level = self.op, self.wildcard
        if op == "=":
            return self._equal(v)
        if op == "!=":
            return not self._equal(v)
        if op == "<":
            return v < c
        if op == ">=":
            return v >= c
        if op == ">":
            if level == 0:
                return v > c
            if v.major != c.major:
                return v.major > c.major
            if level >= 2:
                return False
            return v.minor > c.minor
        if op == "<=":
            if level == 0:
                return v <= c
            if v.major != c.major:
                return v.major < c.major
            if level >= 2:
                return True
            return v.minor <= c.minor
        if op == "~":
            if v < c:
                return False
            if level >= 3:
                return True
            if v.major != c.major:
                return False
            return level >= 2 or v.minor == c.minor
        if op == "^":
            if v < c:
                return False
            if level >= 3:
                return True
            if c.major > 0 or level >= 2:
                return v.major == c.major
            if c.minor > 0 or level >= 1:
                return v.major == 0 and v.minor == c.minor
            return v.major == 0 and v.minor == 0 and v.patch == c.patch
        raise ValueError(f"unknown constraint operator {op!r}")


def _parse_term(op: str | None, text: str) -> _Term:
    op = _OP_ALIASES.get(op or "", op or "")
    body = text[1:] if text[:1] == "v" else text
    meta = ""
    if "+" in body:
        body, meta = body.split("+", 1)
    pre = ""
    if "-" in body:
        body, pre = body.split("-", 1)
    parts = body.split(".")
    wildcard = 0
    numbers = []
    for index, part in enumerate(parts):
        if part in _WILDCARDS or all(ch in _WILDCARDS for ch in part):
            wildcard = max(wildcard, 3 - index)
            numbers.append(0)
        else:
            numbers.append(int(part))
    wildcard = max(wildcard, 3 - len(parts))
    numbers += [0] * (3 - len(numbers))
    version = Version(numbers[0], numbers[1], numbers[2], pre, meta)
    return _Term(op, version, wildcard, text)


@dataclass(frozen=True)
class Constraint:
    """Alternatives ("||") of groups of terms that must all hold."""

    groups: tuple[tuple[_Term, ...], ...]

    def check(self, version: Version) -> bool:
        return any(all(term.matches(version) for term in group) for group in self.groups)

    def __str__(self) -> str:
        return " || ".join(" ".join(str(term) for term in group) for group in self.groups)


def parse_constraint(text: str) -> Constraint:
    """Parse constraints such as ">= 1.14.0 < 1.23.0" or "~1.2 || ^2"."""
    groups = []
    for alternative in text.split("||"):
        terms = []
        pos = 0
        while True:
            while pos < len(alternative) and (alternative[pos].isspace() or alternative[pos] == ","):
                pos += 1
            if pos >= len(alternative):
                break
            match = _TERM_RE.match(alternative, pos)
            if match is None:
                raise ValueError(f"improper constraint: {text!r}")
            terms.append(_parse_term(match.group(1), match.group(2)))
            pos = match.end()
        if not terms:
            raise ValueError(f"improper constraint: {text!r}")
        groups.append(tuple(terms))
    return Constraint(tuple(groups))


SUPPORTED_VERSIONS_RANGE = parse_constraint(">= 1.14.0 < 1.23.0")
FORBIDDEN_BROKEN_RELEASES = (parse_version("1.21.0"), parse_version("1.21.1"))
V1_18_0 = parse_version("1.18.0")
V1_20_0 = parse_version("1.20.0")
V1_21_0 = parse_version("1.21.0")
V1_22_0 = parse_version("1.22.0")