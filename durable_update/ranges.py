"""npm version range matching on top of packaging's version ordering."""

import re

from packaging.version import InvalidVersion, Version

WILDCARDS = {"", "*", "x", "X", "latest"}

PARTIAL_PATTERN = re.compile(
    r"^(?P<v>[vV])?(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)
COMPARATOR_PATTERN = re.compile(r"^(?P<op>\^|~>?|>=|<=|>|<|=)?(?P<version>.+)$")
HYPHEN_PATTERN = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
OPERATOR_SPACING = re.compile(r"(\^|~>?|>=|<=|>|<|=)\s+")
NUMERIC_IDENTIFIER = re.compile(r"^(\d+)")

Comparator = tuple[str, Version]


class RangeError(ValueError):
    """A constraint is not a registry version range."""


def _number(part: str | None) -> int | None:
    if part is None or part in ("x", "X", "*"):
        return None
    return int(part)


def _npm_version(release: str, pre: str | None) -> Version:
    """Map an npm version onto a Version with npm's prerelease semantics.

    packaging reads a numeric tag such as ``1.1.0-1`` as a post-release, so
    tags packaging does not see as prereleases become dev releases, which sort
    below every named prerelease of the same version.
    """
    if not pre:
        return Version(release)
    try:
        version = Version(f"{release}-{pre}")
    except InvalidVersion:
        version = None
    if version is not None and version.is_prerelease:
        return version
    number = NUMERIC_IDENTIFIER.match(pre)
    return Version(f"{release}.dev{number.group(1) if number else 0}")


def _version(major: int, minor: int, patch: int, pre: str | None = None) -> Version:
    return _npm_version(f"{major}.{minor}.{patch}", pre)


def _parse_partial(text: str, loose: bool) -> tuple[int | None, int | None, int | None, str | None]:
    match = PARTIAL_PATTERN.match(text)
    if not match or (match.group("v") and not loose):
        raise RangeError(f"invalid version '{text}'")
    major = _number(match.group("major"))
    minor = _number(match.group("minor")) if major is not None else None
    patch = _number(match.group("patch")) if minor is not None else None
    pre = match.group("pre") if patch is not None else None
    return major, minor, patch, pre


def _lower(major, minor, patch, pre) -> Version:
    return _version(major, minor or 0, patch or 0, pre)


def _next_after(major, minor) -> Version:
    """Lowest version above a partial version with its missing parts as wildcards."""
    if minor is None:
        return _version(major + 1, 0, 0)
    return _version(major, minor + 1, 0)


def _caret(major, minor, patch, pre) -> list[Comparator]:
    if major is None:
        return []
    low = _lower(major, minor, patch, pre)
    if major > 0 or minor is None:
        high = _version(major + 1, 0, 0)
    elif minor > 0 or patch is None:
        high = _version(0, minor + 1, 0)
    else:
        high = _version(0, 0, patch + 1)
    return [(">=", low), ("<", high)]


def _tilde(major, minor, patch, pre) -> list[Comparator]:
    if major is None:
        return []
    return [(">=", _lower(major, minor, patch, pre)), ("<", _next_after(major, minor))]


def _primitive(op: str, major, minor, patch, pre) -> list[Comparator]:
    if major is None:
        if op in (">", "<"):
            return [("<", _version(0, 0, 0))]
        return []

    partial = patch is None
    if op in ("", "="):
        if not partial:
            return [("==", _version(major, minor, patch, pre))]
        return [(">=", _lower(major, minor, patch, pre)), ("<", _next_after(major, minor))]
    if op == ">=":
        return [(">=", _lower(major, minor, patch, pre))]
    if op == ">":
        if partial:
            return [(">=", _next_after(major, minor))]
        return [(">", _version(major, minor, patch, pre))]
    if op == "<":
        return [("<", _lower(major, minor, patch, pre))]
    if partial:
        return [("<", _next_after(major, minor))]
    return [("<=", _version(major, minor, patch, pre))]


def _parse_comparator(token: str, loose: bool) -> list[Comparator]:
    match = COMPARATOR_PATTERN.match(token)
    if not match:
        raise RangeError(f"invalid comparator '{token}'")
    op = match.group("op") or ""
    parts = _parse_partial(match.group("version"), loose)
    if op == "^":
        return _caret(*parts)
    if op.startswith("~"):
        return _tilde(*parts)
    return _primitive(op, *parts)


def _parse_hyphen(low: str, high: str, loose: bool) -> list[Comparator]:
    low_major, low_minor, low_patch, low_pre = _parse_partial(low, loose)
    high_major, high_minor, high_patch, high_pre = _parse_partial(high, loose)
    comparators: list[Comparator] = []
    if low_major is not None:
        comparators.append((">=", _lower(low_major, low_minor, low_patch, low_pre)))
    if high_major is not None:
        if high_patch is None:
            comparators.append(("<", _next_after(high_major, high_minor)))
        else:
            comparators.append(("<=", _version(high_major, high_minor, high_patch, high_pre)))
    return comparators


def _parse_set(text: str, loose: bool) -> list[Comparator]:
    text = OPERATOR_SPACING.sub(r"\1", text.strip())
    if text in WILDCARDS:
        return []
    hyphen = HYPHEN_PATTERN.match(text)
    if hyphen:
        return _parse_hyphen(hyphen.group("low"), hyphen.group("high"), loose)

    comparators: list[Comparator] = []
    for token in text.split():
        comparators.extend(_parse_comparator(token, loose))
    return comparators


def parse_range(text: str, loose: bool = False) -> list[list[Comparator]]:
    """Parse an npm range into alternatives of comparator sets.

    Args:
        text: Range such as ``^1.2.0``, ``>=1.0.0 <2`` or ``1.x || 2.x``
        loose: Accept a leading ``v`` on versions

    Returns:
        One comparator list per ``||`` alternative; an empty list matches anything

    Raises:
        RangeError: If the text is not a version range (URL, path, tag, ...)
    """
    return [_parse_set(alternative, loose) for alternative in text.split("||")]


def is_wildcard(text: str) -> bool:
    """Check whether a constraint accepts any version."""
    return text.strip() in WILDCARDS


def parse_version(text: str) -> Version | None:
    """Parse a published version, returning None for unsupported formats."""
    match = PARTIAL_PATTERN.match(text.strip())
    if not match or match.group("v"):
        return None
    parts = [match.group(name) for name in ("major", "minor", "patch")]
    if not all(part and part.isdigit() for part in parts):
        return None
    return _npm_version(".".join(str(int(part)) for part in parts), match.group("pre"))


def _release(version: Version) -> tuple[int, int, int]:
    return (version.major, version.minor, version.micro)


def _test(op: str, version: Version, bound: Version) -> bool:
    if op == ">=":
        return version >= bound
    if op == ">":
        return version > bound
    if op == "<":
        return version < bound
    if op == "<=":
        return version <= bound
    return version == bound


def _set_matches(comparators: list[Comparator], version: Version) -> bool:
    if not all(_test(op, version, bound) for op, bound in comparators):
        return False
    if not version.is_prerelease:
        return True
    # prereleases only match comparators that opt into the same release line
    return any(
        bound.is_prerelease and _release(bound) == _release(version)
        for _, bound in comparators
    )


def satisfies(version: str | Version, text: str, loose: bool = False) -> bool:
    """Check whether a version falls within an npm range."""
    if isinstance(version, str):
        version = parse_version(version)
        if version is None:
            return False
    return any(_set_matches(comparators, version) for comparators in parse_range(text, loose))


def greater_than_range(version: str | Version, text: str, loose: bool = False) -> bool:
    """Check whether a version is higher than every version in an npm range."""
    if isinstance(version, str):
        version = parse_version(version)
        if version is None:
            return False

    for comparators in parse_range(text, loose):
        if _set_matches(comparators, version):
            return False
        uppers = [(op, bound) for op, bound in comparators if op in ("<", "<=", "==")]
        if not uppers:
            return False
        for op, bound in uppers:
            if op == "<" and version < bound:
                return False
            if op in ("<=", "==") and version <= bound:
                return False
    return True
