"""npm-flavoured semver helpers built on ``semantic_version``.

npm's ``semver`` package is lenient in ways ``semantic_version`` is not
(leading ``v``, coercion of ``15.0.0-nightly``), so the few operations the
bootstrapper needs are wrapped here.
"""

from __future__ import annotations

import re

import semantic_version

_COERCE_RE = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def clean_semver(raw: str | None) -> str | None:
    """Return the normalised version if *raw* is an exact semver, else ``None``.

    ``" v1.2.3 "`` and ``"=1.2.3"`` are accepted and normalised to ``"1.2.3"``.
    """
    if not raw:
        return None
    candidate = raw.strip().lstrip("=v").strip()
    try:
        return str(semantic_version.Version(candidate))
    except ValueError:
        return None


def coerce_version(raw: str | None) -> semantic_version.Version | None:
    """Coerce the first ``major[.minor[.patch]]`` run in *raw* into a Version.

    Pre-release and build metadata are dropped, so ``v15.0.0-nightly``
    becomes ``15.0.0``. Returns ``None`` when no digits are present.
    """
    if not raw:
        return None
    match = _COERCE_RE.search(raw)
    if match is None:
        return None
    major, minor, patch = (int(part) if part else 0 for part in match.groups())
    return semantic_version.Version(major=major, minor=minor, patch=patch)


def version_gte(raw: str | None, minimum: str) -> bool:
    """``True`` when *raw* coerces to a version at or above *minimum*."""
    version = coerce_version(raw)
    if version is None:
        return False
    return version >= semantic_version.Version(minimum)


def version_lt(raw: str | None, maximum: str) -> bool:
    """``True`` when *raw* coerces to a version strictly below *maximum*."""
    version = coerce_version(raw)
    if version is None:
        return False
    return version < semantic_version.Version(maximum)


def is_valid_range(expression: str) -> bool:
    """Return ``True`` if *expression* parses as an npm range."""
    try:
        semantic_version.NpmSpec(expression)
    except ValueError:
        return False
    return True


def satisfies(raw: str | None, expression: str) -> bool:
    """Return ``True`` if *raw* (coerced) matches the npm range *expression*.

    An unparseable range is treated as satisfied; npm itself would reject
    such a manifest before we ever read it.
    """
    version = coerce_version(raw)
    if version is None:
        return False
    try:
        spec = semantic_version.NpmSpec(expression)
    except ValueError:
        return True
    return spec.match(version)
