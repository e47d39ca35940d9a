"""Pydantic v2 models shared across the bootstrapper.

Defines how package references are classified, the resolved identity of a
reference, the install plan handed to the package manager, preflight
outcomes, and the explicit working context threaded through a run.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from create_react_app.versions import clean_semver

ARCHIVE_RE = re.compile(r"^.+\.(tgz|tar\.gz)$")
FILE_PREFIX = "file:"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ReferenceKind(str, Enum):
    """What an installable reference string points at."""
    EXACT_SEMVER = "exact_semver"
    NPM_TAG = "npm_tag"
    SCOPED_OR_PLAIN_NAME = "name"
    LOCAL_PATH = "local_path"
    TARBALL_URL = "tarball_url"
    GIT_URL = "git_url"


class PackageManager(str, Enum):
    """Package managers the bootstrapper can drive."""
    NPM = "npm"
    YARN = "yarn"


REGISTRY_KINDS = frozenset({
    ReferenceKind.EXACT_SEMVER,
    ReferenceKind.NPM_TAG,
    ReferenceKind.SCOPED_OR_PLAIN_NAME,
})


# ---------------------------------------------------------------------------
# Reference classification
# ---------------------------------------------------------------------------

def is_local_file(reference: str) -> bool:
    return reference.startswith(FILE_PREFIX)


def is_archive(reference: str) -> bool:
    return ARCHIVE_RE.match(reference) is not None


def is_url_or_archive(reference: str) -> bool:
    return "://" in reference or reference.startswith("git+") or is_archive(reference)


def is_scoped_or_tagged(reference: str) -> bool:
    return "@" in reference


# Evaluated top to bottom; the first matching predicate wins.
_CLASSIFICATION_RULES: list[tuple[Callable[[str], bool], Callable[[str], ReferenceKind]]] = [
    (is_local_file, lambda ref: ReferenceKind.LOCAL_PATH),
    (
        is_url_or_archive,
        lambda ref: ReferenceKind.GIT_URL if ref.startswith("git+") else ReferenceKind.TARBALL_URL,
    ),
    (
        is_scoped_or_tagged,
        lambda ref: (
            ReferenceKind.NPM_TAG
            if ref.startswith("@") and "/" not in ref
            else ReferenceKind.SCOPED_OR_PLAIN_NAME
        ),
    ),
    (lambda ref: clean_semver(ref) is not None, lambda ref: ReferenceKind.EXACT_SEMVER),
]


def classify_reference(reference: str) -> ReferenceKind:
    """Classify *reference* into exactly one :class:`ReferenceKind`.

    Precedence: ``file:`` prefix, then URL/archive, then scoped or tagged
    names, then a bare semver, falling back to a plain package name.
    """
    for predicate, kind_of in _CLASSIFICATION_RULES:
        if predicate(reference):
            return kind_of(reference)
    return ReferenceKind.SCOPED_OR_PLAIN_NAME


# ---------------------------------------------------------------------------
# Run models
# ---------------------------------------------------------------------------

class WorkingContext(BaseModel):
    """Directories a run resolves paths against.

    ``original_dir`` is where the user invoked the tool; relative ``file:``
    references resolve against it. ``root_dir`` is the app being created.
    """
    original_dir: Path = Field(..., description="Directory the tool was invoked from")
    root_dir: Path = Field(..., description="Absolute path of the app being created")

    @property
    def app_name(self) -> str:
        return self.root_dir.name

    @classmethod
    def for_project(cls, project_name: str, original_dir: Path | None = None) -> "WorkingContext":
        """Build a context for *project_name* relative to *original_dir* (default: cwd)."""
        base = (original_dir or Path.cwd()).resolve()
        return cls(original_dir=base, root_dir=(base / project_name).resolve())


class PackageInfo(BaseModel):
    """Resolved identity of an installable reference."""
    name: str = Field(..., description="Declared package name")
    version: Optional[str] = Field(default=None, description="Declared version or dist-tag")
    kind: ReferenceKind = Field(
        default=ReferenceKind.SCOPED_OR_PLAIN_NAME,
        description="Kind of reference the identity was derived from",
    )


class InstallPlan(BaseModel):
    """Everything the install step hands to the package manager."""
    dependencies: list[str] = Field(default_factory=list)
    package_info: PackageInfo
    template_info: PackageInfo
    supports_template: bool = Field(default=False)
    used_legacy_fallback: bool = Field(default=False)

    @property
    def template_name(self) -> Optional[str]:
        return self.template_info.name if self.supports_template else None


class PreflightResult(BaseModel):
    """Outcome of the preflight checks for the chosen package manager.

    A failed result does not stop anything by itself; the orchestrator
    decides whether ``ok=False`` is fatal.
    """
    ok: bool = Field(default=True)
    use_legacy_scripts: bool = Field(default=False)
    use_pnp: bool = Field(default=False)
    is_online: bool = Field(default=True)
    node_version: Optional[str] = Field(default=None)
    npm_version: Optional[str] = Field(default=None)
    yarn_version: Optional[str] = Field(default=None)
    messages: list[str] = Field(default_factory=list)


class DirectoryCheck(BaseModel):
    """Result of inspecting the target directory for conflicting files."""
    safe: bool = Field(default=True)
    conflicts: list[str] = Field(default_factory=list)
    removed_logs: list[str] = Field(default_factory=list)


class CreateResult(BaseModel):
    """Final outcome of a bootstrap run."""
    success: bool = Field(default=False)
    exit_code: int = Field(default=1)
    root_dir: Optional[Path] = Field(default=None)
    plan: Optional[InstallPlan] = Field(default=None)
    error: Optional[str] = Field(default=None)
    rolled_back: bool = Field(default=False)
