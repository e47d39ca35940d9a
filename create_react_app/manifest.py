"""Typed ``package.json`` handling.

The generated app manifest goes through explicit read, patch and write
steps. :func:`make_caret_range` is a pure function so the version-range
upgrade can be reasoned about without touching the filesystem.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from create_react_app.utils import load_json, print_warning, write_json
from create_react_app.versions import is_valid_range, satisfies

MANIFEST_FILE = "package.json"


class ManifestError(Exception):
    """Raised when a manifest is missing, unreadable, or lacks required fields."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class EngineError(Exception):
    """Raised when the running Node does not satisfy a package's ``engines.node``."""

    def __init__(self, package_name: str, node_version: str, required: str) -> None:
        self.package_name = package_name
        self.node_version = node_version
        self.required = required
        super().__init__(
            f"You are running Node {node_version}.\n"
            f"Create React App requires Node {required} or higher.\n"
            "Please update your version of Node."
        )


class PackageManifest(BaseModel):
    """The subset of ``package.json`` the bootstrapper reads or writes.

    Unknown keys are kept so a patched manifest round-trips untouched.
    """

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(default=None)
    version: Optional[str] = Field(default=None)
    private: Optional[bool] = Field(default=None)
    dependencies: Optional[dict[str, str]] = Field(default=None)
    engines: Optional[dict[str, str]] = Field(default=None)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def new_app_manifest(app_name: str) -> PackageManifest:
    """Return the minimal manifest written into a fresh app directory."""
    return PackageManifest(name=app_name, version="0.1.0", private=True)


def read_manifest(directory: Path) -> PackageManifest:
    """Read ``package.json`` from *directory*.

    Raises:
        ManifestError: If the file is absent, not a JSON object, or has
            fields of the wrong type.
    """
    path = Path(directory) / MANIFEST_FILE
    try:
        data = load_json(path)
    except FileNotFoundError as exc:
        raise ManifestError(f"Could not find {MANIFEST_FILE} in {directory}", path=path) from exc
    except (OSError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError.
        raise ManifestError(f"Could not read {path}: {exc}", path=path) from exc
    try:
        return PackageManifest.model_validate(data)
    except ValidationError as exc:
        raise ManifestError(f"Invalid {MANIFEST_FILE} in {directory}: {exc}", path=path) from exc


def write_manifest(directory: Path, manifest: PackageManifest) -> Path:
    """Write *manifest* to ``<directory>/package.json`` and return the path."""
    path = Path(directory) / MANIFEST_FILE
    write_json(manifest.to_json_dict(), path)
    return path


def make_caret_range(version: str) -> str:
    """Turn an exact pin into a caret range, e.g. ``17.0.2`` -> ``^17.0.2``.

    If the caret form would not be a valid range the version is returned
    unchanged.
    """
    patched = f"^{version}"
    if not is_valid_range(patched):
        return version
    return patched


def set_caret_range_for_runtime_deps(
    directory: Path, package_name: str, runtime_dependencies: list[str]
) -> PackageManifest:
    """Loosen the exact pins the package manager wrote for runtime dependencies.

    ``--save-exact`` pins everything; React itself should float within its
    major version while ``react-scripts`` stays pinned.

    Raises:
        ManifestError: If ``dependencies``, *package_name* or any runtime
            dependency is missing from the manifest.
    """
    manifest = read_manifest(directory)
    if manifest.dependencies is None:
        raise ManifestError("Missing dependencies in package.json")
    if package_name not in manifest.dependencies:
        raise ManifestError(f"Unable to find {package_name} in package.json")

    dependencies = dict(manifest.dependencies)
    for name in runtime_dependencies:
        version = dependencies.get(name)
        if version is None:
            raise ManifestError(f"Missing {name} dependency in package.json")
        patched = make_caret_range(version)
        if patched == version:
            print_warning(
                f"Unable to patch {name} dependency version because version "
                f"{version} will become invalid ^{version}"
            )
        dependencies[name] = patched

    patched_manifest = manifest.model_copy(update={"dependencies": dependencies})
    write_manifest(directory, patched_manifest)
    return patched_manifest


def check_engine_requirement(
    root_dir: Path, package_name: str, node_version: str | None
) -> None:
    """Verify the installed *package_name* accepts the running Node.

    Silently passes when the package has no manifest, declares no
    ``engines.node``, or the Node version is unknown.

    Raises:
        EngineError: If ``engines.node`` excludes *node_version*.
    """
    package_dir = Path(root_dir) / "node_modules" / package_name
    if not (package_dir / MANIFEST_FILE).exists() or not node_version:
        return
    try:
        manifest = read_manifest(package_dir)
    except ManifestError:
        return
    required = (manifest.engines or {}).get("node")
    if not required:
        return
    if not satisfies(node_version, required):
        raise EngineError(package_name, node_version, required)
