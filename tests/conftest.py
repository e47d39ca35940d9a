"""Shared pytest fixtures for the create-react-app test suite.

Provides reusable fixtures for:
- Run configuration and working contexts rooted in tmp_path
- Package tarballs built on the fly
- Installed-package manifests under node_modules
"""

from __future__ import annotations

import io
import json
import tarfile
from pathlib import Path
from typing import Any

import pytest

from create_react_app.config import Config
from create_react_app.models import WorkingContext


# ---------------------------------------------------------------------------
# Configuration & context
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> Config:
    """Config for a project called ``my-app`` with the freshness check disabled."""
    return Config(project_name="my-app", skip_version_check=True)


@pytest.fixture
def context(tmp_path: Path) -> WorkingContext:
    """Working context whose original directory is ``tmp_path``."""
    return WorkingContext.for_project("my-app", original_dir=tmp_path)


# ---------------------------------------------------------------------------
# Package fixtures
# ---------------------------------------------------------------------------

def _add_file(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


@pytest.fixture
def make_tarball(tmp_path: Path):
    """Factory that writes an npm-style tarball (``package/`` prefix).

    Usage::

        def test_something(make_tarball):
            archive = make_tarball("react-scripts-4.0.3.tgz", {"name": "react-scripts"})
    """

    def factory(filename: str, manifest: dict[str, Any] | None, prefix: str = "package") -> Path:
        archive = tmp_path / filename
        with tarfile.open(archive, "w:gz") as tar:
            if manifest is not None:
                _add_file(tar, f"{prefix}/package.json", json.dumps(manifest).encode("utf-8"))
            _add_file(tar, f"{prefix}/scripts/init.js", b"module.exports = function () {};\n")
        return archive

    return factory


@pytest.fixture
def write_package_json():
    """Factory that writes ``package.json`` into a directory and returns the path."""

    def factory(directory: Path, data: dict[str, Any]) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "package.json"
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return factory
