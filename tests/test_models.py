"""Unit tests for shared models (create_react_app.models).

Tests cover:
- classify_reference precedence
- reference predicates
- WorkingContext.for_project
- InstallPlan.template_name
"""

from __future__ import annotations

from pathlib import Path

import pytest

from create_react_app.models import (
    InstallPlan,
    PackageInfo,
    ReferenceKind,
    WorkingContext,
    classify_reference,
    is_archive,
    is_url_or_archive,
)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassifyReference:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "reference, kind",
        [
            ("file:../my-scripts", ReferenceKind.LOCAL_PATH),
            ("file:../scripts-1.0.0.tgz", ReferenceKind.LOCAL_PATH),
            ("https://example.com/react-scripts-4.0.3.tgz", ReferenceKind.TARBALL_URL),
            ("./react-scripts.tar.gz", ReferenceKind.TARBALL_URL),
            ("git+https://github.com/user/my-scripts.git", ReferenceKind.GIT_URL),
            ("@next", ReferenceKind.NPM_TAG),
            ("@scope/my-scripts", ReferenceKind.SCOPED_OR_PLAIN_NAME),
            ("react-scripts@4.0.3", ReferenceKind.SCOPED_OR_PLAIN_NAME),
            ("4.0.3", ReferenceKind.EXACT_SEMVER),
            ("my-react-scripts", ReferenceKind.SCOPED_OR_PLAIN_NAME),
        ],
    )
    def test_kinds(self, reference: str, kind: ReferenceKind):
        assert classify_reference(reference) is kind

    @pytest.mark.unit
    def test_file_prefix_beats_archive(self):
        assert classify_reference("file:pkg.tgz") is ReferenceKind.LOCAL_PATH


class TestPredicates:
    @pytest.mark.unit
    def test_is_archive(self):
        assert is_archive("a.tgz")
        assert is_archive("a.tar.gz")
        assert not is_archive("a.zip")
        assert not is_archive(".tgz")

    @pytest.mark.unit
    def test_is_url_or_archive(self):
        assert is_url_or_archive("https://example.com/x")
        assert is_url_or_archive("git+ssh://git@host/x.git")
        assert not is_url_or_archive("react-scripts")


# ---------------------------------------------------------------------------
# WorkingContext
# ---------------------------------------------------------------------------


class TestWorkingContext:
    @pytest.mark.unit
    def test_for_project(self, tmp_path: Path):
        context = WorkingContext.for_project("my-app", original_dir=tmp_path)
        assert context.original_dir == tmp_path.resolve()
        assert context.root_dir == tmp_path.resolve() / "my-app"
        assert context.app_name == "my-app"

    @pytest.mark.unit
    def test_nested_project_path(self, tmp_path: Path):
        context = WorkingContext.for_project("apps/web", original_dir=tmp_path)
        assert context.app_name == "web"
        assert context.root_dir.parent.name == "apps"


# ---------------------------------------------------------------------------
# InstallPlan
# ---------------------------------------------------------------------------


class TestInstallPlan:
    @pytest.mark.unit
    def test_template_name_when_supported(self):
        plan = InstallPlan(
            package_info=PackageInfo(name="react-scripts"),
            template_info=PackageInfo(name="cra-template-typescript"),
            supports_template=True,
        )
        assert plan.template_name == "cra-template-typescript"

    @pytest.mark.unit
    def test_template_name_when_unsupported(self):
        plan = InstallPlan(
            package_info=PackageInfo(name="react-scripts", version="0.9.x"),
            template_info=PackageInfo(name="cra-template"),
        )
        assert plan.template_name is None
