"""Unit tests for reference resolution (create_react_app.resolver).

Tests cover:
- resolve_install_package decision table and deprecated-package prompt
- canonical_template_name
- resolve_template_package
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from create_react_app.config import Config
from create_react_app.models import WorkingContext
from create_react_app.resolver import (
    UserCancelled,
    canonical_template_name,
    resolve_install_package,
    resolve_template_package,
)


# ---------------------------------------------------------------------------
# resolve_install_package
# ---------------------------------------------------------------------------


class TestResolveInstallPackage:
    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "version, expected",
        [
            (None, "react-scripts"),
            ("", "react-scripts"),
            ("4.0.3", "react-scripts@4.0.3"),
            ("v4.0.3", "react-scripts@4.0.3"),
            ("@next", "react-scripts@next"),
            ("my-react-scripts", "my-react-scripts"),
            ("@scope/my-scripts", "@scope/my-scripts"),
            ("https://example.com/react-scripts-4.0.3.tgz", "https://example.com/react-scripts-4.0.3.tgz"),
            ("git+https://github.com/me/scripts.git", "git+https://github.com/me/scripts.git"),
            ("react-scripts@0.9.x", "react-scripts@0.9.x"),
        ],
    )
    async def test_decision_table(
        self, version, expected: str, context: WorkingContext, config: Config
    ):
        assert await resolve_install_package(version, context, config) == expected

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_relative_file_resolves_against_original_dir(
        self, tmp_path: Path, context: WorkingContext, config: Config
    ):
        result = await resolve_install_package("file:../my-scripts", context, config)
        assert result == f"file:{(tmp_path / '..' / 'my-scripts').resolve()}"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bare_file_prefix_is_original_dir(
        self, tmp_path: Path, context: WorkingContext, config: Config
    ):
        assert await resolve_install_package("file:", context, config) == f"file:{tmp_path.resolve()}"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_deprecated_package_confirmed(self, context: WorkingContext, config: Config):
        confirm = MagicMock(return_value=True)
        result = await resolve_install_package("react-scripts-ts", context, config, confirm)
        assert result == "react-scripts-ts"
        confirm.assert_called_once()
        assert "deprecated" in confirm.call_args[0][0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_deprecated_package_declined(self, context: WorkingContext, config: Config):
        with pytest.raises(UserCancelled):
            await resolve_install_package(
                "react-scripts-ts@3.1.0", context, config, MagicMock(return_value=False)
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_prompt_uses_rich_confirm(self, context: WorkingContext, config: Config):
        with patch("create_react_app.resolver.Confirm.ask", return_value=False) as ask:
            with pytest.raises(UserCancelled):
                await resolve_install_package("react-scripts-ts", context, config)
        assert ask.call_args.kwargs["default"] is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_regular_package_never_prompts(self, context: WorkingContext, config: Config):
        confirm = MagicMock(return_value=False)
        await resolve_install_package("4.0.3", context, config, confirm)
        confirm.assert_not_called()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestCanonicalTemplateName:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "template, expected",
        [
            ("typescript", "cra-template-typescript"),
            ("cra-template", "cra-template"),
            ("cra-template-typescript", "cra-template-typescript"),
            ("typescript@1.0.0", "cra-template-typescript@1.0.0"),
            ("@scope/cra-template", "@scope/cra-template"),
            ("@scope/cra-template-foo", "@scope/cra-template-foo"),
            ("@scope/foo", "@scope/cra-template-foo"),
            ("@scope/foo@next", "@scope/cra-template-foo@next"),
            ("@scope", "@scope/cra-template"),
        ],
    )
    def test_names(self, template: str, expected: str):
        assert canonical_template_name(template, "cra-template") == expected


class TestResolveTemplatePackage:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default(self, context: WorkingContext, config: Config):
        assert await resolve_template_package(None, context, config) == "cra-template"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_named(self, context: WorkingContext, config: Config):
        assert await resolve_template_package("typescript", context, config) == "cra-template-typescript"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_local_file(self, tmp_path: Path, context: WorkingContext, config: Config):
        result = await resolve_template_package("file:./tpl", context, config)
        assert result == f"file:{(tmp_path / 'tpl').resolve()}"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_archive_passthrough(self, context: WorkingContext, config: Config):
        url = "https://example.com/my-template-1.0.0.tgz"
        assert await resolve_template_package(url, context, config) == url
