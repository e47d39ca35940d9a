"""Unit tests for the semver helpers (create_react_app.versions)."""

from __future__ import annotations

import pytest
import semantic_version

from create_react_app.versions import (
    clean_semver,
    coerce_version,
    is_valid_range,
    satisfies,
    version_gte,
    version_lt,
)


class TestCleanSemver:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1.2.3", "1.2.3"),
            (" v1.2.3 ", "1.2.3"),
            ("=1.2.3", "1.2.3"),
            ("4.0.0-next.77", "4.0.0-next.77"),
        ],
    )
    def test_exact_versions(self, raw: str, expected: str):
        assert clean_semver(raw) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [None, "", "next", "0.9.x", "^1.0.0", "1.2"])
    def test_not_exact(self, raw):
        assert clean_semver(raw) is None


class TestCoerceVersion:
    @pytest.mark.unit
    def test_drops_prerelease(self):
        assert coerce_version("v15.0.0-nightly2020") == semantic_version.Version("15.0.0")

    @pytest.mark.unit
    def test_fills_missing_parts(self):
        assert coerce_version("0.9.x") == semantic_version.Version("0.9.0")
        assert coerce_version("v8") == semantic_version.Version("8.0.0")

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [None, "", "latest"])
    def test_no_digits(self, raw):
        assert coerce_version(raw) is None


class TestComparisons:
    @pytest.mark.unit
    def test_version_gte(self):
        assert version_gte("v10.0.0", "10.0.0") is True
        assert version_gte("v8.17.0", "10.0.0") is False
        assert version_gte(None, "10.0.0") is False

    @pytest.mark.unit
    def test_version_lt(self):
        assert version_lt("1.22.19", "2.0.0") is True
        assert version_lt("3.1.0", "2.0.0") is False
        assert version_lt("unknown", "2.0.0") is False


class TestRanges:
    @pytest.mark.unit
    def test_valid_range(self):
        assert is_valid_range("^17.0.2") is True
        assert is_valid_range(">=14") is True

    @pytest.mark.unit
    def test_invalid_range(self):
        assert is_valid_range("^not-a-version") is False

    @pytest.mark.unit
    def test_satisfies(self):
        assert satisfies("v16.13.0", ">=14") is True
        assert satisfies("v12.22.0", ">=14") is False

    @pytest.mark.unit
    def test_unknown_version_does_not_satisfy(self):
        assert satisfies(None, ">=14") is False
