"""Tests for ggo.validation."""

from __future__ import annotations

import pytest

from ggo.errors import InvalidInput
from ggo.validation import (
    validate_alias_name,
    validate_branch_name,
    validate_pattern,
    validate_repo_path,
)


class TestBranchName:
    @pytest.mark.parametrize(
        "name", ["main", "feature/auth-v2", "release-1.2", "user/alice/fix_bug", "été"]
    )
    def test_valid(self, name):
        assert validate_branch_name(name) == name

    @pytest.mark.parametrize(
        "name",
        [
            "",
            "a" * 256,
            "bad\nname",
            "nul\0",
            "-flag",
            ".hidden",
            "trailing/",
            "trailing.",
            "a..b",
            "a//b",
            "has space",
            "tilde~1",
            "caret^",
            "co:lon",
            "at@{1}",
            "glob*",
            "what?",
            "br[a]",
        ],
    )
    def test_invalid(self, name):
        with pytest.raises(InvalidInput) as exc:
            validate_branch_name(name)
        assert exc.value.kind == "branch name"
        assert exc.value.hint


class TestPattern:
    def test_empty_allowed(self):
        assert validate_pattern("") == ""

    def test_previous_sentinel_allowed(self):
        assert validate_pattern("-") == "-"

    def test_too_long(self):
        with pytest.raises(InvalidInput):
            validate_pattern("p" * 256)

    def test_null_byte(self):
        with pytest.raises(InvalidInput):
            validate_pattern("a\0b")


class TestAliasName:
    @pytest.mark.parametrize("name", ["m", "dev_2", "hot-fix", "a" * 50])
    def test_valid(self, name):
        assert validate_alias_name(name) == name

    @pytest.mark.parametrize(
        "name",
        ["", "a" * 51, "-x", "stats", "alias", "list", "remove", "cleanup", "a/b", "a b", "a.b"],
    )
    def test_invalid(self, name):
        with pytest.raises(InvalidInput):
            validate_alias_name(name)

    def test_reserved_message(self):
        with pytest.raises(InvalidInput, match="Invalid alias") as exc:
            validate_alias_name("stats")
        assert "reserved" in exc.value.hint


class TestRepoPath:
    def test_existing_absolute_dir(self, tmp_path):
        assert validate_repo_path(str(tmp_path)) == str(tmp_path)

    def test_relative(self):
        with pytest.raises(InvalidInput):
            validate_repo_path("relative/dir")

    def test_missing(self, tmp_path):
        with pytest.raises(InvalidInput):
            validate_repo_path(str(tmp_path / "nope"))

    def test_empty_and_null(self):
        with pytest.raises(InvalidInput):
            validate_repo_path("")
        with pytest.raises(InvalidInput):
            validate_repo_path("/tmp/\0")
