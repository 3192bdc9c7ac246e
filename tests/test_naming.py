"""Tests for handle derivation"""
import pytest

from workmux.config import Config, WorktreeNaming
from workmux.exceptions import InvalidHandleError
from workmux.naming import derive_handle, validate_handle


class TestDeriveHandle:
    """Test derive_handle with the naming strategies."""

    def test_full_strategy_slugifies_path(self):
        assert derive_handle("feature/login", None, Config()) == "feature-login"

    def test_basename_strategy_uses_last_segment(self):
        config = Config(worktree_naming=WorktreeNaming.BASENAME)
        assert derive_handle("prj-123/feature/login", None, config) == "login"

    def test_basename_strategy_from_string(self):
        config = Config(worktree_naming="basename")
        assert derive_handle("feature/login", None, config) == "login"

    def test_basename_ignores_trailing_slash(self):
        config = Config(worktree_naming="basename")
        assert derive_handle("feature/login/", None, config) == "login"

    def test_prefix_is_prepended(self):
        config = Config(worktree_prefix="web-")
        assert derive_handle("feature/login", None, config) == "web-feature-login"

    def test_prefix_with_basename(self):
        config = Config(worktree_naming="basename", worktree_prefix="web-")
        assert derive_handle("feature/login", None, config) == "web-login"

    def test_explicit_name_bypasses_strategy_and_prefix(self):
        config = Config(worktree_naming="basename", worktree_prefix="web-")
        assert derive_handle("feature/login", "My Task", config) == "my-task"

    def test_uppercase_and_symbols(self):
        assert derive_handle("Fix/BUG #42", None, Config()) == "fix-bug-42"

    def test_dots_are_not_traversal(self):
        handle = derive_handle("release/../v1", None, Config())
        assert ".." not in handle
        assert "/" not in handle

    def test_empty_after_slugify_is_rejected(self):
        with pytest.raises(InvalidHandleError):
            derive_handle("///", None, Config())

    def test_explicit_empty_name_is_rejected(self):
        with pytest.raises(InvalidHandleError):
            derive_handle("feature/login", "!!!", Config())

    def test_deterministic(self):
        config = Config(worktree_prefix="x-")
        assert derive_handle("a/b", None, config) == derive_handle("a/b", None, config)


class TestValidateHandle:
    """Test validate_handle rejects unsafe names."""

    @pytest.mark.parametrize("handle", ["", "a/b", "a\\b", "..", "a..b", "a b", "tab\there"])
    def test_rejects_unsafe(self, handle):
        with pytest.raises(InvalidHandleError):
            validate_handle(handle)

    @pytest.mark.parametrize("handle", ["feature-login", "a", "v1.2", "web_login"])
    def test_accepts_safe(self, handle):
        validate_handle(handle)
