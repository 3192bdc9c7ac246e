"""Tests for HookService"""
from workmux.config import Config
from workmux.services.hook_service import HookPhase, HookService


class TestHookService:
    """Test hook execution policy."""

    def test_runs_in_cwd_with_env(self, temp_dir):
        config = Config(post_create=["echo $WM_HANDLE > out.txt"])
        count = HookService().run(HookPhase.POST_CREATE, config, temp_dir, {"WM_HANDLE": "h"})
        assert count == 1
        assert (temp_dir / "out.txt").read_text().strip() == "h"

    def test_runs_in_order(self, temp_dir):
        config = Config(pre_delete=["echo one >> log.txt", "echo two >> log.txt"])
        HookService().run(HookPhase.PRE_DELETE, config, temp_dir)
        assert (temp_dir / "log.txt").read_text().split() == ["one", "two"]

    def test_failure_is_not_fatal(self, temp_dir):
        config = Config(post_create=["false", "touch ok.txt"])
        assert HookService().run(HookPhase.POST_CREATE, config, temp_dir) == 2
        assert (temp_dir / "ok.txt").exists()

    def test_missing_cwd_is_not_fatal(self, temp_dir):
        config = Config(post_create=["true"])
        assert HookService().run(HookPhase.POST_CREATE, config, temp_dir / "missing") == 1

    def test_no_hooks(self, temp_dir):
        assert HookService().run(HookPhase.PRE_CREATE, Config(), temp_dir) == 0

    def test_announce_counts(self):
        config = Config(post_create=["a", "b"])
        service = HookService()
        assert service.announce(HookPhase.POST_CREATE, config) == 2
        assert service.announce(HookPhase.POST_CREATE, config, enabled=False) == 0
        assert service.announce(HookPhase.PRE_DELETE, config) == 0
