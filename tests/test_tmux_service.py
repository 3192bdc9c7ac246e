"""Tests for TmuxService command construction"""
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from workmux.exceptions import ExternalCommandError
from workmux.services.tmux_service import TmuxService


def completed(stdout="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr="")


@pytest.fixture
def run():
    with patch("workmux.services.tmux_service.subprocess.run") as mock_run:
        mock_run.return_value = completed()
        yield mock_run


def commands(mock_run):
    return [c.args[0] for c in mock_run.call_args_list]


class TestTmuxWindows:
    """Test window commands."""

    def test_is_running(self, run):
        assert TmuxService().is_running() is True
        run.return_value = completed(returncode=1)
        assert TmuxService().is_running() is False

    def test_not_installed(self, run):
        run.side_effect = FileNotFoundError()
        assert TmuxService().is_running() is False
        with pytest.raises(ExternalCommandError):
            TmuxService().all_window_names()

    def test_window_exists_uses_full_name(self, run):
        run.return_value = completed("wm-feature\nwm-feature-2\nzsh\n")
        tmux = TmuxService()
        assert tmux.window_exists("wm-", "feature") is True
        assert tmux.window_exists("wm-", "feat") is False
        assert tmux.window_exists("", "zsh") is True

    def test_create_window(self, run):
        run.return_value = completed("%7\n")
        pane = TmuxService().create_window("wm-", "feature", Path("/tmp/wt"))
        assert pane == "%7"
        assert commands(run)[0] == [
            "tmux", "new-window", "-d", "-n", "wm-feature", "-c", "/tmp/wt", "-P", "-F", "#{pane_id}",
        ]

    def test_exact_match_targets(self, run):
        tmux = TmuxService()
        tmux.focus_window("wm-", "feature")
        tmux.close_window("wm-", "feature")
        assert commands(run) == [
            ["tmux", "select-window", "-t", "=wm-feature"],
            ["tmux", "kill-window", "-t", "=wm-feature"],
        ]

    def test_socket(self, run):
        TmuxService(socket="test").select_pane("%1")
        assert commands(run)[0] == ["tmux", "-L", "test", "select-pane", "-t", "%1"]

    def test_split_with_percentage(self, run):
        run.return_value = completed("%2")
        TmuxService().split_pane("%1", Path("/wt"), horizontal=True, percentage=30)
        cmd = commands(run)[0]
        assert cmd[:3] == ["tmux", "split-window", "-h"]
        assert cmd[-2:] == ["-l", "30%"]

    def test_send_keys_is_literal(self, run):
        TmuxService().send_keys("%1", "claude \"$(cat p.md)\"")
        assert commands(run) == [
            ["tmux", "send-keys", "-t", "%1", "-l", "claude \"$(cat p.md)\""],
            ["tmux", "send-keys", "-t", "%1", "Enter"],
        ]

    def test_failure_wraps_stderr(self, run):
        run.side_effect = subprocess.CalledProcessError(1, ["tmux"], stderr="can't find window")
        with pytest.raises(ExternalCommandError) as exc_info:
            TmuxService().close_window("wm-", "x")
        assert "can't find window" in str(exc_info.value)
        assert exc_info.value.status == 1

    def test_current_window_outside_tmux(self, run):
        assert TmuxService().current_window_name() is None
        run.assert_not_called()

    def test_current_window_inside_tmux(self, run, monkeypatch):
        monkeypatch.setenv("TMUX", "/tmp/tmux-1000/default,1,0")
        monkeypatch.setenv("TMUX_PANE", "%3")
        run.return_value = completed("wm-feature\n")
        assert TmuxService().current_window_name() == "wm-feature"

    def test_schedule_close(self, run):
        TmuxService().schedule_close_window("wm-", "feature")
        cmd = commands(run)[0]
        assert cmd[:3] == ["tmux", "run-shell", "-b"]
        assert "kill-window -t '=wm-feature'" in cmd[3]


class TestWindowStatus:
    """Test status icon commands."""

    def test_set_status_and_auto_clear(self, run):
        tmux = TmuxService()
        tmux.set_window_status("%1", "✅")
        tmux.set_auto_clear_hook("%1", "✅")
        status_cmd, hook_cmd = commands(run)
        assert status_cmd == ["tmux", "set-option", "-w", "-t", "%1", "@workmux_status", "✅"]
        assert hook_cmd[:6] == ["tmux", "set-hook", "-w", "-t", "%1", "pane-focus-in"]
        assert "set-option -uw @workmux_status" in hook_cmd[6]

    def test_clear_status(self, run):
        TmuxService().clear_window_status("%1")
        assert commands(run)[0] == ["tmux", "set-option", "-uw", "-t", "%1", "@workmux_status"]

    def test_ensure_status_format_prepends_once(self, run):
        run.side_effect = [
            completed("#I:#W"), completed(),
            completed("#{?@workmux_status,#{@workmux_status} ,}#I:#W"),
        ]
        TmuxService().ensure_status_format("%1")
        set_calls = [c for c in commands(run) if c[1] == "set-option"]
        assert len(set_calls) == 1
        assert set_calls[0][-1].endswith("#I:#W")
        assert "@workmux_status" in set_calls[0][-1]
