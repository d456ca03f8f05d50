"""GitClient / TmuxClient のテスト（subprocessはモック）"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from infrastructure.git_client import GitClient, parse_repo_name, to_acronym
from infrastructure.tmux_client import TmuxClient, TmuxWindowChecker
from shared.errors import GitError, RemoteNotFoundError, TmuxError


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestParseRepoName:
    @pytest.mark.parametrize("url, expected", [
        ("git@github.com:user/my-project.git", "my-project"),
        ("https://github.com/user/my-project.git", "my-project"),
        ("https://github.com/user/my-project", "my-project"),
        ("git@host:project.git", "project"),
        ("/srv/git/repo.git\n", "repo"),
    ])
    def test_リポジトリ名(self, url, expected):
        assert parse_repo_name(url) == expected

    def test_名前なしはGitError(self):
        with pytest.raises(GitError):
            parse_repo_name("https://github.com/user/")


class TestToAcronym:
    @pytest.mark.parametrize("name, expected", [
        ("my-cool-project", "mcp"),
        ("snake_case_name", "scn"),
        ("Mixed-Case", "mc"),
        ("mixed_and-dash", "mad"),
        ("wortex", "wortex"),
        ("Wortex", "wortex"),
        ("double--dash", "dd"),
    ])
    def test_頭文字(self, name, expected):
        assert to_acronym(name) == expected


class TestGitClient:
    @patch("infrastructure.git_client.subprocess.run")
    def test_project_prefix(self, mock_run):
        mock_run.return_value = completed(stdout="git@github.com:me/my-cool-repo.git\n")

        assert GitClient().project_prefix("origin") == "mcr"
        args = mock_run.call_args[0][0]
        assert args == ["git", "remote", "get-url", "origin"]

    @patch("infrastructure.git_client.subprocess.run")
    def test_リモートなし(self, mock_run):
        mock_run.return_value = completed(returncode=2, stderr="error: No such remote")

        client = GitClient()
        assert not client.remote_exists("upstream")
        with pytest.raises(RemoteNotFoundError):
            client.get_remote_url("upstream")

    @patch("infrastructure.git_client.subprocess.run")
    def test_worktree判定(self, mock_run):
        mock_run.side_effect = [completed(stdout=".git/worktrees/x\n"), completed(stdout="/repo/.git\n")]
        assert GitClient().is_worktree()

        mock_run.side_effect = [completed(stdout=".git\n"), completed(stdout=".git\n")]
        assert not GitClient().is_worktree()

    @patch("infrastructure.git_client.subprocess.run")
    def test_git未インストールはリポジトリ外扱い(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")

        assert not GitClient().is_git_repo()

    @patch("infrastructure.git_client.subprocess.run")
    def test_worktree追加(self, mock_run):
        mock_run.return_value = completed()

        GitClient().add_worktree(Path("/work/wx-feat"), "feat", "origin/main")

        assert mock_run.call_args[0][0] == [
            "git", "worktree", "add", "/work/wx-feat", "-b", "feat", "origin/main",
        ]

    @patch("infrastructure.git_client.subprocess.run")
    def test_失敗時はstderr付きGitError(self, mock_run):
        mock_run.return_value = completed(returncode=128, stderr="fatal: bad\n")

        with pytest.raises(GitError) as exc_info:
            GitClient().fetch("origin")

        assert "fatal: bad" in str(exc_info.value)


class TestTmuxClient:
    @patch("infrastructure.tmux_client.subprocess.run")
    def test_ウィンドウ作成とremain_on_exit(self, mock_run):
        mock_run.return_value = completed()

        TmuxClient().create_window("main", "feat", Path("/work/wx-feat"), "wortex __run id")

        calls = [c[0][0] for c in mock_run.call_args_list]
        assert calls[0] == [
            "tmux", "new-window", "-t", "main:", "-n", "feat", "-c", "/work/wx-feat", "wortex __run id",
        ]
        assert calls[1] == ["tmux", "set-option", "-t", "main:feat", "remain-on-exit", "on"]

    @patch("infrastructure.tmux_client.subprocess.run")
    def test_ウィンドウ存在確認(self, mock_run):
        mock_run.return_value = completed(stdout="zsh\nfeat\n")
        client = TmuxClient()

        assert client.window_exists("main", "feat")
        assert not client.window_exists("main", "fea")

    @patch("infrastructure.tmux_client.subprocess.run")
    def test_セッションなしは不在(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="can't find session")

        assert not TmuxClient().window_exists("gone", "feat")

    @patch("infrastructure.tmux_client.subprocess.run")
    def test_kill失敗はTmuxError(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="can't find window")

        with pytest.raises(TmuxError):
            TmuxClient().kill_window("main", "feat")

    def test_tmux内判定(self, monkeypatch):
        monkeypatch.setenv("TMUX", "/tmp/tmux-1000/default,1,0")
        assert TmuxClient.is_inside_tmux()
        monkeypatch.delenv("TMUX")
        assert not TmuxClient.is_inside_tmux()

    def test_WindowCheckerはtmux失敗を不在扱い(self, make_process):
        tmux = MagicMock()
        tmux.window_exists.side_effect = TmuxError("failed to run tmux")

        assert not TmuxWindowChecker(tmux).window_exists(make_process())
