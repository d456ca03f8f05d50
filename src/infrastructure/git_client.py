"""GitClient - gitコマンドの薄いラッパー"""

import logging
import re
import subprocess
from pathlib import Path
from typing import List, Optional

from shared.errors import GitError, RemoteNotFoundError

logger = logging.getLogger(__name__)


def parse_repo_name(url: str) -> str:
    """リモートURLからリポジトリ名を取り出す

    SSH形式（git@github.com:user/project.git）・HTTPS形式の両方に対応。

    Raises:
        GitError: 名前を取り出せない
    """
    name = re.split(r"[/:]", url.strip())[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name:
        raise GitError(f"Cannot parse remote URL: {url}")
    return name


def to_acronym(name: str) -> str:
    """'-'/'_'区切りの各要素の頭文字を小文字で連結（区切りなしはそのまま小文字化）"""
    parts = re.split(r"[-_]", name)
    if len(parts) == 1:
        return name.lower()
    return "".join(part[0] for part in parts if part).lower()


class GitClient:
    """worktree・branch・remote操作"""

    def __init__(self, cwd: Optional[Path] = None):
        self.cwd = cwd

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        logger.debug("git %s", " ".join(args))
        try:
            return subprocess.run(
                ["git", *args],
                capture_output=True,
                text=True,
                cwd=self.cwd,
            )
        except OSError as e:
            raise GitError(f"failed to run git: {e}") from e

    def _check(self, args: List[str], action: str) -> str:
        result = self._run(args)
        if result.returncode != 0:
            raise GitError(f"{action} failed: {result.stderr.strip()}")
        return result.stdout

    def is_git_repo(self) -> bool:
        try:
            return self._run(["rev-parse", "--git-dir"]).returncode == 0
        except GitError:
            return False

    def is_worktree(self) -> bool:
        """カレントがリンクされたworktree（メインリポジトリでない）か"""
        git_dir = self._run(["rev-parse", "--git-dir"]).stdout.strip()
        common_dir = self._run(["rev-parse", "--git-common-dir"]).stdout.strip()
        return git_dir != common_dir

    def remote_exists(self, remote: str) -> bool:
        return self._run(["remote", "get-url", remote]).returncode == 0

    def get_remote_url(self, remote: str) -> str:
        result = self._run(["remote", "get-url", remote])
        if result.returncode != 0:
            raise RemoteNotFoundError(remote)
        return result.stdout.strip()

    def project_prefix(self, remote: str) -> str:
        """リモートのリポジトリ名から短いプロジェクトタグを導出"""
        return to_acronym(parse_repo_name(self.get_remote_url(remote)))

    def branch_exists(self, branch: str) -> bool:
        return self._run(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"]).returncode == 0

    def fetch(self, remote: str) -> None:
        self._check(["fetch", remote], "fetch")

    def add_worktree(self, path: Path, branch: str, start_point: str) -> None:
        self._check(["worktree", "add", str(path), "-b", branch, start_point], "worktree add")

    def remove_worktree(self, path: Path) -> None:
        self._check(["worktree", "remove", "--force", str(path)], "worktree remove")

    def delete_branch(self, branch: str) -> None:
        self._check(["branch", "-D", branch], "branch delete")

    def status_short(self, path: Path) -> str:
        return self._run(["-C", str(path), "status", "-s"]).stdout
