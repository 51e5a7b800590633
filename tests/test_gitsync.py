import subprocess

import pytest

from snapdir import gitsync
from snapdir.config import save_config
from snapdir.errors import GitModeDisabled, GitUnavailable
from snapdir.gitsync import git_args, run_git


class TestGitArgs:

    def test_commands_without_argument(self):
        assert git_args("git-sync") == ["pull", "origin", "main"]
        assert git_args("git-share") == ["push", "origin", "main"]

    def test_commands_with_argument(self):
        assert git_args("git-save", "wip") == ["commit", "-am", "wip"]
        assert git_args("git-back", "HEAD~1") == ["checkout", "HEAD~1"]


class TestRunGit:

    def test_missing_git(self, repo, monkeypatch):
        monkeypatch.setattr(gitsync.shutil, "which", lambda name: None)
        with pytest.raises(GitUnavailable):
            run_git(repo, ["status"])

    def test_git_mode_off(self, repo, monkeypatch):
        monkeypatch.setattr(gitsync.shutil, "which", lambda name: "/usr/bin/git")
        with pytest.raises(GitModeDisabled):
            run_git(repo, ["status"])

    def test_runs_in_repository_root(self, repo, monkeypatch):
        save_config(repo.root, {"git_mode": True})
        monkeypatch.setattr(gitsync.shutil, "which", lambda name: "/usr/bin/git")
        calls = []

        def fake_run(argv, cwd):
            calls.append((argv, cwd))
            return subprocess.CompletedProcess(argv, 3)

        monkeypatch.setattr(gitsync.subprocess, "run", fake_run)

        assert run_git(repo, git_args("git-sync")) == 3
        assert calls == [(["git", "pull", "origin", "main"], repo.root)]
