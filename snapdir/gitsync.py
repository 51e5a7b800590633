"""Pass-through to the git binary for the remote sync commands.

snapdir never reimplements git; these commands only run when git_mode is on
in .snapdir/config.json and git is on PATH.
"""

import shutil
import subprocess

from snapdir.errors import GitModeDisabled, GitUnavailable

# command → git argv (before any user argument)
GIT_COMMANDS = {
    "git-sync": ["pull", "origin", "main"],
    "git-save": ["commit", "-am"],
    "git-back": ["checkout"],
    "git-share": ["push", "origin", "main"],
}


def git_args(command, argument=None):
    args = list(GIT_COMMANDS[command])
    if argument is not None:
        args.append(argument)
    return args


def run_git(repo, args):
    """Run git with args in the repository root. Returns git's exit code."""
    if shutil.which("git") is None:
        raise GitUnavailable()
    if not repo.load_config().get("git_mode"):
        raise GitModeDisabled()

    repo.log("git", args=args)
    return subprocess.run(["git", *args], cwd=repo.root).returncode
