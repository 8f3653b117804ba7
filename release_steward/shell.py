"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running git and gh,
a command runner that can be swapped out in tests, plus output formatting
helpers.
"""

from __future__ import annotations

import shutil
import subprocess
import sys

# Timeout for gh CLI and network-bound git operations (seconds)
GH_TIMEOUT_SECONDS = 30


def git(*args: str, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--porcelain").
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., remote lookup).

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(["git", *args], capture_output=True, text=True, check=check)
    return result.stdout.strip()


def gh(*args: str, check: bool = True) -> str:
    """Run a GitHub CLI command and return stdout.

    Raises:
        subprocess.CalledProcessError: If check is True and gh fails.
        subprocess.TimeoutExpired: If gh does not answer in time.
    """
    result = subprocess.run(
        ["gh", *args],
        capture_output=True,
        text=True,
        check=check,
        timeout=GH_TIMEOUT_SECONDS,
    )
    return result.stdout.strip()


def run(*args: str, check: bool = True) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary shell command.

    Unlike git(), this doesn't capture output - it streams directly to
    the terminal so users can see progress.

    Returns:
        CompletedProcess with returncode for checking success.
    """
    return subprocess.run(args, check=check)


def which(program: str) -> bool:
    """Return True if program is on PATH."""
    return shutil.which(program) is not None


class CommandRunner:
    """Runs commands that change repository state (branch, commit, push).

    Kept behind a small object so the release flow can be exercised with a
    recording double instead of a real git checkout.
    """

    def __call__(self, *args: str) -> subprocess.CompletedProcess[bytes]:
        return run(*args, check=False)


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of a run in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def info(msg: str) -> None:
    """Print an indented detail line under the current step."""
    print(f"  {msg}")


def warn(msg: str) -> None:
    """Print a warning to stderr without stopping the run."""
    print(f"  Warning: {msg}", file=sys.stderr)

