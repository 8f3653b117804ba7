"""Exceptions raised by release-steward.

Per-item failures (a malformed version, one registry lookup) are caught close
to where they happen and turned into a status. Whole-run failures (unreadable
manifest, report that cannot be written, failed preflight) propagate to the
CLI, which exits non-zero with the message.
"""

from __future__ import annotations


class StewardError(Exception):
    """Base exception for release-steward errors."""


class VersionParseError(StewardError, ValueError):
    """A version string could not be parsed."""


class RegistryLookupError(StewardError):
    """The registry could not answer for a dependency."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class ManifestError(StewardError):
    """The manifest or its configuration is missing or unreadable."""


class ReportWriteError(StewardError):
    """The report file could not be written."""


class GitHubError(StewardError):
    """A GitHub API call failed."""


class PreflightError(StewardError):
    """The environment is not ready for an update run."""

    def __init__(self, issues: list[str]) -> None:
        super().__init__(
            "preflight checks failed:\n" + "\n".join(f"- {i}" for i in issues)
        )
        self.issues = issues


class GitError(StewardError):
    """A git command that changes repository state failed."""
