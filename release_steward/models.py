"""Data models for release-steward.

These Pydantic models represent the data passed between the update plan, the
release decision, and the report renderer. All of them are computed fresh on
every run; nothing here is persisted.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from packaging.utils import canonicalize_name
from pydantic import BaseModel, Field, field_validator


class ReleaseType(str, Enum):
    """Kind of release suggested by the merged changes."""

    PATCH = "next patch"
    MINOR = "next minor"


class ReportKind(str, Enum):
    DRY_RUN = "dry-run"
    FULL = "full"


class UpdateStatus(str, Enum):
    UP_TO_DATE = "up-to-date"
    UPDATE_AVAILABLE = "update-available"
    ERROR = "error"


class DependencyRecord(BaseModel):
    """A dependency as declared in the manifest.

    Attributes:
        name: Canonical (PEP 503) distribution name.
        version: Declared version, taken from the requirement's specifier.
        requirement: The original PEP 508 requirement string.
    """

    name: str
    version: str
    requirement: str = ""


class AllowPolicy(BaseModel):
    """Dependencies eligible for automated updates.

    Names are canonicalized so "My_Package" and "my-package" match.
    """

    names: frozenset[str] = frozenset()

    @field_validator("names", mode="before")
    @classmethod
    def _canonicalize(cls, value: object) -> frozenset[str]:
        if isinstance(value, str):
            value = [value]
        return frozenset(canonicalize_name(str(n)) for n in value or ())

    def allows(self, name: str) -> bool:
        return canonicalize_name(name) in self.names


class UpdateCandidate(BaseModel):
    """Result of checking one allowed dependency against the registry.

    Attributes:
        name: Canonical dependency name.
        current: Version declared in the manifest.
        latest: Latest published version, or None if the lookup failed.
        will_update: True iff latest is strictly newer than current.
        error: Lookup failure description for unresolved dependencies.
    """

    name: str
    current: str
    latest: str | None = None
    will_update: bool = False
    error: str | None = None

    @property
    def status(self) -> UpdateStatus:
        if self.latest is None:
            return UpdateStatus.ERROR
        if self.will_update:
            return UpdateStatus.UPDATE_AVAILABLE
        return UpdateStatus.UP_TO_DATE


class UpdatePlan(BaseModel):
    """Every allowed dependency that was considered, ordered by name."""

    candidates: list[UpdateCandidate] = Field(default_factory=list)

    @property
    def updates(self) -> list[UpdateCandidate]:
        return [c for c in self.candidates if c.will_update]

    @property
    def unresolved(self) -> list[UpdateCandidate]:
        return [c for c in self.candidates if c.status is UpdateStatus.ERROR]

    @property
    def has_updates(self) -> bool:
        return any(c.will_update for c in self.candidates)


class PendingUpdates(BaseModel):
    """Updates a dry run would have applied.

    Owned by the caller and handed to both the apply step and the dry-run
    report, so nothing accumulates between runs.
    """

    updates: list[UpdateCandidate] = Field(default_factory=list)

    def add(self, candidate: UpdateCandidate) -> None:
        self.updates.append(candidate)

    def __len__(self) -> int:
        return len(self.updates)

    def sorted(self) -> list[UpdateCandidate]:
        return sorted(self.updates, key=lambda c: c.name)


class ChangeRecord(BaseModel):
    """A pull request merged since the last release.

    Attributes:
        number: Pull request number.
        title: Pull request title.
        author: Login of the pull request author.
        labels: Label names, in the order the host returns them.
        merged_at: Merge time; None for PRs closed without merging.
    """

    number: int
    title: str
    author: str = ""
    labels: list[str] = Field(default_factory=list)
    merged_at: datetime | None = None

    @property
    def merged(self) -> bool:
        return self.merged_at is not None

    def describe(self) -> str:
        """One-line summary: "PR #12, title, author, label-a, label-b, <merged_at>"."""
        merged = self.merged_at.isoformat() if self.merged_at else ""
        line = f"PR #{self.number}, {self.title}, {self.author}, {', '.join(self.labels)}, {merged}"
        if not self.labels:
            line += " (No labels)"
        return line


class ReleaseInfo(BaseModel):
    """The latest published release of a repository."""

    tag: str
    commit_sha: str = ""
    published_at: datetime | None = None
