"""Settings for a managed project.

Read from the [tool.release-steward] table of the project's pyproject.toml:

    [tool.release-steward]
    allow = ["requests", "pydantic"]
    base = "upstream/main"
    max-workers = 8
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ManifestError
from .models import AllowPolicy
from .toml import get_tool_config, load_pyproject

DEFAULT_BASE = "upstream/dev"


class Settings(BaseModel):
    """Configuration for one run.

    Attributes:
        allow: Dependencies eligible for automated updates. Empty means none.
        base: Base for update branches, as "<remote>/<branch>".
        report: Default output path for generate-report.
        dry_run_report: Output path for the dry-run report.
        max_workers: Upper bound on concurrent registry lookups.
        registry_url: Base URL of the PyPI JSON API.
        registry_timeout: Timeout for one registry request, in seconds.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    allow: list[str] = Field(default_factory=list)
    base: str = DEFAULT_BASE
    report: str = "dependency-report.md"
    dry_run_report: str = Field(default="dry-run-report.md", alias="dry-run-report")
    max_workers: int = Field(default=4, ge=1, alias="max-workers")
    registry_url: str = Field(default="https://pypi.org/pypi", alias="registry-url")
    registry_timeout: float = Field(default=5.0, gt=0, alias="registry-timeout")

    @field_validator("base")
    @classmethod
    def _check_base(cls, value: str) -> str:
        split_base(value)
        return value

    @property
    def policy(self) -> AllowPolicy:
        return AllowPolicy(names=self.allow)


def split_base(base: str) -> tuple[str, str]:
    """Split "<remote>/<branch>" into its parts.

    The branch may itself contain slashes ("origin/release/2.x").

    Raises:
        ValueError: If either part is empty.
    """
    remote, sep, branch = base.strip().partition("/")
    if not sep or not remote or not branch:
        raise ValueError(f"expected <remote>/<branch>, got {base!r}")
    return remote, branch


def load_settings(pyproject_path: Path) -> Settings:
    """Load settings from a pyproject.toml, using defaults for missing keys.

    Raises:
        ManifestError: If the file is unreadable or the table is invalid.
    """
    doc = load_pyproject(pyproject_path)
    try:
        return Settings.model_validate(get_tool_config(doc))
    except ValidationError as exc:
        raise ManifestError(
            f"invalid [tool.release-steward] in {pyproject_path}:\n{exc}"
        ) from exc
