"""Shared test fixtures."""

from __future__ import annotations

import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest
import tomlkit

from release_steward.models import ChangeRecord

GENERATED_AT = datetime(2025, 7, 17, 12, 30, 0)
MERGED_AT = datetime(2025, 7, 16, 9, 0, 0, tzinfo=timezone.utc)


class RecordingRunner:
    """Command runner double that records invocations instead of running them.

    Commands whose first arguments match a key in failures return that exit
    code; everything else succeeds.
    """

    def __init__(self, failures: dict[tuple[str, ...], int] | None = None) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.failures = failures or {}

    def __call__(self, *args: str) -> subprocess.CompletedProcess[bytes]:
        self.calls.append(args)
        code = 0
        for prefix, failure_code in self.failures.items():
            if args[: len(prefix)] == prefix:
                code = failure_code
        return subprocess.CompletedProcess(args, code)


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0,<3",
    "pydantic==2.5.0",
    "rich",
]

[project.optional-dependencies]
dev = ["pytest~=8.0", "requests[socks]>=2.0"]

[dependency-groups]
test = ["hypothesis>=6.0"]

[tool.release-steward]
allow = ["requests", "Pydantic"]
base = "upstream/main"
max-workers = 2
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[project.optional-dependencies]
dev = ["pytest>=8.0"]
docs = ["sphinx>=7.0"]

[dependency-groups]
test = ["hypothesis>=6.0", {include-group = "dev"}]

[tool.release-steward]
allow = ["click"]
"""
    return tomlkit.parse(content)


def make_change(
    number: int,
    title: str,
    labels: list[str] | None = None,
    merged_at: datetime | None = MERGED_AT,
    author: str = "octocat",
) -> ChangeRecord:
    return ChangeRecord(
        number=number,
        title=title,
        author=author,
        labels=labels or [],
        merged_at=merged_at,
    )
