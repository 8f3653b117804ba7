"""Tests for release_steward.plan."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from release_steward.exceptions import ManifestError, RegistryLookupError
from release_steward.models import AllowPolicy, PendingUpdates, UpdateCandidate, UpdatePlan
from release_steward.plan import apply_plan, build_plan


def _registry(versions: dict[str, str]):
    def lookup(name: str) -> str:
        if name not in versions:
            raise RegistryLookupError(name, "not found on registry")
        return versions[name]

    return lookup


@pytest.fixture(autouse=True)
def _quiet():
    with patch("release_steward.plan.step"), patch("release_steward.plan.info"):
        yield


class TestBuildPlan:
    """Tests for build_plan()."""

    def test_policy_filters_dependencies(self) -> None:
        """Only allowed dependencies are considered, whatever their version delta."""
        plan = build_plan(
            {"a": "1.0.0", "b": "2.0.0"},
            AllowPolicy(names=["a"]),
            _registry({"a": "1.1.0", "b": "3.0.0"}),
        )

        assert [c.name for c in plan.candidates] == ["a"]
        assert plan.candidates[0].will_update
        assert plan.candidates[0].latest == "1.1.0"

    def test_unallowed_never_looked_up(self) -> None:
        """When a dependency is outside the policy, the registry is never asked."""
        lookup = MagicMock(return_value="9.0.0")
        build_plan({"a": "1.0.0"}, AllowPolicy(names=["b"]), lookup)
        lookup.assert_not_called()

    @patch("release_steward.plan.warn")
    def test_lookup_failure_does_not_stop_batch(self, mock_warn: MagicMock) -> None:
        """When one lookup fails, the rest are still resolved."""
        plan = build_plan(
            {"x": "1.0.0", "y": "1.0.0", "z": "2.0.0"},
            AllowPolicy(names=["x", "y", "z"]),
            _registry({"y": "1.5.0", "z": "2.0.0"}),
        )

        by_name = {c.name: c for c in plan.candidates}
        assert by_name["x"].latest is None
        assert "not found" in (by_name["x"].error or "")
        assert by_name["y"].will_update
        assert not by_name["z"].will_update
        assert by_name["z"].latest == "2.0.0"
        mock_warn.assert_called_once()
        assert "x" in mock_warn.call_args[0][0]

    @patch("release_steward.plan.warn")
    def test_transport_error_becomes_error_row(self, mock_warn: MagicMock) -> None:
        """When the transport fails, returns an error row."""
        lookup = MagicMock(side_effect=requests.ConnectionError("down"))
        plan = build_plan({"a": "1.0.0"}, AllowPolicy(names=["a"]), lookup)
        assert plan.unresolved[0].name == "a"

    def test_malformed_latest_is_not_an_update(self) -> None:
        """When the registry version is malformed, nothing is updated."""
        plan = build_plan(
            {"a": "1.0.0"}, AllowPolicy(names=["a"]), _registry({"a": "latest"})
        )
        assert plan.candidates[0].latest == "latest"
        assert not plan.candidates[0].will_update

    def test_sorted_by_name(self) -> None:
        """When entries are added out of order, returns them sorted by name."""
        declared = {"zeta": "1.0.0", "alpha": "1.0.0", "mid": "1.0.0"}
        plan = build_plan(
            declared,
            AllowPolicy(names=list(declared)),
            _registry(dict.fromkeys(declared, "1.0.0")),
        )
        assert [c.name for c in plan.candidates] == ["alpha", "mid", "zeta"]

    def test_parallel_lookups_match_serial(self) -> None:
        """When lookups run on a pool, returns the same plan as serial."""
        declared = {f"pkg-{i}": "1.0.0" for i in range(10)}
        latest = {name: ("1.0.1" if i % 2 else "1.0.0") for i, name in enumerate(declared)}
        policy = AllowPolicy(names=list(declared))

        serial = build_plan(declared, policy, _registry(latest), max_workers=1)
        parallel = build_plan(declared, policy, _registry(latest), max_workers=4)

        assert parallel == serial

    @pytest.mark.parametrize("workers", [1, 4])
    @patch("release_steward.plan.warn")
    def test_unexpected_lookup_error_becomes_error_row(
        self, mock_warn: MagicMock, workers: int
    ) -> None:
        """When the lookup raises any other error, returns an error row and keeps going."""

        def lookup(name: str) -> str:
            if name == "a":
                raise TimeoutError("slow")
            return "2.0.0"

        plan = build_plan(
            {"a": "1.0.0", "b": "1.0.0"},
            AllowPolicy(names=["a", "b"]),
            lookup,
            max_workers=workers,
        )

        by_name = {c.name: c for c in plan.candidates}
        assert by_name["a"].latest is None
        assert by_name["a"].error == "slow"
        assert by_name["b"].will_update
        mock_warn.assert_called_once()

    def test_no_allowed_dependencies(self) -> None:
        """When nothing is allowed, returns an empty plan."""
        plan = build_plan({"a": "1.0.0"}, AllowPolicy(), _registry({}))
        assert plan.candidates == []


def _plan() -> UpdatePlan:
    return UpdatePlan(
        candidates=[
            UpdateCandidate(name="a", current="1.0.0", latest="1.1.0", will_update=True),
            UpdateCandidate(name="b", current="1.0.0", latest="1.0.0"),
            UpdateCandidate(name="c", current="2.0.0", latest="3.0.0", will_update=True),
        ]
    )


class TestApplyPlan:
    """Tests for apply_plan()."""

    def test_dry_run_records_without_applying(self) -> None:
        """When dry_run is set, records updates without applying them."""
        apply = MagicMock()
        pending = PendingUpdates()

        applied = apply_plan(_plan(), apply, dry_run=True, pending=pending)

        apply.assert_not_called()
        assert [c.name for c in pending.sorted()] == ["a", "c"]
        assert [c.name for c in applied] == ["a", "c"]

    def test_applies_only_updates(self) -> None:
        """When not a dry run, applies only candidates with an update."""
        apply = MagicMock()
        pending = PendingUpdates()

        applied = apply_plan(_plan(), apply, dry_run=False, pending=pending)

        assert [call.args[0].name for call in apply.call_args_list] == ["a", "c"]
        assert [c.name for c in applied] == ["a", "c"]
        assert len(pending) == 0

    @patch("release_steward.plan.warn")
    def test_failed_apply_continues(self, mock_warn: MagicMock) -> None:
        """When one apply fails, the remaining updates still run."""

        def apply(candidate: UpdateCandidate) -> None:
            if candidate.name == "a":
                raise ManifestError("read-only")

        applied = apply_plan(_plan(), apply, dry_run=False, pending=PendingUpdates())

        assert [c.name for c in applied] == ["c"]
        mock_warn.assert_called_once()
