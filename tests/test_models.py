"""Tests for release_steward.models."""

from __future__ import annotations

from conftest import MERGED_AT, make_change

from release_steward.models import (
    AllowPolicy,
    PendingUpdates,
    UpdateCandidate,
    UpdatePlan,
    UpdateStatus,
)


class TestAllowPolicy:
    """Tests for AllowPolicy."""

    def test_canonicalizes_names(self) -> None:
        """When names differ in case or separators, they still match."""
        policy = AllowPolicy(names=["My_Package", "requests"])
        assert policy.allows("my-package")
        assert policy.allows("Requests")

    def test_rejects_unknown(self) -> None:
        """When a name is not listed, allows() returns False."""
        assert not AllowPolicy(names=["requests"]).allows("flask")

    def test_empty_allows_nothing(self) -> None:
        """When the policy is empty, nothing is allowed."""
        assert not AllowPolicy().allows("requests")


class TestUpdateCandidate:
    """Tests for UpdateCandidate.status."""

    def test_status_error_when_unresolved(self) -> None:
        """When latest is unknown, status is ERROR."""
        c = UpdateCandidate(name="a", current="1.0.0", error="boom")
        assert c.status is UpdateStatus.ERROR

    def test_status_update_available(self) -> None:
        """When will_update is set, status is UPDATE_AVAILABLE."""
        c = UpdateCandidate(name="a", current="1.0.0", latest="1.1.0", will_update=True)
        assert c.status is UpdateStatus.UPDATE_AVAILABLE

    def test_status_up_to_date(self) -> None:
        """When latest equals current, status is UP_TO_DATE."""
        c = UpdateCandidate(name="a", current="1.1.0", latest="1.1.0")
        assert c.status is UpdateStatus.UP_TO_DATE


class TestUpdatePlan:
    """Tests for UpdatePlan."""

    def test_partitions_candidates(self) -> None:
        """When candidates are mixed, splits updates from unresolved."""
        plan = UpdatePlan(
            candidates=[
                UpdateCandidate(name="a", current="1.0", latest="2.0", will_update=True),
                UpdateCandidate(name="b", current="1.0", latest="1.0"),
                UpdateCandidate(name="c", current="1.0", error="timeout"),
            ]
        )
        assert [c.name for c in plan.updates] == ["a"]
        assert [c.name for c in plan.unresolved] == ["c"]
        assert plan.has_updates

    def test_empty_plan_has_no_updates(self) -> None:
        """When there are no candidates, has_updates is False."""
        assert not UpdatePlan().has_updates


class TestPendingUpdates:
    """Tests for PendingUpdates."""

    def test_instances_do_not_share_state(self) -> None:
        """When two accumulators exist, they do not share entries."""
        first = PendingUpdates()
        first.add(UpdateCandidate(name="a", current="1", latest="2", will_update=True))
        assert len(first) == 1
        assert len(PendingUpdates()) == 0

    def test_sorted_by_name(self) -> None:
        """When entries are added out of order, returns them sorted by name."""
        pending = PendingUpdates()
        for name in ["zeta", "alpha"]:
            pending.add(UpdateCandidate(name=name, current="1", latest="2", will_update=True))
        assert [c.name for c in pending.sorted()] == ["alpha", "zeta"]


class TestChangeRecord:
    """Tests for ChangeRecord."""

    def test_describe_with_labels(self) -> None:
        """When labels exist, joins them with commas."""
        change = make_change(12, "Fix crash", labels=["bug", "urgent"])
        assert change.describe() == (
            f"PR #12, Fix crash, octocat, bug, urgent, {MERGED_AT.isoformat()}"
        )

    def test_describe_without_labels(self) -> None:
        """When there are no labels, appends "(No labels)"."""
        change = make_change(3, "Docs")
        assert change.describe() == (
            f"PR #3, Docs, octocat, , {MERGED_AT.isoformat()} (No labels)"
        )

    def test_merged(self) -> None:
        """When merged_at is set, merged is True."""
        assert make_change(1, "x").merged
        assert not make_change(1, "x", merged_at=None).merged
