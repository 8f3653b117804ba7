"""Update plan: which allowed dependencies have a newer release.

The plan is computed without touching the manifest. Applying it is a
separate step, and in a dry run that step only records what it would do.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor

from .exceptions import StewardError
from .models import AllowPolicy, PendingUpdates, UpdateCandidate, UpdatePlan
from .shell import info, step, warn
from .versions import is_newer

RegistryLookup = Callable[[str], str]
Apply = Callable[[UpdateCandidate], None]


def _check(name: str, current: str, lookup: RegistryLookup) -> UpdateCandidate:
    """Resolve one dependency, turning a lookup failure into an error row."""
    try:
        latest = lookup(name)
    except Exception as exc:
        reason = str(exc) or type(exc).__name__
        warn(f"Skipping {name}: {reason}")
        return UpdateCandidate(name=name, current=current, error=reason)
    return UpdateCandidate(
        name=name,
        current=current,
        latest=latest,
        will_update=is_newer(current, latest),
    )


def build_plan(
    declared: Mapping[str, str],
    policy: AllowPolicy,
    lookup: RegistryLookup,
    max_workers: int = 1,
) -> UpdatePlan:
    """Check every allowed dependency against the registry.

    Dependencies outside the policy are skipped entirely. A failed lookup
    becomes an error row and never stops the others from being checked.

    Args:
        declared: Map of dependency name → declared version.
        policy: Names eligible for updates.
        lookup: Returns the latest version for a name. Any exception it
                raises becomes an error row for that name.
        max_workers: Upper bound on concurrent lookups.

    Returns:
        UpdatePlan with one candidate per allowed dependency, sorted by name.
    """
    step("Checking dependencies against the registry")

    allowed = sorted((n, v) for n, v in declared.items() if policy.allows(n))
    if not allowed:
        info("No allowed dependencies declared")
        return UpdatePlan()

    if max_workers > 1 and len(allowed) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(allowed))) as pool:
            candidates = list(pool.map(lambda item: _check(*item, lookup), allowed))
    else:
        candidates = [_check(name, current, lookup) for name, current in allowed]

    for c in candidates:
        if c.will_update:
            info(f"{c.name}: {c.current} → {c.latest}")
        elif c.latest is not None:
            info(f"{c.name}: {c.current} (up to date)")

    return UpdatePlan(candidates=candidates)


def apply_plan(
    plan: UpdatePlan,
    apply: Apply,
    *,
    dry_run: bool,
    pending: PendingUpdates,
) -> list[UpdateCandidate]:
    """Apply every update in the plan, or record it when dry_run is set.

    A failing apply is reported and the remaining updates still run.

    Returns:
        The candidates that were applied (or would have been, in a dry run).
    """
    step("Applying updates" if not dry_run else "Collecting updates (dry run)")

    applied: list[UpdateCandidate] = []
    for candidate in plan.updates:
        if dry_run:
            info(f"[Dry Run] Would update: {candidate.name} -> {candidate.latest}")
            pending.add(candidate)
            applied.append(candidate)
            continue
        try:
            apply(candidate)
        except (StewardError, OSError) as exc:
            warn(f"Failed to update {candidate.name}: {exc}")
            continue
        info(f"Updated {candidate.name}: {candidate.current} → {candidate.latest}")
        applied.append(candidate)

    if not applied:
        info("Nothing to update")
    return applied
