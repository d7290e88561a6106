"""Bump propagation: from change records to one severity per workspace.

A workspace must be released when a change record names it directly, or
when any workspace it depends on is released. The severity it receives is
the highest of its own requested severities and those of its bumped
dependencies. Every dependent cascades, whether it pins the dependency
with a `workspace:` constraint or uses a floating range.

Severities form a total order with MAJOR on top, so the computation is a
monotone fixed point: keep raising dependents until a full pass changes
nothing. On an acyclic graph that takes at most (longest dependency chain
+ 1) passes. Cycles are rejected up front by a topological sort; a pass
ceiling remains as a backstop so the loop can never run forever.
"""

from __future__ import annotations

from .errors import CycleError
from .graph import topo_sort
from .models import Bump, BumpPlan, ChangeEntry
from .project import Project


def direct_bumps(entries: list[ChangeEntry]) -> dict[str, Bump]:
    """Combine change records into the highest requested severity per package.

    The result does not depend on record order: max() is commutative.
    """
    bumps: dict[str, Bump] = {}
    for entry in entries:
        for name, bump in entry.bumps.items():
            bumps[name] = max(bumps.get(name, bump), bump)
    return bumps


def transitive_pass(project: Project, bumps: dict[str, Bump]) -> set[str]:
    """Run one propagation pass over every workspace, updating bumps in place.

    For each workspace, look at the workspaces it depends on; if one of them
    holds a higher severity than the workspace itself, the workspace
    inherits it.

    Returns:
        Names of the workspaces whose severity was raised in this pass.
    """
    changed: set[str] = set()
    for index, workspace in project.workspaces():
        if workspace.name is None or project.find(workspace.name) != index:
            continue
        for dep_index in project.dependencies(index):
            dep_name = project.graph.nodes[dep_index].data.name
            dep_bump = bumps.get(dep_name) if dep_name else None
            if dep_bump is None:
                continue
            current = bumps.get(workspace.name)
            if current is None or current < dep_bump:
                bumps[workspace.name] = dep_bump
                changed.add(workspace.name)
    return changed


def propagate(project: Project, entries: list[ChangeEntry]) -> BumpPlan:
    """Compute the bump every workspace must receive.

    Args:
        project: The discovered workspace graph.
        entries: Pending change records.

    Returns:
        A BumpPlan holding the severity per affected workspace, the bumped
        dependencies behind each inherited bump, and warnings for records
        that name unknown packages.

    Raises:
        CycleError: If the workspace dependencies contain a cycle.
    """
    # Explicit cycle check before doing any work
    try:
        order = topo_sort(project.graph)
    except CycleError as exc:
        names = [_label(project, int(index)) for index in exc.involved]
        raise CycleError(names) from exc

    plan = BumpPlan()

    # Direct pass: only packages that exist in the graph get a bump
    for name, bump in direct_bumps(entries).items():
        if project.find(name) is None:
            plan.warnings.append(f"Change for unknown package {name!r} ignored")
            continue
        plan.bumps[name] = bump

    # Transitive pass: repeat until nothing changes
    max_passes = len(project.graph) + 1
    for _ in range(max_passes):
        changed = transitive_pass(project, plan.bumps)
        if not changed:
            break
    else:
        raise CycleError(sorted(changed))

    # Record which bumped dependencies each workspace was released for
    for index in order:
        name = project.graph.nodes[index].data.name
        if name not in plan.bumps:
            continue
        causes = sorted(
            project.graph.nodes[dep].data.name
            for dep in project.dependencies(index)
            if project.graph.nodes[dep].data.name in plan.bumps
        )
        if causes:
            plan.reasons[name] = causes

    return plan


def _label(project: Project, index: int) -> str:
    workspace = project.graph.nodes[index].data
    if workspace.name:
        return workspace.name
    return str(workspace.directory.relative_to(project.root))
