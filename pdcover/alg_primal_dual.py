from __future__ import annotations

import logging
import math
import time
from typing import Any

import numpy as np
import scipy.sparse as sp

from pdcover.errors import InfeasibleInstance
from pdcover.types import CoverSolution, Instance

logger = logging.getLogger(__name__)

# Doubles drift, so a dual constraint counts as tight within this tolerance.
DEFAULT_EPSILON = 1e-4


def build_coverage(instance: Instance) -> sp.csr_matrix:
    """Sparse (element x set) matrix, 1.0 where the set covers the element."""

    rows: list[int] = []
    cols: list[int] = []
    for s, items in enumerate(instance.sets):
        for e in sorted(set(items)):
            rows.append(e)
            cols.append(s)

    data = np.ones(len(rows), dtype=float)
    return sp.csr_matrix(
        (data, (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64))),
        shape=(instance.element_count, instance.set_count),
    )


def grow_duals(coverage: sp.csr_matrix, costs: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Raise each element's dual as far as the set constraints allow.

    Elements are processed by increasing index; the result depends on that
    order. Returns ``(duals, load)`` where ``load[s]`` is the sum of duals of
    the elements covered by set ``s``.
    """

    n_elements, n_sets = coverage.shape
    load = np.zeros(n_sets, dtype=float)
    duals = np.zeros(n_elements, dtype=float)

    indptr, indices, weights = coverage.indptr, coverage.indices, coverage.data
    for e in range(n_elements):
        lo, hi = indptr[e], indptr[e + 1]
        covering = indices[lo:hi]
        if covering.size == 0:
            raise InfeasibleInstance(e)

        w = weights[lo:hi]
        delta = float(np.min((costs[covering] - load[covering]) / w))
        if delta == math.inf:
            raise InfeasibleInstance(
                e, f"dual of element {e} is unbounded, every covering set has infinite cost", unbounded=True
            )

        duals[e] = delta
        load[covering] += delta * w

    return duals, load


def tight_sets(costs: np.ndarray, load: np.ndarray, epsilon: float = DEFAULT_EPSILON) -> list[int]:
    return [int(s) for s in np.flatnonzero(np.abs(costs - load) < epsilon)]


def prune_redundant(instance: Instance, selected: list[int]) -> tuple[list[int], list[int]]:
    """Drop sets whose elements stay covered by the rest, most expensive first."""

    counts = np.zeros(instance.element_count, dtype=np.int64)
    members = {s: sorted(set(instance.sets[s])) for s in selected}
    for s in selected:
        counts[members[s]] += 1

    removed: list[int] = []
    for s in sorted(selected, key=lambda idx: (instance.costs[idx], len(members[idx])), reverse=True):
        items = members[s]
        if np.all(counts[items] >= 2):
            counts[items] -= 1
            removed.append(s)

    dropped = set(removed)
    return [s for s in selected if s not in dropped], sorted(removed)


def solve_cover(
    instance: Instance,
    epsilon: float = DEFAULT_EPSILON,
    prune: bool = False,
) -> CoverSolution:
    """Primal-dual f-approximation for weighted set cover.

    Raises ``ValidationError`` for inconsistent data and
    ``InfeasibleInstance`` when some element cannot be covered.
    """

    if not epsilon > 0:
        raise ValueError(f"epsilon must be > 0, got {epsilon}")
    instance.validate()

    if instance.element_count == 0:
        return CoverSolution(selected_sets=(), cost=0.0, duals=(), dual_bound=0.0, frequency=0)

    costs = np.asarray(instance.costs, dtype=float)
    coverage = build_coverage(instance)
    frequency = int(np.diff(coverage.indptr).max())

    try:
        duals, load = grow_duals(coverage, costs)
    except InfeasibleInstance as exc:
        logger.info("Infeasible instance %s: %s", instance.instance_id or "<unnamed>", exc)
        raise

    selected = tight_sets(costs, load, epsilon)
    pruned: list[int] = []
    if prune:
        selected, pruned = prune_redundant(instance, selected)
        if pruned:
            logger.info("Pruned %d redundant sets: %s", len(pruned), pruned)

    dual_bound = float(duals.sum())
    logger.debug(
        "Solved %d elements / %d sets (f=%d): %d sets selected, dual bound %.6g",
        instance.element_count, instance.set_count, frequency, len(selected), dual_bound,
    )
    return CoverSolution(
        selected_sets=tuple(selected),
        cost=float(sum(costs[s] for s in selected)),
        duals=tuple(float(y) for y in duals),
        dual_bound=dual_bound,
        frequency=frequency,
        pruned_sets=tuple(pruned),
    )


def solve(
    instance: Instance,
    seed: int = 0,
    epsilon: float = DEFAULT_EPSILON,
    prune: bool = False,
    **kwargs: Any,
) -> dict[str, Any]:
    """Primal-dual schema; ``seed`` is unused since the pass is deterministic.

    ``epsilon`` and ``prune`` may arrive as strings from configs or the CLI.
    """

    from pdcover.param_space import coerce_params

    params = coerce_params({"epsilon": epsilon, "prune": prune})
    start = time.perf_counter()
    try:
        solution = solve_cover(instance, **params)
    except InfeasibleInstance as exc:
        runtime_sec = time.perf_counter() - start
        if exc.unbounded:
            reason = f"element_{exc.element}_dual_unbounded"
        else:
            reason = f"element_{exc.element}_has_no_covering_set"
        return {
            "objective": float("inf"),
            "runtime_sec": float(runtime_sec),
            "is_feasible": False,
            "selected_sets": [],
            "convergence_curve": [],
            "meta": {
                "solver": "primal_dual",
                "solver_status": "infeasible_input",
                "reason": reason,
                **params,
                "n_elements": int(instance.element_count),
                "n_sets": int(instance.set_count),
            },
        }

    runtime_sec = time.perf_counter() - start
    return {
        "objective": float(solution.cost),
        "runtime_sec": float(runtime_sec),
        "is_feasible": True,
        "selected_sets": list(solution.selected_sets),
        "convergence_curve": [],
        "meta": {
            "solver": "primal_dual",
            "solver_status": "feasible",
            **params,
            "dual_bound": float(solution.dual_bound),
            "ratio_bound": float(solution.ratio_bound),
            "frequency": int(solution.frequency),
            "pruned_sets": list(solution.pruned_sets),
            "n_elements": int(instance.element_count),
            "n_sets": int(instance.set_count),
        },
    }
