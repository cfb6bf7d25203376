"""
Tests for pdcover.alg_primal_dual

Test Coverage:
- solve_cover(): reference example, coverage, dual feasibility, f-approximation
- Infeasibility and validation failures
- Zero-cost sets, empty universe, epsilon handling
- prune_redundant() and the dict-returning solve() adapter
"""
import itertools
import math
import random

import pytest

from pdcover.alg_primal_dual import (
    DEFAULT_EPSILON,
    build_coverage,
    prune_redundant,
    solve,
    solve_cover,
    tight_sets,
)
from pdcover.errors import InfeasibleInstance, ValidationError
from pdcover.generator import random_instance, vertex_cover_instance
from pdcover.metrics import cover_cost, element_frequency, is_cover
from pdcover.types import Instance


def _brute_force_optimum(instance):
    best = math.inf
    for r in range(instance.set_count + 1):
        for combo in itertools.combinations(range(instance.set_count), r):
            if is_cover(instance, combo):
                best = min(best, cover_cost(instance, combo))
    return best


def _small_instances(count=25, seed=7):
    rng = random.Random(seed)
    for _ in range(count):
        yield random_instance(
            n_elements=rng.randint(3, 8),
            n_sets=rng.randint(2, 7),
            density=rng.uniform(0.2, 0.6),
            rng=rng,
            cost_range=(0, 9),
            pattern=rng.choice(["random", "hub"]),
        )


def test_reference_example(demo_instance):
    solution = solve_cover(demo_instance)

    assert solution.selected_sets == (1, 3)
    assert solution.cost == pytest.approx(4.0)
    assert solution.duals == pytest.approx((2.0, 2.0, 0.0, 0.0, 0.0))
    assert solution.dual_bound == pytest.approx(4.0)
    assert solution.frequency == 2
    assert solution.pruned_sets == ()


def test_reference_example_prefers_cheap_sets(demo_instance):
    solution = solve_cover(demo_instance)
    assert 0 not in solution.selected_sets
    assert is_cover(demo_instance, solution.selected_sets)


def test_build_coverage_collapses_duplicates():
    instance = Instance(3)
    instance.add_set(1, [0, 0, 2])
    instance.add_set(1, [1])

    coverage = build_coverage(instance)

    assert coverage.shape == (3, 2)
    assert coverage.toarray().tolist() == [[1.0, 0.0], [0.0, 1.0], [1.0, 0.0]]


def test_result_is_a_cover_on_random_instances():
    for instance in _small_instances():
        solution = solve_cover(instance)
        assert is_cover(instance, solution.selected_sets)
        assert list(solution.selected_sets) == sorted(set(solution.selected_sets))


def test_dual_feasibility_on_random_instances():
    for instance in _small_instances():
        solution = solve_cover(instance)
        for cost, items in zip(instance.costs, instance.sets):
            load = sum(solution.duals[e] for e in set(items))
            assert load <= cost + DEFAULT_EPSILON


def test_f_approximation_bound():
    for instance in _small_instances():
        solution = solve_cover(instance)
        optimum = _brute_force_optimum(instance)
        f = element_frequency(instance)

        assert solution.frequency == f
        assert solution.cost <= f * optimum + 1e-9
        assert solution.dual_bound <= optimum + 1e-9


def test_vertex_cover_is_two_approximation():
    edges = [(0, 1), (1, 2), (2, 0), (2, 3), (3, 4), (4, 5)]
    instance = vertex_cover_instance(6, edges, weights=[3, 1, 4, 1, 5, 9])

    solution = solve_cover(instance)

    assert solution.frequency == 2
    assert is_cover(instance, solution.selected_sets)
    assert solution.cost <= 2 * _brute_force_optimum(instance) + 1e-9


def test_determinism():
    instance = next(_small_instances(count=1, seed=99))
    first = solve_cover(instance)
    for _ in range(5):
        assert solve_cover(instance).selected_sets == first.selected_sets


def test_solver_does_not_mutate_instance(demo_instance):
    sets_before = list(demo_instance.sets)
    costs_before = list(demo_instance.costs)
    solve_cover(demo_instance, prune=True)
    assert demo_instance.sets == sets_before
    assert demo_instance.costs == costs_before


def test_uncovered_element_raises(infeasible_instance):
    with pytest.raises(InfeasibleInstance) as excinfo:
        solve_cover(infeasible_instance)
    assert excinfo.value.element == 1


def test_no_sets_is_infeasible():
    with pytest.raises(InfeasibleInstance) as excinfo:
        solve_cover(Instance(2))
    assert excinfo.value.element == 0


def test_infinite_cost_makes_dual_unbounded():
    instance = Instance(2)
    instance.add_set(math.inf, [0])
    instance.add_set(1, [1])

    with pytest.raises(InfeasibleInstance, match="unbounded"):
        solve_cover(instance)


def test_infinite_cost_set_beside_finite_one():
    instance = Instance(1)
    instance.add_set(math.inf, [0])
    instance.add_set(2, [0])

    assert solve_cover(instance).selected_sets == (1,)


def test_invalid_instance_fails_before_solving():
    instance = Instance(2)
    instance.add_set(1, [0, 2])
    with pytest.raises(ValidationError):
        solve_cover(instance)


def test_zero_cost_set_is_included(zero_cost_instance):
    solution = solve_cover(zero_cost_instance)
    assert 0 in solution.selected_sets
    assert solution.selected_sets == (0, 1)


def test_empty_universe():
    instance = Instance(0)
    instance.add_set(0, [])

    solution = solve_cover(instance)

    assert solution.selected_sets == ()
    assert solution.cost == 0.0
    assert solution.dual_bound == 0.0


def test_epsilon_must_be_positive(demo_instance):
    with pytest.raises(ValueError, match="epsilon"):
        solve_cover(demo_instance, epsilon=0)


def test_epsilon_widens_tightness():
    instance = Instance(1)
    instance.add_set(1, [0])
    instance.add_set(1.5, [0])

    assert solve_cover(instance).selected_sets == (0,)
    assert solve_cover(instance, epsilon=1.0).selected_sets == (0, 1)


def test_tight_sets_uses_strict_tolerance():
    import numpy as np

    costs = np.array([1.0, 2.0, 3.0])
    load = np.array([1.0, 1.99995, 2.0])
    assert tight_sets(costs, load, epsilon=1e-4) == [0, 1]


def test_prune_drops_covered_sets(zero_cost_instance):
    kept, removed = prune_redundant(zero_cost_instance, [0, 1])
    assert kept == [1]
    assert removed == [0]


def test_prune_removes_most_expensive_first():
    instance = Instance(2)
    instance.add_set(5, [0, 1])
    instance.add_set(1, [0])
    instance.add_set(1, [1])

    kept, removed = prune_redundant(instance, [0, 1, 2])

    assert kept == [1, 2]
    assert removed == [0]


def test_solve_cover_with_prune(zero_cost_instance):
    solution = solve_cover(zero_cost_instance, prune=True)

    assert solution.selected_sets == (1,)
    assert solution.pruned_sets == (0,)
    assert is_cover(zero_cost_instance, solution.selected_sets)


def test_prune_keeps_cover_on_random_instances():
    for instance in _small_instances():
        plain = solve_cover(instance)
        pruned = solve_cover(instance, prune=True)
        assert is_cover(instance, pruned.selected_sets)
        assert pruned.cost <= plain.cost + 1e-9


def test_solve_adapter_feasible(demo_instance):
    result = solve(demo_instance, seed=3)

    assert result["is_feasible"] is True
    assert result["selected_sets"] == [1, 3]
    assert result["objective"] == pytest.approx(4.0)
    assert result["meta"]["dual_bound"] == pytest.approx(4.0)
    assert result["meta"]["ratio_bound"] == pytest.approx(1.0)


def test_solve_adapter_infeasible_is_tagged(infeasible_instance):
    result = solve(infeasible_instance, seed=0)

    assert result["is_feasible"] is False
    assert result["objective"] == math.inf
    assert result["meta"]["reason"] == "element_1_has_no_covering_set"


def test_solve_adapter_tags_unbounded_dual():
    instance = Instance(2)
    instance.add_set(math.inf, [0])
    instance.add_set(1, [1])

    result = solve(instance)

    assert result["is_feasible"] is False
    assert result["meta"]["reason"] == "element_0_dual_unbounded"


@pytest.mark.parametrize("prune, expected", [("False", [0, 1]), ("false", [0, 1]), ("True", [1]), (True, [1])])
def test_solve_adapter_parses_prune_strings(zero_cost_instance, prune, expected):
    result = solve(zero_cost_instance, prune=prune)

    assert result["selected_sets"] == expected
    assert result["meta"]["prune"] is (expected == [1])


def test_solve_adapter_rejects_bad_params(demo_instance):
    with pytest.raises(ValueError, match="boolean"):
        solve(demo_instance, prune="sometimes")
    with pytest.raises(ValueError, match="epsilon"):
        solve(demo_instance, epsilon="0")
