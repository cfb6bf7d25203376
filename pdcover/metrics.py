from __future__ import annotations

import json
import math
from typing import Any, Iterable

import numpy as np
import pandas as pd

from pdcover.types import Instance


def element_frequency(instance: Instance) -> int:
    """f: the largest number of sets containing one element."""

    counts = np.zeros(instance.element_count, dtype=np.int64)
    for items in instance.sets:
        counts[sorted(set(items))] += 1
    return int(counts.max()) if counts.size else 0


def covered_elements(instance: Instance, selected: Iterable[int]) -> set[int]:
    covered: set[int] = set()
    for s in selected:
        covered.update(instance.sets[s])
    return covered


def is_cover(instance: Instance, selected: Iterable[int]) -> bool:
    return len(covered_elements(instance, selected)) == instance.element_count


def cover_cost(instance: Instance, selected: Iterable[int]) -> float:
    return float(sum(instance.costs[s] for s in selected))


def result_fields(result: dict[str, Any], elapsed: float) -> dict[str, Any]:
    """Flatten a solve() result into typed run columns.

    Infeasible results carry no dual quantities; those columns become NaN so
    they stay numeric.
    """

    meta = result.get("meta") or {}
    feasible = bool(result.get("is_feasible", False))
    selected = [int(x) for x in result.get("selected_sets") or []]
    return {
        "runtime_sec": float(result.get("runtime_sec", elapsed)),
        "objective": float(result.get("objective", math.inf)) if feasible else math.inf,
        "feasible": feasible,
        "selected_set_count": len(selected),
        "selected_sets_json": json.dumps(selected),
        "dual_bound": float(meta.get("dual_bound", math.nan)),
        "ratio_bound": float(meta.get("ratio_bound", math.nan)),
        "frequency": float(meta.get("frequency", math.nan)),
        "pruned_set_count": len(meta.get("pruned_sets") or []),
        "reason": str(meta.get("reason", "")),
    }


_AGG_MAP: dict[str, tuple[str, str]] = {
    "run_count": ("objective", "count"),
    "feasible_rate": ("feasible", "mean"),
    "runtime_sec_mean": ("runtime_sec", "mean"),
    "runtime_sec_std": ("runtime_sec", "std"),
    "objective_mean": ("objective", "mean"),
    "objective_std": ("objective", "std"),
    "dual_bound_mean": ("dual_bound", "mean"),
    "ratio_bound_mean": ("ratio_bound", "mean"),
    "ratio_bound_max": ("ratio_bound", "max"),
    "frequency_max": ("frequency", "max"),
    "selected_set_count_mean": ("selected_set_count", "mean"),
    "pruned_set_count_mean": ("pruned_set_count", "mean"),
}


def _aggregate(runs_df: pd.DataFrame, keys: list[str]) -> pd.DataFrame:
    if runs_df.empty:
        return pd.DataFrame()

    agg_map = {dst: spec for dst, spec in _AGG_MAP.items() if spec[0] in runs_df.columns}
    return (
        runs_df.groupby(keys, as_index=False)
        .agg(**agg_map)
        .sort_values(keys[1:])
        .reset_index(drop=True)
    )


def summarize_by_param(runs_df: pd.DataFrame) -> pd.DataFrame:
    return _aggregate(runs_df, ["algorithm_id", "param_signature", "param_key", "param_value"])


def summarize_by_class(runs_df: pd.DataFrame) -> pd.DataFrame:
    return _aggregate(runs_df, ["algorithm_id", "class_id", "param_signature"])
