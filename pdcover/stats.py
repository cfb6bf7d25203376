from __future__ import annotations

import numpy as np
import pandas as pd
from scipy import stats

PRUNE_COLUMNS = [
    "epsilon",
    "metric",
    "test",
    "n_instances",
    "statistic",
    "p_value",
    "mean_saving",
]


def runtime_scaling(runs_df: pd.DataFrame) -> pd.DataFrame:
    """Least-squares fit of runtime against memberships, one row per setting.

    The dual pass touches each membership once, so the fit should be close to
    linear; runtimes are averaged per instance first.
    """

    rows: list[dict[str, float | int | str]] = []
    for signature, group in runs_df.groupby("param_signature"):
        per_instance = group.groupby("instance_id").agg(nonzeros=("nonzeros", "first"), runtime_sec=("runtime_sec", "mean"))
        row: dict[str, float | int | str] = {"param_signature": signature, "n_instances": len(per_instance)}
        if len(per_instance) < 2 or per_instance["nonzeros"].nunique() < 2:
            row.update(sec_per_nonzero=np.nan, intercept=np.nan, r2=np.nan)
        else:
            fit = stats.linregress(per_instance["nonzeros"].to_numpy(dtype=float), per_instance["runtime_sec"].to_numpy(dtype=float))
            row.update(sec_per_nonzero=float(fit.slope), intercept=float(fit.intercept), r2=float(fit.rvalue**2))
        rows.append(row)
    return pd.DataFrame(rows, columns=["param_signature", "n_instances", "sec_per_nonzero", "intercept", "r2"])


def prune_significance(
    runs_df: pd.DataFrame,
    metric: str = "objective",
    method: str = "wilcoxon",
) -> pd.DataFrame:
    """Paired test of prune off against prune on, per epsilon.

    The solver is deterministic, so repeats are averaged away: each instance
    contributes exactly one pair. Instances infeasible under either setting
    are left out.
    """

    if runs_df.empty or metric not in runs_df.columns:
        return pd.DataFrame(columns=PRUNE_COLUMNS)

    feasible = runs_df[runs_df["feasible"].astype(bool)]
    rows: list[dict[str, float | int | str]] = []
    for epsilon, group in feasible.groupby("epsilon"):
        pairs = (
            group.pivot_table(index="instance_id", columns="prune", values=metric, aggfunc="mean")
            .rename(columns={False: "off", True: "on"})
        )
        if "off" not in pairs.columns or "on" not in pairs.columns:
            continue
        pairs = pairs[["off", "on"]].dropna()
        if len(pairs) < 2:
            continue

        off = pairs["off"].to_numpy(dtype=float)
        on = pairs["on"].to_numpy(dtype=float)
        if np.allclose(off, on):
            statistic, p_value, test_name = 0.0, 1.0, "identical_samples"
        elif method.lower() == "ttest":
            statistic, p_value = stats.ttest_rel(off, on)
            test_name = "ttest_rel"
        else:
            try:
                statistic, p_value = stats.wilcoxon(off, on)
                test_name = "wilcoxon"
            except ValueError:
                statistic, p_value, test_name = np.nan, np.nan, "wilcoxon_failed"

        rows.append(
            {
                "epsilon": float(epsilon),
                "metric": metric,
                "test": test_name,
                "n_instances": int(len(pairs)),
                "statistic": float(statistic),
                "p_value": float(p_value),
                "mean_saving": float(np.mean(off - on)),
            }
        )

    return pd.DataFrame(rows, columns=PRUNE_COLUMNS)
