from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


def _save(fig, path: Path) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return str(path)


def _plot_ratio_vs_frequency(runs_df: pd.DataFrame, out_dir: Path) -> list[str]:
    ratio = pd.to_numeric(runs_df["ratio_bound"], errors="coerce")
    df = runs_df.assign(ratio_bound=ratio)[runs_df["feasible"].astype(bool) & np.isfinite(ratio)]
    if df.empty:
        return []

    fig, ax = plt.subplots(figsize=(7, 4))
    for signature, group in df.groupby("param_signature"):
        ax.scatter(group["frequency"], group["ratio_bound"], s=14, alpha=0.7, label=str(signature))
    f_max = float(df["frequency"].max())
    ax.plot([1, f_max], [1, f_max], linestyle="--", color="gray", label="ratio = f")
    ax.set_title("Certified ratio (cost / dual bound) vs element frequency")
    ax.set_xlabel("f")
    ax.set_ylabel("cost / dual bound")
    ax.grid(alpha=0.25)
    ax.legend(fontsize=7)
    return [_save(fig, out_dir / "scatter_ratio_frequency.png")]


def _plot_runtime(runs_df: pd.DataFrame, out_dir: Path) -> list[str]:
    if runs_df.empty:
        return []

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.scatter(runs_df["nonzeros"], runs_df["runtime_sec"], s=14, alpha=0.7)
    ax.set_title("Runtime vs memberships")
    ax.set_xlabel("nonzeros")
    ax.set_ylabel("runtime_sec")
    ax.grid(alpha=0.25)
    return [_save(fig, out_dir / "scatter_runtime.png")]


def _plot_class_bar(summary_class_df: pd.DataFrame, out_dir: Path) -> list[str]:
    if summary_class_df.empty or "objective_mean" not in summary_class_df.columns:
        return []

    # infeasible runs carry an infinite objective
    pivot = summary_class_df.pivot_table(index="class_id", columns="param_signature", values="objective_mean")
    pivot = pivot.replace([np.inf, -np.inf], np.nan).dropna(how="all")
    if pivot.empty:
        return []
    fig, ax = plt.subplots(figsize=(8, 4))
    pivot.plot(kind="bar", ax=ax)
    ax.set_title("Mean cover cost by class")
    ax.set_ylabel("objective_mean")
    ax.grid(axis="y", alpha=0.25)
    return [_save(fig, out_dir / "bar_class_objective.png")]


def generate_plots(runs_df: pd.DataFrame, summary_class_df: pd.DataFrame, out_dir: str | Path) -> list[str]:
    out = Path(out_dir)
    figures: list[str] = []
    figures.extend(_plot_ratio_vs_frequency(runs_df, out))
    figures.extend(_plot_runtime(runs_df, out))
    figures.extend(_plot_class_bar(summary_class_df, out))
    return figures


def plot_from_experiment_dir(experiment_dir: str | Path) -> list[str]:
    root = Path(experiment_dir)
    runs_df = pd.read_csv(root / "results" / "runs.csv")
    try:
        summary_class_df = pd.read_csv(root / "results" / "summary_by_class.csv")
    except pd.errors.EmptyDataError:
        summary_class_df = pd.DataFrame()
    return generate_plots(runs_df, summary_class_df, root / "figures")
