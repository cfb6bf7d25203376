from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from omegaconf import OmegaConf

from pdcover.alg_primal_dual import solve
from pdcover.io_dataset import read_all_instances
from pdcover.metrics import result_fields, summarize_by_class, summarize_by_param
from pdcover.param_space import grid_points, ofat_points, param_signature
from pdcover.stats import prune_significance, runtime_scaling

logger = logging.getLogger(__name__)

ALGORITHM_ID = "primal_dual"


def _timestamp_id(prefix: str = "run") -> str:
    return f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"


def _set_nested(config: dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cur = config
    for part in parts[:-1]:
        node = cur.get(part)
        if not isinstance(node, dict):
            node = {}
            cur[part] = node
        cur = node
    cur[parts[-1]] = value


def load_config(config_path: str | Path, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    cfg = OmegaConf.to_container(OmegaConf.load(str(config_path)), resolve=True)
    assert isinstance(cfg, dict)
    for key, value in (overrides or {}).items():
        if value is not None:
            _set_nested(cfg, key, value)
    return cfg


def build_param_points(cfg: dict[str, Any]) -> tuple[list[dict[str, Any]], str, str]:
    experiment = cfg.get("experiment", {})
    mode = str(experiment.get("mode", "ofat")).lower()
    if mode == "ofat":
        ofat = experiment.get("ofat", {}) or {}
        sweep_param = str(ofat.get("sweep_param", "") or "")
        points = ofat_points(
            base_params=dict(ofat.get("base_params", {}) or {}),
            sweep_param=sweep_param,
            sweep_values=list(ofat.get("sweep_values", []) or []),
        )
        return points, mode, sweep_param
    if mode == "grid":
        grid = experiment.get("grid", {}) or {}
        return grid_points(dict(grid.get("params", {}) or {})), mode, ""
    raise ValueError(f"unsupported experiment mode: {mode}")


def run_experiment(config_path: str | Path, overrides: dict[str, Any] | None = None) -> Path:
    """Solve every dataset instance for every parameter point and write CSV results."""

    cfg = load_config(config_path, overrides)

    output_cfg = cfg.get("output", {})
    run_id = _timestamp_id(str(output_cfg.get("run_id_prefix", "exp")))
    run_dir = Path(output_cfg.get("root", "outputs/experiments")) / run_id
    results_dir = run_dir / "results"
    results_dir.mkdir(parents=True, exist_ok=True)

    dataset_cfg = cfg["dataset"]
    dataset_root = Path(dataset_cfg["root"])
    instances = read_all_instances(
        dataset_root=dataset_root,
        class_filter=dataset_cfg.get("class_filter", []),
        file_prefix=str(dataset_cfg.get("file_prefix", "sc_")),
    )
    if not instances:
        raise ValueError(f"no instances found: dataset_root={dataset_root}")

    repeats = int(cfg.get("experiment", {}).get("repeats", 1))
    if repeats < 1:
        raise ValueError("repeats must be >= 1")

    param_points, mode, sweep_param = build_param_points(cfg)
    logger.info(
        "Running %d parameter points x %d repeats on %d instances",
        len(param_points), repeats, len(instances),
    )

    rows: list[dict[str, Any]] = []
    for point_idx, params in enumerate(param_points):
        signature = param_signature(params)
        for repeat_idx in range(repeats):
            for inst in instances:
                start = time.perf_counter()
                raw = solve(inst, seed=repeat_idx, **params)
                elapsed = time.perf_counter() - start
                rows.append(
                    {
                        "run_id": run_id,
                        "algorithm_id": ALGORITHM_ID,
                        "dataset_id": dataset_root.name,
                        "class_id": inst.class_id,
                        "instance_id": inst.instance_id,
                        "element_count": inst.element_count,
                        "set_count": inst.set_count,
                        "nonzeros": inst.nonzeros,
                        "density": inst.density,
                        "repeat_idx": repeat_idx,
                        "param_point_idx": point_idx,
                        "param_signature": signature,
                        "param_key": sweep_param if mode == "ofat" else "",
                        "param_value": params.get(sweep_param, "") if mode == "ofat" else "",
                        "epsilon": params["epsilon"],
                        "prune": params["prune"],
                        **result_fields(raw, elapsed),
                    }
                )

    runs_df = pd.DataFrame(rows)
    summary_param_df = summarize_by_param(runs_df)
    summary_class_df = summarize_by_class(runs_df)

    metrics_cfg = cfg.get("metrics", {})
    significance_df = prune_significance(
        runs_df,
        metric=str(metrics_cfg.get("significance_metric", "objective")),
        method=str(metrics_cfg.get("significance_method", "wilcoxon")),
    )

    runs_df.to_csv(results_dir / "runs.csv", index=False)
    summary_param_df.to_csv(results_dir / "summary_by_param.csv", index=False)
    summary_class_df.to_csv(results_dir / "summary_by_class.csv", index=False)
    runtime_scaling(runs_df).to_csv(results_dir / "runtime_scaling.csv", index=False)
    significance_df.to_csv(results_dir / "significance.csv", index=False)
    pd.DataFrame(
        [
            {"key": "run_id", "value": run_id},
            {"key": "mode", "value": mode},
            {"key": "sweep_param", "value": sweep_param},
            {"key": "dataset_root", "value": str(dataset_root)},
            {"key": "repeats", "value": repeats},
        ]
    ).to_csv(results_dir / "run_meta.csv", index=False)

    if bool(output_cfg.get("generate_plots", True)):
        from pdcover.visualize import generate_plots

        generate_plots(runs_df, summary_class_df, run_dir / "figures")

    return run_dir
