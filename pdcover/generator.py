from __future__ import annotations

import logging
import random
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import pandas as pd
from omegaconf import OmegaConf

from pdcover.io_dataset import write_instance_file
from pdcover.types import Instance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassConfig:
    class_id: str
    element_range: tuple[int, int]
    set_range: tuple[int, int]
    density_range: tuple[float, float]
    pattern: str
    samples: int
    cost_mode: str
    hub_ratio: float
    hub_bias: float


def _as_class_config(raw: dict[str, Any], default_samples: int, default_cost_mode: str) -> ClassConfig:
    return ClassConfig(
        class_id=str(raw["class_id"]),
        element_range=(int(raw["element_range"][0]), int(raw["element_range"][1])),
        set_range=(int(raw["set_range"][0]), int(raw["set_range"][1])),
        density_range=(float(raw["density_range"][0]), float(raw["density_range"][1])),
        pattern=str(raw.get("pattern", "random")),
        samples=int(raw.get("samples", default_samples)),
        cost_mode=str(raw.get("cost_mode", default_cost_mode)),
        hub_ratio=float(raw.get("hub_ratio", 0.12)),
        hub_bias=float(raw.get("hub_bias", 0.78)),
    )


def _sample_element(rng: random.Random, n_elements: int, hub_elements: list[int], hub_bias: float) -> int:
    if hub_elements and rng.random() < hub_bias:
        return rng.choice(hub_elements)
    return rng.randrange(n_elements)


def random_instance(
    n_elements: int,
    n_sets: int,
    density: float,
    rng: random.Random,
    cost_range: tuple[float, float] = (1.0, 10.0),
    pattern: str = "random",
    cost_mode: str = "uniform",
    hub_ratio: float = 0.12,
    hub_bias: float = 0.78,
) -> Instance:
    """Random instance in which every element lies in at least one set.

    ``pattern="hub"`` concentrates memberships on a few hub elements, which
    drives the element frequency (and so the approximation ratio) up.
    ``cost_mode="skewed"`` makes larger sets more expensive.
    """

    if n_sets < 1 and n_elements > 0:
        raise ValueError("n_sets must be >= 1 when there are elements to cover")

    set_items: list[set[int]] = [set() for _ in range(n_sets)]
    hub_elements: list[int] = []
    if pattern == "hub" and n_elements > 0:
        hub_count = max(1, min(n_elements, int(round(n_elements * min(max(hub_ratio, 0.01), 1.0)))))
        hub_elements = rng.sample(range(n_elements), k=hub_count)

    # guarantee feasibility first, then fill up to the target density
    for e in range(n_elements):
        set_items[rng.randrange(n_sets)].add(e)

    total_pairs = n_elements * n_sets
    target = min(total_pairs, max(n_elements, int(round(total_pairs * density))))
    used = sum(len(row) for row in set_items)
    attempts = 0
    max_attempts = max(10_000, target * 40)
    while used < target and attempts < max_attempts:
        s = rng.randrange(n_sets)
        e = _sample_element(rng, n_elements, hub_elements, hub_bias)
        if e not in set_items[s]:
            set_items[s].add(e)
            used += 1
        attempts += 1

    lo, hi = cost_range
    instance = Instance(n_elements)
    for items in set_items:
        if cost_mode == "skewed":
            share = len(items) / max(1, n_elements)
            cost = lo + (hi - lo) * (0.2 + 0.8 * share) * (0.85 + 0.3 * rng.random())
            cost = float(round(min(max(cost, lo), hi)))
        else:
            cost = float(rng.randint(int(lo), int(hi)))
        instance.add_set(cost, sorted(items))
    return instance


def vertex_cover_instance(
    n_vertices: int,
    edges: Iterable[tuple[int, int]],
    weights: Iterable[float] | None = None,
) -> Instance:
    """Weighted vertex cover as set cover: edges are elements, vertices are sets (f=2)."""

    edge_list = [(int(u), int(v)) for u, v in edges]
    weight_list = list(weights) if weights is not None else [1.0] * n_vertices
    if len(weight_list) != n_vertices:
        raise ValueError(f"expected {n_vertices} weights, got {len(weight_list)}")

    incident: list[list[int]] = [[] for _ in range(n_vertices)]
    for idx, (u, v) in enumerate(edge_list):
        incident[u].append(idx)
        if v != u:
            incident[v].append(idx)

    instance = Instance(len(edge_list))
    for vertex in range(n_vertices):
        instance.add_set(weight_list[vertex], incident[vertex])
    return instance


def _int_schedule(low: int, high: int, count: int) -> list[int]:
    if count <= 0:
        return []
    if count == 1 or low >= high:
        return [int(low)] * count
    step = (high - low) / float(count - 1)
    return [int(round(low + step * i)) for i in range(count)]


def _float_schedule(low: float, high: float, count: int) -> list[float]:
    if count <= 0:
        return []
    if count == 1 or low >= high:
        return [float(low)] * count
    step = (high - low) / float(count - 1)
    return [float(low + step * i) for i in range(count)]


def generate_dataset(
    config_path: str | Path,
    output_root: str | Path | None = None,
    dataset_id: str | None = None,
    samples_per_class_override: int | None = None,
    seed_override: int | None = None,
) -> Path:
    cfg = OmegaConf.to_container(OmegaConf.load(str(config_path)), resolve=True)
    assert isinstance(cfg, dict)

    seed = int(seed_override if seed_override is not None else cfg.get("seed", 2026))
    rng = random.Random(seed)

    target_dataset_id = str(dataset_id if dataset_id is not None else cfg.get("dataset_id", "default"))
    base_output = Path(output_root if output_root is not None else cfg.get("output_root", "outputs/datasets"))
    dataset_dir = base_output / target_dataset_id
    if bool(cfg.get("clean_output", True)) and dataset_dir.exists():
        shutil.rmtree(dataset_dir)
    dataset_dir.mkdir(parents=True, exist_ok=True)

    cost_range = tuple(float(x) for x in cfg.get("cost_range", [1.0, 10.0]))
    default_samples = int(
        samples_per_class_override if samples_per_class_override is not None else cfg.get("samples_per_class", 10)
    )
    default_cost_mode = str(cfg.get("cost_mode", "uniform"))
    classes = [_as_class_config(row, default_samples, default_cost_mode) for row in cfg.get("classes", [])]

    index_rows: list[dict[str, Any]] = []
    for class_cfg in classes:
        class_dir = dataset_dir / class_cfg.class_id
        element_schedule = _int_schedule(*class_cfg.element_range, class_cfg.samples)
        set_schedule = _int_schedule(*class_cfg.set_range, class_cfg.samples)
        density_schedule = _float_schedule(*class_cfg.density_range, class_cfg.samples)

        for idx in range(class_cfg.samples):
            sample_id = f"{idx:03d}"
            instance = random_instance(
                n_elements=max(1, element_schedule[idx]),
                n_sets=max(1, set_schedule[idx]),
                density=density_schedule[idx],
                rng=rng,
                cost_range=cost_range,
                pattern=class_cfg.pattern,
                cost_mode=class_cfg.cost_mode,
                hub_ratio=class_cfg.hub_ratio,
                hub_bias=class_cfg.hub_bias,
            )
            instance.name = sample_id
            instance.class_id = class_cfg.class_id

            file_path = class_dir / f"sc_{class_cfg.class_id}_{sample_id}"
            write_instance_file(
                file_path,
                instance,
                meta={"pattern": class_cfg.pattern, "seed": seed, "density": f"{instance.density:.6f}"},
            )
            index_rows.append(
                {
                    "dataset_id": target_dataset_id,
                    "class_id": class_cfg.class_id,
                    "sample_id": sample_id,
                    "path": str(file_path),
                    "n_elements": instance.element_count,
                    "n_sets": instance.set_count,
                    "density": instance.density,
                    "pattern": class_cfg.pattern,
                    "seed": seed,
                }
            )

    logger.info("Generated %d instances under %s", len(index_rows), dataset_dir)
    pd.DataFrame(index_rows).to_csv(dataset_dir / "dataset_index.csv", index=False)
    return dataset_dir
