"""
Tests for pdcover.generator
"""
import random

import pandas as pd
import pytest

from pdcover.generator import generate_dataset, random_instance, vertex_cover_instance
from pdcover.io_dataset import read_all_instances
from pdcover.metrics import element_frequency, is_cover


@pytest.mark.parametrize("pattern", ["random", "hub"])
def test_random_instance_is_feasible(pattern):
    rng = random.Random(1)
    instance = random_instance(40, 15, 0.1, rng, pattern=pattern)

    instance.validate()
    assert instance.element_count == 40
    assert instance.set_count == 15
    assert is_cover(instance, range(instance.set_count))
    assert instance.nonzeros >= 60


def test_random_instance_is_seeded():
    a = random_instance(20, 10, 0.2, random.Random(5), cost_mode="skewed")
    b = random_instance(20, 10, 0.2, random.Random(5), cost_mode="skewed")
    assert a.sets == b.sets
    assert a.costs == b.costs


def test_skewed_costs_stay_in_range():
    instance = random_instance(30, 12, 0.3, random.Random(2), cost_range=(2, 8), cost_mode="skewed")
    assert all(2 <= c <= 8 for c in instance.costs)


def test_vertex_cover_instance():
    instance = vertex_cover_instance(3, [(0, 1), (1, 2)], weights=[1, 2, 3])

    assert instance.sets == [(0,), (0, 1), (1,)]
    assert instance.costs == [1.0, 2.0, 3.0]
    assert element_frequency(instance) == 2


def test_vertex_cover_weight_count_checked():
    with pytest.raises(ValueError, match="weights"):
        vertex_cover_instance(3, [(0, 1)], weights=[1, 2])


def test_generate_dataset(tmp_path):
    config = tmp_path / "profiles.yaml"
    config.write_text(
        "\n".join(
            [
                "dataset_id: tiny",
                "seed: 3",
                "samples_per_class: 2",
                "classes:",
                "  - class_id: r",
                "    element_range: [5, 10]",
                "    set_range: [4, 6]",
                "    density_range: [0.2, 0.4]",
                "  - class_id: h",
                "    element_range: [8, 8]",
                "    set_range: [5, 5]",
                "    density_range: [0.3, 0.3]",
                "    pattern: hub",
            ]
        ),
        encoding="utf-8",
    )

    dataset_dir = generate_dataset(config, output_root=tmp_path / "out")

    index = pd.read_csv(dataset_dir / "dataset_index.csv")
    assert len(index) == 4
    instances = read_all_instances(dataset_dir)
    assert sorted(inst.class_id for inst in instances) == ["h", "h", "r", "r"]
    assert all(is_cover(inst, range(inst.set_count)) for inst in instances)
