from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

from pdcover.errors import ValidationError


@dataclass
class Instance:
    """Weighted set cover instance.

    Elements are ``0..element_count-1``; ``sets[i]`` costs ``costs[i]``.
    ``element_count`` is fixed at construction, sets are appended with
    :meth:`add_set`.
    """

    element_count: int
    sets: list[tuple[int, ...]] = field(default_factory=list)
    costs: list[float] = field(default_factory=list)
    name: str = ""
    class_id: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.element_count, bool) or not isinstance(self.element_count, int):
            raise ValidationError(f"element_count must be an integer, got {self.element_count!r}")
        if self.element_count < 0:
            raise ValidationError(f"element_count must be >= 0, got {self.element_count}")

    def __setattr__(self, key: str, value) -> None:
        if key == "element_count" and "element_count" in self.__dict__:
            raise AttributeError("element_count is fixed at construction")
        super().__setattr__(key, value)

    def add_set(self, cost: float, covered_elements: Iterable[int]) -> int:
        self.sets.append(tuple(int(e) for e in covered_elements))
        self.costs.append(float(cost))
        return len(self.sets) - 1

    def validate(self) -> None:
        if len(self.costs) != len(self.sets):
            raise ValidationError(
                f"cost/set count mismatch: {len(self.costs)} costs for {len(self.sets)} sets"
            )
        for idx, (cost, items) in enumerate(zip(self.costs, self.sets)):
            if math.isnan(cost):
                raise ValidationError(f"cost of set {idx} is NaN")
            for item in items:
                if item < 0 or item >= self.element_count:
                    raise ValidationError(
                        f"element out of range, set={idx}, element={item}, element_count={self.element_count}"
                    )

    @property
    def set_count(self) -> int:
        return len(self.sets)

    @property
    def nonzeros(self) -> int:
        return sum(len(set(items)) for items in self.sets)

    @property
    def density(self) -> float:
        total = self.element_count * self.set_count
        return self.nonzeros / float(total) if total > 0 else 0.0

    @property
    def instance_id(self) -> str:
        if self.class_id:
            return f"{self.class_id}/{self.name}"
        return self.name


@dataclass(frozen=True)
class CoverSolution:
    selected_sets: tuple[int, ...]
    cost: float
    duals: tuple[float, ...]
    dual_bound: float
    frequency: int
    pruned_sets: tuple[int, ...] = ()

    @property
    def ratio_bound(self) -> float:
        """Certified upper bound on cost / OPT from weak duality."""
        if self.dual_bound <= 0:
            return 1.0 if self.cost <= 0 else math.inf
        return self.cost / self.dual_bound
