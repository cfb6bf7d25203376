from __future__ import annotations

import itertools
from typing import Any, Mapping

from pdcover.alg_primal_dual import DEFAULT_EPSILON

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def as_bool(value: Any) -> bool:
    """Strict boolean: ``"False"`` is False, anything unrecognised is an error."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise ValueError(f"not a boolean: {value!r}")


def as_epsilon(value: Any) -> float:
    epsilon = float(value)
    if not epsilon > 0:
        raise ValueError(f"epsilon must be > 0, got {value!r}")
    return epsilon


# the solver's only tunable parameters
SOLVER_PARAMS = {
    "epsilon": (as_epsilon, DEFAULT_EPSILON),
    "prune": (as_bool, False),
}


def coerce_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Type every value and fill in defaults for the missing parameters."""

    unknown = sorted(set(params) - set(SOLVER_PARAMS))
    if unknown:
        raise ValueError(f"unknown solver parameter(s): {', '.join(unknown)}")
    return {
        key: convert(params[key]) if key in params else default
        for key, (convert, default) in SOLVER_PARAMS.items()
    }


def parse_csv_list(text: str) -> list[str]:
    return [x.strip() for x in text.split(",") if x.strip()]


def parse_grid_spec(text: str) -> dict[str, list[str]]:
    """Split ``epsilon=1e-4,1e-6;prune=false,true``; values stay raw for coerce_params."""

    grid: dict[str, list[str]] = {}
    for block in filter(None, (b.strip() for b in text.split(";"))):
        key, sep, values_text = block.partition("=")
        if not sep:
            raise ValueError(f"grid block is missing '=': {block}")
        values = parse_csv_list(values_text)
        if not values:
            raise ValueError(f"grid parameter {key.strip()} has no values")
        grid[key.strip()] = values
    return grid


def ofat_points(base_params: Mapping[str, Any], sweep_param: str, sweep_values: list[Any]) -> list[dict[str, Any]]:
    if not sweep_param or not sweep_values:
        return [coerce_params(base_params)]
    return [coerce_params({**base_params, sweep_param: value}) for value in sweep_values]


def grid_points(grid_params: Mapping[str, list[Any]]) -> list[dict[str, Any]]:
    keys = sorted(grid_params)
    combos = itertools.product(*(grid_params[k] for k in keys))
    return [coerce_params(dict(zip(keys, combo))) for combo in combos]


def param_signature(params: Mapping[str, Any]) -> str:
    return f"epsilon={params['epsilon']:g}|prune={'on' if params['prune'] else 'off'}"
