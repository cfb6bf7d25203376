from __future__ import annotations

import argparse
import logging

from pdcover.alg_primal_dual import DEFAULT_EPSILON, solve_cover
from pdcover.errors import InfeasibleInstance, SetCoverError
from pdcover.param_space import parse_csv_list, parse_grid_spec
from pdcover.types import Instance


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Primal-dual weighted set cover")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("demo", help="solve the built-in 5-element example")

    p_solve = sub.add_parser("solve", help="solve one instance file")
    p_solve.add_argument("--instance", required=True)
    p_solve.add_argument("--epsilon", type=float, default=DEFAULT_EPSILON)
    p_solve.add_argument("--prune", action="store_true", help="drop redundant sets, most expensive first")

    p_gen = sub.add_parser("gen", help="generate a dataset")
    p_gen.add_argument("--config", default="configs/dataset_profiles.yaml")
    p_gen.add_argument("--output-root", default=None)
    p_gen.add_argument("--dataset-id", default=None)
    p_gen.add_argument("--samples-per-class", type=int, default=None)
    p_gen.add_argument("--seed", type=int, default=None)

    p_run = sub.add_parser("run", help="run the solver over a dataset")
    p_run.add_argument("--config", default="configs/experiment.yaml")
    p_run.add_argument("--dataset-root", default=None)
    p_run.add_argument("--class-filter", default=None, help="comma separated class ids")
    p_run.add_argument("--mode", choices=["ofat", "grid"], default=None)
    p_run.add_argument("--repeats", type=int, default=None)
    p_run.add_argument("--sweep-param", default=None)
    p_run.add_argument("--sweep-values", default=None, help="e.g. 1e-4,1e-6 or false,true")
    p_run.add_argument("--grid-spec", default=None, help="e.g. epsilon=1e-4,1e-6;prune=false,true")
    p_run.add_argument("--output-root", default=None)
    p_run.add_argument("--with-plots", dest="with_plots", action="store_true")
    p_run.add_argument("--no-plots", dest="with_plots", action="store_false")
    p_run.set_defaults(with_plots=None)

    p_plot = sub.add_parser("plot", help="redraw figures from a finished run")
    p_plot.add_argument("--experiment-dir", required=True)

    return parser


def demo_instance() -> Instance:
    instance = Instance(5)
    instance.add_set(50, [0, 1])
    instance.add_set(2, [1, 2, 3])
    instance.add_set(3, [3, 4])
    instance.add_set(2, [4, 0])
    return instance


def format_sets(selected) -> str:
    return "".join(f"S_{s}\t" for s in selected)


def cmd_demo(args: argparse.Namespace) -> None:
    solution = solve_cover(demo_instance())
    print(f"Using sets: {format_sets(solution.selected_sets)}")


def cmd_solve(args: argparse.Namespace) -> None:
    from pdcover.io_dataset import read_instance

    solution = solve_cover(read_instance(args.instance), epsilon=args.epsilon, prune=args.prune)
    print(f"Using sets: {format_sets(solution.selected_sets)}")
    print(f"Cost: {solution.cost:g}  dual bound: {solution.dual_bound:g}  f: {solution.frequency}")
    if solution.pruned_sets:
        print(f"Pruned: {format_sets(solution.pruned_sets)}")


def cmd_gen(args: argparse.Namespace) -> None:
    from pdcover.generator import generate_dataset

    dataset_dir = generate_dataset(
        config_path=args.config,
        output_root=args.output_root,
        dataset_id=args.dataset_id,
        samples_per_class_override=args.samples_per_class,
        seed_override=args.seed,
    )
    print(f"Dataset written: {dataset_dir}")


def cmd_run(args: argparse.Namespace) -> None:
    from pdcover.runner import run_experiment

    overrides: dict[str, object] = {}
    if args.dataset_root is not None:
        overrides["dataset.root"] = args.dataset_root
    if args.class_filter is not None:
        overrides["dataset.class_filter"] = parse_csv_list(args.class_filter)
    if args.mode is not None:
        overrides["experiment.mode"] = args.mode
    if args.repeats is not None:
        overrides["experiment.repeats"] = args.repeats
    if args.sweep_param is not None:
        overrides["experiment.ofat.sweep_param"] = args.sweep_param
    if args.sweep_values is not None:
        overrides["experiment.ofat.sweep_values"] = parse_csv_list(args.sweep_values)
    if args.grid_spec is not None:
        overrides["experiment.grid.params"] = parse_grid_spec(args.grid_spec)
    if args.output_root is not None:
        overrides["output.root"] = args.output_root
    if args.with_plots is not None:
        overrides["output.generate_plots"] = bool(args.with_plots)

    run_dir = run_experiment(config_path=args.config, overrides=overrides)
    print(f"Experiment finished: {run_dir}")


def cmd_plot(args: argparse.Namespace) -> None:
    from pdcover.visualize import plot_from_experiment_dir

    for path in plot_from_experiment_dir(args.experiment_dir):
        print(path)


COMMANDS = {
    "demo": cmd_demo,
    "solve": cmd_solve,
    "gen": cmd_gen,
    "run": cmd_run,
    "plot": cmd_plot,
}


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        COMMANDS[args.command](args)
    except InfeasibleInstance as exc:
        parser.exit(1, f"Infeasible! {exc}\n")
    except (SetCoverError, ValueError, OSError) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main()
