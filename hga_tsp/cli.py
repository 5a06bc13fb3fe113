import argparse
import logging
import time
from pathlib import Path
from typing import List

import torch

from hga_tsp.data import load_ground_truth, load_problem, random_problem
from hga_tsp.island import HGAConfig
from hga_tsp.orchestrator import GenerationReport, HierarchicalGA
from hga_tsp.problem import Problem


PALETTE = ["#e6194b", "#3cb44b", "#4363d8", "#f58231", "#911eb4", "#46f0f0", "#f032e6", "#bcf60c"]


def log(msg: str) -> None:
    ts = time.strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)


def _config(args) -> HGAConfig:
    return HGAConfig(
        population_size=args.population,
        migration_interval=args.migration_interval,
        initial_leaves=args.leaves,
        workers=args.workers,
        random_seed=args.seed,
    )


def _print_report(report: GenerationReport, top_k: int = 3) -> None:
    ranked = sorted(report.islands, key=lambda s: s.best_distance)[:top_k]
    tops = " | ".join(f"[{s.role} {s.id}] best={s.best_distance:10.2f}" for s in ranked)
    print(
        f"gen {report.generation}: best={report.global_best_distance:.2f} "
        f"leaves={report.leaf_count} f_beta={report.f_beta:.4f} diversity={report.diversity:.4f} {tops}"
    )


def _solve(problem: Problem, args) -> None:
    device = torch.device(args.device)
    cfg = _config(args)
    truth = problem.truth
    log(
        f"problem {problem.problem_id}: cities={problem.city_count} salesmen={problem.salesmen_count} "
        f"metric={problem.metric} ground_truth={'yes' if truth else 'no'}"
    )
    with HierarchicalGA(problem, cfg, palette=PALETTE, device=device) as hga:
        log("running; Ctrl+C to stop.")
        try:
            hga.run(generations=args.generations, callback=_print_report)
        except KeyboardInterrupt:
            print("Interrupted.")
        genome, dist = hga.best()
    log(f"best distance {dist:.2f}")
    if truth is not None:
        log(f"known optimum {truth.opt_length:.2f} ({truth.opt_count} solutions); f_beta={hga.metrics.f_beta:.4f}")
    print(" ".join(str(t) for t in genome or []))


def run(args) -> None:
    t0 = time.perf_counter()
    truth = load_ground_truth(Path(args.ground_truth)) if args.ground_truth else None
    problem = load_problem(Path(args.problem), salesmen_count=args.salesmen, ground_truth=truth)
    log(f"loaded {args.problem} in {time.perf_counter() - t0:.2f}s")
    _solve(problem, args)


def random_instance(args) -> None:
    truth = load_ground_truth(Path(args.ground_truth)) if args.ground_truth else None
    problem = random_problem(args.cities, salesmen_count=args.salesmen, seed=args.seed, ground_truth=truth)
    _solve(problem, args)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--salesmen", type=int, default=1)
    parser.add_argument("--generations", type=int, default=None, help="default: until Ctrl+C")
    parser.add_argument("--population", type=int, default=100)
    parser.add_argument("--migration-interval", type=int, default=10)
    parser.add_argument("--leaves", type=int, default=1)
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--seed", type=int, default=123)
    parser.add_argument("--ground-truth", default=None, help="JSON table of known optima")
    parser.add_argument("--device", default="cpu")
    parser.add_argument("--verbose", action="store_true")


def main(argv: List[str] = None):
    parser = argparse.ArgumentParser(description="Hierarchical island GA for (m)TSP")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Solve a TSPLIB instance")
    run_parser.add_argument("--problem", required=True)
    _add_common(run_parser)
    run_parser.set_defaults(func=run)

    rand_parser = subparsers.add_parser("random", help="Solve a random planar instance")
    rand_parser.add_argument("--cities", type=int, default=50)
    _add_common(rand_parser)
    rand_parser.set_defaults(func=random_instance)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
