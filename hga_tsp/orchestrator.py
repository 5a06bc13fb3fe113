import concurrent.futures
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import torch

from .evaluation import DistanceEvaluator
from .evolutionary import IslandSnapshot
from .island import HGAConfig, TopologyManager
from .metrics import MetricsEngine
from .problem import Problem


logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    generation: int
    global_best_distance: float
    leaf_count: int
    root_count: int
    f_beta: float
    diversity: float
    islands: List[IslandSnapshot] = field(default_factory=list)


class HierarchicalGA:
    """
    Drives one optimization run:
    evolve every island -> migrate (periodic) -> manage topology -> evaluate -> metrics.
    """

    def __init__(
        self,
        problem: Problem,
        cfg: Optional[HGAConfig] = None,
        palette: Optional[Sequence[str]] = None,
        eval_coords: Optional[Sequence[Tuple[float, float]]] = None,
        eval_depot: Optional[Tuple[float, float]] = None,
        device: Optional[torch.device] = None,
    ):
        self.cfg = cfg or HGAConfig()
        self.cfg.validate()
        self.problem = problem
        self.evaluator = DistanceEvaluator(problem, coords=eval_coords, depot=eval_depot, device=device)
        self.topology = TopologyManager(self.cfg, problem, self.evaluator, palette=palette)
        self.metrics = MetricsEngine(
            city_count=problem.city_count,
            truth=problem.truth,
            tolerance=self.cfg.optimum_tolerance,
            beta_sq=self.cfg.beta_sq,
        )
        self.generation = 0
        self.global_best_distance = float("inf")
        self._stop = threading.Event()
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        if self.cfg.workers > 1:
            self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.cfg.workers)
        self.evaluate()
        self.metrics.update(self.topology.leaves)

    def __enter__(self) -> "HierarchicalGA":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _evolve_islands(self) -> None:
        islands = list(self.topology.islands)
        if self._executor is None:
            for island in islands:
                island.step()
            return
        # Islands share nothing while evolving; each owns its rng and population.
        futures = [self._executor.submit(island.step) for island in islands]
        for fut in futures:
            fut.result()

    def evaluate(self) -> float:
        for island in self.topology.islands:
            island.evaluate(self.evaluator)
        best = min(island.best_distance for island in self.topology.islands)
        if best < float("inf"):
            self.global_best_distance = best
        return self.global_best_distance

    def step(self) -> GenerationReport:
        self._evolve_islands()
        self.generation += 1
        if self.generation % self.cfg.migration_interval == 0:
            self.topology.migrate()
        self.topology.manage(self.generation)
        self.evaluate()
        self.metrics.update(self.topology.leaves)
        report = self.report()
        logger.debug(
            "gen %d best=%.2f leaves=%d f_beta=%.4f diversity=%.4f",
            report.generation,
            report.global_best_distance,
            report.leaf_count,
            report.f_beta,
            report.diversity,
        )
        return report

    def report(self) -> GenerationReport:
        islands = self.topology.islands
        return GenerationReport(
            generation=self.generation,
            global_best_distance=self.global_best_distance,
            leaf_count=len(self.topology.leaves),
            root_count=sum(1 for island in islands if island.is_root),
            f_beta=self.metrics.f_beta,
            diversity=self.metrics.diversity,
            islands=[island.snapshot() for island in islands],
        )

    def stop(self) -> None:
        """Request a stop; honoured at the next generation boundary."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(
        self,
        generations: Optional[int] = None,
        callback: Optional[Callable[[GenerationReport], None]] = None,
    ) -> GenerationReport:
        self._stop.clear()
        done = 0
        report = self.report()
        while not self._stop.is_set() and (generations is None or done < generations):
            report = self.step()
            done += 1
            if callback is not None:
                callback(report)
        return report

    def best(self) -> Tuple[Optional[List[int]], float]:
        champion = min(self.topology.islands, key=lambda island: island.best_distance)
        genome = champion.best_genome[:] if champion.best_genome is not None else None
        return genome, champion.best_distance
