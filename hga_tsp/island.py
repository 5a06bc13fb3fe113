import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .evaluation import DistanceEvaluator
from .evolutionary import LEAF, ROOT, EvolutionConfig, Island
from .genome import similarity
from .problem import Problem


logger = logging.getLogger(__name__)


@dataclass
class HGAConfig(EvolutionConfig):
    migration_interval: int = 10
    initial_leaves: int = 1
    max_leaves: int = 20
    spawn_interval: int = 20
    niche_threshold: float = 0.8
    prune_threshold: float = 0.95
    optimum_tolerance: float = 1.0
    beta_sq: float = 0.3
    workers: int = 1
    batch_size: int = 5

    def validate(self) -> None:
        super().validate()
        if self.migration_interval <= 0 or self.spawn_interval <= 0:
            raise ValueError("migration_interval and spawn_interval must be positive")
        if self.max_leaves < 1 or self.initial_leaves < 0:
            raise ValueError("leaf bounds must satisfy initial_leaves >= 0 and max_leaves >= 1")
        if self.workers < 1 or self.batch_size < 1:
            raise ValueError("workers and batch_size must be positive")


class TopologyManager:
    """
    Owns the island set: one root (never pruned) plus a bounded set of leaves.
    Runs bottom-up migration with niching, duplicate pruning and leaf spawning.
    """

    def __init__(
        self,
        cfg: HGAConfig,
        problem: Problem,
        evaluator: DistanceEvaluator,
        palette: Optional[Sequence[str]] = None,
    ):
        cfg.validate()
        self.cfg = cfg
        self.problem = problem
        self.evaluator = evaluator
        self.palette = list(palette) if palette else []
        # Ids can be reused after pruning; seeds never are.
        self._created = 0
        self.islands: List[Island] = [self._make_island(0, ROOT)]
        for i in range(min(cfg.initial_leaves, cfg.max_leaves)):
            self.islands.append(self._make_island(i + 1, LEAF))

    def _make_island(self, island_id: int, role: str) -> Island:
        color = self.palette[island_id % len(self.palette)] if self.palette else None
        rng = random.Random(self.cfg.random_seed + self._created)
        self._created += 1
        return Island(island_id, role, self.cfg, self.problem, rng=rng, color=color)

    @property
    def root(self) -> Island:
        return self.islands[0]

    @property
    def leaves(self) -> List[Island]:
        return [island for island in self.islands if not island.is_root]

    def migrate(self) -> int:
        """Copy every leaf best into the root's worst slots, then run the niching pass."""
        migrants = [leaf.best_genome[:] for leaf in self.leaves if leaf.best_genome is not None]
        self.evaluator.evaluate(self.root.population)
        moved = self.root.replace_worst(migrants)
        logger.debug("migrated %d leaf bests into root", moved)
        self.niche()
        return moved

    def niche(self) -> List[int]:
        mutated = []
        leaves = self.leaves
        for i in range(len(leaves)):
            for j in range(i + 1, len(leaves)):
                a, b = leaves[i], leaves[j]
                if a.best_genome is None or b.best_genome is None:
                    continue
                sim = similarity(a.best_genome, b.best_genome, self.problem.city_count)
                if sim > self.cfg.niche_threshold:
                    worse = a if a.best_distance > b.best_distance else b
                    worse.mutate_all()
                    mutated.append(worse.id)
        if mutated:
            logger.debug("niching forced divergence on islands %s", mutated)
        return mutated

    def prune(self) -> List[int]:
        to_remove = set()
        leaves = self.leaves
        for i in range(len(leaves)):
            for j in range(i + 1, len(leaves)):
                a, b = leaves[i], leaves[j]
                if a.id in to_remove or b.id in to_remove:
                    continue
                if a.best_genome is None or b.best_genome is None:
                    continue
                sim = similarity(a.best_genome, b.best_genome, self.problem.city_count)
                if sim > self.cfg.prune_threshold:
                    to_remove.add(b.id if a.best_distance < b.best_distance else a.id)
        if to_remove:
            self.islands = [isl for isl in self.islands if isl.is_root or isl.id not in to_remove]
            logger.info("pruned near-duplicate islands %s", sorted(to_remove))
        return sorted(to_remove)

    def spawn(self) -> Island:
        new_id = max(island.id for island in self.islands) + 1
        island = self._make_island(new_id, LEAF)
        self.islands.append(island)
        logger.info("spawned island %d (%d leaves)", new_id, len(self.leaves))
        return island

    def manage(self, generation: int) -> None:
        self.prune()
        if (
            self.problem.truth is not None
            and generation > 0
            and generation % self.cfg.spawn_interval == 0
            and len(self.leaves) < self.cfg.max_leaves
        ):
            self.spawn()
