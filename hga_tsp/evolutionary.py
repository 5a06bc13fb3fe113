import math
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .evaluation import DistanceEvaluator
from .genome import Genome, create_valid_genome
from .operators import mutate, order_crossover, tournament_select
from .problem import Problem


LEAF = "leaf"
ROOT = "root"


@dataclass
class EvolutionConfig:
    population_size: int = 100
    elite_fraction: float = 0.05
    mutation_rate: float = 0.5
    reversal_rate: float = 0.5
    tournament_size: int = 5
    random_seed: int = 123

    def validate(self) -> None:
        if self.population_size <= 0:
            raise ValueError("population_size must be positive")
        if self.tournament_size <= 0:
            raise ValueError("tournament_size must be positive")

    @property
    def elite_count(self) -> int:
        # round() first so 0.05 * 60 does not ceil to 4
        return math.ceil(round(self.elite_fraction * self.population_size, 9))


@dataclass
class IslandSnapshot:
    id: int
    role: str
    best_genome: Optional[List[int]]
    best_distance: float
    color: Optional[str] = None


class Island:
    """One population evolving independently; owns its rng and best-so-far."""

    def __init__(
        self,
        island_id: int,
        role: str,
        config: EvolutionConfig,
        problem: Problem,
        rng: random.Random = None,
        color: Optional[str] = None,
    ):
        config.validate()
        self.id = island_id
        self.role = role
        self.cfg = config
        self.problem = problem
        self.rng = rng or random.Random(config.random_seed + island_id)
        self.color = color
        self.visible = True
        self.population: List[Genome] = [
            create_valid_genome(problem.city_count, problem.salesmen_count, self.rng)
            for _ in range(config.population_size)
        ]
        self.best_genome: Optional[List[int]] = None
        self.best_distance = float("inf")

    @property
    def is_root(self) -> bool:
        return self.role == ROOT

    def evaluate(self, evaluator: DistanceEvaluator) -> bool:
        """Score the population and ratchet the best genome. True if it improved."""
        evaluator.evaluate(self.population)
        if not self.population:
            return False
        champion = min(self.population, key=lambda g: g.distance)
        if champion.distance < self.best_distance:
            self.best_distance = champion.distance
            self.best_genome = champion.tokens[:]
            return True
        return False

    def ranked(self) -> List[Genome]:
        self.population.sort(key=lambda g: g.fitness, reverse=True)
        return self.population

    def step(self) -> None:
        ranked = self.ranked()
        new_pop: List[Genome] = [g.copy() for g in ranked[: self.cfg.elite_count]]
        while len(new_pop) < self.cfg.population_size:
            a = tournament_select(ranked, self.rng, self.cfg.tournament_size)
            b = tournament_select(ranked, self.rng, self.cfg.tournament_size)
            child = order_crossover(a, b, self.rng)
            if self.rng.random() < self.cfg.mutation_rate:
                mutate(child, self.rng, self.cfg.reversal_rate)
            new_pop.append(child)
        self.population = new_pop

    def replace_worst(self, migrants: Sequence[Sequence[int]]) -> int:
        """Overwrite the worst-ranked slots with copies of migrants; returns the count."""
        ranked = self.ranked()
        replaced = 0
        slot = len(ranked) - 1
        for tokens in migrants:
            if slot < 0:
                break
            ranked[slot] = Genome(list(tokens))
            slot -= 1
            replaced += 1
        return replaced

    def mutate_all(self) -> None:
        for genome in self.population:
            mutate(genome, self.rng, self.cfg.reversal_rate)

    def snapshot(self) -> IslandSnapshot:
        return IslandSnapshot(
            id=self.id,
            role=self.role,
            best_genome=self.best_genome[:] if self.best_genome is not None else None,
            best_distance=self.best_distance,
            color=self.color,
        )
