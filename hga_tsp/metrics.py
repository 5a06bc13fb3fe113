from dataclasses import dataclass, field
from itertools import combinations
from typing import List, Optional, Sequence, Set

from .evolutionary import Island
from .genome import canonical_signature, similarity
from .problem import GroundTruth


PRECISION = 1.0


def f_beta(precision: float, recall: float, beta_sq: float = 0.3) -> float:
    if precision + recall == 0:
        return 0.0
    return ((1 + beta_sq) * precision * recall) / (beta_sq * precision + recall)


def diversity(genomes: Sequence[Optional[Sequence[int]]], city_count: int) -> float:
    """1 - mean pairwise similarity of the given best genomes."""
    solutions = [g for g in genomes if g is not None]
    if len(solutions) < 2:
        return 0.0
    sims = [similarity(a, b, city_count) for a, b in combinations(solutions, 2)]
    return 1.0 - sum(sims) / len(sims)


@dataclass
class MetricsEngine:
    """
    Recall/F-beta against known optima plus leaf diversity. found_optima is
    append-only and lives as long as this engine, i.e. one run.
    """

    city_count: int
    truth: Optional[GroundTruth]
    tolerance: float = 1.0
    beta_sq: float = 0.3
    found_optima: Set[str] = field(default_factory=set)
    f_beta: float = 0.0
    diversity: float = 0.0

    @property
    def recall(self) -> float:
        if self.truth is None or self.truth.opt_count <= 0:
            return 0.0
        return len(self.found_optima) / self.truth.opt_count

    def record(self, leaves: Sequence[Island]) -> List[str]:
        added = []
        for leaf in leaves:
            if leaf.best_genome is None:
                continue
            if abs(leaf.best_distance - self.truth.opt_length) < self.tolerance:
                sig = canonical_signature(leaf.best_genome, self.city_count)
                if sig not in self.found_optima:
                    self.found_optima.add(sig)
                    added.append(sig)
        return added

    def update(self, leaves: Sequence[Island]) -> None:
        if self.truth is None:
            self.f_beta = 0.0
            self.diversity = 0.0
            return
        self.record(leaves)
        self.f_beta = f_beta(PRECISION, self.recall, self.beta_sq)
        self.diversity = diversity([leaf.best_genome for leaf in leaves], self.city_count)
