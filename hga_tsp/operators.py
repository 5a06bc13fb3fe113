import random
from typing import List, Optional, Sequence

from .genome import Genome


def tournament_select(population: Sequence[Genome], rng: random.Random, k: int = 5) -> Genome:
    best = None
    for _ in range(k):
        ind = population[rng.randrange(len(population))]
        if best is None or ind.fitness > best.fitness:
            best = ind
    return best


def order_crossover(p1: Genome, p2: Genome, rng: random.Random) -> Genome:
    """
    OX: keep p1[start..end] in place, fill the other positions in order with
    p2's tokens that are not already placed. Separators are ordinary tokens.
    """
    n = len(p1)
    start = rng.randrange(n)
    end = rng.randint(start, n - 1)
    child: List[Optional[int]] = [None] * n
    child[start : end + 1] = p1.tokens[start : end + 1]
    placed = set(child[start : end + 1])
    fill = (t for t in p2.tokens if t not in placed)
    for i in range(n):
        if start <= i <= end:
            continue
        child[i] = next(fill)
    return Genome(child)


def swap_mutation(genome: Genome, rng: random.Random) -> None:
    n = len(genome)
    i = rng.randrange(n)
    j = rng.randrange(n)
    genome.tokens[i], genome.tokens[j] = genome.tokens[j], genome.tokens[i]


def reversal_mutation(genome: Genome, rng: random.Random) -> None:
    n = len(genome)
    a = rng.randrange(n)
    b = rng.randrange(n)
    lo, hi = min(a, b), max(a, b)
    genome.tokens[lo : hi + 1] = genome.tokens[lo : hi + 1][::-1]


def mutate(genome: Genome, rng: random.Random, reversal_rate: float = 0.5) -> Genome:
    """In-place swap, then an inclusive segment reversal with reversal_rate."""
    swap_mutation(genome, rng)
    if rng.random() < reversal_rate:
        reversal_mutation(genome, rng)
    genome.invalidate()
    return genome
