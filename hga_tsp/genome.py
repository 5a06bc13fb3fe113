import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set


DEPOT = -1


@dataclass
class Genome:
    """
    Tour permutation. Tokens >= city_count are separators between salesmen.
    distance/fitness are cached by the evaluator and cleared on mutation.
    """

    tokens: List[int]
    distance: Optional[float] = None
    fitness: float = 0.0

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self):
        return iter(self.tokens)

    def __getitem__(self, idx):
        return self.tokens[idx]

    @property
    def evaluated(self) -> bool:
        return self.distance is not None

    def score(self, distance: float) -> None:
        self.distance = float(distance)
        self.fitness = 1.0 / (self.distance + 1.0)

    def invalidate(self) -> None:
        self.distance = None
        self.fitness = 0.0

    def copy(self) -> "Genome":
        return Genome(tokens=self.tokens[:], distance=self.distance, fitness=self.fitness)


def shuffle(tokens: List[int], rng: random.Random) -> List[int]:
    # Fisher-Yates
    for i in range(len(tokens) - 1, 0, -1):
        j = rng.randint(0, i)
        tokens[i], tokens[j] = tokens[j], tokens[i]
    return tokens


def create_valid_genome(city_count: int, salesmen_count: int, rng: random.Random) -> Genome:
    if city_count <= 0:
        raise ValueError("city count must be positive")
    cities = shuffle(list(range(city_count)), rng)
    if salesmen_count <= 1:
        return Genome(cities)
    if salesmen_count > city_count:
        # Cannot give every salesman a city; evaluation penalizes the empty legs.
        return Genome(shuffle(list(range(city_count + salesmen_count - 1)), rng))

    splits = sorted(shuffle(list(range(1, city_count)), rng)[: salesmen_count - 1])
    tokens: List[int] = []
    pos = 0
    separator = city_count
    for split in splits:
        tokens.extend(cities[pos:split])
        tokens.append(separator)
        pos = split
        separator += 1
    tokens.extend(cities[pos:])
    return Genome(tokens)


def is_separator(token: int, city_count: int) -> bool:
    return token >= city_count


def separator_count(genome: Sequence[int], city_count: int) -> int:
    return sum(1 for t in genome if is_separator(t, city_count))


def _edge_label(u: int, v: int) -> str:
    return f"{u}_{v}" if u < v else f"{v}_{u}"


def edge_labels(genome: Sequence[int], city_count: int) -> List[str]:
    """Undirected edges of the closed tour, depot and separators mapped to DEPOT."""
    labels = []
    current = DEPOT
    for token in genome:
        nxt = DEPOT if is_separator(token, city_count) else token
        labels.append(_edge_label(current, nxt))
        current = nxt
    labels.append(_edge_label(current, DEPOT))
    return labels


def edge_set(genome: Sequence[int], city_count: int) -> Set[str]:
    return set(edge_labels(genome, city_count))


def similarity(g1: Optional[Sequence[int]], g2: Optional[Sequence[int]], city_count: int) -> float:
    # Normalized by g1's own edge count; only symmetric for equal-sized edge sets.
    if g1 is None or g2 is None or len(g1) != len(g2):
        return 0.0
    edges1 = edge_set(g1, city_count)
    edges2 = edge_set(g2, city_count)
    return len(edges1 & edges2) / len(edges1)


def canonical_signature(genome: Sequence[int], city_count: int) -> str:
    return "|".join(sorted(edge_labels(genome, city_count)))
