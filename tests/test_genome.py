from __future__ import annotations

import random

import pytest

from hga_tsp.genome import (
    Genome,
    canonical_signature,
    create_valid_genome,
    edge_labels,
    edge_set,
    separator_count,
    similarity,
)


@pytest.mark.parametrize("seed", range(5))
def test_single_salesman_genome_is_permutation(seed: int) -> None:
    genome = create_valid_genome(12, 1, random.Random(seed))
    assert sorted(genome.tokens) == list(range(12))


@pytest.mark.parametrize("seed", range(10))
def test_multi_salesman_genome_gives_every_salesman_a_city(seed: int) -> None:
    n, m = 10, 4
    genome = create_valid_genome(n, m, random.Random(seed))
    tokens = genome.tokens
    assert len(tokens) == n + m - 1
    assert sorted(t for t in tokens if t < n) == list(range(n))
    assert separator_count(tokens, n) == m - 1
    assert tokens[0] < n and tokens[-1] < n
    for a, b in zip(tokens, tokens[1:]):
        assert not (a >= n and b >= n)


def test_degenerate_genome_when_salesmen_exceed_cities() -> None:
    genome = create_valid_genome(2, 4, random.Random(3))
    assert sorted(genome.tokens) == list(range(5))


def test_create_valid_genome_rejects_empty_problem() -> None:
    with pytest.raises(ValueError):
        create_valid_genome(0, 1, random.Random(0))


def test_edge_labels_close_the_tour_at_the_depot() -> None:
    assert edge_labels([0, 1], 2) == ["-1_0", "0_1", "-1_1"]
    # separator 3 maps to the depot sentinel
    assert edge_labels([0, 3, 1], 3) == ["-1_0", "-1_0", "-1_1", "-1_1"]


def test_similarity_of_genome_with_itself_is_one() -> None:
    rng = random.Random(1)
    for m in (1, 3):
        genome = create_valid_genome(15, m, rng)
        assert similarity(genome.tokens, genome.tokens, 15) == 1.0


def test_similarity_is_symmetric_for_equal_edge_counts() -> None:
    rng = random.Random(2)
    checked = 0
    for _ in range(20):
        a = create_valid_genome(12, 2, rng).tokens
        b = create_valid_genome(12, 2, rng).tokens
        if len(edge_set(a, 12)) != len(edge_set(b, 12)):
            continue
        assert similarity(a, b, 12) == pytest.approx(similarity(b, a, 12))
        checked += 1
    assert checked > 0


def test_similarity_without_signal_is_zero() -> None:
    assert similarity(None, [0, 1], 2) == 0.0
    assert similarity([0, 1], None, 2) == 0.0
    assert similarity([0, 1], [0, 1, 2], 3) == 0.0


def test_canonical_signature_ignores_traversal_direction_and_leg_order() -> None:
    n = 6
    tour = [0, 1, 2, 6, 3, 4, 5]
    assert canonical_signature(tour, n) == canonical_signature(tour[::-1], n)
    swapped_legs = [3, 4, 5, 6, 0, 1, 2]
    assert canonical_signature(tour, n) == canonical_signature(swapped_legs, n)
    assert canonical_signature(tour, n) != canonical_signature([1, 0, 2, 6, 3, 4, 5], n)


def test_genome_copy_is_independent() -> None:
    genome = Genome([0, 1, 2])
    genome.score(9.0)
    clone = genome.copy()
    clone.tokens[0] = 2
    assert genome.tokens == [0, 1, 2]
    assert clone.fitness == pytest.approx(0.1)
    clone.invalidate()
    assert not clone.evaluated and genome.evaluated
