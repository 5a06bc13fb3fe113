from __future__ import annotations

import pytest

from hga_tsp.data import random_problem
from hga_tsp.evaluation import DistanceEvaluator
from hga_tsp.evolutionary import LEAF, ROOT
from hga_tsp.island import HGAConfig, TopologyManager


def _topology(leaves: int = 2, ground_truth=None, **overrides) -> TopologyManager:
    problem = random_problem(15, seed=5, ground_truth=ground_truth)
    cfg = HGAConfig(population_size=20, initial_leaves=leaves, **overrides)
    return TopologyManager(cfg, problem, DistanceEvaluator(problem), palette=["red", "blue"])


def _evaluate_all(topology: TopologyManager) -> None:
    for island in topology.islands:
        island.evaluate(topology.evaluator)


def _truth_for(topology_problem_seed: int = 5):
    return {f"MSTSP-random15-{topology_problem_seed}": {"optLength": 1.0, "optCount": 3}}


def test_initial_topology_has_one_root_and_leaves() -> None:
    topology = _topology(leaves=3)
    roles = [island.role for island in topology.islands]
    assert roles == [ROOT, LEAF, LEAF, LEAF]
    assert [island.id for island in topology.islands] == [0, 1, 2, 3]
    assert topology.islands[1].color == "blue"


def test_invalid_config_is_rejected() -> None:
    with pytest.raises(ValueError):
        _topology(migration_interval=0)


def test_migration_copies_leaf_bests_into_root() -> None:
    topology = _topology(leaves=2, niche_threshold=1.1)
    _evaluate_all(topology)
    root_best = topology.root.best_genome[:]
    leaf_bests = [leaf.best_genome[:] for leaf in topology.leaves]

    assert topology.migrate() == 2
    root_tokens = [g.tokens for g in topology.root.population]
    for best in leaf_bests:
        assert best in root_tokens
    assert root_best in root_tokens

    for leaf in topology.leaves:
        leaf.best_genome.reverse()
        for genome in leaf.population:
            genome.tokens.reverse()
    root_tokens = [g.tokens for g in topology.root.population]
    for best in leaf_bests:
        assert best in root_tokens


def test_migration_skips_leaves_without_best() -> None:
    topology = _topology(leaves=2)
    assert topology.migrate() == 0


def test_niching_mutates_only_the_worse_leaf() -> None:
    topology = _topology(leaves=2)
    _evaluate_all(topology)
    better, worse = topology.leaves
    shared = better.best_genome[:]
    worse.best_genome = shared[:]
    better.best_distance, worse.best_distance = 10.0, 20.0

    assert topology.niche() == [worse.id]
    assert all(g.evaluated for g in better.population)
    assert not any(g.evaluated for g in worse.population)


def test_prune_keeps_the_shorter_of_two_duplicates() -> None:
    topology = _topology(leaves=2)
    _evaluate_all(topology)
    a, b = topology.leaves
    b.best_genome = a.best_genome[:]
    a.best_distance, b.best_distance = 20.0, 10.0

    assert topology.prune() == [a.id]
    assert [island.id for island in topology.leaves] == [b.id]
    assert topology.root.is_root


def test_prune_resolves_chains_to_one_survivor() -> None:
    topology = _topology(leaves=3)
    _evaluate_all(topology)
    a, b, c = topology.leaves
    b.best_genome = a.best_genome[:]
    c.best_genome = a.best_genome[:]
    a.best_distance, b.best_distance, c.best_distance = 30.0, 10.0, 20.0

    assert topology.prune() == [a.id, c.id]
    assert [island.id for island in topology.leaves] == [b.id]


def test_prune_never_removes_root() -> None:
    topology = _topology(leaves=1)
    _evaluate_all(topology)
    topology.root.best_genome = topology.leaves[0].best_genome[:]
    topology.root.best_distance = topology.leaves[0].best_distance + 5
    assert topology.prune() == []
    assert len(topology.islands) == 2


def test_spawn_every_interval_until_cap() -> None:
    topology = _topology(leaves=1, ground_truth=_truth_for(), max_leaves=3)
    for generation in range(1, 101):
        topology.manage(generation)
        expected = min(1 + generation // 20, 3)
        assert len(topology.leaves) == expected
    assert [island.id for island in topology.islands] == [0, 1, 2, 3]
    assert all(len(leaf.population) == 20 for leaf in topology.leaves)


def test_no_spawn_without_ground_truth() -> None:
    topology = _topology(leaves=1)
    for generation in range(1, 61):
        topology.manage(generation)
    assert len(topology.leaves) == 1


def test_spawn_uses_next_id_after_pruning() -> None:
    topology = _topology(leaves=3)
    topology.islands = [island for island in topology.islands if island.id != 2]
    assert topology.spawn().id == 4


def test_respawned_id_gets_a_fresh_population() -> None:
    topology = _topology(leaves=2)
    _evaluate_all(topology)
    a, b = topology.leaves
    removed = [g.tokens[:] for g in b.population]
    a.best_genome = b.best_genome[:]
    a.best_distance, b.best_distance = 10.0, 20.0
    assert topology.prune() == [b.id]

    spawned = topology.spawn()
    assert spawned.id == b.id
    assert [g.tokens for g in spawned.population] != removed
