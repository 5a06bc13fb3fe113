from __future__ import annotations

import json

import numpy as np
import pytest

from hga_tsp.data import geo_to_degrees, load_ground_truth, load_problem, random_problem
from hga_tsp.problem import GEOGRAPHIC, PLANAR, GroundTruth

SQUARE_TSP = """NAME : square4
TYPE : TSP
DIMENSION : 4
EDGE_WEIGHT_TYPE : EUC_2D
NODE_COORD_SECTION
1 0 0
2 10 0
3 10 10
4 0 10
EOF
"""

SQUARE_TOUR = """NAME : square4.opt.tour
TYPE : TOUR
DIMENSION : 4
TOUR_SECTION
1
2
3
4
-1
EOF
"""

GEO_TSP = """NAME : geo3
TYPE : TSP
DIMENSION : 3
EDGE_WEIGHT_TYPE : GEO
NODE_COORD_SECTION
1 0.00 0.00
2 0.00 1.30
3 1.00 1.00
EOF
"""


def test_load_problem_uses_first_node_as_depot(tmp_path) -> None:
    path = tmp_path / "square4.tsp"
    path.write_text(SQUARE_TSP)
    problem = load_problem(path)
    assert problem.problem_id == "square4"
    assert problem.metric == PLANAR
    assert problem.city_count == 3
    assert (problem.depot.x, problem.depot.y) == (0.0, 0.0)
    assert problem.truth is None


def test_load_problem_derives_optimum_from_tour(tmp_path) -> None:
    (tmp_path / "square4.tsp").write_text(SQUARE_TSP)
    (tmp_path / "square4.opt.tour").write_text(SQUARE_TOUR)
    problem = load_problem(tmp_path / "square4.tsp")
    assert problem.truth == GroundTruth(opt_length=40.0, opt_count=1)


def test_explicit_ground_truth_wins(tmp_path) -> None:
    (tmp_path / "square4.tsp").write_text(SQUARE_TSP)
    (tmp_path / "square4.opt.tour").write_text(SQUARE_TOUR)
    table = {"square4": GroundTruth(opt_length=41.0, opt_count=2)}
    problem = load_problem(tmp_path / "square4.tsp", salesmen_count=2, ground_truth=table)
    assert problem.truth.opt_count == 2
    assert problem.genome_length == 4


def test_geo_instance_converts_to_lon_lat_degrees(tmp_path) -> None:
    path = tmp_path / "geo3.tsp"
    path.write_text(GEO_TSP)
    problem = load_problem(path)
    assert problem.metric == GEOGRAPHIC
    # node 2 is lat 0.00, lon 1.30 (1 deg 30 min)
    assert problem.cities[0].x == pytest.approx(1.5)
    assert problem.cities[0].y == pytest.approx(0.0)


def test_geo_to_degrees_reads_minutes() -> None:
    np.testing.assert_allclose(geo_to_degrees(np.array([10.30, -3.45])), [10.5, -3.75])


def test_load_ground_truth_table(tmp_path) -> None:
    path = tmp_path / "truth.json"
    path.write_text(json.dumps({"MSTSP-1": {"optLength": 56.0, "optCount": 4}}))
    truth = load_ground_truth(path)
    assert truth == {"MSTSP-1": GroundTruth(opt_length=56.0, opt_count=4)}


def test_random_problem_follows_planar_naming() -> None:
    problem = random_problem(25, salesmen_count=3, seed=9)
    assert problem.problem_id.startswith("MSTSP-")
    assert problem.metric == PLANAR
    assert problem.genome_length == 27
    with pytest.raises(ValueError):
        random_problem(0)
