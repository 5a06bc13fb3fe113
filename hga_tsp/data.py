import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
import tsplib95

from .evaluation import DistanceEvaluator
from .problem import GEOGRAPHIC, PLANAR, GroundTruth, Problem, parse_ground_truth


PLANAR_TYPES = ("EUC_2D", "CEIL_2D", "ATT")
GEO_TYPES = ("GEO",)


def _solution_candidates(path: Path) -> Iterable[Path]:
    yield path.with_suffix(".opt.tour")
    for ext in (".opt.tour", ".opt", ".tour"):
        yield path.parent / "solutions" / f"{path.stem}{ext}"


def geo_to_degrees(values: np.ndarray) -> np.ndarray:
    # TSPLIB GEO stores DDD.MM; MM are minutes.
    deg = np.trunc(values)
    return deg + 5.0 * (values - deg) / 3.0


def load_ground_truth(path: Path) -> Dict[str, GroundTruth]:
    """Read {problem_id: {"optLength": x, "optCount": n}}."""
    return parse_ground_truth(json.loads(Path(path).read_text()))


def _read_tour(path: Path) -> Optional[List[int]]:
    for candidate in _solution_candidates(path):
        if not candidate.exists():
            continue
        tour_file = tsplib95.parse(candidate.read_text())
        if tour_file.tours:
            return list(tour_file.tours[0])
    return None


def load_optimum(problem: Problem, path: Path, nodes: List[int]) -> Optional[float]:
    """Length of the sibling optimal tour under this package's metric, if one exists."""
    tour = _read_tour(Path(path))
    if not tour or len(tour) != len(nodes):
        return None
    depot_node = nodes[0]
    start = tour.index(depot_node)
    rotated = tour[start + 1 :] + tour[:start]
    index = {node: i for i, node in enumerate(nodes[1:])}
    genome = [index[node] for node in rotated]
    return DistanceEvaluator(problem).distance(genome)


def load_problem(
    path: Path,
    salesmen_count: int = 1,
    ground_truth: Optional[Dict[str, GroundTruth]] = None,
) -> Problem:
    """
    Load a TSPLIB instance. The first node becomes the depot and the rest are
    cities. Without an explicit ground-truth table, a sibling .opt.tour (if any)
    provides a single known optimum for single-salesman runs.
    """
    path = Path(path)
    raw = tsplib95.load(path)
    coords = raw.node_coords or raw.display_data
    if not coords:
        raise ValueError(f"{path} has no node coordinates")
    ewt = (raw.edge_weight_type or "").upper()
    nodes = sorted(coords)
    points = np.asarray([coords[n] for n in nodes], dtype=np.float64)
    if ewt in GEO_TYPES:
        # (lat, lon) in DDD.MM -> (lon, lat) in degrees
        points = geo_to_degrees(points)[:, ::-1]
        metric = GEOGRAPHIC
    elif ewt in PLANAR_TYPES or not ewt:
        metric = PLANAR
    else:
        raise ValueError(f"unsupported EDGE_WEIGHT_TYPE {ewt} in {path}")
    if len(nodes) < 2:
        raise ValueError(f"{path} needs a depot and at least one city")

    problem = Problem.from_coords(
        problem_id=raw.name or path.stem,
        coords=[tuple(p) for p in points[1:]],
        depot=tuple(points[0]),
        salesmen_count=salesmen_count,
        metric=metric,
    )
    if ground_truth:
        problem.ground_truth = dict(ground_truth)
    elif salesmen_count == 1:
        optimum = load_optimum(problem, path, nodes)
        if optimum is not None:
            problem.ground_truth = {problem.problem_id: GroundTruth(opt_length=optimum, opt_count=1)}
    return problem


def random_problem(
    city_count: int,
    salesmen_count: int = 1,
    seed: int = 0,
    size: float = 1000.0,
    ground_truth: Optional[Dict] = None,
) -> Problem:
    """Uniform random planar instance named with the MSTSP- convention."""
    if city_count <= 0:
        raise ValueError("city count must be positive")
    rng = np.random.default_rng(seed)
    pts = rng.uniform(0.0, size, size=(city_count + 1, 2))
    return Problem.from_coords(
        problem_id=f"MSTSP-random{city_count}-{seed}",
        coords=[tuple(p) for p in pts[1:]],
        depot=tuple(pts[0]),
        salesmen_count=salesmen_count,
        ground_truth=ground_truth,
    )
