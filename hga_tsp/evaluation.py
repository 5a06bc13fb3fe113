from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import torch

from .genome import Genome
from .problem import PLANAR, Problem


EARTH_RADIUS_KM = 6371.0
EMPTY_LEG_PENALTY = 100000.0


def planar_matrix(points: np.ndarray) -> np.ndarray:
    diff = points[:, None, :] - points[None, :, :]
    dist = np.hypot(diff[..., 0], diff[..., 1])
    # Round half up to match integer ground truth.
    return np.floor(dist + 0.5)


def haversine_matrix(points: np.ndarray) -> np.ndarray:
    lon = np.radians(points[:, 0])
    lat = np.radians(points[:, 1])
    dlat = lat[None, :] - lat[:, None]
    dlon = lon[None, :] - lon[:, None]
    a = np.sin(dlat / 2) ** 2 + np.sin(dlon / 2) ** 2 * np.cos(lat[:, None]) * np.cos(lat[None, :])
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


class DistanceEvaluator:
    """
    Tour lengths for genomes of one problem, computed in batches from a dense
    (n+1)x(n+1) matrix where index n is the depot. Separators map to the depot
    so a separator closes one leg and opens the next.
    """

    def __init__(
        self,
        problem: Problem,
        coords: Optional[Sequence[Tuple[float, float]]] = None,
        depot: Optional[Tuple[float, float]] = None,
        device: Optional[torch.device] = None,
    ):
        self.problem = problem
        self.city_count = problem.city_count
        self.salesmen_count = problem.salesmen_count
        self.device = device or torch.device("cpu")
        if coords is None:
            coords = [(c.x, c.y) for c in problem.cities]
        if depot is None:
            depot = (problem.depot.x, problem.depot.y)
        if len(coords) < self.city_count:
            raise ValueError(
                f"coordinate set has {len(coords)} entries for {self.city_count} cities"
            )
        points = np.asarray(list(coords[: self.city_count]) + [tuple(depot)], dtype=np.float64)
        if problem.metric == PLANAR:
            mat = planar_matrix(points)
        else:
            mat = haversine_matrix(points)
        self.dist_mat = torch.as_tensor(mat, dtype=torch.float64, device=self.device)

    def _batch_lengths(self, batch: List[Sequence[int]]) -> torch.Tensor:
        n = self.city_count
        idx = torch.tensor([list(t) for t in batch], dtype=torch.long, device=self.device)
        if idx.numel() and bool((idx < 0).any()):
            bad = int(idx[idx < 0][0])
            raise ValueError(f"genome references city index {bad} with no backing coordinate")
        if self.salesmen_count == 1 and idx.numel() and bool((idx >= n).any()):
            # no separators exist for a single salesman
            bad = int(idx[idx >= n][0])
            raise ValueError(f"genome references city index {bad} with no backing coordinate")
        nodes = torch.where(idx >= n, torch.full_like(idx, n), idx)
        depot_col = torch.full((idx.shape[0], 1), n, dtype=torch.long, device=self.device)
        path = torch.cat([depot_col, nodes, depot_col], dim=1)
        a = path[:, :-1]
        b = path[:, 1:]
        total = self.dist_mat[a, b].sum(dim=1)
        if self.salesmen_count > 1:
            empty_legs = ((a == n) & (b == n)).sum(dim=1)
            total = total + empty_legs.to(total.dtype) * EMPTY_LEG_PENALTY
        return total

    def distances(self, genomes: Sequence[Sequence[int]]) -> List[float]:
        if not genomes:
            return []
        by_length: Dict[int, List[int]] = defaultdict(list)
        for i, g in enumerate(genomes):
            by_length[len(g)].append(i)
        out = [0.0] * len(genomes)
        for positions in by_length.values():
            lengths = self._batch_lengths([genomes[i] for i in positions]).tolist()
            for i, length in zip(positions, lengths):
                out[i] = float(length)
        return out

    def distance(self, genome: Sequence[int]) -> float:
        return self.distances([genome])[0]

    def evaluate(self, genomes: Sequence[Genome]) -> None:
        """Score every genome without a cached distance."""
        pending = [g for g in genomes if not g.evaluated]
        if not pending:
            return
        for genome, dist in zip(pending, self.distances([g.tokens for g in pending])):
            genome.score(dist)
