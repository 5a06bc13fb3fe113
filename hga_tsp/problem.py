from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple


PLANAR = "planar"
GEOGRAPHIC = "geographic"
METRICS = (PLANAR, GEOGRAPHIC)

# Problem ids with these prefixes are planar benchmarks with integer optima.
PLANAR_PREFIXES = ("MSTSP-",)


@dataclass(frozen=True)
class City:
    id: int
    x: float
    y: float


@dataclass(frozen=True)
class GroundTruth:
    opt_length: float
    opt_count: int

    @classmethod
    def from_dict(cls, payload: Mapping) -> "GroundTruth":
        length = payload.get("optLength", payload.get("opt_length"))
        count = payload.get("optCount", payload.get("opt_count", 1))
        return cls(opt_length=float(length), opt_count=int(count))


def metric_for(problem_id: str) -> str:
    if str(problem_id).startswith(PLANAR_PREFIXES):
        return PLANAR
    return GEOGRAPHIC


@dataclass
class Problem:
    """
    A single/multi-salesman instance: cities, a depot and the salesman count.
    For geographic problems x is longitude and y is latitude, in degrees.
    """

    problem_id: str
    cities: List[City]
    depot: City
    salesmen_count: int = 1
    metric: Optional[str] = None
    ground_truth: Dict[str, GroundTruth] = field(default_factory=dict)

    def __post_init__(self):
        if not self.cities:
            raise ValueError("city count must be positive")
        if self.salesmen_count < 1:
            raise ValueError("salesmen_count must be at least 1")
        if self.metric is None:
            self.metric = metric_for(self.problem_id)
        if self.metric not in METRICS:
            raise ValueError(f"unknown metric {self.metric!r}; expected one of {METRICS}")

    @property
    def city_count(self) -> int:
        return len(self.cities)

    @property
    def genome_length(self) -> int:
        return self.city_count + self.salesmen_count - 1

    @property
    def truth(self) -> Optional[GroundTruth]:
        return self.ground_truth.get(self.problem_id)

    @classmethod
    def from_coords(
        cls,
        problem_id: str,
        coords: Sequence[Tuple[float, float]],
        depot: Tuple[float, float],
        salesmen_count: int = 1,
        metric: Optional[str] = None,
        ground_truth: Optional[Mapping] = None,
    ) -> "Problem":
        cities = [City(i, float(x), float(y)) for i, (x, y) in enumerate(coords)]
        return cls(
            problem_id=problem_id,
            cities=cities,
            depot=City(-1, float(depot[0]), float(depot[1])),
            salesmen_count=salesmen_count,
            metric=metric,
            ground_truth=parse_ground_truth(ground_truth),
        )


def parse_ground_truth(table: Optional[Mapping]) -> Dict[str, GroundTruth]:
    if not table:
        return {}
    parsed = {}
    for problem_id, entry in table.items():
        parsed[problem_id] = entry if isinstance(entry, GroundTruth) else GroundTruth.from_dict(entry)
    return parsed
