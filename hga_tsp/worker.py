"""
Single-island worker speaking the message contract used when islands are
hosted as isolated concurrent units.

Inbound:  init, start, stop, migrate_in, close
Outbound: init_done, update
"""

import logging
import queue
import random
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .evaluation import DistanceEvaluator
from .evolutionary import LEAF, EvolutionConfig, Island
from .problem import Problem


logger = logging.getLogger(__name__)

Message = Dict[str, Any]


def _point(value) -> tuple:
    if isinstance(value, Mapping):
        return float(value["x"]), float(value["y"])
    x, y = value
    return float(x), float(y)


class IslandWorker:
    def __init__(
        self,
        outbox: Optional[queue.Queue] = None,
        batch_size: int = 5,
        random_seed: int = 123,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.inbox: queue.Queue = queue.Queue()
        self.outbox: queue.Queue = outbox if outbox is not None else queue.Queue()
        self.batch_size = batch_size
        self.random_seed = random_seed
        self.island: Optional[Island] = None
        self.evaluator: Optional[DistanceEvaluator] = None
        self.running = False
        self.closed = False
        self._pending: List[List[int]] = []
        self._lock = threading.Lock()

    def post(self, message: Message) -> None:
        self.inbox.put(message)

    def _emit(self, message: Message) -> None:
        self.outbox.put(message)

    def handle(self, message: Message) -> None:
        kind = message.get("type")
        data = message.get("data") or {}
        if kind == "init":
            self._init(data)
        elif kind == "start":
            if self.island is None:
                raise ValueError("worker received start before init")
            self.running = True
        elif kind == "stop":
            self.running = False
        elif kind == "migrate_in":
            self.receive_migrants(data.get("migrants", []))
        elif kind == "close":
            self.running = False
            self.closed = True
        else:
            raise ValueError(f"unknown worker message type {kind!r}")

    def _init(self, data: Mapping) -> None:
        problem = Problem.from_coords(
            problem_id=str(data.get("problemId", "")),
            coords=[_point(c) for c in data["coordinates"]],
            depot=_point(data["depot"]),
            salesmen_count=int(data.get("salesmenCount", 1)),
            ground_truth=data.get("groundTruth"),
        )
        if int(data["cityCount"]) != problem.city_count:
            raise ValueError(
                f"cityCount {data['cityCount']} does not match {problem.city_count} coordinates"
            )
        node_id = int(data.get("nodeId", 1))
        cfg = EvolutionConfig(population_size=int(data["popSize"]), random_seed=self.random_seed)
        self.evaluator = DistanceEvaluator(problem)
        self.island = Island(node_id, LEAF, cfg, problem, rng=random.Random(self.random_seed + node_id))
        with self._lock:
            self._pending = []
        self.island.evaluate(self.evaluator)
        self._emit(
            {
                "type": "init_done",
                "bestDistance": self.island.best_distance,
                "bestGenome": self.island.best_genome,
            }
        )

    def receive_migrants(self, migrants: Sequence[Sequence[int]]) -> None:
        """Queue migrants; they are merged before the next evaluation pass."""
        with self._lock:
            self._pending.extend(list(m) for m in migrants)

    def _apply_migrants(self) -> int:
        with self._lock:
            migrants, self._pending = self._pending, []
        length = self.island.problem.genome_length
        expected = set(range(length))
        valid = [m for m in migrants if len(m) == length and set(m) == expected]
        if len(valid) < len(migrants):
            logger.debug(
                "dropped %d malformed migrants for island %d", len(migrants) - len(valid), self.island.id
            )
        if not valid:
            return 0
        return self.island.replace_worst(valid)

    def run_batch(self) -> Message:
        island = self.island
        if island is None:
            raise ValueError("worker is not initialised")
        if self._apply_migrants():
            island.evaluate(self.evaluator)
        for _ in range(self.batch_size):
            island.step()
            island.evaluate(self.evaluator)
        update = {
            "type": "update",
            "bestGenome": island.best_genome[:] if island.best_genome is not None else None,
            "bestDistance": island.best_distance,
            "generations": self.batch_size,
        }
        self._emit(update)
        return update

    def _drain(self, block: bool) -> None:
        try:
            message = self.inbox.get(block=block)
        except queue.Empty:
            return
        self.handle(message)
        while True:
            try:
                message = self.inbox.get_nowait()
            except queue.Empty:
                return
            self.handle(message)

    def serve(self) -> None:
        """Process messages until close; runs one batch per loop while started."""
        while not self.closed:
            try:
                self._drain(block=not self.running)
                if self.running and not self.closed:
                    self.run_batch()
            except Exception:
                logger.exception("worker for island %s failed", self.island.id if self.island else None)
                raise
        logger.debug("worker for island %s closed", self.island.id if self.island else None)

    def start_thread(self) -> threading.Thread:
        thread = threading.Thread(target=self.serve, daemon=True)
        thread.start()
        return thread
