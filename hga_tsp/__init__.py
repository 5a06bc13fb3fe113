"""
Hierarchical island-model genetic algorithm for single- and multi-salesman TSP.
"""

__all__ = [
    "data",
    "evaluation",
    "evolutionary",
    "genome",
    "island",
    "metrics",
    "operators",
    "orchestrator",
    "problem",
    "worker",
]
