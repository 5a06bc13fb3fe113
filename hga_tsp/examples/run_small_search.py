from hga_tsp.data import random_problem
from hga_tsp.island import HGAConfig
from hga_tsp.orchestrator import HierarchicalGA


def main():
    problem = random_problem(30, salesmen_count=3, seed=7)
    cfg = HGAConfig(
        population_size=40,
        migration_interval=3,
        initial_leaves=3,
        workers=2,
    )
    generations = 25
    with HierarchicalGA(problem, cfg) as hga:
        for _ in range(generations):
            report = hga.step()
            print(
                f"gen {report.generation}: best={report.global_best_distance:.2f} "
                f"leaves={report.leaf_count}"
            )
        genome, dist = hga.best()
    print(f"best genome {genome} distance={dist:.2f}")


if __name__ == "__main__":
    main()
