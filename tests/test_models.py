"""
Tests for the reference models.
"""

import numpy as np
import pytest

from localsearch.models import EdgeTabuList, QuadraticModel, TSPModel
from localsearch.models.tsp import edge, read_coords, read_route
from localsearch.optim import TabuSearchConfig, TabuSearchOptimizer

# Ten cities on a circle; the optimal tour visits them in angular order
CIRCLE = [(i + 1, float(np.cos(2 * np.pi * i / 10)), float(np.sin(2 * np.pi * i / 10))) for i in range(10)]


def test_quadratic_evaluation():
	model = QuadraticModel(3, [2.0, 0.0, -3.5], (-10.0, 10.0))
	assert model.evaluate_solution([2.0, 0.0, -3.5]) == 0.0
	assert model.evaluate_solution([3.0, 1.0, -3.5]) == pytest.approx(2.0)


def test_quadratic_trial_changes_one_coordinate(quadratic_model):
	rng = np.random.default_rng(0)
	solution, score = quadratic_model.generate_random_solution(rng)
	assert score == pytest.approx(quadratic_model.evaluate_solution(solution))
	assert all(-10.0 <= x <= 10.0 for x in solution)

	original = list(solution)
	trial, (k, old, new), trial_score = quadratic_model.generate_trial_solution(solution, score, rng)
	assert solution == original, "The current solution must not be mutated"
	assert old == solution[k] and trial[k] == new
	assert [x for i, x in enumerate(trial) if i != k] == [x for i, x in enumerate(solution) if i != k]
	assert trial_score == pytest.approx(quadratic_model.evaluate_solution(trial))


def test_quadratic_invalid_arguments():
	with pytest.raises(ValueError):
		QuadraticModel(2, [1.0], (-1.0, 1.0))
	with pytest.raises(ValueError):
		QuadraticModel(1, [0.0], (1.0, 1.0))


def test_tsp_random_route_is_closed_tour():
	model = TSPModel.from_coords(CIRCLE)
	route, score = model.generate_random_solution(np.random.default_rng(0))
	assert route[0] == route[-1] == model.start == 1
	assert sorted(route[:-1]) == model.cities
	assert score == pytest.approx(model.evaluate_solution(route))


def test_tsp_incremental_score_matches_full_evaluation():
	"""The 2-opt delta score equals re-evaluating the whole route."""
	model = TSPModel.from_coords(CIRCLE)
	rng = np.random.default_rng(1)
	route, score = model.generate_random_solution(rng)
	for _ in range(200):
		trial, (removed, inserted), trial_score = model.generate_trial_solution(route, score, rng)
		assert trial_score == pytest.approx(model.evaluate_solution(trial))
		assert trial[0] == trial[-1] == model.start
		assert sorted(trial[:-1]) == model.cities
		assert all(e[0] < e[1] for e in removed + inserted)
		route, score = trial, trial_score


def test_tsp_needs_four_cities():
	with pytest.raises(ValueError):
		TSPModel.from_coords(CIRCLE[:3])


def test_edge_tabu_list():
	"""Removed edges become tabu for re-insertion."""
	tabu_list = EdgeTabuList(3)
	tabu_list.append((None, ((edge(1, 2), edge(3, 4)), (edge(1, 3), edge(2, 4)))))
	assert (None, ((edge(5, 6), edge(7, 8)), (edge(2, 1), edge(5, 7)))) in tabu_list
	assert (None, ((edge(1, 2), edge(3, 4)), (edge(1, 3), edge(2, 4)))) not in tabu_list

	tabu_list.append((None, ((edge(5, 6), edge(1, 2)), (edge(1, 5), edge(2, 6)))))
	assert len(tabu_list) == 3, "Duplicate edges are stored once"

	tabu_list.append((None, ((edge(7, 8), edge(9, 10)), (edge(7, 9), edge(8, 10)))))
	assert (None, ((), (edge(1, 2),))) not in tabu_list, "Oldest edges are evicted"
	assert (None, ((), (edge(5, 6),))) in tabu_list


def test_tabu_search_on_tsp_finds_circle_tour():
	model = TSPModel.from_coords(CIRCLE)
	optimizer = TabuSearchOptimizer(
		TabuSearchConfig(patience=500, n_trials=20, return_iter=10, n_workers=1),
		seed=0,
		tabu_list_factory=lambda: EdgeTabuList(5),
	)
	result = optimizer.run(model, n_iter=5000)
	optimal = model.evaluate_solution([c for c, _, _ in CIRCLE] + [1])
	assert result.best_score == pytest.approx(optimal, rel=1e-6)


def test_read_coords_and_route(tmp_path):
	coords_file = tmp_path / "cities.txt"
	coords_file.write_text("1 0.0 0.0\n2 3.0 4.0\n\n3 6.0 0.0\n")
	route_file = tmp_path / "route.txt"
	route_file.write_text("1\n3\n2\n1\n")
	empty_file = tmp_path / "empty.txt"
	empty_file.write_text("\n")

	assert read_coords(str(coords_file)) == [(1, 0.0, 0.0), (2, 3.0, 4.0), (3, 6.0, 0.0)]
	assert read_route(str(route_file)) == [1, 3, 2, 1]
	assert read_route(str(empty_file)) is None
