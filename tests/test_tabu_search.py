"""
Tests for tabu search: tabu lists, the acceptance rule and full runs.
"""

import numpy as np

from localsearch.enums import StopReason
from localsearch.models import QuadraticModel
from localsearch.optim import TabuList, TabuSearchConfig, TabuSearchOptimizer, TransitionTabuList
from localsearch.optim.tabu_search import find_accepted_solution


class EverythingTabu(TabuList):
	def __init__(self):
		self.appended = 0

	def contains(self, item):
		return True

	def append(self, item):
		self.appended += 1


def test_transition_tabu_list_fifo():
	"""A remembered transition is tabu until it is evicted."""
	tabu_list = TransitionTabuList(2)
	tabu_list.append(("s1", "a"))
	tabu_list.append(("s2", "b"))
	assert ("any", "a") in tabu_list
	assert ("any", "b") in tabu_list
	assert ("any", "c") not in tabu_list

	tabu_list.append(("s3", "c"))
	assert ("any", "a") not in tabu_list, "Oldest entry should have been evicted"
	assert ("any", "c") in tabu_list
	assert len(tabu_list) == 2


def test_find_accepted_solution_skips_tabu():
	tabu_list = TransitionTabuList(5)
	tabu_list.append((None, "a"))
	samples = [("x", "a", 1.0), ("y", "b", 2.0), ("z", "c", 3.0)]
	assert find_accepted_solution(samples, tabu_list, best_score=0.5) == ("y", "b", 2.0)


def test_find_accepted_solution_aspiration():
	"""A tabu move that beats the best score is accepted anyway."""
	tabu_list = TransitionTabuList(5)
	tabu_list.append((None, "a"))
	samples = [("x", "a", 1.0), ("y", "b", 2.0)]
	assert find_accepted_solution(samples, tabu_list, best_score=1.5) == ("x", "a", 1.0)


def test_find_accepted_solution_all_tabu():
	tabu_list = TransitionTabuList(5)
	tabu_list.append((None, "a"))
	tabu_list.append((None, "b"))
	samples = [("x", "a", 1.0), ("y", "b", 2.0)]
	assert find_accepted_solution(samples, tabu_list, best_score=0.5) is None


def test_move_acceptable_after_eviction():
	"""A rejected tabu move becomes acceptable once pushed out of the list."""
	tabu_list = TransitionTabuList(1)
	tabu_list.append((None, "a"))
	samples = [("x", "a", 1.0)]
	assert find_accepted_solution(samples, tabu_list, best_score=0.5) is None
	tabu_list.append((None, "b"))
	assert find_accepted_solution(samples, tabu_list, best_score=0.5) == ("x", "a", 1.0)


def test_quadratic_tabu_list_matching():
	"""Setting a coordinate back near a value it recently left is tabu."""
	tabu_list = QuadraticModel.tabu_list(3, tolerance=0.01)
	tabu_list.append(([0.0], (0, 1.0, 5.0)))
	assert ([0.0], (0, 0, 1.005)) in tabu_list
	assert ([0.0], (0, 0, 1.5)) not in tabu_list
	assert ([0.0], (1, 0, 1.005)) not in tabu_list, "Other coordinates are not affected"


def test_all_tabu_iterations_are_noops(quadratic_model):
	"""When every trial is tabu the solution never changes and nothing is recorded."""
	tabu_list = EverythingTabu()
	optimizer = TabuSearchOptimizer(TabuSearchConfig(patience=30, n_trials=5, n_workers=1), seed=0)
	# Aspiration can still fire, so start at the optimum where nothing is better
	optimum = list(quadratic_model.centers)
	result = optimizer.step(quadratic_model, optimum, 0.0, 100, tabu_list=tabu_list)

	assert result.accepted_count == 0
	assert result.rejected_count == 30
	assert result.stop_reason == StopReason.PATIENCE
	assert result.best_solution == optimum
	assert tabu_list.appended == 0


def test_fresh_tabu_list_per_run(quadratic_model):
	created = []

	def factory():
		tabu_list = TransitionTabuList(4)
		created.append(tabu_list)
		return tabu_list

	optimizer = TabuSearchOptimizer(
		TabuSearchConfig(patience=None, n_trials=4, n_workers=1), seed=0, tabu_list_factory=factory,
	)
	start = [5.0, 5.0, 5.0]
	score = quadratic_model.evaluate_solution(start)
	first = optimizer.step(quadratic_model, start, score, 20)
	second = optimizer.step(quadratic_model, start, score, 20)
	assert len(created) == 2
	assert first.tabu_list is created[0]
	assert second.tabu_list is created[1]
	assert len(created[1]) == 4, "Every iteration accepts a move when tabu entries are distinct floats"
	assert not hasattr(optimizer, "last_tabu_list"), "Run state is not kept on the optimizer"
	assert isinstance(optimizer.with_config(n_trials=8).create_tabu_list(), TransitionTabuList)


def test_caller_supplied_tabu_list_is_filled(counting_model):
	tabu_list = TransitionTabuList(10)
	optimizer = TabuSearchOptimizer(TabuSearchConfig(patience=None, n_trials=1, n_workers=1), seed=0)
	result = optimizer.step(counting_model, 0, 0.0, 6, tabu_list=tabu_list)
	assert result.tabu_list is tabu_list
	assert len(tabu_list) == 6


def test_tabu_return_to_best_resets_current_solution(counting_model):
	"""Every move is worse but never tabu, so the walk is sent back to 0 every third iteration."""
	optimizer = TabuSearchOptimizer(TabuSearchConfig(patience=None, n_trials=1, return_iter=3, n_workers=1), seed=0)
	result = optimizer.step(counting_model, 0, 0.0, 7)
	# 1, 2, reset, 1, 2, reset, 1
	assert result.last_solution == 1
	assert result.best_solution == 0
	assert result.best_score == 0.0
	assert result.accepted_count == 7


def test_tabu_search_converges(quadratic_model, assert_near_optimum):
	optimizer = TabuSearchOptimizer(
		TabuSearchConfig(patience=1000, n_trials=25, return_iter=5, n_workers=1),
		seed=0,
		tabu_list_factory=lambda: QuadraticModel.tabu_list(10),
	)
	result = optimizer.run(quadratic_model, n_iter=10_000)
	assert_near_optimum(result)
	assert np.isfinite(result.acceptance_ratio)
