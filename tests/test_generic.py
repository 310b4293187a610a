"""
Tests for the generic local search loop and the greedy family.

Covers configuration validation, stopping rules, determinism under a
fixed seed, score validation and callback delivery.
"""

import math

import pytest

from localsearch.enums import StopReason
from localsearch.errors import InvalidScoreError
from localsearch.model import OptModel
from localsearch.optim import (
	EpsilonGreedyConfig,
	EpsilonGreedyOptimizer,
	GenericLocalSearchOptimizer,
	HillClimbingOptimizer,
	LocalSearchConfig,
	RandomSearchOptimizer,
)
from localsearch.optim.generic import DelegatingOptimizer
from localsearch.progress import ProgressTracker


class NaNTrialModel(OptModel):
	"""Produces valid start solutions but NaN-scored trials."""

	def generate_random_solution(self, rng):
		return [0.0], 1.0

	def generate_trial_solution(self, current_solution, current_score, rng):
		return [1.0], None, math.nan


def _trajectory(optimizer, model, solution, score, n_iter, **kwargs):
	tracker = ProgressTracker(logger=lambda msg: None, log_every=10**9)
	result = optimizer.optimize(model, list(solution), score, n_iter, callback=tracker, **kwargs)
	return result, tracker.history


def test_invalid_config_values():
	"""Out-of-range settings are rejected when the config is built."""
	with pytest.raises(ValueError):
		LocalSearchConfig(n_trials=0)
	with pytest.raises(ValueError):
		LocalSearchConfig(patience=0)
	with pytest.raises(ValueError):
		LocalSearchConfig(return_iter=0)
	with pytest.raises(ValueError):
		LocalSearchConfig(n_workers=0)
	with pytest.raises(ValueError):
		EpsilonGreedyConfig(epsilon=1.5)


def test_resolved_workers():
	assert LocalSearchConfig(n_trials=4, n_workers=1).resolved_workers() == 1
	assert LocalSearchConfig(n_trials=4, n_workers=16).resolved_workers() == 4
	assert LocalSearchConfig(n_trials=4, n_workers=3).resolved_workers(10) == 3
	assert 1 <= LocalSearchConfig(n_trials=4).resolved_workers() <= 4


def test_patience_stops_after_exactly_patience_iterations(constant_model):
	"""A model that never improves stops after `patience` iterations, before the last callback."""
	patience = 25
	optimizer = GenericLocalSearchOptimizer(
		lambda current, trial: 0.5,
		config=LocalSearchConfig(patience=patience, n_trials=3, n_workers=1),
		seed=0,
	)
	result, history = _trajectory(optimizer, constant_model, [0.0], 1.0, 1000)

	assert result.stop_reason == StopReason.PATIENCE, f"Expected PATIENCE, got {result.stop_reason}"
	assert result.iterations_run == patience, f"Expected {patience} iterations, got {result.iterations_run}"
	assert len(history) == patience - 1, f"Callback ran {len(history)} times"
	assert result.best_score == 1.0


def test_no_patience_runs_full_budget(constant_model):
	optimizer = GenericLocalSearchOptimizer(
		lambda current, trial: 0.5,
		config=LocalSearchConfig(patience=None, n_trials=2, n_workers=1),
		seed=0,
	)
	result, history = _trajectory(optimizer, constant_model, [0.0], 1.0, 40)
	assert result.stop_reason == StopReason.MAX_ITERATIONS
	assert result.iterations_run == 40
	assert [it for it, _ in history] == list(range(40)), "Callback iterations should be 0..n_iter-1"


def test_zero_time_limit_runs_no_iterations(quadratic_model):
	"""An exhausted time budget returns the initial solution untouched."""
	optimizer = HillClimbingOptimizer(LocalSearchConfig(n_trials=4, n_workers=1), seed=0)
	solution = [5.0, 5.0, 5.0]
	score = quadratic_model.evaluate_solution(solution)
	result = optimizer.optimize(quadratic_model, solution, score, 1000, time_limit=0.0)

	assert result.stop_reason == StopReason.TIME_LIMIT
	assert result.iterations_run == 0
	assert result.best_solution == solution
	assert result.best_score == score


def test_nan_trial_score_raises():
	"""A NaN trial score is a model bug and aborts the run."""
	optimizer = GenericLocalSearchOptimizer(lambda current, trial: 0.0, config=LocalSearchConfig(n_trials=2, n_workers=1))
	with pytest.raises(InvalidScoreError):
		optimizer.optimize(NaNTrialModel(), [0.0], 1.0, 10)


def test_nan_initial_score_raises(quadratic_model):
	optimizer = HillClimbingOptimizer(LocalSearchConfig(n_trials=2, n_workers=1))
	with pytest.raises(InvalidScoreError):
		optimizer.optimize(quadratic_model, [0.0, 0.0, 0.0], math.nan, 10)


def test_same_seed_same_trajectory(quadratic_model):
	"""Two runs with the same seed produce identical histories."""
	config = EpsilonGreedyConfig(patience=None, n_trials=1, n_workers=1, epsilon=0.3, return_iter=20)
	start = [8.0, -8.0, 8.0]
	score = quadratic_model.evaluate_solution(start)

	result_a, history_a = _trajectory(EpsilonGreedyOptimizer(config, seed=123), quadratic_model, start, score, 300)
	result_b, history_b = _trajectory(EpsilonGreedyOptimizer(config, seed=123), quadratic_model, start, score, 300)

	assert history_a == history_b, "Trajectories differ under the same seed"
	assert result_a.best_solution == result_b.best_solution
	assert result_a.acceptance_ratio == result_b.acceptance_ratio


def test_worker_count_does_not_change_results(quadratic_model):
	"""Trials are drawn from per-trial streams, so threading does not affect the outcome."""
	start = [8.0, -8.0, 8.0]
	score = quadratic_model.evaluate_solution(start)
	serial = EpsilonGreedyConfig(patience=None, n_trials=6, n_workers=1, epsilon=0.2)
	threaded = EpsilonGreedyConfig(patience=None, n_trials=6, n_workers=4, epsilon=0.2)

	result_a, history_a = _trajectory(EpsilonGreedyOptimizer(serial, seed=7), quadratic_model, start, score, 200)
	result_b, history_b = _trajectory(EpsilonGreedyOptimizer(threaded, seed=7), quadratic_model, start, score, 200)

	assert history_a == history_b
	assert result_a.best_solution == result_b.best_solution


def test_hill_climbing_matches_epsilon_greedy_with_zero_epsilon(quadratic_model):
	"""Hill climbing is epsilon-greedy with epsilon=0 and return-to-best disabled."""
	start = [8.0, -8.0, 8.0]
	score = quadratic_model.evaluate_solution(start)
	hill = HillClimbingOptimizer(LocalSearchConfig(patience=None, n_trials=4, n_workers=1), seed=11)
	greedy = EpsilonGreedyOptimizer(
		EpsilonGreedyConfig(patience=None, n_trials=4, n_workers=1, epsilon=0.0, return_iter=None), seed=11,
	)

	result_a, history_a = _trajectory(hill, quadratic_model, start, score, 300)
	result_b, history_b = _trajectory(greedy, quadratic_model, start, score, 300)

	assert history_a == history_b
	assert result_a.best_solution == result_b.best_solution
	assert result_a.method_name == "HillClimbing"
	assert result_b.method_name == "EpsilonGreedy"


def test_best_score_never_increases(quadratic_model):
	"""The reported best score is monotone non-increasing."""
	optimizer = EpsilonGreedyOptimizer(EpsilonGreedyConfig(patience=None, n_trials=2, n_workers=1, epsilon=0.5), seed=3)
	_, history = _trajectory(optimizer, quadratic_model, [9.0, 9.0, 9.0], quadratic_model.evaluate_solution([9.0] * 3), 500)
	scores = [score for _, score in history]
	assert all(b <= a for a, b in zip(scores, scores[1:])), "Best score increased"


def test_random_search_accepts_everything(quadratic_model):
	"""Random search is a random walk: every trial is accepted."""
	start = [9.0, 9.0, 9.0]
	score = quadratic_model.evaluate_solution(start)
	result = RandomSearchOptimizer(LocalSearchConfig(patience=None), seed=0).optimize(quadratic_model, start, score, 200)
	assert result.acceptance_ratio == 1.0
	assert result.best_score <= score
	assert result.iterations_run == 200


def test_return_to_best_resets_current_solution(counting_model):
	"""Every trial is worse and accepted, so the walk is sent back to 0 every third iteration."""
	optimizer = GenericLocalSearchOptimizer(
		lambda current, trial: 1.0,
		LocalSearchConfig(patience=None, n_trials=1, return_iter=3, n_workers=1),
		seed=0,
	)
	result = optimizer.step(counting_model, 0, 0.0, 7)
	# 1, 2, reset, 1, 2, reset, 1
	assert result.last_solution == 1
	assert result.last_score == 1.0
	assert result.best_solution == 0
	assert result.accepted_count == 7
	assert result.iterations_run == 7


def test_without_return_to_best_walk_continues(counting_model):
	optimizer = GenericLocalSearchOptimizer(
		lambda current, trial: 1.0,
		LocalSearchConfig(patience=None, n_trials=1, return_iter=None, n_workers=1),
		seed=0,
	)
	assert optimizer.step(counting_model, 0, 0.0, 7).last_solution == 7


def test_delegating_optimizer_requires_transition_fn():
	"""A delegating optimizer without an acceptance rule cannot be built."""

	class NoRule(DelegatingOptimizer):
		@property
		def name(self):
			return "NoRule"

	with pytest.raises(TypeError):
		NoRule()
	assert not hasattr(HillClimbingOptimizer, "_transition_fn")
	assert not hasattr(RandomSearchOptimizer, "_transition_fn")


def test_hill_climbing_converges(quadratic_model, assert_near_optimum):
	optimizer = HillClimbingOptimizer(LocalSearchConfig(patience=1000, n_trials=10, n_workers=1), seed=0)
	result = optimizer.run(quadratic_model, n_iter=10_000)
	assert_near_optimum(result)


def test_epsilon_greedy_converges(quadratic_model, assert_near_optimum):
	optimizer = EpsilonGreedyOptimizer(
		EpsilonGreedyConfig(patience=1000, n_trials=10, return_iter=200, n_workers=1, epsilon=0.3), seed=0,
	)
	result = optimizer.run(quadratic_model, n_iter=10_000)
	assert_near_optimum(result)
