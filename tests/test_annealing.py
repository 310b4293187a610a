"""
Tests for the annealing family.

Each optimizer must bring the quadratic reference model close to its
minimum; transition probability functions are checked directly.
"""

import math

import pytest

from localsearch.enums import TargetAccScheduleMode
from localsearch.optim import (
	AdaptiveAnnealingConfig,
	AdaptiveAnnealingOptimizer,
	AdaptiveScheduler,
	AdaptiveSimulatedAnnealingConfig,
	AdaptiveSimulatedAnnealingOptimizer,
	GreatDelugeConfig,
	GreatDelugeOptimizer,
	LogisticAnnealingConfig,
	LogisticAnnealingOptimizer,
	MetropolisConfig,
	MetropolisOptimizer,
	RelativeAnnealingConfig,
	RelativeAnnealingOptimizer,
	SimulatedAnnealingConfig,
	SimulatedAnnealingOptimizer,
	TsallisConfig,
	TsallisOptimizer,
	logistic_transition_score,
)
from localsearch.optim.great_deluge import water_level_at
from localsearch.optim.logistic_annealing import logistic_transition_prob
from localsearch.optim.metropolis import metropolis_transition_prob
from localsearch.optim.relative_annealing import exp_transition_score, relative_difference
from localsearch.optim.tsallis import MIN_TSALLIS_PROB, tsallis_transition_prob
from localsearch.progress import ProgressTracker


# =============================================================================
# Transition probabilities
# =============================================================================

def test_metropolis_transition_prob():
	assert metropolis_transition_prob(1.0, 0.5, 2.0) == 1.0
	assert metropolis_transition_prob(1.0, 1.0, 2.0) == 1.0
	assert metropolis_transition_prob(1.0, 2.0, 2.0) == pytest.approx(math.exp(-2.0))
	# Hotter accepts more
	assert metropolis_transition_prob(1.0, 2.0, 0.5) > metropolis_transition_prob(1.0, 2.0, 5.0)


def test_relative_difference():
	assert relative_difference(1.5, 1.0) == pytest.approx(0.5)
	assert relative_difference(-3.0, -2.0) == pytest.approx(-0.5)
	assert relative_difference(1.0, 0.0) == math.inf
	assert relative_difference(0.0, 0.0) == 0.0


def test_relative_transforms_are_monotone():
	"""Both transforms give 1 at d=0 and decrease as the trial gets worse."""
	for score_func in (exp_transition_score, logistic_transition_score):
		assert score_func(0.0, 10.0) == pytest.approx(1.0)
		values = [score_func(d, 10.0) for d in (0.01, 0.1, 0.5, 2.0)]
		assert all(b < a for a, b in zip(values, values[1:])), f"{score_func.__name__} not decreasing"
		assert score_func(math.inf, 10.0) == pytest.approx(0.0)


def test_logistic_transition_prob():
	assert logistic_transition_prob(1.0, 1.0, 10.0) == pytest.approx(1.0)
	assert logistic_transition_prob(1.0, 1.1, 10.0) == pytest.approx(2.0 / (1.0 + math.exp(1.0)))
	assert logistic_transition_prob(1.0, 2.0, 10.0) < logistic_transition_prob(1.0, 1.1, 10.0)


def test_tsallis_transition_prob():
	"""Improving trials always pass; worsening ones are floored at MIN_TSALLIS_PROB."""
	assert tsallis_transition_prob(2.0, 1.0, 0.0, 10.0, 1.5, 1.0) == 1.0
	p_small = tsallis_transition_prob(2.0, 2.1, 0.0, 10.0, 1.5, 1.0)
	p_large = tsallis_transition_prob(2.0, 3.0, 0.0, 10.0, 1.5, 1.0)
	assert 0.0 < p_large < p_small < 1.0
	# d = 0.1 / 3 -> (1 + 0.5 * 10 * d) ^ -2
	assert p_small == pytest.approx((1.0 + 0.5 * 10.0 * (0.1 / 3.0)) ** -2)
	assert tsallis_transition_prob(2.0, 1e6, 0.0, 10.0, 1.5, 1.0) == MIN_TSALLIS_PROB


def test_water_level_falls_linearly():
	assert water_level_at(11.0, 1.0, 0, 100) == pytest.approx(11.0)
	assert water_level_at(11.0, 1.0, 50, 100) == pytest.approx(6.0)
	assert water_level_at(11.0, 1.0, 100, 100) == pytest.approx(1.0)


# =============================================================================
# Adaptive scheduler
# =============================================================================

@pytest.mark.parametrize("mode", [TargetAccScheduleMode.LINEAR, TargetAccScheduleMode.EXPONENTIAL, TargetAccScheduleMode.COSINE])
def test_scheduler_endpoints(mode):
	scheduler = AdaptiveScheduler(0.8, 0.1, mode, 0.05)
	assert scheduler.calculate_target_acc(0, 1000) == pytest.approx(0.8)
	assert scheduler.calculate_target_acc(1000, 1000) == pytest.approx(0.1)
	midpoint = scheduler.calculate_target_acc(500, 1000)
	assert 0.1 < midpoint < 0.8, f"{mode.name} midpoint {midpoint} out of range"


def test_scheduler_constant_mode():
	scheduler = AdaptiveScheduler(0.3, 0.9, TargetAccScheduleMode.CONSTANT, 0.05)
	assert scheduler.calculate_target_acc(0, 100) == 0.3
	assert scheduler.calculate_target_acc(100, 100) == 0.3


def test_scheduler_beta_feedback_direction():
	"""Too few acceptances heat (lower β), too many cool (raise β)."""
	scheduler = AdaptiveScheduler(0.5, 0.5, TargetAccScheduleMode.CONSTANT, 0.5)
	assert scheduler.update_beta(1.0, 10, 100, 0.1) < 1.0
	assert scheduler.update_beta(1.0, 10, 100, 0.9) > 1.0
	assert scheduler.update_beta(1.0, 10, 100, 0.5) == pytest.approx(1.0)
	assert scheduler.update_beta(2.0, 10, 100, 0.0) == pytest.approx(2.0 * math.exp(-0.5))


def test_scheduler_rejects_invalid_values():
	with pytest.raises(ValueError):
		AdaptiveScheduler(0.0, 0.5)
	with pytest.raises(ValueError):
		AdaptiveScheduler(0.5, 0.5, TargetAccScheduleMode.LINEAR, 0.0)


# =============================================================================
# Convergence on the quadratic model
# =============================================================================

def test_metropolis_converges(quadratic_model, assert_near_optimum):
	optimizer = MetropolisOptimizer(
		MetropolisConfig(patience=5000, n_trials=10, return_iter=10, n_workers=1, beta=1.0), seed=0,
	)
	result = optimizer.run(quadratic_model, n_iter=5000)
	assert_near_optimum(result)


def test_simulated_annealing_converges(quadratic_model, assert_near_optimum):
	optimizer = SimulatedAnnealingOptimizer(
		SimulatedAnnealingConfig(
			patience=5000, n_trials=10, return_iter=100, n_workers=1,
			initial_beta=1.0, cooling_rate=1.0 / 0.99, update_frequency=1,
		),
		seed=0,
	)
	result = optimizer.run(quadratic_model, n_iter=5000)
	assert_near_optimum(result)


def test_simulated_annealing_tuning(quadratic_model):
	"""Tuned copies carry the new values and leave the original untouched."""
	optimizer = SimulatedAnnealingOptimizer(SimulatedAnnealingConfig(update_frequency=10), seed=0)
	tuned = optimizer.with_tuned_temperature(quadratic_model, None, 500, 0.8).with_tuned_cooling_rate(1000, 100.0)

	assert optimizer.config.initial_beta == 1.0
	beta = tuned.config.initial_beta
	assert beta > 0 and beta != 1.0
	# 100 chunks take initial_beta to 100
	assert beta * tuned.config.cooling_rate ** 100 == pytest.approx(100.0)
	assert tuned.config.update_frequency == 10


def test_adaptive_annealing_converges(quadratic_model, assert_near_optimum):
	optimizer = AdaptiveAnnealingOptimizer(
		AdaptiveAnnealingConfig(
			patience=10_000, n_trials=10, return_iter=10, n_workers=1, update_frequency=10,
			scheduler=AdaptiveScheduler(0.8, 0.1, TargetAccScheduleMode.COSINE, 1.0),
		),
		seed=0,
	)
	result = optimizer.run(quadratic_model, n_iter=5000)
	assert_near_optimum(result)


def test_adaptive_simulated_annealing_converges(quadratic_model, assert_near_optimum):
	optimizer = AdaptiveSimulatedAnnealingOptimizer(
		AdaptiveSimulatedAnnealingConfig(
			patience=10_000, n_trials=10, return_iter=1000, n_workers=1, reanneal_interval=500,
		),
		seed=0,
	).with_tuned_temperature(quadratic_model, None, 1000, 0.8).with_tuned_cooling_rate(100.0)
	result = optimizer.run(quadratic_model, n_iter=5000)
	assert_near_optimum(result)


def test_chunked_callback_reports_iterations_done(quadratic_model):
	"""Chunked optimizers report the number of iterations completed so far."""
	optimizer = SimulatedAnnealingOptimizer(
		SimulatedAnnealingConfig(patience=None, n_trials=2, n_workers=1, update_frequency=30), seed=0,
	)
	tracker = ProgressTracker(logger=lambda msg: None)
	result = optimizer.run(quadratic_model, n_iter=100, callback=tracker)
	assert [it for it, _ in tracker.history] == [30, 60, 90, 100]
	assert result.iterations_run == 100


def test_logistic_annealing_converges(quadratic_model, assert_near_optimum):
	optimizer = LogisticAnnealingOptimizer(
		LogisticAnnealingConfig(patience=5000, n_trials=10, return_iter=200, n_workers=1, w=10.0), seed=0,
	)
	result = optimizer.run(quadratic_model, n_iter=10_000)
	assert_near_optimum(result)


def test_relative_annealing_converges(quadratic_model, assert_near_optimum):
	optimizer = RelativeAnnealingOptimizer(
		RelativeAnnealingConfig(patience=5000, n_trials=10, return_iter=200, n_workers=1, w=10.0), seed=0,
	)
	result = optimizer.run(quadratic_model, n_iter=10_000)
	assert_near_optimum(result)


def test_tsallis_annealing_converges(quadratic_model, assert_near_optimum):
	optimizer = TsallisOptimizer(
		TsallisConfig(patience=5000, n_trials=10, return_iter=200, n_workers=1), seed=0,
	)
	result = optimizer.run(quadratic_model, n_iter=10_000)
	assert_near_optimum(result)


def test_great_deluge_converges(quadratic_model, assert_near_optimum):
	optimizer = GreatDelugeOptimizer(
		GreatDelugeConfig(patience=1000, n_trials=10, return_iter=20, n_workers=1, level_factor=1.1), seed=0,
	)
	result = optimizer.run(quadratic_model, n_iter=10_000)
	assert_near_optimum(result)
