"""
Metropolis search at a constant inverse temperature, plus the β
calibration helpers shared by the annealing optimizers.

Calibration:
1. Random-walk from a start solution for n_warmup steps, collecting
   every positive score difference (uphill move) seen
2. Solve exp(-β·mean(Δ)) = p for β
3. No uphill samples: fall back to β = 1.0
"""

import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np
from numpy.random import Generator

from localsearch.model import OptModel, validate_score
from localsearch.optim.base import LocalSearchConfig, TransitionProbabilityFn, safe_exp
from localsearch.optim.generic import DelegatingOptimizer

# Clamp range for ln(target probability)
MIN_LN_PROB = -100.0
MAX_LN_PROB = -0.01

# β used when calibration has no uphill samples
DEFAULT_BETA = 1.0


def metropolis_transition_prob(current: Any, trial: Any, beta: float) -> float:
	"""1 for non-worsening trials, exp(-β·Δ) otherwise."""
	delta = trial - current
	if delta <= 0:
		return 1.0
	return safe_exp(-beta * delta)


def gather_energy_diffs(
	model: OptModel,
	initial_solution_and_score: Optional[tuple[Any, Any]],
	n_warmup: int,
	rng: Optional[Generator] = None,
) -> list[float]:
	"""
	Positive score differences seen during an n_warmup-step random walk.

	Every trial is accepted so the walk explores rather than descends. A
	random start solution is generated when none is given.
	"""
	rng = rng if rng is not None else np.random.default_rng()
	if initial_solution_and_score is None:
		current_solution, current_score = model.generate_random_solution(rng)
	else:
		current_solution, current_score = initial_solution_and_score
	current_score = validate_score(current_score)

	energy_diffs = []
	for _ in range(n_warmup):
		trial_solution, _, trial_score = model.generate_trial_solution(
			model.clone_solution(current_solution), current_score, rng,
		)
		trial_score = validate_score(trial_score)
		delta = float(trial_score - current_score)
		if delta > 0:
			energy_diffs.append(delta)
		current_solution, current_score = trial_solution, trial_score
	return energy_diffs


def calculate_beta_from_acceptance_prob(energy_diffs: Sequence[float], target_prob: float) -> float:
	"""
	β such that exp(-β·mean(energy_diffs)) = target_prob.

	ln(target_prob) is clamped to [-100, -0.01], so target probabilities of
	0 or 1 still give a finite positive β.
	"""
	if not energy_diffs:
		return DEFAULT_BETA
	mean_diff = sum(energy_diffs) / len(energy_diffs)
	if mean_diff <= 0:
		return DEFAULT_BETA
	ln_prob = math.log(target_prob) if target_prob > 0 else MIN_LN_PROB
	ln_prob = min(max(ln_prob, MIN_LN_PROB), MAX_LN_PROB)
	return -ln_prob / mean_diff


def tune_beta(
	model: OptModel,
	initial_solution_and_score: Optional[tuple[Any, Any]],
	n_warmup: int,
	target_prob: float,
	rng: Optional[Generator] = None,
) -> float:
	"""β at which an average uphill move is accepted with probability target_prob."""
	energy_diffs = gather_energy_diffs(model, initial_solution_and_score, n_warmup, rng)
	return calculate_beta_from_acceptance_prob(energy_diffs, target_prob)


@dataclass(frozen=True)
class MetropolisConfig(LocalSearchConfig):
	"""
	Attributes:
		beta: Constant inverse temperature (> 0)
	"""
	beta: float = 1.0

	def __post_init__(self):
		super().__post_init__()
		if not self.beta > 0:
			raise ValueError(f"beta must be > 0, got {self.beta}")


class MetropolisOptimizer(DelegatingOptimizer):
	"""
	Metropolis algorithm at constant β: worsening trials are accepted with
	probability exp(-β·Δ).

	Usage:
		optimizer = MetropolisOptimizer(MetropolisConfig(beta=2.0), seed=0)
		optimizer = optimizer.with_tuned_temperature(model, None, n_warmup=200, target_prob=0.3)
		result = optimizer.run(model, n_iter=5000)
	"""

	config_class = MetropolisConfig

	@property
	def name(self) -> str:
		return "Metropolis"

	def _transition_fn(self) -> TransitionProbabilityFn:
		beta = self._config.beta
		return lambda current, trial: metropolis_transition_prob(current, trial, beta)

	def with_tuned_temperature(
		self,
		model: OptModel,
		initial_solution_and_score: Optional[tuple[Any, Any]],
		n_warmup: int,
		target_prob: float,
	) -> "MetropolisOptimizer":
		"""Copy of this optimizer with β calibrated to accept uphill moves with target_prob."""
		beta = tune_beta(model, initial_solution_and_score, n_warmup, target_prob, np.random.default_rng(self._seed))
		self._log.debug(f"[{self.name}] Tuned beta={beta:.6g} (target_prob={target_prob})")
		return self.with_config(beta=beta)
