"""
Relative annealing: the acceptance probability depends on the score
change relative to the current score, so its parameter does not need
rescaling when the score magnitude changes.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable

from localsearch.optim.base import LocalSearchConfig, TransitionProbabilityFn, safe_exp
from localsearch.optim.generic import DelegatingOptimizer


def relative_difference(trial: Any, current: Any) -> float:
	"""(trial - current) / |current|, ±inf when current is 0."""
	delta = float(trial - current)
	if current == 0:
		if delta == 0:
			return 0.0
		return math.copysign(math.inf, delta)
	return delta / abs(float(current))


def exp_transition_score(d: float, w: float) -> float:
	"""exp(-w·d)"""
	return safe_exp(-w * d)


def logistic_transition_score(d: float, w: float) -> float:
	"""2 / (1 + exp(w·d)): 1 at d=0, decaying to 0 for large d."""
	return 2.0 / (1.0 + safe_exp(w * d))


@dataclass(frozen=True)
class RelativeAnnealingConfig(LocalSearchConfig):
	"""
	Attributes:
		w: Sharpness of the transform (larger = greedier)
		score_func: Maps (relative difference, w) to an acceptance probability
	"""
	w: float = 10.0
	score_func: Callable[[float, float], float] = exp_transition_score

	def __post_init__(self):
		super().__post_init__()
		if not self.w > 0:
			raise ValueError(f"w must be > 0, got {self.w}")


class RelativeAnnealingOptimizer(DelegatingOptimizer):
	"""
	Accepts worsening trials with probability score_func(d, w), where d is
	the relative score difference.

	Usage:
		config = RelativeAnnealingConfig(w=10.0, score_func=logistic_transition_score)
		result = RelativeAnnealingOptimizer(config, seed=0).run(model, n_iter=10_000)
	"""

	config_class = RelativeAnnealingConfig

	@property
	def name(self) -> str:
		return "RelativeAnnealing"

	def _transition_fn(self) -> TransitionProbabilityFn:
		w = self._config.w
		score_func = self._config.score_func
		return lambda current, trial: score_func(relative_difference(trial, current), w)
