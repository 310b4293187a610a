"""
Logistic annealing.
"""

from dataclasses import dataclass
from typing import Any

from localsearch.optim.base import LocalSearchConfig, TransitionProbabilityFn
from localsearch.optim.generic import DelegatingOptimizer
from localsearch.optim.relative_annealing import logistic_transition_score, relative_difference


def logistic_transition_prob(current: Any, trial: Any, w: float) -> float:
	return logistic_transition_score(relative_difference(trial, current), w)


@dataclass(frozen=True)
class LogisticAnnealingConfig(LocalSearchConfig):
	"""
	Attributes:
		w: Steepness of the sigmoid over the relative score difference
	"""
	w: float = 10.0

	def __post_init__(self):
		super().__post_init__()
		if not self.w > 0:
			raise ValueError(f"w must be > 0, got {self.w}")


class LogisticAnnealingOptimizer(DelegatingOptimizer):
	"""
	Accepts worsening trials with probability 2 / (1 + exp(w·d)), d being
	the score difference relative to the current score.
	"""

	config_class = LogisticAnnealingConfig

	@property
	def name(self) -> str:
		return "LogisticAnnealing"

	def _transition_fn(self) -> TransitionProbabilityFn:
		w = self._config.w
		return lambda current, trial: logistic_transition_prob(current, trial, w)
