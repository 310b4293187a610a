"""
Epsilon-greedy local search.
"""

from dataclasses import dataclass
from typing import Any

from localsearch.optim.base import LocalSearchConfig, TransitionProbabilityFn
from localsearch.optim.generic import DelegatingOptimizer


def epsilon_greedy_transition_prob(current: Any, trial: Any, epsilon: float) -> float:
	"""1 for improving trials, epsilon otherwise."""
	if trial < current:
		return 1.0
	return epsilon


@dataclass(frozen=True)
class EpsilonGreedyConfig(LocalSearchConfig):
	"""
	Configuration for epsilon-greedy search.

	Attributes:
		epsilon: Probability of accepting a trial that does not improve the
			current score. 0 is pure hill climbing, 1 a random walk.
	"""
	epsilon: float = 0.1

	def __post_init__(self):
		super().__post_init__()
		if not 0.0 <= self.epsilon <= 1.0:
			raise ValueError(f"epsilon must be in [0, 1], got {self.epsilon}")


class EpsilonGreedyOptimizer(DelegatingOptimizer):
	"""
	Greedy search that also accepts non-improving trials with a fixed
	probability epsilon, unlike hill climbing which never does.
	"""

	config_class = EpsilonGreedyConfig

	@property
	def name(self) -> str:
		return "EpsilonGreedy"

	def _transition_fn(self) -> TransitionProbabilityFn:
		epsilon = self._config.epsilon
		return lambda current, trial: epsilon_greedy_transition_prob(current, trial, epsilon)
