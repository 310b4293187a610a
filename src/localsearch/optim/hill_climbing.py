"""
Hill climbing.
"""

import math
from typing import Any, Optional

from numpy.random import Generator

from localsearch.model import OptModel
from localsearch.optim.base import StepResult, TrialPool
from localsearch.optim.epsilon_greedy import EpsilonGreedyConfig, EpsilonGreedyOptimizer
from localsearch.optim.generic import StepOptimizer
from localsearch.progress import OptCallbackFn


class HillClimbingOptimizer(StepOptimizer):
	"""
	Strictly greedy search: only improving trials are accepted.

	Runs epsilon-greedy with epsilon=0 and return-to-best disabled (the
	current solution is always the best one).
	"""

	@property
	def name(self) -> str:
		return "HillClimbing"

	def _delegate(self) -> EpsilonGreedyOptimizer:
		cfg = self._config
		delegate = EpsilonGreedyOptimizer(
			EpsilonGreedyConfig(
				patience=cfg.patience,
				n_trials=cfg.n_trials,
				return_iter=None,
				n_workers=cfg.n_workers,
				window_size=cfg.window_size,
				epsilon=0.0,
			),
			seed=self._seed,
			logger=self._logger,
			log_level=self._log_level,
		)
		delegate._log = self._log
		return delegate

	def step(
		self,
		model: OptModel,
		initial_solution: Any,
		initial_score: Any,
		n_iter: int,
		time_limit: float = math.inf,
		callback: Optional[OptCallbackFn] = None,
		rng: Optional[Generator] = None,
		pool: Optional[TrialPool] = None,
	) -> StepResult:
		return self._delegate().step(model, initial_solution, initial_score, n_iter, time_limit, callback, rng, pool)
