"""
Random search.
"""

import math
from typing import Any, Optional

from numpy.random import Generator

from localsearch.model import OptModel
from localsearch.optim.base import StepResult, TrialPool
from localsearch.optim.epsilon_greedy import EpsilonGreedyConfig, EpsilonGreedyOptimizer
from localsearch.optim.generic import StepOptimizer
from localsearch.progress import OptCallbackFn


class RandomSearchOptimizer(StepOptimizer):
	"""
	Random walk keeping track of the best solution seen.

	Epsilon-greedy with epsilon=1 and a single trial per iteration: every
	trial is accepted. Only patience and the window size of the config
	are used.
	"""

	@property
	def name(self) -> str:
		return "RandomSearch"

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
		cfg = self._config
		delegate = EpsilonGreedyOptimizer(
			EpsilonGreedyConfig(
				patience=cfg.patience,
				n_trials=1,
				return_iter=None,
				n_workers=1,
				window_size=cfg.window_size,
				epsilon=1.0,
			),
			seed=self._seed,
			logger=self._logger,
			log_level=self._log_level,
		)
		delegate._log = self._log
		return delegate.step(model, initial_solution, initial_score, n_iter, time_limit, callback, rng, pool)
