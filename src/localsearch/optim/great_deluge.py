"""
Great deluge.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from numpy.random import Generator

from localsearch.model import OptModel
from localsearch.optim.base import LocalSearchConfig, StepResult, TrialPool
from localsearch.optim.generic import StepOptimizer
from localsearch.progress import OptCallbackFn, OptProgress


def water_level_at(initial_level: float, best_score: float, iterations_done: int, n_iter: int) -> float:
	"""Linear interpolation from initial_level to best_score over the run."""
	fraction = iterations_done / n_iter if n_iter > 0 else 1.0
	return initial_level - (initial_level - best_score) * fraction


@dataclass(frozen=True)
class GreatDelugeConfig(LocalSearchConfig):
	"""
	Attributes:
		level_factor: Initial water level as a multiple of the initial score
	"""
	level_factor: float = 1.1

	def __post_init__(self):
		super().__post_init__()
		if not self.level_factor > 0:
			raise ValueError(f"level_factor must be > 0, got {self.level_factor}")


class GreatDelugeOptimizer(StepOptimizer):
	"""
	Deterministic acceptance against a falling water level.

	A worsening trial is accepted iff its score is below the current water
	level. The level starts at initial_score × level_factor and after each
	iteration moves linearly toward the best score found, reaching it at
	the end of the run.
	"""

	config_class = GreatDelugeConfig

	@property
	def name(self) -> str:
		return "GreatDeluge"

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
		initial_level = float(initial_score) * self._config.level_factor
		water_level = [initial_level]

		def _transition(current: Any, trial: Any) -> float:
			return 1.0 if trial < water_level[0] else 0.0

		def _callback(progress: OptProgress) -> None:
			water_level[0] = water_level_at(initial_level, float(progress.score), progress.iteration + 1, n_iter)
			if callback is not None:
				callback(progress)

		self._log.debug(f"[{self.name}] Initial water level={initial_level:.6g}")
		return self._generic(_transition).step(
			model, initial_solution, initial_score, n_iter, time_limit, _callback, rng, pool,
		)
