"""
Simulated annealing: Metropolis with an inverse temperature β that grows
by a constant factor every update_frequency iterations.
"""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from numpy.random import Generator

from localsearch.model import OptModel
from localsearch.optim.base import LocalSearchConfig, StepResult, TrialPool
from localsearch.optim.metropolis import tune_beta
from localsearch.optim.template import ChunkedAnnealingTemplate

# β reached at the end of a run by with_tuned_cooling_rate()
DEFAULT_FINAL_BETA = 1e2


def tune_cooling_rate(initial: float, final: float, n_steps: int) -> float:
	"""Constant factor taking `initial` to `final` in n_steps multiplications."""
	if initial <= 0 or final <= 0:
		raise ValueError(f"initial and final must be > 0, got {initial}, {final}")
	return (final / initial) ** (1.0 / max(1, n_steps))


@dataclass(frozen=True)
class SimulatedAnnealingConfig(LocalSearchConfig):
	"""
	Attributes:
		initial_beta: Inverse temperature at the start of the run
		cooling_rate: Factor β is multiplied by after each chunk (> 1 cools)
		update_frequency: Iterations per chunk at constant β
	"""
	initial_beta: float = 1.0
	cooling_rate: float = 1.01
	update_frequency: int = 1

	def __post_init__(self):
		super().__post_init__()
		if not self.initial_beta > 0:
			raise ValueError(f"initial_beta must be > 0, got {self.initial_beta}")
		if not self.cooling_rate > 0:
			raise ValueError(f"cooling_rate must be > 0, got {self.cooling_rate}")
		if self.update_frequency < 1:
			raise ValueError(f"update_frequency must be >= 1, got {self.update_frequency}")


class SimulatedAnnealingOptimizer(ChunkedAnnealingTemplate):
	"""
	Simulated annealing with a geometric β schedule.

	Usage:
		optimizer = (
			SimulatedAnnealingOptimizer(SimulatedAnnealingConfig(update_frequency=10), seed=0)
			.with_tuned_temperature(model, None, n_warmup=1000, target_initial_prob=0.8)
			.with_tuned_cooling_rate(n_iter=5000)
		)
		result = optimizer.run(model, n_iter=5000)
	"""

	config_class = SimulatedAnnealingConfig

	@property
	def name(self) -> str:
		return "SimulatedAnnealing"

	def _chunk_size(self) -> int:
		return self._config.update_frequency

	def _initial_state(self, model, initial_solution, initial_score, n_iter, rng) -> float:
		return self._config.initial_beta

	def _run_chunk(
		self,
		model: OptModel,
		state: float,
		solution: Any,
		score: Any,
		n_steps: int,
		time_limit: float,
		rng: Generator,
		pool: TrialPool,
	) -> StepResult:
		return self._metropolis(state).step(model, solution, score, n_steps, time_limit, rng=rng, pool=pool)

	def _update_state(self, state: float, iterations_done: int, n_iter: int, step_result: StepResult) -> float:
		return state * self._config.cooling_rate

	def with_tuned_temperature(
		self,
		model: OptModel,
		initial_solution_and_score: Optional[tuple[Any, Any]],
		n_warmup: int,
		target_initial_prob: float,
	) -> "SimulatedAnnealingOptimizer":
		"""Copy with initial_beta set so uphill moves start accepted with target_initial_prob."""
		beta = tune_beta(
			model, initial_solution_and_score, n_warmup, target_initial_prob, np.random.default_rng(self._seed),
		)
		self._log.debug(f"[{self.name}] Tuned initial_beta={beta:.6g}")
		return self.with_config(initial_beta=beta)

	def with_tuned_cooling_rate(self, n_iter: int, final_beta: float = DEFAULT_FINAL_BETA) -> "SimulatedAnnealingOptimizer":
		"""Copy with cooling_rate set so β reaches final_beta after n_iter iterations."""
		n_steps = max(1, n_iter // self._config.update_frequency)
		cooling_rate = tune_cooling_rate(self._config.initial_beta, final_beta, n_steps)
		self._log.debug(f"[{self.name}] Tuned cooling_rate={cooling_rate:.6g}")
		return self.with_config(cooling_rate=cooling_rate)
