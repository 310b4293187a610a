"""
Adaptive simulated annealing by re-annealing.
"""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from numpy.random import Generator

from localsearch.model import OptModel
from localsearch.optim.base import LocalSearchConfig, StepResult, TrialPool
from localsearch.optim.metropolis import tune_beta
from localsearch.optim.simulated_annealing import (
	DEFAULT_FINAL_BETA,
	SimulatedAnnealingConfig,
	SimulatedAnnealingOptimizer,
	tune_cooling_rate,
)
from localsearch.optim.template import ChunkedAnnealingTemplate


@dataclass(frozen=True)
class AdaptiveSimulatedAnnealingConfig(LocalSearchConfig):
	"""
	Attributes:
		initial_beta: β at the start of every annealing schedule
		cooling_rate: Per-iteration β factor within a schedule
		reanneal_interval: Length of one schedule in iterations
	"""
	initial_beta: float = 1.0
	cooling_rate: float = 1.01
	reanneal_interval: int = 1000

	def __post_init__(self):
		super().__post_init__()
		if not self.initial_beta > 0:
			raise ValueError(f"initial_beta must be > 0, got {self.initial_beta}")
		if not self.cooling_rate > 0:
			raise ValueError(f"cooling_rate must be > 0, got {self.cooling_rate}")
		if self.reanneal_interval < 1:
			raise ValueError(f"reanneal_interval must be >= 1, got {self.reanneal_interval}")


class AdaptiveSimulatedAnnealingOptimizer(ChunkedAnnealingTemplate):
	"""
	Repeated simulated annealing.

	Each chunk is a complete annealing schedule of reanneal_interval
	iterations starting again from initial_beta, continuing from the last
	solution of the previous schedule. Return-to-best and patience are
	counted in iterations and checked after each schedule.
	"""

	config_class = AdaptiveSimulatedAnnealingConfig

	@property
	def name(self) -> str:
		return "AdaptiveSimulatedAnnealing"

	def _chunk_size(self) -> int:
		return self._config.reanneal_interval

	def _initial_state(self, model, initial_solution, initial_score, n_iter, rng) -> SimulatedAnnealingOptimizer:
		cfg = self._config
		sa = SimulatedAnnealingOptimizer(
			SimulatedAnnealingConfig(
				patience=None,
				n_trials=cfg.n_trials,
				return_iter=None,
				n_workers=cfg.n_workers,
				window_size=cfg.window_size,
				initial_beta=cfg.initial_beta,
				cooling_rate=cfg.cooling_rate,
				update_frequency=1,
			),
			seed=self._seed,
			logger=self._logger,
			log_level=self._log_level,
		)
		sa._log = self._log
		return sa

	def _run_chunk(
		self,
		model: OptModel,
		state: SimulatedAnnealingOptimizer,
		solution: Any,
		score: Any,
		n_steps: int,
		time_limit: float,
		rng: Generator,
		pool: TrialPool,
	) -> StepResult:
		return state.step(model, solution, score, n_steps, time_limit, rng=rng, pool=pool)

	def with_tuned_temperature(
		self,
		model: OptModel,
		initial_solution_and_score: Optional[tuple[Any, Any]],
		n_warmup: int,
		target_initial_prob: float,
	) -> "AdaptiveSimulatedAnnealingOptimizer":
		"""Copy with initial_beta calibrated to accept uphill moves with target_initial_prob."""
		beta = tune_beta(
			model, initial_solution_and_score, n_warmup, target_initial_prob, np.random.default_rng(self._seed),
		)
		self._log.debug(f"[{self.name}] Tuned initial_beta={beta:.6g}")
		return self.with_config(initial_beta=beta)

	def with_tuned_cooling_rate(self, final_beta: float = DEFAULT_FINAL_BETA) -> "AdaptiveSimulatedAnnealingOptimizer":
		"""Copy with cooling_rate set so each schedule ends at final_beta."""
		cfg = self._config
		cooling_rate = tune_cooling_rate(cfg.initial_beta, final_beta, cfg.reanneal_interval)
		self._log.debug(f"[{self.name}] Tuned cooling_rate={cooling_rate:.6g}")
		return self.with_config(cooling_rate=cooling_rate)
