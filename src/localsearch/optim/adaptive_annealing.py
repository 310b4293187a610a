"""
Adaptive annealing: β follows a target acceptance rate instead of a
fixed cooling schedule.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from numpy.random import Generator

from localsearch.enums import TargetAccScheduleMode
from localsearch.model import OptModel
from localsearch.optim.base import LocalSearchConfig, StepResult, TrialPool, safe_exp
from localsearch.optim.metropolis import tune_beta
from localsearch.optim.template import ChunkedAnnealingTemplate


@dataclass(frozen=True)
class AdaptiveScheduler:
	"""
	Target acceptance schedule and β feedback rule.

	The target acceptance moves from initial_target_acc to final_target_acc
	over the run following schedule_mode. After each chunk:
		β ← β · exp(-γ · (target - measured) / target)
	Accepting less than the target lowers β (heats), accepting more raises
	it (cools).

	Attributes:
		initial_target_acc: Target acceptance at iteration 0, in (0, 1]
		final_target_acc: Target acceptance at the last iteration, in (0, 1]
		schedule_mode: Shape of the target schedule
		gamma: Feedback speed (> 0)
	"""
	initial_target_acc: float = 0.5
	final_target_acc: float = 0.05
	schedule_mode: TargetAccScheduleMode = TargetAccScheduleMode.COSINE
	gamma: float = 0.05

	def __post_init__(self):
		for value, label in ((self.initial_target_acc, "initial_target_acc"), (self.final_target_acc, "final_target_acc")):
			if not 0.0 < value <= 1.0:
				raise ValueError(f"{label} must be in (0, 1], got {value}")
		if not self.gamma > 0:
			raise ValueError(f"gamma must be > 0, got {self.gamma}")

	def calculate_target_acc(self, current_iter: int, total_iter: int) -> float:
		"""Target acceptance rate at current_iter of total_iter."""
		fraction = min(1.0, current_iter / total_iter) if total_iter > 0 else 1.0
		initial = self.initial_target_acc
		final = self.final_target_acc
		if self.schedule_mode == TargetAccScheduleMode.LINEAR:
			return initial + fraction * (final - initial)
		if self.schedule_mode == TargetAccScheduleMode.EXPONENTIAL:
			return initial * (final / initial) ** fraction
		if self.schedule_mode == TargetAccScheduleMode.COSINE:
			return final + 0.5 * (initial - final) * (1.0 + math.cos(math.pi * fraction))
		return initial

	def update_beta(self, beta: float, current_iter: int, total_iter: int, acceptance_ratio: float) -> float:
		"""β after a chunk whose measured acceptance rate was acceptance_ratio."""
		target = self.calculate_target_acc(current_iter, total_iter)
		return beta * safe_exp(-self.gamma * (target - acceptance_ratio) / target)


@dataclass(frozen=True)
class AdaptiveAnnealingConfig(LocalSearchConfig):
	"""
	Attributes:
		update_frequency: Iterations per chunk at constant β. The initial β
			is calibrated from a warm-up of the same length.
		scheduler: Target acceptance schedule
	"""
	update_frequency: int = 10
	scheduler: AdaptiveScheduler = field(default_factory=AdaptiveScheduler)

	def __post_init__(self):
		super().__post_init__()
		if self.update_frequency < 1:
			raise ValueError(f"update_frequency must be >= 1, got {self.update_frequency}")


class AdaptiveAnnealingOptimizer(ChunkedAnnealingTemplate):
	"""
	Annealing driven by acceptance feedback.

	The initial β is calibrated so uphill moves are accepted with the
	scheduler's initial target; after every chunk β is corrected toward
	the current target acceptance rate.
	"""

	config_class = AdaptiveAnnealingConfig

	@property
	def name(self) -> str:
		return "AdaptiveAnnealing"

	def _chunk_size(self) -> int:
		return self._config.update_frequency

	def _initial_state(
		self,
		model: OptModel,
		initial_solution: Any,
		initial_score: Any,
		n_iter: int,
		rng: Generator,
	) -> float:
		cfg = self._config
		beta = tune_beta(
			model,
			(model.clone_solution(initial_solution), initial_score),
			cfg.update_frequency,
			cfg.scheduler.initial_target_acc,
			rng,
		)
		self._log.debug(f"[{self.name}] Initial beta={beta:.6g}")
		return beta

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
		n_total = step_result.accepted_count + step_result.rejected_count
		measured = step_result.accepted_count / n_total if n_total else 0.0
		beta = self._config.scheduler.update_beta(state, iterations_done, n_iter, measured)
		self._log.trace(f"[{self.name}] iter {iterations_done}: acc={measured:.3f}, beta={beta:.6g}")
		return beta
