"""
Tsallis relative annealing.

Worsening trials are accepted with the Tsallis (q-exponential) probability
of the score difference measured relative to the distance from the best
score so far:

	d = ΔE / (E - E_best + ξ)
	p = max(0.01, [1 - (1 - q)·β·d] ^ (1 / (1 - q)))

β is corrected every update_frequency iterations by an AdaptiveScheduler
toward a target acceptance rate.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Optional

from numpy.random import Generator

from localsearch.enums import TargetAccScheduleMode
from localsearch.model import OptModel
from localsearch.optim.adaptive_annealing import AdaptiveScheduler
from localsearch.optim.base import LocalSearchConfig, StepResult, TrialPool
from localsearch.optim.generic import StepOptimizer
from localsearch.progress import OptCallbackFn, OptProgress

# Floor of the uphill acceptance probability
MIN_TSALLIS_PROB = 0.01


def tsallis_transition_prob(current: float, trial: float, offset: float, beta: float, q: float, xi: float) -> float:
	delta_e = trial - current
	if delta_e <= 0:
		return 1.0
	d = delta_e / (current - offset + xi)
	arg = 1.0 - (1.0 - q) * beta * d
	return max(MIN_TSALLIS_PROB, arg ** (1.0 / (1.0 - q)))


def _default_tsallis_scheduler() -> AdaptiveScheduler:
	return AdaptiveScheduler(0.3, 0.3, TargetAccScheduleMode.CONSTANT, 0.05)


@dataclass(frozen=True)
class TsallisConfig(LocalSearchConfig):
	"""
	Attributes:
		beta: Initial inverse temperature
		q: Tsallis index (> 1)
		xi: Offset keeping the relative denominator positive (> 0)
		update_frequency: Iterations between β corrections
		scheduler: Target acceptance schedule for β
	"""
	beta: float = 10.0
	q: float = 1.5
	xi: float = 1.0
	update_frequency: int = 100
	scheduler: AdaptiveScheduler = field(default_factory=_default_tsallis_scheduler)

	def __post_init__(self):
		super().__post_init__()
		if not self.beta > 0:
			raise ValueError(f"beta must be > 0, got {self.beta}")
		if not self.q > 1:
			raise ValueError(f"q must be > 1, got {self.q}")
		if not self.xi > 0:
			raise ValueError(f"xi must be > 0, got {self.xi}")
		if self.update_frequency < 1:
			raise ValueError(f"update_frequency must be >= 1, got {self.update_frequency}")


@dataclass
class _TsallisState:
	offset: float
	beta: float


class TsallisOptimizer(StepOptimizer):
	"""
	Tsallis relative annealing on top of the generic loop.

	The offset (best score) and β are updated from the per-iteration
	progress records and read by the transition function.
	"""

	config_class = TsallisConfig

	@property
	def name(self) -> str:
		return "TsallisAnnealing"

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
		state = _TsallisState(offset=float(initial_score), beta=cfg.beta)

		def _transition(current: Any, trial: Any) -> float:
			return tsallis_transition_prob(float(current), float(trial), state.offset, state.beta, cfg.q, cfg.xi)

		def _callback(progress: OptProgress) -> None:
			state.offset = float(progress.score)
			iterations_done = progress.iteration + 1
			if iterations_done % cfg.update_frequency == 0:
				state.beta = cfg.scheduler.update_beta(state.beta, iterations_done, n_iter, progress.acceptance_ratio)
				self._log.trace(f"[{self.name}] iter {iterations_done}: acc={progress.acceptance_ratio:.3f}, beta={state.beta:.6g}")
			if callback is not None:
				callback(progress)

		return self._generic(_transition).step(
			model, initial_solution, initial_score, n_iter, time_limit, _callback, rng, pool,
		)
