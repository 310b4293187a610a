"""
Parallel tempering (replica exchange).

R replicas each run Metropolis at a fixed inverse temperature from an
ascending ladder β_0 < β_1 < ... < β_{R-1}. Each round:
1. Every replica runs update_frequency Metropolis iterations in parallel
2. The global best is updated from all replicas
3. Return-to-best resets a random replica to the best solution
4. Adjacent pairs (i, i+1) are swapped in ascending order with
   probability min(1, exp((β_{i+1} - β_i)(E_{i+1} - E_i)))
"""

import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Sequence

import numpy as np
from numpy.random import Generator

from localsearch.enums import StopReason
from localsearch.model import OptModel, validate_score
from localsearch.optim.base import (
	LocalSearchConfig,
	LocalSearchOptimizer,
	OptimizerResult,
	StepResult,
	TrialPool,
	limit_reached,
	safe_exp,
)
from localsearch.optim.metropolis import (
	MetropolisConfig,
	MetropolisOptimizer,
	calculate_beta_from_acceptance_prob,
	gather_energy_diffs,
)
from localsearch.progress import OptCallbackFn, OptProgress


def geometric_betas(n_replicas: int, beta_min: float, beta_max: float) -> tuple[float, ...]:
	"""n_replicas inverse temperatures spaced geometrically from beta_min to beta_max."""
	if n_replicas < 1:
		raise ValueError(f"n_replicas must be >= 1, got {n_replicas}")
	if not (beta_min > 0 and beta_max > 0):
		raise ValueError(f"beta_min and beta_max must be > 0, got {beta_min}, {beta_max}")
	if n_replicas == 1:
		return (float(beta_min),)
	return tuple(float(b) for b in np.geomspace(beta_min, beta_max, n_replicas))


def swap_exponent(beta_i: float, beta_j: float, score_i: Any, score_j: Any) -> float:
	return (beta_j - beta_i) * float(score_j - score_i)


def swap_probability(beta_i: float, beta_j: float, score_i: Any, score_j: Any) -> float:
	"""Acceptance probability of exchanging the replicas at β_i and β_j."""
	exponent = swap_exponent(beta_i, beta_j, score_i, score_j)
	if exponent >= 0:
		return 1.0
	return safe_exp(exponent)


def attempt_swap(beta_i: float, beta_j: float, score_i: Any, score_j: Any, rng: Generator) -> bool:
	"""Decide one exchange; deterministic when the exponent is >= 0."""
	exponent = swap_exponent(beta_i, beta_j, score_i, score_j)
	if exponent >= 0:
		return True
	return bool(rng.random() < safe_exp(exponent))


@dataclass(frozen=True)
class ParallelTemperingConfig(LocalSearchConfig):
	"""
	Attributes:
		betas: Inverse temperature of each replica, ascending
		update_frequency: Metropolis iterations per replica per round

	n_trials is the number of trials per Metropolis iteration of each
	replica; n_workers bounds how many replicas run at once.
	"""
	betas: tuple[float, ...] = (0.1, 1.0, 10.0)
	update_frequency: int = 10

	def __post_init__(self):
		super().__post_init__()
		object.__setattr__(self, "betas", tuple(float(b) for b in self.betas))
		if not self.betas:
			raise ValueError("betas must not be empty")
		if any(not b > 0 for b in self.betas):
			raise ValueError(f"betas must all be > 0, got {self.betas}")
		if self.update_frequency < 1:
			raise ValueError(f"update_frequency must be >= 1, got {self.update_frequency}")


class ParallelTemperingOptimizer(LocalSearchOptimizer):
	"""
	Replica-exchange Monte Carlo over a fixed β ladder.

	Usage:
		optimizer = ParallelTemperingOptimizer.with_geometric_betas(
			n_replicas=6, beta_min=1e-2, beta_max=1e2,
			config=ParallelTemperingConfig(patience=50, n_trials=10, update_frequency=5),
		)
		result = optimizer.run(model, n_iter=200)
	"""

	config_class = ParallelTemperingConfig

	@property
	def name(self) -> str:
		return "ParallelTempering"

	@classmethod
	def with_geometric_betas(
		cls,
		n_replicas: int,
		beta_min: float,
		beta_max: float,
		config: Optional[ParallelTemperingConfig] = None,
		seed: Optional[int] = None,
		logger: Optional[Callable[[str], None]] = None,
		log_level: int = logging.WARNING,
	) -> "ParallelTemperingOptimizer":
		"""Optimizer whose ladder is geometrically spaced from beta_min to beta_max."""
		config = config if config is not None else ParallelTemperingConfig()
		return cls(
			config=replace(config, betas=geometric_betas(n_replicas, beta_min, beta_max)),
			seed=seed,
			logger=logger,
			log_level=log_level,
		)

	def with_tuned_betas(
		self,
		model: OptModel,
		initial_solution_and_score: Optional[tuple[Any, Any]],
		n_warmup: int,
		target_max_prob: float,
		target_min_prob: float,
	) -> "ParallelTemperingOptimizer":
		"""
		Copy with a geometric ladder calibrated from warm-up samples.

		The hottest replica accepts an average uphill move with
		target_max_prob, the coldest with target_min_prob. Without uphill
		samples the ladder is left unchanged.
		"""
		energy_diffs = gather_energy_diffs(
			model, initial_solution_and_score, n_warmup, np.random.default_rng(self._seed),
		)
		if not energy_diffs:
			self._log.debug(f"[{self.name}] No uphill samples in warm-up, keeping betas")
			return self
		beta_hot = calculate_beta_from_acceptance_prob(energy_diffs, target_max_prob)
		beta_cold = calculate_beta_from_acceptance_prob(energy_diffs, target_min_prob)
		betas = geometric_betas(len(self._config.betas), beta_hot, beta_cold)
		self._log.debug(f"[{self.name}] Tuned betas={', '.join(f'{b:.4g}' for b in betas)}")
		return self.with_config(betas=betas)

	def _replica_optimizers(self) -> list[MetropolisOptimizer]:
		cfg = self._config
		optimizers = []
		for beta in cfg.betas:
			inner = MetropolisOptimizer(
				MetropolisConfig(
					patience=None,
					n_trials=cfg.n_trials,
					return_iter=None,
					n_workers=1,
					window_size=cfg.window_size,
					beta=beta,
				),
				seed=self._seed,
				logger=self._logger,
				log_level=self._log_level,
			)
			inner._log = self._log
			optimizers.append(inner)
		return optimizers

	def _swap_sweep(self, replicas: list[tuple[Any, Any]], betas: Sequence[float], rng: Generator) -> int:
		"""Attempt swaps of adjacent replicas in ascending β order. Returns the number of swaps."""
		n_swaps = 0
		for i in range(len(replicas) - 1):
			if attempt_swap(betas[i], betas[i + 1], replicas[i][1], replicas[i + 1][1], rng):
				replicas[i], replicas[i + 1] = replicas[i + 1], replicas[i]
				n_swaps += 1
		return n_swaps

	def step(
		self,
		model: OptModel,
		initial_solution: Any,
		initial_score: Any,
		n_iter: int,
		time_limit: float = math.inf,
		callback: Optional[OptCallbackFn] = None,
		rng: Optional[Generator] = None,
	) -> StepResult:
		cfg = self._config
		rng = self._make_rng(rng)
		start_time = time.monotonic()
		n_replicas = len(cfg.betas)
		replica_optimizers = self._replica_optimizers()

		best_solution = initial_solution
		best_score = validate_score(initial_score)
		replicas = [(model.clone_solution(initial_solution), best_score) for _ in range(n_replicas)]

		accepted_count = 0
		rejected_count = 0
		acceptance_ratio = 0.0
		return_stagnation_counter = 0
		patience_stagnation_counter = 0
		iterations_done = 0
		stop_reason = StopReason.MAX_ITERATIONS

		with TrialPool(cfg.resolved_workers(n_replicas)) as pool:
			while iterations_done < n_iter:
				elapsed = time.monotonic() - start_time
				if elapsed >= time_limit:
					stop_reason = StopReason.TIME_LIMIT
					self._log.debug(f"[{self.name}] Time limit reached at iter {iterations_done}")
					break

				n_steps = min(cfg.update_frequency, n_iter - iterations_done)
				remaining = time_limit - elapsed
				replica_rngs = rng.spawn(n_replicas)

				def _run_replica(idx: int) -> StepResult:
					solution, score = replicas[idx]
					return replica_optimizers[idx].step(
						model, solution, score, n_steps, remaining, rng=replica_rngs[idx],
					)

				results = pool.map(_run_replica, list(range(n_replicas)))
				iterations_done += n_steps

				round_best = min(results, key=lambda r: r.best_score)
				if round_best.best_score < best_score:
					best_solution = round_best.best_solution
					best_score = round_best.best_score
					return_stagnation_counter = 0
					patience_stagnation_counter = 0
				else:
					return_stagnation_counter += n_steps
					patience_stagnation_counter += n_steps

				accepted_count += sum(r.accepted_count for r in results)
				rejected_count += sum(r.rejected_count for r in results)
				acceptance_ratio = sum(r.acceptance_ratio for r in results) / n_replicas
				replicas = [(r.last_solution, r.last_score) for r in results]

				if limit_reached(return_stagnation_counter, cfg.return_iter):
					idx = int(rng.integers(n_replicas))
					replicas[idx] = (model.clone_solution(best_solution), best_score)
					return_stagnation_counter = 0

				if limit_reached(patience_stagnation_counter, cfg.patience):
					stop_reason = StopReason.PATIENCE
					self._log.debug(
						f"[{self.name}] No improvement for {patience_stagnation_counter} iterations, "
						f"stopping at iter {iterations_done}"
					)
					break

				if any(r.stop_reason == StopReason.TIME_LIMIT for r in results):
					stop_reason = StopReason.TIME_LIMIT
					break

				n_swaps = self._swap_sweep(replicas, cfg.betas, rng)
				self._log.trace(
					f"[{self.name}] iter {iterations_done}: swaps={n_swaps}/{n_replicas - 1}, "
					f"acc={acceptance_ratio:.3f}, best={best_score}"
				)

				if callback is not None:
					callback(OptProgress(iterations_done, acceptance_ratio, best_solution, best_score))

		# The coldest replica is the chain's current answer
		last_solution, last_score = replicas[-1]
		return StepResult(
			best_solution=best_solution,
			best_score=best_score,
			last_solution=last_solution,
			last_score=last_score,
			accepted_count=accepted_count,
			rejected_count=rejected_count,
			acceptance_ratio=acceptance_ratio,
			iterations_run=iterations_done,
			stop_reason=stop_reason,
		)

	def optimize(
		self,
		model: OptModel,
		initial_solution: Any,
		initial_score: Any,
		n_iter: int,
		time_limit: float = math.inf,
		callback: Optional[OptCallbackFn] = None,
		rng: Optional[Generator] = None,
	) -> OptimizerResult:
		self._log.info(
			f"[{self.name}] Start: initial score={initial_score}, n_iter={n_iter}, "
			f"replicas={len(self._config.betas)}"
		)
		result = self.step(model, initial_solution, initial_score, n_iter, time_limit, callback, rng)
		return self._finish(
			result.best_solution,
			result.best_score,
			result.iterations_run,
			result.acceptance_ratio,
			result.stop_reason,
		)
