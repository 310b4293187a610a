"""
Population annealing.

A population of solutions is annealed together at a shared inverse
temperature β. Each round:
1. Every member runs Metropolis at β for update_frequency iterations
   (members in parallel, each with its own random stream)
2. The global best is updated from all members
3. Return-to-best replaces a random member with the best solution
4. β is multiplied by cooling_rate
5. The population is resampled with replacement, member i being drawn
   with probability ∝ exp(-β·score_i)
"""

import math
import time
from dataclasses import dataclass
from typing import Any, Optional

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
	generate_trials,
	limit_reached,
)
from localsearch.optim.metropolis import MetropolisConfig, MetropolisOptimizer, tune_beta
from localsearch.optim.simulated_annealing import DEFAULT_FINAL_BETA, tune_cooling_rate
from localsearch.progress import OptCallbackFn, OptProgress

# Smallest unnormalized resampling weight
MIN_WEIGHT = 1e-8


def resampling_weights(scores: list[Any], beta: float) -> np.ndarray:
	"""
	Normalized Boltzmann weights exp(-β·score) of a population.

	Scores are shifted by their minimum before exponentiating (same
	distribution, no underflow) and each weight is floored at 1e-8.
	"""
	scores_arr = np.asarray(scores, dtype=float)
	weights = np.exp(-beta * (scores_arr - scores_arr.min()))
	weights = np.maximum(weights, MIN_WEIGHT)
	return weights / weights.sum()


def resample_population(population: list[tuple[Any, Any]], beta: float, rng: Generator) -> list[tuple[Any, Any]]:
	"""
	Resample (solution, score) members with replacement by Boltzmann weight.

	Duplicated members share the same solution object; solutions are never
	mutated in place by the optimizers.
	"""
	weights = resampling_weights([score for _, score in population], beta)
	indices = rng.choice(len(population), size=len(population), replace=True, p=weights)
	return [population[i] for i in indices]


@dataclass(frozen=True)
class PopulationAnnealingConfig(LocalSearchConfig):
	"""
	Attributes:
		initial_beta: Shared inverse temperature of the first round
		cooling_rate: Factor β is multiplied by after each round
		update_frequency: Metropolis iterations per member per round
		population_size: Number of members

	n_trials is the number of trials per Metropolis iteration of each
	member; n_workers bounds how many members run at once.
	"""
	initial_beta: float = 1.0
	cooling_rate: float = 1.01
	update_frequency: int = 100
	population_size: int = 32

	def __post_init__(self):
		super().__post_init__()
		if not self.initial_beta > 0:
			raise ValueError(f"initial_beta must be > 0, got {self.initial_beta}")
		if not self.cooling_rate > 0:
			raise ValueError(f"cooling_rate must be > 0, got {self.cooling_rate}")
		if self.update_frequency < 1:
			raise ValueError(f"update_frequency must be >= 1, got {self.update_frequency}")
		if self.population_size < 1:
			raise ValueError(f"population_size must be >= 1, got {self.population_size}")


class PopulationAnnealingOptimizer(LocalSearchOptimizer):
	"""
	Population annealing with Boltzmann resampling.

	Usage:
		optimizer = (
			PopulationAnnealingOptimizer(PopulationAnnealingConfig(population_size=32), seed=0)
			.with_tuned_temperature(model, None, n_warmup=1000, target_initial_prob=0.8)
			.with_tuned_cooling_rate(n_iter=5000)
		)
		result = optimizer.run(model, n_iter=5000)
	"""

	config_class = PopulationAnnealingConfig

	@property
	def name(self) -> str:
		return "PopulationAnnealing"

	def with_tuned_temperature(
		self,
		model: OptModel,
		initial_solution_and_score: Optional[tuple[Any, Any]],
		n_warmup: int,
		target_initial_prob: float,
	) -> "PopulationAnnealingOptimizer":
		"""Copy with initial_beta calibrated to accept uphill moves with target_initial_prob."""
		beta = tune_beta(
			model, initial_solution_and_score, n_warmup, target_initial_prob, np.random.default_rng(self._seed),
		)
		self._log.debug(f"[{self.name}] Tuned initial_beta={beta:.6g}")
		return self.with_config(initial_beta=beta)

	def with_tuned_cooling_rate(self, n_iter: int, final_beta: float = DEFAULT_FINAL_BETA) -> "PopulationAnnealingOptimizer":
		"""Copy with cooling_rate set so β reaches final_beta after n_iter iterations."""
		cfg = self._config
		n_rounds = max(1, n_iter // cfg.update_frequency)
		cooling_rate = tune_cooling_rate(cfg.initial_beta, final_beta, n_rounds)
		self._log.debug(f"[{self.name}] Tuned cooling_rate={cooling_rate:.6g}")
		return self.with_config(cooling_rate=cooling_rate)

	def _member_optimizer(self, beta: float) -> MetropolisOptimizer:
		cfg = self._config
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
		return inner

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

		best_solution = initial_solution
		best_score = validate_score(initial_score)

		beta = cfg.initial_beta
		accepted_count = 0
		rejected_count = 0
		acceptance_ratio = 0.0
		return_stagnation_counter = 0
		patience_stagnation_counter = 0
		iterations_done = 0
		stop_reason = StopReason.MAX_ITERATIONS

		with TrialPool(cfg.resolved_workers(cfg.population_size)) as pool:
			population = [
				(solution, score)
				for solution, _, score in generate_trials(
					model, pool, initial_solution, best_score, cfg.population_size, rng,
				)
			]
			for solution, score in population:
				if score < best_score:
					best_solution = solution
					best_score = score

			while iterations_done < n_iter:
				elapsed = time.monotonic() - start_time
				if elapsed >= time_limit:
					stop_reason = StopReason.TIME_LIMIT
					self._log.debug(f"[{self.name}] Time limit reached at iter {iterations_done}")
					break

				n_steps = min(cfg.update_frequency, n_iter - iterations_done)
				remaining = time_limit - elapsed
				member_optimizer = self._member_optimizer(beta)
				member_rngs = rng.spawn(len(population))

				def _run_member(args: tuple[tuple[Any, Any], Generator]) -> StepResult:
					(solution, score), member_rng = args
					return member_optimizer.step(model, solution, score, n_steps, remaining, rng=member_rng)

				results = pool.map(_run_member, list(zip(population, member_rngs)))
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
				acceptance_ratio = sum(r.acceptance_ratio for r in results) / len(results)
				population = [(r.last_solution, r.last_score) for r in results]

				if limit_reached(return_stagnation_counter, cfg.return_iter):
					idx = int(rng.integers(len(population)))
					population[idx] = (model.clone_solution(best_solution), best_score)
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

				beta *= cfg.cooling_rate
				population = resample_population(population, beta, rng)
				self._log.trace(
					f"[{self.name}] iter {iterations_done}: beta={beta:.6g}, acc={acceptance_ratio:.3f}, "
					f"best={best_score}"
				)

				if callback is not None:
					callback(OptProgress(iterations_done, acceptance_ratio, best_solution, best_score))

		last_solution, last_score = min(population, key=lambda member: member[1])
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
			f"population={self._config.population_size}"
		)
		result = self.step(model, initial_solution, initial_score, n_iter, time_limit, callback, rng)
		return self._finish(
			result.best_solution,
			result.best_score,
			result.iterations_run,
			result.acceptance_ratio,
			result.stop_reason,
		)
