"""
Generic acceptance-driven local search.

Every probabilistic strategy (hill climbing, epsilon-greedy, Metropolis,
logistic/relative/Tsallis annealing, great deluge) is this loop with a
different transition probability function f(current_score, trial_score).
"""

import logging
import math
import time
from abc import abstractmethod
from contextlib import nullcontext
from dataclasses import replace
from typing import Any, Callable, Optional

from numpy.random import Generator

from localsearch.counter import AcceptanceCounter
from localsearch.enums import StopReason
from localsearch.model import OptModel, validate_score
from localsearch.optim.base import (
	LocalSearchConfig,
	LocalSearchOptimizer,
	OptimizerResult,
	StepResult,
	TransitionProbabilityFn,
	TrialPool,
	generate_trials,
	limit_reached,
)
from localsearch.progress import OptCallbackFn, OptProgress


class GenericLocalSearchOptimizer(LocalSearchOptimizer):
	"""
	Local search with a pluggable acceptance rule.

	Each iteration:
	1. Stop if the time limit is exhausted
	2. Generate n_trials trials in parallel, keep the lowest-scoring one
	3. Update the best solution on strict improvement, resetting both
	   stagnation counters; otherwise advance them
	4. Accept the trial if it improves on the current score, else with
	   probability f(current_score, trial_score)
	5. Record the outcome in the acceptance window
	6. Return to the best solution after return_iter stagnant iterations
	7. Stop after patience stagnant iterations
	8. Invoke the callback

	Usage:
		optimizer = GenericLocalSearchOptimizer(
			transition_fn=lambda current, trial: 0.1,
			config=LocalSearchConfig(patience=100, n_trials=8),
		)
		result = optimizer.optimize(model, solution, score, n_iter=1000)
	"""

	def __init__(
		self,
		transition_fn: TransitionProbabilityFn,
		config: Optional[LocalSearchConfig] = None,
		seed: Optional[int] = None,
		logger: Optional[Callable[[str], None]] = None,
		log_level: int = logging.WARNING,
	):
		super().__init__(config=config, seed=seed, logger=logger, log_level=log_level)
		self._transition_fn = transition_fn

	@property
	def name(self) -> str:
		return "GenericLocalSearch"

	@property
	def transition_fn(self) -> TransitionProbabilityFn:
		return self._transition_fn

	def with_config(self, **changes) -> "GenericLocalSearchOptimizer":
		return GenericLocalSearchOptimizer(
			self._transition_fn,
			config=replace(self._config, **changes),
			seed=self._seed,
			logger=self._logger,
			log_level=self._log_level,
		)

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
		"""
		Run the search loop and return both the best and the last solution.

		Composed optimizers call this repeatedly with patience and return_iter
		disabled and drive those themselves, passing an already open `pool`.
		"""
		cfg = self._config
		rng = self._make_rng(rng)
		start_time = time.monotonic()

		current_solution = initial_solution
		current_score = validate_score(initial_score)
		best_solution = current_solution
		best_score = current_score

		counter = AcceptanceCounter(cfg.window_size)
		accepted_count = 0
		rejected_count = 0
		# Separate stagnation counters: return-to-best and patience
		return_stagnation_counter = 0
		patience_stagnation_counter = 0
		iterations_run = 0
		stop_reason = StopReason.MAX_ITERATIONS

		with nullcontext(pool) if pool is not None else TrialPool(cfg.resolved_workers()) as pool:
			for it in range(n_iter):
				if time.monotonic() - start_time >= time_limit:
					stop_reason = StopReason.TIME_LIMIT
					self._log.debug(f"[{self._log.name}] Time limit reached at iter {it}")
					break
				iterations_run = it + 1

				trials = generate_trials(model, pool, current_solution, current_score, cfg.n_trials, rng)
				trial_solution, _, trial_score = min(trials, key=lambda t: t[2])

				if trial_score < best_score:
					best_solution = trial_solution
					best_score = trial_score
					return_stagnation_counter = 0
					patience_stagnation_counter = 0
				else:
					return_stagnation_counter += 1
					patience_stagnation_counter += 1

				if trial_score < current_score:
					accepted = True
				else:
					p = self._transition_fn(current_score, trial_score)
					accepted = p > rng.random()

				counter.enqueue(accepted)
				if accepted:
					current_solution = trial_solution
					current_score = trial_score
					accepted_count += 1
				else:
					rejected_count += 1

				if limit_reached(return_stagnation_counter, cfg.return_iter):
					current_solution = best_solution
					current_score = best_score
					return_stagnation_counter = 0

				if limit_reached(patience_stagnation_counter, cfg.patience):
					stop_reason = StopReason.PATIENCE
					self._log.debug(f"[{self._log.name}] No improvement for {cfg.patience} iterations, stopping at iter {it}")
					break

				if callback is not None:
					callback(OptProgress(it, counter.acceptance_ratio(), best_solution, best_score))

		return StepResult(
			best_solution=best_solution,
			best_score=best_score,
			last_solution=current_solution,
			last_score=current_score,
			accepted_count=accepted_count,
			rejected_count=rejected_count,
			acceptance_ratio=counter.acceptance_ratio(),
			iterations_run=iterations_run,
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
		self._log.info(f"[{self.name}] Start: initial score={initial_score}, n_iter={n_iter}")
		result = self.step(model, initial_solution, initial_score, n_iter, time_limit, callback, rng)
		return self._finish(
			result.best_solution,
			result.best_score,
			result.iterations_run,
			result.acceptance_ratio,
			result.stop_reason,
		)


class StepOptimizer(LocalSearchOptimizer):
	"""
	Optimizer whose whole run is a single step() call.

	optimize() logs the start, runs step() and summarizes the StepResult.
	"""

	@abstractmethod
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
		...

	def _generic(self, transition_fn: TransitionProbabilityFn) -> GenericLocalSearchOptimizer:
		generic = GenericLocalSearchOptimizer(
			transition_fn,
			config=self._config,
			seed=self._seed,
			logger=self._logger,
			log_level=self._log_level,
		)
		# Log under this optimizer's name
		generic._log = self._log
		return generic

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
		self._log.info(f"[{self.name}] Start: initial score={initial_score}, n_iter={n_iter}")
		result = self.step(model, initial_solution, initial_score, n_iter, time_limit, callback, rng)
		return self._finish(
			result.best_solution,
			result.best_score,
			result.iterations_run,
			result.acceptance_ratio,
			result.stop_reason,
		)


class DelegatingOptimizer(StepOptimizer):
	"""
	Optimizer whose whole run is one GenericLocalSearchOptimizer loop.

	Subclasses provide the transition probability function via
	_transition_fn(); step() builds the generic loop with this optimizer's
	config, seed and logger and runs it.
	"""

	@abstractmethod
	def _transition_fn(self) -> TransitionProbabilityFn:
		...

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
		return self._generic(self._transition_fn()).step(
			model, initial_solution, initial_score, n_iter, time_limit, callback, rng, pool
		)
