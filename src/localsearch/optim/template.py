"""
Template Method base for chunked annealing optimizers.

Simulated annealing, adaptive annealing and re-annealing all run an inner
search for a chunk of iterations at fixed parameters, then update those
parameters (β, schedule position) and repeat. The chunk loop and its
bookkeeping live here; subclasses override the hooks.

Per chunk:
1. Stop if the time limit is exhausted
2. Run the inner search for min(chunk size, remaining) iterations
3. Update the best solution; stagnation counters advance by the number of
   iterations run, and reset on strict improvement
4. Continue from the inner search's last solution
5. Return to the best solution after return_iter stagnant iterations
6. Stop after patience stagnant iterations
7. Update the annealing state
8. Invoke the callback with the number of iterations completed
"""

import math
import time
from abc import abstractmethod
from contextlib import nullcontext
from typing import Any, Optional

from numpy.random import Generator

from localsearch.enums import StopReason
from localsearch.model import OptModel, validate_score
from localsearch.optim.base import LocalSearchOptimizer, OptimizerResult, StepResult, TrialPool, limit_reached
from localsearch.optim.metropolis import MetropolisConfig, MetropolisOptimizer
from localsearch.progress import OptCallbackFn, OptProgress


class ChunkedAnnealingTemplate(LocalSearchOptimizer):
	"""
	Base class for optimizers that anneal in chunks of iterations.

	Subclasses MUST implement:
	- _chunk_size(): Iterations per chunk
	- _initial_state(): Annealing state at the start of a run
	- _run_chunk(): Inner search for one chunk

	Subclasses MAY override:
	- _update_state(): Annealing state after a chunk (default: unchanged)
	"""

	@abstractmethod
	def _chunk_size(self) -> int:
		...

	@abstractmethod
	def _initial_state(
		self,
		model: OptModel,
		initial_solution: Any,
		initial_score: Any,
		n_iter: int,
		rng: Generator,
	) -> Any:
		...

	@abstractmethod
	def _run_chunk(
		self,
		model: OptModel,
		state: Any,
		solution: Any,
		score: Any,
		n_steps: int,
		time_limit: float,
		rng: Generator,
		pool: TrialPool,
	) -> StepResult:
		"""Inner search for one chunk, evaluating trials on `pool`."""
		...

	def _update_state(self, state: Any, iterations_done: int, n_iter: int, step_result: StepResult) -> Any:
		return state

	def _metropolis(self, beta: float) -> MetropolisOptimizer:
		"""Inner Metropolis search at β, with patience and return-to-best left to the caller."""
		cfg = self._config
		inner = MetropolisOptimizer(
			MetropolisConfig(
				patience=None,
				n_trials=cfg.n_trials,
				return_iter=None,
				n_workers=cfg.n_workers,
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
		pool: Optional[TrialPool] = None,
	) -> StepResult:
		cfg = self._config
		rng = self._make_rng(rng)
		start_time = time.monotonic()
		chunk_size = self._chunk_size()

		current_solution = initial_solution
		current_score = validate_score(initial_score)
		best_solution = current_solution
		best_score = current_score

		state = self._initial_state(model, current_solution, current_score, n_iter, rng)

		accepted_count = 0
		rejected_count = 0
		acceptance_ratio = 0.0
		return_stagnation_counter = 0
		patience_stagnation_counter = 0
		iterations_done = 0
		stop_reason = StopReason.MAX_ITERATIONS

		with nullcontext(pool) if pool is not None else TrialPool(cfg.resolved_workers()) as pool:
			while iterations_done < n_iter:
				elapsed = time.monotonic() - start_time
				if elapsed >= time_limit:
					stop_reason = StopReason.TIME_LIMIT
					self._log.debug(f"[{self.name}] Time limit reached at iter {iterations_done}")
					break

				n_steps = min(chunk_size, n_iter - iterations_done)
				result = self._run_chunk(
					model, state, current_solution, current_score, n_steps, time_limit - elapsed, rng, pool,
				)
				if result.iterations_run == 0:
					stop_reason = StopReason.TIME_LIMIT
					break
				iterations_done += result.iterations_run
				accepted_count += result.accepted_count
				rejected_count += result.rejected_count
				acceptance_ratio = result.acceptance_ratio

				if result.best_score < best_score:
					best_solution = result.best_solution
					best_score = result.best_score
					return_stagnation_counter = 0
					patience_stagnation_counter = 0
				else:
					return_stagnation_counter += result.iterations_run
					patience_stagnation_counter += result.iterations_run

				current_solution = result.last_solution
				current_score = result.last_score

				if limit_reached(return_stagnation_counter, cfg.return_iter):
					current_solution = model.clone_solution(best_solution)
					current_score = best_score
					return_stagnation_counter = 0

				if limit_reached(patience_stagnation_counter, cfg.patience):
					stop_reason = StopReason.PATIENCE
					self._log.debug(
						f"[{self.name}] No improvement for {patience_stagnation_counter} iterations, "
						f"stopping at iter {iterations_done}"
					)
					break

				if result.stop_reason == StopReason.TIME_LIMIT:
					stop_reason = StopReason.TIME_LIMIT
					break

				state = self._update_state(state, iterations_done, n_iter, result)

				if callback is not None:
					callback(OptProgress(iterations_done, acceptance_ratio, best_solution, best_score))

		return StepResult(
			best_solution=best_solution,
			best_score=best_score,
			last_solution=current_solution,
			last_score=current_score,
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
		self._log.info(f"[{self.name}] Start: initial score={initial_score}, n_iter={n_iter}")
		result = self.step(model, initial_solution, initial_score, n_iter, time_limit, callback, rng)
		return self._finish(
			result.best_solution,
			result.best_score,
			result.iterations_run,
			result.acceptance_ratio,
			result.stop_reason,
		)
