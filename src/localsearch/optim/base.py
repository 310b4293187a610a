"""
Base classes shared by all local search optimizers.

- LocalSearchConfig: immutable settings every optimizer has
  (patience, n_trials, return_iter, worker count, acceptance window)
- StepResult / OptimizerResult: what a run produces
- TrialPool / generate_trials: the fork-join worker pool that evaluates
  trial solutions in parallel, each with its own random stream
- LocalSearchOptimizer: abstract optimizer with the run() driver
  (random start, preprocess, optimize, postprocess)
"""

import logging
import math
import os
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

import numpy as np
from numpy.random import Generator

from localsearch.enums import StopReason
from localsearch.errors import PreprocessError, RandomGenerationError
from localsearch.logger import OptimizationLogger
from localsearch.model import OptModel, validate_score
from localsearch.progress import OptCallbackFn

S = TypeVar('S')

# (current_score, trial_score) -> acceptance probability in [0, 1]
TransitionProbabilityFn = Callable[[Any, Any], float]

# Largest argument passed to math.exp before clamping
MAX_EXP_ARG = 700.0


def safe_exp(x: float) -> float:
	"""math.exp that saturates instead of raising OverflowError."""
	return math.exp(min(x, MAX_EXP_ARG))


def limit_reached(counter: int, limit: Optional[int]) -> bool:
	"""True if `limit` is set and `counter` has reached it. None means never."""
	return limit is not None and counter >= limit


@dataclass(frozen=True)
class LocalSearchConfig:
	"""
	Settings shared by all optimizers.

	Attributes:
		patience: Give up after this many iterations without improving the
			best score (None = never)
		n_trials: Trial solutions generated and evaluated per iteration
		return_iter: Jump back to the best solution after this many
			iterations without improvement (None = never)
		n_workers: Worker threads for trial evaluation
			(None = min(n_trials, cpu count), 1 = serial)
		window_size: Size of the rolling acceptance window
	"""
	patience: Optional[int] = 1000
	n_trials: int = 16
	return_iter: Optional[int] = None
	n_workers: Optional[int] = None
	window_size: int = 100

	def __post_init__(self):
		if self.n_trials < 1:
			raise ValueError(f"n_trials must be >= 1, got {self.n_trials}")
		if self.patience is not None and self.patience < 1:
			raise ValueError(f"patience must be >= 1 or None, got {self.patience}")
		if self.return_iter is not None and self.return_iter < 1:
			raise ValueError(f"return_iter must be >= 1 or None, got {self.return_iter}")
		if self.n_workers is not None and self.n_workers < 1:
			raise ValueError(f"n_workers must be >= 1 or None, got {self.n_workers}")
		if self.window_size < 1:
			raise ValueError(f"window_size must be >= 1, got {self.window_size}")

	def resolved_workers(self, n_tasks: Optional[int] = None) -> int:
		"""Number of worker threads to use for `n_tasks` parallel tasks."""
		n_tasks = self.n_trials if n_tasks is None else n_tasks
		if self.n_workers is not None:
			return min(self.n_workers, max(1, n_tasks))
		return max(1, min(n_tasks, os.cpu_count() or 1))


@dataclass
class StepResult(Generic[S]):
	"""
	Result of one run of an inner search loop.

	Attributes:
		best_solution: Best solution found
		best_score: Score of best_solution
		last_solution: Current solution when the loop ended
		last_score: Score of last_solution
		accepted_count: Number of accepted transitions
		rejected_count: Number of rejected transitions
		acceptance_ratio: Accepted fraction over the rolling window at the end
		iterations_run: Iterations actually executed
		stop_reason: Why the loop ended
	"""
	best_solution: S
	best_score: Any
	last_solution: S
	last_score: Any
	accepted_count: int = 0
	rejected_count: int = 0
	acceptance_ratio: float = 0.0
	iterations_run: int = 0
	stop_reason: StopReason = StopReason.MAX_ITERATIONS


@dataclass
class OptimizerResult(Generic[S]):
	"""
	Result of an optimization run.

	Unpacks as (best_solution, best_score):
		solution, score = optimizer.run(model, n_iter=1000)
	"""
	best_solution: S
	best_score: Any
	iterations_run: int
	method_name: str
	acceptance_ratio: float = 0.0
	stop_reason: StopReason = StopReason.MAX_ITERATIONS

	def __iter__(self) -> Iterator[Any]:
		yield self.best_solution
		yield self.best_score

	def __repr__(self) -> str:
		return (
			f"OptimizerResult("
			f"method={self.method_name}, "
			f"best_score={self.best_score}, "
			f"iterations={self.iterations_run}, "
			f"stop={self.stop_reason.name})"
		)


class TrialPool:
	"""
	Fixed-size worker pool for fork-join evaluation.

	map() blocks until every task has finished and returns results in
	submission order. With one worker, tasks run inline.
	"""

	def __init__(self, n_workers: int):
		self._n_workers = max(1, n_workers)
		self._executor: Optional[ThreadPoolExecutor] = None

	@property
	def n_workers(self) -> int:
		return self._n_workers

	def __enter__(self) -> "TrialPool":
		if self._n_workers > 1:
			self._executor = ThreadPoolExecutor(max_workers=self._n_workers)
		return self

	def __exit__(self, exc_type, exc, tb) -> None:
		if self._executor is not None:
			self._executor.shutdown(wait=True)
			self._executor = None

	def map(self, fn: Callable[[Any], Any], items: list) -> list:
		if self._executor is None or len(items) <= 1:
			return [fn(item) for item in items]
		return list(self._executor.map(fn, items))


def generate_trials(
	model: OptModel,
	pool: TrialPool,
	current_solution: Any,
	current_score: Any,
	n_trials: int,
	rng: Generator,
) -> list[tuple[Any, Any, Any]]:
	"""
	Generate `n_trials` trials from the current solution in parallel.

	Each trial gets its own Generator spawned from `rng` and its own copy of
	the current solution. Returns (solution, transition, score) tuples in
	spawn order.
	"""
	trial_rngs = rng.spawn(n_trials)

	def _trial(trial_rng: Generator) -> tuple[Any, Any, Any]:
		solution, transition, score = model.generate_trial_solution(
			model.clone_solution(current_solution), current_score, trial_rng,
		)
		return solution, transition, validate_score(score)

	return pool.map(_trial, trial_rngs)


class LocalSearchOptimizer(ABC, Generic[S]):
	"""
	Abstract base class for local search optimizers.

	Subclasses must implement:
	- optimize(): The optimization loop starting from a given solution
	- name property

	Usage:
		optimizer = HillClimbingOptimizer(LocalSearchConfig(patience=500, n_trials=20), seed=0)
		result = optimizer.run(model, n_iter=10_000, time_limit=10.0)
		print(result.best_score)
	"""

	config_class: type = LocalSearchConfig

	def __init__(
		self,
		config: Optional[LocalSearchConfig] = None,
		seed: Optional[int] = None,
		logger: Optional[Callable[[str], None]] = None,
		log_level: int = logging.WARNING,
	):
		self._config = config if config is not None else self.config_class()
		self._seed = seed
		self._logger = logger
		self._log_level = log_level
		self._log = OptimizationLogger(self.name, level=log_level, file_logger=logger)

	@property
	def config(self) -> LocalSearchConfig:
		return self._config

	@property
	def seed(self) -> Optional[int]:
		return self._seed

	@property
	@abstractmethod
	def name(self) -> str:
		"""Return the optimizer name."""
		...

	def with_config(self, **changes) -> "LocalSearchOptimizer":
		"""Return a new optimizer of the same kind with config fields replaced."""
		return type(self)(
			config=replace(self._config, **changes),
			seed=self._seed,
			logger=self._logger,
			log_level=self._log_level,
		)

	def _make_rng(self, rng: Optional[Generator] = None) -> Generator:
		"""Per-run generator: the given one, or a fresh one from the seed."""
		return rng if rng is not None else np.random.default_rng(self._seed)

	@abstractmethod
	def optimize(
		self,
		model: OptModel,
		initial_solution: S,
		initial_score: Any,
		n_iter: int,
		time_limit: float = math.inf,
		callback: Optional[OptCallbackFn] = None,
		rng: Optional[Generator] = None,
	) -> OptimizerResult[S]:
		"""
		Run the optimization from a given solution.

		Args:
			model: The model to optimize
			initial_solution: Starting solution
			initial_score: Score of initial_solution
			n_iter: Maximum iterations
			time_limit: Wall-clock budget in seconds, checked between iterations
			callback: Invoked once per outer iteration with OptProgress
			rng: Random generator (default: fresh generator from the seed)

		Returns:
			OptimizerResult with the best solution and run statistics
		"""
		...

	def run(
		self,
		model: OptModel,
		initial_solution_and_score: Optional[tuple[S, Any]] = None,
		n_iter: int = 10_000,
		time_limit: float = math.inf,
		callback: Optional[OptCallbackFn] = None,
	) -> OptimizerResult[S]:
		"""
		Full run: random start if needed, preprocess, optimize, postprocess.

		Raises:
			RandomGenerationError: The model could not generate a start solution
			PreprocessError: preprocess_solution failed
		"""
		rng = self._make_rng()
		if initial_solution_and_score is None:
			try:
				initial_solution, initial_score = model.generate_random_solution(rng)
			except Exception as e:
				raise RandomGenerationError(f"Failed to generate random solution: {e}") from e
		else:
			initial_solution, initial_score = initial_solution_and_score

		try:
			initial_solution, initial_score = model.preprocess_solution(initial_solution, initial_score)
		except Exception as e:
			raise PreprocessError(f"Preprocessing failed: {e}") from e
		validate_score(initial_score)

		result = self.optimize(
			model,
			initial_solution,
			initial_score,
			n_iter,
			time_limit=time_limit,
			callback=callback,
			rng=rng,
		)

		result.best_solution, result.best_score = model.postprocess_solution(
			result.best_solution, result.best_score,
		)
		return result

	def _finish(
		self,
		best_solution: S,
		best_score: Any,
		iterations_run: int,
		acceptance_ratio: float,
		stop_reason: StopReason,
	) -> OptimizerResult[S]:
		"""Build the result and log the run summary."""
		self._log.info(
			f"[{self.name}] Finished after {iterations_run} iterations "
			f"({stop_reason.name}): best={best_score}, acc={acceptance_ratio:.3f}"
		)
		return OptimizerResult(
			best_solution=best_solution,
			best_score=best_score,
			iterations_run=iterations_run,
			method_name=self.name,
			acceptance_ratio=acceptance_ratio,
			stop_reason=stop_reason,
		)

	def __repr__(self) -> str:
		return f"{self.__class__.__name__}(config={self._config}, seed={self._seed})"
