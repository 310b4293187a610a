"""
Tabu search.

Replaces the probabilistic acceptance rule with a short-term memory of
recent moves:
- Trials are ranked by score
- The first trial that beats the best score (aspiration) or whose move is
  not tabu is accepted, even if it is worse than the current solution
- The accepted move is always recorded in the tabu list
- When every trial is tabu the iteration is a no-op
"""

import logging
import math
import operator
import time
from abc import ABC, abstractmethod
from contextlib import nullcontext
from dataclasses import dataclass, replace
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
	TrialPool,
	generate_trials,
	limit_reached,
)
from localsearch.progress import OptCallbackFn, OptProgress
from localsearch.utils import RingBuffer


class TabuList(ABC):
	"""
	Memory of recent moves.

	Items are (solution, transition) pairs as produced by the model's
	generate_trial_solution. Implementations decide what part of an item
	they remember and how items are matched.
	"""

	@abstractmethod
	def contains(self, item: tuple[Any, Any]) -> bool:
		"""True if the move is tabu."""
		...

	@abstractmethod
	def append(self, item: tuple[Any, Any]) -> None:
		"""Record an accepted move, evicting the oldest entries when full."""
		...

	def __contains__(self, item: tuple[Any, Any]) -> bool:
		return self.contains(item)


class TransitionTabuList(TabuList):
	"""
	FIFO tabu list over transitions.

	An item is tabu if match_fn(its transition, remembered transition) is
	true for any remembered transition (default: equality).

	Usage:
		# Quadratic model transitions are (coordinate, old_value, new_value)
		tabu_list = TransitionTabuList(
			10,
			match_fn=lambda t, r: t[0] == r[0] and abs(t[2] - r[1]) < 0.005,
		)
	"""

	def __init__(self, capacity: int, match_fn: Callable[[Any, Any], bool] = operator.eq):
		self._buff: RingBuffer = RingBuffer(capacity)
		self._match_fn = match_fn

	@property
	def capacity(self) -> int:
		return self._buff.capacity

	def contains(self, item: tuple[Any, Any]) -> bool:
		_, transition = item
		return any(self._match_fn(transition, remembered) for remembered in self._buff)

	def append(self, item: tuple[Any, Any]) -> None:
		_, transition = item
		self._buff.append(transition)

	def __len__(self) -> int:
		return len(self._buff)

	def __repr__(self) -> str:
		return f"TransitionTabuList(capacity={self.capacity}, size={len(self)})"


def find_accepted_solution(
	samples: list[tuple[Any, Any, Any]],
	tabu_list: TabuList,
	best_score: Any,
) -> Optional[tuple[Any, Any, Any]]:
	"""
	First sample, in the given order, that beats best_score or is not tabu.

	Args:
		samples: (solution, transition, score) tuples sorted by score
		tabu_list: Current tabu list
		best_score: Best score so far (aspiration threshold)

	Returns:
		The accepted (solution, transition, score), or None if all are tabu
	"""
	for solution, transition, score in samples:
		if score < best_score:
			return solution, transition, score
		if not tabu_list.contains((solution, transition)):
			return solution, transition, score
	return None


@dataclass
class TabuStepResult(StepResult):
	"""StepResult plus the tabu list the run filled."""
	tabu_list: Optional[TabuList] = None


@dataclass(frozen=True)
class TabuSearchConfig(LocalSearchConfig):
	"""
	Attributes:
		tabu_size: Capacity of the default TransitionTabuList
	"""
	tabu_size: int = 10

	def __post_init__(self):
		super().__post_init__()
		if self.tabu_size < 1:
			raise ValueError(f"tabu_size must be >= 1, got {self.tabu_size}")


class TabuSearchOptimizer(LocalSearchOptimizer):
	"""
	Tabu search over the model's trial moves.

	A fresh tabu list is created for every run by tabu_list_factory
	(default: TransitionTabuList(tabu_size) with equality matching).
	step() returns the list it filled on TabuStepResult.tabu_list.

	Usage:
		optimizer = TabuSearchOptimizer(
			TabuSearchConfig(patience=1000, n_trials=25, return_iter=5),
			tabu_list_factory=lambda: EdgeTabuList(20),
		)
		result = optimizer.run(model, n_iter=10_000)
	"""

	config_class = TabuSearchConfig

	def __init__(
		self,
		config: Optional[TabuSearchConfig] = None,
		seed: Optional[int] = None,
		logger: Optional[Callable[[str], None]] = None,
		log_level: int = logging.WARNING,
		tabu_list_factory: Optional[Callable[[], TabuList]] = None,
	):
		super().__init__(config=config, seed=seed, logger=logger, log_level=log_level)
		self._tabu_list_factory = tabu_list_factory

	@property
	def name(self) -> str:
		return "TabuSearch"

	def with_config(self, **changes) -> "TabuSearchOptimizer":
		return TabuSearchOptimizer(
			config=replace(self._config, **changes),
			seed=self._seed,
			logger=self._logger,
			log_level=self._log_level,
			tabu_list_factory=self._tabu_list_factory,
		)

	def create_tabu_list(self) -> TabuList:
		if self._tabu_list_factory is not None:
			return self._tabu_list_factory()
		return TransitionTabuList(self._config.tabu_size)

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
		tabu_list: Optional[TabuList] = None,
	) -> TabuStepResult:
		"""
		Run the tabu loop. A caller-supplied tabu_list is filled in place,
		otherwise a fresh one is created for this run.
		"""
		cfg = self._config
		rng = self._make_rng(rng)
		tabu_list = tabu_list if tabu_list is not None else self.create_tabu_list()
		start_time = time.monotonic()

		current_solution = initial_solution
		current_score = validate_score(initial_score)
		best_solution = current_solution
		best_score = current_score

		counter = AcceptanceCounter(cfg.window_size)
		accepted_count = 0
		rejected_count = 0
		return_stagnation_counter = 0
		patience_stagnation_counter = 0
		iterations_run = 0
		stop_reason = StopReason.MAX_ITERATIONS

		with nullcontext(pool) if pool is not None else TrialPool(cfg.resolved_workers()) as pool:
			for it in range(n_iter):
				if time.monotonic() - start_time >= time_limit:
					stop_reason = StopReason.TIME_LIMIT
					self._log.debug(f"[{self.name}] Time limit reached at iter {it}")
					break
				iterations_run = it + 1

				trials = generate_trials(model, pool, current_solution, current_score, cfg.n_trials, rng)
				trials.sort(key=lambda t: t[2])
				accepted = find_accepted_solution(trials, tabu_list, best_score)

				improved = False
				if accepted is not None:
					solution, transition, score = accepted
					current_solution = solution
					current_score = score
					tabu_list.append((solution, transition))
					accepted_count += 1
					counter.enqueue(True)
					if score < best_score:
						best_solution = solution
						best_score = score
						improved = True
				else:
					rejected_count += 1
					counter.enqueue(False)

				if improved:
					return_stagnation_counter = 0
					patience_stagnation_counter = 0
				else:
					return_stagnation_counter += 1
					patience_stagnation_counter += 1

				if limit_reached(return_stagnation_counter, cfg.return_iter):
					current_solution = best_solution
					current_score = best_score
					return_stagnation_counter = 0

				if limit_reached(patience_stagnation_counter, cfg.patience):
					stop_reason = StopReason.PATIENCE
					self._log.debug(f"[{self.name}] No improvement for {cfg.patience} iterations, stopping at iter {it}")
					break

				if callback is not None:
					callback(OptProgress(it, counter.acceptance_ratio(), best_solution, best_score))

		return TabuStepResult(
			best_solution=best_solution,
			best_score=best_score,
			last_solution=current_solution,
			last_score=current_score,
			accepted_count=accepted_count,
			rejected_count=rejected_count,
			acceptance_ratio=counter.acceptance_ratio(),
			iterations_run=iterations_run,
			stop_reason=stop_reason,
			tabu_list=tabu_list,
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
