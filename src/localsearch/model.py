"""
Optimization model contract consumed by every optimizer.

A model knows how to create and perturb solutions of one problem; the
optimizers only see opaque solutions, transitions and ordered scores
(lower is better).
"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from numpy.random import Generator

from localsearch.errors import InvalidScoreError

# Solution type
S = TypeVar('S')
# Transition type
T = TypeVar('T')


def validate_score(score: Any) -> Any:
	"""Return `score` unchanged, raising InvalidScoreError if it is NaN."""
	if score != score:
		raise InvalidScoreError(f"Score is not orderable: {score!r}")
	return score


class OptModel(ABC, Generic[S, T]):
	"""
	Abstract optimization model.

	Subclasses must implement:
	- generate_random_solution(): Create a random solution and its score
	- generate_trial_solution(): Perturb a solution into a trial

	generate_trial_solution is called concurrently from worker threads, so
	it must not mutate shared state. Every call receives its own
	numpy Generator.

	Usage:
		class MyModel(OptModel[list[float], int]):
			def generate_random_solution(self, rng):
				solution = list(rng.uniform(-1, 1, size=3))
				return solution, self.evaluate(solution)

			def generate_trial_solution(self, current_solution, current_score, rng):
				k = int(rng.integers(3))
				trial = list(current_solution)
				trial[k] = rng.uniform(-1, 1)
				return trial, k, self.evaluate(trial)
	"""

	@abstractmethod
	def generate_random_solution(self, rng: Generator) -> tuple[S, Any]:
		"""Randomly generate a solution. Returns (solution, score)."""
		...

	@abstractmethod
	def generate_trial_solution(
		self,
		current_solution: S,
		current_score: Any,
		rng: Generator,
	) -> tuple[S, T, Any]:
		"""Generate a trial from the current solution. Returns (solution, transition, score)."""
		...

	def preprocess_solution(self, solution: S, score: Any) -> tuple[S, Any]:
		"""Hook run once before optimization (e.g. repair). Identity by default."""
		return solution, score

	def postprocess_solution(self, solution: S, score: Any) -> tuple[S, Any]:
		"""Hook run once after optimization. Identity by default."""
		return solution, score

	def clone_solution(self, solution: S) -> S:
		"""Create an independent copy of a solution."""
		return copy.deepcopy(solution)
