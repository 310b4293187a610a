"""
Shared fixtures for the localsearch tests.

The canonical end-to-end scenario: minimize Σ (x_i - c_i)² with centers
[2.0, 0.0, -3.5] on [-10, 10]^3.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from localsearch.model import OptModel
from localsearch.models import QuadraticModel

CENTERS = [2.0, 0.0, -3.5]


class ConstantModel(OptModel):
	"""Every solution scores the same, so the best score never improves."""

	def __init__(self, score: float = 1.0):
		self.score = score

	def generate_random_solution(self, rng):
		return [0.0], self.score

	def generate_trial_solution(self, current_solution, current_score, rng):
		return [float(rng.random())], None, self.score


class CountingModel(OptModel):
	"""
	Solutions are integers scored by their value; every trial is current + 1.

	The start 0 is the best solution ever seen, and each transition is a
	fresh float so no move is ever tabu.
	"""

	def generate_random_solution(self, rng):
		return 0, 0.0

	def generate_trial_solution(self, current_solution, current_score, rng):
		return current_solution + 1, float(rng.random()), float(current_solution + 1)


@pytest.fixture
def quadratic_model() -> QuadraticModel:
	return QuadraticModel(3, CENTERS, (-10.0, 10.0))


@pytest.fixture
def constant_model() -> ConstantModel:
	return ConstantModel()


@pytest.fixture
def counting_model() -> CountingModel:
	return CountingModel()


@pytest.fixture
def assert_near_optimum():
	"""Check a quadratic run ended within eps of the known optimum."""

	def _check(result, eps_solution: float = 0.1, eps_score: float = 0.05):
		solution, score = result
		for x, c in zip(solution, CENTERS):
			assert abs(x - c) < eps_solution, \
				f"{result.method_name}: solution {solution} not within {eps_solution} of {CENTERS}"
		assert abs(score) < eps_score, f"{result.method_name}: score {score} not within {eps_score} of 0"

	return _check
