"""
Quadratic reference model: minimize Σ (x_i - c_i)² over a box.
"""

from typing import Sequence

from numpy.random import Generator

from localsearch.model import OptModel
from localsearch.optim.tabu_search import TransitionTabuList

# (coordinate, old value, new value)
QuadraticTransition = tuple[int, float, float]


class QuadraticModel(OptModel[list[float], QuadraticTransition]):
	"""
	Separable quadratic with its minimum 0 at `centers`.

	A trial redraws one uniformly chosen coordinate uniformly from
	value_range.

	Usage:
		model = QuadraticModel(3, [2.0, 0.0, -3.5], (-10.0, 10.0))
		result = HillClimbingOptimizer(seed=0).run(model, n_iter=10_000)
	"""

	def __init__(self, k: int, centers: Sequence[float], value_range: tuple[float, float]):
		if k < 1 or len(centers) != k:
			raise ValueError(f"Need k >= 1 centers, got k={k}, centers={list(centers)}")
		low, high = value_range
		if not low < high:
			raise ValueError(f"Empty value range: {value_range}")
		self.k = k
		self.centers = [float(c) for c in centers]
		self.low = float(low)
		self.high = float(high)

	def evaluate_solution(self, solution: Sequence[float]) -> float:
		return float(sum((x - c) ** 2 for x, c in zip(solution, self.centers)))

	def generate_random_solution(self, rng: Generator) -> tuple[list[float], float]:
		solution = [float(v) for v in rng.uniform(self.low, self.high, size=self.k)]
		return solution, self.evaluate_solution(solution)

	def generate_trial_solution(
		self,
		current_solution: list[float],
		current_score: float,
		rng: Generator,
	) -> tuple[list[float], QuadraticTransition, float]:
		k = int(rng.integers(self.k))
		v = float(rng.uniform(self.low, self.high))
		trial = list(current_solution)
		trial[k] = v
		return trial, (k, current_solution[k], v), self.evaluate_solution(trial)

	def clone_solution(self, solution: list[float]) -> list[float]:
		return list(solution)

	@staticmethod
	def tabu_list(capacity: int, tolerance: float = 0.005) -> TransitionTabuList:
		"""
		Tabu list forbidding moves that set a coordinate back to within
		`tolerance` of a value it recently left.
		"""
		def _match(transition: QuadraticTransition, remembered: QuadraticTransition) -> bool:
			k1, _, new_value = transition
			k2, old_value, _ = remembered
			return k1 == k2 and abs(new_value - old_value) < tolerance

		return TransitionTabuList(capacity, match_fn=_match)
