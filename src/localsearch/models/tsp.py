"""
Travelling salesman reference model with 2-opt moves.

A route is a list of city ids starting and ending at the start city.
A trial reverses a random inner segment; its transition is the pair
(removed edges, inserted edges) and its score is computed incrementally.
"""

import math
from typing import Iterable, Optional, Sequence

from numpy.random import Generator

from localsearch.model import OptModel
from localsearch.optim.tabu_search import TabuList
from localsearch.utils import RingBuffer

Edge = tuple[int, int]
# (removed edges, inserted edges)
TSPTransition = tuple[tuple[Edge, Edge], tuple[Edge, Edge]]


def edge(c1: int, c2: int) -> Edge:
	"""Undirected edge key."""
	return (c1, c2) if c1 < c2 else (c2, c1)


class TSPModel(OptModel[list[int], TSPTransition]):
	"""
	Symmetric TSP over a distance table.

	Usage:
		model = TSPModel.from_coords([(1, 0.0, 0.0), (2, 3.0, 4.0), (3, 6.0, 0.0)])
		result = TabuSearchOptimizer(
			TabuSearchConfig(n_trials=200, return_iter=10),
			tabu_list_factory=lambda: EdgeTabuList(20),
		).run(model, n_iter=100_000)
	"""

	def __init__(self, start: int, distance_matrix: dict[Edge, float]):
		self.start = start
		self.distance_matrix = distance_matrix
		self.cities = sorted({c for e in distance_matrix for c in e})
		if start not in self.cities:
			raise ValueError(f"Start city {start} has no distances")
		if len(self.cities) < 4:
			raise ValueError(f"2-opt moves need at least 4 cities, got {len(self.cities)}")

	@classmethod
	def from_coords(cls, coords: Iterable[tuple[int, float, float]]) -> "TSPModel":
		"""Euclidean model from (city id, x, y); the lowest id is the start city."""
		coords = list(coords)
		distance_matrix = {}
		for i, (c1, x1, y1) in enumerate(coords):
			for c2, x2, y2 in coords[i + 1:]:
				distance_matrix[edge(c1, c2)] = math.hypot(x1 - x2, y1 - y2)
		return cls(min(c for c, _, _ in coords), distance_matrix)

	def distance(self, e: Edge) -> float:
		return self.distance_matrix[e]

	def evaluate_solution(self, route: Sequence[int]) -> float:
		return sum(self.distance(edge(route[i], route[i + 1])) for i in range(len(route) - 1))

	def generate_random_solution(self, rng: Generator) -> tuple[list[int], float]:
		others = [c for c in self.cities if c != self.start]
		order = rng.permutation(len(others))
		route = [self.start] + [others[i] for i in order] + [self.start]
		return route, self.evaluate_solution(route)

	def generate_trial_solution(
		self,
		current_solution: list[int],
		current_score: float,
		rng: Generator,
	) -> tuple[list[int], TSPTransition, float]:
		# Two distinct inner positions, start city excluded at both ends
		ind1, ind2 = sorted(int(i) + 1 for i in rng.choice(len(current_solution) - 2, size=2, replace=False))
		route = current_solution[:ind1] + current_solution[ind1:ind2 + 1][::-1] + current_solution[ind2 + 1:]

		removed = (
			edge(current_solution[ind1 - 1], current_solution[ind1]),
			edge(current_solution[ind2], current_solution[ind2 + 1]),
		)
		inserted = (
			edge(route[ind1 - 1], route[ind1]),
			edge(route[ind2], route[ind2 + 1]),
		)
		score = (
			current_score
			- self.distance(removed[0]) - self.distance(removed[1])
			+ self.distance(inserted[0]) + self.distance(inserted[1])
		)
		return route, (removed, inserted), score

	def clone_solution(self, solution: list[int]) -> list[int]:
		return list(solution)


class EdgeTabuList(TabuList):
	"""
	Tabu list of recently removed edges.

	A move is tabu if it would re-insert any remembered edge.
	"""

	def __init__(self, capacity: int):
		self._buff: RingBuffer[Edge] = RingBuffer(capacity)

	def contains(self, item: tuple[list[int], TSPTransition]) -> bool:
		_, (_, inserted) = item
		return any(e in self._buff for e in inserted)

	def append(self, item: tuple[list[int], TSPTransition]) -> None:
		_, (removed, _) = item
		for e in removed:
			if e not in self._buff:
				self._buff.append(e)

	def __len__(self) -> int:
		return len(self._buff)


def read_coords(path: str) -> list[tuple[int, float, float]]:
	"""Read 'id x y' lines."""
	coords = []
	with open(path) as f:
		for line in f:
			parts = line.split()
			if len(parts) >= 3:
				coords.append((int(parts[0]), float(parts[1]), float(parts[2])))
	return coords


def read_route(path: str) -> Optional[list[int]]:
	"""Read one city id per line."""
	with open(path) as f:
		route = [int(line) for line in f if line.strip()]
	return route or None
