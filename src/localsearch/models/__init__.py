"""Reference optimization models."""

from localsearch.models.quadratic import QuadraticModel
from localsearch.models.tsp import EdgeTabuList, TSPModel

__all__ = ['QuadraticModel', 'TSPModel', 'EdgeTabuList']
