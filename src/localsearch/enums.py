"""Enums for local search optimization."""

from enum import IntEnum, auto


class OptimizationMethod(IntEnum):
	"""Optimization algorithm selectable through OptimizerFactory."""
	HILL_CLIMBING = auto()
	RANDOM_SEARCH = auto()
	EPSILON_GREEDY = auto()
	METROPOLIS = auto()
	SIMULATED_ANNEALING = auto()
	ADAPTIVE_SIMULATED_ANNEALING = auto()  # SA schedule restarted every reanneal_interval steps
	ADAPTIVE_ANNEALING = auto()            # Temperature follows a target acceptance schedule
	LOGISTIC_ANNEALING = auto()
	RELATIVE_ANNEALING = auto()
	TSALLIS_ANNEALING = auto()
	GREAT_DELUGE = auto()
	TABU_SEARCH = auto()
	POPULATION_ANNEALING = auto()
	PARALLEL_TEMPERING = auto()


class TargetAccScheduleMode(IntEnum):
	"""How the target acceptance rate moves from its initial to its final value."""
	LINEAR = auto()
	EXPONENTIAL = auto()
	COSINE = auto()
	CONSTANT = auto()  # Always the initial target


class StopReason(IntEnum):
	"""Reason why an optimization run stopped."""
	MAX_ITERATIONS = auto()  # Iteration budget exhausted
	PATIENCE = auto()        # No improvement for patience iterations
	TIME_LIMIT = auto()      # Wall-clock budget exhausted
