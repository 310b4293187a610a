"""
Factory for creating local search optimizers.
"""

import logging
from dataclasses import fields
from typing import Callable, Optional

from localsearch.enums import OptimizationMethod
from localsearch.optim.adaptive_annealing import AdaptiveAnnealingOptimizer
from localsearch.optim.asa import AdaptiveSimulatedAnnealingOptimizer
from localsearch.optim.base import LocalSearchConfig, LocalSearchOptimizer
from localsearch.optim.epsilon_greedy import EpsilonGreedyOptimizer
from localsearch.optim.great_deluge import GreatDelugeOptimizer
from localsearch.optim.hill_climbing import HillClimbingOptimizer
from localsearch.optim.logistic_annealing import LogisticAnnealingOptimizer
from localsearch.optim.metropolis import MetropolisOptimizer
from localsearch.optim.parallel_tempering import ParallelTemperingOptimizer
from localsearch.optim.population_annealing import PopulationAnnealingOptimizer
from localsearch.optim.random_search import RandomSearchOptimizer
from localsearch.optim.relative_annealing import RelativeAnnealingOptimizer
from localsearch.optim.simulated_annealing import SimulatedAnnealingOptimizer
from localsearch.optim.tabu_search import TabuSearchOptimizer
from localsearch.optim.tsallis import TsallisOptimizer


_OPTIMIZERS: dict[OptimizationMethod, type] = {
	OptimizationMethod.HILL_CLIMBING: HillClimbingOptimizer,
	OptimizationMethod.RANDOM_SEARCH: RandomSearchOptimizer,
	OptimizationMethod.EPSILON_GREEDY: EpsilonGreedyOptimizer,
	OptimizationMethod.METROPOLIS: MetropolisOptimizer,
	OptimizationMethod.SIMULATED_ANNEALING: SimulatedAnnealingOptimizer,
	OptimizationMethod.ADAPTIVE_SIMULATED_ANNEALING: AdaptiveSimulatedAnnealingOptimizer,
	OptimizationMethod.ADAPTIVE_ANNEALING: AdaptiveAnnealingOptimizer,
	OptimizationMethod.LOGISTIC_ANNEALING: LogisticAnnealingOptimizer,
	OptimizationMethod.RELATIVE_ANNEALING: RelativeAnnealingOptimizer,
	OptimizationMethod.TSALLIS_ANNEALING: TsallisOptimizer,
	OptimizationMethod.GREAT_DELUGE: GreatDelugeOptimizer,
	OptimizationMethod.TABU_SEARCH: TabuSearchOptimizer,
	OptimizationMethod.POPULATION_ANNEALING: PopulationAnnealingOptimizer,
	OptimizationMethod.PARALLEL_TEMPERING: ParallelTemperingOptimizer,
}


class OptimizerFactory:
	"""
	Factory for creating local search optimizers.

	Usage:
		# Defaults
		optimizer = OptimizerFactory.create(OptimizationMethod.TABU_SEARCH)

		# With a method-specific config
		optimizer = OptimizerFactory.create(
			OptimizationMethod.SIMULATED_ANNEALING,
			config=SimulatedAnnealingConfig(initial_beta=0.5, update_frequency=10),
			seed=42,
		)

		# A plain LocalSearchConfig sets the shared fields of any method
		optimizer = OptimizerFactory.create(
			OptimizationMethod.METROPOLIS,
			config=LocalSearchConfig(patience=500, n_trials=8),
		)
	"""

	@staticmethod
	def optimizer_class(method: OptimizationMethod) -> type:
		try:
			return _OPTIMIZERS[method]
		except KeyError:
			raise ValueError(f"Unknown optimization method: {method}") from None

	@staticmethod
	def create(
		method: OptimizationMethod,
		config: Optional[LocalSearchConfig] = None,
		seed: Optional[int] = None,
		logger: Optional[Callable[[str], None]] = None,
		log_level: int = logging.WARNING,
	) -> LocalSearchOptimizer:
		"""
		Create an optimizer.

		Args:
			method: Which optimization method to use
			config: Method config, or a LocalSearchConfig whose shared fields
				are carried over into the method's default config
			seed: Random seed for reproducibility
			logger: Callable receiving log lines (e.g. a RunLogger)
			log_level: Level of the optimizer's OptimizationLogger

		Returns:
			LocalSearchOptimizer subclass instance
		"""
		cls = OptimizerFactory.optimizer_class(method)
		config_class = cls.config_class
		if config is not None and not isinstance(config, config_class):
			shared = {f.name: getattr(config, f.name) for f in fields(LocalSearchConfig)}
			config = config_class(**shared)
		return cls(config=config, seed=seed, logger=logger, log_level=log_level)
