"""
Local search optimizers.

Every optimizer takes an immutable config, an optional seed and logger,
and exposes run() (random start, preprocess, optimize, postprocess) and
optimize() (from a given solution).

Usage:
	from localsearch.enums import OptimizationMethod
	from localsearch.optim import OptimizerFactory, TabuSearchConfig

	optimizer = OptimizerFactory.create(
		OptimizationMethod.TABU_SEARCH,
		config=TabuSearchConfig(patience=1000, n_trials=25, return_iter=5),
		seed=0,
	)
	result = optimizer.run(model, n_iter=10_000, time_limit=10.0)
	print(result.best_score, result.stop_reason.name)
"""

from localsearch.optim.base import (
	LocalSearchConfig,
	LocalSearchOptimizer,
	OptimizerResult,
	StepResult,
	TransitionProbabilityFn,
	TrialPool,
	generate_trials,
)
from localsearch.optim.generic import GenericLocalSearchOptimizer
from localsearch.optim.hill_climbing import HillClimbingOptimizer
from localsearch.optim.random_search import RandomSearchOptimizer
from localsearch.optim.epsilon_greedy import EpsilonGreedyConfig, EpsilonGreedyOptimizer
from localsearch.optim.metropolis import (
	MetropolisConfig,
	MetropolisOptimizer,
	calculate_beta_from_acceptance_prob,
	gather_energy_diffs,
	tune_beta,
)
from localsearch.optim.simulated_annealing import (
	SimulatedAnnealingConfig,
	SimulatedAnnealingOptimizer,
	tune_cooling_rate,
)
from localsearch.optim.adaptive_annealing import (
	AdaptiveAnnealingConfig,
	AdaptiveAnnealingOptimizer,
	AdaptiveScheduler,
)
from localsearch.optim.asa import AdaptiveSimulatedAnnealingConfig, AdaptiveSimulatedAnnealingOptimizer
from localsearch.optim.logistic_annealing import LogisticAnnealingConfig, LogisticAnnealingOptimizer
from localsearch.optim.relative_annealing import (
	RelativeAnnealingConfig,
	RelativeAnnealingOptimizer,
	exp_transition_score,
	logistic_transition_score,
)
from localsearch.optim.tsallis import TsallisConfig, TsallisOptimizer
from localsearch.optim.great_deluge import GreatDelugeConfig, GreatDelugeOptimizer
from localsearch.optim.tabu_search import (
	TabuList,
	TabuSearchConfig,
	TabuSearchOptimizer,
	TabuStepResult,
	TransitionTabuList,
)
from localsearch.optim.population_annealing import (
	PopulationAnnealingConfig,
	PopulationAnnealingOptimizer,
	resample_population,
)
from localsearch.optim.parallel_tempering import (
	ParallelTemperingConfig,
	ParallelTemperingOptimizer,
	geometric_betas,
	swap_probability,
)
from localsearch.optim.factory import OptimizerFactory

__all__ = [
	# Base
	'LocalSearchConfig',
	'LocalSearchOptimizer',
	'OptimizerResult',
	'StepResult',
	'TransitionProbabilityFn',
	'TrialPool',
	'generate_trials',
	'GenericLocalSearchOptimizer',
	# Greedy family
	'HillClimbingOptimizer',
	'RandomSearchOptimizer',
	'EpsilonGreedyConfig',
	'EpsilonGreedyOptimizer',
	# Annealing family
	'MetropolisConfig',
	'MetropolisOptimizer',
	'calculate_beta_from_acceptance_prob',
	'gather_energy_diffs',
	'tune_beta',
	'SimulatedAnnealingConfig',
	'SimulatedAnnealingOptimizer',
	'tune_cooling_rate',
	'AdaptiveAnnealingConfig',
	'AdaptiveAnnealingOptimizer',
	'AdaptiveScheduler',
	'AdaptiveSimulatedAnnealingConfig',
	'AdaptiveSimulatedAnnealingOptimizer',
	'LogisticAnnealingConfig',
	'LogisticAnnealingOptimizer',
	'RelativeAnnealingConfig',
	'RelativeAnnealingOptimizer',
	'exp_transition_score',
	'logistic_transition_score',
	'TsallisConfig',
	'TsallisOptimizer',
	'GreatDelugeConfig',
	'GreatDelugeOptimizer',
	# Tabu search
	'TabuList',
	'TabuSearchConfig',
	'TabuSearchOptimizer',
	'TabuStepResult',
	'TransitionTabuList',
	# Multi-replica
	'PopulationAnnealingConfig',
	'PopulationAnnealingOptimizer',
	'resample_population',
	'ParallelTemperingConfig',
	'ParallelTemperingOptimizer',
	'geometric_betas',
	'swap_probability',
	# Factory
	'OptimizerFactory',
]
