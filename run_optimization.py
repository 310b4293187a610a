#!/usr/bin/env python3
"""
Local Search Benchmark

Runs one or more optimizers on a reference problem and compares them:
- quadratic: Σ (x_i - c_i)² with centers [2.0, 0.0, -3.5] on [-10, 10]
- tsp: Euclidean TSP read from an 'id x y' coordinate file

Annealing methods get their temperatures calibrated from a warm-up
before the run.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from localsearch.enums import OptimizationMethod
from localsearch.logger import RunLogger
from localsearch.model import OptModel
from localsearch.models import EdgeTabuList, QuadraticModel, TSPModel
from localsearch.models.tsp import read_coords, read_route
from localsearch.optim import (
	AdaptiveSimulatedAnnealingOptimizer,
	LocalSearchConfig,
	LocalSearchOptimizer,
	MetropolisOptimizer,
	OptimizerFactory,
	ParallelTemperingOptimizer,
	PopulationAnnealingOptimizer,
	SimulatedAnnealingOptimizer,
	TabuSearchOptimizer,
)
from localsearch.progress import RichProgressCallback


# Global logger instance
logger: Optional[RunLogger] = None


def log(msg: str = ""):
	"""Log wrapper that uses the global logger."""
	if logger:
		logger(msg)
	else:
		print(msg)


def build_model(args) -> OptModel:
	if args.problem == "quadratic":
		return QuadraticModel(3, [2.0, 0.0, -3.5], (-10.0, 10.0))
	if not args.coords:
		raise SystemExit("--coords is required for the tsp problem")
	return TSPModel.from_coords(read_coords(args.coords))


def build_optimizer(method: OptimizationMethod, model: OptModel, args) -> LocalSearchOptimizer:
	"""Create an optimizer for `method` and calibrate what it can calibrate."""
	config = LocalSearchConfig(
		patience=args.patience,
		n_trials=args.n_trials,
		return_iter=args.return_iter,
		n_workers=args.workers,
	)
	log_level = logging.DEBUG if args.verbose else logging.WARNING
	optimizer = OptimizerFactory.create(method, config=config, seed=args.seed, logger=logger, log_level=log_level)

	if isinstance(optimizer, TabuSearchOptimizer):
		if isinstance(model, TSPModel):
			tabu_size = args.tabu_size
			optimizer = TabuSearchOptimizer(
				optimizer.config, seed=args.seed, logger=logger, log_level=log_level,
				tabu_list_factory=lambda: EdgeTabuList(tabu_size),
			)
		elif isinstance(model, QuadraticModel):
			tabu_size = args.tabu_size
			optimizer = TabuSearchOptimizer(
				optimizer.config, seed=args.seed, logger=logger, log_level=log_level,
				tabu_list_factory=lambda: QuadraticModel.tabu_list(tabu_size),
			)
	elif isinstance(optimizer, (SimulatedAnnealingOptimizer, PopulationAnnealingOptimizer)):
		optimizer = optimizer.with_tuned_temperature(model, None, args.n_warmup, 0.8).with_tuned_cooling_rate(args.n_iter)
	elif isinstance(optimizer, AdaptiveSimulatedAnnealingOptimizer):
		optimizer = optimizer.with_tuned_temperature(model, None, args.n_warmup, 0.8).with_tuned_cooling_rate()
	elif isinstance(optimizer, MetropolisOptimizer):
		optimizer = optimizer.with_tuned_temperature(model, None, args.n_warmup, 0.3)
	elif isinstance(optimizer, ParallelTemperingOptimizer):
		optimizer = ParallelTemperingOptimizer.with_geometric_betas(
			args.replicas, 1e-2, 1e2, config=optimizer.config, seed=args.seed, logger=logger, log_level=log_level,
		).with_tuned_betas(model, None, args.n_warmup, 0.8, 0.01)
	return optimizer


def main():
	global logger

	method_names = [m.name.lower() for m in OptimizationMethod]
	parser = argparse.ArgumentParser(description="Local Search Benchmark")
	parser.add_argument("--problem", choices=["quadratic", "tsp"], default="quadratic", help="Reference problem")
	parser.add_argument("--coords", type=str, default=None, help="TSP coordinate file ('id x y' per line)")
	parser.add_argument("--opt-route", type=str, default=None, help="Known optimal TSP route (one id per line)")
	parser.add_argument("--methods", nargs="+", choices=method_names, default=["hill_climbing", "tabu_search"], help="Optimizers to run")
	parser.add_argument("--n-iter", type=int, default=10000, help="Iterations per run")
	parser.add_argument("--time-limit", type=float, default=60.0, help="Seconds per run")
	parser.add_argument("--patience", type=int, default=2000, help="Stop after this many iterations without improvement")
	parser.add_argument("--n-trials", type=int, default=16, help="Trials per iteration")
	parser.add_argument("--return-iter", type=int, default=None, help="Return to best after this many stagnant iterations")
	parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: min(n_trials, cpus))")
	parser.add_argument("--n-warmup", type=int, default=1000, help="Warm-up steps for temperature calibration")
	parser.add_argument("--tabu-size", type=int, default=20, help="Tabu list capacity")
	parser.add_argument("--replicas", type=int, default=8, help="Parallel tempering replicas")
	parser.add_argument("--seed", type=int, default=None, help="Random seed")
	parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
	parser.add_argument("--verbose", action="store_true", help="Log optimizer internals (DEBUG)")
	parser.add_argument("--output", type=str, default=None, help="Output JSON file")
	args = parser.parse_args()

	logger = RunLogger(name=f"localsearch_{args.problem}")

	logger.header("Local Search Benchmark")
	log(f"  Log file: {logger.log_file}")
	log(f"  Problem: {args.problem}")
	log(f"  Methods: {', '.join(args.methods)}")
	log(f"  Iterations: {args.n_iter:,}, time limit: {args.time_limit}s")
	log(f"  Patience: {args.patience}, trials: {args.n_trials}, return_iter: {args.return_iter}")
	log(f"  Seed: {args.seed}")
	log()

	model = build_model(args)

	results = {}
	run_results = []
	for name in args.methods:
		method = OptimizationMethod[name.upper()]
		logger.section(method.name)
		optimizer = build_optimizer(method, model, args)
		log(f"  {optimizer!r}")

		if args.no_progress:
			result = optimizer.run(model, n_iter=args.n_iter, time_limit=args.time_limit)
		else:
			with RichProgressCallback(args.n_iter, description=optimizer.name, transient=True) as callback:
				result = optimizer.run(model, n_iter=args.n_iter, time_limit=args.time_limit, callback=callback)

		logger.result(result, show_solution=args.problem == "quadratic")
		run_results.append(result)
		results[method.name] = {
			"best_score": result.best_score,
			"iterations": result.iterations_run,
			"stop_reason": result.stop_reason.name,
			"acceptance_ratio": result.acceptance_ratio,
		}

	# =========================================================================
	# Final Summary
	# =========================================================================
	logger.results_table(run_results)

	if args.problem == "tsp" and args.opt_route:
		opt_route = read_route(args.opt_route)
		if opt_route:
			log(f"\n  Optimal score: {model.evaluate_solution(opt_route):.6g} ({len(opt_route)} cities)")

	if args.output:
		output_path = Path(args.output)
		output_path.parent.mkdir(parents=True, exist_ok=True)
		output = {
			"results": results,
			"args": vars(args),
			"timestamp": datetime.now().isoformat(),
		}
		with open(output_path, "w") as f:
			json.dump(output, f, indent=2, default=str)
		log(f"\nResults saved to: {output_path}")

	logger.close()
	return 0


if __name__ == "__main__":
	sys.exit(main())
