"""
Logging utilities for local search runs.

Two layers:
- OptimizationLogger: leveled wrapper owned by every optimizer
  (TRACE, DEBUG, INFO, WARNING, ERROR), routed through the stdlib
  `localsearch.optimizer.<name>` loggers or through a user callable.
- RunLogger: timestamped file + console log of a benchmark run (headers,
  per-run summaries, final ranking) under logs/YYYY/MM/DD/.
"""

import logging
import os
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional, Sequence

if TYPE_CHECKING:
	from localsearch.optim.base import OptimizerResult

# Custom TRACE level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class OptimizationLogger:
	"""
	Logger wrapper with TRACE, DEBUG, INFO, WARNING, ERROR levels.

	TRACE: Per-round internals of multi-replica algorithms (stdout only)
	DEBUG: Tuned parameters, return-to-best, termination causes
	INFO: Run start and finish summaries
	ERROR: Errors

	Usage:
		log = OptimizationLogger("SimulatedAnnealing", level=logging.DEBUG)
		log.debug("Tuned beta=0.42")
		log.info("Finished")

	With a callable (e.g. a RunLogger) handling output:
		log = OptimizationLogger("TabuSearch", file_logger=RunLogger("tabu"))
	"""

	def __init__(
		self,
		name: str,
		level: int = logging.WARNING,
		file_logger: Optional[Callable[[str], None]] = None,
	):
		self._logger = logging.getLogger(f"localsearch.optimizer.{name}")
		# Only add StreamHandler if no file_logger (file_logger handles its own output)
		if not file_logger and not self._logger.handlers:
			handler = logging.StreamHandler()
			handler.setFormatter(logging.Formatter("%(message)s"))
			self._logger.addHandler(handler)
		self._logger.setLevel(level)
		self._name = name
		self._file_logger = file_logger

	@property
	def name(self) -> str:
		return self._name

	def is_enabled_for(self, level: int) -> bool:
		return self._logger.isEnabledFor(level)

	def _emit(self, level: int, msg: str) -> None:
		if not self._logger.isEnabledFor(level):
			return
		if self._file_logger:
			self._file_logger(msg)
		else:
			self._logger.log(level, msg)
			for handler in self._logger.handlers:
				handler.flush()

	def trace(self, msg: str) -> None:
		"""Log at TRACE level (stdout only when a file_logger is set)."""
		if self._logger.isEnabledFor(TRACE):
			if self._file_logger:
				print(msg)
			else:
				self._logger.log(TRACE, msg)

	def debug(self, msg: str) -> None:
		self._emit(logging.DEBUG, msg)

	def info(self, msg: str) -> None:
		self._emit(logging.INFO, msg)

	def warning(self, msg: str) -> None:
		self._emit(logging.WARNING, msg)

	def error(self, msg: str) -> None:
		self._emit(logging.ERROR, msg)

	def __call__(self, msg: str) -> None:
		"""Default: INFO level (compatible with print-style logging)."""
		self.info(msg)

	def set_level(self, level: int) -> None:
		"""Change log level dynamically."""
		self._logger.setLevel(level)


class RunLogger:
	"""
	Timestamped log of a benchmark run, written to a file and the console.

	Callable, so it doubles as the `logger` argument of the optimizers:
	their INFO/DEBUG lines land in the same file as the run summary.

	Usage:
		with RunLogger("quadratic") as run_log:
			run_log.header("Local Search Benchmark")
			optimizer = SimulatedAnnealingOptimizer(config, logger=run_log)
			result = optimizer.run(model, n_iter=1000)
			run_log.result(result)
			run_log.results_table([result])
	"""

	def __init__(self, name: str = "localsearch", log_dir: Optional[str] = None, console: bool = True):
		# Default: logs/YYYY/MM/DD/ under the working directory
		now = datetime.now()
		if log_dir is None:
			log_dir = os.path.join("logs", now.strftime("%Y"), now.strftime("%m"), now.strftime("%d"))
		os.makedirs(log_dir, exist_ok=True)

		self.name = name
		self.log_file = os.path.join(log_dir, f"{name}_{now.strftime('%Y%m%d_%H%M%S')}.log")

		self._logger = logging.getLogger(f"localsearch.run.{name}.{id(self)}")
		self._logger.setLevel(logging.INFO)
		self._logger.propagate = False

		formatter = logging.Formatter("%(asctime)s | %(message)s", datefmt="%H:%M:%S")
		handlers: list[logging.Handler] = [logging.FileHandler(self.log_file)]
		if console:
			handlers.append(logging.StreamHandler())
		for handler in handlers:
			handler.setFormatter(formatter)
			self._logger.addHandler(handler)

	def __call__(self, message: str = "") -> None:
		self._logger.info(message)
		for handler in self._logger.handlers:
			handler.flush()

	def _banner(self, title: str, char: str, width: int) -> None:
		self()
		self(char * width)
		self(f"  {title}")
		self(char * width)

	def header(self, title: str) -> None:
		self._banner(title, "=", 70)

	def section(self, title: str) -> None:
		self._banner(title, "-", 50)

	def result(self, result: "OptimizerResult", show_solution: bool = False) -> None:
		"""Summary lines of one optimizer run."""
		self(f"  Best score: {result.best_score:.6g}")
		self(f"  Iterations: {result.iterations_run:,} ({result.stop_reason.name})")
		self(f"  Acceptance ratio: {result.acceptance_ratio:.3f}")
		if show_solution:
			self(f"  Best solution: [{', '.join(f'{x:.4f}' for x in result.best_solution)}]")

	def results_table(self, results: Sequence["OptimizerResult"]) -> None:
		"""Ranking of several runs, best score first."""
		self.header("FINAL RESULTS")
		self(f"  {'Method':<30} {'Best score':>14} {'Iterations':>12} {'Stop':>14}")
		for res in sorted(results, key=lambda r: r.best_score):
			self(
				f"  {res.method_name:<30} {res.best_score:>14.6g} {res.iterations_run:>12,} "
				f"{res.stop_reason.name:>14}"
			)

	def close(self) -> None:
		for handler in list(self._logger.handlers):
			handler.close()
			self._logger.removeHandler(handler)

	def __enter__(self) -> "RunLogger":
		return self

	def __exit__(self, *exc) -> None:
		self.close()
