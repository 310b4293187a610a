"""
Progress reporting for optimization runs.

Optimizers call a callback once per outer iteration with an OptProgress
record. This module defines the record and two ready-made callbacks:
- ProgressTracker: keeps a score history and logs periodically
- RichProgressCallback: renders a rich progress bar
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, TypeVar

from rich.progress import (
	BarColumn,
	MofNCompleteColumn,
	Progress,
	SpinnerColumn,
	TextColumn,
	TimeElapsedColumn,
	TimeRemainingColumn,
)

S = TypeVar('S')


@dataclass(frozen=True)
class OptProgress(Generic[S]):
	"""
	Progress of one outer iteration.

	Attributes:
		iteration: Iteration index (for chunked optimizers, iterations completed)
		acceptance_ratio: Accepted fraction over the rolling window
		solution: Best solution so far. Owned by the optimizer; do not mutate.
		score: Best score so far
	"""
	iteration: int
	acceptance_ratio: float
	solution: S
	score: Any


# Callback invoked synchronously on the control thread
OptCallbackFn = Callable[[OptProgress], None]


def null_callback(progress: OptProgress) -> None:
	"""Callback that ignores progress."""


class ProgressTracker:
	"""
	Callback that records the best-score history and logs it periodically.

	Usage:
		tracker = ProgressTracker(logger=my_logger, log_every=100, prefix="[SA]")
		optimizer.optimize(model, solution, score, n_iter=1000, callback=tracker)
		print(tracker.summary())

	The tracker will log lines like:
		[SA] [Iter 200/1000] best=0.0132, acc=0.41 *
	"""

	def __init__(
		self,
		logger: Optional[Callable[[str], None]] = None,
		log_every: int = 100,
		prefix: str = "",
		total_iterations: Optional[int] = None,
	):
		self._log = logger or print
		self._log_every = max(1, log_every)
		self._prefix = prefix + " " if prefix else ""
		self._total = total_iterations

		self._history: List[tuple[int, Any]] = []
		self._best_score: Optional[Any] = None
		self._best_iteration = 0
		self._improvements = 0
		self._last_acceptance_ratio = 0.0

	def __call__(self, progress: OptProgress) -> None:
		improved = self._best_score is None or progress.score < self._best_score
		if improved:
			self._best_score = progress.score
			self._best_iteration = progress.iteration
			self._improvements += 1
		self._last_acceptance_ratio = progress.acceptance_ratio
		self._history.append((progress.iteration, progress.score))

		if len(self._history) % self._log_every == 0:
			iter_str = f"Iter {progress.iteration}"
			if self._total:
				iter_str = f"Iter {progress.iteration}/{self._total}"
			improved_str = " *" if improved else ""
			self._log(
				f"{self._prefix}[{iter_str}] "
				f"best={progress.score:.4f}, "
				f"acc={progress.acceptance_ratio:.2f}{improved_str}"
			)

	@property
	def history(self) -> List[tuple[int, Any]]:
		"""(iteration, best_score) pairs, one per callback invocation."""
		return self._history.copy()

	@property
	def best_score(self) -> Optional[Any]:
		return self._best_score

	@property
	def calls(self) -> int:
		return len(self._history)

	def summary(self) -> dict:
		"""Summary statistics of the recorded run."""
		if not self._history:
			return {"calls": 0}
		return {
			"calls": len(self._history),
			"initial_score": self._history[0][1],
			"final_score": self._best_score,
			"best_iteration": self._best_iteration,
			"improvements": self._improvements,
			"acceptance_ratio": self._last_acceptance_ratio,
		}


class RichProgressCallback:
	"""
	Callback rendering a rich progress bar with the current best score.

	Usage:
		with RichProgressCallback(n_iter, description="Tabu Search") as callback:
			result = optimizer.run(model, n_iter=n_iter, callback=callback)
	"""

	def __init__(self, n_iter: int, description: str = "Optimizing", transient: bool = False):
		self._n_iter = n_iter
		self._progress = Progress(
			SpinnerColumn(),
			TextColumn("[progress.description]{task.description}"),
			BarColumn(),
			MofNCompleteColumn(),
			TimeElapsedColumn(),
			TimeRemainingColumn(),
			TextColumn("{task.fields[best]}"),
			transient=transient,
		)
		self._task = self._progress.add_task(description, total=n_iter, best="")

	def __enter__(self) -> "RichProgressCallback":
		self._progress.start()
		return self

	def __exit__(self, exc_type, exc, tb) -> None:
		self._progress.stop()

	def __call__(self, progress: OptProgress) -> None:
		self._progress.update(
			self._task,
			completed=min(progress.iteration + 1, self._n_iter),
			best=f"best={progress.score:.4e} acc={progress.acceptance_ratio:.2f}",
		)
