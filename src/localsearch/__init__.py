"""localsearch - parallel stochastic local search."""

from localsearch.counter import AcceptanceCounter
from localsearch.enums import OptimizationMethod, StopReason, TargetAccScheduleMode
from localsearch.errors import InvalidScoreError, LocalSearchError, PreprocessError, RandomGenerationError
from localsearch.logger import OptimizationLogger, RunLogger
from localsearch.model import OptModel, validate_score
from localsearch.progress import OptCallbackFn, OptProgress, ProgressTracker, RichProgressCallback
from localsearch.utils import RingBuffer

VERSION = "0.18.1"

__all__ = [
	'AcceptanceCounter',
	'OptimizationMethod', 'StopReason', 'TargetAccScheduleMode',
	'InvalidScoreError', 'LocalSearchError', 'PreprocessError', 'RandomGenerationError',
	'OptimizationLogger', 'RunLogger',
	'OptModel', 'validate_score',
	'OptCallbackFn', 'OptProgress', 'ProgressTracker', 'RichProgressCallback',
	'RingBuffer',
	'VERSION',
]
