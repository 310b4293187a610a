"""
Errors raised by local search optimizers.

Only setup problems and corrupted scores are errors. Running out of
iterations, time or patience is a normal terminal condition and is reported
through StopReason on the result instead.
"""


class LocalSearchError(Exception):
	"""Base class for all local search errors."""


class RandomGenerationError(LocalSearchError):
	"""The model could not generate a random initial solution."""

	def __init__(self, message: str = "Failed to generate random solution"):
		super().__init__(message)


class PreprocessError(LocalSearchError):
	"""Preprocessing of the initial solution failed."""

	def __init__(self, message: str = "Preprocessing failed"):
		super().__init__(message)


class InvalidScoreError(LocalSearchError, ValueError):
	"""A score that cannot be ordered (NaN) crossed the model boundary."""
