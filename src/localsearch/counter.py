"""
Sliding-window acceptance statistics.
"""

from collections import deque


class AcceptanceCounter:
	"""
	Fraction of accepted transitions over the most recent window.

	Keeps the last `window_size` outcomes and a running count of accepted
	ones, so enqueue is O(1) regardless of the window size.

	Usage:
		counter = AcceptanceCounter(window_size=100)
		counter.enqueue(True)
		counter.enqueue(False)
		counter.acceptance_ratio()  # 0.5
	"""

	def __init__(self, window_size: int = 100):
		if window_size < 1:
			raise ValueError(f"window_size must be >= 1, got {window_size}")
		self._window_size = window_size
		self._window: deque[bool] = deque()
		self._accepted_count = 0

	@property
	def window_size(self) -> int:
		return self._window_size

	def enqueue(self, accepted: bool) -> None:
		"""Record one accept/reject outcome, evicting the oldest when full."""
		if len(self._window) == self._window_size:
			if self._window.popleft():
				self._accepted_count -= 1
		self._window.append(accepted)
		if accepted:
			self._accepted_count += 1

	def acceptance_ratio(self) -> float:
		"""Accepted fraction of the current window, 0.0 when empty."""
		if not self._window:
			return 0.0
		return self._accepted_count / len(self._window)

	def __len__(self) -> int:
		return len(self._window)

	def __repr__(self) -> str:
		return (
			f"AcceptanceCounter(window_size={self._window_size}, "
			f"ratio={self.acceptance_ratio():.3f})"
		)
