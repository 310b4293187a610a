"""
Utilities.
"""

from collections import deque
from typing import Generic, Iterator, TypeVar

T = TypeVar('T')


class RingBuffer(Generic[T]):
	"""
	Fixed-capacity FIFO buffer, used to implement tabu lists.

	Appending to a full buffer evicts the oldest item.
	"""

	def __init__(self, capacity: int):
		if capacity < 1:
			raise ValueError(f"capacity must be >= 1, got {capacity}")
		self._capacity = capacity
		self._buff: deque[T] = deque(maxlen=capacity)

	@property
	def capacity(self) -> int:
		return self._capacity

	def append(self, item: T) -> None:
		self._buff.append(item)

	def __iter__(self) -> Iterator[T]:
		return iter(self._buff)

	def __len__(self) -> int:
		return len(self._buff)

	def __contains__(self, item: object) -> bool:
		return item in self._buff

	def __repr__(self) -> str:
		return f"RingBuffer(capacity={self._capacity}, items={list(self._buff)})"
