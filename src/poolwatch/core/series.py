"""Fixed-capacity sliding window of pool size samples."""

from __future__ import annotations

from collections import deque

from poolwatch.models.series import Sample

DEFAULT_CAPACITY = 20


class SlidingWindowSeries:
    """FIFO of the most recent ``capacity`` samples.

    Each sample carries its own label and value, so eviction always drops
    both together. Readers get tuples from :meth:`snapshot`; the backing
    deque is never handed out.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"Window capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._samples: deque[Sample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, sample: Sample) -> None:
        """Add a sample, evicting the oldest one when the window is full."""
        self._samples.append(sample)

    def snapshot(self) -> tuple[Sample, ...]:
        """Return an immutable copy of the window, oldest first."""
        return tuple(self._samples)

    def labels(self) -> tuple[str, ...]:
        return tuple(s.time_label for s in self._samples)

    def values(self) -> tuple[float, ...]:
        return tuple(s.value for s in self._samples)

    def clear(self) -> None:
        self._samples.clear()
