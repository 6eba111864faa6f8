"""Lifecycle guard for async results."""


class Generation:
    """Monotonic generation counter with a disposed flag.

    Async work captures a ticket before its first ``await`` and checks it
    afterwards; a result is applied only if no newer work started and the
    owner hasn't been torn down in between.

    Example:
        >>> generation = Generation()
        >>> ticket = generation.next()
        >>> # ... await network call ...
        >>> if generation.is_current(ticket):
        ...     apply(result)
    """

    __slots__ = ("_disposed", "_value")

    def __init__(self) -> None:
        """Initialize at generation zero (not disposed)."""
        self._value = 0
        self._disposed = False

    def next(self) -> int:
        """Start a new generation and return its ticket."""
        self._value += 1
        return self._value

    @property
    def current(self) -> int:
        return self._value

    def is_current(self, ticket: int) -> bool:
        """Whether a ticket still belongs to the latest live generation."""
        return not self._disposed and ticket == self._value

    def dispose(self) -> None:
        """Invalidate every outstanding ticket for good."""
        self._disposed = True
        self._value += 1

    @property
    def is_disposed(self) -> bool:
        return self._disposed
