"""Ordered endpoint strategies.

The backend is reachable through a proxy and, failing that, directly.
Instead of nesting try/except blocks, callers describe each route as an
:class:`EndpointStrategy` and let :func:`attempt_in_order` walk the list.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from soucare.exceptions import SoucareError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class EndpointStrategy(Generic[T]):
    """One way of obtaining a value, tried as a unit."""

    name: str
    run: Callable[[], Awaitable[T]]


@dataclass(slots=True)
class FallbackOutcome(Generic[T]):
    """Result of walking a strategy list.

    ``value``/``strategy`` are set when one strategy succeeded; ``errors``
    lists every failure encountered before that (or all of them).
    """

    value: T | None = None
    strategy: str | None = None
    errors: list[tuple[str, SoucareError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.strategy is not None

    @property
    def last_error(self) -> SoucareError | None:
        return self.errors[-1][1] if self.errors else None

    def unwrap(self) -> T:
        """Return the value or raise the last error."""
        if self.ok:
            return self.value  # type: ignore[return-value]
        error = self.last_error
        if error is None:
            raise SoucareError("No endpoint strategy was attempted")
        raise error


async def attempt_in_order(strategies: Sequence[EndpointStrategy[T]]) -> FallbackOutcome[T]:
    """Run *strategies* in order until one succeeds.

    Only :class:`SoucareError` counts as a failure; anything else is a bug
    and propagates.
    """
    outcome: FallbackOutcome[T] = FallbackOutcome()
    for strategy in strategies:
        try:
            value = await strategy.run()
        except SoucareError as exc:
            _logger.debug("Strategy %s failed: %s", strategy.name, exc)
            outcome.errors.append((strategy.name, exc))
            continue
        outcome.value = value
        outcome.strategy = strategy.name
        if outcome.errors:
            _logger.debug("Recovered via %s after %d failure(s)", strategy.name, len(outcome.errors))
        return outcome
    return outcome
