"""Fault injection for the demo downstream services.

The product API exists to give the dashboards something to show, which
means it needs latency spread and the occasional failure.  Instead of
sprinkling random.random() through the services, the "what goes wrong"
decision is a strategy object the services call before each stage:

  NoFaults        — never delays, never fails (tests, and the default)
  RandomFaults    — uniform delay up to max_delay, fails with error_rate;
                    takes a random.Random so a seed reproduces a run
  ScriptedFaults  — replays a fixed per-stage list of outcomes, so a test
                    can say "fail fill_prices twice, then succeed"
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from product_metrics.metrics.inventory import ProductStage

logger = logging.getLogger(__name__)


class DownstreamError(Exception):
    """A stubbed downstream dependency failed."""

    def __init__(self, stage: ProductStage, message: str = "") -> None:
        self.stage = stage
        super().__init__(message or f"downstream failure during {stage.value}")


@runtime_checkable
class FaultInjector(Protocol):
    async def before(self, stage: ProductStage) -> None:
        """Run ahead of a downstream call.  May sleep, may raise DownstreamError."""
        ...


class NoFaults:
    async def before(self, stage: ProductStage) -> None:
        return None


class RandomFaults:
    def __init__(
        self,
        max_delay: float = 0.0,
        error_rate: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        if max_delay < 0:
            raise ValueError(f"max_delay must be >= 0 (got {max_delay!r})")
        if not 0.0 <= error_rate <= 1.0:
            raise ValueError(f"error_rate must be between 0 and 1 (got {error_rate!r})")
        self._max_delay = max_delay
        self._error_rate = error_rate
        self._rng = rng or random.Random()

    async def before(self, stage: ProductStage) -> None:
        if self._max_delay > 0:
            await asyncio.sleep(self._rng.uniform(0, self._max_delay))
        if self._error_rate > 0 and self._rng.random() < self._error_rate:
            logger.debug("Injecting failure at stage=%s", stage.value)
            raise DownstreamError(stage)


class ScriptedFaults:
    """Replays scripted outcomes per stage; True means "fail this call".

    Once a stage's script runs out, calls for that stage succeed.
    """

    def __init__(self, script: Mapping[ProductStage, Iterable[bool]]) -> None:
        self._script = {stage: deque(outcomes) for stage, outcomes in script.items()}
        self.calls: list[ProductStage] = []

    async def before(self, stage: ProductStage) -> None:
        self.calls.append(stage)
        outcomes = self._script.get(stage)
        if outcomes and outcomes.popleft():
            raise DownstreamError(stage)
