# =============================================================================
# lib/saga.py - Named Steps With Compensations
# =============================================================================
# Runs a multi-write operation as an ordered list of named steps. Each step
# declares its compensating action next to it. When a step fails, the
# compensations of the steps that already completed run in reverse order.
#
# A step marked rollback_on_failure=False is a "best effort tail": if it
# fails, nothing is undone and the run is reported as partial.
#
# Compensation is best-effort: a failing compensation is logged and the
# remaining ones still run. There is no persistence; a request that dies
# mid-run leaves whatever was already written.
#
# Usage:
#   saga = Saga("signup", [
#       SagaStep("upload_headshot", upload, compensation=delete_upload),
#       SagaStep("insert_profile", insert_row),
#       SagaStep("insert_joins", insert_joins, rollback_on_failure=False),
#   ])
#   outcome = await saga.run()
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class SagaStep:
    """One named write and its undo."""
    name: str
    action: Action
    compensation: Action | None = None
    rollback_on_failure: bool = True


@dataclass
class SagaOutcome:
    """
    What happened during a run.

    - completed: names of steps that succeeded, in order
    - results: return value of each completed step by name
    - failed_step / error: the first failure, if any
    - compensated: names of steps whose compensation succeeded
    """
    completed: list[str] = field(default_factory=list)
    results: dict[str, Any] = field(default_factory=dict)
    failed_step: str | None = None
    error: Exception | None = None
    compensated: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed_step is None

    @property
    def partial(self) -> bool:
        """Failed in a step that doesn't roll back (run() returned instead of raising)."""
        return self.failed_step is not None


class SagaFailed(Exception):
    """A rollback-on-failure step failed; compensations have run."""

    def __init__(self, outcome: SagaOutcome):
        super().__init__(f"step '{outcome.failed_step}' failed: {outcome.error}")
        self.outcome = outcome
        self.step = outcome.failed_step
        self.error = outcome.error


class Saga:
    """Ordered steps executed one at a time."""

    def __init__(self, name: str, steps: list[SagaStep]):
        self.name = name
        self.steps = steps

    async def run(self) -> SagaOutcome:
        """
        Execute all steps.

        Returns:
            SagaOutcome; partial when a non-rollback step failed

        Raises:
            SagaFailed: when a rollback step failed (after compensating)
        """
        outcome = SagaOutcome()
        done: list[SagaStep] = []

        for step in self.steps:
            try:
                outcome.results[step.name] = await step.action()
            except Exception as e:
                outcome.failed_step = step.name
                outcome.error = e
                logger.warning(f"{self.name}: step '{step.name}' failed: {e}")

                if not step.rollback_on_failure:
                    return outcome

                await self._compensate(done, outcome)
                raise SagaFailed(outcome) from e

            done.append(step)
            outcome.completed.append(step.name)

        return outcome

    async def _compensate(self, done: list[SagaStep], outcome: SagaOutcome) -> None:
        for step in reversed(done):
            if step.compensation is None:
                continue
            try:
                await step.compensation()
                outcome.compensated.append(step.name)
                logger.info(f"{self.name}: compensated '{step.name}'")
            except Exception as e:
                logger.error(f"{self.name}: compensation for '{step.name}' failed: {e}")
