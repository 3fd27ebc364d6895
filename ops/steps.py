"""
Ordered pipelines of named steps with terminal outcomes.

A step moves NOT_STARTED -> RUNNING -> SUCCEEDED | FAILED | SKIPPED and never
leaves a terminal state. Nothing is retried.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, Iterable, Optional, Sequence

from ops.console import Level, echo

logger = logging.getLogger(__name__)


class StepStatus(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL = frozenset({StepStatus.SUCCEEDED, StepStatus.FAILED, StepStatus.SKIPPED})


class InvalidTransition(RuntimeError):
    pass


class SkipStep(Exception):
    """Raised by a step body when a local prerequisite is missing."""


@dataclass
class StepResult:
    name: str
    required: bool = True
    status: StepStatus = StepStatus.NOT_STARTED
    detail: str = ""
    degraded: bool = False
    data: dict = field(default_factory=dict)
    error: Optional[BaseException] = field(default=None, repr=False)

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL

    def _move(self, status: StepStatus, detail: str) -> None:
        if self.terminal:
            raise InvalidTransition(
                f"Step {self.name!r} is already {self.status}; cannot become {status}"
            )
        self.status = status
        if detail:
            self.detail = detail

    def start(self) -> None:
        if self.status is not StepStatus.NOT_STARTED:
            raise InvalidTransition(f"Step {self.name!r} already started")
        self.status = StepStatus.RUNNING

    def succeed(self, detail: str = "", *, degraded: bool = False) -> None:
        self._move(StepStatus.SUCCEEDED, detail)
        self.degraded = degraded

    def fail(self, detail: str = "") -> None:
        self._move(StepStatus.FAILED, detail)

    def skip(self, detail: str = "") -> None:
        self._move(StepStatus.SKIPPED, detail)


@dataclass
class Outcome:
    """What a step body returns; a bare None counts as a plain success."""

    detail: str = ""
    degraded: bool = False
    data: dict = field(default_factory=dict)


@dataclass
class Step:
    name: str
    run: Callable[[dict], Optional[Outcome]]
    required: bool = True
    requires: Sequence[str] = ()


def run_pipeline(
    steps: Iterable[Step],
    *,
    delay_seconds: float = 0.0,
    sleep: Callable[[float], Any] = time.sleep,
    on_result: Optional[Callable[[StepResult], Any]] = None,
) -> list[StepResult]:
    """Runs steps in order and returns one terminal result per step.

    Each step body receives a dict mapping earlier step names to their
    `data`. A step whose `requires` did not all succeed is skipped without
    running. `delay_seconds` is slept between executed steps.
    """
    results: list[StepResult] = []
    by_name: dict[str, StepResult] = {}
    shared: dict[str, dict] = {}
    executed = 0

    for step in steps:
        result = StepResult(name=step.name, required=step.required)
        unmet = [
            name
            for name in step.requires
            if by_name.get(name) is None
            or by_name[name].status is not StepStatus.SUCCEEDED
        ]
        if unmet:
            result.skip(f"requires {', '.join(unmet)}")
        else:
            if executed and delay_seconds > 0:
                sleep(delay_seconds)
            executed += 1
            result.start()
            try:
                outcome = step.run(shared) or Outcome()
            except SkipStep as e:
                result.skip(str(e))
            except Exception as e:
                logger.debug("Step %s failed", step.name, exc_info=True)
                result.error = e
                result.fail(str(e) or type(e).__name__)
            else:
                result.data = outcome.data
                result.succeed(outcome.detail, degraded=outcome.degraded)

        shared[step.name] = result.data
        by_name[step.name] = result
        results.append(result)
        if on_result:
            on_result(result)
    return results


@dataclass
class Tally:
    passed: int = 0
    failed: int = 0
    skipped: int = 0

    @classmethod
    def from_results(cls, results: Iterable[StepResult]) -> "Tally":
        tally = cls()
        for result in results:
            if result.status is StepStatus.SUCCEEDED:
                tally.passed += 1
            elif result.status is StepStatus.FAILED:
                tally.failed += 1
            elif result.status is StepStatus.SKIPPED:
                tally.skipped += 1
        return tally

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped

    def __str__(self) -> str:
        return (
            f"passed={self.passed} failed={self.failed} "
            f"skipped={self.skipped} total={self.total}"
        )


def overall_success(results: Iterable[StepResult]) -> bool:
    return all(
        result.status is StepStatus.SUCCEEDED for result in results if result.required
    )


def report(result: StepResult) -> None:
    """Prints one line per finished step."""
    if result.status is StepStatus.SUCCEEDED:
        level = Level.WARNING if result.degraded else Level.SUCCESS
    elif result.status is StepStatus.SKIPPED:
        level = Level.WARNING
    else:
        level = Level.ERROR if result.required else Level.WARNING
    text = f"{result.name}: {result.status}"
    if result.degraded:
        text += " (degraded)"
    if result.detail:
        text += f" - {result.detail}"
    echo(text, level)
