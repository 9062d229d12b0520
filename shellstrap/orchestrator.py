"""Ordered execution of named provisioning steps."""

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from shellstrap.errors import FatalStepError
from shellstrap.reporter import Level, Reporter

_logging = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class Step:
    name: str
    action: Callable[[], object]
    fatal: bool = False
    skip_reason: str | None = None


@dataclass
class StepOutcome:
    name: str
    status: str
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED


def attempt(action: Callable[[], object]) -> bool:
    """Run a cosmetic action whose failure must never surface.

    Returns True when the action completed, False when it raised.
    """
    try:
        action()
        return True
    except Exception as e:
        _logging.debug(f"ignored failure in {getattr(action, '__name__', action)}: {e}")
        return False


class Orchestrator:
    """Runs steps strictly in order, classifying failures as fatal or not."""

    def __init__(self, reporter: Reporter | None = None):
        self.reporter = reporter or Reporter()
        self.outcomes: list[StepOutcome] = []

    def run(self, name: str, action: Callable[[], object], fatal: bool = False) -> StepOutcome:
        """Run one step.

        Raises:
            FatalStepError: If the action fails and the step is fatal
        """
        self.reporter.info(f"Starting: {name}")
        try:
            action()
        except Exception as e:
            _logging.debug(f"step '{name}' raised", exc_info=True)
            self.reporter.fail(f"{name}: {e}")
            outcome = StepOutcome(name, STATUS_FAILED, str(e))
            self.outcomes.append(outcome)
            if fatal:
                raise FatalStepError(name, e) from e
            return outcome

        self.reporter.ok(name)
        outcome = StepOutcome(name, STATUS_OK)
        self.outcomes.append(outcome)
        return outcome

    def run_all(self, steps: Sequence[Step]) -> list[StepOutcome]:
        total = len(steps)
        for index, step in enumerate(steps, start=1):
            self.reporter.progress(index, total, step.name)
            if step.skip_reason:
                self.reporter.status(Level.SKIP, f"{step.name}: {step.skip_reason}")
                self.outcomes.append(StepOutcome(step.name, STATUS_SKIPPED))
                continue
            self.run(step.name, step.action, step.fatal)
        return self.outcomes

    @property
    def failures(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if o.failed]


__all__ = [
    "Step",
    "StepOutcome",
    "Orchestrator",
    "attempt",
    "STATUS_OK",
    "STATUS_FAILED",
    "STATUS_SKIPPED",
]
