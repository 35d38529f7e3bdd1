"""Step outcomes and the end-of-run report."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class MigrationError(RuntimeError):
    """A fatal precondition failed; the run stops with a non-zero exit."""


class StepStatus(str, Enum):
    SUCCEEDED = 'succeeded'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class StepOutcome:
    name: str
    status: StepStatus
    detail: str = ''

    @classmethod
    def succeeded(cls, name: str, detail: str = '') -> 'StepOutcome':
        return cls(name, StepStatus.SUCCEEDED, detail)

    @classmethod
    def skipped(cls, name: str, reason: str) -> 'StepOutcome':
        return cls(name, StepStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, name: str, error: str) -> 'StepOutcome':
        return cls(name, StepStatus.FAILED, error)

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCEEDED


@dataclass
class RunReport:
    """Everything that happened during one run, in order."""

    log_file: str = ''
    steps: List[StepOutcome] = field(default_factory=list)
    sync_tasks: list = field(default_factory=list)
    fatal_error: Optional[str] = None

    def add(self, outcome: StepOutcome) -> StepOutcome:
        self.steps.append(outcome)
        return outcome

    def extend(self, outcomes) -> None:
        for outcome in outcomes:
            self.add(outcome)

    def count(self, status: StepStatus) -> int:
        total = sum(1 for step in self.steps if step.status == status)
        total += sum(1 for task in self.sync_tasks if task.outcome().status == status)
        return total

    @property
    def has_warnings(self) -> bool:
        return self.count(StepStatus.FAILED) > 0

    def write(self, logger) -> None:
        """Write the summary section to the run log."""
        logger.section("Migration Report")
        for step in self.steps:
            line = f"  {step.name}: {step.status.value}"
            if step.detail:
                line += f" ({step.detail})"
            logger.info(line)

        if self.sync_tasks:
            logger.info("  Synced paths:")
            for task in self.sync_tasks:
                outcome = task.outcome()
                line = f"    {task.local_path} <- {task.remote_path}: {task.status.value}"
                if outcome.detail:
                    line += f" ({outcome.detail})"
                logger.info(line)

        logger.info(
            f"  Totals: {self.count(StepStatus.SUCCEEDED)} succeeded, "
            f"{self.count(StepStatus.SKIPPED)} skipped, "
            f"{self.count(StepStatus.FAILED)} failed"
        )
        if self.fatal_error:
            logger.error(f"  Aborted: {self.fatal_error}")
        if self.log_file:
            logger.info(f"  Full log saved to: {self.log_file}")
