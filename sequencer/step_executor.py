# sequencer/step_executor.py
# -*- coding: utf-8 -*-
"""
Runs an ordered list of provisioning steps.

For each step, in declared order, the executor probes the facts the step
consumes, evaluates the step's precondition and either records it as
skipped or performs its action. A failing action is handled according to
the step's failure policy: ``fatal`` stops the run and raises
``StepActionFailed``, ``warn`` records the failure and moves on. There are
no retries. Every step ends up as exactly one entry in the returned
``Report``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
)

from common.command_utils import command_error_text, get_symbols, log_setup
from sequencer.config_models import RunOptions
from sequencer.errors import ProvisioningError, StepActionFailed
from sequencer.facts import FactProber

module_logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    FATAL = "fatal"
    WARN = "warn"


class StepOutcome(str, Enum):
    SKIPPED = "skipped"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class Step:
    """
    One unit of provisioning work.

    Attributes:
        name: Unique name, used in logs and the report.
        action: Performs the side effect. Returning ``False`` counts as a
            failure; raising any exception does too.
        check: Returns True when the step's postcondition already holds, in
            which case the action is not run. Without a check the action
            always runs.
        policy: What a failure means for the rest of the run.
        facts: Names of facts the step consumes; they are probed before the
            check runs.
        benign: Decides whether a particular failure is expected and
            harmless. A benign failure is recorded as skipped.
        description: Human-readable summary for logs.
    """

    name: str
    action: Callable[[], Any]
    check: Optional[Callable[[], bool]] = None
    policy: FailurePolicy = FailurePolicy.FATAL
    facts: Tuple[str, ...] = ()
    benign: Optional[Callable[[StepActionFailed], bool]] = None
    description: str = ""

    @property
    def label(self) -> str:
        return (
            f"{self.description} ({self.name})"
            if self.description
            else self.name
        )


@dataclass(frozen=True)
class StepResult:
    name: str
    outcome: StepOutcome
    detail: str = ""


@dataclass
class Report:
    """Ordered record of what happened to each step of a run."""

    entries: List[StepResult] = field(default_factory=list)

    def record(
        self, name: str, outcome: StepOutcome, detail: str = ""
    ) -> StepResult:
        result = StepResult(name, outcome, detail)
        self.entries.append(result)
        return result

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[StepResult]:
        return iter(self.entries)

    def outcome_of(self, name: str) -> Optional[StepOutcome]:
        for entry in self.entries:
            if entry.name == name:
                return entry.outcome
        return None

    def with_outcome(self, outcome: StepOutcome) -> List[StepResult]:
        return [entry for entry in self.entries if entry.outcome == outcome]

    @property
    def failed(self) -> List[StepResult]:
        return self.with_outcome(StepOutcome.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary_lines(self) -> List[str]:
        lines = []
        for index, entry in enumerate(self.entries, start=1):
            line = f"{index:>3}. {entry.name:<32} {entry.outcome.value}"
            if entry.detail:
                line += f"  ({entry.detail})"
            lines.append(line)
        return lines


class StepExecutor:
    """Executes steps strictly in order, one at a time."""

    def __init__(
        self,
        prober: Optional[FactProber] = None,
        options: Optional[RunOptions] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.prober = prober if prober is not None else FactProber()
        self.options = options
        self.logger = logger or module_logger

    def validate(self, steps: Sequence[Step]) -> None:
        """
        Reject plans with duplicate step names or references to facts the
        prober does not know.

        Raises:
            ValueError: The plan is malformed.
        """
        seen = set()
        for step in steps:
            if step.name in seen:
                raise ValueError(f"Duplicate step name '{step.name}'")
            seen.add(step.name)
            unknown = [name for name in step.facts if name not in self.prober]
            if unknown:
                raise ValueError(
                    f"Step '{step.name}' consumes unregistered facts: {', '.join(unknown)}"
                )

    def _as_failure(self, step: Step, error: Exception) -> StepActionFailed:
        if isinstance(error, StepActionFailed) and error.step == step.name:
            return error
        detail = (
            error.detail
            if isinstance(error, StepActionFailed)
            else command_error_text(error)
        )
        return StepActionFailed(step.name, detail, cause=error)

    def _attempt(self, step: Step) -> Tuple[bool, Optional[StepActionFailed]]:
        """
        Run the check and, if needed, the action. Returns (skipped, failure).
        """
        try:
            if step.check is not None and step.check():
                return True, None
            if step.action() is False:
                raise StepActionFailed(step.name, "action reported failure")
        except ProvisioningError as e:
            if not isinstance(e, StepActionFailed):
                raise
            return False, self._as_failure(step, e)
        except Exception as e:
            return False, self._as_failure(step, e)
        return False, None

    def run(self, steps: Sequence[Step]) -> Report:
        """
        Execute ``steps`` in order.

        Returns:
            The report of every step's outcome.

        Raises:
            StepActionFailed: A fatal step failed. ``error.report`` holds
                the report up to and including that step.
            FactNotFound: A required fact consumed by a step is missing.
            ValueError: The plan is malformed (see ``validate``).
        """
        self.validate(steps)
        symbols = get_symbols(self.options)
        report = Report()

        for step in steps:
            if step.facts:
                self.prober.require(*step.facts)

            log_setup(
                f"--- {symbols.get('step', '➡️')} {step.label} ---",
                "info",
                self.logger,
            )
            skipped, failure = self._attempt(step)

            if skipped:
                report.record(step.name, StepOutcome.SKIPPED)
                log_setup(
                    f"{symbols.get('skip', '⏭️')} Already satisfied, skipping: {step.name}",
                    "info",
                    self.logger,
                )
                continue

            if failure is None:
                report.record(step.name, StepOutcome.APPLIED)
                log_setup(
                    f"{symbols.get('success', '✅')} Applied: {step.name}",
                    "success",
                    self.logger,
                )
                continue

            if step.benign is not None and step.benign(failure):
                report.record(
                    step.name,
                    StepOutcome.SKIPPED,
                    f"benign failure: {failure.detail}",
                )
                log_setup(
                    f"{symbols.get('info', 'ℹ️')} Step '{step.name}' failed for an expected reason, continuing: {failure.detail}",
                    "info",
                    self.logger,
                )
                continue

            report.record(step.name, StepOutcome.FAILED, failure.detail)
            if step.policy == FailurePolicy.FATAL:
                log_setup(
                    f"{symbols.get('critical', '🔥')} Step '{step.name}' failed: {failure.detail}",
                    "critical",
                    self.logger,
                )
                log_setup(
                    "A fatal error occurred. Halting provisioning.",
                    "error",
                    self.logger,
                )
                failure.report = report
                raise failure from failure.cause

            log_setup(
                f"{symbols.get('warning', '⚠️')} Step '{step.name}' failed (non-fatal), continuing: {failure.detail}",
                "warning",
                self.logger,
            )

        return report
